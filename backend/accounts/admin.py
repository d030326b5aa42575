from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin

from .models import Citizen, Office, Role, User


class RoleInline(admin.TabularInline):
    model = Role
    extra = 0


@admin.register(Office)
class OfficeAdmin(admin.ModelAdmin):
    list_display = ("name",)
    search_fields = ("name",)
    inlines = [RoleInline]


@admin.register(Role)
class RoleAdmin(admin.ModelAdmin):
    list_display = ("name", "office")
    list_filter = ("office",)
    search_fields = ("name",)


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    list_display = ("username", "email", "role", "active_tasks", "is_active")
    list_filter = ("role", "is_active", "is_staff")
    readonly_fields = ("active_tasks",)
    fieldsets = BaseUserAdmin.fieldsets + (
        ("Municipality", {"fields": ("role", "active_tasks")}),
    )


@admin.register(Citizen)
class CitizenAdmin(admin.ModelAdmin):
    list_display = ("id", "user", "email_notifications", "created_at")
    search_fields = ("user__username", "user__email")
