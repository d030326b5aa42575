from django.contrib import admin

from .models import Category, CategoryRole, Report


class CategoryRoleInline(admin.StackedInline):
    model = CategoryRole
    extra = 0


@admin.register(Category)
class CategoryAdmin(admin.ModelAdmin):
    list_display = ("name",)
    search_fields = ("name",)
    inlines = [CategoryRoleInline]


@admin.register(Report)
class ReportAdmin(admin.ModelAdmin):
    list_display = ("id", "title", "status", "category",
                    "assigned_to", "created_at")
    list_filter = ("status", "category")
    search_fields = ("title", "description")
    # Status and assignment only change through the workflow service.
    readonly_fields = ("status", "assigned_to", "photo_keys")
