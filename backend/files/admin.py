from django.contrib import admin

from .models import StagedFile


@admin.register(StagedFile)
class StagedFileAdmin(admin.ModelAdmin):
    list_display = ("file_id", "original_name", "category", "size",
                    "mime_type", "expires_at")
    list_filter = ("category", "mime_type")
    search_fields = ("original_name", "staged_key")
    readonly_fields = ("file_id", "staged_key", "created_at")
