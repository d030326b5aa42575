"""
Management command: init_buckets
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~

Creates the report-photo and profile-photo buckets when they do not exist.
Idempotent — safe to run on every deploy::

    python manage.py init_buckets
"""

from django.conf import settings
from django.core.management.base import BaseCommand

from files.storage import get_blob_store


class Command(BaseCommand):
    help = "Ensure the object-storage buckets used for uploads exist."

    def handle(self, *args, **options):
        store = get_blob_store()
        for bucket in (settings.MINIO_REPORT_BUCKET, settings.MINIO_PROFILE_BUCKET):
            if store.ensure_bucket(bucket):
                self.stdout.write(self.style.SUCCESS(f"Created bucket: {bucket}"))
            else:
                self.stdout.write(f"Bucket already exists: {bucket}")
