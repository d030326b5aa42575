"""
Management command: purge_staged_files
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~

Deletes every staged upload whose 24-hour window has passed, blob first
then record.  Failures on individual files are logged and skipped.

Meant to be run periodically (cron, systemd timer, k8s CronJob)::

    python manage.py purge_staged_files
"""

from django.core.management.base import BaseCommand

from files.services import FileStagingService


class Command(BaseCommand):
    help = "Delete expired staged uploads from storage and the database."

    def handle(self, *args, **options):
        cleaned = FileStagingService.sweep_expired()
        self.stdout.write(self.style.SUCCESS(f"Removed {cleaned} expired staged file(s)."))
