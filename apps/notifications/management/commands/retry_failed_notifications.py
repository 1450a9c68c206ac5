"""
Management command to retry failed notifications.

Usage:
    python manage.py retry_failed_notifications [--limit 50]

Meant to run on a schedule (cron). Only failures whose next_retry_at has
passed are sent; each one goes back through the notification gate.
"""
from django.core.management.base import BaseCommand

from apps.notifications.retries import retry_failed_notifications


class Command(BaseCommand):
    help = 'Retry notifications that failed and are due for another attempt'

    def add_arguments(self, parser):
        parser.add_argument('--limit', type=int, default=50, help='Maximum failures to retry in this run')

    def handle(self, *args, **options):
        summary = retry_failed_notifications(limit=options['limit'])

        if not summary.attempted:
            self.stdout.write('No notifications due for retry')
            return

        self.stdout.write(self.style.SUCCESS(
            f'✓ Retried {summary.attempted}: {summary.delivered} delivered, '
            f'{summary.failed} failed, {summary.exhausted} exhausted'
        ))
