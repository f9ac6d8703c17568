"""
Suspend schools whose trial or paid subscription has ended.

Usage:
    python manage.py expire_subscriptions
    python manage.py expire_subscriptions --dry-run
"""
from django.core.management.base import BaseCommand

from platform_admin.services import PlatformService


class Command(BaseCommand):
    help = 'Suspend TRIAL schools past trial_ends_at and ACTIVE schools past subscription_ends_at'

    def add_arguments(self, parser):
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='List the schools without changing them',
        )

    def handle(self, *args, **options):
        dry_run = options['dry_run']
        tenants = PlatformService.expire_subscriptions(dry_run=dry_run)

        if not tenants:
            self.stdout.write('No expired schools.')
            return

        for tenant in tenants:
            self.stdout.write(f'  {tenant.slug}: {tenant.name}')

        if dry_run:
            self.stdout.write(self.style.WARNING(f'Dry run: {len(tenants)} school(s) would be suspended.'))
        else:
            self.stdout.write(self.style.SUCCESS(f'Suspended {len(tenants)} school(s).'))
