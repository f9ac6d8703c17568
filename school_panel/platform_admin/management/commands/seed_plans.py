"""
Create or update the default subscription plans.

Usage:
    python manage.py seed_plans
"""
from decimal import Decimal

from django.core.management.base import BaseCommand

from platform_admin.models import Plan

DEFAULT_PLANS = [
    {
        'name': 'Free Forever',
        'tier': 'FREE',
        'description': 'Get started with basic features',
        'sort_order': 1,
        'monthly_price_zmw': Decimal('0'), 'yearly_price_zmw': Decimal('0'),
        'monthly_price_usd': Decimal('0'), 'yearly_price_usd': Decimal('0'),
        'max_students': 50, 'max_teachers': 5, 'max_users': 10, 'max_classes': 5, 'max_storage_gb': 1,
        'features': ['attendance', 'report_cards', 'basic_reports'],
    },
    {
        'name': 'Starter',
        'tier': 'STARTER',
        'description': 'Perfect for small schools',
        'sort_order': 2,
        'monthly_price_zmw': Decimal('500'), 'yearly_price_zmw': Decimal('5000'),
        'monthly_price_usd': Decimal('25'), 'yearly_price_usd': Decimal('250'),
        'max_students': 200, 'max_teachers': 10, 'max_users': 20, 'max_classes': 10, 'max_storage_gb': 5,
        'features': ['attendance', 'report_cards', 'email_notifications', 'fee_management', 'basic_reports'],
    },
    {
        'name': 'Professional',
        'tier': 'PROFESSIONAL',
        'description': 'Best for growing institutions',
        'sort_order': 3,
        'is_popular': True,
        'monthly_price_zmw': Decimal('1500'), 'yearly_price_zmw': Decimal('15000'),
        'monthly_price_usd': Decimal('75'), 'yearly_price_usd': Decimal('750'),
        'max_students': 500, 'max_teachers': 25, 'max_users': 50, 'max_classes': 25, 'max_storage_gb': 20,
        'features': [
            'attendance', 'report_cards', 'email_notifications', 'sms_notifications',
            'fee_management', 'parent_portal', 'advanced_reports',
        ],
    },
    {
        'name': 'Enterprise',
        'tier': 'ENTERPRISE',
        'description': 'For large school networks',
        'sort_order': 4,
        'monthly_price_zmw': Decimal('3000'), 'yearly_price_zmw': Decimal('30000'),
        'monthly_price_usd': Decimal('150'), 'yearly_price_usd': Decimal('1500'),
        # 0 = unlimited
        'max_students': 0, 'max_teachers': 0, 'max_users': 1000, 'max_classes': 100, 'max_storage_gb': 100,
        'features': [
            'attendance', 'report_cards', 'email_notifications', 'sms_notifications', 'fee_management',
            'white_label', 'api_access', 'dedicated_support', 'priority_support',
        ],
    },
]


class Command(BaseCommand):
    help = 'Create or update the default subscription plans (safe to run repeatedly)'

    def handle(self, *args, **options):
        created = 0
        for data in DEFAULT_PLANS:
            defaults = {key: value for key, value in data.items() if key != 'tier'}
            _, was_created = Plan.objects.update_or_create(tier=data['tier'], defaults=defaults)
            created += int(was_created)
            self.stdout.write(f'{"Created" if was_created else "Updated"} {data["name"]} ({data["tier"]})')

        self.stdout.write(self.style.SUCCESS(f'Plans seeded. Created {created}, total {Plan.objects.count()}.'))
