import uuid

import django.core.validators
import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Tenant',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('slug', models.CharField(db_index=True, help_text='Subdomain: <slug>.<platform domain>', max_length=50, unique=True, validators=[django.core.validators.RegexValidator('^[a-z0-9-]+$', 'Slug may contain only lowercase letters, digits and hyphens.'), django.core.validators.MinLengthValidator(2)])),
                ('name', models.CharField(max_length=200, validators=[django.core.validators.MinLengthValidator(2)])),
                ('email', models.EmailField(max_length=254, unique=True)),
                ('phone', models.CharField(blank=True, max_length=30)),
                ('address', models.CharField(blank=True, max_length=255)),
                ('city', models.CharField(blank=True, max_length=100)),
                ('country', models.CharField(default='ZM', max_length=2)),
                ('currency', models.CharField(default='ZMW', max_length=3)),
                ('timezone', models.CharField(default='Africa/Lusaka', max_length=50)),
                ('logo_url', models.URLField(blank=True)),
                ('tier', models.CharField(choices=[('FREE', 'Free'), ('STARTER', 'Starter'), ('PROFESSIONAL', 'Professional'), ('ENTERPRISE', 'Enterprise')], default='FREE', max_length=20)),
                ('status', models.CharField(choices=[('TRIAL', 'Trial'), ('ACTIVE', 'Active'), ('SUSPENDED', 'Suspended'), ('CANCELLED', 'Cancelled')], db_index=True, default='TRIAL', max_length=20)),
                ('trial_ends_at', models.DateTimeField(blank=True, null=True)),
                ('subscription_started_at', models.DateTimeField(blank=True, null=True)),
                ('subscription_ends_at', models.DateTimeField(blank=True, null=True)),
                ('max_students', models.PositiveIntegerField(default=50)),
                ('max_teachers', models.PositiveIntegerField(default=5)),
                ('max_users', models.PositiveIntegerField(default=10)),
                ('max_classes', models.PositiveIntegerField(default=5)),
                ('sms_enabled', models.BooleanField(default=False)),
                ('sms_sender_id', models.CharField(blank=True, max_length=11)),
                ('sms_api_key', models.CharField(blank=True, max_length=255)),
                ('sms_api_secret', models.CharField(blank=True, max_length=255)),
                ('email_enabled', models.BooleanField(default=True)),
                ('metadata', models.JSONField(blank=True, default=dict)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'verbose_name': 'School (tenant)',
                'verbose_name_plural': 'Schools (tenants)',
                'ordering': ['name'],
            },
        ),
        migrations.CreateModel(
            name='TenantMembership',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('role', models.CharField(choices=[('owner', 'Owner'), ('admin', 'Administrator'), ('teacher', 'Teacher'), ('bursar', 'Bursar'), ('secretary', 'Secretary')], default='teacher', max_length=20)),
                ('is_active', models.BooleanField(default=True)),
                ('joined_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('tenant', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='memberships', to='tenants.tenant')),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='tenant_memberships', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'School membership',
                'verbose_name_plural': 'School memberships',
                'unique_together': {('tenant', 'user')},
                'indexes': [
                    models.Index(fields=['tenant', 'role'], name='membership_tenant_role_idx'),
                    models.Index(fields=['user', 'is_active'], name='membership_user_active_idx'),
                ],
            },
        ),
    ]
