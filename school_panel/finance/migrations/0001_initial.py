from decimal import Decimal

import django.core.validators
import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('academics', '0001_initial'),
        ('tenants', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Payment',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('amount', models.DecimalField(decimal_places=2, max_digits=12, validators=[django.core.validators.MinValueValidator(Decimal('0.01'))], verbose_name='amount')),
                ('currency', models.CharField(blank=True, max_length=3, verbose_name='currency')),
                ('payment_type', models.CharField(choices=[('Tuition Fee', 'Tuition fee'), ('Examination Fee', 'Examination fee'), ('Activity Fee', 'Activity fee'), ('Other', 'Other')], default='Tuition Fee', max_length=20, verbose_name='payment type')),
                ('payment_method', models.CharField(choices=[('Cash', 'Cash'), ('Mobile Money', 'Mobile money'), ('Bank Transfer', 'Bank transfer'), ('Cheque', 'Cheque')], default='Cash', max_length=20, verbose_name='payment method')),
                ('term', models.CharField(choices=[('Term 1', 'Term 1'), ('Term 2', 'Term 2'), ('Term 3', 'Term 3')], max_length=10, verbose_name='term')),
                ('academic_year', models.CharField(max_length=20, verbose_name='academic year')),
                ('paid_amount', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12, validators=[django.core.validators.MinValueValidator(Decimal('0.00'))], verbose_name='paid amount')),
                ('balance_owed', models.DecimalField(decimal_places=2, editable=False, max_digits=12, verbose_name='balance owed')),
                ('status', models.CharField(choices=[('Paid', 'Paid'), ('Partial', 'Partial'), ('Pending', 'Pending')], db_index=True, editable=False, max_length=10, verbose_name='status')),
                ('payment_date', models.DateField(default=django.utils.timezone.localdate, verbose_name='payment date')),
                ('notes', models.TextField(blank=True, verbose_name='notes')),
                ('receipt_number', models.CharField(blank=True, max_length=50, verbose_name='receipt number')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='created')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='updated')),
                ('recorded_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL, verbose_name='recorded by')),
                ('student', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='payments', to='academics.student', verbose_name='student')),
                ('tenant', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='payment_set', to='tenants.tenant')),
            ],
            options={
                'verbose_name': 'payment',
                'verbose_name_plural': 'payments',
                'ordering': ['-payment_date', '-id'],
            },
        ),
        migrations.AddConstraint(
            model_name='payment',
            constraint=models.UniqueConstraint(fields=('tenant', 'receipt_number'), name='uniq_receipt_per_tenant'),
        ),
        migrations.AddIndex(
            model_name='payment',
            index=models.Index(fields=['tenant', 'status'], name='payment_tenant_status_idx'),
        ),
        migrations.AddIndex(
            model_name='payment',
            index=models.Index(fields=['tenant', 'term', 'academic_year'], name='payment_tenant_term_idx'),
        ),
    ]
