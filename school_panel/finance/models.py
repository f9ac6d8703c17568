"""
School fee payments.

A Payment is one fee charged to a student (tuition for a term, an exam fee, ...)
together with how much of it has been paid. `balance_owed` and `status` are
derived from `amount` and `paid_amount` on every save.
"""
import uuid
from decimal import Decimal

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from tenants.mixins import TenantModelMixin


class PaymentStatus(models.TextChoices):
    PAID = 'Paid', _('Paid')
    PARTIAL = 'Partial', _('Partial')
    PENDING = 'Pending', _('Pending')


def compute_payment_figures(amount, paid_amount):
    """
    Derive (balance_owed, status) from the fee and what was paid.

        balance_owed = amount - paid_amount
        Pending  iff paid_amount == 0
        Partial  iff 0 < paid_amount < amount
        Paid     iff balance_owed == 0

    Raises:
        ValueError: amount <= 0, paid_amount < 0 or paid_amount > amount
    """
    amount = Decimal(str(amount))
    paid_amount = Decimal(str(paid_amount))

    if amount <= 0:
        raise ValueError('Payment amount must be positive')
    if paid_amount < 0:
        raise ValueError('Paid amount cannot be negative')
    if paid_amount > amount:
        raise ValueError('Paid amount cannot exceed the payment amount')

    balance_owed = amount - paid_amount
    if balance_owed == 0:
        status = PaymentStatus.PAID
    elif paid_amount == 0:
        status = PaymentStatus.PENDING
    else:
        status = PaymentStatus.PARTIAL
    return balance_owed, status


def generate_receipt_number():
    return f'RCP-{timezone.now():%Y%m%d}-{uuid.uuid4().hex[:8].upper()}'


class Payment(TenantModelMixin):

    class PaymentType(models.TextChoices):
        TUITION = 'Tuition Fee', _('Tuition fee')
        EXAMINATION = 'Examination Fee', _('Examination fee')
        ACTIVITY = 'Activity Fee', _('Activity fee')
        OTHER = 'Other', _('Other')

    class PaymentMethod(models.TextChoices):
        CASH = 'Cash', _('Cash')
        MOBILE_MONEY = 'Mobile Money', _('Mobile money')
        BANK_TRANSFER = 'Bank Transfer', _('Bank transfer')
        CHEQUE = 'Cheque', _('Cheque')

    class Term(models.TextChoices):
        TERM_1 = 'Term 1', _('Term 1')
        TERM_2 = 'Term 2', _('Term 2')
        TERM_3 = 'Term 3', _('Term 3')

    student = models.ForeignKey(
        'academics.Student',
        on_delete=models.PROTECT,
        related_name='payments',
        verbose_name=_('student'),
    )

    amount = models.DecimalField(
        _('amount'),
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.01'))],
    )
    currency = models.CharField(_('currency'), max_length=3, blank=True)
    payment_type = models.CharField(
        _('payment type'), max_length=20, choices=PaymentType.choices, default=PaymentType.TUITION,
    )
    payment_method = models.CharField(
        _('payment method'), max_length=20, choices=PaymentMethod.choices, default=PaymentMethod.CASH,
    )
    term = models.CharField(_('term'), max_length=10, choices=Term.choices)
    academic_year = models.CharField(_('academic year'), max_length=20)

    paid_amount = models.DecimalField(
        _('paid amount'),
        max_digits=12,
        decimal_places=2,
        default=Decimal('0.00'),
        validators=[MinValueValidator(Decimal('0.00'))],
    )
    # derived in save()
    balance_owed = models.DecimalField(_('balance owed'), max_digits=12, decimal_places=2, editable=False)
    status = models.CharField(
        _('status'), max_length=10, choices=PaymentStatus.choices, editable=False, db_index=True,
    )

    payment_date = models.DateField(_('payment date'), default=timezone.localdate)
    notes = models.TextField(_('notes'), blank=True)
    receipt_number = models.CharField(_('receipt number'), max_length=50, blank=True)
    recorded_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True, blank=True,
        related_name='+',
        verbose_name=_('recorded by'),
    )

    created_at = models.DateTimeField(_('created'), auto_now_add=True)
    updated_at = models.DateTimeField(_('updated'), auto_now=True)

    class Meta:
        verbose_name = _('payment')
        verbose_name_plural = _('payments')
        ordering = ['-payment_date', '-id']
        constraints = [
            models.UniqueConstraint(fields=['tenant', 'receipt_number'], name='uniq_receipt_per_tenant'),
        ]
        indexes = [
            models.Index(fields=['tenant', 'status'], name='payment_tenant_status_idx'),
            models.Index(fields=['tenant', 'term', 'academic_year'], name='payment_tenant_term_idx'),
        ]

    def __str__(self):
        return f'{self.receipt_number}: {self.paid_amount}/{self.amount} ({self.status})'

    def save(self, *args, **kwargs):
        self.balance_owed, self.status = compute_payment_figures(self.amount, self.paid_amount)
        if not self.receipt_number:
            self.receipt_number = generate_receipt_number()
        if not self.currency:
            self.currency = self.tenant.currency if self.tenant_id else settings.DEFAULT_CURRENCY
        update_fields = kwargs.get('update_fields')
        if update_fields is not None:
            kwargs['update_fields'] = set(update_fields) | {'balance_owed', 'status', 'updated_at'}
        super().save(*args, **kwargs)
