"""
Finance business logic: instalments and fee reports.

Instalments lock the payment row so two concurrent instalments cannot
overpay a fee.
"""
from decimal import Decimal
import logging

from django.db import transaction
from django.db.models import Count, Q, Sum

from .models import Payment, PaymentStatus

logger = logging.getLogger(__name__)

ZERO = Decimal('0.00')


class FinanceServiceError(Exception):
    """Base exception for finance service errors."""
    pass


class InvalidInstalmentError(FinanceServiceError):
    """Instalment amount is not positive."""
    pass


class OverpaymentError(FinanceServiceError):
    """Instalment larger than the outstanding balance."""
    pass


class FinanceService:
    """
    Fee operations. Every write runs in a transaction.
    """

    @staticmethod
    @transaction.atomic
    def record_instalment(payment: Payment, amount: Decimal, recorded_by=None, notes: str = '') -> Payment:
        """
        Add an instalment to a payment.

        Args:
            payment: the fee being paid
            amount: money received (must be positive)
            recorded_by: user entering the instalment
            notes: appended to the payment notes

        Returns:
            Payment: refreshed payment with new balance and status

        Raises:
            InvalidInstalmentError: amount <= 0
            OverpaymentError: amount > outstanding balance
        """
        amount = Decimal(str(amount))
        if amount <= 0:
            raise InvalidInstalmentError('Instalment amount must be positive')

        payment = Payment.objects.select_for_update().get(pk=payment.pk)

        if amount > payment.balance_owed:
            logger.warning(
                f'Overpayment rejected: payment={payment.id}, amount={amount}, balance={payment.balance_owed}'
            )
            raise OverpaymentError(
                f'Amount {amount} exceeds the outstanding balance {payment.balance_owed}'
            )

        payment.paid_amount = payment.paid_amount + amount
        if notes:
            payment.notes = f'{payment.notes}\n{notes}'.strip()
        if recorded_by is not None:
            payment.recorded_by = recorded_by
        payment.save(update_fields=['paid_amount', 'notes', 'recorded_by'])

        logger.info(
            f'Instalment recorded: payment={payment.id}, amount={amount}, '
            f'paid={payment.paid_amount}, balance={payment.balance_owed}, status={payment.status}'
        )
        return payment

    @staticmethod
    def total_owed(student) -> Decimal:
        return student.payments.aggregate(total=Sum('balance_owed'))['total'] or ZERO

    @staticmethod
    def students_owing(queryset):
        """
        Outstanding (Pending/Partial) payments grouped per student,
        largest debt first.

        Returns:
            [{'student': Student, 'total_owed': Decimal, 'payments': [Payment, ...]}, ...]
        """
        outstanding = (
            queryset
            .filter(status__in=[PaymentStatus.PENDING, PaymentStatus.PARTIAL])
            .select_related('student', 'student__school_class')
            .order_by('payment_date', 'id')
        )

        grouped = {}
        for payment in outstanding:
            entry = grouped.setdefault(payment.student_id, {
                'student': payment.student,
                'total_owed': ZERO,
                'payments': [],
            })
            entry['total_owed'] += payment.balance_owed
            entry['payments'].append(payment)

        return sorted(grouped.values(), key=lambda e: e['total_owed'], reverse=True)

    @staticmethod
    def payment_stats(queryset) -> dict:
        totals = queryset.aggregate(
            total_expected=Sum('amount'),
            total_paid=Sum('paid_amount'),
            total_owed=Sum('balance_owed'),
            paid_count=Count('id', filter=Q(status=PaymentStatus.PAID)),
            partial_count=Count('id', filter=Q(status=PaymentStatus.PARTIAL)),
            pending_count=Count('id', filter=Q(status=PaymentStatus.PENDING)),
        )
        for key in ('total_expected', 'total_paid', 'total_owed'):
            totals[key] = totals[key] or ZERO
        return totals
