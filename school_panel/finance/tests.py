"""
Tests for finance app.

Covers:
- Balance/status derivation (compute_payment_figures, Payment.save)
- FinanceService (instalments, owing report, stats)
- API endpoints and role checks
"""
from decimal import Decimal
from itertools import product

from django.contrib.auth import get_user_model
from django.db.models import ProtectedError
from django.test import TestCase
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from academics.models import Student
from tenants.models import Tenant, TenantMembership

from .models import Payment, PaymentStatus, compute_payment_figures
from .services import FinanceService, InvalidInstalmentError, OverpaymentError

User = get_user_model()


def make_school(slug='chilenje'):
    return Tenant.objects.create(slug=slug, name=f'{slug.title()} School', email=f'office@{slug}.zm', max_students=0)


def make_student(tenant, number=1, **extra):
    return Student.objects.create(
        tenant=tenant, first_name='Mwila', last_name=f'Tembo{number}', student_id=f'ADM-{number:03d}', **extra,
    )


def make_payment(tenant, student, amount='500.00', paid='0.00', **extra):
    extra.setdefault('term', Payment.Term.TERM_1)
    extra.setdefault('academic_year', '2024')
    return Payment.objects.create(
        tenant=tenant, student=student, amount=Decimal(amount), paid_amount=Decimal(paid), **extra,
    )


class PaymentFiguresTest(TestCase):
    """balance_owed = amount - paid_amount; status follows paid_amount."""

    def test_full_payment_is_paid(self):
        balance, payment_status = compute_payment_figures(500, 500)
        self.assertEqual(balance, Decimal('0'))
        self.assertEqual(payment_status, PaymentStatus.PAID)

    def test_nothing_paid_is_pending(self):
        balance, payment_status = compute_payment_figures(Decimal('500'), Decimal('0'))
        self.assertEqual(balance, Decimal('500'))
        self.assertEqual(payment_status, PaymentStatus.PENDING)

    def test_part_paid_is_partial(self):
        balance, payment_status = compute_payment_figures(Decimal('500'), Decimal('120.50'))
        self.assertEqual(balance, Decimal('379.50'))
        self.assertEqual(payment_status, PaymentStatus.PARTIAL)

    def test_property_over_grid(self):
        amounts = [Decimal('0.01'), Decimal('1'), Decimal('99.99'), Decimal('500'), Decimal('12000')]
        fractions = [Decimal('0'), Decimal('0.25'), Decimal('0.5'), Decimal('1')]
        for amount, fraction in product(amounts, fractions):
            paid = (amount * fraction).quantize(Decimal('0.01'))
            balance, payment_status = compute_payment_figures(amount, paid)
            self.assertEqual(balance, amount - paid)
            self.assertEqual(payment_status == PaymentStatus.PAID, balance == 0)
            self.assertEqual(payment_status == PaymentStatus.PENDING, paid == 0)
            self.assertEqual(payment_status == PaymentStatus.PARTIAL, 0 < paid < amount)

    def test_invalid_figures_rejected(self):
        for amount, paid in [(0, 0), (-5, 0), (100, -1), (100, '100.01')]:
            with self.assertRaises(ValueError):
                compute_payment_figures(amount, paid)


class PaymentModelTest(TestCase):

    def setUp(self):
        self.tenant = make_school()
        self.student = make_student(self.tenant)

    def test_save_derives_balance_and_status(self):
        payment = make_payment(self.tenant, self.student, amount='500', paid='500')
        payment.refresh_from_db()
        self.assertEqual(payment.status, PaymentStatus.PAID)
        self.assertEqual(payment.balance_owed, Decimal('0.00'))

    def test_status_recomputed_on_update(self):
        payment = make_payment(self.tenant, self.student, amount='500', paid='0')
        self.assertEqual(payment.status, PaymentStatus.PENDING)
        payment.paid_amount = Decimal('200')
        payment.save()
        payment.refresh_from_db()
        self.assertEqual(payment.status, PaymentStatus.PARTIAL)
        self.assertEqual(payment.balance_owed, Decimal('300.00'))

    def test_receipt_number_and_currency_defaults(self):
        payment = make_payment(self.tenant, self.student)
        self.assertTrue(payment.receipt_number.startswith('RCP-'))
        self.assertEqual(payment.currency, 'ZMW')
        other = make_payment(self.tenant, self.student)
        self.assertNotEqual(payment.receipt_number, other.receipt_number)

    def test_student_with_payments_cannot_be_deleted(self):
        make_payment(self.tenant, self.student)
        with self.assertRaises(ProtectedError):
            self.student.delete()


class FinanceServiceTest(TestCase):

    def setUp(self):
        self.tenant = make_school()
        self.student = make_student(self.tenant)
        self.payment = make_payment(self.tenant, self.student, amount='500', paid='100')

    def test_record_instalment(self):
        payment = FinanceService.record_instalment(self.payment, Decimal('150'), notes='Second instalment')
        self.assertEqual(payment.paid_amount, Decimal('250.00'))
        self.assertEqual(payment.balance_owed, Decimal('250.00'))
        self.assertEqual(payment.status, PaymentStatus.PARTIAL)
        self.assertIn('Second instalment', payment.notes)

    def test_final_instalment_marks_paid(self):
        payment = FinanceService.record_instalment(self.payment, Decimal('400'))
        self.assertEqual(payment.status, PaymentStatus.PAID)
        self.assertEqual(payment.balance_owed, Decimal('0.00'))

    def test_overpayment_rejected(self):
        with self.assertRaises(OverpaymentError):
            FinanceService.record_instalment(self.payment, Decimal('400.01'))
        self.payment.refresh_from_db()
        self.assertEqual(self.payment.paid_amount, Decimal('100.00'))

    def test_non_positive_instalment_rejected(self):
        for amount in (Decimal('0'), Decimal('-10')):
            with self.assertRaises(InvalidInstalmentError):
                FinanceService.record_instalment(self.payment, amount)

    def test_students_owing_sorted_by_debt(self):
        small_debtor = make_student(self.tenant, 2)
        make_payment(self.tenant, small_debtor, amount='100', paid='50')
        make_payment(self.tenant, self.student, amount='300', paid='0')
        paid_up = make_student(self.tenant, 3)
        make_payment(self.tenant, paid_up, amount='100', paid='100')

        rows = FinanceService.students_owing(Payment.objects.for_tenant(self.tenant))
        self.assertEqual([row['student'] for row in rows], [self.student, small_debtor])
        self.assertEqual(rows[0]['total_owed'], Decimal('700.00'))
        self.assertEqual(len(rows[0]['payments']), 2)

    def test_payment_stats(self):
        make_payment(self.tenant, self.student, amount='200', paid='200')
        make_payment(self.tenant, self.student, amount='50', paid='0')
        stats = FinanceService.payment_stats(Payment.objects.for_tenant(self.tenant))
        self.assertEqual(stats['total_expected'], Decimal('750.00'))
        self.assertEqual(stats['total_paid'], Decimal('300.00'))
        self.assertEqual(stats['total_owed'], Decimal('450.00'))
        self.assertEqual((stats['paid_count'], stats['partial_count'], stats['pending_count']), (1, 1, 1))

    def test_stats_of_empty_school(self):
        stats = FinanceService.payment_stats(Payment.objects.none())
        self.assertEqual(stats['total_expected'], Decimal('0.00'))
        self.assertEqual(stats['paid_count'], 0)


class PaymentAPITest(APITestCase):

    def setUp(self):
        self.tenant = make_school()
        self.bursar = User.objects.create_user(email='bursar@chilenje.zm', password='testpass123')
        self.teacher = User.objects.create_user(email='teacher@chilenje.zm', password='testpass123')
        TenantMembership.objects.create(tenant=self.tenant, user=self.bursar, role='bursar')
        TenantMembership.objects.create(tenant=self.tenant, user=self.teacher, role='teacher')
        self.student = make_student(self.tenant)
        self.client.force_authenticate(user=self.bursar)
        self.list_url = reverse('payment-list')

    def _payload(self, **overrides):
        data = {
            'student': self.student.id,
            'amount': '500.00',
            'paid_amount': '500.00',
            'term': 'Term 1',
            'academic_year': '2024',
            'payment_method': 'Mobile Money',
        }
        data.update(overrides)
        return data

    def test_create_full_payment_is_paid(self):
        response = self.client.post(self.list_url, self._payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        self.assertEqual(response.data['status'], 'Paid')
        self.assertEqual(Decimal(response.data['balance_owed']), Decimal('0'))

    def test_student_filter(self):
        other = make_student(self.tenant, number=2)
        make_payment(self.tenant, self.student)
        make_payment(self.tenant, other)

        response = self.client.get(self.list_url, {'student': self.student.id})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([p['student'] for p in response.data], [self.student.id])

    def test_non_numeric_student_filter_is_400(self):
        for url in (self.list_url, reverse('payment-owing'), reverse('payment-stats')):
            response = self.client.get(url, {'student': 'abc'})
            self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST, url)
            self.assertIn('student', response.data)
        self.assertTrue(response.data['receipt_number'])

    def test_client_status_and_balance_ignored(self):
        response = self.client.post(
            self.list_url,
            self._payload(paid_amount='100.00', status='Paid', balance_owed='0'),
            format='json',
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['status'], 'Partial')
        self.assertEqual(Decimal(response.data['balance_owed']), Decimal('400.00'))

    def test_invalid_amounts_are_400(self):
        for overrides in ({'amount': '0'}, {'amount': '-1'}, {'paid_amount': '-1'}, {'paid_amount': '600'}):
            response = self.client.post(self.list_url, self._payload(**overrides), format='json')
            self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST, overrides)

    def test_missing_required_fields_are_400(self):
        response = self.client.post(self.list_url, {'amount': '100'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        for field in ('student', 'term', 'academic_year'):
            self.assertIn(field, response.data)

    def test_duplicate_receipt_number_is_400(self):
        make_payment(self.tenant, self.student, receipt_number='R-1')
        response = self.client.post(self.list_url, self._payload(receipt_number='R-1'), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('receipt_number', response.data)

    def test_patch_recomputes_status(self):
        payment = make_payment(self.tenant, self.student, amount='500', paid='0')
        url = reverse('payment-detail', args=[payment.id])
        response = self.client.patch(url, {'paid_amount': '500.00'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'Paid')

    def test_record_payment_action(self):
        payment = make_payment(self.tenant, self.student, amount='500', paid='0')
        url = reverse('payment-record-payment', args=[payment.id])

        response = self.client.post(url, {'amount': '200'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'Partial')

        response = self.client.post(url, {'amount': '301'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('detail', response.data)

        response = self.client.post(url, {'amount': '0'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_list_filters(self):
        make_payment(self.tenant, self.student, amount='100', paid='100', term='Term 1')
        make_payment(self.tenant, self.student, amount='100', paid='0', term='Term 2')
        response = self.client.get(self.list_url, {'status': 'Pending'})
        self.assertEqual(len(response.data), 1)
        response = self.client.get(self.list_url, {'term': 'Term 1'})
        self.assertEqual(len(response.data), 1)

    def test_owing_and_stats(self):
        make_payment(self.tenant, self.student, amount='300', paid='100')
        response = self.client.get(reverse('payment-owing'))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data[0]['student']['id'], self.student.id)
        self.assertEqual(Decimal(response.data[0]['total_owed']), Decimal('200.00'))

        response = self.client.get(reverse('payment-stats'))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['partial_count'], 1)

    def test_teacher_reads_but_cannot_write(self):
        self.client.force_authenticate(user=self.teacher)
        self.assertEqual(self.client.get(self.list_url).status_code, status.HTTP_200_OK)
        response = self.client.post(self.list_url, self._payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_delete_payment(self):
        payment = make_payment(self.tenant, self.student)
        response = self.client.delete(reverse('payment-detail', args=[payment.id]))
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
