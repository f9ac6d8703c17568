"""
Tests for attendance app.

Covers:
- AttendanceService (upsert, register, stats, analytics)
- API endpoints and role checks
"""
from datetime import date

from django.contrib.auth import get_user_model
from django.db.models import ProtectedError
from django.test import TestCase
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from academics.models import SchoolClass, Student
from tenants.models import Tenant, TenantMembership

from .models import Attendance
from .services import AttendanceService, AttendanceServiceError, attendance_rate

User = get_user_model()

MONDAY = date(2024, 3, 4)
TUESDAY = date(2024, 3, 5)


def make_school(slug='matero'):
    return Tenant.objects.create(slug=slug, name=f'{slug.title()} Primary', email=f'office@{slug}.zm')


def make_class(tenant, name='Grade 4A'):
    return SchoolClass.objects.create(tenant=tenant, name=name, grade='4')


def make_student(tenant, school_class, number, last_name=None):
    return Student.objects.create(
        tenant=tenant,
        school_class=school_class,
        first_name='Chipo',
        last_name=last_name or f'Banda{number}',
        student_id=f'ADM-{number:03d}',
    )


class AttendanceRateTest(TestCase):

    def test_present_and_late_count_as_attended(self):
        self.assertEqual(attendance_rate(present=2, late=1, total=4), 75.0)

    def test_rounded_to_two_places(self):
        self.assertEqual(attendance_rate(present=1, late=0, total=3), 33.33)

    def test_no_records(self):
        self.assertEqual(attendance_rate(0, 0, 0), 0)


class AttendanceServiceTest(TestCase):

    def setUp(self):
        self.tenant = make_school()
        self.school_class = make_class(self.tenant)
        self.student = make_student(self.tenant, self.school_class, 1)

    def test_mark_twice_overwrites(self):
        record, created = AttendanceService.mark(
            self.tenant, self.student, self.school_class, MONDAY, Attendance.Status.PRESENT,
        )
        self.assertTrue(created)

        again, created = AttendanceService.mark(
            self.tenant, self.student, self.school_class, MONDAY, Attendance.Status.ABSENT, notes='Sick',
        )
        self.assertFalse(created)
        self.assertEqual(again.pk, record.pk)
        self.assertEqual(Attendance.objects.count(), 1)
        again.refresh_from_db()
        self.assertEqual(again.status, Attendance.Status.ABSENT)
        self.assertEqual(again.notes, 'Sick')

    def test_mark_rejects_other_school(self):
        other = make_school('kabwata')
        outsider = make_student(other, make_class(other), 9)
        with self.assertRaises(AttendanceServiceError):
            AttendanceService.mark(self.tenant, outsider, self.school_class, MONDAY, Attendance.Status.PRESENT)

    def test_mark_rejects_unknown_status(self):
        with self.assertRaises(AttendanceServiceError):
            AttendanceService.mark(self.tenant, self.student, self.school_class, MONDAY, 'present')

    def test_register_collapses_duplicates(self):
        second = make_student(self.tenant, self.school_class, 2)
        result = AttendanceService.save_register(
            self.tenant, self.school_class, MONDAY,
            rows=[
                {'student': self.student, 'status': Attendance.Status.PRESENT},
                {'student': second, 'status': Attendance.Status.ABSENT},
                {'student': self.student, 'status': Attendance.Status.LATE},
            ],
        )
        self.assertEqual(result['count'], 2)
        self.assertEqual(result['created'], 2)
        self.assertEqual(result['updated'], 0)
        self.assertEqual(Attendance.objects.get(student=self.student).status, Attendance.Status.LATE)

    def test_register_is_all_or_nothing(self):
        other = make_school('kabwata')
        outsider = make_student(other, make_class(other), 9)
        with self.assertRaises(AttendanceServiceError):
            AttendanceService.save_register(
                self.tenant, self.school_class, MONDAY,
                rows=[
                    {'student': self.student, 'status': Attendance.Status.PRESENT},
                    {'student': outsider, 'status': Attendance.Status.PRESENT},
                ],
            )
        self.assertFalse(Attendance.objects.exists())

    def test_stats(self):
        students = [self.student] + [make_student(self.tenant, self.school_class, n) for n in (2, 3, 4)]
        statuses = [Attendance.Status.PRESENT, Attendance.Status.LATE, Attendance.Status.ABSENT, Attendance.Status.EXCUSED]
        for student, value in zip(students, statuses):
            AttendanceService.mark(self.tenant, student, self.school_class, MONDAY, value)

        stats = AttendanceService.stats(Attendance.objects.filter(tenant=self.tenant))
        self.assertEqual(stats['total'], 4)
        self.assertEqual(stats['present'], 1)
        self.assertEqual(stats['late'], 1)
        self.assertEqual(stats['absent'], 1)
        self.assertEqual(stats['excused'], 1)
        self.assertEqual(stats['attendance_rate'], 50.0)

    def test_analytics(self):
        second = make_student(self.tenant, self.school_class, 2, last_name='Zulu')
        AttendanceService.mark(self.tenant, self.student, self.school_class, MONDAY, Attendance.Status.PRESENT)
        AttendanceService.mark(self.tenant, self.student, self.school_class, TUESDAY, Attendance.Status.LATE)
        AttendanceService.mark(self.tenant, second, self.school_class, MONDAY, Attendance.Status.ABSENT)

        result = AttendanceService.analytics(self.tenant, self.school_class, MONDAY, TUESDAY)

        self.assertEqual(result['total_days'], 2)
        self.assertEqual(result['daily_data'][0], {
            'date': '2024-03-04', 'present': 1, 'absent': 1, 'late': 0, 'excused': 0, 'total': 2,
        })
        first_summary, second_summary = result['student_summaries']
        self.assertEqual(first_summary['admission_number'], 'ADM-001')
        self.assertEqual(first_summary['present_days'], 1)
        self.assertEqual(first_summary['late_days'], 1)
        self.assertEqual(first_summary['attendance_rate'], 100.0)
        self.assertEqual(second_summary['student_name'], 'Chipo Zulu')
        self.assertEqual(second_summary['attendance_rate'], 0)

    def test_analytics_rejects_reversed_range(self):
        with self.assertRaises(AttendanceServiceError):
            AttendanceService.analytics(self.tenant, self.school_class, TUESDAY, MONDAY)

    def test_class_with_attendance_cannot_be_deleted(self):
        AttendanceService.mark(self.tenant, self.student, self.school_class, MONDAY, Attendance.Status.PRESENT)
        with self.assertRaises(ProtectedError):
            self.school_class.delete()

    def test_deleting_student_removes_records(self):
        AttendanceService.mark(self.tenant, self.student, self.school_class, MONDAY, Attendance.Status.PRESENT)
        self.student.delete()
        self.assertFalse(Attendance.objects.exists())


class AttendanceAPITest(APITestCase):

    def setUp(self):
        self.tenant = make_school()
        self.school_class = make_class(self.tenant)
        self.student = make_student(self.tenant, self.school_class, 1)

        self.teacher = User.objects.create_user(email='teacher@matero.zm', password='x')
        self.bursar = User.objects.create_user(email='bursar@matero.zm', password='x')
        TenantMembership.objects.create(tenant=self.tenant, user=self.teacher, role='teacher')
        TenantMembership.objects.create(tenant=self.tenant, user=self.bursar, role='bursar')

        self.client.force_authenticate(self.teacher)
        self.list_url = reverse('attendance-list')

    def mark(self, value, day='2024-03-04'):
        return self.client.post(self.list_url, {
            'student': self.student.pk,
            'school_class': self.school_class.pk,
            'date': day,
            'status': value,
        }, format='json')

    def test_mark_then_overwrite(self):
        response = self.mark('Present')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        self.assertEqual(response.data['student_name'], 'Chipo Banda1')

        response = self.mark('Absent')
        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.assertEqual(response.data['status'], 'Absent')
        self.assertEqual(Attendance.objects.count(), 1)

    def test_malformed_filters_are_400(self):
        for params in ({'student': 'abc'}, {'school_class': '1.5'}, {'date': '2024-02-30'}):
            response = self.client.get(self.list_url, params)
            self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST, params)
            self.assertIn(next(iter(params)), response.data)

        response = self.client.get(reverse('attendance-stats'), {'school_class': 'abc'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_invalid_status(self):
        response = self.mark('Sleeping')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('status', response.data)

    def test_bursar_cannot_mark(self):
        self.client.force_authenticate(self.bursar)
        response = self.mark('Present')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_bursar_can_read(self):
        self.mark('Present')
        self.client.force_authenticate(self.bursar)
        response = self.client.get(self.list_url)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 1)

    def test_list_filters(self):
        self.mark('Present', day='2024-03-04')
        self.mark('Late', day='2024-03-05')

        response = self.client.get(self.list_url, {'date': '2024-03-05'})
        self.assertEqual([row['status'] for row in response.data], ['Late'])

        response = self.client.get(self.list_url, {'start_date': '2024-03-01', 'end_date': '2024-03-04'})
        self.assertEqual(len(response.data), 1)

        response = self.client.get(self.list_url, {'date': '04/03/2024'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_register(self):
        second = make_student(self.tenant, self.school_class, 2)
        response = self.client.post(reverse('attendance-register'), {
            'school_class': self.school_class.pk,
            'date': '2024-03-04',
            'records': [
                {'student': self.student.pk, 'status': 'Present'},
                {'student': second.pk, 'status': 'Absent', 'notes': 'Sick'},
            ],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        self.assertEqual(response.data['count'], 2)
        self.assertEqual(len(response.data['records']), 2)

    def test_register_rejects_student_of_other_school(self):
        other = make_school('kabwata')
        outsider = make_student(other, make_class(other), 9)
        response = self.client.post(reverse('attendance-register'), {
            'school_class': self.school_class.pk,
            'date': '2024-03-04',
            'records': [
                {'student': self.student.pk, 'status': 'Present'},
                {'student': outsider.pk, 'status': 'Present'},
            ],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(Attendance.objects.exists())

    def test_register_requires_rows(self):
        response = self.client.post(reverse('attendance-register'), {
            'school_class': self.school_class.pk, 'date': '2024-03-04', 'records': [],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_stats_endpoint(self):
        self.mark('Present')
        response = self.client.get(reverse('attendance-stats'))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total'], 1)
        self.assertEqual(response.data['attendance_rate'], 100.0)

    def test_analytics_requires_params(self):
        response = self.client.get(reverse('attendance-analytics'))
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        for field in ('school_class', 'start_date', 'end_date'):
            self.assertIn(field, response.data)

    def test_analytics_endpoint(self):
        self.mark('Present')
        response = self.client.get(reverse('attendance-analytics'), {
            'school_class': self.school_class.pk, 'start_date': '2024-03-01', 'end_date': '2024-03-31',
        })
        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.assertEqual(response.data['total_days'], 1)
        self.assertEqual(response.data['student_summaries'][0]['present_days'], 1)
