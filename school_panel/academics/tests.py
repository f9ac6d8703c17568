"""
Tests for academics app: classes, teachers, students and class movements.
"""
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from attendance.models import Attendance
from finance.models import Payment
from tenants.models import Tenant, TenantMembership

from .models import ClassMovementLog, SchoolClass, Student, Teacher

User = get_user_model()


class AcademicsAPITestCase(APITestCase):

    def setUp(self):
        self.tenant = Tenant.objects.create(slug='kitwe-hill', name='Kitwe Hill School', email='office@kitwehill.zm')
        self.secretary = User.objects.create_user(email='secretary@kitwehill.zm', password='x')
        self.teacher_user = User.objects.create_user(email='teacher@kitwehill.zm', password='x')
        TenantMembership.objects.create(tenant=self.tenant, user=self.secretary, role='secretary')
        TenantMembership.objects.create(tenant=self.tenant, user=self.teacher_user, role='teacher')
        self.client.force_authenticate(self.secretary)

    def make_class(self, name='Grade 5A', **extra):
        extra.setdefault('class_level', 'Primary')
        extra.setdefault('grade', '5')
        return SchoolClass.objects.create(tenant=self.tenant, name=name, **extra)

    def make_student(self, number, **extra):
        return Student.objects.create(
            tenant=self.tenant,
            first_name=extra.pop('first_name', 'Bwalya'),
            last_name=extra.pop('last_name', f'Mulenga{number}'),
            student_id=f'KH-{number:03d}',
            **extra,
        )


class SchoolClassAPITest(AcademicsAPITestCase):

    def test_create_and_list(self):
        teacher = Teacher.objects.create(
            tenant=self.tenant, first_name='Ruth', last_name='Phiri', teacher_id='T-01', email='ruth@kitwehill.zm',
        )
        response = self.client.post(reverse('schoolclass-list'), {
            'name': 'Grade 7B', 'class_level': 'Primary', 'grade': '7', 'teacher': teacher.pk, 'capacity': 35,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        self.assertEqual(response.data['teacher_name'], 'Ruth Phiri')

        response = self.client.get(reverse('schoolclass-list'))
        self.assertEqual(len(response.data), 1)
        self.assertEqual(response.data[0]['student_count'], 0)

    def test_student_count_ignores_inactive(self):
        school_class = self.make_class()
        self.make_student(1, school_class=school_class)
        self.make_student(2, school_class=school_class, status=Student.Status.GRADUATED)

        response = self.client.get(reverse('schoolclass-detail', args=[school_class.pk]))
        self.assertEqual(response.data['student_count'], 1)

    def test_filter_by_level(self):
        self.make_class('Baby A', class_level='Baby', grade='')
        self.make_class('Form 1', class_level='Secondary', grade='8')
        response = self.client.get(reverse('schoolclass-list'), {'class_level': 'Secondary'})
        self.assertEqual([row['name'] for row in response.data], ['Form 1'])

    def test_non_numeric_teacher_filter_is_400(self):
        response = self.client.get(reverse('schoolclass-list'), {'teacher': 'abc'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('teacher', response.data)

    def test_classes_limit(self):
        self.tenant.max_classes = 1
        self.tenant.save()
        self.make_class()
        response = self.client.post(reverse('schoolclass-list'), {'name': 'Grade 5B'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertIn('limit', str(response.data['detail']))

    def test_roster_action(self):
        school_class = self.make_class()
        self.make_student(1, school_class=school_class, last_name='Zimba')
        self.make_student(2, school_class=school_class, last_name='Banda')
        self.make_student(3, school_class=school_class, status=Student.Status.TRANSFERRED)

        response = self.client.get(reverse('schoolclass-students', args=[school_class.pk]))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([row['last_name'] for row in response.data], ['Banda', 'Zimba'])

    def test_teacher_role_is_read_only(self):
        self.client.force_authenticate(self.teacher_user)
        response = self.client.get(reverse('schoolclass-list'))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        response = self.client.post(reverse('schoolclass-list'), {'name': 'Grade 1'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class TeacherAPITest(AcademicsAPITestCase):

    def payload(self, **extra):
        data = {
            'first_name': 'Ruth', 'last_name': 'Phiri', 'teacher_id': 'T-01',
            'email': 'Ruth.Phiri@KitweHill.zm', 'subject': 'Mathematics',
        }
        data.update(extra)
        return data

    def test_create_normalises_email(self):
        response = self.client.post(reverse('teacher-list'), self.payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        self.assertEqual(response.data['email'], 'ruth.phiri@kitwehill.zm')
        self.assertEqual(response.data['full_name'], 'Ruth Phiri')

    def test_duplicate_teacher_id_rejected(self):
        self.client.post(reverse('teacher-list'), self.payload(), format='json')
        response = self.client.post(reverse('teacher-list'), self.payload(email='other@kitwehill.zm'), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('teacher_id', response.data)

    def test_same_teacher_id_in_another_school(self):
        other = Tenant.objects.create(slug='ndola-park', name='Ndola Park', email='office@ndolapark.zm')
        Teacher.objects.create(
            tenant=other, first_name='A', last_name='B', teacher_id='T-01', email='ruth.phiri@kitwehill.zm',
        )
        response = self.client.post(reverse('teacher-list'), self.payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)

    def test_search_and_active_filter(self):
        Teacher.objects.create(
            tenant=self.tenant, first_name='Ruth', last_name='Phiri', teacher_id='T-01', email='ruth@kitwehill.zm',
        )
        Teacher.objects.create(
            tenant=self.tenant, first_name='John', last_name='Mwale', teacher_id='T-02', email='john@kitwehill.zm',
            is_active=False,
        )
        response = self.client.get(reverse('teacher-list'), {'search': 'phi'})
        self.assertEqual([row['teacher_id'] for row in response.data], ['T-01'])

        response = self.client.get(reverse('teacher-list'), {'is_active': 'false'})
        self.assertEqual([row['teacher_id'] for row in response.data], ['T-02'])

    def test_teachers_limit(self):
        self.tenant.max_teachers = 1
        self.tenant.save()
        self.client.post(reverse('teacher-list'), self.payload(), format='json')
        response = self.client.post(
            reverse('teacher-list'), self.payload(teacher_id='T-02', email='x@kitwehill.zm'), format='json',
        )
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_user_must_belong_to_school(self):
        stranger = User.objects.create_user(email='stranger@example.com', password='x')
        response = self.client.post(reverse('teacher-list'), self.payload(user=stranger.pk), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('user', response.data)

        response = self.client.post(reverse('teacher-list'), self.payload(user=self.teacher_user.pk), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)


class StudentAPITest(AcademicsAPITestCase):

    def test_create_fills_level_from_class_and_logs_enrolment(self):
        school_class = self.make_class()
        response = self.client.post(reverse('student-list'), {
            'first_name': 'Bwalya', 'last_name': 'Mulenga', 'student_id': 'KH-001',
            'school_class': school_class.pk, 'gender': 'Female',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        self.assertEqual(response.data['class_level'], 'Primary')
        self.assertEqual(response.data['grade'], '5')
        self.assertEqual(response.data['school_class_name'], 'Grade 5A')

        log = ClassMovementLog.objects.get(student_id=response.data['id'])
        self.assertIsNone(log.from_class)
        self.assertEqual(log.to_class, school_class)
        self.assertEqual(log.reason, 'Enrolled')
        self.assertEqual(log.changed_by, self.secretary)

    def test_duplicate_admission_number(self):
        self.make_student(1)
        response = self.client.post(reverse('student-list'), {
            'first_name': 'Other', 'last_name': 'Child', 'student_id': 'kh-001',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('student_id', response.data)

    def test_full_class_rejected(self):
        school_class = self.make_class(capacity=1)
        self.make_student(1, school_class=school_class)
        response = self.client.post(reverse('student-list'), {
            'first_name': 'Late', 'last_name': 'Comer', 'student_id': 'KH-002', 'school_class': school_class.pk,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('school_class', response.data)

    def test_class_of_other_school_rejected(self):
        other = Tenant.objects.create(slug='ndola-park', name='Ndola Park', email='office@ndolapark.zm')
        foreign_class = SchoolClass.objects.create(tenant=other, name='Grade 5A')
        response = self.client.post(reverse('student-list'), {
            'first_name': 'A', 'last_name': 'B', 'student_id': 'KH-009', 'school_class': foreign_class.pk,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('school_class', response.data)

    def test_move_class_logs_movement(self):
        old_class = self.make_class('Grade 5A')
        new_class = self.make_class('Grade 5B')
        student = self.make_student(1, school_class=old_class)

        response = self.client.patch(reverse('student-detail', args=[student.pk]), {
            'school_class': new_class.pk, 'reason': 'Parent request',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)

        log = ClassMovementLog.objects.get(student=student)
        self.assertEqual(log.from_class, old_class)
        self.assertEqual(log.to_class, new_class)
        self.assertEqual(log.reason, 'Parent request')

        response = self.client.get(reverse('student-movements', args=[student.pk]))
        self.assertEqual(response.data[0]['to_class_name'], 'Grade 5B')

    def test_update_without_class_change_logs_nothing(self):
        school_class = self.make_class()
        student = self.make_student(1, school_class=school_class)
        response = self.client.patch(
            reverse('student-detail', args=[student.pk]), {'parent_phone': '+260977000000'}, format='json',
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.assertFalse(ClassMovementLog.objects.exists())

    def test_students_limit_counts_active_only(self):
        self.tenant.max_students = 1
        self.tenant.save()
        self.make_student(1, status=Student.Status.GRADUATED)
        response = self.client.post(reverse('student-list'), {
            'first_name': 'A', 'last_name': 'B', 'student_id': 'KH-002',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)

        response = self.client.post(reverse('student-list'), {
            'first_name': 'C', 'last_name': 'D', 'student_id': 'KH-003',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_filters_and_search(self):
        school_class = self.make_class()
        self.make_student(1, school_class=school_class, first_name='Natasha')
        self.make_student(2, status=Student.Status.DROPPED_OUT)

        response = self.client.get(reverse('student-list'), {'school_class': school_class.pk})
        self.assertEqual([row['student_id'] for row in response.data], ['KH-001'])

        response = self.client.get(reverse('student-list'), {'status': 'dropped_out'})
        self.assertEqual([row['student_id'] for row in response.data], ['KH-002'])

        response = self.client.get(reverse('student-list'), {'search': 'natash'})
        self.assertEqual([row['student_id'] for row in response.data], ['KH-001'])

    def test_non_numeric_class_filter_is_400(self):
        response = self.client.get(reverse('student-list'), {'school_class': 'abc'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('school_class', response.data)

    def test_detail_includes_payments_attendance_and_total_owed(self):
        school_class = self.make_class()
        student = self.make_student(1, school_class=school_class)
        Payment.objects.create(
            tenant=self.tenant, student=student, amount=Decimal('300.00'), paid_amount=Decimal('100.00'),
            term=Payment.Term.TERM_1, academic_year='2024',
        )
        Payment.objects.create(
            tenant=self.tenant, student=student, amount=Decimal('50.00'), paid_amount=Decimal('0.00'),
            term=Payment.Term.TERM_1, academic_year='2024',
        )
        Attendance.objects.create(
            tenant=self.tenant, student=student, school_class=school_class,
            date='2024-03-04', status=Attendance.Status.PRESENT,
        )

        response = self.client.get(reverse('student-detail', args=[student.pk]))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['recent_payments']), 2)
        self.assertEqual(len(response.data['recent_attendance']), 1)
        self.assertEqual(Decimal(str(response.data['total_owed'])), Decimal('250.00'))

        response = self.client.get(reverse('student-attendance', args=[student.pk]))
        self.assertEqual(response.data[0]['status'], 'Present')

    def test_student_of_other_school_is_404(self):
        other = Tenant.objects.create(slug='ndola-park', name='Ndola Park', email='office@ndolapark.zm')
        foreign = Student.objects.create(tenant=other, first_name='A', last_name='B', student_id='NP-1')
        response = self.client.get(reverse('student-detail', args=[foreign.pk]))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_teacher_role_cannot_write(self):
        self.client.force_authenticate(self.teacher_user)
        response = self.client.post(reverse('student-list'), {
            'first_name': 'A', 'last_name': 'B', 'student_id': 'KH-010',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
