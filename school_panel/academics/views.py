"""
Academics API views.

Endpoints:
- /api/classes/                  - classes of the school
- /api/classes/{id}/students/    - class roster
- /api/teachers/                 - teacher roster
- /api/students/                 - students (detail adds payments, attendance, total owed)
- /api/students/{id}/attendance/ - attendance history of one student
- /api/students/{id}/movements/  - class movement log of one student
"""
import logging

from django.db import transaction
from django.db.models import Count, Q
from rest_framework import viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from attendance.serializers import AttendanceSerializer
from core.filters import id_param
from tenants.limits import check_tenant_limit
from tenants.mixins import TenantViewSetMixin

from .models import ClassMovementLog, SchoolClass, Student, Teacher
from .serializers import (
    ClassMovementLogSerializer,
    SchoolClassSerializer,
    StudentDetailSerializer,
    StudentSerializer,
    TeacherSerializer,
)

logger = logging.getLogger(__name__)

ACADEMIC_WRITE_ROLES = ('admin', 'secretary')


class SchoolClassViewSet(TenantViewSetMixin, viewsets.ModelViewSet):
    """
    GET /api/classes/?class_level=&grade=&academic_year=&teacher=
    """
    queryset = SchoolClass.objects.select_related('teacher')
    serializer_class = SchoolClassSerializer
    write_roles = ACADEMIC_WRITE_ROLES

    def get_queryset(self):
        queryset = super().get_queryset().annotate(
            student_count=Count('students', filter=Q(students__status=Student.Status.ACTIVE)),
        )
        params = self.request.query_params

        for param in ('class_level', 'grade', 'academic_year'):
            value = params.get(param)
            if value:
                queryset = queryset.filter(**{param: value})

        teacher_id = id_param(params, 'teacher')
        if teacher_id:
            queryset = queryset.filter(teacher_id=teacher_id)

        return queryset

    def perform_create(self, serializer):
        check_tenant_limit(self.request.tenant, 'classes')
        super().perform_create(serializer)
        logger.info(f'Class created: {serializer.instance.id} tenant={self.request.tenant.slug}')

    @action(detail=True, methods=['get'])
    def students(self, request, pk=None):
        """GET /api/classes/{id}/students/ - active students of the class."""
        school_class = self.get_object()
        students = school_class.students.filter(status=Student.Status.ACTIVE).order_by('last_name', 'first_name')
        return Response(StudentSerializer(students, many=True, context=self.get_serializer_context()).data)


class TeacherViewSet(TenantViewSetMixin, viewsets.ModelViewSet):
    """
    GET /api/teachers/?is_active=&search=
    """
    queryset = Teacher.objects.all()
    serializer_class = TeacherSerializer
    write_roles = ACADEMIC_WRITE_ROLES

    def get_queryset(self):
        queryset = super().get_queryset()
        params = self.request.query_params

        is_active = params.get('is_active')
        if is_active is not None and is_active != '':
            queryset = queryset.filter(is_active=is_active.lower() in ('true', '1', 'yes'))

        search = params.get('search', '').strip()
        if search:
            queryset = queryset.filter(
                Q(first_name__icontains=search)
                | Q(last_name__icontains=search)
                | Q(teacher_id__icontains=search)
                | Q(email__icontains=search)
            )
        return queryset

    def perform_create(self, serializer):
        if serializer.validated_data.get('is_active', True):
            check_tenant_limit(self.request.tenant, 'teachers')
        super().perform_create(serializer)
        logger.info(f'Teacher created: {serializer.instance.id} tenant={self.request.tenant.slug}')


class StudentViewSet(TenantViewSetMixin, viewsets.ModelViewSet):
    """
    GET /api/students/?school_class=&class_level=&grade=&status=&search=

    Moving a student into a full class is rejected. An optional `reason`
    in the update body is stored in the class movement log.
    """
    queryset = Student.objects.select_related('school_class')
    serializer_class = StudentSerializer
    write_roles = ACADEMIC_WRITE_ROLES

    def get_queryset(self):
        queryset = super().get_queryset()
        params = self.request.query_params

        school_class = id_param(params, 'school_class')
        if school_class:
            queryset = queryset.filter(school_class_id=school_class)

        for param in ('class_level', 'grade', 'status'):
            value = params.get(param)
            if value:
                queryset = queryset.filter(**{param: value})

        search = params.get('search', '').strip()
        if search:
            queryset = queryset.filter(
                Q(first_name__icontains=search)
                | Q(last_name__icontains=search)
                | Q(student_id__icontains=search)
            )
        return queryset

    def get_serializer_class(self):
        if self.action == 'retrieve':
            return StudentDetailSerializer
        return StudentSerializer

    def perform_create(self, serializer):
        if serializer.validated_data.get('status', Student.Status.ACTIVE) == Student.Status.ACTIVE:
            check_tenant_limit(self.request.tenant, 'students')
        reason = serializer.validated_data.get('reason', '')
        with transaction.atomic():
            super().perform_create(serializer)
            student = serializer.instance
            if student.school_class_id is not None:
                ClassMovementLog.objects.create(
                    tenant=student.tenant,
                    student=student,
                    from_class=None,
                    to_class=student.school_class,
                    reason=reason or 'Enrolled',
                    changed_by=self.request.user,
                )
        logger.info(f'Student created: {student.id} ({student.student_id}) tenant={student.tenant.slug}')

    def perform_update(self, serializer):
        student = serializer.instance
        old_class = student.school_class
        reason = serializer.validated_data.get('reason', '')
        becomes_active = (
            student.status != Student.Status.ACTIVE
            and serializer.validated_data.get('status') == Student.Status.ACTIVE
        )
        if becomes_active:
            check_tenant_limit(self.request.tenant, 'students')

        with transaction.atomic():
            super().perform_update(serializer)
            student.refresh_from_db(fields=['school_class'])
            if student.school_class_id != getattr(old_class, 'pk', None):
                ClassMovementLog.objects.create(
                    tenant=student.tenant,
                    student=student,
                    from_class=old_class,
                    to_class=student.school_class,
                    reason=reason,
                    changed_by=self.request.user,
                )
                logger.info(
                    f'Student {student.id} moved: {getattr(old_class, "pk", None)} -> {student.school_class_id}'
                )

    @action(detail=True, methods=['get'])
    def attendance(self, request, pk=None):
        """GET /api/students/{id}/attendance/ - attendance history, newest first."""
        student = self.get_object()
        records = student.attendance_records.select_related('school_class').order_by('-date')
        return Response(AttendanceSerializer(records, many=True, context=self.get_serializer_context()).data)

    @action(detail=True, methods=['get'])
    def movements(self, request, pk=None):
        """GET /api/students/{id}/movements/ - class changes, newest first."""
        student = self.get_object()
        logs = student.movements.select_related('from_class', 'to_class', 'changed_by')
        return Response(ClassMovementLogSerializer(logs, many=True).data)
