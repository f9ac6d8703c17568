"""
Attendance API views.

Endpoints:
- GET    /api/attendance/             - records (?student=&school_class=&date=&start_date=&end_date=)
- POST   /api/attendance/             - mark one student (upsert; 201 created, 200 overwritten)
- GET    /api/attendance/{id}/
- DELETE /api/attendance/{id}/
- POST   /api/attendance/register/    - bulk register of a class for one day
- GET    /api/attendance/stats/       - counts and attendance rate
- GET    /api/attendance/analytics/   - daily data and per-student summaries of a class
"""
import logging

from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from core.filters import date_param, id_param
from tenants.mixins import TenantViewSetMixin

from .models import Attendance
from .serializers import AnalyticsQuerySerializer, AttendanceSerializer, RegisterSerializer
from .services import AttendanceService, AttendanceServiceError

logger = logging.getLogger(__name__)


class AttendanceViewSet(
    TenantViewSetMixin,
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    mixins.DestroyModelMixin,
    viewsets.GenericViewSet,
):
    queryset = Attendance.objects.select_related('student', 'school_class', 'marked_by')
    serializer_class = AttendanceSerializer
    write_roles = ('admin', 'teacher')

    def get_queryset(self):
        queryset = super().get_queryset()
        params = self.request.query_params

        student = id_param(params, 'student')
        if student:
            queryset = queryset.filter(student_id=student)

        school_class = id_param(params, 'school_class')
        if school_class:
            queryset = queryset.filter(school_class_id=school_class)

        day = date_param(params, 'date')
        if day:
            queryset = queryset.filter(date=day)

        start_date = date_param(params, 'start_date')
        end_date = date_param(params, 'end_date')
        if start_date:
            queryset = queryset.filter(date__gte=start_date)
        if end_date:
            queryset = queryset.filter(date__lte=end_date)

        return queryset

    def create(self, request, *args, **kwargs):
        """
        Mark one student.

        POST /api/attendance/
        Body: {"student": 1, "school_class": 2, "date": "2024-03-04", "status": "Present"}
        """
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            record, created = AttendanceService.mark(
                tenant=request.tenant,
                student=data['student'],
                school_class=data['school_class'],
                date=data['date'],
                status=data['status'],
                notes=data.get('notes', ''),
                marked_by=request.user,
            )
        except AttendanceServiceError as e:
            logger.error(f'Attendance mark error: {e}')
            return Response({'detail': str(e)}, status=status.HTTP_400_BAD_REQUEST)

        return Response(
            AttendanceSerializer(record, context=self.get_serializer_context()).data,
            status=status.HTTP_201_CREATED if created else status.HTTP_200_OK,
        )

    @action(detail=False, methods=['post'])
    def register(self, request):
        """
        Save the register of a class.

        POST /api/attendance/register/
        Body: {"school_class": 2, "date": "2024-03-04",
               "records": [{"student": 1, "status": "Present"}, {"student": 5, "status": "Absent", "notes": "Sick"}]}
        """
        serializer = RegisterSerializer(data=request.data, context=self.get_serializer_context())
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            result = AttendanceService.save_register(
                tenant=request.tenant,
                school_class=data['school_class'],
                date=data['date'],
                rows=data['records'],
                marked_by=request.user,
            )
        except AttendanceServiceError as e:
            logger.error(f'Attendance register error: {e}')
            return Response({'detail': str(e)}, status=status.HTTP_400_BAD_REQUEST)

        result['records'] = AttendanceSerializer(
            result['records'], many=True, context=self.get_serializer_context(),
        ).data
        return Response(result, status=status.HTTP_201_CREATED)

    @action(detail=False, methods=['get'])
    def stats(self, request):
        """GET /api/attendance/stats/ - same filters as the list."""
        return Response(AttendanceService.stats(self.get_queryset()))

    @action(detail=False, methods=['get'])
    def analytics(self, request):
        """GET /api/attendance/analytics/?school_class=&start_date=&end_date= (all required)"""
        query = AnalyticsQuerySerializer(data=request.query_params, context=self.get_serializer_context())
        query.is_valid(raise_exception=True)
        data = query.validated_data

        try:
            result = AttendanceService.analytics(
                tenant=request.tenant,
                school_class=data['school_class'],
                start_date=data['start_date'],
                end_date=data['end_date'],
            )
        except AttendanceServiceError as e:
            logger.error(f'Attendance analytics error: {e}')
            return Response({'detail': str(e)}, status=status.HTTP_400_BAD_REQUEST)
        return Response(result)
