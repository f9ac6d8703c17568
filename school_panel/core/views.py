"""
School dashboard: the numbers shown on the home screen of a school.
"""
import logging

from django.utils import timezone
from rest_framework.response import Response
from rest_framework.views import APIView

from academics.models import SchoolClass, Student, Teacher
from attendance.models import Attendance
from attendance.services import AttendanceService
from finance.models import Payment
from finance.serializers import PaymentSerializer
from finance.services import FinanceService
from tenants.mixins import TenantAPIViewMixin

logger = logging.getLogger(__name__)


class DashboardView(TenantAPIViewMixin, APIView):
    """GET /api/dashboard/"""

    def get(self, request):
        tenant = request.tenant
        today = timezone.localdate()
        payments = Payment.objects.for_tenant(tenant)

        recent_payments = payments.select_related('student').order_by('-payment_date', '-id')[:5]

        return Response({
            'school': tenant.to_frontend_config(),
            'counts': {
                'students': Student.objects.for_tenant(tenant).filter(status=Student.Status.ACTIVE).count(),
                'teachers': Teacher.objects.for_tenant(tenant).filter(is_active=True).count(),
                'classes': SchoolClass.objects.for_tenant(tenant).count(),
            },
            'attendance_today': {
                'date': today.isoformat(),
                **AttendanceService.stats(Attendance.objects.for_tenant(tenant).filter(date=today)),
            },
            'fees': FinanceService.payment_stats(payments),
            'recent_payments': PaymentSerializer(
                recent_payments, many=True, context={'request': request},
            ).data,
        })
