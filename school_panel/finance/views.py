"""
Finance API views.

Endpoints:
- /api/payments/                       - CRUD of fee payments (?student=&status=&term=&academic_year=)
- /api/payments/{id}/record-payment/   - add an instalment
- /api/payments/owing/                 - students with outstanding fees
- /api/payments/stats/                 - totals for the school
"""
import logging

from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from core.filters import id_param
from tenants.mixins import TenantViewSetMixin

from .models import Payment
from .serializers import OwingStudentSerializer, PaymentSerializer, RecordInstalmentSerializer
from .services import FinanceService, FinanceServiceError

logger = logging.getLogger(__name__)


class PaymentViewSet(TenantViewSetMixin, viewsets.ModelViewSet):
    """
    School fee payments.

    GET    /api/payments/            - list, newest first
    POST   /api/payments/            - record a fee (optionally already partly paid)
    GET    /api/payments/{id}/
    PATCH  /api/payments/{id}/
    DELETE /api/payments/{id}/
    """
    queryset = Payment.objects.select_related('student', 'recorded_by')
    serializer_class = PaymentSerializer
    write_roles = ('admin', 'bursar')

    def get_queryset(self):
        queryset = super().get_queryset()
        params = self.request.query_params

        student = id_param(params, 'student')
        if student:
            queryset = queryset.filter(student_id=student)

        for param in ('status', 'term', 'academic_year'):
            value = params.get(param)
            if value:
                queryset = queryset.filter(**{param: value})

        return queryset.order_by('-payment_date', '-id')

    def perform_create(self, serializer):
        serializer.save(tenant=self.request.tenant, recorded_by=self.request.user)
        payment = serializer.instance
        logger.info(
            f'Payment created: {payment.id} student={payment.student_id} '
            f'amount={payment.amount} paid={payment.paid_amount} status={payment.status}'
        )

    @action(detail=True, methods=['post'], url_path='record-payment')
    def record_payment(self, request, pk=None):
        """
        Add an instalment.

        POST /api/payments/{id}/record-payment/
        Body: {"amount": 250, "notes": "Second instalment"}
        """
        payment = self.get_object()
        serializer = RecordInstalmentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            payment = FinanceService.record_instalment(
                payment=payment,
                amount=serializer.validated_data['amount'],
                recorded_by=request.user,
                notes=serializer.validated_data.get('notes', ''),
            )
        except FinanceServiceError as e:
            logger.error(f'Record payment error: {e}')
            return Response({'detail': str(e)}, status=status.HTTP_400_BAD_REQUEST)

        return Response(PaymentSerializer(payment, context=self.get_serializer_context()).data)

    @action(detail=False, methods=['get'])
    def owing(self, request):
        """GET /api/payments/owing/?term=&academic_year="""
        rows = FinanceService.students_owing(self.get_queryset())
        return Response(OwingStudentSerializer(rows, many=True, context=self.get_serializer_context()).data)

    @action(detail=False, methods=['get'])
    def stats(self, request):
        """GET /api/payments/stats/?term=&academic_year="""
        return Response(FinanceService.payment_stats(self.get_queryset()))
