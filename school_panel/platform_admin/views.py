"""
Platform back-office API. Administrators have full access; support staff read
schools, subscription payments, CRM records and the dashboard.

Endpoints (prefix /api/platform/):
- tenants/                      - schools (paginated), create
- tenants/{id}/                 - details with counts and recent payments
- tenants/{id}/subscription/    - PATCH tier, status, limits, period end
- tenants/{id}/suspend/         - POST
- tenants/{id}/activate/        - POST
- tenants/{id}/sms-config/      - PATCH sender ID / SMS switch
- tenants/sms-config/           - SMS configuration of every school
- plans/, plans/{id}/toggle/
- payments/ (paginated), payments/{id}/confirm/, payments/{id}/reject/
- leads/, deals/
- announcements/, announcements/{id}/toggle/, announcements/active/
- settings/, settings/add-sms-credits/
- users/
- dashboard/
"""
import logging

from django.contrib.auth import get_user_model
from django.db.models import Count, Q
from django.utils.dateparse import parse_datetime
from rest_framework import generics, mixins, serializers, status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import ValidationError
from rest_framework.pagination import PageNumberPagination
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from accounts.permissions import IsPlatformAdmin, IsPlatformStaff
from core.filters import id_param, uuid_param
from tenants.models import Tenant, TenantMembership

from .models import Deal, Lead, Plan, PlatformAnnouncement, PlatformSettings, SubscriptionPayment
from .serializers import (
    PLATFORM_ROLES,
    DealSerializer,
    LeadSerializer,
    PaymentDecisionSerializer,
    PlanSerializer,
    PlatformAnnouncementSerializer,
    PlatformSettingsSerializer,
    PlatformTenantDetailSerializer,
    PlatformTenantSerializer,
    PlatformUserSerializer,
    SmsCreditsSerializer,
    SubscriptionPaymentSerializer,
    TenantCreateSerializer,
    TenantSmsConfigSerializer,
    TenantSubscriptionSerializer,
)
from .services import PlatformService, PlatformServiceError

logger = logging.getLogger(__name__)

User = get_user_model()

PLATFORM_PERMISSIONS = [IsAuthenticated, IsPlatformAdmin]
# support staff may read, only administrators write
STAFF_PERMISSIONS = [IsAuthenticated, IsPlatformStaff]


class PlatformPagination(PageNumberPagination):
    """
    ?page=&limit= ; response {<results_key>: [...], pagination: {page, limit, total, total_pages}}
    """
    page_size = 10
    page_size_query_param = 'limit'
    max_page_size = 100
    results_key = 'results'

    def get_paginated_response(self, data):
        return Response({
            self.results_key: data,
            'pagination': {
                'page': self.page.number,
                'limit': self.get_page_size(self.request),
                'total': self.page.paginator.count,
                'total_pages': self.page.paginator.num_pages,
            },
        })


class TenantPagination(PlatformPagination):
    results_key = 'tenants'


class PaymentPagination(PlatformPagination):
    page_size = 20
    results_key = 'payments'


def _service_error(e, what):
    logger.error(f'{what} error: {e}')
    return Response({'detail': str(e)}, status=status.HTTP_400_BAD_REQUEST)


# ═══════════════════════════════════════════════════════════════
# TENANTS
# ═══════════════════════════════════════════════════════════════

class PlatformTenantViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    mixins.CreateModelMixin,
    viewsets.GenericViewSet,
):
    """
    GET /api/platform/tenants/?page=&limit=&status=&tier=&search=
    """
    permission_classes = STAFF_PERMISSIONS
    pagination_class = TenantPagination
    serializer_class = PlatformTenantSerializer

    def get_queryset(self):
        queryset = Tenant.objects.order_by('-created_at')
        if self.action != 'list':
            return queryset

        queryset = queryset.annotate(
            user_count=Count('memberships', filter=Q(memberships__is_active=True), distinct=True),
            student_count=Count('student_set', distinct=True),
        )
        params = self.request.query_params
        for param in ('status', 'tier'):
            value = params.get(param)
            if value:
                queryset = queryset.filter(**{param: value.upper()})

        search = params.get('search', '').strip()
        if search:
            queryset = queryset.filter(
                Q(name__icontains=search) | Q(email__icontains=search) | Q(slug__icontains=search)
            )
        return queryset

    def create(self, request, *args, **kwargs):
        serializer = TenantCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            tenant, owner = PlatformService.create_tenant(serializer.validated_data, created_by=request.user)
        except PlatformServiceError as e:
            return _service_error(e, 'Create tenant')

        return Response({
            'message': 'School created successfully',
            'tenant': PlatformTenantDetailSerializer(tenant).data,
            'admin_user': (
                {'id': owner.id, 'email': owner.email, 'full_name': owner.full_name}
                if owner is not None else None
            ),
        }, status=status.HTTP_201_CREATED)

    def retrieve(self, request, *args, **kwargs):
        tenant = self.get_object()
        recent_payments = tenant.subscription_payments.select_related('plan').order_by('-created_at')[:5]
        admins = (
            TenantMembership.objects
            .filter(tenant=tenant, is_active=True, role__in=[TenantMembership.Role.OWNER, TenantMembership.Role.ADMIN])
            .select_related('user')
        )
        return Response({
            'tenant': PlatformTenantDetailSerializer(tenant).data,
            'counts': {
                'users': tenant.memberships.filter(is_active=True).count(),
                'students': tenant.student_set.count(),
                'teachers': tenant.teacher_set.count(),
                'classes': tenant.schoolclass_set.count(),
            },
            'recent_payments': SubscriptionPaymentSerializer(recent_payments, many=True).data,
            'admin_users': [
                {'id': m.user_id, 'email': m.user.email, 'full_name': m.user.full_name, 'role': m.role}
                for m in admins
            ],
        })

    @action(detail=True, methods=['patch'])
    def subscription(self, request, pk=None):
        """PATCH /api/platform/tenants/{id}/subscription/"""
        tenant = self.get_object()
        serializer = TenantSubscriptionSerializer(tenant, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        serializer.save()
        logger.info(f'Tenant subscription updated: {tenant.slug} {serializer.validated_data}')
        return Response({
            'message': 'Tenant updated successfully',
            'tenant': PlatformTenantDetailSerializer(tenant).data,
        })

    @action(detail=True, methods=['post'])
    def suspend(self, request, pk=None):
        tenant = PlatformService.suspend_tenant(self.get_object(), reason=request.data.get('reason', ''))
        return Response({
            'message': 'Tenant suspended',
            'tenant': {'id': tenant.id, 'name': tenant.name, 'status': tenant.status},
        })

    @action(detail=True, methods=['post'])
    def activate(self, request, pk=None):
        ends_at = None
        raw = request.data.get('subscription_ends_at')
        if raw:
            ends_at = parse_datetime(raw)
            if ends_at is None:
                raise ValidationError({'subscription_ends_at': ['Invalid datetime.']})

        tenant = PlatformService.activate_tenant(self.get_object(), subscription_ends_at=ends_at)
        return Response({
            'message': 'Tenant activated',
            'tenant': {
                'id': tenant.id,
                'name': tenant.name,
                'status': tenant.status,
                'subscription_ends_at': tenant.subscription_ends_at,
            },
        })

    @action(detail=True, methods=['patch'], url_path='sms-config')
    def sms_config(self, request, pk=None):
        """PATCH /api/platform/tenants/{id}/sms-config/ {"sms_sender_id": "MYSCHOOL", "sms_enabled": true}"""
        tenant = self.get_object()
        serializer = TenantSmsConfigSerializer(tenant, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        serializer.save()
        logger.info(f'Tenant SMS config updated: {tenant.slug} sender={tenant.sms_sender_id}')
        return Response({'message': 'Tenant SMS configuration updated', 'tenant': serializer.data})

    @action(detail=False, methods=['get'], url_path='sms-config')
    def sms_config_overview(self, request):
        """GET /api/platform/tenants/sms-config/"""
        settings_obj = PlatformSettings.load()
        tenants = Tenant.objects.order_by('name')
        return Response({
            'platform_settings': {
                'sms_provider': settings_obj.sms_provider,
                'sms_default_sender_id': settings_obj.sms_default_sender_id,
                'sms_balance_units': settings_obj.sms_balance_units,
                'sms_cost_per_unit': settings_obj.sms_cost_per_unit,
            },
            'tenants': TenantSmsConfigSerializer(tenants, many=True).data,
        })


# ═══════════════════════════════════════════════════════════════
# PLANS & PAYMENTS
# ═══════════════════════════════════════════════════════════════

class PlanViewSet(viewsets.ModelViewSet):
    permission_classes = PLATFORM_PERMISSIONS
    serializer_class = PlanSerializer
    queryset = Plan.objects.annotate(payments_count=Count('payments')).order_by('sort_order', 'name')

    @action(detail=True, methods=['post'])
    def toggle(self, request, pk=None):
        """POST /api/platform/plans/{id}/toggle/ {"is_active": false} (flips when omitted)"""
        plan = self.get_object()
        value = request.data.get('is_active')
        if value is None:
            plan.is_active = not plan.is_active
        else:
            plan.is_active = serializers.BooleanField().to_internal_value(value)
        plan.save(update_fields=['is_active', 'updated_at'])
        logger.info(f'Plan {plan.tier} is_active={plan.is_active}')
        return Response({
            'message': f'Plan marked as {"active" if plan.is_active else "inactive"}',
            'plan': PlanSerializer(plan).data,
        })


class SubscriptionPaymentViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    mixins.CreateModelMixin,
    viewsets.GenericViewSet,
):
    """
    GET /api/platform/payments/?page=&limit=&status=&tenant=
    """
    permission_classes = STAFF_PERMISSIONS
    pagination_class = PaymentPagination
    serializer_class = SubscriptionPaymentSerializer

    def get_queryset(self):
        queryset = SubscriptionPayment.objects.select_related('tenant', 'plan')
        params = self.request.query_params

        payment_status = params.get('status')
        if payment_status:
            queryset = queryset.filter(status=payment_status.upper())

        tenant = uuid_param(params, 'tenant')
        if tenant:
            queryset = queryset.filter(tenant_id=tenant)
        return queryset

    def perform_create(self, serializer):
        serializer.save(created_by=self.request.user)
        logger.info(
            f'Subscription payment created: {serializer.instance.id} tenant={serializer.instance.tenant.slug} '
            f'amount={serializer.instance.total_amount}'
        )

    @action(detail=True, methods=['post'])
    def confirm(self, request, pk=None):
        body = PaymentDecisionSerializer(data=request.data)
        body.is_valid(raise_exception=True)
        try:
            payment = PlatformService.confirm_payment(
                self.get_object(),
                external_ref=body.validated_data['external_ref'],
                notes=body.validated_data['notes'],
            )
        except PlatformServiceError as e:
            return _service_error(e, 'Confirm payment')
        return Response({
            'message': 'Payment confirmed and subscription activated',
            'payment': SubscriptionPaymentSerializer(payment).data,
        })

    @action(detail=True, methods=['post'])
    def reject(self, request, pk=None):
        body = PaymentDecisionSerializer(data=request.data)
        body.is_valid(raise_exception=True)
        try:
            payment = PlatformService.reject_payment(self.get_object(), reason=body.validated_data['reason'])
        except PlatformServiceError as e:
            return _service_error(e, 'Reject payment')
        return Response({'message': 'Payment rejected', 'payment': SubscriptionPaymentSerializer(payment).data})


# ═══════════════════════════════════════════════════════════════
# CRM
# ═══════════════════════════════════════════════════════════════

class LeadViewSet(viewsets.ModelViewSet):
    """GET /api/platform/leads/?status=&source=&search="""
    permission_classes = STAFF_PERMISSIONS
    serializer_class = LeadSerializer

    def get_queryset(self):
        queryset = Lead.objects.select_related('assigned_to')
        params = self.request.query_params
        for param in ('status', 'source'):
            value = params.get(param)
            if value:
                queryset = queryset.filter(**{param: value})

        search = params.get('search', '').strip()
        if search:
            queryset = queryset.filter(
                Q(school_name__icontains=search) | Q(contact_name__icontains=search) | Q(email__icontains=search)
            )
        return queryset


class DealViewSet(viewsets.ModelViewSet):
    """GET /api/platform/deals/?stage=&lead="""
    permission_classes = STAFF_PERMISSIONS
    serializer_class = DealSerializer

    def get_queryset(self):
        queryset = Deal.objects.select_related('lead')
        params = self.request.query_params
        stage = params.get('stage')
        if stage:
            queryset = queryset.filter(stage=stage)
        lead = id_param(params, 'lead')
        if lead:
            queryset = queryset.filter(lead_id=lead)
        return queryset


# ═══════════════════════════════════════════════════════════════
# ANNOUNCEMENTS, SETTINGS, USERS, DASHBOARD
# ═══════════════════════════════════════════════════════════════

class PlatformAnnouncementViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    mixins.CreateModelMixin,
    mixins.DestroyModelMixin,
    viewsets.GenericViewSet,
):
    queryset = PlatformAnnouncement.objects.all()
    serializer_class = PlatformAnnouncementSerializer

    def get_permissions(self):
        # the banner feed is read by every signed-in user
        if self.action == 'active':
            return [IsAuthenticated()]
        return [permission() for permission in PLATFORM_PERMISSIONS]

    def perform_create(self, serializer):
        serializer.save(created_by=self.request.user)

    @action(detail=True, methods=['post'])
    def toggle(self, request, pk=None):
        announcement = self.get_object()
        announcement.is_active = not announcement.is_active
        announcement.save(update_fields=['is_active'])
        return Response({'message': 'Status updated', 'is_active': announcement.is_active})

    @action(detail=False, methods=['get'])
    def active(self, request):
        """GET /api/platform/announcements/active/"""
        announcements = PlatformAnnouncement.objects.active()
        return Response(self.get_serializer(announcements, many=True).data)


class PlatformSettingsView(APIView):
    """GET / PUT / PATCH /api/platform/settings/"""
    permission_classes = PLATFORM_PERMISSIONS

    def get(self, request):
        return Response(PlatformSettingsSerializer(PlatformSettings.load()).data)

    def put(self, request):
        return self._update(request, partial=False)

    def patch(self, request):
        return self._update(request, partial=True)

    def _update(self, request, partial):
        settings_obj = PlatformSettings.load()
        serializer = PlatformSettingsSerializer(settings_obj, data=request.data, partial=partial)
        serializer.is_valid(raise_exception=True)
        serializer.save()
        logger.info(f'Platform settings updated by {request.user.email}: {sorted(serializer.validated_data)}')
        return Response({'message': 'Platform settings updated', 'settings': serializer.data})


class AddSmsCreditsView(APIView):
    """POST /api/platform/settings/add-sms-credits/ {"credits": 1000}"""
    permission_classes = PLATFORM_PERMISSIONS

    def post(self, request):
        serializer = SmsCreditsSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        credits = serializer.validated_data['credits']
        balance = PlatformSettings.load().add_sms_credits(credits)
        logger.info(f'SMS credits added: {credits}, balance={balance}')
        return Response({'message': f'Added {credits} SMS credits', 'new_balance': balance})


class PlatformUserListCreateView(generics.ListCreateAPIView):
    """GET / POST /api/platform/users/ - accounts holding a platform role."""
    permission_classes = PLATFORM_PERMISSIONS
    serializer_class = PlatformUserSerializer

    def get_queryset(self):
        return User.objects.filter(role__in=[value for value, _ in PLATFORM_ROLES]).order_by('-created_at')

    def perform_create(self, serializer):
        serializer.save()
        logger.info(f'Platform user created: {serializer.instance.email} role={serializer.instance.role}')


class PlatformDashboardView(APIView):
    """GET /api/platform/dashboard/"""
    permission_classes = STAFF_PERMISSIONS

    def get(self, request):
        return Response(PlatformService.dashboard_stats())
