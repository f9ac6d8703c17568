"""
API views for the current school.

TenantConfigView is public: the front end calls /api/tenant/config/ on load and
receives the school's name, colours, logo and feature flags.
"""
import logging

from django.db import transaction
from rest_framework import mixins, status, viewsets
from rest_framework.exceptions import ValidationError
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from .limits import check_tenant_limit
from .mixins import TenantViewSetMixin
from .models import Tenant, TenantMembership
from .permissions import IsTenantAdmin, IsTenantMember
from .serializers import MyTenantSerializer, TenantMembershipCreateSerializer, TenantMembershipSerializer

logger = logging.getLogger(__name__)


class TenantConfigView(APIView):
    """
    GET /api/tenant/config/

    Public config of the school resolved from the host (or X-Tenant-ID in
    development). Contains no secrets.
    """
    permission_classes = [AllowAny]
    # called on every page load
    throttle_classes = []

    def get(self, request):
        tenant = getattr(request, 'tenant', None)
        if tenant is None or not tenant.is_accessible:
            return Response({'detail': 'School not found.'}, status=status.HTTP_404_NOT_FOUND)
        return Response(tenant.to_frontend_config())


class MyTenantsView(APIView):
    """GET /api/tenant/my/ - schools the user belongs to."""
    permission_classes = [IsAuthenticated]

    def get(self, request):
        memberships = (
            TenantMembership.objects
            .filter(user=request.user, is_active=True)
            .select_related('tenant')
        )
        roles = {m.tenant_id: m.role for m in memberships}
        tenants = Tenant.objects.filter(pk__in=roles.keys()).order_by('name')
        serializer = MyTenantSerializer(tenants, many=True, context={'roles': roles})
        return Response(serializer.data)


class TenantMemberViewSet(
    TenantViewSetMixin,
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    mixins.CreateModelMixin,
    mixins.UpdateModelMixin,
    mixins.DestroyModelMixin,
    viewsets.GenericViewSet,
):
    """
    /api/tenant/members/

    Staff of the current school. Managed by the owner and admins.
    """
    queryset = TenantMembership.objects.select_related('user').order_by('joined_at')
    serializer_class = TenantMembershipSerializer
    permission_classes = [IsAuthenticated, IsTenantMember, IsTenantAdmin]

    def create(self, request, *args, **kwargs):
        serializer = TenantMembershipCreateSerializer(data=request.data, context={})
        serializer.is_valid(raise_exception=True)
        user = serializer.context['user']
        role = serializer.validated_data['role']
        tenant = request.tenant

        self._check_can_grant(role)

        existing = TenantMembership.objects.filter(tenant=tenant, user=user).first()
        if existing is not None and existing.is_active:
            raise ValidationError({'email': ['This user is already a member of the school.']})

        check_tenant_limit(tenant, 'users')

        if existing is not None:
            existing.role = role
            existing.is_active = True
            existing.save(update_fields=['role', 'is_active', 'updated_at'])
            membership = existing
        else:
            membership = TenantMembership.objects.create(tenant=tenant, user=user, role=role)

        logger.info(f'Membership added: user={user.id} tenant={tenant.slug} role={role}')
        return Response(TenantMembershipSerializer(membership).data, status=status.HTTP_201_CREATED)

    def perform_update(self, serializer):
        membership = serializer.instance
        new_role = serializer.validated_data.get('role', membership.role)
        new_active = serializer.validated_data.get('is_active', membership.is_active)

        if new_role != membership.role:
            self._check_can_grant(new_role)
        with transaction.atomic():
            if membership.role == TenantMembership.Role.OWNER and (
                new_role != TenantMembership.Role.OWNER or not new_active
            ):
                self._ensure_other_owner(membership)
            serializer.save()
        logger.info(f'Membership {membership.id} updated: role={new_role} active={new_active}')

    def perform_destroy(self, instance):
        with transaction.atomic():
            if instance.role == TenantMembership.Role.OWNER:
                self._ensure_other_owner(instance)
            logger.info(f'Membership {instance.id} removed from tenant={instance.tenant_id}')
            instance.delete()

    def _check_can_grant(self, role):
        if role == TenantMembership.Role.OWNER and self.request.tenant_membership.role != TenantMembership.Role.OWNER:
            raise ValidationError({'role': ['Only an owner can grant the owner role.']})

    @staticmethod
    def _ensure_other_owner(membership):
        others = (
            TenantMembership.objects
            .select_for_update()
            .filter(tenant_id=membership.tenant_id, role=TenantMembership.Role.OWNER, is_active=True)
            .exclude(pk=membership.pk)
        )
        if not others.exists():
            raise ValidationError({'detail': 'A school must keep at least one owner.'})
