"""
Reusable pieces for tenant-scoped models and views.
"""
import logging

from django.db import models
from rest_framework.exceptions import PermissionDenied
from rest_framework.permissions import IsAuthenticated

from .context import get_current_tenant, set_current_tenant
from .permissions import IsTenantMember, TenantRolePermission

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════
# MODEL MIXINS
# ═══════════════════════════════════════════════════════════════

class TenantQuerySet(models.QuerySet):

    def for_tenant(self, tenant):
        return self.filter(tenant=tenant)

    def for_current_tenant(self):
        tenant = get_current_tenant()
        if tenant is None:
            return self.none()
        return self.for_tenant(tenant)


class TenantManager(models.Manager.from_queryset(TenantQuerySet)):
    pass


class TenantModelMixin(models.Model):
    """
    Abstract mixin adding a mandatory tenant FK.

        class Student(TenantModelMixin):
            first_name = models.CharField(...)
    """
    tenant = models.ForeignKey(
        'tenants.Tenant',
        on_delete=models.CASCADE,
        related_name='%(class)s_set',
        db_index=True,
    )

    objects = TenantManager()

    class Meta:
        abstract = True


# ═══════════════════════════════════════════════════════════════
# REQUEST BINDING
# ═══════════════════════════════════════════════════════════════

def bind_request_tenant(request):
    """
    Attach request.tenant_membership for the authenticated user.

    Runs after DRF authentication. When the middleware resolved no tenant
    (no subdomain, no header) a user with exactly one active membership
    works in that school.
    """
    if getattr(request, '_tenant_bound', False):
        return request.tenant

    from .models import TenantMembership

    tenant = getattr(request, 'tenant', None)
    membership = None
    user = request.user

    if user is not None and user.is_authenticated:
        memberships = TenantMembership.objects.filter(
            user=user, is_active=True,
        ).select_related('tenant')
        if tenant is not None:
            membership = memberships.filter(tenant=tenant).first()
        else:
            candidates = list(memberships[:2])
            if len(candidates) == 1:
                membership = candidates[0]
                tenant = membership.tenant

    request.tenant = tenant
    request.tenant_membership = membership
    request._tenant_bound = True
    # Keep the Django request in sync for middleware running after the view
    django_request = getattr(request, '_request', None)
    if django_request is not None:
        django_request.tenant = tenant
        django_request.tenant_membership = membership
    set_current_tenant(tenant)
    return tenant


# ═══════════════════════════════════════════════════════════════
# VIEWSET / VIEW MIXINS
# ═══════════════════════════════════════════════════════════════

class TenantViewSetMixin:
    """
    Filters the queryset by request.tenant and stamps the tenant on create.

        class StudentViewSet(TenantViewSetMixin, viewsets.ModelViewSet):
            queryset = Student.objects.all()
            write_roles = ('admin', 'secretary')
    """

    permission_classes = [IsAuthenticated, IsTenantMember, TenantRolePermission]
    tenant_field = 'tenant'
    # Membership roles allowed to write (owner is always allowed)
    write_roles = ('admin',)

    def check_permissions(self, request):
        bind_request_tenant(request)
        super().check_permissions(request)

    def get_queryset(self):
        qs = super().get_queryset()
        tenant = getattr(self.request, 'tenant', None)
        if tenant is None:
            return qs.none()
        return qs.filter(**{self.tenant_field: tenant})

    def perform_create(self, serializer):
        tenant = getattr(self.request, 'tenant', None)
        if tenant is None:
            raise PermissionDenied('No school selected.')
        serializer.save(tenant=tenant)

    def perform_update(self, serializer):
        # tenant never changes on update
        serializer.save()


class TenantAPIViewMixin:
    """
    Same binding and permissions for plain APIViews.

        class DashboardView(TenantAPIViewMixin, APIView):
            def get(self, request):
                tenant = request.tenant
    """

    permission_classes = [IsAuthenticated, IsTenantMember]
    write_roles = ('admin',)

    def check_permissions(self, request):
        bind_request_tenant(request)
        super().check_permissions(request)
