"""
Tenant-aware permissions for DRF.

They read request.tenant / request.tenant_membership, bound by
mixins.bind_request_tenant before permissions are checked.
"""
from rest_framework.permissions import SAFE_METHODS, BasePermission


class IsTenantMember(BasePermission):
    """Active member of an accessible (trial or active) school."""

    message = 'You are not a member of this school.'

    def has_permission(self, request, view):
        if not request.user or not request.user.is_authenticated:
            return False
        tenant = getattr(request, 'tenant', None)
        if tenant is None:
            self.message = 'No school selected.'
            return False
        if getattr(request, 'tenant_membership', None) is None:
            return False
        if not tenant.is_accessible:
            self.message = (
                f'This school account is {tenant.get_status_display().lower()}. '
                'Contact the platform administrator.'
            )
            return False
        return True


class TenantRolePermission(BasePermission):
    """
    Reads for every member; writes for roles listed in view.write_roles.
    The owner may always write.
    """

    message = 'Your role in this school does not allow this action.'

    def has_permission(self, request, view):
        membership = getattr(request, 'tenant_membership', None)
        if membership is None:
            return False
        if request.method in SAFE_METHODS:
            return True
        if membership.role == 'owner':
            return True
        return membership.role in getattr(view, 'write_roles', ())


class IsTenantAdmin(BasePermission):
    """owner/admin of the current school."""

    message = 'School administrator role required.'

    def has_permission(self, request, view):
        if not request.user or not request.user.is_authenticated:
            return False
        membership = getattr(request, 'tenant_membership', None)
        if membership is None:
            return False
        return membership.role in ('owner', 'admin')
