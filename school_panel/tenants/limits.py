"""
Tenant resource limit enforcement.
"""
from django.apps import apps
from rest_framework.exceptions import PermissionDenied

# resource -> (limit field on Tenant, model, filter for rows that count)
LIMITED_RESOURCES = {
    'students': ('max_students', 'academics.Student', {'status': 'active'}),
    'teachers': ('max_teachers', 'academics.Teacher', {'is_active': True}),
    'classes': ('max_classes', 'academics.SchoolClass', {}),
    'users': ('max_users', 'tenants.TenantMembership', {'is_active': True}),
}


class TenantLimitError(PermissionDenied):
    """Plan limit of the school reached."""
    pass


def get_usage(tenant, resource_name):
    _, model_label, extra_filter = LIMITED_RESOURCES[resource_name]
    model = apps.get_model(model_label)
    return model.objects.filter(tenant=tenant, **extra_filter).count()


def check_tenant_limit(tenant, resource_name, current_count=None):
    """
    Raise TenantLimitError when adding one more `resource_name` would exceed
    the school's plan limit. A limit of 0 means unlimited.
    """
    if tenant is None:
        return

    limit_field = LIMITED_RESOURCES[resource_name][0]
    max_value = getattr(tenant, limit_field)
    if not max_value:
        return

    if current_count is None:
        current_count = get_usage(tenant, resource_name)

    if current_count >= max_value:
        raise TenantLimitError(
            f"You have reached your plan's {resource_name} limit ({current_count}/{max_value}). "
            f'Please upgrade to add more {resource_name}.'
        )
