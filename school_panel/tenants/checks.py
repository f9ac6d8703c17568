"""
System checks for tenant isolation.

Run by `manage.py check`, runserver and migrate. Warn when a school-level
ViewSet forgets TenantViewSetMixin or a school-level model has a nullable
tenant FK.
"""
import importlib

from django.apps import apps
from django.core.exceptions import FieldDoesNotExist
from django.core.checks import Tags, Warning, register

TENANT_VIEW_MODULES = [
    'academics.views',
    'attendance.views',
    'finance.views',
    'announcements.views',
]


@register(Tags.security)
def check_viewsets_have_tenant_mixin(app_configs, **kwargs):
    from rest_framework.viewsets import GenericViewSet

    from tenants.mixins import TenantViewSetMixin

    errors = []
    for module_path in TENANT_VIEW_MODULES:
        module = importlib.import_module(module_path)
        for attr_name in dir(module):
            attr = getattr(module, attr_name)
            if (
                isinstance(attr, type)
                and issubclass(attr, GenericViewSet)
                and attr.__module__ == module.__name__
                and not issubclass(attr, TenantViewSetMixin)
            ):
                errors.append(
                    Warning(
                        f'{attr.__name__} ({module_path}) does not use TenantViewSetMixin.',
                        hint=f'Add TenantViewSetMixin to {attr.__name__} so its queryset is scoped to the school.',
                        id='tenants.W001',
                    )
                )
    return errors


@register(Tags.security)
def check_tenant_model_nullable(app_configs, **kwargs):
    errors = []
    for model in apps.get_models():
        if model._meta.app_label in ('tenants', 'platform_admin'):
            continue
        try:
            field = model._meta.get_field('tenant')
        except FieldDoesNotExist:
            continue
        if field.null:
            errors.append(
                Warning(
                    f'{model.__name__}.tenant is nullable (null=True).',
                    hint='Rows without a tenant can leak across schools. Set null=False.',
                    id='tenants.W002',
                )
            )
    return errors
