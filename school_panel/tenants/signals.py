"""
Invalidates the middleware cache whenever a Tenant changes.

Connected from TenantsConfig.ready().
"""
import logging

from django.db.models.signals import post_delete, post_save
from django.dispatch import receiver

logger = logging.getLogger(__name__)


@receiver(post_save, sender='tenants.Tenant')
def tenant_post_save(sender, instance, **kwargs):
    from .middleware import TenantMiddleware
    TenantMiddleware.clear_cache()
    logger.debug('Tenant cache cleared after save: %s (slug=%s)', instance.name, instance.slug)


@receiver(post_delete, sender='tenants.Tenant')
def tenant_post_delete(sender, instance, **kwargs):
    from .middleware import TenantMiddleware
    TenantMiddleware.clear_cache()
    logger.info('Tenant cache cleared after delete: %s (slug=%s)', instance.name, instance.slug)
