from django.apps import AppConfig


class TenantsConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'tenants'
    verbose_name = 'Schools (multi-tenant)'

    def ready(self):
        # Middleware cache invalidation
        import tenants.signals  # noqa: F401
        # System checks for tenant isolation
        import tenants.checks  # noqa: F401
