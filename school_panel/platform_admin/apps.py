from django.apps import AppConfig


class PlatformAdminConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'platform_admin'
    verbose_name = 'Platform administration'
