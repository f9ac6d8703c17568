from django.conf import settings
from django.db import models
from django.db.models import Q
from django.utils import timezone

from tenants.mixins import TenantManager, TenantModelMixin, TenantQuerySet


class AnnouncementQuerySet(TenantQuerySet):

    def active(self, now=None):
        """Published and not expired."""
        now = now or timezone.now()
        return self.filter(is_published=True).filter(Q(expires_at__isnull=True) | Q(expires_at__gt=now))


class AnnouncementManager(TenantManager.from_queryset(AnnouncementQuerySet)):
    pass


class Announcement(TenantModelMixin):
    """School notice board entry."""

    class Audience(models.TextChoices):
        ALL = 'all', 'Everyone'
        STAFF = 'staff', 'Staff'
        TEACHERS = 'teachers', 'Teachers'
        PARENTS = 'parents', 'Parents'

    class Priority(models.TextChoices):
        LOW = 'low', 'Low'
        NORMAL = 'normal', 'Normal'
        HIGH = 'high', 'High'

    title = models.CharField(max_length=200)
    content = models.TextField()
    audience = models.CharField(max_length=10, choices=Audience.choices, default=Audience.ALL)
    priority = models.CharField(max_length=10, choices=Priority.choices, default=Priority.NORMAL)
    is_published = models.BooleanField(default=True)
    expires_at = models.DateTimeField(null=True, blank=True)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True, blank=True,
        related_name='+',
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = AnnouncementManager()

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return self.title
