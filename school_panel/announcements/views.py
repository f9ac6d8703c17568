import logging

from rest_framework import viewsets

from tenants.mixins import TenantViewSetMixin

from .models import Announcement
from .serializers import AnnouncementSerializer

logger = logging.getLogger(__name__)


class AnnouncementViewSet(TenantViewSetMixin, viewsets.ModelViewSet):
    """
    School notice board.

    GET /api/announcements/?active=true&audience=&priority=
    """
    queryset = Announcement.objects.select_related('created_by')
    serializer_class = AnnouncementSerializer
    write_roles = ('admin', 'secretary')

    def get_queryset(self):
        queryset = super().get_queryset()
        params = self.request.query_params

        if params.get('active', '').lower() in ('true', '1', 'yes'):
            queryset = queryset.active()

        for param in ('audience', 'priority'):
            value = params.get(param)
            if value:
                queryset = queryset.filter(**{param: value})

        return queryset

    def perform_create(self, serializer):
        serializer.save(tenant=self.request.tenant, created_by=self.request.user)
        logger.info(f'Announcement created: {serializer.instance.id} tenant={self.request.tenant.slug}')
