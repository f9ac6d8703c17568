from datetime import timedelta

from django.contrib.auth import get_user_model
from django.urls import reverse
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APITestCase

from tenants.models import Tenant, TenantMembership

from .models import Announcement

User = get_user_model()


class AnnouncementAPITests(APITestCase):

    def setUp(self):
        self.tenant = Tenant.objects.create(slug='mansa', name='Mansa Day', email='office@mansa.zm')
        self.other = Tenant.objects.create(slug='kasama', name='Kasama Girls', email='office@kasama.zm')
        self.secretary = User.objects.create_user(email='sec@mansa.zm', password='x')
        self.teacher = User.objects.create_user(email='teacher@mansa.zm', password='x')
        TenantMembership.objects.create(tenant=self.tenant, user=self.secretary, role='secretary')
        TenantMembership.objects.create(tenant=self.tenant, user=self.teacher, role='teacher')
        self.list_url = reverse('announcement-list')

    def test_secretary_creates_announcement(self):
        self.client.force_authenticate(self.secretary)
        response = self.client.post(self.list_url, {
            'title': 'Sports day', 'content': 'Friday 10:00', 'audience': 'parents', 'priority': 'high',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        announcement = Announcement.objects.get(pk=response.data['id'])
        self.assertEqual(announcement.tenant, self.tenant)
        self.assertEqual(announcement.created_by, self.secretary)

    def test_teacher_cannot_create(self):
        self.client.force_authenticate(self.teacher)
        response = self.client.post(self.list_url, {'title': 'x', 'content': 'y'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_active_filter(self):
        now = timezone.now()
        Announcement.objects.create(tenant=self.tenant, title='Live', content='.')
        Announcement.objects.create(tenant=self.tenant, title='Future expiry', content='.', expires_at=now + timedelta(days=1))
        Announcement.objects.create(tenant=self.tenant, title='Expired', content='.', expires_at=now - timedelta(days=1))
        Announcement.objects.create(tenant=self.tenant, title='Draft', content='.', is_published=False)
        Announcement.objects.create(tenant=self.other, title='Other school', content='.')

        self.client.force_authenticate(self.teacher)
        response = self.client.get(self.list_url, {'active': 'true'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(sorted(row['title'] for row in response.data), ['Future expiry', 'Live'])

        response = self.client.get(self.list_url)
        self.assertEqual(len(response.data), 4)
