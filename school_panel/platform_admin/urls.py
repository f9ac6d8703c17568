"""
Platform back-office URL configuration (mounted at /api/platform/).
"""
from django.urls import include, path
from rest_framework.routers import DefaultRouter

from . import views

app_name = 'platform_admin'

router = DefaultRouter()
router.register('tenants', views.PlatformTenantViewSet, basename='tenant')
router.register('plans', views.PlanViewSet, basename='plan')
router.register('payments', views.SubscriptionPaymentViewSet, basename='payment')
router.register('leads', views.LeadViewSet, basename='lead')
router.register('deals', views.DealViewSet, basename='deal')
router.register('announcements', views.PlatformAnnouncementViewSet, basename='announcement')

urlpatterns = [
    path('settings/', views.PlatformSettingsView.as_view(), name='settings'),
    path('settings/add-sms-credits/', views.AddSmsCreditsView.as_view(), name='add-sms-credits'),
    path('users/', views.PlatformUserListCreateView.as_view(), name='users'),
    path('dashboard/', views.PlatformDashboardView.as_view(), name='dashboard'),
    path('', include(router.urls)),
]
