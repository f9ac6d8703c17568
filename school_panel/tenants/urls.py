from django.urls import include, path
from rest_framework.routers import DefaultRouter

from . import views

app_name = 'tenants'

router = DefaultRouter()
router.register(r'members', views.TenantMemberViewSet, basename='tenant-member')

urlpatterns = [
    path('config/', views.TenantConfigView.as_view(), name='tenant-config'),
    path('my/', views.MyTenantsView.as_view(), name='tenant-my'),
    path('', include(router.urls)),
]
