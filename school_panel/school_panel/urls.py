"""
URL configuration for the school_panel project.

/api/auth/token/, /api/auth/token/refresh/, /api/me/  - accounts
/api/tenant/                                          - current school, members
/api/classes/, /api/teachers/, /api/students/         - academics
/api/attendance/                                      - attendance
/api/payments/                                        - finance
/api/announcements/                                   - notice board
/api/platform/                                        - back office
/api/dashboard/                                       - school dashboard
/api/health/                                          - probes
"""
from django.contrib import admin
from django.urls import include, path

from .health import health_check, live_check

urlpatterns = [
    path('admin/', admin.site.urls),

    path('api/health/', health_check, name='health'),
    path('api/health/live/', live_check, name='health-live'),

    path('api/', include('accounts.urls')),
    path('api/tenant/', include('tenants.urls')),
    path('api/platform/', include('platform_admin.urls')),
    path('api/dashboard/', include('core.urls')),

    path('api/', include('academics.urls')),
    path('api/', include('attendance.urls')),
    path('api/', include('finance.urls')),
    path('api/', include('announcements.urls')),
]
