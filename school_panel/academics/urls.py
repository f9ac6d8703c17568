"""
Academics app URL configuration.
"""
from django.urls import include, path
from rest_framework.routers import DefaultRouter

from . import views

router = DefaultRouter()
router.register('classes', views.SchoolClassViewSet, basename='schoolclass')
router.register('teachers', views.TeacherViewSet, basename='teacher')
router.register('students', views.StudentViewSet, basename='student')

urlpatterns = [
    path('', include(router.urls)),
]
