from django.contrib import admin

from .models import Attendance


@admin.register(Attendance)
class AttendanceAdmin(admin.ModelAdmin):
    list_display = ('student', 'school_class', 'date', 'status', 'tenant', 'marked_by')
    list_filter = ('status', 'date', 'tenant')
    search_fields = ('student__first_name', 'student__last_name', 'student__student_id')
    raw_id_fields = ('tenant', 'student', 'school_class', 'marked_by')
    date_hierarchy = 'date'
