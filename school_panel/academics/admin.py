from django.contrib import admin

from .models import ClassMovementLog, SchoolClass, Student, Teacher


@admin.register(SchoolClass)
class SchoolClassAdmin(admin.ModelAdmin):
    list_display = ('name', 'tenant', 'class_level', 'grade', 'teacher', 'academic_year', 'capacity')
    list_filter = ('class_level', 'tenant')
    search_fields = ('name', 'tenant__name')
    raw_id_fields = ('tenant', 'teacher')


@admin.register(Teacher)
class TeacherAdmin(admin.ModelAdmin):
    list_display = ('full_name', 'teacher_id', 'tenant', 'email', 'subject', 'is_active')
    list_filter = ('is_active', 'tenant')
    search_fields = ('first_name', 'last_name', 'teacher_id', 'email')
    raw_id_fields = ('tenant', 'user')


@admin.register(Student)
class StudentAdmin(admin.ModelAdmin):
    list_display = ('full_name', 'student_id', 'tenant', 'school_class', 'status')
    list_filter = ('status', 'class_level', 'tenant')
    search_fields = ('first_name', 'last_name', 'student_id', 'parent_phone')
    raw_id_fields = ('tenant', 'school_class')


@admin.register(ClassMovementLog)
class ClassMovementLogAdmin(admin.ModelAdmin):
    list_display = ('student', 'from_class', 'to_class', 'reason', 'changed_by', 'created_at')
    raw_id_fields = ('tenant', 'student', 'from_class', 'to_class', 'changed_by')
