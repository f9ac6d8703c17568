from django.conf import settings
from django.db import models

from tenants.mixins import TenantModelMixin


class Attendance(TenantModelMixin):
    """
    Attendance of one student in one class on one calendar day.

    At most one row per (student, school_class, date): marking again
    overwrites the existing row.
    """

    class Status(models.TextChoices):
        PRESENT = 'Present', 'Present'
        ABSENT = 'Absent', 'Absent'
        LATE = 'Late', 'Late'
        EXCUSED = 'Excused', 'Excused'

    student = models.ForeignKey(
        'academics.Student',
        on_delete=models.CASCADE,
        related_name='attendance_records',
    )
    school_class = models.ForeignKey(
        'academics.SchoolClass',
        on_delete=models.PROTECT,
        related_name='attendance_records',
    )
    date = models.DateField(db_index=True)
    status = models.CharField(max_length=10, choices=Status.choices)
    notes = models.CharField(max_length=255, blank=True)
    marked_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True, blank=True,
        related_name='+',
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-date', 'student__last_name']
        verbose_name = 'attendance record'
        verbose_name_plural = 'attendance records'
        constraints = [
            models.UniqueConstraint(
                fields=['student', 'school_class', 'date'],
                name='uniq_attendance_student_class_date',
            ),
        ]
        indexes = [
            models.Index(fields=['tenant', 'date'], name='attendance_tenant_date_idx'),
            models.Index(fields=['school_class', 'date'], name='attendance_class_date_idx'),
        ]

    def __str__(self):
        return f'{self.student} {self.date}: {self.status}'
