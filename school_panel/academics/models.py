"""
School structure: classes, the teacher roster and students.
"""
from django.conf import settings
from django.db import models

from tenants.mixins import TenantModelMixin


class ClassLevel(models.TextChoices):
    BABY = 'Baby', 'Baby class'
    PRIMARY = 'Primary', 'Primary'
    SECONDARY = 'Secondary', 'Secondary'


class Teacher(TenantModelMixin):
    """Roster record of a teacher. Not a login; `user` links one when it exists."""

    first_name = models.CharField(max_length=100)
    last_name = models.CharField(max_length=100)
    teacher_id = models.CharField(max_length=50, help_text='Staff number, unique per school')
    email = models.EmailField()
    phone = models.CharField(max_length=30, blank=True)
    subject = models.CharField(max_length=100, blank=True)
    qualification = models.CharField(max_length=200, blank=True)
    date_joined = models.DateField(null=True, blank=True)
    is_active = models.BooleanField(default=True)
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True, blank=True,
        related_name='teacher_profiles',
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['last_name', 'first_name']
        constraints = [
            models.UniqueConstraint(fields=['tenant', 'teacher_id'], name='uniq_teacher_id_per_tenant'),
            models.UniqueConstraint(fields=['tenant', 'email'], name='uniq_teacher_email_per_tenant'),
        ]

    def __str__(self):
        return self.full_name

    @property
    def full_name(self):
        return f'{self.first_name} {self.last_name}'

    def save(self, *args, **kwargs):
        self.email = (self.email or '').strip().lower()
        super().save(*args, **kwargs)


class SchoolClass(TenantModelMixin):
    name = models.CharField(max_length=100)
    class_level = models.CharField(max_length=20, choices=ClassLevel.choices, default=ClassLevel.PRIMARY)
    grade = models.CharField(max_length=20, blank=True)
    section = models.CharField(max_length=20, blank=True)
    teacher = models.ForeignKey(
        Teacher,
        on_delete=models.SET_NULL,
        null=True, blank=True,
        related_name='classes',
    )
    academic_year = models.CharField(max_length=20, blank=True)
    capacity = models.PositiveIntegerField(default=40)
    room = models.CharField(max_length=50, blank=True)
    schedule = models.CharField(max_length=255, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['class_level', 'grade', 'name']
        verbose_name = 'class'
        verbose_name_plural = 'classes'

    def __str__(self):
        return self.name

    def active_student_count(self):
        return self.students.filter(status=Student.Status.ACTIVE).count()


class Student(TenantModelMixin):

    class Gender(models.TextChoices):
        MALE = 'Male', 'Male'
        FEMALE = 'Female', 'Female'

    class Status(models.TextChoices):
        ACTIVE = 'active', 'Active'
        TRANSFERRED = 'transferred', 'Transferred'
        GRADUATED = 'graduated', 'Graduated'
        DROPPED_OUT = 'dropped_out', 'Dropped out'

    first_name = models.CharField(max_length=100)
    last_name = models.CharField(max_length=100)
    student_id = models.CharField(max_length=50, help_text='Admission number, unique per school')
    school_class = models.ForeignKey(
        SchoolClass,
        on_delete=models.SET_NULL,
        null=True, blank=True,
        related_name='students',
    )
    class_level = models.CharField(max_length=20, choices=ClassLevel.choices, blank=True)
    grade = models.CharField(max_length=20, blank=True)
    date_of_birth = models.DateField(null=True, blank=True)
    gender = models.CharField(max_length=10, choices=Gender.choices, blank=True)
    parent_name = models.CharField(max_length=200, blank=True)
    parent_phone = models.CharField(max_length=30, blank=True)
    parent_email = models.EmailField(blank=True)
    address = models.CharField(max_length=255, blank=True)
    enrollment_date = models.DateField(null=True, blank=True)
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.ACTIVE, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['last_name', 'first_name']
        constraints = [
            models.UniqueConstraint(fields=['tenant', 'student_id'], name='uniq_student_id_per_tenant'),
        ]
        indexes = [
            models.Index(fields=['tenant', 'school_class'], name='student_tenant_class_idx'),
        ]

    def __str__(self):
        return f'{self.full_name} ({self.student_id})'

    @property
    def full_name(self):
        return f'{self.first_name} {self.last_name}'


class ClassMovementLog(TenantModelMixin):
    """One row per change of a student's class."""

    student = models.ForeignKey(Student, on_delete=models.CASCADE, related_name='movements')
    from_class = models.ForeignKey(
        SchoolClass, on_delete=models.SET_NULL, null=True, blank=True, related_name='+',
    )
    to_class = models.ForeignKey(
        SchoolClass, on_delete=models.SET_NULL, null=True, blank=True, related_name='+',
    )
    reason = models.CharField(max_length=255, blank=True)
    changed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='+',
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return f'{self.student}: {self.from_class} -> {self.to_class}'
