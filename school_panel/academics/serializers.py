from django.contrib.auth import get_user_model
from rest_framework import serializers

from attendance.serializers import AttendanceSerializer
from finance.serializers import PaymentSerializer
from tenants.serializers import TenantPrimaryKeyRelatedField, TenantUniqueFieldsMixin

from .models import ClassMovementLog, SchoolClass, Student, Teacher

User = get_user_model()


class TenantMemberUserField(serializers.PrimaryKeyRelatedField):
    """Users holding an active membership in the request's school."""

    def get_queryset(self):
        request = self.context.get('request')
        tenant = getattr(request, 'tenant', None) if request is not None else None
        if tenant is None:
            return User.objects.none()
        return User.objects.filter(tenant_memberships__tenant=tenant, tenant_memberships__is_active=True)


class TeacherSerializer(TenantUniqueFieldsMixin, serializers.ModelSerializer):
    tenant_unique_fields = ('teacher_id', 'email')

    full_name = serializers.CharField(read_only=True)
    user = TenantMemberUserField(required=False, allow_null=True)

    class Meta:
        model = Teacher
        fields = [
            'id', 'first_name', 'last_name', 'full_name', 'teacher_id',
            'email', 'phone', 'subject', 'qualification', 'date_joined',
            'is_active', 'user', 'created_at', 'updated_at',
        ]
        read_only_fields = ['id', 'created_at', 'updated_at']

    def validate_email(self, value):
        return value.strip().lower()


class SchoolClassSerializer(serializers.ModelSerializer):
    teacher = TenantPrimaryKeyRelatedField(queryset=Teacher.objects.all(), required=False, allow_null=True)
    teacher_name = serializers.CharField(source='teacher.full_name', read_only=True, default=None)
    student_count = serializers.SerializerMethodField()

    class Meta:
        model = SchoolClass
        fields = [
            'id', 'name', 'class_level', 'grade', 'section',
            'teacher', 'teacher_name', 'academic_year', 'capacity',
            'room', 'schedule', 'student_count',
            'created_at', 'updated_at',
        ]
        read_only_fields = ['id', 'created_at', 'updated_at']

    def get_student_count(self, obj):
        # annotated by the viewset queryset
        count = getattr(obj, 'student_count', None)
        if count is None:
            count = obj.active_student_count()
        return count


class StudentSerializer(TenantUniqueFieldsMixin, serializers.ModelSerializer):
    tenant_unique_fields = ('student_id',)

    full_name = serializers.CharField(read_only=True)
    school_class = TenantPrimaryKeyRelatedField(
        queryset=SchoolClass.objects.all(), required=False, allow_null=True,
    )
    school_class_name = serializers.CharField(source='school_class.name', read_only=True, default=None)
    # recorded in ClassMovementLog when the class changes
    reason = serializers.CharField(write_only=True, required=False, allow_blank=True, max_length=255)

    class Meta:
        model = Student
        fields = [
            'id', 'first_name', 'last_name', 'full_name', 'student_id',
            'school_class', 'school_class_name', 'class_level', 'grade',
            'date_of_birth', 'gender', 'parent_name', 'parent_phone',
            'parent_email', 'address', 'enrollment_date', 'status',
            'reason', 'created_at', 'updated_at',
        ]
        read_only_fields = ['id', 'created_at', 'updated_at']

    def validate(self, attrs):
        attrs = super().validate(attrs)
        if 'school_class' not in attrs:
            return attrs

        new_class = attrs['school_class']
        current_class_id = self.instance.school_class_id if self.instance is not None else None
        if new_class is None or new_class.pk == current_class_id:
            return attrs

        if new_class.active_student_count() >= new_class.capacity:
            raise serializers.ValidationError({
                'school_class': [f'Class {new_class.name} is full (capacity {new_class.capacity}).'],
            })

        if not attrs.get('class_level') and new_class.class_level:
            attrs['class_level'] = new_class.class_level
        if not attrs.get('grade') and new_class.grade:
            attrs['grade'] = new_class.grade
        return attrs

    def create(self, validated_data):
        validated_data.pop('reason', None)
        return super().create(validated_data)

    def update(self, instance, validated_data):
        validated_data.pop('reason', None)
        return super().update(instance, validated_data)


class StudentDetailSerializer(StudentSerializer):
    recent_payments = serializers.SerializerMethodField()
    recent_attendance = serializers.SerializerMethodField()
    total_owed = serializers.SerializerMethodField()

    class Meta(StudentSerializer.Meta):
        fields = StudentSerializer.Meta.fields + ['recent_payments', 'recent_attendance', 'total_owed']

    def get_recent_payments(self, obj):
        payments = obj.payments.order_by('-payment_date', '-id')[:5]
        return PaymentSerializer(payments, many=True, context=self.context).data

    def get_recent_attendance(self, obj):
        records = obj.attendance_records.select_related('school_class').order_by('-date')[:5]
        return AttendanceSerializer(records, many=True, context=self.context).data

    def get_total_owed(self, obj):
        from finance.services import FinanceService
        return FinanceService.total_owed(obj)


class ClassMovementLogSerializer(serializers.ModelSerializer):
    from_class_name = serializers.CharField(source='from_class.name', read_only=True, default=None)
    to_class_name = serializers.CharField(source='to_class.name', read_only=True, default=None)
    changed_by_email = serializers.EmailField(source='changed_by.email', read_only=True, default=None)

    class Meta:
        model = ClassMovementLog
        fields = [
            'id', 'student', 'from_class', 'from_class_name',
            'to_class', 'to_class_name', 'reason', 'changed_by_email', 'created_at',
        ]
        read_only_fields = fields
