from rest_framework import serializers

from academics.models import SchoolClass, Student
from tenants.serializers import TenantPrimaryKeyRelatedField

from .models import Attendance


class AttendanceSerializer(serializers.ModelSerializer):
    student = TenantPrimaryKeyRelatedField(queryset=Student.objects.all())
    school_class = TenantPrimaryKeyRelatedField(queryset=SchoolClass.objects.all())
    student_name = serializers.CharField(source='student.full_name', read_only=True)
    school_class_name = serializers.CharField(source='school_class.name', read_only=True)
    marked_by_email = serializers.EmailField(source='marked_by.email', read_only=True, default=None)

    class Meta:
        model = Attendance
        fields = [
            'id', 'student', 'student_name', 'school_class', 'school_class_name',
            'date', 'status', 'notes', 'marked_by_email',
            'created_at', 'updated_at',
        ]
        read_only_fields = ['id', 'created_at', 'updated_at']
        # (student, school_class, date) is an upsert key, not a validation error
        validators = []


class RegisterRowSerializer(serializers.Serializer):
    student = TenantPrimaryKeyRelatedField(queryset=Student.objects.all())
    status = serializers.ChoiceField(choices=Attendance.Status.choices)
    notes = serializers.CharField(required=False, allow_blank=True, max_length=255, default='')


class RegisterSerializer(serializers.Serializer):
    """Bulk register of one class for one day."""
    school_class = TenantPrimaryKeyRelatedField(queryset=SchoolClass.objects.all())
    date = serializers.DateField()
    records = RegisterRowSerializer(many=True, allow_empty=False)


class AnalyticsQuerySerializer(serializers.Serializer):
    school_class = TenantPrimaryKeyRelatedField(queryset=SchoolClass.objects.all())
    start_date = serializers.DateField()
    end_date = serializers.DateField()

    def validate(self, attrs):
        if attrs['start_date'] > attrs['end_date']:
            raise serializers.ValidationError({'end_date': ['end_date must not be before start_date.']})
        return attrs
