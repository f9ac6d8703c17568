from decimal import Decimal

from rest_framework import serializers

from academics.models import Student
from tenants.serializers import TenantPrimaryKeyRelatedField, TenantUniqueFieldsMixin

from .models import Payment


class PaymentSerializer(TenantUniqueFieldsMixin, serializers.ModelSerializer):
    """
    Fee payment. `balance_owed` and `status` are derived and read-only:
    values sent by the client are ignored.
    """
    tenant_unique_fields = ('receipt_number',)

    student = TenantPrimaryKeyRelatedField(queryset=Student.objects.all())
    student_name = serializers.CharField(source='student.full_name', read_only=True)
    admission_number = serializers.CharField(source='student.student_id', read_only=True)
    amount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0.01'))
    paid_amount = serializers.DecimalField(
        max_digits=12, decimal_places=2, min_value=Decimal('0.00'), required=False,
    )
    recorded_by_email = serializers.EmailField(source='recorded_by.email', read_only=True, default=None)

    class Meta:
        model = Payment
        fields = [
            'id', 'student', 'student_name', 'admission_number',
            'amount', 'currency', 'payment_type', 'payment_method',
            'term', 'academic_year', 'paid_amount', 'balance_owed', 'status',
            'payment_date', 'notes', 'receipt_number', 'recorded_by_email',
            'created_at', 'updated_at',
        ]
        read_only_fields = ['id', 'balance_owed', 'status', 'created_at', 'updated_at']
        extra_kwargs = {
            'receipt_number': {'required': False, 'allow_blank': True},
            'currency': {'required': False, 'allow_blank': True},
        }

    def validate(self, attrs):
        attrs = super().validate(attrs)
        amount = attrs.get('amount', getattr(self.instance, 'amount', None))
        paid_amount = attrs.get('paid_amount', getattr(self.instance, 'paid_amount', Decimal('0.00')))
        if amount is not None and paid_amount > amount:
            raise serializers.ValidationError({'paid_amount': ['Paid amount cannot exceed the payment amount.']})
        return attrs


class RecordInstalmentSerializer(serializers.Serializer):
    amount = serializers.DecimalField(max_digits=12, decimal_places=2)
    notes = serializers.CharField(required=False, allow_blank=True, default='')


class OwingStudentSerializer(serializers.Serializer):
    """One row of the owing report: a student with outstanding payments."""
    student = serializers.SerializerMethodField()
    total_owed = serializers.DecimalField(max_digits=14, decimal_places=2)
    payments = PaymentSerializer(many=True)

    def get_student(self, obj):
        student = obj['student']
        return {
            'id': student.id,
            'full_name': student.full_name,
            'student_id': student.student_id,
            'school_class': student.school_class.name if student.school_class_id else None,
            'parent_name': student.parent_name,
            'parent_phone': student.parent_phone,
        }
