from django.contrib import admin

from .models import Payment


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    list_display = (
        'receipt_number', 'student', 'tenant', 'amount', 'paid_amount',
        'balance_owed', 'status', 'term', 'academic_year', 'payment_date',
    )
    list_filter = ('status', 'term', 'payment_type', 'payment_method', 'tenant')
    search_fields = ('receipt_number', 'student__first_name', 'student__last_name', 'student__student_id')
    readonly_fields = ('balance_owed', 'status', 'created_at', 'updated_at')
    raw_id_fields = ('tenant', 'student', 'recorded_by')
    date_hierarchy = 'payment_date'
