from django.contrib import admin

from .models import Deal, Lead, Plan, PlatformAnnouncement, PlatformSettings, SubscriptionPayment


@admin.register(Plan)
class PlanAdmin(admin.ModelAdmin):
    list_display = ('name', 'tier', 'monthly_price_zmw', 'yearly_price_zmw', 'max_students', 'is_active', 'sort_order')
    list_filter = ('is_active',)
    ordering = ('sort_order',)


@admin.register(SubscriptionPayment)
class SubscriptionPaymentAdmin(admin.ModelAdmin):
    list_display = ('tenant', 'plan', 'total_amount', 'currency', 'status', 'period_end', 'paid_at', 'created_at')
    list_filter = ('status', 'billing_cycle', 'plan')
    search_fields = ('tenant__name', 'tenant__slug', 'external_ref', 'receipt_number')
    raw_id_fields = ('tenant', 'created_by')
    readonly_fields = ('created_at', 'updated_at')


class DealInline(admin.TabularInline):
    model = Deal
    extra = 0


@admin.register(Lead)
class LeadAdmin(admin.ModelAdmin):
    list_display = ('school_name', 'contact_name', 'email', 'status', 'source', 'assigned_to', 'created_at')
    list_filter = ('status', 'source')
    search_fields = ('school_name', 'contact_name', 'email')
    inlines = [DealInline]


@admin.register(Deal)
class DealAdmin(admin.ModelAdmin):
    list_display = ('title', 'lead', 'value', 'currency', 'stage', 'expected_close_date')
    list_filter = ('stage',)


@admin.register(PlatformAnnouncement)
class PlatformAnnouncementAdmin(admin.ModelAdmin):
    list_display = ('title', 'level', 'is_active', 'starts_at', 'ends_at', 'created_at')
    list_filter = ('level', 'is_active')


@admin.register(PlatformSettings)
class PlatformSettingsAdmin(admin.ModelAdmin):
    list_display = ('platform_name', 'sms_provider', 'sms_balance_units', 'updated_at')

    def has_add_permission(self, request):
        return not PlatformSettings.objects.exists()

    def has_delete_permission(self, request, obj=None):
        return False
