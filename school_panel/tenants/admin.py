from django.contrib import admin, messages
from django.db.models import Count, Q

from .models import Tenant, TenantMembership


class MembershipInline(admin.TabularInline):
    model = TenantMembership
    fields = ('user', 'role', 'is_active', 'joined_at')
    readonly_fields = ('joined_at',)
    autocomplete_fields = ('user',)
    extra = 0


@admin.register(Tenant)
class TenantAdmin(admin.ModelAdmin):
    list_display = ('name', 'slug', 'tier', 'status', 'member_count', 'trial_ends_at', 'subscription_ends_at')
    list_filter = ('status', 'tier', 'sms_enabled', 'country')
    search_fields = ('name', 'slug', 'email', 'city')
    readonly_fields = ('id', 'created_at', 'updated_at')
    prepopulated_fields = {'slug': ('name',)}
    date_hierarchy = 'created_at'
    inlines = [MembershipInline]
    actions = ['suspend_schools', 'reactivate_schools']

    fieldsets = (
        (None, {'fields': ('id', 'name', 'slug', 'email', 'phone')}),
        ('Location', {'fields': ('address', 'city', 'country', 'currency', 'timezone', 'logo_url')}),
        ('Plan', {'fields': (
            'tier', 'status', 'trial_ends_at', 'subscription_started_at', 'subscription_ends_at',
            ('max_students', 'max_teachers', 'max_users', 'max_classes'),
        )}),
        ('SMS / e-mail', {
            'classes': ('collapse',),
            'fields': ('sms_enabled', 'sms_sender_id', 'sms_api_key', 'sms_api_secret', 'email_enabled'),
        }),
        ('Other', {'classes': ('collapse',), 'fields': ('metadata', 'created_at', 'updated_at')}),
    )

    def get_queryset(self, request):
        return super().get_queryset(request).annotate(
            _member_count=Count('memberships', filter=Q(memberships__is_active=True)),
        )

    @admin.display(description='Members', ordering='_member_count')
    def member_count(self, obj):
        return obj._member_count

    @admin.action(description='Suspend selected schools')
    def suspend_schools(self, request, queryset):
        # save() per row so the middleware cache is cleared
        for tenant in queryset:
            tenant.status = Tenant.Status.SUSPENDED
            tenant.save(update_fields=['status', 'updated_at'])
        self.message_user(request, f'{queryset.count()} school(s) suspended.', messages.WARNING)

    @admin.action(description='Reactivate selected schools')
    def reactivate_schools(self, request, queryset):
        for tenant in queryset:
            tenant.status = Tenant.Status.ACTIVE
            tenant.save(update_fields=['status', 'updated_at'])
        self.message_user(request, f'{queryset.count()} school(s) reactivated.')


@admin.register(TenantMembership)
class TenantMembershipAdmin(admin.ModelAdmin):
    list_display = ('user', 'tenant', 'role', 'is_active', 'joined_at')
    list_filter = ('role', 'is_active')
    search_fields = ('user__email', 'user__full_name', 'tenant__name', 'tenant__slug')
    autocomplete_fields = ('user', 'tenant')
    list_select_related = ('user', 'tenant')
