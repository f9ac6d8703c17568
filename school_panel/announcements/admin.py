from django.contrib import admin

from .models import Announcement


@admin.register(Announcement)
class AnnouncementAdmin(admin.ModelAdmin):
    list_display = ('title', 'tenant', 'audience', 'priority', 'is_published', 'expires_at', 'created_at')
    list_filter = ('audience', 'priority', 'is_published', 'tenant')
    search_fields = ('title', 'content')
    raw_id_fields = ('tenant', 'created_by')
