from django.contrib import admin

from .models import Notification


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ("title", "recipient", "type", "status", "entity_type", "entity_id", "created_at")
    list_filter = ("status", "type", "entity_type")
    search_fields = ("title", "message", "recipient__username")
    readonly_fields = ("metadata", "read_at", "deleted_at")
