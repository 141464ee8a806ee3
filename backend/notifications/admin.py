from django.contrib import admin
from .models import Notification


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ("id", "user", "title", "notification_type", "ride", "read", "created_at")
    list_filter = ("notification_type", "read")
    search_fields = ("user__username", "title")
