"""Tells what to show in the Django admin interface for rides app"""

from django.contrib import admin
from .models import RideRequest, RideOffer, RideHistoryEntry, RideMessage


@admin.register(RideRequest)
class RideRequestAdmin(admin.ModelAdmin):
    """Ride Request admin"""
    list_display = ['id', 'passenger', 'driver', 'status', 'wheelchair', 'entry_side', 'fare', 'created_at']
    list_filter = ['status', 'wheelchair', 'assistance', 'entry_side', 'created_at']
    search_fields = ['passenger__username', 'driver__username', 'pickup_address', 'dropoff_address']
    readonly_fields = ['distance_km', 'fare', 'created_at', 'updated_at', 'assigned_at',
                       'arriving_at', 'started_at', 'completed_at', 'cancelled_at']
    date_hierarchy = 'created_at'


@admin.register(RideOffer)
class RideOfferAdmin(admin.ModelAdmin):
    list_display = ("ride", "driver", "order", "distance_km", "status", "sent_at", "responded_at")
    list_filter = ("status",)
    search_fields = ("ride__id", "driver__username")


@admin.register(RideHistoryEntry)
class RideHistoryEntryAdmin(admin.ModelAdmin):
    list_display = ("ride", "user", "role", "fare", "completed_at")
    list_filter = ("role",)
    search_fields = ("user__username",)


@admin.register(RideMessage)
class RideMessageAdmin(admin.ModelAdmin):
    list_display = ("ride", "sender_name", "message_type", "timestamp")
    list_filter = ("message_type",)
