from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from accounts.models import User


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    list_display = ["username", "display_name", "role", "phone_number", "completed_rides", "is_active"]
    list_filter = ["role", "is_active"]
    search_fields = ["username", "first_name", "last_name", "phone_number"]
    readonly_fields = ["completed_rides"]
    ordering = ("username",)

    fieldsets = BaseUserAdmin.fieldsets + (
        ("Ride account", {"fields": ("role", "phone_number", "completed_rides")}),
    )
    add_fieldsets = BaseUserAdmin.add_fieldsets + (
        ("Ride account", {"fields": ("role", "phone_number")}),
    )
