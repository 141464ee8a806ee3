from django.contrib import admin
from drivers.models import DriverProfile


@admin.register(DriverProfile)
class DriverProfileAdmin(admin.ModelAdmin):
    list_display = [
        "user",
        "vehicle_number",
        "features",
        "status",
        "rating",
        "last_location_update",
    ]
    list_filter = ["status"]
    search_fields = ["user__username", "user__first_name", "vehicle_number"]
    readonly_fields = ["last_location_update", "rating"]
    ordering = ("user__username",)

    fieldsets = (
        (None, {"fields": ("user", "photo_url", "rating")}),
        ("Vehicle", {"fields": ("vehicle_number", "vehicle_make", "vehicle_model",
                                "vehicle_color", "accessibility_features")}),
        ("Availability", {"fields": ("status", "current_latitude", "current_longitude",
                                     "last_location_update", "eta_minutes")}),
    )

    @admin.display(description="Accessibility")
    def features(self, obj):
        return ", ".join(obj.accessibility_features or []) or "-"
