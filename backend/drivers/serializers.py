from rest_framework import serializers
from drivers.models import DriverProfile
from accounts.serializers import UserSerializer


class DriverProfileSerializer(serializers.ModelSerializer):
    """
    Full driver profile serializer
    """
    user = UserSerializer(read_only=True)

    class Meta:
        model = DriverProfile
        fields = [
            "id",
            "user",
            "photo_url",
            "rating",
            "vehicle_number",
            "vehicle_make",
            "vehicle_model",
            "vehicle_color",
            "accessibility_features",
            "status",
            "current_latitude",
            "current_longitude",
            "last_location_update",
            "eta_minutes",
        ]
        read_only_fields = ["id", "rating", "status", "last_location_update"]


class DriverBasicSerializer(serializers.ModelSerializer):
    """
    Lite version of driver info for ride details
    (sent to passengers once a driver is assigned).
    """
    user_id = serializers.IntegerField(read_only=True)
    name = serializers.CharField(read_only=True)
    phone_number = serializers.CharField(source="user.phone_number", read_only=True)

    class Meta:
        model = DriverProfile
        fields = [
            "id",
            "user_id",
            "name",
            "phone_number",
            "photo_url",
            "rating",
            "vehicle_number",
            "vehicle_make",
            "vehicle_model",
            "vehicle_color",
            "accessibility_features",
            "current_latitude",
            "current_longitude",
            "eta_minutes",
        ]


class DriverStatusSerializer(serializers.Serializer):
    """
    Serializer for updating driver availability (available/offline).
    """
    status = serializers.ChoiceField(choices=["available", "offline"])


class LocationUpdateSerializer(serializers.Serializer):
    """
    Serializer for updating driver GPS location.
    """
    latitude = serializers.DecimalField(max_digits=9, decimal_places=6, min_value=-90, max_value=90)
    longitude = serializers.DecimalField(max_digits=10, decimal_places=6, min_value=-180, max_value=180)


class VehicleUpdateSerializer(serializers.Serializer):
    """
    Driver settings screen: vehicle details and accessibility feature labels.
    """
    vehicle_make = serializers.CharField(max_length=50, required=False, allow_blank=True)
    vehicle_model = serializers.CharField(max_length=50, required=False, allow_blank=True)
    vehicle_color = serializers.CharField(max_length=30, required=False, allow_blank=True)
    vehicle_number = serializers.CharField(max_length=20, required=False)
    accessibility_features = serializers.ListField(
        child=serializers.CharField(max_length=50), required=False
    )

    def validate_vehicle_number(self, value):
        profile = self.context.get("profile")
        qs = DriverProfile.objects.filter(vehicle_number=value)
        if profile is not None:
            qs = qs.exclude(pk=profile.pk)
        if qs.exists():
            raise serializers.ValidationError("Vehicle number already registered")
        return value
