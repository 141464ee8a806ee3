from rest_framework import serializers
from django.contrib.auth import get_user_model

from common.types import Location, REQUIREMENT_TOKENS
from .models import RideRequest, RideMessage, RideHistoryEntry

from passengers.serializers import PassengerBasicSerializer
from drivers.serializers import DriverBasicSerializer

User = get_user_model()


class RideRequestSerializer(serializers.ModelSerializer):
    """Serializer for Ride Requests"""
    passenger = PassengerBasicSerializer(read_only=True)
    driver = serializers.SerializerMethodField()
    accessibility_options = serializers.SerializerMethodField()

    class Meta:
        model = RideRequest
        fields = ['id', 'passenger', 'driver',
                  'pickup_latitude', 'pickup_longitude', 'pickup_address',
                  'dropoff_latitude', 'dropoff_longitude', 'dropoff_address',
                  'wheelchair', 'entry_side', 'assistance', 'accessibility_options',
                  'distance_km', 'fare', 'status', 'scheduled_time',
                  'created_at', 'updated_at', 'assigned_at', 'arriving_at',
                  'started_at', 'completed_at', 'cancelled_at',
                  'cancelled_by', 'cancellation_reason']
        read_only_fields = fields

    def get_driver(self, obj):
        if obj.driver_id is None:
            return None
        profile = getattr(obj.driver, 'driver_profile', None)
        if profile is None:
            return {'user_id': obj.driver_id, 'name': obj.driver.display_name}
        return DriverBasicSerializer(profile).data

    def get_accessibility_options(self, obj):
        return obj.requirement.as_options()


class LocationSerializer(serializers.Serializer):
    """A point sent by the client: {"latitude", "longitude", "address"?}"""
    latitude = serializers.FloatField(min_value=-90, max_value=90)
    longitude = serializers.FloatField(min_value=-180, max_value=180)
    address = serializers.CharField(required=False, allow_blank=True, allow_null=True)

    def to_location(self, data=None) -> Location:
        data = data if data is not None else self.validated_data
        return Location.from_values(data['latitude'], data['longitude'], data.get('address'))


class RideRequestCreateSerializer(serializers.Serializer):
    """Serializer for creating ride requests"""
    pickup_location = LocationSerializer()
    dropoff_location = LocationSerializer()
    accessibility_options = serializers.ListField(
        child=serializers.ChoiceField(choices=sorted(REQUIREMENT_TOKENS)),
        required=False,
        default=list,
    )
    scheduled_time = serializers.DateTimeField(required=False, allow_null=True)

    def validate(self, data):
        pickup = LocationSerializer().to_location(data['pickup_location'])
        dropoff = LocationSerializer().to_location(data['dropoff_location'])
        data['pickup'] = pickup
        data['dropoff'] = dropoff
        return data


class RideStatusUpdateSerializer(serializers.Serializer):
    """{ride_id, new_status}; the status string is checked by the service layer."""
    ride_id = serializers.IntegerField()
    new_status = serializers.CharField()
    reason = serializers.CharField(required=False, allow_blank=True)


class RideCancelSerializer(serializers.Serializer):
    """Serializer for ride cancellation"""
    reason = serializers.CharField(required=False, allow_blank=True)


class RideMessageSerializer(serializers.ModelSerializer):
    type = serializers.CharField(source='message_type', read_only=True)

    class Meta:
        model = RideMessage
        fields = ['id', 'ride', 'sender', 'sender_name', 'content', 'type', 'timestamp']
        read_only_fields = fields


class RideMessageCreateSerializer(serializers.Serializer):
    content = serializers.CharField(max_length=1000)


class RideHistoryEntrySerializer(serializers.ModelSerializer):
    class Meta:
        model = RideHistoryEntry
        fields = ['id', 'ride', 'role',
                  'pickup_latitude', 'pickup_longitude', 'pickup_address',
                  'dropoff_latitude', 'dropoff_longitude', 'dropoff_address',
                  'fare', 'distance_km', 'driver_snapshot',
                  'ride_created_at', 'completed_at']
        read_only_fields = fields
