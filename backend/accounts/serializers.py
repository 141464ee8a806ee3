from rest_framework import serializers
from django.contrib.auth import authenticate
from .models import User
from drivers.models import DriverProfile
from drivers.features import normalize_features


class UserSerializer(serializers.ModelSerializer):
    display_name = serializers.CharField(read_only=True)

    class Meta:
        model = User
        fields = [
            "id",
            "username",
            "email",
            "first_name",
            "last_name",
            "display_name",
            "role",
            "phone_number",
            "completed_rides",
        ]
        read_only_fields = ["id", "role", "completed_rides", "display_name"]


class LoginSerializer(serializers.Serializer):
    username = serializers.CharField()
    password = serializers.CharField(write_only=True)

    def validate(self, data):
        user = authenticate(username=data["username"], password=data["password"])
        if not user:
            raise serializers.ValidationError("Invalid username or password")
        return user


class RegisterSerializer(serializers.ModelSerializer):
    password = serializers.CharField(write_only=True, min_length=8)
    vehicle_number = serializers.CharField(required=False)
    vehicle_make = serializers.CharField(required=False, allow_blank=True)
    vehicle_model = serializers.CharField(required=False, allow_blank=True)
    vehicle_color = serializers.CharField(required=False, allow_blank=True)
    accessibility_features = serializers.ListField(
        child=serializers.CharField(), required=False
    )

    class Meta:
        model = User
        fields = [
            'username', 'password', 'email', 'first_name', 'last_name', 'role', 'phone_number',
            'vehicle_number', 'vehicle_make', 'vehicle_model', 'vehicle_color',
            'accessibility_features',
        ]
    
    def validate_email(self, value):
        if value and User.objects.filter(email=value).exists():
            raise serializers.ValidationError("Email already exists")
        return value
    
    def validate(self, data):
        # If registering as driver, vehicle_number is required
        if data['role'] == 'driver' and not data.get('vehicle_number'):
            raise serializers.ValidationError({
                'vehicle_number': 'Vehicle number is required for drivers'
            })
        return data
    
    def create(self, validated_data):
        vehicle = {
            key: validated_data.pop(key)
            for key in ('vehicle_number', 'vehicle_make', 'vehicle_model', 'vehicle_color')
            if key in validated_data
        }
        features = validated_data.pop('accessibility_features', [])

        user = User.objects.create_user(
            username=validated_data['username'],
            email=validated_data.get('email', ''),
            password=validated_data['password'],
            first_name=validated_data.get('first_name', ''),
            last_name=validated_data.get('last_name', ''),
            role=validated_data['role'],
            phone_number=validated_data.get('phone_number', ''),
        )
        
        # Create driver profile if role is driver
        if user.is_driver and vehicle.get('vehicle_number'):
            DriverProfile.objects.create(
                user=user,
                accessibility_features=normalize_features(features),
                **vehicle,
            )
        
        return user
