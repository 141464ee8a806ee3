from rest_framework import serializers
from django.contrib.auth import get_user_model

User = get_user_model()


class PassengerProfileSerializer(serializers.ModelSerializer):
    """
    Passenger profile details, used for `/passengers/profile/`.
    """
    display_name = serializers.CharField(read_only=True)

    class Meta:
        model = User
        fields = [
            'id', 'username', 'email', 'first_name', 'last_name',
            'display_name', 'role', 'phone_number', 'completed_rides',
        ]
        read_only_fields = ['id', 'username', 'role', 'completed_rides', 'display_name']


class PassengerBasicSerializer(serializers.ModelSerializer):
    """
    Basic passenger representation used inside ride responses.
    """
    display_name = serializers.CharField(read_only=True)

    class Meta:
        model = User
        fields = ['id', 'username', 'display_name', 'phone_number']
