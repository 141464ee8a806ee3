from django.db import models
from django.contrib.auth.models import AbstractUser

PASSENGER = 'user'
DRIVER = 'driver'


class User(AbstractUser):
    """Passenger or driver account"""
    ROLE_CHOICES = [
        (PASSENGER, 'Passenger'),
        (DRIVER, 'Driver'),
    ]

    role = models.CharField(max_length=10, choices=ROLE_CHOICES)
    phone_number = models.CharField(max_length=15, blank=True)
    # Bumped once per history entry, see services.ride_management.history
    completed_rides = models.IntegerField(default=0)

    class Meta:
        db_table = 'users'

    @property
    def display_name(self) -> str:
        return self.get_full_name() or self.username

    @property
    def is_driver(self) -> bool:
        return self.role == DRIVER

    @property
    def is_passenger(self) -> bool:
        return self.role == PASSENGER

    def __str__(self):
        return f"{self.username} ({self.get_role_display()})"
