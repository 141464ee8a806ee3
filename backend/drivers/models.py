from django.db import models
from django.utils import timezone
from django.conf import settings

from common.types import Location

User = settings.AUTH_USER_MODEL

class DriverProfile(models.Model):
    """Driver-specific details, vehicle and availability status"""
    STATUS_CHOICES = [
        ('available', 'Available'),
        ('offline', 'Offline'),
    ]
    
    user = models.OneToOneField(User, on_delete=models.CASCADE, related_name='driver_profile')
    photo_url = models.URLField(blank=True)
    rating = models.FloatField(default=5.0)
    
    # Vehicle details
    vehicle_number = models.CharField(max_length=20, unique=True)
    vehicle_make = models.CharField(max_length=50, blank=True)
    vehicle_model = models.CharField(max_length=50, blank=True)
    vehicle_color = models.CharField(max_length=30, blank=True)
    # Normalised tokens, see drivers.features
    accessibility_features = models.JSONField(default=list, blank=True)
    
    # Availability flag; "busy" is derived from the ride table, never stored
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='offline')
    current_latitude = models.DecimalField(max_digits=10, decimal_places=6, null=True, blank=True)
    current_longitude = models.DecimalField(max_digits=10, decimal_places=6, null=True, blank=True)
    last_location_update = models.DateTimeField(default=timezone.now)
    eta_minutes = models.PositiveIntegerField(null=True, blank=True)
    
    class Meta:
        db_table = 'driver_profiles'

    @property
    def available(self) -> bool:
        return self.status == 'available'

    @property
    def name(self) -> str:
        return self.user.display_name

    @property
    def feature_set(self) -> set:
        return set(self.accessibility_features or [])

    @property
    def location(self):
        if self.current_latitude is None or self.current_longitude is None:
            return None
        return Location.from_values(self.current_latitude, self.current_longitude)
        
    def __str__(self):
        return f"{self.user.username} - {self.vehicle_number}"
