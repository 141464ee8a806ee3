from django.db import models
from django.db.models import Q
from django.conf import settings

from common.types import AccessibilityRequirement, EntrySide, Location

# Ride status values
PENDING = 'pending'
SEARCHING = 'searching'
ASSIGNED = 'assigned'
ARRIVING = 'arriving'
IN_PROGRESS = 'in_progress'
COMPLETED = 'completed'
CANCELLED = 'cancelled'

TERMINAL_STATUSES = (COMPLETED, CANCELLED)
# A driver holding a ride in one of these is busy
ACTIVE_DRIVER_STATUSES = (ASSIGNED, ARRIVING, IN_PROGRESS)
OPEN_STATUSES = (PENDING, SEARCHING) + ACTIVE_DRIVER_STATUSES


class RideRequest(models.Model):
    """One passenger trip request from creation to terminal status"""

    STATUS_CHOICES = [
        (PENDING, 'Pending'),
        (SEARCHING, 'Searching'),
        (ASSIGNED, 'Assigned'),
        (ARRIVING, 'Arriving'),
        (IN_PROGRESS, 'In Progress'),
        (COMPLETED, 'Completed'),
        (CANCELLED, 'Cancelled'),
    ]

    ENTRY_SIDE_CHOICES = [(side.value, side.value.title()) for side in EntrySide]

    # Foreign keys
    passenger = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='ride_requests'
    )

    driver = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='accepted_rides'
    )

    # Pickup location
    pickup_latitude = models.DecimalField(max_digits=9, decimal_places=6)
    pickup_longitude = models.DecimalField(max_digits=9, decimal_places=6)
    pickup_address = models.TextField(null=True, blank=True)

    # Dropoff location
    dropoff_latitude = models.DecimalField(max_digits=9, decimal_places=6)
    dropoff_longitude = models.DecimalField(max_digits=9, decimal_places=6)
    dropoff_address = models.TextField(null=True, blank=True)

    # Accessibility requirement, immutable once the ride exists
    wheelchair = models.BooleanField(default=False)
    entry_side = models.CharField(max_length=10, choices=ENTRY_SIDE_CHOICES, default=EntrySide.EITHER.value)
    assistance = models.BooleanField(default=False)

    # Computed once at creation
    distance_km = models.FloatField(default=0)
    fare = models.FloatField(default=0)

    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=SEARCHING)
    scheduled_time = models.DateTimeField(null=True, blank=True)

    # Timestamps
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    assigned_at = models.DateTimeField(null=True, blank=True)
    arriving_at = models.DateTimeField(null=True, blank=True)
    started_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)

    cancelled_by = models.CharField(max_length=10, blank=True)
    cancellation_reason = models.TextField(null=True, blank=True)

    class Meta:
        db_table = 'ride_requests'
        ordering = ['-created_at']
        constraints = [
            models.UniqueConstraint(
                fields=['driver'],
                condition=Q(status__in=ACTIVE_DRIVER_STATUSES),
                name='unique_active_ride_per_driver',
            )
        ]

    @property
    def pickup(self) -> Location:
        return Location.from_values(self.pickup_latitude, self.pickup_longitude, self.pickup_address)

    @property
    def dropoff(self) -> Location:
        return Location.from_values(self.dropoff_latitude, self.dropoff_longitude, self.dropoff_address)

    @property
    def requirement(self) -> AccessibilityRequirement:
        return AccessibilityRequirement(
            wheelchair=self.wheelchair,
            entry_side=EntrySide(self.entry_side),
            assistance=self.assistance,
        )

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def is_participant(self, user_id) -> bool:
        return user_id is not None and user_id in (self.passenger_id, self.driver_id)

    def __str__(self):
        return f"Ride #{self.id} - {self.passenger} - {self.status}"


class RideOffer(models.Model):
    """Tracks which compatible drivers were shown the ride."""

    ride = models.ForeignKey(
        RideRequest,
        on_delete=models.CASCADE,
        related_name='offers'
    )

    driver = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        limit_choices_to={'role': 'driver'}
    )

    order = models.PositiveIntegerField()  # 0 = closest driver at build time
    distance_km = models.FloatField(null=True, blank=True)

    status = models.CharField(
        max_length=20,
        choices=[
            ('pending', 'Pending'),
            ('accepted', 'Accepted'),
            ('rejected', 'Rejected'),
            ('expired', 'Expired'),
        ],
        default='pending',
    )

    sent_at = models.DateTimeField(null=True, blank=True)
    responded_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ['order']
        constraints = [
            models.UniqueConstraint(
                fields=['ride', 'driver'],
                name='unique_ride_driver'
            )
        ]

    def __str__(self):
        return f"Offer #{self.id} - Ride {self.ride_id} -> Driver {self.driver_id}"


class RideHistoryEntry(models.Model):
    """Per-user read copy of a completed ride (one per participant)."""

    ROLE_CHOICES = [
        ('passenger', 'Passenger'),
        ('driver', 'Driver'),
    ]

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='ride_history'
    )
    ride = models.ForeignKey(
        RideRequest,
        on_delete=models.CASCADE,
        related_name='history_entries'
    )
    role = models.CharField(max_length=10, choices=ROLE_CHOICES)

    pickup_latitude = models.DecimalField(max_digits=9, decimal_places=6)
    pickup_longitude = models.DecimalField(max_digits=9, decimal_places=6)
    pickup_address = models.TextField(null=True, blank=True)
    dropoff_latitude = models.DecimalField(max_digits=9, decimal_places=6)
    dropoff_longitude = models.DecimalField(max_digits=9, decimal_places=6)
    dropoff_address = models.TextField(null=True, blank=True)

    fare = models.FloatField()
    distance_km = models.FloatField(default=0)
    driver_snapshot = models.JSONField(default=dict, blank=True)

    ride_created_at = models.DateTimeField()
    completed_at = models.DateTimeField()
    recorded_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'ride_history'
        ordering = ['-completed_at']
        constraints = [
            models.UniqueConstraint(
                fields=['user', 'ride'],
                name='unique_history_per_user_ride'
            )
        ]

    def __str__(self):
        return f"History {self.user_id} / ride {self.ride_id}"


class RideMessage(models.Model):
    """Append-only chat message scoped to one ride."""

    TYPE_CHOICES = [
        ('text', 'Text'),
        ('system', 'System'),
    ]

    ride = models.ForeignKey(
        RideRequest,
        on_delete=models.CASCADE,
        related_name='messages'
    )
    # Null for system messages
    sender = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
    )
    sender_name = models.CharField(max_length=150)
    content = models.TextField()
    message_type = models.CharField(max_length=10, choices=TYPE_CHOICES, default='text')
    timestamp = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['timestamp', 'id']

    def __str__(self):
        return f"Message #{self.id} - Ride {self.ride_id} ({self.message_type})"
