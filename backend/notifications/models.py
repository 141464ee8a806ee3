from django.db import models
from django.conf import settings


class Notification(models.Model):
    """In-app notification created by ride lifecycle side effects"""

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='notifications'
    )
    title = models.CharField(max_length=120)
    body = models.TextField()
    notification_type = models.CharField(max_length=40)
    ride = models.ForeignKey(
        'rides.RideRequest',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='notifications'
    )
    read = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'notifications'
        ordering = ['-created_at', '-id']

    def __str__(self):
        return f"Notification #{self.id} -> {self.user_id}: {self.title}"
