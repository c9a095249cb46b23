from django.db import models
from django.conf import settings

User = settings.AUTH_USER_MODEL


class MechanicProfile(models.Model):
    """Mechanic-specific details and availability"""
    VEHICLE_TYPES = [
        ('moto', 'Moto'),
        ('car', 'Car'),
        ('truck', 'Truck'),
    ]

    user = models.OneToOneField(User, on_delete=models.CASCADE, related_name='mechanic_profile')

    # Online mechanics see the open request queue
    is_online = models.BooleanField(default=False)
    rating = models.FloatField(default=5.0)
    base_price = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)  # advisory only

    specialties = models.JSONField(default=list, blank=True)
    vehicle_type = models.CharField(max_length=10, choices=VEHICLE_TYPES, default='car')
    bio = models.TextField(blank=True)

    class Meta:
        db_table = 'mechanic_profiles'

    def __str__(self):
        return f"{self.user.username} - {'online' if self.is_online else 'offline'}"
