from django.db import models
from django.contrib.auth.models import AbstractUser


class Role(models.TextChoices):
    DRIVER = 'DRIVER', 'Driver'
    MECHANIC = 'MECHANIC', 'Mechanic'


class User(AbstractUser):
    """Marketplace participant: a driver in breakdown or a mechanic."""

    # Role is fixed at registration
    role = models.CharField(max_length=10, choices=Role.choices)
    display_name = models.CharField(max_length=150, blank=True)
    phone_number = models.CharField(max_length=20, blank=True)
    vehicle_model = models.CharField(max_length=100, blank=True)  # drivers only
    completed_jobs = models.IntegerField(default=0)

    # Live position, self-reported by the participant's device
    current_latitude = models.DecimalField(max_digits=9, decimal_places=6, null=True, blank=True)
    current_longitude = models.DecimalField(max_digits=9, decimal_places=6, null=True, blank=True)
    last_location_update = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = 'users'

    @property
    def public_name(self):
        return self.display_name or self.get_full_name() or self.username

    @property
    def is_driver(self):
        return self.role == Role.DRIVER

    @property
    def is_mechanic(self):
        return self.role == Role.MECHANIC

    def __str__(self):
        return f"{self.username} ({self.get_role_display()})"
