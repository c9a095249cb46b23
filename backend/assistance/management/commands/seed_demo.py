from decimal import Decimal

from django.core.management.base import BaseCommand
from django.db import transaction
from django.utils import timezone

from accounts.models import Role, User
from mechanics.models import MechanicProfile

DEMO_PASSWORD = "demo1234"

DEMO_MECHANICS = [
    {
        "username": "ahmed",
        "display_name": "Ahmed Benali",
        "email": "ahmed@depanni.ma",
        "phone_number": "0661234567",
        "location": ("33.573100", "-7.589800"),
        "profile": {
            "rating": 4.8,
            "base_price": Decimal("150"),
            "specialties": ["Batterie", "Pneu"],
            "vehicle_type": "car",
            "bio": "Expert en pannes rapides, 10 ans d'expérience.",
        },
    },
    {
        "username": "autoplus",
        "display_name": "Garage AutoPlus",
        "email": "contact@autoplus.ma",
        "phone_number": "0669876543",
        "location": ("33.578000", "-7.592000"),
        "profile": {
            "rating": 4.5,
            "base_price": Decimal("300"),
            "specialties": ["Moteur", "Remorquage"],
            "vehicle_type": "truck",
            "bio": "Service de remorquage 24/7.",
        },
    },
    {
        "username": "karim",
        "display_name": "Karim Moto",
        "email": "karim@moto.ma",
        "phone_number": "0661122334",
        "location": ("33.560000", "-7.600000"),
        "profile": {
            "rating": 4.9,
            "base_price": Decimal("100"),
            "specialties": ["Moto"],
            "vehicle_type": "moto",
            "bio": "Réparation moto express.",
        },
    },
]

DEMO_DRIVERS = [
    {
        "username": "yassine",
        "display_name": "Yassine Driver",
        "email": "yassine@gmail.com",
        "phone_number": "0600000000",
        "vehicle_model": "Dacia Logan",
        "location": ("33.573100", "-7.589800"),
    },
]


class Command(BaseCommand):
    help = "Create demo mechanics (online, around Casablanca) and a demo driver."

    def _upsert_user(self, data, role):
        lat, lon = data["location"]
        user, created = User.objects.update_or_create(
            username=data["username"],
            defaults={
                "role": role,
                "display_name": data["display_name"],
                "email": data["email"],
                "phone_number": data["phone_number"],
                "vehicle_model": data.get("vehicle_model", ""),
                "current_latitude": Decimal(lat),
                "current_longitude": Decimal(lon),
                "last_location_update": timezone.now(),
            },
        )
        if created:
            user.set_password(DEMO_PASSWORD)
            user.save(update_fields=["password"])
        return user, created

    @transaction.atomic
    def handle(self, *args, **options):
        for data in DEMO_MECHANICS:
            user, created = self._upsert_user(data, Role.MECHANIC)
            MechanicProfile.objects.update_or_create(
                user=user,
                defaults={"is_online": True, **data["profile"]},
            )
            self.stdout.write(f"{'Created' if created else 'Updated'} mechanic {user.username}")

        for data in DEMO_DRIVERS:
            user, created = self._upsert_user(data, Role.DRIVER)
            self.stdout.write(f"{'Created' if created else 'Updated'} driver {user.username}")

        self.stdout.write(
            self.style.SUCCESS(f"Demo data ready (password for new accounts: {DEMO_PASSWORD}).")
        )
