from rest_framework import serializers
from django.contrib.auth import authenticate
from django.db import transaction
from django.conf import settings

from .models import User, Role
from mechanics.models import MechanicProfile


class UserSerializer(serializers.ModelSerializer):
    name = serializers.CharField(source="public_name", read_only=True)

    class Meta:
        model = User
        fields = [
            "id",
            "username",
            "email",
            "name",
            "display_name",
            "role",
            "phone_number",
            "vehicle_model",
            "completed_jobs",
            "current_latitude",
            "current_longitude",
            "last_location_update",
        ]
        read_only_fields = [
            "id",
            "role",
            "completed_jobs",
            "current_latitude",
            "current_longitude",
            "last_location_update",
        ]


class LoginSerializer(serializers.Serializer):
    username = serializers.CharField()
    password = serializers.CharField(write_only=True)

    def validate(self, data):
        user = authenticate(username=data["username"], password=data["password"])
        if not user:
            raise serializers.ValidationError("Invalid username or password")
        return user


class RegisterSerializer(serializers.ModelSerializer):
    password = serializers.CharField(write_only=True)
    role = serializers.ChoiceField(choices=Role.choices)

    # Mechanic-only profile fields
    base_price = serializers.DecimalField(max_digits=10, decimal_places=2, required=False, min_value=0)
    specialties = serializers.ListField(child=serializers.CharField(max_length=50), required=False)
    vehicle_type = serializers.ChoiceField(choices=MechanicProfile.VEHICLE_TYPES, required=False)
    bio = serializers.CharField(required=False, allow_blank=True)

    class Meta:
        model = User
        fields = [
            "username", "password", "email", "role", "display_name", "phone_number",
            "vehicle_model", "base_price", "specialties", "vehicle_type", "bio",
        ]

    def validate_email(self, value):
        if value and User.objects.filter(email=value).exists():
            raise serializers.ValidationError("Email already exists")
        return value

    @transaction.atomic
    def create(self, validated_data):
        mechanic_fields = {
            key: validated_data.pop(key)
            for key in ("base_price", "specialties", "vehicle_type", "bio")
            if key in validated_data
        }

        user = User.objects.create_user(
            username=validated_data["username"],
            email=validated_data.get("email", ""),
            password=validated_data["password"],
            role=validated_data["role"],
            display_name=validated_data.get("display_name", ""),
            phone_number=validated_data.get("phone_number", ""),
            vehicle_model=validated_data.get("vehicle_model", ""),
        )

        # Mechanics go online as soon as they register
        if user.role == Role.MECHANIC:
            MechanicProfile.objects.create(
                user=user,
                is_online=True,
                rating=getattr(settings, "MECHANIC_DEFAULT_RATING", 5.0),
                **mechanic_fields,
            )

        return user


class LocationUpdateSerializer(serializers.Serializer):
    """Serializer for a participant GPS position report."""
    latitude = serializers.DecimalField(max_digits=9, decimal_places=6, min_value=-90, max_value=90)
    longitude = serializers.DecimalField(max_digits=9, decimal_places=6, min_value=-180, max_value=180)
