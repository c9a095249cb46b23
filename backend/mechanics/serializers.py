from rest_framework import serializers
from mechanics.models import MechanicProfile
from accounts.serializers import UserSerializer


class MechanicProfileSerializer(serializers.ModelSerializer):
    """
    Full mechanic profile serializer
    """
    user = UserSerializer(read_only=True)

    class Meta:
        model = MechanicProfile
        fields = [
            "id",
            "user",
            "is_online",
            "rating",
            "base_price",
            "specialties",
            "vehicle_type",
            "bio",
        ]
        read_only_fields = ["id", "is_online", "rating"]


class MechanicBasicSerializer(serializers.ModelSerializer):
    """
    Lite version of mechanic info for request details and nearby lists
    (sent to drivers).
    """
    user_id = serializers.IntegerField(source="user.id", read_only=True)
    name = serializers.CharField(source="user.public_name", read_only=True)
    phone_number = serializers.CharField(source="user.phone_number", read_only=True)
    current_latitude = serializers.DecimalField(
        source="user.current_latitude", max_digits=9, decimal_places=6, read_only=True
    )
    current_longitude = serializers.DecimalField(
        source="user.current_longitude", max_digits=9, decimal_places=6, read_only=True
    )

    class Meta:
        model = MechanicProfile
        fields = [
            "user_id",
            "name",
            "phone_number",
            "rating",
            "base_price",
            "specialties",
            "vehicle_type",
            "current_latitude",
            "current_longitude",
        ]


class MechanicStatusSerializer(serializers.Serializer):
    """
    Serializer for going online / offline.
    """
    is_online = serializers.BooleanField()
