from rest_framework import serializers


class NearbySearchSerializer(serializers.Serializer):
    """
    Validates the point a driver searches around.

    Expected body:
    {
        "latitude": <float>,
        "longitude": <float>,
        "radius": <meters, optional>
    }

    Without coordinates the driver's last reported position is used.
    """

    latitude = serializers.DecimalField(
        max_digits=9,
        decimal_places=6,
        required=False,
        min_value=-90,
        max_value=90,
        help_text="Latitude between -90 and 90 degrees."
    )

    longitude = serializers.DecimalField(
        max_digits=9,
        decimal_places=6,
        required=False,
        min_value=-180,
        max_value=180,
        help_text="Longitude between -180 and 180 degrees."
    )

    radius = serializers.IntegerField(required=False, min_value=1, max_value=200000)

    def validate(self, data):
        if ("latitude" in data) != ("longitude" in data):
            raise serializers.ValidationError("Send both latitude and longitude, or neither")
        return data
