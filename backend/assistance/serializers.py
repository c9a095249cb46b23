from rest_framework import serializers

from accounts.serializers import UserSerializer
from mechanics.serializers import MechanicBasicSerializer
from services.matching import actions_for
from .models import Offer, ServiceRequest


class OfferSerializer(serializers.ModelSerializer):
    """
    Serializer for Offers.

    ``available_actions`` lists the commands the viewing user (``viewer`` in
    the serializer context) may send for this offer right now.
    """
    available_actions = serializers.SerializerMethodField()

    class Meta:
        model = Offer
        fields = ['id', 'request', 'mechanic', 'mechanic_name', 'mechanic_rating',
                  'price', 'original_price', 'is_counter_offer', 'eta', 'status',
                  'created_at', 'updated_at', 'responded_at', 'available_actions']
        read_only_fields = fields

    def get_available_actions(self, offer):
        viewer = self.context.get('viewer')
        service_request = self.context.get('service_request')
        return actions_for(offer, viewer, service_request)


class ServiceRequestSerializer(serializers.ModelSerializer):
    """Serializer for Service Requests, offers nested newest first"""
    driver = UserSerializer(read_only=True)
    mechanic = MechanicBasicSerializer(read_only=True, source='mechanic.mechanic_profile', default=None)
    offers = serializers.SerializerMethodField()

    class Meta:
        model = ServiceRequest
        fields = ['id', 'driver', 'mechanic', 'status', 'problem_description',
                  'latitude', 'longitude', 'accepted_offer', 'offers',
                  'created_at', 'updated_at', 'accepted_at', 'completed_at',
                  'cancelled_at', 'cancellation_reason']
        read_only_fields = fields

    def get_offers(self, service_request):
        context = {**self.context, 'service_request': service_request}
        offers = service_request.offers.all()
        return OfferSerializer(offers, many=True, context=context).data


class ServiceRequestCreateSerializer(serializers.Serializer):
    """Serializer for opening a service request"""
    problem_description = serializers.CharField(max_length=2000)
    latitude = serializers.DecimalField(max_digits=9, decimal_places=6, min_value=-90, max_value=90)
    longitude = serializers.DecimalField(max_digits=9, decimal_places=6, min_value=-180, max_value=180)


class ServiceRequestCancelSerializer(serializers.Serializer):
    """Serializer for request cancellation"""
    reason = serializers.CharField(required=False, allow_blank=True)


class OfferSubmitSerializer(serializers.Serializer):
    price = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=0.01)
    eta = serializers.IntegerField(required=False, min_value=1)


class CounterOfferSerializer(serializers.Serializer):
    price = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=0.01)


class PriceRollbackSerializer(serializers.Serializer):
    """Optional echo of the original bid, checked against the stored one"""
    original_price = serializers.DecimalField(max_digits=10, decimal_places=2, required=False)


class StatusUpdateSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=['EN_ROUTE', 'ARRIVED', 'COMPLETED'])
