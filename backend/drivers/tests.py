from decimal import Decimal
from unittest.mock import patch

from django.db import OperationalError
from django.test import TestCase
from rest_framework.test import APIRequestFactory, force_authenticate

from accounts.models import Role, User
from assistance.models import Offer, OfferStatus, RequestStatus, ServiceRequest
from mechanics.models import MechanicProfile
from services.negotiation import submit_offer
from .views.info import DriverNearbyMechanicsView, DriverRequestHistoryView
from .views.offers import DriverCancelCounterView, DriverCounterOfferView, DriverDeclineOfferView
from .views.requests import (
	DriverAcceptOfferView,
	DriverCancelRequestView,
	DriverCreateRequestView,
	DriverCurrentRequestView,
)


class DriverApiTests(TestCase):
	def setUp(self):
		self.factory = APIRequestFactory()
		self.driver = User.objects.create_user(
			username='yassine',
			password='pass1234',
			role=Role.DRIVER,
			display_name='Yassine'
		)
		self.mechanic = User.objects.create_user(
			username='ahmed',
			password='pass1234',
			role=Role.MECHANIC,
			display_name='Ahmed Benali',
			current_latitude=Decimal('33.573100'),
			current_longitude=Decimal('-7.589800')
		)
		MechanicProfile.objects.create(user=self.mechanic, is_online=True, rating=4.8)

	def call(self, view, method='post', data=None, user=None, **kwargs):
		request = getattr(self.factory, method)('/api/driver/', data or {}, format='json')
		force_authenticate(request, user=user or self.driver)
		return view.as_view()(request, **kwargs)

	def create_request(self):
		response = self.call(DriverCreateRequestView, data={
			'problem_description': 'batterie morte',
			'latitude': 33.57,
			'longitude': -7.59,
		})
		self.assertEqual(response.status_code, 201)
		return ServiceRequest.objects.get(pk=response.data['request']['id'])

	def test_create_request(self):
		response = self.call(DriverCreateRequestView, data={
			'problem_description': 'batterie morte',
			'latitude': 33.57,
			'longitude': -7.59,
		})

		self.assertEqual(response.status_code, 201)
		self.assertTrue(response.data['success'])
		self.assertEqual(response.data['request']['status'], RequestStatus.PENDING)
		self.assertEqual(response.data['request']['offers'], [])

	def test_second_request_conflicts(self):
		self.create_request()

		response = self.call(DriverCreateRequestView, data={
			'problem_description': 'pneu crevé',
			'latitude': 33.57,
			'longitude': -7.59,
		})

		self.assertEqual(response.status_code, 409)
		self.assertEqual(response.data['error'], 'active_request_exists')
		self.assertFalse(response.data['success'])

	def test_mechanic_cannot_use_driver_endpoints(self):
		response = self.call(DriverCurrentRequestView, method='get', user=self.mechanic)
		self.assertEqual(response.status_code, 403)

	def test_current_request_polling(self):
		response = self.call(DriverCurrentRequestView, method='get')
		self.assertFalse(response.data['has_active_request'])
		self.assertEqual(response.data['poll_interval_seconds'], 3)

		service_request = self.create_request()
		offer = submit_offer(self.mechanic, service_request.id, 150).offer

		response = self.call(DriverCurrentRequestView, method='get')

		self.assertTrue(response.data['has_active_request'])
		self.assertEqual(response.data['status'], RequestStatus.OFFERING)
		self.assertFalse(response.data['mechanic_assigned'])
		offers = response.data['request']['offers']
		self.assertEqual(len(offers), 1)
		self.assertEqual(offers[0]['id'], offer.id)
		self.assertEqual(offers[0]['available_actions'], ['accept', 'counter', 'decline'])

	@patch('services.request_lifecycle.lifecycle.active_request_for_driver', side_effect=OperationalError('down'))
	def test_current_request_when_store_is_down(self, mock_read):
		response = self.call(DriverCurrentRequestView, method='get')

		self.assertEqual(response.status_code, 503)
		self.assertTrue(response.data['effect_unknown'])

	def test_negotiate_then_accept(self):
		service_request = self.create_request()
		offer = submit_offer(self.mechanic, service_request.id, 150).offer

		response = self.call(DriverCounterOfferView, data={'price': 120}, offer_id=offer.id)
		self.assertEqual(response.status_code, 200)
		self.assertEqual(response.data['offer']['status'], OfferStatus.NEGOTIATING)
		self.assertEqual(response.data['offer']['available_actions'], ['cancel_counter'])

		# Accept is not available while the mechanic considers the counter
		response = self.call(
			DriverAcceptOfferView, request_id=service_request.id, offer_id=offer.id
		)
		self.assertEqual(response.status_code, 409)

		response = self.call(DriverCancelCounterView, data={'original_price': 150}, offer_id=offer.id)
		self.assertEqual(response.status_code, 200)
		self.assertEqual(response.data['offer']['price'], 150)

		response = self.call(
			DriverAcceptOfferView, request_id=service_request.id, offer_id=offer.id
		)
		self.assertEqual(response.status_code, 200)
		self.assertEqual(response.data['request']['status'], RequestStatus.ACCEPTED)
		self.assertEqual(response.data['request']['mechanic']['user_id'], self.mechanic.id)

	def test_decline_offer(self):
		service_request = self.create_request()
		offer = submit_offer(self.mechanic, service_request.id, 150).offer

		response = self.call(DriverDeclineOfferView, offer_id=offer.id)

		self.assertEqual(response.status_code, 200)
		self.assertEqual(response.data['offer']['status'], OfferStatus.REJECTED)
		self.assertEqual(response.data['offer']['available_actions'], [])

	def test_counter_on_unknown_offer(self):
		response = self.call(DriverCounterOfferView, data={'price': 120}, offer_id=424242)

		self.assertEqual(response.status_code, 404)
		self.assertEqual(response.data['error'], 'offer_not_found')

	def test_counter_requires_positive_price(self):
		service_request = self.create_request()
		offer = submit_offer(self.mechanic, service_request.id, 150).offer

		response = self.call(DriverCounterOfferView, data={'price': 0}, offer_id=offer.id)

		self.assertEqual(response.status_code, 400)
		offer.refresh_from_db()
		self.assertEqual(offer.status, OfferStatus.PENDING)

	def test_cancel_request_and_history(self):
		service_request = self.create_request()

		response = self.call(
			DriverCancelRequestView, data={'reason': 'Réparé'}, request_id=service_request.id
		)
		self.assertEqual(response.status_code, 200)
		self.assertEqual(response.data['request']['status'], RequestStatus.CANCELLED)

		response = self.call(DriverRequestHistoryView, method='get')
		self.assertEqual(response.data['count'], 1)
		self.assertEqual(response.data['requests'][0]['cancellation_reason'], 'Réparé')

	def test_nearby_mechanics_sorted_by_distance(self):
		far = User.objects.create_user(
			username='karim',
			password='pass1234',
			role=Role.MECHANIC,
			current_latitude=Decimal('33.600000'),
			current_longitude=Decimal('-7.600000')
		)
		MechanicProfile.objects.create(user=far, is_online=True)
		offline = User.objects.create_user(
			username='offline',
			password='pass1234',
			role=Role.MECHANIC,
			current_latitude=Decimal('33.573100'),
			current_longitude=Decimal('-7.589800')
		)
		MechanicProfile.objects.create(user=offline, is_online=False)

		response = self.call(DriverNearbyMechanicsView, data={'latitude': 33.5731, 'longitude': -7.5898})

		self.assertEqual(response.status_code, 200)
		self.assertEqual([m['user_id'] for m in response.data['mechanics']], [self.mechanic.id, far.id])
		self.assertEqual(response.data['mechanics'][0]['distance_meters'], 0)

	def test_nearby_mechanics_respects_radius(self):
		response = self.call(
			DriverNearbyMechanicsView,
			data={'latitude': 34.0209, 'longitude': -6.8416, 'radius': 5000}
		)

		self.assertEqual(response.data['count'], 0)
