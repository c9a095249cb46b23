from decimal import Decimal

from django.test import TestCase
from rest_framework.test import APIRequestFactory, force_authenticate

from accounts.models import Role, User
from assistance.models import OfferStatus, RequestStatus
from services.negotiation import accept_offer, submit_counter_offer
from services.request_lifecycle import create_service_request
from .models import MechanicProfile
from .views import (
	MechanicAcceptCounterView,
	MechanicCurrentJobView,
	MechanicJobHistoryView,
	MechanicJobStatusView,
	MechanicOpenRequestsView,
	MechanicProfileView,
	MechanicRejectCounterView,
	MechanicStatusView,
	MechanicSubmitOfferView,
)


class MechanicApiTests(TestCase):
	def setUp(self):
		self.factory = APIRequestFactory()
		self.driver = User.objects.create_user(username='yassine', password='pass1234', role=Role.DRIVER)
		self.mechanic = User.objects.create_user(
			username='ahmed',
			password='pass1234',
			role=Role.MECHANIC,
			display_name='Ahmed Benali'
		)
		self.profile = MechanicProfile.objects.create(user=self.mechanic, is_online=True, rating=4.8)
		self.service_request = create_service_request(self.driver, 'batterie morte', 33.57, -7.59).request

	def call(self, view, method='post', data=None, user=None, **kwargs):
		request = getattr(self.factory, method)('/api/mechanic/', data or {}, format='json')
		force_authenticate(request, user=user or self.mechanic)
		return view.as_view()(request, **kwargs)

	def submit(self, price=150, **extra):
		return self.call(
			MechanicSubmitOfferView,
			data={'price': price, **extra},
			request_id=self.service_request.id
		)

	def test_driver_cannot_use_mechanic_endpoints(self):
		response = self.call(MechanicOpenRequestsView, method='get', user=self.driver)
		self.assertEqual(response.status_code, 403)

	def test_profile_update(self):
		response = self.call(
			MechanicProfileView,
			method='patch',
			data={'base_price': '200.00', 'specialties': ['Moteur'], 'rating': 1.0}
		)

		self.assertEqual(response.status_code, 200)
		self.profile.refresh_from_db()
		self.assertEqual(self.profile.base_price, Decimal('200.00'))
		self.assertEqual(self.profile.specialties, ['Moteur'])
		self.assertEqual(self.profile.rating, 4.8)

	def test_going_offline_hides_queue(self):
		response = self.call(MechanicOpenRequestsView, method='get')
		self.assertEqual(response.data['count'], 1)

		response = self.call(MechanicStatusView, method='put', data={'is_online': False})
		self.assertEqual(response.status_code, 200)
		self.profile.refresh_from_db()
		self.assertFalse(self.profile.is_online)

		response = self.call(MechanicOpenRequestsView, method='get')
		self.assertEqual(response.data['count'], 0)
		self.assertFalse(response.data['is_online'])

		response = self.submit()
		self.assertEqual(response.status_code, 409)
		self.assertEqual(response.data['error'], 'mechanic_not_available')

	def test_submit_and_revise_offer(self):
		response = self.submit(150, eta=20)
		self.assertEqual(response.status_code, 201)
		self.assertEqual(response.data['offer']['eta'], 20)
		self.assertEqual(response.data['offer']['available_actions'], ['revise'])

		response = self.submit(140)
		self.assertEqual(response.status_code, 200)
		self.assertEqual(response.data['offer']['price'], 140)
		self.assertEqual(response.data['offer']['original_price'], 150)

		response = self.call(MechanicOpenRequestsView, method='get')
		self.assertEqual(response.data['requests'][0]['status'], RequestStatus.OFFERING)
		self.assertEqual(len(response.data['requests'][0]['offers']), 1)

	def test_accept_counter_and_run_job(self):
		offer_id = self.submit(150).data['offer']['id']
		submit_counter_offer(self.driver, offer_id, 120)

		# Echoing a price other than the driver's counter is a conflict
		response = self.call(
			MechanicAcceptCounterView,
			data={'price': 110},
			request_id=self.service_request.id,
			offer_id=offer_id
		)
		self.assertEqual(response.status_code, 409)

		response = self.call(
			MechanicAcceptCounterView,
			data={'price': 120},
			request_id=self.service_request.id,
			offer_id=offer_id
		)
		self.assertEqual(response.status_code, 200)
		self.assertEqual(response.data['job']['status'], RequestStatus.ACCEPTED)

		response = self.call(MechanicCurrentJobView, method='get')
		self.assertTrue(response.data['has_active_job'])
		self.assertEqual(response.data['next_status'], RequestStatus.EN_ROUTE)

		for status in (RequestStatus.EN_ROUTE, RequestStatus.ARRIVED, RequestStatus.COMPLETED):
			response = self.call(
				MechanicJobStatusView, data={'status': status}, request_id=self.service_request.id
			)
			self.assertEqual(response.status_code, 200)
			self.assertEqual(response.data['job']['status'], status)

		self.assertIsNone(response.data['next_status'])
		response = self.call(MechanicJobHistoryView, method='get')
		self.assertEqual(response.data['count'], 1)

	def test_skipping_a_step_is_rejected(self):
		offer_id = self.submit(150).data['offer']['id']
		accept_offer(self.driver, self.service_request.id, offer_id)

		response = self.call(
			MechanicJobStatusView,
			data={'status': RequestStatus.COMPLETED},
			request_id=self.service_request.id
		)

		self.assertEqual(response.status_code, 409)
		self.assertEqual(response.data['error'], 'invalid_transition')

	def test_reject_counter(self):
		offer_id = self.submit(150).data['offer']['id']
		submit_counter_offer(self.driver, offer_id, 100)

		response = self.call(MechanicRejectCounterView, offer_id=offer_id)

		self.assertEqual(response.status_code, 200)
		self.assertEqual(response.data['offer']['price'], 150)
		self.assertEqual(response.data['offer']['status'], OfferStatus.PENDING)
