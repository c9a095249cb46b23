from datetime import timedelta
from decimal import Decimal

from django.test import TestCase, override_settings
from django.utils import timezone
from rest_framework.test import APIRequestFactory, force_authenticate

from mechanics.models import MechanicProfile
from services.request_lifecycle import InvalidInputError
from .models import Role, User
from .services import participant_location, update_participant_location
from .views import LocationUpdateView, LoginView, MeView, RegisterView


class RegistrationTests(TestCase):
	def setUp(self):
		self.factory = APIRequestFactory()

	def test_register_driver(self):
		request = self.factory.post('/api/auth/register/', {
			'username': 'yassine',
			'password': 'pass1234',
			'email': 'yassine@gmail.com',
			'role': 'DRIVER',
			'display_name': 'Yassine Driver',
			'vehicle_model': 'Dacia Logan',
		}, format='json')
		response = RegisterView.as_view()(request)

		self.assertEqual(response.status_code, 201)
		self.assertIn('access', response.data['tokens'])
		user = User.objects.get(username='yassine')
		self.assertEqual(user.role, Role.DRIVER)
		self.assertEqual(response.data['user']['name'], 'Yassine Driver')
		self.assertFalse(MechanicProfile.objects.filter(user=user).exists())

	def test_register_mechanic_creates_online_profile(self):
		request = self.factory.post('/api/auth/register/', {
			'username': 'ahmed',
			'password': 'pass1234',
			'role': 'MECHANIC',
			'display_name': 'Ahmed Benali',
			'base_price': '150.00',
			'specialties': ['Batterie', 'Pneu'],
			'vehicle_type': 'car',
		}, format='json')
		response = RegisterView.as_view()(request)

		self.assertEqual(response.status_code, 201)
		profile = MechanicProfile.objects.get(user__username='ahmed')
		self.assertTrue(profile.is_online)
		self.assertEqual(profile.rating, 5.0)
		self.assertEqual(profile.base_price, Decimal('150.00'))
		self.assertEqual(profile.specialties, ['Batterie', 'Pneu'])

	def test_register_rejects_unknown_role(self):
		request = self.factory.post('/api/auth/register/', {
			'username': 'someone',
			'password': 'pass1234',
			'role': 'ADMIN',
		}, format='json')
		response = RegisterView.as_view()(request)

		self.assertEqual(response.status_code, 400)
		self.assertIn('role', response.data)

	def test_login_returns_tokens(self):
		User.objects.create_user(username='yassine', password='pass1234', role=Role.DRIVER)

		request = self.factory.post('/api/auth/login/', {'username': 'yassine', 'password': 'pass1234'}, format='json')
		response = LoginView.as_view()(request)
		self.assertEqual(response.status_code, 200)
		self.assertIn('refresh', response.data['tokens'])

		request = self.factory.post('/api/auth/login/', {'username': 'yassine', 'password': 'wrong'}, format='json')
		response = LoginView.as_view()(request)
		self.assertEqual(response.status_code, 400)

	def test_role_is_read_only_after_registration(self):
		user = User.objects.create_user(username='yassine', password='pass1234', role=Role.DRIVER)

		request = self.factory.patch('/api/auth/me/', {'role': 'MECHANIC', 'display_name': 'Yassine'}, format='json')
		force_authenticate(request, user=user)
		response = MeView.as_view()(request)

		self.assertEqual(response.status_code, 200)
		user.refresh_from_db()
		self.assertEqual(user.role, Role.DRIVER)
		self.assertEqual(user.display_name, 'Yassine')


@override_settings(LOCATION_UPDATE_MIN_INTERVAL_SECONDS=2)
class LocationUpdateTests(TestCase):
	def setUp(self):
		self.factory = APIRequestFactory()
		self.user = User.objects.create_user(username='yassine', password='pass1234', role=Role.DRIVER)

	def test_updates_are_throttled_per_participant(self):
		now = timezone.now()

		self.assertTrue(update_participant_location(self.user, 33.5731, -7.5898, now=now))
		self.assertFalse(update_participant_location(self.user, 33.58, -7.59, now=now + timedelta(seconds=1)))
		self.assertTrue(update_participant_location(self.user, 33.59, -7.60, now=now + timedelta(seconds=3)))

		self.user.refresh_from_db()
		self.assertEqual(self.user.current_latitude, Decimal('33.590000'))
		self.assertEqual(self.user.current_longitude, Decimal('-7.600000'))

	def test_stale_user_object_keeps_writing_after_another_device(self):
		now = timezone.now()
		other_device = User.objects.get(pk=self.user.pk)

		self.assertTrue(update_participant_location(other_device, 33.5731, -7.5898, now=now))
		self.assertFalse(update_participant_location(self.user, 33.58, -7.59, now=now + timedelta(seconds=1)))

		results = [
			update_participant_location(self.user, 33.60 + step / 100, -7.60, now=now + timedelta(seconds=10 * step))
			for step in range(1, 4)
		]
		self.assertEqual(results, [True, True, True])

		self.user.refresh_from_db()
		self.assertEqual(self.user.current_latitude, Decimal('33.630000'))

	def test_invalid_coordinates_are_rejected(self):
		with self.assertRaises(InvalidInputError):
			update_participant_location(self.user, 95, 0)
		with self.assertRaises(InvalidInputError):
			update_participant_location(self.user, 'north', 0)

	def test_default_location_when_never_reported(self):
		self.assertEqual(participant_location(self.user), (33.5731, -7.5898))

		update_participant_location(self.user, 34.02, -6.83)
		self.assertEqual(participant_location(self.user), (34.02, -6.83))

	def test_location_view_reports_throttled_write(self):
		first = self.factory.post('/api/auth/location/', {'latitude': 33.5731, 'longitude': -7.5898}, format='json')
		force_authenticate(first, user=self.user)
		response = LocationUpdateView.as_view()(first)
		self.assertEqual(response.status_code, 200)
		self.assertTrue(response.data['stored'])

		second = self.factory.post('/api/auth/location/', {'latitude': 33.5740, 'longitude': -7.5900}, format='json')
		force_authenticate(second, user=self.user)
		response = LocationUpdateView.as_view()(second)
		self.assertEqual(response.status_code, 200)
		self.assertFalse(response.data['stored'])
