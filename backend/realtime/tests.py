from asgiref.sync import async_to_sync, sync_to_async
from channels.layers import get_channel_layer
from channels.testing import WebsocketCommunicator
from django.contrib.auth.models import AnonymousUser
from django.test import TestCase
from rest_framework_simplejwt.tokens import AccessToken

from accounts.models import Role, User
from mechanics.models import MechanicProfile
from services.negotiation import accept_offer, submit_counter_offer, submit_offer
from services.request_lifecycle import ActiveRequestExistsError, create_service_request
from .consumers import DriverConsumer
from .middleware import JWTOrCookieAuthMiddleware
from .notifications import OPEN_QUEUE_GROUP, driver_group, mechanic_group


class NotificationTests(TestCase):
	"""Engine commands emit coarse events once their transaction commits."""

	def setUp(self):
		self.layer = get_channel_layer()
		async_to_sync(self.layer.flush)()

		self.driver = User.objects.create_user(username='yassine', password='pass1234', role=Role.DRIVER)
		self.m1 = User.objects.create_user(username='ahmed', password='pass1234', role=Role.MECHANIC)
		self.m2 = User.objects.create_user(username='karim', password='pass1234', role=Role.MECHANIC)
		MechanicProfile.objects.create(user=self.m1, is_online=True)
		MechanicProfile.objects.create(user=self.m2, is_online=True)

	def listen(self, group, channel):
		async_to_sync(self.layer.group_add)(group, channel)

	def receive(self, channel):
		return async_to_sync(self.layer.receive)(channel)

	def test_new_request_reaches_online_mechanics(self):
		self.listen(OPEN_QUEUE_GROUP, 'queue-listener')

		with self.captureOnCommitCallbacks(execute=True):
			service_request = create_service_request(self.driver, 'batterie morte', 33.57, -7.59).request

		event = self.receive('queue-listener')
		self.assertEqual(event['type'], 'request_opened')
		self.assertEqual(event['request_id'], service_request.id)
		self.assertEqual(event['status'], 'PENDING')

	def test_offer_and_counter_events(self):
		service_request = create_service_request(self.driver, 'batterie morte', 33.57, -7.59).request
		self.listen(driver_group(self.driver.id), 'driver-listener')
		self.listen(mechanic_group(self.m1.id), 'mechanic-listener')

		with self.captureOnCommitCallbacks(execute=True):
			offer = submit_offer(self.m1, service_request.id, 150).offer

		event = self.receive('driver-listener')
		self.assertEqual(event['type'], 'offer_updated')
		self.assertEqual(event['offer_id'], offer.id)
		self.assertEqual(event['action'], 'offer_received')

		with self.captureOnCommitCallbacks(execute=True):
			submit_counter_offer(self.driver, offer.id, 120)

		event = self.receive('mechanic-listener')
		self.assertEqual(event['type'], 'offer_updated')
		self.assertEqual(event['action'], 'counter_offer')
		self.assertEqual(event['price'], '120.00')

	def test_acceptance_tells_winner_and_losers(self):
		service_request = create_service_request(self.driver, 'batterie morte', 33.57, -7.59).request
		winner = submit_offer(self.m1, service_request.id, 150).offer
		submit_offer(self.m2, service_request.id, 180)
		self.listen(mechanic_group(self.m1.id), 'winner')
		self.listen(mechanic_group(self.m2.id), 'loser')

		with self.captureOnCommitCallbacks(execute=True):
			accept_offer(self.driver, service_request.id, winner.id)

		winner_events = [self.receive('winner'), self.receive('winner')]
		self.assertEqual(
			sorted(e['type'] for e in winner_events), ['offer_updated', 'request_updated']
		)
		loser_event = self.receive('loser')
		self.assertEqual(loser_event['type'], 'request_closed')
		self.assertEqual(loser_event['request_id'], service_request.id)

	def test_no_event_when_command_fails(self):
		self.listen(OPEN_QUEUE_GROUP, 'queue-listener')
		create_service_request(self.driver, 'batterie morte', 33.57, -7.59)

		with self.captureOnCommitCallbacks(execute=True) as callbacks:
			with self.assertRaises(ActiveRequestExistsError):
				create_service_request(self.driver, 'encore', 33.57, -7.59)

		self.assertEqual(callbacks, [])


class ConsumerTests(TestCase):
	async def test_anonymous_connection_is_refused(self):
		communicator = WebsocketCommunicator(DriverConsumer.as_asgi(), '/ws/driver/')
		communicator.scope['user'] = AnonymousUser()

		connected, _ = await communicator.connect()

		self.assertFalse(connected)

	async def test_driver_receives_request_updates(self):
		driver = User(id=4242, username='yassine', role=Role.DRIVER)
		communicator = WebsocketCommunicator(DriverConsumer.as_asgi(), '/ws/driver/')
		communicator.scope['user'] = driver

		connected, _ = await communicator.connect()
		self.assertTrue(connected)
		hello = await communicator.receive_json_from()
		self.assertEqual(hello['type'], 'connection_established')

		await get_channel_layer().group_send(driver_group(4242), {
			'type': 'request_updated',
			'request_id': 7,
			'status': 'EN_ROUTE',
			'message': 'Your mechanic is on the way.',
		})
		event = await communicator.receive_json_from()
		self.assertEqual(event['type'], 'request_updated')
		self.assertEqual(event['status'], 'EN_ROUTE')

		await communicator.disconnect()

	async def test_wrong_role_is_disconnected(self):
		mechanic = User(id=4343, username='ahmed', role=Role.MECHANIC)
		communicator = WebsocketCommunicator(DriverConsumer.as_asgi(), '/ws/driver/')
		communicator.scope['user'] = mechanic

		await communicator.connect()
		error = await communicator.receive_json_from()

		self.assertEqual(error['type'], 'error')
		await communicator.disconnect()


class SocketAuthTests(TestCase):
	def driver_socket(self, query):
		app = JWTOrCookieAuthMiddleware(DriverConsumer.as_asgi())
		return WebsocketCommunicator(app, f'/ws/driver/{query}')

	async def test_access_token_in_query_string_connects(self):
		driver = await sync_to_async(User.objects.create_user)(
			username='yassine', password='pass1234', role=Role.DRIVER
		)
		communicator = self.driver_socket(f'?token={AccessToken.for_user(driver)}')

		connected, _ = await communicator.connect()
		self.assertTrue(connected)
		hello = await communicator.receive_json_from()
		self.assertEqual(hello['type'], 'connection_established')

		await communicator.disconnect()

	async def test_garbage_token_is_refused(self):
		communicator = self.driver_socket('?token=not-a-jwt')

		connected, _ = await communicator.connect()

		self.assertFalse(connected)

	async def test_missing_token_without_session_is_refused(self):
		communicator = self.driver_socket('')

		connected, _ = await communicator.connect()

		self.assertFalse(connected)
