from datetime import timedelta
from decimal import Decimal
from io import StringIO
from unittest.mock import patch

from django.core.management import call_command
from django.db import IntegrityError, OperationalError, transaction
from django.db.models.query import QuerySet
from django.test import TestCase
from django.utils import timezone

from accounts.models import Role, User
from mechanics.models import MechanicProfile
from services.matching import (
	ACCEPT,
	ACCEPT_COUNTER,
	CANCEL_COUNTER,
	COUNTER,
	DECLINE,
	REJECT_COUNTER,
	REVISE,
	actions_for,
	active_job_for_mechanic,
	active_request_for_driver,
	open_requests_for_mechanic,
)
from services.negotiation import (
	accept_offer,
	cancel_counter_offer,
	decline_offer,
	mechanic_accepts_counter,
	reject_counter_offer,
	submit_counter_offer,
	submit_offer,
)
from services.negotiation.offers import _commit_acceptance, load_offer
from services.request_lifecycle import (
	ActiveRequestExistsError,
	InvalidInputError,
	InvalidTransitionError,
	MechanicNotAvailableError,
	OfferNotActionableError,
	OfferNotFoundError,
	PermissionDeniedError,
	RequestNotAvailableError,
	RequestNotFoundError,
	UpstreamUnavailableError,
	cancel_service_request,
	create_service_request,
	get_active_request,
	reconcile_acceptances,
	transition_status,
)
from .models import Offer, OfferStatus, RequestStatus, ServiceRequest


def make_driver(username='driver'):
	return User.objects.create_user(
		username=username,
		password='pass1234',
		role=Role.DRIVER,
		display_name=username.title(),
		vehicle_model='Dacia Logan'
	)


def make_mechanic(username='mechanic', online=True, rating=4.8):
	user = User.objects.create_user(
		username=username,
		password='pass1234',
		role=Role.MECHANIC,
		display_name=username.title()
	)
	MechanicProfile.objects.create(user=user, is_online=online, rating=rating)
	return user


class AssistanceTestCase(TestCase):
	def setUp(self):
		self.driver = make_driver()
		self.m1 = make_mechanic('ahmed')
		self.m2 = make_mechanic('karim', rating=4.9)

	def open_request(self, driver=None):
		result = create_service_request(driver or self.driver, 'batterie morte', 33.57, -7.59)
		return result.request

	def assertAssignedIntegrity(self, service_request):
		service_request.refresh_from_db()
		self.assertIsNotNone(service_request.mechanic_id)
		self.assertIsNotNone(service_request.accepted_offer_id)
		self.assertEqual(service_request.accepted_offer.status, OfferStatus.ACCEPTED)
		self.assertEqual(service_request.accepted_offer.mechanic_id, service_request.mechanic_id)
		self.assertEqual(
			Offer.objects.filter(request=service_request, status=OfferStatus.ACCEPTED).count(), 1
		)


class RequestLifecycleTests(AssistanceTestCase):
	def test_create_request_starts_pending_without_offers(self):
		service_request = self.open_request()

		self.assertEqual(service_request.status, RequestStatus.PENDING)
		self.assertEqual(service_request.problem_description, 'batterie morte')
		self.assertEqual(service_request.latitude, Decimal('33.570000'))
		self.assertEqual(service_request.longitude, Decimal('-7.590000'))
		self.assertEqual(service_request.offers.count(), 0)
		self.assertIsNone(service_request.mechanic_id)

	def test_second_active_request_is_rejected(self):
		self.open_request()

		with self.assertRaises(ActiveRequestExistsError):
			self.open_request()

		self.assertEqual(ServiceRequest.objects.filter(driver=self.driver).count(), 1)

	def test_concurrent_create_hits_active_request_constraint(self):
		ServiceRequest.objects.create(
			driver=self.driver,
			status=RequestStatus.PENDING,
			problem_description='pneu crevé',
			latitude=33.57,
			longitude=-7.59
		)

		# Other request committed after the existence check ran
		with patch.object(QuerySet, 'exists', return_value=False):
			with self.assertRaises(ActiveRequestExistsError):
				self.open_request()

		self.assertEqual(ServiceRequest.objects.filter(driver=self.driver).count(), 1)

	def test_new_request_allowed_after_cancellation(self):
		first = self.open_request()
		cancel_service_request(self.driver, first.id)

		second = self.open_request()

		self.assertNotEqual(first.id, second.id)
		self.assertEqual(ServiceRequest.objects.active().filter(driver=self.driver).count(), 1)

	def test_create_request_validates_input(self):
		with self.assertRaises(InvalidInputError):
			create_service_request(self.driver, '   ', 33.57, -7.59)
		with self.assertRaises(InvalidInputError):
			create_service_request(self.driver, 'pneu crevé', None, -7.59)
		with self.assertRaises(InvalidInputError):
			create_service_request(self.driver, 'pneu crevé', 120, -7.59)

	def test_mechanic_cannot_create_request(self):
		with self.assertRaises(PermissionDeniedError):
			create_service_request(self.m1, 'batterie morte', 33.57, -7.59)

	def test_mechanic_drives_job_to_completion(self):
		service_request = self.open_request()
		offer = submit_offer(self.m1, service_request.id, 150).offer
		accept_offer(self.driver, service_request.id, offer.id)

		for status in (RequestStatus.EN_ROUTE, RequestStatus.ARRIVED, RequestStatus.COMPLETED):
			result = transition_status(self.m1, service_request.id, status)
			self.assertEqual(result.request.status, status)

		service_request.refresh_from_db()
		self.assertIsNotNone(service_request.completed_at)
		self.assertAssignedIntegrity(service_request)

		self.driver.refresh_from_db()
		self.m1.refresh_from_db()
		self.assertEqual(self.driver.completed_jobs, 1)
		self.assertEqual(self.m1.completed_jobs, 1)
		self.assertIsNone(get_active_request(self.driver))
		self.assertIsNone(get_active_request(self.m1))

	def test_illegal_transitions_are_rejected(self):
		service_request = self.open_request()

		# Nobody is assigned yet
		with self.assertRaises(PermissionDeniedError):
			transition_status(self.m1, service_request.id, RequestStatus.EN_ROUTE)
		# Acceptance only happens through an offer
		with self.assertRaises(InvalidTransitionError):
			transition_status(self.driver, service_request.id, RequestStatus.ACCEPTED)

		offer = submit_offer(self.m1, service_request.id, 150).offer
		accept_offer(self.driver, service_request.id, offer.id)

		# Steps cannot be skipped
		with self.assertRaises(InvalidTransitionError):
			transition_status(self.m1, service_request.id, RequestStatus.COMPLETED)
		# Only the driver cancels
		with self.assertRaises(InvalidTransitionError):
			transition_status(self.m1, service_request.id, RequestStatus.CANCELLED)
		# Another mechanic cannot touch the job
		with self.assertRaises(PermissionDeniedError):
			transition_status(self.m2, service_request.id, RequestStatus.EN_ROUTE)

	def test_terminal_request_is_immutable(self):
		service_request = self.open_request()
		cancel_service_request(self.driver, service_request.id, reason='Réparé tout seul')

		with self.assertRaises(InvalidTransitionError):
			cancel_service_request(self.driver, service_request.id)

		service_request.refresh_from_db()
		self.assertEqual(service_request.status, RequestStatus.CANCELLED)
		self.assertEqual(service_request.cancellation_reason, 'Réparé tout seul')

	def test_driver_can_cancel_after_acceptance(self):
		service_request = self.open_request()
		offer = submit_offer(self.m1, service_request.id, 150).offer
		accept_offer(self.driver, service_request.id, offer.id)
		transition_status(self.m1, service_request.id, RequestStatus.EN_ROUTE)

		result = cancel_service_request(self.driver, service_request.id)

		self.assertEqual(result.request.status, RequestStatus.CANCELLED)
		self.assertEqual(result.extra['previous_status'], RequestStatus.EN_ROUTE)
		self.assertIsNone(get_active_request(self.m1))

	def test_other_driver_cannot_cancel(self):
		service_request = self.open_request()
		other = make_driver('other')

		with self.assertRaises(PermissionDeniedError):
			cancel_service_request(other, service_request.id)

	def test_unknown_request_raises_not_found(self):
		with self.assertRaises(RequestNotFoundError):
			transition_status(self.driver, 999999, RequestStatus.CANCELLED)
		with self.assertRaises(RequestNotFoundError):
			submit_offer(self.m1, 999999, 150)

	def test_active_request_lists_offers_newest_first(self):
		service_request = self.open_request()
		first = submit_offer(self.m1, service_request.id, 150).offer
		second = submit_offer(self.m2, service_request.id, 180).offer
		Offer.objects.filter(pk=first.pk).update(created_at=timezone.now() - timedelta(minutes=1))

		active = get_active_request(self.driver)

		self.assertEqual(active.id, service_request.id)
		self.assertEqual([o.id for o in active.offers.all()], [second.id, first.id])

	@patch('services.request_lifecycle.lifecycle.active_request_for_driver', side_effect=OperationalError('down'))
	def test_store_failure_surfaces_as_upstream_unavailable(self, mock_read):
		with self.assertRaises(UpstreamUnavailableError) as ctx:
			get_active_request(self.driver)

		self.assertTrue(ctx.exception.effect_unknown)
		self.assertEqual(ctx.exception.status_code, 503)


class NegotiationTests(AssistanceTestCase):
	def test_scenario_counter_offer_accepted_by_mechanic(self):
		service_request = self.open_request()
		self.assertEqual(service_request.status, RequestStatus.PENDING)

		offer = submit_offer(self.m1, service_request.id, 150).offer
		service_request.refresh_from_db()
		self.assertEqual(service_request.status, RequestStatus.OFFERING)
		self.assertEqual(offer.price, Decimal('150.00'))
		self.assertEqual(offer.original_price, Decimal('150.00'))
		self.assertEqual(offer.status, OfferStatus.PENDING)
		self.assertEqual(offer.eta, 15)
		self.assertEqual(offer.mechanic_name, 'Ahmed')
		self.assertEqual(offer.mechanic_rating, 4.8)

		submit_counter_offer(self.driver, offer.id, 120)
		offer.refresh_from_db()
		self.assertEqual(offer.status, OfferStatus.NEGOTIATING)
		self.assertEqual(offer.price, Decimal('120.00'))
		self.assertTrue(offer.is_counter_offer)

		mechanic_accepts_counter(self.m1, service_request.id, offer.id, 120)

		service_request.refresh_from_db()
		offer.refresh_from_db()
		self.assertEqual(service_request.status, RequestStatus.ACCEPTED)
		self.assertEqual(service_request.mechanic_id, self.m1.id)
		self.assertEqual(service_request.accepted_offer_id, offer.id)
		self.assertEqual(offer.status, OfferStatus.ACCEPTED)
		self.assertEqual(offer.price, Decimal('120.00'))
		self.assertAssignedIntegrity(service_request)

	def test_scenario_second_acceptance_conflicts(self):
		service_request = self.open_request()
		offer_one = submit_offer(self.m1, service_request.id, 150).offer
		offer_two = submit_offer(self.m2, service_request.id, 180).offer

		accept_offer(self.driver, service_request.id, offer_one.id)

		with self.assertRaises(RequestNotAvailableError):
			accept_offer(self.driver, service_request.id, offer_two.id)

		offer_two.refresh_from_db()
		self.assertEqual(offer_two.status, OfferStatus.PENDING)
		self.assertAssignedIntegrity(service_request)
		self.assertEqual(service_request.mechanic_id, self.m1.id)

	def test_scenario_cancelled_request_freezes_offers(self):
		service_request = self.open_request()
		offer_one = submit_offer(self.m1, service_request.id, 150).offer
		offer_two = submit_offer(self.m2, service_request.id, 180).offer

		cancel_service_request(self.driver, service_request.id)

		service_request.refresh_from_db()
		self.assertEqual(service_request.status, RequestStatus.CANCELLED)
		for offer in (offer_one, offer_two):
			offer.refresh_from_db()
			self.assertEqual(offer.status, OfferStatus.PENDING)

		with self.assertRaises(RequestNotAvailableError):
			accept_offer(self.driver, service_request.id, offer_one.id)
		with self.assertRaises(RequestNotAvailableError):
			submit_counter_offer(self.driver, offer_two.id, 100)
		with self.assertRaises(RequestNotAvailableError):
			submit_offer(self.m1, service_request.id, 140)
		self.assertEqual(actions_for(offer_one, self.driver), [])

	def test_scenario_mechanic_rejects_counter(self):
		service_request = self.open_request()
		offer = submit_offer(self.m1, service_request.id, 150).offer
		submit_counter_offer(self.driver, offer.id, 100)

		result = reject_counter_offer(self.m1, offer.id)

		offer.refresh_from_db()
		self.assertEqual(result.offer.price, Decimal('150.00'))
		self.assertEqual(offer.price, Decimal('150.00'))
		self.assertEqual(offer.status, OfferStatus.PENDING)
		self.assertFalse(offer.is_counter_offer)

	def test_counter_round_trip_restores_original_price(self):
		service_request = self.open_request()
		offer = submit_offer(self.m1, service_request.id, 150).offer

		for price in (120, 90, 130):
			submit_counter_offer(self.driver, offer.id, price)
			cancel_counter_offer(self.driver, offer.id, offer.original_price)
			offer.refresh_from_db()
			self.assertEqual(offer.price, offer.original_price)
			self.assertEqual(offer.original_price, Decimal('150.00'))
			self.assertEqual(offer.status, OfferStatus.PENDING)

	def test_rollback_with_wrong_original_price_is_rejected(self):
		service_request = self.open_request()
		offer = submit_offer(self.m1, service_request.id, 150).offer
		submit_counter_offer(self.driver, offer.id, 120)

		with self.assertRaises(InvalidInputError):
			cancel_counter_offer(self.driver, offer.id, 999)

		offer.refresh_from_db()
		self.assertEqual(offer.status, OfferStatus.NEGOTIATING)
		self.assertEqual(offer.price, Decimal('120.00'))

	def test_rollback_without_counter_conflicts(self):
		service_request = self.open_request()
		offer = submit_offer(self.m1, service_request.id, 150).offer

		with self.assertRaises(OfferNotActionableError):
			reject_counter_offer(self.m1, offer.id)

	def test_resubmission_updates_same_offer(self):
		service_request = self.open_request()
		offer = submit_offer(self.m1, service_request.id, 150).offer
		submit_counter_offer(self.driver, offer.id, 120)

		result = submit_offer(self.m1, service_request.id, 140, eta=25)

		self.assertFalse(result.extra['created'])
		self.assertEqual(result.offer.id, offer.id)
		offer.refresh_from_db()
		self.assertEqual(offer.price, Decimal('140.00'))
		self.assertEqual(offer.original_price, Decimal('150.00'))
		self.assertEqual(offer.eta, 25)
		self.assertEqual(offer.status, OfferStatus.PENDING)
		self.assertFalse(offer.is_counter_offer)
		self.assertEqual(Offer.objects.filter(request=service_request, mechanic=self.m1).count(), 1)

	def test_declined_offer_is_final(self):
		service_request = self.open_request()
		offer = submit_offer(self.m1, service_request.id, 150).offer

		decline_offer(self.driver, offer.id)

		offer.refresh_from_db()
		self.assertEqual(offer.status, OfferStatus.REJECTED)
		self.assertIsNotNone(offer.responded_at)
		with self.assertRaises(OfferNotActionableError):
			submit_offer(self.m1, service_request.id, 130)
		with self.assertRaises(OfferNotActionableError):
			accept_offer(self.driver, service_request.id, offer.id)

	def test_driver_cannot_accept_while_negotiating(self):
		service_request = self.open_request()
		offer = submit_offer(self.m1, service_request.id, 150).offer
		submit_counter_offer(self.driver, offer.id, 120)

		with self.assertRaises(OfferNotActionableError):
			accept_offer(self.driver, service_request.id, offer.id)

	def test_mechanic_accepts_stale_counter_conflicts(self):
		service_request = self.open_request()
		offer = submit_offer(self.m1, service_request.id, 150).offer
		submit_counter_offer(self.driver, offer.id, 120)
		submit_counter_offer(self.driver, offer.id, 110)

		with self.assertRaises(OfferNotActionableError):
			mechanic_accepts_counter(self.m1, service_request.id, offer.id, 120)

		service_request.refresh_from_db()
		self.assertEqual(service_request.status, RequestStatus.OFFERING)

	def test_ownership_is_enforced(self):
		service_request = self.open_request()
		offer = submit_offer(self.m1, service_request.id, 150).offer
		other_driver = make_driver('other')

		with self.assertRaises(PermissionDeniedError):
			submit_counter_offer(other_driver, offer.id, 100)
		with self.assertRaises(PermissionDeniedError):
			accept_offer(other_driver, service_request.id, offer.id)

		submit_counter_offer(self.driver, offer.id, 100)
		with self.assertRaises(PermissionDeniedError):
			reject_counter_offer(self.m2, offer.id)
		with self.assertRaises(PermissionDeniedError):
			mechanic_accepts_counter(self.m2, service_request.id, offer.id, 100)

	def test_offer_must_belong_to_request(self):
		service_request = self.open_request()
		other_request = self.open_request(make_driver('other'))
		offer = submit_offer(self.m1, other_request.id, 150).offer

		with self.assertRaises(OfferNotFoundError):
			accept_offer(self.driver, service_request.id, offer.id)

	def test_offline_mechanic_cannot_bid(self):
		service_request = self.open_request()
		offline = make_mechanic('offline', online=False)

		with self.assertRaises(MechanicNotAvailableError):
			submit_offer(offline, service_request.id, 150)

	def test_price_validation(self):
		service_request = self.open_request()

		for price in (None, '', 0, -10, 'abc'):
			with self.assertRaises(InvalidInputError):
				submit_offer(self.m1, service_request.id, price)

		offer = submit_offer(self.m1, service_request.id, 150).offer
		with self.assertRaises(InvalidInputError):
			submit_counter_offer(self.driver, offer.id, 0)

	def test_stale_acceptance_loses_to_committed_one(self):
		service_request = self.open_request()
		offer_one = submit_offer(self.m1, service_request.id, 150).offer
		offer_two = submit_offer(self.m2, service_request.id, 180).offer
		stale = load_offer(offer_two.id)

		accept_offer(self.driver, service_request.id, offer_one.id)

		# Second acceptance read the request while it was still open
		with self.assertRaises(RequestNotAvailableError):
			with transaction.atomic():
				_commit_acceptance(stale, expected_status=OfferStatus.PENDING)

		offer_two.refresh_from_db()
		self.assertEqual(offer_two.status, OfferStatus.PENDING)
		self.assertAssignedIntegrity(service_request)

	def test_concurrent_first_bid_hits_unique_offer_constraint(self):
		service_request = self.open_request()
		submit_offer(self.m1, service_request.id, 150)

		# Other bid committed after the lookup for an existing offer ran
		with patch.object(QuerySet, 'first', return_value=None):
			with self.assertRaises(OfferNotActionableError):
				submit_offer(self.m1, service_request.id, 170)

		offers = Offer.objects.filter(request=service_request, mechanic=self.m1)
		self.assertEqual(offers.count(), 1)
		self.assertEqual(offers.get().price, Decimal('150.00'))

	def test_second_accepted_offer_is_refused_by_database(self):
		service_request = self.open_request()
		offer_one = submit_offer(self.m1, service_request.id, 150).offer
		offer_two = submit_offer(self.m2, service_request.id, 180).offer
		accept_offer(self.driver, service_request.id, offer_one.id)

		with self.assertRaises(IntegrityError):
			with transaction.atomic():
				Offer.objects.filter(pk=offer_two.pk).update(status=OfferStatus.ACCEPTED)

		offer_two.refresh_from_db()
		self.assertEqual(offer_two.status, OfferStatus.PENDING)
		self.assertAssignedIntegrity(service_request)

	def test_failed_offer_write_rolls_back_request(self):
		service_request = self.open_request()
		offer = submit_offer(self.m1, service_request.id, 150).offer
		stale = load_offer(offer.id)
		submit_counter_offer(self.driver, offer.id, 120)

		with self.assertRaises(OfferNotActionableError):
			with transaction.atomic():
				_commit_acceptance(stale, expected_status=OfferStatus.PENDING)

		service_request.refresh_from_db()
		self.assertEqual(service_request.status, RequestStatus.OFFERING)
		self.assertIsNone(service_request.accepted_offer_id)
		self.assertIsNone(service_request.mechanic_id)


class VisibilityTests(AssistanceTestCase):
	def test_open_queue_shows_only_own_offer(self):
		service_request = self.open_request()
		own = submit_offer(self.m1, service_request.id, 150).offer
		submit_offer(self.m2, service_request.id, 180)

		queue = open_requests_for_mechanic(self.m1)

		self.assertEqual([r.id for r in queue], [service_request.id])
		self.assertEqual([o.id for o in queue[0].offers.all()], [own.id])

	def test_open_queue_newest_first_and_excludes_closed(self):
		first = self.open_request()
		second = self.open_request(make_driver('other'))
		ServiceRequest.objects.filter(pk=first.pk).update(created_at=timezone.now() - timedelta(minutes=5))
		closed = self.open_request(make_driver('third'))
		cancel_service_request(closed.driver, closed.id)

		queue = open_requests_for_mechanic(self.m1)

		self.assertEqual([r.id for r in queue], [second.id, first.id])

	def test_offline_mechanic_sees_empty_queue(self):
		self.open_request()
		profile = self.m1.mechanic_profile
		profile.is_online = False
		profile.save()

		self.assertEqual(open_requests_for_mechanic(self.m1), [])

	def test_available_actions_follow_offer_state(self):
		service_request = self.open_request()
		offer = submit_offer(self.m1, service_request.id, 150).offer
		service_request.refresh_from_db()

		self.assertEqual(actions_for(offer, self.driver, service_request), [ACCEPT, COUNTER, DECLINE])
		self.assertEqual(actions_for(offer, self.m1, service_request), [REVISE])
		self.assertEqual(actions_for(offer, self.m2, service_request), [])

		offer = submit_counter_offer(self.driver, offer.id, 120).offer
		self.assertEqual(actions_for(offer, self.driver, service_request), [CANCEL_COUNTER])
		self.assertEqual(actions_for(offer, self.m1, service_request), [ACCEPT_COUNTER, REJECT_COUNTER])

	def test_assigned_job_projection(self):
		service_request = self.open_request()
		offer = submit_offer(self.m1, service_request.id, 150).offer
		submit_offer(self.m2, service_request.id, 180)
		accept_offer(self.driver, service_request.id, offer.id)

		self.assertEqual(active_job_for_mechanic(self.m1).id, service_request.id)
		self.assertIsNone(active_job_for_mechanic(self.m2))
		self.assertEqual(open_requests_for_mechanic(self.m2), [])
		self.assertEqual(active_request_for_driver(self.driver).offers.count(), 2)


class ReconciliationTests(AssistanceTestCase):
	def setUp(self):
		super().setUp()
		self.service_request = self.open_request()
		self.offer = submit_offer(self.m1, self.service_request.id, 150).offer

	def test_repairs_offer_side_of_torn_acceptance(self):
		ServiceRequest.objects.filter(pk=self.service_request.pk).update(
			status=RequestStatus.ACCEPTED,
			mechanic=self.m1,
			accepted_offer=self.offer,
		)

		report = reconcile_acceptances()

		self.assertEqual(report['offers_repaired'], [self.offer.id])
		self.assertAssignedIntegrity(self.service_request)

	def test_repairs_request_side_of_torn_acceptance(self):
		Offer.objects.filter(pk=self.offer.pk).update(status=OfferStatus.ACCEPTED)

		report = reconcile_acceptances()

		self.assertEqual(report['requests_repaired'], [self.service_request.id])
		self.service_request.refresh_from_db()
		self.assertEqual(self.service_request.status, RequestStatus.ACCEPTED)
		self.assertEqual(self.service_request.mechanic_id, self.m1.id)
		self.assertAssignedIntegrity(self.service_request)

	def test_fills_missing_mechanic_on_assigned_request(self):
		Offer.objects.filter(pk=self.offer.pk).update(status=OfferStatus.ACCEPTED)
		ServiceRequest.objects.filter(pk=self.service_request.pk).update(
			status=RequestStatus.EN_ROUTE,
			accepted_offer=self.offer,
			mechanic=None,
		)

		report = reconcile_acceptances()

		self.assertEqual(report, {'offers_repaired': [], 'requests_repaired': [self.service_request.id]})
		self.assertAssignedIntegrity(self.service_request)
		self.assertEqual(self.service_request.status, RequestStatus.EN_ROUTE)

	def test_dry_run_reports_without_writing(self):
		Offer.objects.filter(pk=self.offer.pk).update(status=OfferStatus.ACCEPTED)

		out = StringIO()
		call_command('reconcile_acceptances', dry_run=True, stdout=out)

		self.assertIn('DRY RUN', out.getvalue())
		self.service_request.refresh_from_db()
		self.assertEqual(self.service_request.status, RequestStatus.OFFERING)

	def test_consistent_data_is_left_alone(self):
		accept_offer(self.driver, self.service_request.id, self.offer.id)

		report = reconcile_acceptances()

		self.assertEqual(report, {'offers_repaired': [], 'requests_repaired': []})

	def test_celery_task_runs_reconciliation(self):
		from assistance.tasks import reconcile_acceptances_task

		Offer.objects.filter(pk=self.offer.pk).update(status=OfferStatus.ACCEPTED)
		report = reconcile_acceptances_task.delay().get()

		self.assertEqual(report['requests_repaired'], [self.service_request.id])


class MaintenanceCommandTests(AssistanceTestCase):
	def test_cleanup_deletes_only_old_terminal_requests(self):
		old = self.open_request()
		submit_offer(self.m1, old.id, 150)
		cancel_service_request(self.driver, old.id)
		ServiceRequest.objects.filter(pk=old.pk).update(created_at=timezone.now() - timedelta(days=40))
		active = self.open_request()
		ServiceRequest.objects.filter(pk=active.pk).update(created_at=timezone.now() - timedelta(days=40))

		call_command('cleanup_old_data', days=30, stdout=StringIO())

		self.assertFalse(ServiceRequest.objects.filter(pk=old.pk).exists())
		self.assertFalse(Offer.objects.filter(request_id=old.pk).exists())
		self.assertTrue(ServiceRequest.objects.filter(pk=active.pk).exists())

	def test_seed_demo_is_idempotent(self):
		call_command('seed_demo', stdout=StringIO())
		call_command('seed_demo', stdout=StringIO())

		self.assertEqual(MechanicProfile.objects.filter(user__username__in=['ahmed', 'autoplus', 'karim']).count(), 3)
		self.assertTrue(User.objects.get(username='yassine').check_password('demo1234'))
