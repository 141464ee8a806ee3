from unittest.mock import patch

from django.db import DatabaseError, OperationalError
from django.test import SimpleTestCase, TestCase, override_settings

from accounts.models import User
from common.types import AccessibilityRequirement, EntrySide, Location
from common.utils import distance_km, estimate_fare
from drivers.models import DriverProfile
from notifications.models import Notification
from rides.models import RideRequest, RideOffer, RideHistoryEntry, RideMessage
from services.matching import find_compatible_drivers, is_compatible, refresh_searching_rides
from services.payments import MockPaymentAuthorizer
from services.ride_management import (
	RideStore,
	TRANSITIONS,
	validate_transition,
	create_ride_request,
	accept_ride,
	reject_ride_offer,
	mark_arriving,
	start_ride,
	complete_ride,
	cancel_ride,
	update_ride_status,
	InvalidTransitionError,
	RideNoLongerAvailableError,
	DriverNotAvailableError,
	ActiveRideExistsError,
	InvalidArgumentError,
	PermissionDeniedError,
	UnauthenticatedError,
	PaymentDeclinedError,
)
from services.ride_management.history import record_ride_history
from rides.tasks import record_ride_history_task

PICKUP = Location(37.78825, -122.4324, 'Market St')
DROPOFF = Location(37.79825, -122.4124, 'Union Square')


def make_passenger(username='passenger'):
	return User.objects.create_user(
		username=username,
		password='pass1234',
		role='user',
		first_name='Pat',
	)


def make_driver(username, features=(), status='available', lat=None, lon=None, first_name=''):
	user = User.objects.create_user(
		username=username,
		password='driver1234',
		role='driver',
		first_name=first_name,
	)
	DriverProfile.objects.create(
		user=user,
		vehicle_number='KA-%s' % username,
		accessibility_features=list(features),
		status=status,
		current_latitude=lat,
		current_longitude=lon,
	)
	return user


def profile(user_id, features=(), status='available', lat=None, lon=None):
	"""Unsaved profile for pure matcher checks."""
	return DriverProfile(
		user_id=user_id,
		vehicle_number='V%d' % user_id,
		accessibility_features=list(features),
		status=status,
		current_latitude=lat,
		current_longitude=lon,
	)


class MatcherTests(SimpleTestCase):
	def test_entry_side_either_is_always_satisfied(self):
		requirement = AccessibilityRequirement(entry_side=EntrySide.EITHER)
		self.assertTrue(is_compatible(requirement, []))

	def test_left_entry_needs_literal_token(self):
		requirement = AccessibilityRequirement(entry_side=EntrySide.LEFT)
		self.assertFalse(is_compatible(requirement, ['right', 'wheelchair']))
		self.assertTrue(is_compatible(requirement, ['left']))

	def test_never_returns_driver_missing_a_requested_feature(self):
		requirement = AccessibilityRequirement(wheelchair=True, entry_side=EntrySide.RIGHT, assistance=True)
		pool = [
			profile(1, ['wheelchair', 'right']),
			profile(2, ['wheelchair', 'right', 'assistance']),
			profile(3, ['assistance', 'right']),
			profile(4, ['wheelchair', 'assistance', 'left']),
		]

		matched = find_compatible_drivers(requirement, pool)

		self.assertEqual([p.user_id for p in matched], [2])

	def test_unavailable_and_busy_drivers_are_excluded(self):
		requirement = AccessibilityRequirement(wheelchair=True)
		pool = [
			profile(1, ['wheelchair'], status='offline'),
			profile(2, ['wheelchair']),
			profile(3, ['wheelchair']),
		]

		matched = find_compatible_drivers(requirement, pool, busy_driver_ids={2})

		self.assertEqual([p.user_id for p in matched], [3])

	def test_nearest_first_then_unlocated_then_id(self):
		requirement = AccessibilityRequirement()
		pool = [
			profile(5),
			profile(4, lat=37.80, lon=-122.40),
			profile(3, lat=37.7883, lon=-122.4325),
			profile(2),
		]

		matched = find_compatible_drivers(requirement, pool, pickup=PICKUP)

		self.assertEqual([p.user_id for p in matched], [3, 4, 2, 5])


class TransitionTableTests(SimpleTestCase):
	def test_only_listed_edges_are_allowed(self):
		statuses = list(TRANSITIONS)
		for current in statuses:
			for new in statuses:
				if new in TRANSITIONS[current]:
					validate_transition(current, new)
				else:
					with self.assertRaises(InvalidTransitionError):
						validate_transition(current, new)

	def test_terminal_states_have_no_exits(self):
		self.assertEqual(TRANSITIONS['completed'], frozenset())
		self.assertEqual(TRANSITIONS['cancelled'], frozenset())


class RideStoreTests(TestCase):
	def setUp(self):
		self.store = RideStore()
		self.passenger = make_passenger()
		self.ride_id = self.store.create(
			passenger=self.passenger,
			pickup_latitude=PICKUP.latitude,
			pickup_longitude=PICKUP.longitude,
			dropoff_latitude=DROPOFF.latitude,
			dropoff_longitude=DROPOFF.longitude,
		)

	def test_conditional_update_only_applies_to_expected_status(self):
		self.assertTrue(self.store.update(self.ride_id, status='cancelled', expected_status='searching'))
		self.assertFalse(self.store.update(self.ride_id, status='assigned', expected_status='searching'))
		self.assertEqual(self.store.get(self.ride_id).status, 'cancelled')

	def test_subscription_receives_initial_state_then_updates_until_cancelled(self):
		seen = []
		subscription = self.store.subscribe(self.ride_id, lambda ride: seen.append(ride.status))

		self.store.update(self.ride_id, status='cancelled', expected_status='searching')
		subscription.cancel()
		self.store.update(self.ride_id, cancellation_reason='late')

		self.assertEqual(seen, ['searching', 'cancelled'])

	def test_status_subscription_tracks_live_list(self):
		sizes = []
		subscription = self.store.subscribe_status('searching', lambda rides: sizes.append(len(rides)))

		self.store.update(self.ride_id, status='cancelled', expected_status='searching')
		subscription.cancel()

		self.assertEqual(sizes, [1, 0])

	def test_get_retries_transient_errors(self):
		store = RideStore(read_retries=3, backoff=0)
		real_select = RideRequest.objects.select_related
		calls = {'n': 0}

		def flaky(*args, **kwargs):
			calls['n'] += 1
			if calls['n'] == 1:
				raise OperationalError('database is locked')
			return real_select(*args, **kwargs)

		with patch.object(RideRequest.objects, 'select_related', side_effect=flaky):
			ride = store.get(self.ride_id)

		self.assertEqual(ride.id, self.ride_id)
		self.assertEqual(calls['n'], 2)


class StaleReadStore(RideStore):
	"""Hands out a snapshot taken before another driver won the ride."""

	def __init__(self, snapshot):
		super().__init__()
		self.snapshot = snapshot

	def get(self, ride_id):
		if self.snapshot is not None:
			snapshot, self.snapshot = self.snapshot, None
			return snapshot
		return super().get(ride_id)


class RideLifecycleTests(TestCase):
	def setUp(self):
		self.passenger = make_passenger()
		self.driver = make_driver('maria', ['wheelchair'], lat=37.7885, lon=-122.4330, first_name='Maria')
		self.other_driver = make_driver('omar', ['wheelchair', 'left'], lat=37.79, lon=-122.44)

	def book(self, options=('wheelchair', 'either')):
		return create_ride_request(self.passenger, PICKUP, DROPOFF, list(options)).ride

	def test_create_computes_distance_and_fare_once(self):
		ride = self.book()

		recomputed = distance_km(PICKUP, DROPOFF)
		self.assertEqual(ride.status, 'searching')
		self.assertAlmostEqual(ride.distance_km, recomputed, delta=1e-6)
		self.assertAlmostEqual(ride.fare, estimate_fare(recomputed), places=6)
		self.assertTrue(ride.wheelchair)
		self.assertEqual(ride.entry_side, 'either')

	def test_distance_and_fare_use_stored_coordinates(self):
		pickup = Location(37.78825049, -122.43240049, 'Market St')
		ride = create_ride_request(self.passenger, pickup, DROPOFF, []).ride

		stored = RideRequest.objects.get(id=ride.id)
		recomputed = distance_km(stored.pickup, stored.dropoff)
		self.assertAlmostEqual(stored.distance_km, recomputed, delta=1e-6)
		self.assertAlmostEqual(stored.fare, estimate_fare(recomputed), places=6)

	def test_create_offers_only_compatible_drivers(self):
		ride = self.book(('left',))

		offered = set(RideOffer.objects.filter(ride=ride).values_list('driver_id', flat=True))
		self.assertEqual(offered, {self.other_driver.id})

	def test_create_rejects_unknown_option_and_second_active_ride(self):
		with self.assertRaises(InvalidArgumentError):
			create_ride_request(self.passenger, PICKUP, DROPOFF, ['jetpack'])

		self.book()
		with self.assertRaises(ActiveRideExistsError):
			self.book()

	def test_declined_payment_aborts_booking(self):
		with self.assertRaises(PaymentDeclinedError):
			create_ride_request(
				self.passenger, PICKUP, DROPOFF, [],
				authorizer=MockPaymentAuthorizer(approve=False),
			)
		self.assertFalse(RideRequest.objects.exists())

	def test_wheelchair_ride_is_assigned_and_passenger_notified(self):
		ride = self.book()
		matched = find_compatible_drivers(
			ride.requirement,
			DriverProfile.objects.filter(user=self.driver),
			pickup=ride.pickup,
		)
		self.assertEqual([p.user_id for p in matched], [self.driver.id])

		result = accept_ride(self.driver, ride.id)

		self.assertEqual(result.ride.status, 'assigned')
		self.assertEqual(result.ride.driver_id, self.driver.id)
		notification = Notification.objects.get(user=self.passenger)
		self.assertEqual(notification.title, 'Driver Found!')
		self.assertEqual(notification.body, 'Maria is on the way.')
		self.assertFalse(Notification.objects.filter(user=self.driver).exists())

	def test_second_accept_loses(self):
		ride = self.book()
		accept_ride(self.driver, ride.id)

		with self.assertRaises(RideNoLongerAvailableError) as ctx:
			accept_ride(self.other_driver, ride.id)

		self.assertEqual(ctx.exception.message, 'This ride was already accepted by another driver.')
		ride.refresh_from_db()
		self.assertEqual(ride.driver_id, self.driver.id)

	def test_accept_with_stale_read_loses_on_conditional_update(self):
		ride = self.book()
		stale = RideRequest.objects.get(id=ride.id)
		accept_ride(self.driver, ride.id)

		with self.assertRaises(RideNoLongerAvailableError):
			accept_ride(self.other_driver, ride.id, store=StaleReadStore(stale))

		ride.refresh_from_db()
		self.assertEqual(ride.status, 'assigned')
		self.assertEqual(ride.driver_id, self.driver.id)

	def test_accept_expires_other_offers(self):
		ride = self.book(('either',))
		accept_ride(self.driver, ride.id)

		statuses = dict(RideOffer.objects.filter(ride=ride).values_list('driver_id', 'status'))
		self.assertEqual(statuses[self.driver.id], 'accepted')
		self.assertEqual(statuses[self.other_driver.id], 'expired')

	def test_busy_driver_cannot_accept_another_ride(self):
		first = self.book()
		accept_ride(self.driver, first.id)

		other_passenger = make_passenger('second')
		second = create_ride_request(other_passenger, PICKUP, DROPOFF, []).ride
		self.assertFalse(RideOffer.objects.filter(ride=second, driver=self.driver).exists())

		with self.assertRaises(DriverNotAvailableError):
			accept_ride(self.driver, second.id)

	def test_offline_driver_cannot_accept(self):
		ride = self.book()
		DriverProfile.objects.filter(user=self.driver).update(status='offline')
		self.driver.refresh_from_db()

		with self.assertRaises(DriverNotAvailableError):
			accept_ride(User.objects.get(id=self.driver.id), ride.id)

	def test_driver_without_required_features_cannot_accept(self):
		ride = self.book()
		sedan = make_driver('sedan')

		with self.assertRaises(PermissionDeniedError):
			accept_ride(sedan, ride.id)

		ride.refresh_from_db()
		self.assertEqual(ride.status, 'searching')
		self.assertIsNone(ride.driver_id)

	def test_reject_keeps_ride_searching(self):
		ride = self.book()
		reject_ride_offer(self.driver, ride.id)

		ride.refresh_from_db()
		self.assertEqual(ride.status, 'searching')
		self.assertEqual(RideOffer.objects.get(ride=ride, driver=self.driver).status, 'rejected')

	def test_skipping_arriving_is_an_invalid_transition(self):
		ride = self.book()
		accept_ride(self.driver, ride.id)
		before = RideRequest.objects.get(id=ride.id)

		with self.assertRaises(InvalidTransitionError):
			start_ride(self.driver, ride.id)

		after = RideRequest.objects.get(id=ride.id)
		self.assertEqual(after.status, 'assigned')
		self.assertEqual(after.updated_at, before.updated_at)

	def test_full_lifecycle_records_history_once_per_participant(self):
		ride = self.book()
		accept_ride(self.driver, ride.id)
		mark_arriving(self.driver, ride.id)
		start_ride(self.driver, ride.id)
		result = complete_ride(self.driver, ride.id)

		self.assertEqual(result.ride.status, 'completed')
		self.assertIsNotNone(result.ride.completed_at)

		# Redelivered completion event
		self.assertEqual(record_ride_history(result.ride), 0)
		record_ride_history_task.delay(ride.id)

		entries = RideHistoryEntry.objects.filter(ride=ride)
		self.assertEqual(entries.count(), 2)
		self.assertEqual(set(entries.values_list('role', flat=True)), {'passenger', 'driver'})
		self.passenger.refresh_from_db()
		self.driver.refresh_from_db()
		self.assertEqual(self.passenger.completed_rides, 1)
		self.assertEqual(self.driver.completed_rides, 1)

		titles = list(
			Notification.objects.filter(user=self.passenger).order_by('id').values_list('title', flat=True)
		)
		self.assertEqual(titles, ['Driver Found!', 'Driver Arriving', 'Ride Started', 'Ride Completed'])
		self.assertFalse(Notification.objects.filter(user=self.driver).exists())

		system_lines = RideMessage.objects.filter(ride=ride, message_type='system').count()
		self.assertEqual(system_lines, 4)

	def test_cancelling_terminal_ride_is_rejected_and_untouched(self):
		ride = self.book()
		accept_ride(self.driver, ride.id)
		mark_arriving(self.driver, ride.id)
		start_ride(self.driver, ride.id)
		complete_ride(self.driver, ride.id)
		before = RideRequest.objects.get(id=ride.id)

		with self.assertRaises(InvalidTransitionError):
			cancel_ride(self.passenger, ride.id)

		after = RideRequest.objects.get(id=ride.id)
		self.assertEqual(after.status, 'completed')
		self.assertEqual(after.updated_at, before.updated_at)

	def test_cancel_twice_is_rejected(self):
		ride = self.book()
		cancel_ride(self.passenger, ride.id)

		with self.assertRaises(InvalidTransitionError):
			cancel_ride(self.passenger, ride.id)

	def test_driver_cancel_notifies_passenger_only(self):
		ride = self.book()
		accept_ride(self.driver, ride.id)

		result = cancel_ride(self.driver, ride.id, reason='Flat tyre')

		self.assertEqual(result.ride.status, 'cancelled')
		self.assertEqual(result.ride.cancelled_by, 'driver')
		self.assertEqual(result.ride.driver_id, self.driver.id)
		self.assertTrue(
			Notification.objects.filter(user=self.passenger, title='Ride Cancelled').exists()
		)
		self.assertFalse(
			Notification.objects.filter(user=self.driver, title='Ride Cancelled').exists()
		)

	def test_notification_failure_does_not_block_transition(self):
		ride = self.book()

		with patch.object(Notification.objects, 'create', side_effect=DatabaseError('disk full')):
			result = accept_ride(self.driver, ride.id)

		self.assertEqual(result.ride.status, 'assigned')
		self.assertEqual(RideRequest.objects.get(id=ride.id).status, 'assigned')
		self.assertFalse(Notification.objects.exists())

	def test_status_interface_errors(self):
		ride = self.book()
		stranger = make_passenger('stranger')

		with self.assertRaises(UnauthenticatedError):
			update_ride_status(None, ride.id, 'cancelled')
		with self.assertRaises(InvalidArgumentError):
			update_ride_status(self.passenger, ride.id, 'teleported')
		with self.assertRaises(PermissionDeniedError):
			update_ride_status(stranger, ride.id, 'cancelled')

	def test_status_interface_maps_accepted_to_assigned(self):
		ride = self.book()

		result = update_ride_status(self.driver, ride.id, 'accepted')

		self.assertEqual(result.ride.status, 'assigned')

	def test_passenger_cannot_accept_through_status_interface(self):
		ride = self.book()

		with self.assertRaises(PermissionDeniedError):
			update_ride_status(self.passenger, ride.id, 'accepted')

		ride.refresh_from_db()
		self.assertEqual(ride.status, 'searching')

	def test_passenger_cannot_drive_the_ride(self):
		ride = self.book()
		accept_ride(self.driver, ride.id)

		with self.assertRaises(PermissionDeniedError):
			update_ride_status(self.passenger, ride.id, 'arriving')


class RematchTests(TestCase):
	def test_newly_available_driver_gets_offer_once(self):
		passenger = make_passenger()
		ride = create_ride_request(passenger, PICKUP, DROPOFF, ['wheelchair']).ride
		self.assertFalse(RideOffer.objects.filter(ride=ride).exists())

		driver = make_driver('late', ['wheelchair'])
		self.assertEqual(refresh_searching_rides(), 1)
		self.assertEqual(refresh_searching_rides(), 0)

		offer = RideOffer.objects.get(ride=ride)
		self.assertEqual(offer.driver_id, driver.id)
		self.assertIsNotNone(offer.sent_at)


@override_settings(MOCK_PAYMENT_APPROVE=False)
class PaymentSettingTests(SimpleTestCase):
	def test_mock_reads_setting(self):
		self.assertFalse(MockPaymentAuthorizer().authorize(None, 10.0).approved)
