from unittest.mock import AsyncMock, MagicMock, patch

from asgiref.sync import async_to_sync
from django.db import transaction
from django.test import SimpleTestCase, TestCase

from accounts.models import User
from common.types import Location
from services.ride_management import RideStore
from .consumers.ride_consumer import RideConsumer
from .notifications import send_user_event
from .tracking import LocationHub, track_ride_driver


class LocationHubTests(SimpleTestCase):
	def test_late_subscriber_gets_last_position(self):
		hub = LocationHub()
		hub.publish(7, Location(1.0, 2.0))
		seen = []

		hub.subscribe(7, seen.append)
		hub.publish(7, Location(1.5, 2.5))

		self.assertEqual(seen, [Location(1.0, 2.0), Location(1.5, 2.5)])


class RideDriverTrackerTests(TestCase):
	def setUp(self):
		self.store = RideStore()
		self.hub = LocationHub()
		self.passenger = User.objects.create_user(username='rider', password='pass1234', role='user')
		self.driver = User.objects.create_user(username='driver', password='driver1234', role='driver')
		self.ride_id = self.store.create(
			passenger=self.passenger,
			pickup_latitude=37.78825,
			pickup_longitude=-122.4324,
			dropoff_latitude=37.79825,
			dropoff_longitude=-122.4124,
		)

	def test_follows_assigned_driver_until_ride_ends(self):
		seen = []
		tracker = track_ride_driver(self.ride_id, seen.append, store=self.store, hub=self.hub)

		self.hub.publish(self.driver.id, Location(37.70, -122.40))
		self.assertEqual(seen, [])

		self.store.update(self.ride_id, status='assigned', driver=self.driver, expected_status='searching')
		self.hub.publish(self.driver.id, Location(37.71, -122.41))
		self.assertEqual(seen, [Location(37.70, -122.40), Location(37.71, -122.41)])

		self.store.update(self.ride_id, status='cancelled', expected_status='assigned')
		self.hub.publish(self.driver.id, Location(37.72, -122.42))

		self.assertFalse(tracker.active)
		self.assertEqual(len(seen), 2)
		self.assertEqual(self.store.registry.count(('ride', self.ride_id)), 0)
		self.assertEqual(self.hub.registry.count(self.driver.id), 0)

	def test_terminal_ride_stops_immediately(self):
		self.store.update(self.ride_id, status='cancelled', expected_status='searching')

		tracker = track_ride_driver(self.ride_id, lambda location: None, store=self.store, hub=self.hub)

		self.assertFalse(tracker.active)
		self.assertEqual(self.store.registry.count(('ride', self.ride_id)), 0)

	def test_stop_is_explicit_cancellation(self):
		seen = []
		self.store.update(self.ride_id, status='assigned', driver=self.driver, expected_status='searching')
		tracker = track_ride_driver(self.ride_id, seen.append, store=self.store, hub=self.hub)

		tracker.stop()
		self.hub.publish(self.driver.id, Location(37.73, -122.43))

		self.assertEqual(seen, [])


class TrackingUpdateTests(SimpleTestCase):
	def _consumer(self, role='driver'):
		consumer = RideConsumer()
		consumer.role = role
		consumer.user_id = 3
		consumer.send_error = AsyncMock()
		consumer._update_driver_location = AsyncMock()
		return consumer

	def test_non_numeric_position_is_rejected(self):
		consumer = self._consumer()

		async_to_sync(consumer._handle_tracking_update)({'latitude': 'north', 'longitude': 1})

		consumer.send_error.assert_awaited_once_with('latitude and longitude must be numbers', code='invalid-argument')
		consumer._update_driver_location.assert_not_awaited()

	def test_numeric_strings_are_accepted(self):
		consumer = self._consumer()

		async_to_sync(consumer._handle_tracking_update)({'latitude': '37.5', 'longitude': -122})

		consumer._update_driver_location.assert_awaited_once_with(37.5, -122.0)
		consumer.send_error.assert_not_awaited()


class PushAfterCommitTests(TestCase):
	def setUp(self):
		self.layer = MagicMock()
		self.layer.group_send = AsyncMock()
		patcher = patch('realtime.notifications.get_channel_layer', return_value=self.layer)
		patcher.start()
		self.addCleanup(patcher.stop)

	def test_push_waits_for_commit(self):
		payload = {'type': 'notification_created', 'title': 'Driver Found!'}

		with self.captureOnCommitCallbacks(execute=True):
			with transaction.atomic():
				self.assertTrue(send_user_event(5, payload))
			self.layer.group_send.assert_not_awaited()

		self.layer.group_send.assert_awaited_once_with('user_5', payload)

	def test_rolled_back_push_is_dropped(self):
		with self.captureOnCommitCallbacks(execute=True) as callbacks:
			try:
				with transaction.atomic():
					send_user_event(5, {'type': 'notification_created'})
					raise ValueError('rollback')
			except ValueError:
				pass

		self.assertEqual(callbacks, [])
		self.layer.group_send.assert_not_awaited()
