from datetime import timedelta
from io import StringIO

from django.core.management import call_command
from django.test import TestCase, override_settings
from django.utils import timezone
from rest_framework.test import APIRequestFactory, force_authenticate

from accounts.models import User
from drivers.models import DriverProfile
from notifications.models import Notification
from .models import RideOffer, RideRequest, RideHistoryEntry
from .views import (
	create_ride_request,
	get_current_ride,
	cancel_ride,
	accept_ride,
	reject_ride_offer,
	mark_arriving,
	start_ride,
	complete_ride,
	update_ride_status,
	ride_detail,
	ride_messages,
)

BOOKING = {
	'pickup_location': {'latitude': 37.78825, 'longitude': -122.4324, 'address': 'Market St'},
	'dropoff_location': {'latitude': 37.79825, 'longitude': -122.4124, 'address': 'Union Square'},
	'accessibility_options': ['wheelchair', 'either'],
}


class RideApiTests(TestCase):
	def setUp(self):
		self.factory = APIRequestFactory()
		self.passenger = User.objects.create_user(
			username='passenger',
			password='pass1234',
			role='user',
			phone_number='9000000000'
		)
		self.driver_one = User.objects.create_user(
			username='driver_one',
			password='driver1234',
			role='driver',
			first_name='Maria',
			phone_number='9000000001'
		)
		self.driver_two = User.objects.create_user(
			username='driver_two',
			password='driver1234',
			role='driver',
			phone_number='9000000002'
		)

		DriverProfile.objects.create(
			user=self.driver_one,
			vehicle_number='WB-1001',
			accessibility_features=['wheelchair', 'right'],
			status='available',
			current_latitude=37.7885,
			current_longitude=-122.4330
		)
		DriverProfile.objects.create(
			user=self.driver_two,
			vehicle_number='WB-1002',
			accessibility_features=['wheelchair'],
			status='available',
			current_latitude=37.7900,
			current_longitude=-122.4400
		)

	def _post(self, view, user, path, data=None, **kwargs):
		request = self.factory.post(path, data or {}, format='json')
		if user is not None:
			force_authenticate(request, user=user)
		return view(request, **kwargs)

	def _get(self, view, user, path, **kwargs):
		request = self.factory.get(path)
		force_authenticate(request, user=user)
		return view(request, **kwargs)

	def _book(self, data=None):
		response = self._post(create_ride_request, self.passenger, '/api/rides/passenger/request/', data or BOOKING)
		self.assertEqual(response.status_code, 201)
		return response.data['ride_id']

	def test_booking_returns_fare_and_offers_compatible_drivers(self):
		response = self._post(create_ride_request, self.passenger, '/api/rides/passenger/request/', BOOKING)

		self.assertEqual(response.status_code, 201)
		self.assertEqual(response.data['status'], 'searching')
		self.assertGreater(response.data['fare'], 5.0)
		self.assertEqual(response.data['driver_candidates'], 2)
		self.assertEqual(response.data['ride']['accessibility_options'], ['wheelchair', 'either'])
		self.assertEqual(
			RideOffer.objects.filter(ride_id=response.data['ride_id'], sent_at__isnull=False).count(),
			2
		)

	def test_booking_rejects_unknown_accessibility_option(self):
		data = dict(BOOKING, accessibility_options=['hovercraft'])
		response = self._post(create_ride_request, self.passenger, '/api/rides/passenger/request/', data)

		self.assertEqual(response.status_code, 400)
		self.assertFalse(RideRequest.objects.exists())

	def test_driver_cannot_book(self):
		response = self._post(create_ride_request, self.driver_one, '/api/rides/passenger/request/', BOOKING)

		self.assertEqual(response.status_code, 403)

	def test_second_booking_while_active_is_rejected(self):
		self._book()
		response = self._post(create_ride_request, self.passenger, '/api/rides/passenger/request/', BOOKING)

		self.assertEqual(response.status_code, 400)
		self.assertEqual(response.data['code'], 'invalid-argument')

	@override_settings(MOCK_PAYMENT_APPROVE=False)
	def test_declined_payment(self):
		response = self._post(create_ride_request, self.passenger, '/api/rides/passenger/request/', BOOKING)

		self.assertEqual(response.status_code, 402)
		self.assertEqual(response.data['code'], 'payment-declined')

	def test_only_one_driver_can_accept(self):
		ride_id = self._book()

		first = self._post(accept_ride, self.driver_one, f'/api/rides/handle/{ride_id}/accept/', ride_id=ride_id)
		second = self._post(accept_ride, self.driver_two, f'/api/rides/handle/{ride_id}/accept/', ride_id=ride_id)

		self.assertEqual(first.status_code, 200)
		self.assertEqual(first.data['ride']['status'], 'assigned')
		self.assertEqual(first.data['ride']['driver']['user_id'], self.driver_one.id)
		self.assertEqual(second.status_code, 409)
		self.assertEqual(second.data['code'], 'ride-no-longer-available')
		self.assertEqual(second.data['error'], 'This ride was already accepted by another driver.')

		offer = RideOffer.objects.get(ride_id=ride_id, driver=self.driver_two)
		self.assertEqual(offer.status, 'expired')

	def test_reject_keeps_ride_open_for_others(self):
		ride_id = self._book()

		response = self._post(reject_ride_offer, self.driver_one, f'/api/rides/handle/{ride_id}/reject/', ride_id=ride_id)

		self.assertEqual(response.status_code, 200)
		self.assertEqual(RideRequest.objects.get(id=ride_id).status, 'searching')
		accepted = self._post(accept_ride, self.driver_two, f'/api/rides/handle/{ride_id}/accept/', ride_id=ride_id)
		self.assertEqual(accepted.status_code, 200)

	def test_driver_actions_walk_the_lifecycle(self):
		ride_id = self._book()
		for view in (accept_ride, mark_arriving, start_ride, complete_ride):
			response = self._post(view, self.driver_one, f'/api/rides/handle/{ride_id}/', ride_id=ride_id)
			self.assertEqual(response.status_code, 200, response.data)

		ride = RideRequest.objects.get(id=ride_id)
		self.assertEqual(ride.status, 'completed')
		self.assertEqual(RideHistoryEntry.objects.filter(ride=ride).count(), 2)

		current = self._get(get_current_ride, self.passenger, '/api/rides/passenger/current/')
		self.assertFalse(current.data['has_active_ride'])

	def test_start_before_arriving_is_conflict(self):
		ride_id = self._book()
		self._post(accept_ride, self.driver_one, '/', ride_id=ride_id)

		response = self._post(start_ride, self.driver_one, '/', ride_id=ride_id)

		self.assertEqual(response.status_code, 409)
		self.assertEqual(response.data['code'], 'invalid-transition')

	def test_other_driver_cannot_drive_ride(self):
		ride_id = self._book()
		self._post(accept_ride, self.driver_one, '/', ride_id=ride_id)

		response = self._post(mark_arriving, self.driver_two, '/', ride_id=ride_id)

		self.assertEqual(response.status_code, 403)
		self.assertEqual(response.data['code'], 'permission-denied')

	def test_accept_requires_matching_vehicle_and_driver_role(self):
		ride_id = self._book()
		sedan = User.objects.create_user(username='sedan', password='driver1234', role='driver')
		DriverProfile.objects.create(user=sedan, vehicle_number='WB-1003', accessibility_features=[], status='available')

		mismatch = self._post(accept_ride, sedan, f'/api/rides/handle/{ride_id}/accept/', ride_id=ride_id)
		passenger = self._post(
			update_ride_status, self.passenger, '/api/rides/status/',
			{'ride_id': ride_id, 'new_status': 'accepted'}
		)

		self.assertEqual((mismatch.status_code, mismatch.data['code']), (403, 'permission-denied'))
		self.assertEqual((passenger.status_code, passenger.data['code']), (403, 'permission-denied'))
		self.assertEqual(RideRequest.objects.get(id=ride_id).status, 'searching')

	def test_status_endpoint_full_flow(self):
		ride_id = self._book()
		steps = [
			(self.driver_one, 'accepted', 'assigned'),
			(self.driver_one, 'arriving', 'arriving'),
			(self.driver_one, 'in_progress', 'in_progress'),
			(self.driver_one, 'completed', 'completed'),
		]
		for user, external, stored in steps:
			response = self._post(
				update_ride_status, user, '/api/rides/status/',
				{'ride_id': ride_id, 'new_status': external}
			)
			self.assertEqual(response.status_code, 200, response.data)
			self.assertEqual(response.data['status'], stored)

	def test_status_endpoint_errors(self):
		ride_id = self._book()
		stranger = User.objects.create_user(username='stranger', password='x1234567', role='user')

		anonymous = self._post(update_ride_status, None, '/', {'ride_id': ride_id, 'new_status': 'cancelled'})
		invalid = self._post(update_ride_status, self.passenger, '/', {'ride_id': ride_id, 'new_status': 'flying'})
		denied = self._post(update_ride_status, stranger, '/', {'ride_id': ride_id, 'new_status': 'cancelled'})
		missing = self._post(update_ride_status, self.passenger, '/', {'ride_id': 999999, 'new_status': 'cancelled'})
		malformed = self._post(update_ride_status, self.passenger, '/', {'new_status': 'cancelled'})

		self.assertEqual((anonymous.status_code, anonymous.data['code']), (401, 'unauthenticated'))
		self.assertEqual((invalid.status_code, invalid.data['code']), (400, 'invalid-argument'))
		self.assertEqual((denied.status_code, denied.data['code']), (403, 'permission-denied'))
		self.assertEqual((missing.status_code, missing.data['code']), (404, 'not-found'))
		self.assertEqual((malformed.status_code, malformed.data['code']), (400, 'invalid-argument'))
		self.assertEqual(RideRequest.objects.get(id=ride_id).status, 'searching')

	def test_cancel_completed_ride_is_conflict(self):
		ride_id = self._book()
		for view in (accept_ride, mark_arriving, start_ride, complete_ride):
			self._post(view, self.driver_one, '/', ride_id=ride_id)
		before = RideRequest.objects.get(id=ride_id).updated_at

		response = self._post(cancel_ride, self.passenger, '/', {'reason': 'changed my mind'}, ride_id=ride_id)

		self.assertEqual(response.status_code, 409)
		self.assertEqual(RideRequest.objects.get(id=ride_id).updated_at, before)

	def test_passenger_cancel_withdraws_offers(self):
		ride_id = self._book()

		response = self._post(cancel_ride, self.passenger, '/', {'reason': 'Plans changed'}, ride_id=ride_id)

		self.assertEqual(response.status_code, 200)
		self.assertFalse(response.data['was_assigned'])
		ride = RideRequest.objects.get(id=ride_id)
		self.assertEqual(ride.cancelled_by, 'passenger')
		self.assertEqual(ride.cancellation_reason, 'Plans changed')
		self.assertFalse(RideOffer.objects.filter(ride=ride, status='pending').exists())

	def test_ride_detail_is_participants_only(self):
		ride_id = self._book()
		stranger = User.objects.create_user(username='stranger', password='x1234567', role='user')

		own = self._get(ride_detail, self.passenger, '/', ride_id=ride_id)
		other = self._get(ride_detail, stranger, '/', ride_id=ride_id)

		self.assertEqual(own.status_code, 200)
		self.assertEqual(own.data['id'], ride_id)
		self.assertEqual(other.status_code, 403)

	def test_ride_chat(self):
		ride_id = self._book()
		self._post(accept_ride, self.driver_one, '/', ride_id=ride_id)

		sent = self._post(ride_messages, self.passenger, '/', {'content': 'I am by the blue door'}, ride_id=ride_id)
		empty = self._post(ride_messages, self.passenger, '/', {'content': '   '}, ride_id=ride_id)
		outsider = self._post(ride_messages, self.driver_two, '/', {'content': 'hello?'}, ride_id=ride_id)
		listing = self._get(ride_messages, self.driver_one, '/', ride_id=ride_id)

		self.assertEqual(sent.status_code, 201)
		self.assertEqual(sent.data['type'], 'text')
		self.assertEqual(empty.status_code, 400)
		self.assertEqual(outsider.status_code, 403)
		contents = [m['content'] for m in listing.data['messages']]
		self.assertEqual(contents, ['Maria accepted the ride.', 'I am by the blue door'])


class RideCommandTests(TestCase):
	def setUp(self):
		self.passenger = User.objects.create_user(username='passenger', password='pass1234', role='user')

	def _ride(self, **fields):
		values = dict(
			passenger=self.passenger,
			pickup_latitude=37.78825,
			pickup_longitude=-122.4324,
			dropoff_latitude=37.79825,
			dropoff_longitude=-122.4124,
		)
		values.update(fields)
		return RideRequest.objects.create(**values)

	def test_rematch_offers_searching_rides_to_new_drivers(self):
		ride = self._ride(assistance=True)
		driver = User.objects.create_user(username='helper', password='driver1234', role='driver')
		DriverProfile.objects.create(
			user=driver,
			vehicle_number='WB-2001',
			accessibility_features=['assistance'],
			status='available'
		)
		RideOffer.objects.filter(ride=ride).delete()

		out = StringIO()
		call_command('rematch_searching_rides', stdout=out)

		self.assertIn('Sent 1 new ride offer(s).', out.getvalue())
		self.assertTrue(RideOffer.objects.filter(ride=ride, driver=driver, sent_at__isnull=False).exists())

	def test_cleanup_keeps_rides_with_history(self):
		old = timezone.now() - timedelta(days=60)
		cancelled = self._ride(status='cancelled')
		searching = self._ride()
		Notification.objects.create(user=self.passenger, title='t', body='b', notification_type='x', read=True)
		RideRequest.objects.filter(id__in=[cancelled.id, searching.id]).update(updated_at=old)
		Notification.objects.update(created_at=old)

		call_command('cleanup_old_data', '--dry-run', stdout=StringIO())
		self.assertEqual(RideRequest.objects.count(), 2)

		call_command('cleanup_old_data', stdout=StringIO())
		self.assertEqual(list(RideRequest.objects.values_list('id', flat=True)), [searching.id])
		self.assertFalse(Notification.objects.exists())
