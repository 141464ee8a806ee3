from datetime import timedelta
from unittest.mock import patch

from django.test import SimpleTestCase, TestCase
from django.utils import timezone
from rest_framework.test import APIRequestFactory, force_authenticate

from accounts.models import User
from realtime.tracking import get_location_hub
from rides.models import RideOffer, RideRequest
from .features import normalize_features
from .models import DriverProfile
from . import services
from .views import DriverStatusView, DriverVehicleView, OpenRidesForDriverView, DriverLocationUpdateView


class FeatureLabelTests(SimpleTestCase):
	def test_labels_become_matcher_tokens(self):
		labels = ['Wheelchair Accessible', 'Ramp Access', 'wheelchair', ' Left Entry ', '']
		self.assertEqual(normalize_features(labels), ['left', 'ramp', 'wheelchair'])

	def test_unknown_labels_are_kept_as_snake_case(self):
		self.assertEqual(normalize_features(['Child Seat']), ['child_seat'])


class DriverServiceTests(TestCase):
	def setUp(self):
		self.passenger = User.objects.create_user(username='passenger', password='pass1234', role='user')
		self.driver = User.objects.create_user(username='driver', password='driver1234', role='driver')
		self.profile = DriverProfile.objects.create(
			user=self.driver,
			vehicle_number='WB-1001',
			status='available',
			current_latitude=37.78825,
			current_longitude=-122.4324,
			last_location_update=timezone.now(),
		)

	def _searching_ride(self, **fields):
		return RideRequest.objects.create(
			passenger=self.passenger,
			pickup_latitude=37.78825,
			pickup_longitude=-122.4324,
			dropoff_latitude=37.79825,
			dropoff_longitude=-122.4124,
			**fields
		)

	def test_small_quick_moves_are_dropped(self):
		self.assertFalse(services.update_driver_location(self.profile, 37.788251, -122.4324))
		self.assertTrue(services.update_driver_location(self.profile, 37.78925, -122.4324))
		self.assertTrue(services.update_driver_location(self.profile, 37.789251, -122.4324, force=True))

	def test_stale_position_is_replaced_even_when_close(self):
		DriverProfile.objects.filter(pk=self.profile.pk).update(
			last_location_update=timezone.now() - timedelta(minutes=1)
		)
		self.profile.refresh_from_db()

		self.assertTrue(services.update_driver_location(self.profile, 37.788251, -122.4324))
		self.assertEqual(get_location_hub().last(self.driver.id).latitude, 37.788251)

	def test_offline_driver_without_ride_is_ignored(self):
		services.update_driver_status(self.profile, 'offline')

		self.assertFalse(services.update_driver_location(self.profile, 37.80, -122.40, force=True))
		self.profile.refresh_from_db()
		self.assertEqual(float(self.profile.current_latitude), 37.78825)

	def test_location_on_active_ride_is_pushed_to_ride_group(self):
		ride = self._searching_ride(driver=self.driver, status='assigned')

		with patch('drivers.services.send_ride_group_payload') as push:
			accepted = services.update_driver_location(self.profile, 37.80, -122.40)

		self.assertTrue(accepted)
		ride_id, payload = push.call_args[0]
		self.assertEqual(ride_id, ride.id)
		self.assertEqual(payload['type'], 'driver_track_location')
		self.assertEqual(payload['driver_id'], self.driver.id)

	def test_going_offline_withdraws_pending_offers(self):
		ride = self._searching_ride()
		RideOffer.objects.create(ride=ride, driver=self.driver, order=0, sent_at=timezone.now())

		services.update_driver_status(self.profile, 'offline')

		self.assertEqual(RideOffer.objects.get(ride=ride).status, 'expired')

	def test_coming_online_picks_up_searching_rides(self):
		self.profile.status = 'offline'
		self.profile.save()
		ride = self._searching_ride()

		services.update_driver_status(self.profile, 'available')

		offer = RideOffer.objects.get(ride=ride, driver=self.driver)
		self.assertIsNotNone(offer.sent_at)

	def test_adding_feature_rematches_waiting_ride(self):
		ride = self._searching_ride(wheelchair=True)
		self.assertEqual(services.find_open_rides(self.profile), [])

		services.update_vehicle(self.profile, accessibility_features=['Wheelchair Accessible'])

		self.assertEqual(self.profile.accessibility_features, ['wheelchair'])
		self.assertTrue(RideOffer.objects.filter(ride=ride, driver=self.driver).exists())
		open_rides = services.find_open_rides(self.profile)
		self.assertEqual([r.id for r, _ in open_rides], [ride.id])
		self.assertAlmostEqual(open_rides[0][1], 0.0, places=6)


class DriverViewTests(TestCase):
	def setUp(self):
		self.factory = APIRequestFactory()
		self.driver = User.objects.create_user(username='driver', password='driver1234', role='driver')
		self.profile = DriverProfile.objects.create(user=self.driver, vehicle_number='WB-1001')
		DriverProfile.objects.create(
			user=User.objects.create_user(username='other', password='driver1234', role='driver'),
			vehicle_number='WB-2002',
		)

	def _call(self, view, method, data=None):
		request = getattr(self.factory, method)('/api/driver/', data, format='json')
		force_authenticate(request, user=self.driver)
		return view.as_view()(request)

	def test_status_round_trip(self):
		response = self._call(DriverStatusView, 'put', {'status': 'available'})
		self.assertEqual(response.status_code, 200)

		response = self._call(DriverStatusView, 'get')
		self.assertEqual(response.data, {'status': 'available', 'busy': False})

	def test_invalid_status_is_rejected(self):
		response = self._call(DriverStatusView, 'put', {'status': 'busy'})
		self.assertEqual(response.status_code, 400)

	def test_vehicle_number_must_be_unique(self):
		response = self._call(DriverVehicleView, 'put', {'vehicle_number': 'WB-2002'})
		self.assertEqual(response.status_code, 400)

		response = self._call(DriverVehicleView, 'put', {
			'vehicle_make': 'Toyota',
			'accessibility_features': ['Right Entry', 'Assistance Available'],
		})
		self.assertEqual(response.status_code, 200)
		self.assertEqual(response.data['accessibility_features'], ['assistance', 'right'])

	def test_offline_driver_sees_no_open_rides(self):
		response = self._call(OpenRidesForDriverView, 'get')
		self.assertEqual(response.data['count'], 0)

	def test_location_requires_valid_coordinates(self):
		response = self._call(DriverLocationUpdateView, 'post', {'latitude': 123, 'longitude': 0})
		self.assertEqual(response.status_code, 400)

	def test_passenger_is_forbidden(self):
		passenger = User.objects.create_user(username='rider', password='pass1234', role='user')
		request = self.factory.get('/api/driver/status/')
		force_authenticate(request, user=passenger)

		response = DriverStatusView.as_view()(request)

		self.assertEqual(response.status_code, 403)
