from django.test import TestCase
from rest_framework.test import APIRequestFactory, force_authenticate

from accounts.models import User
from common.types import Location
from drivers.models import DriverProfile
from services.ride_management import create_ride_request, accept_ride, mark_arriving, start_ride, complete_ride
from .views.info import PassengerProfileView, PassengerRideHistoryView


class PassengerViewTests(TestCase):
	def setUp(self):
		self.factory = APIRequestFactory()
		self.passenger = User.objects.create_user(username='rider', password='pass1234', role='user')
		self.driver = User.objects.create_user(username='driver', password='driver1234', role='driver', first_name='Maria')
		DriverProfile.objects.create(user=self.driver, vehicle_number='WB-1001', status='available')

	def _request(self, method, data=None, user=None):
		request = getattr(self.factory, method)('/api/passengers/', data, format='json')
		force_authenticate(request, user=user or self.passenger)
		return request

	def test_profile_update_keeps_read_only_fields(self):
		response = PassengerProfileView.as_view()(
			self._request('post', {'first_name': 'Pat', 'completed_rides': 99})
		)

		self.assertEqual(response.status_code, 200)
		self.assertEqual(response.data['display_name'], 'Pat')
		self.assertEqual(response.data['completed_rides'], 0)

	def test_history_lists_completed_trips(self):
		ride = create_ride_request(
			self.passenger,
			Location(37.78825, -122.4324, 'Market St'),
			Location(37.79825, -122.4124, 'Union Square'),
		).ride
		for action in (accept_ride, mark_arriving, start_ride, complete_ride):
			action(self.driver, ride.id)

		response = PassengerRideHistoryView.as_view()(self._request('get'))

		self.assertEqual(response.data['count'], 1)
		entry = response.data['rides'][0]
		self.assertEqual(entry['ride'], ride.id)
		self.assertEqual(entry['role'], 'passenger')
		self.assertEqual(entry['driver_snapshot']['name'], 'Maria')

	def test_driver_cannot_use_passenger_endpoints(self):
		response = PassengerProfileView.as_view()(self._request('get', user=self.driver))
		self.assertEqual(response.status_code, 403)
