from django.test import TestCase
from rest_framework.test import APIRequestFactory, force_authenticate

from drivers.models import DriverProfile
from .models import User
from .views import RegisterView, LoginView, RefreshTokenView, MeView


class AccountApiTests(TestCase):
	def setUp(self):
		self.factory = APIRequestFactory()

	def _post(self, view, data):
		request = self.factory.post('/api/auth/', data, format='json')
		return view.as_view()(request)

	def test_driver_registration_creates_profile_with_tokens(self):
		response = self._post(RegisterView, {
			'username': 'maria',
			'password': 'password123',
			'role': 'driver',
			'first_name': 'Maria',
			'vehicle_number': 'KA-01-4321',
			'accessibility_features': ['Wheelchair Accessible', 'Ramp Access'],
		})

		self.assertEqual(response.status_code, 201)
		self.assertIn('access', response.data['tokens'])
		profile = DriverProfile.objects.get(user__username='maria')
		self.assertEqual(profile.accessibility_features, ['ramp', 'wheelchair'])
		self.assertEqual(profile.status, 'offline')

	def test_driver_needs_vehicle_number(self):
		response = self._post(RegisterView, {
			'username': 'maria',
			'password': 'password123',
			'role': 'driver',
		})

		self.assertEqual(response.status_code, 400)
		self.assertIn('vehicle_number', response.data)

	def test_login_and_refresh(self):
		User.objects.create_user(username='rider', password='password123', role='user')

		login = self._post(LoginView, {'username': 'rider', 'password': 'password123'})
		self.assertEqual(login.status_code, 200)

		refresh = self._post(RefreshTokenView, {'refresh': login.data['tokens']['refresh']})
		self.assertEqual(refresh.status_code, 200)
		self.assertIn('access', refresh.data)

		bad = self._post(RefreshTokenView, {'refresh': 'not-a-token'})
		self.assertEqual(bad.status_code, 401)

	def test_wrong_password(self):
		User.objects.create_user(username='rider', password='password123', role='user')

		response = self._post(LoginView, {'username': 'rider', 'password': 'nope'})

		self.assertEqual(response.status_code, 400)

	def test_me(self):
		user = User.objects.create_user(username='rider', password='password123', role='user', first_name='Pat')
		request = self.factory.get('/api/auth/me/')
		force_authenticate(request, user=user)

		response = MeView.as_view()(request)

		self.assertEqual(response.data['display_name'], 'Pat')
		self.assertEqual(response.data['completed_rides'], 0)
