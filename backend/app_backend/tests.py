from unittest.mock import patch

from django.test import TestCase
from rest_framework.test import APIRequestFactory

from .views import health_check


def redis_down():
	raise ConnectionError('Connection refused')


class HealthCheckTests(TestCase):
	def setUp(self):
		self.factory = APIRequestFactory()

	@patch.dict('app_backend.views.CHECKS', {'redis': lambda: None})
	def test_healthy(self):
		response = health_check(self.factory.get('/health/'))

		self.assertEqual(response.status_code, 200)
		self.assertEqual(response.data['services'], {
			'database': 'healthy',
			'redis': 'healthy',
			'channels': 'healthy',
			'celery': 'healthy',
		})

	@patch.dict('app_backend.views.CHECKS', {'redis': redis_down})
	def test_redis_outage_is_reported(self):
		response = health_check(self.factory.get('/health/'))

		self.assertEqual(response.status_code, 503)
		self.assertEqual(response.data['status'], 'unhealthy')
		self.assertTrue(response.data['services']['redis'].startswith('unhealthy'))
		self.assertEqual(response.data['services']['database'], 'healthy')
