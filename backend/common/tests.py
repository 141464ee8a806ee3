from django.test import SimpleTestCase, override_settings

from common.types import AccessibilityRequirement, EntrySide, Location
from common.utils import SubscriptionRegistry, calculate_distance, distance_km, estimate_fare


class GeoTests(SimpleTestCase):
	def test_known_distance(self):
		a = Location(37.78825, -122.4324)
		b = Location(37.79825, -122.4124)
		self.assertAlmostEqual(distance_km(a, b), 2.080, delta=0.005)
		self.assertAlmostEqual(calculate_distance(37.78825, -122.4324, 37.79825, -122.4124), distance_km(a, b) * 1000)

	def test_same_point_and_nan(self):
		a = Location(10.0, 20.0)
		self.assertEqual(distance_km(a, a), 0.0)
		self.assertEqual(distance_km(a, Location(float('nan'), 20.0)), 0.0)

	def test_location_validity(self):
		self.assertTrue(Location(90, -180).is_valid())
		self.assertFalse(Location(91, 0).is_valid())
		self.assertFalse(Location(float('nan'), 0).is_valid())


class FareTests(SimpleTestCase):
	def test_zero_distance_is_base_fare(self):
		self.assertEqual(estimate_fare(0), 5.0)

	def test_fare_formula(self):
		# 10 km at 30 km/h = 20 minutes
		self.assertAlmostEqual(estimate_fare(10), 5.0 + 20.0 + 10.0)

	def test_fare_never_decreases_with_distance(self):
		fares = [estimate_fare(d / 2) for d in range(0, 40)]
		self.assertEqual(fares, sorted(fares))

	def test_negative_distance_counts_as_zero(self):
		self.assertEqual(estimate_fare(-3), 5.0)

	@override_settings(RIDE_FARE={'BASE_FARE': 3.0})
	def test_settings_override(self):
		self.assertEqual(estimate_fare(0), 3.0)


class AccessibilityRequirementTests(SimpleTestCase):
	def test_defaults(self):
		requirement = AccessibilityRequirement.from_options(None)
		self.assertEqual(requirement, AccessibilityRequirement())
		self.assertEqual(requirement.required_features(), set())

	def test_options_are_parsed(self):
		requirement = AccessibilityRequirement.from_options(['Wheelchair', 'right', 'assistance'])
		self.assertTrue(requirement.wheelchair)
		self.assertTrue(requirement.assistance)
		self.assertEqual(requirement.entry_side, EntrySide.RIGHT)
		self.assertEqual(requirement.required_features(), {'wheelchair', 'assistance', 'right'})

	def test_unknown_option(self):
		with self.assertRaises(ValueError):
			AccessibilityRequirement.from_options(['wheelchair', 'sidecar'])


class SubscriptionRegistryTests(SimpleTestCase):
	def test_cancel_stops_delivery(self):
		registry = SubscriptionRegistry()
		seen = []
		subscription = registry.add('k', seen.append)

		registry.publish('k', 1)
		subscription.cancel()
		subscription.cancel()
		registry.publish('k', 2)

		self.assertEqual(seen, [1])
		self.assertEqual(registry.count('k'), 0)

	def test_failing_listener_does_not_block_others(self):
		registry = SubscriptionRegistry()
		seen = []

		def broken(value):
			raise RuntimeError('listener crashed')

		registry.add('k', broken)
		registry.add('k', seen.append)

		self.assertEqual(registry.publish('k', 'x'), 1)
		self.assertEqual(seen, ['x'])

	def test_context_manager_cancels(self):
		registry = SubscriptionRegistry()
		with registry.add('k', lambda value: None):
			self.assertEqual(registry.count('k'), 1)
		self.assertEqual(registry.count('k'), 0)
