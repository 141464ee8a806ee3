from unittest.mock import patch

from django.db import DatabaseError
from django.test import TestCase
from rest_framework.test import APIRequestFactory, force_authenticate

from accounts.models import User
from .models import Notification
from .services import notify
from .views import list_notifications, mark_notification_read, mark_all_notifications_read


class NotifyTests(TestCase):
	def setUp(self):
		self.user = User.objects.create_user(username='rider', password='pass1234', role='user')

	def test_notification_is_stored_and_pushed(self):
		with patch('notifications.services.send_user_event') as push:
			notification_id = notify(self.user.id, 'Driver Found!', 'Maria is on the way.', 'ride_assigned')

		notification = Notification.objects.get(id=notification_id)
		self.assertFalse(notification.read)
		user_id, event = push.call_args[0]
		self.assertEqual(user_id, self.user.id)
		self.assertEqual(event['type'], 'notification_created')
		self.assertEqual(event['notification']['title'], 'Driver Found!')

	def test_store_failure_is_swallowed(self):
		with patch.object(Notification.objects, 'create', side_effect=DatabaseError('disk full')):
			self.assertIsNone(notify(self.user.id, 'Ride Started', 'Enjoy your trip!', 'ride_started'))

		# The surrounding transaction is still usable
		self.assertIsNotNone(notify(self.user.id, 'Ride Started', 'Enjoy your trip!', 'ride_started'))

	def test_missing_user_is_ignored(self):
		self.assertIsNone(notify(None, 'x', 'y', 'z'))


class NotificationViewTests(TestCase):
	def setUp(self):
		self.factory = APIRequestFactory()
		self.user = User.objects.create_user(username='rider', password='pass1234', role='user')
		self.other = User.objects.create_user(username='other', password='pass1234', role='user')
		self.first = Notification.objects.create(
			user=self.user, title='Driver Found!', body='Maria is on the way.', notification_type='ride_assigned'
		)
		self.second = Notification.objects.create(
			user=self.user, title='Ride Started', body='Enjoy your trip!', notification_type='ride_started'
		)
		self.foreign = Notification.objects.create(
			user=self.other, title='Ride Cancelled', body='Your ride has been cancelled.', notification_type='ride_cancelled'
		)

	def _request(self, method, path, user=None):
		request = getattr(self.factory, method)(path)
		force_authenticate(request, user=user or self.user)
		return request

	def test_inbox_is_newest_first(self):
		response = list_notifications(self._request('get', '/api/notifications/'))

		self.assertEqual(response.data['count'], 2)
		self.assertEqual(response.data['unread_count'], 2)
		titles = [n['title'] for n in response.data['notifications']]
		self.assertEqual(titles, ['Ride Started', 'Driver Found!'])

	def test_mark_read(self):
		response = mark_notification_read(self._request('post', '/'), notification_id=self.first.id)
		self.assertEqual(response.status_code, 200)
		self.assertTrue(response.data['read'])

		unread = list_notifications(self._request('get', '/api/notifications/?unread=true'))
		self.assertEqual([n['id'] for n in unread.data['notifications']], [self.second.id])

	def test_cannot_mark_someone_elses_notification(self):
		response = mark_notification_read(self._request('post', '/'), notification_id=self.foreign.id)

		self.assertEqual(response.status_code, 404)
		self.foreign.refresh_from_db()
		self.assertFalse(self.foreign.read)

	def test_mark_all_read(self):
		response = mark_all_notifications_read(self._request('post', '/'))

		self.assertEqual(response.data['updated'], 2)
		self.assertFalse(Notification.objects.filter(user=self.user, read=False).exists())
		self.assertFalse(Notification.objects.get(id=self.foreign.id).read)
