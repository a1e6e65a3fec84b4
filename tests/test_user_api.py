from datetime import timedelta

from extensions import db
from hotel_time import hotel_today
from models import Booking, Role, User
from tests.base import ApiTestCase


class TestUserApi(ApiTestCase):

    def setUp(self):
        super().setUp()
        self.admin = self.make_user('admin', Role.ADMIN)
        self.manager = self.make_user('manager', Role.MANAGER)
        self.john = self.make_user('john', Role.USER)
        self.jane = self.make_user('jane', Role.USER)

    def put(self, url, actor, body):
        return self.client.put(url, json=body, headers=self.auth_headers(actor))

    def test_list_requires_staff(self):
        response = self.client.get('/api/users', headers=self.auth_headers(self.john))
        self.assertEqual(response.status_code, 403)
        response = self.client.get('/api/users', headers=self.auth_headers(self.manager))
        self.assertEqual(len(response.get_json()), 4)
        self.assertNotIn('passwordHash', response.get_json()[0])

    def test_get_own_profile_only(self):
        url = f'/api/users/{self.john.id}'
        self.assertEqual(self.client.get(url, headers=self.auth_headers(self.john)).status_code, 200)
        self.assertEqual(self.client.get(url, headers=self.auth_headers(self.jane)).status_code, 403)
        self.assertEqual(self.client.get(url, headers=self.auth_headers(self.manager)).status_code, 200)
        self.assertEqual(
            self.client.get('/api/users/9999', headers=self.auth_headers(self.admin)).status_code, 404)

    def test_update_own_profile(self):
        response = self.put(f'/api/users/{self.john.id}', self.john,
                            {'username': 'johnny', 'email': 'johnny@example.com'})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_json()['user']['username'], 'johnny')
        self.assertEqual(response.get_json()['user']['email'], 'johnny@example.com')

    def test_update_validation(self):
        response = self.put(f'/api/users/{self.john.id}', self.john, {'email': 'not-an-email'})
        self.assertEqual(response.status_code, 400)
        response = self.put(f'/api/users/{self.john.id}', self.john, {'username': 'jane'})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.get_json()['error'], 'Username already exists')

    def test_cannot_edit_someone_else(self):
        response = self.put(f'/api/users/{self.jane.id}', self.john, {'username': 'hacked'})
        self.assertEqual(response.status_code, 403)

    def test_role_changes(self):
        response = self.put(f'/api/users/{self.john.id}', self.john, {'role': 'MANAGER'})
        self.assertEqual(response.status_code, 403)

        response = self.put(f'/api/users/{self.john.id}', self.manager, {'role': 'MANAGER'})
        self.assertEqual(response.get_json()['user']['role'], 'MANAGER')

        response = self.put(f'/api/users/{self.jane.id}', self.manager, {'role': 'ADMIN'})
        self.assertEqual(response.status_code, 403)

        response = self.put(f'/api/users/{self.jane.id}', self.admin, {'role': 'ADMIN'})
        self.assertEqual(response.get_json()['user']['role'], 'ADMIN')

    def test_delete_user_keeps_bookings(self):
        room = self.make_room('101')
        booking_id = self.make_booking(room, hotel_today() + timedelta(days=3), 2, user=self.john).id
        john_id = self.john.id

        response = self.client.delete(f'/api/users/{john_id}', headers=self.auth_headers(self.manager))
        self.assertEqual(response.status_code, 403)

        response = self.client.delete(f'/api/users/{john_id}', headers=self.auth_headers(self.admin))
        self.assertEqual(response.status_code, 200)
        self.assertIsNone(db.session.get(User, john_id))
        self.assertIsNone(db.session.get(Booking, booking_id).user_id)

    def test_cannot_delete_self(self):
        response = self.client.delete(f'/api/users/{self.admin.id}',
                                      headers=self.auth_headers(self.admin))
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.get_json()['error'], 'Cannot delete your own account')

    def test_change_password(self):
        url = f'/api/users/{self.john.id}/password'
        response = self.put(url, self.john, {'currentPassword': 'wrong123', 'newPassword': 'fresh123'})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.get_json()['error'], 'Current password is incorrect')

        response = self.put(url, self.john, {'currentPassword': 'secret123', 'newPassword': '123'})
        self.assertEqual(response.status_code, 400)

        response = self.put(url, self.john, {'currentPassword': 'secret123', 'newPassword': 'fresh123'})
        self.assertEqual(response.status_code, 200)

        response = self.client.post('/api/auth/login',
                                    json={'username': 'john', 'password': 'fresh123'})
        self.assertEqual(response.status_code, 200)

    def test_password_of_someone_else(self):
        response = self.put(f'/api/users/{self.jane.id}/password', self.john,
                            {'currentPassword': 'secret123', 'newPassword': 'fresh123'})
        self.assertEqual(response.status_code, 403)
