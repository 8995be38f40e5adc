import io
import unittest

from testcase import ApiTestCase, ADMIN_EMAIL, USER_EMAIL, PASSWORD
import config


class AppTestCase(ApiTestCase):

    # --- Health & Error Shape ---
    def test_001_health(self):
        response = self.client.get('/api/health')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(self._json(response), {"status": "ok"})

    def test_002_unknown_route_returns_json_404(self):
        response = self.client.get('/api/does-not-exist')
        self.assertEqual(response.status_code, 404)
        self.assertIn('error', self._json(response))

    # --- Signup & Login ---
    def test_010_signup_returns_user_and_token(self):
        response = self.client.post('/api/auth/signup', json={
            'email': 'New.Customer@Example.com', 'password': 'secret123', 'full_name': 'New Customer'})
        self.assertEqual(response.status_code, 201)
        data = self._json(response)
        self.assertIn('access_token', data)
        self.assertEqual(data['user']['email'], 'new.customer@example.com')
        self.assertFalse(data['user']['is_admin'])
        self.assertNotIn('password_hash', data['user'])

    def test_011_signup_duplicate_email(self):
        response = self.client.post('/api/auth/signup', json={'email': USER_EMAIL, 'password': 'secret123'})
        self.assertEqual(response.status_code, 409)
        self.assertEqual(self._json(response)['error'], "Email already registered")

    def test_012_signup_validation(self):
        response = self.client.post('/api/auth/signup', json={'email': 'not-an-email', 'password': 'secret123'})
        self.assertEqual(response.status_code, 400)
        response = self.client.post('/api/auth/signup', json={'email': 'short@example.com', 'password': '123'})
        self.assertEqual(response.status_code, 400)
        response = self.client.post('/api/auth/signup', json={})
        self.assertEqual(response.status_code, 400)

    def test_013_login_success(self):
        response = self.client.post('/api/auth/login', json={'email': USER_EMAIL, 'password': PASSWORD})
        self.assertEqual(response.status_code, 200)
        data = self._json(response)
        self.assertIn('access_token', data)
        self.assertEqual(data['user']['email'], USER_EMAIL)

    def test_014_login_wrong_password(self):
        response = self.client.post('/api/auth/login', json={'email': USER_EMAIL, 'password': 'wrong'})
        self.assertEqual(response.status_code, 401)
        self.assertEqual(self._json(response)['error'], "Invalid email or password")

    def test_015_login_missing_fields(self):
        response = self.client.post('/api/auth/login', json={'email': USER_EMAIL})
        self.assertEqual(response.status_code, 400)

    def test_016_default_admin_is_seeded(self):
        response = self.client.post('/api/auth/login',
                                    json={'email': 'admin@example.com', 'password': 'changethispassword'})
        self.assertEqual(response.status_code, 200)
        self.assertTrue(self._json(response)['user']['is_admin'])

    def test_017_credentials_must_be_text(self):
        response = self.client.post('/api/auth/signup', json={'email': 5, 'password': 'secret123'})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(self._json(response)['error'], "Email and password must be text")
        response = self.client.post('/api/auth/signup', json={'email': 'n@example.com', 'password': 12345678})
        self.assertEqual(response.status_code, 400)
        response = self.client.post('/api/auth/login', json={'email': 5, 'password': PASSWORD})
        self.assertEqual(response.status_code, 400)
        response = self.client.put('/api/auth/password', headers=self._headers(self._get_user_token()),
                                   json={'current_password': PASSWORD, 'new_password': 12345678})
        self.assertEqual(response.status_code, 400)
        self.assertIsNotNone(self._login(USER_EMAIL, PASSWORD))

    def test_018_signup_with_configured_admin_email(self):
        original = config.ADMIN_EMAILS
        config.ADMIN_EMAILS = original + ['owner@example.com']
        self.addCleanup(setattr, config, 'ADMIN_EMAILS', original)

        response = self.client.post('/api/auth/signup',
                                    json={'email': 'Owner@Example.com', 'password': 'secret123'})
        self.assertEqual(response.status_code, 201)
        data = self._json(response)
        self.assertTrue(data['user']['is_admin'])
        response = self.client.get('/api/users', headers=self._headers(data['access_token']))
        self.assertEqual(response.status_code, 200)

    # --- Profile ---
    def test_020_get_profile(self):
        response = self.client.get('/api/auth/me', headers=self._headers(self._get_user_token()))
        self.assertEqual(response.status_code, 200)
        data = self._json(response)
        self.assertEqual(data['email'], USER_EMAIL)
        self.assertEqual(data['full_name'], 'Test User')

    def test_021_profile_requires_token(self):
        response = self.client.get('/api/auth/me')
        self.assertEqual(response.status_code, 401)
        self.assertIn('error', self._json(response))

    def test_022_update_profile(self):
        token = self._get_user_token()
        response = self.client.put('/api/auth/me', headers=self._headers(token), json={
            'full_name': 'Renamed User', 'city': 'Kolkata', 'is_admin': True})
        self.assertEqual(response.status_code, 200)
        data = self._json(response)
        self.assertEqual(data['full_name'], 'Renamed User')
        self.assertEqual(data['city'], 'Kolkata')
        self.assertFalse(data['is_admin'])

    def test_023_update_profile_empty(self):
        response = self.client.put('/api/auth/me', headers=self._headers(self._get_user_token()), json={})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(self._json(response)['error'], "No update data provided.")

    def test_024_change_password(self):
        token = self._get_user_token()
        response = self.client.put('/api/auth/password', headers=self._headers(token), json={
            'current_password': 'wrong', 'new_password': 'newsecret'})
        self.assertEqual(response.status_code, 401)

        response = self.client.put('/api/auth/password', headers=self._headers(token), json={
            'current_password': PASSWORD, 'new_password': 'newsecret'})
        self.assertEqual(response.status_code, 200)

        response = self.client.post('/api/auth/login', json={'email': USER_EMAIL, 'password': 'newsecret'})
        self.assertEqual(response.status_code, 200)

    # --- Avatar ---
    def test_030_upload_and_delete_avatar(self):
        token = self._get_user_token()
        response = self.client.post('/api/auth/avatar', headers=self._headers(token),
                                    data={'file': (io.BytesIO(b'fake image bytes'), 'me.png')},
                                    content_type='multipart/form-data')
        self.assertEqual(response.status_code, 200)
        avatar_url = self._json(response)['avatar_url']
        self.assertTrue(avatar_url.startswith('/storage/avatars/'))

        served = self.client.get(avatar_url)
        self.assertEqual(served.status_code, 200)
        self.assertEqual(served.data, b'fake image bytes')
        served.close()

        profile = self._json(self.client.get('/api/auth/me', headers=self._headers(token)))
        self.assertEqual(profile['avatar_url'], avatar_url)

        response = self.client.delete('/api/auth/avatar', headers=self._headers(token))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(self._json(response)['removed'], 1)
        profile = self._json(self.client.get('/api/auth/me', headers=self._headers(token)))
        self.assertIsNone(profile['avatar_url'])

    def test_031_avatar_rejects_bad_type(self):
        response = self.client.post('/api/auth/avatar', headers=self._headers(self._get_user_token()),
                                    data={'file': (io.BytesIO(b'%PDF'), 'doc.pdf')},
                                    content_type='multipart/form-data')
        self.assertEqual(response.status_code, 400)

    def test_032_avatar_rejects_large_file(self):
        big = io.BytesIO(b'0' * (2 * 1024 * 1024 + 1))
        response = self.client.post('/api/auth/avatar', headers=self._headers(self._get_user_token()),
                                    data={'file': (big, 'big.jpg')}, content_type='multipart/form-data')
        self.assertEqual(response.status_code, 400)
        self.assertIn('2MB', self._json(response)['error'])

    # --- User Management ---
    def test_040_admin_lists_users(self):
        response = self.client.get('/api/users', headers=self._headers(self._get_admin_token()))
        self.assertEqual(response.status_code, 200)
        emails = [user['email'] for user in self._json(response)]
        self.assertIn(ADMIN_EMAIL, emails)
        self.assertIn(USER_EMAIL, emails)

    def test_041_customer_cannot_list_users(self):
        response = self.client.get('/api/users', headers=self._headers(self._get_user_token()))
        self.assertEqual(response.status_code, 403)
        self.assertEqual(self._json(response)['error'], "Administration rights required")

    def test_042_anonymous_cannot_list_users(self):
        response = self.client.get('/api/users')
        self.assertEqual(response.status_code, 401)

    def test_043_admin_creates_admin_user(self):
        response = self.client.post('/api/users', headers=self._headers(self._get_admin_token()), json={
            'email': 'staff@example.com', 'password': 'staffpass', 'is_admin': True})
        self.assertEqual(response.status_code, 201)
        data = self._json(response)
        self.assertTrue(data['is_admin'])
        self.assertEqual(data['message'], "User 'staff@example.com' created")

        token = self._login('staff@example.com', 'staffpass')
        response = self.client.get('/api/users', headers=self._headers(token))
        self.assertEqual(response.status_code, 200)

    def test_044_admin_create_user_duplicate(self):
        response = self.client.post('/api/users', headers=self._headers(self._get_admin_token()), json={
            'email': USER_EMAIL, 'password': 'whatever1'})
        self.assertEqual(response.status_code, 409)

    def test_045_garbage_token(self):
        response = self.client.get('/api/auth/me', headers={'Authorization': 'Bearer not.a.token'})
        self.assertEqual(response.status_code, 422)


if __name__ == '__main__':
    unittest.main()
