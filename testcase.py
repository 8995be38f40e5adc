# testcase.py
# Shared unittest base class: throwaway database and upload folder, seeded
# users and login/product helpers.

import os
import json
import shutil
import tempfile
import unittest

os.environ.setdefault("BCRYPT_LOG_ROUNDS", "4")

from app import app as flask_app, init_db, get_db_connection, bcrypt  # noqa: E402
import database  # noqa: E402

ADMIN_EMAIL = "testadmin@example.com"
USER_EMAIL = "testuser@example.com"
PASSWORD = "testpassword"


class ApiTestCase(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.tmp_dir = tempfile.mkdtemp(prefix="aro_bazzar_test_")
        cls.original_db_name = database.DB_NAME
        database.DB_NAME = os.path.join(cls.tmp_dir, "test_aro_bazzar.db")

        flask_app.config['TESTING'] = True
        flask_app.config['JWT_SECRET_KEY'] = 'test_secret_key_for_the_aro_bazzar_suite'
        cls.original_upload_folder = flask_app.config['UPLOAD_FOLDER']
        flask_app.config['UPLOAD_FOLDER'] = os.path.join(cls.tmp_dir, "uploads")
        cls.client = flask_app.test_client()

    @classmethod
    def tearDownClass(cls):
        database.DB_NAME = cls.original_db_name
        flask_app.config['UPLOAD_FOLDER'] = cls.original_upload_folder
        shutil.rmtree(cls.tmp_dir, ignore_errors=True)

    def setUp(self):
        init_db()
        conn = get_db_connection()
        password_hash = bcrypt.generate_password_hash(PASSWORD).decode('utf-8')
        now = database.utcnow()
        for email, is_admin, full_name in ((ADMIN_EMAIL, 1, "Test Admin"), (USER_EMAIL, 0, "Test User")):
            conn.execute(
                "INSERT INTO users (email, password_hash, is_admin, full_name, created_at, updated_at) "
                "VALUES (?, ?, ?, ?, ?, ?)",
                (email, password_hash, is_admin, full_name, now, now))
        conn.commit()
        conn.close()

    def tearDown(self):
        database.drop_all()
        shutil.rmtree(flask_app.config['UPLOAD_FOLDER'], ignore_errors=True)

    # --- Helpers ---
    def _json(self, response):
        return json.loads(response.data.decode())

    def _login(self, email, password=PASSWORD):
        response = self.client.post('/api/auth/login', json={'email': email, 'password': password})
        data = self._json(response)
        self.assertIn('access_token', data, f"Failed to log in as {email}")
        return data['access_token']

    def _get_admin_token(self):
        return self._login(ADMIN_EMAIL)

    def _get_user_token(self):
        return self._login(USER_EMAIL)

    def _headers(self, token):
        return {'Authorization': f'Bearer {token}'}

    def _user_id(self, email=USER_EMAIL):
        conn = get_db_connection()
        row = conn.execute("SELECT id FROM users WHERE email = ?", (email,)).fetchone()
        conn.close()
        return row["id"]

    def _create_product(self, token=None, **fields):
        payload = {
            'product_type': 'fish',
            'title': 'Asian Red Arowana',
            'price': 1000.0,
            'stock_quantity': 5,
            'type': 'arowana',
            'species': 'Arowana',
            'size': '12 inch',
        }
        payload.update(fields)
        response = self.client.post('/api/products', json=payload,
                                    headers=self._headers(token or self._get_admin_token()))
        self.assertEqual(response.status_code, 201, response.data)
        return self._json(response)

    def _stock(self, product_id):
        conn = get_db_connection()
        row = conn.execute("SELECT stock_quantity FROM products WHERE id = ?", (product_id,)).fetchone()
        conn.close()
        return row["stock_quantity"]
