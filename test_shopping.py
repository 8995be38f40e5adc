import unittest

from testcase import ApiTestCase


class ShoppingTestCase(ApiTestCase):

    def setUp(self):
        super().setUp()
        self.product = self._create_product(price=100.0, discount_percentage=10, stock_quantity=5)
        self.headers = self._headers(self._get_user_token())

    # --- Cart ---
    def test_001_empty_cart(self):
        response = self.client.get('/api/cart', headers=self.headers)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(self._json(response), {'items': [], 'subtotal': 0, 'count': 0})

    def test_002_cart_requires_login(self):
        self.assertEqual(self.client.get('/api/cart').status_code, 401)

    def test_003_add_to_cart_merges_quantities(self):
        self.client.post('/api/cart', headers=self.headers, json={'product_id': self.product['id']})
        response = self.client.post('/api/cart', headers=self.headers,
                                    json={'product_id': f"fish_{self.product['id']}", 'quantity': 2})
        self.assertEqual(response.status_code, 200)
        cart = self._json(response)
        self.assertEqual(len(cart['items']), 1)
        item = cart['items'][0]
        self.assertEqual(item['quantity'], 3)
        self.assertEqual(item['final_price'], 90.0)
        self.assertEqual(item['line_total'], 270.0)
        self.assertEqual(item['size'], '12 inch')
        self.assertEqual(cart['subtotal'], 270.0)
        self.assertEqual(cart['count'], 3)

    def test_004_add_to_cart_validation(self):
        response = self.client.post('/api/cart', headers=self.headers, json={})
        self.assertEqual(response.status_code, 400)
        response = self.client.post('/api/cart', headers=self.headers,
                                    json={'product_id': self.product['id'], 'quantity': 0})
        self.assertEqual(response.status_code, 400)
        response = self.client.post('/api/cart', headers=self.headers, json={'product_id': 999})
        self.assertEqual(response.status_code, 404)

    def test_005_out_of_stock_cannot_be_added(self):
        sold_out = self._create_product(title='Sold Out', stock_quantity=0)
        response = self.client.post('/api/cart', headers=self.headers, json={'product_id': sold_out['id']})
        self.assertEqual(response.status_code, 409)
        self.assertEqual(self._json(response)['error'], "Product is out of stock")

    def test_006_update_and_remove_cart_item(self):
        self.client.post('/api/cart', headers=self.headers, json={'product_id': self.product['id']})
        response = self.client.put(f"/api/cart/{self.product['id']}", headers=self.headers, json={'quantity': 4})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(self._json(response)['count'], 4)

        response = self.client.delete(f"/api/cart/{self.product['id']}", headers=self.headers)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(self._json(response)['items'], [])

        response = self.client.delete(f"/api/cart/{self.product['id']}", headers=self.headers)
        self.assertEqual(response.status_code, 404)
        self.assertEqual(self._json(response)['error'], "Item not in cart")

    def test_007_clear_cart(self):
        other = self._create_product(title='Second Fish')
        self.client.post('/api/cart', headers=self.headers, json={'product_id': self.product['id']})
        self.client.post('/api/cart', headers=self.headers, json={'product_id': other['id']})
        response = self.client.delete('/api/cart', headers=self.headers)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(self._json(response)['count'], 0)

    def test_008_carts_are_per_user(self):
        self.client.post('/api/cart', headers=self.headers, json={'product_id': self.product['id']})
        admin_cart = self._json(self.client.get('/api/cart', headers=self._headers(self._get_admin_token())))
        self.assertEqual(admin_cart['items'], [])

    def test_009_deleted_product_leaves_cart(self):
        self.client.post('/api/cart', headers=self.headers, json={'product_id': self.product['id']})
        self.client.delete(f"/api/products/{self.product['id']}", headers=self._headers(self._get_admin_token()))
        cart = self._json(self.client.get('/api/cart', headers=self.headers))
        self.assertEqual(cart['items'], [])

    # --- Wishlist ---
    def test_010_subtotal_rounds_once(self):
        for title in ('Brine Shrimp Sample', 'Bloodworm Sample'):
            product = self._create_product(product_type='food', title=title, price=0.004, stock_quantity=5)
            self.client.post('/api/cart', headers=self.headers, json={'product_id': product['id']})
        cart = self._json(self.client.get('/api/cart', headers=self.headers))
        self.assertEqual([item['line_total'] for item in cart['items']], [0.0, 0.0])
        self.assertEqual(cart['subtotal'], 0.01)

    def test_020_add_to_wishlist_once(self):
        response = self.client.post('/api/wishlist', headers=self.headers, json={'product_id': self.product['id']})
        self.assertEqual(response.status_code, 201)
        response = self.client.post('/api/wishlist', headers=self.headers, json={'product_id': self.product['id']})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(self._json(response)['message'], "Already in wishlist")

        items = self._json(self.client.get('/api/wishlist', headers=self.headers))
        self.assertEqual(len(items), 1)
        self.assertEqual(items[0]['title'], 'Asian Red Arowana')

    def test_021_check_and_remove(self):
        url = f"/api/wishlist/{self.product['id']}"
        self.assertFalse(self._json(self.client.get(url, headers=self.headers))['in_wishlist'])
        self.client.post('/api/wishlist', headers=self.headers, json={'product_id': self.product['id']})
        self.assertTrue(self._json(self.client.get(url, headers=self.headers))['in_wishlist'])

        response = self.client.delete(url, headers=self.headers)
        self.assertEqual(response.status_code, 200)
        response = self.client.delete(url, headers=self.headers)
        self.assertEqual(response.status_code, 404)

    def test_022_toggle(self):
        url = f"/api/wishlist/{self.product['id']}/toggle"
        self.assertTrue(self._json(self.client.post(url, headers=self.headers))['in_wishlist'])
        self.assertFalse(self._json(self.client.post(url, headers=self.headers))['in_wishlist'])
        response = self.client.post('/api/wishlist/999/toggle', headers=self.headers)
        self.assertEqual(response.status_code, 404)

    def test_023_move_to_cart(self):
        self.client.post('/api/wishlist', headers=self.headers, json={'product_id': self.product['id']})
        response = self.client.post(f"/api/wishlist/{self.product['id']}/move-to-cart", headers=self.headers)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(self._json(response)['count'], 1)
        self.assertEqual(self._json(self.client.get('/api/wishlist', headers=self.headers)), [])

        response = self.client.post(f"/api/wishlist/{self.product['id']}/move-to-cart", headers=self.headers)
        self.assertEqual(response.status_code, 404)

    def test_024_clear_wishlist(self):
        self.client.post('/api/wishlist', headers=self.headers, json={'product_id': self.product['id']})
        response = self.client.delete('/api/wishlist', headers=self.headers)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(self._json(self.client.get('/api/wishlist', headers=self.headers)), [])


if __name__ == '__main__':
    unittest.main()
