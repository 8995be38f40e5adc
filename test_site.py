import io
import unittest

from testcase import ApiTestCase
from site_settings import DEFAULT_CONFIG, deep_merge


class DeepMergeTestCase(unittest.TestCase):

    def test_001_nested_values_override(self):
        merged = deep_merge({'a': {'b': 1, 'c': {'d': 2, 'e': 3}}}, {'a': {'c': {'d': 9}}})
        self.assertEqual(merged, {'a': {'b': 1, 'c': {'d': 9, 'e': 3}}})

    def test_002_base_is_not_mutated(self):
        merge_base = {'footer': {'socialLinks': {'facebook': 'x'}}}
        deep_merge(merge_base, {'footer': {'socialLinks': {'facebook': 'y'}}})
        self.assertEqual(merge_base['footer']['socialLinks']['facebook'], 'x')


class SiteSettingsTestCase(ApiTestCase):

    def setUp(self):
        super().setUp()
        self.admin_headers = self._headers(self._get_admin_token())
        self.user_headers = self._headers(self._get_user_token())

    # --- Page Settings ---
    def test_010_seeded_page_settings(self):
        response = self.client.get('/api/settings/pages/home/hero')
        self.assertEqual(response.status_code, 200)
        self.assertIsNone(self._json(response)['banner_image'])
        self.assertEqual(self.client.get('/api/settings/pages/home/footer').status_code, 404)

        settings = self._json(self.client.get('/api/settings/pages', headers=self.admin_headers))
        self.assertEqual({(s['page'], s['section']) for s in settings}, {('home', 'hero'), ('home', 'about')})

    def test_011_update_page_setting_media_only(self):
        hero = self._json(self.client.get('/api/settings/pages/home/hero'))
        url = f"/api/settings/pages/{hero['id']}"
        response = self.client.put(url, headers=self.admin_headers, json={
            'background_video': '/storage/backgrounds/waves.mp4', 'page': 'shop'})
        self.assertEqual(response.status_code, 200)
        data = self._json(response)
        self.assertEqual(data['background_video'], '/storage/backgrounds/waves.mp4')
        self.assertEqual(data['page'], 'home')

        response = self.client.put(url, headers=self.admin_headers, json={'section': 'other'})
        self.assertEqual(response.status_code, 400)
        response = self.client.put(url, headers=self.user_headers, json={'banner_image': 'x'})
        self.assertEqual(response.status_code, 403)

    def test_012_create_page_setting(self):
        response = self.client.post('/api/settings/pages', headers=self.admin_headers, json={
            'page': 'products', 'section': 'hero', 'banner_image': '/storage/backgrounds/b.jpg'})
        self.assertEqual(response.status_code, 201)
        response = self.client.get('/api/settings/pages/products/hero')
        self.assertEqual(self._json(response)['banner_image'], '/storage/backgrounds/b.jpg')

        response = self.client.post('/api/settings/pages', headers=self.admin_headers,
                                    json={'page': 'products', 'section': 'hero'})
        self.assertEqual(response.status_code, 409)
        response = self.client.post('/api/settings/pages', headers=self.admin_headers, json={'page': 'x'})
        self.assertEqual(response.status_code, 400)

    # --- Media Library ---
    def test_020_media_library(self):
        response = self.client.post('/api/settings/media', headers=self.admin_headers,
                                    data={'file': (io.BytesIO(b'img'), 'banner.jpg')},
                                    content_type='multipart/form-data')
        self.assertEqual(response.status_code, 201)
        image = self._json(response)
        self.assertEqual(image['type'], 'image')
        response = self.client.post('/api/settings/media', headers=self.admin_headers,
                                    data={'file': (io.BytesIO(b'vid'), 'waves.webm')},
                                    content_type='multipart/form-data')
        self.assertEqual(self._json(response)['type'], 'video')

        media = self._json(self.client.get('/api/settings/media', headers=self.admin_headers))
        self.assertEqual({m['type'] for m in media}, {'image', 'video'})
        self.assertTrue(all(m['url'].startswith('/storage/backgrounds/') for m in media))

        response = self.client.delete(f"/api/settings/media/{image['name']}", headers=self.admin_headers)
        self.assertEqual(response.status_code, 200)
        response = self.client.delete(f"/api/settings/media/{image['name']}", headers=self.admin_headers)
        self.assertEqual(response.status_code, 404)
        media = self._json(self.client.get('/api/settings/media', headers=self.admin_headers))
        self.assertEqual(len(media), 1)

    def test_021_media_rejects_other_files(self):
        response = self.client.post('/api/settings/media', headers=self.admin_headers,
                                    data={'file': (io.BytesIO(b'x'), 'notes.txt')},
                                    content_type='multipart/form-data')
        self.assertEqual(response.status_code, 400)
        response = self.client.post('/api/settings/media', headers=self.admin_headers, data={},
                                    content_type='multipart/form-data')
        self.assertEqual(response.status_code, 400)

    def test_022_unknown_bucket(self):
        self.assertEqual(self.client.get('/storage/secrets/file.txt').status_code, 404)

    # --- Website Config ---
    def test_030_defaults(self):
        response = self.client.get('/api/site-config')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(self._json(response), DEFAULT_CONFIG)

    def test_031_update_merges_with_defaults(self):
        response = self.client.put('/api/site-config', headers=self.admin_headers, json={
            'hero': {'title': 'Rare Arowana'},
            'theme': {'primaryColor': '#000000'},
            'footer': {'socialLinks': {'facebook': 'https://facebook.com/aro', 'youtube': 'https://yt/aro'}},
        })
        self.assertEqual(response.status_code, 200)
        config = self._json(response)
        self.assertEqual(config['hero']['title'], 'Rare Arowana')
        self.assertEqual(config['hero']['buttonText'], DEFAULT_CONFIG['hero']['buttonText'])
        self.assertEqual(config['theme']['primaryColor'], '#000000')
        self.assertEqual(config['footer']['socialLinks']['facebook'], 'https://facebook.com/aro')
        self.assertEqual(config['footer']['socialLinks']['twitter'],
                         DEFAULT_CONFIG['footer']['socialLinks']['twitter'])
        self.assertEqual(config['footer']['socialLinks']['youtube'], 'https://yt/aro')

        self.assertEqual(self._json(self.client.get('/api/site-config')), config)

    def test_032_update_validation(self):
        response = self.client.put('/api/site-config', headers=self.admin_headers, json={'sidebar': {'x': 1}})
        self.assertEqual(response.status_code, 400)
        response = self.client.put('/api/site-config', headers=self.admin_headers, json={'hero': {'font': 'x'}})
        self.assertEqual(response.status_code, 400)
        response = self.client.put('/api/site-config', headers=self.admin_headers, json={'hero': 'x'})
        self.assertEqual(response.status_code, 400)
        response = self.client.put('/api/site-config', headers=self.user_headers, json={'hero': {'title': 'x'}})
        self.assertEqual(response.status_code, 403)

    def test_033_values_stored_as_strings(self):
        self.client.put('/api/site-config', headers=self.admin_headers, json={'contact': {'phone': 5551234}})
        config = self._json(self.client.get('/api/site-config'))
        self.assertEqual(config['contact']['phone'], '5551234')


if __name__ == '__main__':
    unittest.main()
