from django.test import TestCase


class DiagnosticEndpointTests(TestCase):
    """Test the diagnostic endpoints"""

    def test_root(self):
        response = self.client.get('/')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {'message': 'BabyResell API is running'})

    def test_health(self):
        response = self.client.get('/api/health/')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {'status': 'ok'})

    def test_api_test(self):
        response = self.client.get('/api/test/')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {'success': True, 'message': 'API is working correctly'})

    def test_echo_returns_body(self):
        response = self.client.post(
            '/api/test/echo/', data={'hello': 'world', 'n': 3}, content_type='application/json'
        )
        self.assertEqual(response.status_code, 200)
        payload = response.json()
        self.assertTrue(payload['success'])
        self.assertEqual(payload['message'], 'Echo endpoint working')
        self.assertEqual(payload['data'], {'hello': 'world', 'n': 3})

    def test_echo_rejects_invalid_json(self):
        response = self.client.post('/api/test/echo/', data='not json', content_type='application/json')
        self.assertEqual(response.status_code, 400)
        self.assertFalse(response.json()['success'])

    def test_api_test_rejects_post(self):
        response = self.client.post('/api/test/')
        self.assertEqual(response.status_code, 405)

    def test_routes_answer_without_trailing_slash(self):
        self.assertEqual(self.client.get('/api/health').json(), {'status': 'ok'})
        response = self.client.get('/api/test')
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.json()['success'])

    def test_echo_without_trailing_slash_keeps_body(self):
        response = self.client.post('/api/test/echo', data={'a': 1}, content_type='application/json')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['data'], {'a': 1})

    def test_prefix_must_end_at_a_slash(self):
        self.assertEqual(self.client.get('/api/testing').status_code, 404)
