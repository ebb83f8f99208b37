from datetime import date

from django.contrib.auth.models import User
from django.db import IntegrityError, transaction
from django.test import TestCase

from accounts.tokens import issue_token
from .models import Theme
from .services import ThemeService, pick_seasonal_theme_name

COLORS = {
    'primary': '#111111',
    'secondary': '#222222',
    'accent': '#333333',
    'background': '#ffffff',
    'text': '#000000',
}


def make_theme(name, **extra):
    values = {'display_name': name.title(), 'colors': dict(COLORS)}
    values.update(extra)
    return Theme.objects.create(name=name, **values)


class ThemeServiceTests(TestCase):

    def setUp(self):
        self.admin = User.objects.create_user(username='admin', is_staff=True)

    def test_activate_keeps_single_active_theme(self):
        first = make_theme('first')
        second = make_theme('second')

        ThemeService.activate(first, self.admin)
        ThemeService.activate(second, self.admin)

        self.assertEqual(list(Theme.objects.filter(is_active=True)), [second])
        second.refresh_from_db()
        self.assertEqual(second.activated_by, self.admin)
        self.assertIsNotNone(second.activated_at)

    def test_database_refuses_two_active_themes(self):
        make_theme('first', is_active=True)
        with self.assertRaises(IntegrityError), transaction.atomic():
            make_theme('second', is_active=True)

    def test_activate_by_name_creates_predefined(self):
        theme = ThemeService.activate_by_name('Winter', self.admin)

        self.assertEqual(theme.name, 'winter')
        self.assertEqual(theme.display_name, 'Winter Wonderland')
        self.assertEqual(theme.colors['cardBackground'], '#ffffff')
        self.assertTrue(theme.is_active)
        self.assertEqual(theme.created_by, self.admin)

    def test_activate_by_name_reuses_stored_theme(self):
        stored = make_theme('spring', display_name='Our spring')
        theme = ThemeService.activate_by_name('spring', self.admin)
        self.assertEqual(theme.pk, stored.pk)
        self.assertEqual(Theme.objects.count(), 1)

    def test_activate_by_name_unknown(self):
        with self.assertRaises(Theme.DoesNotExist):
            ThemeService.activate_by_name('neon', self.admin)

    def test_activate_seasonal(self):
        theme = ThemeService.activate_seasonal(self.admin, today=date(2026, 7, 4))
        self.assertEqual(theme.name, 'summer')
        self.assertTrue(theme.is_active)


class SeasonPickTests(TestCase):

    def test_seasons(self):
        cases = {
            date(2026, 1, 15): 'winter',
            date(2026, 3, 19): 'winter',
            date(2026, 3, 20): 'spring',
            date(2026, 6, 20): 'spring',
            date(2026, 6, 21): 'summer',
            date(2026, 9, 21): 'summer',
            date(2026, 9, 22): 'fall',
            date(2026, 10, 31): 'fall',
            date(2026, 11, 30): 'fall',
            date(2026, 12, 1): 'christmas',
            date(2026, 12, 25): 'christmas',
            date(2026, 12, 26): 'winter',
        }
        for day, expected in cases.items():
            with self.subTest(day=day):
                self.assertEqual(pick_seasonal_theme_name(day), expected)

    def test_halloween_overrides_october_when_available(self):
        make_theme('halloween', is_holiday=True, is_seasonal=False)
        self.assertEqual(pick_seasonal_theme_name(date(2026, 10, 10)), 'halloween')
        self.assertEqual(pick_seasonal_theme_name(date(2026, 11, 10)), 'fall')


class ThemeViewTests(TestCase):

    def setUp(self):
        self.admin = User.objects.create_user(username='admin', is_staff=True)
        self.parent = User.objects.create_user(username='parent')
        self.spring = make_theme('spring', is_seasonal=True)
        self.christmas = make_theme('christmas', is_holiday=True, is_seasonal=False)

    def _auth(self, user):
        return {'HTTP_AUTHORIZATION': f"Bearer {issue_token(user)}"}

    def _send(self, method, url, user, data=None):
        return getattr(self.client, method)(url, data=data or {}, content_type='application/json', **self._auth(user))

    def test_list_is_public_and_sorted(self):
        make_theme('autumn')
        response = self.client.get('/api/themes/')
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body['count'], 3)
        self.assertEqual([row['name'] for row in body['data']], ['autumn', 'christmas', 'spring'])

    def test_list_filters(self):
        response = self.client.get('/api/themes/?holiday=true')
        self.assertEqual([row['name'] for row in response.json()['data']], ['christmas'])

        ThemeService.activate(self.spring)
        response = self.client.get('/api/themes/?active=true')
        self.assertEqual([row['name'] for row in response.json()['data']], ['spring'])

    def test_create_requires_admin(self):
        payload = {'name': 'ocean', 'displayName': 'Ocean', 'colors': COLORS}
        self.assertEqual(self.client.post('/api/themes/', data=payload, content_type='application/json').status_code, 401)
        self.assertEqual(self._send('post', '/api/themes/', self.parent, payload).status_code, 403)

    def test_create(self):
        response = self._send('post', '/api/themes/', self.admin, {
            'name': ' Ocean ', 'displayName': 'Ocean Breeze', 'colors': COLORS,
            'startDate': '2026-06-01T00:00:00Z',
        })
        self.assertEqual(response.status_code, 201)
        data = response.json()['data']
        self.assertEqual(data['name'], 'ocean')
        self.assertEqual(data['createdBy'], self.admin.pk)
        self.assertFalse(data['isActive'])
        self.assertTrue(data['startDate'].startswith('2026-06-01'))

    def test_create_rejects_incomplete_palette(self):
        response = self._send('post', '/api/themes/', self.admin, {
            'name': 'ocean', 'displayName': 'Ocean', 'colors': {'primary': '#000000'},
        })
        self.assertEqual(response.status_code, 400)
        self.assertIn('colors', response.json()['details'])
        self.assertFalse(Theme.objects.filter(name='ocean').exists())

    def test_create_rejects_duplicate_name(self):
        response = self._send('post', '/api/themes/', self.admin, {
            'name': 'Spring', 'displayName': 'Again', 'colors': COLORS,
        })
        self.assertEqual(response.status_code, 400)

    def test_active_theme(self):
        self.assertEqual(self.client.get('/api/themes/active/').status_code, 404)

        ThemeService.activate(self.christmas)
        response = self.client.get('/api/themes/active/')
        self.assertEqual(response.status_code, 200)
        data = response.json()['data']
        self.assertEqual(data['name'], 'christmas')

        response = self.client.get('/api/themes/active/', {'since': data['version']})
        self.assertEqual(response.status_code, 304)

        ThemeService.activate(self.spring)
        response = self.client.get('/api/themes/active/', {'since': data['version']})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['data']['name'], 'spring')

    def test_detail(self):
        response = self.client.get(f'/api/themes/{self.spring.pk}/')
        self.assertEqual(response.json()['data']['displayName'], 'Spring')
        self.assertEqual(self.client.get('/api/themes/9999/').status_code, 404)

    def test_update_with_is_active_deactivates_others(self):
        ThemeService.activate(self.spring)

        response = self._send('put', f'/api/themes/{self.christmas.pk}/', self.admin,
                              {'isActive': True, 'description': 'Festive'})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['data']['description'], 'Festive')
        self.assertEqual(list(Theme.objects.filter(is_active=True)), [self.christmas])

    def test_delete(self):
        ThemeService.activate(self.spring)

        response = self._send('delete', f'/api/themes/{self.spring.pk}/', self.admin)
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['error'], 'Cannot delete the active theme')

        response = self._send('delete', f'/api/themes/{self.christmas.pk}/', self.admin)
        self.assertEqual(response.status_code, 200)
        self.assertFalse(Theme.objects.filter(pk=self.christmas.pk).exists())

    def test_activate(self):
        response = self._send('post', f'/api/themes/{self.spring.pk}/activate/', self.admin)
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.json()['data']['isActive'])
        self.assertEqual(self._send('post', '/api/themes/9999/activate/', self.admin).status_code, 404)

    def test_activate_by_name(self):
        response = self._send('post', '/api/themes/activate-by-name/', self.admin, {'themeName': 'dark'})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['data']['displayName'], 'Dark Mode')

        response = self._send('post', '/api/themes/activate-by-name/', self.admin, {})
        self.assertEqual(response.status_code, 400)

        response = self._send('post', '/api/themes/activate-by-name/', self.admin, {'themeName': 'neon'})
        self.assertEqual(response.status_code, 404)
        self.assertEqual(Theme.objects.get(is_active=True).name, 'dark')

    def test_activate_seasonal(self):
        response = self._send('post', '/api/themes/activate-seasonal/', self.admin)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(Theme.objects.filter(is_active=True).count(), 1)
        self.assertEqual(self._send('post', '/api/themes/activate-seasonal/', self.parent).status_code, 403)

    def test_routes_without_trailing_slash(self):
        self.assertEqual(self.client.get('/api/themes').json()['count'], 2)

        response = self._send('post', '/api/themes/activate-by-name', self.admin, {'themeName': 'spring'})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(self.client.get('/api/themes/active').json()['data']['name'], 'spring')
