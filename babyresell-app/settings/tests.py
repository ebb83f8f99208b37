from decimal import Decimal
from unittest.mock import patch

from django.contrib.auth.models import User
from django.core import mail
from django.test import TestCase, override_settings

from accounts.tokens import issue_token
from . import defaults
from .models import SiteSetting
from .utils import deep_merge, restrict_to_known_keys


class DeepMergeTests(TestCase):

    def test_nested_dicts_are_merged(self):
        base = {'a': 1, 'nested': {'x': 1, 'y': 2}}
        merged = deep_merge(base, {'nested': {'y': 3}})
        self.assertEqual(merged, {'a': 1, 'nested': {'x': 1, 'y': 3}})

    def test_lists_and_scalars_replace(self):
        merged = deep_merge({'tags': ['a', 'b'], 'n': 1}, {'tags': ['c'], 'n': 2})
        self.assertEqual(merged, {'tags': ['c'], 'n': 2})

    def test_inputs_are_not_mutated(self):
        base = {'nested': {'x': 1}}
        override = {'nested': {'x': 2}}
        deep_merge(base, override)
        self.assertEqual(base, {'nested': {'x': 1}})

    def test_restrict_to_known_keys_reports_dropped_paths(self):
        kept, dropped = restrict_to_known_keys(
            {'siteName': 'X', 'bogus': 1, 'socialMedia': {'facebook': 'f', 'myspace': 'm'}},
            defaults.GENERAL,
        )
        self.assertEqual(kept, {'siteName': 'X', 'socialMedia': {'facebook': 'f'}})
        self.assertEqual(sorted(dropped), ['bogus', 'socialMedia.myspace'])


class SiteSettingModelTests(TestCase):

    def test_get_settings_is_a_singleton(self):
        first = SiteSetting.get_settings()
        second = SiteSetting.get_settings()
        self.assertEqual(first.pk, second.pk)
        self.assertEqual(SiteSetting.objects.count(), 1)

    def test_section_returns_defaults_when_nothing_stored(self):
        site_setting = SiteSetting.get_settings()
        self.assertEqual(site_setting.section('payments'), defaults.PAYMENTS)
        self.assertEqual(site_setting.transaction_fee_percent, Decimal('8.0'))
        self.assertEqual(site_setting.premium_fee_percent, Decimal('5.0'))

    def test_unknown_section_raises(self):
        with self.assertRaises(KeyError):
            SiteSetting.get_settings().section('nope')

    def test_partial_update_keeps_other_keys(self):
        site_setting = SiteSetting.get_settings()
        site_setting.update_sections({'general': {'siteName': 'Tiny Trades'}})

        site_setting = SiteSetting.get_settings()
        general = site_setting.section('general')
        self.assertEqual(general['siteName'], 'Tiny Trades')
        self.assertEqual(general['supportEmail'], defaults.GENERAL['supportEmail'])

        site_setting.update_sections({'general': {'socialMedia': {'twitter': '@tiny'}}})
        general = SiteSetting.get_settings().section('general')
        self.assertEqual(general['siteName'], 'Tiny Trades')
        self.assertEqual(general['socialMedia']['twitter'], '@tiny')
        self.assertEqual(general['socialMedia']['facebook'], '')

    def test_unknown_sections_and_keys_are_ignored(self):
        site_setting = SiteSetting.get_settings()
        ignored = site_setting.update_sections({
            'payments': {'transactionFeePercent': 10, 'madeUp': True},
            'shipping': {'x': 1},
        })
        self.assertEqual(sorted(ignored), ['payments.madeUp', 'shipping'])
        payments = SiteSetting.get_settings().section('payments')
        self.assertEqual(payments['transactionFeePercent'], 10)
        self.assertNotIn('madeUp', payments)


class SiteSettingViewTests(TestCase):

    def setUp(self):
        self.admin = User.objects.create_user(
            username='admin', password='pass1234', email='admin@example.com', is_staff=True)
        self.user = User.objects.create_user(username='parent', password='pass1234')
        self.admin_auth = {'HTTP_AUTHORIZATION': f"Bearer {issue_token(self.admin)}"}

    def test_requires_authentication(self):
        response = self.client.get('/api/settings/')
        self.assertEqual(response.status_code, 401)

    def test_requires_admin(self):
        response = self.client.get(
            '/api/settings/', HTTP_AUTHORIZATION=f"Bearer {issue_token(self.user)}")
        self.assertEqual(response.status_code, 403)

    def test_get_returns_all_sections(self):
        response = self.client.get('/api/settings/', **self.admin_auth)
        self.assertEqual(response.status_code, 200)
        data = response.json()['data']
        for name in defaults.SECTIONS:
            self.assertIn(name, data)
        self.assertEqual(data['payments']['transactionFeePercent'], 8.0)

    def test_put_merges_partial_update(self):
        response = self.client.put(
            '/api/settings/',
            data={'content': {'maxImagesPerListing': 12}},
            content_type='application/json',
            **self.admin_auth,
        )
        self.assertEqual(response.status_code, 200)
        content = response.json()['data']['content']
        self.assertEqual(content['maxImagesPerListing'], 12)
        self.assertEqual(content['maxDescriptionLength'], defaults.CONTENT['maxDescriptionLength'])
        self.assertEqual(SiteSetting.get_settings().updated_by, self.admin)

    def test_put_rejects_invalid_json(self):
        response = self.client.put(
            '/api/settings/', data='{', content_type='application/json', **self.admin_auth)
        self.assertEqual(response.status_code, 400)

    def test_put_rejects_non_object(self):
        response = self.client.put(
            '/api/settings', data='[1, 2]', content_type='application/json', **self.admin_auth)
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['error'], 'Settings must be a JSON object')

    def test_send_test_email_rejects_non_object(self):
        response = self.client.post(
            '/api/settings/test-email', data='[]', content_type='application/json', **self.admin_auth)
        self.assertEqual(response.status_code, 400)
        self.assertFalse(response.json()['success'])

    @override_settings(EMAIL_BACKEND='django.core.mail.backends.locmem.EmailBackend')
    def test_send_test_email(self):
        response = self.client.post(
            '/api/settings/test-email/',
            data={'email': 'ops@example.com'},
            content_type='application/json',
            **self.admin_auth,
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(mail.outbox), 1)
        self.assertEqual(mail.outbox[0].to, ['ops@example.com'])

    @patch('settings.views.send_mail', side_effect=OSError('smtp down'))
    def test_send_test_email_failure(self, mock_send):
        response = self.client.post(
            '/api/settings/test-email/',
            data={'email': 'ops@example.com'},
            content_type='application/json',
            **self.admin_auth,
        )
        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json()['error'], 'Failed to send test email')
