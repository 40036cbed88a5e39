"""
Tests for authentication, users, settings, audit logging and pagination
"""
from django.test import TestCase, RequestFactory
from rest_framework import status
from rest_framework.request import Request
from rest_framework.test import APIClient
from storefront.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from storefront.core.models import User, Setting, AuditLog
from storefront.core.serializers import SettingSerializer
from storefront.core.utils import create_audit_log, get_client_ip, get_setting, paginated_response


class AuthTests(TestCase):
    """Register, login, refresh and the current-user endpoint"""

    def setUp(self):
        self.client = APIClient()
        self.user = TestDataFactory.create_user(username='alice', password='Str0ng-pass-123')

    def test_register_returns_tokens(self):
        response = self.client.post('/api/v1/auth/register/', {
            'username': 'newcustomer',
            'email': 'new@test.com',
            'password': 'Str0ng-pass-123',
            'password_confirm': 'Str0ng-pass-123',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertIn('access', response.data)
        self.assertIn('refresh', response.data)
        self.assertEqual(response.data['user']['username'], 'newcustomer')
        self.assertFalse(User.objects.get(username='newcustomer').is_staff)

    def test_register_password_mismatch(self):
        response = self.client.post('/api/v1/auth/register/', {
            'username': 'newcustomer',
            'password': 'Str0ng-pass-123',
            'password_confirm': 'different-pass-456',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('password', response.data)

    def test_login_and_refresh(self):
        response = self.client.post('/api/v1/auth/login/', {
            'username': 'alice', 'password': 'Str0ng-pass-123'
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        refresh = response.data['refresh']

        response = self.client.post('/api/v1/auth/refresh/', {'refresh': refresh}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('access', response.data)

    def test_login_wrong_password(self):
        response = self.client.post('/api/v1/auth/login/', {
            'username': 'alice', 'password': 'wrong'
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_refresh_for_deleted_user_is_rejected(self):
        response = self.client.post('/api/v1/auth/login/', {
            'username': 'alice', 'password': 'Str0ng-pass-123'
        }, format='json')
        refresh = response.data['refresh']
        self.user.delete()

        response = self.client.post('/api/v1/auth/refresh/', {'refresh': refresh}, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_me_requires_authentication(self):
        response = self.client.get('/api/v1/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_me_reports_admin_flag(self):
        client = AuthenticatedAPIClient().authenticate_user(self.user)
        response = client.get('/api/v1/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['username'], 'alice')
        self.assertFalse(response.data['is_admin'])
        self.assertEqual(response.data['groups'], [])


class UserAdminTests(TestCase):
    def setUp(self):
        self.admin = TestDataFactory.create_admin()
        self.client = AuthenticatedAPIClient().authenticate_user(self.admin)

    def test_non_admin_cannot_list_users(self):
        client = AuthenticatedAPIClient().authenticate_user(TestDataFactory.create_user())
        response = client.get('/api/v1/users/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_create_user_is_audited(self):
        response = self.client.post('/api/v1/users/', {
            'username': 'staffer',
            'email': 'staffer@test.com',
            'password': 'Str0ng-pass-123',
            'password_confirm': 'Str0ng-pass-123',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(AuditLog.objects.filter(action='create', model_name='User').exists())

    def test_admin_cannot_delete_self(self):
        response = self.client.delete(f'/api/v1/users/{self.admin.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertTrue(User.objects.filter(pk=self.admin.pk).exists())

    def test_delete_other_user(self):
        other = TestDataFactory.create_user()
        response = self.client.delete(f'/api/v1/users/{other.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        log = AuditLog.objects.get(action='delete', model_name='User')
        self.assertEqual(log.object_name, other.username)
        self.assertEqual(log.user, self.admin)


class SettingTests(TestCase):
    def setUp(self):
        self.admin = TestDataFactory.create_admin()
        self.client = AuthenticatedAPIClient().authenticate_user(self.admin)

    def test_create_and_read_setting(self):
        response = self.client.post('/api/v1/settings/', {
            'key': 'email_logo_url', 'value': 'https://cdn.test/logo.png'
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(get_setting('email_logo_url'), 'https://cdn.test/logo.png')

    def test_get_setting_default(self):
        self.assertEqual(get_setting('missing', 'fallback'), 'fallback')
        Setting.objects.create(key='blank', value='')
        self.assertEqual(get_setting('blank', 'fallback'), 'fallback')

    def test_patch_setting(self):
        setting = Setting.objects.create(key='store_phone', value='111')
        response = self.client.patch(f'/api/v1/settings/{setting.id}/', {'value': '222'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        setting.refresh_from_db()
        self.assertEqual(setting.value, '222')

    def test_setting_serializer_fields(self):
        setting = Setting.objects.create(key='k', value='v', description='d')
        data = SettingSerializer(setting).data
        self.assertEqual(data['key'], 'k')
        self.assertEqual(data['description'], 'd')


class AuditLogTests(TestCase):
    def setUp(self):
        self.factory = RequestFactory()
        self.admin = TestDataFactory.create_admin()

    def test_client_ip_prefers_forwarded_header(self):
        request = self.factory.get('/', HTTP_X_FORWARDED_FOR='203.0.113.5, 10.0.0.1')
        self.assertEqual(get_client_ip(request), '203.0.113.5')
        self.assertIsNone(get_client_ip(None))

    def test_create_audit_log_records_user_and_ip(self):
        request = self.factory.post('/', REMOTE_ADDR='198.51.100.7')
        request.user = self.admin
        log = create_audit_log(request=request, action='update', model_name='Product', object_id=5,
                               changes={'price': {'old': '1.00', 'new': '2.00'}})
        self.assertEqual(log.user, self.admin)
        self.assertEqual(log.ip_address, '198.51.100.7')
        self.assertEqual(log.object_id, '5')

    def test_create_audit_log_skips_missing_fields(self):
        self.assertIsNone(create_audit_log(action='update', model_name='Product'))
        self.assertEqual(AuditLog.objects.count(), 0)

    def test_system_audit_log_has_no_user(self):
        log = create_audit_log(action='order_create', model_name='Order', object_id='1', object_reference='cs_1')
        self.assertIsNone(log.user)
        self.assertEqual(log.object_reference, 'cs_1')

    def test_audit_log_list_filters_and_paginates(self):
        for i in range(3):
            create_audit_log(action='update', model_name='Product', object_id=str(i))
        create_audit_log(action='delete', model_name='Order', object_id='9')

        client = AuthenticatedAPIClient().authenticate_user(self.admin)
        response = client.get('/api/v1/audit-logs/', {'model_name': 'Product', 'limit': 2})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 3)
        self.assertEqual(len(response.data['results']), 2)
        self.assertEqual(response.data['next'], 2)
        self.assertEqual(response.data['total_pages'], 2)


class PaginationTests(TestCase):
    def setUp(self):
        self.factory = RequestFactory()
        for i in range(5):
            Setting.objects.create(key=f'key{i}', value=str(i))

    def _request(self, params):
        return Request(self.factory.get('/', params))

    def test_limit_is_clamped(self):
        data = paginated_response(self._request({'limit': 0}), Setting.objects.order_by('key'), SettingSerializer)
        self.assertEqual(data['page_size'], 1)
        self.assertEqual(data['total_pages'], 5)

    def test_invalid_params_fall_back_to_defaults(self):
        data = paginated_response(self._request({'page': 'x'}), Setting.objects.order_by('key'), SettingSerializer, default_limit=2)
        self.assertEqual(data['page'], 1)
        self.assertEqual(data['page_size'], 2)
        self.assertIsNone(data['previous'])


class AdminSiteTests(TestCase):
    """Back-office actions on the Django admin site"""

    def setUp(self):
        self.admin = TestDataFactory.create_admin(username='owner')
        self.client.force_login(self.admin)
        self.clerk = TestDataFactory.create_user(username='clerk', email='clerk@test.com')

    def test_grant_and_revoke_back_office_access(self):
        response = self.client.post('/admin/core/user/', {
            'action': 'grant_store_admin',
            '_selected_action': [self.clerk.id, self.admin.id],
        })
        self.assertEqual(response.status_code, 302)
        self.clerk.refresh_from_db()
        self.assertTrue(self.clerk.is_staff)
        log = AuditLog.objects.get(model_name='User', object_id=str(self.clerk.id))
        self.assertEqual(log.user, self.admin)
        self.assertEqual(log.changes['is_staff'], {'old': False, 'new': True})

        self.client.post('/admin/core/user/', {
            'action': 'revoke_store_admin',
            '_selected_action': [self.clerk.id, self.admin.id],
        })
        self.clerk.refresh_from_db()
        self.admin.refresh_from_db()
        self.assertFalse(self.clerk.is_staff)
        # Superusers are never demoted
        self.assertTrue(self.admin.is_staff)

    def test_audit_log_is_read_only(self):
        log = create_audit_log(user=self.admin, action='create', model_name='Product', object_id='1',
                               changes={'title': 'Fob'})
        self.assertEqual(self.client.get('/admin/core/auditlog/add/').status_code, 403)
        response = self.client.get(f'/admin/core/auditlog/{log.id}/change/')
        self.assertEqual(response.status_code, 200)
        self.assertContains(response, '&quot;title&quot;: &quot;Fob&quot;')
