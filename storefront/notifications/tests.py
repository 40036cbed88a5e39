"""
Tests for subscriber collection, email templates, order emails, campaigns,
homepage banners and contact messages
"""
from unittest.mock import patch

from django.core import mail
from django.test import TestCase, override_settings
from rest_framework import status
from rest_framework.test import APIClient
from storefront.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from storefront.core.models import Setting, AuditLog
from storefront.notifications.models import EmailTemplate, EmailSubscriber, EmailCampaign, Banner, ContactMessage
from storefront.notifications.emails import (
    EmailDeliveryError, render_template, build_customer_email, order_context,
    send_order_confirmation, send_order_shipped, send_promo_campaign,
)
from storefront.notifications.views import campaign_for_source

EMAIL_SETTINGS = {
    'EMAIL_BACKEND': 'django.core.mail.backends.locmem.EmailBackend',
    'OWNER_EMAIL': 'owner@shop.test',
    'DEFAULT_FROM_EMAIL': 'store@shop.test',
}


class SubscriberCollectTests(TestCase):
    URL = '/api/v1/subscribers/collect/'

    def setUp(self):
        self.client = APIClient()

    def test_collect_new_subscriber(self):
        response = self.client.post(self.URL, {'email': ' Fan@Test.com ', 'phone': '+1 (555) 123-4567'}, format='json',
                                    HTTP_USER_AGENT='pytest-browser')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['message'], 'Email collected successfully')
        subscriber = EmailSubscriber.objects.get()
        self.assertEqual(subscriber.email, 'fan@test.com')
        self.assertEqual(subscriber.source, 'promo_modal')
        self.assertEqual(subscriber.campaign, 'promo_modal_10_percent_off')
        self.assertTrue(subscriber.sms_marketing)
        self.assertIsNotNone(subscriber.consent_date)
        self.assertEqual(subscriber.user_agent, 'pytest-browser')

    def test_duplicate_records_additional_source(self):
        TestDataFactory.create_subscriber(email='fan@test.com')
        response = self.client.post(self.URL, {'email': 'FAN@test.com', 'source': 'user_registration'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['message'], 'Email already exists in list')
        self.assertEqual(EmailSubscriber.objects.get().additional_sources, ['user_registration'])

        # Same source again is not duplicated
        self.client.post(self.URL, {'email': 'fan@test.com', 'source': 'user_registration'}, format='json')
        self.assertEqual(EmailSubscriber.objects.get().additional_sources, ['user_registration'])

    def test_invalid_email(self):
        response = self.client.post(self.URL, {'email': 'not-an-email'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data, {'error': 'Invalid email address'})

    def test_invalid_phone(self):
        response = self.client.post(self.URL, {'email': 'ok@test.com', 'phone': '12'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data, {'error': 'Invalid phone number'})

    def test_campaign_for_source(self):
        self.assertEqual(campaign_for_source('google_signin'), 'google_signin')
        self.assertEqual(campaign_for_source('footer'), 'general_signup')


class SubscriberAdminTests(TestCase):
    def setUp(self):
        self.client = AuthenticatedAPIClient().authenticate_user(TestDataFactory.create_admin())

    def test_list_filters(self):
        TestDataFactory.create_subscriber(email='a@test.com')
        TestDataFactory.create_subscriber(email='b@test.com', subscribed=False)
        response = self.client.get('/api/v1/subscribers/', {'subscribed': 'true'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['email'], 'a@test.com')

    def test_unsubscribe_and_delete(self):
        subscriber = TestDataFactory.create_subscriber(email='a@test.com')
        response = self.client.patch(f'/api/v1/subscribers/{subscriber.id}/', {'subscribed': False, 'email': 'x@test.com'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        subscriber.refresh_from_db()
        self.assertFalse(subscriber.subscribed)
        self.assertEqual(subscriber.email, 'a@test.com')

        response = self.client.delete(f'/api/v1/subscribers/{subscriber.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertTrue(AuditLog.objects.filter(action='delete', model_name='EmailSubscriber').exists())

    def test_list_requires_admin(self):
        response = APIClient().get('/api/v1/subscribers/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)


class TemplateRenderingTests(TestCase):
    def setUp(self):
        self.product = TestDataFactory.create_product(title='Smart Key', price='25.00')
        self.order = TestDataFactory.create_order(products=[self.product], quantity=2)
        self.order.customer_name = 'Jane <b>Buyer</b>'
        self.order.save()

    def test_render_template_leaves_unknown_tokens(self):
        self.assertEqual(render_template('Hi {name}, {unknown}', {'name': 'Jane'}), 'Hi Jane, {unknown}')

    def test_order_context(self):
        context = order_context(self.order, tracking_number='1Z1')
        self.assertEqual(context['orderItems'], 'Smart Key x 2 - $50.00')
        self.assertEqual(context['orderTotal'], '$50.00')
        self.assertEqual(context['shippingAddress'], '1 Main St\nAustin, TX 78701, US')
        self.assertEqual(context['trackingNumber'], 'Tracking Number: 1Z1')
        self.assertEqual(order_context(self.order)['trackingNumber'], '')

    def test_default_template_and_html_escaping(self):
        subject, text_body, html_body = build_customer_email('order_placed', order_context(self.order))
        self.assertEqual(subject, 'Thank you for your order!')
        self.assertIn('Hi Jane <b>Buyer</b>', text_body)
        self.assertIn('Jane &lt;b&gt;Buyer&lt;/b&gt;', html_body)
        self.assertTrue(text_body.endswith('Best regards,\nInstaKey Supply Team'))
        self.assertNotIn('<img', html_body)

    def test_custom_template_with_logo(self):
        Setting.objects.create(key='email_logo_url', value='https://cdn.test/logo.png')
        EmailTemplate.objects.create(key='order_placed', subject='Order {orderNumber}', body='{logo}Thanks {customerName}')
        subject, text_body, html_body = build_customer_email('order_placed', order_context(self.order))
        self.assertEqual(subject, f'Order {self.order.order_number}')
        self.assertEqual(text_body, 'Thanks Jane <b>Buyer</b>')
        self.assertEqual(html_body.count('https://cdn.test/logo.png'), 1)

    def test_logo_prepended_when_template_has_no_placeholder(self):
        Setting.objects.create(key='email_logo_url', value='https://cdn.test/logo.png')
        _, _, html_body = build_customer_email('order_shipped', order_context(self.order))
        self.assertIn('<img src="https://cdn.test/logo.png"', html_body)

    def test_non_http_logo_is_ignored(self):
        Setting.objects.create(key='email_logo_url', value='javascript:alert(1)')
        _, _, html_body = build_customer_email('order_placed', order_context(self.order))
        self.assertNotIn('<img', html_body)


@override_settings(**EMAIL_SETTINGS)
class OrderEmailTests(TestCase):
    def setUp(self):
        self.product = TestDataFactory.create_product(title='Smart Key', price='25.00')
        self.order = TestDataFactory.create_order(products=[self.product], email='jane@test.com')

    def test_confirmation_sends_owner_and_customer_mail(self):
        send_order_confirmation(self.order)
        self.assertEqual(len(mail.outbox), 2)
        owner, customer = mail.outbox
        self.assertEqual(owner.subject, 'New Order Received')
        self.assertEqual(owner.to, ['owner@shop.test'])
        self.assertIn(self.order.order_number, owner.body)
        self.assertEqual(customer.to, ['jane@test.com'])
        self.assertEqual(customer.from_email, 'store@shop.test')
        self.assertEqual(customer.alternatives[0][1], 'text/html')
        self.order.refresh_from_db()
        self.assertTrue(self.order.confirmation_email_sent)

    def test_shipped_email_records_tracking(self):
        send_order_shipped(self.order, tracking_number=' 1Z999 ')
        self.assertEqual(mail.outbox[0].subject, 'Your order has shipped!')
        self.assertIn('Tracking Number: 1Z999', mail.outbox[0].body)
        self.order.refresh_from_db()
        self.assertEqual(self.order.tracking_number, '1Z999')
        self.assertTrue(self.order.shipped_email_sent)

    @patch('storefront.notifications.emails.EmailMultiAlternatives.send', side_effect=OSError('connection refused'))
    def test_delivery_failure_raises(self, send):
        with self.assertRaises(EmailDeliveryError):
            send_order_shipped(self.order)
        self.order.refresh_from_db()
        self.assertFalse(self.order.shipped_email_sent)


@override_settings(**EMAIL_SETTINGS)
class CampaignTests(TestCase):
    def setUp(self):
        self.admin = TestDataFactory.create_admin()
        self.client = AuthenticatedAPIClient().authenticate_user(self.admin)

    def test_send_campaign_to_subscribed_only(self):
        TestDataFactory.create_subscriber(email='a@test.com')
        TestDataFactory.create_subscriber(email='b@test.com')
        TestDataFactory.create_subscriber(email='gone@test.com', subscribed=False)

        campaign = send_promo_campaign('Spring sale', '<p>20% off keys</p>', sent_by=self.admin)
        self.assertEqual(campaign.total_sent, 2)
        self.assertEqual(campaign.successful, 2)
        self.assertEqual(campaign.name, 'Spring sale')
        self.assertEqual(campaign.sent_by, self.admin)
        self.assertEqual(sorted(m.to[0] for m in mail.outbox), ['a@test.com', 'b@test.com'])
        self.assertEqual(mail.outbox[0].body, '20% off keys')

    def test_no_subscribers(self):
        with self.assertRaises(EmailDeliveryError):
            send_promo_campaign('Spring sale', 'Hello')
        response = self.client.post('/api/v1/email-campaigns/', {'subject': 'Hi', 'message': 'Hello'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertFalse(EmailCampaign.objects.exists())

    def test_campaign_endpoint(self):
        TestDataFactory.create_subscriber(email='a@test.com')
        response = self.client.post('/api/v1/email-campaigns/', {
            'subject': 'Weekend deals', 'message': 'Save big', 'name': 'Weekend'
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(response.data['success'])
        self.assertEqual(response.data['campaign']['successful'], 1)
        self.assertTrue(AuditLog.objects.filter(action='email_campaign').exists())

        response = self.client.get('/api/v1/email-campaigns/')
        self.assertEqual(response.data['count'], 1)


class EmailTemplateEndpointTests(TestCase):
    def setUp(self):
        self.client = AuthenticatedAPIClient().authenticate_user(TestDataFactory.create_admin())

    def test_create_and_update_by_key(self):
        response = self.client.post('/api/v1/email-templates/', {
            'key': 'order_shipped', 'subject': 'Shipped!', 'body': 'Hi {customerName}'
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

        response = self.client.put('/api/v1/email-templates/order_shipped/', {'subject': 'On its way'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(EmailTemplate.objects.get(key='order_shipped').subject, 'On its way')

    def test_unknown_key(self):
        response = self.client.get('/api/v1/email-templates/newsletter/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)


class BannerTests(TestCase):
    def setUp(self):
        self.admin = TestDataFactory.create_admin()
        self.admin_client = AuthenticatedAPIClient().authenticate_user(self.admin)
        self.second = Banner.objects.create(image_url='https://cdn.test/b.jpg', alt='Remotes', sort_order=2)
        self.first = Banner.objects.create(image_url='https://cdn.test/a.jpg', alt='Keys', sort_order=1)
        self.hidden = Banner.objects.create(image_url='https://cdn.test/c.jpg', alt='Old', is_active=False)

    def test_public_list_shows_active_banners_in_order(self):
        response = APIClient().get('/api/v1/banners/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([b['alt'] for b in response.data], ['Keys', 'Remotes'])
        self.assertNotIn('is_active', response.data[0])

    def test_staff_list_includes_inactive(self):
        response = self.admin_client.get('/api/v1/banners/')
        self.assertEqual(len(response.data), 3)

    def test_create_requires_staff(self):
        payload = {'image_url': 'https://cdn.test/d.jpg', 'alt': 'Sale'}
        response = APIClient().post('/api/v1/banners/', payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        response = self.admin_client.post('/api/v1/banners/', payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(AuditLog.objects.filter(model_name='Banner', action='create').exists())

    def test_invalid_image_url(self):
        response = self.admin_client.post('/api/v1/banners/', {'image_url': 'not a url'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('image_url', response.data)

    def test_update_and_delete(self):
        response = self.admin_client.patch(f'/api/v1/banners/{self.hidden.id}/', {'is_active': True, 'sort_order': 0}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        public = APIClient().get('/api/v1/banners/')
        self.assertEqual(public.data[0]['alt'], 'Old')

        response = self.admin_client.delete(f'/api/v1/banners/{self.second.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Banner.objects.filter(pk=self.second.pk).exists())

    def test_detail_requires_staff(self):
        response = APIClient().get(f'/api/v1/banners/{self.first.id}/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)


class ContactMessageTests(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.admin = TestDataFactory.create_admin()
        self.admin_client = AuthenticatedAPIClient().authenticate_user(self.admin)

    def test_submit(self):
        response = self.client.post('/api/v1/contact-messages/', {
            'name': ' Dana ', 'email': 'Dana@Test.com', 'message': 'Do you cut keys for a 2014 Civic?',
        }, format='json', REMOTE_ADDR='203.0.113.9')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        contact = ContactMessage.objects.get(pk=response.data['id'])
        self.assertEqual(contact.name, 'Dana')
        self.assertEqual(contact.email, 'dana@test.com')
        self.assertFalse(contact.read)
        self.assertEqual(contact.ip_address, '203.0.113.9')

    def test_submit_requires_every_field(self):
        response = self.client.post('/api/v1/contact-messages/', {'name': 'Dana', 'email': 'dana@test.com', 'message': '   '}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Please fill in all fields.')

        response = self.client.post('/api/v1/contact-messages/', {'name': 'Dana', 'email': 'nope', 'message': 'Hi'}, format='json')
        self.assertEqual(response.data['error'], 'Invalid email address')
        self.assertEqual(ContactMessage.objects.count(), 0)

    def test_inbox_is_staff_only(self):
        response = self.client.get('/api/v1/contact-messages/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_inbox_filters_and_unread_count(self):
        ContactMessage.objects.create(name='A', email='a@test.com', message='Fob battery?')
        ContactMessage.objects.create(name='B', email='b@test.com', message='Shipping time', read=True)

        response = self.admin_client.get('/api/v1/contact-messages/')
        self.assertEqual(response.data['count'], 2)
        self.assertEqual(response.data['unread_count'], 1)

        response = self.admin_client.get('/api/v1/contact-messages/?read=false')
        self.assertEqual([m['name'] for m in response.data['results']], ['A'])

        response = self.admin_client.get('/api/v1/contact-messages/?search=shipping')
        self.assertEqual([m['name'] for m in response.data['results']], ['B'])

    def test_opening_marks_read_and_flag_can_be_reset(self):
        contact = ContactMessage.objects.create(name='A', email='a@test.com', message='Hello')

        response = self.admin_client.get(f'/api/v1/contact-messages/{contact.id}/')
        self.assertTrue(response.data['read'])
        contact.refresh_from_db()
        self.assertTrue(contact.read)

        response = self.admin_client.patch(f'/api/v1/contact-messages/{contact.id}/', {'read': False, 'message': 'edited'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        contact.refresh_from_db()
        self.assertFalse(contact.read)
        self.assertEqual(contact.message, 'Hello')

    def test_delete(self):
        contact = ContactMessage.objects.create(name='A', email='a@test.com', message='Hello')
        response = self.admin_client.delete(f'/api/v1/contact-messages/{contact.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(ContactMessage.objects.exists())
        self.assertTrue(AuditLog.objects.filter(model_name='ContactMessage', action='delete').exists())
