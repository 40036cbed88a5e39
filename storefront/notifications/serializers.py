import re

from django.core.exceptions import ValidationError as DjangoValidationError
from django.core.validators import validate_email
from rest_framework import serializers

from .models import EmailTemplate, EmailSubscriber, EmailCampaign, Banner, ContactMessage

PHONE_RE = re.compile(r'^\+?\d{7,15}$')


class EmailTemplateSerializer(serializers.ModelSerializer):
    class Meta:
        model = EmailTemplate
        fields = ['id', 'key', 'subject', 'body', 'updated_at']


class EmailSubscriberSerializer(serializers.ModelSerializer):
    class Meta:
        model = EmailSubscriber
        fields = [
            'id', 'email', 'phone', 'source', 'campaign', 'additional_sources', 'subscribed',
            'email_marketing', 'sms_marketing', 'consent_given', 'consent_date',
            'ip_address', 'user_agent', 'utm_source', 'utm_medium', 'utm_campaign',
            'created_at', 'updated_at'
        ]
        read_only_fields = ['email', 'source', 'campaign', 'additional_sources', 'consent_date',
                            'ip_address', 'user_agent', 'utm_source', 'utm_medium', 'utm_campaign',
                            'created_at', 'updated_at']


class EmailCollectSerializer(serializers.Serializer):
    email = serializers.EmailField(error_messages={'invalid': 'Invalid email address'})
    phone = serializers.CharField(max_length=30, required=False, allow_blank=True, allow_null=True)
    source = serializers.CharField(max_length=50, required=False, default='promo_modal')

    def validate_email(self, value):
        return value.strip().lower()

    def validate_phone(self, value):
        if not value:
            return ''
        digits = re.sub(r'\D', '', value)
        if not PHONE_RE.match(digits):
            raise serializers.ValidationError('Invalid phone number')
        return value.strip()


class EmailCampaignSerializer(serializers.ModelSerializer):
    sent_by_name = serializers.CharField(source='sent_by.username', read_only=True, default=None)

    class Meta:
        model = EmailCampaign
        fields = ['id', 'name', 'subject', 'message', 'total_sent', 'successful', 'failed', 'results',
                  'sent_by', 'sent_by_name', 'sent_at']
        read_only_fields = fields


class EmailCampaignSendSerializer(serializers.Serializer):
    subject = serializers.CharField(max_length=255)
    message = serializers.CharField()
    name = serializers.CharField(max_length=200, required=False, allow_blank=True)


class BannerSerializer(serializers.ModelSerializer):
    class Meta:
        model = Banner
        fields = ['id', 'image_url', 'alt', 'link_url', 'sort_order', 'is_active', 'created_at', 'updated_at']
        read_only_fields = ['created_at', 'updated_at']


class PublicBannerSerializer(serializers.ModelSerializer):
    class Meta:
        model = Banner
        fields = ['id', 'image_url', 'alt', 'link_url']


class ContactMessageSerializer(serializers.ModelSerializer):
    class Meta:
        model = ContactMessage
        fields = ['id', 'name', 'email', 'message', 'read', 'ip_address', 'created_at']
        read_only_fields = ['name', 'email', 'message', 'ip_address', 'created_at']


class ContactSubmitSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=200, required=False, allow_blank=True, default='')
    email = serializers.CharField(max_length=254, required=False, allow_blank=True, default='')
    message = serializers.CharField(required=False, allow_blank=True, default='')

    def validate(self, attrs):
        if not attrs['name'] or not attrs['email'] or not attrs['message']:
            raise serializers.ValidationError('Please fill in all fields.')
        attrs['email'] = attrs['email'].lower()
        try:
            validate_email(attrs['email'])
        except DjangoValidationError:
            raise serializers.ValidationError({'email': 'Invalid email address'})
        return attrs
