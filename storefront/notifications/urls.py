from django.urls import path
from .views import (
    subscriber_collect, subscriber_list, subscriber_detail,
    email_template_list_create, email_template_detail,
    email_campaign_list_send,
    banner_list_create, banner_detail,
    contact_message_list_create, contact_message_detail,
)

urlpatterns = [
    # Subscriber endpoints
    path('subscribers/collect/', subscriber_collect, name='subscriber-collect'),
    path('subscribers/', subscriber_list, name='subscriber-list'),
    path('subscribers/<int:pk>/', subscriber_detail, name='subscriber-detail'),

    # EmailTemplate endpoints
    path('email-templates/', email_template_list_create, name='email-template-list-create'),
    path('email-templates/<str:key>/', email_template_detail, name='email-template-detail'),

    # EmailCampaign endpoints
    path('email-campaigns/', email_campaign_list_send, name='email-campaign-list-send'),

    # Banner endpoints
    path('banners/', banner_list_create, name='banner-list-create'),
    path('banners/<int:pk>/', banner_detail, name='banner-detail'),

    # ContactMessage endpoints
    path('contact-messages/', contact_message_list_create, name='contact-message-list-create'),
    path('contact-messages/<int:pk>/', contact_message_detail, name='contact-message-detail'),
]
