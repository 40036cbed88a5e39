from django.contrib import admin
from .models import EmailTemplate, EmailSubscriber, EmailCampaign, Banner, ContactMessage


@admin.register(EmailTemplate)
class EmailTemplateAdmin(admin.ModelAdmin):
    list_display = ['key', 'subject', 'updated_at']
    readonly_fields = ['updated_at']


@admin.register(EmailSubscriber)
class EmailSubscriberAdmin(admin.ModelAdmin):
    list_display = ['email', 'phone', 'source', 'campaign', 'subscribed', 'created_at']
    list_filter = ['subscribed', 'source', 'campaign', 'created_at']
    search_fields = ['email', 'phone']
    ordering = ['-created_at']
    readonly_fields = ['created_at', 'updated_at']


@admin.register(EmailCampaign)
class EmailCampaignAdmin(admin.ModelAdmin):
    list_display = ['name', 'subject', 'total_sent', 'successful', 'failed', 'sent_by', 'sent_at']
    list_filter = ['sent_at']
    search_fields = ['name', 'subject']
    ordering = ['-sent_at']
    readonly_fields = ['name', 'subject', 'message', 'total_sent', 'successful', 'failed', 'results', 'sent_by', 'sent_at']


@admin.register(Banner)
class BannerAdmin(admin.ModelAdmin):
    list_display = ['__str__', 'sort_order', 'is_active', 'updated_at']
    list_editable = ['sort_order', 'is_active']
    list_filter = ['is_active']
    ordering = ['sort_order', 'id']
    readonly_fields = ['created_at', 'updated_at']


@admin.register(ContactMessage)
class ContactMessageAdmin(admin.ModelAdmin):
    list_display = ['name', 'email', 'read', 'created_at']
    list_filter = ['read', 'created_at']
    search_fields = ['name', 'email', 'message']
    ordering = ['-created_at']
    readonly_fields = ['name', 'email', 'message', 'ip_address', 'created_at']
