from django.conf import settings
from django.db import models


class EmailTemplate(models.Model):
    """Editable customer email. Body placeholders look like {customerName}"""
    KEY_CHOICES = [
        ('order_placed', 'Order Placed'),
        ('order_shipped', 'Order Shipped'),
    ]

    key = models.CharField(max_length=50, choices=KEY_CHOICES, unique=True)
    subject = models.CharField(max_length=255)
    body = models.TextField()
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.get_key_display()

    class Meta:
        db_table = 'email_templates'
        ordering = ['key']


class EmailSubscriber(models.Model):
    """Marketing list member collected from the storefront"""
    email = models.EmailField(unique=True)
    phone = models.CharField(max_length=30, blank=True)
    source = models.CharField(max_length=50, default='promo_modal')
    campaign = models.CharField(max_length=100, blank=True)
    additional_sources = models.JSONField(default=list, blank=True)
    subscribed = models.BooleanField(default=True, db_index=True)
    email_marketing = models.BooleanField(default=True)
    sms_marketing = models.BooleanField(default=False)
    consent_given = models.BooleanField(default=True)
    consent_date = models.DateTimeField(null=True, blank=True)
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    user_agent = models.TextField(blank=True)
    utm_source = models.CharField(max_length=100, blank=True)
    utm_medium = models.CharField(max_length=100, blank=True)
    utm_campaign = models.CharField(max_length=100, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.email

    def save(self, *args, **kwargs):
        self.email = (self.email or '').strip().lower()
        super().save(*args, **kwargs)

    class Meta:
        db_table = 'email_subscribers'
        ordering = ['-created_at']


class EmailCampaign(models.Model):
    """Record of a promotional email sent to the subscriber list"""
    name = models.CharField(max_length=200)
    subject = models.CharField(max_length=255)
    message = models.TextField()
    total_sent = models.IntegerField(default=0)
    successful = models.IntegerField(default=0)
    failed = models.IntegerField(default=0)
    results = models.JSONField(default=list, blank=True)  # [{email, success, error}]
    sent_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='email_campaigns')
    sent_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return self.name

    class Meta:
        db_table = 'email_campaigns'
        ordering = ['-sent_at']


class Banner(models.Model):
    """Homepage carousel image"""
    image_url = models.URLField(max_length=500)
    alt = models.CharField(max_length=200, blank=True)
    link_url = models.CharField(max_length=500, blank=True)
    sort_order = models.IntegerField(default=0)
    is_active = models.BooleanField(default=True, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.alt or self.image_url

    class Meta:
        db_table = 'banners'
        ordering = ['sort_order', 'id']


class ContactMessage(models.Model):
    """Message sent through the storefront contact form"""
    name = models.CharField(max_length=200)
    email = models.EmailField()
    message = models.TextField()
    read = models.BooleanField(default=False, db_index=True)
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.name} <{self.email}>"

    class Meta:
        db_table = 'contact_messages'
        ordering = ['-created_at']
