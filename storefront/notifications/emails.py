"""
Transactional and campaign emails.

Mail goes through Django's email framework: SMTP in production, the locmem
backend in tests. Customer emails are built from the editable EmailTemplate
rows, falling back to the built-in defaults below.
"""
import logging
import re

from django.conf import settings
from django.core.mail import EmailMultiAlternatives, get_connection, send_mail
from django.utils.html import escape, strip_tags

from storefront.core.utils import get_setting
from .models import EmailTemplate, EmailSubscriber, EmailCampaign

logger = logging.getLogger(__name__)

PLACEHOLDER_RE = re.compile(r'\{(\w+)\}')

DEFAULT_TEMPLATES = {
    'order_placed': {
        'subject': 'Thank you for your order!',
        'body': (
            "Hi {customerName},\n\n"
            "Thank you for your order! Here is your order summary:\n\n"
            "Order Number: {orderNumber}\n\n"
            "Order Items:\n{orderItems}\n\n"
            "Shipping To:\n{shippingAddress}\n\n"
            "Total: {orderTotal}\n\n"
            "We appreciate your business! If you have any questions, reply to this email.\n\n"
            "Best regards,\nInstaKey Supply Team"
        ),
    },
    'order_shipped': {
        'subject': 'Your order has shipped!',
        'body': (
            "Hi {customerName},\n\n"
            "Good news! Your order has shipped and is on its way.\n\n"
            "Order Number: {orderNumber}\n\n"
            "Order Items:\n{orderItems}\n\n"
            "Shipping To:\n{shippingAddress}\n\n"
            "Total: {orderTotal}\n"
            "{trackingNumber}\n\n"
            "Thank you for shopping with us!\n\n"
            "Best regards,\nInstaKey Supply Team"
        ),
    },
}

LOGO_IMG = '<img src="{url}" alt="Logo" style="max-width:180px; margin-bottom:16px; display:block; margin-left:auto; margin-right:auto;" />'


class EmailDeliveryError(Exception):
    """An email could not be sent, or there was nobody to send it to"""


def render_template(text, context):
    """Replace {placeholder} tokens with context values. Unknown tokens are left as they are"""
    def replace(match):
        key = match.group(1)
        if key in context:
            return str(context[key])
        return match.group(0)
    return PLACEHOLDER_RE.sub(replace, text or '')


def get_logo_url():
    logo_url = get_setting('email_logo_url', '').strip()
    if logo_url and not logo_url.startswith('http'):
        logger.warning(f"Ignoring email logo URL that is not http(s): {logo_url}")
        return ''
    return logo_url


def get_template(key):
    template = EmailTemplate.objects.filter(key=key).first()
    default = DEFAULT_TEMPLATES[key]
    if template is None:
        return default['subject'], default['body']
    return template.subject or default['subject'], template.body or default['body']


def format_money(amount):
    return f"${amount:.2f}"


def order_item_lines(order):
    return '\n'.join(
        f"{item.title} x {item.quantity} - {format_money(item.line_total)}"
        for item in order.items.all()
    )


def order_shipping_address(order):
    region = ' '.join(part for part in [order.address_state, order.address_zip] if part)
    city_line = ', '.join(part for part in [order.address_city, region, order.address_country] if part)
    return '\n'.join(part for part in [order.address_street, city_line] if part)


def order_context(order, tracking_number=None):
    return {
        'customerName': order.customer_name or '',
        'orderNumber': order.order_number,
        'orderItems': order_item_lines(order),
        'shippingAddress': order_shipping_address(order),
        'orderTotal': format_money(order.total),
        'trackingNumber': f"Tracking Number: {tracking_number}" if tracking_number else '',
    }


def build_customer_email(template_key, context):
    """Return (subject, text_body, html_body) for a customer email"""
    subject, body = get_template(template_key)
    logo_url = get_logo_url()

    text_body = render_template(body, {**context, 'logo': ''}).strip()

    html_context = {key: escape(value) for key, value in context.items()}
    html_context['logo'] = LOGO_IMG.format(url=escape(logo_url)) if logo_url else ''
    rendered = render_template(body, html_context).replace('\n', '<br>')
    logo_header = ''
    if logo_url and '{logo}' not in body:
        logo_header = f'<div style="text-align:center; margin-bottom:16px;">{html_context["logo"]}</div>'
    html_body = (
        '<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px;">'
        f'{logo_header}{rendered}'
        '</div>'
    )
    return render_template(subject, context), text_body, html_body


def _send_customer_email(to_email, subject, text_body, html_body):
    message = EmailMultiAlternatives(
        subject=subject,
        body=text_body,
        from_email=settings.DEFAULT_FROM_EMAIL,
        to=[to_email],
    )
    message.attach_alternative(html_body, 'text/html')
    message.send()


def send_order_confirmation(order):
    """Send the owner notification and the customer confirmation for a new order"""
    context = order_context(order)
    owner_body = (
        "New order received!\n\n"
        f"Order Number: {order.order_number}\n"
        f"Customer: {order.customer_name}\n"
        f"Email: {order.customer_email}\n"
        f"Phone: {order.customer_phone}\n\n"
        f"Shipping Address:\n{context['shippingAddress']}\n\n"
        f"Order Items:\n{context['orderItems']}\n\n"
        f"Subtotal: {format_money(order.subtotal)}\n"
        f"Promo Discount: {format_money(order.promo_discount)}\n"
        f"Shipping: {format_money(order.shipping_cost)}\n"
        f"Total: {context['orderTotal']}\n"
    )
    subject, text_body, html_body = build_customer_email('order_placed', context)

    try:
        send_mail(
            'New Order Received',
            owner_body,
            settings.DEFAULT_FROM_EMAIL,
            [settings.OWNER_EMAIL],
        )
        _send_customer_email(order.customer_email, subject, text_body, html_body)
    except Exception as e:
        logger.error(f"Failed to send order confirmation for {order.order_number}: {e}")
        raise EmailDeliveryError(str(e)) from e

    order.confirmation_email_sent = True
    order.save(update_fields=['confirmation_email_sent', 'updated_at'])
    logger.info(f"Sent order confirmation emails for {order.order_number}")


def send_order_shipped(order, tracking_number=None):
    """Send the customer the shipped email and record the tracking number"""
    tracking_number = (tracking_number or order.tracking_number or '').strip()
    subject, text_body, html_body = build_customer_email(
        'order_shipped', order_context(order, tracking_number=tracking_number)
    )

    try:
        _send_customer_email(order.customer_email, subject, text_body, html_body)
    except Exception as e:
        logger.error(f"Failed to send shipped email for {order.order_number}: {e}")
        raise EmailDeliveryError(str(e)) from e

    order.shipped_email_sent = True
    order.tracking_number = tracking_number
    order.save(update_fields=['shipped_email_sent', 'tracking_number', 'updated_at'])
    logger.info(f"Sent shipped email for {order.order_number}")


def campaign_html(message):
    store_name = escape(getattr(settings, 'STORE_NAME', 'InstaKey Supply'))
    return (
        '<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; background: #ffffff;">'
        f'<div style="background: #667eea; padding: 15px; text-align: center;">'
        f'<h1 style="color: white; margin: 0; font-size: 16px;">{store_name}</h1></div>'
        f'<div style="padding: 40px 30px; line-height: 1.8; font-size: 18px; color: #333333;">{message}</div>'
        '<div style="padding: 15px; background: #333; color: white; text-align: center; font-size: 10px;">'
        '<p style="margin: 0;">You received this email because you subscribed to our newsletter.</p>'
        '</div></div>'
    )


def send_promo_campaign(subject, message, name=None, sent_by=None):
    """
    Send a promotional email to every subscribed address, one message each.

    Returns the EmailCampaign recording per-recipient results.
    """
    subscribers = list(
        EmailSubscriber.objects.filter(subscribed=True, email__contains='@').values_list('email', flat=True)
    )
    if not subscribers:
        raise EmailDeliveryError('No valid email subscribers found')

    html_body = campaign_html(message)
    text_body = strip_tags(message)
    results = []
    connection = get_connection()
    connection.open()
    try:
        for email in subscribers:
            mail = EmailMultiAlternatives(
                subject=subject,
                body=text_body,
                from_email=settings.DEFAULT_FROM_EMAIL,
                to=[email],
                connection=connection,
            )
            mail.attach_alternative(html_body, 'text/html')
            try:
                mail.send()
                results.append({'email': email, 'success': True})
            except Exception as e:
                logger.warning(f"Campaign email to {email} failed: {e}")
                results.append({'email': email, 'success': False, 'error': str(e)})
    finally:
        connection.close()

    successful = sum(1 for result in results if result['success'])
    campaign = EmailCampaign.objects.create(
        name=name or subject,
        subject=subject,
        message=message,
        total_sent=len(results),
        successful=successful,
        failed=len(results) - successful,
        results=results,
        sent_by=sent_by if sent_by is not None and sent_by.is_authenticated else None,
    )
    logger.info(f"Campaign {campaign.id} sent: {successful}/{len(results)} delivered")
    return campaign
