from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated, IsAdminUser, AllowAny
from django.db.models import Q
from django.shortcuts import get_object_or_404
from django.utils import timezone
import logging

from .models import EmailTemplate, EmailSubscriber, EmailCampaign, Banner, ContactMessage
from .serializers import (
    EmailTemplateSerializer, EmailSubscriberSerializer, EmailCollectSerializer,
    EmailCampaignSerializer, EmailCampaignSendSerializer,
    BannerSerializer, PublicBannerSerializer, ContactMessageSerializer, ContactSubmitSerializer,
)
from .emails import EmailDeliveryError, send_promo_campaign
from storefront.core.utils import create_audit_log, get_client_ip, paginated_response, is_staff_request

logger = logging.getLogger(__name__)

SOURCE_CAMPAIGNS = {
    'promo_modal': 'promo_modal_10_percent_off',
    'user_registration': 'user_registration',
    'google_signin': 'google_signin',
}


def campaign_for_source(source):
    return SOURCE_CAMPAIGNS.get(source, 'general_signup')


@api_view(['POST'])
@permission_classes([AllowAny])
def subscriber_collect(request):
    """Add an email address to the marketing list"""
    serializer = EmailCollectSerializer(data=request.data)
    if not serializer.is_valid():
        errors = serializer.errors
        if 'email' in errors:
            return Response({'error': 'Invalid email address'}, status=status.HTTP_400_BAD_REQUEST)
        if 'phone' in errors:
            return Response({'error': 'Invalid phone number'}, status=status.HTTP_400_BAD_REQUEST)
        return Response(errors, status=status.HTTP_400_BAD_REQUEST)

    email = serializer.validated_data['email']
    phone = serializer.validated_data.get('phone') or ''
    source = serializer.validated_data.get('source') or 'promo_modal'

    existing = EmailSubscriber.objects.filter(email=email).first()
    if existing:
        if existing.source != source and source not in existing.additional_sources:
            existing.additional_sources = existing.additional_sources + [source]
            existing.save(update_fields=['additional_sources', 'updated_at'])
        return Response({
            'success': True,
            'message': 'Email already exists in list',
            'id': existing.id,
        })

    subscriber = EmailSubscriber.objects.create(
        email=email,
        phone=phone,
        source=source,
        campaign=campaign_for_source(source),
        subscribed=True,
        email_marketing=True,
        sms_marketing=bool(phone),
        consent_given=True,
        consent_date=timezone.now(),
        ip_address=get_client_ip(request),
        user_agent=request.META.get('HTTP_USER_AGENT', ''),
        utm_source=request.query_params.get('utm_source', ''),
        utm_medium=request.query_params.get('utm_medium', ''),
        utm_campaign=request.query_params.get('utm_campaign', ''),
    )
    logger.info(f"Collected email subscriber {subscriber.id} from {source}")
    return Response({
        'success': True,
        'message': 'Email collected successfully',
        'id': subscriber.id,
    }, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminUser])
def subscriber_list(request):
    """List subscribers with filtering and pagination"""
    queryset = EmailSubscriber.objects.all()

    subscribed = request.query_params.get('subscribed', None)
    if subscribed is not None:
        queryset = queryset.filter(subscribed=subscribed.lower() == 'true')

    source = request.query_params.get('source', None)
    if source:
        queryset = queryset.filter(source=source)

    search = request.query_params.get('search', None)
    if search:
        queryset = queryset.filter(Q(email__icontains=search) | Q(phone__icontains=search))

    queryset = queryset.order_by('-created_at')
    return Response(paginated_response(request, queryset, EmailSubscriberSerializer))


@api_view(['GET', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, IsAdminUser])
def subscriber_detail(request, pk):
    """Retrieve, update or delete a subscriber"""
    subscriber = get_object_or_404(EmailSubscriber, pk=pk)

    if request.method == 'GET':
        return Response(EmailSubscriberSerializer(subscriber).data)
    elif request.method == 'PATCH':
        serializer = EmailSubscriberSerializer(subscriber, data=request.data, partial=True)
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        subscriber_id = str(subscriber.id)
        subscriber_email = subscriber.email
        subscriber.delete()
        create_audit_log(
            request=request,
            action='delete',
            model_name='EmailSubscriber',
            object_id=subscriber_id,
            object_name=subscriber_email,
        )
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsAdminUser])
def email_template_list_create(request):
    """List email templates or create one"""
    if request.method == 'GET':
        serializer = EmailTemplateSerializer(EmailTemplate.objects.all(), many=True)
        return Response(serializer.data)
    else:  # POST
        serializer = EmailTemplateSerializer(data=request.data)
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data, status=status.HTTP_201_CREATED)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT'])
@permission_classes([IsAuthenticated, IsAdminUser])
def email_template_detail(request, key):
    """Retrieve or update an email template by key"""
    template = get_object_or_404(EmailTemplate, key=key)

    if request.method == 'GET':
        return Response(EmailTemplateSerializer(template).data)
    else:  # PUT
        serializer = EmailTemplateSerializer(template, data=request.data, partial=True)
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsAdminUser])
def email_campaign_list_send(request):
    """List past campaigns or send a new one to all subscribers"""
    if request.method == 'GET':
        queryset = EmailCampaign.objects.select_related('sent_by').order_by('-sent_at')
        return Response(paginated_response(request, queryset, EmailCampaignSerializer))

    serializer = EmailCampaignSendSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    data = serializer.validated_data
    try:
        campaign = send_promo_campaign(
            subject=data['subject'],
            message=data['message'],
            name=data.get('name') or None,
            sent_by=request.user,
        )
    except EmailDeliveryError as e:
        return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)

    create_audit_log(
        request=request,
        action='email_campaign',
        model_name='EmailCampaign',
        object_id=str(campaign.id),
        object_name=campaign.name,
        changes={'total_sent': campaign.total_sent, 'successful': campaign.successful, 'failed': campaign.failed}
    )
    return Response({
        'success': True,
        'message': f'Campaign sent to {campaign.successful} of {campaign.total_sent} subscribers',
        'campaign': EmailCampaignSerializer(campaign).data,
    }, status=status.HTTP_201_CREATED)


# Banner views
@api_view(['GET', 'POST'])
@permission_classes([AllowAny])
def banner_list_create(request):
    """Active homepage banners for the storefront; every banner and creation for staff"""
    if request.method == 'GET':
        if is_staff_request(request):
            return Response(BannerSerializer(Banner.objects.all(), many=True).data)
        banners = Banner.objects.filter(is_active=True)
        return Response(PublicBannerSerializer(banners, many=True).data)

    if not is_staff_request(request):
        return Response({'error': 'Admin privileges required'}, status=status.HTTP_403_FORBIDDEN)

    serializer = BannerSerializer(data=request.data)
    if serializer.is_valid():
        banner = serializer.save()
        create_audit_log(
            request=request,
            action='create',
            model_name='Banner',
            object_id=str(banner.id),
            object_name=str(banner),
            changes={'image_url': banner.image_url}
        )
        return Response(serializer.data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, IsAdminUser])
def banner_detail(request, pk):
    """Retrieve, update or delete a banner"""
    banner = get_object_or_404(Banner, pk=pk)

    if request.method == 'GET':
        return Response(BannerSerializer(banner).data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = BannerSerializer(banner, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            serializer.save()
            create_audit_log(
                request=request,
                action='update',
                model_name='Banner',
                object_id=str(banner.id),
                object_name=str(banner),
                changes={'fields': sorted(serializer.validated_data.keys())}
            )
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        banner_id = str(banner.id)
        banner_name = str(banner)
        banner.delete()
        create_audit_log(
            request=request,
            action='delete',
            model_name='Banner',
            object_id=banner_id,
            object_name=banner_name,
        )
        return Response(status=status.HTTP_204_NO_CONTENT)


# Contact message views
@api_view(['GET', 'POST'])
@permission_classes([AllowAny])
def contact_message_list_create(request):
    """Submit the storefront contact form; staff list the inbox"""
    if request.method == 'POST':
        serializer = ContactSubmitSerializer(data=request.data)
        if not serializer.is_valid():
            errors = serializer.errors
            if 'email' in errors:
                return Response({'error': 'Invalid email address'}, status=status.HTTP_400_BAD_REQUEST)
            return Response({'error': 'Please fill in all fields.'}, status=status.HTTP_400_BAD_REQUEST)

        contact = ContactMessage.objects.create(
            ip_address=get_client_ip(request),
            **serializer.validated_data
        )
        logger.info(f"Received contact message {contact.id}")
        return Response({'success': True, 'id': contact.id}, status=status.HTTP_201_CREATED)

    if not is_staff_request(request):
        return Response({'error': 'Admin privileges required'}, status=status.HTTP_403_FORBIDDEN)

    queryset = ContactMessage.objects.all()

    read = request.query_params.get('read', None)
    if read is not None:
        queryset = queryset.filter(read=read.lower() == 'true')

    search = request.query_params.get('search', None)
    if search:
        queryset = queryset.filter(
            Q(name__icontains=search) | Q(email__icontains=search) | Q(message__icontains=search)
        )

    queryset = queryset.order_by('-created_at')
    response = paginated_response(request, queryset, ContactMessageSerializer)
    response['unread_count'] = ContactMessage.objects.filter(read=False).count()
    return Response(response)


@api_view(['GET', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, IsAdminUser])
def contact_message_detail(request, pk):
    """Open (and mark read), flag read/unread or delete a contact message"""
    contact = get_object_or_404(ContactMessage, pk=pk)

    if request.method == 'GET':
        if not contact.read:
            contact.read = True
            contact.save(update_fields=['read'])
        return Response(ContactMessageSerializer(contact).data)
    elif request.method == 'PATCH':
        serializer = ContactMessageSerializer(contact, data=request.data, partial=True)
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        contact_id = str(contact.id)
        contact_email = contact.email
        contact.delete()
        create_audit_log(
            request=request,
            action='delete',
            model_name='ContactMessage',
            object_id=contact_id,
            object_name=contact_email,
        )
        return Response(status=status.HTTP_204_NO_CONTENT)
