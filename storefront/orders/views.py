from rest_framework import status
from rest_framework.decorators import api_view, permission_classes, authentication_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated, IsAdminUser, AllowAny
from django.conf import settings
from django.db.models import Q
from django.shortcuts import get_object_or_404
from django.views.decorators.csrf import csrf_exempt
import logging

from .models import ShippingCost, CheckoutSession, Order, InvalidStatusTransition
from .serializers import (
    ShippingCostSerializer, ShippingQuoteSerializer, CheckoutRequestSerializer, CheckoutSessionSerializer,
    OrderSerializer, OrderUpdateSerializer, OrderStatusSerializer,
)
from .checkout import (
    CheckoutError, start_checkout, materialize_order, mark_checkout_expired, mark_payment_failed,
)
from . import stripe_gateway
from storefront.core.utils import create_audit_log, paginated_response
from storefront.notifications.emails import EmailDeliveryError, send_order_shipped
from storefront.pricing.discounts import to_money
from storefront.pricing.promo import PromoCodeError

logger = logging.getLogger(__name__)


# Shipping cost views
@api_view(['POST'])
@permission_classes([AllowAny])
def shipping_cost_quote(request):
    """Current shipping cost and the resulting total for a subtotal"""
    serializer = ShippingQuoteSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    subtotal = to_money(serializer.validated_data['subtotal'])
    shipping_cost = to_money(ShippingCost.current())
    return Response({
        'shipping_cost': str(shipping_cost),
        'subtotal': str(subtotal),
        'total': str(subtotal + shipping_cost),
    })


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsAdminUser])
def shipping_cost_list_create(request):
    """List shipping cost history or set a new shipping cost"""
    if request.method == 'GET':
        serializer = ShippingCostSerializer(ShippingCost.objects.all(), many=True)
        return Response(serializer.data)
    else:  # POST
        serializer = ShippingCostSerializer(data=request.data)
        if serializer.is_valid():
            shipping = serializer.save()
            create_audit_log(
                request=request,
                action='create',
                model_name='ShippingCost',
                object_id=str(shipping.id),
                changes={'cost': str(shipping.cost)}
            )
            return Response(serializer.data, status=status.HTTP_201_CREATED)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


# Checkout views
@api_view(['POST'])
@permission_classes([AllowAny])
def create_checkout_session(request):
    """Price the cart from the catalog and start a Stripe Checkout Session"""
    items = request.data.get('items') if hasattr(request.data, 'get') else None
    if not items:
        return Response({'error': 'No items in cart'}, status=status.HTTP_400_BAD_REQUEST)

    serializer = CheckoutRequestSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data

    origin = request.headers.get('Origin') or getattr(settings, 'STOREFRONT_URL', '')
    try:
        checkout, session = start_checkout(
            items=data['items'],
            customer=data['customer'],
            promo_code=data.get('promo_code') or None,
            origin=origin,
        )
    except CheckoutError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
    except PromoCodeError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
    except stripe_gateway.PaymentGatewayNotConfigured as e:
        logger.error(f"Checkout attempted without Stripe configuration: {e}")
        return Response({'error': 'Stripe not configured'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)
    except stripe_gateway.PaymentGatewayError as e:
        return Response({'error': f'Failed to create checkout session: {e}'}, status=status.HTTP_502_BAD_GATEWAY)

    return Response({
        'session_id': session.id,
        'url': session.url,
        'subtotal': str(checkout.subtotal),
        'promo_discount': str(checkout.promo_discount),
        'shipping_cost': str(checkout.shipping_cost),
        'total': str(checkout.total),
    })


@csrf_exempt
@api_view(['POST'])
@authentication_classes([])
@permission_classes([AllowAny])
def stripe_webhook(request):
    """Receive Stripe events. The signature is checked against the raw body"""
    signature = request.META.get('HTTP_STRIPE_SIGNATURE', '')
    try:
        event = stripe_gateway.verify_webhook_event(request.body, signature)
    except stripe_gateway.PaymentGatewayNotConfigured as e:
        logger.error(f"Stripe webhook received without a webhook secret: {e}")
        return Response({'error': str(e)}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)
    except stripe_gateway.WebhookVerificationError as e:
        logger.warning(f"Rejected Stripe webhook: {e}")
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    event_type = event.get('type', '')
    data_object = (event.get('data') or {}).get('object') or {}

    try:
        if event_type == 'checkout.session.completed':
            order, created = materialize_order(data_object.get('id'), data_object.get('payment_intent') or '')
            logger.info(f"Handled checkout.session.completed for {data_object.get('id')} (created={created})")
        elif event_type == 'checkout.session.expired':
            mark_checkout_expired(data_object.get('id'))
        elif event_type == 'payment_intent.payment_failed':
            mark_payment_failed(data_object.get('id'))
        elif event_type == 'payment_intent.succeeded':
            logger.info(f"Payment intent {data_object.get('id')} succeeded")
        else:
            logger.info(f"Unhandled Stripe event type: {event_type}")
    except Exception as e:
        logger.exception(f"Error handling Stripe event {event.get('id')} ({event_type}): {e}")
        return Response({'error': 'Webhook handler failed'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)

    return Response({'received': True})


@api_view(['GET'])
@permission_classes([AllowAny])
def checkout_order_details(request):
    """Order (or pending checkout) for the checkout success page"""
    session_id = (request.query_params.get('session_id') or '').strip()
    if not session_id:
        return Response({'error': 'session_id is required'}, status=status.HTTP_400_BAD_REQUEST)

    order = Order.objects.prefetch_related('items').filter(stripe_session_id=session_id).first()
    if order:
        return Response({'status': 'completed', 'order': OrderSerializer(order).data})

    checkout = CheckoutSession.objects.filter(stripe_session_id=session_id).first()
    if checkout is None:
        return Response({'error': 'Checkout session not found'}, status=status.HTTP_404_NOT_FOUND)

    payment_status = None
    if stripe_gateway.is_configured():
        try:
            payment_status = getattr(stripe_gateway.retrieve_checkout_session(session_id), 'payment_status', None)
        except stripe_gateway.PaymentGatewayError:
            payment_status = None

    return Response({
        'status': checkout.status,
        'payment_status': payment_status,
        'checkout': CheckoutSessionSerializer(checkout).data,
    })


# Order views
@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminUser])
def order_list(request):
    """List orders with filtering and pagination"""
    queryset = Order.objects.prefetch_related('items').all()

    status_filter = request.query_params.get('status', None)
    if status_filter:
        queryset = queryset.filter(order_status=status_filter)

    payment_status = request.query_params.get('payment_status', None)
    if payment_status:
        queryset = queryset.filter(payment_status=payment_status)

    search = request.query_params.get('search', None)
    if search:
        queryset = queryset.filter(
            Q(order_number__icontains=search) |
            Q(customer_name__icontains=search) |
            Q(customer_email__icontains=search)
        )

    date_from = request.query_params.get('date_from', None)
    date_to = request.query_params.get('date_to', None)
    if date_from:
        queryset = queryset.filter(created_at__date__gte=date_from)
    if date_to:
        queryset = queryset.filter(created_at__date__lte=date_to)

    queryset = queryset.order_by('-created_at')
    return Response(paginated_response(request, queryset, OrderSerializer))


@api_view(['GET', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, IsAdminUser])
def order_detail(request, pk):
    """Retrieve, update or delete an order"""
    order = get_object_or_404(Order.objects.prefetch_related('items'), pk=pk)

    if request.method == 'GET':
        return Response(OrderSerializer(order).data)
    elif request.method == 'PATCH':
        serializer = OrderUpdateSerializer(order, data=request.data, partial=True)
        if serializer.is_valid():
            old_data = {field: getattr(order, field) for field in serializer.validated_data}
            serializer.save()
            changes = {
                field: {'old': old_data[field], 'new': getattr(order, field)}
                for field in old_data if old_data[field] != getattr(order, field)
            }
            if changes:
                create_audit_log(
                    request=request,
                    action='update',
                    model_name='Order',
                    object_id=str(order.id),
                    object_name=order.order_number,
                    changes=changes
                )
            return Response(OrderSerializer(order).data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        order_id = str(order.id)
        order_number = order.order_number
        order.delete()
        create_audit_log(
            request=request,
            action='order_delete',
            model_name='Order',
            object_id=order_id,
            object_name=order_number,
        )
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAdminUser])
def order_update_status(request, pk):
    """Move an order through its status workflow"""
    order = get_object_or_404(Order, pk=pk)
    serializer = OrderStatusSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    old_status = order.order_status
    new_status = serializer.validated_data['status']
    try:
        changed = order.transition_to(new_status)
    except InvalidStatusTransition as e:
        return Response({'error': str(e), 'allowed': e.allowed}, status=status.HTTP_400_BAD_REQUEST)

    if changed:
        create_audit_log(
            request=request,
            action='order_status_change',
            model_name='Order',
            object_id=str(order.id),
            object_name=order.order_number,
            changes={'order_status': {'old': old_status, 'new': new_status}}
        )
    return Response(OrderSerializer(order).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAdminUser])
def order_send_shipped_email(request, pk):
    """Email the customer that the order has shipped"""
    order = get_object_or_404(Order.objects.prefetch_related('items'), pk=pk)
    tracking_number = request.data.get('tracking_number') if hasattr(request.data, 'get') else None

    try:
        send_order_shipped(order, tracking_number=tracking_number)
    except EmailDeliveryError as e:
        return Response({'error': f'Failed to send shipped email: {e}'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)

    create_audit_log(
        request=request,
        action='email_send',
        model_name='Order',
        object_id=str(order.id),
        object_name=order.order_number,
        changes={'email': 'order_shipped', 'tracking_number': order.tracking_number}
    )
    return Response({'success': True, 'order': OrderSerializer(order).data})
