from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated, IsAdminUser, AllowAny
from django.db import transaction
from django.shortcuts import get_object_or_404
import logging

from .models import Discount, PromoCode
from .serializers import DiscountSerializer, PromoCodeSerializer, PromoCodeValidateSerializer
from .discounts import (
    DiscountError, NoApplicableProducts, apply_discount, remove_discount, preview_discount,
    set_discount_active, check_discount_applicable,
)
from .promo import PromoCodeError, validate_promo_code
from storefront.core.utils import create_audit_log

logger = logging.getLogger(__name__)


def discount_summary(discount):
    return {
        'discount_id': discount.id,
        'discount_name': discount.name,
        'discount_type': discount.type,
        'discount_value': str(discount.value),
        'valid_until': discount.end_date.isoformat() if discount.has_end_date and discount.end_date else None,
    }


def reapply_if_valid(discount, count_use=True):
    """Apply a discount that is active and within its dates. Returns the number of products updated"""
    try:
        check_discount_applicable(discount, check_limit=count_use)
    except DiscountError:
        return 0
    try:
        return len(apply_discount(discount, count_use=count_use))
    except NoApplicableProducts:
        logger.info(f"Discount {discount.id} ({discount.name}) matches no products")
        return 0


# Discount views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsAdminUser])
def discount_list_create(request):
    """List all discounts or create a new discount"""
    if request.method == 'GET':
        discounts = Discount.objects.prefetch_related('vehicles', 'applicable_products', 'applicable_categories').all()
        active = request.query_params.get('active', None)
        if active is not None:
            discounts = discounts.filter(active=active.lower() == 'true')
        serializer = DiscountSerializer(discounts, many=True)
        return Response(serializer.data)
    else:  # POST
        serializer = DiscountSerializer(data=request.data)
        if serializer.is_valid():
            with transaction.atomic():
                discount = serializer.save()
                updated_count = reapply_if_valid(discount) if discount.active else 0
            create_audit_log(
                request=request,
                action='create',
                model_name='Discount',
                object_id=str(discount.id),
                object_name=discount.name,
                changes={'type': discount.type, 'value': str(discount.value), 'updated_count': updated_count}
            )
            data = DiscountSerializer(discount).data
            data['updated_count'] = updated_count
            return Response(data, status=status.HTTP_201_CREATED)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, IsAdminUser])
def discount_detail(request, pk):
    """Retrieve, update or delete a discount"""
    discount = get_object_or_404(Discount, pk=pk)

    if request.method == 'GET':
        serializer = DiscountSerializer(discount)
        return Response(serializer.data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = DiscountSerializer(discount, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            with transaction.atomic():
                # Prices follow the edited discount; re-pricing products it already carried is not a new use
                restored = remove_discount(discount)
                discount = serializer.save()
                updated_count = reapply_if_valid(discount, count_use=not restored) if discount.active else 0
            create_audit_log(
                request=request,
                action='update',
                model_name='Discount',
                object_id=str(discount.id),
                object_name=discount.name,
                changes={'fields': sorted(serializer.validated_data.keys()), 'updated_count': updated_count}
            )
            data = DiscountSerializer(discount).data
            data['updated_count'] = updated_count
            return Response(data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        discount_id = str(discount.id)
        discount_name = discount.name
        with transaction.atomic():
            restored = remove_discount(discount)
            discount.delete()
        create_audit_log(
            request=request,
            action='delete',
            model_name='Discount',
            object_id=discount_id,
            object_name=discount_name,
            changes={'restored_count': restored}
        )
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAdminUser])
def discount_apply(request, pk):
    """Apply a discount to all of its applicable products"""
    discount = get_object_or_404(Discount, pk=pk)
    try:
        changes = apply_discount(discount)
    except DiscountError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    create_audit_log(
        request=request,
        action='discount_apply',
        model_name='Discount',
        object_id=str(discount.id),
        object_name=discount.name,
        changes={'updated_count': len(changes), 'product_ids': [change.product.id for change in changes]}
    )
    return Response({
        'success': True,
        'message': f'Discount applied to {len(changes)} products',
        'updated_count': len(changes),
        'discount_info': discount_summary(discount),
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAdminUser])
def discount_remove(request, pk):
    """Restore the prices of every product carrying this discount"""
    discount = get_object_or_404(Discount, pk=pk)
    restored = remove_discount(discount)
    create_audit_log(
        request=request,
        action='discount_remove',
        model_name='Discount',
        object_id=str(discount.id),
        object_name=discount.name,
        changes={'restored_count': restored}
    )
    return Response({
        'success': True,
        'message': f'Discount removed from {restored} products',
        'restored_count': restored,
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAdminUser])
def discount_toggle(request, pk):
    """Flip a discount between active and inactive"""
    discount = get_object_or_404(Discount, pk=pk)
    target = request.data.get('active', None)
    if target is None:
        target = not discount.active
    elif isinstance(target, str):
        target = target.lower() in ('true', '1', 'yes')

    try:
        changed = set_discount_active(discount, bool(target))
    except DiscountError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    discount.refresh_from_db()
    create_audit_log(
        request=request,
        action='discount_toggle',
        model_name='Discount',
        object_id=str(discount.id),
        object_name=discount.name,
        changes={'active': discount.active, 'changed_count': changed}
    )
    return Response({
        'success': True,
        'active': discount.active,
        'status': discount.status,
        'updated_count': changed,
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminUser])
def discount_preview(request, pk):
    """Show the price changes a discount would make without applying it"""
    discount = get_object_or_404(Discount, pk=pk)
    try:
        changes = preview_discount(discount)
    except DiscountError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
    return Response({
        'discount_info': discount_summary(discount),
        'count': len(changes),
        'products': [change.as_dict() for change in changes],
    })


# PromoCode views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsAdminUser])
def promo_code_list_create(request):
    """List all promo codes or create a new promo code"""
    if request.method == 'GET':
        promo_codes = PromoCode.objects.all()
        serializer = PromoCodeSerializer(promo_codes, many=True)
        return Response(serializer.data)
    else:  # POST
        serializer = PromoCodeSerializer(data=request.data)
        if serializer.is_valid():
            promo = serializer.save()
            create_audit_log(
                request=request,
                action='create',
                model_name='PromoCode',
                object_id=str(promo.id),
                object_name=promo.code,
            )
            return Response(serializer.data, status=status.HTTP_201_CREATED)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, IsAdminUser])
def promo_code_detail(request, pk):
    """Retrieve, update or delete a promo code"""
    promo = get_object_or_404(PromoCode, pk=pk)

    if request.method == 'GET':
        serializer = PromoCodeSerializer(promo)
        return Response(serializer.data)
    elif request.method == 'PUT':
        serializer = PromoCodeSerializer(promo, data=request.data)
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    elif request.method == 'PATCH':
        serializer = PromoCodeSerializer(promo, data=request.data, partial=True)
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        promo_id = str(promo.id)
        promo_code = promo.code
        promo.delete()
        create_audit_log(
            request=request,
            action='delete',
            model_name='PromoCode',
            object_id=promo_id,
            object_name=promo_code,
        )
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['POST'])
@permission_classes([AllowAny])
def promo_code_validate(request):
    """Check a promo code for a cart before checkout"""
    serializer = PromoCodeValidateSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    data = serializer.validated_data
    try:
        promo, amount = validate_promo_code(data['code'], data.get('email', ''), data['subtotal'])
    except PromoCodeError as e:
        return Response({'valid': False, 'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    return Response({
        'valid': True,
        'code': promo.code,
        'type': promo.type,
        'value': str(promo.value),
        'discount_amount': str(amount),
    })
