from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated, IsAdminUser, AllowAny
from django.shortcuts import get_object_or_404
import logging

from .models import Category, Product, VehicleCompatibility
from .serializers import (
    CategorySerializer, ProductSerializer, ProductListSerializer, VehicleCompatibilitySerializer,
)
from .filters import ProductFilter
from .utils import next_available_sku, is_sku_available
from storefront.core.utils import create_audit_log, paginated_response, is_staff_request
from storefront.core.cache_utils import (
    get_cached_products_list, cache_products_list, cached_query, CATEGORIES_NAMESPACE, CATEGORIES_CACHE_TTL,
)

logger = logging.getLogger(__name__)


@cached_query(cache_ttl=CATEGORIES_CACHE_TTL, key_prefix=CATEGORIES_NAMESPACE)
def get_public_categories():
    queryset = Category.objects.select_related('parent').filter(is_active=True)
    return CategorySerializer(queryset, many=True).data


@api_view(['GET', 'POST'])
@permission_classes([AllowAny])
def category_list_create(request):
    """List categories (active only for the storefront) or create a category"""
    if request.method == 'GET':
        if is_staff_request(request):
            queryset = Category.objects.select_related('parent').all()
            return Response(CategorySerializer(queryset, many=True).data)
        return Response(get_public_categories())

    if not is_staff_request(request):
        return Response({'error': 'Admin privileges required'}, status=status.HTTP_403_FORBIDDEN)
    serializer = CategorySerializer(data=request.data)
    if serializer.is_valid():
        category = serializer.save()
        create_audit_log(
            request=request,
            action='create',
            model_name='Category',
            object_id=str(category.id),
            object_name=category.name,
        )
        return Response(serializer.data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([AllowAny])
def category_detail(request, pk):
    """Retrieve, update or delete a category"""
    category = get_object_or_404(Category, pk=pk)
    staff = is_staff_request(request)

    if request.method == 'GET':
        if not category.is_active and not staff:
            return Response({'error': 'Category not found'}, status=status.HTTP_404_NOT_FOUND)
        return Response(CategorySerializer(category).data)

    if not staff:
        return Response({'error': 'Admin privileges required'}, status=status.HTTP_403_FORBIDDEN)

    if request.method in ('PUT', 'PATCH'):
        serializer = CategorySerializer(category, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        category_id = str(category.id)
        category_name = category.name
        category.delete()
        create_audit_log(
            request=request,
            action='delete',
            model_name='Category',
            object_id=category_id,
            object_name=category_name,
        )
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET', 'POST'])
@permission_classes([AllowAny])
def product_list_create(request):
    """List products (storefront: active only, cached) or create a product"""
    if request.method == 'GET':
        staff = is_staff_request(request)

        cache_key = None
        if not staff:
            filters_dict = {key: request.query_params.get(key) for key in sorted(request.query_params.keys())}
            cached_data, cache_key = get_cached_products_list(filters_dict)
            if cached_data is not None:
                return Response(cached_data)

        queryset = Product.objects.select_related('category', 'applied_discount').all()
        if not staff:
            queryset = queryset.filter(status='active')

        filterset = ProductFilter(request.query_params, queryset=queryset)
        if not filterset.is_valid():
            return Response(filterset.errors, status=status.HTTP_400_BAD_REQUEST)

        response_data = paginated_response(request, filterset.qs, ProductListSerializer, default_limit=24)

        if cache_key:
            cache_products_list(cache_key, response_data)
        return Response(response_data)

    if not is_staff_request(request):
        return Response({'error': 'Admin privileges required'}, status=status.HTTP_403_FORBIDDEN)
    serializer = ProductSerializer(data=request.data)
    if serializer.is_valid():
        product = serializer.save()
        create_audit_log(
            request=request,
            action='create',
            model_name='Product',
            object_id=str(product.id),
            object_name=product.title,
            object_reference=product.sku,
            changes={'title': product.title, 'sku': product.sku, 'price': str(product.price)}
        )
        return Response(serializer.data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([AllowAny])
def product_detail(request, pk):
    """Retrieve, update or delete a product"""
    product = get_object_or_404(
        Product.objects.select_related('category', 'applied_discount').prefetch_related('compatibilities'), pk=pk
    )
    staff = is_staff_request(request)

    if request.method == 'GET':
        if product.status != 'active' and not staff:
            return Response({'error': 'Product not found'}, status=status.HTTP_404_NOT_FOUND)
        return Response(ProductSerializer(product).data)

    if not staff:
        return Response({'error': 'Admin privileges required'}, status=status.HTTP_403_FORBIDDEN)

    if request.method in ('PUT', 'PATCH'):
        serializer = ProductSerializer(product, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            old_data = {
                'title': product.title,
                'sku': product.sku,
                'price': str(product.price),
                'status': product.status,
            }
            serializer.save()
            new_data = {
                'title': product.title,
                'sku': product.sku,
                'price': str(product.price),
                'status': product.status,
            }
            changes = {k: {'old': old_data.get(k), 'new': new_data.get(k)} for k in old_data if old_data.get(k) != new_data.get(k)}
            if changes:
                create_audit_log(
                    request=request,
                    action='update',
                    model_name='Product',
                    object_id=str(product.id),
                    object_name=product.title,
                    object_reference=product.sku,
                    changes=changes
                )
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        product_title = product.title
        product_sku = product.sku
        product_id = str(product.id)
        product.delete()
        create_audit_log(
            request=request,
            action='delete',
            model_name='Product',
            object_id=product_id,
            object_name=product_title,
            object_reference=product_sku,
            changes={'title': product_title, 'sku': product_sku}
        )
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsAdminUser])
def product_compatibility(request, pk):
    """List or add the vehicles a product fits"""
    product = get_object_or_404(Product, pk=pk)

    if request.method == 'GET':
        serializer = VehicleCompatibilitySerializer(product.compatibilities.all(), many=True)
        return Response(serializer.data)

    serializer = VehicleCompatibilitySerializer(data=request.data)
    if serializer.is_valid():
        serializer.save(product=product)
        return Response(serializer.data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['DELETE'])
@permission_classes([IsAuthenticated, IsAdminUser])
def product_compatibility_delete(request, pk, compatibility_id):
    compatibility = get_object_or_404(VehicleCompatibility, pk=compatibility_id, product_id=pk)
    compatibility.delete()
    return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminUser])
def check_sku(request):
    """Check whether a SKU is free to use"""
    sku = (request.query_params.get('sku') or '').strip()
    if not sku:
        return Response({'error': 'sku parameter is required'}, status=status.HTTP_400_BAD_REQUEST)

    exclude_id = request.query_params.get('exclude_id')
    available = is_sku_available(sku, exclude_product_id=exclude_id)
    return Response({
        'is_available': available,
        'message': 'SKU is available' if available else f'SKU "{sku}" is already in use',
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminUser])
def next_sku(request):
    """Suggest the next free numeric SKU"""
    return Response({'next_sku': next_available_sku()})
