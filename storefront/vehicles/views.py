from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import AllowAny

from .serializers import VehicleEntrySerializer
from .services import build_vehicle_tree, add_vehicle, remove_vehicle
from storefront.core.utils import create_audit_log, is_staff_request
from storefront.core.cache_utils import cached_query, invalidate_vehicle_tree_cache, VEHICLE_TREE_NAMESPACE, VEHICLE_TREE_CACHE_TTL


@cached_query(cache_ttl=VEHICLE_TREE_CACHE_TTL, key_prefix=VEHICLE_TREE_NAMESPACE)
def get_vehicle_tree():
    return build_vehicle_tree()


@api_view(['GET', 'POST', 'DELETE'])
@permission_classes([AllowAny])
def makes_models(request):
    """
    Vehicle make/model/year range tree.

    GET returns {make: {model: [year_range, ...]}}.
    POST adds {make, model?, year_range?}; DELETE removes the most specific
    level given, pruning emptied models and makes. Both return {success, data}.
    """
    if request.method == 'GET':
        return Response(get_vehicle_tree())

    if not is_staff_request(request):
        return Response({'error': 'Admin privileges required'}, status=status.HTTP_403_FORBIDDEN)

    serializer = VehicleEntrySerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    make = serializer.validated_data['make']
    model = serializer.validated_data.get('model') or None
    year_range = serializer.validated_data.get('year_range') or None

    if request.method == 'POST':
        add_vehicle(make, model, year_range)
        action = 'create'
    else:  # DELETE
        remove_vehicle(make, model, year_range)
        action = 'delete'

    # Signals cover single rows; bulk cascades need an explicit flush
    invalidate_vehicle_tree_cache()
    create_audit_log(
        request=request,
        action=action,
        model_name='VehicleMake',
        object_id=make,
        object_name=' '.join(part for part in (make, model, year_range) if part),
    )
    return Response({'success': True, 'data': build_vehicle_tree()})
