from rest_framework import serializers
from .models import parse_year_range


class VehicleEntrySerializer(serializers.Serializer):
    """Make/model/year range triple used to add or remove vehicle master data"""
    make = serializers.CharField(max_length=100)
    model = serializers.CharField(max_length=100, required=False, allow_blank=True)
    year_range = serializers.CharField(max_length=20, required=False, allow_blank=True)

    def validate_make(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError('Make is required')
        return value

    def validate_model(self, value):
        return value.strip()

    def validate_year_range(self, value):
        value = value.strip()
        if value:
            try:
                parse_year_range(value)
            except ValueError as e:
                raise serializers.ValidationError(str(e))
        return value

    def validate(self, attrs):
        if attrs.get('year_range') and not attrs.get('model'):
            raise serializers.ValidationError({'model': 'A model is required when a year range is given'})
        return attrs
