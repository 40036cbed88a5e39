from decimal import Decimal

from django.db import transaction
from rest_framework import serializers

from .models import Discount, DiscountVehicle, PromoCode


class DiscountVehicleSerializer(serializers.ModelSerializer):
    # Convenience input for a single model year
    year = serializers.IntegerField(write_only=True, required=False, allow_null=True)

    class Meta:
        model = DiscountVehicle
        fields = ['id', 'make', 'model', 'year', 'year_start', 'year_end']

    def validate(self, attrs):
        year = attrs.pop('year', None)
        if year is not None:
            attrs['year_start'] = year
            attrs['year_end'] = year
        year_start = attrs.get('year_start')
        year_end = attrs.get('year_end')
        if year_start is not None and year_end is not None and year_start > year_end:
            raise serializers.ValidationError({'year_start': 'Start year must be less than or equal to end year'})
        if not (attrs.get('make') or '').strip():
            raise serializers.ValidationError({'make': 'Make is required'})
        return attrs


class DiscountSerializer(serializers.ModelSerializer):
    vehicles = DiscountVehicleSerializer(many=True, required=False)
    status = serializers.CharField(read_only=True)
    product_count = serializers.SerializerMethodField()

    class Meta:
        model = Discount
        fields = [
            'id', 'name', 'description', 'type', 'value',
            'has_start_date', 'start_date', 'has_end_date', 'end_date',
            'active', 'apply_to_all', 'applicable_products', 'applicable_categories', 'vehicles',
            'usage_limit', 'used_count', 'status', 'product_count', 'created_at', 'updated_at'
        ]
        read_only_fields = ['used_count', 'created_at', 'updated_at']

    def get_product_count(self, obj):
        return obj.discounted_products.count()

    def validate(self, attrs):
        def current(field):
            if field in attrs:
                return attrs[field]
            return getattr(self.instance, field, None) if self.instance else None

        value = current('value')
        if value is not None and value < 0:
            raise serializers.ValidationError({'value': 'Discount value cannot be negative'})
        if current('type') == 'percentage' and value is not None and value > Decimal('100'):
            raise serializers.ValidationError({'value': 'Percentage discount must be between 0 and 100'})

        if current('has_start_date') and not current('start_date'):
            raise serializers.ValidationError({'start_date': 'Start date is required when has_start_date is set'})
        if current('has_end_date') and not current('end_date'):
            raise serializers.ValidationError({'end_date': 'End date is required when has_end_date is set'})
        if (current('has_start_date') and current('has_end_date')
                and current('start_date') and current('end_date')
                and current('start_date') > current('end_date')):
            raise serializers.ValidationError({'end_date': 'End date must be after start date'})
        return attrs

    @transaction.atomic
    def create(self, validated_data):
        vehicles = validated_data.pop('vehicles', [])
        discount = super().create(validated_data)
        for vehicle in vehicles:
            DiscountVehicle.objects.create(discount=discount, **vehicle)
        return discount

    @transaction.atomic
    def update(self, instance, validated_data):
        vehicles = validated_data.pop('vehicles', None)
        discount = super().update(instance, validated_data)
        if vehicles is not None:
            discount.vehicles.all().delete()
            for vehicle in vehicles:
                DiscountVehicle.objects.create(discount=discount, **vehicle)
        return discount


class PromoCodeSerializer(serializers.ModelSerializer):
    class Meta:
        model = PromoCode
        fields = ['id', 'code', 'type', 'value', 'expires_at', 'usage_limit', 'used_count', 'active',
                  'allowed_email', 'created_at', 'updated_at']
        read_only_fields = ['used_count', 'created_at', 'updated_at']

    def validate_code(self, value):
        value = value.strip().upper()
        if not value:
            raise serializers.ValidationError('Code is required')
        queryset = PromoCode.objects.filter(code=value)
        if self.instance:
            queryset = queryset.exclude(pk=self.instance.pk)
        if queryset.exists():
            raise serializers.ValidationError(f'Promo code "{value}" already exists')
        return value

    def validate(self, attrs):
        promo_type = attrs.get('type', getattr(self.instance, 'type', None))
        value = attrs.get('value', getattr(self.instance, 'value', None))
        if promo_type == 'percent' and value is not None and value > Decimal('100'):
            raise serializers.ValidationError({'value': 'Percent promo codes must be between 0 and 100'})
        return attrs


class PromoCodeValidateSerializer(serializers.Serializer):
    code = serializers.CharField(max_length=50)
    email = serializers.EmailField(required=False, allow_blank=True)
    subtotal = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=Decimal('0'))
