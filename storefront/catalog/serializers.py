from rest_framework import serializers
from storefront.pricing.discounts import reprice_product
from .models import Category, Product, VehicleCompatibility


class CategorySerializer(serializers.ModelSerializer):
    parent_name = serializers.CharField(source='parent.name', read_only=True, default=None)

    class Meta:
        model = Category
        fields = ['id', 'name', 'parent', 'parent_name', 'description', 'image_url', 'is_active', 'sort_order', 'created_at', 'updated_at']

    def validate_parent(self, value):
        if value and self.instance and value.id in self.instance.descendant_ids():
            raise serializers.ValidationError('A category cannot be nested under itself or its subcategories')
        return value


class VehicleCompatibilitySerializer(serializers.ModelSerializer):
    class Meta:
        model = VehicleCompatibility
        fields = ['id', 'product', 'make', 'model', 'year_start', 'year_end']
        read_only_fields = ['product']

    def validate_make(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError('Make is required')
        return value

    def validate(self, attrs):
        year_start = attrs.get('year_start')
        year_end = attrs.get('year_end')
        if year_start is not None and year_end is not None and year_start > year_end:
            raise serializers.ValidationError({'year_start': 'Start year must be less than or equal to end year'})
        return attrs


class ProductListSerializer(serializers.ModelSerializer):
    """Compact product representation for listings"""
    category_name = serializers.CharField(source='category.name', read_only=True, default=None)
    effective_price = serializers.DecimalField(max_digits=10, decimal_places=2, read_only=True)
    on_sale = serializers.SerializerMethodField()

    class Meta:
        model = Product
        fields = ['id', 'title', 'sku', 'category', 'category_name', 'price', 'sale_price', 'effective_price',
                  'on_sale', 'image_url', 'status']

    def get_on_sale(self, obj):
        return obj.discount_info is not None


class ProductSerializer(serializers.ModelSerializer):
    category_name = serializers.CharField(source='category.name', read_only=True, default=None)
    effective_price = serializers.DecimalField(max_digits=10, decimal_places=2, read_only=True)
    discount_info = serializers.SerializerMethodField()
    compatibilities = VehicleCompatibilitySerializer(many=True, read_only=True)

    class Meta:
        model = Product
        fields = ['id', 'title', 'sku', 'description', 'category', 'category_name', 'price', 'sale_price',
                  'regular_price', 'effective_price', 'discount_amount', 'discount_applied_at', 'discount_info',
                  'image_url', 'status', 'compatibilities', 'created_at', 'updated_at']
        # Discount fields are owned by the pricing engine
        read_only_fields = ['sale_price', 'regular_price', 'discount_amount', 'discount_applied_at',
                            'created_at', 'updated_at']

    def get_discount_info(self, obj):
        return obj.discount_info

    def validate_sku(self, value):
        if value is None:
            return None
        value = value.strip()
        if not value:
            return None
        queryset = Product.objects.filter(sku__iexact=value)
        if self.instance:
            queryset = queryset.exclude(pk=self.instance.pk)
        if queryset.exists():
            raise serializers.ValidationError(f'SKU "{value}" is already in use')
        return value

    def validate_price(self, value):
        if value < 0:
            raise serializers.ValidationError('Price cannot be negative')
        return value

    def update(self, instance, validated_data):
        old_price = instance.price
        instance = super().update(instance, validated_data)
        # A discounted product's sale price follows its base price
        if instance.applied_discount_id and instance.price != old_price:
            reprice_product(instance)
        return instance
