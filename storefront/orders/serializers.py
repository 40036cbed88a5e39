from decimal import Decimal

from rest_framework import serializers

from .models import ShippingCost, CheckoutSession, Order, OrderItem


class ShippingCostSerializer(serializers.ModelSerializer):
    class Meta:
        model = ShippingCost
        fields = ['id', 'cost', 'note', 'updated_at']

    def validate_cost(self, value):
        if value < 0:
            raise serializers.ValidationError('Shipping cost cannot be negative')
        return value


class ShippingQuoteSerializer(serializers.Serializer):
    subtotal = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=Decimal('0'), required=False, default=Decimal('0.00'))


class AddressSerializer(serializers.Serializer):
    street = serializers.CharField(max_length=255)
    city = serializers.CharField(max_length=100)
    state = serializers.CharField(max_length=100, required=False, allow_blank=True)
    zip = serializers.CharField(max_length=20)
    country = serializers.CharField(max_length=100, required=False, default='US')


class CustomerSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=200)
    email = serializers.EmailField()
    phone = serializers.CharField(max_length=30, required=False, allow_blank=True)
    address = AddressSerializer()


class CartItemSerializer(serializers.Serializer):
    product = serializers.IntegerField()
    quantity = serializers.IntegerField(min_value=1)


class CheckoutRequestSerializer(serializers.Serializer):
    items = CartItemSerializer(many=True, allow_empty=True)
    customer = CustomerSerializer()
    promo_code = serializers.CharField(max_length=50, required=False, allow_blank=True, allow_null=True)


class CheckoutSessionSerializer(serializers.ModelSerializer):
    class Meta:
        model = CheckoutSession
        fields = ['id', 'stripe_session_id', 'customer_name', 'customer_email', 'customer_phone', 'address',
                  'items', 'subtotal', 'promo_code', 'promo_discount', 'shipping_cost', 'total', 'status',
                  'created_at']


class OrderItemSerializer(serializers.ModelSerializer):
    class Meta:
        model = OrderItem
        fields = ['id', 'product', 'title', 'sku', 'quantity', 'unit_price', 'line_total']


class OrderSerializer(serializers.ModelSerializer):
    items = OrderItemSerializer(many=True, read_only=True)
    shipping_address = serializers.CharField(read_only=True)
    allowed_transitions = serializers.SerializerMethodField()

    class Meta:
        model = Order
        fields = [
            'id', 'order_number', 'stripe_session_id', 'stripe_payment_intent_id',
            'customer_name', 'customer_email', 'customer_phone',
            'address_street', 'address_city', 'address_state', 'address_zip', 'address_country', 'shipping_address',
            'subtotal', 'promo_code', 'promo_discount', 'shipping_cost', 'total',
            'order_status', 'payment_status', 'shipping_status', 'allowed_transitions',
            'tracking_number', 'notes', 'confirmation_email_sent', 'shipped_email_sent',
            'items', 'created_at', 'updated_at'
        ]
        read_only_fields = fields

    def get_allowed_transitions(self, obj):
        return obj.allowed_transitions()


class OrderUpdateSerializer(serializers.ModelSerializer):
    """Back-office edits that do not go through the status workflow"""
    class Meta:
        model = Order
        fields = ['tracking_number', 'notes', 'customer_phone',
                  'address_street', 'address_city', 'address_state', 'address_zip', 'address_country']


class OrderStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=[choice[0] for choice in Order.ORDER_STATUS_CHOICES])
