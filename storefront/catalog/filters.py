import django_filters
from django.db.models import Q, Case, When, F, DecimalField
from .models import Product, Category


def annotate_effective_price(queryset):
    """Annotate `current_price`: the sale price while a discount is applied, else the base price"""
    return queryset.annotate(
        current_price=Case(
            When(applied_discount__isnull=False, sale_price__isnull=False, then=F('sale_price')),
            default=F('price'),
            output_field=DecimalField(max_digits=10, decimal_places=2),
        )
    )


class ProductFilter(django_filters.FilterSet):
    """Storefront product filter"""

    # Searches title, SKU and description
    search = django_filters.CharFilter(method='filter_search', label='Search')

    category = django_filters.NumberFilter(method='filter_category', label='Category (with subcategories)')
    status = django_filters.ChoiceFilter(choices=Product.STATUS_CHOICES)
    on_sale = django_filters.BooleanFilter(method='filter_on_sale', label='On sale')
    min_price = django_filters.NumberFilter(method='filter_min_price', label='Minimum price')
    max_price = django_filters.NumberFilter(method='filter_max_price', label='Maximum price')

    # Vehicle compatibility
    make = django_filters.CharFilter(field_name='compatibilities__make', lookup_expr='iexact', distinct=True)
    model = django_filters.CharFilter(field_name='compatibilities__model', lookup_expr='iexact', distinct=True)
    year = django_filters.NumberFilter(method='filter_year', label='Vehicle year')

    ordering = django_filters.OrderingFilter(
        fields=(
            ('current_price', 'price'),
            ('title', 'title'),
            ('created_at', 'created_at'),
        ),
    )

    class Meta:
        model = Product
        fields = ['search', 'category', 'status', 'on_sale', 'min_price', 'max_price', 'make', 'model', 'year']

    def filter_queryset(self, queryset):
        return super().filter_queryset(annotate_effective_price(queryset))

    def filter_search(self, queryset, name, value):
        search = (value or '').strip()
        if not search:
            return queryset
        words = [w for w in search.split() if w]
        combined_query = Q()
        for word in words:
            combined_query &= (
                Q(title__icontains=word) |
                Q(sku__icontains=word) |
                Q(description__icontains=word)
            )
        return queryset.filter(combined_query).distinct()

    def filter_category(self, queryset, name, value):
        if value is None:
            return queryset
        category = Category.objects.filter(pk=int(value)).first()
        if category is None:
            return queryset.none()
        return queryset.filter(category_id__in=category.descendant_ids())

    def filter_on_sale(self, queryset, name, value):
        if value is None:
            return queryset
        on_sale = Q(applied_discount__isnull=False, sale_price__isnull=False)
        return queryset.filter(on_sale) if value else queryset.exclude(on_sale)

    def filter_min_price(self, queryset, name, value):
        if value is None:
            return queryset
        return queryset.filter(current_price__gte=value)

    def filter_max_price(self, queryset, name, value):
        if value is None:
            return queryset
        return queryset.filter(current_price__lte=value)

    def filter_year(self, queryset, name, value):
        if value is None:
            return queryset
        year = int(value)
        return queryset.filter(
            Q(compatibilities__year_start__isnull=True) | Q(compatibilities__year_start__lte=year),
            Q(compatibilities__year_end__isnull=True) | Q(compatibilities__year_end__gte=year),
            compatibilities__isnull=False,
        ).distinct()
