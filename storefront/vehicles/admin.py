from django.contrib import admin
from .models import VehicleMake, VehicleModel, VehicleYearRange


class VehicleModelInline(admin.TabularInline):
    model = VehicleModel
    extra = 0


class VehicleYearRangeInline(admin.TabularInline):
    model = VehicleYearRange
    extra = 0


@admin.register(VehicleMake)
class VehicleMakeAdmin(admin.ModelAdmin):
    list_display = ['name', 'created_at']
    search_fields = ['name']
    inlines = [VehicleModelInline]


@admin.register(VehicleModel)
class VehicleModelAdmin(admin.ModelAdmin):
    list_display = ['name', 'make', 'created_at']
    list_filter = ['make']
    search_fields = ['name', 'make__name']
    inlines = [VehicleYearRangeInline]
