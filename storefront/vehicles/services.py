"""
Vehicle master data operations backing the makes/models endpoints
"""
import logging

from django.db import transaction

from .models import VehicleMake, VehicleModel, VehicleYearRange, parse_year_range

logger = logging.getLogger(__name__)


def build_vehicle_tree():
    """Return {make: {model: [year_range, ...]}} for every make"""
    tree = {}
    for make in VehicleMake.objects.prefetch_related('models__year_ranges').order_by('name'):
        tree[make.name] = {
            model.name: [year_range.label for year_range in model.year_ranges.all()]
            for model in make.models.all()
        }
    return tree


@transaction.atomic
def add_vehicle(make, model=None, year_range=None):
    """Add a make, then a model under it, then a year range under that, skipping existing entries"""
    if year_range:
        parse_year_range(year_range)

    make_obj, created = VehicleMake.objects.get_or_create(name=make)
    if created:
        logger.info(f"Added vehicle make {make}")
    if not model:
        return

    model_obj, created = VehicleModel.objects.get_or_create(make=make_obj, name=model)
    if created:
        logger.info(f"Added vehicle model {make} {model}")
    if year_range:
        VehicleYearRange.objects.get_or_create(model=model_obj, label=year_range)


@transaction.atomic
def remove_vehicle(make, model=None, year_range=None):
    """
    Remove a year range, a model or a whole make.

    When a year range or model is removed, a model left without year ranges
    and a make left without models are removed as well.
    """
    make_obj = VehicleMake.objects.filter(name=make).first()
    if make_obj is None:
        return

    if model and year_range:
        model_obj = make_obj.models.filter(name=model).first()
        if model_obj is None:
            return
        model_obj.year_ranges.filter(label=year_range).delete()
        if not model_obj.year_ranges.exists():
            model_obj.delete()
        if not make_obj.models.exists():
            make_obj.delete()
    elif model:
        make_obj.models.filter(name=model).delete()
        if not make_obj.models.exists():
            make_obj.delete()
    else:
        make_obj.delete()


@transaction.atomic
def load_vehicle_tree(tree, clear=False):
    """Load {make: {model: [year_range, ...]}} data. Returns (makes, models, year_ranges) created"""
    if clear:
        VehicleMake.objects.all().delete()

    counts = [0, 0, 0]
    for make_name, models in tree.items():
        make_obj, created = VehicleMake.objects.get_or_create(name=make_name.strip())
        counts[0] += int(created)
        for model_name, year_ranges in (models or {}).items():
            model_obj, created = VehicleModel.objects.get_or_create(make=make_obj, name=model_name.strip())
            counts[1] += int(created)
            for label in year_ranges or []:
                parse_year_range(label)
                _, created = VehicleYearRange.objects.get_or_create(model=model_obj, label=label.strip())
                counts[2] += int(created)
    return tuple(counts)
