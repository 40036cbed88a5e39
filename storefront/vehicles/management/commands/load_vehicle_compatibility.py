"""
Management command to load the vehicle make/model/year range master data
"""
import json
from pathlib import Path

from django.core.management.base import BaseCommand, CommandError

from storefront.core.cache_utils import invalidate_vehicle_tree_cache
from storefront.core.cache_signals import suspend_cache_signals
from storefront.vehicles.models import VehicleMake
from storefront.vehicles.services import load_vehicle_tree

DEFAULT_DATA_FILE = Path(__file__).resolve().parent.parent.parent / 'data' / 'vehicle_compatibility.json'


class Command(BaseCommand):
    help = "Loads vehicle makes, models and year ranges from a JSON file ({make: {model: [year_range, ...]}})"

    def add_arguments(self, parser):
        parser.add_argument(
            '--file',
            default=str(DEFAULT_DATA_FILE),
            help='Path to the JSON data file (defaults to the bundled data)',
        )
        parser.add_argument(
            '--clear',
            action='store_true',
            help='Remove all existing vehicle data before loading',
        )

    def handle(self, *args, **options):
        path = Path(options['file'])
        if not path.exists():
            raise CommandError(f"File not found: {path}")

        try:
            with path.open(encoding='utf-8') as fh:
                tree = json.load(fh)
        except json.JSONDecodeError as e:
            raise CommandError(f"Invalid JSON in {path}: {e}")
        if not isinstance(tree, dict):
            raise CommandError("Expected a JSON object of {make: {model: [year_range, ...]}}")

        if options['clear']:
            self.stdout.write(self.style.WARNING("Clearing all existing vehicle data..."))

        try:
            with suspend_cache_signals():
                makes, models, year_ranges = load_vehicle_tree(tree, clear=options['clear'])
        except ValueError as e:
            raise CommandError(str(e))
        invalidate_vehicle_tree_cache()

        self.stdout.write(self.style.SUCCESS(f"Makes created: {makes}"))
        self.stdout.write(self.style.SUCCESS(f"Models created: {models}"))
        self.stdout.write(self.style.SUCCESS(f"Year ranges created: {year_ranges}"))
        self.stdout.write(f"Total makes in database: {VehicleMake.objects.count()}")
