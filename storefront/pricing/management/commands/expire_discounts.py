"""
Management command to deactivate discounts past their end date
"""
from django.core.management.base import BaseCommand

from storefront.pricing.discounts import expire_discounts


class Command(BaseCommand):
    help = "Deactivates discounts whose end date has passed and restores the prices of their products"

    def add_arguments(self, parser):
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='List the discounts that would expire without changing anything',
        )

    def handle(self, *args, **options):
        dry_run = options['dry_run']
        expired = expire_discounts(dry_run=dry_run)

        if not expired:
            self.stdout.write(self.style.SUCCESS("No expired discounts found."))
            return

        for discount in expired:
            prefix = "Would expire" if dry_run else "Expired"
            self.stdout.write(f"  {prefix}: {discount.name} (ended {discount.end_date:%Y-%m-%d %H:%M})")

        if dry_run:
            self.stdout.write(self.style.WARNING(f"Dry run: {len(expired)} discounts would be expired."))
        else:
            self.stdout.write(self.style.SUCCESS(f"Expired {len(expired)} discounts."))
