from django.db import models


class VehicleMake(models.Model):
    """Vehicle manufacturer offered in the admin pickers"""
    name = models.CharField(max_length=100, unique=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return self.name

    class Meta:
        db_table = 'vehicle_makes'
        ordering = ['name']


class VehicleModel(models.Model):
    make = models.ForeignKey(VehicleMake, on_delete=models.CASCADE, related_name='models')
    name = models.CharField(max_length=100)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.make.name} {self.name}"

    class Meta:
        db_table = 'vehicle_models'
        ordering = ['name']
        unique_together = [['make', 'name']]


class VehicleYearRange(models.Model):
    """Year span of a vehicle model, labelled like "2010-2015" or "2018" """
    model = models.ForeignKey(VehicleModel, on_delete=models.CASCADE, related_name='year_ranges')
    label = models.CharField(max_length=20)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.model} {self.label}"

    def bounds(self):
        return parse_year_range(self.label)

    class Meta:
        db_table = 'vehicle_year_ranges'
        ordering = ['label']
        unique_together = [['model', 'label']]


def parse_year_range(label):
    """
    Parse a year range label into (start, end).

    "2010-2015" -> (2010, 2015), "2018" -> (2018, 2018).
    Raises ValueError for anything else.
    """
    label = (label or '').strip()
    if not label:
        raise ValueError('Empty year range')
    parts = [part.strip() for part in label.split('-')]
    if len(parts) == 1:
        year = int(parts[0])
        return year, year
    if len(parts) == 2:
        start, end = int(parts[0]), int(parts[1])
        if start > end:
            raise ValueError(f'Invalid year range "{label}": start is after end')
        return start, end
    raise ValueError(f'Invalid year range "{label}"')
