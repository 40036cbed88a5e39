"""
Tests for the vehicle make/model/year range tree
"""
import json
import tempfile
from io import StringIO

from django.core.cache import cache
from django.core.management import call_command
from django.core.management.base import CommandError
from django.test import TestCase
from rest_framework import status
from rest_framework.test import APIClient
from storefront.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from storefront.core.models import AuditLog
from storefront.vehicles.models import VehicleMake, VehicleModel, VehicleYearRange, parse_year_range
from storefront.vehicles.services import add_vehicle, remove_vehicle, build_vehicle_tree, load_vehicle_tree

URL = '/api/v1/vehicles/makes-models/'


class YearRangeParsingTests(TestCase):
    def test_parse_range_and_single_year(self):
        self.assertEqual(parse_year_range('2010-2015'), (2010, 2015))
        self.assertEqual(parse_year_range(' 2018 '), (2018, 2018))

    def test_invalid_ranges(self):
        for label in ['', '2015-2010', 'abc', '2010-2012-2014']:
            with self.assertRaises(ValueError):
                parse_year_range(label)


class VehicleServiceTests(TestCase):
    def test_add_builds_tree(self):
        add_vehicle('Toyota', 'Camry', '2012-2017')
        add_vehicle('Toyota', 'Camry', '2018-2023')
        add_vehicle('Toyota', 'Corolla')
        add_vehicle('Honda')
        self.assertEqual(build_vehicle_tree(), {
            'Honda': {},
            'Toyota': {'Camry': ['2012-2017', '2018-2023'], 'Corolla': []},
        })

    def test_add_is_idempotent(self):
        add_vehicle('Toyota', 'Camry', '2012-2017')
        add_vehicle('Toyota', 'Camry', '2012-2017')
        self.assertEqual(VehicleYearRange.objects.count(), 1)

    def test_remove_last_year_range_prunes_model_and_make(self):
        add_vehicle('Toyota', 'Camry', '2012-2017')
        remove_vehicle('Toyota', 'Camry', '2012-2017')
        self.assertFalse(VehicleModel.objects.exists())
        self.assertFalse(VehicleMake.objects.exists())

    def test_remove_year_range_keeps_siblings(self):
        add_vehicle('Toyota', 'Camry', '2012-2017')
        add_vehicle('Toyota', 'Camry', '2018-2023')
        remove_vehicle('Toyota', 'Camry', '2012-2017')
        self.assertEqual(build_vehicle_tree(), {'Toyota': {'Camry': ['2018-2023']}})

    def test_remove_model_keeps_make_with_other_models(self):
        add_vehicle('Toyota', 'Camry')
        add_vehicle('Toyota', 'Corolla')
        remove_vehicle('Toyota', 'Camry')
        self.assertEqual(build_vehicle_tree(), {'Toyota': {'Corolla': []}})

    def test_remove_unknown_make_is_a_noop(self):
        remove_vehicle('Nope', 'Nothing')
        self.assertEqual(build_vehicle_tree(), {})

    def test_load_tree_counts(self):
        add_vehicle('Ford')
        counts = load_vehicle_tree({'Ford': {'F-150': ['2015-2020']}, 'Kia': {'Soul': ['2014', '2020-2023']}})
        self.assertEqual(counts, (1, 2, 3))

        counts = load_vehicle_tree({'Kia': {'Rio': []}}, clear=True)
        self.assertEqual(counts, (1, 1, 0))
        self.assertEqual(build_vehicle_tree(), {'Kia': {'Rio': []}})


class MakesModelsEndpointTests(TestCase):
    def setUp(self):
        cache.clear()
        self.client = APIClient()
        self.admin_client = AuthenticatedAPIClient().authenticate_user(TestDataFactory.create_admin())

    def test_public_get(self):
        add_vehicle('Toyota', 'Camry', '2012-2017')
        response = self.client.get(URL)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data, {'Toyota': {'Camry': ['2012-2017']}})

    def test_anonymous_cannot_modify(self):
        response = self.client.post(URL, {'make': 'Toyota'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_add_and_remove_refresh_cached_tree(self):
        self.client.get(URL)
        response = self.admin_client.post(URL, {'make': 'Toyota', 'model': 'Camry', 'year_range': '2012-2017'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['success'])
        self.assertEqual(response.data['data'], {'Toyota': {'Camry': ['2012-2017']}})
        self.assertEqual(self.client.get(URL).data, {'Toyota': {'Camry': ['2012-2017']}})

        response = self.admin_client.delete(URL, {'make': 'Toyota', 'model': 'Camry'}, format='json')
        self.assertEqual(response.data['data'], {})
        self.assertEqual(self.client.get(URL).data, {})
        self.assertEqual(AuditLog.objects.filter(model_name='VehicleMake').count(), 2)

    def test_year_range_requires_model(self):
        response = self.admin_client.post(URL, {'make': 'Toyota', 'year_range': '2012-2017'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('model', response.data)

    def test_invalid_year_range(self):
        response = self.admin_client.post(URL, {'make': 'Toyota', 'model': 'Camry', 'year_range': '2020-2010'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('year_range', response.data)


class LoadVehicleCommandTests(TestCase):
    def test_loads_bundled_data(self):
        out = StringIO()
        call_command('load_vehicle_compatibility', stdout=out)
        self.assertIn('Makes created: 5', out.getvalue())
        self.assertIn('Ford', build_vehicle_tree())

    def test_loads_custom_file(self):
        with tempfile.NamedTemporaryFile('w', suffix='.json', delete=False) as fh:
            json.dump({'Mazda': {'CX-5': ['2017-2023']}}, fh)
        call_command('load_vehicle_compatibility', file=fh.name, clear=True, stdout=StringIO())
        self.assertEqual(build_vehicle_tree(), {'Mazda': {'CX-5': ['2017-2023']}})

    def test_missing_file(self):
        with self.assertRaises(CommandError):
            call_command('load_vehicle_compatibility', file='/nonexistent/vehicles.json', stdout=StringIO())
