import os
import tempfile
import unittest
from unittest import mock

import dbcase  # noqa: F401  (puts src/ on sys.path)
import requests

from utils import config, location
from utils.errors import GeolocationError, TransportError
from utils.location import FALLBACK_LOCATION_NAME, LocationResolver, haversine
from utils.storage import LOCATION_KEY, LOCATION_NAME_KEY, LocalStorage


class HaversineTestCase(unittest.TestCase):
    def test_same_point_is_zero(self):
        self.assertEqual(haversine(12.97, 77.59, 12.97, 77.59), 0)

    def test_antipodes(self):
        self.assertAlmostEqual(haversine(0, 0, 0, 180), 20015.09, delta=1)

    def test_known_city_distance(self):
        # Bangalore to Chennai, roughly 290 km
        self.assertAlmostEqual(haversine(12.9716, 77.5946, 13.0827, 80.2707), 290, delta=5)


class ResolverTestCase(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.storage = LocalStorage(os.path.join(self.temp_dir.name, "storage.json"))

    def tearDown(self):
        self.temp_dir.cleanup()

    def _resolver(self, coords=(12.9352, 77.6245), name="Koramangala, Bengaluru"):
        async def locate():
            return coords

        async def reverse(lat, lng):
            return name

        return LocationResolver(self.storage, locate=locate, reverse_geocode=reverse)

    def test_defaults_before_any_request(self):
        resolver = self._resolver()
        self.assertEqual(resolver.location, config.DEFAULT_LOCATION)
        self.assertEqual(resolver.location_name, config.DEFAULT_LOCATION_NAME)
        self.assertTrue(resolver.has_location)

    async def test_request_location_persists(self):
        resolver = self._resolver()
        loc = await resolver.request_location()
        self.assertEqual(loc, {"lat": 12.9352, "lng": 77.6245})
        self.assertFalse(resolver.is_loading)
        self.assertEqual(self.storage.get(LOCATION_KEY), loc)
        self.assertEqual(self.storage.get(LOCATION_NAME_KEY), "Koramangala, Bengaluru")

        # a new resolver starts from the stored position
        restored = LocationResolver(self.storage, locate=None)
        self.assertEqual(restored.location, loc)
        self.assertEqual(restored.location_name, "Koramangala, Bengaluru")

    async def test_reverse_geocode_failure_uses_fallback_label(self):
        async def locate():
            return 1.0, 2.0

        async def reverse(lat, lng):
            raise requests.ConnectionError("offline")

        resolver = LocationResolver(self.storage, locate=locate, reverse_geocode=reverse)
        await resolver.request_location()
        self.assertEqual(resolver.location_name, FALLBACK_LOCATION_NAME)

    async def test_failure_keeps_previous_position(self):
        async def denied():
            raise GeolocationError("denied")

        resolver = LocationResolver(self.storage, locate=denied)
        before = dict(resolver.location)
        with self.assertRaises(GeolocationError) as ctx:
            await resolver.request_location()
        self.assertEqual(ctx.exception.code, "denied")
        self.assertEqual(resolver.error, "Please allow location access in your settings")
        self.assertEqual(resolver.location, before)
        self.assertFalse(resolver.is_loading)

    async def test_unsupported_without_provider(self):
        resolver = LocationResolver(self.storage, locate=None)
        with self.assertRaises(GeolocationError) as ctx:
            await resolver.request_location()
        self.assertEqual(ctx.exception.code, "unsupported")

    def test_calculate_distance(self):
        resolver = self._resolver()
        resolver.location = {"lat": 0.0, "lng": 0.0}
        self.assertAlmostEqual(resolver.calculate_distance(0, 180), 20015.09, delta=1)
        self.assertIsNone(resolver.calculate_distance(None, 77.6))
        self.assertIsNone(resolver.calculate_distance("abc", 77.6))
        self.assertIsNone(resolver.calculate_distance(float("nan"), 77.6))

    def test_sort_by_distance(self):
        resolver = self._resolver()
        resolver.location = {"lat": 12.97, "lng": 77.60}
        shops = [
            ("far", (13.08, 80.27)),
            ("unknown", (None, None)),
            ("near", (12.971, 77.601)),
        ]
        ordered = resolver.sort_by_distance(shops, lambda s: s[1])
        self.assertEqual([s[0] for s, _ in ordered], ["near", "far", "unknown"])
        self.assertIsNone(ordered[-1][1])

        within = resolver.sort_by_distance(shops, lambda s: s[1], max_km=50)
        self.assertEqual([s[0] for s, _ in within], ["near"])


class IpLocateTestCase(unittest.IsolatedAsyncioTestCase):
    async def test_disabled_means_denied(self):
        with mock.patch.object(config, "LOCATION_ENABLED", False):
            with self.assertRaises(GeolocationError) as ctx:
                await location.ip_locate()
        self.assertEqual(ctx.exception.code, "denied")

    async def test_timeout_and_unavailable(self):
        with mock.patch.object(config, "LOCATION_ENABLED", True):
            with mock.patch.object(location.requests, "get", side_effect=requests.Timeout()):
                with self.assertRaises(GeolocationError) as ctx:
                    await location.ip_locate()
                self.assertEqual(ctx.exception.code, "timeout")

            with mock.patch.object(location.requests, "get", side_effect=requests.ConnectionError()):
                with self.assertRaises(GeolocationError) as ctx:
                    await location.ip_locate()
                self.assertEqual(ctx.exception.code, "unavailable")

    async def test_success(self):
        response = mock.Mock()
        response.json.return_value = {"latitude": "12.5", "longitude": 77.25}
        with mock.patch.object(config, "LOCATION_ENABLED", True):
            with mock.patch.object(location.requests, "get", return_value=response):
                self.assertEqual(await location.ip_locate(), (12.5, 77.25))


class ReverseGeocodeTestCase(unittest.IsolatedAsyncioTestCase):
    async def test_network_failure_is_transport_error(self):
        with mock.patch.object(location.requests, "get", side_effect=requests.ConnectionError("down")):
            with self.assertRaises(TransportError):
                await location.nominatim_reverse_geocode(12.9, 77.6)

    async def test_area_and_city(self):
        response = mock.Mock()
        response.json.return_value = {"address": {"suburb": "Koramangala", "city": "Bengaluru"}}
        with mock.patch.object(location.requests, "get", return_value=response):
            self.assertEqual(
                await location.nominatim_reverse_geocode(12.9, 77.6), "Koramangala, Bengaluru"
            )

    async def test_resolver_falls_back_on_transport_error(self):
        async def locate():
            return 12.9, 77.6

        with tempfile.TemporaryDirectory() as tmp:
            resolver = LocationResolver(
                LocalStorage(os.path.join(tmp, "s.json")),
                locate=locate,
                reverse_geocode=location.nominatim_reverse_geocode,
            )
            with mock.patch.object(location.requests, "get", side_effect=requests.ConnectionError()):
                await resolver.request_location()
        self.assertEqual(resolver.location_name, FALLBACK_LOCATION_NAME)


if __name__ == "__main__":
    unittest.main()
