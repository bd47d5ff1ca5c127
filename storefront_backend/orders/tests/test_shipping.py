# orders/tests/test_shipping.py

from django.core.exceptions import ValidationError
from django.test import SimpleTestCase, override_settings

from orders.services.shipping import (
    TIER_DOMESTIC,
    TIER_INTERNATIONAL,
    TIER_ISLAND,
    quote_shipping,
    shipping_tier_for,
)
from orders.services.shipping_zone import (
    DOMESTIC_DEPARTMENTS,
    ZONE_DOMESTIC,
    ZONE_ISLAND,
    ZONE_OVERSEAS_DEPARTMENT,
    ZONE_OVERSEAS_TERRITORY,
    ZONE_UNKNOWN,
    ShippingZoneResult,
    resolve_shipping_zone,
)

RATES = {TIER_DOMESTIC: 600, TIER_ISLAND: 1000, TIER_INTERNATIONAL: 1500}


class ShippingZoneTests(SimpleTestCase):
    """
    GUARANTEES:
    - Corsica splits into 2A / 2B at 20200
    - Overseas codes keep their 3-digit department
    - Only the 96 mainland departments resolve as domestic
    """

    def test_domestic_set_size(self):
        self.assertEqual(len(DOMESTIC_DEPARTMENTS), 96)
        self.assertNotIn("20", DOMESTIC_DEPARTMENTS)
        self.assertNotIn("96", DOMESTIC_DEPARTMENTS)

    def test_corsica(self):
        self.assertEqual(resolve_shipping_zone("20000"), ShippingZoneResult(ZONE_ISLAND, "2A"))
        self.assertEqual(resolve_shipping_zone("20199"), ShippingZoneResult(ZONE_ISLAND, "2A"))
        self.assertEqual(resolve_shipping_zone("20200"), ShippingZoneResult(ZONE_ISLAND, "2B"))
        self.assertEqual(resolve_shipping_zone("20290"), ShippingZoneResult(ZONE_ISLAND, "2B"))

    def test_overseas(self):
        self.assertEqual(resolve_shipping_zone("97400"), ShippingZoneResult(ZONE_OVERSEAS_DEPARTMENT, "974"))
        self.assertEqual(resolve_shipping_zone("98800"), ShippingZoneResult(ZONE_OVERSEAS_TERRITORY, "988"))

    def test_mainland_and_unknown(self):
        self.assertEqual(resolve_shipping_zone(" 75011 "), ShippingZoneResult(ZONE_DOMESTIC, "75"))
        self.assertEqual(resolve_shipping_zone("01000"), ShippingZoneResult(ZONE_DOMESTIC, "01"))
        self.assertEqual(resolve_shipping_zone("96000").zone, ZONE_UNKNOWN)
        self.assertEqual(resolve_shipping_zone("00100").zone, ZONE_UNKNOWN)
        self.assertEqual(resolve_shipping_zone("").zone, ZONE_UNKNOWN)


@override_settings(SHIPPING_RATES=RATES, FREE_SHIPPING_THRESHOLD=5000)
class ShippingQuoteTests(SimpleTestCase):
    """
    GUARANTEES:
    - Zone picks the rate tier
    - Free shipping at or above the threshold
    - Unsupported destinations are refused
    """

    def test_tiers(self):
        self.assertEqual(quote_shipping(country_code="FR", postal_code="75011", subtotal=1000)[0], 600)
        self.assertEqual(quote_shipping(country_code="FR", postal_code="20100", subtotal=1000)[0], 1000)
        self.assertEqual(quote_shipping(country_code="FR", postal_code="97400", subtotal=1000)[0], 1500)
        self.assertEqual(quote_shipping(country_code="be", postal_code="1000", subtotal=1000)[0], 1500)

    def test_free_shipping_threshold(self):
        cost, zone = quote_shipping(country_code="FR", postal_code="75011", subtotal=5000)
        self.assertEqual(cost, 0)
        self.assertEqual(zone.zone, ZONE_DOMESTIC)

    def test_unsupported_destinations(self):
        with self.assertRaises(ValidationError):
            quote_shipping(country_code="US", postal_code="10001", subtotal=1000)
        with self.assertRaises(ValidationError):
            quote_shipping(country_code="FR", postal_code="96000", subtotal=1000)

    def test_non_home_country_is_international(self):
        zone = resolve_shipping_zone("75011")
        self.assertEqual(shipping_tier_for("DE", zone), TIER_INTERNATIONAL)
