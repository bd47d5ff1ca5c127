# orders/services/shipping.py

"""
SHIPPING RATES

Tier selection:
- FR mainland            -> DOMESTIC
- FR Corsica             -> ISLAND
- FR overseas + EU/other -> INTERNATIONAL

Orders whose subtotal reaches FREE_SHIPPING_THRESHOLD ship for free.
Amounts come from settings.SHIPPING_RATES (minor units).
"""

from __future__ import annotations

from django.conf import settings
from django.core.exceptions import ValidationError

from orders.services.shipping_zone import (
    ZONE_DOMESTIC,
    ZONE_ISLAND,
    ZONE_UNKNOWN,
    ShippingZoneResult,
    resolve_shipping_zone,
)

TIER_DOMESTIC = "DOMESTIC"
TIER_ISLAND = "ISLAND"
TIER_INTERNATIONAL = "INTERNATIONAL"

HOME_COUNTRY = "FR"

ALLOWED_SHIPPING_COUNTRIES = frozenset(
    {
        "FR", "MC", "BE", "LU", "DE", "NL", "AT", "IT", "ES", "PT", "IE",
        "DK", "SE", "FI", "PL", "CZ", "SK", "SI", "HU", "HR", "RO", "BG",
        "GR", "CY", "MT", "EE", "LV", "LT",
    }
)


def is_country_supported(country_code) -> bool:
    return str(country_code or "").strip().upper() in ALLOWED_SHIPPING_COUNTRIES


def shipping_tier_for(country_code, zone: ShippingZoneResult) -> str:
    country = str(country_code or "").strip().upper()
    if country != HOME_COUNTRY:
        return TIER_INTERNATIONAL
    if zone.zone == ZONE_DOMESTIC:
        return TIER_DOMESTIC
    if zone.zone == ZONE_ISLAND:
        return TIER_ISLAND
    return TIER_INTERNATIONAL


def quote_shipping(*, country_code, postal_code, subtotal: int) -> tuple[int, ShippingZoneResult]:
    """
    Return (shipping_cost, zone) for a destination and order subtotal.
    Raises ValidationError for unsupported destinations.
    """
    country = str(country_code or "").strip().upper()
    if not is_country_supported(country):
        raise ValidationError(f"Shipping is not available to {country or 'this country'}")

    zone = resolve_shipping_zone(postal_code)
    if country == HOME_COUNTRY and zone.zone == ZONE_UNKNOWN:
        raise ValidationError(f"Invalid postal code: {postal_code}")

    threshold = int(getattr(settings, "FREE_SHIPPING_THRESHOLD", 0) or 0)
    if threshold and int(subtotal) >= threshold:
        return 0, zone

    tier = shipping_tier_for(country, zone)
    return int(settings.SHIPPING_RATES[tier]), zone
