# orders/services/shipping_zone.py

"""
SHIPPING ZONE RESOLVER

Maps a French postal code to a delivery zone and department code.

- "20xxx"  -> island (Corsica): 2A below 20200, 2B from 20200
- "97xxx"  -> overseas department, 3-digit department code
- "98xxx"  -> overseas territory, 3-digit department code
- otherwise the 2-digit prefix must be a known mainland department

Used to select a shipping-rate tier, never for carrier routing.
"""

from __future__ import annotations

from dataclasses import dataclass

ZONE_DOMESTIC = "domestic"
ZONE_ISLAND = "island"
ZONE_OVERSEAS_DEPARTMENT = "overseas-department"
ZONE_OVERSEAS_TERRITORY = "overseas-territory"
ZONE_UNKNOWN = "unknown"

ZONE_CHOICES = [
    (ZONE_DOMESTIC, "Mainland"),
    (ZONE_ISLAND, "Corsica"),
    (ZONE_OVERSEAS_DEPARTMENT, "Overseas department"),
    (ZONE_OVERSEAS_TERRITORY, "Overseas territory"),
    (ZONE_UNKNOWN, "Unknown"),
]

# 01-19, 21-95 plus the two Corsican codes.
DOMESTIC_DEPARTMENTS = frozenset(
    [f"{n:02d}" for n in range(1, 20)]
    + [f"{n:02d}" for n in range(21, 96)]
    + ["2A", "2B"]
)

_CORSICA_SPLIT = 20200


@dataclass(frozen=True)
class ShippingZoneResult:
    zone: str
    department: str


def resolve_shipping_zone(postal_code) -> ShippingZoneResult:
    code = str(postal_code or "").strip().upper()
    department = code[:2]

    if department == "20":
        if code.isdigit() and int(code) < _CORSICA_SPLIT:
            return ShippingZoneResult(ZONE_ISLAND, "2A")
        return ShippingZoneResult(ZONE_ISLAND, "2B")

    if department == "97":
        return ShippingZoneResult(ZONE_OVERSEAS_DEPARTMENT, code[:3])

    if department == "98":
        return ShippingZoneResult(ZONE_OVERSEAS_TERRITORY, code[:3])

    if department in DOMESTIC_DEPARTMENTS:
        return ShippingZoneResult(ZONE_DOMESTIC, department)

    return ShippingZoneResult(ZONE_UNKNOWN, department)
