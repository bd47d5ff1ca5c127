# orders/services/carrier_detection.py

"""
CARRIER DETECTION (best effort)

Infers the shipping carrier from the shape of a tracking number and builds the
public tracking URL. Unrecognized numbers are expected: they degrade to
carrier "other" with no URL and never block shipping.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

CARRIER_COLISSIMO = "colissimo"
CARRIER_LETTRE_SUIVIE = "lettre_suivie"
CARRIER_CHRONOPOST = "chronopost"
CARRIER_MONDIAL_RELAY = "mondial_relay"
CARRIER_DPD = "dpd"
CARRIER_OTHER = "other"

CARRIER_CHOICES = [
    (CARRIER_COLISSIMO, "Colissimo"),
    (CARRIER_LETTRE_SUIVIE, "Lettre Suivie"),
    (CARRIER_CHRONOPOST, "Chronopost"),
    (CARRIER_MONDIAL_RELAY, "Mondial Relay"),
    (CARRIER_DPD, "DPD"),
    (CARRIER_OTHER, "Other carrier"),
]
CARRIER_LABELS = dict(CARRIER_CHOICES)

_LA_POSTE_URL = "https://www.laposte.fr/outils/suivre-vos-envois?code={number}"

TRACKING_URL_TEMPLATES = {
    CARRIER_COLISSIMO: _LA_POSTE_URL,
    CARRIER_LETTRE_SUIVIE: _LA_POSTE_URL,
    CARRIER_CHRONOPOST: "https://www.chronopost.fr/tracking-no-cms/suivi-page?listeNumerosLT={number}",
    CARRIER_MONDIAL_RELAY: "https://www.mondialrelay.fr/suivi-de-colis?numeroExpedition={number}",
    CARRIER_DPD: "https://trace.dpd.fr/fr/trace/{number}",
}

# Order matters: first match wins.
_PATTERNS: list[tuple[str, re.Pattern]] = [
    (CARRIER_CHRONOPOST, re.compile(r"^[A-Z]{2}\d{9}[A-Z]{2}$")),
    (CARRIER_COLISSIMO, re.compile(r"^(8N|9V|6A|6M|5K|5W|7Q|8P)\d{11}$")),
    (CARRIER_LETTRE_SUIVIE, re.compile(r"^(1H|1K|1L|2L|3C)\d{11}$")),
    (CARRIER_MONDIAL_RELAY, re.compile(r"^(\d{8}|\d{10}|\d{12})$")),
    (CARRIER_DPD, re.compile(r"^\d{14}$")),
]

_SEPARATORS = re.compile(r"[\s.\-]+")


@dataclass(frozen=True)
class CarrierDetectionResult:
    carrier: str
    url: Optional[str]
    label: str


def normalize_tracking_number(tracking_number) -> str:
    return _SEPARATORS.sub("", str(tracking_number or "")).strip().upper()


def tracking_url_for(carrier: str, tracking_number) -> Optional[str]:
    template = TRACKING_URL_TEMPLATES.get(carrier)
    number = str(tracking_number or "").strip()
    if not template or not number:
        return None
    return template.format(number=number)


def detect_carrier(tracking_number) -> CarrierDetectionResult:
    number = normalize_tracking_number(tracking_number)

    if number:
        for carrier, pattern in _PATTERNS:
            if pattern.match(number):
                return CarrierDetectionResult(
                    carrier=carrier,
                    url=tracking_url_for(carrier, number),
                    label=CARRIER_LABELS[carrier],
                )

    return CarrierDetectionResult(
        carrier=CARRIER_OTHER,
        url=None,
        label=CARRIER_LABELS[CARRIER_OTHER],
    )
