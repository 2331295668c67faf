"""Normalization of Nominatim ``extratags`` into contact, payment and facility data."""

from __future__ import annotations

from typing import Any, Callable, Dict, Mapping, Optional

from .models import Facilities, PaymentMethods

CONTACT_FIELDS = ("phone", "website", "email", "instagram")

# https://wiki.openstreetmap.org/wiki/Key:payment
PAYMENT_TAGS: Dict[str, str] = {
    "payment:cash": "cash",
    "payment:credit_cards": "credit_cards",
    "payment:debit_cards": "debit_cards",
    "payment:contactless": "contactless",
    "payment:maestro": "maestro",
    "payment:visa": "visa",
    "payment:mastercard": "mastercard",
    "payment:american_express": "american_express",
    "payment:cards": "credit_cards",
    "payment:electronic_purses": "contactless",
    "payment:nfc": "contactless",
    "payment:apple_pay": "mobile_payment",
    "payment:google_pay": "mobile_payment",
}


def is_true(value: Any) -> bool:
    """Return whether an OSM tag value means "yes"."""

    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in {"yes", "true"}
    return False


def _has_wifi(extratags: Mapping[str, Any]) -> bool:
    return extratags.get("internet_access") == "wlan" or extratags.get("internet_access:fee") == "no"


def _is_organic(extratags: Mapping[str, Any]) -> bool:
    return extratags.get("organic") in {"yes", "only"}


def _flag(tag: str) -> Callable[[Mapping[str, Any]], bool]:
    return lambda extratags: is_true(extratags.get(tag))


FACILITY_RULES: Dict[str, Callable[[Mapping[str, Any]], bool]] = {
    "toilets": _flag("toilets"),
    "wheelchair": _flag("wheelchair"),
    "wifi": _has_wifi,
    "organic": _is_organic,
    "outdoor_seating": _flag("outdoor_seating"),
    "takeaway": _flag("takeaway"),
}


def extract_contact_field(extratags: Mapping[str, Any], field: str) -> Optional[str]:
    """Return ``contact:<field>`` if set, else ``<field>``, else ``None``."""

    # https://wiki.openstreetmap.org/wiki/Key:contact
    for key in (f"contact:{field}", field):
        value = extratags.get(key)
        if isinstance(value, str) and value.strip():
            return value
    return None


def extract_contact(extratags: Mapping[str, Any]) -> Dict[str, Optional[str]]:
    return {name: extract_contact_field(extratags, name) for name in CONTACT_FIELDS}


def extract_payment_methods(extratags: Mapping[str, Any]) -> Optional[PaymentMethods]:
    """Collapse ``payment:*`` tags onto :class:`PaymentMethods`; ``None`` if nothing is accepted."""

    payments = PaymentMethods()
    for osm_key, flag in PAYMENT_TAGS.items():
        if osm_key in extratags and is_true(extratags[osm_key]):
            setattr(payments, flag, True)
    return payments if payments else None


def extract_facilities(extratags: Mapping[str, Any]) -> Optional[Facilities]:
    """Build :class:`Facilities` from amenity tags; ``None`` if no facility applies."""

    facilities = Facilities()
    for flag, rule in FACILITY_RULES.items():
        if rule(extratags):
            setattr(facilities, flag, True)
    return facilities if facilities else None
