"""Ordered geocoding query strategies.

Each strategy is a pure function building the search parameters for one
attempt, or ``None`` when the address lacks the fields that attempt needs.
The resolver walks ``DEFAULT_STRATEGIES`` in order and stops at the first
attempt yielding usable coordinates.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional

from ...config import settings
from ...models.domain import Address

QueryParams = dict[str, str]


def clean_street(street: str) -> str:
    """Strip range/parity annotations and parenthetical aliases from a street name.

    ``"Rua Exemplo - de 1000 a 2000 - lado par"`` becomes ``"Rua Exemplo"``.
    Only the spaced separator is used so hyphenated names survive.
    """
    cleaned = street.split(" - ")[0]
    cleaned = cleaned.split("(")[0]
    return " ".join(cleaned.split())


def clean_text(value: str) -> str:
    return " ".join(value.split("(")[0].split())


def structured_street(address: Address) -> Optional[QueryParams]:
    street = clean_street(address.street)
    if not street or not address.locality:
        return None
    return {
        "street": street,
        "city": clean_text(address.locality),
        "state": address.region,
        "country": settings.geocoder_country,
    }


def postal_code_only(address: Address) -> Optional[QueryParams]:
    if not address.postal_code:
        return None
    return {"postalcode": address.postal_code, "country": settings.geocoder_country}


def freeform_street(address: Address) -> Optional[QueryParams]:
    street = clean_street(address.street)
    if not street:
        return None
    parts = [street, clean_text(address.locality), address.region, settings.geocoder_country]
    return {"q": ", ".join(part for part in parts if part)}


def freeform_district(address: Address) -> Optional[QueryParams]:
    district = clean_text(address.district)
    if not district:
        return None
    parts = [district, clean_text(address.locality), address.region, settings.geocoder_country]
    return {"q": ", ".join(part for part in parts if part)}


@dataclass(slots=True, frozen=True)
class QueryStrategy:
    name: str
    build: Callable[[Address], Optional[QueryParams]]


DEFAULT_STRATEGIES: tuple[QueryStrategy, ...] = (
    QueryStrategy("structured_street", structured_street),
    QueryStrategy("postal_code", postal_code_only),
    QueryStrategy("freeform_street", freeform_street),
    QueryStrategy("freeform_district", freeform_district),
)
