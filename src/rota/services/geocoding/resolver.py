"""Postal code resolution and cascading geocoding."""

from __future__ import annotations

import logging
import re
from typing import Any, Iterable, Sequence

from ...errors import InvalidFormat, NotFound, ProviderUnavailable
from ...models.domain import Address, Coordinates
from .clients import AddressLookupClient, CoordinateSearchClient
from .strategies import DEFAULT_STRATEGIES, QueryStrategy

logger = logging.getLogger(__name__)

POSTAL_CODE_LENGTH = 8
_NON_DIGITS = re.compile(r"\D")
_CODE_SEPARATORS = re.compile(r"[\n,;]+")


def normalize_postal_code(raw: str) -> str:
    """Reduce free-form text to its digits; exactly 8 are required."""
    digits = _NON_DIGITS.sub("", raw or "")
    if len(digits) != POSTAL_CODE_LENGTH:
        raise InvalidFormat(raw)
    return digits


def split_codes(text: str) -> list[str]:
    """Split pasted input on newlines, commas and semicolons."""
    return [part.strip() for part in _CODE_SEPARATORS.split(text or "") if part.strip()]


def parse_coordinates(candidate: dict[str, Any]) -> Coordinates | None:
    try:
        latitude = float(candidate.get("lat"))
        longitude = float(candidate.get("lon"))
    except (TypeError, ValueError):
        return None
    coordinates = Coordinates(latitude=latitude, longitude=longitude)
    return coordinates if coordinates.is_valid else None


class GeocodingResolver:
    """Resolves raw postal codes to addresses and addresses to coordinates."""

    def __init__(
        self,
        address_client: AddressLookupClient,
        search_client: CoordinateSearchClient,
        strategies: Sequence[QueryStrategy] = DEFAULT_STRATEGIES,
    ) -> None:
        self.address_client = address_client
        self.search_client = search_client
        self.strategies = tuple(strategies)

    def resolve(self, raw_code: str) -> Address:
        """Return the address for ``raw_code``.

        Raises ``InvalidFormat`` before any network call when the input does
        not reduce to 8 digits, and ``NotFound`` when the provider has no
        answer or cannot be reached.
        """
        code = normalize_postal_code(raw_code)
        try:
            return self.address_client.lookup(code)
        except ProviderUnavailable as exc:
            logger.warning(f"Address lookup failed for {code}: {exc}")
            raise NotFound(f"Postal code {code} could not be resolved.") from exc

    def geocode(self, address: Address) -> Coordinates:
        """Run the strategy cascade, stopping at the first plausible result."""
        for strategy in self.strategies:
            params = strategy.build(address)
            if params is None:
                logger.debug(f"Skipping strategy {strategy.name} for {address.postal_code}: missing fields")
                continue
            try:
                candidates = self.search_client.search(params)
            except ProviderUnavailable as exc:
                logger.warning(f"Geocoding strategy {strategy.name} failed for {address.postal_code}: {exc}")
                continue
            coordinates = _first_plausible(candidates)
            if coordinates is not None:
                logger.info(
                    f"Geocoded {address.postal_code} via {strategy.name} "
                    f"({coordinates.latitude:.6f}, {coordinates.longitude:.6f})"
                )
                return coordinates
        raise NotFound(f"No coordinates found for {address.postal_code}.")

    def resolve_and_geocode(self, raw_code: str) -> Address:
        """Resolve a code and attach coordinates when the cascade finds any."""
        address = self.resolve(raw_code)
        try:
            return address.with_coordinates(self.geocode(address))
        except NotFound:
            logger.warning(f"Keeping {address.postal_code} without coordinates")
            return address


def _first_plausible(candidates: Iterable[dict[str, Any]]) -> Coordinates | None:
    for candidate in candidates:
        coordinates = parse_coordinates(candidate)
        if coordinates is not None:
            return coordinates
    return None
