"""HTTP clients for the address lookup and coordinate search providers."""

from __future__ import annotations

import logging
from typing import Any, Mapping

from ...config import settings
from ...errors import NotFound, ProviderUnavailable
from ...models.domain import Address
from ..transport import ProviderTransport, RequestGate

logger = logging.getLogger(__name__)


class AddressLookupClient:
    """ViaCEP-compatible lookup: 8-digit postal code -> street/district/locality/region."""

    def __init__(self, gate: RequestGate, base_url: str | None = None, transport: ProviderTransport | None = None) -> None:
        self.base_url = base_url or settings.address_lookup_base_url
        self.transport = transport or ProviderTransport("address-lookup", "address", gate)

    def lookup(self, code: str) -> Address:
        """Return the address for a normalized code or raise ``NotFound``."""
        data = self.transport.get_json(f"{self.base_url}/ws/{code}/json/")
        if not isinstance(data, dict):
            raise ProviderUnavailable("address-lookup", "unexpected payload shape")
        if str(data.get("erro", "")).lower() == "true":
            raise NotFound(f"Postal code {code} not found.")
        return Address(
            postal_code=str(data.get("cep") or code),
            street=str(data.get("logradouro") or ""),
            district=str(data.get("bairro") or ""),
            locality=str(data.get("localidade") or ""),
            region=str(data.get("uf") or ""),
        )


class CoordinateSearchClient:
    """Nominatim-compatible search returning raw ``{lat, lon}`` candidates."""

    def __init__(
        self,
        gate: RequestGate,
        base_url: str | None = None,
        user_agent: str | None = None,
        language: str | None = None,
        transport: ProviderTransport | None = None,
    ) -> None:
        self.base_url = base_url or settings.geocoder_base_url
        headers = {
            "User-Agent": user_agent or settings.geocoder_user_agent,
            "Accept-Language": language or settings.geocoder_language,
        }
        self.transport = transport or ProviderTransport("geocoder", "geocoder", gate, headers=headers)

    def search(self, params: Mapping[str, str]) -> list[dict[str, Any]]:
        query = {"format": "json", "limit": str(settings.geocoder_result_limit), **params}
        data = self.transport.get_json(f"{self.base_url}/search", params=query)
        if not isinstance(data, list):
            raise ProviderUnavailable("geocoder", "search response is not a list")
        return [item for item in data if isinstance(item, dict)]
