from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Protocol

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError

DEFAULT_MODEL = "gemini-2.5-flash"
GEMINI_ENDPOINT = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"
API_KEY_ENV_VARS = ("GEMINI_API_KEY", "API_KEY")

LOGGER = logging.getLogger("imbarch.normalizer")


class NormalizationError(Exception):
    """Raised when an address could not be standardized."""


class StandardizedAddress(BaseModel):
    """USPS-formatted address as returned by a normalizer."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    street: str
    city: str
    state: str
    zip: str
    plus4: str
    delivery_point: str = Field(alias="deliveryPoint")


class AddressNormalizer(Protocol):
    """Minimal interface for an address normalizer."""

    name: str

    async def normalize(self, raw_address: str) -> StandardizedAddress:
        ...


# Gemini response schema (OpenAPI subset accepted by generateContent).
ADDRESS_SCHEMA: dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "street": {"type": "STRING", "description": "Standardized street address line 1"},
        "city": {"type": "STRING", "description": "City name"},
        "state": {"type": "STRING", "description": "2-letter state abbreviation"},
        "zip": {"type": "STRING", "description": "5-digit ZIP code"},
        "plus4": {
            "type": "STRING",
            "description": "The specific 4-digit add-on code. Calculate based on address range.",
        },
        "deliveryPoint": {
            "type": "STRING",
            "description": "2-digit delivery point code (e.g. last 2 digits of street num)",
        },
    },
    "required": ["street", "city", "state", "zip", "plus4", "deliveryPoint"],
}

PROMPT_TEMPLATE = """You are an expert US Address Standardization system.

Task:
1. Standardize the input address to official USPS format (Caps, Abbreviations).
2. ZIP+4 LOOKUP: If the input is missing the +4 extension, you MUST identify the correct 4-digit add-on for the specific street address. Do not default to "0000" unless the address is strictly invalid.
3. DELIVERY POINT: Calculate the 2-digit Delivery Point Code (typically the last two digits of the primary street number).

Input Address: "{address}"
"""


def resolve_api_key(api_key: str | None = None) -> str | None:
    """Return the explicit key, or the first one found in the environment."""
    if api_key:
        return api_key
    for name in API_KEY_ENV_VARS:
        value = os.environ.get(name)
        if value:
            return value
    return None


def extract_text(response: dict[str, Any]) -> str:
    """
    Pull the first candidate's text out of a generateContent response.

    Raises:
        NormalizationError: If the response carries no text
    """
    try:
        candidates = response.get("candidates") or []
        if not candidates:
            raise NormalizationError("No response text")
        parts = (candidates[0].get("content") or {}).get("parts") or []
        text = "".join(p.get("text", "") for p in parts if isinstance(p, dict))
    except (AttributeError, TypeError, KeyError) as e:
        raise NormalizationError(f"Unexpected Gemini response shape: {e}") from e
    if not text.strip():
        raise NormalizationError("No response text")
    return text


@dataclass
class GeminiNormalizer:
    """Gemini-backed address standardization over the REST API.

    Sends one generateContent request per address with a JSON response
    schema and temperature 0. Every failure (transport, HTTP status, empty
    or malformed response) surfaces as NormalizationError.

    Usage:
        async with GeminiNormalizer(api_key="...") as normalizer:
            address = await normalizer.normalize("1600 pennsylvania ave washington dc")
    """

    api_key: str | None = None
    model: str = DEFAULT_MODEL
    timeout: float = 60.0
    temperature: float = 0.0
    transport: httpx.AsyncBaseTransport | None = None
    name: str = "gemini"
    _client: httpx.AsyncClient | None = field(default=None, init=False, repr=False)

    def __post_init__(self) -> None:
        self.api_key = resolve_api_key(self.api_key)
        if not self.api_key:
            raise NormalizationError(
                "No Gemini API key. Pass --api-key or set GEMINI_API_KEY."
            )

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout, transport=self.transport)
        return self._client

    def build_request(self, raw_address: str) -> dict[str, Any]:
        """Build the generateContent request body for one address."""
        return {
            "contents": [
                {"role": "user", "parts": [{"text": PROMPT_TEMPLATE.format(address=raw_address)}]}
            ],
            "generationConfig": {
                "responseMimeType": "application/json",
                "responseSchema": ADDRESS_SCHEMA,
                "temperature": self.temperature,
            },
        }

    async def normalize(self, raw_address: str) -> StandardizedAddress:
        """Standardize one raw address string."""
        url = GEMINI_ENDPOINT.format(model=self.model)
        headers = {"x-goog-api-key": self.api_key or ""}

        try:
            resp = await self.client.post(url, json=self.build_request(raw_address), headers=headers)
            resp.raise_for_status()
            body = resp.json()
        except httpx.HTTPError as e:
            raise NormalizationError(f"Gemini request failed: {e}") from e
        except json.JSONDecodeError as e:
            raise NormalizationError(f"Gemini returned invalid JSON: {e}") from e

        text = extract_text(body)
        try:
            address = StandardizedAddress.model_validate_json(text)
        except ValidationError as e:
            raise NormalizationError(f"Gemini response did not match schema: {e}") from e

        LOGGER.debug(
            "address_normalized",
            extra={"model": self.model, "zip": address.zip, "plus4": address.plus4},
        )
        return address

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> GeminiNormalizer:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()
