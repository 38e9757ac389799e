"""
Postal code (CEP) resolution service

Looks addresses up in a ViaCEP-compatible directory:
GET {CEP_API_BASE_URL}/{cep}/json/ returns logradouro/bairro/localidade/uf,
or {"erro": true} when the code does not exist.
"""

import logging
from typing import Optional

import httpx
from pydantic import BaseModel

from ..cache import Cache, cache
from ..config import CEP_API_BASE_URL, CEP_LOOKUP_TIMEOUT
from ..shared.validators import is_valid_postal_code, mask_postal_code, normalize_postal_code

logger = logging.getLogger(__name__)


class AddressFields(BaseModel):
    """Address parts resolved from a postal code"""

    postal_code: str
    street: Optional[str] = None
    sublocality: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None

    def as_backfill(self) -> dict:
        return {
            "street": self.street,
            "sublocality": self.sublocality,
            "city": self.city,
            "state": self.state,
        }


class PostalCodeResolver:
    """Normalizes, validates and resolves postal codes"""

    def __init__(
        self,
        base_url: str = CEP_API_BASE_URL,
        timeout: float = CEP_LOOKUP_TIMEOUT,
        cache_backend: Optional[Cache] = cache,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.cache = cache_backend
        self.transport = transport

    @staticmethod
    def normalize(raw: Optional[str]) -> str:
        return normalize_postal_code(raw)

    @staticmethod
    def is_valid_format(canonical: Optional[str]) -> bool:
        return is_valid_postal_code(canonical)

    @staticmethod
    def apply_mask(raw: Optional[str]) -> str:
        return mask_postal_code(raw)

    async def lookup(self, canonical: str) -> Optional[AddressFields]:
        """
        Resolve a canonical postal code.

        Returns None when the directory has no such code. Directory outages
        are logged separately but also reported as None, so callers only have
        to handle one "not found" signal.
        """
        canonical = self.normalize(canonical)
        if not self.is_valid_format(canonical):
            return None

        if self.cache is not None:
            cached = self.cache.get_postal_code(canonical)
            if cached:
                return AddressFields(**cached)

        url = f"{self.base_url}/{canonical}/json/"
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                resp = await client.get(url, headers={"Accept": "application/json"})
        except httpx.HTTPError as e:
            logger.warning(f"⚠️ Postal code directory unreachable for {canonical}: {e}")
            return None

        if resp.status_code == 400 or resp.status_code == 404:
            logger.info(f"Postal code {canonical} rejected by directory ({resp.status_code})")
            return None
        if resp.status_code >= 400:
            logger.warning(f"⚠️ Postal code directory error {resp.status_code}: {resp.text[:200]}")
            return None

        try:
            raw = resp.json()
        except ValueError:
            logger.warning(f"⚠️ Postal code directory returned invalid JSON for {canonical}")
            return None

        if not isinstance(raw, dict) or raw.get("erro") in (True, "true"):
            logger.info(f"Postal code {canonical} not found")
            return None

        fields = AddressFields(
            postal_code=canonical,
            street=raw.get("logradouro") or None,
            sublocality=raw.get("bairro") or None,
            city=raw.get("localidade") or None,
            state=raw.get("uf") or None,
        )

        if self.cache is not None:
            self.cache.set_postal_code(canonical, fields.model_dump())

        return fields


def get_postal_code_resolver() -> PostalCodeResolver:
    """Dependency injection for PostalCodeResolver"""
    return PostalCodeResolver()
