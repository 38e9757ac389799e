"""Postal code (CEP) lookup proxy.

Lets the visit form autofill street and neighborhood without calling the
directory from the browser.

Why proxy through backend?
- Avoid CORS issues in the browser
- Apply rate limits to protect the upstream directory
- Share the Redis cache with the visit workflow
"""

import logging

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from ..config import CEP_LOOKUP_RPM
from ..domain.visits.errors import InvalidPostalCode, PostalCodeNotFound
from ..rate_limiter import create_rate_limiter
from ..services.cep_service import AddressFields, PostalCodeResolver, get_postal_code_resolver

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/postal-codes", tags=["Postal Codes"])

rate_limit_lookup = create_rate_limiter(
    limit=CEP_LOOKUP_RPM,
    window_seconds=60,
    key_prefix="cep_lookup",
    use_ip=True,
)


class PostalCodeResponse(BaseModel):
    success: bool = True
    data: AddressFields


@router.get("/{postal_code}", response_model=PostalCodeResponse)
async def lookup_postal_code(
    postal_code: str,
    resolver: PostalCodeResolver = Depends(get_postal_code_resolver),
    _: None = Depends(rate_limit_lookup),
):
    canonical = resolver.normalize(postal_code)
    if not resolver.is_valid_format(canonical):
        raise InvalidPostalCode()

    fields = await resolver.lookup(canonical)
    if fields is None or not fields.street:
        raise PostalCodeNotFound()

    return PostalCodeResponse(data=fields)
