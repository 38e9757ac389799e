"""Visit domain schemas - Pydantic models for requests and responses"""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, field_validator


class AddressInput(BaseModel):
    """Address block of a create/update request. Only postal_code is mandatory."""

    postal_code: Optional[str] = None
    street: Optional[str] = None
    sublocality: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    street_number: Optional[str] = None
    complement: Optional[str] = None

    @field_validator("postal_code", "street_number", mode="before")
    @classmethod
    def coerce_numbers(cls, v):
        # Numeric inputs such as 1310100 or 42 arrive from some clients
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v


class VisitCreate(BaseModel):
    """
    Schema for creating or updating a visit.

    Presence of the required fields is checked by the workflow, not here, so
    a missing field is reported as MISSING_REQUIRED_FIELD instead of a 422.
    """

    date: Optional[str] = None
    forms: Optional[int] = None
    products: Optional[int] = None
    completed: Optional[bool] = None
    address: Optional[AddressInput] = None


class AddressResponse(BaseModel):
    id: int
    postal_code: str
    street: str
    sublocality: Optional[str]
    city: Optional[str]
    state: Optional[str]
    street_number: Optional[str]
    complement: Optional[str]

    class Config:
        from_attributes = True


class VisitResponse(BaseModel):
    id: int
    date: date
    forms: int
    products: int
    completed: bool
    duration: int
    address_id: int
    address: AddressResponse
    created: Optional[datetime] = None
    modified: Optional[datetime] = None

    class Config:
        from_attributes = True


class VisitListResponse(BaseModel):
    success: bool = True
    data: list[VisitResponse]
    count: int


class VisitEnvelope(BaseModel):
    success: bool = True
    message: Optional[str] = None
    data: VisitResponse


class MessageResponse(BaseModel):
    success: bool = True
    message: str
