"""Client-side models - visit snapshots held by the store and the form data"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from ..shared.capacity import duration_for


class VisitFilter(str, Enum):
    ALL = "all"
    COMPLETED = "completed"
    PENDING = "pending"


class Address(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    id: Optional[int] = None
    postal_code: str = ""
    street: Optional[str] = None
    sublocality: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    street_number: Optional[str] = None
    complement: Optional[str] = None


class Visit(BaseModel):
    """
    A visit as the client knows it.

    Duration is not stored: it is recomputed from forms and products on every
    access, so a server-provided ``duration`` is ignored on the way in.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: int
    date: str
    forms: int
    products: int
    completed: bool = False
    address: Address = Field(default_factory=Address)

    @property
    def duration(self) -> int:
        return duration_for(self.forms, self.products)


class DailyGroup(BaseModel):
    """Visits of one day plus their aggregates"""

    model_config = ConfigDict(frozen=True)

    visits: tuple[Visit, ...] = ()
    total_duration: int = 0
    total_count: int = 0
    completed_count: int = 0
    completion_rate: int = 0


class LoadingState(BaseModel):
    model_config = ConfigDict(frozen=True)

    is_loading: bool = True
    error: Optional[str] = None


class VisitsState(BaseModel):
    """Immutable snapshot of the visit store"""

    model_config = ConfigDict(frozen=True)

    visits: tuple[Visit, ...] = ()
    grouped: dict[str, DailyGroup] = Field(default_factory=dict)
    loading: LoadingState = Field(default_factory=LoadingState)
    filter: VisitFilter = VisitFilter.ALL


class AddressFormData(BaseModel):
    postal_code: str = ""
    sublocality: str = ""
    street: str = ""
    street_number: str = ""
    complement: str = ""


class VisitFormData(BaseModel):
    """Editable values of the visit form"""

    date: str = ""
    forms: int = 1
    products: int = 1
    completed: bool = False
    address: AddressFormData = Field(default_factory=AddressFormData)

    @classmethod
    def from_visit(cls, visit: Visit) -> "VisitFormData":
        return cls(
            date=visit.date,
            forms=visit.forms,
            products=visit.products,
            completed=visit.completed,
            address=AddressFormData(
                postal_code=visit.address.postal_code or "",
                sublocality=visit.address.sublocality or "",
                street=visit.address.street or "",
                street_number=visit.address.street_number or "",
                complement=visit.address.complement or "",
            ),
        )

    def to_payload(self) -> dict:
        """Request body for the create/update endpoints"""
        return self.model_dump()
