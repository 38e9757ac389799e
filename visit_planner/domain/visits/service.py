"""Visit service - Business logic for listing and scheduling visits

Creating or updating a visit is a linear pipeline. Each step either passes or
raises a specific VisitError, and nothing is written before every check that
does not need the database has passed:

1. required fields present
2. postal code present
3. postal code well formed
4. postal code resolvable to a street
5. resolved fields backfill the ones the caller left empty
6. address and visit written in a single transaction
"""

import logging
from typing import Optional, Union

from sqlalchemy.orm import Session

from ...models_visit import Visit
from ...services.cep_service import PostalCodeResolver
from ...shared.validators import DATE_PATTERN, is_blank, parse_iso_date
from .errors import (
    AddressSaveError,
    InternalError,
    InvalidDateFormat,
    InvalidPostalCode,
    MissingDateParameter,
    MissingPostalCode,
    MissingRequiredField,
    PostalCodeNotFound,
    VisitError,
    VisitNotFound,
    VisitSaveError,
)
from .repository import EntityValidationError, VisitRepository
from .schemas import VisitCreate

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("date", "forms", "products", "address")
BACKFILL_FIELDS = ("sublocality", "street", "city", "state")


class VisitService:
    """Service layer for visit business logic"""

    def __init__(self, db: Session, resolver: PostalCodeResolver):
        self.db = db
        self.resolver = resolver
        self.repo = VisitRepository()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def list_visits(self, date_param: Optional[str]) -> list[Visit]:
        """List the visits of one day, ordered by creation time"""
        if is_blank(date_param):
            raise MissingDateParameter()

        if not DATE_PATTERN.match(date_param):
            raise InvalidDateFormat()

        day = parse_iso_date(date_param)
        if day is None:
            raise InvalidDateFormat()

        return self.repo.get_visits_by_date(self.db, day)

    def get_visit(self, visit_id: int) -> Visit:
        visit = self.repo.get_visit_by_id(self.db, visit_id)
        if not visit:
            raise VisitNotFound()
        return visit

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    async def create_visit(self, payload: Union[VisitCreate, dict]) -> Visit:
        """Validate, resolve the address and persist a new visit with its address"""
        data = self._payload_to_dict(payload)
        self._check_required(data)
        address_data = await self._resolve_address(data["address"])

        def write():
            try:
                address = self.repo.add_address(self.db, address_data)
            except EntityValidationError as e:
                raise AddressSaveError(errors=e.errors) from e

            try:
                visit = self.repo.add_visit(
                    self.db,
                    {
                        "date": data["date"],
                        "forms": data["forms"],
                        "products": data["products"],
                        "completed": data["completed"],
                        "address_id": address.id,
                    },
                )
            except EntityValidationError as e:
                raise VisitSaveError(errors=e.errors) from e
            return visit

        visit = self._atomic(write)
        logger.info(f"✅ Visit {visit.id} scheduled for {visit.date} ({visit.duration} min)")
        return self.get_visit(visit.id)

    async def update_visit(self, visit_id: int, payload: Union[VisitCreate, dict]) -> Visit:
        """Run the creation pipeline against an existing visit and its address"""
        visit = self.get_visit(visit_id)
        data = self._payload_to_dict(payload)
        self._check_required(data)
        address_data = await self._resolve_address(data["address"])

        def write():
            try:
                self.repo.update_address(self.db, visit.address, address_data)
            except EntityValidationError as e:
                raise AddressSaveError(errors=e.errors) from e

            try:
                return self.repo.update_visit(
                    self.db,
                    visit,
                    {
                        "date": data["date"],
                        "forms": data["forms"],
                        "products": data["products"],
                        "completed": data["completed"],
                    },
                )
            except EntityValidationError as e:
                raise VisitSaveError(errors=e.errors) from e

        self._atomic(write)
        logger.info(f"✏️ Visit {visit_id} updated")
        return self.get_visit(visit_id)

    def complete_visit(self, visit_id: int) -> Visit:
        """Mark a visit as completed"""
        visit = self.get_visit(visit_id)

        def write():
            return self.repo.update_visit(self.db, visit, {"completed": True})

        self._atomic(write)
        logger.info(f"✅ Visit {visit_id} marked as completed")
        return self.get_visit(visit_id)

    def delete_visit(self, visit_id: int) -> None:
        visit = self.get_visit(visit_id)
        self._atomic(lambda: self.repo.delete_visit(self.db, visit))
        logger.info(f"🗑️ Visit {visit_id} deleted")

    # ------------------------------------------------------------------
    # Pipeline steps
    # ------------------------------------------------------------------

    @staticmethod
    def _payload_to_dict(payload: Union[VisitCreate, dict]) -> dict:
        if isinstance(payload, VisitCreate):
            data = payload.model_dump(exclude_unset=True)
        else:
            data = dict(payload or {})
        if data.get("completed") is None:
            data["completed"] = False
        return data

    @staticmethod
    def _check_required(data: dict) -> None:
        for field in REQUIRED_FIELDS:
            if is_blank(data.get(field)):
                raise MissingRequiredField(field)

    async def _resolve_address(self, address: dict) -> dict:
        """Validate the postal code, resolve it and backfill the missing fields"""
        raw_postal_code = address.get("postal_code")
        if is_blank(raw_postal_code):
            raise MissingPostalCode()

        postal_code = self.resolver.normalize(str(raw_postal_code))
        if not self.resolver.is_valid_format(postal_code):
            raise InvalidPostalCode()

        resolved = await self.resolver.lookup(postal_code)
        if resolved is None or is_blank(resolved.street):
            logger.info(f"Postal code {postal_code} could not be resolved")
            raise PostalCodeNotFound()

        merged = dict(address)
        merged["postal_code"] = postal_code
        backfill = resolved.as_backfill()
        for field in BACKFILL_FIELDS:
            if is_blank(merged.get(field)) and not is_blank(backfill.get(field)):
                merged[field] = backfill[field]
        return merged

    def _atomic(self, write):
        """Run ``write`` in one transaction; any failure rolls every write back"""
        try:
            result = write()
            self.db.commit()
            return result
        except VisitError:
            self.db.rollback()
            raise
        except Exception as e:
            self.db.rollback()
            logger.error(f"❌ Visit transaction failed, rolled back: {e}")
            raise InternalError(str(e)) from e
