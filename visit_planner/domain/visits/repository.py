"""Visit repository - Database operations for visits and their addresses

Methods only flush; committing or rolling back is up to the caller so that an
address and its visit are always written in one transaction.
"""

from datetime import date
from typing import Optional

from sqlalchemy.orm import Session, joinedload

from ...models_visit import Address, Visit
from ...shared.validators import parse_iso_date

ADDRESS_FIELDS = (
    "postal_code",
    "street",
    "sublocality",
    "city",
    "state",
    "street_number",
    "complement",
)


class EntityValidationError(Exception):
    """Raised when an entity fails its field validation"""

    def __init__(self, errors: dict[str, list[str]]):
        self.errors = errors
        super().__init__(f"Validation failed for fields: {', '.join(sorted(errors))}")


class VisitRepository:
    """Repository for visit database operations"""

    @staticmethod
    def get_visits_by_date(db: Session, day: date) -> list[Visit]:
        """Visits of one calendar day with their address, oldest first"""
        return (
            db.query(Visit)
            .options(joinedload(Visit.address))
            .filter(Visit.date == day)
            .order_by(Visit.created.asc(), Visit.id.asc())
            .all()
        )

    @staticmethod
    def get_visit_by_id(db: Session, visit_id: int) -> Optional[Visit]:
        return (
            db.query(Visit)
            .options(joinedload(Visit.address))
            .filter(Visit.id == visit_id)
            .first()
        )

    @staticmethod
    def add_address(db: Session, data: dict) -> Address:
        """Validate and stage a new address"""
        values = {k: data.get(k) for k in ADDRESS_FIELDS}
        errors = Address.validation_errors(values)
        if errors:
            raise EntityValidationError(errors)

        address = Address(**values)
        db.add(address)
        db.flush()
        return address

    @staticmethod
    def update_address(db: Session, address: Address, data: dict) -> Address:
        values = {k: data.get(k, getattr(address, k)) for k in ADDRESS_FIELDS}
        errors = Address.validation_errors(values)
        if errors:
            raise EntityValidationError(errors)

        for key, value in values.items():
            setattr(address, key, value)
        db.flush()
        return address

    @staticmethod
    def add_visit(db: Session, data: dict) -> Visit:
        """Validate and stage a new visit"""
        errors = Visit.validation_errors(data)
        if errors:
            raise EntityValidationError(errors)

        visit = Visit(
            date=parse_iso_date(data["date"]),
            forms=data["forms"],
            products=data["products"],
            completed=data.get("completed", False),
            address_id=data["address_id"],
        )
        db.add(visit)
        db.flush()
        return visit

    @staticmethod
    def update_visit(db: Session, visit: Visit, data: dict) -> Visit:
        values = {
            "date": data.get("date", visit.date.isoformat()),
            "forms": data.get("forms", visit.forms),
            "products": data.get("products", visit.products),
            "completed": data.get("completed", visit.completed),
            "address_id": visit.address_id,
        }
        errors = Visit.validation_errors(values)
        if errors:
            raise EntityValidationError(errors)

        visit.date = parse_iso_date(values["date"])
        visit.forms = values["forms"]
        visit.products = values["products"]
        visit.completed = values["completed"]
        db.flush()
        return visit

    @staticmethod
    def delete_visit(db: Session, visit: Visit) -> None:
        """Delete a visit together with the address it owns"""
        address = visit.address
        db.delete(visit)
        db.flush()
        if address is not None:
            db.delete(address)
            db.flush()
