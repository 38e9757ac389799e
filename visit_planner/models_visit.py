"""
Visit scheduling models
"""

from sqlalchemy import Boolean, Column, Date, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base
from .shared.capacity import duration_for
from .shared.validators import is_blank, is_valid_postal_code, parse_iso_date

ADDRESS_TEXT_LIMITS = {
    "street": 255,
    "sublocality": 255,
    "city": 255,
    "street_number": 20,
    "complement": 255,
}
# Only the street is mandatory; the rest is backfilled from the postal code when possible
ADDRESS_REQUIRED_FIELDS = ("street",)


class Address(Base):
    """Address of a visit. Each address belongs to exactly one visit."""

    __tablename__ = "addresses"

    id = Column(Integer, primary_key=True, index=True)
    postal_code = Column(String(8), nullable=False, index=True)
    street = Column(String(255), nullable=False)
    sublocality = Column(String(255), nullable=True)  # Neighborhood (bairro)
    city = Column(String(255), nullable=True)
    state = Column(String(2), nullable=True)  # UF
    street_number = Column(String(20), nullable=True)
    complement = Column(String(255), nullable=True)

    created = Column(DateTime, server_default=func.now())
    modified = Column(DateTime, server_default=func.now(), onupdate=func.now())

    visit = relationship("Visit", back_populates="address", uselist=False)

    @staticmethod
    def validation_errors(data: dict) -> dict[str, list[str]]:
        """Field-level errors for address ``data``; empty when it can be saved"""
        errors: dict[str, list[str]] = {}

        if is_blank(data.get("postal_code")):
            errors["postal_code"] = ["This field is required"]
        elif not is_valid_postal_code(str(data["postal_code"])):
            errors["postal_code"] = ["Postal code must have exactly 8 digits"]

        for field in ADDRESS_REQUIRED_FIELDS:
            if is_blank(data.get(field)):
                errors.setdefault(field, []).append("This field is required")

        state = data.get("state")
        if state and len(str(state)) > 2:
            errors.setdefault("state", []).append("State must be a 2-letter code")

        for field, limit in ADDRESS_TEXT_LIMITS.items():
            value = data.get(field)
            if value and len(str(value)) > limit:
                errors.setdefault(field, []).append(f"Must be at most {limit} characters")

        return errors


class Visit(Base):
    """A scheduled visit on a calendar day"""

    __tablename__ = "visits"

    id = Column(Integer, primary_key=True, index=True)
    date = Column(Date, nullable=False, index=True)
    forms = Column(Integer, nullable=False)
    products = Column(Integer, nullable=False)
    completed = Column(Boolean, default=False, nullable=False)

    address_id = Column(Integer, ForeignKey("addresses.id"), nullable=False, unique=True)

    created = Column(DateTime, server_default=func.now())
    modified = Column(DateTime, server_default=func.now(), onupdate=func.now())

    address = relationship("Address", back_populates="visit")

    @property
    def duration(self) -> int:
        """Estimated duration in minutes, derived from forms and products"""
        return duration_for(self.forms, self.products)

    @staticmethod
    def validation_errors(data: dict) -> dict[str, list[str]]:
        """Field-level errors for visit ``data``; empty when it can be saved"""
        errors: dict[str, list[str]] = {}

        if is_blank(data.get("date")):
            errors["date"] = ["This field is required"]
        elif parse_iso_date(data["date"]) is None:
            errors["date"] = ["Date must be a valid date in YYYY-MM-DD format"]

        for field in ("forms", "products"):
            value = data.get(field)
            if value is None:
                errors[field] = ["This field is required"]
            elif isinstance(value, bool) or not isinstance(value, int):
                errors[field] = ["Must be an integer"]
            elif value < 1:
                errors[field] = ["Must be greater than 0"]

        if not isinstance(data.get("completed", False), bool):
            errors["completed"] = ["Must be a boolean"]

        if data.get("address_id") is None:
            errors["address_id"] = ["This field is required"]

        return errors
