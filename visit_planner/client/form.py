"""
Visit form controller

Drives the create/edit visit form: field values, local validation, the
postal code autofill lookup and submission to the API.

Two error maps are never merged: ``errors`` holds one local message per
field, ``api_errors`` holds the messages the server sent back. A field
shows both.
"""

import logging
from datetime import date
from typing import Callable, Optional

import httpx

from ..shared.capacity import can_accommodate, duration_for
from ..shared.validators import (
    is_complete_for_lookup,
    is_valid_postal_code,
    mask_postal_code,
    normalize_postal_code,
    parse_iso_date,
)
from .api import ApiResponse, VisitApiClient
from .models import Visit, VisitFormData
from .store import VisitStore

logger = logging.getLogger(__name__)

POSTAL_CODE_FIELD = "address.postal_code"
POSTAL_CODE_DEPENDENTS = ("sublocality", "street", "street_number")
POSTAL_CODE_ERROR_CODES = {"MISSING_POSTAL_CODE", "INVALID_POSTAL_CODE", "POSTAL_CODE_NOT_FOUND"}

MSG_DATE_REQUIRED = "Date is required"
MSG_DATE_INVALID = "Date is invalid"
MSG_DATE_PAST = "Date cannot be in the past"
MSG_FORMS = "Number of forms must be greater than 0"
MSG_PRODUCTS = "Number of products must be greater than 0"
MSG_POSTAL_REQUIRED = "Postal code is required"
MSG_POSTAL_FORMAT = "Postal code must have 8 digits"
MSG_POSTAL_NOT_FOUND = "Invalid or unknown postal code"
MSG_SUBLOCALITY = "Neighborhood is required"
MSG_STREET = "Street is required"
MSG_STREET_NUMBER = "Number is required"
MSG_CAPACITY = "No time available on this date. Daily limit: 8 hours."


class VisitFormController:
    """State and behavior of the visit modal form"""

    def __init__(
        self,
        store: VisitStore,
        api: VisitApiClient,
        visit_id: Optional[int] = None,
        today: Callable[[], date] = date.today,
    ):
        self.store = store
        self.api = api
        self.today = today
        self.visit_id = visit_id
        self.mode = "edit" if visit_id is not None else "create"

        self.data = VisitFormData(date=self.today().isoformat())
        if visit_id is not None:
            visit = store.get_visit(visit_id)
            if visit is not None:
                self.data = VisitFormData.from_visit(visit)

        self.errors: dict[str, str] = {}
        self.api_errors: dict[str, list[str]] = {}
        self.is_submitting = False
        self.cep_loading = False
        self.notice: Optional[tuple[str, str]] = None  # (message, level)
        self._lookup_generation = 0

    # ------------------------------------------------------------------
    # Field handling
    # ------------------------------------------------------------------

    def set_field(self, field: str, value) -> None:
        """Set ``field`` (``address.*`` for address parts) and clear its errors"""
        if field.startswith("address."):
            setattr(self.data.address, field.split(".", 1)[1], value)
        else:
            setattr(self.data, field, value)

        # The postal code error belongs to the lookup, see change_postal_code
        if field != POSTAL_CODE_FIELD:
            if self.errors.get(field):
                self.errors[field] = ""
            self.api_errors.pop(field, None)

    def _clear_postal_dependents(self) -> None:
        for name in POSTAL_CODE_DEPENDENTS:
            setattr(self.data.address, name, "")

    async def change_postal_code(self, raw: str) -> None:
        """
        Mask the typed postal code and, once complete, look it up through
        the API's ``/postal-codes`` proxy.

        Only the most recent lookup may update the form; results of lookups
        superseded by a later keystroke are dropped. An unreachable API is
        reported like an unknown code.
        """
        masked = mask_postal_code(raw)
        self.set_field(POSTAL_CODE_FIELD, masked)

        self._lookup_generation += 1
        generation = self._lookup_generation

        if not is_complete_for_lookup(masked):
            # Incomplete input keeps whatever error the field already shows
            self._clear_postal_dependents()
            self.cep_loading = False
            return

        self.cep_loading = True
        try:
            response = await self.api.lookup_postal_code(normalize_postal_code(masked))
        except httpx.HTTPError as e:
            logger.warning(f"⚠️ Postal code lookup failed for {masked}: {e}")
            response = None
        finally:
            if generation == self._lookup_generation:
                self.cep_loading = False

        if generation != self._lookup_generation:
            logger.debug(f"Discarding stale postal code lookup for {masked}")
            return

        fields = response.data if response is not None and response.success else None
        if isinstance(fields, dict) and fields.get("street"):
            self.data.address.postal_code = mask_postal_code(fields.get("postal_code") or masked)
            self.data.address.sublocality = fields.get("sublocality") or ""
            self.data.address.street = fields["street"]
            self.errors[POSTAL_CODE_FIELD] = ""
        else:
            self._clear_postal_dependents()
            self.errors[POSTAL_CODE_FIELD] = MSG_POSTAL_NOT_FOUND

    # ------------------------------------------------------------------
    # Derived values
    # ------------------------------------------------------------------

    @property
    def duration(self) -> int:
        return duration_for(self.data.forms, self.data.products)

    @property
    def duration_label(self) -> str:
        minutes = self.duration
        return f"{minutes} minutes ({round(minutes / 60, 2)}h)"

    @property
    def has_errors(self) -> bool:
        return any(self.errors.values())

    def field_errors(self, field: str) -> list[str]:
        """Every message to show under ``field``: local first, then server"""
        messages = [self.errors[field]] if self.errors.get(field) else []
        return messages + list(self.api_errors.get(field, []))

    # ------------------------------------------------------------------
    # Validation and submission
    # ------------------------------------------------------------------

    def validate(self) -> bool:
        """Recompute local errors; True when the form can be submitted"""
        errors = dict(self.errors)
        data = self.data
        address = data.address

        if not data.date:
            errors["date"] = MSG_DATE_REQUIRED
        else:
            day = parse_iso_date(data.date)
            if day is None:
                errors["date"] = MSG_DATE_INVALID
            elif day < self.today():
                errors["date"] = MSG_DATE_PAST
            else:
                errors["date"] = ""

        errors["forms"] = MSG_FORMS if not data.forms or data.forms < 1 else ""
        errors["products"] = MSG_PRODUCTS if not data.products or data.products < 1 else ""

        if not address.postal_code:
            errors[POSTAL_CODE_FIELD] = MSG_POSTAL_REQUIRED
        elif not is_valid_postal_code(normalize_postal_code(address.postal_code)):
            # A lookup failure is more specific than the format message
            if not self.errors.get(POSTAL_CODE_FIELD):
                errors[POSTAL_CODE_FIELD] = MSG_POSTAL_FORMAT

        errors["address.sublocality"] = MSG_SUBLOCALITY if not address.sublocality else ""
        errors["address.street"] = MSG_STREET if not address.street else ""
        errors["address.street_number"] = MSG_STREET_NUMBER if not address.street_number else ""

        day_visits = self.store.visits_by_date(data.date)
        if not can_accommodate(day_visits, self.duration, exclude_id=self.visit_id):
            errors["general"] = MSG_CAPACITY
        else:
            errors["general"] = ""

        self.errors = errors
        return not self.has_errors

    async def submit(self) -> bool:
        """Validate and send the form; True when the visit was saved"""
        if not self.validate():
            self.notice = ("Fix the errors before saving", "error")
            return False

        self.is_submitting = True
        self.api_errors = {}
        try:
            if self.mode == "create":
                response = await self.api.create_visit(self.data)
            else:
                response = await self.api.update_visit(self.visit_id, self.data)
        except httpx.HTTPError as e:
            logger.warning(f"⚠️ Visit submission failed: {e}")
            self.notice = ("Unexpected error. Please try again.", "error")
            return False
        finally:
            self.is_submitting = False

        if response.status_code >= 500:
            self.notice = (response.message or "Unexpected error. Please try again.", "error")
            return False

        if response.success and response.data:
            visit = Visit.model_validate(response.data)
            if self.mode == "create":
                self.store.add_visit(visit)
                self.notice = ("Visit created successfully!", "success")
            else:
                self.store.update_visit(visit)
                self.notice = ("Visit updated successfully!", "success")
            return True

        self.api_errors = self._server_field_errors(response)
        self.notice = (response.message or "Error saving visit", "error")
        return False

    @staticmethod
    def _server_field_errors(response: ApiResponse) -> dict[str, list[str]]:
        """Map the server's error payload onto form field names"""
        result: dict[str, list[str]] = {}
        prefix = "address." if response.error == "ADDRESS_SAVE_ERROR" else ""
        for field, messages in (response.errors or {}).items():
            if isinstance(messages, dict):
                messages = list(messages.values())
            elif not isinstance(messages, list):
                messages = [messages]
            result[f"{prefix}{field}"] = [str(m) for m in messages]

        if response.error in POSTAL_CODE_ERROR_CODES and response.message:
            result.setdefault(POSTAL_CODE_FIELD, []).append(response.message)
        return result
