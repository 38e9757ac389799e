import asyncio
from datetime import date
from pathlib import Path

import httpx
import pytest

from visit_planner.client.api import ApiResponse, VisitApiClient
from visit_planner.client.form import (
    MSG_CAPACITY,
    MSG_DATE_PAST,
    MSG_POSTAL_FORMAT,
    MSG_POSTAL_NOT_FOUND,
    VisitFormController,
)
from visit_planner.client.models import Address, Visit
from visit_planner.client.storage import LocalStorage
from visit_planner.client.store import VisitStore

TODAY = date(2025, 6, 10)

PAULISTA = {
    "postal_code": "01310100",
    "street": "Avenida Paulista",
    "sublocality": "Bela Vista",
    "city": "São Paulo",
    "state": "SP",
}


class NullStorage(LocalStorage):
    def load_visits(self):
        return []

    def save_visits(self, visits) -> None:
        pass


class FakeApi(VisitApiClient):
    """
    Visit API double.

    Postal code lookups travel through a mock transport that answers like the
    /postal-codes proxy, optionally waiting on a per-code gate. Saves return
    a scripted response or raise a scripted error.
    """

    def __init__(self, response=None, error: Exception = None):
        super().__init__(base_url="http://api.test", transport=httpx.MockTransport(self._handle))
        self.response = response
        self.error = error
        self.known = {"01310100": PAULISTA}
        self.gates: dict[str, asyncio.Event] = {}
        self.lookup_error: Exception = None
        self.lookups: list[str] = []
        self.sent = []

    async def _handle(self, request: httpx.Request) -> httpx.Response:
        assert request.url.path.startswith("/postal-codes/")
        postal_code = request.url.path.rsplit("/", 1)[-1]
        self.lookups.append(postal_code)

        gate = self.gates.get(postal_code)
        if gate is not None:
            await gate.wait()
        if self.lookup_error is not None:
            raise self.lookup_error

        fields = self.known.get(postal_code)
        if fields is None:
            return httpx.Response(
                404,
                json={
                    "success": False,
                    "message": "Postal code not found",
                    "error": "POSTAL_CODE_NOT_FOUND",
                    "errors": {},
                },
            )
        return httpx.Response(200, json={"success": True, "data": fields})

    async def create_visit(self, form):
        self.sent.append(("create", form.to_payload()))
        if self.error:
            raise self.error
        return self.response

    async def update_visit(self, visit_id, form):
        self.sent.append(("update", visit_id, form.to_payload()))
        if self.error:
            raise self.error
        return self.response


def _visit(visit_id: int, forms: int = 2, products: int = 3, day: str = "2025-06-10") -> Visit:
    return Visit(
        id=visit_id,
        date=day,
        forms=forms,
        products=products,
        address=Address(postal_code="01310-100", sublocality="Bela Vista", street="Avenida Paulista", street_number="10"),
    )


@pytest.fixture
def store(tmp_path: Path) -> VisitStore:
    store = VisitStore(NullStorage(tmp_path / "s.json"))
    asyncio.run(store.load())
    return store


@pytest.fixture
def api() -> FakeApi:
    return FakeApi()


def _form(store, api, visit_id=None) -> VisitFormController:
    return VisitFormController(store, api, visit_id=visit_id, today=lambda: TODAY)


def _fill(form: VisitFormController) -> None:
    asyncio.run(form.change_postal_code("01310100"))
    form.set_field("address.street_number", "1000")


def test_defaults(store, api) -> None:
    form = _form(store, api)

    assert form.mode == "create"
    assert form.data.date == "2025-06-10"
    assert form.duration == 20
    assert form.duration_label == "20 minutes (0.33h)"


def test_complete_postal_code_backfills_address(store, api) -> None:
    form = _form(store, api)
    form.errors["address.postal_code"] = MSG_POSTAL_NOT_FOUND

    asyncio.run(form.change_postal_code("01310100"))

    assert api.lookups == ["01310100"]
    assert form.data.address.postal_code == "01310-100"
    assert form.data.address.street == "Avenida Paulista"
    assert form.data.address.sublocality == "Bela Vista"
    assert form.errors["address.postal_code"] == ""
    assert form.cep_loading is False


def test_unknown_postal_code_sets_error_and_clears_dependents(store, api) -> None:
    form = _form(store, api)
    _fill(form)

    asyncio.run(form.change_postal_code("99999-999"))

    assert form.errors["address.postal_code"] == MSG_POSTAL_NOT_FOUND
    assert form.data.address.street == ""
    assert form.data.address.sublocality == ""
    assert form.data.address.street_number == ""


def test_unreachable_api_reads_as_unknown_postal_code(store, api) -> None:
    api.lookup_error = httpx.ConnectError("offline")
    form = _form(store, api)

    asyncio.run(form.change_postal_code("01310-100"))

    assert form.errors["address.postal_code"] == MSG_POSTAL_NOT_FOUND
    assert form.data.address.street == ""
    assert form.cep_loading is False


def test_incomplete_postal_code_skips_lookup_and_keeps_existing_error(store, api) -> None:
    form = _form(store, api)
    asyncio.run(form.change_postal_code("99999999"))
    form.data.address.street = "Rua A"

    asyncio.run(form.change_postal_code("9999"))

    assert api.lookups == ["99999999"]
    assert form.data.address.postal_code == "9999"
    assert form.data.address.street == ""
    assert form.errors["address.postal_code"] == MSG_POSTAL_NOT_FOUND


def test_stale_lookup_result_is_discarded(store, api) -> None:
    api.known["22222222"] = {"postal_code": "22222222", "street": "Rua Antiga", "sublocality": "Centro"}
    api.gates["22222222"] = asyncio.Event()
    form = _form(store, api)

    async def scenario():
        slow = asyncio.create_task(form.change_postal_code("22222222"))
        while "22222222" not in api.lookups:
            await asyncio.sleep(0)
        await form.change_postal_code("01310100")
        api.gates["22222222"].set()
        await slow

    asyncio.run(scenario())

    assert form.data.address.street == "Avenida Paulista"
    assert form.data.address.postal_code == "01310-100"
    assert form.cep_loading is False


def test_valid_form_passes(store, api) -> None:
    form = _form(store, api)
    _fill(form)

    assert form.validate() is True
    assert not form.has_errors


def test_required_and_range_errors(store, api) -> None:
    form = _form(store, api)
    form.set_field("forms", 0)
    form.set_field("products", 0)

    assert form.validate() is False
    assert form.errors["forms"]
    assert form.errors["products"]
    assert form.errors["address.postal_code"] == "Postal code is required"
    assert form.errors["address.sublocality"]
    assert form.errors["address.street"]
    assert form.errors["address.street_number"]


def test_past_date_is_rejected_but_today_is_fine(store, api) -> None:
    form = _form(store, api)
    _fill(form)

    form.set_field("date", "2025-06-09")
    assert form.validate() is False
    assert form.errors["date"] == MSG_DATE_PAST

    form.set_field("date", "2025-06-10")
    assert form.validate() is True


def test_format_error_does_not_override_lookup_error(store, api) -> None:
    form = _form(store, api)
    form.set_field("address.postal_code", "0131")

    form.validate()
    assert form.errors["address.postal_code"] == MSG_POSTAL_FORMAT

    form.errors["address.postal_code"] = MSG_POSTAL_NOT_FOUND
    form.validate()
    assert form.errors["address.postal_code"] == MSG_POSTAL_NOT_FOUND


def test_editing_a_field_clears_its_errors(store, api) -> None:
    form = _form(store, api)
    form.errors["address.street_number"] = "Number is required"
    form.api_errors["address.street_number"] = ["too long"]

    form.set_field("address.street_number", "10")

    assert form.field_errors("address.street_number") == []


def test_capacity_error(store, api) -> None:
    store.add_visit(_visit(1, forms=20, products=32))  # 460 minutes
    form = _form(store, api)
    _fill(form)

    assert form.validate() is True  # 20 minutes still fit

    form.set_field("products", 2)
    assert form.validate() is False
    assert form.errors["general"] == MSG_CAPACITY


def test_edit_mode_excludes_the_visit_itself(store, api) -> None:
    store.add_visit(_visit(1, forms=20, products=36))  # exactly 480 minutes
    form = _form(store, api, visit_id=1)

    assert form.mode == "edit"
    assert form.data.address.street_number == "10"

    form.set_field("address.complement", "Fundos")
    assert form.validate() is True


def test_submit_blocked_by_local_errors(store) -> None:
    api = FakeApi()
    form = _form(store, api)

    assert asyncio.run(form.submit()) is False
    assert api.sent == []
    assert form.notice[1] == "error"


def test_successful_create_adds_to_store(store) -> None:
    api = FakeApi(
        ApiResponse(
            status_code=201,
            success=True,
            data={
                "id": 7,
                "date": "2025-06-10",
                "forms": 1,
                "products": 1,
                "completed": False,
                "duration": 20,
                "address_id": 3,
                "address": {"id": 3, "postal_code": "01310100", "street": "Avenida Paulista"},
            },
        )
    )
    form = _form(store, api)
    _fill(form)

    assert asyncio.run(form.submit()) is True
    assert api.sent[0][0] == "create"
    assert store.get_visit(7).duration == 20
    assert form.notice == ("Visit created successfully!", "success")
    assert form.is_submitting is False


def test_successful_edit_updates_store(store) -> None:
    store.add_visit(_visit(1))
    api = FakeApi(ApiResponse(status_code=200, success=True, data=_visit(1, forms=3).model_dump()))
    form = _form(store, api, visit_id=1)
    form.set_field("forms", 3)

    assert asyncio.run(form.submit()) is True
    assert api.sent[0][:2] == ("update", 1)
    assert store.get_visit(1).forms == 3


def test_server_errors_do_not_clear_local_state(store) -> None:
    api = FakeApi(
        ApiResponse(
            status_code=400,
            success=False,
            message="Error saving address",
            error="ADDRESS_SAVE_ERROR",
            errors={"state": ["State must be a 2-letter code"]},
        )
    )
    form = _form(store, api)
    _fill(form)

    assert asyncio.run(form.submit()) is False
    assert form.api_errors == {"address.state": ["State must be a 2-letter code"]}
    assert form.notice == ("Error saving address", "error")
    assert store.state.visits == ()


def test_postal_code_error_from_server_lands_on_the_field(store) -> None:
    api = FakeApi(
        ApiResponse(status_code=404, success=False, message="Postal code not found", error="POSTAL_CODE_NOT_FOUND")
    )
    form = _form(store, api)
    _fill(form)

    asyncio.run(form.submit())

    assert form.field_errors("address.postal_code") == ["Postal code not found"]


def test_network_error_shows_generic_notice_and_allows_retry(store) -> None:
    api = FakeApi(error=httpx.ConnectError("offline"))
    form = _form(store, api)
    _fill(form)

    assert asyncio.run(form.submit()) is False
    assert form.notice == ("Unexpected error. Please try again.", "error")
    assert form.is_submitting is False

    api.error = None
    api.response = ApiResponse(status_code=500, success=False, message="Internal server error")
    assert asyncio.run(form.submit()) is False
    assert form.api_errors == {}
    assert len(api.sent) == 2
