"""Tests for the data models: identity parsing, results, notices and invoice totals"""

from decimal import Decimal

import pytest
from pydantic import ValidationError

from tokay.api.notices import NoticeBoard, NoticeLevel
from tokay.models.invoice import InvoiceDraft, LineItem
from tokay.models.result import ApiResult, ErrorKind
from tokay.models.user import Identity, RegistrationData

from conftest import USER


def test_identity_from_backend_payload():
    identity = Identity.model_validate({**USER, "id": 7, "createdAt": "2024-01-01"})

    assert identity.id == "7"
    assert identity.phone_number == USER["phoneNumber"]
    assert identity.is_phone_verified is True
    assert identity.display_name == "Siti Aminah"


def test_identity_requires_phone_number():
    with pytest.raises(ValidationError):
        Identity.model_validate({"id": "1"})


def test_identity_is_read_only():
    identity = Identity.model_validate(USER)
    with pytest.raises(ValidationError):
        identity.full_name = "Someone else"


def test_display_name_falls_back_to_phone():
    identity = Identity.model_validate({"id": "1", "phoneNumber": "+60123456789"})
    assert identity.display_name == "+60123456789"


def test_registration_payload_omits_unset_fields():
    data = RegistrationData(phone_number="+60123456789", email="a@b.my")
    assert data.to_payload() == {
        "phoneNumber": "+60123456789",
        "email": "a@b.my",
        "preferredLanguage": "ms",
    }


def test_registration_requires_phone_number():
    with pytest.raises(ValidationError):
        RegistrationData(phone_number="")


def test_api_result_helpers():
    ok = ApiResult.success([1, 2])
    failed = ApiResult.failure(ErrorKind.NOT_FOUND, "Resource not found.", status_code=404)

    assert ok.ok and ok.kind is None
    assert ok.unwrap_or([]) == [1, 2]
    assert not failed.ok
    assert failed.unwrap_or([]) == []


def test_notice_board_drain_and_bound():
    board = NoticeBoard(maxlen=2)
    board.success("one")
    board.error("two", category=ErrorKind.SERVER_ERROR)
    board.post(NoticeLevel.INFO, "three")

    notices = board.drain()

    assert [n.message for n in notices] == ["two", "three"]
    assert notices[0].category == ErrorKind.SERVER_ERROR
    assert board.drain() == []


def test_invoice_totals_include_sst():
    draft = InvoiceDraft(
        customer_name="Kedai Runcit Ali",
        line_items=[
            LineItem(description="Nasi lemak", quantity=Decimal("10"), unit_price=Decimal("3.50")),
            LineItem(description="Teh tarik", quantity=Decimal("3"), unit_price=Decimal("2.15")),
        ],
    )

    assert draft.subtotal == Decimal("41.45")
    assert draft.sst == Decimal("2.49")
    assert draft.total == Decimal("43.94")

    payload = draft.to_payload()
    assert payload["customer_name"] == "Kedai Runcit Ali"
    assert payload["subtotal"] == "41.45"
    assert payload["tax_amount"] == "2.49"
    assert payload["total_amount"] == "43.94"


def test_empty_invoice_totals():
    draft = InvoiceDraft(customer_name="Walk-in")
    assert draft.total == Decimal("0.00")


def test_line_item_rejects_negative_quantity():
    with pytest.raises(ValidationError):
        LineItem(description="Refund", quantity=Decimal("-1"), unit_price=Decimal("5"))


def test_notice_timestamp_is_timezone_aware():
    notice = NoticeBoard().success("saved")
    assert notice.created_at.tzinfo is not None
