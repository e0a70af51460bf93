from datetime import datetime

import pytest

from farmsync.validation import (
    LOAN_SCHEMA,
    PRODUCT_SCHEMA,
    ValidationError,
    require_user_id,
    validate_batch,
    validate_record,
)


@pytest.mark.parametrize("user_id", [None, "", "   ", True, ["u1"]])
def test_user_id_is_required(user_id):
    with pytest.raises(ValidationError):
        require_user_id(user_id)


def test_user_id_normalized():
    assert require_user_id("  u1 ") == "u1"
    assert require_user_id(42) == "42"


def test_user_id_length_limit():
    with pytest.raises(ValidationError, match="max length"):
        require_user_id("u" * 129)


def test_non_list_collections_are_skipped():
    batch = validate_batch("u1", {"transactions": "nope", "loans": {"id": "x"}, "products": None})

    assert batch.transactions == []
    assert batch.loans == []
    assert batch.products == []
    assert batch.settings is None


def test_non_object_batch_rejected():
    with pytest.raises(ValidationError):
        validate_batch("u1", ["not", "a", "batch"])


def test_non_object_record_rejected():
    with pytest.raises(ValidationError, match=r"products\[1\] must be an object"):
        validate_batch("u1", {"products": [{"name": "Maize"}, "Beans"]})


def test_natural_key_required():
    with pytest.raises(ValidationError, match=r"loans\[0\]\.id is required"):
        validate_record(LOAN_SCHEMA, {"fullName": "Jane"}, index=0)
    with pytest.raises(ValidationError, match=r"products\[0\]\.name is required"):
        validate_record(PRODUCT_SCHEMA, {"name": "  "}, index=0)


def test_record_maps_client_names_and_ignores_unknown_keys():
    row = validate_record(
        LOAN_SCHEMA,
        {"id": 17, "fullName": " Jane ", "dateTaken": "2026-03-01T08:00:00Z", "isDirty": True},
        index=0,
    )

    assert row["loan_id"] == "17"
    assert row["full_name"] == "Jane"
    assert row["date_taken"] == datetime(2026, 3, 1, 8, 0, 0)
    assert row["status"] is None
    assert "isDirty" not in row


@pytest.mark.parametrize("value", [True, "ten", float("nan"), [1], 2 ** 70])
def test_amounts_must_be_finite_numbers(value):
    with pytest.raises(ValidationError):
        validate_record(PRODUCT_SCHEMA, {"name": "Maize", "orderPrice": value}, index=0)


def test_amounts_keep_full_precision():
    row = validate_record(PRODUCT_SCHEMA, {"name": "Maize", "orderPrice": 10.125, "marketStock": "3.5"}, index=0)

    assert row["order_price"] == 10.125
    assert row["market_stock"] == 3.5


def test_loan_lists_must_be_lists():
    with pytest.raises(ValidationError, match="must be a list"):
        validate_record(LOAN_SCHEMA, {"id": "L1", "reminders": {"at": "tomorrow"}}, index=0)


def test_bad_datetime_rejected():
    with pytest.raises(ValidationError, match="ISO-8601"):
        validate_record(LOAN_SCHEMA, {"id": "L1", "dateTaken": "yesterday"}, index=0)


def test_settings_must_be_object():
    with pytest.raises(ValidationError, match="settings must be an object"):
        validate_batch("u1", {"settings": ["dark"]})
    assert validate_batch("u1", {"settings": {}}).settings == {}


@pytest.mark.parametrize("value, expected", [(True, True), (False, False), (1, True), (0, False)])
def test_flags_accept_booleans(value, expected):
    row = validate_record(LOAN_SCHEMA, {"id": "L1", "reminderSent": value}, index=0)

    assert row["reminder_sent"] is expected


@pytest.mark.parametrize("value", ["false", "0", "true", 2, [], {}])
def test_flags_reject_other_values(value):
    with pytest.raises(ValidationError, match=r"loans\[0\]\.reminderSent must be a boolean"):
        validate_record(LOAN_SCHEMA, {"id": "L1", "reminderSent": value}, index=0)
