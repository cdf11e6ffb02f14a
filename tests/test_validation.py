"""Unit tests for the input validators (no database)."""

from datetime import datetime

import pytest

from app.core.exceptions import ValidationError
from app.schemas.common import join_tags, split_tags
from app.schemas.webhook import map_external_status
from app.models.appointment import AppointmentStatus
from app.services.validation import (
    validate_appointment_input,
    validate_appointment_update,
    validate_patient_input,
    validate_patient_update,
    validate_range_filter,
    validate_webhook_payload,
)

APPOINTMENT = {
    "customerName": "Jane Doe",
    "serviceName": "Checkup",
    "startTime": "2025-01-10T10:00:00Z",
    "endTime": "2025-01-10T10:30:00Z",
    "status": "confirmed",
}


def _fields(exc_info) -> set[str]:
    return {e["field"] for e in exc_info.value.errors}


def test_valid_appointment_derives_duration():
    data = validate_appointment_input(APPOINTMENT)
    assert data.duration_minutes == 30
    assert data.start_time == datetime(2025, 1, 10, 10, 0)
    assert data.start_time.tzinfo is None


def test_snake_case_keys_are_accepted():
    data = validate_appointment_input({
        "customer_name": "Jane Doe",
        "service_name": "Checkup",
        "start_time": "2025-01-10T10:00:00Z",
        "end_time": "2025-01-10T10:30:00Z",
        "status": "pending",
    })
    assert data.status == AppointmentStatus.PENDING


def test_unknown_fields_are_ignored():
    data = validate_appointment_input({**APPOINTMENT, "color": "blue"})
    assert not hasattr(data, "color")


@pytest.mark.parametrize("field, value", [
    ("customerName", ""),
    ("customerName", "x" * 101),
    ("customerPhone", "1234567"),
    ("customerPhone", "1" * 26),
    ("staffMember", "x" * 51),
    ("notes", "x" * 501),
    ("durationMinutes", 14),
    ("durationMinutes", 481),
    ("status", "no-show"),
    ("customerEmail", "jane@"),
    ("startTime", "tomorrow at ten"),
    ("startTime", 1736503200),
])
def test_appointment_field_bounds(field, value):
    with pytest.raises(ValidationError) as exc_info:
        validate_appointment_input({**APPOINTMENT, field: value})
    assert field in _fields(exc_info)


def test_window_shorter_than_minimum_is_rejected():
    with pytest.raises(ValidationError) as exc_info:
        validate_appointment_input({**APPOINTMENT, "endTime": "2025-01-10T10:10:00Z"})
    assert _fields(exc_info) == {"durationMinutes"}


def test_all_violations_are_collected():
    with pytest.raises(ValidationError) as exc_info:
        validate_appointment_input({"startTime": "nope", "status": "bogus"})
    assert _fields(exc_info) == {"customerName", "serviceName", "startTime", "endTime", "status"}


def test_update_requires_at_least_one_field():
    with pytest.raises(ValidationError) as exc_info:
        validate_appointment_update({})
    assert _fields(exc_info) == {"body"}


def test_update_allows_clearing_optional_fields():
    data = validate_appointment_update({"notes": None, "staffMember": None})
    assert data.model_dump(exclude_unset=True) == {"notes": None, "staff_member": None}


def test_patient_bounds():
    with pytest.raises(ValidationError) as exc_info:
        validate_patient_input({
            "name": "x" * 51,
            "breed": "",
            "birthDate": "2020-01-01T00:00:00Z",
            "gender": "male",
            "weight": 0.05,
            "color": "x" * 31,
            "ownerName": "Chris",
            "ownerPhone": "5550199",
        })
    assert _fields(exc_info) == {"name", "breed", "weight", "color", "ownerPhone"}


def test_non_object_body_is_rejected():
    with pytest.raises(ValidationError) as exc_info:
        validate_patient_input("Bella")
    assert exc_info.value.errors == [{"field": "body", "reason": "Expected a JSON object"}]


def test_range_filter_parses_both_bounds():
    start, end = validate_range_filter("2025-01-10T00:00:00Z", "2025-01-11T00:00:00+02:00")
    assert start == datetime(2025, 1, 10, 0, 0)
    assert end == datetime(2025, 1, 10, 22, 0)
    assert validate_range_filter(None, "") == (None, None)


def test_range_filter_reports_both_bad_bounds():
    with pytest.raises(ValidationError) as exc_info:
        validate_range_filter("soon", "later")
    assert _fields(exc_info) == {"start", "end"}


def test_webhook_payload_is_normalized(booking_payload):
    payload = validate_webhook_payload(booking_payload(
        starts_at="2025-03-14T11:00:00-04:00",
        ends_at="2025-03-14T11:30:00-04:00",
    ))
    assert payload.booking.starts_at == datetime(2025, 3, 14, 15, 0)
    assert payload.booking.status == AppointmentStatus.CONFIRMED


def test_webhook_booking_longer_than_a_working_day_is_rejected(booking_payload):
    with pytest.raises(ValidationError) as exc_info:
        validate_webhook_payload(booking_payload(ends_at="2025-03-15T15:00:00Z"))
    assert _fields(exc_info) == {"booking.ends_at"}


def test_unknown_webhook_event_is_rejected(booking_payload):
    with pytest.raises(ValidationError) as exc_info:
        validate_webhook_payload(booking_payload(event="appointment.rescheduled"))
    assert _fields(exc_info) == {"event"}


@pytest.mark.parametrize("raw, expected", [
    ("confirmed", AppointmentStatus.CONFIRMED),
    (" CANCELLED ", AppointmentStatus.CANCELLED),
    ("canceled", AppointmentStatus.CANCELLED),
    ("scheduled", AppointmentStatus.CONFIRMED),
    ("tentative", AppointmentStatus.PENDING),
    ("no-show", AppointmentStatus.COMPLETED),
    ("started", AppointmentStatus.IN_PROGRESS),
])
def test_map_external_status(raw, expected):
    assert map_external_status(raw) == expected


def test_map_external_status_rejects_unknown():
    with pytest.raises(ValueError):
        map_external_status("lost")


def test_tag_helpers():
    assert split_tags(" new-customer, grooming ,,") == ["new-customer", "grooming"]
    assert join_tags(" new-customer, grooming ,,") == "new-customer,grooming"
    assert join_tags("") is None
    assert join_tags(None) is None


def test_window_errors_are_reported_with_field_errors():
    with pytest.raises(ValidationError) as exc_info:
        validate_appointment_input({
            **APPOINTMENT,
            "endTime": "2025-01-10T09:00:00Z",
            "customerEmail": "not-an-email",
        })
    assert _fields(exc_info) == {"customerEmail", "endTime"}


def test_duration_error_is_reported_once():
    with pytest.raises(ValidationError) as exc_info:
        validate_appointment_input({**APPOINTMENT, "durationMinutes": 1000, "customerName": ""})
    assert [e["field"] for e in exc_info.value.errors].count("durationMinutes") == 1
    assert _fields(exc_info) == {"durationMinutes", "customerName"}


def test_update_reports_cleared_fields_with_field_errors():
    with pytest.raises(ValidationError) as exc_info:
        validate_appointment_update({"customerName": None, "customerEmail": "jane@"})
    assert _fields(exc_info) == {"customerName", "customerEmail"}


def test_patient_update_reports_cleared_fields_with_field_errors():
    with pytest.raises(ValidationError) as exc_info:
        validate_patient_update({"name": None, "weight": 0.01})
    assert _fields(exc_info) == {"name", "weight"}


def test_webhook_window_error_is_reported_with_field_errors(booking_payload):
    raw = booking_payload(ends_at="2025-03-14T14:00:00Z")
    raw["customer"]["email"] = "maria-at-example"
    with pytest.raises(ValidationError) as exc_info:
        validate_webhook_payload(raw)
    assert _fields(exc_info) == {"customer.email", "booking.ends_at"}
