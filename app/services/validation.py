"""Input validation for REST bodies and booking webhooks.

Pure functions, no I/O. Each ``validate_*`` returns the validated schema or
raises ``ValidationError`` carrying every violation found, so callers can
render all errors at once.
"""

from datetime import datetime
from typing import Any, Optional, TypeVar

from pydantic import BaseModel, TypeAdapter, ValidationError as PydanticValidationError

from app.core.exceptions import ValidationError, format_validation_errors
from app.schemas.appointment import (
    AppointmentCreate,
    AppointmentUpdate,
    MAX_DURATION_MINUTES,
    MIN_DURATION_MINUTES,
)
from app.schemas.common import IsoDatetime
from app.schemas.patient import PatientCreate, PatientUpdate
from app.schemas.webhook import BookingWebhookPayload

ModelT = TypeVar("ModelT", bound=BaseModel)

LEGACY_WEBHOOK_KEYS = ("event_type", "shop", "timestamp")

APPOINTMENT_REQUIRED = (
    "customer_name", "service_name", "start_time", "end_time", "duration_minutes", "status",
)
PATIENT_REQUIRED = ("name", "breed", "birth_date", "gender", "owner_name", "owner_phone")


_iso_adapter = TypeAdapter(IsoDatetime)


def minutes_between(start: datetime, end: datetime) -> int:
    return int((end - start).total_seconds() // 60)


def _parse(model: type[ModelT], raw: Any) -> tuple[Optional[ModelT], list[dict]]:
    """Validate ``raw`` against ``model``; returns (instance or None, field errors)."""
    if not isinstance(raw, dict):
        raise ValidationError([{"field": "body", "reason": "Expected a JSON object"}])
    try:
        return model.model_validate(raw), []
    except PydanticValidationError as exc:
        return None, format_validation_errors(exc.errors())


def _merge(errors: list[dict], more: list[dict]) -> list[dict]:
    # One violation per field; the field-level message wins
    reported = {e["field"] for e in errors}
    return errors + [e for e in more if e["field"] not in reported]


def _lookup(raw: dict, *keys: str) -> Any:
    for key in keys:
        if key in raw:
            return raw[key]
    return None


def _loose_datetime(value: Any) -> Optional[datetime]:
    """Best-effort parse used when the body as a whole failed validation."""
    if value is None:
        return None
    try:
        return _iso_adapter.validate_python(value)
    except PydanticValidationError:
        return None


def _loose_int(value: Any) -> Optional[int]:
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    return value


def _update_errors(model: type[BaseModel], parsed: Optional[BaseModel], raw: dict, required: tuple[str, ...]) -> list[dict]:
    if parsed is not None and not parsed.model_fields_set:
        return [{"field": "body", "reason": "No fields to update"}]
    # Columns that may be changed but not cleared
    errors = []
    for name in required:
        alias = model.model_fields[name].alias or name
        if any(key in raw and raw[key] is None for key in (alias, name)):
            errors.append({"field": alias, "reason": "Field cannot be null"})
    return errors


def check_time_window(
    start: datetime,
    end: datetime,
    duration: int | None,
    *,
    start_field: str = "startTime",
    end_field: str = "endTime",
    duration_field: str = "durationMinutes",
) -> tuple[list[dict], int | None]:
    """Cross-check start/end/duration.

    Returns (errors, duration). When ``duration`` is None it is derived from
    the window and range-checked; otherwise it must match the window.
    """
    if end <= start:
        return [{"field": end_field, "reason": f"{end_field} must be after {start_field}"}], None

    span = minutes_between(start, end)
    if duration is None:
        if not MIN_DURATION_MINUTES <= span <= MAX_DURATION_MINUTES:
            return [{
                "field": duration_field,
                "reason": (
                    f"Appointment length of {span} minutes is outside "
                    f"{MIN_DURATION_MINUTES}-{MAX_DURATION_MINUTES} minutes"
                ),
            }], None
        return [], span

    if duration != span:
        return [{
            "field": duration_field,
            "reason": f"{duration_field} ({duration}) does not match {start_field}..{end_field} ({span} minutes)",
        }], None
    return [], duration


def validate_appointment_input(raw: Any) -> AppointmentCreate:
    data, errors = _parse(AppointmentCreate, raw)
    if data is not None:
        start, end, duration = data.start_time, data.end_time, data.duration_minutes
    else:
        start = _loose_datetime(_lookup(raw, "startTime", "start_time"))
        end = _loose_datetime(_lookup(raw, "endTime", "end_time"))
        duration = _loose_int(_lookup(raw, "durationMinutes", "duration_minutes"))

    if start is not None and end is not None:
        window_errors, duration = check_time_window(start, end, duration)
        errors = _merge(errors, window_errors)
    if errors:
        raise ValidationError(errors)
    data.duration_minutes = duration
    return data


def validate_appointment_update(raw: Any) -> AppointmentUpdate:
    """Field-level checks only; the repository re-checks the merged window."""
    data, errors = _parse(AppointmentUpdate, raw)
    errors = _merge(errors, _update_errors(AppointmentUpdate, data, raw, APPOINTMENT_REQUIRED))
    if errors:
        raise ValidationError(errors)
    return data


def validate_patient_input(raw: Any) -> PatientCreate:
    data, errors = _parse(PatientCreate, raw)
    if errors:
        raise ValidationError(errors)
    return data


def validate_patient_update(raw: Any) -> PatientUpdate:
    data, errors = _parse(PatientUpdate, raw)
    errors = _merge(errors, _update_errors(PatientUpdate, data, raw, PATIENT_REQUIRED))
    if errors:
        raise ValidationError(errors)
    return data


def validate_webhook_payload(raw: Any) -> BookingWebhookPayload:
    if isinstance(raw, dict) and "event" not in raw and any(k in raw for k in LEGACY_WEBHOOK_KEYS):
        raise ValidationError([{
            "field": "event_type",
            "reason": (
                "Legacy booking payload (event_type / booking.appointment_time / service.duration) "
                "is deprecated and no longer accepted; send 'event' with booking.starts_at/ends_at"
            ),
        }])

    payload, errors = _parse(BookingWebhookPayload, raw)
    if payload is not None:
        start, end = payload.booking.starts_at, payload.booking.ends_at
    else:
        booking = raw.get("booking")
        booking = booking if isinstance(booking, dict) else {}
        start = _loose_datetime(booking.get("starts_at"))
        end = _loose_datetime(booking.get("ends_at"))

    if start is not None and end is not None:
        window_errors, _ = check_time_window(
            start,
            end,
            None,
            start_field="booking.starts_at",
            end_field="booking.ends_at",
            duration_field="booking.ends_at",
        )
        errors = _merge(errors, window_errors)
    if errors:
        raise ValidationError(errors)
    return payload


def validate_range_filter(
    start: Optional[str], end: Optional[str]
) -> tuple[Optional[datetime], Optional[datetime]]:
    """Parse the ``start``/``end`` query parameters of the appointment list."""
    bounds: dict[str, Optional[datetime]] = {"start": None, "end": None}
    errors = []
    for name, value in (("start", start), ("end", end)):
        if value in (None, ""):
            continue
        try:
            bounds[name] = _iso_adapter.validate_python(value)
        except PydanticValidationError:
            errors.append({"field": name, "reason": "must be an ISO-8601 datetime string"})
    if errors:
        raise ValidationError(errors)
    return bounds["start"], bounds["end"]
