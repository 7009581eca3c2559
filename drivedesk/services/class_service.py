from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass
from datetime import date
from typing import Any

from drivedesk.domain.entities import (
    ALLOWED_DURATIONS,
    ClassStatus,
    ClassType,
    DrivingClass,
    PaymentMethod,
    PaymentStatus,
    encode_class,
)
from drivedesk.domain.snapshot import SchoolStore, StoreSnapshot
from drivedesk.services.billing_service import PricingSuggestion, class_ordinal, next_ordinal, suggest_pricing
from drivedesk.services.document_store import DELETE_FIELD, WriteResult


logger = logging.getLogger(__name__)

_TIME_RE = re.compile(r'^(\d{1,2}):(\d{2})$')
MINUTES_PER_DAY = 24 * 60


class ClassValidationError(ValueError):
    def __init__(self, errors: dict[str, str]) -> None:
        super().__init__('; '.join(f'{key}: {value}' for key, value in errors.items()))
        self.errors = errors


def parse_clock(value: str) -> int:
    match = _TIME_RE.match((value or '').strip())
    if not match:
        raise ValueError('time must be HH:MM')
    hour, minute = int(match.group(1)), int(match.group(2))
    if hour > 23 or minute > 59:
        raise ValueError('time must be HH:MM')
    return hour * 60 + minute


def format_clock(total_minutes: int) -> str:
    total_minutes %= MINUTES_PER_DAY
    return f'{total_minutes // 60:02d}:{total_minutes % 60:02d}'


def compute_end_time(start_time: str, duration_minutes: int) -> str:
    """End of a class on a 24h wall clock; 23:45 + 30 is 00:15."""
    return format_clock(parse_clock(start_time) + int(duration_minutes))


@dataclass(frozen=True)
class ClassInput:
    student_id: str
    date: date
    start_time: str
    duration_minutes: int = 60
    type: ClassType = ClassType.PRACTICE
    status: ClassStatus = ClassStatus.SCHEDULED
    payment_status: PaymentStatus = PaymentStatus.PENDING
    payment_method: PaymentMethod | None = None
    price: float = 0
    notes: str = ''
    location: str | None = None


@dataclass(frozen=True)
class EditorSuggestion:
    student_id: str
    ordinal: int
    history_count: int
    pricing: PricingSuggestion
    student_found: bool

    def as_dict(self) -> dict[str, Any]:
        return {
            'student_id': self.student_id,
            'ordinal': self.ordinal,
            'history_count': self.history_count,
            'student_found': self.student_found,
            'price': self.pricing.price,
            'payment_status': self.pricing.payment_status.value,
            'is_promo': self.pricing.is_promo,
            'pack_position': self.pricing.pack_position,
        }


def suggest_for_editor(snapshot: StoreSnapshot, student_id: str, class_id: str | None = None) -> EditorSuggestion:
    """Price and payment status to pre-fill when a student is picked in the class editor.

    Editing a class that already belongs to the student keeps its current
    position in the history; otherwise the class is counted as the student's
    next one. The result is only a suggestion: whatever the user saves wins.
    """
    student = snapshot.find_student(student_id)
    existing = snapshot.find_class(class_id)
    history_count = len(snapshot.classes_for(student_id))
    if existing is not None and existing.student_id == student_id:
        ordinal = class_ordinal(snapshot.classes, existing.id) or history_count
    else:
        ordinal = next_ordinal(snapshot.classes, student_id, exclude_class_id=class_id)
    return EditorSuggestion(
        student_id=student_id,
        ordinal=ordinal,
        history_count=history_count,
        pricing=suggest_pricing(student, ordinal),
        student_found=student is not None,
    )


def validate_class(payload: ClassInput) -> dict[str, str]:
    errors: dict[str, str] = {}
    if not (payload.student_id or '').strip():
        errors['student_id'] = 'Student is required'
    if payload.date is None:
        errors['date'] = 'Date is required'
    try:
        parse_clock(payload.start_time)
    except ValueError:
        errors['start_time'] = 'Start time must be HH:MM'
    if payload.duration_minutes not in ALLOWED_DURATIONS:
        allowed = ', '.join(str(value) for value in ALLOWED_DURATIONS)
        errors['duration_minutes'] = f'Duration must be one of {allowed} minutes'
    if payload.price is None or not math.isfinite(payload.price) or payload.price <= 0:
        errors['price'] = 'Price must be greater than zero'
    if payload.payment_status == PaymentStatus.PAID and payload.payment_method is None:
        errors['payment_method'] = 'A paid class needs a payment method'
    return errors


def build_class(payload: ClassInput, class_id: str = '') -> DrivingClass:
    errors = validate_class(payload)
    if errors:
        raise ClassValidationError(errors)
    method = payload.payment_method if payload.payment_status == PaymentStatus.PAID else None
    return DrivingClass(
        id=class_id,
        student_id=payload.student_id.strip(),
        date=payload.date,
        start_time=format_clock(parse_clock(payload.start_time)),
        end_time=compute_end_time(payload.start_time, payload.duration_minutes),
        duration_minutes=payload.duration_minutes,
        type=payload.type,
        status=payload.status,
        payment_status=payload.payment_status,
        payment_method=method,
        price=float(payload.price),
        notes=(payload.notes or '').strip(),
        location=(payload.location or '').strip() or None,
    )


def save_class(store: SchoolStore, payload: ClassInput, class_id: str | None = None) -> WriteResult:
    """Validate and write a class; raises :class:`ClassValidationError` before any write."""
    cls = build_class(payload, class_id or '')
    document = encode_class(cls)
    if class_id:
        if cls.payment_method is None:
            document['paymentMethod'] = DELETE_FIELD
        if cls.location is None:
            document['location'] = DELETE_FIELD
        result = store.update_class(class_id, document)
    else:
        result = store.add_class(document)
    if not result.ok:
        logger.warning('class_save_failed id=%s code=%s error=%s', class_id, result.code, result.error)
    return result


def delete_class(store: SchoolStore, class_id: str) -> WriteResult:
    result = store.delete_class(class_id)
    if not result.ok:
        logger.warning('class_delete_failed id=%s code=%s error=%s', class_id, result.code, result.error)
    return result


def list_classes(
    snapshot: StoreSnapshot,
    *,
    student_id: str | None = None,
    status: ClassStatus | None = None,
    start: date | None = None,
    end: date | None = None,
) -> list[DrivingClass]:
    rows = []
    for cls in snapshot.classes:
        if student_id and cls.student_id != student_id:
            continue
        if status and cls.status != status:
            continue
        if start and cls.date < start:
            continue
        if end and cls.date > end:
            continue
        rows.append(cls)
    rows.sort(key=lambda cls: (cls.date, cls.start_time, cls.id))
    return rows
