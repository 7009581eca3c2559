from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import date

from drivedesk.domain.entities import (
    ClassStatus,
    DrivingClass,
    ExamReadiness,
    Student,
    StudentStatus,
    encode_student,
)
from drivedesk.domain.snapshot import SchoolStore, StoreSnapshot
from drivedesk.services.billing_service import StudentBillingStats, student_billing_stats
from drivedesk.services.document_store import DELETE_FIELD, WriteResult


logger = logging.getLogger(__name__)


class StudentValidationError(ValueError):
    def __init__(self, errors: dict[str, str]) -> None:
        super().__init__('; '.join(f'{key}: {value}' for key, value in errors.items()))
        self.errors = errors


@dataclass(frozen=True)
class StudentInput:
    first_name: str
    last_name: str
    phone: str
    price_per_class: float
    email: str | None = None
    dni: str | None = None
    status: StudentStatus = StudentStatus.ACTIVE
    exam_readiness: ExamReadiness = ExamReadiness.NO
    registration_date: date | None = None
    promo_packs: int = 0
    notes: str = ''
    strengths: tuple[str, ...] = field(default_factory=tuple)
    weaknesses: tuple[str, ...] = field(default_factory=tuple)
    avatar_url: str | None = None


def _digits(value: str | None) -> str:
    return ''.join(ch for ch in str(value or '') if ch.isdigit())


def lines_to_list(text: str | None) -> tuple[str, ...]:
    """Split a textarea into its non-empty, trimmed lines."""
    return tuple(line.strip() for line in (text or '').splitlines() if line.strip())


def validate_student(payload: StudentInput) -> dict[str, str]:
    errors: dict[str, str] = {}
    if not (payload.first_name or '').strip():
        errors['first_name'] = 'First name is required'
    if not (payload.last_name or '').strip():
        errors['last_name'] = 'Last name is required'
    if not _digits(payload.phone):
        errors['phone'] = 'Phone is required'
    price = payload.price_per_class
    if price is None or not math.isfinite(price) or price <= 0:
        errors['price_per_class'] = 'Price per class must be greater than zero'
    if payload.promo_packs is None or payload.promo_packs < 0:
        errors['promo_packs'] = 'Promo packs cannot be negative'
    if payload.email and '@' not in payload.email:
        errors['email'] = 'Email is not valid'
    return errors


def build_student(payload: StudentInput, student_id: str = '') -> Student:
    errors = validate_student(payload)
    if errors:
        raise StudentValidationError(errors)
    return Student(
        id=student_id,
        first_name=payload.first_name.strip(),
        last_name=payload.last_name.strip(),
        phone=payload.phone.strip(),
        email=(payload.email or '').strip() or None,
        dni=(payload.dni or '').strip() or None,
        status=payload.status,
        exam_readiness=payload.exam_readiness,
        registration_date=payload.registration_date,
        price_per_class=float(payload.price_per_class),
        promo_packs=int(payload.promo_packs),
        notes=(payload.notes or '').strip(),
        strengths=tuple(item.strip() for item in payload.strengths if item.strip()),
        weaknesses=tuple(item.strip() for item in payload.weaknesses if item.strip()),
        avatar_url=(payload.avatar_url or '').strip() or None,
    )


def create_student(store: SchoolStore, payload: StudentInput) -> WriteResult:
    student = build_student(payload)
    result = store.add_student(encode_student(student))
    if not result.ok:
        logger.warning('student_create_failed code=%s error=%s', result.code, result.error)
    return result


def update_student(store: SchoolStore, student_id: str, payload: StudentInput) -> WriteResult:
    # Saved classes keep the price they were created with.
    student = build_student(payload, student_id)
    document = encode_student(student)
    for key in ('email', 'dni', 'registrationDate', 'avatarUrl'):
        document.setdefault(key, DELETE_FIELD)
    result = store.update_student(student_id, document)
    if not result.ok:
        logger.warning('student_update_failed id=%s code=%s error=%s', student_id, result.code, result.error)
    return result


def delete_student(store: SchoolStore, student_id: str) -> WriteResult:
    orphaned = len(store.snapshot().classes_for(student_id))
    result = store.delete_student(student_id)
    if result.ok:
        logger.info('student_deleted id=%s orphaned_classes=%s', student_id, orphaned)
    else:
        logger.warning('student_delete_failed id=%s code=%s error=%s', student_id, result.code, result.error)
    return result


def search_students(snapshot: StoreSnapshot, term: str | None = None) -> list[Student]:
    needle = (term or '').strip().lower()
    rows = [
        student
        for student in snapshot.students
        if not needle or needle in student.first_name.lower() or needle in student.last_name.lower()
    ]
    rows.sort(key=lambda student: (student.last_name.lower(), student.first_name.lower(), student.id))
    return rows


def student_rows(snapshot: StoreSnapshot, term: str | None = None) -> list[dict]:
    completed: dict[str, int] = {}
    engaged: dict[str, int] = {}
    for cls in snapshot.classes:
        if cls.status == ClassStatus.COMPLETED:
            completed[cls.student_id] = completed.get(cls.student_id, 0) + 1
        if cls.status != ClassStatus.CANCELLED:
            engaged[cls.student_id] = engaged.get(cls.student_id, 0) + 1
    return [
        {
            'student': student,
            'completed_classes': completed.get(student.id, 0),
            'total_classes': engaged.get(student.id, 0),
        }
        for student in search_students(snapshot, term)
    ]


@dataclass(frozen=True)
class StudentDetail:
    student: Student
    classes: tuple[DrivingClass, ...]
    stats: StudentBillingStats


def student_detail(snapshot: StoreSnapshot, student_id: str) -> StudentDetail | None:
    student = snapshot.find_student(student_id)
    if student is None:
        return None
    classes = sorted(snapshot.classes_for(student_id), key=lambda cls: (cls.date, cls.start_time, cls.id), reverse=True)
    return StudentDetail(
        student=student,
        classes=tuple(classes),
        stats=student_billing_stats(snapshot.classes, student_id),
    )
