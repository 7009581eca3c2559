"""Value types for the driving school and the decode/encode step at the store boundary.

Documents live in the store as camelCase JSON objects with no enforced schema,
so every read goes through ``decode_*``: absent optional fields get their
defaults and numbers are coerced. A document that cannot be decoded raises
``DocumentDecodeError`` and is left out of the snapshot by the caller.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any


ALLOWED_DURATIONS = (30, 45, 60, 90)


class StudentStatus(str, Enum):
    ACTIVE = 'active'
    PAUSED = 'paused'
    FINISHED = 'finished'


class ExamReadiness(str, Enum):
    NO = 'no'
    IN_PROGRESS = 'in_progress'
    ALMOST_READY = 'almost_ready'
    READY = 'ready'


class ClassType(str, Enum):
    PRACTICE = 'practice'
    EXAM_SIMULATION = 'exam_simulation'
    THEORY = 'theory'
    MANEUVER_REVIEW = 'maneuver_review'


class ClassStatus(str, Enum):
    SCHEDULED = 'scheduled'
    COMPLETED = 'completed'
    CANCELLED = 'cancelled'
    NO_SHOW = 'no_show'


class PaymentStatus(str, Enum):
    PENDING = 'pending'
    INVOICED = 'invoiced'
    PAID = 'paid'


class PaymentMethod(str, Enum):
    CASH = 'cash'
    TRANSFER = 'transfer'


class LedgerMethod(str, Enum):
    CASH = 'cash'
    CARD = 'card'
    TRANSFER = 'transfer'


class DocumentDecodeError(ValueError):
    """Raised when a stored document is missing data no default can stand in for."""


@dataclass(frozen=True)
class Student:
    id: str
    first_name: str
    last_name: str
    phone: str
    price_per_class: float
    status: StudentStatus = StudentStatus.ACTIVE
    exam_readiness: ExamReadiness = ExamReadiness.NO
    email: str | None = None
    dni: str | None = None
    registration_date: date | None = None
    promo_packs: int = 0
    notes: str = ''
    strengths: tuple[str, ...] = field(default_factory=tuple)
    weaknesses: tuple[str, ...] = field(default_factory=tuple)
    avatar_url: str | None = None

    @property
    def full_name(self) -> str:
        return f'{self.first_name} {self.last_name}'.strip()

    @property
    def short_name(self) -> str:
        initial = self.last_name[:1]
        if not initial:
            return self.first_name
        return f'{self.first_name} {initial}.'


@dataclass(frozen=True)
class DrivingClass:
    id: str
    student_id: str
    date: date
    start_time: str
    end_time: str
    duration_minutes: int
    price: float
    type: ClassType = ClassType.PRACTICE
    status: ClassStatus = ClassStatus.SCHEDULED
    payment_status: PaymentStatus = PaymentStatus.PENDING
    payment_method: PaymentMethod | None = None
    notes: str = ''
    location: str | None = None

    @property
    def is_paid(self) -> bool:
        return self.payment_status == PaymentStatus.PAID


@dataclass(frozen=True)
class Payment:
    id: str
    student_id: str
    amount: float
    date: date
    method: LedgerMethod = LedgerMethod.CASH
    concept: str = ''


def _text(doc: dict[str, Any], key: str, default: str = '') -> str:
    value = doc.get(key)
    if value is None:
        return default
    return str(value)


def _optional_text(doc: dict[str, Any], key: str) -> str | None:
    value = doc.get(key)
    if value is None or str(value).strip() == '':
        return None
    return str(value)


def _number(doc: dict[str, Any], key: str, default: float | None = None) -> float:
    value = doc.get(key, default)
    if value is None:
        raise DocumentDecodeError(f'{key} is required')
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise DocumentDecodeError(f'{key} must be numeric') from exc


def _date(doc: dict[str, Any], key: str) -> date:
    raw = doc.get(key)
    if not raw:
        raise DocumentDecodeError(f'{key} is required')
    try:
        return date.fromisoformat(str(raw)[:10])
    except ValueError as exc:
        raise DocumentDecodeError(f'{key} must be YYYY-MM-DD') from exc


def _optional_date(doc: dict[str, Any], key: str) -> date | None:
    if not doc.get(key):
        return None
    try:
        return _date(doc, key)
    except DocumentDecodeError:
        return None


def _enum(enum_cls: type[Enum], raw: Any, default: Enum | None) -> Any:
    if raw is None or raw == '':
        return default
    try:
        return enum_cls(raw)
    except ValueError:
        return default


def _string_list(raw: Any) -> tuple[str, ...]:
    if not raw:
        return ()
    if isinstance(raw, str):
        raw = raw.splitlines()
    return tuple(str(item).strip() for item in raw if str(item).strip())


def decode_student(doc_id: str, doc: dict[str, Any]) -> Student:
    return Student(
        id=doc_id,
        first_name=_text(doc, 'firstName'),
        last_name=_text(doc, 'lastName'),
        phone=_text(doc, 'phone'),
        email=_optional_text(doc, 'email'),
        dni=_optional_text(doc, 'dni'),
        status=_enum(StudentStatus, doc.get('status'), StudentStatus.ACTIVE),
        exam_readiness=_enum(ExamReadiness, doc.get('examReadiness'), ExamReadiness.NO),
        registration_date=_optional_date(doc, 'registrationDate'),
        price_per_class=_number(doc, 'pricePerClass'),
        promo_packs=max(0, int(_number(doc, 'promoPacks', 0))),
        notes=_text(doc, 'notes'),
        strengths=_string_list(doc.get('strengths')),
        weaknesses=_string_list(doc.get('weaknesses')),
        avatar_url=_optional_text(doc, 'avatarUrl'),
    )


def decode_class(doc_id: str, doc: dict[str, Any]) -> DrivingClass:
    student_id = _text(doc, 'studentId')
    if not student_id:
        raise DocumentDecodeError('studentId is required')
    start_time = _text(doc, 'startTime')
    if not start_time:
        raise DocumentDecodeError('startTime is required')
    payment_status = _enum(PaymentStatus, doc.get('paymentStatus'), PaymentStatus.PENDING)
    payment_method = None
    if payment_status == PaymentStatus.PAID:
        payment_method = _enum(PaymentMethod, doc.get('paymentMethod'), None)
    return DrivingClass(
        id=doc_id,
        student_id=student_id,
        date=_date(doc, 'date'),
        start_time=start_time,
        end_time=_text(doc, 'endTime', start_time),
        duration_minutes=int(_number(doc, 'durationMinutes', 60)),
        type=_enum(ClassType, doc.get('type'), ClassType.PRACTICE),
        status=_enum(ClassStatus, doc.get('status'), ClassStatus.SCHEDULED),
        payment_status=payment_status,
        payment_method=payment_method,
        price=_number(doc, 'price'),
        notes=_text(doc, 'notes'),
        location=_optional_text(doc, 'location'),
    )


def decode_payment(doc_id: str, doc: dict[str, Any]) -> Payment:
    return Payment(
        id=doc_id,
        student_id=_text(doc, 'studentId'),
        amount=_number(doc, 'amount'),
        date=_date(doc, 'date'),
        method=_enum(LedgerMethod, doc.get('method'), LedgerMethod.CASH),
        concept=_text(doc, 'concept'),
    )


def _drop_empty(doc: dict[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in doc.items() if value is not None}


def encode_student(student: Student) -> dict[str, Any]:
    return _drop_empty(
        {
            'firstName': student.first_name,
            'lastName': student.last_name,
            'phone': student.phone,
            'email': student.email,
            'dni': student.dni,
            'status': student.status.value,
            'examReadiness': student.exam_readiness.value,
            'registrationDate': student.registration_date.isoformat() if student.registration_date else None,
            'pricePerClass': student.price_per_class,
            'promoPacks': student.promo_packs,
            'notes': student.notes,
            'strengths': list(student.strengths),
            'weaknesses': list(student.weaknesses),
            'avatarUrl': student.avatar_url,
        }
    )


def encode_class(cls: DrivingClass) -> dict[str, Any]:
    method = cls.payment_method.value if cls.payment_method and cls.is_paid else None
    return _drop_empty(
        {
            'studentId': cls.student_id,
            'date': cls.date.isoformat(),
            'startTime': cls.start_time,
            'endTime': cls.end_time,
            'durationMinutes': cls.duration_minutes,
            'type': cls.type.value,
            'status': cls.status.value,
            'paymentStatus': cls.payment_status.value,
            'paymentMethod': method,
            'price': cls.price,
            'notes': cls.notes,
            'location': cls.location,
        }
    )


def encode_payment(payment: Payment) -> dict[str, Any]:
    return {
        'studentId': payment.student_id,
        'amount': payment.amount,
        'date': payment.date.isoformat(),
        'method': payment.method.value,
        'concept': payment.concept,
    }
