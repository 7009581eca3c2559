from __future__ import annotations

from typing import Any

from drivedesk.domain.entities import DrivingClass, Payment, Student


def student_out(student: Student) -> dict[str, Any]:
    return {
        'id': student.id,
        'first_name': student.first_name,
        'last_name': student.last_name,
        'full_name': student.full_name,
        'phone': student.phone,
        'email': student.email,
        'dni': student.dni,
        'status': student.status.value,
        'exam_readiness': student.exam_readiness.value,
        'registration_date': student.registration_date.isoformat() if student.registration_date else None,
        'price_per_class': student.price_per_class,
        'promo_packs': student.promo_packs,
        'notes': student.notes,
        'strengths': list(student.strengths),
        'weaknesses': list(student.weaknesses),
        'avatar_url': student.avatar_url,
    }


def class_out(cls: DrivingClass, *, ordinal: int | None = None, student_name: str | None = None) -> dict[str, Any]:
    payload = {
        'id': cls.id,
        'student_id': cls.student_id,
        'date': cls.date.isoformat(),
        'start_time': cls.start_time,
        'end_time': cls.end_time,
        'duration_minutes': cls.duration_minutes,
        'type': cls.type.value,
        'status': cls.status.value,
        'payment_status': cls.payment_status.value,
        'payment_method': cls.payment_method.value if cls.payment_method else None,
        'price': cls.price,
        'notes': cls.notes,
        'location': cls.location,
    }
    if ordinal is not None:
        payload['ordinal'] = ordinal
    if student_name is not None:
        payload['student_name'] = student_name
    return payload


def payment_out(payment: Payment) -> dict[str, Any]:
    return {
        'id': payment.id,
        'student_id': payment.student_id,
        'amount': payment.amount,
        'date': payment.date.isoformat(),
        'method': payment.method.value,
        'concept': payment.concept,
    }
