from datetime import date

from pydantic import BaseModel, Field

from drivedesk.domain.entities import (
    ClassStatus,
    ClassType,
    ExamReadiness,
    PaymentMethod,
    PaymentStatus,
    StudentStatus,
)
from drivedesk.services.class_service import ClassInput
from drivedesk.services.student_service import StudentInput, lines_to_list


class StudentPayload(BaseModel):
    first_name: str
    last_name: str
    phone: str
    email: str | None = None
    dni: str | None = None
    status: StudentStatus = StudentStatus.ACTIVE
    exam_readiness: ExamReadiness = ExamReadiness.NO
    registration_date: date | None = None
    price_per_class: float = Field(allow_inf_nan=False)
    promo_packs: int = 0
    notes: str = ''
    strengths: list[str] | str = Field(default_factory=list)
    weaknesses: list[str] | str = Field(default_factory=list)
    avatar_url: str | None = None

    def to_input(self) -> StudentInput:
        return StudentInput(
            first_name=self.first_name,
            last_name=self.last_name,
            phone=self.phone,
            email=self.email,
            dni=self.dni,
            status=self.status,
            exam_readiness=self.exam_readiness,
            registration_date=self.registration_date,
            price_per_class=self.price_per_class,
            promo_packs=self.promo_packs,
            notes=self.notes,
            strengths=_as_lines(self.strengths),
            weaknesses=_as_lines(self.weaknesses),
            avatar_url=self.avatar_url,
        )


def _as_lines(value: list[str] | str) -> tuple[str, ...]:
    if isinstance(value, str):
        return lines_to_list(value)
    return tuple(item.strip() for item in value if item and item.strip())


class ClassPayload(BaseModel):
    student_id: str
    date: date
    start_time: str
    duration_minutes: int = 60
    type: ClassType = ClassType.PRACTICE
    status: ClassStatus = ClassStatus.SCHEDULED
    payment_status: PaymentStatus = PaymentStatus.PENDING
    payment_method: PaymentMethod | None = None
    price: float = Field(allow_inf_nan=False)
    notes: str = ''
    location: str | None = None

    def to_input(self) -> ClassInput:
        return ClassInput(
            student_id=self.student_id,
            date=self.date,
            start_time=self.start_time,
            duration_minutes=self.duration_minutes,
            type=self.type,
            status=self.status,
            payment_status=self.payment_status,
            payment_method=self.payment_method,
            price=self.price,
            notes=self.notes,
            location=self.location,
        )


class LoginPayload(BaseModel):
    email: str
    password: str
    next: str = '/'
