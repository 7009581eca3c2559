"""Class numbering, promo pricing and period billing aggregates.

Everything here is a pure function over a snapshot's students and classes:
nothing is stored, so ordinals and totals are always derived from the data
currently loaded. Prices on saved classes are never recomputed.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import date

from drivedesk.cache import cache, cache_key
from drivedesk.config import settings
from drivedesk.domain.entities import ClassStatus, DrivingClass, PaymentMethod, PaymentStatus, Student
from drivedesk.domain.snapshot import StoreSnapshot


TOP_STUDENTS_LIMIT = 10
ALL_TIME = 'all'


def chronological_key(cls: DrivingClass) -> tuple[date, str, str]:
    # Same (date, start_time) falls back to the record id.
    return (cls.date, cls.start_time, cls.id)


def student_timeline(classes: Iterable[DrivingClass], student_id: str) -> list[DrivingClass]:
    return sorted((cls for cls in classes if cls.student_id == student_id), key=chronological_key)


def class_ordinal(classes: Sequence[DrivingClass], class_id: str) -> int | None:
    """1-based position of the class in its student's chronological history."""
    target = next((cls for cls in classes if cls.id == class_id), None)
    if target is None:
        return None
    for index, cls in enumerate(student_timeline(classes, target.student_id), start=1):
        if cls.id == class_id:
            return index
    return None


def ordinals_by_class(classes: Sequence[DrivingClass]) -> dict[str, int]:
    by_student: dict[str, list[DrivingClass]] = {}
    for cls in classes:
        by_student.setdefault(cls.student_id, []).append(cls)
    ordinals: dict[str, int] = {}
    for rows in by_student.values():
        for index, cls in enumerate(sorted(rows, key=chronological_key), start=1):
            ordinals[cls.id] = index
    return ordinals


def next_ordinal(classes: Iterable[DrivingClass], student_id: str, *, exclude_class_id: str | None = None) -> int:
    existing = sum(1 for cls in classes if cls.student_id == student_id and cls.id != exclude_class_id)
    return existing + 1


def pack_position(ordinal: int, pack_size: int | None = None) -> int:
    size = pack_size or settings.promo_pack_size
    return ((ordinal - 1) % size) + 1


def promo_allotment(student: Student | None) -> int:
    if student is None:
        return 0
    return max(0, int(student.promo_packs)) * settings.promo_pack_size


def is_promo_ordinal(student: Student | None, ordinal: int | None) -> bool:
    if ordinal is None:
        return False
    return 1 <= ordinal <= promo_allotment(student)


@dataclass(frozen=True)
class PricingSuggestion:
    price: float
    payment_status: PaymentStatus
    is_promo: bool
    ordinal: int
    pack_position: int


def suggest_pricing(student: Student | None, ordinal: int) -> PricingSuggestion:
    if is_promo_ordinal(student, ordinal):
        return PricingSuggestion(
            price=settings.promo_class_price,
            payment_status=PaymentStatus.PAID,
            is_promo=True,
            ordinal=ordinal,
            pack_position=pack_position(ordinal),
        )
    price = student.price_per_class if student is not None else settings.default_class_price
    return PricingSuggestion(
        price=price,
        payment_status=PaymentStatus.PENDING,
        is_promo=False,
        ordinal=ordinal,
        pack_position=pack_position(ordinal),
    )


@dataclass(frozen=True)
class Period:
    year: int | None = None
    month: int | None = None

    @classmethod
    def parse(cls, raw: str | None) -> 'Period':
        value = (raw or '').strip().lower()
        if value in ('', ALL_TIME):
            return cls()
        try:
            year_raw, month_raw = value.split('-', 1)
            year, month = int(year_raw), int(month_raw)
        except ValueError as exc:
            raise ValueError('period must be YYYY-MM or "all"') from exc
        if month < 1 or month > 12 or year < 1:
            raise ValueError('period must be YYYY-MM or "all"')
        return cls(year=year, month=month)

    @property
    def is_all_time(self) -> bool:
        return self.year is None

    @property
    def key(self) -> str:
        if self.is_all_time:
            return ALL_TIME
        return f'{self.year:04d}-{self.month:02d}'

    @property
    def label(self) -> str:
        if self.is_all_time:
            return 'Full history'
        return f'Month: {self.key}'

    def contains(self, day: date) -> bool:
        if self.is_all_time:
            return True
        return day.year == self.year and day.month == self.month


@dataclass(frozen=True)
class StudentTotals:
    student_id: str
    name: str
    paid: float
    pending: float

    @property
    def total(self) -> float:
        return self.paid + self.pending


@dataclass(frozen=True)
class SeriesBucket:
    key: str
    label: str
    total: float


@dataclass(frozen=True)
class BillingSummary:
    period: Period
    paid_total: float = 0
    pending_total: float = 0
    cash_total: float = 0
    transfer_total: float = 0
    class_count: int = 0
    top_students: tuple[StudentTotals, ...] = field(default_factory=tuple)
    series: tuple[SeriesBucket, ...] = field(default_factory=tuple)

    @property
    def generated_total(self) -> float:
        return self.paid_total + self.pending_total

    @property
    def cash_share(self) -> float:
        return _share(self.cash_total, self.paid_total)

    @property
    def transfer_share(self) -> float:
        return _share(self.transfer_total, self.paid_total)

    def as_dict(self) -> dict:
        return {
            'period': self.period.key,
            'period_label': self.period.label,
            'paid_total': self.paid_total,
            'pending_total': self.pending_total,
            'generated_total': self.generated_total,
            'cash_total': self.cash_total,
            'transfer_total': self.transfer_total,
            'cash_share': self.cash_share,
            'transfer_share': self.transfer_share,
            'class_count': self.class_count,
            'top_students': [
                {
                    'student_id': row.student_id,
                    'name': row.name,
                    'paid': row.paid,
                    'pending': row.pending,
                    'total': row.total,
                }
                for row in self.top_students
            ],
            'series': [{'key': bucket.key, 'label': bucket.label, 'total': bucket.total} for bucket in self.series],
        }


def _share(part: float, whole: float) -> float:
    if not whole:
        return 0.0
    return round(part * 100.0 / whole, 2)


def is_paid_revenue(cls: DrivingClass) -> bool:
    return cls.payment_status == PaymentStatus.PAID


def is_pending_revenue(cls: DrivingClass) -> bool:
    return cls.status == ClassStatus.COMPLETED and cls.payment_status != PaymentStatus.PAID


def counts_toward_series(cls: DrivingClass) -> bool:
    return cls.status == ClassStatus.COMPLETED or cls.payment_status == PaymentStatus.PAID


def classes_in_period(classes: Iterable[DrivingClass], period: Period) -> list[DrivingClass]:
    return [cls for cls in classes if period.contains(cls.date)]


def _rank_students(students: Sequence[Student], classes: Sequence[DrivingClass]) -> tuple[StudentTotals, ...]:
    paid: dict[str, float] = {}
    pending: dict[str, float] = {}
    for cls in classes:
        if is_paid_revenue(cls):
            paid[cls.student_id] = paid.get(cls.student_id, 0) + cls.price
        elif is_pending_revenue(cls):
            pending[cls.student_id] = pending.get(cls.student_id, 0) + cls.price

    rows = [
        StudentTotals(
            student_id=student.id,
            name=student.short_name,
            paid=paid.get(student.id, 0),
            pending=pending.get(student.id, 0),
        )
        for student in students
    ]
    rows = [row for row in rows if row.total > 0]
    rows.sort(key=lambda row: (-row.total, row.name, row.student_id))
    return tuple(rows[:TOP_STUDENTS_LIMIT])


def _series(classes: Sequence[DrivingClass], period: Period) -> tuple[SeriesBucket, ...]:
    totals: dict[str, float] = {}
    for cls in classes:
        if not counts_toward_series(cls):
            continue
        key = cls.date.strftime('%Y-%m') if period.is_all_time else cls.date.isoformat()
        totals[key] = totals.get(key, 0) + cls.price
    buckets = []
    for key in sorted(totals):
        label = key if period.is_all_time else key[8:]
        buckets.append(SeriesBucket(key=key, label=label, total=totals[key]))
    return tuple(buckets)


def summarize_period(students: Sequence[Student], classes: Sequence[DrivingClass], period: Period) -> BillingSummary:
    in_period = classes_in_period(classes, period)
    paid_total = pending_total = cash_total = transfer_total = 0.0
    for cls in in_period:
        if is_paid_revenue(cls):
            paid_total += cls.price
            if cls.payment_method == PaymentMethod.CASH:
                cash_total += cls.price
            elif cls.payment_method == PaymentMethod.TRANSFER:
                transfer_total += cls.price
        elif is_pending_revenue(cls):
            pending_total += cls.price

    return BillingSummary(
        period=period,
        paid_total=paid_total,
        pending_total=pending_total,
        cash_total=cash_total,
        transfer_total=transfer_total,
        class_count=len(in_period),
        top_students=_rank_students(students, in_period),
        series=_series(in_period, period),
    )


def snapshot_summary(snapshot: StoreSnapshot, period: Period) -> BillingSummary:
    if not snapshot.source:
        return summarize_period(snapshot.students, snapshot.classes, period)
    key = cache_key('billing_summary', snapshot.source, snapshot.version, period.key)
    return cache.get_or_compute(key, lambda: summarize_period(snapshot.students, snapshot.classes, period))


def available_months(classes: Iterable[DrivingClass], today: date) -> list[str]:
    months = {cls.date.strftime('%Y-%m') for cls in classes}
    months.add(today.strftime('%Y-%m'))
    return sorted(months, reverse=True)


@dataclass(frozen=True)
class StudentBillingStats:
    completed_classes: int
    completed_amount: float
    paid_amount: float
    pending_amount: float


def student_billing_stats(classes: Iterable[DrivingClass], student_id: str) -> StudentBillingStats:
    completed_classes = 0
    completed_amount = paid_amount = pending_amount = 0.0
    for cls in classes:
        if cls.student_id != student_id:
            continue
        if cls.status == ClassStatus.COMPLETED:
            completed_classes += 1
            completed_amount += cls.price
        if is_paid_revenue(cls):
            paid_amount += cls.price
        elif is_pending_revenue(cls):
            pending_amount += cls.price
    return StudentBillingStats(
        completed_classes=completed_classes,
        completed_amount=completed_amount,
        paid_amount=paid_amount,
        pending_amount=pending_amount,
    )
