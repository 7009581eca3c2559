from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any

from drivedesk.config import settings
from drivedesk.domain.entities import ClassStatus, DrivingClass
from drivedesk.domain.snapshot import StoreSnapshot
from drivedesk.services.billing_service import is_promo_ordinal, ordinals_by_class, pack_position
from drivedesk.services.class_service import format_clock


VALID_VIEWS = {'week', 'month'}
MISSING_STUDENT_NAME = '(deleted student)'


@dataclass(frozen=True)
class ClassCard:
    class_id: str
    date: date
    start_time: str
    end_time: str
    student_id: str
    student_name: str
    student_found: bool
    ordinal: int
    pack_position: int
    is_promo: bool
    is_paid: bool
    status: str
    payment_status: str

    def as_dict(self) -> dict[str, Any]:
        return {
            'class_id': self.class_id,
            'date': self.date.isoformat(),
            'start_time': self.start_time,
            'end_time': self.end_time,
            'student_id': self.student_id,
            'student_name': self.student_name,
            'student_found': self.student_found,
            'ordinal': self.ordinal,
            'pack_position': self.pack_position,
            'is_promo': self.is_promo,
            'is_paid': self.is_paid,
            'status': self.status,
            'payment_status': self.payment_status,
        }


def start_of_week(day: date) -> date:
    return day - timedelta(days=day.weekday())


def shift(anchor: date, view: str, step: int) -> date:
    """Move the calendar anchor one week or one month back (-1) or forward (+1)."""
    if view == 'week':
        return anchor + timedelta(days=7 * step)
    month_index = anchor.year * 12 + (anchor.month - 1) + step
    year, month = divmod(month_index, 12)
    month += 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(anchor.day, last_day))


def week_days(anchor: date) -> list[date]:
    first = start_of_week(anchor)
    return [first + timedelta(days=offset) for offset in range(7)]


def month_cells(anchor: date) -> list[date | None]:
    """Days of the anchor's month, padded with ``None`` so the first week starts on Monday."""
    first = anchor.replace(day=1)
    days_in_month = calendar.monthrange(anchor.year, anchor.month)[1]
    cells: list[date | None] = [None] * first.weekday()
    cells.extend(first + timedelta(days=offset) for offset in range(days_in_month))
    return cells


def time_slots() -> list[str]:
    start = settings.calendar_hours_start * 60
    end = settings.calendar_hours_end * 60
    step = max(1, settings.calendar_slot_minutes)
    return [format_clock(minute) for minute in range(start, end, step)]


def build_cards(
    snapshot: StoreSnapshot,
    classes: list[DrivingClass],
) -> list[ClassCard]:
    ordinals = ordinals_by_class(snapshot.classes)
    cards = []
    for cls in classes:
        student = snapshot.find_student(cls.student_id)
        ordinal = ordinals.get(cls.id, 0)
        cards.append(
            ClassCard(
                class_id=cls.id,
                date=cls.date,
                start_time=cls.start_time,
                end_time=cls.end_time,
                student_id=cls.student_id,
                student_name=student.short_name if student else MISSING_STUDENT_NAME,
                student_found=student is not None,
                ordinal=ordinal,
                pack_position=pack_position(ordinal) if ordinal else 0,
                is_promo=student is not None and is_promo_ordinal(student, ordinal),
                is_paid=cls.is_paid,
                status=cls.status.value,
                payment_status=cls.payment_status.value,
            )
        )
    return cards


def get_calendar(
    snapshot: StoreSnapshot,
    *,
    anchor: date,
    view: str = 'week',
    student_id: str | None = None,
    status: ClassStatus | None = None,
) -> dict[str, Any]:
    if view not in VALID_VIEWS:
        raise ValueError(f'view must be one of {sorted(VALID_VIEWS)}')

    if view == 'week':
        days: list[date | None] = list(week_days(anchor))
    else:
        days = month_cells(anchor)
    visible = {day for day in days if day is not None}

    selected = [
        cls
        for cls in snapshot.classes
        if cls.date in visible
        and (not student_id or cls.student_id == student_id)
        and (status is None or cls.status == status)
    ]
    selected.sort(key=lambda cls: (cls.date, cls.start_time, cls.id))
    by_day: dict[str, list[dict[str, Any]]] = {}
    for card in build_cards(snapshot, selected):
        by_day.setdefault(card.date.isoformat(), []).append(card.as_dict())

    return {
        'view': view,
        'anchor': anchor.isoformat(),
        'previous': shift(anchor, view, -1).isoformat(),
        'next': shift(anchor, view, 1).isoformat(),
        'days': [
            None if day is None else {'date': day.isoformat(), 'classes': by_day.get(day.isoformat(), [])}
            for day in days
        ],
        'time_slots': time_slots() if view == 'week' else [],
    }
