from __future__ import annotations

import logging
import threading
import uuid
from dataclasses import dataclass, field, replace
from typing import Any, Callable

from drivedesk.domain.entities import (
    DocumentDecodeError,
    DrivingClass,
    Payment,
    Student,
    decode_class,
    decode_payment,
    decode_student,
    encode_payment,
)
from drivedesk.services.document_store import DocumentStore, WriteResult


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StoreSnapshot:
    students: tuple[Student, ...] = ()
    classes: tuple[DrivingClass, ...] = ()
    payments: tuple[Payment, ...] = ()
    version: int = 0
    source: str = ''
    _students_by_id: dict[str, Student] = field(default_factory=dict, init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, '_students_by_id', {student.id: student for student in self.students})

    def find_student(self, student_id: str | None) -> Student | None:
        if not student_id:
            return None
        return self._students_by_id.get(student_id)

    def find_class(self, class_id: str | None) -> DrivingClass | None:
        if not class_id:
            return None
        for cls in self.classes:
            if cls.id == class_id:
                return cls
        return None

    def classes_for(self, student_id: str) -> list[DrivingClass]:
        return [cls for cls in self.classes if cls.student_id == student_id]


def _decode_all(collection: str, decoder: Callable[[str, dict], Any], docs: list[tuple[str, dict]]) -> tuple:
    items = []
    for doc_id, doc in docs:
        try:
            items.append(decoder(doc_id, doc))
        except DocumentDecodeError as exc:
            logger.warning('document_skipped collection=%s id=%s reason=%s', collection, doc_id, exc)
    return tuple(items)


_DECODERS: dict[str, Callable[[str, dict], Any]] = {
    'students': decode_student,
    'classes': decode_class,
    'payments': decode_payment,
}


class SchoolStore:
    """Live, read-only projection of the three collections plus typed write commands.

    Each subscription push replaces one collection wholesale and bumps the
    snapshot version; readers always get an immutable :class:`StoreSnapshot`.
    Writes go straight to the :class:`DocumentStore`; the snapshot only changes
    when the store pushes the committed collection back.
    """

    def __init__(self, documents: DocumentStore) -> None:
        self._documents = documents
        self._lock = threading.Lock()
        self._snapshot = StoreSnapshot(source=uuid.uuid4().hex)
        self._unsubscribers: list[Callable[[], None]] = []
        self._listeners: list[Callable[[StoreSnapshot], None]] = []

    @property
    def documents(self) -> DocumentStore:
        return self._documents

    def start(self) -> None:
        if self._unsubscribers:
            return
        for collection in _DECODERS:
            self._unsubscribers.append(self._documents.subscribe(collection, self._receiver(collection)))
        logger.info('school_store_started version=%s', self._snapshot.version)

    def stop(self) -> None:
        while self._unsubscribers:
            self._unsubscribers.pop()()
        logger.info('school_store_stopped')

    def on_change(self, listener: Callable[[StoreSnapshot], None]) -> Callable[[], None]:
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def _receiver(self, collection: str) -> Callable[[list[tuple[str, dict]]], None]:
        decoder = _DECODERS[collection]

        def receive(docs: list[tuple[str, dict]]) -> None:
            items = _decode_all(collection, decoder, docs)
            with self._lock:
                self._snapshot = replace(self._snapshot, **{collection: items, 'version': self._snapshot.version + 1})
                current = self._snapshot
            logger.debug('snapshot_replaced collection=%s count=%s version=%s', collection, len(items), current.version)
            for listener in list(self._listeners):
                listener(current)

        return receive

    def snapshot(self) -> StoreSnapshot:
        with self._lock:
            return self._snapshot

    def find_student(self, student_id: str | None) -> Student | None:
        return self.snapshot().find_student(student_id)

    def add_student(self, document: dict[str, Any]) -> WriteResult:
        return self._documents.add('students', document)

    def update_student(self, student_id: str, fields: dict[str, Any]) -> WriteResult:
        return self._documents.update('students', student_id, fields)

    def delete_student(self, student_id: str) -> WriteResult:
        return self._documents.delete('students', student_id)

    def add_class(self, document: dict[str, Any]) -> WriteResult:
        return self._documents.add('classes', document)

    def update_class(self, class_id: str, fields: dict[str, Any]) -> WriteResult:
        return self._documents.update('classes', class_id, fields)

    def delete_class(self, class_id: str) -> WriteResult:
        return self._documents.delete('classes', class_id)

    def add_payment(self, payment: Payment) -> WriteResult:
        return self._documents.add('payments', encode_payment(payment))

    def delete_payment(self, payment_id: str) -> WriteResult:
        return self._documents.delete('payments', payment_id)
