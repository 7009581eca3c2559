from __future__ import annotations

import json
import logging
import threading
import uuid
from dataclasses import dataclass
from typing import Any, Callable

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from drivedesk.metrics import record_store_event
from drivedesk.models import COLLECTIONS


logger = logging.getLogger(__name__)

Document = dict[str, Any]
Listener = Callable[[list[tuple[str, Document]]], None]


class _DeleteField:
    def __repr__(self) -> str:
        return 'DELETE_FIELD'


DELETE_FIELD: Any = _DeleteField()


class StoreError(RuntimeError):
    """Raised inside the store when a write cannot be applied."""

    def __init__(self, message: str, *, code: str = 'store_error') -> None:
        super().__init__(message)
        self.code = code


@dataclass(frozen=True)
class WriteResult:
    ok: bool
    id: str | None = None
    error: str = ''
    code: str = ''

    @classmethod
    def success(cls, doc_id: str) -> 'WriteResult':
        return cls(ok=True, id=doc_id)

    @classmethod
    def failure(cls, doc_id: str | None, exc: Exception) -> 'WriteResult':
        code = getattr(exc, 'code', 'store_error')
        return cls(ok=False, id=doc_id, error=str(exc) or 'Store write failed', code=code)


def _new_id() -> str:
    return uuid.uuid4().hex


def _loads(raw: str | None) -> Document:
    try:
        payload = json.loads(raw or '{}')
    except json.JSONDecodeError:
        return {}
    return payload if isinstance(payload, dict) else {}


def _dumps(doc: Document) -> str:
    return json.dumps(doc, default=str, sort_keys=True)


def _strip_deletes(fields: Document) -> Document:
    return {key: value for key, value in fields.items() if value is not DELETE_FIELD}


class DocumentStore:
    """Write-through access to the ``students``/``classes``/``payments`` collections.

    Listeners registered with :meth:`subscribe` get the whole collection right
    away and again after every committed write to it. Writes report their
    outcome as a :class:`WriteResult` instead of raising.
    """

    def __init__(self, session_factory: sessionmaker | Callable[[], Session]) -> None:
        self._session_factory = session_factory
        self._lock = threading.RLock()
        self._listeners: dict[str, list[Listener]] = {name: [] for name in COLLECTIONS}

    def _model(self, collection: str):
        model = COLLECTIONS.get(collection)
        if model is None:
            raise StoreError(f'Unknown collection {collection}', code='unknown_collection')
        return model

    def fetch_all(self, collection: str) -> list[tuple[str, Document]]:
        model = self._model(collection)
        db = self._session_factory()
        try:
            rows = db.query(model).order_by(model.created_at.asc(), model.id.asc()).all()
            return [(row.id, _loads(row.data_json)) for row in rows]
        finally:
            db.close()

    def subscribe(self, collection: str, listener: Listener) -> Callable[[], None]:
        self._model(collection)
        with self._lock:
            self._listeners[collection].append(listener)
        self._notify_one(collection, listener, self.fetch_all(collection))

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners[collection]:
                    self._listeners[collection].remove(listener)

        return unsubscribe

    def _notify_one(self, collection: str, listener: Listener, docs: list[tuple[str, Document]]) -> None:
        try:
            listener(docs)
        except Exception:
            logger.exception('store_listener_failed collection=%s', collection)

    def _publish(self, collection: str) -> None:
        with self._lock:
            listeners = list(self._listeners[collection])
        if not listeners:
            return
        try:
            docs = self.fetch_all(collection)
        except SQLAlchemyError:
            logger.exception('store_publish_failed collection=%s', collection)
            return
        for listener in listeners:
            self._notify_one(collection, listener, docs)

    def _write(self, collection: str, op: str, doc_id: str | None, apply: Callable[[Session, Any], str]) -> WriteResult:
        try:
            model = self._model(collection)
        except StoreError as exc:
            return WriteResult.failure(doc_id, exc)
        db = self._session_factory()
        try:
            written_id = apply(db, model)
            db.commit()
        except StoreError as exc:
            db.rollback()
            logger.warning('store_write_rejected collection=%s op=%s id=%s reason=%s', collection, op, doc_id, exc)
            record_store_event(collection, op, exc.code)
            return WriteResult.failure(doc_id, exc)
        except SQLAlchemyError as exc:
            db.rollback()
            logger.exception('store_write_failed collection=%s op=%s id=%s', collection, op, doc_id)
            record_store_event(collection, op, 'store_error')
            return WriteResult.failure(doc_id, StoreError(f'Could not {op} document'))
        finally:
            db.close()
        logger.info('store_write collection=%s op=%s id=%s', collection, op, written_id)
        record_store_event(collection, op, 'ok')
        self._publish(collection)
        return WriteResult.success(written_id)

    def add(self, collection: str, document: Document) -> WriteResult:
        def apply(db: Session, model) -> str:
            doc_id = _new_id()
            db.add(model(id=doc_id, data_json=_dumps(_strip_deletes(document))))
            return doc_id

        return self._write(collection, 'add', None, apply)

    def update(self, collection: str, doc_id: str, fields: Document) -> WriteResult:
        def apply(db: Session, model) -> str:
            row = db.query(model).filter(model.id == doc_id).first()
            if not row:
                raise StoreError(f'No document {doc_id} in {collection}', code='not_found')
            merged = _loads(row.data_json)
            for key, value in fields.items():
                if value is DELETE_FIELD:
                    merged.pop(key, None)
                else:
                    merged[key] = value
            row.data_json = _dumps(merged)
            return row.id

        return self._write(collection, 'update', doc_id, apply)

    def delete(self, collection: str, doc_id: str) -> WriteResult:
        def apply(db: Session, model) -> str:
            row = db.query(model).filter(model.id == doc_id).first()
            if not row:
                raise StoreError(f'No document {doc_id} in {collection}', code='not_found')
            db.delete(row)
            return doc_id

        return self._write(collection, 'delete', doc_id, apply)
