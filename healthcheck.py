import sys

from alembic.config import Config
from alembic.runtime.migration import MigrationContext
from alembic.script import ScriptDirectory
from sqlalchemy import inspect, text

from drivedesk.config import settings
from drivedesk.db import SessionLocal, engine
from drivedesk.domain.entities import DocumentDecodeError, decode_class, decode_payment, decode_student
from drivedesk.models import COLLECTIONS
from drivedesk.services.document_store import DocumentStore


DECODERS = {
    'students': decode_student,
    'classes': decode_class,
    'payments': decode_payment,
}

GREEN = '\033[32m'
RED = '\033[31m'
RESET = '\033[0m'

CHECKS = []


def check(name):
    def register(fn):
        CHECKS.append((name, fn))
        return fn

    return register


@check('Database reachable')
def check_database():
    with engine.connect() as conn:
        conn.execute(text('SELECT 1'))
    return f'dialect={engine.dialect.name}'


@check('Collection tables present')
def check_collection_tables():
    existing = set(inspect(engine).get_table_names())
    missing = sorted(set(COLLECTIONS) - existing)
    if missing:
        raise RuntimeError(f'Missing tables: {missing} (run alembic upgrade head)')
    return ', '.join(sorted(COLLECTIONS))


@check('Alembic migration status at head')
def check_alembic_head():
    heads = set(ScriptDirectory.from_config(Config('alembic.ini')).get_heads())
    with engine.connect() as conn:
        current = MigrationContext.configure(conn).get_current_revision()
    if current is None:
        raise RuntimeError('No migration version in DB (run alembic upgrade head)')
    if current not in heads:
        raise RuntimeError(f'DB revision {current} is not at head {sorted(heads)}')
    return f'current={current}'


@check('Stored documents decode')
def check_collections_decode():
    documents = DocumentStore(SessionLocal)
    counts = []
    bad = []
    for collection, decoder in DECODERS.items():
        rows = documents.fetch_all(collection)
        for doc_id, doc in rows:
            try:
                decoder(doc_id, doc)
            except DocumentDecodeError:
                bad.append(f'{collection}/{doc_id}')
        counts.append(f'{collection}={len(rows)}')
    if bad:
        raise RuntimeError(f'Undecodable documents: {bad[:10]}')
    return ' '.join(counts)


@check('Identity service configured')
def check_identity_config():
    missing = []
    if not settings.identity_api_key.strip():
        missing.append('IDENTITY_API_KEY')
    if settings.app_env != 'local' and settings.auth_secret in ('', 'change-me'):
        missing.append('AUTH_SECRET')
    if missing:
        raise RuntimeError(f'Missing env vars: {", ".join(missing)}')
    return f'identity_api_base={settings.identity_api_base}'


def main():
    failed = 0
    for name, fn in CHECKS:
        try:
            detail = fn() or ''
        except Exception as exc:
            failed += 1
            print(f'{RED}FAIL{RESET} {name} - {exc}')
            continue
        print(f'{GREEN}PASS{RESET} {name}' + (f' - {detail}' if detail else ''))
    sys.exit(1 if failed else 0)


if __name__ == '__main__':
    main()
