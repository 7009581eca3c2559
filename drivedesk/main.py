from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI

from drivedesk.cache import cache
from drivedesk.config import settings
from drivedesk.db import Base, SessionLocal, engine
from drivedesk.domain.snapshot import SchoolStore
from drivedesk.metrics import flush_metrics
from drivedesk.route_logging import EndpointNameRoute
from drivedesk.routers import auth, billing, calendar, classes, payments, students
from drivedesk.services.document_store import DocumentStore
from drivedesk.session_middleware import SessionAuthMiddleware

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s %(levelname)s %(name)s %(message)s',
)


def create_school_store(session_factory=SessionLocal) -> SchoolStore:
    store = SchoolStore(DocumentStore(session_factory))
    store.on_change(lambda snapshot: cache.invalidate_prefix(f'billing_summary:{snapshot.source}:'))
    return store


@asynccontextmanager
async def lifespan(app: FastAPI):
    Base.metadata.create_all(bind=engine)
    store = getattr(app.state, 'school_store', None) or create_school_store()
    store.start()
    app.state.school_store = store
    yield
    store.stop()
    flush_metrics()


app = FastAPI(title=settings.app_name, version='0.1.0', lifespan=lifespan)
app.router.route_class = EndpointNameRoute
app.add_middleware(SessionAuthMiddleware)

app.include_router(auth.router)
app.include_router(students.router)
app.include_router(classes.router)
app.include_router(billing.router)
app.include_router(calendar.router)
app.include_router(payments.router)


@app.get('/')
def health():
    return {'app': settings.app_name, 'status': 'ok'}


@app.get('/health')
def healthcheck():
    return {'status': 'ok'}
