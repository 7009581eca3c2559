from fastapi import APIRouter, Depends, Query

from drivedesk.core.router_guard import get_school_store, require_auth_user
from drivedesk.domain.snapshot import SchoolStore
from drivedesk.routers._serializers import payment_out
from drivedesk.route_logging import EndpointNameRoute


router = APIRouter(
    prefix='/api/payments',
    tags=['Payments'],
    route_class=EndpointNameRoute,
    dependencies=[Depends(require_auth_user)],
)


@router.get('')
def list_payments(student_id: str | None = Query(default=None), store: SchoolStore = Depends(get_school_store)):
    rows = [p for p in store.snapshot().payments if not student_id or p.student_id == student_id]
    rows.sort(key=lambda p: (p.date, p.id), reverse=True)
    return [payment_out(p) for p in rows]
