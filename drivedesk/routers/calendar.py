from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query

from drivedesk.core.router_guard import get_school_store, require_auth_user
from drivedesk.core.time_provider import default_time_provider
from drivedesk.domain.entities import ClassStatus
from drivedesk.domain.snapshot import SchoolStore
from drivedesk.services.calendar_service import get_calendar
from drivedesk.route_logging import EndpointNameRoute


router = APIRouter(
    prefix='/api/calendar',
    tags=['Calendar'],
    route_class=EndpointNameRoute,
    dependencies=[Depends(require_auth_user)],
)


@router.get('')
def calendar_view(
    view: str = Query(default='week'),
    anchor: date | None = Query(default=None, alias='date'),
    student_id: str | None = Query(default=None),
    status: ClassStatus | None = Query(default=None),
    store: SchoolStore = Depends(get_school_store),
):
    try:
        return get_calendar(
            store.snapshot(),
            anchor=anchor or default_time_provider.today(),
            view=view,
            student_id=student_id,
            status=status,
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
