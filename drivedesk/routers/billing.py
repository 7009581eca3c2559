from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import HTMLResponse

from drivedesk.core.router_guard import get_school_store, require_auth_user
from drivedesk.core.time_provider import default_time_provider
from drivedesk.domain.snapshot import SchoolStore
from drivedesk.services.billing_service import ALL_TIME, Period, available_months, snapshot_summary
from drivedesk.services.report_service import build_report, render_report_html
from drivedesk.route_logging import EndpointNameRoute


router = APIRouter(
    prefix='/api/billing',
    tags=['Billing'],
    route_class=EndpointNameRoute,
    dependencies=[Depends(require_auth_user)],
)


def _parse_period(value: str) -> Period:
    try:
        return Period.parse(value)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


@router.get('/summary')
def billing_summary(period: str = Query(default=ALL_TIME), store: SchoolStore = Depends(get_school_store)):
    return snapshot_summary(store.snapshot(), _parse_period(period)).as_dict()


@router.get('/months')
def billing_months(store: SchoolStore = Depends(get_school_store)):
    today = default_time_provider.today()
    return {'months': available_months(store.snapshot().classes, today), 'current': default_time_provider.current_month()}


@router.get('/report', response_class=HTMLResponse)
def billing_report(period: str = Query(default=ALL_TIME), store: SchoolStore = Depends(get_school_store)):
    report = build_report(store.snapshot(), _parse_period(period))
    return HTMLResponse(
        content=render_report_html(report),
        headers={'Content-Disposition': f'attachment; filename="{report.filename}"'},
    )
