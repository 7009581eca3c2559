from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query

from drivedesk.core.router_guard import ensure_written, get_school_store, require_auth_user
from drivedesk.domain.entities import ClassStatus
from drivedesk.domain.snapshot import SchoolStore
from drivedesk.routers._serializers import class_out
from drivedesk.schemas import ClassPayload
from drivedesk.services.billing_service import ordinals_by_class
from drivedesk.services.calendar_service import MISSING_STUDENT_NAME
from drivedesk.services.class_service import ClassValidationError, delete_class, list_classes, save_class, suggest_for_editor
from drivedesk.route_logging import EndpointNameRoute


router = APIRouter(
    prefix='/api/classes',
    tags=['Classes'],
    route_class=EndpointNameRoute,
    dependencies=[Depends(require_auth_user)],
)


@router.get('')
def list_all(
    student_id: str | None = Query(default=None),
    status: ClassStatus | None = Query(default=None),
    start: date | None = Query(default=None),
    end: date | None = Query(default=None),
    store: SchoolStore = Depends(get_school_store),
):
    snapshot = store.snapshot()
    ordinals = ordinals_by_class(snapshot.classes)
    rows = list_classes(snapshot, student_id=student_id, status=status, start=start, end=end)
    out = []
    for cls in rows:
        student = snapshot.find_student(cls.student_id)
        name = student.full_name if student else MISSING_STUDENT_NAME
        out.append(class_out(cls, ordinal=ordinals.get(cls.id), student_name=name))
    return out


@router.get('/suggestion')
def editor_suggestion(
    student_id: str = Query(...),
    class_id: str | None = Query(default=None),
    store: SchoolStore = Depends(get_school_store),
):
    return suggest_for_editor(store.snapshot(), student_id, class_id).as_dict()


@router.get('/{class_id}')
def get_one(class_id: str, store: SchoolStore = Depends(get_school_store)):
    snapshot = store.snapshot()
    cls = snapshot.find_class(class_id)
    if cls is None:
        raise HTTPException(status_code=404, detail='Class not found')
    student = snapshot.find_student(cls.student_id)
    name = student.full_name if student else MISSING_STUDENT_NAME
    return class_out(cls, ordinal=ordinals_by_class(snapshot.classes).get(cls.id), student_name=name)


@router.post('', status_code=201)
def create(payload: ClassPayload, store: SchoolStore = Depends(get_school_store)):
    try:
        result = save_class(store, payload.to_input())
    except ClassValidationError as exc:
        raise HTTPException(status_code=400, detail=exc.errors) from exc
    ensure_written(result)
    return {'id': result.id}


@router.put('/{class_id}')
def update(class_id: str, payload: ClassPayload, store: SchoolStore = Depends(get_school_store)):
    try:
        result = save_class(store, payload.to_input(), class_id)
    except ClassValidationError as exc:
        raise HTTPException(status_code=400, detail=exc.errors) from exc
    ensure_written(result)
    return {'id': result.id}


@router.delete('/{class_id}')
def delete(class_id: str, store: SchoolStore = Depends(get_school_store)):
    result = ensure_written(delete_class(store, class_id))
    return {'id': result.id, 'deleted': True}
