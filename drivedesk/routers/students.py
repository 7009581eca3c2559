from fastapi import APIRouter, Depends, HTTPException, Query

from drivedesk.core.router_guard import ensure_written, get_school_store, require_auth_user
from drivedesk.domain.snapshot import SchoolStore
from drivedesk.routers._serializers import class_out, student_out
from drivedesk.schemas import StudentPayload
from drivedesk.services.billing_service import ordinals_by_class
from drivedesk.services.student_service import (
    StudentValidationError,
    create_student,
    delete_student,
    student_detail,
    student_rows,
    update_student,
)
from drivedesk.route_logging import EndpointNameRoute


router = APIRouter(
    prefix='/api/students',
    tags=['Students'],
    route_class=EndpointNameRoute,
    dependencies=[Depends(require_auth_user)],
)


@router.get('')
def list_students(q: str = Query(default=''), store: SchoolStore = Depends(get_school_store)):
    return [
        {
            **student_out(row['student']),
            'completed_classes': row['completed_classes'],
            'total_classes': row['total_classes'],
        }
        for row in student_rows(store.snapshot(), q)
    ]


@router.post('', status_code=201)
def create(payload: StudentPayload, store: SchoolStore = Depends(get_school_store)):
    try:
        result = create_student(store, payload.to_input())
    except StudentValidationError as exc:
        raise HTTPException(status_code=400, detail=exc.errors) from exc
    ensure_written(result)
    return {'id': result.id}


@router.get('/{student_id}')
def get_one(student_id: str, store: SchoolStore = Depends(get_school_store)):
    snapshot = store.snapshot()
    detail = student_detail(snapshot, student_id)
    if detail is None:
        raise HTTPException(status_code=404, detail='Student not found')
    ordinals = ordinals_by_class(snapshot.classes)
    return {
        'student': student_out(detail.student),
        'classes': [class_out(cls, ordinal=ordinals.get(cls.id)) for cls in detail.classes],
        'billing': {
            'completed_classes': detail.stats.completed_classes,
            'completed_amount': detail.stats.completed_amount,
            'paid_amount': detail.stats.paid_amount,
            'pending_amount': detail.stats.pending_amount,
        },
    }


@router.put('/{student_id}')
def update(student_id: str, payload: StudentPayload, store: SchoolStore = Depends(get_school_store)):
    try:
        result = update_student(store, student_id, payload.to_input())
    except StudentValidationError as exc:
        raise HTTPException(status_code=400, detail=exc.errors) from exc
    ensure_written(result)
    return {'id': result.id}


@router.delete('/{student_id}')
def delete(student_id: str, store: SchoolStore = Depends(get_school_store)):
    result = ensure_written(delete_student(store, student_id))
    return {'id': result.id, 'deleted': True}
