from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends
from sqlalchemy.orm import Session

from app.db import get_db
from app.dependencies import as_http_error
from app.errors import ServiceError
from app.schemas import ImportSnapshotCommand, parse_command
from app.services.export_service import export_snapshot, import_snapshot

router = APIRouter(prefix='/api/admin', tags=['admin'])


@router.get('/export')
def export_data(db: Session = Depends(get_db)):
    try:
        return export_snapshot(db)
    except ServiceError as exc:
        raise as_http_error(exc) from exc


@router.post('/import')
def import_data(payload: Any = Body(default=None), db: Session = Depends(get_db)):
    try:
        command = parse_command(ImportSnapshotCommand, {} if payload is None else payload)
        counts = import_snapshot(db, command)
    except ServiceError as exc:
        raise as_http_error(exc) from exc
    return {'success': True, 'counts': counts}
