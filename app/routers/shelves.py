from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends
from sqlalchemy.orm import Session

from app.db import get_db
from app.dependencies import as_http_error
from app.errors import ServiceError
from app.schemas import CreateShelfCommand, parse_command
from app.services.shelf_service import create_shelf, list_shelves

router = APIRouter(prefix='/api/shelves', tags=['shelves'])


@router.get('')
def shelves_index(db: Session = Depends(get_db)):
    try:
        return list_shelves(db)
    except ServiceError as exc:
        raise as_http_error(exc) from exc


@router.post('', status_code=201)
def shelves_create(payload: Any = Body(default=None), db: Session = Depends(get_db)):
    try:
        command = parse_command(CreateShelfCommand, {} if payload is None else payload)
        return create_shelf(db, command)
    except ServiceError as exc:
        raise as_http_error(exc) from exc
