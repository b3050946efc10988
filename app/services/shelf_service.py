from __future__ import annotations

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.db import unit_of_work
from app.errors import ConflictError, ValidationError
from app.models import Shelf
from app.schemas import CreateShelfCommand
from app.services.allocation_service import (
    acquire_allocation_lock,
    insert_with_allocated_code,
    shelf_code_family,
)
from app.services.internal_code_service import parse_code_number
from app.utils.logger import logger

CANONICAL_SHELF_COUNT = 32
AD_HOC_PREFIX = 'OAS'

# location -> (code prefix, name label)
LOCATIONS: dict[str, tuple[str, str]] = {
    'bins': ('BIN', 'Bins'),
    'things': ('THG', 'Things'),
    'flatrate': ('FLT', 'Flatrate'),
}
CANONICAL_LOCATIONS = ('bins', 'things')


def shelf_to_dict(shelf: Shelf) -> dict:
    return {
        'id': shelf.id,
        'name': shelf.name,
        'code': shelf.code,
        'itemCount': shelf.item_count,
        'createdAt': shelf.created_at,
    }


def format_shelf_code(prefix: str, number: int) -> str:
    # Two digits minimum; wider numbers keep their digits (OAS100).
    return f'{prefix}{number:02d}'


def canonical_shelf_specs() -> list[tuple[str, str]]:
    specs: list[tuple[str, str]] = []
    for i in range(1, CANONICAL_SHELF_COUNT + 1):
        for location in CANONICAL_LOCATIONS:
            prefix, label = LOCATIONS[location]
            specs.append((format_shelf_code(prefix, i), f'{label} Shelf {i}'))
    return specs


def _existing_codes(db: Session) -> set[str]:
    return {code.upper() for code in db.execute(select(Shelf.code)).scalars().all()}


def _code_exists(db: Session, code: str) -> bool:
    found = db.execute(select(Shelf.id).where(func.upper(Shelf.code) == code.upper()).limit(1)).scalar_one_or_none()
    return found is not None


def ensure_canonical_shelves(db: Session) -> int:
    with unit_of_work(db, 'Failed to provision shelves'):
        for location in CANONICAL_LOCATIONS:
            acquire_allocation_lock(db, shelf_code_family(LOCATIONS[location][0]))
        existing = _existing_codes(db)
        missing = [(code, name) for code, name in canonical_shelf_specs() if code not in existing]
        for code, name in missing:
            db.add(Shelf(name=name, code=code))
        db.flush()

    if missing:
        logger.info('Provisioned %s canonical shelves', len(missing))
    return len(missing)


def list_shelves(db: Session) -> list[dict]:
    ensure_canonical_shelves(db)
    with unit_of_work(db, 'Failed to list shelves'):
        rows = db.execute(select(Shelf).order_by(Shelf.id.asc())).scalars().all()
        return [shelf_to_dict(row) for row in rows]


def next_ad_hoc_shelf_code(db: Session) -> str:
    candidate = db.execute(select(func.count(Shelf.id))).scalar_one() + 1
    while _code_exists(db, format_shelf_code(AD_HOC_PREFIX, candidate)):
        candidate += 1
    return format_shelf_code(AD_HOC_PREFIX, candidate)


def next_location_number(db: Session, prefix: str) -> int:
    codes = db.execute(select(Shelf.code).where(func.upper(Shelf.code).like(f'{prefix}%'))).scalars().all()
    max_number = 0
    for code in codes:
        number = parse_code_number(code, prefix)
        if number is not None and number > max_number:
            max_number = number
    return max_number + 1


def create_shelf(db: Session, command: CreateShelfCommand) -> dict:
    name = command.name

    with unit_of_work(db, 'Failed to create shelf'):
        if command.location:
            prefix, label = LOCATIONS[command.location]
            numbers: dict[str, int] = {}

            def allocate(session: Session) -> str:
                numbers['last'] = next_location_number(session, prefix)
                return format_shelf_code(prefix, numbers['last'])

            def build(code: str) -> Shelf:
                return Shelf(name=name or f'{label} Shelf {numbers["last"]}', code=code)

            shelf = insert_with_allocated_code(db, family=shelf_code_family(prefix), allocate=allocate, build=build)
        elif command.code:
            if not name:
                raise ValidationError('Shelf name is required')
            if _code_exists(db, command.code):
                raise ConflictError('Shelf code already exists')
            shelf = Shelf(name=name, code=command.code)
            try:
                with db.begin_nested():
                    db.add(shelf)
                    db.flush()
            except IntegrityError as exc:
                raise ConflictError('Shelf code already exists', cause=str(exc.orig)) from exc
        else:
            if not name:
                raise ValidationError('Shelf name is required')
            shelf = insert_with_allocated_code(
                db,
                family=shelf_code_family(AD_HOC_PREFIX),
                allocate=next_ad_hoc_shelf_code,
                build=lambda code: Shelf(name=name, code=code),
            )
        db.refresh(shelf)
        result = shelf_to_dict(shelf)

    logger.info('Created shelf %s (%s)', result['code'], result['id'])
    return result
