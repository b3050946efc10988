from __future__ import annotations

import zlib
from collections.abc import Callable
from typing import TypeVar

from sqlalchemy import text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.config import settings
from app.errors import AllocationExhaustedError
from app.utils.logger import logger

RowT = TypeVar('RowT')

INTERNAL_CODE_FAMILY = 'auction:OA'


def shelf_code_family(prefix: str) -> str:
    return f'shelf:{prefix.upper()}'


def allocation_lock_key(family: str) -> int:
    return zlib.crc32(family.encode('utf-8'))


def acquire_allocation_lock(db: Session, family: str) -> None:
    """Serialize allocators of one code family until the transaction ends.

    Only PostgreSQL has transaction-scoped advisory locks; elsewhere the
    unique constraints plus the retry loop in ``insert_with_allocated_code``
    are what keep codes distinct.
    """
    if db.get_bind().dialect.name != 'postgresql':
        return
    db.execute(text('SELECT pg_advisory_xact_lock(:key)'), {'key': allocation_lock_key(family)})


def insert_with_allocated_code(
    db: Session,
    *,
    family: str,
    allocate: Callable[[Session], str],
    build: Callable[[str], RowT],
    max_attempts: int | None = None,
) -> RowT:
    attempts = max_attempts or settings.allocation_max_attempts
    for attempt in range(1, attempts + 1):
        acquire_allocation_lock(db, family)
        code = allocate(db)
        row = build(code)
        try:
            with db.begin_nested():
                db.add(row)
                db.flush()
        except IntegrityError:
            logger.warning('Allocated code %s in %s collided (attempt %s/%s)', code, family, attempt, attempts)
            continue
        return row

    logger.error('Could not allocate a unique code in %s after %s attempts', family, attempts)
    raise AllocationExhaustedError(f'Could not allocate a unique code for {family}')
