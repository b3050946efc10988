from __future__ import annotations

import re

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.db import unit_of_work
from app.models import Auction

INTERNAL_CODE_PREFIX = 'OA'
INTERNAL_CODE_DIGITS = 9

_TRAILING_DIGITS = re.compile(r'(\d+)$')


def parse_code_number(code: str | None, prefix: str) -> int | None:
    if not code or not code.upper().startswith(prefix):
        return None
    match = _TRAILING_DIGITS.search(code[len(prefix) :])
    if not match:
        return None
    return int(match.group(1))


def format_internal_code(number: int) -> str:
    return f'{INTERNAL_CODE_PREFIX}{number:0{INTERNAL_CODE_DIGITS}d}'


def derive_next_internal_code(codes) -> str:
    max_number = 0
    for code in codes:
        number = parse_code_number(code, INTERNAL_CODE_PREFIX)
        if number is not None and number > max_number:
            max_number = number
    return format_internal_code(max_number + 1)


def next_internal_code(db: Session) -> str:
    codes = db.execute(
        select(Auction.internal_code).where(Auction.internal_code.like(f'{INTERNAL_CODE_PREFIX}%'))
    ).scalars().all()
    return derive_next_internal_code(codes)


def preview_internal_code(db: Session) -> str:
    with unit_of_work(db, 'Failed to get next internal code'):
        return next_internal_code(db)
