from __future__ import annotations

import math
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from app.config import settings
from app.db import unit_of_work
from app.errors import ValidationError
from app.models import (
    EBAY_STATUS_EXPORTED,
    EXTERNAL_STATUS_LISTED,
    Auction,
    AuctionDestination,
    AuctionStatus,
    Shelf,
    Tag,
    TagType,
)
from app.schemas import ImportSnapshotCommand
from app.services.allocation_service import INTERNAL_CODE_FAMILY, insert_with_allocated_code
from app.services.auction_service import auction_to_dict
from app.services.internal_code_service import next_internal_code
from app.services.shelf_service import shelf_to_dict
from app.utils.logger import logger


def _now() -> datetime:
    return datetime.now(tz=timezone.utc)


def tag_to_dict(tag: Tag) -> dict:
    return {'id': tag.id, 'name': tag.name, 'type': tag.type, 'createdAt': tag.created_at}


def mark_exported(db: Session, *, ids: set[int]) -> int:
    if not ids:
        raise ValidationError('ids array is required')
    if any(isinstance(row_id, bool) or not isinstance(row_id, int) or row_id <= 0 for row_id in ids):
        raise ValidationError('ids must be positive integers')

    with unit_of_work(db, 'Failed to mark auctions as exported'):
        result = db.execute(
            update(Auction)
            .where(Auction.id.in_(sorted(ids)))
            .values(last_exported_at=_now(), ebay_status=EBAY_STATUS_EXPORTED)
        )
        count = result.rowcount or 0

    logger.info('Marked %s of %s auctions as exported', count, len(ids))
    return count


def export_snapshot(db: Session) -> dict:
    # Three independent reads; the snapshot is not point-in-time across tables.
    with unit_of_work(db, 'Failed to export data'):
        auctions = db.execute(select(Auction).order_by(Auction.created_at.desc(), Auction.id.desc())).scalars().all()
        shelves = db.execute(select(Shelf).order_by(Shelf.id.asc())).scalars().all()
        tags = db.execute(select(Tag).order_by(Tag.id.asc())).scalars().all()
    return {
        'version': settings.export_format_version,
        'exportedAt': _now().isoformat(),
        'data': {
            'auctions': [auction_to_dict(row) for row in auctions],
            'shelves': [shelf_to_dict(row) for row in shelves],
            'tags': [tag_to_dict(row) for row in tags],
        },
    }


def _pick(source: dict, *keys: str) -> Any:
    for key in keys:
        if key in source and source[key] is not None:
            return source[key]
    return None


def _clamp(value: Any, max_length: int) -> str | None:
    if not isinstance(value, str):
        return None
    value = value.strip()
    return value[:max_length] if value else None


def _to_int(value: Any, fallback: int | None = None) -> int | None:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else fallback
    if isinstance(value, str) and value.strip():
        try:
            return int(value.strip())
        except ValueError:
            return fallback
    return fallback


def _to_decimal(value: Any, fallback: Decimal | None = None) -> Decimal | None:
    if value is None or isinstance(value, bool) or value == '':
        return fallback
    try:
        return Decimal(str(value))
    except InvalidOperation:
        return fallback


def _to_datetime(value: Any) -> datetime | None:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(str(value).replace('Z', '+00:00'))
    except ValueError:
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def _to_enum(enum_cls, value: Any, fallback):
    try:
        return enum_cls(value)
    except ValueError:
        return fallback


def _import_shelves(db: Session, rows: list[dict]) -> int:
    existing = {code.upper() for code in db.execute(select(Shelf.code)).scalars().all()}
    created = 0
    for source in rows:
        code = _clamp(_pick(source, 'code', 'Code'), 10)
        name = _clamp(_pick(source, 'name', 'Name'), 50)
        if not code or not name or code.upper() in existing:
            continue
        db.add(Shelf(name=name, code=code.upper()))
        existing.add(code.upper())
        created += 1
    db.flush()
    return created


def _import_tags(db: Session, rows: list[dict]) -> int:
    existing = {name.lower() for name in db.execute(select(Tag.name)).scalars().all()}
    created = 0
    for source in rows:
        name = _clamp(_pick(source, 'name', 'Name'), 100)
        tag_type = _clamp(_pick(source, 'type', 'Type'), 20) or TagType.CATEGORY.value
        if not name or name.lower() in existing:
            continue
        db.add(Tag(name=name, type=tag_type))
        existing.add(name.lower())
        created += 1
    db.flush()
    return created


def _auction_fields(source: dict, known_shelf_ids: set[int]) -> dict:
    shelf_id = _to_int(_pick(source, 'shelfId', 'shelf_id'))
    destination = _to_enum(AuctionDestination, _pick(source, 'destination'), AuctionDestination.AUCTION)
    fields = {
        'upc': _clamp(_pick(source, 'upc', 'upcCode', 'upc_code'), 20),
        'title': _clamp(_pick(source, 'title', 'Title'), 500),
        'description': _clamp(_pick(source, 'description'), 10000),
        'image': _clamp(_pick(source, 'image', 'imageUrl', 'image_url'), 1000),
        'brand': _clamp(_pick(source, 'brand'), 200),
        'category': _clamp(_pick(source, 'category'), 200),
        'condition': _clamp(_pick(source, 'condition'), 20),
        'weight_ounces': _to_int(_pick(source, 'weightOunces', 'weight_ounces')),
        'weight_class': _clamp(_pick(source, 'weightClass', 'weight_class'), 20),
        'brand_tier': _clamp(_pick(source, 'brandTier', 'brand_tier'), 5),
        'stock_quantity': _to_int(_pick(source, 'stockQuantity', 'stock_quantity'), 1),
        'cost': _to_decimal(_pick(source, 'cost'), Decimal('200')),
        'retail_price': _to_decimal(_pick(source, 'retailPrice', 'retail_price')),
        'starting_bid': _to_decimal(_pick(source, 'startingBid', 'starting_bid'), Decimal('1')),
        'current_bid': _to_decimal(_pick(source, 'currentBid', 'current_bid'), Decimal('0')),
        'bid_count': _to_int(_pick(source, 'bidCount', 'bid_count'), 0),
        'status': _to_enum(AuctionStatus, _pick(source, 'status'), AuctionStatus.DRAFT),
        'destination': destination,
        'end_time': _to_datetime(_pick(source, 'endTime', 'end_time')),
        'last_exported_at': _to_datetime(_pick(source, 'lastExportedAt', 'last_exported_at')),
        'ebay_status': _clamp(_pick(source, 'ebayStatus', 'ebay_status'), 20),
        'shelf_id': shelf_id if shelf_id in known_shelf_ids else None,
        'scanned_by_staff_id': _to_int(_pick(source, 'scannedByStaffId', 'scanned_by_staff_id')),
        'sold_at': _to_datetime(_pick(source, 'soldAt', 'sold_at')),
        'sold_price': _to_decimal(_pick(source, 'soldPrice', 'sold_price')),
        'show_on_homepage': bool(_to_int(_pick(source, 'showOnHomepage', 'show_on_homepage'), 0)),
    }

    listing_id = _clamp(_pick(source, 'externalListingId', 'external_listing_id'), 100)
    listing_url = _clamp(_pick(source, 'externalListingUrl', 'external_listing_url'), 500)
    payload = _pick(source, 'externalPayload', 'external_payload')
    if destination != AuctionDestination.AUCTION and listing_id and listing_url and isinstance(payload, dict):
        fields.update(
            external_status=EXTERNAL_STATUS_LISTED,
            external_listing_id=listing_id,
            external_listing_url=listing_url,
            external_payload=payload,
            last_sync_at=_to_datetime(_pick(source, 'lastSyncAt', 'last_sync_at')),
        )
    else:
        # An incomplete mirror is not restored; the item falls back to the native channel.
        fields['destination'] = AuctionDestination.AUCTION

    created_at = _to_datetime(_pick(source, 'createdAt', 'created_at'))
    if created_at:
        fields['created_at'] = created_at
    return fields


def _import_auctions(db: Session, rows: list[dict]) -> tuple[int, int]:
    existing_codes = set(db.execute(select(Auction.internal_code)).scalars().all())
    known_shelf_ids = set(db.execute(select(Shelf.id)).scalars().all())
    created = 0
    skipped = 0
    for source in rows:
        fields = _auction_fields(source, known_shelf_ids)
        if not fields['title']:
            skipped += 1
            continue

        internal_code = _clamp(_pick(source, 'internalCode', 'internal_code', 'internalcode'), 20)
        if internal_code and internal_code in existing_codes:
            skipped += 1
            continue

        if internal_code:
            db.add(Auction(internal_code=internal_code, **fields))
            db.flush()
        else:
            auction = insert_with_allocated_code(
                db,
                family=INTERNAL_CODE_FAMILY,
                allocate=next_internal_code,
                build=lambda code: Auction(internal_code=code, **fields),
            )
            internal_code = auction.internal_code
        existing_codes.add(internal_code)
        created += 1
    return created, skipped


def import_snapshot(db: Session, command: ImportSnapshotCommand) -> dict:
    counts = {'auctions': 0, 'shelves': 0, 'tags': 0, 'skipped': 0}
    with unit_of_work(db, 'Failed to import data'):
        if command.options.import_shelves:
            counts['shelves'] = _import_shelves(db, command.data.get('shelves', []))
        if command.options.import_tags:
            counts['tags'] = _import_tags(db, command.data.get('tags', []))
        counts['auctions'], counts['skipped'] = _import_auctions(db, command.data.get('auctions', []))

    logger.info('Import finished: %s', counts)
    return counts
