from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.db import unit_of_work
from app.errors import NotFoundError, ValidationError
from app.models import Auction, AuctionDestination, Batch, Shelf
from app.schemas import CreateAuctionCommand
from app.services.allocation_service import INTERNAL_CODE_FAMILY, insert_with_allocated_code
from app.services.auction_lifecycle_service import list_on_external_channel
from app.services.channel_publisher import ChannelPublisher
from app.services.internal_code_service import next_internal_code
from app.services.publisher_factory import get_channel_publisher
from app.utils.logger import logger


def auction_to_dict(auction: Auction) -> dict:
    return {
        'id': auction.id,
        'internalCode': auction.internal_code,
        'upc': auction.upc,
        'title': auction.title,
        'description': auction.description,
        'image': auction.image,
        'brand': auction.brand,
        'category': auction.category,
        'condition': auction.condition,
        'weightOunces': auction.weight_ounces,
        'weightClass': auction.weight_class,
        'brandTier': auction.brand_tier,
        'stockQuantity': auction.stock_quantity,
        'cost': auction.cost,
        'retailPrice': auction.retail_price,
        'startingBid': auction.starting_bid,
        'currentBid': auction.current_bid,
        'bidCount': auction.bid_count,
        'status': auction.status.value,
        'destination': auction.destination.value,
        'endTime': auction.end_time,
        'externalStatus': auction.external_status,
        'externalListingId': auction.external_listing_id,
        'externalListingUrl': auction.external_listing_url,
        'externalPayload': auction.external_payload,
        'lastSyncAt': auction.last_sync_at,
        'lastExportedAt': auction.last_exported_at,
        'ebayStatus': auction.ebay_status,
        'shelfId': auction.shelf_id,
        'batchId': auction.batch_id,
        'scannedByStaffId': auction.scanned_by_staff_id,
        'soldAt': auction.sold_at,
        'soldPrice': auction.sold_price,
        'showOnHomepage': auction.show_on_homepage,
        'createdAt': auction.created_at,
    }


def list_auctions(db: Session) -> list[dict]:
    with unit_of_work(db, 'Failed to list auctions'):
        rows = db.execute(select(Auction).order_by(Auction.created_at.desc(), Auction.id.desc())).scalars().all()
        return [auction_to_dict(row) for row in rows]


def get_auction(db: Session, *, auction_id: int) -> dict:
    with unit_of_work(db, 'Failed to get auction'):
        auction = db.get(Auction, auction_id)
        if not auction:
            raise NotFoundError('Auction not found')
        return auction_to_dict(auction)


def _ensure_exists(db: Session, model, row_id: int, message: str) -> None:
    found = db.execute(select(model.id).where(model.id == row_id)).scalar_one_or_none()
    if found is None:
        raise ValidationError(message)


def create_auction(db: Session, command: CreateAuctionCommand, *, publisher: ChannelPublisher | None = None) -> dict:
    with unit_of_work(db, 'Failed to create auction'):
        _ensure_exists(db, Shelf, command.shelf_id, 'Shelf location not found')
        if command.batch_id is not None:
            _ensure_exists(db, Batch, command.batch_id, 'Batch not found')

        fields = command.model_dump(exclude={'destination'})

        auction = insert_with_allocated_code(
            db,
            family=INTERNAL_CODE_FAMILY,
            allocate=next_internal_code,
            build=lambda code: Auction(internal_code=code, destination=AuctionDestination.AUCTION, **fields),
        )
        if command.destination != AuctionDestination.AUCTION:
            list_on_external_channel(
                auction,
                command.destination,
                publisher or get_channel_publisher(),
                now=datetime.now(tz=timezone.utc),
            )
            db.flush()
        db.refresh(auction)
        result = auction_to_dict(auction)

    logger.info('Created auction %s (%s)', result['internalCode'], result['id'])
    return result
