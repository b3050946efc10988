from __future__ import annotations

from datetime import datetime, timedelta, timezone

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from app.config import settings
from app.db import unit_of_work
from app.errors import NotFoundError, ValidationError
from app.models import EXTERNAL_STATUS_LISTED, Auction, AuctionDestination, AuctionStatus, Shelf
from app.services.channel_publisher import ChannelPublisher, ListingRequest
from app.services.publisher_factory import get_channel_publisher
from app.utils.logger import logger


def _now() -> datetime:
    return datetime.now(tz=timezone.utc)


def publish_fields(auction: Auction) -> dict:
    return {
        'id': auction.id,
        'destination': auction.destination.value,
        'status': auction.status.value,
        'endTime': auction.end_time,
        'externalStatus': auction.external_status,
        'externalListingId': auction.external_listing_id,
        'externalListingUrl': auction.external_listing_url,
        'externalPayload': auction.external_payload,
    }


def _load_for_update(db: Session, auction_id: int) -> Auction:
    auction = db.execute(select(Auction).where(Auction.id == auction_id).with_for_update()).scalar_one_or_none()
    if not auction:
        raise NotFoundError('Auction not found')
    return auction


def clear_external_listing(auction: Auction) -> None:
    auction.external_status = None
    auction.external_listing_id = None
    auction.external_listing_url = None
    auction.external_payload = None
    auction.last_sync_at = None


def list_on_external_channel(
    auction: Auction,
    destination: AuctionDestination,
    publisher: ChannelPublisher,
    *,
    now: datetime,
) -> None:
    listing = publisher.create_listing(
        ListingRequest(
            auction_id=auction.id,
            destination=destination.value,
            title=auction.title,
            price=auction.retail_price,
        )
    )
    # The mirror fields are written together so a listing is never half-recorded.
    auction.destination = destination
    auction.external_status = EXTERNAL_STATUS_LISTED
    auction.external_listing_id = listing.listing_id
    auction.external_listing_url = listing.listing_url
    auction.external_payload = listing.payload
    auction.last_sync_at = now


def publish(
    db: Session,
    *,
    auction_id: int,
    destination: AuctionDestination | str,
    publisher: ChannelPublisher | None = None,
) -> dict:
    try:
        destination = AuctionDestination(destination)
    except ValueError as exc:
        raise ValidationError('Invalid destination') from exc

    now = _now()
    with unit_of_work(db, 'Failed to publish auction'):
        auction = _load_for_update(db, auction_id)
        if destination == AuctionDestination.AUCTION:
            auction.destination = AuctionDestination.AUCTION
            auction.status = AuctionStatus.ACTIVE
            auction.end_time = now + timedelta(days=settings.auction_window_days)
            clear_external_listing(auction)
        else:
            list_on_external_channel(auction, destination, publisher or get_channel_publisher(), now=now)
        db.flush()
        result = publish_fields(auction)

    logger.info('Published auction %s to %s', auction_id, destination.value)
    return result


def update_status(
    db: Session,
    *,
    auction_id: int,
    status: AuctionStatus | str,
    duration_days: float | None = None,
) -> dict:
    try:
        status = AuctionStatus(status)
    except ValueError as exc:
        raise ValidationError('Invalid status') from exc

    end_time = None
    if status == AuctionStatus.ACTIVE and duration_days is not None and duration_days > 0:
        try:
            end_time = _now() + timedelta(days=duration_days)
        except (OverflowError, ValueError) as exc:
            raise ValidationError('Invalid durationDays') from exc

    with unit_of_work(db, 'Failed to update auction status'):
        auction = _load_for_update(db, auction_id)
        auction.status = status
        if end_time is not None:
            auction.end_time = end_time
        db.flush()
        result = {'id': auction.id, 'status': auction.status.value, 'endTime': auction.end_time}

    logger.info('Auction %s status set to %s', auction_id, status.value)
    return result


def reassign_shelf(db: Session, *, auction_id: int, shelf_id: int | None) -> dict:
    with unit_of_work(db, 'Failed to update shelf'):
        if shelf_id is not None:
            found = db.execute(select(Shelf.id).where(Shelf.id == shelf_id)).scalar_one_or_none()
            if found is None:
                raise ValidationError('Shelf location not found')
        updated = db.execute(update(Auction).where(Auction.id == auction_id).values(shelf_id=shelf_id))
        if updated.rowcount == 0:
            raise NotFoundError('Auction not found')

    return {'id': auction_id, 'shelfId': shelf_id}
