from __future__ import annotations

from sqlalchemy import delete
from sqlalchemy.orm import Session

from app.db import unit_of_work
from app.errors import NotFoundError, TransactionError
from app.models import Auction, AuctionTag, Bid, WatchlistEntry
from app.utils.logger import logger

DEPENDENT_MODELS = (AuctionTag, Bid, WatchlistEntry)


def delete_auction(db: Session, *, auction_id: int) -> dict:
    """Remove an auction together with every row that references it.

    All statements share one transaction. A missing auction rolls back the
    dependent deletes and raises ``NotFoundError``; any store failure rolls
    back everything and raises ``TransactionError``.
    """
    removed: dict[str, int] = {}
    with unit_of_work(db, 'Failed to delete auction', error_cls=TransactionError):
        for model in DEPENDENT_MODELS:
            result = db.execute(delete(model).where(model.auction_id == auction_id))
            removed[model.__tablename__] = result.rowcount
        deleted = db.execute(delete(Auction).where(Auction.id == auction_id))
        if deleted.rowcount == 0:
            raise NotFoundError('Auction not found')

    logger.info('Deleted auction %s with dependents %s', auction_id, removed)
    return {'success': True, 'id': auction_id}
