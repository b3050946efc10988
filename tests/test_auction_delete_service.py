from __future__ import annotations

import unittest
from decimal import Decimal
from unittest.mock import patch

from sqlalchemy.exc import OperationalError

from app.errors import NotFoundError, TransactionError
from app.models import Auction, AuctionTag, Bid, Tag, WatchlistEntry
from app.services.auction_delete_service import delete_auction
from db_support import DatabaseTestCase


class DeleteAuctionTests(DatabaseTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.tag = Tag(name='Kitchen', type='category')
        self.db.add(self.tag)
        self.db.commit()
        self.auction = self._auction_with_dependents('OA000000001')
        self.other = self._auction_with_dependents('OA000000002')

    def _auction_with_dependents(self, code: str) -> Auction:
        auction = self.add_auction(code)
        self.db.add_all(
            [
                AuctionTag(auction_id=auction.id, tag_id=self.tag.id),
                Bid(user_id='user-1', auction_id=auction.id, amount=Decimal('5'), auction_title=auction.title),
                WatchlistEntry(user_id='user-2', auction_id=auction.id, auction_title=auction.title),
            ]
        )
        self.db.commit()
        return auction

    def _dependents(self, auction_id: int) -> tuple[int, int, int]:
        return (
            self.count(AuctionTag, AuctionTag.auction_id == auction_id),
            self.count(Bid, Bid.auction_id == auction_id),
            self.count(WatchlistEntry, WatchlistEntry.auction_id == auction_id),
        )

    def test_removes_auction_and_every_dependent_row(self) -> None:
        auction_id = self.auction.id

        result = delete_auction(self.db, auction_id=auction_id)

        self.assertEqual(result, {'success': True, 'id': auction_id})
        self.assertEqual(self.count(Auction, Auction.id == auction_id), 0)
        self.assertEqual(self._dependents(auction_id), (0, 0, 0))

    def test_other_auctions_are_untouched(self) -> None:
        delete_auction(self.db, auction_id=self.auction.id)

        self.assertEqual(self.count(Auction, Auction.id == self.other.id), 1)
        self.assertEqual(self._dependents(self.other.id), (1, 1, 1))
        self.assertEqual(self.count(Tag), 1)

    def test_missing_auction_is_not_found(self) -> None:
        with self.assertRaises(NotFoundError):
            delete_auction(self.db, auction_id=9999)

        self.assertEqual(self.count(Auction), 2)

    def test_failure_mid_cascade_rolls_everything_back(self) -> None:
        auction_id = self.auction.id
        original_execute = self.db.execute
        statements = []

        def failing_execute(statement, *args, **kwargs):
            statements.append(statement)
            if len(statements) == 4:
                raise OperationalError(str(statement), {}, Exception('disk I/O error'))
            return original_execute(statement, *args, **kwargs)

        with patch.object(self.db, 'execute', side_effect=failing_execute):
            with self.assertRaises(TransactionError) as ctx:
                delete_auction(self.db, auction_id=auction_id)

        self.assertEqual(ctx.exception.message, 'Failed to delete auction')
        self.assertIn('disk I/O error', ctx.exception.cause)
        self.assertEqual(self.count(Auction, Auction.id == auction_id), 1)
        self.assertEqual(self._dependents(auction_id), (1, 1, 1))


if __name__ == '__main__':
    unittest.main()
