from __future__ import annotations

import unittest
from unittest.mock import patch

from app.errors import AllocationExhaustedError
from app.models import Auction
from app.schemas import CreateAuctionCommand
from app.services.auction_service import create_auction
from app.services.internal_code_service import (
    derive_next_internal_code,
    next_internal_code,
    parse_code_number,
    preview_internal_code,
)
from db_support import DatabaseTestCase


class DeriveNextInternalCodeTests(unittest.TestCase):
    def test_first_code_when_none_exist(self) -> None:
        self.assertEqual(derive_next_internal_code([]), 'OA000000001')

    def test_next_code_follows_the_highest_existing(self) -> None:
        self.assertEqual(derive_next_internal_code(['OA000000001', 'OA000000007']), 'OA000000008')

    def test_unparsable_codes_are_ignored(self) -> None:
        codes = [None, '', 'OA', 'OAXYZ', 'OA12abc', 'OA000000003']
        self.assertEqual(derive_next_internal_code(codes), 'OA000000004')

    def test_parse_code_number_reads_trailing_digits(self) -> None:
        self.assertEqual(parse_code_number('OA000000042', 'OA'), 42)
        self.assertIsNone(parse_code_number('XX000000042', 'OA'))


class NextInternalCodeTests(DatabaseTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.shelf = self.add_shelf('BIN01')

    def _command(self, title: str) -> CreateAuctionCommand:
        return CreateAuctionCommand(title=title, shelf_id=self.shelf.id)

    def test_reads_existing_codes_from_the_store(self) -> None:
        self.add_auction('OA000000001')
        self.add_auction('OA000000007')
        self.assertEqual(next_internal_code(self.db), 'OA000000008')
        self.assertEqual(preview_internal_code(self.db), 'OA000000008')

    def test_serialized_allocations_are_strictly_increasing(self) -> None:
        numbers = []
        for index in range(5):
            created = create_auction(self.db, self._command(f'Item {index}'))
            numbers.append(parse_code_number(created['internalCode'], 'OA'))
        self.assertEqual(numbers, sorted(set(numbers)))
        self.assertEqual(numbers[0], 1)

    def test_collision_is_retried_with_a_fresh_code(self) -> None:
        self.add_auction('OA000000001')
        with patch(
            'app.services.auction_service.next_internal_code',
            side_effect=['OA000000001', 'OA000000002'],
        ) as allocate_mock:
            created = create_auction(self.db, self._command('Lamp'))

        self.assertEqual(created['internalCode'], 'OA000000002')
        self.assertEqual(allocate_mock.call_count, 2)
        self.assertEqual(self.count(Auction), 2)

    def test_allocation_gives_up_after_bounded_attempts(self) -> None:
        self.add_auction('OA000000001')
        with patch(
            'app.services.auction_service.next_internal_code',
            return_value='OA000000001',
        ) as allocate_mock:
            with self.assertRaises(AllocationExhaustedError):
                create_auction(self.db, self._command('Lamp'))

        self.assertEqual(allocate_mock.call_count, 5)
        self.assertEqual(self.count(Auction), 1)


if __name__ == '__main__':
    unittest.main()
