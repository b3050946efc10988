from __future__ import annotations

import unittest

from sqlalchemy import select

from app.errors import ValidationError
from app.models import EBAY_STATUS_EXPORTED, Auction, AuctionDestination, Shelf, Tag
from app.schemas import ImportSnapshotCommand, MarkExportedCommand, parse_command
from app.services.export_service import export_snapshot, import_snapshot, mark_exported
from db_support import DatabaseTestCase


class MarkExportedTests(DatabaseTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.auctions = [self.add_auction(f'OA{index:09d}') for index in range(1, 5)]

    def test_counts_only_matching_rows(self) -> None:
        count = mark_exported(self.db, ids={3, 4, 999})

        self.assertEqual(count, 2)
        rows = self.db.execute(select(Auction).where(Auction.id.in_([3, 4]))).scalars().all()
        for row in rows:
            self.db.refresh(row)
            self.assertEqual(row.ebay_status, EBAY_STATUS_EXPORTED)
            self.assertIsNotNone(row.last_exported_at)
        untouched = self.db.get(Auction, 1)
        self.db.refresh(untouched)
        self.assertIsNone(untouched.ebay_status)

    def test_no_matches_is_not_an_error(self) -> None:
        self.assertEqual(mark_exported(self.db, ids={998, 999}), 0)

    def test_empty_ids_are_rejected(self) -> None:
        with self.assertRaises(ValidationError):
            mark_exported(self.db, ids=set())
        with self.assertRaises(ValidationError):
            parse_command(MarkExportedCommand, {'ids': []})

    def test_non_positive_ids_are_rejected(self) -> None:
        with self.assertRaises(ValidationError):
            parse_command(MarkExportedCommand, {'ids': [1, 0]})

    def test_boolean_ids_are_rejected(self) -> None:
        with self.assertRaises(ValidationError):
            parse_command(MarkExportedCommand, {'ids': [True]})
        with self.assertRaises(ValidationError):
            mark_exported(self.db, ids={True})
        self.db.refresh(self.auctions[0])
        self.assertIsNone(self.auctions[0].ebay_status)

    def test_duplicate_ids_collapse(self) -> None:
        command = parse_command(MarkExportedCommand, {'ids': [3, 3, 4]})
        self.assertEqual(command.ids, {3, 4})


class ExportSnapshotTests(DatabaseTestCase):
    def test_snapshot_wraps_all_tables(self) -> None:
        self.add_shelf('BIN01')
        self.add_auction('OA000000001', title='Lamp')
        self.db.add(Tag(name='Kitchen', type='category'))
        self.db.commit()

        snapshot = export_snapshot(self.db)

        self.assertEqual(snapshot['version'], 2)
        self.assertIn('exportedAt', snapshot)
        self.assertEqual(len(snapshot['data']['auctions']), 1)
        self.assertEqual(snapshot['data']['auctions'][0]['internalCode'], 'OA000000001')
        self.assertEqual([row['code'] for row in snapshot['data']['shelves']], ['BIN01'])
        self.assertEqual([row['name'] for row in snapshot['data']['tags']], ['Kitchen'])


class ImportSnapshotTests(DatabaseTestCase):
    def _import(self, data: dict, options: dict | None = None) -> dict:
        command = parse_command(ImportSnapshotCommand, {'data': data, 'options': options or {}})
        return import_snapshot(self.db, command)

    def test_imports_new_rows_and_skips_known_ones(self) -> None:
        self.add_shelf('BIN01')
        self.add_auction('OA000000005', title='Existing')
        self.db.add(Tag(name='Kitchen', type='category'))
        self.db.commit()

        counts = self._import(
            {
                'shelves': [{'code': 'bin01', 'name': 'Dup'}, {'code': 'thg02', 'name': 'Things Shelf 2'}, {'code': ''}],
                'tags': [{'name': 'kitchen'}, {'name': 'Garden', 'type': 'location'}],
                'auctions': [
                    {'title': '   '},
                    {'title': 'Again', 'internalCode': 'OA000000005'},
                    {'title': 'Fresh'},
                    {'title': 'Kept code', 'internal_code': 'OA000000009', 'retailPrice': '12.50'},
                ],
            }
        )

        self.assertEqual(counts, {'auctions': 2, 'shelves': 1, 'tags': 1, 'skipped': 2})
        codes = set(self.db.execute(select(Auction.internal_code)).scalars().all())
        self.assertEqual(codes, {'OA000000005', 'OA000000006', 'OA000000009'})
        self.assertIn('THG02', self.db.execute(select(Shelf.code)).scalars().all())
        garden = self.db.execute(select(Tag).where(Tag.name == 'Garden')).scalar_one()
        self.assertEqual(garden.type, 'location')

    def test_options_can_skip_shelves_and_tags(self) -> None:
        counts = self._import(
            {'shelves': [{'code': 'X1', 'name': 'X'}], 'tags': [{'name': 'T'}]},
            {'importShelves': False, 'importTags': False},
        )

        self.assertEqual(counts, {'auctions': 0, 'shelves': 0, 'tags': 0, 'skipped': 0})
        self.assertEqual(self.count(Shelf), 0)
        self.assertEqual(self.count(Tag), 0)

    def test_incomplete_external_listing_falls_back_to_auction(self) -> None:
        self._import(
            {
                'auctions': [
                    {'title': 'Half listed', 'destination': 'ebay', 'externalListingId': 'EBAY-1'},
                    {
                        'title': 'Listed',
                        'destination': 'amazon',
                        'externalListingId': 'AMAZON-1',
                        'externalListingUrl': 'https://www.amazon.com/dp/AMAZON-1',
                        'externalPayload': {'platform': 'amazon'},
                    },
                ]
            }
        )

        half = self.db.execute(select(Auction).where(Auction.title == 'Half listed')).scalar_one()
        listed = self.db.execute(select(Auction).where(Auction.title == 'Listed')).scalar_one()
        self.assertEqual(half.destination, AuctionDestination.AUCTION)
        self.assertIsNone(half.external_listing_id)
        self.assertEqual(listed.destination, AuctionDestination.AMAZON)
        self.assertEqual(listed.external_status, 'listed')

    def test_unknown_shelf_reference_is_dropped(self) -> None:
        self._import({'auctions': [{'title': 'Orphan', 'shelfId': 42}]})

        orphan = self.db.execute(select(Auction).where(Auction.title == 'Orphan')).scalar_one()
        self.assertIsNone(orphan.shelf_id)


if __name__ == '__main__':
    unittest.main()
