from __future__ import annotations

import unittest
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import func, select

from app.db import create_db_engine, create_session_factory, init_db
from app.models import Auction, Shelf


def aware(value: datetime | None) -> datetime | None:
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


class DatabaseTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.engine = create_db_engine('sqlite://')
        init_db(self.engine)
        self.db = create_session_factory(self.engine)()

    def tearDown(self) -> None:
        self.db.close()
        self.engine.dispose()

    def add_shelf(self, code: str, name: str | None = None) -> Shelf:
        shelf = Shelf(name=name or f'Shelf {code}', code=code)
        self.db.add(shelf)
        self.db.commit()
        return shelf

    def add_auction(self, internal_code: str, **fields) -> Auction:
        fields.setdefault('title', f'Item {internal_code}')
        auction = Auction(internal_code=internal_code, **fields)
        self.db.add(auction)
        self.db.commit()
        return auction

    def count(self, model, *criteria) -> int:
        return self.db.execute(select(func.count()).select_from(model).where(*criteria)).scalar_one()


LAMP_PRICE = Decimal('19.99')
