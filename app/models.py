from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from enum import Enum
from uuid import uuid4

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    DateTime,
    Enum as SQLEnum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

# SQLite only autoincrements INTEGER PRIMARY KEY columns.
IdType = BigInteger().with_variant(Integer, 'sqlite')


class Base(DeclarativeBase):
    pass


class AuctionStatus(str, Enum):
    DRAFT = 'draft'
    ACTIVE = 'active'
    ENDED = 'ended'
    SOLD = 'sold'


class AuctionDestination(str, Enum):
    AUCTION = 'auction'
    EBAY = 'ebay'
    AMAZON = 'amazon'


class TagType(str, Enum):
    CATEGORY = 'category'
    LOCATION = 'location'


EXTERNAL_STATUS_LISTED = 'listed'
EBAY_STATUS_EXPORTED = 'exported'


def _enum_values(enum_cls) -> list[str]:
    return [member.value for member in enum_cls]


class Shelf(Base):
    __tablename__ = 'shelves'

    id: Mapped[int] = mapped_column(IdType, primary_key=True)
    name: Mapped[str] = mapped_column(String(50), nullable=False)
    code: Mapped[str] = mapped_column(String(10), nullable=False)
    item_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default='0')
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


Index('uq_shelves_code_upper', func.upper(Shelf.code), unique=True)


class Batch(Base):
    __tablename__ = 'batches'

    id: Mapped[int] = mapped_column(IdType, primary_key=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    scanned_by_staff_id: Mapped[int | None] = mapped_column(IdType)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


class Auction(Base):
    __tablename__ = 'auctions'

    id: Mapped[int] = mapped_column(IdType, primary_key=True)
    internal_code: Mapped[str] = mapped_column(String(20), nullable=False, unique=True)
    upc: Mapped[str | None] = mapped_column(String(20))
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    image: Mapped[str | None] = mapped_column(String(1000))
    brand: Mapped[str | None] = mapped_column(String(200))
    category: Mapped[str | None] = mapped_column(String(200))
    condition: Mapped[str | None] = mapped_column(String(20))
    weight_ounces: Mapped[int | None] = mapped_column(Integer)
    weight_class: Mapped[str | None] = mapped_column(String(20))
    brand_tier: Mapped[str | None] = mapped_column(String(5))
    stock_quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1, server_default='1')
    cost: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal('200'), server_default='200')

    retail_price: Mapped[Decimal | None] = mapped_column(Numeric(12, 2))
    starting_bid: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal('1'), server_default='1')
    current_bid: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal('0'), server_default='0')
    bid_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default='0')

    status: Mapped[AuctionStatus] = mapped_column(
        SQLEnum(AuctionStatus, name='auction_status', values_callable=_enum_values),
        nullable=False,
        default=AuctionStatus.DRAFT,
        server_default=AuctionStatus.DRAFT.value,
    )
    destination: Mapped[AuctionDestination] = mapped_column(
        SQLEnum(AuctionDestination, name='auction_destination', values_callable=_enum_values),
        nullable=False,
        default=AuctionDestination.AUCTION,
        server_default=AuctionDestination.AUCTION.value,
    )
    end_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    external_status: Mapped[str | None] = mapped_column(String(20))
    external_listing_id: Mapped[str | None] = mapped_column(String(100))
    external_listing_url: Mapped[str | None] = mapped_column(String(500))
    external_payload: Mapped[dict | None] = mapped_column(JSON)
    last_sync_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    last_exported_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    ebay_status: Mapped[str | None] = mapped_column(String(20))

    shelf_id: Mapped[int | None] = mapped_column(IdType, ForeignKey('shelves.id'))
    batch_id: Mapped[int | None] = mapped_column(IdType, ForeignKey('batches.id'))
    scanned_by_staff_id: Mapped[int | None] = mapped_column(IdType)

    sold_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    sold_price: Mapped[Decimal | None] = mapped_column(Numeric(12, 2))
    show_on_homepage: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default='false')
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


class Tag(Base):
    __tablename__ = 'tags'

    id: Mapped[int] = mapped_column(IdType, primary_key=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    type: Mapped[str] = mapped_column(String(20), nullable=False, default=TagType.CATEGORY.value, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


# Dependent rows reference auctions without ON DELETE CASCADE; removal goes
# through auction_delete_service.delete_auction.
class AuctionTag(Base):
    __tablename__ = 'auction_tags'

    id: Mapped[int] = mapped_column(IdType, primary_key=True)
    auction_id: Mapped[int] = mapped_column(IdType, ForeignKey('auctions.id'), nullable=False, index=True)
    tag_id: Mapped[int] = mapped_column(IdType, ForeignKey('tags.id'), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


class Bid(Base):
    __tablename__ = 'bids'

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    auction_id: Mapped[int] = mapped_column(IdType, ForeignKey('auctions.id'), nullable=False, index=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    auction_title: Mapped[str] = mapped_column(String(500), nullable=False)
    auction_image: Mapped[str | None] = mapped_column(String(1000))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


class WatchlistEntry(Base):
    __tablename__ = 'watchlist'

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    auction_id: Mapped[int] = mapped_column(IdType, ForeignKey('auctions.id'), nullable=False, index=True)
    auction_title: Mapped[str] = mapped_column(String(500), nullable=False)
    auction_image: Mapped[str | None] = mapped_column(String(1000))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
