from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Protocol


@dataclass(frozen=True)
class ListingRequest:
    auction_id: int
    destination: str
    title: str
    price: Decimal | None


@dataclass(frozen=True)
class ExternalListing:
    listing_id: str
    listing_url: str
    payload: dict


class ChannelPublisher(Protocol):
    def create_listing(self, listing: ListingRequest) -> ExternalListing: ...
