from __future__ import annotations

import time
from datetime import datetime, timezone

from app.services.channel_publisher import ExternalListing, ListingRequest

LISTING_URL_TEMPLATES = {
    'ebay': 'https://www.ebay.com/itm/{listing_id}',
    'amazon': 'https://www.amazon.com/dp/{listing_id}',
}


class MockChannelPublisher:
    """Fabricates listing identifiers instead of calling the marketplace."""

    def _timestamp_ms(self) -> int:
        return time.time_ns() // 1_000_000

    def create_listing(self, listing: ListingRequest) -> ExternalListing:
        template = LISTING_URL_TEMPLATES.get(listing.destination)
        if template is None:
            raise ValueError(f'Unsupported sale channel: {listing.destination}')

        listing_id = f'{listing.destination.upper()}-{self._timestamp_ms()}'
        submitted_at = datetime.now(tz=timezone.utc).isoformat().replace('+00:00', 'Z')
        return ExternalListing(
            listing_id=listing_id,
            listing_url=template.format(listing_id=listing_id),
            payload={
                'platform': listing.destination,
                'submittedAt': submitted_at,
                'title': listing.title,
                'price': float(listing.price) if listing.price is not None else None,
            },
        )
