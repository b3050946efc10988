from __future__ import annotations

from functools import lru_cache

from app.config import settings
from app.services.channel_publisher import ChannelPublisher
from app.services.mock_channel_publisher import MockChannelPublisher


@lru_cache(maxsize=1)
def get_channel_publisher() -> ChannelPublisher:
    provider = settings.channel_publisher.strip().lower()
    if provider != 'mock':
        raise RuntimeError(f'Unknown channel publisher: {settings.channel_publisher}')
    return MockChannelPublisher()
