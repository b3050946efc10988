from fastapi import HTTPException, Request

from app.errors import ServiceError
from app.services.channel_publisher import ChannelPublisher


def get_channel_publisher(request: Request) -> ChannelPublisher:
    return request.app.state.channel_publisher


def parse_auction_id(raw: str) -> int:
    value = raw.strip()
    auction_id = int(value) if value.isascii() and value.isdigit() else 0
    if auction_id <= 0:
        raise HTTPException(status_code=400, detail={'message': 'Invalid auction ID'})
    return auction_id


def as_http_error(exc: ServiceError) -> HTTPException:
    return HTTPException(status_code=exc.status_code, detail=exc.to_detail())
