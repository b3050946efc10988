from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends
from sqlalchemy.orm import Session

from app.db import get_db
from app.dependencies import as_http_error, get_channel_publisher, parse_auction_id
from app.errors import ServiceError
from app.schemas import (
    CreateAuctionCommand,
    MarkExportedCommand,
    PublishCommand,
    ReassignShelfCommand,
    UpdateStatusCommand,
    parse_command,
)
from app.services.auction_delete_service import delete_auction
from app.services.auction_lifecycle_service import publish, reassign_shelf, update_status
from app.services.auction_service import create_auction, get_auction, list_auctions
from app.services.channel_publisher import ChannelPublisher
from app.services.export_service import mark_exported
from app.services.internal_code_service import preview_internal_code

router = APIRouter(prefix='/api/staff', tags=['staff'])


def _body(payload: Any) -> Any:
    return {} if payload is None else payload


@router.get('/auctions')
def auctions_index(db: Session = Depends(get_db)):
    try:
        return list_auctions(db)
    except ServiceError as exc:
        raise as_http_error(exc) from exc


@router.post('/auctions', status_code=201)
def auctions_create(
    payload: Any = Body(default=None),
    db: Session = Depends(get_db),
    publisher: ChannelPublisher = Depends(get_channel_publisher),
):
    try:
        command = parse_command(CreateAuctionCommand, _body(payload))
        return create_auction(db, command, publisher=publisher)
    except ServiceError as exc:
        raise as_http_error(exc) from exc


@router.post('/auctions/mark-exported')
def auctions_mark_exported(payload: Any = Body(default=None), db: Session = Depends(get_db)):
    try:
        command = parse_command(MarkExportedCommand, _body(payload))
        count = mark_exported(db, ids=command.ids)
    except ServiceError as exc:
        raise as_http_error(exc) from exc
    return {'success': True, 'count': count}


@router.get('/next-internal-code')
def next_internal_code_preview(db: Session = Depends(get_db)):
    try:
        return {'code': preview_internal_code(db)}
    except ServiceError as exc:
        raise as_http_error(exc) from exc


@router.get('/auctions/{auction_id}')
def auctions_show(auction_id: str, db: Session = Depends(get_db)):
    try:
        return get_auction(db, auction_id=parse_auction_id(auction_id))
    except ServiceError as exc:
        raise as_http_error(exc) from exc


@router.delete('/auctions/{auction_id}')
def auctions_delete(auction_id: str, db: Session = Depends(get_db)):
    try:
        return delete_auction(db, auction_id=parse_auction_id(auction_id))
    except ServiceError as exc:
        raise as_http_error(exc) from exc


@router.patch('/auctions/{auction_id}/shelf')
def auctions_reassign_shelf(auction_id: str, payload: Any = Body(default=None), db: Session = Depends(get_db)):
    parsed_id = parse_auction_id(auction_id)
    try:
        command = parse_command(ReassignShelfCommand, _body(payload))
        return reassign_shelf(db, auction_id=parsed_id, shelf_id=command.shelf_id)
    except ServiceError as exc:
        raise as_http_error(exc) from exc


@router.post('/auctions/{auction_id}/publish')
def auctions_publish(
    auction_id: str,
    payload: Any = Body(default=None),
    db: Session = Depends(get_db),
    publisher: ChannelPublisher = Depends(get_channel_publisher),
):
    parsed_id = parse_auction_id(auction_id)
    try:
        command = parse_command(PublishCommand, _body(payload))
        return publish(db, auction_id=parsed_id, destination=command.destination, publisher=publisher)
    except ServiceError as exc:
        raise as_http_error(exc) from exc


@router.patch('/auctions/{auction_id}/status')
def auctions_update_status(auction_id: str, payload: Any = Body(default=None), db: Session = Depends(get_db)):
    parsed_id = parse_auction_id(auction_id)
    try:
        command = parse_command(UpdateStatusCommand, _body(payload))
        return update_status(db, auction_id=parsed_id, status=command.status, duration_days=command.duration_days)
    except ServiceError as exc:
        raise as_http_error(exc) from exc
