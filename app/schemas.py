from __future__ import annotations

from decimal import Decimal
from typing import Annotated, Any, Literal, TypeVar

from pydantic import BaseModel, ConfigDict, Field, PositiveInt, StrictInt, field_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from app.errors import ValidationError
from app.models import AuctionDestination, AuctionStatus

CommandT = TypeVar('CommandT', bound=BaseModel)

# Keeps an auction end time well inside datetime range.
MAX_DURATION_DAYS = 3650


class Command(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra='ignore')


class CreateAuctionCommand(Command):
    title: str = Field(min_length=1, max_length=500)
    shelf_id: PositiveInt
    upc: str | None = Field(default=None, max_length=20)
    description: str | None = None
    image: str | None = Field(default=None, max_length=1000)
    brand: str | None = Field(default=None, max_length=200)
    category: str | None = Field(default=None, max_length=200)
    condition: str | None = Field(default=None, max_length=20)
    weight_ounces: int | None = Field(default=None, ge=0)
    weight_class: str | None = Field(default=None, max_length=20)
    brand_tier: str | None = Field(default=None, max_length=5)
    stock_quantity: int = Field(default=1, ge=0)
    cost: Decimal = Field(default=Decimal('200'), ge=0)
    retail_price: Decimal | None = Field(default=None, ge=0)
    starting_bid: Decimal = Field(default=Decimal('1'), ge=0)
    status: AuctionStatus = AuctionStatus.DRAFT
    destination: AuctionDestination = AuctionDestination.AUCTION
    batch_id: PositiveInt | None = None
    scanned_by_staff_id: PositiveInt | None = None
    show_on_homepage: bool = False

    @field_validator('title', mode='before')
    @classmethod
    def _strip_title(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value

    @field_validator('upc', mode='before')
    @classmethod
    def _strip_upc(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip() or None
        return value


class CreateShelfCommand(Command):
    name: str = ''
    code: str | None = None
    location: Literal['bins', 'things', 'flatrate'] | None = None

    @field_validator('name', mode='before')
    @classmethod
    def _normalize_name(cls, value: Any) -> Any:
        if value is None:
            return ''
        return value.strip()[:50].rstrip() if isinstance(value, str) else value

    @field_validator('code', mode='before')
    @classmethod
    def _normalize_code(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().upper()[:10] or None
        return value


class PublishCommand(Command):
    destination: AuctionDestination


class UpdateStatusCommand(Command):
    status: AuctionStatus
    duration_days: float | None = Field(default=None, allow_inf_nan=False, le=MAX_DURATION_DAYS)


class ReassignShelfCommand(Command):
    shelf_id: PositiveInt | None = None


class MarkExportedCommand(Command):
    ids: set[Annotated[StrictInt, Field(gt=0)]] = Field(min_length=1)


class ImportOptions(Command):
    import_shelves: bool = True
    import_tags: bool = True


class ImportSnapshotCommand(Command):
    data: dict[str, list[dict[str, Any]]] = Field(default_factory=dict)
    options: ImportOptions = Field(default_factory=ImportOptions)


def parse_command(model: type[CommandT], payload: Any) -> CommandT:
    if not isinstance(payload, dict):
        raise ValidationError('Request body must be a JSON object')
    try:
        return model.model_validate(payload)
    except PydanticValidationError as exc:
        details = [
            {'field': '.'.join(str(part) for part in error['loc']), 'message': error['msg']}
            for error in exc.errors()
        ]
        first = details[0]
        message = f"Invalid {first['field']}" if first['field'] else 'Invalid request body'
        raise ValidationError(message, details=details) from exc
