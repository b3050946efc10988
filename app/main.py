from __future__ import annotations

from fastapi import FastAPI

from app.config import Settings, settings
from app.db import create_db_engine, create_session_factory, init_db
from app.routers import admin, auctions, shelves
from app.services.publisher_factory import get_channel_publisher
from app.utils.logger import configure_logging, logger


def create_app(app_settings: Settings | None = None) -> FastAPI:
    app_settings = app_settings or settings
    configure_logging(app_settings.log_level)

    app = FastAPI(title='Auction Inventory')

    engine = create_db_engine(app_settings.database_url_normalized, echo=app_settings.database_echo)
    app.state.engine = engine
    app.state.session_factory = create_session_factory(engine)
    app.state.channel_publisher = get_channel_publisher()

    if app_settings.create_tables_on_startup:
        init_db(engine)
        logger.info('Database tables created')

    app.include_router(auctions.router)
    app.include_router(shelves.router)
    app.include_router(admin.router)

    @app.get('/healthz')
    def healthz() -> dict:
        return {'status': 'ok'}

    return app


app = create_app()
