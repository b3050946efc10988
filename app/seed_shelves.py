from __future__ import annotations

import argparse

from app.config import settings
from app.db import create_db_engine, create_session_factory, init_db
from app.services.shelf_service import ensure_canonical_shelves
from app.utils.logger import configure_logging


def seed(*, create_tables: bool = False) -> int:
    engine = create_db_engine(settings.database_url_normalized, echo=settings.database_echo)
    if create_tables:
        init_db(engine)
    session_factory = create_session_factory(engine)
    with session_factory() as db:
        created = ensure_canonical_shelves(db)
    engine.dispose()
    return created


def main() -> None:
    parser = argparse.ArgumentParser(description='Provision the canonical BIN/THG storage shelves.')
    parser.add_argument(
        '--create-tables',
        action='store_true',
        help='Create missing tables from the ORM metadata before provisioning.',
    )
    args = parser.parse_args()

    configure_logging(settings.log_level)
    created = seed(create_tables=args.create_tables)
    print(f'Canonical shelves verified: created={created}')


if __name__ == '__main__':
    main()
