from __future__ import annotations

import argparse
import logging
import time
from typing import Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from lms.core.logging import configure_logging
from lms.core.observability import record_sweep
from lms.core.settings import Settings
from lms.db.session import build_engine, build_session_factory
from lms.services.assignments import close_expired_assignments


logger = logging.getLogger("close_expired_assignments")


def run_sweep(session_factory: sessionmaker[Session]) -> int:
    with session_factory() as db:
        closed = close_expired_assignments(db)
    record_sweep(closed)
    return closed


def main(argv: Optional[Sequence[str]] = None) -> None:
    settings = Settings()
    parser = argparse.ArgumentParser(description="Close published assignments whose due date has passed.")
    parser.add_argument("--once", action="store_true", help="Run once and exit.")
    parser.add_argument(
        "--interval",
        type=int,
        default=settings.close_sweep_interval_seconds,
        help="Polling interval in seconds.",
    )
    args = parser.parse_args(argv)

    configure_logging(level=settings.log_level)
    session_factory = build_session_factory(build_engine(settings))

    while True:
        try:
            closed = run_sweep(session_factory)
            logger.info("Sweep closed %s assignment(s).", closed)
        except SQLAlchemyError:
            # Already rolled back; the next run picks up the same rows.
            if args.once:
                raise
        if args.once:
            break
        time.sleep(args.interval)


if __name__ == "__main__":
    main()
