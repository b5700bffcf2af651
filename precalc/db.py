import logging
import time

from sqlalchemy import create_engine, event
from sqlalchemy.orm import declarative_base, sessionmaker

from precalc.config import settings
from precalc.request_context import current_endpoint


slow_query_logger = logging.getLogger('precalc.db.slow_query')


def _connect_args(database_url: str) -> dict:
    if database_url.startswith('sqlite'):
        return {'check_same_thread': False}
    return {}


engine = create_engine(settings.database_url, connect_args=_connect_args(settings.database_url))
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


@event.listens_for(engine, 'before_cursor_execute')
def _start_query_timer(conn, cursor, statement, parameters, context, executemany):
    conn.info.setdefault('query_started', []).append(time.perf_counter())


@event.listens_for(engine, 'after_cursor_execute')
def _log_slow_query(conn, cursor, statement, parameters, context, executemany):
    timers = conn.info.get('query_started')
    if not timers:
        return
    elapsed_ms = (time.perf_counter() - timers.pop()) * 1000.0
    if elapsed_ms < settings.db_slow_query_ms:
        return
    slow_query_logger.warning(
        'slow_query duration_ms=%.2f endpoint=%s sql=%s',
        elapsed_ms,
        current_endpoint.get(),
        ' '.join((statement or '').split())[:500],
    )


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
