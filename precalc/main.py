from contextlib import asynccontextmanager
import logging
import time

from fastapi import FastAPI, Request

from precalc.config import settings
from precalc.db import Base, engine
from precalc.metrics import flush_metrics
from precalc.route_logging import EndpointNameRoute
from precalc.routers import extensions, mastery, pacing

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s %(levelname)s %(name)s %(message)s',
)
request_logger = logging.getLogger('precalc.request')


@asynccontextmanager
async def lifespan(_: FastAPI):
    # Local SQLite runs without migrations; deployed databases are managed by alembic.
    Base.metadata.create_all(bind=engine)
    yield
    flush_metrics()


app = FastAPI(title=settings.app_name, version='0.1.0', lifespan=lifespan)
app.router.route_class = EndpointNameRoute

for module in (pacing, extensions, mastery):
    app.include_router(module.router)


@app.middleware('http')
async def log_slow_requests(request: Request, call_next):
    started = time.perf_counter()
    response = await call_next(request)
    elapsed_ms = (time.perf_counter() - started) * 1000.0
    if elapsed_ms >= settings.metrics_slow_ms:
        request_logger.info(
            'request_slow method=%s path=%s status_code=%s duration_ms=%.2f',
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
        )
    return response


@app.get('/health')
def healthcheck():
    return {'app': settings.app_name, 'env': settings.app_env, 'status': 'ok'}
