import asyncio
import os
from contextlib import asynccontextmanager
from functools import partial
from html import escape

from fastapi import FastAPI, Request
from fastapi.openapi.utils import get_openapi
from fastapi.responses import HTMLResponse, JSONResponse

from app.consumers import build_sync_requested_handler, handle_staff_deleted
from app.core.database import Base, analytics_engine, analytics_metadata, engine
from app.core.errors import ConfigurationError, ConflictError, InvalidTransitionError, PipelineStalled
from app.models import analytics as analytics_models  # noqa: F401
from app.models import menu, reservation, reservation_config, schedule  # noqa: F401
from app.routers import availability, menus, reservation_config as config_router, reservations, schedules, sync
from app.schemas.reservation_schema import ReservationConflictResponse
from app.sync.runner import SyncRunner, build_pipeline
from app.sync.scheduler import AsyncioScheduler
from shared import EventConsumer, SystemClock, cleanup_consumer, configure_cors, create_publisher, load_service_config
from shared.cache import create_redis_cache
from shared.health import create_health_router
from shared.logging import RequestContextLogMiddleware, configure_logging, get_logger

configure_logging("reservation")
logger = get_logger(__name__)

tags_metadata = [
    {
        "name": "Reservations",
        "description": "Criação, remarcação e cancelamento de reservas com verificação de conflitos.",
    },
    {
        "name": "Availability",
        "description": "Horários livres por org, profissional e duração.",
    },
    {
        "name": "Schedules",
        "description": "Horário semanal, exceções e escalas dos profissionais.",
    },
    {
        "name": "Sync",
        "description": "Migração de reservas concluídas para o banco analítico.",
    },
]

_CONFIG = load_service_config("reservation")
_ROOT_PATH = os.getenv("APP_ROOT_PATH", "")
_EVENT_PUBLISHER = create_publisher(_CONFIG.redis.url, _CONFIG.redis.stream)
_CACHE = create_redis_cache(_CONFIG.redis.url)

_consumer: EventConsumer | None = None
_consumer_task: asyncio.Task | None = None


async def _create_schema() -> None:
    for attempt in range(10):
        try:
            await asyncio.to_thread(Base.metadata.create_all, bind=engine)
            await asyncio.to_thread(analytics_metadata.create_all, bind=analytics_engine)
            return
        except Exception as exc:
            if attempt < 9:
                logger.warning("database_unavailable", attempt=attempt + 1, error=str(exc))
                await asyncio.sleep(2.0)
            else:
                logger.error("database_unavailable_giving_up")
                raise


@asynccontextmanager
async def app_lifespan(app: FastAPI):
    global _consumer, _consumer_task

    logger.info("service_starting")
    await _create_schema()

    scheduler = AsyncioScheduler(asyncio.get_running_loop())
    pipeline = build_pipeline(
        _CONFIG.sync,
        scheduler,
        clock=app.state.clock,
        publisher=app.state.event_publisher,
    )
    app.state.scheduler = scheduler
    app.state.sync_runner = SyncRunner(pipeline)

    if _CONFIG.redis.url:
        _consumer = EventConsumer(
            redis_url=_CONFIG.redis.url,
            stream_name=_CONFIG.redis.stream,
            group_name="reservation-service",
            consumer_name=os.getenv("CONSUMER_NAME", "reservation-worker-1"),
        )
        _consumer.register_handler("sync.requested", build_sync_requested_handler(app.state.sync_runner))
        _consumer.register_handler(
            "staff.deleted",
            partial(handle_staff_deleted, publisher=app.state.event_publisher, cache=app.state.cache),
        )
        _consumer_task = asyncio.create_task(_consumer.start())
        logger.info("event_consumer_started", stream=_CONFIG.redis.stream)

    yield

    scheduler.cancel_all()
    await cleanup_consumer(_consumer, _consumer_task, logger)
    _consumer, _consumer_task = None, None
    logger.info("service_stopped")


app = FastAPI(
    title="Reservation Service",
    version="0.1.0",
    description="Disponibilidade, reservas sem conflito e sincronização com o banco analítico.",
    openapi_tags=tags_metadata,
    root_path=_ROOT_PATH,
    lifespan=app_lifespan,
    docs_url=None,
    redoc_url="/redoc",
)

configure_cors(app)
app.add_middleware(RequestContextLogMiddleware, logger=logger)

app.state.config = _CONFIG
app.state.event_publisher = _EVENT_PUBLISHER
app.state.cache = _CACHE
app.state.clock = SystemClock()
app.state.staff_service_url = os.getenv("STAFF_SERVICE_URL")


@app.exception_handler(ConflictError)
async def conflict_handler(request: Request, exc: ConflictError):
    body = ReservationConflictResponse(message=exc.message, conflicts=exc.conflicts)
    return JSONResponse(status_code=409, content=body.model_dump(mode="json"))


@app.exception_handler(ConfigurationError)
async def configuration_handler(request: Request, exc: ConfigurationError):
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(InvalidTransitionError)
async def transition_handler(request: Request, exc: InvalidTransitionError):
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(PipelineStalled)
async def stalled_handler(request: Request, exc: PipelineStalled):
    return JSONResponse(status_code=503, content={"detail": "Sincronização interrompida após falhas repetidas."})


def custom_openapi_schema():
    if app.openapi_schema:
        return app.openapi_schema
    schema = get_openapi(
        title=app.title,
        version=app.version,
        description=app.description,
        routes=app.routes,
    )
    schema["openapi"] = "3.0.3"
    app.openapi_schema = schema
    return app.openapi_schema


app.openapi = custom_openapi_schema


@app.get("/docs", include_in_schema=False)
async def custom_swagger_ui_html():
    return HTMLResponse(f"""
    <!DOCTYPE html>
    <html>
    <head>
        <link type="text/css" rel="stylesheet" href="https://cdn.jsdelivr.net/npm/swagger-ui-dist@5/swagger-ui.css">
        <title>{escape(app.title)} - Swagger UI</title>
    </head>
    <body>
        <div id="swagger-ui"></div>
        <script src="https://cdn.jsdelivr.net/npm/swagger-ui-dist@5/swagger-ui-bundle.js"></script>
        <script>
        const ui = SwaggerUIBundle({{
            url: window.location.pathname.replace(/\\/docs$/, '') + '/openapi.json',
            dom_id: '#swagger-ui',
            presets: [
                SwaggerUIBundle.presets.apis,
                SwaggerUIBundle.SwaggerUIStandalonePreset
            ],
            layout: "BaseLayout",
            deepLinking: true
        }})
        </script>
    </body>
    </html>
    """)


app.include_router(
    create_health_router(
        "reservation",
        database_engines={"database": engine, "analytics": analytics_engine},
        redis_client=_CACHE,
    )
)
app.include_router(reservations.router)
app.include_router(availability.router)
app.include_router(schedules.router)
app.include_router(config_router.router)
app.include_router(menus.router)
app.include_router(sync.router)


@app.get("/")
def root():
    return {
        "service": "reservation",
        "status": "ok",
        "docs_url": "/docs",
        "config": {
            "redis_stream": _CONFIG.redis.stream,
            "sync_batch_limit": _CONFIG.sync.batch_limit,
        },
    }
