"""Application factory and process entry point.

`create_app()` wires routes, CORS, error mapping and Prometheus metrics onto a
fresh FastAPI instance that owns its own `ServiceManager`. The module-level
`app` is what uvicorn serves.

Startup and Shutdown
====================
::
    lifespan enter                      lifespan exit
    ├─ manager.initialize()             ├─ manager.cleanup()
    │   ├─ BASE_URL check (fatal)       │   └─ cancel cache sweep
    │   └─ start cache sweep            └─ close_db()
    └─ init_db()

Running locally::
    BASE_URL=http://localhost:8000 uvicorn shortlinks.main:app --port 8000

    curl -X POST http://localhost:8000/shorten \
         -H "Content-Type: application/json" \
         -d '{"url": "https://example.com"}'

Error Mapping
=============
- `ShortLinkError` subclasses answer with their own status and
  `{"detail", "error_code"}`.
- `TimeoutError` from an operation deadline answers 504.
- Anything else is left to the framework (500).
"""

__all__ = ["app", "create_app"]

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_fastapi_instrumentator import Instrumentator

from shortlinks.config import Settings, get_settings
from shortlinks.database import close_db, init_db
from shortlinks.dependencies import ServiceManager
from shortlinks.errors import ShortLinkError
from shortlinks.routes import router


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    manager: ServiceManager = app.state.service_manager
    # Startup
    await manager.initialize()
    await init_db(manager.engine)
    yield
    # Shutdown
    await manager.cleanup()
    await close_db(manager.engine)


async def short_link_error_handler(request: Request, exc: ShortLinkError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "error_code": exc.error_code},
    )


async def timeout_error_handler(request: Request, exc: TimeoutError) -> JSONResponse:
    return JSONResponse(
        status_code=504,
        content={"detail": "The operation timed out", "error_code": "timeout"},
    )


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()

    app = FastAPI(
        title=settings.APP_NAME,
        version="1.0.0",
        description="URL shortener with custom aliases, ownership and access counting",
        lifespan=lifespan,
        openapi_url="/api/openapi.json",
        docs_url="/docs",
        redoc_url=None,
    )
    app.state.service_manager = ServiceManager(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(ShortLinkError, short_link_error_handler)
    app.add_exception_handler(TimeoutError, timeout_error_handler)

    Instrumentator(
        should_group_status_codes=True,
        should_ignore_untemplated=False,
        should_respect_env_var=False,
        excluded_handlers=["/api/metrics"],
    ).instrument(app).expose(app, endpoint="/api/metrics", include_in_schema=False)

    app.include_router(router)
    return app


app = create_app()
