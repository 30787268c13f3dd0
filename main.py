"""
Main FastAPI application (entrypoint).

Responsibilities:
- Wire services explicitly (core.container) and keep them on app.state
- Mount API routers (members/fanclubs, live event stream)
- Register centralized exception handlers and request logging
- Health / readiness endpoints
- Startup: connect Redis, create tables (USE_DB), start the event dispatcher
- Shutdown: stop the dispatcher, close live streams, Redis and push client
"""
import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api import routes_members, routes_sse
from config.settings import settings
from core.container import AppServices, build_services
from core.exception_handlers import register_exception_handlers
from core.logging import request_logging_middleware, setup_logging
from core.response import error, ok


def create_app(services: AppServices | None = None) -> FastAPI:
    setup_logging()
    services = services or build_services(settings)

    app = FastAPI(title=settings.API_TITLE, version=settings.API_VERSION)
    app.state.services = services

    # CORS - adjust origins for production
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(routes_members.router, tags=["members"])
    app.include_router(routes_sse.router, prefix="/sse", tags=["sse"])

    register_exception_handlers(app)
    app.middleware("http")(request_logging_middleware)

    @app.get("/health")
    async def health():
        """Simple health endpoint used by load balancers and orchestrators."""
        return ok({"status": "ok", "live_connections": len(services.registry)})

    @app.get("/ready")
    async def ready():
        """Readiness: the throttle/session store must answer."""
        if await services.redis_client.ping():
            return ok({"ready": True})
        return JSONResponse(status_code=503, content=error(code="redis_unreachable", message="Redis unavailable"))

    @app.get("/push/recent")
    async def recent_pushes(request: Request):
        """Last pushes handled by the push service (dev/debug)."""
        return ok(request.app.state.services.push.recent_notifications())

    @app.on_event("startup")
    async def on_startup():
        await services.startup()

    @app.on_event("shutdown")
    async def on_shutdown():
        await services.shutdown()

    return app


app = create_app()

if __name__ == "__main__":
    # Run with: python main.py for local dev. For production use uvicorn/gunicorn with workers.
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=settings.DEBUG)
