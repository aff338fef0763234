import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import Response
from prometheus_client import Counter, Gauge

from .config import Settings, load_settings
from .cpu_task import LoadSimulator
from .handler import HELLO_PATH, handle, render

logger = logging.getLogger(__name__)

REQUESTS_TOTAL = Counter("hello_requests_total", "Total HTTP requests", ["route", "status"])
TASK_MS = Gauge("task_elapsed_ms", "Elapsed time of the last load simulation", ["env"])


@asynccontextmanager
async def lifespan(app: FastAPI):
    try:
        yield
    finally:
        simulator = app.state.simulator
        if simulator is not None:
            simulator.close()


def request_path(request: Request) -> str:
    """The path exactly as the client sent it: no percent-decoding, query cut off."""
    raw = request.scope.get("raw_path")
    if raw is None:
        return request.scope["path"]
    return raw.split(b"?", 1)[0].decode("latin-1")


def create_app(settings: Settings | None = None, simulator: LoadSimulator | None = None) -> FastAPI:
    settings = settings or load_settings()
    if simulator is not None and not settings.simulate_load:
        raise ValueError(f"the {settings.variant} variant runs no load simulation")
    if simulator is None and settings.simulate_load:
        simulator = LoadSimulator(settings.fib_n, settings.load_mode)

    # no docs/openapi routes: every path belongs to the catch-all below
    app = FastAPI(lifespan=lifespan, docs_url=None, redoc_url=None, openapi_url=None)
    app.state.settings = settings
    app.state.simulator = simulator

    async def respond(request: Request):
        # Return value type: Response
        sim = request.app.state.simulator
        if sim is not None:
            # runs before routing, for every path
            result = await sim.run()
            TASK_MS.labels(env=settings.environment).set(result["elapsed_ms"])

        path = request_path(request)
        reply = handle(path, settings.unmatched_status)
        route = HELLO_PATH if path == HELLO_PATH else "unmatched"
        REQUESTS_TOTAL.labels(route=route, status=str(reply.status)).inc()
        return Response(content=render(reply), status_code=reply.status, media_type="application/json")

    # plain Starlette route: no method filter, every verb reaches respond
    app.router.add_route("/{path:path}", respond, include_in_schema=False)

    logger.info(
        "%s variant ready (load: %s)",
        settings.variant,
        f"fib({settings.fib_n}) {settings.load_mode}" if settings.simulate_load else "off",
    )
    return app
