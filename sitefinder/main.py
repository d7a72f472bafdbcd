"""App startup point"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse

from sitefinder.configs.app_configs.config_logging import configure_logging
from sitefinder.configs.app_configs.config_sentry import configure_sentry
from sitefinder.middleware import logging as mw_logging
from sitefinder.middleware import metrics
from sitefinder.probe.service import ProbeService
from sitefinder.utils.metrics import configure_metrics, get_metrics_client
from sitefinder.web import api_v1, dockerflow

tags_metadata = [
    {
        "name": "search",
        "description": "Probe a keyword across TLDs and stream per-domain results.",
    },
]

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Set up various configurations at startup and handle shutdown clean up.
    See lifespan events in fastAPI docs https://fastapi.tiangolo.com/advanced/events/
    """
    # Setup methods run before `yield` and cleanup methods after.
    configure_logging()
    configure_sentry()
    await configure_metrics()
    app.state.probe_service = ProbeService(metrics_client=get_metrics_client())
    yield
    # Cancel in-flight searches and stop the browser.
    await app.state.probe_service.shutdown()
    await get_metrics_client().close()


app = FastAPI(openapi_tags=tags_metadata, lifespan=lifespan, default_response_class=ORJSONResponse)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> ORJSONResponse:
    """Use HTTP status code: 400 for all invalid requests."""
    # `exc.errors()` is omitted in the log, it echoes the searched keyword.
    logger.warning(f"HTTP 400: request validation error for path: {request.url.path}")
    return ORJSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=jsonable_encoder({"detail": exc.errors()}),
    )


# Note: `LoggingMiddleware` is added last so it is the outermost middleware.
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["GET", "POST", "OPTIONS", "HEAD"],
    allow_headers=["Content-Type"],
)
app.add_middleware(metrics.MetricsMiddleware)
app.add_middleware(mw_logging.LoggingMiddleware)

app.include_router(dockerflow.router)
app.include_router(api_v1.router, prefix="/api/v1")


if __name__ == "__main__":  # pragma: no cover
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000, proxy_headers=True)
