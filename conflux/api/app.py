"""FastAPI application for conflux.

Logging: Uses structured JSON logging.
Set LOG_FORMAT=pretty for development-friendly output.

Providers are read from the environment (and a local .env file) the first
time a request needs them, so importing this module never requires
credentials.
"""

from typing import Optional

from dotenv import load_dotenv

# Configure structured logging BEFORE importing anything else
from conflux.utils.logging import configure_logging, get_logger, log  # noqa: E402

load_dotenv()
configure_logging()

MODULE = "api"
logger = get_logger()

from fastapi import FastAPI, Request  # noqa: E402
from fastapi.responses import JSONResponse  # noqa: E402

from conflux.api.routes.health import router as health_router  # noqa: E402
from conflux.api.routes.thinking import router as thinking_router  # noqa: E402
from conflux.constants import APP_NAME, APP_VERSION  # noqa: E402
from conflux.errors import ConfigurationError  # noqa: E402
from conflux.orchestrator.sequencer import Sequencer  # noqa: E402


async def configuration_error_handler(request: Request, exc: ConfigurationError) -> JSONResponse:
    log.error(logger, MODULE, "configuration_error", "Request needs a provider that is not usable",
              error=str(exc), path=request.url.path)
    return JSONResponse(
        status_code=503,
        content={"error": exc.kind.value, "detail": str(exc)},
    )


def create_app(sequencer: Optional[Sequencer] = None) -> FastAPI:
    """Build the app. Pass a sequencer to pin providers (tests do)."""
    app = FastAPI(
        title=APP_NAME,
        description="Multi-step structured LLM thinking API",
        version=APP_VERSION,
    )
    app.state.sequencer = sequencer

    app.add_exception_handler(ConfigurationError, configuration_error_handler)
    app.include_router(health_router)
    app.include_router(thinking_router)
    return app


app = create_app()
