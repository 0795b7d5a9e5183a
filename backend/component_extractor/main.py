from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger
from pydantic import BaseModel

from component_extractor import extractor
from component_extractor.browser_pool import get_browser_pool
from component_extractor.config import get_settings
from component_extractor.errors import (
    ExtractionError,
    ExtractionTimeoutError,
    InvalidURLError,
    NavigationError,
)
from component_extractor.logging_config import setup_logging
from component_extractor.metrics import get_metrics_history
from component_extractor.models import ExtractionMetrics, ExtractionOptions, ExtractionResult


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    setup_logging(settings.log_level)
    logger.info(f"[api] Starting ({settings.deployment} profile)")
    yield
    await get_browser_pool().shutdown()


app = FastAPI(title="Component Extractor API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------

class ExtractRequest(BaseModel):
    url: str
    options: ExtractionOptions | None = None


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------

@app.get("/health")
async def health():
    return {"status": "ok", "active_sessions": get_browser_pool().active}


@app.post("/extract", response_model=ExtractionResult)
async def extract_endpoint(request: ExtractRequest):
    """Extract UI components from a live page."""
    url = request.url.strip()
    try:
        return await extractor.extract(url, request.options)
    except InvalidURLError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except NavigationError as e:
        raise HTTPException(status_code=502, detail=str(e))
    except ExtractionTimeoutError as e:
        raise HTTPException(status_code=504, detail=str(e))
    except ExtractionError as e:
        raise HTTPException(status_code=500, detail=str(e))


@app.get("/metrics/history", response_model=list[ExtractionMetrics])
async def metrics_history():
    """Most recent extraction metrics, newest first."""
    return get_metrics_history().items()


@app.delete("/metrics/history")
async def clear_metrics_history():
    get_metrics_history().clear()
    return {"status": "cleared"}


def run_server(host: str | None = None, port: int | None = None) -> None:
    """Serve the API with uvicorn on the configured address."""
    import uvicorn

    settings = get_settings()
    host = host or settings.host
    port = port or settings.port
    logger.info(f"[api] Serving on http://{host}:{port}")
    uvicorn.run(app, host=host, port=port, log_level=settings.log_level.lower())
