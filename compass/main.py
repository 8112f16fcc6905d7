"""
FastAPI application — the Compass entry point.

Endpoints:
  - GET  /               liveness ack
  - POST /ask            phase 1: now/then -> project options
  - POST /select-option  phase 2: selected option -> action items
  - GET  /health, /stats service info
"""

import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import BaseModel, ValidationError

from compass import __version__
from compass.backends.openai_compat import OpenAICompatibleBackend
from compass.coach import Coach, MissingHistoryError
from compass.config import get_config
from compass.schemas import AskRequest, SelectOptionRequest
from compass.storage.session_store import SessionStore

logger = logging.getLogger(__name__)


def _setup_logging(cfg: dict):
    log_cfg = cfg.get("logging", {})
    level = getattr(logging, log_cfg.get("level", "INFO").upper(), logging.INFO)
    log_file = log_cfg.get("file")

    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=handlers,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup / shutdown lifecycle."""
    cfg = get_config()
    _setup_logging(cfg)

    backend = OpenAICompatibleBackend.from_config(cfg)
    store = SessionStore()
    app.state.store = store
    app.state.coach = Coach(backend=backend, store=store)

    if not backend.api_key:
        logger.warning(
            "No API key for %s: every model request will fail until one is set",
            backend.url,
        )
    logger.info(
        "Compass started — listening on %s:%s, backend %s (%s)",
        cfg["server"]["host"],
        cfg["server"]["port"],
        backend.url,
        backend.model,
    )

    yield

    logger.info("Compass shutting down (%d sessions dropped)", len(store))


# ---------------------------------------------------------------------------
# App
# ---------------------------------------------------------------------------
app = FastAPI(
    title="Compass",
    description="From where you are to where you want to be.",
    version=__version__,
    lifespan=lifespan,
)


async def _parse_body(request: Request, model: type[BaseModel]):
    """Validate a JSON body; returns (parsed, None) or (None, 400 response)."""
    try:
        body = await request.json()
    except ValueError:
        return None, PlainTextResponse("Request body must be JSON.", status_code=400)
    try:
        return model.model_validate(body), None
    except ValidationError as e:
        fields = ", ".join(str(err["loc"][-1]) for err in e.errors() if err["loc"])
        return None, PlainTextResponse(
            f"Invalid request body: {fields or 'expected a JSON object'}",
            status_code=400,
        )


# ---------------------------------------------------------------------------
# Coaching endpoints
# ---------------------------------------------------------------------------

@app.get("/")
async def root():
    return JSONResponse({"ok": True})


@app.post("/ask")
async def ask(request: Request):
    """Start a session: propose options for getting from now to then."""
    body, error = await _parse_body(request, AskRequest)
    if error:
        return error

    try:
        result = await request.app.state.coach.ask(body.now, body.then)
    except Exception:
        logger.exception("Failed to create chat completions")
        return PlainTextResponse("Failed to create chat completions", status_code=500)
    return JSONResponse({"data": result.to_dict()})


@app.post("/select-option")
async def select_option(request: Request):
    """Turn the selected option into a project with action items."""
    body, error = await _parse_body(request, SelectOptionRequest)
    if error:
        return error

    try:
        result = await request.app.state.coach.select_option(
            body.selectedOption, body.chatId
        )
    except MissingHistoryError as e:
        return PlainTextResponse(str(e), status_code=400)
    except Exception:
        logger.exception("Failed to create chat completions with selected option (chat %s)", body.chatId)
        return PlainTextResponse(
            "Failed to create chat completions with selected option",
            status_code=500,
        )
    return JSONResponse({"data": result.to_dict()})


# ---------------------------------------------------------------------------
# Service endpoints
# ---------------------------------------------------------------------------

@app.get("/health")
async def health(request: Request):
    """Health check."""
    backend = request.app.state.coach.backend
    return JSONResponse({
        "status": "ok",
        "version": __version__,
        "model": backend.model,
    })


@app.get("/stats")
async def stats(request: Request):
    """Session store statistics."""
    return JSONResponse(request.app.state.store.get_stats())


# ---------------------------------------------------------------------------
# Run with: python -m compass.main
# ---------------------------------------------------------------------------
if __name__ == "__main__":
    import uvicorn

    cfg = get_config()
    uvicorn.run(
        "compass.main:app",
        host=cfg["server"]["host"],
        port=cfg["server"]["port"],
        reload=False,
    )
