from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from pathlib import Path

import uvicorn
from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.schemas import ErrorResponse, LabelRequest, LabelResult
from pipeline.graph import label_image, pipeline
from utils.config import get_settings

logging.basicConfig(level=logging.INFO)
log = logging.getLogger(__name__)

STATIC_DIR = Path(__file__).resolve().parent.parent / "static"

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    if not get_settings().MOONDREAM_API_KEY:
        log.warning("MOONDREAM_API_KEY is not set; /auto-label will answer 500")
    yield


app = FastAPI(
    title=settings.PROJECT_NAME,
    lifespan=lifespan,
    version="1.0.0",
    description="Moondream query + detect relay: discover objects, then localize each one.",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[str(origin) for origin in settings.BACKEND_CORS_ORIGINS],
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def no_store(request: Request, call_next):
    response = await call_next(request)
    response.headers["Cache-Control"] = "no-store, no-cache, must-revalidate, private"
    return response


@app.exception_handler(StarletteHTTPException)
async def http_error(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})


@app.exception_handler(RequestValidationError)
async def validation_error(request: Request, exc: RequestValidationError):
    errors = "; ".join(err.get("msg", "") for err in exc.errors())
    return JSONResponse(status_code=400, content={"error": f"Invalid request body: {errors}"})


app.mount("/static", StaticFiles(directory=str(STATIC_DIR)), name="static")


@app.post(
    "/auto-label",
    response_model=LabelResult,
    response_model_exclude_none=True,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
def auto_label(request: LabelRequest):
    """
    Discover objects in one image, then detect each of them.

    Plain `def` so the blocking upstream calls run in the threadpool.
    """
    if not request.image:
        raise HTTPException(status_code=400, detail="Image is required")

    if not get_settings().MOONDREAM_API_KEY:
        raise HTTPException(status_code=500, detail="MOONDREAM_API_KEY not configured")

    log.info("=== MOONDREAM AUTO-LABELER ===")

    try:
        result = label_image(request.image, request.prompt or "")
    except Exception as e:
        log.error("Auto-label error: %s", e, exc_info=True)
        raise HTTPException(status_code=500, detail=f"Auto-labeling failed: {e}")

    log.info("Found %d bounding boxes", len(result["objects"]))
    return result


@app.get("/")
def index():
    """Serve the browser client."""
    return FileResponse(STATIC_DIR / "index.html")


@app.get("/graph/ascii")
def graph_ascii():
    """
    Return an ASCII representation of the pipeline graph.
    """
    return {"graph": pipeline.get_graph().draw_ascii()}


@app.get("/graph/mermaid")
def graph_mermaid():
    """
    Return Mermaid source for visualizing the pipeline graph.
    """
    return {"mermaid": pipeline.get_graph().draw_mermaid()}


@app.get("/health")
def health():
    """
    Basic health check.
    """
    return {"status": "ok"}


if __name__ == "__main__":
    log.info("Moondream Auto-Labeler running on http://%s:%d", settings.HOST, settings.PORT)
    uvicorn.run(app, host=settings.HOST, port=settings.PORT)
