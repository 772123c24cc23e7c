"""ASGI entrypoint: the /v1 API plus the single-page UI under /static."""

from pathlib import Path

from fastapi import FastAPI
from fastapi.responses import FileResponse
from fastapi.staticfiles import StaticFiles

from .api import router as api_router

_STATIC_DIR = Path(__file__).resolve().parent.parent / "static"
_INDEX = _STATIC_DIR / "index.html"

app = FastAPI(
    title="Outdoor Activity Planner",
    description="Best time today for running, cycling, the beach and hiking.",
)
app.include_router(api_router, prefix="/v1")
app.mount("/static", StaticFiles(directory=_STATIC_DIR), name="static")


@app.get("/", include_in_schema=False)
def index():
    """Serve the recommendation page."""
    return FileResponse(_INDEX)
