from pathlib import Path

from fastapi import FastAPI
from fastapi.responses import FileResponse

from app.shared.config import settings
from app.shared.db import Base, engine
from app.shared.logs import setup_logging
from app.catalog.loader import catalog_url
from app.surveys.context import build_context

# import models so they register with Base.metadata
from app.storage import models as storage_models  # noqa: F401

# Routers Import
from app.surveys.api import router as surveys_router
from app.profile.api import router as profile_router

TAGS_METADATA = [
    {"name": "Surveys", "description": "List, start and complete surveys within the daily quota"},
    {"name": "Me", "description": "The origin's user profile"},
    {"name": "Catalog", "description": "Bundled static survey catalog"},
    {"name": "Health", "description": "Service health"},
]

app = FastAPI(
    title="Survey Pro",
    version="0.1.0",
    description="Survey rewards: catalog, tier quotas and completion log.",
    openapi_tags=TAGS_METADATA,
)
app.state.ctx = build_context(settings)


@app.on_event("startup")
async def _startup():
    setup_logging(settings.LOG_LEVEL)
    Base.metadata.create_all(bind=engine)
    if settings.TOASTS_ENABLED:
        app.state.ctx.ticker.start()

@app.on_event("shutdown")
async def _shutdown():
    await app.state.ctx.ticker.aclose()

@app.get("/healthz", tags=["Health"])
def healthz():
    return {"ok": True}

# static catalog under the deployment base path (same path the loader fetches)
@app.get(catalog_url(settings.BASE_PATH), tags=["Catalog"])
def static_catalog():
    return FileResponse(
        path=Path(settings.CATALOG_FILE),
        media_type="application/json",
        headers={"Cache-Control": "no-store"},
    )

# Routers
app.include_router(surveys_router)
app.include_router(profile_router)
