from fastapi import Depends, Header, Request
from sqlalchemy.orm import Session

from app.shared.config import settings
from app.shared.db import get_db
from app.surveys.context import SurveyContext, Stores

def get_ctx(request: Request) -> SurveyContext:
    return request.app.state.ctx

def get_origin(x_storage_origin: str | None = Header(default=None, alias="X-Storage-Origin")) -> str:
    return (x_storage_origin or "").strip() or settings.DEFAULT_ORIGIN

async def get_stores(
    ctx: SurveyContext = Depends(get_ctx),
    db: Session = Depends(get_db),
    origin: str = Depends(get_origin),
) -> Stores:
    return ctx.storage(db, origin)
