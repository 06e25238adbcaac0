# app/surveys/api.py
from fastapi import APIRouter, Depends, Request
from starlette.responses import StreamingResponse

from app.shared.errors import AppError
from app.shared.http import ok, raise_app_error
from app.surveys.context import SurveyContext, Stores
from app.surveys.deps import get_ctx, get_origin, get_stores
from app.surveys.schemas import CompleteIn
from app.surveys.service import survey_page, start_survey, complete_survey, reset_surveys

router = APIRouter(prefix="/surveys", tags=["Surveys"])

@router.get("")
async def api_list_surveys(ctx: SurveyContext = Depends(get_ctx), stores: Stores = Depends(get_stores)):
    try:
        return ok(await survey_page(ctx, stores))
    except AppError as e:
        raise_app_error(e)

@router.get("/remaining")
async def api_remaining(stores: Stores = Depends(get_stores)):
    user = stores.profiles.get_user()
    return ok({
        "remaining": stores.policy.get_remaining_surveys(user["id"]),
        "limit": stores.policy.limit_for(user),
        "tier": user.get("tier"),
    })

@router.post("/reset")
async def api_reset(stores: Stores = Depends(get_stores)):
    return ok(reset_surveys(stores))

@router.get("/events")
async def api_events(request: Request, ctx: SurveyContext = Depends(get_ctx), origin: str = Depends(get_origin)):
    async def _gen():
        async for part in ctx.hub.stream(origin):
            # Client disconnected?
            if await request.is_disconnected():
                break
            yield part
    return StreamingResponse(_gen(), media_type="text/event-stream")

@router.post("/{survey_id}/start")
async def api_start(survey_id: str, ctx: SurveyContext = Depends(get_ctx), stores: Stores = Depends(get_stores)):
    try:
        return ok(await start_survey(ctx, stores, survey_id))
    except AppError as e:
        raise_app_error(e)

@router.post("/{survey_id}/complete")
async def api_complete(
    survey_id: str,
    inb: CompleteIn,
    ctx: SurveyContext = Depends(get_ctx),
    stores: Stores = Depends(get_stores),
):
    try:
        return ok(await complete_survey(ctx, stores, survey_id, inb.answers))
    except AppError as e:
        raise_app_error(e)
