# app/profile/api.py
from fastapi import APIRouter, Depends

from app.profile.schemas import UserPatch
from app.shared.http import ok
from app.surveys.context import Stores
from app.surveys.deps import get_stores

router = APIRouter(prefix="/me", tags=["Me"])

@router.get("")
async def api_me(stores: Stores = Depends(get_stores)):
    return ok(stores.profiles.get_user())

@router.patch("")
async def api_patch_me(inb: UserPatch, stores: Stores = Depends(get_stores)):
    return ok(stores.profiles.set_user(inb.model_dump(exclude_unset=True)))
