from typing import Literal, Optional
from pydantic import BaseModel, Field

Tier = Literal["free", "silver", "gold", "platinum"]

class UserPatch(BaseModel):
    name: Optional[str] = Field(default=None, max_length=200)
    email: Optional[str] = None
    plan: Optional[str] = None
    tier: Optional[Tier] = None
    balance: Optional[float] = Field(default=None, ge=0)
