from typing import Any
from pydantic import BaseModel, Field

class CompleteIn(BaseModel):
    answers: dict[str, Any] = Field(default_factory=dict, description="question id -> response")
