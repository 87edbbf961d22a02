from pydantic import BaseModel, StrictBool, model_validator
from typing import Any, Dict, Literal, Optional

NEEDS_ACTIVITY = ("vote", "finalize", "delete")


class LiveMessage(BaseModel):
    """One client frame on the live board socket."""

    action: Literal["vote", "finalize", "save", "delete", "query"]
    activity_id: Optional[str] = None
    value: Optional[StrictBool] = None
    data: Optional[Dict[str, Any]] = None
    query: Optional[Dict[str, Any]] = None

    @model_validator(mode="after")
    def check_action_fields(self):
        if self.action in NEEDS_ACTIVITY and not self.activity_id:
            raise ValueError(f"{self.action} needs an activity_id")
        if self.action == "vote" and self.value is None:
            raise ValueError("vote needs a true or false value")
        return self
