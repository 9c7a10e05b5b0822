from __future__ import annotations

import uuid
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from teammatch.core.types import SubjectType, SwipeDirection


class ActivityEntryOut(BaseModel):
    index: int
    subject_type: SubjectType
    subject: Dict[str, Any] = Field(default_factory=dict)
    direction: SwipeDirection
    match_id: Optional[uuid.UUID] = None


class ActivityOut(BaseModel):
    entries: List[ActivityEntryOut] = Field(default_factory=list)
    matches_count: int = 0
    can_undo: bool = False
