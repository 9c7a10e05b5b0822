from __future__ import annotations

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from teammatch.core.types import SubjectType, SwipeDirection


class SwipeRequest(BaseModel):
    subject_type: SubjectType
    subject_id: uuid.UUID
    direction: SwipeDirection


class MatchOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    user_id: uuid.UUID
    target_user_id: uuid.UUID
    team_id: Optional[uuid.UUID] = None
    match_type: str
    status: str
    created_at: datetime


class CreatedMatch(BaseModel):
    match_id: uuid.UUID
    conversation_id: uuid.UUID
    match_type: str


class SwipeResponse(BaseModel):
    direction: SwipeDirection
    subject_type: SubjectType
    subject_id: uuid.UUID
    match: Optional[CreatedMatch] = None
    history_length: int
    matches_count: int


class JoinRequestResponse(BaseModel):
    match_id: uuid.UUID
    status: str
    member_added: bool = False
    participant_added: bool = False
    notices: List[str] = Field(default_factory=list)
