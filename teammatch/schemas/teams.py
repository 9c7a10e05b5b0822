from __future__ import annotations

import uuid
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from teammatch.core.types import MemberRole, Studio
from teammatch.schemas.validation import sanitize_optional, sanitize_text


class TeamCreate(BaseModel):
    name: str = Field(..., min_length=3, max_length=100)
    description: Optional[str] = Field(default=None, max_length=1000)
    studio: Studio
    looking_for: Optional[str] = Field(default=None, max_length=500)
    skills_needed: List[str] = Field(default_factory=list, max_length=20)

    @field_validator("name")
    @classmethod
    def _name(cls, v: str) -> str:
        v = sanitize_text(v)
        if len(v) < 3:
            raise ValueError("Team name must be at least 3 characters")
        return v

    @field_validator("description", "looking_for")
    @classmethod
    def _free_text(cls, v: Optional[str]) -> Optional[str]:
        return sanitize_optional(v)

    @field_validator("skills_needed")
    @classmethod
    def _skills(cls, v: List[str]) -> List[str]:
        if any(len(s) > 50 for s in v):
            raise ValueError("Skills must be at most 50 characters each")
        return [sanitize_text(s) for s in v if s.strip()]


class TeamUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=3, max_length=100)
    description: Optional[str] = Field(default=None, max_length=1000)
    studio: Optional[Studio] = None
    looking_for: Optional[str] = Field(default=None, max_length=500)
    skills_needed: Optional[List[str]] = Field(default=None, max_length=20)

    @field_validator("name", "description", "looking_for")
    @classmethod
    def _free_text(cls, v: Optional[str]) -> Optional[str]:
        return sanitize_optional(v)


class TeamOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    description: Optional[str] = None
    studio: str
    looking_for: Optional[str] = None
    skills_needed: List[str] = Field(default_factory=list)
    created_by: uuid.UUID


class TeamMemberOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    team_id: uuid.UUID
    user_id: uuid.UUID
    role: str
    status: str


class RoleChange(BaseModel):
    role: MemberRole

    @field_validator("role")
    @classmethod
    def _no_owner(cls, v: MemberRole) -> MemberRole:
        if v == MemberRole.owner:
            raise ValueError("Ownership cannot be assigned")
        return v
