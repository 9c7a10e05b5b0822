from __future__ import annotations

import uuid
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from teammatch.core.types import Program, Studio
from teammatch.schemas.validation import is_linkedin_url, sanitize_optional, sanitize_text



def _check_skills(skills: List[str]) -> List[str]:
    cleaned = [sanitize_text(s) for s in skills]
    if any(len(s) > 50 for s in cleaned):
        raise ValueError("Skills must be at most 50 characters each")
    return [s for s in cleaned if s]


class ProfileCreate(BaseModel):
    name: str = Field(..., min_length=2, max_length=100)
    program: Program
    skills: List[str] = Field(default_factory=list, max_length=20)
    bio: Optional[str] = Field(default=None, max_length=500)
    studio_preferences: List[Studio] = Field(..., min_length=1, description="ordered; first is primary")
    avatar: Optional[str] = Field(default=None, max_length=512)
    linkedin: Optional[str] = Field(default=None, max_length=200)

    @field_validator("name")
    @classmethod
    def _name(cls, v: str) -> str:
        v = sanitize_text(v)
        if len(v) < 2:
            raise ValueError("Name must be at least 2 characters")
        return v

    @field_validator("bio")
    @classmethod
    def _bio(cls, v: Optional[str]) -> Optional[str]:
        return sanitize_optional(v)

    @field_validator("skills")
    @classmethod
    def _skills(cls, v: List[str]) -> List[str]:
        return _check_skills(v)

    @field_validator("linkedin")
    @classmethod
    def _linkedin(cls, v: Optional[str]) -> Optional[str]:
        if v:
            v = v.strip()
            if not is_linkedin_url(v):
                raise ValueError("Must be a valid LinkedIn URL")
        return v or None


class ProfileUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=2, max_length=100)
    program: Optional[Program] = None
    skills: Optional[List[str]] = Field(default=None, max_length=20)
    bio: Optional[str] = Field(default=None, max_length=500)
    studio_preferences: Optional[List[Studio]] = Field(default=None, min_length=1)
    avatar: Optional[str] = Field(default=None, max_length=512)
    linkedin: Optional[str] = Field(default=None, max_length=200)

    @field_validator("name")
    @classmethod
    def _name(cls, v: Optional[str]) -> Optional[str]:
        return sanitize_optional(v)

    @field_validator("bio")
    @classmethod
    def _bio(cls, v: Optional[str]) -> Optional[str]:
        return sanitize_optional(v)

    @field_validator("skills")
    @classmethod
    def _skills(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        return _check_skills(v) if v is not None else v

    @field_validator("linkedin")
    @classmethod
    def _linkedin(cls, v: Optional[str]) -> Optional[str]:
        if v and not is_linkedin_url(v.strip()):
            raise ValueError("Must be a valid LinkedIn URL")
        return v.strip() if v else v


class ProfileOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: uuid.UUID
    name: str
    program: str
    skills: List[str] = Field(default_factory=list)
    bio: Optional[str] = None
    studio_preferences: List[str] = Field(default_factory=list)
    avatar: Optional[str] = None
    linkedin: Optional[str] = None
