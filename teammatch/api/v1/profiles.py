# teammatch/api/v1/profiles.py
from __future__ import annotations

import uuid
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from teammatch.core.auth_deps import get_current_user_id
from teammatch.core.deps import http_error
from teammatch.core.errors import EngineError
from teammatch.db.session import get_db
from teammatch.schemas.profiles import ProfileCreate, ProfileOut, ProfileUpdate
from teammatch.services.profile_service import ProfileService

router = APIRouter(prefix="/profiles", tags=["profiles"])


@router.post("", response_model=ProfileOut, status_code=201)
def create_profile(
    body: ProfileCreate,
    db: Session = Depends(get_db),
    user_id: uuid.UUID = Depends(get_current_user_id),
):
    svc = ProfileService()
    try:
        return svc.create(db, user_id=user_id, payload=body)
    except ValueError as e:
        raise HTTPException(status_code=409, detail=str(e))


@router.get("/me", response_model=ProfileOut)
def get_my_profile(db: Session = Depends(get_db), user_id: uuid.UUID = Depends(get_current_user_id)):
    try:
        return ProfileService().get(db, user_id)
    except EngineError as e:
        raise http_error(e)


@router.patch("/me", response_model=ProfileOut)
def update_my_profile(
    body: ProfileUpdate,
    db: Session = Depends(get_db),
    user_id: uuid.UUID = Depends(get_current_user_id),
):
    # the path carries no id: a profile can only be edited by its owner
    try:
        return ProfileService().update(db, user_id=user_id, payload=body)
    except EngineError as e:
        raise http_error(e)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("", response_model=List[ProfileOut])
def list_profiles(
    ids: List[uuid.UUID] = Query(default=[]),
    db: Session = Depends(get_db),
    _: uuid.UUID = Depends(get_current_user_id),
):
    return ProfileService().list_by_ids(db, ids)


@router.get("/{user_id}", response_model=ProfileOut)
def get_profile(user_id: uuid.UUID, db: Session = Depends(get_db), _: uuid.UUID = Depends(get_current_user_id)):
    try:
        return ProfileService().get(db, user_id)
    except EngineError as e:
        raise http_error(e)
