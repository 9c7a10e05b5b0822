# teammatch/api/v1/teams.py
from __future__ import annotations

import uuid
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Response
from pydantic import BaseModel
from sqlalchemy.orm import Session

from teammatch.core.auth_deps import get_current_user_id
from teammatch.core.deps import http_error
from teammatch.core.errors import EngineError
from teammatch.db.session import get_db
from teammatch.schemas.teams import RoleChange, TeamCreate, TeamMemberOut, TeamOut, TeamUpdate
from teammatch.services.team_service import TeamService

router = APIRouter(prefix="/teams", tags=["teams"])


class AddMemberRequest(BaseModel):
    user_id: uuid.UUID


def _call(fn, *args, **kwargs):
    try:
        return fn(*args, **kwargs)
    except EngineError as e:
        raise http_error(e)
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("", response_model=TeamOut, status_code=201)
def create_team(body: TeamCreate, db: Session = Depends(get_db), user_id: uuid.UUID = Depends(get_current_user_id)):
    return _call(TeamService().create, db, owner_id=user_id, payload=body)


@router.get("/mine", response_model=List[TeamOut])
def my_teams(db: Session = Depends(get_db), user_id: uuid.UUID = Depends(get_current_user_id)):
    return TeamService().list_for_user(db, user_id)


@router.get("/{team_id}", response_model=TeamOut)
def get_team(team_id: uuid.UUID, db: Session = Depends(get_db), _: uuid.UUID = Depends(get_current_user_id)):
    return _call(TeamService().get, db, team_id)


@router.patch("/{team_id}", response_model=TeamOut)
def update_team(
    team_id: uuid.UUID,
    body: TeamUpdate,
    db: Session = Depends(get_db),
    user_id: uuid.UUID = Depends(get_current_user_id),
):
    return _call(TeamService().update, db, team_id=team_id, actor_id=user_id, payload=body)


@router.delete("/{team_id}", status_code=204)
def delete_team(team_id: uuid.UUID, db: Session = Depends(get_db), user_id: uuid.UUID = Depends(get_current_user_id)):
    _call(TeamService().delete, db, team_id=team_id, actor_id=user_id)
    return Response(status_code=204)


# ---------------------------
# MEMBERS
# ---------------------------


@router.get("/{team_id}/members", response_model=List[TeamMemberOut])
def list_members(team_id: uuid.UUID, db: Session = Depends(get_db), _: uuid.UUID = Depends(get_current_user_id)):
    return _call(TeamService().list_members, db, team_id)


@router.post("/{team_id}/members", response_model=TeamMemberOut, status_code=201)
def add_member(
    team_id: uuid.UUID,
    body: AddMemberRequest,
    db: Session = Depends(get_db),
    user_id: uuid.UUID = Depends(get_current_user_id),
):
    return _call(TeamService().add_member, db, team_id=team_id, actor_id=user_id, user_id=body.user_id)


@router.put("/{team_id}/members/{member_user_id}/role", response_model=TeamMemberOut)
def change_role(
    team_id: uuid.UUID,
    member_user_id: uuid.UUID,
    body: RoleChange,
    db: Session = Depends(get_db),
    user_id: uuid.UUID = Depends(get_current_user_id),
):
    return _call(
        TeamService().change_role, db, team_id=team_id, actor_id=user_id, user_id=member_user_id, role=body.role
    )


@router.delete("/{team_id}/members/{member_user_id}", status_code=204)
def remove_member(
    team_id: uuid.UUID,
    member_user_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_id: uuid.UUID = Depends(get_current_user_id),
):
    svc = TeamService()
    if member_user_id == user_id:
        _call(svc.leave, db, team_id=team_id, user_id=user_id)
    else:
        _call(svc.remove_member, db, team_id=team_id, actor_id=user_id, user_id=member_user_id)
    return Response(status_code=204)
