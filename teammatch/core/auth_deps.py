# teammatch/core/auth_deps.py
from __future__ import annotations

import uuid

from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from sqlalchemy.orm import Session

from teammatch.core.security import decode_token
from teammatch.db.session import get_db
from teammatch.policies.rbac import ActorSession, resolve_actor_session

bearer = HTTPBearer(auto_error=True)


def user_id_from_token(token: str) -> uuid.UUID:
    """
    The auth provider puts the user id in `sub`. Raises HTTPException(401)
    for anything else.
    """
    try:
        payload = decode_token(token)
    except JWTError:
        raise HTTPException(status_code=401, detail="Invalid or expired token.")

    sub = payload.get("sub")
    if not sub:
        raise HTTPException(status_code=401, detail="Token missing subject.")
    try:
        return uuid.UUID(str(sub))
    except ValueError:
        raise HTTPException(status_code=401, detail="Token subject is not a user id.")


def get_current_user_id(creds: HTTPAuthorizationCredentials = Depends(bearer)) -> uuid.UUID:
    return user_id_from_token(creds.credentials)


def get_actor_session(
    request: Request,
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: Session = Depends(get_db),
) -> ActorSession:
    """Resolved once per request; handlers pass it into every engine call."""
    session = resolve_actor_session(db, user_id)
    request.state.actor = session
    return session
