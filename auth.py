"""Request dependencies: database handle, current user, bearer credential."""
import os
import logging
from typing import Optional

from fastapi import Depends, Header
from pymongo.errors import PyMongoError

import database
from schemas import CurrentUser

logger = logging.getLogger(__name__)


def get_db():
    return database.db


def bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def get_current_user(authorization: Optional[str] = Header(None), db=Depends(get_db)) -> Optional[CurrentUser]:
    """Resolve the session token to a user, or None when signed out."""
    token = bearer_token(authorization)
    if token is None or db is None:
        return None
    try:
        session = db["session"].find_one({"token": token})
    except PyMongoError as e:
        logger.error("Session lookup failed: %s", e)
        return None
    if not session:
        return None
    return CurrentUser(id=str(session["user_id"]), email=session.get("email"))


def has_function_credential(authorization: Optional[str]) -> bool:
    """Form functions accept any bearer token unless FUNCTIONS_API_KEY pins one."""
    token = bearer_token(authorization)
    if token is None:
        return False
    expected = os.getenv("FUNCTIONS_API_KEY")
    return expected is None or token == expected
