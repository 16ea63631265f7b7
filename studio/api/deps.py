"""
API Dependencies
Common dependencies for FastAPI routes (database sessions, caller identity, collaborators).
"""

from typing import Generator

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from studio.core.database import SessionLocal
from studio.core.security import decode_access_jwt

bearer = HTTPBearer(auto_error=False)


def get_db() -> Generator:
    """Get database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_current_user_id(creds: HTTPAuthorizationCredentials = Depends(bearer)) -> str:
    """Caller identity is the `sub` claim of a verified access token."""
    if not creds or not creds.credentials:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="missing_token")
    try:
        claims = decode_access_jwt(creds.credentials)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(e))

    user_id = claims.get("sub")
    if not user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="missing_user_id")
    return str(user_id)


def get_gateway():
    """Model gateway used by the execution endpoint."""
    from studio.services.gemini_image import GeminiImageService
    return GeminiImageService()


def get_queue():
    """Queue manager used for fire-and-forget execution."""
    from studio.workers.queue import get_queue_manager
    return get_queue_manager()


def get_dispatcher(db: Session = Depends(get_db), gateway=Depends(get_gateway)):
    from studio.workers.dispatcher import JobDispatcher
    return JobDispatcher(db, gateway=gateway)
