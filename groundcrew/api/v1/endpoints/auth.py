"""
Actor resolution.
Bearer tokens are issued by the external sign-in provider; their subject
is the crew member's uid, resolved against users/{uid}.
"""
from typing import Optional
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from groundcrew.api.deps import get_store
from groundcrew.core.config import get_settings
from groundcrew.exceptions import NotFoundError
from groundcrew.schemas.crew import CrewMember, UserProfile
from groundcrew.services.store.document_store import DocumentStore

settings = get_settings()

bearer_scheme = HTTPBearer(auto_error=False)


def decode_subject(token: Optional[str]) -> Optional[str]:
    """Return the uid carried by a bearer token, or None if it is invalid"""
    if not token:
        return None
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        return None
    return payload.get("sub")


async def resolve_user(store: DocumentStore, token: Optional[str]) -> Optional[UserProfile]:
    uid = decode_subject(token)
    if uid is None:
        return None
    try:
        return await store.get_user(uid)
    except NotFoundError:
        return None


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    store: DocumentStore = Depends(get_store)
) -> UserProfile:
    """
    Get current crew member from the bearer token.
    Used as dependency in protected endpoints.
    """
    user = await resolve_user(store, credentials.credentials if credentials else None)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


async def get_current_actor(user: UserProfile = Depends(get_current_user)) -> CrewMember:
    """The signed-in user as the actor snapshot passed to core operations"""
    return user.as_crew_member()
