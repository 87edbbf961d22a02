from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from typing import Optional
from planit.models.user.user import User
from planit.core.database import get_db
from planit.core.security import decode_access_token

security = HTTPBearer()


async def user_from_token(token: Optional[str], db: AsyncSession) -> Optional[User]:
    user_id = decode_access_token(token) if token else None
    if user_id is None:
        return None
    return await db.scalar(select(User).filter(User.id == user_id))


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: AsyncSession = Depends(get_db)
):
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    user = await user_from_token(credentials.credentials, db)
    if user is None:
        raise credentials_exception
    return user
