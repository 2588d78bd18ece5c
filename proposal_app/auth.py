import logging

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .database import get_db
from .models import User
from .security_utils import verify_jwt_token

logger = logging.getLogger(__name__)

security = HTTPBearer()


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    """Get current user from the session JWT, creating the row on first sight"""

    if not credentials:
        raise HTTPException(
            status_code=401,
            detail="Not authenticated. Please provide a valid Bearer token in the Authorization header.",
        )

    token = credentials.credentials
    if len(token.split(".")) != 3:
        logger.warning(f"⚠️ Malformed token received, length: {len(token)}")
        raise HTTPException(status_code=401, detail="Invalid token format. Expected a valid JWT token.")

    payload = verify_jwt_token(token)
    if not payload:
        raise HTTPException(
            status_code=401,
            detail="Token has expired or is invalid. Please refresh your session.",
            headers={"X-Token-Expired": "true"},
        )

    external_uid = payload.get("sub")
    if not external_uid:
        logger.error(f"❌ Token missing subject claim. Available claims: {list(payload.keys())}")
        raise HTTPException(status_code=401, detail="Invalid token claims")

    user = db.query(User).filter(User.external_uid == external_uid).first()
    if user:
        return user

    logger.info(f"🆕 Creating new user for subject {external_uid}")
    user = User(
        external_uid=external_uid,
        email=payload.get("email"),
        full_name=payload.get("name"),
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        # Another request created the same user in between
        db.rollback()
        user = db.query(User).filter(User.external_uid == external_uid).first()
        if not user:
            raise
        return user

    db.refresh(user)
    return user
