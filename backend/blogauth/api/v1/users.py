"""User routes"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from blogauth.api.deps import require_access_token
from blogauth.core.database import get_db
from blogauth.core.exceptions import AuthenticationError
from blogauth.schemas.user import UserResponse
from blogauth.services.user_service import user_service

router = APIRouter()


@router.get("/me", response_model=UserResponse)
def get_my_profile(
    user_id: str = Depends(require_access_token),
    db: Session = Depends(get_db)
):
    """
    Get current user profile

    Args:
        user_id: Authenticated user id from the access token
        db: Database session

    Returns:
        Public user view
    """
    user = user_service.find_by_id(db, int(user_id))
    if not user:
        raise AuthenticationError("User not found")
    return UserResponse.model_validate(user)
