# vlog_portal/api/v1/endpoints/users.py
from fastapi import APIRouter, Depends

from vlog_portal.schemas.user import UserPublic
from vlog_portal.models.user import User
from vlog_portal.core.security import get_current_user

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/me", response_model=UserPublic)
def read_me(current_user: User = Depends(get_current_user)):
    return current_user
