# vlog_portal/schemas/user.py
from datetime import datetime

from pydantic import BaseModel, EmailStr


class UserPublic(BaseModel):
    id: int
    email: EmailStr
    name: str
    role: str  # "teacher"
    created_at: datetime | None = None

    model_config = {"from_attributes": True}
