# vlog_portal/schemas/auth.py
from pydantic import BaseModel


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


class LoginRequest(BaseModel):
    # plain str: the auth gateway reports a malformed email as its own error
    email: str
    password: str
