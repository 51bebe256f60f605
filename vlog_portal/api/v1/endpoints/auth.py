# vlog_portal/api/v1/endpoints/auth.py
from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.orm import Session

from vlog_portal.core.exceptions import InvalidCredentialError, InvalidEmailError
from vlog_portal.core.security import oauth2_scheme, revoke_token
from vlog_portal.db.deps import get_db
from vlog_portal.schemas.auth import LoginRequest, Token
from vlog_portal.services.auth_gateway import AuthGateway

router = APIRouter()


def _sign_in(request: Request, email: str, password: str) -> Token:
    gateway = AuthGateway(request.app.state.session_factory)
    try:
        session = gateway.sign_in(email, password)
    except InvalidEmailError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=str(exc),
        )
    except InvalidCredentialError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(exc),
            headers={"WWW-Authenticate": "Bearer"},
        )
    return Token(access_token=session.access_token)


# JSON body login (what the dashboard uses)
@router.post("/login", response_model=Token)
def login_for_access_token(payload: LoginRequest, request: Request):
    return _sign_in(request, payload.email, payload.password)


# OAuth2 form login, for the swagger "Authorize" button
@router.post("/token", response_model=Token)
def login_for_access_token_form(
    request: Request,
    form_data: OAuth2PasswordRequestForm = Depends(),
):
    """
    OAuth2 standard login; put the email address in the username field.
    """
    return _sign_in(request, form_data.username, form_data.password)


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
def logout(
    token: str = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
):
    revoke_token(db, token)
    return None
