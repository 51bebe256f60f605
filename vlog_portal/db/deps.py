# vlog_portal/db/deps.py
from typing import Generator

from fastapi import Request
from sqlalchemy.orm import Session


def get_db(request: Request) -> Generator[Session, None, None]:
    # session factory lives on app.state so tests can point it at their own engine
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()
