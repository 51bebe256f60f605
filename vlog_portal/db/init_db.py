# vlog_portal/db/init_db.py
"""
Create tables and provision teacher accounts.

Teachers are not self-registered; create them from the command line:

    python -m vlog_portal.db.init_db --email guru@sekolah.id --name "Bu Guru" --password ...
"""

import argparse
import getpass
import logging
from typing import Optional

from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session

from vlog_portal.core.logging_config import setup_logging
from vlog_portal.core.security import TEACHER_ROLE, get_password_hash
from vlog_portal.db.base import Base
from vlog_portal.db.session import SessionLocal, engine
from vlog_portal.models.user import User

logger = logging.getLogger(__name__)


def init_db(bind: Optional[Engine] = None) -> None:
    Base.metadata.create_all(bind=bind or engine)


def create_teacher(db: Session, *, email: str, password: str, name: str) -> User:
    existing = db.query(User).filter(User.email == email).first()
    if existing:
        raise ValueError(f"Email already registered: {email}")

    user = User(
        email=email,
        password_hash=get_password_hash(password),
        name=name,
        role=TEACHER_ROLE,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def main(argv: Optional[list] = None) -> None:
    parser = argparse.ArgumentParser(description="Create tables and a teacher account")
    parser.add_argument("--email", required=True)
    parser.add_argument("--name", required=True)
    parser.add_argument("--password", help="prompted for when omitted")
    args = parser.parse_args(argv)

    setup_logging()
    init_db()
    password = args.password or getpass.getpass("Password: ")
    with SessionLocal() as db:
        user = create_teacher(db, email=args.email, password=password, name=args.name)
    logger.info("Created teacher %s (id=%s)", user.email, user.id)


if __name__ == "__main__":
    main()
