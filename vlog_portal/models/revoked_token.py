# vlog_portal/models/revoked_token.py
from sqlalchemy import Column, String, DateTime
from sqlalchemy.sql import func
from vlog_portal.db.base_class import Base

class RevokedToken(Base):
    __tablename__ = "revoked_tokens"

    jti = Column(String(32), primary_key=True)
    revoked_at = Column(DateTime(timezone=True), server_default=func.now())
