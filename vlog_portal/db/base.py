# vlog_portal/db/base.py
# Import every model so Base.metadata knows all tables (create_all, alembic)
from vlog_portal.db.base_class import Base  # noqa
from vlog_portal.models.user import User  # noqa
from vlog_portal.models.submission import Submission  # noqa
from vlog_portal.models.revoked_token import RevokedToken  # noqa
