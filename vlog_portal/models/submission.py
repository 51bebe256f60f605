# vlog_portal/models/submission.py
from sqlalchemy import (
    Column,
    String,
    Text,
    DateTime,
    Float,
)
from vlog_portal.db.base_class import Base

class Submission(Base):
    __tablename__ = "submissions"

    # uuid4 hex, assigned by the repository on insert
    id = Column(String(32), primary_key=True)

    student_name = Column(String(100), nullable=False)
    class_label = Column(String(20), nullable=False, index=True)
    roll_number = Column(String(20), nullable=False)

    video_url = Column(Text, nullable=False)
    video_id = Column(String(11), nullable=False)
    video_title = Column(Text, nullable=False)

    status = Column(String(20), nullable=False, default="valid")

    # set once on insert, never updated
    submitted_at = Column(DateTime(timezone=True), nullable=False, index=True)

    ai_feedback = Column(Text, nullable=True)

    # 老师评分: NULL means ungraded, 0 is a real score
    score = Column(Float, nullable=True)
    teacher_feedback = Column(Text, nullable=True)
