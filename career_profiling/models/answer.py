"""
Answer ledger
"""
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship

from career_profiling.database import Base
from career_profiling.utils.datetime_utils import utc_now


class Answer(Base):
    """
    One stored answer per (attempt, question). Section submit never
    overwrites a row; only save-answer updates in place.
    """
    __tablename__ = "answers"
    __table_args__ = (
        UniqueConstraint("attempt_id", "question_id", name="uq_answer_attempt_question"),
    )
    
    id = Column(Integer, primary_key=True, autoincrement=True)
    attempt_id = Column(Integer, ForeignKey("test_attempts.id", ondelete="CASCADE"), nullable=False, index=True)
    question_id = Column(Integer, ForeignKey("questions.id", ondelete="CASCADE"), nullable=False)
    answer_text = Column(String(255), nullable=False)
    created_at = Column(DateTime, nullable=False, default=utc_now)
    updated_at = Column(DateTime, onupdate=utc_now)
    
    question = relationship("Question")
    
    def __repr__(self):
        return f"<Answer(attempt_id={self.attempt_id}, question_id={self.question_id})>"
