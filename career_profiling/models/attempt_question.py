"""
Junction between an attempt and the questions assigned to it
"""
from sqlalchemy import Column, Integer, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship

from career_profiling.database import Base
from career_profiling.utils.datetime_utils import utc_now


class AttemptQuestionAssignment(Base):
    """
    Assigned question set per attempt. The (attempt_id, question_id)
    unique constraint is what makes concurrent assignment idempotent.
    """
    __tablename__ = "attempt_questions"
    __table_args__ = (
        UniqueConstraint("attempt_id", "question_id", name="uq_attempt_question"),
    )
    
    id = Column(Integer, primary_key=True, autoincrement=True)
    attempt_id = Column(Integer, ForeignKey("test_attempts.id", ondelete="CASCADE"), nullable=False, index=True)
    question_id = Column(Integer, ForeignKey("questions.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime, nullable=False, default=utc_now)
    
    question = relationship("Question")
    
    def __repr__(self):
        return f"<AttemptQuestionAssignment(attempt_id={self.attempt_id}, question_id={self.question_id})>"
