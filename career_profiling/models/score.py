"""
Score model - dimension is "overall" or "section_<order_index>"
(or a free-form question category)
"""
from sqlalchemy import Column, Integer, String, Float, DateTime, ForeignKey

from career_profiling.database import Base
from career_profiling.utils.datetime_utils import utc_now


class Score(Base):
    __tablename__ = "scores"
    
    id = Column(Integer, primary_key=True, autoincrement=True)
    attempt_id = Column(Integer, ForeignKey("test_attempts.id", ondelete="CASCADE"), nullable=False, index=True)
    dimension = Column(String(100), nullable=False)
    score_value = Column(Float, nullable=False)
    percentile = Column(Float)
    created_at = Column(DateTime, nullable=False, default=utc_now)
    
    def __repr__(self):
        return f"<Score(attempt_id={self.attempt_id}, dimension={self.dimension}, value={self.score_value})>"
