"""
Interpreted result model - narrative and derived classifications,
one per completed attempt
"""
from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, JSON

from career_profiling.database import Base
from career_profiling.models.types import StrictBoolean
from career_profiling.utils.datetime_utils import utc_now


class InterpretedResult(Base):
    """
    Interpreted results table
    
    Created once after scoring and only regenerated when absent.
    """
    __tablename__ = "interpreted_results"
    
    id = Column(Integer, primary_key=True, autoincrement=True)
    attempt_id = Column(
        Integer, ForeignKey("test_attempts.id", ondelete="CASCADE"),
        unique=True, nullable=False
    )
    interpretation_text = Column(Text, nullable=False)
    strengths = Column(JSON, default=list)
    areas_for_improvement = Column(JSON, default=list)
    career_clusters = Column(JSON, default=list)
    action_plan = Column(JSON, default=list)
    is_ai_generated = Column(StrictBoolean(), nullable=False, default=False)
    
    readiness_status = Column(String(50))
    readiness_explanation = Column(Text)
    risk_level = Column(String(20))
    risk_explanation = Column(Text)
    career_direction = Column(String(255))
    career_direction_reason = Column(Text)
    roadmap = Column(JSON)
    counsellor_summary = Column(Text)
    readiness_action_guidance = Column(JSON, default=list)
    career_confidence_level = Column(String(20))
    career_confidence_explanation = Column(Text)
    do_now_actions = Column(JSON, default=list)
    do_later_actions = Column(JSON, default=list)
    risk_explanation_human = Column(Text)
    
    created_at = Column(DateTime, nullable=False, default=utc_now)
    
    def __repr__(self):
        return f"<InterpretedResult(attempt_id={self.attempt_id}, readiness={self.readiness_status})>"
