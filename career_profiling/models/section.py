"""
Section model - the five ordered, independently timed test blocks
"""
from sqlalchemy import Column, String, Integer, Text, DateTime

from career_profiling.database import Base
from career_profiling.models.types import StrictBoolean
from career_profiling.utils.datetime_utils import utc_now


class Section(Base):
    """
    Sections table - order_index (1..5) is the sole gating key
    """
    __tablename__ = "sections"
    
    id = Column(Integer, primary_key=True, autoincrement=True)
    order_index = Column(Integer, unique=True, nullable=False)
    name = Column(String(255), nullable=False)
    description = Column(Text)
    is_active = Column(StrictBoolean(), nullable=False, default=True)
    min_questions_required = Column(Integer, nullable=False, default=7)
    created_at = Column(DateTime, nullable=False, default=utc_now)
    
    def __repr__(self):
        return f"<Section(id={self.id}, order_index={self.order_index}, name={self.name})>"
