"""
Per (attempt, section) timer state
"""
import enum

from sqlalchemy import Column, Integer, DateTime, ForeignKey, UniqueConstraint, Enum as SAEnum
from sqlalchemy.orm import relationship

from career_profiling.database import Base
from career_profiling.utils.datetime_utils import utc_now


class SectionStatus(str, enum.Enum):
    NOT_STARTED = "NOT_STARTED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"


class SectionProgress(Base):
    """
    Section progress table
    
    While IN_PROGRESS exactly one of section_start_time (running) and
    paused_at (paused) is set; both are null once COMPLETED.
    """
    __tablename__ = "section_progress"
    __table_args__ = (
        UniqueConstraint("attempt_id", "section_id", name="uq_attempt_section"),
    )
    
    id = Column(Integer, primary_key=True, autoincrement=True)
    attempt_id = Column(Integer, ForeignKey("test_attempts.id", ondelete="CASCADE"), nullable=False, index=True)
    section_id = Column(Integer, ForeignKey("sections.id", ondelete="CASCADE"), nullable=False)
    status = Column(
        SAEnum(SectionStatus, native_enum=False, length=20),
        nullable=False,
        default=SectionStatus.NOT_STARTED
    )
    section_start_time = Column(DateTime)
    total_time_spent = Column(Integer, nullable=False, default=0)  # seconds
    paused_at = Column(DateTime)
    created_at = Column(DateTime, nullable=False, default=utc_now)
    updated_at = Column(DateTime, onupdate=utc_now)
    
    section = relationship("Section")
    
    @property
    def is_paused(self) -> bool:
        return self.paused_at is not None
    
    def __repr__(self):
        return f"<SectionProgress(attempt_id={self.attempt_id}, section_id={self.section_id}, status={self.status})>"
