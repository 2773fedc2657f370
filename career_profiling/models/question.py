"""
Question bank models
"""
import enum

from sqlalchemy import Column, String, Integer, Text, DateTime, ForeignKey, Enum as SAEnum
from sqlalchemy.orm import relationship

from career_profiling.database import Base
from career_profiling.models.types import OptionList, StrictBoolean
from career_profiling.utils.datetime_utils import utc_now


class QuestionType(str, enum.Enum):
    MULTIPLE_CHOICE = "MULTIPLE_CHOICE"
    LIKERT_SCALE = "LIKERT_SCALE"


class QuestionStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    INACTIVE = "inactive"


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


class Question(Base):
    """
    Questions table - only approved + active rows are eligible for assignment
    """
    __tablename__ = "questions"
    
    id = Column(Integer, primary_key=True, autoincrement=True)
    question_text = Column(Text, nullable=False)
    question_type = Column(SAEnum(QuestionType, native_enum=False, length=20), nullable=False)
    options = Column(OptionList())  # [Option(key="A", text="...")]
    correct_answer = Column(String(10))  # null for Likert items
    category = Column(String(100))
    section_id = Column(Integer, ForeignKey("sections.id", ondelete="SET NULL"), index=True)
    status = Column(
        SAEnum(QuestionStatus, native_enum=False, length=20, values_callable=_enum_values),
        nullable=False,
        default=QuestionStatus.PENDING,
        index=True
    )
    is_active = Column(StrictBoolean(), nullable=False, default=True)
    order_index = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, nullable=False, default=utc_now)
    updated_at = Column(DateTime, onupdate=utc_now)
    
    section = relationship("Section")
    
    def __repr__(self):
        return f"<Question(id={self.id}, section_id={self.section_id}, status={self.status})>"


class QuestionApproval(Base):
    """
    Audit trail of admin status transitions
    """
    __tablename__ = "question_approvals"
    
    id = Column(Integer, primary_key=True, autoincrement=True)
    question_id = Column(Integer, ForeignKey("questions.id", ondelete="CASCADE"), nullable=False, index=True)
    reviewed_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"))
    approval_status = Column(
        SAEnum(QuestionStatus, native_enum=False, length=20, values_callable=_enum_values),
        nullable=False
    )
    admin_comment = Column(Text)
    reviewed_at = Column(DateTime, nullable=False, default=utc_now)
    
    def __repr__(self):
        return f"<QuestionApproval(question_id={self.question_id}, status={self.approval_status})>"
