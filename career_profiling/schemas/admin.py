"""
Pydantic schemas for admin question review and student management
"""
from pydantic import BaseModel, Field
from typing import List, Any, Optional


class BulkApproveRequest(BaseModel):
    # Element types are checked by the service so bad ids get the domain error body
    question_ids: List[Any]
    admin_comment: Optional[str] = Field(None, max_length=1000)


class BulkApproveResponse(BaseModel):
    approved_count: int
    skipped_ids: List[Any]
    message: str


class ReviewRequest(BaseModel):
    """Optional comment stored on the approval audit row"""
    admin_comment: Optional[str] = Field(None, max_length=1000)


class QuestionSummary(BaseModel):
    id: int
    status: str
    is_active: bool

    class Config:
        from_attributes = True


class RetakeResponse(BaseModel):
    message: str
    reset_count: int
    student_id: int
