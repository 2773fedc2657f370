"""
Pydantic schemas for the student test flow
"""
from pydantic import BaseModel, Field
from typing import List, Dict, Any, Optional
from datetime import datetime


class StartTestResponse(BaseModel):
    """Response after starting (or re-entering) a test attempt"""
    test_attempt_id: int
    status: str
    started_at: datetime
    total_questions: int


class SectionSummary(BaseModel):
    id: int
    name: str
    status: str  # available, locked, completed, IN_PROGRESS
    question_count: int
    time_limit: int
    order_index: int


class SectionsOverview(BaseModel):
    """All sections with their gating status"""
    current_section: int
    sections: List[SectionSummary]
    can_attempt_test: bool
    completed_test_attempt_id: Optional[int] = None
    test_attempt_id: Optional[int] = None


class OptionOut(BaseModel):
    key: str
    text: str


class QuestionOut(BaseModel):
    """A question as shown to the student, without the answer key"""
    question_id: int
    question_text: str
    options: List[OptionOut]


class SectionAttemptRequest(BaseModel):
    """Body for timer transitions; attempt_id may also come as a query parameter"""
    attempt_id: Optional[int] = None


class TimerSnapshot(BaseModel):
    section_id: int
    section_name: str
    status: str
    total_time_spent: int
    is_paused: bool
    current_time: int


class TimerTransitionResponse(BaseModel):
    """Response for pause and resume"""
    message: str
    remaining_time_seconds: int
    total_time_spent: int


class AnswerIn(BaseModel):
    question_id: int
    selected_option: str = Field(..., min_length=1, max_length=255)


class SubmitSectionRequest(BaseModel):
    """Schema for section submission"""
    attempt_id: int
    section_id: int
    answers: List[AnswerIn]


class SubmitSectionResponse(BaseModel):
    status: str
    completed_section: int
    current_section: Optional[int] = None


class SaveAnswerRequest(BaseModel):
    attempt_id: Optional[int] = None
    question_id: Optional[int] = None
    selected_option: Optional[str] = Field(None, max_length=255)


class SaveAnswerResponse(BaseModel):
    success: bool
    answer_id: int
    question_id: int
    selected_option: str


class UpdateStateRequest(BaseModel):
    current_question_index: Optional[int] = None
    remaining_time_seconds: Optional[int] = None


class UpdateStateResponse(BaseModel):
    success: bool
    current_question_index: int
    remaining_time_seconds: Optional[int] = None


class CurrentSection(BaseModel):
    id: int
    order_index: int
    name: str


class AttemptStateResponse(BaseModel):
    """
    Resume pointer for the client

    Completed attempts only carry test_attempt_id, status and completed_at.
    """
    test_attempt_id: int
    status: str
    completed_at: Optional[datetime] = None
    current_section_id: Optional[int] = None
    current_section: Optional[CurrentSection] = None
    current_question_index: Optional[int] = None
    remaining_time_seconds: Optional[int] = None
    is_paused: Optional[bool] = None


class AttemptProgressResponse(BaseModel):
    test_attempt_id: int
    status: str
    completed_at: Optional[datetime] = None
    started_at: Optional[datetime] = None
    current_section: Optional[CurrentSection] = None
    current_question_index: Optional[int] = None
    answers: Optional[Dict[int, str]] = None
    remaining_time_seconds: Optional[int] = None
    section_start_time: Optional[datetime] = None
    paused_at: Optional[datetime] = None
    is_paused: Optional[bool] = None


class AttemptStatusResponse(BaseModel):
    test_attempt_id: int
    status: str
    started_at: datetime
    completed_at: Optional[datetime] = None
    total_questions: int
    answered_questions: int
    completed_sections: List[int]
    current_section: Optional[int] = None
    total_sections: int


class CompleteTestResponse(BaseModel):
    message: str
    test_attempt_id: int
    status: str
