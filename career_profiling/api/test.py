"""
Student test flow API endpoints
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import List, Optional
import logging
from career_profiling.core.security import require_roles
from career_profiling.database import get_db
from career_profiling.exceptions import ValidationError
from career_profiling.models import User, UserRole
from career_profiling.schemas.interpretation import InterpretationReport
from career_profiling.schemas.test import (
    AttemptProgressResponse,
    AttemptStateResponse,
    AttemptStatusResponse,
    CompleteTestResponse,
    QuestionOut,
    SaveAnswerRequest,
    SaveAnswerResponse,
    SectionAttemptRequest,
    SectionsOverview,
    StartTestResponse,
    SubmitSectionRequest,
    SubmitSectionResponse,
    TimerSnapshot,
    TimerTransitionResponse,
    UpdateStateRequest,
    UpdateStateResponse,
)
from career_profiling.services.attempt_service import attempt_service
from career_profiling.services.interpretation_service import interpretation_service


router = APIRouter(prefix="/test", tags=["test"])
logger = logging.getLogger(__name__)

student_only = require_roles(UserRole.STUDENT)


def _attempt_id(body: Optional[SectionAttemptRequest], attempt_id: Optional[int]) -> int:
    """attempt_id from the JSON body, else the query string"""
    if body is not None and body.attempt_id is not None:
        return body.attempt_id
    if attempt_id is not None:
        return attempt_id
    raise ValidationError("attempt_id is required")


@router.post("/start", response_model=StartTestResponse)
async def start_test(
    current_user: User = Depends(student_only), db: Session = Depends(get_db)
):
    """
    Start a test attempt

    - Returns the attempt already in progress, if any
    - Rejects students who already completed the test
    - Requires at least one section with 7 approved questions
    """
    return attempt_service.start(db, current_user)


@router.get("/sections", response_model=SectionsOverview)
async def list_sections(
    attempt_id: Optional[int] = Query(None),
    current_user: User = Depends(student_only),
    db: Session = Depends(get_db),
):
    """All five sections with available / locked / completed status"""
    return attempt_service.sections_overview(db, current_user, attempt_id)


@router.api_route(
    "/sections/{section_id}/questions",
    methods=["GET", "POST"],
    response_model=List[QuestionOut],
)
async def get_section_questions(
    section_id: int,
    attempt_id: int = Query(...),
    current_user: User = Depends(student_only),
    db: Session = Depends(get_db),
):
    """
    Questions for a section

    - 7 questions are picked at random on first access and then fixed
    - Earlier sections must be completed first (403 SECTION_LOCKED)
    """
    return attempt_service.get_section_questions(db, current_user, attempt_id, section_id)


@router.get("/questions", response_model=List[QuestionOut])
async def get_all_questions(
    attempt_id: Optional[int] = Query(None),
    current_user: User = Depends(student_only),
    db: Session = Depends(get_db),
):
    """
    Every question assigned so far, across sections

    Defaults to the student's latest attempt in progress. 400
    NO_QUESTIONS_ASSIGNED until a section has been opened.
    """
    return attempt_service.get_all_questions(db, current_user, attempt_id)


@router.post("/sections/{section_id}/start", response_model=TimerSnapshot)
async def start_section(
    section_id: int,
    body: Optional[SectionAttemptRequest] = None,
    attempt_id: Optional[int] = Query(None),
    current_user: User = Depends(student_only),
    db: Session = Depends(get_db),
):
    return attempt_service.start_section(db, current_user, _attempt_id(body, attempt_id), section_id)


@router.post("/sections/{section_id}/pause", response_model=TimerTransitionResponse)
async def pause_section(
    section_id: int,
    body: Optional[SectionAttemptRequest] = None,
    attempt_id: Optional[int] = Query(None),
    current_user: User = Depends(student_only),
    db: Session = Depends(get_db),
):
    return attempt_service.pause_section(db, current_user, _attempt_id(body, attempt_id), section_id)


@router.post("/sections/{section_id}/resume", response_model=TimerTransitionResponse)
async def resume_section(
    section_id: int,
    body: Optional[SectionAttemptRequest] = None,
    attempt_id: Optional[int] = Query(None),
    current_user: User = Depends(student_only),
    db: Session = Depends(get_db),
):
    return attempt_service.resume_section(db, current_user, _attempt_id(body, attempt_id), section_id)


@router.get("/sections/{section_id}/timer", response_model=TimerSnapshot)
async def read_section_timer(
    section_id: int,
    attempt_id: int = Query(...),
    current_user: User = Depends(student_only),
    db: Session = Depends(get_db),
):
    """Timer snapshot; completes the section if its 7 minutes are used up"""
    return attempt_service.read_timer(db, current_user, attempt_id, section_id)


@router.post("/sections/{section_id}/submit", response_model=SubmitSectionResponse)
async def submit_section(
    section_id: int,
    submission: SubmitSectionRequest,
    current_user: User = Depends(student_only),
    db: Session = Depends(get_db),
):
    """
    Submit all answers for a section

    Resubmitting a completed section only returns the next section.
    Submitting the last section completes the attempt.
    """
    logger.info(f"Section {section_id} submission for attempt {submission.attempt_id}")

    return attempt_service.submit_section(
        db,
        current_user,
        section_ref=section_id,
        attempt_id=submission.attempt_id,
        body_section_id=submission.section_id,
        answers=[answer.model_dump() for answer in submission.answers],
    )


@router.post("/save-answer", response_model=SaveAnswerResponse)
async def save_answer(
    request: SaveAnswerRequest,
    current_user: User = Depends(student_only),
    db: Session = Depends(get_db),
):
    return attempt_service.save_answer(
        db, current_user, request.attempt_id, request.question_id, request.selected_option
    )


@router.get("/interpretation/{attempt_id}", response_model=InterpretationReport)
async def get_interpretation(
    attempt_id: int,
    current_user: User = Depends(require_roles(UserRole.STUDENT, UserRole.COUNSELLOR)),
    db: Session = Depends(get_db),
):
    """
    Scored and interpreted report for a completed attempt

    - Cached for 1 hour once fully generated
    - Falls back to a deterministic narrative when Gemini is unavailable
    """
    return interpretation_service.get_report(db, current_user, attempt_id)


@router.post("/{attempt_id}/complete", response_model=CompleteTestResponse)
async def complete_test(
    attempt_id: int,
    auto_submit: bool = Query(False),
    current_user: User = Depends(student_only),
    db: Session = Depends(get_db),
):
    return attempt_service.complete(db, current_user, attempt_id, auto_submit=auto_submit)


@router.get("/{attempt_id}/state", response_model=AttemptStateResponse)
async def get_attempt_state(
    attempt_id: int, current_user: User = Depends(student_only), db: Session = Depends(get_db)
):
    return attempt_service.get_state(db, current_user, attempt_id)


@router.get("/{attempt_id}/progress", response_model=AttemptProgressResponse)
async def get_attempt_progress(
    attempt_id: int, current_user: User = Depends(student_only), db: Session = Depends(get_db)
):
    return attempt_service.get_progress(db, current_user, attempt_id)


@router.get("/{attempt_id}/status", response_model=AttemptStatusResponse)
async def get_attempt_status(
    attempt_id: int, current_user: User = Depends(student_only), db: Session = Depends(get_db)
):
    return attempt_service.get_status(db, current_user, attempt_id)


@router.post("/{attempt_id}/update-state", response_model=UpdateStateResponse)
async def update_attempt_state(
    attempt_id: int,
    request: UpdateStateRequest,
    current_user: User = Depends(student_only),
    db: Session = Depends(get_db),
):
    """Persist the client's question index and remaining time"""
    return attempt_service.update_state(
        db,
        current_user,
        attempt_id,
        current_question_index=request.current_question_index,
        remaining_time_seconds=request.remaining_time_seconds,
    )
