"""
Admin API endpoints - question review and student retakes
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import Optional
import logging
from career_profiling.core.security import require_roles
from career_profiling.database import get_db
from career_profiling.models import User, UserRole
from career_profiling.schemas.admin import (
    BulkApproveRequest,
    BulkApproveResponse,
    QuestionSummary,
    RetakeResponse,
    ReviewRequest,
)
from career_profiling.services.attempt_service import attempt_service
from career_profiling.services.question_bank import question_bank


router = APIRouter(prefix="/admin", tags=["admin"])
logger = logging.getLogger(__name__)

admin_only = require_roles(UserRole.ADMIN)


@router.post("/questions/bulk-approve", response_model=BulkApproveResponse)
async def bulk_approve_questions(
    request: BulkApproveRequest,
    current_user: User = Depends(admin_only),
    db: Session = Depends(get_db),
):
    """
    Approve many pending questions at once

    - At most 1000 ids per request
    - Non-pending ids are returned in skipped_ids
    - All or nothing: a failure rolls back the whole batch
    """
    return question_bank.bulk_approve(db, request.question_ids, current_user, request.admin_comment)


@router.post("/questions/{question_id}/approve", response_model=QuestionSummary)
async def approve_question(
    question_id: int,
    request: Optional[ReviewRequest] = None,
    current_user: User = Depends(admin_only),
    db: Session = Depends(get_db),
):
    comment = request.admin_comment if request else None
    return question_bank.approve(db, question_id, current_user, comment)


@router.post("/questions/{question_id}/reject", response_model=QuestionSummary)
async def reject_question(
    question_id: int,
    request: Optional[ReviewRequest] = None,
    current_user: User = Depends(admin_only),
    db: Session = Depends(get_db),
):
    comment = request.admin_comment if request else None
    return question_bank.reject(db, question_id, current_user, comment)


@router.post("/questions/{question_id}/deactivate", response_model=QuestionSummary)
async def deactivate_question(
    question_id: int,
    request: Optional[ReviewRequest] = None,
    current_user: User = Depends(admin_only),
    db: Session = Depends(get_db),
):
    comment = request.admin_comment if request else None
    return question_bank.deactivate(db, question_id, current_user, comment)


@router.post("/students/{student_user_id}/allow-retake", response_model=RetakeResponse)
async def allow_retake(
    student_user_id: int,
    current_user: User = Depends(admin_only),
    db: Session = Depends(get_db),
):
    """Delete a student's completed attempts so they can take the test again"""
    logger.info(f"Admin {current_user.id} requested retake for student user {student_user_id}")
    return attempt_service.allow_retake(db, current_user, student_user_id)
