"""
Student result API endpoints
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List
from career_profiling.core.security import require_roles
from career_profiling.database import get_db
from career_profiling.models import User, UserRole
from career_profiling.schemas.interpretation import StudentResult
from career_profiling.services.interpretation_service import interpretation_service


router = APIRouter(prefix="/student/result", tags=["student"])

student_only = require_roles(UserRole.STUDENT)


@router.get("/", response_model=List[StudentResult])
async def list_results(
    current_user: User = Depends(student_only), db: Session = Depends(get_db)
):
    """All stored results for the student; an empty list before any are ready"""
    return interpretation_service.student_results(db, current_user)


@router.get("/{attempt_id}", response_model=StudentResult)
async def get_result(
    attempt_id: int,
    current_user: User = Depends(student_only),
    db: Session = Depends(get_db),
):
    """
    Stored result for one attempt

    - 404 when the attempt is not the student's own
    - 404 RESULT_NOT_READY until the interpretation exists
    """
    return interpretation_service.student_result(db, current_user, attempt_id)
