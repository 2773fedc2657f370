"""
Question bank service
Eligibility queries for assignment and the explicit admin status transitions
"""
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from career_profiling.config import settings
from career_profiling.exceptions import NotFoundError, ValidationError
from career_profiling.models import Question, QuestionApproval, QuestionStatus, User
from career_profiling.utils.datetime_utils import utc_now

logger = logging.getLogger(__name__)


class QuestionBankService:
    """
    Only status=approved and is_active=true questions are eligible for
    assignment. Status changes happen here and nowhere else, each one
    leaving a QuestionApproval audit row.
    """
    
    # status, is_active after each admin transition
    TRANSITIONS = {
        QuestionStatus.APPROVED: True,
        QuestionStatus.REJECTED: False,
        QuestionStatus.INACTIVE: False,
    }
    
    def _eligible_query(self, db: Session, section_id: int):
        return db.query(Question).filter(
            Question.section_id == section_id,
            Question.status == QuestionStatus.APPROVED,
            Question.is_active.is_(True)
        )
    
    def count_eligible(self, db: Session, section_id: int) -> int:
        return self._eligible_query(db, section_id).count()
    
    def eligible_ids(self, db: Session, section_id: int) -> List[int]:
        rows = self._eligible_query(db, section_id).with_entities(Question.id).order_by(Question.id).all()
        return [row.id for row in rows]
    
    def approve(self, db: Session, question_id: int, admin: User, comment: Optional[str] = None) -> Question:
        return self._transition(db, question_id, QuestionStatus.APPROVED, admin, comment)
    
    def reject(self, db: Session, question_id: int, admin: User, comment: Optional[str] = None) -> Question:
        return self._transition(db, question_id, QuestionStatus.REJECTED, admin, comment)
    
    def deactivate(self, db: Session, question_id: int, admin: User, comment: Optional[str] = None) -> Question:
        return self._transition(db, question_id, QuestionStatus.INACTIVE, admin, comment)
    
    def _transition(
        self,
        db: Session,
        question_id: int,
        new_status: QuestionStatus,
        admin: User,
        comment: Optional[str]
    ) -> Question:
        question = db.query(Question).filter(Question.id == question_id).first()
        if question is None:
            raise NotFoundError("Question not found", error_code="QUESTION_NOT_FOUND")
        
        question.status = new_status
        question.is_active = self.TRANSITIONS[new_status]
        db.add(QuestionApproval(
            question_id=question.id,
            reviewed_by=admin.id,
            approval_status=new_status,
            admin_comment=comment,
            reviewed_at=utc_now(),
        ))
        db.commit()
        db.refresh(question)
        
        logger.info(f"Question {question.id} -> {new_status.value} by admin {admin.id}")
        return question
    
    def bulk_approve(
        self,
        db: Session,
        question_ids: List[Any],
        admin: User,
        comment: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Approve every pending question in one transaction
        
        Non-pending or unknown ids are reported in skipped_ids. Any
        failure rolls back all status updates and approval rows.
        """
        if not question_ids:
            raise ValidationError("question_ids must be a non-empty array")
        
        if len(question_ids) > settings.BULK_APPROVE_MAX:
            raise ValidationError(
                f"Maximum {settings.BULK_APPROVE_MAX} questions can be approved at once"
            )
        
        if not all(isinstance(qid, int) and not isinstance(qid, bool) and qid > 0 for qid in question_ids):
            raise ValidationError("All question_ids must be valid positive integers")
        
        pending = (
            db.query(Question)
            .filter(Question.id.in_(question_ids), Question.status == QuestionStatus.PENDING)
            .all()
        )
        pending_ids = {q.id for q in pending}
        skipped_ids = [qid for qid in question_ids if qid not in pending_ids]
        
        if not pending:
            raise ValidationError(
                "No pending questions found to approve",
                detail={"message": "No pending questions found to approve", "skipped_ids": skipped_ids}
            )
        
        now = utc_now()
        try:
            for question in pending:
                question.status = QuestionStatus.APPROVED
                question.is_active = True
                db.add(QuestionApproval(
                    question_id=question.id,
                    reviewed_by=admin.id,
                    approval_status=QuestionStatus.APPROVED,
                    admin_comment=comment or "Bulk approved by admin",
                    reviewed_at=now,
                ))
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Bulk approve failed, rolled back {len(pending)} questions: {str(e)}")
            raise
        
        logger.info(f"Bulk approved {len(pending)} questions, skipped {len(skipped_ids)}")
        
        return {
            "approved_count": len(pending),
            "skipped_ids": skipped_ids,
            "message": f"Bulk approval completed: {len(pending)} question(s) approved",
        }


# Global instance
question_bank = QuestionBankService()
