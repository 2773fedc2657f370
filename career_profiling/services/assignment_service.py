"""
Question assignment engine
Picks a random, fixed-size question set per (attempt, section) on first
access and returns the same set on every later access
"""
import logging
import random
from typing import List, Optional

from sqlalchemy import insert as generic_insert
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from career_profiling.exceptions import ResourceExhaustionError, ValidationError
from career_profiling.models import (
    AttemptQuestionAssignment,
    Question,
    QuestionStatus,
    Section,
    TestAttempt,
    TestStatus,
)
from career_profiling.services.question_bank import question_bank
from career_profiling.utils.datetime_utils import utc_now

logger = logging.getLogger(__name__)


class AssignmentService:
    """
    Assignment rules:
    - An existing set for (attempt, section) is returned as-is, ordered by id
    - Otherwise the section needs at least QUESTIONS_PER_SECTION eligible
      questions, questions from the student's latest completed attempt are
      avoided while enough others remain, and exactly
      QUESTIONS_PER_SECTION ids are sampled
    - Inserts tolerate duplicates so retries never double-assign a question
    """
    
    QUESTIONS_PER_SECTION = 7
    
    def assigned_ids(self, db: Session, attempt_id: int, section_id: int) -> List[int]:
        rows = (
            db.query(AttemptQuestionAssignment.question_id)
            .join(Question, Question.id == AttemptQuestionAssignment.question_id)
            .filter(
                AttemptQuestionAssignment.attempt_id == attempt_id,
                Question.section_id == section_id
            )
            .order_by(AttemptQuestionAssignment.question_id)
            .all()
        )
        return [row.question_id for row in rows]
    
    def count_assigned(self, db: Session, attempt_id: int) -> int:
        return (
            db.query(AttemptQuestionAssignment)
            .filter(AttemptQuestionAssignment.attempt_id == attempt_id)
            .count()
        )
    
    def questions_for_attempt(self, db: Session, attempt_id: int) -> List[Question]:
        """
        Every question assigned to an attempt across all sections, ordered
        by id. Questions since rejected or deactivated are left out.
        
        Raises:
            ValidationError: nothing has been assigned yet
        """
        rows = (
            db.query(AttemptQuestionAssignment.question_id)
            .filter(AttemptQuestionAssignment.attempt_id == attempt_id)
            .all()
        )
        question_ids = [row.question_id for row in rows]
        if not question_ids:
            raise ValidationError(
                "No questions selected for this test attempt. Please start a section first.",
                error_code="NO_QUESTIONS_ASSIGNED",
                detail=(
                    f"Test attempt {attempt_id} has no questions assigned. "
                    f"Please access a section to generate questions."
                )
            )
        
        return (
            db.query(Question)
            .filter(
                Question.id.in_(question_ids),
                Question.status == QuestionStatus.APPROVED,
                Question.is_active.is_(True)
            )
            .order_by(Question.id)
            .all()
        )
    
    def get_or_assign(self, db: Session, attempt: TestAttempt, section: Section) -> List[Question]:
        """
        Return the questions assigned to (attempt, section), assigning
        them first if this is the first access
        
        Raises:
            ResourceExhaustionError: fewer than QUESTIONS_PER_SECTION eligible questions
        """
        question_ids = self.assigned_ids(db, attempt.id, section.id)
        
        if question_ids:
            logger.info(
                f"Attempt {attempt.id} already has {len(question_ids)} questions for section {section.id}"
            )
        else:
            question_ids = self._assign(db, attempt, section)
        
        return (
            db.query(Question)
            .filter(Question.id.in_(question_ids))
            .order_by(Question.id)
            .all()
        )
    
    def _assign(self, db: Session, attempt: TestAttempt, section: Section) -> List[int]:
        eligible = question_bank.eligible_ids(db, section.id)
        
        if len(eligible) < self.QUESTIONS_PER_SECTION:
            raise ResourceExhaustionError(
                f"Cannot start section. Minimum {self.QUESTIONS_PER_SECTION} questions required in {section.name}.",
                detail=(
                    f"Section {section.id} ({section.name}) has only {len(eligible)} active and approved "
                    f"questions. At least {self.QUESTIONS_PER_SECTION} are required."
                )
            )
        
        candidates = eligible
        previous_ids = set(self._previous_attempt_ids(db, attempt, section))
        if previous_ids:
            fresh = [qid for qid in eligible if qid not in previous_ids]
            if len(fresh) >= self.QUESTIONS_PER_SECTION:
                candidates = fresh
            else:
                logger.warning(
                    f"Not enough unseen questions in section {section.id} ({len(fresh)}), "
                    f"falling back to the full pool"
                )
        
        selected = sorted(self._rng(attempt, section).sample(candidates, self.QUESTIONS_PER_SECTION))
        self._insert_ignoring_duplicates(db, attempt.id, selected)
        
        logger.info(
            f"Assigned {len(selected)} questions to attempt {attempt.id}, section {section.id}: {selected}"
        )
        
        # Re-read so a concurrent writer's set wins consistently
        return self.assigned_ids(db, attempt.id, section.id)
    
    def _rng(self, attempt: TestAttempt, section: Section) -> random.Random:
        # Racing first accesses for the same (attempt, section) draw the same sample
        started = attempt.started_at.isoformat() if attempt.started_at else ""
        return random.Random(f"{attempt.id}:{section.id}:{started}")
    
    def _previous_attempt_ids(self, db: Session, attempt: TestAttempt, section: Section) -> List[int]:
        previous = (
            db.query(TestAttempt)
            .filter(
                TestAttempt.student_id == attempt.student_id,
                TestAttempt.status == TestStatus.COMPLETED,
                TestAttempt.id != attempt.id
            )
            .order_by(TestAttempt.completed_at.desc())
            .first()
        )
        if previous is None:
            return []
        return self.assigned_ids(db, previous.id, section.id)
    
    def _insert_ignoring_duplicates(self, db: Session, attempt_id: int, question_ids: List[int]):
        now = utc_now()
        rows = [
            {"attempt_id": attempt_id, "question_id": qid, "created_at": now}
            for qid in question_ids
        ]
        dialect = db.get_bind().dialect.name
        
        if dialect == "postgresql":
            stmt = pg_insert(AttemptQuestionAssignment).values(rows).on_conflict_do_nothing(
                index_elements=["attempt_id", "question_id"]
            )
        elif dialect == "sqlite":
            stmt = sqlite_insert(AttemptQuestionAssignment).values(rows).on_conflict_do_nothing(
                index_elements=["attempt_id", "question_id"]
            )
        else:
            stmt = None
        
        if stmt is not None:
            db.execute(stmt)
            db.commit()
            return
        
        try:
            db.execute(generic_insert(AttemptQuestionAssignment), rows)
            db.commit()
        except IntegrityError:
            db.rollback()
            logger.warning(f"Assignment for attempt {attempt_id} already written by another request")


# Global instance
assignment_service = AssignmentService()
