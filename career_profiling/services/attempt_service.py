"""
Test attempt service
Attempt lifecycle, section gating, section submission and the read-only
resume snapshots used by the client
"""
import logging
from typing import Any, Dict, List, Optional, Set

from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from career_profiling.exceptions import (
    CareerProfilingError,
    DependencyFailure,
    NotFoundError,
    ResourceExhaustionError,
    StateConflictError,
    ValidationError,
)
from career_profiling.models import (
    Answer,
    Question,
    Section,
    SectionProgress,
    SectionStatus,
    Student,
    TestAttempt,
    TestStatus,
    User,
)
from career_profiling.services.assignment_service import assignment_service
from career_profiling.services.bootstrap import SECTION_DEFINITIONS
from career_profiling.services.interpretation_service import interpretation_service
from career_profiling.services.question_bank import question_bank
from career_profiling.services.scoring_service import scoring_service
from career_profiling.services.section_catalog import section_catalog
from career_profiling.services.timer_service import timer_service
from career_profiling.utils.cache import cache_service
from career_profiling.utils.datetime_utils import utc_now

logger = logging.getLogger(__name__)


class AttemptService:
    """
    Attempt lifecycle: IN_PROGRESS -> COMPLETED, or ABANDONED by an admin
    retake. A student keeps at most one IN_PROGRESS and one COMPLETED
    attempt; start() is where that is enforced.

    Every student-facing method loads the attempt by (id, student) so a
    foreign attempt looks exactly like a missing one.
    """

    SECTION_TIME_LIMIT = timer_service.SECTION_TIME_LIMIT
    QUESTIONS_PER_SECTION = assignment_service.QUESTIONS_PER_SECTION
    TOTAL_SECTIONS = section_catalog.TOTAL_SECTIONS

    # ---- lookups -------------------------------------------------------

    def get_student(self, db: Session, user: User) -> Student:
        student = db.query(Student).filter(Student.user_id == user.id).first()
        if student is None:
            raise ValidationError(
                "Student profile not found. Please complete your registration.",
                error_code="STUDENT_PROFILE_NOT_FOUND"
            )
        return student

    def get_owned_attempt(self, db: Session, user: User, attempt_id: int) -> TestAttempt:
        student = self.get_student(db, user)
        attempt = (
            db.query(TestAttempt)
            .filter(TestAttempt.id == attempt_id, TestAttempt.student_id == student.id)
            .first()
        )
        if attempt is None:
            raise NotFoundError(
                "Test attempt not found or does not belong to you.",
                error_code="ATTEMPT_NOT_FOUND"
            )
        return attempt

    def _require_in_progress(self, attempt: TestAttempt, action: str):
        if attempt.status != TestStatus.IN_PROGRESS:
            raise StateConflictError(
                f"Cannot {action}. Test attempt is {attempt.status.value.lower()}.",
                error_code="ATTEMPT_NOT_IN_PROGRESS"
            )

    def _completed_attempt(self, db: Session, student_id: int) -> Optional[TestAttempt]:
        return (
            db.query(TestAttempt)
            .filter(TestAttempt.student_id == student_id, TestAttempt.status == TestStatus.COMPLETED)
            .order_by(TestAttempt.completed_at.desc())
            .first()
        )

    def _in_progress_attempt(self, db: Session, student_id: int) -> Optional[TestAttempt]:
        return (
            db.query(TestAttempt)
            .filter(TestAttempt.student_id == student_id, TestAttempt.status == TestStatus.IN_PROGRESS)
            .first()
        )

    def _reset_pointer(self, attempt: TestAttempt, section: Section):
        attempt.current_section_id = section.id
        attempt.current_question_index = 0
        attempt.remaining_time_seconds = self.SECTION_TIME_LIMIT

    def _lowest_incomplete_section(self, db: Session, attempt: TestAttempt) -> Optional[Section]:
        progress = timer_service.progress_by_section(db, attempt.id)
        for section in section_catalog.list_active(db):
            row = progress.get(section.id)
            if row is None or row.status != SectionStatus.COMPLETED:
                return section
        return None

    # ---- lifecycle -----------------------------------------------------

    def start(self, db: Session, user: User) -> Dict[str, Any]:
        """
        Start a test attempt, or return the one already in progress

        Raises:
            StateConflictError: the student already completed the test
            ResourceExhaustionError: no active section has enough questions
        """
        student = self.get_student(db, user)

        if self._completed_attempt(db, student.id) is not None:
            raise StateConflictError(
                "You have already completed the test. Each student can attempt the test only once.",
                error_code="ALREADY_COMPLETED"
            )

        existing = self._in_progress_attempt(db, student.id)
        if existing is not None:
            logger.info(f"Returning in-progress attempt {existing.id} for student {student.id}")
            return {
                "test_attempt_id": existing.id,
                "status": existing.status,
                "started_at": existing.started_at,
                "total_questions": assignment_service.count_assigned(db, existing.id),
            }

        has_enough = any(
            question_bank.count_eligible(db, section.id) >= self.QUESTIONS_PER_SECTION
            for section in section_catalog.list_active(db)
        )
        if not has_enough:
            raise ResourceExhaustionError(
                f"Cannot start test. At least one section must have minimum "
                f"{self.QUESTIONS_PER_SECTION} questions.",
                detail=(
                    f"No section has at least {self.QUESTIONS_PER_SECTION} active and approved "
                    f"questions. Please add more questions to at least one section."
                )
            )

        attempt = TestAttempt(
            student_id=student.id,
            status=TestStatus.IN_PROGRESS,
            started_at=utc_now(),
            current_section_id=None,
            current_question_index=0,
            remaining_time_seconds=self.SECTION_TIME_LIMIT,
        )
        db.add(attempt)
        db.commit()
        db.refresh(attempt)

        logger.info(f"Test attempt {attempt.id} started for student {student.id}")
        return {
            "test_attempt_id": attempt.id,
            "status": attempt.status,
            "started_at": attempt.started_at,
            "total_questions": 0,
        }

    def complete(self, db: Session, user: User, attempt_id: int, auto_submit: bool = False) -> Dict[str, Any]:
        """
        Finish an attempt once every section is done and every assigned
        question is answered

        Idempotent for an already COMPLETED attempt. Scoring failure aborts
        the completion; interpretation failure does not.
        """
        attempt = self.get_owned_attempt(db, user, attempt_id)

        if attempt.status == TestStatus.COMPLETED:
            logger.warning(f"Attempt {attempt.id} already completed, nothing to do")
            return {
                "message": "Test already completed",
                "test_attempt_id": attempt.id,
                "status": TestStatus.COMPLETED,
            }

        if attempt.status != TestStatus.IN_PROGRESS:
            raise StateConflictError(
                f"Test attempt is not in progress (current status: {attempt.status.value})",
                error_code="ATTEMPT_NOT_IN_PROGRESS"
            )

        active_sections = section_catalog.list_active(db)
        progress = timer_service.progress_by_section(db, attempt.id)
        missing = [
            section for section in active_sections
            if progress.get(section.id) is None or progress[section.id].status != SectionStatus.COMPLETED
        ]
        if missing:
            done = len(active_sections) - len(missing)
            missing_text = ", ".join(f"Section {s.order_index} ({s.name})" for s in missing)
            raise StateConflictError(
                f"Please complete all sections. {done}/{len(active_sections)} sections completed. "
                f"Missing: {missing_text}",
                error_code="SECTIONS_INCOMPLETE",
                detail={
                    "completed_sections": done,
                    "total_sections": len(active_sections),
                    "missing_sections": [s.order_index for s in missing],
                }
            )

        assigned = assignment_service.count_assigned(db, attempt.id)
        if assigned == 0:
            raise ValidationError(
                "No questions selected for this test attempt. Please start sections to generate questions.",
                error_code="NO_QUESTIONS_ASSIGNED"
            )

        answered = db.query(Answer).filter(Answer.attempt_id == attempt.id).count()
        if answered < assigned:
            raise ValidationError(
                f"Please answer all questions. {answered}/{assigned} answered",
                error_code="INCOMPLETE_ANSWERS"
            )

        logger.info(f"Completing attempt {attempt.id} (auto_submit={auto_submit})")
        self._finish(db, attempt)

        return {
            "message": "Test completed successfully",
            "test_attempt_id": attempt.id,
            "status": TestStatus.COMPLETED,
        }

    def _finish(self, db: Session, attempt: TestAttempt):
        """
        Score, mark COMPLETED and commit, then try to interpret

        Nothing is committed if scoring fails.
        """
        try:
            scoring_service.store_scores(db, attempt.id)
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Scoring failed for attempt {attempt.id}: {str(e)}", exc_info=True)
            raise DependencyFailure("Failed to calculate scores", error_code="SCORING_FAILED") from e

        attempt.status = TestStatus.COMPLETED
        attempt.completed_at = utc_now()
        attempt.current_section_id = None
        db.commit()
        logger.info(f"Test attempt {attempt.id} completed")

        try:
            interpretation_service.generate_and_save(db, attempt)
        except (CareerProfilingError, SQLAlchemyError) as e:
            db.rollback()
            logger.error(f"Interpretation for attempt {attempt.id} failed, will retry on read: {str(e)}")

    # ---- sections ------------------------------------------------------

    def sections_overview(self, db: Session, user: User, attempt_id: Optional[int] = None) -> Dict[str, Any]:
        """All five sections with their gating status for the student"""
        student = db.query(Student).filter(Student.user_id == user.id).first()

        completed_attempt = self._completed_attempt(db, student.id) if student else None
        attempt = None
        if student is not None:
            query = db.query(TestAttempt).filter(
                TestAttempt.student_id == student.id,
                TestAttempt.status == TestStatus.IN_PROGRESS
            )
            if attempt_id:
                query = query.filter(TestAttempt.id == attempt_id)
            attempt = query.first()

        db_sections = {s.order_index: s for s in section_catalog.list_active(db)}
        progress = timer_service.progress_by_section(db, attempt.id) if attempt else {}
        status_by_order: Dict[int, Optional[SectionStatus]] = {}
        for order_index, section in db_sections.items():
            row = progress.get(section.id)
            status_by_order[order_index] = row.status if row else None

        sections = []
        for definition in SECTION_DEFINITIONS:
            order_index = definition["order_index"]
            section = db_sections.get(order_index)
            section_status = status_by_order.get(order_index)

            if section_status == SectionStatus.COMPLETED:
                label = "completed"
            elif section_status == SectionStatus.IN_PROGRESS:
                label = "IN_PROGRESS"
            elif order_index == 1:
                label = "available"
            elif attempt is not None and all(
                status_by_order.get(i) == SectionStatus.COMPLETED for i in range(1, order_index)
            ):
                label = "available"
            else:
                label = "locked"

            question_count = question_bank.count_eligible(db, section.id) if section else 0

            sections.append({
                "id": section.id if section else order_index,
                "name": section.name if section else definition["name"],
                "status": label,
                "question_count": question_count or self.QUESTIONS_PER_SECTION,
                "time_limit": self.SECTION_TIME_LIMIT,
                "order_index": order_index,
            })

        return {
            "current_section": self._overview_current_section(status_by_order),
            "sections": sections,
            "can_attempt_test": completed_attempt is None,
            "completed_test_attempt_id": completed_attempt.id if completed_attempt else None,
            "test_attempt_id": attempt.id if attempt else None,
        }

    def _overview_current_section(self, status_by_order: Dict[int, Optional[SectionStatus]]) -> int:
        in_progress = sorted(i for i, s in status_by_order.items() if s == SectionStatus.IN_PROGRESS)
        if in_progress:
            return in_progress[0]
        completed = [i for i, s in status_by_order.items() if s == SectionStatus.COMPLETED]
        if completed:
            return min(max(completed) + 1, self.TOTAL_SECTIONS)
        return 1

    def get_section_questions(self, db: Session, user: User, attempt_id: int, section_ref: int) -> List[Dict[str, Any]]:
        """
        Questions for a section, assigned on first access

        Raises:
            SectionLockedError: an earlier section is not completed
            ResourceExhaustionError: fewer than seven eligible questions
        """
        attempt = self.get_owned_attempt(db, user, attempt_id)
        self._require_in_progress(attempt, "fetch questions")

        section = section_catalog.resolve(db, section_ref)
        timer_service.ensure_unlocked(db, attempt, section)

        if attempt.current_section_id != section.id:
            self._reset_pointer(attempt, section)
            db.commit()

        questions = assignment_service.get_or_assign(db, attempt, section)
        return [self._question_out(q) for q in questions]

    def get_all_questions(self, db: Session, user: User, attempt_id: Optional[int] = None) -> List[Dict[str, Any]]:
        """Every assigned question of an attempt, defaulting to the latest one in progress"""
        if attempt_id:
            attempt = self.get_owned_attempt(db, user, attempt_id)
        else:
            student = self.get_student(db, user)
            attempt = (
                db.query(TestAttempt)
                .filter(TestAttempt.student_id == student.id, TestAttempt.status == TestStatus.IN_PROGRESS)
                .order_by(TestAttempt.started_at.desc())
                .first()
            )
            if attempt is None:
                raise NotFoundError(
                    "Test attempt not found. Please start a test first.",
                    error_code="ATTEMPT_NOT_FOUND"
                )

        questions = assignment_service.questions_for_attempt(db, attempt.id)
        return [self._question_out(q) for q in questions]

    @staticmethod
    def _question_out(question: Question) -> Dict[str, Any]:
        return {
            "question_id": question.id,
            "question_text": question.question_text,
            "options": [{"key": o.key, "text": o.text} for o in (question.options or [])],
        }

    def start_section(self, db: Session, user: User, attempt_id: int, section_ref: int) -> Dict[str, Any]:
        attempt = self.get_owned_attempt(db, user, attempt_id)
        self._require_in_progress(attempt, "start section")
        section = section_catalog.resolve(db, section_ref)
        return timer_service.start(db, attempt, section)

    def pause_section(self, db: Session, user: User, attempt_id: int, section_ref: int) -> Dict[str, Any]:
        attempt = self.get_owned_attempt(db, user, attempt_id)
        self._require_in_progress(attempt, "pause section")
        section = section_catalog.resolve(db, section_ref)
        return timer_service.pause(db, attempt, section)

    def resume_section(self, db: Session, user: User, attempt_id: int, section_ref: int) -> Dict[str, Any]:
        attempt = self.get_owned_attempt(db, user, attempt_id)
        self._require_in_progress(attempt, "resume section")
        section = section_catalog.resolve(db, section_ref)
        return timer_service.resume(db, attempt, section)

    def read_timer(self, db: Session, user: User, attempt_id: int, section_ref: int) -> Dict[str, Any]:
        attempt = self.get_owned_attempt(db, user, attempt_id)
        section = section_catalog.resolve(db, section_ref)
        return timer_service.read(db, attempt, section)

    def submit_section(
        self,
        db: Session,
        user: User,
        section_ref: int,
        attempt_id: int,
        body_section_id: int,
        answers: List[Dict[str, Any]]
    ) -> Dict[str, Any]:
        """
        Submit a section's answers

        Safe to retry: an already completed section, or one whose answers
        are all stored already, only advances the pointer. Stored answers
        are never overwritten here.
        """
        if body_section_id != section_ref:
            raise ValidationError("Section ID mismatch", error_code="SECTION_ID_MISMATCH")

        attempt = self.get_owned_attempt(db, user, attempt_id)
        if attempt.status == TestStatus.ABANDONED:
            raise StateConflictError(
                "Cannot submit section. Test attempt is abandoned.",
                error_code="ATTEMPT_NOT_IN_PROGRESS"
            )

        section = section_catalog.resolve(db, section_ref)

        question_ids = [a["question_id"] for a in answers]
        if len(set(question_ids)) != len(question_ids):
            raise ValidationError("Duplicate question_id in submission", error_code="DUPLICATE_QUESTION")

        assigned = assignment_service.assigned_ids(db, attempt.id, section.id)
        if not assigned:
            raise ValidationError(
                f"No questions assigned for section {section.name}. Please access this section first "
                f"to generate questions.",
                error_code="NO_QUESTIONS_ASSIGNED"
            )

        if len(answers) != len(assigned):
            raise ValidationError(
                f"Must answer all questions in section. Expected {len(assigned)}, got {len(answers)}",
                error_code="ANSWER_COUNT_MISMATCH"
            )

        assigned_set = set(assigned)
        for question_id in question_ids:
            if question_id not in assigned_set:
                raise ValidationError(
                    f"Question {question_id} does not belong to this section",
                    error_code="FOREIGN_QUESTION"
                )

        progress = timer_service.get_progress(db, attempt.id, section.id)
        if progress is not None and progress.status == SectionStatus.COMPLETED:
            logger.warning(f"Section {section.order_index} of attempt {attempt.id} already submitted")
            return self._advance(db, attempt, section)

        stored = self._stored_answer_ids(db, attempt.id, question_ids)
        missing = [answer for answer in answers if answer["question_id"] not in stored]

        if missing:
            self._insert_answers_ignoring_duplicates(db, attempt.id, missing)
        else:
            logger.warning(
                f"All answers for section {section.order_index} of attempt {attempt.id} already stored"
            )

        timer_service.finalize(db, attempt, section)

        logger.info(f"Section {section.order_index} submitted for attempt {attempt.id}")
        return self._advance(db, attempt, section)

    def _stored_answer_ids(self, db: Session, attempt_id: int, question_ids: List[int]) -> Set[int]:
        rows = (
            db.query(Answer.question_id)
            .filter(Answer.attempt_id == attempt_id, Answer.question_id.in_(question_ids))
            .all()
        )
        return {row.question_id for row in rows}

    def _insert_answers_ignoring_duplicates(self, db: Session, attempt_id: int, answers: List[Dict[str, Any]]):
        """
        Insert answers, leaving any row a concurrent request stored first
        untouched. Does not commit.
        """
        now = utc_now()
        rows = [
            {
                "attempt_id": attempt_id,
                "question_id": answer["question_id"],
                "answer_text": str(answer["selected_option"]),
                "created_at": now,
            }
            for answer in answers
        ]
        dialect = db.get_bind().dialect.name

        if dialect == "postgresql":
            db.execute(pg_insert(Answer).values(rows).on_conflict_do_nothing(
                index_elements=["attempt_id", "question_id"]
            ))
            return
        if dialect == "sqlite":
            db.execute(sqlite_insert(Answer).values(rows).on_conflict_do_nothing(
                index_elements=["attempt_id", "question_id"]
            ))
            return

        for row in rows:
            try:
                with db.begin_nested():
                    db.add(Answer(**row))
            except IntegrityError:
                logger.warning(
                    f"Answer for question {row['question_id']} of attempt {attempt_id} already stored"
                )

    def _advance(self, db: Session, attempt: TestAttempt, section: Section) -> Dict[str, Any]:
        next_section = section_catalog.next_section(db, section)

        if next_section is not None:
            if attempt.status == TestStatus.IN_PROGRESS:
                self._reset_pointer(attempt, next_section)
            db.commit()
        elif attempt.status == TestStatus.COMPLETED:
            db.commit()
        else:
            self._finish(db, attempt)

        return {
            "status": SectionStatus.COMPLETED,
            "completed_section": section.id,
            "current_section": next_section.order_index if next_section else None,
        }

    # ---- answers and client state --------------------------------------

    def save_answer(
        self,
        db: Session,
        user: User,
        attempt_id: Optional[int],
        question_id: Optional[int],
        selected_option: Optional[str]
    ) -> Dict[str, Any]:
        """Upsert one answer while the attempt is in progress"""
        if not attempt_id or not question_id or not selected_option:
            raise ValidationError("attempt_id, question_id, and selected_option are required")

        attempt = self.get_owned_attempt(db, user, attempt_id)
        if attempt.status != TestStatus.IN_PROGRESS:
            raise NotFoundError("Test attempt not found or not in progress", error_code="ATTEMPT_NOT_FOUND")

        question = db.query(Question).filter(Question.id == question_id).first()
        if question is None:
            raise NotFoundError("Question not found", error_code="QUESTION_NOT_FOUND")

        answer = (
            db.query(Answer)
            .filter(Answer.attempt_id == attempt.id, Answer.question_id == question.id)
            .first()
        )
        if answer is None:
            answer = Answer(attempt_id=attempt.id, question_id=question.id, answer_text=str(selected_option))
            db.add(answer)
        else:
            answer.answer_text = str(selected_option)

        db.commit()
        db.refresh(answer)

        return {
            "success": True,
            "answer_id": answer.id,
            "question_id": question.id,
            "selected_option": selected_option,
        }

    def update_state(
        self,
        db: Session,
        user: User,
        attempt_id: int,
        current_question_index: Optional[int] = None,
        remaining_time_seconds: Optional[int] = None
    ) -> Dict[str, Any]:
        attempt = self.get_owned_attempt(db, user, attempt_id)
        if attempt.status != TestStatus.IN_PROGRESS:
            raise NotFoundError("Test attempt not found or not in progress", error_code="ATTEMPT_NOT_FOUND")

        if current_question_index is not None:
            attempt.current_question_index = max(0, current_question_index)
        if remaining_time_seconds is not None:
            attempt.remaining_time_seconds = max(0, remaining_time_seconds)
        db.commit()

        return {
            "success": True,
            "current_question_index": attempt.current_question_index,
            "remaining_time_seconds": attempt.remaining_time_seconds,
        }

    def _completed_snapshot(self, attempt: TestAttempt) -> Dict[str, Any]:
        return {
            "test_attempt_id": attempt.id,
            "status": TestStatus.COMPLETED,
            "completed_at": attempt.completed_at,
        }

    @staticmethod
    def _section_summary(section: Optional[Section]) -> Optional[Dict[str, Any]]:
        if section is None:
            return None
        return {"id": section.id, "order_index": section.order_index, "name": section.name}

    def get_state(self, db: Session, user: User, attempt_id: int) -> Dict[str, Any]:
        """Resume pointer with a server-side remaining time"""
        attempt = self.get_owned_attempt(db, user, attempt_id)
        if attempt.status == TestStatus.COMPLETED:
            return self._completed_snapshot(attempt)

        section = attempt.current_section
        if section is None:
            section = self._lowest_incomplete_section(db, attempt)
            if section is not None:
                self._reset_pointer(attempt, section)
                db.commit()

        remaining = attempt.remaining_time_seconds
        if remaining is None:
            remaining = self.SECTION_TIME_LIMIT
        is_paused = False

        if section is not None:
            progress = timer_service.get_progress(db, attempt.id, section.id)
            if progress is not None:
                is_paused = progress.paused_at is not None
                if not is_paused and progress.section_start_time is not None:
                    used = timer_service.current_time(progress, utc_now())
                    remaining = max(0, self.SECTION_TIME_LIMIT - used)
                    attempt.remaining_time_seconds = remaining
                    db.commit()

        return {
            "test_attempt_id": attempt.id,
            "status": attempt.status,
            "current_section_id": section.id if section else None,
            "current_section": self._section_summary(section),
            "current_question_index": attempt.current_question_index or 0,
            "remaining_time_seconds": remaining,
            "is_paused": is_paused,
        }

    def get_progress(self, db: Session, user: User, attempt_id: int) -> Dict[str, Any]:
        """Answers and position within the current section"""
        attempt = self.get_owned_attempt(db, user, attempt_id)
        if attempt.status == TestStatus.COMPLETED:
            return self._completed_snapshot(attempt)

        in_progress = (
            db.query(SectionProgress)
            .filter(
                SectionProgress.attempt_id == attempt.id,
                SectionProgress.status == SectionStatus.IN_PROGRESS
            )
            .first()
        )

        if in_progress is not None:
            section = in_progress.section
            if attempt.remaining_time_seconds is not None:
                remaining = max(0, attempt.remaining_time_seconds)
            else:
                used = timer_service.current_time(in_progress, utc_now())
                remaining = max(0, self.SECTION_TIME_LIMIT - used)
                attempt.remaining_time_seconds = remaining
                db.commit()
        else:
            section = self._lowest_incomplete_section(db, attempt)
            remaining = 0

        answers_map: Dict[int, str] = {}
        question_index = 0
        if section is not None:
            assigned = assignment_service.assigned_ids(db, attempt.id, section.id)
            if assigned:
                rows = (
                    db.query(Answer)
                    .filter(Answer.attempt_id == attempt.id, Answer.question_id.in_(assigned))
                    .all()
                )
                answers_map = {row.question_id: row.answer_text for row in rows}
                unanswered = [i for i, qid in enumerate(assigned) if qid not in answers_map]
                question_index = unanswered[0] if unanswered else len(assigned) - 1

        return {
            "test_attempt_id": attempt.id,
            "status": attempt.status,
            "started_at": attempt.started_at,
            "current_section": self._section_summary(section),
            "current_question_index": question_index,
            "answers": answers_map,
            "remaining_time_seconds": remaining,
            "section_start_time": in_progress.section_start_time if in_progress else None,
            "paused_at": in_progress.paused_at if in_progress else None,
            "is_paused": bool(in_progress and in_progress.paused_at),
        }

    def get_status(self, db: Session, user: User, attempt_id: int) -> Dict[str, Any]:
        attempt = self.get_owned_attempt(db, user, attempt_id)

        completed_sections = timer_service.completed_order_indexes(db, attempt.id)
        active = section_catalog.list_active(db)
        current = next((s.order_index for s in active if s.order_index not in completed_sections), None)

        return {
            "test_attempt_id": attempt.id,
            "status": attempt.status,
            "started_at": attempt.started_at,
            "completed_at": attempt.completed_at,
            "total_questions": assignment_service.count_assigned(db, attempt.id),
            "answered_questions": db.query(Answer).filter(Answer.attempt_id == attempt.id).count(),
            "completed_sections": completed_sections,
            "current_section": current,
            "total_sections": len(active) or self.TOTAL_SECTIONS,
        }

    # ---- admin ---------------------------------------------------------

    def allow_retake(self, db: Session, admin: User, student_user_id: int) -> Dict[str, Any]:
        """
        Clear a student's completed attempts so they can start again

        Completed attempts are deleted with everything hanging off them; an
        attempt still in progress is marked ABANDONED.
        """
        student = db.query(Student).filter(Student.user_id == student_user_id).first()
        if student is None:
            raise NotFoundError("Student not found", error_code="STUDENT_NOT_FOUND")

        attempts = (
            db.query(TestAttempt)
            .filter(
                TestAttempt.student_id == student.id,
                TestAttempt.status.in_([TestStatus.COMPLETED, TestStatus.IN_PROGRESS])
            )
            .all()
        )

        completed = [a for a in attempts if a.status == TestStatus.COMPLETED]
        if not completed:
            return {
                "message": "Student has no completed tests to reset",
                "reset_count": 0,
                "student_id": student_user_id,
            }

        reset_ids = [a.id for a in completed]
        for attempt in attempts:
            if attempt.status == TestStatus.COMPLETED:
                db.delete(attempt)
            else:
                attempt.status = TestStatus.ABANDONED
        db.commit()

        for reset_id in reset_ids:
            cache_service.delete(cache_service.interpretation_key(reset_id))

        logger.info(
            f"Admin {admin.id} reset {len(reset_ids)} completed attempt(s) for student user {student_user_id}"
        )
        return {
            "message": "Test retake enabled successfully",
            "reset_count": len(reset_ids),
            "student_id": student_user_id,
        }


# Global instance
attempt_service = AttemptService()
