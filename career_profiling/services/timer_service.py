"""
Section timer service
Per (attempt, section) state machine with pause/resume and a fixed
seven-minute limit enforced on read
"""
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from career_profiling.exceptions import NotFoundError, SectionLockedError, StateConflictError
from career_profiling.models import Section, SectionProgress, SectionStatus, TestAttempt, TestStatus
from career_profiling.services.section_catalog import section_catalog
from career_profiling.utils.datetime_utils import elapsed_seconds, utc_now

logger = logging.getLogger(__name__)


class TimerService:
    """
    States: NOT_STARTED -> IN_PROGRESS (running or paused) -> COMPLETED
    
    Running: section_start_time set, paused_at null
    Paused:  paused_at set, section_start_time null
    Done:    both null, total_time_spent capped at SECTION_TIME_LIMIT
    
    Only whole seconds are ever stored.
    """
    
    SECTION_TIME_LIMIT = 420  # 7 minutes, same for every section
    
    # ---- queries -------------------------------------------------------
    
    def get_progress(self, db: Session, attempt_id: int, section_id: int) -> Optional[SectionProgress]:
        return (
            db.query(SectionProgress)
            .filter(
                SectionProgress.attempt_id == attempt_id,
                SectionProgress.section_id == section_id
            )
            .first()
        )
    
    def progress_by_section(self, db: Session, attempt_id: int) -> Dict[int, SectionProgress]:
        rows = db.query(SectionProgress).filter(SectionProgress.attempt_id == attempt_id).all()
        return {row.section_id: row for row in rows}
    
    def is_completed(self, db: Session, attempt_id: int, section_id: int) -> bool:
        progress = self.get_progress(db, attempt_id, section_id)
        return progress is not None and progress.status == SectionStatus.COMPLETED
    
    def ensure_unlocked(self, db: Session, attempt: TestAttempt, section: Section):
        """
        Section 1 is never locked; section k needs every earlier active
        section COMPLETED
        
        Raises:
            SectionLockedError: naming the first incomplete earlier section
        """
        if section.order_index <= 1:
            return
        
        for previous in section_catalog.previous_sections(db, section):
            if not self.is_completed(db, attempt.id, previous.id):
                raise SectionLockedError(
                    f"Please complete {previous.name} first.",
                    detail=(
                        f"Section {section.order_index} ({section.name}) is locked. Previous section "
                        f"{previous.order_index} ({previous.name}) must be completed first."
                    )
                )
    
    def current_time(self, progress: SectionProgress, now) -> int:
        """Seconds used so far, including the running stretch"""
        total = progress.total_time_spent or 0
        if progress.section_start_time is not None and progress.paused_at is None:
            total += elapsed_seconds(progress.section_start_time, now)
        return total
    
    def snapshot(self, section: Section, progress: Optional[SectionProgress], current_time: Optional[int] = None) -> Dict[str, Any]:
        if progress is None:
            return {
                "section_id": section.id,
                "section_name": section.name,
                "status": SectionStatus.NOT_STARTED,
                "total_time_spent": 0,
                "is_paused": False,
                "current_time": 0,
            }
        
        total = progress.total_time_spent or 0
        return {
            "section_id": section.id,
            "section_name": section.name,
            "status": progress.status,
            "total_time_spent": total,
            "is_paused": progress.paused_at is not None,
            "current_time": min(current_time if current_time is not None else total, self.SECTION_TIME_LIMIT),
        }
    
    # ---- transitions ---------------------------------------------------
    
    def start(self, db: Session, attempt: TestAttempt, section: Section) -> Dict[str, Any]:
        """
        Start (or re-enter) a section
        
        Creating the progress row also moves the attempt's resume pointer
        to this section with a fresh time budget.
        """
        pointer = attempt.current_section if attempt.current_section_id is not None else None
        if pointer is not None and section.order_index > pointer.order_index \
                and not self.is_completed(db, attempt.id, pointer.id):
            raise SectionLockedError(f"Please complete {pointer.name} first.")
        self.ensure_unlocked(db, attempt, section)
        
        now = utc_now()
        progress = self.get_progress(db, attempt.id, section.id)
        
        if progress is None:
            progress = SectionProgress(
                attempt_id=attempt.id,
                section_id=section.id,
                status=SectionStatus.IN_PROGRESS,
                section_start_time=now,
                total_time_spent=0,
            )
            db.add(progress)
            
            attempt.current_section_id = section.id
            attempt.current_question_index = 0
            attempt.remaining_time_seconds = self.SECTION_TIME_LIMIT
            logger.info(f"Section {section.order_index} started for attempt {attempt.id}")
        elif progress.status == SectionStatus.COMPLETED:
            raise StateConflictError("Section already completed", error_code="SECTION_ALREADY_COMPLETED")
        elif progress.status == SectionStatus.NOT_STARTED:
            progress.status = SectionStatus.IN_PROGRESS
            progress.section_start_time = now
            logger.info(f"Section {section.order_index} started for attempt {attempt.id}")
        elif progress.paused_at is not None:
            paused_for = elapsed_seconds(progress.paused_at, now)
            progress.total_time_spent = min(
                (progress.total_time_spent or 0) + paused_for, self.SECTION_TIME_LIMIT
            )
            progress.paused_at = None
            progress.status = SectionStatus.IN_PROGRESS
            if progress.section_start_time is None:
                progress.section_start_time = now
            logger.info(f"Section {section.order_index} re-entered from pause for attempt {attempt.id}")
        
        db.commit()
        db.refresh(progress)
        return self.snapshot(section, progress)
    
    def pause(self, db: Session, attempt: TestAttempt, section: Section) -> Dict[str, Any]:
        progress = self.get_progress(db, attempt.id, section.id)
        if progress is None:
            raise NotFoundError("Section progress not found", error_code="SECTION_PROGRESS_NOT_FOUND")
        
        if progress.status != SectionStatus.IN_PROGRESS or progress.paused_at is not None:
            raise StateConflictError("Section is not running", error_code="SECTION_NOT_RUNNING")
        
        now = utc_now()
        progress.total_time_spent = min(self.current_time(progress, now), self.SECTION_TIME_LIMIT)
        remaining = max(0, self.SECTION_TIME_LIMIT - progress.total_time_spent)
        
        attempt.remaining_time_seconds = remaining
        progress.paused_at = now
        progress.section_start_time = None
        db.commit()
        
        logger.info(
            f"Section {section.order_index} paused for attempt {attempt.id}, {remaining}s remaining"
        )
        return {
            "message": "Section paused",
            "remaining_time_seconds": remaining,
            "total_time_spent": progress.total_time_spent,
        }
    
    def resume(self, db: Session, attempt: TestAttempt, section: Section) -> Dict[str, Any]:
        progress = self.get_progress(db, attempt.id, section.id)
        if progress is None or progress.paused_at is None:
            raise StateConflictError("Section is not paused", error_code="SECTION_NOT_PAUSED")
        
        if attempt.remaining_time_seconds is not None:
            remaining = attempt.remaining_time_seconds
        else:
            remaining = self.SECTION_TIME_LIMIT - (progress.total_time_spent or 0)
        remaining = max(0, min(remaining, self.SECTION_TIME_LIMIT))
        
        progress.total_time_spent = self.SECTION_TIME_LIMIT - remaining
        progress.section_start_time = utc_now()
        progress.paused_at = None
        progress.status = SectionStatus.IN_PROGRESS
        db.commit()
        
        logger.info(
            f"Section {section.order_index} resumed for attempt {attempt.id}, {remaining}s remaining"
        )
        return {
            "message": "Section resumed",
            "remaining_time_seconds": remaining,
            "total_time_spent": progress.total_time_spent,
        }
    
    def read(self, db: Session, attempt: TestAttempt, section: Section) -> Dict[str, Any]:
        """
        Timer snapshot; a running section that has used up its time is
        completed here
        """
        progress = self.get_progress(db, attempt.id, section.id)
        if progress is None:
            return self.snapshot(section, None)
        
        now = utc_now()
        current = self.current_time(progress, now)
        
        if progress.section_start_time is not None and progress.paused_at is None \
                and current >= self.SECTION_TIME_LIMIT:
            progress.total_time_spent = current
            self._mark_completed(progress)
            self._move_pointer_past(db, attempt, section)
            db.commit()
            current = self.SECTION_TIME_LIMIT
            logger.warning(
                f"Section {section.order_index} of attempt {attempt.id} auto-completed on time limit"
            )
        
        return self.snapshot(section, progress, current)
    
    def finalize(self, db: Session, attempt: TestAttempt, section: Section) -> SectionProgress:
        """
        Fold any running time into total_time_spent and mark COMPLETED
        
        Creates the row if the section was never started. Does not commit.
        """
        now = utc_now()
        progress = self.get_progress(db, attempt.id, section.id)
        
        if progress is None:
            progress = SectionProgress(
                attempt_id=attempt.id,
                section_id=section.id,
                total_time_spent=0,
            )
            db.add(progress)
        else:
            progress.total_time_spent = self.current_time(progress, now)
        
        self._mark_completed(progress)
        db.flush()
        return progress
    
    def _mark_completed(self, progress: SectionProgress):
        progress.total_time_spent = min(progress.total_time_spent or 0, self.SECTION_TIME_LIMIT)
        progress.status = SectionStatus.COMPLETED
        progress.section_start_time = None
        progress.paused_at = None
    
    def _move_pointer_past(self, db: Session, attempt: TestAttempt, section: Section):
        """Resume pointer moves on to the next section, or clears after the last"""
        if attempt.status != TestStatus.IN_PROGRESS:
            return
        if attempt.current_section_id not in (None, section.id):
            return
        
        next_section = section_catalog.next_section(db, section)
        attempt.current_section_id = next_section.id if next_section else None
        attempt.current_question_index = 0
        attempt.remaining_time_seconds = self.SECTION_TIME_LIMIT
    
    def completed_order_indexes(self, db: Session, attempt_id: int) -> List[int]:
        rows = (
            db.query(Section.order_index)
            .join(SectionProgress, SectionProgress.section_id == Section.id)
            .filter(
                SectionProgress.attempt_id == attempt_id,
                SectionProgress.status == SectionStatus.COMPLETED
            )
            .order_by(Section.order_index)
            .all()
        )
        return [row.order_index for row in rows]


# Global instance
timer_service = TimerService()
