"""
Database models package
"""
from career_profiling.models.user import User, UserRole, Student
from career_profiling.models.section import Section
from career_profiling.models.question import Question, QuestionType, QuestionStatus, QuestionApproval
from career_profiling.models.test_attempt import TestAttempt, TestStatus
from career_profiling.models.attempt_question import AttemptQuestionAssignment
from career_profiling.models.section_progress import SectionProgress, SectionStatus
from career_profiling.models.answer import Answer
from career_profiling.models.score import Score
from career_profiling.models.interpreted_result import InterpretedResult

__all__ = [
    "User", "UserRole", "Student",
    "Section",
    "Question", "QuestionType", "QuestionStatus", "QuestionApproval",
    "TestAttempt", "TestStatus",
    "AttemptQuestionAssignment",
    "SectionProgress", "SectionStatus",
    "Answer",
    "Score",
    "InterpretedResult",
]
