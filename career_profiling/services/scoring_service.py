"""
Scoring engine
Maps answer letters onto a 1-5 ordinal, averages per dimension and
remaps the grand mean onto a 0-100 overall percentage
"""
import logging
import math
from typing import Any, Dict, List

from sqlalchemy.orm import Session, joinedload

from career_profiling.models import Answer, Question, QuestionType, Score

logger = logging.getLogger(__name__)


class ScoringService:
    """
    Service for turning an attempt's answer set into Score rows
    
    Strategy:
    - Likert: letter -> ordinal via LETTER_VALUES, unknown letters count as 3
    - Multiple choice: same letter table (no correctness check here),
      otherwise a numeric answer is taken at face value, else 0
    - Dimension: section_<order_index> when the question has a section,
      else its category, else "general"
    
    Scores are always rewritten wholesale for the attempt.
    """
    
    LETTER_VALUES = {"A": 1, "B": 2, "C": 3, "D": 4, "E": 5}
    LIKERT_DEFAULT = 3.0
    OVERALL_DIMENSION = "overall"
    
    def answer_value(self, question: Question, answer_text: str) -> float:
        """Ordinal value of one answer"""
        letter = (answer_text or "").strip().upper()
        
        if letter in self.LETTER_VALUES:
            return float(self.LETTER_VALUES[letter])
        
        if question.question_type == QuestionType.LIKERT_SCALE:
            logger.warning(
                f"Invalid Likert answer '{answer_text}' for question {question.id}, defaulting to 3 (C)"
            )
            return self.LIKERT_DEFAULT
        
        if question.question_type == QuestionType.MULTIPLE_CHOICE:
            try:
                value = float(answer_text)
            except (TypeError, ValueError):
                value = None
            if value is not None and math.isfinite(value):
                return value
            logger.warning(
                f"Invalid multiple-choice answer '{answer_text}' for question {question.id}, defaulting to 0"
            )
            return 0.0
        
        return 0.0
    
    def dimension_for(self, question: Question) -> str:
        if question.section is not None:
            return f"section_{question.section.order_index}"
        return question.category or "general"
    
    def compute(self, answers: List[Answer]) -> List[Dict[str, Any]]:
        """
        Pure part of scoring: answers -> [{dimension, score_value, count}]
        
        Dimensions come back sorted by name with "overall" last, so two
        runs over the same answers produce identical rows.
        """
        values_by_dimension: Dict[str, List[float]] = {}
        
        for answer in answers:
            question = answer.question
            if question is None:
                continue
            dimension = self.dimension_for(question)
            values_by_dimension.setdefault(dimension, []).append(
                self.answer_value(question, answer.answer_text)
            )
        
        results = []
        grand_total = 0.0
        grand_count = 0
        
        for dimension in sorted(values_by_dimension):
            values = values_by_dimension[dimension]
            results.append({
                "dimension": dimension,
                "score_value": sum(values) / len(values),
                "count": len(values),
            })
            grand_total += sum(values)
            grand_count += len(values)
        
        if grand_count > 0:
            average = grand_total / grand_count
            overall = ((average - 1) / 4) * 100.0
            overall = min(100.0, max(0.0, overall))
            results.append({
                "dimension": self.OVERALL_DIMENSION,
                "score_value": overall,
                "count": grand_count,
            })
        
        return results
    
    def store_scores(self, db: Session, attempt_id: int) -> List[Dict[str, Any]]:
        """
        Recompute and persist every Score row for an attempt
        
        Flushes but does not commit; the caller owns the transaction.
        """
        answers = (
            db.query(Answer)
            .options(joinedload(Answer.question).joinedload(Question.section))
            .filter(Answer.attempt_id == attempt_id)
            .order_by(Answer.question_id)
            .all()
        )
        
        results = self.compute(answers)
        
        db.query(Score).filter(Score.attempt_id == attempt_id).delete(synchronize_session=False)
        for result in results:
            db.add(Score(
                attempt_id=attempt_id,
                dimension=result["dimension"],
                score_value=result["score_value"],
                percentile=None,
            ))
        db.flush()
        
        overall = next((r["score_value"] for r in results if r["dimension"] == self.OVERALL_DIMENSION), None)
        logger.info(
            f"Scores stored for attempt {attempt_id}: {len(results)} dimensions, overall={overall}"
        )
        
        return results
    
    def get_scores(self, db: Session, attempt_id: int) -> Dict[str, float]:
        rows = db.query(Score).filter(Score.attempt_id == attempt_id).all()
        return {row.dimension: row.score_value for row in rows}


# Global instance
scoring_service = ScoringService()
