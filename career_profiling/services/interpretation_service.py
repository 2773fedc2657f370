"""
Interpretation service
Turns stored scores into a readiness / risk / career-direction report,
using Gemini for the narrative when available and a deterministic
counsellor-style narrative otherwise
"""
import logging
import math
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from career_profiling.exceptions import (
    AccessDeniedError,
    CareerProfilingError,
    DependencyFailure,
    NotFoundError,
    StateConflictError,
    ValidationError,
)
from career_profiling.models import (
    Answer,
    InterpretedResult,
    Section,
    Student,
    TestAttempt,
    TestStatus,
    User,
    UserRole,
)
from career_profiling.services.assignment_service import assignment_service
from career_profiling.services.gemini_service import gemini_service
from career_profiling.services.scoring_service import scoring_service
from career_profiling.utils.cache import cache_service

logger = logging.getLogger(__name__)

NOT_READY = "NOT READY"
PARTIALLY_READY = "PARTIALLY READY"
READY = "READY"

RESULT_DISCLAIMER = (
    "This assessment is designed to provide general career guidance and insights. Results are based "
    "on your responses and are intended for informational purposes only. They should not be considered "
    "as definitive career decisions or professional diagnoses. We recommend consulting with a qualified "
    "career counsellor to discuss your results in detail and explore your options further. Individual "
    "results may vary, and career success depends on many factors beyond assessment scores."
)

MULTI_DOMAIN = "Multi-domain Exploration"

SECTION_AREAS = {
    1: "Logical Reasoning",
    2: "Numerical Ability",
    3: "Verbal Ability",
    4: "Learning Style",
    5: "Interest Areas",
}

SECTION_AREAS_SHORT = {
    1: "logical",
    2: "numerical",
    3: "verbal",
    4: "learning style",
    5: "interest",
}

DOMAINS = {
    1: "Technology/Engineering",
    2: "Technology/Engineering",
    3: "Management/Commerce",
    4: "Creative/Design",
    5: "Creative/Design",
}


# ---- deterministic classifiers -----------------------------------------

def readiness_status(percentage: float) -> Tuple[str, str]:
    if percentage < 40:
        return (
            NOT_READY,
            "The student is currently in an exploration stage. This means it is too early "
            "to finalize a career decision."
        )
    if percentage < 60:
        return (
            PARTIALLY_READY,
            "The student has begun developing career-related strengths but needs further "
            "clarity before committing."
        )
    return (
        READY,
        "The student shows sufficient clarity and readiness to start planning a career direction."
    )


def risk_level(readiness: str) -> Tuple[str, str]:
    if readiness == NOT_READY:
        return (
            "HIGH",
            "Making a career decision at this stage may increase the chances of course changes "
            "or loss of interest later. This is decision risk, not failure risk - it means the "
            "student needs more time to explore before committing."
        )
    if readiness == PARTIALLY_READY:
        return (
            "MEDIUM",
            "With guidance and preparation, career decisions can become more reliable over time. "
            "Early career locking may cause dissatisfaction if interests change. This is decision "
            "risk, not failure risk - it means the student should continue exploring before finalizing."
        )
    return (
        "LOW",
        "The student is well prepared to make informed career decisions. This is decision risk, "
        "not failure risk - it means the student has developed sufficient clarity to explore "
        "career options with confidence."
    )


def section_numbers(section_scores: Dict[str, float]) -> Dict[int, float]:
    """{"section_2": 3.4} -> {2: 3.4}; non-section dimensions are ignored"""
    result = {}
    for dimension, score in (section_scores or {}).items():
        if not dimension.startswith("section_"):
            continue
        try:
            result[int(dimension.split("_", 1)[1])] = score
        except ValueError:
            continue
    return result


def career_direction(section_scores: Dict[str, float], overall_percentage: float = 0.0) -> Tuple[str, str]:
    """
    Career direction from per-section scores

    Below 60% overall a primary + secondary domain is reported; above it a
    single domain only when the top two sections agree.
    """
    balanced = (
        MULTI_DOMAIN,
        "The assessment shows balanced performance across areas. It's recommended to explore "
        "multiple career domains before specializing."
    )

    by_number = section_numbers(section_scores)
    if not by_number:
        return balanced

    ranked = sorted(by_number.items(), key=lambda item: (-item[1], item[0]))
    top_num = ranked[0][0]
    second_num = ranked[1][0] if len(ranked) > 1 else None
    bottom_num = ranked[-1][0]

    top_name = SECTION_AREAS.get(top_num, f"Section {top_num}")
    strength_text = f"Your strongest area is {top_name}"
    if second_num is not None:
        strength_text += f", followed by {SECTION_AREAS.get(second_num, f'Section {second_num}')}"
    weakness_text = f"Areas needing development include {SECTION_AREAS.get(bottom_num, f'Section {bottom_num}')}"

    if overall_percentage < 60:
        if second_num is None:
            return (
                MULTI_DOMAIN,
                f"{strength_text}. {weakness_text}. While you show some strengths, you are still in "
                f"the exploration phase. You should NOT finalize a career decision yet. Take time to "
                f"build awareness and skills across different fields, test your interests through "
                f"various activities, and work with a counsellor to understand your options better "
                f"before specializing."
            )

        primary = DOMAINS.get(top_num, "General")
        secondary = DOMAINS.get(second_num, "General")
        second_name = SECTION_AREAS.get(second_num, f"Section {second_num}")

        if primary == secondary:
            return (
                f"{primary} (Primary) + {MULTI_DOMAIN} (Secondary)",
                f"{strength_text}. {weakness_text}. This domain fits because your assessment shows "
                f"stronger performance in analytical and logical areas. However, you should NOT "
                f"finalize a career decision yet. You are still in the exploration phase and need to "
                f"test your interests through courses, projects, or internships before committing. "
                f"Continue exploring multiple domains to ensure you make an informed choice later."
            )
        return (
            f"{primary} (Primary) + {secondary} (Secondary)",
            f"{strength_text}. {weakness_text}. Your assessment indicates primary alignment with "
            f"{primary.lower()} (strongest in {top_name}) and secondary interest in "
            f"{secondary.lower()} (strong in {second_name}). This combination suggests you should "
            f"explore both domains. However, you should NOT finalize a career decision yet. Test "
            f"your interests in both areas through practical experience, courses, or projects "
            f"before committing. This balanced exploration will help you make a more informed "
            f"decision later."
        )

    def pair_in(group) -> bool:
        return top_num in group and (second_num is None or second_num in group)

    if pair_in({1, 2}):
        return (
            "Technology / Engineering",
            f"{strength_text}, indicating stronger logical and problem-solving abilities. "
            f"{weakness_text}. This domain fits because your assessment shows strong analytical "
            f"thinking and numerical skills. You can begin exploring specific career paths in this "
            f"area, but continue testing your interests through courses or projects before making a "
            f"final decision. Work with a counsellor to refine your options."
        )
    if pair_in({2, 3}):
        return (
            "Management / Commerce",
            f"{strength_text}, showing communication ability and interest in people-oriented roles. "
            f"{weakness_text}. This domain fits because your assessment indicates strong analytical "
            f"thinking combined with effective communication skills. You can begin exploring "
            f"specific career paths in this area, but continue testing your interests through "
            f"practical experience before making a final decision. Work with a counsellor to refine "
            f"your options."
        )
    if pair_in({4, 5}):
        return (
            "Creative / Design",
            f"{strength_text}, reflecting creative thinking, imagination, and interest-driven "
            f"learning. {weakness_text}. This domain fits because your assessment shows strong "
            f"creative and interest-based abilities. You can begin exploring specific career paths "
            f"in this area, but continue testing your interests through projects or creative work "
            f"before making a final decision. Work with a counsellor to refine your options."
        )
    return (
        MULTI_DOMAIN,
        f"{strength_text}. {weakness_text}. This suggests balanced abilities and the need to "
        f"explore multiple fields. You should NOT finalize a career decision yet. Continue "
        f"exploring different domains, testing your interests, and building skills across "
        f"various areas before specializing."
    )


# ---- roadmap and guidance ----------------------------------------------

_ROADMAP_TEMPLATE = (
    ("phase1", "0-3 Months", "Foundation"),
    ("phase2", "3-6 Months", "Skill Build"),
    ("phase3", "6-12 Months", "Decision"),
)

_PHASE_BASE = {
    "phase1": "This phase is meant for self-discovery and strengthening basic aptitude.",
    "phase2": "This phase focuses on building skills in potential areas and testing interests through courses or practice.",
    "phase3": "This phase helps finalize career direction and prepare for exams, courses, or skill tracks.",
}

_ROADMAP_CONTENT = {
    NOT_READY: {
        "phase1": (
            " No career decision should be taken yet. Strong warning: Making career decisions "
            "now may lead to dissatisfaction later.",
            [
                "Focus on aptitude improvement through practice and learning",
                "Attend career awareness sessions and counselling",
                "Explore different career domains without pressure to decide",
                "Build foundational skills in areas of interest",
                "Do NOT commit to any career path yet",
            ],
        ),
        "phase2": (
            " Continue exploration - no irreversible decisions.",
            [
                "Continue skill development in identified weak areas",
                "Take entry-level courses or workshops in areas of interest",
                "Engage in mini projects or practical exercises",
                "Regular counselling sessions to track progress",
                "Test interests through various activities",
            ],
        ),
        "phase3": (
            " Only after 12+ months of exploration.",
            [
                "Begin shortlisting 2-3 career domains based on progress",
                "Consider stream or course selection aligned with interests",
                "Start exam preparation or skill certification if applicable",
                "Finalize career direction with counsellor guidance",
            ],
        ),
    },
    PARTIALLY_READY: {
        "phase1": (
            " Guided exploration only - no career decisions yet.",
            [
                "Strengthen areas showing potential",
                "Attend career counselling to explore options",
                "Build awareness of career paths in strong areas",
                "No need to finalize career choice yet",
                "Warning: Making decisions now without exploration may lead to course dissatisfaction",
            ],
        ),
        "phase2": (
            " Limited shortlisting only.",
            [
                "Focus on skill building in identified areas",
                "Take relevant entry-level courses",
                "Engage in practical projects or internships",
                "Continue career exploration with guidance",
                "Test interests before committing",
            ],
        ),
        "phase3": (
            " After 6-12 months of preparation.",
            [
                "Shortlist 2-3 career domains based on strengths",
                "Select appropriate stream or course",
                "Begin exam or skill preparation",
                "Make informed career decision with support",
            ],
        ),
    },
    READY: {
        "phase1": (
            " Focused preparation allowed.",
            [
                "Build on existing strengths",
                "Attend career counselling for focused guidance",
                "Explore specific career paths in strong domains",
                "Begin narrowing down options",
            ],
        ),
        "phase2": (
            "",
            [
                "Take advanced courses in chosen domains",
                "Engage in relevant projects or internships",
                "Build specialized skills",
                "Work with counsellor to refine choices",
            ],
        ),
        "phase3": (
            "",
            [
                "Finalize career direction",
                "Select appropriate stream or course",
                "Begin exam preparation or skill certification",
                "Take concrete steps toward chosen career path",
            ],
        ),
    },
}


def action_roadmap(readiness: str, percentage: float) -> Dict[str, Dict[str, Any]]:
    """Three-phase plan over the next twelve months"""
    if readiness == NOT_READY or percentage < 40:
        content = _ROADMAP_CONTENT[NOT_READY]
    elif readiness == PARTIALLY_READY or percentage < 60:
        content = _ROADMAP_CONTENT[PARTIALLY_READY]
    else:
        content = _ROADMAP_CONTENT[READY]

    roadmap = {}
    for key, duration, title in _ROADMAP_TEMPLATE:
        suffix, actions = content[key]
        roadmap[key] = {
            "duration": duration,
            "title": title,
            "description": _PHASE_BASE[key] + suffix,
            "actions": list(actions),
        }
    return roadmap


def action_plan(roadmap: Dict[str, Dict[str, Any]]) -> List[str]:
    """One line per phase, e.g. Foundation: first action, second action"""
    items = []
    for key, _, _ in _ROADMAP_TEMPLATE:
        phase = roadmap.get(key) or {}
        if not phase.get("title"):
            continue
        actions = ", ".join(a for a in (phase.get("actions") or [])[:2] if a)
        items.append(f"{phase['title']}: {actions}" if actions else phase["title"])
    return items or ["Action plan is being generated. Please refresh in a moment."]


def counsellor_summary(readiness: str, section_scores: Dict[str, float]) -> str:
    ranked = sorted(section_numbers(section_scores).items(), key=lambda item: (-item[1], item[0]))[:2]
    strongest = [SECTION_AREAS_SHORT.get(num, "general") for num, _ in ranked]

    if readiness == NOT_READY:
        areas = " and ".join(strongest) if strongest else "multiple areas"
        return (
            f"The student shows low readiness with developing aptitude. Career decisions should be "
            f"delayed for 12-18 months while strengthening {areas} skills through guided "
            f"preparation and exploration."
        )
    if readiness == PARTIALLY_READY:
        areas = " and ".join(strongest) if strongest else "multiple areas"
        return (
            f"The student shows moderate readiness with developing aptitude. Career decisions should "
            f"be delayed for 6-12 months while strengthening {areas} skills through guided preparation."
        )
    areas = " and ".join(strongest) if strongest else "identified areas"
    return (
        f"The student shows good readiness with developed aptitude in {areas}. Career exploration "
        f"can begin with guidance, but final decisions should be made after 3-6 months of "
        f"practical testing."
    )


def readiness_action_guidance(readiness: str) -> List[str]:
    if readiness == NOT_READY:
        return [
            "Avoid final career decisions at this stage",
            "Focus on exploration and foundation skills",
            "Career counselling is strongly recommended",
            "Competitive exam preparation should be delayed",
            "Build awareness before specialization",
        ]
    if readiness == PARTIALLY_READY:
        return [
            "Avoid rushing into career decisions",
            "Continue building skills in strong areas",
            "Career counselling is recommended",
            "Test interests through courses or projects",
            "Wait 6-12 months before finalizing choices",
        ]
    return [
        "Begin exploring specific career paths",
        "Test interests through practical experience",
        "Work with counsellor to refine options",
        "Consider shortlisting 2-3 domains",
        "Make decisions after 3-6 months of exploration",
    ]


def career_confidence(readiness: str) -> Tuple[str, str]:
    if readiness == NOT_READY:
        return (
            "LOW",
            "This direction is based on early aptitude patterns and should be treated as a starting "
            "point for exploration, not a final decision. The student needs more time to develop "
            "clarity before committing to any career path."
        )
    if readiness == PARTIALLY_READY:
        return (
            "MODERATE",
            "This direction reflects current strengths but should be validated through practical "
            "experience and continued skill building. The student should explore this domain while "
            "keeping other options open for the next 6-12 months."
        )
    return (
        "HIGH",
        "This direction aligns well with demonstrated strengths and can serve as a solid foundation "
        "for career planning. However, the student should still test interests through practical "
        "experience before making final commitments."
    )


def do_now_do_later(readiness: str) -> Tuple[List[str], List[str]]:
    if readiness == NOT_READY:
        return (
            [
                "Skill building in foundational areas",
                "Domain exploration through counselling",
                "Career awareness sessions",
                "Basic aptitude improvement activities",
            ],
            [
                "Stream selection",
                "Competitive exam preparation",
                "Final specialization",
                "Career commitment decisions",
            ],
        )
    if readiness == PARTIALLY_READY:
        return (
            [
                "Strengthen skills in identified strong areas",
                "Attend career counselling sessions",
                "Take entry-level courses in potential domains",
                "Engage in practical projects or mini internships",
            ],
            [
                "Shortlist 2-3 career domains",
                "Stream or course selection",
                "Exam preparation",
                "Final career decision",
            ],
        )
    return (
        [
            "Explore specific career paths in strong domains",
            "Take relevant courses to test interests",
            "Work with counsellor to refine options",
            "Begin narrowing down to 2-3 domains",
        ],
        [
            "Finalize career direction",
            "Select appropriate stream or course",
            "Begin exam preparation or certification",
            "Take concrete steps toward chosen path",
        ],
    )


def human_risk_explanation(risk: str) -> str:
    if risk == "HIGH":
        return (
            "Making a career decision without guidance at this stage may increase the risk of course "
            "changes or dissatisfaction later. This is decision risk, not failure risk - it means the "
            "student needs more time to explore before committing."
        )
    if risk == "MEDIUM":
        return (
            "Making a career decision too early without proper exploration may cause dissatisfaction "
            "if interests change. This is decision risk, not failure risk - it means the student "
            "should continue exploring before finalizing."
        )
    return (
        "The student is well prepared to make informed career decisions. This is decision risk, not "
        "failure risk - it means the student has developed sufficient clarity to explore career "
        "options with confidence."
    )


def counsellor_style_summary(readiness: str, direction: str) -> str:
    if readiness == NOT_READY:
        return (
            "Based on the assessment results, the student is currently in an exploration phase. "
            "The results indicate developing aptitude across multiple areas, but no strong "
            "specialization yet. This is a normal and healthy stage of career development - many "
            "students need time to explore before making career decisions. The focus at this stage "
            "should be on building awareness, developing foundational skills, and exploring "
            "different career domains through counselling and practical activities. It is "
            "recommended to focus on understanding strengths and interests before making any career "
            "commitments. With continued exploration and skill building over the next 12-18 months, "
            "the student will be better positioned to make an informed career decision."
        )
    if readiness == PARTIALLY_READY:
        return (
            "Based on the assessment results, the student is in a preparation stage. The results "
            "show developing career-related strengths in certain areas while other areas need "
            "further development. This balanced development is actually positive - it means the "
            "student is building a solid foundation while identifying natural strengths. The "
            "student should continue exploring and building skills before finalizing any career "
            "choice. Making a career decision too early without proper exploration may lead to "
            "dissatisfaction or course changes later. The focus should be on continuing to develop "
            "skills, attending career counselling sessions, taking relevant courses, and testing "
            "interests through practical projects or activities. With continued effort and guidance "
            "over the next 6-12 months, the student will be well-positioned to make an informed "
            "career decision."
        )
    return (
        f"Based on the assessment results, the student shows good readiness for career planning. "
        f"The results indicate strong aptitude in certain areas, particularly those aligned with "
        f"{direction.lower()} domains. The student has clear strengths to build upon and has "
        f"developed skills that will be valuable in their future career path. While the student can "
        f"begin exploring specific career paths, it is still important to test interests through "
        f"practical experience before making final decisions. The focus should be on working with a "
        f"career counsellor to refine options, taking relevant courses to build specialized skills, "
        f"and testing interests through projects, internships, or other practical activities. Over "
        f"the next 3-6 months, with proper exploration and guidance, the student can begin making "
        f"career decisions and taking concrete steps toward their chosen path."
    )


def fallback_strengths_weaknesses(readiness: str) -> Tuple[List[str], List[str]]:
    if readiness == NOT_READY:
        return (
            [
                "Willingness to take assessment and explore options",
                "Opportunity to identify growth areas early",
                "Time available for skill development",
            ],
            [
                "Need for foundational skill development",
                "Requires focused preparation in multiple areas",
                "Career awareness needs to be built",
            ],
        )
    if readiness == PARTIALLY_READY:
        return (
            [
                "Solid foundation in certain areas",
                "Good potential for development",
                "Shows interest in career exploration",
            ],
            [
                "Some areas need further strengthening",
                "Requires continued skill building",
                "Career direction needs refinement",
            ],
        )
    return (
        [
            "Strong performance in assessment",
            "Good readiness for career exploration",
            "Clear areas of strength identified",
        ],
        [
            "Continue building on strengths",
            "Explore advanced opportunities",
            "Refine career direction with guidance",
        ],
    )


def correct_answers_for(percentage: float, total_questions: int) -> int:
    """Display-only figure derived from the overall percentage"""
    return int(math.floor((percentage / 100.0) * total_questions))


class InterpretationService:
    """
    Service for generating, storing and reporting interpretations

    Derived classifications (readiness, risk, direction, roadmap,
    guidance) are deterministic functions of the scores. Gemini only
    supplies the narrative summary and strengths/weaknesses lists.
    """

    PROCESSING = "PROCESSING"

    def derive(self, percentage: float, section_scores: Dict[str, float]) -> Dict[str, Any]:
        """All deterministic report fields for a percentage and section scores"""
        readiness, readiness_explanation = readiness_status(percentage)
        risk, risk_explanation = risk_level(readiness)
        direction, direction_reason = career_direction(section_scores, percentage)
        roadmap = action_roadmap(readiness, percentage)
        confidence, confidence_explanation = career_confidence(readiness)
        do_now, do_later = do_now_do_later(readiness)

        return {
            "readiness_status": readiness,
            "readiness_explanation": readiness_explanation,
            "risk_level": risk,
            "risk_explanation": risk_explanation,
            "career_direction": direction,
            "career_direction_reason": direction_reason,
            "roadmap": roadmap,
            "counsellor_summary": counsellor_summary(readiness, section_scores),
            "readiness_action_guidance": readiness_action_guidance(readiness),
            "career_confidence_level": confidence,
            "career_confidence_explanation": confidence_explanation,
            "do_now_actions": do_now,
            "do_later_actions": do_later,
            "risk_explanation_human": human_risk_explanation(risk),
        }

    def generate_and_save(self, db: Session, attempt: TestAttempt) -> InterpretedResult:
        """
        Create the InterpretedResult for a scored attempt if none exists

        Gemini failures fall back to the deterministic narrative; database
        failures propagate to the caller.
        """
        existing = db.query(InterpretedResult).filter(InterpretedResult.attempt_id == attempt.id).first()
        if existing is not None:
            return existing

        scores = scoring_service.get_scores(db, attempt.id)
        percentage = scores.get(scoring_service.OVERALL_DIMENSION, 0.0)
        section_scores = {k: v for k, v in scores.items() if k.startswith("section_")}
        total_questions = assignment_service.count_assigned(db, attempt.id)
        derived = self.derive(percentage, section_scores)

        try:
            narrative = gemini_service.generate_interpretation({
                "total_questions": total_questions,
                "correct_answers": correct_answers_for(percentage, total_questions),
                "percentage": round(percentage, 2),
                "readiness_status": derived["readiness_status"],
                "category_scores": scores or None,
            })
            summary = narrative.get("summary") or ""
            strengths = list(narrative.get("strengths") or [])
            weaknesses = list(narrative.get("weaknesses") or [])
            clusters = list(narrative.get("career_clusters") or []) or [derived["career_direction"]]
            plan = list(narrative.get("action_plan") or []) or action_plan(derived["roadmap"])
            is_ai_generated = True
        except DependencyFailure as e:
            logger.warning(f"Using fallback interpretation for attempt {attempt.id}: {e.message}")
            summary = counsellor_style_summary(derived["readiness_status"], derived["career_direction"])
            strengths, weaknesses = fallback_strengths_weaknesses(derived["readiness_status"])
            clusters = [derived["career_direction"]]
            plan = action_plan(derived["roadmap"])
            is_ai_generated = False

        result = InterpretedResult(
            attempt_id=attempt.id,
            interpretation_text=summary,
            strengths=strengths,
            areas_for_improvement=weaknesses,
            career_clusters=clusters,
            action_plan=plan,
            is_ai_generated=is_ai_generated,
            **derived,
        )
        db.add(result)
        db.commit()
        db.refresh(result)

        logger.info(
            f"Interpretation saved for attempt {attempt.id}: readiness={derived['readiness_status']}, "
            f"ai={is_ai_generated}"
        )
        return result

    def section_score_list(self, db: Session, section_scores: Dict[str, float]) -> List[Dict[str, Any]]:
        names = {s.order_index: s.name for s in db.query(Section).all()}
        items = [
            {
                "section_number": num,
                "section_name": names.get(num, f"Section {num}"),
                "score": round(score, 2),
            }
            for num, score in section_numbers(section_scores).items()
            if num > 0
        ]
        return sorted(items, key=lambda item: item["section_number"])

    def get_report(self, db: Session, user: User, attempt_id: int) -> Dict[str, Any]:
        """
        Scored and interpreted report for a completed attempt

        Students may only read their own attempts. Missing scores are
        recomputed; a report that cannot be produced yet comes back as a
        placeholder the client can poll.
        """
        attempt = db.query(TestAttempt).filter(TestAttempt.id == attempt_id).first()
        if attempt is None:
            raise NotFoundError("Test attempt not found", error_code="ATTEMPT_NOT_FOUND")

        if user.role == UserRole.STUDENT and (attempt.student is None or attempt.student.user_id != user.id):
            raise AccessDeniedError("Access denied")

        if attempt.status != TestStatus.COMPLETED:
            raise StateConflictError(
                "Test must be completed before interpretation",
                error_code="ATTEMPT_NOT_COMPLETED"
            )

        cache_key = cache_service.interpretation_key(attempt.id)
        cached = cache_service.get(cache_key)
        if cached:
            return cached

        total_questions = assignment_service.count_assigned(db, attempt.id)
        scores = scoring_service.get_scores(db, attempt.id)

        if scoring_service.OVERALL_DIMENSION not in scores:
            try:
                scoring_service.store_scores(db, attempt.id)
                db.commit()
            except SQLAlchemyError as e:
                db.rollback()
                logger.error(f"Score recomputation failed for attempt {attempt.id}: {str(e)}")
            scores = scoring_service.get_scores(db, attempt.id)

        if scoring_service.OVERALL_DIMENSION not in scores:
            return self._processing_report(total_questions)

        if total_questions == 0:
            raise ValidationError(
                "No questions selected for this test attempt. Please start sections to generate questions.",
                error_code="NO_QUESTIONS_ASSIGNED"
            )

        answered = db.query(Answer).filter(Answer.attempt_id == attempt.id).count()
        if answered < total_questions:
            raise ValidationError(
                f"Cannot generate interpretation: {answered}/{total_questions} questions answered",
                error_code="INCOMPLETE_ANSWERS"
            )

        percentage = min(100.0, max(0.0, scores[scoring_service.OVERALL_DIMENSION]))
        section_scores = {k: v for k, v in scores.items() if k.startswith("section_")}
        correct_answers = correct_answers_for(percentage, total_questions)

        try:
            result = self.generate_and_save(db, attempt)
        except (CareerProfilingError, SQLAlchemyError) as e:
            db.rollback()
            logger.error(f"Interpretation generation failed for attempt {attempt.id}: {str(e)}")
            return self._generating_report(db, percentage, section_scores, total_questions, correct_answers)

        report = self._full_report(db, result, percentage, section_scores, total_questions, correct_answers)
        cache_service.set(cache_key, report)
        return report

    # ---- stored results, student view ----------------------------------

    def student_result(self, db: Session, user: User, attempt_id: int) -> Dict[str, Any]:
        """
        The stored interpretation of one of the student's own attempts

        Raises:
            NotFoundError: foreign or missing attempt, or nothing stored yet
        """
        attempt = (
            db.query(TestAttempt)
            .join(Student, Student.id == TestAttempt.student_id)
            .filter(TestAttempt.id == attempt_id, Student.user_id == user.id)
            .first()
        )
        if attempt is None:
            raise NotFoundError("Test attempt not found", error_code="ATTEMPT_NOT_FOUND")

        result = db.query(InterpretedResult).filter(InterpretedResult.attempt_id == attempt.id).first()
        if result is None:
            raise NotFoundError(
                "Results are not yet available. Please check back later.",
                error_code="RESULT_NOT_READY"
            )
        return self._student_view(result)

    def student_results(self, db: Session, user: User) -> List[Dict[str, Any]]:
        """Stored interpretations of every completed attempt; attempts without one are skipped"""
        rows = (
            db.query(InterpretedResult)
            .join(TestAttempt, TestAttempt.id == InterpretedResult.attempt_id)
            .join(Student, Student.id == TestAttempt.student_id)
            .filter(Student.user_id == user.id, TestAttempt.status == TestStatus.COMPLETED)
            .order_by(TestAttempt.completed_at)
            .all()
        )
        return [self._student_view(result) for result in rows]

    def _student_view(self, result: InterpretedResult) -> Dict[str, Any]:
        careers = [
            {"career_name": name, "description": None, "category": result.career_direction}
            for name in (result.career_clusters or [])
        ]
        return {
            "test_attempt_id": result.attempt_id,
            "interpretation_text": result.interpretation_text,
            "strengths": list(result.strengths or []),
            "areas_for_improvement": list(result.areas_for_improvement or []),
            "careers": careers,
            "created_at": result.created_at,
            "disclaimer": RESULT_DISCLAIMER,
        }

    def _full_report(
        self,
        db: Session,
        result: InterpretedResult,
        percentage: float,
        section_scores: Dict[str, float],
        total_questions: int,
        correct_answers: int
    ) -> Dict[str, Any]:
        derived = self.derive(percentage, section_scores)
        roadmap = result.roadmap if _valid_roadmap(result.roadmap) else derived["roadmap"]

        return {
            "summary": result.interpretation_text
                or counsellor_style_summary(derived["readiness_status"], derived["career_direction"]),
            "strengths": list(result.strengths or []),
            "weaknesses": list(result.areas_for_improvement or []),
            "career_clusters": list(result.career_clusters or []) or [derived["career_direction"]],
            "risk_level": derived["risk_level"],
            "readiness_status": derived["readiness_status"],
            "action_plan": list(result.action_plan or []) or action_plan(roadmap),
            "overall_percentage": round(percentage, 2),
            "total_questions": total_questions,
            "correct_answers": correct_answers,
            "is_ai_generated": bool(result.is_ai_generated),
            "readiness_explanation": derived["readiness_explanation"],
            "risk_explanation": derived["risk_explanation"],
            "career_direction": derived["career_direction"],
            "career_direction_reason": derived["career_direction_reason"],
            "roadmap": roadmap,
            "section_scores": self.section_score_list(db, section_scores),
            "counsellor_summary": result.counsellor_summary or derived["counsellor_summary"],
            "readiness_action_guidance": list(result.readiness_action_guidance or [])
                or derived["readiness_action_guidance"],
            "career_confidence_level": result.career_confidence_level or derived["career_confidence_level"],
            "career_confidence_explanation": result.career_confidence_explanation
                or derived["career_confidence_explanation"],
            "do_now_actions": list(result.do_now_actions or []) or derived["do_now_actions"],
            "do_later_actions": list(result.do_later_actions or []) or derived["do_later_actions"],
            "risk_explanation_human": result.risk_explanation_human or derived["risk_explanation_human"],
        }

    def _generating_report(
        self,
        db: Session,
        percentage: float,
        section_scores: Dict[str, float],
        total_questions: int,
        correct_answers: int
    ) -> Dict[str, Any]:
        derived = self.derive(percentage, section_scores)
        return {
            "summary": "AI interpretation is being generated. Please refresh in a moment.",
            "strengths": [],
            "weaknesses": [],
            "career_clusters": [derived["career_direction"]],
            "action_plan": ["Interpretation is being generated. Please refresh in a moment."],
            "overall_percentage": round(percentage, 2),
            "total_questions": total_questions,
            "correct_answers": correct_answers,
            "is_ai_generated": False,
            "section_scores": self.section_score_list(db, section_scores),
            **derived,
        }

    def _processing_report(self, total_questions: int) -> Dict[str, Any]:
        return {
            "summary": "Assessment results are being processed. Please check back in a moment.",
            "strengths": [],
            "weaknesses": [],
            "career_clusters": [],
            "risk_level": "MEDIUM",
            "readiness_status": self.PROCESSING,
            "action_plan": ["Results are being calculated. Please refresh in a moment."],
            "overall_percentage": 0.0,
            "total_questions": total_questions or 7,
            "correct_answers": 0,
            "is_ai_generated": False,
        }


def _valid_roadmap(roadmap: Optional[Dict[str, Any]]) -> bool:
    return isinstance(roadmap, dict) and all(key in roadmap for key, _, _ in _ROADMAP_TEMPLATE)


# Global instance
interpretation_service = InterpretationService()
