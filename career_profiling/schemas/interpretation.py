"""
Pydantic schemas for the interpretation report
"""
from pydantic import BaseModel
from typing import List, Dict, Any, Optional
from datetime import datetime


class SectionScore(BaseModel):
    section_number: int
    section_name: str
    score: float


class RoadmapPhase(BaseModel):
    duration: str
    title: str
    description: str
    actions: List[str]


class InterpretationReport(BaseModel):
    """
    Scored and interpreted report

    Placeholder reports (still processing, or narrative being generated)
    leave the derived fields empty.
    """
    summary: str
    strengths: List[str]
    weaknesses: List[str]
    career_clusters: List[str]
    risk_level: str
    readiness_status: str
    action_plan: List[str]
    overall_percentage: float
    total_questions: int
    correct_answers: int
    is_ai_generated: bool
    readiness_explanation: Optional[str] = None
    risk_explanation: Optional[str] = None
    career_direction: Optional[str] = None
    career_direction_reason: Optional[str] = None
    roadmap: Optional[Dict[str, RoadmapPhase]] = None
    section_scores: Optional[List[SectionScore]] = None
    counsellor_summary: Optional[str] = None
    readiness_action_guidance: Optional[List[str]] = None
    career_confidence_level: Optional[str] = None
    career_confidence_explanation: Optional[str] = None
    do_now_actions: Optional[List[str]] = None
    do_later_actions: Optional[List[str]] = None
    risk_explanation_human: Optional[str] = None


class CareerOut(BaseModel):
    career_name: str
    description: Optional[str] = None
    category: Optional[str] = None


class StudentResult(BaseModel):
    """Stored interpretation as shown to the student who took the test"""
    test_attempt_id: int
    interpretation_text: str
    strengths: List[str]
    areas_for_improvement: List[str]
    careers: List[CareerOut]
    created_at: datetime
    disclaimer: str
