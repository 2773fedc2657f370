"""
Gemini AI service for narrative interpretation of assessment scores
"""
import json
import logging
from typing import Any, Dict

import google.generativeai as genai

from career_profiling.config import settings
from career_profiling.exceptions import DependencyFailure

logger = logging.getLogger(__name__)

# Configure Gemini API
genai.configure(api_key=settings.GEMINI_API_KEY)


class GeminiService:
    """Service for Gemini text generation"""
    
    REQUIRED_FIELDS = (
        "summary",
        "strengths",
        "weaknesses",
        "career_clusters",
        "risk_level",
        "readiness_status",
        "action_plan",
    )
    
    def __init__(self):
        self.model = genai.GenerativeModel(settings.GEMINI_MODEL)
    
    @property
    def enabled(self) -> bool:
        return bool(settings.GEMINI_API_KEY and settings.GEMINI_API_KEY.strip())
    
    def generate_interpretation(self, context: Dict[str, Any]) -> Dict[str, Any]:
        """
        Ask Gemini for a structured career interpretation
        
        Args:
            context: total_questions, correct_answers, percentage,
                readiness_status and category_scores
            
        Returns:
            Parsed JSON with every REQUIRED_FIELDS key
            
        Raises:
            DependencyFailure: no API key, API error or unusable payload
        """
        if not self.enabled:
            raise DependencyFailure("GEMINI_API_KEY environment variable is not set")
        
        prompt = self._create_interpretation_prompt(context)
        
        try:
            response = self.model.generate_content(prompt)
            response_text = response.text
        except Exception as e:
            message = self._sanitize_error(str(e))
            logger.error(f"Gemini interpretation request failed: {message}")
            raise DependencyFailure(f"Gemini API error: {message}") from e
        
        return self._parse_interpretation_response(response_text)
    
    def _create_interpretation_prompt(self, context: Dict[str, Any]) -> str:
        """Create structured prompt for interpretation"""
        
        category_info = ""
        category_scores = context.get("category_scores")
        if category_scores:
            category_info = "\nCategory Breakdown:\n"
            for category, score in category_scores.items():
                category_info += f"- {category}: {score}%\n"
        
        return f"""You are a career guidance AI. Provide guidance only. No medical or psychological diagnosis.

ASSESSMENT RESULTS:
- Total Questions: {context.get("total_questions", 0)}
- Correct Answers: {context.get("correct_answers", 0)}
- Percentage Score: {context.get("percentage", 0.0)}%
- Readiness Band: {context.get("readiness_status", "PARTIALLY READY")}
{category_info}

TASK:
Generate a structured JSON response with the following exact structure:

{{
  "summary": "A 2-3 sentence overview of the assessment results focusing on career readiness",
  "strengths": ["strength 1", "strength 2", "strength 3"],
  "weaknesses": ["area for improvement 1", "area for improvement 2"],
  "career_clusters": ["cluster 1", "cluster 2", "cluster 3"],
  "risk_level": "LOW" or "MEDIUM" or "HIGH",
  "readiness_status": "READY" or "PARTIALLY READY" or "NOT READY",
  "action_plan": [
    "Step 1 for next 6 months",
    "Step 2 for 6-12 months",
    "Step 3 for 12-24 months"
  ]
}}

IMPORTANT:
- Return ONLY valid JSON, no markdown, no code blocks
- readiness_status should align with the readiness band
- Use positive, encouraging language throughout
- Focus on career development, not diagnosis

Return the JSON now:"""
    
    def _parse_interpretation_response(self, response_text: str) -> Dict[str, Any]:
        """Parse Gemini response into an interpretation dict"""
        text = (response_text or "").strip()
        
        # Remove markdown code blocks if present
        if text.startswith("```json"):
            text = text[7:]
        if text.startswith("```"):
            text = text[3:]
        if text.endswith("```"):
            text = text[:-3]
        text = text.strip()
        
        try:
            interpretation = json.loads(text)
        except json.JSONDecodeError as e:
            logger.error(f"Failed to parse Gemini interpretation: {str(e)}")
            raise DependencyFailure("Gemini API error: response was not valid JSON") from e
        
        if not isinstance(interpretation, dict):
            raise DependencyFailure("Gemini API error: response was not a JSON object")
        
        for field in self.REQUIRED_FIELDS:
            if field not in interpretation:
                raise DependencyFailure(f"Gemini response missing required field: {field}")
        
        return interpretation
    
    @staticmethod
    def _sanitize_error(message: str) -> str:
        lowered = message.lower()
        if "api key" in lowered or "authentication" in lowered:
            return "Gemini API authentication failed"
        if "quota" in lowered or "rate limit" in lowered:
            return "Gemini API rate limit exceeded"
        return message


# Global instance
gemini_service = GeminiService()
