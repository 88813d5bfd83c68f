"""
AI-powered resume parser using LLM for structured extraction
"""
from typing import Any, Dict, List, NamedTuple, Optional
import json
import re
import structlog
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from app.ai_engine.service import ai_engine
from app.core.config import settings
from app.core.exceptions import AIEngineError, ProcessingError

logger = structlog.get_logger()

_FENCE_PATTERN = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)
_FIRST_INT_PATTERN = re.compile(r"-?\d+")

SYSTEM_PROMPT = "You extract structured data from resumes. You answer with JSON only."

PROMPT_TEMPLATE = """Extract the candidate information from the resume below and return it as JSON.

## Fields

### Basic information
- name: full name
- phone: phone number
- email: email address
- gender: gender as written on the resume
- age: age in years (integer)

### Education
- education: highest degree (e.g. high school, associate, bachelor, master, doctorate)
- school: school of the highest degree
- major: field of study
- graduationYear: graduation year (4-digit integer)

### Employment
- workYears: total years of work experience (integer)
- currentCompany: current or most recent employer
- currentPosition: current or most recent job title

### Skills and history
- skills: list of technical skills only
- workExperience: array of objects with company, position, startDate, endDate, description
- projectExperience: array of objects with name, role, startDate, endDate, description, technologies
- selfEvaluation: the candidate's self-assessment or summary

## Rules
1. Dates use the format yyyy-MM; an ongoing role ends with the literal "present".
2. Use null for any field that is not on the resume. Never invent values.
3. Return raw JSON only. No markdown, no code fences, no commentary.

## Resume
{resume_text}
"""


class CandidateInfo(BaseModel):
    """Structured resume content as returned by the LLM"""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    gender: Optional[str] = None
    age: Optional[int] = None
    education: Optional[str] = None
    school: Optional[str] = None
    major: Optional[str] = None
    graduation_year: Optional[int] = Field(default=None, alias="graduationYear")
    work_years: Optional[int] = Field(default=None, alias="workYears")
    current_company: Optional[str] = Field(default=None, alias="currentCompany")
    current_position: Optional[str] = Field(default=None, alias="currentPosition")
    skills: List[str] = Field(default_factory=list)
    work_experience: List[Dict[str, Any]] = Field(default_factory=list, alias="workExperience")
    project_experience: List[Dict[str, Any]] = Field(default_factory=list, alias="projectExperience")
    self_evaluation: Optional[str] = Field(default=None, alias="selfEvaluation")

    @field_validator("age", "graduation_year", "work_years", mode="before")
    @classmethod
    def _coerce_int(cls, value):
        """LLMs answer '5 years' or 3.5 as often as 5"""
        if value is None or isinstance(value, bool):
            return None
        if isinstance(value, (int, float)):
            return int(value)
        match = _FIRST_INT_PATTERN.search(str(value))
        return int(match.group()) if match else None

    @field_validator("phone", "email", "name", "gender", "education", "school", "major",
                     "current_company", "current_position", "self_evaluation", mode="before")
    @classmethod
    def _coerce_text(cls, value):
        if value is None:
            return None
        text = str(value).strip()
        return text or None

    @field_validator("skills", mode="before")
    @classmethod
    def _coerce_skills(cls, value):
        if value is None:
            return []
        if isinstance(value, str):
            value = re.split(r"[,;，；、\n]", value)
        return [str(skill).strip() for skill in value if skill is not None and str(skill).strip()]

    @field_validator("work_experience", "project_experience", mode="before")
    @classmethod
    def _coerce_history(cls, value):
        if not value:
            return []
        if isinstance(value, dict):
            value = [value]
        return [entry for entry in value if isinstance(entry, dict)]


class ParseResult(NamedTuple):
    info: CandidateInfo
    raw_response: str


def strip_code_fence(content: str) -> str:
    """Remove a leading ```json and trailing ``` if the model added them anyway"""
    return _FENCE_PATTERN.sub("", content.strip()).strip()


class AIParser:
    """AI-powered resume parser using LLM for intelligent data extraction"""

    def __init__(self, engine=None):
        self.ai_engine = engine or ai_engine

    def build_prompt(self, text: str) -> str:
        return PROMPT_TEMPLATE.format(resume_text=text[: settings.RESUME_PROMPT_MAX_CHARS])

    def parse(self, text: str) -> ParseResult:
        """
        Turn resume text into CandidateInfo.

        Raises ProcessingError when the text is too short to be a resume
        (scanned image, unusual PDF encoding); retrying cannot help there.
        Raises AIEngineError when the model output is unusable.
        """
        stripped = (text or "").strip()
        if len(stripped) < settings.MIN_RESUME_TEXT_LENGTH:
            logger.error("resume_text_too_short", length=len(stripped))
            raise ProcessingError(
                "Resume text extraction failed, the file may be a scanned image",
                details={"length": len(stripped)},
            )

        logger.info("ai_resume_parsing_started", model=settings.OPENAI_MODEL, length=len(stripped))
        raw_response = self.ai_engine.chat_completion(self.build_prompt(stripped), system_prompt=SYSTEM_PROMPT)
        cleaned = strip_code_fence(raw_response)

        try:
            payload = json.loads(cleaned)
        except json.JSONDecodeError as e:
            logger.error("ai_response_not_json", error=str(e), response=raw_response[:500])
            raise AIEngineError("AI response is not valid JSON", details={"error": str(e)})
        if not isinstance(payload, dict):
            raise AIEngineError("AI response is not a JSON object")

        try:
            info = CandidateInfo.model_validate(payload)
        except PydanticValidationError as e:
            logger.error("ai_response_invalid", error=str(e))
            raise AIEngineError("AI response does not match the candidate schema", details={"error": str(e)})

        if not info.name and not info.phone:
            logger.warning("ai_response_empty", response=raw_response[:500])
            raise AIEngineError("AI returned no name and no phone")

        logger.info("ai_resume_parsing_complete", name=info.name, skills=len(info.skills))
        return ParseResult(info=info, raw_response=raw_response)


# Global instance
ai_parser = AIParser()
