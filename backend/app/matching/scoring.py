"""
Scoring engine for candidate-job matching
"""
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, List, Optional
import re
import structlog

from app.ai_engine.service import ai_engine
from app.core.config import settings
from app.models.candidate import Candidate
from app.models.enums import EducationLevel
from app.models.job import Job
from app.vector_store.service import vector_store

logger = structlog.get_logger()

_TWO_PLACES = Decimal("0.01")
_WHITESPACE = re.compile(r"\s+")


def round_half_up(value: float) -> Decimal:
    return Decimal(str(value)).quantize(_TWO_PLACES, rounding=ROUND_HALF_UP)


def normalize_skill(skill) -> str:
    return _WHITESPACE.sub(" ", str(skill)).strip().lower()


def build_job_text(job: Job) -> str:
    """Job profile used as the semantic query"""
    lines = [f"Position: {job.title}"]
    if job.department:
        lines.append(f"Department: {job.department}")
    if job.description:
        lines.append(f"Description: {job.description}")
    if job.requirements:
        lines.append(f"Requirements: {job.requirements}")
    if job.required_skills:
        lines.append("Skills: " + ", ".join(str(skill) for skill in job.required_skills))
    if job.education:
        lines.append(f"Education: {job.education}")
    if job.experience_min is not None:
        upper = f"-{job.experience_max}" if job.experience_max is not None else "+"
        lines.append(f"Experience: {job.experience_min}{upper} years")
    elif job.experience_max is not None:
        lines.append(f"Experience: up to {job.experience_max} years")
    return "\n".join(lines)


@dataclass
class MatchResult:
    total_score: Decimal
    semantic_score: Decimal
    skill_score: Decimal
    experience_score: Decimal
    education_score: Decimal
    reasons: List[str] = field(default_factory=list)

    @property
    def breakdown(self) -> Dict[str, float]:
        return {
            "semanticScore": float(self.semantic_score),
            "skillScore": float(self.skill_score),
            "experienceScore": float(self.experience_score),
            "educationScore": float(self.education_score),
        }


class ScoringEngine:
    """Weighted four-factor match score"""

    WEIGHTS = {
        "semantic": 0.30,
        "skill": 0.35,
        "experience": 0.20,
        "education": 0.15,
    }

    EXPERIENCE_PENALTY_PER_YEAR = 15.0
    EXPERIENCE_FLOOR = 10.0
    EDUCATION_PENALTY_PER_LEVEL = 25.0

    def __init__(self, engine=None, store=None):
        self.ai_engine = engine or ai_engine
        self.vector_store = store or vector_store

    def calculate(self, job: Job, candidate: Candidate) -> MatchResult:
        """
        Score a candidate against a job.

        Every sub-score lies in [0, 100] and appends one reason. A failing
        embedding or index call lowers confidence, it never fails the score.
        """
        reasons: List[str] = []

        semantic = self.semantic_score(job, candidate.id)
        reasons.append(self._semantic_reason(semantic))
        skill = self.skill_score(job.required_skills, candidate.skills, reasons)
        experience = self.experience_score(job.experience_min, job.experience_max, candidate.work_years, reasons)
        education = self.education_score(job.education, candidate.education, reasons)

        total = (
            semantic * self.WEIGHTS["semantic"]
            + skill * self.WEIGHTS["skill"]
            + experience * self.WEIGHTS["experience"]
            + education * self.WEIGHTS["education"]
        )

        return MatchResult(
            total_score=round_half_up(total),
            semantic_score=round_half_up(semantic),
            skill_score=round_half_up(skill),
            experience_score=round_half_up(experience),
            education_score=round_half_up(education),
            reasons=reasons,
        )

    def semantic_score(self, job: Job, candidate_id: int) -> float:
        """Candidate's cosine similarity to the job profile, scaled to 0-100"""
        try:
            embedding = self.ai_engine.generate_embedding(build_job_text(job))
            hits = self.vector_store.search(embedding, settings.MATCH_SEMANTIC_TOP_K)
        except Exception as e:
            logger.warning("semantic_score_failed", job_id=job.id, candidate_id=candidate_id, error=str(e))
            return settings.SEMANTIC_ERROR_BASELINE

        for hit in hits:
            if hit.candidate_id == candidate_id:
                return min(100.0, max(0.0, hit.score * 100))

        logger.debug("candidate_outside_semantic_top_k", job_id=job.id, candidate_id=candidate_id)
        return settings.SEMANTIC_ABSENT_BASELINE

    def skill_score(self, required_skills, candidate_skills, reasons: List[str]) -> float:
        required = {normalize_skill(s) for s in (required_skills or []) if normalize_skill(s)}
        if not required:
            reasons.append("No skill requirements, skill match is full")
            return 100.0

        possessed = {normalize_skill(s) for s in (candidate_skills or []) if normalize_skill(s)}
        if not possessed:
            reasons.append("Candidate has no skill tags, skill match is zero")
            return 0.0

        matched = sorted(required & possessed)
        missing = sorted(required - possessed)
        if matched:
            reasons.append(f"Matched skills {len(matched)}/{len(required)}: {', '.join(matched)}")
        if missing:
            reasons.append(f"Missing skills: {', '.join(missing)}")
        return len(matched) / len(required) * 100

    def experience_score(
        self,
        minimum: Optional[int],
        maximum: Optional[int],
        years: Optional[int],
        reasons: List[str],
    ) -> float:
        if minimum is None and maximum is None:
            reasons.append("No experience requirement, experience match is full")
            return 100.0
        if years is None:
            reasons.append("Candidate work experience is unknown")
            return 50.0

        label = f"{minimum if minimum is not None else 0}-{maximum if maximum is not None else 'any'}"
        if minimum is not None and years < minimum:
            gap = minimum - years
            reasons.append(f"{years} years of experience, {gap} below the required minimum of {minimum}")
        elif maximum is not None and years > maximum:
            gap = years - maximum
            reasons.append(f"{years} years of experience, {gap} above the required maximum of {maximum}")
        else:
            reasons.append(f"{years} years of experience, within the required {label} years")
            return 100.0
        return max(self.EXPERIENCE_FLOOR, 100.0 - gap * self.EXPERIENCE_PENALTY_PER_YEAR)

    def education_score(self, required: Optional[str], actual: Optional[str], reasons: List[str]) -> float:
        required_level = EducationLevel.from_text(required)
        if required_level is None or required_level == EducationLevel.NONE:
            reasons.append("No education requirement, education match is full")
            return 100.0

        actual_level = EducationLevel.from_text(actual)
        if actual_level is None:
            reasons.append("Candidate education is unknown")
            return 50.0

        if actual_level.rank >= required_level.rank:
            reasons.append(f"Education [{actual}] meets the requirement [{required}]")
            return 100.0

        gap = required_level.rank - actual_level.rank
        reasons.append(f"Education [{actual}] is {gap} level(s) below the requirement [{required}]")
        return max(0.0, 100.0 - gap * self.EDUCATION_PENALTY_PER_LEVEL)

    def _semantic_reason(self, score: float) -> str:
        if score >= 80:
            strength = "strong match"
        elif score >= 60:
            strength = "good match"
        elif score >= 40:
            strength = "partial match"
        else:
            strength = "weak match"
        return f"Semantic similarity {score:.0f}% ({strength})"


# Global instance
scoring_engine = ScoringEngine()
