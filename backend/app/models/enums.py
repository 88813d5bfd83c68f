"""
Closed value sets stored as plain strings in the database

Each enum exposes ``parse`` for the persistence/API boundary: unknown values
are rejected there instead of leaking into the domain.
"""
from enum import Enum
from typing import Optional

from app.core.exceptions import ValidationError


class StrEnum(str, Enum):
    """String enum with a strict parse/format pair"""

    @classmethod
    def parse(cls, raw: Optional[str]):
        if isinstance(raw, cls):
            return raw
        if raw is None:
            raise ValidationError(f"{cls.__name__} is required")
        try:
            return cls(str(raw).strip().upper())
        except ValueError:
            raise ValidationError(
                f"Unknown {cls.__name__}: {raw}",
                details={"allowed": [member.value for member in cls]},
            )

    def __str__(self) -> str:
        return self.value


class ResumeStatus(StrEnum):
    """Lifecycle of an uploaded resume file"""
    QUEUED = "QUEUED"
    PARSING = "PARSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class TaskStatus(StrEnum):
    """Advisory status of one ingestion task (kept in Redis)"""
    QUEUED = "QUEUED"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class Gender(StrEnum):
    MALE = "MALE"
    FEMALE = "FEMALE"
    UNKNOWN = "UNKNOWN"


class ApplicationStatus(StrEnum):
    PENDING = "PENDING"
    SCREENING = "SCREENING"
    INTERVIEW = "INTERVIEW"
    OFFER = "OFFER"
    REJECTED = "REJECTED"
    HIRED = "HIRED"
    WITHDRAWN = "WITHDRAWN"


class JobStatus(StrEnum):
    DRAFT = "DRAFT"
    PUBLISHED = "PUBLISHED"
    CLOSED = "CLOSED"


class EducationLevel(StrEnum):
    """Ordinal degree levels used by the education sub-score"""
    NONE = "NONE"
    ASSOCIATE = "ASSOCIATE"
    BACHELOR = "BACHELOR"
    MASTER = "MASTER"
    DOCTORATE = "DOCTORATE"

    @property
    def rank(self) -> int:
        return _EDUCATION_RANK[self]

    @classmethod
    def from_text(cls, raw: Optional[str]) -> Optional["EducationLevel"]:
        """
        Map free-text degree names (as extracted from resumes or typed into
        a job form) onto the ordinal scale. Returns None for blank input and
        NONE for text that names no recognised degree.
        """
        if raw is None or not str(raw).strip():
            return None
        text = str(raw).strip().lower()
        if text.upper() in cls.__members__:
            return cls[text.upper()]
        for level, aliases in _EDUCATION_ALIASES:
            if any(alias in text for alias in aliases):
                return level
        return cls.NONE


_EDUCATION_RANK = {
    EducationLevel.NONE: 0,
    EducationLevel.ASSOCIATE: 1,
    EducationLevel.BACHELOR: 2,
    EducationLevel.MASTER: 3,
    EducationLevel.DOCTORATE: 4,
}

# Checked highest level first so "master of business" never hits "bachelor"
_EDUCATION_ALIASES = (
    (EducationLevel.DOCTORATE, ("doctor", "phd", "ph.d", "博士")),
    (EducationLevel.MASTER, ("master", "msc", "m.sc", "mba", "m.s.", "m.eng", "硕士", "研究生")),
    (EducationLevel.BACHELOR, ("bachelor", "bsc", "b.sc", "b.s.", "b.a.", "b.eng", "undergraduate", "本科", "学士")),
    (EducationLevel.ASSOCIATE, ("associate", "diploma", "college", "大专", "专科")),
    (EducationLevel.NONE, ("none", "any", "unlimited", "no requirement", "不限", "高中", "high school")),
)
