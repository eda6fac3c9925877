"""
Grading Models for the answer checking engine
Verdicts, grading results, session telemetry and API payloads
"""

from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

# Variable name -> sampled integer
VariableBinding = Dict[str, int]


class Confidence(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class Mastery(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


# ==================== VERDICT / RESULT MODELS ====================

class EquivalenceVerdict(BaseModel):
    """
    Outcome of comparing a student answer with an expected answer.

    A low-confidence negative verdict means "inconclusive", not "proven unequal".
    """
    model_config = ConfigDict(frozen=True)

    is_equivalent: bool
    confidence: Confidence
    reason: str = ""


class GradingResult(BaseModel):
    """Score (0-1, two decimals) and mastery tier for one submission"""
    model_config = ConfigDict(frozen=True)

    score: float = Field(ge=0.0, le=1.0)
    mastery: Mastery
    reason: str = ""


class SessionTelemetry(BaseModel):
    """Practice session counters supplied by the caller"""
    model_config = ConfigDict(frozen=True)

    attempts: int = Field(default=0, ge=0)
    hints_used: int = Field(default=0, ge=0)


# ==================== API PAYLOADS ====================

class EquivalenceCheckRequest(BaseModel):
    student_answer: str
    expected_answer: str
    acceptable_forms: Optional[List[str]] = []  # Extra accepted answers
    seed: Optional[int] = None  # Fixed RNG seed for reproducible checks


class GradeRequest(BaseModel):
    student_answer: Optional[str] = None
    expected_answer: Optional[str] = None
    problem_text: Optional[str] = None  # Used to recover expected_answer when missing
    attempts: int = Field(default=0, ge=0)
    hints_used: int = Field(default=0, ge=0)
    use_semantic_validation: bool = False
    seed: Optional[int] = None


class GradeResponse(BaseModel):
    score: float
    mastery: Mastery
    reason: str
    skill_level: int  # 0-4 progress level
    expected_answer: Optional[str] = None
