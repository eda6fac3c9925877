"""
Grading Service
Turns an equivalence verdict plus attempt/hint counts into a score and mastery tier
"""

import logging
import re
from decimal import Decimal, ROUND_HALF_UP
from typing import Callable, Optional

from models.grading_models import Confidence, EquivalenceVerdict, GradingResult, Mastery
from services.answer_validation import validate
from services.math_equivalence import check
from services.semantic_validator import SemanticValidator
from utils.config import SEMANTIC_VALIDATION_TIMEOUT

logger = logging.getLogger(__name__)

VerdictFn = Callable[[str, str], EquivalenceVerdict]

HINT_PENALTY = 0.1  # per hint
ATTEMPTS_PENALTY = 0.1  # flat, once attempts exceed the threshold
ATTEMPTS_THRESHOLD = 3

HIGH_MASTERY_CUTOFF = 0.7
MEDIUM_MASTERY_CUTOFF = 0.4

NO_EXPECTED_ANSWER = "No expected answer provided for grading"
NO_STUDENT_ANSWER = "No student answer provided"


def base_score(verdict: EquivalenceVerdict) -> tuple:
    """
    Score and mastery from the verdict alone, before penalties

    Returns: (score, mastery, fallback_reason)
    """
    if verdict.is_equivalent:
        if verdict.confidence == Confidence.HIGH:
            return (1.0, Mastery.HIGH, "Exact match or equivalent")
        # Medium (or low) confidence equivalent
        return (0.7, Mastery.MEDIUM, "Equivalent with medium confidence")

    if verdict.confidence == Confidence.MEDIUM:
        # Partial match; semantic validator rejections arrive here
        return (0.4, Mastery.LOW, "Partial match")

    return (0.0, Mastery.LOW, "Incorrect answer")


def mastery_for_score(score: float) -> Mastery:
    if score >= HIGH_MASTERY_CUTOFF:
        return Mastery.HIGH
    elif score >= MEDIUM_MASTERY_CUTOFF:
        return Mastery.MEDIUM
    return Mastery.LOW


def round_score(score: float) -> float:
    """Round half-up to 2 decimal places"""
    return float(Decimal(str(score)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def _missing_input(student: Optional[str], expected: Optional[str]) -> Optional[GradingResult]:
    if not expected or not expected.strip():
        return GradingResult(score=0.0, mastery=Mastery.LOW, reason=NO_EXPECTED_ANSWER)
    if not student or not student.strip():
        return GradingResult(score=0.0, mastery=Mastery.LOW, reason=NO_STUDENT_ANSWER)
    return None


def score_verdict(verdict: EquivalenceVerdict, attempts: int, hints_used: int) -> GradingResult:
    """Apply penalties, rounding and final mastery to a verdict"""
    # Negative counts are treated as zero
    attempts = max(0, attempts)
    hints_used = max(0, hints_used)

    score, _, fallback_reason = base_score(verdict)
    reason = (verdict.reason or fallback_reason).rstrip('.')

    hint_penalty = HINT_PENALTY * hints_used
    score = max(0.0, score - hint_penalty)

    if attempts > ATTEMPTS_THRESHOLD:
        score = max(0.0, score - ATTEMPTS_PENALTY)

    score = round_score(score)

    # Mastery follows the effort-adjusted score, not the raw verdict
    mastery = mastery_for_score(score)

    penalty_note = ""
    if hints_used > 0:
        penalty_note += f" Penalty: -{hint_penalty:.1f} for {hints_used} hint(s)."
    if attempts > ATTEMPTS_THRESHOLD:
        penalty_note += f" Penalty: -{ATTEMPTS_PENALTY:.1f} for {attempts} attempts."

    return GradingResult(score=score, mastery=mastery, reason=f"{reason}.{penalty_note}".strip())


def grade(
    student: Optional[str],
    expected: Optional[str],
    attempts: int,
    hints_used: int,
    verdict_fn: Optional[VerdictFn] = None
) -> GradingResult:
    """
    Grade a student answer

    Args:
        student: Student's answer (None or blank gives a zero score)
        expected: Expected answer (None or blank gives a zero score)
        attempts: Number of attempts in the session
        hints_used: Number of hints used
        verdict_fn: Equivalence function (defaults to the shared checker)

    Returns:
        GradingResult with score in [0, 1] rounded to 2 decimals
    """
    missing = _missing_input(student, expected)
    if missing is not None:
        return missing

    verdict_fn = verdict_fn or check
    verdict = verdict_fn(student.strip(), expected.strip())
    result = score_verdict(verdict, attempts, hints_used)

    logger.debug(
        f"Graded answer: equivalent={verdict.is_equivalent} confidence={verdict.confidence.value} "
        f"score={result.score} mastery={result.mastery.value}"
    )
    return result


async def grade_with_validation(
    student: Optional[str],
    expected: Optional[str],
    attempts: int,
    hints_used: int,
    semantic_validator: SemanticValidator,
    timeout: Optional[float] = SEMANTIC_VALIDATION_TIMEOUT,
    rng=None
) -> GradingResult:
    """Grade using the escalation policy (semantic validator for inconclusive checks)"""
    missing = _missing_input(student, expected)
    if missing is not None:
        return missing

    verdict = await validate(student.strip(), expected.strip(), semantic_validator, timeout=timeout, rng=rng)
    return grade(student, expected, attempts, hints_used, verdict_fn=lambda s, e: verdict)


def extract_expected_answer(problem_text: Optional[str]) -> Optional[str]:
    """
    Extract the expected answer from structured problem text

    Looks for "answer: 5", "answer = 5", "solution: x=4", and
    "solve: x+5=10" (takes the right-hand side).
    """
    if not problem_text:
        return None

    text = problem_text.strip().lower()

    patterns = [
        r'answer\s*[=:]\s*([^\n]+)',
        r'solution\s*[=:]\s*([^\n]+)',
        r'solve\s*[=:]\s*[^=\n]+=\s*([^\n]+)',
    ]
    for pattern in patterns:
        match = re.search(pattern, text)
        if match and match.group(1).strip():
            return match.group(1).strip()

    return None


def compute_skill_level(is_correct: bool, attempts: int, hints_used: int) -> int:
    """
    Skill progress level (0-4) for a completed problem

    4 = first try without hints, 0 = not solved.
    """
    if not is_correct:
        return 0
    if attempts <= 1 and hints_used == 0:
        return 4
    if attempts <= 2 and hints_used <= 1:
        return 3
    if attempts <= ATTEMPTS_THRESHOLD:
        return 2
    return 1
