"""Escalation policy: local equivalence checks first, semantic validator only when inconclusive"""
import asyncio
import logging
import random
from typing import Optional

from models.grading_models import Confidence, EquivalenceVerdict
from services.math_equivalence import MathEquivalenceChecker, equivalence_checker
from services.semantic_validator import SemanticValidator
from utils.config import SEMANTIC_VALIDATION_TIMEOUT

logger = logging.getLogger(__name__)

VALIDATION_FAILED = EquivalenceVerdict(
    is_equivalent=False,
    confidence=Confidence.LOW,
    reason="validation failed"
)


def needs_escalation(verdict: EquivalenceVerdict) -> bool:
    """Only inconclusive or negative local verdicts go to the semantic validator"""
    if verdict.confidence == Confidence.HIGH:
        return False
    if verdict.confidence == Confidence.MEDIUM and verdict.is_equivalent:
        return False
    return True


async def validate(
    student: str,
    expected: str,
    semantic_validator: SemanticValidator,
    timeout: Optional[float] = SEMANTIC_VALIDATION_TIMEOUT,
    checker: Optional[MathEquivalenceChecker] = None,
    rng: Optional[random.Random] = None
) -> EquivalenceVerdict:
    """
    Check equivalence, escalating to the semantic validator when local evidence is weak

    Args:
        student: Student's answer
        expected: Expected answer
        semantic_validator: External validator, called at most once
        timeout: Seconds to wait for the validator (None waits indefinitely)
        checker: Equivalence checker (defaults to the shared one)
        rng: Random source for numeric trials

    Returns:
        The local verdict, the validator's verdict with medium confidence,
        or the "validation failed" fallback. Never raises for validator failures.
    """
    checker = checker or equivalence_checker
    # SymPy work is CPU-bound; keep it off the event loop
    local_verdict = await asyncio.to_thread(checker.check, student, expected, rng=rng)

    if not needs_escalation(local_verdict):
        return local_verdict

    logger.info(f"Escalating to semantic validation: {local_verdict.reason}")

    try:
        external = await asyncio.wait_for(semantic_validator.validate(student, expected), timeout)
    except asyncio.TimeoutError:
        logger.warning(f"Semantic validation timed out after {timeout}s")
        return VALIDATION_FAILED
    except Exception as e:
        logger.warning(f"Semantic validation failed: {str(e)}")
        return VALIDATION_FAILED

    if not isinstance(external, EquivalenceVerdict):
        logger.warning(f"Semantic validator returned {type(external).__name__}, expected EquivalenceVerdict")
        return VALIDATION_FAILED

    # The validator's judgement is never treated as strong evidence
    return EquivalenceVerdict(
        is_equivalent=external.is_equivalent,
        confidence=Confidence.MEDIUM,
        reason=external.reason or "Semantic validation completed"
    )
