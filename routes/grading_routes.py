"""Routes for answer equivalence checks and practice grading"""
import asyncio
import logging
import random
from typing import Optional

from fastapi import APIRouter, HTTPException

from models.grading_models import (
    EquivalenceCheckRequest, EquivalenceVerdict,
    GradeRequest, GradeResponse, SessionTelemetry
)
from services.answer_validation import validate
from services.grading_service import grade, extract_expected_answer, compute_skill_level
from services.math_equivalence import equivalence_checker
from services.semantic_validator import get_semantic_validator

router = APIRouter(tags=["grading"])


def _seeded_rng(seed: Optional[int]) -> Optional[random.Random]:
    return random.Random(seed) if seed is not None else None


# ==================== EQUIVALENCE ENDPOINTS ====================

@router.post("/grading/check", response_model=EquivalenceVerdict)
def check_equivalence(data: EquivalenceCheckRequest):
    """Local equivalence check (no LLM call), for live "is this correct?" feedback"""
    try:
        rng = _seeded_rng(data.seed)
        if data.acceptable_forms:
            return equivalence_checker.check_alternative_forms(
                data.student_answer,
                [data.expected_answer] + list(data.acceptable_forms),
                rng=rng
            )
        return equivalence_checker.check(data.student_answer, data.expected_answer, rng=rng)
    except Exception as e:
        logging.error(f"Equivalence check error: {str(e)}")
        raise HTTPException(status_code=500, detail=f"Failed to check equivalence: {str(e)}")


@router.post("/grading/validate", response_model=EquivalenceVerdict)
async def validate_equivalence(data: EquivalenceCheckRequest):
    """Equivalence check with semantic validation when the local check is inconclusive"""
    try:
        return await validate(
            data.student_answer,
            data.expected_answer,
            get_semantic_validator(),
            rng=_seeded_rng(data.seed)
        )
    except Exception as e:
        logging.error(f"Answer validation error: {str(e)}")
        raise HTTPException(status_code=500, detail=f"Failed to validate answer: {str(e)}")


# ==================== GRADING ENDPOINTS ====================

@router.post("/grading/grade", response_model=GradeResponse)
async def grade_answer(data: GradeRequest):
    """Score a practice submission and derive mastery and skill level"""
    expected = data.expected_answer or extract_expected_answer(data.problem_text)
    telemetry = SessionTelemetry(attempts=data.attempts, hints_used=data.hints_used)
    rng = _seeded_rng(data.seed)

    try:
        escalated = None
        has_inputs = bool(data.student_answer and data.student_answer.strip() and expected and expected.strip())
        if data.use_semantic_validation and has_inputs:
            escalated = await validate(data.student_answer.strip(), expected.strip(), get_semantic_validator(), rng=rng)

        verdicts = []

        def verdict_fn(student: str, expected_answer: str) -> EquivalenceVerdict:
            verdict = escalated or equivalence_checker.check(student, expected_answer, rng=rng)
            verdicts.append(verdict)
            return verdict

        result = await asyncio.to_thread(
            grade, data.student_answer, expected, telemetry.attempts, telemetry.hints_used, verdict_fn=verdict_fn
        )
    except Exception as e:
        logging.error(f"Grading error: {str(e)}")
        raise HTTPException(status_code=500, detail=f"Failed to grade answer: {str(e)}")

    is_correct = bool(verdicts) and verdicts[0].is_equivalent
    return GradeResponse(
        score=result.score,
        mastery=result.mastery,
        reason=result.reason,
        skill_level=compute_skill_level(is_correct, telemetry.attempts, telemetry.hints_used),
        expected_answer=expected
    )
