"""Math equivalence checking between student and expected answers"""
import logging
import random
from typing import List, Optional

from models.grading_models import Confidence, EquivalenceVerdict
from services.errors import ParseError, EvalError
from services.expression_service import expression_service
from services.variable_sampler import VariableSampler
from utils.config import EQUIVALENCE_TRIALS

logger = logging.getLogger(__name__)

# Absolute tolerance for numeric comparisons
NUMERIC_TOLERANCE = 1e-10

# Share of passing trials needed for a medium-confidence match
SUPERMAJORITY = 0.8

CONFIDENCE_RANK = {Confidence.LOW: 0, Confidence.MEDIUM: 1, Confidence.HIGH: 2}


class MathEquivalenceChecker:
    """Check mathematical equivalence between student and expected answers"""

    def __init__(self, service=None, trials: int = EQUIVALENCE_TRIALS, rng: Optional[random.Random] = None):
        self.service = service or expression_service
        self.trials = trials
        self.sampler = VariableSampler(service=self.service, rng=rng)

    def check(self, student: str, expected: str, rng: Optional[random.Random] = None) -> EquivalenceVerdict:
        """
        Decide whether two answers are mathematically equivalent

        Steps, stopping at the first conclusive one:
        exact text match, canonical-form match, randomized numeric trials.

        Args:
            student: Student's answer
            expected: Expected answer (may contain free variables)
            rng: Random source for numeric trials (defaults to the checker's)

        Returns:
            EquivalenceVerdict
        """
        student = (student or "").strip()
        expected = (expected or "").strip()

        if student == expected:
            return EquivalenceVerdict(is_equivalent=True, confidence=Confidence.HIGH, reason="Exact match")

        if self._check_canonical_form(student, expected):
            return EquivalenceVerdict(
                is_equivalent=True,
                confidence=Confidence.HIGH,
                reason="Expressions simplify to the same form"
            )

        return self._check_numeric_equivalence(student, expected, rng or self.sampler.rng)

    def _check_canonical_form(self, student: str, expected: str) -> bool:
        """Compare simplified forms, then check whether the difference simplifies to zero"""
        try:
            student_simp = self.service.simplify(self.service.parse(student))
            expected_simp = self.service.simplify(self.service.parse(expected))

            if str(student_simp) == str(expected_simp):
                return True

            diff = self.service.simplify(self.service.parse(f"({student}) - ({expected})"))
            return abs(self.service.evaluate(diff, {})) < NUMERIC_TOLERANCE

        except (ParseError, EvalError) as e:
            logger.debug(f"Canonical form check inconclusive: {str(e)}")
            return False
        except Exception as e:
            # SymPy can fail in odd ways while simplifying; numeric trials still run
            logger.debug(f"Simplification failed: {str(e)}")
            return False

    def _evaluate_or_none(self, text: str, bindings: dict) -> Optional[float]:
        try:
            return self.service.evaluate(self.service.parse(text), bindings)
        except (ParseError, EvalError):
            return None

    def _check_numeric_equivalence(self, student: str, expected: str, rng: random.Random) -> EquivalenceVerdict:
        """Randomized substitution over the union of free variables"""
        variables = self.sampler.extract_variables(student) | self.sampler.extract_variables(expected)

        if not variables:
            student_val = self._evaluate_or_none(student, {})
            expected_val = self._evaluate_or_none(expected, {})

            if student_val is not None and expected_val is not None \
                    and abs(student_val - expected_val) < NUMERIC_TOLERANCE:
                return EquivalenceVerdict(is_equivalent=True, confidence=Confidence.HIGH, reason="Numeric values match")

            return EquivalenceVerdict(
                is_equivalent=False,
                confidence=Confidence.LOW,
                reason="Expressions do not appear equivalent"
            )

        passed = 0
        for _ in range(self.trials):
            bindings = self.sampler.sample(variables, rng=rng)
            student_val = self._evaluate_or_none(student, bindings)
            expected_val = self._evaluate_or_none(expected, bindings)

            if student_val is not None and expected_val is not None \
                    and abs(student_val - expected_val) < NUMERIC_TOLERANCE:
                passed += 1

        logger.debug(f"Numeric substitution: {passed}/{self.trials} trials passed")
        return self._verdict_from_trials(passed, self.trials)

    @staticmethod
    def _verdict_from_trials(passed: int, total: int) -> EquivalenceVerdict:
        if passed == total:
            return EquivalenceVerdict(
                is_equivalent=True,
                confidence=Confidence.HIGH,
                reason="All numeric substitution checks passed"
            )

        if passed >= total * SUPERMAJORITY:
            return EquivalenceVerdict(
                is_equivalent=True,
                confidence=Confidence.MEDIUM,
                reason="Most numeric substitution checks passed"
            )

        if passed > 0:
            return EquivalenceVerdict(
                is_equivalent=False,
                confidence=Confidence.LOW,
                reason="Some numeric checks failed, may need validation"
            )

        return EquivalenceVerdict(
            is_equivalent=False,
            confidence=Confidence.LOW,
            reason="Expressions do not appear equivalent"
        )

    def check_alternative_forms(self, student: str, acceptable_forms: List[str],
                                rng: Optional[random.Random] = None) -> EquivalenceVerdict:
        """
        Check a student answer against several acceptable answers

        Returns the strongest verdict: equivalent beats not equivalent,
        then higher confidence wins. Stops early on a high-confidence match.
        """
        best = None

        for form in acceptable_forms:
            verdict = self.check(student, form, rng=rng)
            if best is None or _verdict_rank(verdict) > _verdict_rank(best):
                best = verdict
            if verdict.is_equivalent and verdict.confidence == Confidence.HIGH:
                break

        if best is None:
            return EquivalenceVerdict(
                is_equivalent=False,
                confidence=Confidence.LOW,
                reason="No acceptable answers to compare against"
            )

        return best


def _verdict_rank(verdict: EquivalenceVerdict) -> tuple:
    return (verdict.is_equivalent, CONFIDENCE_RANK[verdict.confidence])


# Global instance
equivalence_checker = MathEquivalenceChecker()


def check(student: str, expected: str, rng: Optional[random.Random] = None) -> EquivalenceVerdict:
    """Module-level entry point using the shared checker"""
    return equivalence_checker.check(student, expected, rng=rng)
