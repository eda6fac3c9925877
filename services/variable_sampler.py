"""Free-variable discovery and random variable assignment for numeric checks"""
import random
from typing import Iterable, Optional, Set

from models.grading_models import VariableBinding
from services.errors import ParseError
from services.expression_service import expression_service


# Names never treated as free variables (compared case-insensitively)
CONSTANT_NAMES = {"pi", "e", "true", "false"}

SAMPLE_MIN = -10
SAMPLE_MAX = 10


class VariableSampler:
    """Discover variables in answers and draw bounded integer bindings"""

    def __init__(self, service=None, seed: Optional[int] = None, rng: Optional[random.Random] = None):
        self.service = service or expression_service
        if rng is not None:
            self.rng = rng
        elif seed is not None:
            self.rng = random.Random(seed)
        else:
            self.rng = random.Random()

    def extract_variables(self, expr_text: str) -> Set[str]:
        """
        Collect free variable names from an expression

        Unparsable input gives an empty set, so the caller falls back to
        literal numeric evaluation.
        """
        try:
            expr = self.service.parse(expr_text)
        except ParseError:
            return set()

        return {
            name for name in self.service.free_variables(expr)
            if name.lower() not in CONSTANT_NAMES
        }

    def sample(self, variables: Iterable[str], rng: Optional[random.Random] = None) -> VariableBinding:
        """Draw each variable uniformly from the integers in [-10, 10]"""
        rng = rng or self.rng
        # Sorted so a seeded RNG gives the same binding regardless of set order
        return {name: rng.randint(SAMPLE_MIN, SAMPLE_MAX) for name in sorted(variables)}


# Global instance
variable_sampler = VariableSampler()


def extract_variables(expr_text: str) -> Set[str]:
    return variable_sampler.extract_variables(expr_text)


def sample(variables: Iterable[str], rng: Optional[random.Random] = None) -> VariableBinding:
    return variable_sampler.sample(variables, rng=rng)
