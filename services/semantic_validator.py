"""
Semantic Validator
LLM-based last-resort equivalence judgement for answers the numeric checks can't settle
"""

import json
import logging
from typing import Optional

import openai

from models.grading_models import Confidence, EquivalenceVerdict
from services.errors import ValidatorError
from utils.config import OPENAI_API_KEY, SEMANTIC_VALIDATOR_MODEL

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = "You are a math validation expert. Always respond with valid JSON only."


class SemanticValidator:
    """Interface for external equivalence validators"""

    async def validate(self, student: str, expected: str) -> EquivalenceVerdict:
        """
        Judge whether two answers are equivalent

        Raises:
            ValidatorError: the judgement could not be obtained
        """
        raise NotImplementedError


class OpenAISemanticValidator(SemanticValidator):
    """Ask an OpenAI chat model whether two answers are equivalent"""

    def __init__(self, api_key: Optional[str] = None, model: str = SEMANTIC_VALIDATOR_MODEL):
        self.api_key = api_key
        self.model = model

    def _build_prompt(self, student: str, expected: str) -> str:
        return f"""Determine if the student's answer is mathematically equivalent to the expected answer.

Student Answer: {student}
Expected Answer: {expected}

Respond with a JSON object in this exact format:
{{
  "isEquivalent": true or false,
  "reason": "brief explanation of why they are or are not equivalent"
}}

Be strict but reasonable. Allow equivalent forms (e.g., "x=4" and "4=x", "2x+5" and "5+2x")."""

    async def validate(self, student: str, expected: str) -> EquivalenceVerdict:
        if not self.api_key:
            raise ValidatorError("OPENAI_API_KEY not configured")

        try:
            client = openai.AsyncOpenAI(api_key=self.api_key)
            completion = await client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": self._build_prompt(student, expected)}
                ],
                response_format={"type": "json_object"},
                temperature=0.1,
                max_tokens=200
            )
        except openai.OpenAIError as e:
            raise ValidatorError(f"LLM request failed: {str(e)}") from e

        content = (completion.choices[0].message.content or "").strip() if completion.choices else ""
        return parse_validator_response(content)


def parse_validator_response(content: str) -> EquivalenceVerdict:
    """
    Turn the model's JSON reply into a verdict

    Raises:
        ValidatorError: reply is not a JSON object with a boolean isEquivalent
    """
    try:
        parsed = json.loads(content or "")
    except json.JSONDecodeError as e:
        raise ValidatorError(f"Malformed validator response: {str(e)}") from e

    if not isinstance(parsed, dict) or not isinstance(parsed.get("isEquivalent"), bool):
        raise ValidatorError("Validator response missing boolean 'isEquivalent'")

    reason = parsed.get("reason")
    return EquivalenceVerdict(
        is_equivalent=parsed["isEquivalent"],
        confidence=Confidence.MEDIUM,
        reason=reason if isinstance(reason, str) and reason else "LLM validation completed"
    )


# Global instance
semantic_validator = None


def get_semantic_validator() -> OpenAISemanticValidator:
    """Get or create the configured validator instance"""
    global semantic_validator
    if semantic_validator is None:
        semantic_validator = OpenAISemanticValidator(api_key=OPENAI_API_KEY)
    return semantic_validator
