"""Shared fixtures for the grading engine tests"""
import pytest

from models.grading_models import Confidence, EquivalenceVerdict
from services.errors import ValidatorError
from stubs import CountingExpressionService, StubValidator


@pytest.fixture
def counting_service():
    return CountingExpressionService()


@pytest.fixture
def agreeing_validator():
    return StubValidator(verdict=EquivalenceVerdict(
        is_equivalent=True, confidence=Confidence.HIGH, reason="Same value written differently"
    ))


@pytest.fixture
def rejecting_validator():
    return StubValidator(verdict=EquivalenceVerdict(
        is_equivalent=False, confidence=Confidence.LOW, reason="Different values"
    ))


@pytest.fixture
def failing_validator():
    return StubValidator(error=ValidatorError("Malformed validator response"))
