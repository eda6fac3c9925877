"""Test doubles for the expression service, checker and semantic validator"""
import asyncio
import threading

from services.expression_service import SympyExpressionService


class CountingExpressionService(SympyExpressionService):
    """Real SymPy service that records how often each operation is used"""

    def __init__(self):
        self.calls = {"parse": 0, "evaluate": 0, "simplify": 0}

    def parse(self, text):
        self.calls["parse"] += 1
        return super().parse(text)

    def evaluate(self, expr, bindings=None):
        self.calls["evaluate"] += 1
        return super().evaluate(expr, bindings)

    def simplify(self, expr):
        self.calls["simplify"] += 1
        return super().simplify(expr)


class StubValidator:
    """Semantic validator double: returns a fixed verdict, raises, or stalls"""

    def __init__(self, verdict=None, error=None, delay=0.0):
        self.verdict = verdict
        self.error = error
        self.delay = delay
        self.calls = []

    async def validate(self, student, expected):
        self.calls.append((student, expected))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.verdict


class FixedChecker:
    """Equivalence checker double returning a preset verdict"""

    def __init__(self, verdict):
        self.verdict = verdict

    def check(self, student, expected, rng=None):
        return self.verdict


class ThreadRecordingChecker(FixedChecker):
    """Checker double that remembers which thread ran the check"""

    def __init__(self, verdict):
        super().__init__(verdict)
        self.thread_id = None

    def check(self, student, expected, rng=None):
        self.thread_id = threading.get_ident()
        return self.verdict
