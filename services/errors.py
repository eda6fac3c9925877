"""Exceptions raised by the expression and validation collaborators"""


class GradingEngineError(Exception):
    """Base class for answer checking errors"""


class ParseError(GradingEngineError):
    """Expression text could not be parsed"""


class EvalError(GradingEngineError):
    """Expression could not be evaluated to a finite real number"""


class ValidatorError(GradingEngineError):
    """Semantic validator call failed (network, timeout, malformed response)"""
