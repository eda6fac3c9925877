"""
Expression Service
Parses, evaluates and simplifies student math answers using SymPy
"""

import cmath
import io
import logging
import math
import tokenize
from typing import Dict, Optional, Set

import sympy
from sympy import Symbol
from sympy.parsing.sympy_parser import (
    parse_expr,
    standard_transformations,
    implicit_multiplication,
    implicit_application,
    convert_xor,
)

from services.errors import ParseError, EvalError
from utils.answer_type_utils import clean_math_input, check_balanced_brackets

logger = logging.getLogger(__name__)

MAX_EXPRESSION_LENGTH = 500

# Limits on exact arithmetic: "9^9^9^9" is short but has no computable value
MAX_EXPONENT = 10000
MAX_RESULT_DIGITS = 20000

# Tolerated imaginary residue from floating point evaluation
IMAGINARY_TOLERANCE = 1e-12

# "2x" -> 2*x, "sin x" -> sin(x), "x^2" -> x**2
TRANSFORMATIONS = standard_transformations + (
    implicit_multiplication,
    implicit_application,
    convert_xor,
)

# Names students use as plain variables that SymPy would otherwise
# resolve to its own objects (N is numeric eval, S the singleton registry, ...)
PLAIN_SYMBOL_NAMES = ("I", "N", "O", "Q", "S", "beta", "gamma", "zeta")


def _local_names() -> dict:
    names = {name: Symbol(name) for name in PLAIN_SYMBOL_NAMES}
    names["e"] = sympy.E
    names["pi"] = sympy.pi
    return names


class SympyExpressionService:
    """Expression collaborator for the equivalence engine"""

    def parse(self, text: str) -> sympy.Basic:
        """
        Parse expression text into a SymPy expression

        Raises:
            ParseError: empty, oversized, unbalanced or malformed input,
                or numbers too large to compute exactly
        """
        cleaned = clean_math_input(text or "")
        if not cleaned:
            raise ParseError("Empty expression")

        if len(cleaned) > MAX_EXPRESSION_LENGTH:
            raise ParseError(f"Expression longer than {MAX_EXPRESSION_LENGTH} characters")

        # parse_expr evaluates Python code; attribute access is never valid math
        if _has_attribute_access(cleaned):
            raise ParseError("Attribute access is not allowed in expressions")

        is_valid, message = check_balanced_brackets(cleaned)
        if not is_valid:
            raise ParseError(message)

        try:
            # Size the unevaluated tree before SymPy computes any powers
            with sympy.evaluate(False):
                unevaluated = parse_expr(cleaned, local_dict=_local_names(), transformations=TRANSFORMATIONS)
            if isinstance(unevaluated, sympy.Basic):
                _check_number_size(unevaluated, ParseError)
            expr = parse_expr(cleaned, local_dict=_local_names(), transformations=TRANSFORMATIONS)
        except ParseError:
            logger.debug(f"Rejected oversized expression '{cleaned}'")
            raise
        except Exception as e:
            logger.debug(f"parse_expr rejected '{cleaned}': {type(e).__name__}")
            raise ParseError(f"Could not parse '{cleaned}': {str(e)}") from e

        if not isinstance(expr, sympy.Basic):
            raise ParseError(f"'{cleaned}' is not a mathematical expression")

        return expr

    def evaluate(self, expr: sympy.Basic, bindings: Optional[Dict[str, int]] = None) -> float:
        """
        Evaluate an expression to a finite real number

        Raises:
            EvalError: undefined variable, division by zero, domain error
                (e.g. log of a negative number), a result too large to
                compute or a non-numeric result
        """
        bindings = bindings or {}
        replacements = {Symbol(name): sympy.Integer(value) for name, value in bindings.items()}
        try:
            # 9^9^x only becomes huge once x is bound
            with sympy.evaluate(False):
                unevaluated = expr.xreplace(replacements)
            _check_number_size(unevaluated, EvalError)
            substituted = expr.xreplace(replacements)
        except (TypeError, ValueError, ZeroDivisionError) as e:
            raise EvalError(f"Substitution failed: {str(e)}") from e

        unbound = getattr(substituted, 'free_symbols', set())
        if unbound:
            names = ", ".join(sorted(s.name for s in unbound))
            raise EvalError(f"Undefined variable(s): {names}")

        try:
            value = complex(substituted.evalf())
        except (TypeError, ValueError, AttributeError, ZeroDivisionError, OverflowError) as e:
            raise EvalError(f"Non-numeric result: {str(e)}") from e

        if not cmath.isfinite(value):
            raise EvalError("Result is not finite")

        if abs(value.imag) > IMAGINARY_TOLERANCE:
            raise EvalError("Result is not a real number")

        return value.real

    def simplify(self, expr: sympy.Basic) -> sympy.Basic:
        """Simplify to a canonical form; str() of the result is comparable"""
        return sympy.simplify(expr)

    def free_variables(self, expr: sympy.Basic) -> Set[str]:
        """Names of all symbols appearing in the expression tree"""
        return {node.name for node in sympy.preorder_traversal(expr) if isinstance(node, Symbol)}


def _has_attribute_access(text: str) -> bool:
    """True for dunder names or a '.' operator token; decimals like 4. and .5 are numbers"""
    if '__' in text:
        return True
    try:
        for token in tokenize.generate_tokens(io.StringIO(text).readline):
            if token.type == tokenize.OP and '.' in token.string:
                return True
    except (tokenize.TokenError, SyntaxError):
        # parse_expr uses the same tokenizer and rejects the input itself
        return False
    return False


def _magnitude(expr: sympy.Basic) -> float:
    """Absolute numeric value of a constant subexpression; inf when it has none"""
    try:
        return abs(complex(expr.evalf()))
    except (TypeError, ValueError, ZeroDivisionError, OverflowError):
        return math.inf


def _check_number_size(expr: sympy.Basic, error_cls, scale: float = 1.0):
    """
    Raise error_cls when exact evaluation would build an unmanageably large number

    scale is the product of the constant exponents applied above this node,
    so (10^100)^100 is sized as 10^10000.
    """
    if isinstance(expr, sympy.Pow):
        base, exponent = expr.args
        _check_number_size(exponent, error_cls)
        if not exponent.free_symbols:
            scale *= max(1.0, _magnitude(exponent))
            if scale > MAX_EXPONENT:
                raise error_cls("Exponent too large to evaluate")
        _check_number_size(base, error_cls, scale)

    elif isinstance(expr, sympy.factorial):
        argument = expr.args[0]
        _check_number_size(argument, error_cls)
        if not argument.free_symbols:
            n = _magnitude(argument)
            # log10(n!) < n * log10(n)
            if scale * n * math.log10(max(n, 2.0)) > MAX_RESULT_DIGITS:
                raise error_cls("Factorial too large to evaluate")

    elif isinstance(expr, sympy.Rational):
        if scale > 1:
            largest = max(abs(expr.p), abs(expr.q), 1)
            if scale * math.log10(largest) > MAX_RESULT_DIGITS:
                raise error_cls("Number too large to evaluate")

    else:
        for arg in expr.args:
            _check_number_size(arg, error_cls, scale)


# Global instance
expression_service = SympyExpressionService()
