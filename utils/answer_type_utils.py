"""Utility functions for cleaning student math input before parsing"""
import re


def clean_math_input(text: str) -> str:
    """
    Strip LaTeX delimiters and text wrappers from a math answer

    Args:
        text: Raw answer as typed by the student (may contain $...$)

    Returns:
        Plain expression text with normalized spacing
    """
    if not text:
        return ""

    # Remove $ delimiters
    cleaned = text.replace('$$', '').replace('$', '')

    # Unwrap commands that don't affect the math
    cleaned = re.sub(r'\\text\{([^}]*)\}', r'\1', cleaned)
    cleaned = re.sub(r'\\mathrm\{([^}]*)\}', r'\1', cleaned)

    # Common LaTeX operators to plain syntax
    cleaned = cleaned.replace('\\cdot', '*').replace('\\times', '*').replace('\\div', '/')
    cleaned = cleaned.replace('\\left', '').replace('\\right', '')

    # Normalize spacing
    cleaned = ' '.join(cleaned.split())

    return cleaned.strip()


def check_balanced_brackets(text: str) -> tuple:
    """
    Check bracket balance of an expression

    Returns: (is_valid: bool, error_message: str)
    """
    if not text:
        return (True, "")

    pairs = {')': '(', ']': '[', '}': '{'}
    stack = []
    for char in text:
        if char in '([{':
            stack.append(char)
        elif char in pairs:
            if not stack or stack.pop() != pairs[char]:
                return (False, f"Unbalanced bracket '{char}'")

    if stack:
        return (False, f"Unclosed bracket '{stack[-1]}'")

    return (True, "")
