"""Arithmetic helpers backing the ``calc`` command."""

from __future__ import annotations

from typing import Callable, Dict

_SYMBOLS: Dict[str, str] = {
    "add": "+",
    "subtract": "-",
    "multiply": "×",
    "divide": "÷",
}


def add(a: float, b: float) -> float:
    return a + b


def subtract(a: float, b: float) -> float:
    return a - b


def multiply(a: float, b: float) -> float:
    return a * b


def divide(a: float, b: float) -> float:
    if b == 0:
        raise ZeroDivisionError("division by zero")
    return a / b


OPERATIONS: Dict[str, Callable[[float, float], float]] = {
    "add": add,
    "subtract": subtract,
    "multiply": multiply,
    "divide": divide,
}


def calculate(operation: str, a: float, b: float) -> float:
    """Apply the named operation to ``a`` and ``b``."""

    try:
        func = OPERATIONS[operation]
    except KeyError as exc:
        raise ValueError(f"Unknown operation: {operation}") from exc
    return func(a, b)


def format_result(operation: str, a: float, b: float, result: float) -> str:
    """Render ``a <op> b = result`` with two decimals."""

    symbol = _SYMBOLS.get(operation, "?")
    return f"{a:.2f} {symbol} {b:.2f} = {result:.2f}"


__all__ = ["OPERATIONS", "add", "calculate", "divide", "format_result", "multiply", "subtract"]
