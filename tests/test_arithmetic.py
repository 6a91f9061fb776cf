from __future__ import annotations

import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from smallservice.arithmetic import add, calculate, divide, format_result, multiply, subtract  # noqa: E402


def test_basic_operations() -> None:
    assert add(5, 3) == 8
    assert subtract(5, 3) == 2
    assert multiply(4.5, 2) == 9
    assert divide(10, 4) == 2.5


def test_divide_by_zero() -> None:
    with pytest.raises(ZeroDivisionError, match="division by zero"):
        divide(1, 0)


def test_calculate_dispatches_by_name() -> None:
    assert calculate("multiply", 3, 3) == 9
    with pytest.raises(ValueError):
        calculate("modulo", 3, 3)


@pytest.mark.parametrize(
    ("operation", "expected"),
    [
        ("add", "10.00 + 3.00 = 3.33"),
        ("subtract", "10.00 - 3.00 = 3.33"),
        ("multiply", "10.00 × 3.00 = 3.33"),
        ("divide", "10.00 ÷ 3.00 = 3.33"),
        ("power", "10.00 ? 3.00 = 3.33"),
    ],
)
def test_format_result_symbols(operation: str, expected: str) -> None:
    assert format_result(operation, 10, 3, 10 / 3) == expected
