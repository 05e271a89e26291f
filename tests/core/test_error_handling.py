"""
Tests for refusals and the safe operation decorator.
"""

import pytest
from herosim.core.error_handling import (
    ERROR_HANDLER,
    ErrorSeverity,
    Refusal,
    ensure_int_in_range,
    ensure_non_negative_int,
    log_warning,
    require_non_empty_string,
    safe_operation,
)


@pytest.fixture(autouse=True)
def clear_history():
    ERROR_HANDLER.clear()
    yield
    ERROR_HANDLER.clear()


def test_refusal_is_falsy():
    """Test that a refusal reads as a failed result."""
    refusal = Refusal(reason="Viper has no more charges.", context={"power": "p1"})
    assert not refusal
    assert str(refusal) == "Viper has no more charges."


def test_safe_operation_returns_default_on_error():
    """Test that an operation that raises returns its default and is recorded."""

    @safe_operation(default_value=0, error_message="Division failed")
    def divide(a, b):
        return a / b

    assert divide(6, 3) == 2
    assert divide(1, 0) == 0
    assert len(ERROR_HANDLER.error_history) == 1
    error = ERROR_HANDLER.error_history[0]
    assert error.severity == ErrorSeverity.HIGH
    assert error.message.startswith("Division failed")


def test_safe_operation_callable_default_gets_arguments():
    """Test that a callable default is built from the original arguments."""

    @safe_operation(default_value=lambda name: f"no {name}")
    def explode(name):
        raise RuntimeError(name)

    assert explode("dice") == "no dice"


def test_log_warning_records_context():
    """Test that warnings are kept in the error history with their context."""
    log_warning("Unknown modifier", {"modifier": "FOO"})
    error = ERROR_HANDLER.error_history[-1]
    assert error.severity == ErrorSeverity.MEDIUM
    assert error.context == {"modifier": "FOO"}


def test_safe_execute_returns_default():
    """Test running an operation through the handler directly."""
    assert ERROR_HANDLER.safe_execute(lambda: 1 / 0, -1, "Bad ratio", context={"stage": "dc"}) == -1
    assert ERROR_HANDLER.error_history[-1].context == {"stage": "dc"}
    assert ERROR_HANDLER.safe_execute(lambda: 3, -1, "Bad ratio") == 3


def test_require_non_empty_string():
    """Test that empty identifiers are rejected."""
    assert require_non_empty_string("viper", "character id") == "viper"
    with pytest.raises(ValueError):
        require_non_empty_string("", "character id")


def test_ensure_non_negative_int():
    """Test that negative or fractional counts are corrected."""
    assert ensure_non_negative_int(4, "END") == 4
    assert ensure_non_negative_int(-2, "END") == 0
    assert ensure_non_negative_int(2.7, "END") == 2
    assert ensure_non_negative_int("lots", "END", default=1) == 1


def test_ensure_int_in_range():
    """Test clamping to a range."""
    assert ensure_int_in_range(3, "shots", 1, 5) == 3
    assert ensure_int_in_range(0, "shots", 1, 5) == 1
    assert ensure_int_in_range(9, "shots", 1, 5) == 5
    assert ensure_int_in_range(None, "shots", 1) == 1
