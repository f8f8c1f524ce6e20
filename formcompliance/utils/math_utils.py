# File: utils/math_utils.py
"""Math and calculation utilities for compliance reporting.

Pure Python math functions with no I/O.

Functions:
    - round_rate: Consistent rounding to configured precision
    - calculate_percentage: Share of a total as a percentage
"""

from __future__ import annotations

# ==============================================================================
# Constants (local copies to avoid circular imports)
# ==============================================================================

# Default float precision for rate rounding
DATA_FLOAT_PRECISION = 2


def round_rate(value: float, precision: int = DATA_FLOAT_PRECISION) -> float:
    """Round a rate to the configured precision.

    Examples:
        round_rate(66.6666) → 66.67
        round_rate(100.0) → 100.0
    """
    return round(value, precision)


def calculate_percentage(
    part: float,
    total: float,
    empty_value: float = 100.0,
    precision: int = DATA_FLOAT_PRECISION,
) -> float:
    """Calculate `part` as a percentage of `total`, rounded.

    Args:
        part: Numerator (e.g., on-time responses)
        total: Denominator (e.g., all responses)
        empty_value: Value returned when total is zero or negative
        precision: Number of decimal places for rounding

    Returns:
        Percentage in the 0-100 range when 0 <= part <= total.

    Examples:
        calculate_percentage(2, 3) → 66.67
        calculate_percentage(0, 0) → 100.0
    """
    if total <= 0:
        return empty_value
    return round_rate((part / total) * 100, precision)
