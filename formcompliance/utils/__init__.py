# File: utils/__init__.py
"""Pure Python utilities for the form compliance engine.

Submodules:
    - dt_utils: Date/time parsing, local-day boundaries, durations
    - math_utils: Rate rounding and percentage calculations

Usage:
    from . import dt_utils
    from .math_utils import calculate_percentage
"""

from . import dt_utils, math_utils

__all__ = ["dt_utils", "math_utils"]
