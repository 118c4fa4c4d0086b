"""
Centralized configuration for the Rebalance Engine

This module defines the numeric settings and thresholds used by the
capital distribution engine. Centralizing these values makes it easier
to tune the system and understand decision boundaries.
"""

from decimal import ROUND_HALF_UP

# ============================================================================
# DECIMAL ARITHMETIC
# ============================================================================
# All monetary arithmetic runs on decimal.Decimal with an explicit context.

DECIMAL_PRECISION = 20
"""Significant digits carried by every arithmetic operation"""

DECIMAL_ROUNDING = ROUND_HALF_UP
"""Rounding mode applied when a result exceeds precision and when formatting"""

MONETARY_PRECISION = 4
"""Decimal places for recommended amounts and redistribution figures"""

PERCENTAGE_PRECISION = 4
"""Decimal places for allocation percentages and priorities"""

# ============================================================================
# PRIORITY RANKING
# ============================================================================

SCORE_DIVISOR = 100
"""Scores are normalized as score / 100 before weighting the allocation gap"""

DEFAULT_SCORE = "50.0000"
"""Score assumed for an asset that has no score yet"""

# ============================================================================
# CAPITAL DISTRIBUTION
# ============================================================================

MAX_ITERATIONS_FACTOR = 2
"""Redistribution passes allowed per eligible asset (cap = factor x count)"""

TOTAL_TOLERANCE = "0.0001"
"""Allowed absolute difference between the sum of amounts and the total"""

# ============================================================================
# TARGET RANGES
# ============================================================================

DEFAULT_TARGET_MIN = "0"
"""Lower bound (%) used when an asset has no class or subclass range"""

DEFAULT_TARGET_MAX = "100"
"""Upper bound (%) used when an asset has no class or subclass range"""

# ============================================================================
# ENVIRONMENT OVERRIDES
# ============================================================================

ENV_DECIMAL_PRECISION = "REBALANCE_DECIMAL_PRECISION"
"""Env var overriding DECIMAL_PRECISION"""

ENV_MONETARY_PLACES = "REBALANCE_MONETARY_PLACES"
"""Env var overriding MONETARY_PRECISION"""
