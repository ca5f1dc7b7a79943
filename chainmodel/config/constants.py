"""Numerical tolerances, rendering settings, and the weather demo chain."""

import numpy as np

# =============================================================================
# Matrix Tolerances
# =============================================================================

# Maximum deviation of a row sum from 1.0 for the row to count as stochastic
EPSILON = 1e-10

# Value given to new cells when a state is added
DEFAULT_FILL = 0.0

# =============================================================================
# Text Rendering
# =============================================================================

TEXT_PRECISION = 3
TEXT_SEPARATOR = "\t"

# =============================================================================
# Weather Demo Chain
# =============================================================================

# R = rain, C = cloudy, S = sunny
WEATHER_STATES = ["R", "C", "S"]

# Rows: from state, Columns: to state
# Order: R, C, S
WEATHER_TRANSITION_MATRIX = np.array([
    [0.2, 0.3, 0.5],  # from R
    [0.2, 0.5, 0.3],  # from C
    [0.1, 0.3, 0.6],  # from S
])

WEATHER_START_STATE = "S"

# History length of the demo walk is DEMO_STEPS + 1 (start state included)
DEMO_STEPS = 10

# =============================================================================
# Convergence Check
# =============================================================================

# 95th percentile of chi-square with 6 degrees of freedom.
# A 3-state chain has 3 rows x (3 - 1) free cells.
WEATHER_CHI_SQUARE_CRITICAL = 12.592

CONVERGENCE_STEPS = 2000
CONVERGENCE_TRIALS = 50

# Fraction of trials allowed to exceed the critical value (nominal rate is 5%)
CONVERGENCE_MAX_REJECTION_RATE = 0.15
