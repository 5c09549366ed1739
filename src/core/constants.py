"""
===============================================================================
KERBOL TRANSFER PLANNER - Physical and Game Constants
===============================================================================
Central repository for the constants used throughout the planner. SI units
throughout (meters, seconds, kilograms, radians).

The gravitational constant and the length of a day follow the simulation's
own conventions rather than IAU values: the Kerbol system runs on G =
6.674e-11 and a 6-hour day.
===============================================================================
"""

import numpy as np


# =============================================================================
# MATHEMATICAL CONSTANTS
# =============================================================================
PI = np.pi
TWO_PI = 2.0 * np.pi
HALF_PI = 0.5 * np.pi
DEG2RAD = PI / 180.0
RAD2DEG = 180.0 / PI

# =============================================================================
# FUNDAMENTAL CONSTANTS
# =============================================================================
GRAVITATIONAL_CONSTANT = 6.674e-11     # m^3 / (kg * s^2), simulation value

# =============================================================================
# TIME
# =============================================================================
SECONDS_PER_HOUR = 3600.0
HOURS_PER_DAY = 6.0
SECONDS_PER_DAY = HOURS_PER_DAY * SECONDS_PER_HOUR   # Kerbin solar day (s)

# =============================================================================
# KERBOL (ROOT STAR)
# =============================================================================
KERBOL_MU = 1.167922e18                # m^3/s^2, explicit override
KERBOL_RADIUS = 261600000.0            # m

# =============================================================================
# PLANNER DEFAULTS
# =============================================================================
PARKING_ORBIT_MARGIN = 10000.0         # Height above the atmosphere (m)
AIRLESS_PARKING_FRACTION = 0.1         # Fraction of radius for airless bodies
PARKING_HEIGHT_ROUNDING = 5000.0       # Parking heights round up to this (m)
TIDAL_LOCK_TOLERANCE = 1.0e-3          # Relative period mismatch allowed

# Empirical launch costs (m/s) to a circular parking orbit. The drag and
# gravity losses of an atmospheric ascent are not captured by the two-burn
# model, so these values come from flight experience.
EMPIRICAL_LAUNCH_DELTA_V = {
    "Duna": 1300.0,
    "Eve": 12000.0,
    "Kerbin": 4550.0,
    "Laythe": 3200.0,
}
