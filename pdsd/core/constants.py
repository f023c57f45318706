"""
PDSD Electrical Constants and Selection Tables

Constants used by the domain calculators. Tables are ascending; selection
functions rely on that ordering.
"""

from typing import Tuple

# ==================== Supply Voltages ====================

SINGLE_PHASE_VOLTAGE_V = 220.0
LINE_VOLTAGE_V = 380.0  # three-phase line-to-line

SQRT_3 = 3 ** 0.5

# ==================== Safety Margins ====================

CIRCUIT_MARGIN_1_1 = 1.1    # protection device sizing
CIRCUIT_MARGIN_1_25 = 1.25  # cable sizing
INCOMING_SAFETY_FACTOR = 1.2

# Assumed power factor for distribution-box and trunk totals
BOX_POWER_FACTOR = 0.85

# ==================== Circuit Breaker Ratings (A) ====================

BREAKER_RATINGS_A: Tuple[float, ...] = (
    1.0, 2.0, 4.0, 6.0, 10.0, 16.0, 20.0, 25.0,
    32.0, 40.0, 50.0, 63.0, 80.0, 100.0, 125.0,
)

# Incoming protection of a distribution box
INCOMING_RATINGS_A: Tuple[float, ...] = (
    6.0, 10.0, 16.0, 20.0, 25.0, 32.0, 40.0, 50.0, 63.0,
    80.0, 100.0, 125.0, 160.0, 200.0, 250.0, 315.0, 400.0, 500.0, 630.0,
)

# ==================== Cable Ampacity (copper, in conduit, 30 C) ====================

# (cross section mm2, continuous current A)
CABLE_AMPACITY: Tuple[Tuple[float, float], ...] = (
    (2.5, 16.0),
    (4.0, 25.0),
    (6.0, 32.0),
    (10.0, 42.0),
    (16.0, 55.0),
    (25.0, 70.0),
    (35.0, 85.0),
    (50.0, 110.0),
    (70.0, 135.0),
    (95.0, 165.0),
    (120.0, 190.0),
)

# ==================== Conductor Properties ====================

COPPER_RESISTIVITY_OHM_MM2_M = 0.0172
CABLE_REACTANCE_OHM_KM = 0.08

# ==================== Three-Phase Balancing ====================

BALANCE_TOLERANCE = 0.01   # relative spread (max - min) / average
BALANCE_MAX_ITERATIONS = 100

# ==================== Module Flags and Diagram Endpoints ====================

DUAL_POWER_KEYWORD = "dual_power"  # any module naming it marks a dual-power box
ROOT_BUS = "root_bus"
BACKUP_SOURCE = "backup_source"

# ==================== Port Slot Counts ====================

DEFAULT_BOX_CIRCUIT_SLOTS = 12
DEFAULT_TRUNK_BOX_SLOTS = 16


def format_rating(current_a: float) -> str:
    """Render a rating without a trailing '.0'."""
    if float(current_a).is_integer():
        return f"{int(current_a)}A"
    return f"{current_a:g}A"
