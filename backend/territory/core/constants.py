"""Shared engine constants.

Anti-cheat thresholds and geometry values used by the finalizer and the
zone attribution code, kept in one place so they can be documented and
adjusted together.
"""

# Mean Earth radius used by the haversine formula (meters)
EARTH_RADIUS_M = 6371000.0

# Minimum run to be considered at all
MIN_DISTANCE_M = 300.0
MIN_DURATION_S = 120.0

# Fastest plausible instantaneous speed for a runner (m/s). ~23 km/h.
MAX_SPEED_MPS = 6.5

# Default H3 resolution (~0.74 km^2 cells)
H3_RESOLUTION_DEFAULT = 8

# Ownership cycles are Monday 00:00 UTC .. next Monday 00:00 UTC
CYCLE_DAYS = 7

# FIT stores coordinates as 32-bit semicircles
SEMICIRCLES_PER_180_DEG = 2**31
