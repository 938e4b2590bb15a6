"""
Physical constants and the scaled unit system used throughout the simulation.

SCALED UNITS SYSTEM:
- Distance: 1 unit = 10^5 km = 10^8 m
- Time: 1 unit = 24 hours (86400 s), approximately one Earth day
- Mass: kilograms
- Angles: degrees in configuration, radians inside the engine

This means:
- Positions are in distance units (1 AU ≈ 1496 units)
- Velocities are in distance units per time unit
- Rotation speeds are in radians per time unit
- G is in (distance unit)³/(kg·(time unit)²)
"""

import numpy as np

# Base units
time_unit_hours = 24.0  # Hours per time unit
hours_to_time_unit = 1.0 / time_unit_hours  # Time units per hour
time_unit_seconds = time_unit_hours * 3600.0  # [s]

distance_unit_km = 1.0e5  # km per distance unit
distance_unit_m = distance_unit_km * 1.0e3  # [m]

# Gravitational constant in scaled units
# G_scaled = G_SI × (time unit)² / (distance unit)³
# G_scaled = 6.6743e-11 × 86400² / (1e8)³ ≈ 4.982e-25 units³/(kg·day²)
G_SI = 6.6743e-11  # [m³/(kg·s²)]
G = G_SI * time_unit_seconds**2 / distance_unit_m**3

# Astronomical reference values
AU = 1495.978707  # Astronomical unit [distance units]
M_sun = 1.989e30  # Solar mass [kg]
R_sun = 6.957  # Solar radius [distance units]
M_earth = 5.9724e24  # Earth mass [kg]
R_earth = 0.06378  # Earth radius [distance units]
R_jupiter = 11.2 * R_earth  # Jupiter radius [distance units]

# A body spinning once every P hours turns 2π·24/P radians per time unit
period_to_angular_speed = 2.0 * np.pi / hours_to_time_unit

# All bodies start at the perihelion convention angle (true anomaly = π)
perihelion_angle = np.pi
