"""
===============================================================================
KERBOL TRANSFER PLANNER - Dynamics Module
===============================================================================
Two-body orbital state of the bodies in the catalog.

Submodules:
    anomalies -- Mean / eccentric / true anomaly conversions
    orbit     -- Keplerian Orbit with derived radius, speed and timing
    body      -- Immutable celestial Body descriptor
    catalog   -- Body tree built from flat records (built-in Kerbol system)
===============================================================================
"""
