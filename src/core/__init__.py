"""
===============================================================================
KERBOL TRANSFER PLANNER - Core Package
===============================================================================
Shared constants, configuration and the error taxonomy.

Modules:
    constants  : Mathematical, time and Kerbol-system constants
    config     : PlannerConfig dataclass and YAML loader
    errors     : PlannerError, DegenerateOrbit, NoTransferWindowFound
===============================================================================
"""
