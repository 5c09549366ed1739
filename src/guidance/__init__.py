"""
===============================================================================
KERBOL TRANSFER PLANNER - Guidance Package
===============================================================================
Maneuver planning on top of the dynamics package: transfer geometry, launch
window search and delta-V budgets.

Modules:
    hohmann           : Local burns and interplanetary Hohmann geometry
    transfer_window   : Bracket-and-refine launch window root finder
    maneuver_planner  : Maneuver classification and delta-V budget
===============================================================================
"""
