# -- Simulation Scenarios Package -- #

'''
Pre-configured scenarios for FLIP water simulation.

Each scenario provides initial conditions (tank walls, particle
layout) and configuration for a specific problem.

Sean Bowman [02/05/2026]
'''

from computationalFluids.FlipSim.scenarios.damBreak import (
    DamBreakConfig,
    DropConfig,
    createDamBreak,
    createDrop,
)
