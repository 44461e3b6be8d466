# -- FlipSim Package -- #

'''
Incompressible water simulation using the FLIP/PIC method on a
staggered MAC grid.

Dam breaks, drops and free-surface flows with JSON frame export
and Plotly diagnostics.

Sean Bowman [02/05/2026]
'''

__version__ = '0.1.0'

from computationalFluids.FlipSim.flip.protocols import FlipConfig, StepState
from computationalFluids.FlipSim.flip.flipSolver import FlipSolver
from computationalFluids.FlipSim.grid.macGrid import MacGrid
