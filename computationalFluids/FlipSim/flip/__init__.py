# -- FLIP Engine Package -- #

'''
Core FLIP/PIC engine.

Provides transfer kernels, the particle store, particle/grid
transfer, boundary conditions, pressure projection, advection,
and the FLIP stepper.

Sean Bowman [02/05/2026]
'''

from computationalFluids.FlipSim.flip.protocols import FlipConfig, StepState, PressureSolveResult
from computationalFluids.FlipSim.flip.kernels import Poly6Kernel, WendlandC2Kernel, createKernel
from computationalFluids.FlipSim.flip.particles import ParticleSystem
from computationalFluids.FlipSim.flip.particleTransfer import TransferEngine
from computationalFluids.FlipSim.flip.boundaryHandling import BoundaryHandler
from computationalFluids.FlipSim.flip.pressureSolver import PressureSolver
from computationalFluids.FlipSim.flip.advection import Advector, createIntegrator
from computationalFluids.FlipSim.flip.flipSolver import FlipSolver
