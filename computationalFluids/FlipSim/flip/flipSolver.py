# -- FLIP Solver -- #

'''
FLIP/PIC stepper for incompressible free-surface flows.

Particles carry velocity between frames; a staggered MAC grid is
rebuilt from them every frame to apply gravity and enforce
incompressibility, and the grid's velocity change is transferred
back to the particles.

Algorithm per frame:
    1. Particle-to-grid transfer, classify fluid cells, extrapolate
    2. Snapshot the grid velocity as the star field
    3. Apply gravity (forward Euler on the vertical faces)
    4. Enforce solid and domain boundary conditions
    5. Pressure projection (assemble, CG solve, gradient update)
    6. Grid-to-particle transfer (FLIP/PIC blend)
    7. Advect particles with CFL substeps

Each phase reads what the previous one wrote; the solver owns the
grid and particle store for the duration of advance().

References:
-----------
Brackbill & Ruppel (1986) -- FLIP: A method for adaptively zoned,
    particle-in-cell calculations of fluid flows in two dimensions
Zhu & Bridson (2005) -- Animating sand as a fluid
Bridson (2015) -- Fluid Simulation for Computer Graphics, 2nd ed.

Sean Bowman [02/05/2026]
'''

from __future__ import annotations

import numpy as np

from computationalFluids.FlipSim import constants as const
from computationalFluids.FlipSim.flip.protocols import FlipConfig, StepState, PressureSolveResult
from computationalFluids.FlipSim.flip.kernels import TransferKernel, Poly6Kernel, createKernel
from computationalFluids.FlipSim.flip.particles import ParticleSystem
from computationalFluids.FlipSim.flip.particleTransfer import TransferEngine
from computationalFluids.FlipSim.flip.boundaryHandling import BoundaryHandler
from computationalFluids.FlipSim.flip.pressureSolver import PressureSolver
from computationalFluids.FlipSim.flip.advection import Advector, PositionIntegrator, createIntegrator
from computationalFluids.FlipSim.grid.macGrid import MacGrid


class FlipSolver:
    '''
    FLIP/PIC fluid stepper.

    Parameters:
    -----------
    particles : ParticleSystem
        Particle store, mutated in place every frame
    grid : MacGrid
        MAC grid with its solid layout set up
    density : float
        Fluid density rho [kg/m^3]
    gravity : float
        Gravitational acceleration magnitude [m/s^2]
    alpha : float
        FLIP/PIC blend factor (0 = FLIP, 1 = PIC)
    kernel : TransferKernel | None
        Transfer kernel (defaults to Poly6Kernel)
    kernelRadius : float | None
        Kernel radius h [m] (defaults to 2 * dx)
    extrapolationLayers : int
        Velocity extrapolation sweeps after the transfer
    pressureSolver : PressureSolver | None
        Pressure projection (defaults to ILU-preconditioned CG)
    integrator : PositionIntegrator | None
        Position integrator (defaults to the midpoint rule)
    verticalAxis : int | None
        Gravity axis (defaults to z in 3D, y in 2D)
    frameDt : float
        Frame duration used by step() [s]
    '''

    def __init__(
        self,
        particles: ParticleSystem,
        grid: MacGrid,
        density: float = const.referenceDensity,
        gravity: float = const.gravity,
        alpha: float = const.defaultAlpha,
        kernel: TransferKernel | None = None,
        kernelRadius: float | None = None,
        extrapolationLayers: int = const.defaultExtrapolationLayers,
        pressureSolver: PressureSolver | None = None,
        integrator: PositionIntegrator | None = None,
        verticalAxis: int | None = None,
        frameDt: float = const.defaultFrameDt,
    ) -> None:
        if not 0.0 <= alpha <= 1.0:
            raise ValueError(f'alpha must lie in [0, 1], got {alpha}')
        self._checkCubicCells(grid)

        self._particles = particles
        self._grid = grid
        self._density = density
        self._alpha = alpha
        self._frameDt = frameDt

        if kernelRadius is None:
            kernelRadius = const.kernelRadiusFactor * float(grid.cellSize[0])
        if verticalAxis is None:
            verticalAxis = 2 if grid.dimensions == 3 else 1

        self._transfer = TransferEngine(
            kernel=kernel or Poly6Kernel(),
            kernelRadius=kernelRadius,
            extrapolationLayers=extrapolationLayers,
        )
        self._boundaryHandler = BoundaryHandler(gravity=gravity, verticalAxis=verticalAxis)
        self._pressureSolver = pressureSolver or PressureSolver(density)
        self._advector = Advector(integrator)

        self._particleMass = self._estimateParticleMass()

        self._time: float = 0.0
        self._stepCount: int = 0
        self._lastState: StepState | None = None
        self._lastPressureSolve: PressureSolveResult | None = None

    @classmethod
    def fromConfig(
        cls, config: FlipConfig, particles: ParticleSystem, grid: MacGrid
    ) -> FlipSolver:
        '''
        Build a solver from a validated configuration.

        Parameters:
        -----------
        config : FlipConfig
            Simulation configuration
        particles : ParticleSystem
            Initial particles
        grid : MacGrid
            Grid with solids set up

        Returns:
        --------
        FlipSolver : Ready-to-step solver
        '''
        config.validate()
        return cls(
            particles=particles,
            grid=grid,
            density=config.density,
            gravity=config.gravity,
            alpha=config.alpha,
            kernel=createKernel(config.kernelType),
            kernelRadius=config.kernelRadius,
            extrapolationLayers=config.extrapolationLayers,
            pressureSolver=PressureSolver(
                density=config.density,
                maxIterations=config.maxPressureIterations,
                tolerance=config.pressureTolerance,
                preconditioner=config.preconditioner,
            ),
            integrator=createIntegrator(config.integrator),
            verticalAxis=config.verticalAxis,
            frameDt=config.frameDt,
        )

    @staticmethod
    def _checkCubicCells(grid: MacGrid) -> None:
        '''The pressure system uses dx on every axis, so cells must be cubes.'''
        active = [grid.cellSize[a] for a in range(3) if grid.nCells[a] > 1]
        if active and not np.allclose(active, active[0], rtol=1e-9, atol=0.0):
            raise ValueError(f'Cells must have equal sizes on every axis, got {grid.cellSize.tolist()}')

    def _estimateParticleMass(self) -> float:
        '''Fluid mass of the initially occupied cells shared over all particles.'''
        nParticles = self._particles.nParticles
        if nParticles == 0:
            return 0.0
        occupied = np.unique(self._grid.indicesFromPositions(self._particles.positions), axis=0)
        cellVolume = float(np.prod(self._grid.cellSize))
        return self._density * len(occupied) * cellVolume / nParticles

    ######################################################################
    # -- Frame Step -- #
    ######################################################################

    def advance(self, dt: float, step: int) -> None:
        '''
        Advance the simulation by one frame.

        Parameters:
        -----------
        dt : float
            Frame duration [s]
        step : int
            Monotonically increasing frame index; 0 seeds integrators
            that need a previous position
        '''
        if dt <= 0.0:
            raise ValueError(f'Frame duration must be positive, got {dt}')

        grid = self._grid
        particles = self._particles

        # 1. Particle-to-grid, classify cells, extrapolate
        self._transfer.particleToGrid(grid, particles)

        # 2. Velocity particles carried into this frame
        grid.storeStarVelocities()

        # 3. Body forces
        self._boundaryHandler.applyForces(grid, dt)

        # 4. Solid and domain boundaries
        self._boundaryHandler.enforceBoundary(grid)

        # 5. Pressure projection
        pressureResult = self._pressureSolver.project(grid, dt)

        # 6. Grid-to-particle (FLIP/PIC blend)
        self._transfer.gridToParticle(grid, particles, self._alpha)

        # 7. Advect with CFL substeps
        nSubsteps, substepDt = self._advector.advect(grid, particles, dt, step)

        self._time += dt
        self._lastPressureSolve = pressureResult
        self._lastState = self._buildState(dt, step, nSubsteps, substepDt, pressureResult)

    def step(self) -> StepState:
        '''
        Advance one frame of the configured duration.

        Returns:
        --------
        StepState : Diagnostics of the frame
        '''
        self.advance(self._frameDt, self._stepCount)
        self._stepCount += 1
        return self._lastState

    def _buildState(
        self,
        dt: float,
        step: int,
        nSubsteps: int,
        substepDt: float,
        pressureResult: PressureSolveResult,
    ) -> StepState:
        grid = self._grid
        fluid = grid.fluidMask
        if np.any(fluid):
            maxDivergence = float(np.max(np.abs(grid.divergence()[fluid]))) / float(grid.cellSize[0])
        else:
            maxDivergence = 0.0

        return StepState(
            time=self._time,
            step=step,
            dt=dt,
            nSubsteps=nSubsteps,
            substepDt=substepDt,
            nFluidCells=int(np.count_nonzero(fluid)),
            pressureIterations=pressureResult.iterations,
            pressureConverged=pressureResult.converged,
            pressureResidual=pressureResult.residual,
            maxDivergence=maxDivergence,
            maxVelocity=self._particles.maxSpeed(),
            kineticEnergy=self._particles.kineticEnergy(self._particleMass),
        )

    ######################################################################
    # -- Properties -- #
    ######################################################################

    @property
    def currentState(self) -> StepState:
        '''Diagnostics of the last frame, or of the initial state before any step.'''
        if self._lastState is not None:
            return self._lastState

        return StepState(
            time=self._time,
            step=0,
            dt=self._frameDt,
            nSubsteps=0,
            substepDt=0.0,
            nFluidCells=self._grid.nFluidCells,
            pressureIterations=0,
            pressureConverged=True,
            pressureResidual=0.0,
            maxDivergence=0.0,
            maxVelocity=self._particles.maxSpeed(),
            kineticEnergy=self._particles.kineticEnergy(self._particleMass),
        )

    @property
    def lastState(self) -> StepState | None:
        return self._lastState

    @property
    def lastPressureSolve(self) -> PressureSolveResult | None:
        return self._lastPressureSolve

    @property
    def particles(self) -> ParticleSystem:
        '''Access the particle system.'''
        return self._particles

    @property
    def grid(self) -> MacGrid:
        '''Access the MAC grid.'''
        return self._grid

    @property
    def time(self) -> float:
        '''Current simulation time [s].'''
        return self._time

    @property
    def stepCount(self) -> int:
        '''Frames advanced through step().'''
        return self._stepCount

    @property
    def particleMass(self) -> float:
        '''Mass carried by each particle [kg].'''
        return self._particleMass

    @property
    def frameDt(self) -> float:
        return self._frameDt
