# -- FLIP Simulation Protocols -- #

'''
Configuration, result dataclasses and protocols for FLIP simulations.

Defines the core data structures (FlipConfig, StepState,
PressureSolveResult) and the stepper protocol consumed by the
runner and exporters.

Sean Bowman [02/05/2026]
'''

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Protocol, TYPE_CHECKING

import numpy as np

from computationalFluids.FlipSim import constants as const

if TYPE_CHECKING:
    from computationalFluids.FlipSim.flip.particles import ParticleSystem
    from computationalFluids.FlipSim.grid.macGrid import MacGrid


kernelTypes = ('poly6', 'wendlandC2')
integratorTypes = ('rk2', 'leapfrog')
preconditionerTypes = ('ilu', 'jacobi', 'none')


######################################################################
# -- Simulation Configuration -- #
######################################################################

@dataclass
class FlipConfig:
    '''
    Configuration for a FLIP simulation.

    Defines the grid, fluid properties, transfer and solver
    parameters, and timing. All values in SI units.

    Parameters:
    -----------
    nCells : tuple[int, int, int]
        Grid cell counts (N, M, L); L = 1 for 2D
    domainSize : tuple[float, float, float]
        Domain extent per axis [m]
    density : float
        Fluid density rho [kg/m^3]
    gravity : float
        Gravitational acceleration magnitude [m/s^2]
    alpha : float
        FLIP/PIC blend factor (0 = FLIP, 1 = PIC)
    kernelType : str
        Transfer kernel: 'poly6' or 'wendlandC2'
    kernelRadiusFactor : float
        Kernel radius h as a multiple of the x cell size
    extrapolationLayers : int
        Layers of velocity extrapolation after the transfer
    maxPressureIterations : int
        Conjugate gradient iteration budget
    pressureTolerance : float
        Relative residual tolerance of the pressure solve
    preconditioner : str
        Pressure preconditioner: 'ilu', 'jacobi' or 'none'
    integrator : str
        Position integrator: 'rk2' or 'leapfrog'
    frameDt : float
        Frame duration passed to each step [s]
    endTime : float
        Simulation end time [s]
    dimensions : int
        Number of spatial dimensions (2 or 3)
    '''

    nCells: tuple[int, int, int]
    domainSize: tuple[float, float, float]
    density: float = const.referenceDensity
    gravity: float = const.gravity
    alpha: float = const.defaultAlpha
    kernelType: str = 'poly6'
    kernelRadiusFactor: float = const.kernelRadiusFactor
    extrapolationLayers: int = const.defaultExtrapolationLayers
    maxPressureIterations: int = const.maxPressureIterations
    pressureTolerance: float = const.pressureTolerance
    preconditioner: str = 'ilu'
    integrator: str = 'rk2'
    frameDt: float = const.defaultFrameDt
    endTime: float = 2.0
    dimensions: int = 3

    @property
    def cellSize(self) -> np.ndarray:
        '''Cell size per axis [m].'''
        return np.asarray(self.domainSize, dtype=float) / np.asarray(self.nCells, dtype=float)

    @property
    def kernelRadius(self) -> float:
        '''Transfer kernel radius h = factor * dx [m].'''
        return self.kernelRadiusFactor * float(self.cellSize[0])

    @property
    def verticalAxis(self) -> int:
        '''Gravity axis: y (index 1) in 2D, z (index 2) in 3D.'''
        return 2 if self.dimensions == 3 else 1

    @property
    def nFrames(self) -> int:
        '''Number of frames to reach endTime.'''
        return int(np.ceil(self.endTime / self.frameDt - 1e-9))

    def validate(self) -> FlipConfig:
        '''
        Check parameter ranges.

        Returns:
        --------
        FlipConfig : self, for chaining

        Raises:
        -------
        ValueError : If any parameter is out of range
        '''
        if len(self.nCells) != 3 or min(self.nCells) < 1:
            raise ValueError(f'nCells must be three positive integers, got {self.nCells}')
        if len(self.domainSize) != 3 or min(self.domainSize) <= 0.0:
            raise ValueError(f'domainSize must be three positive lengths, got {self.domainSize}')
        if self.dimensions not in (2, 3):
            raise ValueError(f'dimensions must be 2 or 3, got {self.dimensions}')
        if self.dimensions == 2 and self.nCells[2] != 1:
            raise ValueError('2D simulations need a single cell layer along z')
        if self.density <= 0.0:
            raise ValueError(f'density must be positive, got {self.density}')
        if not 0.0 <= self.alpha <= 1.0:
            raise ValueError(f'alpha must lie in [0, 1], got {self.alpha}')
        if self.kernelRadiusFactor <= 0.0:
            raise ValueError(f'kernelRadiusFactor must be positive, got {self.kernelRadiusFactor}')
        if self.extrapolationLayers < 0:
            raise ValueError(f'extrapolationLayers must be >= 0, got {self.extrapolationLayers}')
        if self.maxPressureIterations < 1:
            raise ValueError(f'maxPressureIterations must be >= 1, got {self.maxPressureIterations}')
        if self.frameDt <= 0.0:
            raise ValueError(f'frameDt must be positive, got {self.frameDt}')
        if self.kernelType not in kernelTypes:
            raise ValueError(f'Unknown kernel type: {self.kernelType}')
        if self.integrator not in integratorTypes:
            raise ValueError(f'Unknown integrator: {self.integrator}')
        if self.preconditioner not in preconditionerTypes:
            raise ValueError(f'Unknown preconditioner: {self.preconditioner}')
        return self

    def toDict(self) -> dict:
        '''Sectioned dictionary matching the fromJson layout.'''
        return {
            'simulation': {
                'dimensions': self.dimensions,
                'frameDt': self.frameDt,
                'endTime': self.endTime,
            },
            'grid': {
                'nCells': list(self.nCells),
                'domainSize': list(self.domainSize),
            },
            'fluid': {
                'density': self.density,
                'gravity': self.gravity,
            },
            'flip': {
                'alpha': self.alpha,
                'kernelType': self.kernelType,
                'kernelRadiusFactor': self.kernelRadiusFactor,
                'extrapolationLayers': self.extrapolationLayers,
                'integrator': self.integrator,
            },
            'solver': {
                'maxIterations': self.maxPressureIterations,
                'tolerance': self.pressureTolerance,
                'preconditioner': self.preconditioner,
            },
        }

    @classmethod
    def fromJson(cls, configPath: str) -> FlipConfig:
        '''
        Load configuration from a JSON file.

        Reads the 'simulation', 'grid', 'fluid', 'flip' and 'solver'
        sections and constructs a validated FlipConfig.

        Parameters:
        -----------
        configPath : str
            Path to the JSON configuration file

        Returns:
        --------
        FlipConfig : Loaded configuration
        '''
        with open(configPath, 'r') as f:
            data = json.load(f)

        simSection = data.get('simulation', {})
        gridSection = data.get('grid', {})
        fluidSection = data.get('fluid', {})
        flipSection = data.get('flip', {})
        solverSection = data.get('solver', {})

        dimensions = simSection.get('dimensions', 3)
        defaultCells = [32, 32, 32] if dimensions == 3 else [32, 32, 1]
        defaultSize = [1.0, 1.0, 1.0] if dimensions == 3 else [1.0, 1.0, 1.0 / 32.0]

        return cls(
            nCells=tuple(int(n) for n in gridSection.get('nCells', defaultCells)),
            domainSize=tuple(float(s) for s in gridSection.get('domainSize', defaultSize)),
            density=fluidSection.get('density', const.referenceDensity),
            gravity=fluidSection.get('gravity', const.gravity),
            alpha=flipSection.get('alpha', const.defaultAlpha),
            kernelType=flipSection.get('kernelType', 'poly6'),
            kernelRadiusFactor=flipSection.get('kernelRadiusFactor', const.kernelRadiusFactor),
            extrapolationLayers=flipSection.get('extrapolationLayers', const.defaultExtrapolationLayers),
            maxPressureIterations=solverSection.get('maxIterations', const.maxPressureIterations),
            pressureTolerance=solverSection.get('tolerance', const.pressureTolerance),
            preconditioner=solverSection.get('preconditioner', 'ilu'),
            integrator=flipSection.get('integrator', 'rk2'),
            frameDt=simSection.get('frameDt', const.defaultFrameDt),
            endTime=simSection.get('endTime', 2.0),
            dimensions=dimensions,
        ).validate()

    @classmethod
    def small2D(cls) -> FlipConfig:
        '''
        Small 2D box for quick testing.

        32 x 32 cells, runs in seconds.
        '''
        return cls(
            nCells=(32, 32, 1),
            domainSize=(1.0, 1.0, 1.0 / 32.0),
            dimensions=2,
            endTime=1.0,
        )

    @classmethod
    def small3D(cls) -> FlipConfig:
        '''
        Small 3D box.

        16 x 16 x 16 cells, a few thousand particles.
        '''
        return cls(
            nCells=(16, 16, 16),
            domainSize=(1.0, 1.0, 1.0),
            dimensions=3,
            endTime=1.0,
        )


######################################################################
# -- Pressure Solve Result -- #
######################################################################

@dataclass
class PressureSolveResult:
    '''
    Outcome of one pressure solve.

    Non-convergence is reported here rather than raised; the
    pressure is still the best available iterate.

    Parameters:
    -----------
    pressure : np.ndarray
        Pressure per cell, ordered i + j*N + k*N*M
    iterations : int
        Conjugate gradient iterations performed
    converged : bool
        True if the tolerance was reached within the budget
    residual : float
        Relative residual |d - A p| / |d| (0 for a zero right-hand side)
    preconditioner : str
        Preconditioner actually used (after any fallback)
    '''

    pressure: np.ndarray
    iterations: int
    converged: bool
    residual: float
    preconditioner: str


######################################################################
# -- Step State -- #
######################################################################

@dataclass
class StepState:
    '''
    Diagnostics captured after one frame.

    Parameters:
    -----------
    time : float
        Simulation time after the frame [s]
    step : int
        Frame index that was advanced
    dt : float
        Frame duration [s]
    nSubsteps : int
        Advection substeps taken (CFL)
    substepDt : float
        Stable substep size [s]
    nFluidCells : int
        Cells classified fluid this frame
    pressureIterations : int
        Conjugate gradient iterations
    pressureConverged : bool
        Whether the pressure solve converged
    pressureResidual : float
        Relative residual of the pressure solve
    maxDivergence : float
        Largest |divergence| over fluid cells after projection [1/s]
    maxVelocity : float
        Maximum particle speed [m/s]
    kineticEnergy : float
        Particle kinetic energy [J]
    '''

    time: float
    step: int
    dt: float
    nSubsteps: int
    substepDt: float
    nFluidCells: int
    pressureIterations: int
    pressureConverged: bool
    pressureResidual: float
    maxDivergence: float
    maxVelocity: float
    kineticEnergy: float

    def toDict(self) -> dict:
        '''Plain dictionary of the diagnostics.'''
        return {
            'time': self.time,
            'step': self.step,
            'dt': self.dt,
            'nSubsteps': self.nSubsteps,
            'substepDt': self.substepDt,
            'nFluidCells': self.nFluidCells,
            'pressureIterations': self.pressureIterations,
            'pressureConverged': self.pressureConverged,
            'pressureResidual': self.pressureResidual,
            'maxDivergence': self.maxDivergence,
            'maxVelocity': self.maxVelocity,
            'kineticEnergy': self.kineticEnergy,
        }


######################################################################
# -- Stepper Protocol -- #
######################################################################

class FlipStepper(Protocol):
    '''Protocol for frame steppers consumed by runners and exporters.'''

    def advance(self, dt: float, step: int) -> None:
        '''Advance one frame of duration dt; step selects the integrator seed.'''
        ...

    @property
    def lastState(self) -> StepState | None:
        '''Diagnostics of the most recent frame.'''
        ...

    @property
    def particles(self) -> ParticleSystem:
        '''Access the particle system.'''
        ...

    @property
    def grid(self) -> MacGrid:
        '''Access the MAC grid.'''
        ...
