# -- Dam Break Scenario -- #

'''
Dam-break and drop scenarios in an open rectangular tank.

A dam break releases a column of water standing in one corner of
the tank; it collapses under gravity, runs along the floor and
climbs the opposite wall. A drop releases a block of water held
above a shallow pool.

The scenario creates:
1. A MAC grid lined with solid walls (open top)
2. Fluid particles seeded with jitter inside the initial water cells
3. A FlipConfig with matching grid and timing parameters

Sean Bowman [02/05/2026]
'''

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from computationalFluids.FlipSim import constants as const
from computationalFluids.FlipSim.flip.protocols import FlipConfig
from computationalFluids.FlipSim.flip.particles import ParticleSystem
from computationalFluids.FlipSim.grid.macGrid import MacGrid


######################################################################
# -- Dam Break Configuration -- #
######################################################################

@dataclass
class DamBreakConfig:
    '''
    Configuration for a dam-break scenario.

    Fractions are measured along each axis as a share of the domain
    extent, starting at the lower corner.

    Parameters:
    -----------
    nCells : tuple[int, int, int]
        Grid cell counts (N, M, L); L = 1 for 2D
    domainSize : tuple[float, float, float]
        Domain extent per axis [m]
    columnWidth : float
        Water column width along x (fraction of the domain)
    columnHeight : float
        Water column height along the vertical axis (fraction)
    columnDepth : float
        Water column depth along the remaining horizontal axis in 3D (fraction)
    particlesPerCell : int
        Particles seeded in each water cell
    jitter : float
        Random particle displacement as a fraction of the sub-cell spacing
    seed : int | None
        Random seed for the jitter
    alpha : float
        FLIP/PIC blend factor
    integrator : str
        Position integrator: 'rk2' or 'leapfrog'
    frameDt : float
        Frame duration [s]
    endTime : float
        Simulation end time [s]
    dimensions : int
        Number of spatial dimensions (2 or 3)
    '''

    nCells: tuple[int, int, int] = (32, 32, 1)
    domainSize: tuple[float, float, float] = (1.0, 1.0, 1.0 / 32.0)
    columnWidth: float = 0.4
    columnHeight: float = 0.6
    columnDepth: float = 1.0
    particlesPerCell: int = 4
    jitter: float = 0.5
    seed: int | None = 0
    alpha: float = const.defaultAlpha
    integrator: str = 'rk2'
    frameDt: float = const.defaultFrameDt
    endTime: float = 2.0
    dimensions: int = 2

    @classmethod
    def small2D(cls) -> DamBreakConfig:
        '''
        Small 2D dam break for quick testing.

        32 x 32 cells, ~860 particles, runs in seconds.
        '''
        return cls(
            nCells=(32, 32, 1),
            domainSize=(1.0, 1.0, 1.0 / 32.0),
            particlesPerCell=4,
            endTime=1.0,
            dimensions=2,
        )

    @classmethod
    def small3D(cls) -> DamBreakConfig:
        '''
        Small 3D dam break.

        16 x 16 x 16 cells, ~2500 particles.
        '''
        return cls(
            nCells=(16, 16, 16),
            domainSize=(1.0, 1.0, 1.0),
            columnDepth=0.5,
            particlesPerCell=8,
            endTime=1.0,
            dimensions=3,
        )

    def flipConfig(self) -> FlipConfig:
        '''Simulation configuration matching this scenario.'''
        return FlipConfig(
            nCells=tuple(self.nCells),
            domainSize=tuple(self.domainSize),
            alpha=self.alpha,
            integrator=self.integrator,
            frameDt=self.frameDt,
            endTime=self.endTime,
            dimensions=self.dimensions,
        ).validate()


######################################################################
# -- Drop Configuration -- #
######################################################################

@dataclass
class DropConfig:
    '''
    Configuration for a block of water dropped into a shallow pool.

    Parameters:
    -----------
    nCells : tuple[int, int, int]
        Grid cell counts (N, M, L); L = 1 for 2D
    domainSize : tuple[float, float, float]
        Domain extent per axis [m]
    poolDepth : float
        Pool depth along the vertical axis (fraction of the domain)
    blockLower : float
        Lower edge of the block along every axis (fraction)
    blockUpper : float
        Upper edge of the block along every axis (fraction)
    particlesPerCell : int
        Particles seeded in each water cell
    jitter : float
        Random particle displacement as a fraction of the sub-cell spacing
    seed : int | None
        Random seed for the jitter
    alpha : float
        FLIP/PIC blend factor
    frameDt : float
        Frame duration [s]
    endTime : float
        Simulation end time [s]
    dimensions : int
        Number of spatial dimensions (2 or 3)
    '''

    nCells: tuple[int, int, int] = (32, 32, 1)
    domainSize: tuple[float, float, float] = (1.0, 1.0, 1.0 / 32.0)
    poolDepth: float = 0.2
    blockLower: float = 0.4
    blockUpper: float = 0.7
    particlesPerCell: int = 4
    jitter: float = 0.5
    seed: int | None = 0
    alpha: float = const.defaultAlpha
    frameDt: float = const.defaultFrameDt
    endTime: float = 1.5
    dimensions: int = 2

    @classmethod
    def small2D(cls) -> DropConfig:
        '''Small 2D drop, 32 x 32 cells.'''
        return cls()

    @classmethod
    def small3D(cls) -> DropConfig:
        '''
        Small 3D drop.

        16 x 16 x 16 cells; the block is a cube above the pool.
        '''
        return cls(
            nCells=(16, 16, 16),
            domainSize=(1.0, 1.0, 1.0),
            particlesPerCell=8,
            dimensions=3,
        )

    def flipConfig(self) -> FlipConfig:
        '''Simulation configuration matching this scenario.'''
        return FlipConfig(
            nCells=tuple(self.nCells),
            domainSize=tuple(self.domainSize),
            alpha=self.alpha,
            frameDt=self.frameDt,
            endTime=self.endTime,
            dimensions=self.dimensions,
        ).validate()


######################################################################
# -- Scenario Creation -- #
######################################################################

def cellFractions(grid: MacGrid) -> list[np.ndarray]:
    '''
    Cell-center coordinates as fractions of the domain, one
    broadcastable array per axis.
    '''
    fractions = []
    for axis in range(3):
        n = grid.nCells[axis]
        shape = [1, 1, 1]
        shape[axis] = n
        fractions.append(((np.arange(n) + 0.5) / n).reshape(shape))
    return fractions


def _tankGrid(config: FlipConfig) -> MacGrid:
    grid = MacGrid(config.nCells, config.domainSize)
    grid.addSolidWalls(thickness=1, openTop=True, verticalAxis=config.verticalAxis)
    return grid


def createDamBreak(
    damConfig: DamBreakConfig,
) -> tuple[FlipConfig, MacGrid, ParticleSystem]:
    '''
    Create a dam-break simulation from configuration.

    The water column occupies the cells whose centers satisfy
        x < columnWidth,  vertical < columnHeight,  depth < columnDepth
    (in domain fractions); wall cells inside that box stay solid.

    Parameters:
    -----------
    damConfig : DamBreakConfig
        Scenario configuration

    Returns:
    --------
    tuple[FlipConfig, MacGrid, ParticleSystem] :
        Validated configuration, tank grid, and particles at rest
    '''
    flipConfig = damConfig.flipConfig()
    grid = _tankGrid(flipConfig)

    vertical = flipConfig.verticalAxis
    depthAxis = 1 if vertical == 2 else 2
    fractions = cellFractions(grid)

    waterMask = (
        (fractions[0] < damConfig.columnWidth)
        & (fractions[vertical] < damConfig.columnHeight)
        & (fractions[depthAxis] < damConfig.columnDepth)
    )
    waterMask = np.broadcast_to(waterMask, grid.nCells)

    particles = ParticleSystem.fillCells(
        grid,
        waterMask,
        particlesPerCell=damConfig.particlesPerCell,
        jitter=damConfig.jitter,
        seed=damConfig.seed,
    )

    return (flipConfig, grid, particles)


def createDrop(
    dropConfig: DropConfig,
) -> tuple[FlipConfig, MacGrid, ParticleSystem]:
    '''
    Create a drop simulation from configuration.

    Water fills the pool below poolDepth on the vertical axis and the
    block between blockLower and blockUpper on every active axis.

    Parameters:
    -----------
    dropConfig : DropConfig
        Scenario configuration

    Returns:
    --------
    tuple[FlipConfig, MacGrid, ParticleSystem] :
        Validated configuration, tank grid, and particles at rest
    '''
    flipConfig = dropConfig.flipConfig()
    grid = _tankGrid(flipConfig)
    fractions = cellFractions(grid)

    poolMask = fractions[flipConfig.verticalAxis] < dropConfig.poolDepth

    blockMask = np.ones(grid.nCells, dtype=bool)
    for axis in range(3):
        if grid.nCells[axis] == 1:
            continue
        blockMask &= (fractions[axis] > dropConfig.blockLower) & (fractions[axis] < dropConfig.blockUpper)

    waterMask = np.broadcast_to(poolMask, grid.nCells) | blockMask

    particles = ParticleSystem.fillCells(
        grid,
        waterMask,
        particlesPerCell=dropConfig.particlesPerCell,
        jitter=dropConfig.jitter,
        seed=dropConfig.seed,
    )

    return (flipConfig, grid, particles)
