# -- FLIP Particle System -- #

'''
Dataclass representing the FLIP particle store.

Stores positions, previous positions and velocities as contiguous
(n, 3) NumPy arrays. The particle count is fixed when the store is
created; the simulation mutates the arrays in place every frame and
never reallocates them. 2D simulations keep z constant at the
middle of the single cell layer.

Sean Bowman [02/05/2026]
'''

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

import numpy as np

if TYPE_CHECKING:
    from computationalFluids.FlipSim.grid.macGrid import MacGrid


@dataclass
class ParticleSystem:
    '''
    FLIP particle state.

    Parameters:
    -----------
    positions : np.ndarray
        Particle positions [m], shape (n, 3)
    previousPositions : np.ndarray
        Positions before the last advection substep [m], shape (n, 3)
    velocities : np.ndarray
        Particle velocities [m/s], shape (n, 3)
    '''

    positions: np.ndarray
    previousPositions: np.ndarray
    velocities: np.ndarray

    def __post_init__(self) -> None:
        for name in ('positions', 'previousPositions', 'velocities'):
            array = getattr(self, name)
            if array.ndim != 2 or array.shape[1] != 3:
                raise ValueError(f'{name} must have shape (n, 3), got {array.shape}')
        if not (self.positions.shape == self.previousPositions.shape == self.velocities.shape):
            raise ValueError('positions, previousPositions and velocities must have the same shape')

    @property
    def nParticles(self) -> int:
        '''Number of particles.'''
        return self.positions.shape[0]

    def kineticEnergy(self, particleMass: float) -> float:
        '''
        Total kinetic energy.

        KE = (1/2) * m * sum_i |v_i|^2

        Parameters:
        -----------
        particleMass : float
            Mass carried by each particle [kg]

        Returns:
        --------
        float : Kinetic energy [J]
        '''
        return 0.5 * particleMass * float(np.sum(self.velocities * self.velocities))

    def maxSpeed(self) -> float:
        '''
        Maximum velocity magnitude.

        Returns:
        --------
        float : Maximum speed [m/s]
        '''
        if self.nParticles == 0:
            return 0.0
        return float(np.max(np.linalg.norm(self.velocities, axis=1)))

    def maxComponentSpeeds(self) -> np.ndarray:
        '''
        Largest |velocity component| along each axis.

        Returns:
        --------
        np.ndarray : (u_max, v_max, w_max) [m/s]
        '''
        if self.nParticles == 0:
            return np.zeros(3)
        return np.max(np.abs(self.velocities), axis=0)

    def copy(self) -> ParticleSystem:
        '''Deep copy of the particle arrays.'''
        return ParticleSystem(
            positions=self.positions.copy(),
            previousPositions=self.previousPositions.copy(),
            velocities=self.velocities.copy(),
        )

    @classmethod
    def fromPositions(
        cls,
        positions: np.ndarray,
        velocities: np.ndarray | None = None,
    ) -> ParticleSystem:
        '''
        Create particles at the given positions.

        Previous positions start equal to the current positions.

        Parameters:
        -----------
        positions : np.ndarray
            Particle positions [m], shape (n, 3)
        velocities : np.ndarray | None
            Initial velocities [m/s] (defaults to zero)

        Returns:
        --------
        ParticleSystem : New particle system
        '''
        positions = np.array(positions, dtype=float, ndmin=2)
        if velocities is None:
            velocities = np.zeros_like(positions)
        else:
            velocities = np.array(velocities, dtype=float, ndmin=2)

        return cls(
            positions=positions,
            previousPositions=positions.copy(),
            velocities=velocities,
        )

    @classmethod
    def fillCells(
        cls,
        grid: MacGrid,
        cellMask: np.ndarray,
        particlesPerCell: int = 8,
        jitter: float = 0.5,
        seed: int | None = None,
    ) -> ParticleSystem:
        '''
        Seed particles inside every selected cell.

        Particles start on a regular sub-grid of each cell (2x2x2 for
        8 per cell in 3D, 2x2 for 4 per cell in 2D) and are then
        displaced randomly by up to jitter * sub-cell spacing / 2.
        Solid cells in the mask are skipped.

        Parameters:
        -----------
        grid : MacGrid
            Grid defining cell geometry
        cellMask : np.ndarray
            Boolean mask of cells to fill, shape (N, M, L)
        particlesPerCell : int
            Target particles per cell; rounded to a perfect square (2D)
            or cube (3D) sub-grid
        jitter : float
            Random displacement as a fraction of the sub-cell spacing (0-1)
        seed : int | None
            Random seed for reproducible jitter

        Returns:
        --------
        ParticleSystem : Particles at rest
        '''
        cellMask = np.asarray(cellMask, dtype=bool) & ~grid.solidMask
        cellSize = grid.cellSize
        dimensions = grid.dimensions

        perAxis = max(1, int(round(particlesPerCell ** (1.0 / dimensions))))
        subCounts = [perAxis, perAxis, perAxis if dimensions == 3 else 1]

        # Sub-cell offsets in units of cells
        axes = [(np.arange(n) + 0.5) / n for n in subCounts]
        ox, oy, oz = np.meshgrid(*axes, indexing='ij')
        offsets = np.column_stack([ox.ravel(), oy.ravel(), oz.ravel()])

        cells = np.argwhere(cellMask)
        positions = (cells[:, np.newaxis, :] + offsets[np.newaxis, :, :]).reshape(-1, 3)

        rng = np.random.default_rng(seed)
        spacing = 1.0 / np.array(subCounts, dtype=float)
        displacement = rng.uniform(-0.5, 0.5, size=positions.shape) * jitter * spacing
        if dimensions == 2:
            displacement[:, 2] = 0.0
        positions = (positions + displacement) * cellSize

        return cls.fromPositions(positions)
