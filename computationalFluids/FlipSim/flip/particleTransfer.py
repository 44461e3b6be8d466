# -- Particle / Grid Velocity Transfer -- #

'''
Particle-to-grid and grid-to-particle velocity transfer for FLIP.

Particle-to-grid (P2G):
    1. Zero face velocities and weights, reset fluid flags
    2. Mark every cell holding a particle fluid (unless solid)
    3. Scatter kernel-weighted particle velocities onto every face
       within the kernel radius h (scatter-add with np.add.at)
    4. Normalize each face by its accumulated weight
    5. Extrapolate into faces no particle reached

Grid-to-particle (G2P):
    v' = v * (1 - beta) + interp(u_new) - interp(u_star) * (1 - beta)

    beta = alpha inside the domain and min(1, 2*alpha) in cells
    touching the domain boundary, so particles near walls take more
    of the (damped) PIC velocity.

References:
-----------
Brackbill & Ruppel (1986) -- FLIP: A method for adaptively zoned,
    particle-in-cell calculations of fluid flows in two dimensions
Zhu & Bridson (2005) -- Animating sand as a fluid

Sean Bowman [02/05/2026]
'''

from __future__ import annotations

import numpy as np

from computationalFluids.FlipSim import constants as const
from computationalFluids.FlipSim.flip.kernels import TransferKernel
from computationalFluids.FlipSim.flip.particles import ParticleSystem
from computationalFluids.FlipSim.grid.macGrid import MacGrid, axisSlice


######################################################################
# -- Particle-to-Grid Scatter -- #
######################################################################

def stencilOffsets(stencilHalfWidth: np.ndarray) -> np.ndarray:
    '''
    Face index offsets scanned around a particle's cell.

    Covers c - hs .. c + hs + 1 on each axis, which contains every
    face within the kernel radius for any position inside cell c.

    Parameters:
    -----------
    stencilHalfWidth : np.ndarray
        hs = ceil(h / cellSize) per axis

    Returns:
    --------
    np.ndarray : Integer offsets, shape (S, 3)
    '''
    ranges = [np.arange(-hs, hs + 2) for hs in stencilHalfWidth]
    ox, oy, oz = np.meshgrid(*ranges, indexing='ij')
    return np.column_stack([ox.ravel(), oy.ravel(), oz.ravel()])


def _scatterComponent(
    grid: MacGrid,
    axis: int,
    kernel: TransferKernel,
    kernelRadius: float,
    positions: np.ndarray,
    velocities: np.ndarray,
    cellIndices: np.ndarray,
    offsets: np.ndarray,
) -> None:
    '''
    Accumulate one velocity component of a particle batch onto its faces.

    Parameters:
    -----------
    grid : MacGrid
        Target grid
    axis : int
        Velocity component (0 = u, 1 = v, 2 = w)
    kernel : TransferKernel
        Weighting kernel
    kernelRadius : float
        Kernel radius h [m]
    positions : np.ndarray
        Batch positions, shape (b, 3)
    velocities : np.ndarray
        Batch velocity component, shape (b,)
    cellIndices : np.ndarray
        Batch cell indices, shape (b, 3)
    offsets : np.ndarray
        Stencil offsets, shape (S, 3)
    '''
    faceShape = np.array(grid.faceShape(axis))
    nBatch = positions.shape[0]
    nStencil = offsets.shape[0]

    faces = (cellIndices[:, np.newaxis, :] + offsets[np.newaxis, :, :]).reshape(-1, 3)
    owners = np.repeat(np.arange(nBatch), nStencil)

    inBounds = np.all((faces >= 0) & (faces < faceShape), axis=1)
    faces = faces[inBounds]
    owners = owners[inBounds]

    distances = np.linalg.norm(positions[owners] - grid.faceCoordinates(axis, faces), axis=1)
    weights = kernel.evaluateBatch(distances, kernelRadius)

    active = (distances <= kernelRadius) & (weights > 0.0)
    if not np.any(active):
        return

    faceIndex = tuple(faces[active].T)
    np.add.at(grid.velocityField(axis), faceIndex, weights[active] * velocities[owners[active]])
    np.add.at(grid.weightField(axis), faceIndex, weights[active])


def normalizeAccumulated(grid: MacGrid, axis: int) -> np.ndarray:
    '''
    Divide accumulated face values by their weights.

    Faces with nonzero weight are flagged in the grid's visited
    scratch buffer; the others are left at zero.

    Parameters:
    -----------
    grid : MacGrid
        Grid holding accumulated values and weights
    axis : int
        Velocity component (0 = u, 1 = v, 2 = w)

    Returns:
    --------
    np.ndarray : The visited buffer for this component
    '''
    values = grid.velocityField(axis)
    weights = grid.weightField(axis)
    visited = grid.visitedBuffer(axis)

    np.not_equal(weights, 0.0, out=visited)
    values[visited] /= weights[visited]
    return visited


def extrapolateVelocity(grid: MacGrid, axis: int, layers: int = 1) -> int:
    '''
    Propagate face velocities from visited faces to unvisited neighbors.

    Each unvisited face adjacent (along x, y or z) to at least one
    visited face takes the running average of those neighbors'
    values. Since only visited values feed the average, the result
    equals their mean regardless of sweep order. Visited faces are
    never overwritten. With layers > 1 the newly filled faces act as
    visited for the next sweep.

    Requires the visited buffer from normalizeAccumulated and
    unvisited faces holding zero.

    Parameters:
    -----------
    grid : MacGrid
        Grid holding normalized face velocities
    axis : int
        Velocity component (0 = u, 1 = v, 2 = w)
    layers : int
        Number of propagation sweeps

    Returns:
    --------
    int : Number of faces filled
    '''
    values = grid.velocityField(axis)
    visited = grid.visitedBuffer(axis)
    counter = grid.counterBuffer(axis)
    nFilled = 0

    for _ in range(layers):
        counter.fill(0)

        for d in range(3):
            n = values.shape[d]
            if n < 2:
                continue
            lower = axisSlice(d, 0, n - 1)
            upper = axisSlice(d, 1, n)

            # upper neighbor -> lower face
            take = visited[upper] & ~visited[lower]
            counter[lower] += take
            values[lower] += np.where(take, values[upper], 0.0)

            # lower neighbor -> upper face
            take = visited[lower] & ~visited[upper]
            counter[upper] += take
            values[upper] += np.where(take, values[lower], 0.0)

        filled = ~visited & (counter > 0)
        if not np.any(filled):
            break

        values[filled] /= counter[filled]
        visited |= filled
        nFilled += int(np.count_nonzero(filled))

    return nFilled


######################################################################
# -- Grid-to-Particle Blend -- #
######################################################################

def boundaryAdjacentMask(grid: MacGrid, cellIndices: np.ndarray) -> np.ndarray:
    '''
    Particles whose cell touches the domain boundary.

    A cell index of 0 or n-1 on any axis counts; axes with a single
    cell layer (z in 2D) are ignored.

    Parameters:
    -----------
    grid : MacGrid
        Simulation grid
    cellIndices : np.ndarray
        Particle cell indices, shape (n, 3)

    Returns:
    --------
    np.ndarray : Boolean mask, shape (n,)
    '''
    last = np.array(grid.nCells) - 1
    atWall = (cellIndices == 0) | (cellIndices == last)
    atWall[:, last == 0] = False
    return np.any(atWall, axis=1)


def transferToParticles(grid: MacGrid, particles: ParticleSystem, alpha: float) -> None:
    '''
    Update particle velocities from the projected grid (FLIP/PIC blend).

    v' = v * (1 - beta) + u_new(x) - u_star(x) * (1 - beta)

    alpha = 0 gives pure FLIP (v + u_new - u_star), alpha = 1 gives
    pure PIC (u_new).

    Parameters:
    -----------
    grid : MacGrid
        Grid holding projected (current) and pre-force (star) velocities
    particles : ParticleSystem
        Particles, velocities updated in place
    alpha : float
        FLIP/PIC blend factor in [0, 1]
    '''
    if particles.nParticles == 0:
        return

    positions = particles.positions
    interpNew = grid.interpolateVelocity(positions)
    interpStar = grid.interpolateVelocity(positions, useStar=True)

    nearWall = boundaryAdjacentMask(grid, grid.indicesFromPositions(positions))
    beta = np.where(nearWall, min(1.0, 2.0 * alpha), alpha)[:, np.newaxis]

    particles.velocities[...] = (
        particles.velocities * (1.0 - beta) + interpNew - interpStar * (1.0 - beta)
    )


######################################################################
# -- Transfer Engine -- #
######################################################################

class TransferEngine:
    '''
    Moves velocity between particles and the MAC grid.

    Parameters:
    -----------
    kernel : TransferKernel
        Radial weighting kernel
    kernelRadius : float
        Kernel radius h [m]
    extrapolationLayers : int
        Extrapolation sweeps after normalization
    batchSize : int
        Particles per scatter batch
    '''

    def __init__(
        self,
        kernel: TransferKernel,
        kernelRadius: float,
        extrapolationLayers: int = const.defaultExtrapolationLayers,
        batchSize: int = const.transferBatchSize,
    ) -> None:
        if kernelRadius <= 0.0:
            raise ValueError(f'Kernel radius must be positive, got {kernelRadius}')
        self._kernel = kernel
        self._kernelRadius = kernelRadius
        self._extrapolationLayers = extrapolationLayers
        self._batchSize = max(1, batchSize)

    @property
    def kernelRadius(self) -> float:
        '''Kernel radius h [m].'''
        return self._kernelRadius

    def particleToGrid(self, grid: MacGrid, particles: ParticleSystem) -> None:
        '''
        Rebuild the grid velocity field and fluid flags from particles.

        Parameters:
        -----------
        grid : MacGrid
            Target grid (velocities, weights and fluid flags overwritten)
        particles : ParticleSystem
            Source particles
        '''
        grid.setVelocitiesToZero()
        grid.setWeightsToZero()
        grid.resetFluid()

        nParticles = particles.nParticles
        if nParticles > 0:
            cellIndices = grid.indicesFromPositions(particles.positions)
            grid.markFluidCells(cellIndices)

            stencilHalfWidth = np.ceil(self._kernelRadius / grid.cellSize - 1e-9).astype(int)
            offsets = stencilOffsets(stencilHalfWidth)

            for start in range(0, nParticles, self._batchSize):
                stop = min(start + self._batchSize, nParticles)
                for axis in range(3):
                    _scatterComponent(
                        grid,
                        axis,
                        self._kernel,
                        self._kernelRadius,
                        particles.positions[start:stop],
                        particles.velocities[start:stop, axis],
                        cellIndices[start:stop],
                        offsets,
                    )

        for axis in range(3):
            normalizeAccumulated(grid, axis)
            extrapolateVelocity(grid, axis, self._extrapolationLayers)

    def gridToParticle(self, grid: MacGrid, particles: ParticleSystem, alpha: float) -> None:
        '''FLIP/PIC velocity update; see transferToParticles.'''
        transferToParticles(grid, particles, alpha)
