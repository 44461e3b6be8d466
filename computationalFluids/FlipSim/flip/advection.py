# -- FLIP Particle Advection -- #

'''
CFL substepping and particle position integration.

Each frame is split into equal substeps so that no particle moves
more than one cell per substep along any axis:

    stable = min over axes with max|v_a| > 0 of (cellSize_a / max|v_a|)
    stable = min(stable, dt)
    nSubsteps = ceil(dt / stable)

Integrators:
    rk2       Midpoint rule through the grid velocity field
              x_mid = x + dt/2 * u(x);  x' = x + dt * u(x_mid)
    leapfrog  Particle velocity only; Euler on the first frame
              x' = x_prev + 2 * dt * v

After each substep positions are clamped a quarter cell inside the
domain, and particles that landed in a solid cell are pulled back
into their previous cell along every axis whose index changed.
The pull-back is a cheap approximation, not a collision response.

References:
-----------
Bridson (2015) -- Fluid Simulation for Computer Graphics, ch. 3
Courant, Friedrichs & Lewy (1928) -- On the partial difference
    equations of mathematical physics

Sean Bowman [02/05/2026]
'''

from __future__ import annotations

import math
from typing import Protocol

import numpy as np

from computationalFluids.FlipSim import constants as const
from computationalFluids.FlipSim.flip.particles import ParticleSystem
from computationalFluids.FlipSim.grid.macGrid import MacGrid


######################################################################
# -- CFL Time Step -- #
######################################################################

def computeTimeStep(particles: ParticleSystem, cellSize: np.ndarray, dt: float) -> float:
    '''
    Largest stable substep from the per-axis particle velocity maxima.

    Parameters:
    -----------
    particles : ParticleSystem
        Particles after the grid-to-particle update
    cellSize : np.ndarray
        Cell size per axis [m]
    dt : float
        Requested frame duration [s]

    Returns:
    --------
    float : Stable substep [s], never larger than dt
    '''
    maxima = particles.maxComponentSpeeds()
    stableStep = dt

    for axis in range(3):
        if maxima[axis] > 0.0:
            stableStep = min(stableStep, float(cellSize[axis] / maxima[axis]))

    return stableStep


def computeSubsteps(dt: float, stableStep: float) -> int:
    '''Number of equal substeps ceil(dt / stableStep), at least one.'''
    return max(1, math.ceil(dt / stableStep))


######################################################################
# -- Position Integrators -- #
######################################################################

class PositionIntegrator(Protocol):
    '''Protocol for particle position integrators.'''

    def integrate(
        self, grid: MacGrid, particles: ParticleSystem, dt: float, step: int
    ) -> np.ndarray:
        '''
        Propose new particle positions after one substep.

        Parameters:
        -----------
        grid : MacGrid
            Grid holding the projected velocity field
        particles : ParticleSystem
            Current particle state (not modified)
        dt : float
            Substep duration [s]
        step : int
            Frame index (0 for the first frame)

        Returns:
        --------
        np.ndarray : Proposed positions, shape (n, 3)
        '''
        ...


class MidpointIntegrator:
    '''Second-order Runge-Kutta (midpoint) through the grid velocity.'''

    name = 'rk2'

    def integrate(
        self, grid: MacGrid, particles: ParticleSystem, dt: float, step: int
    ) -> np.ndarray:
        positions = particles.positions
        velocity = grid.interpolateVelocity(positions)
        midpoint = positions + 0.5 * dt * velocity
        return positions + dt * grid.interpolateVelocity(midpoint)


class LeapfrogIntegrator:
    '''
    Leapfrog on the particle velocity.

    Needs the position from before the previous substep, which does
    not exist on the first frame, so frame 0 takes an Euler step.
    '''

    name = 'leapfrog'

    def integrate(
        self, grid: MacGrid, particles: ParticleSystem, dt: float, step: int
    ) -> np.ndarray:
        if step == 0:
            return particles.positions + dt * particles.velocities
        return particles.previousPositions + 2.0 * dt * particles.velocities


def createIntegrator(name: str) -> PositionIntegrator:
    '''
    Create a position integrator by name.

    Parameters:
    -----------
    name : str
        'rk2' or 'leapfrog'

    Returns:
    --------
    PositionIntegrator : Integrator instance

    Raises:
    -------
    ValueError : If the name is unknown
    '''
    if name == 'rk2':
        return MidpointIntegrator()
    elif name == 'leapfrog':
        return LeapfrogIntegrator()
    else:
        raise ValueError(f'Unknown integrator: {name}')


######################################################################
# -- Domain and Solid Handling -- #
######################################################################

def clampToDomain(
    grid: MacGrid,
    positions: np.ndarray,
    insetFraction: float = const.domainInsetFraction,
) -> np.ndarray:
    '''
    Keep positions an inset fraction of a cell inside the domain.

    Parameters:
    -----------
    grid : MacGrid
        Simulation grid
    positions : np.ndarray
        Positions [m], shape (n, 3)
    insetFraction : float
        Inset from each wall in cells

    Returns:
    --------
    np.ndarray : Clamped positions (new array)
    '''
    inset = insetFraction * grid.cellSize
    return np.clip(positions, inset, grid.domainSize - inset)


def resolveSolidPenetration(
    grid: MacGrid,
    previous: np.ndarray,
    proposed: np.ndarray,
    pullbackFraction: float = const.solidPullbackFraction,
) -> np.ndarray:
    '''
    Pull particles that entered a solid cell back into their old cell.

    For each axis where the cell index changed, the coordinate is
    set pullbackFraction of a cell inside the previous cell, on the
    side of the face that was crossed:
        moved to a lower index:  (prevIndex + f) * cellSize
        moved to a higher index: (prevIndex + 1 - f) * cellSize

    Parameters:
    -----------
    grid : MacGrid
        Simulation grid
    previous : np.ndarray
        Positions before the substep, shape (n, 3)
    proposed : np.ndarray
        Positions after integration and clamping, shape (n, 3)
    pullbackFraction : float
        Distance from the crossed face, in cells

    Returns:
    --------
    np.ndarray : Corrected positions (new array)
    '''
    newIndices = grid.indicesFromPositions(proposed)
    inSolid = grid.solidMask[newIndices[:, 0], newIndices[:, 1], newIndices[:, 2]]

    result = proposed.copy()
    if not np.any(inSolid):
        return result

    cellSize = grid.cellSize
    previousIndices = grid.indicesFromPositions(previous[inSolid])
    enteredIndices = newIndices[inSolid]

    pulled = result[inSolid]
    pulled = np.where(
        enteredIndices < previousIndices,
        (previousIndices + pullbackFraction) * cellSize,
        pulled,
    )
    pulled = np.where(
        enteredIndices > previousIndices,
        (previousIndices + 1.0 - pullbackFraction) * cellSize,
        pulled,
    )
    result[inSolid] = pulled
    return result


######################################################################
# -- Advector -- #
######################################################################

class Advector:
    '''
    Moves particles through the grid velocity field with CFL substeps.

    Parameters:
    -----------
    integrator : PositionIntegrator | None
        Position integrator (defaults to MidpointIntegrator)
    '''

    def __init__(self, integrator: PositionIntegrator | None = None) -> None:
        self._integrator = integrator or MidpointIntegrator()

    @property
    def integrator(self) -> PositionIntegrator:
        return self._integrator

    def advect(
        self, grid: MacGrid, particles: ParticleSystem, dt: float, step: int
    ) -> tuple[int, float]:
        '''
        Advance particle positions over one frame.

        Parameters:
        -----------
        grid : MacGrid
            Grid holding the projected velocity field
        particles : ParticleSystem
            Particles, positions and previous positions updated in place
        dt : float
            Frame duration [s]
        step : int
            Frame index

        Returns:
        --------
        tuple[int, float] : (number of substeps, substep duration [s])
        '''
        stableStep = computeTimeStep(particles, grid.cellSize, dt)
        nSubsteps = computeSubsteps(dt, stableStep)
        substepDt = dt / nSubsteps

        if particles.nParticles == 0:
            return nSubsteps, substepDt

        for _ in range(nSubsteps):
            proposed = self._integrator.integrate(grid, particles, substepDt, step)
            proposed = clampToDomain(grid, proposed)
            proposed = resolveSolidPenetration(grid, particles.positions, proposed)

            particles.previousPositions[...] = particles.positions
            particles.positions[...] = proposed

        return nSubsteps, substepDt
