# -- FLIP Body Forces and Boundary Conditions -- #

'''
Gravity and solid / domain boundary conditions on the MAC grid.

Boundary conditions are free-slip solid walls expressed on faces:
the normal velocity on any face between a solid cell and its
neighbor is zero, and so is the normal velocity on every face of
the outer domain boundary. Reapplying them changes nothing.

References:
-----------
Bridson (2015) -- Fluid Simulation for Computer Graphics, ch. 5

Sean Bowman [02/05/2026]
'''

from __future__ import annotations

import numpy as np

from computationalFluids.FlipSim.grid.macGrid import MacGrid, axisSlice


def solidFaceMask(grid: MacGrid, axis: int) -> np.ndarray:
    '''
    Faces of one velocity component touching a solid cell.

    Outer-boundary faces are included only if their single
    neighboring cell is solid.

    Parameters:
    -----------
    grid : MacGrid
        Simulation grid
    axis : int
        Velocity component (0 = u, 1 = v, 2 = w)

    Returns:
    --------
    np.ndarray : Boolean mask with the face shape of the component
    '''
    solid = grid.solidMask
    n = grid.nCells[axis]
    mask = np.zeros(grid.faceShape(axis), dtype=bool)

    # face f lies between cells f-1 and f
    mask[axisSlice(axis, 1, n + 1)] |= solid
    mask[axisSlice(axis, 0, n)] |= solid
    return mask


def applyGravity(grid: MacGrid, gravity: float, dt: float, axis: int) -> None:
    '''
    Forward-Euler gravity on every face of the vertical component.

    Parameters:
    -----------
    grid : MacGrid
        Simulation grid
    gravity : float
        Gravitational acceleration magnitude [m/s^2], acting toward -axis
    dt : float
        Time step [s]
    axis : int
        Vertical axis (1 = y in 2D, 2 = z in 3D)
    '''
    grid.velocityField(axis)[...] -= dt * gravity


def applyBoundaryConditions(grid: MacGrid) -> None:
    '''
    Zero face velocities into solids and through the domain boundary.

    Parameters:
    -----------
    grid : MacGrid
        Simulation grid, face velocities modified in place
    '''
    for axis in range(3):
        field = grid.velocityField(axis)
        n = grid.nCells[axis]

        field[solidFaceMask(grid, axis)] = 0.0

        # Outer (system) boundaries
        field[axisSlice(axis, 0, 1)] = 0.0
        field[axisSlice(axis, n, n + 1)] = 0.0


class BoundaryHandler:
    '''
    External forces and boundary conditions for the FLIP stepper.

    Parameters:
    -----------
    gravity : float
        Gravitational acceleration magnitude [m/s^2]
    verticalAxis : int
        Axis gravity acts along: y (1) in 2D, z (2) in 3D
    '''

    def __init__(self, gravity: float, verticalAxis: int = 2) -> None:
        if verticalAxis not in (0, 1, 2):
            raise ValueError(f'Vertical axis must be 0, 1 or 2, got {verticalAxis}')
        self._gravity = gravity
        self._verticalAxis = verticalAxis

    @property
    def gravity(self) -> float:
        return self._gravity

    @property
    def verticalAxis(self) -> int:
        return self._verticalAxis

    def applyForces(self, grid: MacGrid, dt: float) -> None:
        '''Apply gravity to the vertical velocity component.'''
        applyGravity(grid, self._gravity, dt, self._verticalAxis)

    def enforceBoundary(self, grid: MacGrid) -> None:
        '''Zero solid and outer-boundary face velocities.'''
        applyBoundaryConditions(grid)
