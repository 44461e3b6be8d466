# -- Staggered MAC Grid -- #

'''
Marker-and-cell (MAC) grid for the FLIP pressure projection.

Velocity components live on cell faces and scalars (pressure,
cell classification) live at cell centers. The domain spans
[0, size] on each axis with cell (i, j, k) covering
[i*dx, (i+1)*dx) x [j*dy, (j+1)*dy) x [k*dz, (k+1)*dz).

Face locations:
    u(i, j, k) at (i*dx,       (j+0.5)*dy, (k+0.5)*dz)   shape (N+1, M, L)
    v(i, j, k) at ((i+0.5)*dx, j*dy,       (k+0.5)*dz)   shape (N, M+1, L)
    w(i, j, k) at ((i+0.5)*dx, (j+0.5)*dy, k*dz      )   shape (N, M, L+1)

A 2D simulation is a grid with a single layer of cells along z.
All fields are owned NumPy buffers indexed [i, j, k]; flat vectors
(pressure solve) use the ordering i + j*N + k*N*M.

References:
-----------
Harlow & Welch (1965) -- Numerical calculation of time-dependent
    viscous incompressible flow of fluid with free surface
Bridson (2015) -- Fluid Simulation for Computer Graphics, ch. 2

Sean Bowman [02/05/2026]
'''

from __future__ import annotations

from enum import IntEnum
from typing import NamedTuple

import numpy as np


######################################################################
# -- Cell Classification -- #
######################################################################

class CellType(IntEnum):
    '''Classification of a grid cell.'''

    AIR = 0
    FLUID = 1
    SOLID = 2


class GridShape(NamedTuple):
    '''Array extents along x, y and z.'''

    nx: int
    ny: int
    nz: int


def axisSlice(axis: int, start: int | None, stop: int | None) -> tuple[slice, slice, slice]:
    '''
    Index tuple selecting [start:stop] along one axis of a 3D array.

    Parameters:
    -----------
    axis : int
        Axis to slice (0, 1 or 2)
    start : int | None
        First index (inclusive)
    stop : int | None
        Last index (exclusive)

    Returns:
    --------
    tuple[slice, slice, slice] : Index usable as array[...]
    '''
    index = [slice(None), slice(None), slice(None)]
    index[axis] = slice(start, stop)
    return tuple(index)


######################################################################
# -- MAC Grid -- #
######################################################################

class MacGrid:
    '''
    Staggered grid storing face velocities, pressure and cell types.

    The per-cell pressure diagonal (count of in-domain, non-solid
    neighbors) depends only on the solid layout. It is recomputed
    lazily after any change to the solid cells, so solids may be
    added at any point before stepping.

    Parameters:
    -----------
    nCells : tuple[int, int, int]
        Number of cells (N, M, L) along x, y, z
    domainSize : tuple[float, float, float]
        Physical extent of the domain along x, y, z [m]
    '''

    def __init__(
        self,
        nCells: tuple[int, int, int],
        domainSize: tuple[float, float, float],
    ) -> None:
        if len(nCells) != 3 or min(int(n) for n in nCells) < 1:
            raise ValueError(f'Grid needs three positive cell counts, got {nCells}')

        size = np.asarray(domainSize, dtype=float)
        if size.shape != (3,) or np.any(size <= 0.0):
            raise ValueError(f'Domain size must be three positive lengths, got {domainSize}')

        self._nCells = GridShape(*(int(n) for n in nCells))
        self._domainSize = size.copy()
        self._cellSize = size / np.array(self._nCells, dtype=float)

        N, M, L = self._nCells
        self._faceShapes = (
            GridShape(N + 1, M, L),
            GridShape(N, M + 1, L),
            GridShape(N, M, L + 1),
        )

        self._velocity = [np.zeros(shape) for shape in self._faceShapes]
        self._velocityStar = [np.zeros(shape) for shape in self._faceShapes]
        self._weights = [np.zeros(shape) for shape in self._faceShapes]
        self._pressure = np.zeros(self._nCells)
        self._cellTypes = np.full(self._nCells, CellType.AIR, dtype=np.int8)

        # Extrapolation scratch buffers, reused every frame
        self._visited = [np.zeros(shape, dtype=bool) for shape in self._faceShapes]
        self._counter = [np.zeros(shape, dtype=np.int32) for shape in self._faceShapes]

        self._diagonal = np.zeros(self._nCells)
        self._diagonalDirty = True

    ######################################################################
    # -- Geometry Queries -- #
    ######################################################################

    @property
    def nCells(self) -> GridShape:
        '''Cell counts (N, M, L).'''
        return self._nCells

    @property
    def nCellsTotal(self) -> int:
        '''Total number of cells N*M*L.'''
        N, M, L = self._nCells
        return N * M * L

    @property
    def domainSize(self) -> np.ndarray:
        '''Domain extent per axis [m].'''
        return self._domainSize.copy()

    @property
    def cellSize(self) -> np.ndarray:
        '''Cell size per axis [m].'''
        return self._cellSize.copy()

    @property
    def dimensions(self) -> int:
        '''2 for a single-layer grid along z, else 3.'''
        return 2 if self._nCells.nz == 1 else 3

    def faceShape(self, axis: int) -> GridShape:
        '''Shape of the face array holding the velocity component on an axis.'''
        return self._faceShapes[axis]

    def cellLinearIndex(self, i: int, j: int, k: int) -> int:
        '''Flat index i + j*N + k*N*M of a cell.'''
        self._checkIndex(self._nCells, i, j, k, 'cell')
        N, M, _ = self._nCells
        return i + j * N + k * N * M

    ######################################################################
    # -- Field Arrays -- #
    ######################################################################

    @property
    def u(self) -> np.ndarray:
        '''x-face velocities, shape (N+1, M, L).'''
        return self._velocity[0]

    @property
    def v(self) -> np.ndarray:
        '''y-face velocities, shape (N, M+1, L).'''
        return self._velocity[1]

    @property
    def w(self) -> np.ndarray:
        '''z-face velocities, shape (N, M, L+1).'''
        return self._velocity[2]

    @property
    def uStar(self) -> np.ndarray:
        return self._velocityStar[0]

    @property
    def vStar(self) -> np.ndarray:
        return self._velocityStar[1]

    @property
    def wStar(self) -> np.ndarray:
        return self._velocityStar[2]

    @property
    def pressure(self) -> np.ndarray:
        '''Cell-centered pressure, shape (N, M, L).'''
        return self._pressure

    @property
    def cellTypes(self) -> np.ndarray:
        '''Read-only view of the cell classification.'''
        view = self._cellTypes.view()
        view.flags.writeable = False
        return view

    def velocityField(self, axis: int, useStar: bool = False) -> np.ndarray:
        '''
        Face velocity array for one component.

        Parameters:
        -----------
        axis : int
            Velocity component (0 = u, 1 = v, 2 = w)
        useStar : bool
            Return the pre-force snapshot instead of the current field

        Returns:
        --------
        np.ndarray : The grid's own buffer (mutations are visible)
        '''
        return self._velocityStar[axis] if useStar else self._velocity[axis]

    def weightField(self, axis: int) -> np.ndarray:
        '''Kernel weight accumulator for one velocity component.'''
        return self._weights[axis]

    def visitedBuffer(self, axis: int) -> np.ndarray:
        '''Reusable boolean scratch array with the face shape of an axis.'''
        return self._visited[axis]

    def counterBuffer(self, axis: int) -> np.ndarray:
        '''Reusable integer scratch array with the face shape of an axis.'''
        return self._counter[axis]

    ######################################################################
    # -- Bounds-Checked Accessors -- #
    ######################################################################

    @staticmethod
    def _checkIndex(shape: GridShape, i: int, j: int, k: int, name: str) -> None:
        if not (0 <= i < shape[0] and 0 <= j < shape[1] and 0 <= k < shape[2]):
            raise IndexError(
                f'{name} index ({i}, {j}, {k}) out of bounds for shape {tuple(shape)}'
            )

    def getFace(self, axis: int, i: int, j: int, k: int) -> float:
        '''Velocity component on face (i, j, k) of the given axis.'''
        self._checkIndex(self._faceShapes[axis], i, j, k, 'uvw'[axis])
        return float(self._velocity[axis][i, j, k])

    def setFace(self, axis: int, i: int, j: int, k: int, value: float) -> None:
        '''Set the velocity component on face (i, j, k) of the given axis.'''
        self._checkIndex(self._faceShapes[axis], i, j, k, 'uvw'[axis])
        self._velocity[axis][i, j, k] = value

    def getFaceWeight(self, axis: int, i: int, j: int, k: int) -> float:
        '''Accumulated kernel weight on face (i, j, k) of the given axis.'''
        self._checkIndex(self._faceShapes[axis], i, j, k, 'weight ' + 'uvw'[axis])
        return float(self._weights[axis][i, j, k])

    def setFaceWeight(self, axis: int, i: int, j: int, k: int, value: float) -> None:
        self._checkIndex(self._faceShapes[axis], i, j, k, 'weight ' + 'uvw'[axis])
        self._weights[axis][i, j, k] = value

    def getU(self, i: int, j: int, k: int) -> float:
        return self.getFace(0, i, j, k)

    def setU(self, i: int, j: int, k: int, value: float) -> None:
        self.setFace(0, i, j, k, value)

    def getV(self, i: int, j: int, k: int) -> float:
        return self.getFace(1, i, j, k)

    def setV(self, i: int, j: int, k: int, value: float) -> None:
        self.setFace(1, i, j, k, value)

    def getW(self, i: int, j: int, k: int) -> float:
        return self.getFace(2, i, j, k)

    def setW(self, i: int, j: int, k: int, value: float) -> None:
        self.setFace(2, i, j, k, value)

    def getPressure(self, i: int, j: int, k: int) -> float:
        self._checkIndex(self._nCells, i, j, k, 'pressure')
        return float(self._pressure[i, j, k])

    def setPressure(self, i: int, j: int, k: int, value: float) -> None:
        self._checkIndex(self._nCells, i, j, k, 'pressure')
        self._pressure[i, j, k] = value

    ######################################################################
    # -- Bulk Operations -- #
    ######################################################################

    def setVelocitiesToZero(self) -> None:
        '''Zero all three face velocity arrays.'''
        for field in self._velocity:
            field.fill(0.0)

    def setWeightsToZero(self) -> None:
        '''Zero all three kernel weight accumulators.'''
        for field in self._weights:
            field.fill(0.0)

    def setPressureFromVector(self, pressure: np.ndarray) -> None:
        '''
        Assign all cell pressures from a flat vector.

        Parameters:
        -----------
        pressure : np.ndarray
            Pressures ordered by i + j*N + k*N*M, length N*M*L
        '''
        pressure = np.asarray(pressure, dtype=float)
        if pressure.size != self.nCellsTotal:
            raise ValueError(
                f'Pressure vector has {pressure.size} entries, grid has {self.nCellsTotal} cells'
            )
        self._pressure[...] = pressure.reshape(self._nCells, order='F')

    def storeStarVelocities(self) -> None:
        '''Snapshot the current face velocities as the star field.'''
        for current, star in zip(self._velocity, self._velocityStar):
            np.copyto(star, current)

    ######################################################################
    # -- Coordinate Mapping -- #
    ######################################################################

    def indexFromCoord(self, x: float, y: float, z: float) -> tuple[int, int, int]:
        '''
        Cell index containing a point.

        Parameters:
        -----------
        x, y, z : float
            Point coordinates [m]

        Returns:
        --------
        tuple[int, int, int] : Cell index (i, j, k)

        Raises:
        -------
        ValueError : If the point lies outside the domain
        '''
        index = self.indicesFromPositions(np.array([[x, y, z]], dtype=float))[0]
        return (int(index[0]), int(index[1]), int(index[2]))

    def indicesFromPositions(self, positions: np.ndarray) -> np.ndarray:
        '''
        Vectorized cell lookup for an array of points.

        A coordinate equal to the domain size maps to the last cell.

        Parameters:
        -----------
        positions : np.ndarray
            Points [m], shape (n, 3)

        Returns:
        --------
        np.ndarray : Integer cell indices, shape (n, 3)

        Raises:
        -------
        ValueError : If any point lies outside the domain or is not finite
        '''
        positions = np.asarray(positions, dtype=float)
        outside = ~np.isfinite(positions) | (positions < 0.0) | (positions > self._domainSize)
        if np.any(outside):
            bad = positions[np.any(outside, axis=1)][0]
            raise ValueError(
                f'Position {bad.tolist()} lies outside the domain [0, {self._domainSize.tolist()}]'
            )

        indices = np.floor(positions / self._cellSize).astype(np.int64)
        np.minimum(indices, np.array(self._nCells) - 1, out=indices)
        return indices

    def faceCoordinates(self, axis: int, indices: np.ndarray) -> np.ndarray:
        '''
        World positions of faces of one velocity component.

        Parameters:
        -----------
        axis : int
            Velocity component (0 = u, 1 = v, 2 = w)
        indices : np.ndarray
            Integer face indices, shape (n, 3)

        Returns:
        --------
        np.ndarray : Face positions [m], shape (n, 3)
        '''
        offsets = np.full(3, 0.5)
        offsets[axis] = 0.0
        return (np.asarray(indices, dtype=float) + offsets) * self._cellSize

    ######################################################################
    # -- Interpolation -- #
    ######################################################################

    def interpolate(
        self,
        axis: int,
        positions: np.ndarray,
        useStar: bool = False,
    ) -> np.ndarray:
        '''
        Trilinear interpolation of one staggered velocity component.

        The fractional face index is x/dx along the component's own
        axis and y/dy - 0.5 along cell-centered axes. It is clamped to
        the face array, so points in the outer half cell take the
        nearest face value. On a single-layer axis the scheme reduces
        to bilinear.

        Parameters:
        -----------
        axis : int
            Velocity component (0 = u, 1 = v, 2 = w)
        positions : np.ndarray
            Query points [m], shape (n, 3)
        useStar : bool
            Interpolate the pre-force snapshot instead of the current field

        Returns:
        --------
        np.ndarray : Interpolated values, shape (n,)
        '''
        field = self.velocityField(axis, useStar)
        shape = field.shape
        positions = np.atleast_2d(np.asarray(positions, dtype=float))

        offsets = np.full(3, 0.5)
        offsets[axis] = 0.0
        fractional = positions / self._cellSize - offsets

        lower = np.empty(fractional.shape, dtype=np.int64)
        upper = np.empty(fractional.shape, dtype=np.int64)
        t = np.empty_like(fractional)
        for d in range(3):
            last = shape[d] - 1
            g = np.clip(fractional[:, d], 0.0, float(last))
            base = np.minimum(np.floor(g).astype(np.int64), max(last - 1, 0))
            lower[:, d] = base
            upper[:, d] = np.minimum(base + 1, last)
            t[:, d] = g - base

        result = np.zeros(positions.shape[0])
        for iIdx, wx in ((lower[:, 0], 1.0 - t[:, 0]), (upper[:, 0], t[:, 0])):
            for jIdx, wy in ((lower[:, 1], 1.0 - t[:, 1]), (upper[:, 1], t[:, 1])):
                for kIdx, wz in ((lower[:, 2], 1.0 - t[:, 2]), (upper[:, 2], t[:, 2])):
                    result += wx * wy * wz * field[iIdx, jIdx, kIdx]

        return result

    def interpolateVelocity(self, positions: np.ndarray, useStar: bool = False) -> np.ndarray:
        '''
        Interpolate all three velocity components.

        Parameters:
        -----------
        positions : np.ndarray
            Query points [m], shape (n, 3)
        useStar : bool
            Interpolate the pre-force snapshot instead of the current field

        Returns:
        --------
        np.ndarray : Velocities [m/s], shape (n, 3)
        '''
        return np.column_stack([
            self.interpolate(axis, positions, useStar) for axis in range(3)
        ])

    ######################################################################
    # -- Cell Classification -- #
    ######################################################################

    def isSolid(self, i: int, j: int, k: int) -> bool:
        self._checkIndex(self._nCells, i, j, k, 'cell')
        return bool(self._cellTypes[i, j, k] == CellType.SOLID)

    def isFluid(self, i: int, j: int, k: int) -> bool:
        self._checkIndex(self._nCells, i, j, k, 'cell')
        return bool(self._cellTypes[i, j, k] == CellType.FLUID)

    def isAir(self, i: int, j: int, k: int) -> bool:
        self._checkIndex(self._nCells, i, j, k, 'cell')
        return bool(self._cellTypes[i, j, k] == CellType.AIR)

    def setSolid(self, i: int, j: int, k: int) -> None:
        '''Mark a cell solid. Invalidates the pressure diagonal.'''
        self._checkIndex(self._nCells, i, j, k, 'cell')
        self._cellTypes[i, j, k] = CellType.SOLID
        self._diagonalDirty = True

    def setFluid(self, i: int, j: int, k: int) -> None:
        '''Mark a non-solid cell fluid.'''
        self._checkIndex(self._nCells, i, j, k, 'cell')
        if self._cellTypes[i, j, k] == CellType.SOLID:
            raise ValueError(f'Cell ({i}, {j}, {k}) is solid and cannot hold fluid')
        self._cellTypes[i, j, k] = CellType.FLUID

    def markFluidCells(self, indices: np.ndarray) -> None:
        '''
        Mark the cells at the given indices fluid, skipping solid cells.

        Parameters:
        -----------
        indices : np.ndarray
            Integer cell indices, shape (n, 3)
        '''
        if len(indices) == 0:
            return
        i, j, k = np.asarray(indices).T
        notSolid = self._cellTypes[i, j, k] != CellType.SOLID
        self._cellTypes[i[notSolid], j[notSolid], k[notSolid]] = CellType.FLUID

    def resetFluid(self) -> None:
        '''Reclassify every fluid cell as air.'''
        self._cellTypes[self._cellTypes == CellType.FLUID] = CellType.AIR

    def addSolidBox(self, lowerCorner: np.ndarray, upperCorner: np.ndarray) -> int:
        '''
        Mark every cell whose center lies inside an axis-aligned box solid.

        Parameters:
        -----------
        lowerCorner : np.ndarray
            Minimum corner of the box [m]
        upperCorner : np.ndarray
            Maximum corner of the box [m]

        Returns:
        --------
        int : Number of cells inside the box
        '''
        lowerCorner = np.asarray(lowerCorner, dtype=float)
        upperCorner = np.asarray(upperCorner, dtype=float)

        centers = [(np.arange(n) + 0.5) * d for n, d in zip(self._nCells, self._cellSize)]
        inside = [
            (c >= lowerCorner[a]) & (c <= upperCorner[a]) for a, c in enumerate(centers)
        ]
        mask = inside[0][:, None, None] & inside[1][None, :, None] & inside[2][None, None, :]

        self._cellTypes[mask] = CellType.SOLID
        self._diagonalDirty = True
        return int(np.count_nonzero(mask))

    def addSolidWalls(
        self,
        thickness: int = 1,
        openTop: bool = True,
        verticalAxis: int | None = None,
    ) -> None:
        '''
        Line the domain with solid cells, like an open tank.

        Axes with a single cell layer (the z axis of a 2D grid)
        get no walls.

        Parameters:
        -----------
        thickness : int
            Wall thickness in cells
        openTop : bool
            Leave the upper face of the vertical axis open
        verticalAxis : int | None
            Vertical axis (defaults to z in 3D, y in 2D)
        '''
        if verticalAxis is None:
            verticalAxis = 2 if self.dimensions == 3 else 1

        for axis in range(3):
            n = self._nCells[axis]
            if n == 1:
                continue
            self._cellTypes[axisSlice(axis, 0, thickness)] = CellType.SOLID
            if not (openTop and axis == verticalAxis):
                self._cellTypes[axisSlice(axis, n - thickness, n)] = CellType.SOLID

        self._diagonalDirty = True

    @property
    def solidMask(self) -> np.ndarray:
        return self._cellTypes == CellType.SOLID

    @property
    def fluidMask(self) -> np.ndarray:
        return self._cellTypes == CellType.FLUID

    @property
    def airMask(self) -> np.ndarray:
        return self._cellTypes == CellType.AIR

    @property
    def nFluidCells(self) -> int:
        return int(np.count_nonzero(self._cellTypes == CellType.FLUID))

    ######################################################################
    # -- Pressure Diagonal -- #
    ######################################################################

    @property
    def diagonal(self) -> np.ndarray:
        '''
        Number of in-domain, non-solid neighbors of every cell.

        Used directly as the pressure-matrix diagonal. Cells outside
        the domain count as solid.

        Returns:
        --------
        np.ndarray : Neighbor counts, shape (N, M, L)
        '''
        if self._diagonalDirty:
            self._diagonal = self._computeDiagonal()
            self._diagonalDirty = False
        return self._diagonal

    def _computeDiagonal(self) -> np.ndarray:
        nonSolid = (self._cellTypes != CellType.SOLID).astype(float)
        diagonal = np.zeros(self._nCells)

        for axis in range(3):
            n = self._nCells[axis]
            if n < 2:
                continue
            lower = axisSlice(axis, 0, n - 1)
            upper = axisSlice(axis, 1, n)
            diagonal[lower] += nonSolid[upper]
            diagonal[upper] += nonSolid[lower]

        return diagonal

    ######################################################################
    # -- Display / Diagnostics -- #
    ######################################################################

    def cellCenters(self, mask: np.ndarray) -> np.ndarray:
        '''Centers [m] of the cells selected by a boolean mask, shape (n, 3).'''
        return (np.argwhere(mask) + 0.5) * self._cellSize

    def fluidCellCenters(self) -> np.ndarray:
        return self.cellCenters(self.fluidMask)

    def solidCellCenters(self) -> np.ndarray:
        return self.cellCenters(self.solidMask)

    def divergence(self) -> np.ndarray:
        '''
        Discrete divergence of the face velocities per cell.

        div = (u(i+1) - u(i)) + (v(j+1) - v(j)) + (w(k+1) - w(k)),
        not divided by the cell size.

        Returns:
        --------
        np.ndarray : Divergence, shape (N, M, L)
        '''
        return sum(np.diff(field, axis=axis) for axis, field in enumerate(self._velocity))
