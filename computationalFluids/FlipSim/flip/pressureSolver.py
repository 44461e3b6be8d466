# -- FLIP Pressure Projection -- #

'''
Pressure projection making the grid velocity field divergence-free.

Solves the discrete Poisson equation A p = d over all N*M*L cells
(flat ordering i + j*N + k*N*M) and subtracts the pressure gradient
from the face velocities.

Matrix A:
    A[c, c] = number of in-domain, non-solid neighbors of c
    A[c, n] = A[n, c] = -1 for each axis-adjacent fluid pair (c, n)

Non-fluid cells keep a diagonal-only row with zero right-hand side,
so their pressure is zero (air) or meaningless (solid).

Right-hand side (fluid cells only):
    d = rho * dx * (-div) / dt

where faces into solid cells or through the domain boundary take
the solid velocity (zero) in the divergence.

Velocity update on every interior face not touching a solid:
    u(i, j, k) -= dt / (rho * dx) * (p(i, j, k) - p(i-1, j, k))

Solve: SciPy conjugate gradient, preconditioned by an incomplete LU
factorization (Jacobi if the factorization fails). Hitting the
iteration budget is reported, not raised.

References:
-----------
Bridson (2015) -- Fluid Simulation for Computer Graphics, ch. 5
Saad (2003) -- Iterative Methods for Sparse Linear Systems, ch. 10

Sean Bowman [02/05/2026]
'''

from __future__ import annotations

import numpy as np
import scipy.sparse as sp
import scipy.sparse.linalg as spla

from computationalFluids.FlipSim import constants as const
from computationalFluids.FlipSim.flip.boundaryHandling import solidFaceMask
from computationalFluids.FlipSim.flip.protocols import PressureSolveResult
from computationalFluids.FlipSim.grid.macGrid import MacGrid, GridShape, axisSlice


######################################################################
# -- System Assembly -- #
######################################################################

def cellFlatIndex(nCells: GridShape) -> np.ndarray:
    '''
    Flat system index i + j*N + k*N*M of every cell.

    Parameters:
    -----------
    nCells : GridShape
        Cell counts (N, M, L)

    Returns:
    --------
    np.ndarray : Integer indices, shape (N, M, L)
    '''
    i, j, k = np.indices(nCells)
    return np.ravel_multi_index((i, j, k), nCells, order='F')


def assembleMatrix(grid: MacGrid) -> sp.csr_matrix:
    '''
    Assemble the symmetric pressure matrix A.

    Parameters:
    -----------
    grid : MacGrid
        Grid with current cell classification

    Returns:
    --------
    sp.csr_matrix : A, shape (N*M*L, N*M*L)
    '''
    nCells = grid.nCells
    nTotal = grid.nCellsTotal
    flatIndex = cellFlatIndex(nCells)
    fluid = grid.fluidMask

    rows = [flatIndex.ravel()]
    cols = [flatIndex.ravel()]
    data = [grid.diagonal.ravel()]

    for axis in range(3):
        n = nCells[axis]
        if n < 2:
            continue
        lower = axisSlice(axis, 0, n - 1)
        upper = axisSlice(axis, 1, n)

        pairs = fluid[lower] & fluid[upper]
        first = flatIndex[lower][pairs]
        second = flatIndex[upper][pairs]
        offDiagonal = -np.ones(first.size)

        # Mirrored entries keep A symmetric
        rows.extend([first, second])
        cols.extend([second, first])
        data.extend([offDiagonal, offDiagonal])

    return sp.coo_matrix(
        (np.concatenate(data), (np.concatenate(rows), np.concatenate(cols))),
        shape=(nTotal, nTotal),
    ).tocsr()


def assembleRhs(grid: MacGrid, density: float, dt: float) -> np.ndarray:
    '''
    Assemble the pressure right-hand side d.

    For each fluid cell:
        d = rho * dx * (-div) / dt
    with faces flanked by a solid cell or lying on the domain
    boundary contributing the solid velocity (zero). Non-fluid
    cells get zero.

    Parameters:
    -----------
    grid : MacGrid
        Grid with forces and boundary conditions applied
    density : float
        Fluid density rho [kg/m^3]
    dt : float
        Time step [s]

    Returns:
    --------
    np.ndarray : d ordered i + j*N + k*N*M, shape (N*M*L,)
    '''
    if dt <= 0.0:
        raise ValueError(f'Time step must be positive, got {dt}')

    nCells = grid.nCells
    solid = grid.solidMask
    negativeDivergence = np.zeros(nCells)

    for axis in range(3):
        n = nCells[axis]
        field = grid.velocityField(axis)
        upperFaces = field[axisSlice(axis, 1, n + 1)]
        lowerFaces = field[axisSlice(axis, 0, n)]

        # Neighbor across the upper / lower face is solid or outside
        upperBlocked = np.ones(nCells, dtype=bool)
        upperBlocked[axisSlice(axis, 0, n - 1)] = solid[axisSlice(axis, 1, n)]
        lowerBlocked = np.ones(nCells, dtype=bool)
        lowerBlocked[axisSlice(axis, 1, n)] = solid[axisSlice(axis, 0, n - 1)]

        negativeDivergence -= np.where(upperBlocked, 0.0, upperFaces)
        negativeDivergence += np.where(lowerBlocked, 0.0, lowerFaces)

    dx = float(grid.cellSize[0])
    rhs = density * dx * negativeDivergence / dt
    rhs[~grid.fluidMask] = 0.0
    return rhs.ravel(order='F')


######################################################################
# -- Linear Solve -- #
######################################################################

def _buildPreconditioner(
    matrix: sp.csr_matrix, preconditioner: str
) -> tuple[spla.LinearOperator | None, str]:
    '''
    Build the CG preconditioner, falling back to Jacobi if ILU fails.

    Returns:
    --------
    tuple[LinearOperator | None, str] : Operator and the name actually used
    '''
    if preconditioner == 'none':
        return None, 'none'

    if preconditioner == 'ilu':
        try:
            ilu = spla.spilu(matrix.tocsc())
            return spla.LinearOperator(matrix.shape, ilu.solve), 'ilu'
        except RuntimeError:
            preconditioner = 'jacobi'

    if preconditioner == 'jacobi':
        inverseDiagonal = 1.0 / matrix.diagonal()
        return spla.LinearOperator(matrix.shape, lambda x: inverseDiagonal * x), 'jacobi'

    raise ValueError(f'Unknown preconditioner: {preconditioner}')


def solvePressure(
    matrix: sp.csr_matrix,
    rhs: np.ndarray,
    maxIterations: int = const.maxPressureIterations,
    tolerance: float = const.pressureTolerance,
    preconditioner: str = 'ilu',
) -> PressureSolveResult:
    '''
    Solve A p = d with preconditioned conjugate gradient.

    Rows with a zero diagonal (cells with no non-solid neighbor)
    are replaced by identity rows with zero right-hand side for the
    solve. Exceeding the iteration budget is not an error; the last
    iterate is returned with converged = False.

    Parameters:
    -----------
    matrix : sp.csr_matrix
        Pressure matrix A
    rhs : np.ndarray
        Right-hand side d
    maxIterations : int
        Iteration budget
    tolerance : float
        Relative residual tolerance
    preconditioner : str
        'ilu', 'jacobi' or 'none'

    Returns:
    --------
    PressureSolveResult : Pressure and convergence diagnostics
    '''
    rhs = np.array(rhs, dtype=float)

    degenerate = matrix.diagonal() == 0.0
    if np.any(degenerate):
        matrix = (matrix + sp.diags(degenerate.astype(float))).tocsr()
        rhs[degenerate] = 0.0

    rhsNorm = float(np.linalg.norm(rhs))
    if rhsNorm == 0.0:
        return PressureSolveResult(
            pressure=np.zeros_like(rhs),
            iterations=0,
            converged=True,
            residual=0.0,
            preconditioner=preconditioner,
        )

    operator, used = _buildPreconditioner(matrix, preconditioner)

    iterations = 0

    def countIteration(xk: np.ndarray) -> None:
        nonlocal iterations
        iterations += 1

    pressure, info = spla.cg(
        matrix,
        rhs,
        rtol=tolerance,
        atol=0.0,
        maxiter=maxIterations,
        M=operator,
        callback=countIteration,
    )

    residual = float(np.linalg.norm(rhs - matrix @ pressure)) / rhsNorm

    return PressureSolveResult(
        pressure=pressure,
        iterations=iterations,
        converged=(info == 0),
        residual=residual,
        preconditioner=used,
    )


######################################################################
# -- Velocity Correction -- #
######################################################################

def applyPressureGradient(grid: MacGrid, density: float, dt: float) -> None:
    '''
    Subtract the pressure gradient from interior face velocities.

    Faces on the first and last index of each axis are not touched,
    nor are faces touching a solid cell; both stay at the zero set
    by the boundary conditions.

    Parameters:
    -----------
    grid : MacGrid
        Grid holding the solved pressure
    density : float
        Fluid density rho [kg/m^3]
    dt : float
        Time step [s]
    '''
    scale = dt / (density * float(grid.cellSize[0]))
    pressure = grid.pressure

    for axis in range(3):
        n = grid.nCells[axis]
        if n < 2:
            continue
        interior = axisSlice(axis, 1, n)
        gradient = pressure[axisSlice(axis, 1, n)] - pressure[axisSlice(axis, 0, n - 1)]
        blocked = solidFaceMask(grid, axis)[interior]

        grid.velocityField(axis)[interior] -= scale * np.where(blocked, 0.0, gradient)


######################################################################
# -- Pressure Solver -- #
######################################################################

class PressureSolver:
    '''
    Assemble, solve and apply the pressure projection.

    Parameters:
    -----------
    density : float
        Fluid density rho [kg/m^3]
    maxIterations : int
        CG iteration budget per solve
    tolerance : float
        Relative residual tolerance
    preconditioner : str
        'ilu', 'jacobi' or 'none'
    '''

    def __init__(
        self,
        density: float,
        maxIterations: int = const.maxPressureIterations,
        tolerance: float = const.pressureTolerance,
        preconditioner: str = 'ilu',
    ) -> None:
        if density <= 0.0:
            raise ValueError(f'Density must be positive, got {density}')
        self._density = density
        self._maxIterations = maxIterations
        self._tolerance = tolerance
        self._preconditioner = preconditioner

    @property
    def density(self) -> float:
        return self._density

    def project(self, grid: MacGrid, dt: float) -> PressureSolveResult:
        '''
        Make the grid velocity field divergence-free over fluid cells.

        Parameters:
        -----------
        grid : MacGrid
            Grid after forces and boundary conditions
        dt : float
            Time step [s]

        Returns:
        --------
        PressureSolveResult : Solve diagnostics
        '''
        matrix = assembleMatrix(grid)
        rhs = assembleRhs(grid, self._density, dt)

        result = solvePressure(
            matrix,
            rhs,
            maxIterations=self._maxIterations,
            tolerance=self._tolerance,
            preconditioner=self._preconditioner,
        )

        grid.setPressureFromVector(result.pressure)
        applyPressureGradient(grid, self._density, dt)
        return result
