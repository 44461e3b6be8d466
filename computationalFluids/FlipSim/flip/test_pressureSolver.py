# -- Pressure Projection Tests -- #

'''
Tests for the pressure matrix, right-hand side, CG solve and the
divergence-free velocity correction.

Sean Bowman [02/05/2026]
'''

from __future__ import annotations

import numpy as np
import pytest
import scipy.sparse as sp

from computationalFluids.FlipSim.flip.boundaryHandling import applyBoundaryConditions
from computationalFluids.FlipSim.flip.pressureSolver import (
    PressureSolver,
    assembleMatrix,
    assembleRhs,
    cellFlatIndex,
    solvePressure,
)
from computationalFluids.FlipSim.grid.macGrid import MacGrid


def _walledGridWithFluid(nCells: int = 6, seed: int = 0) -> MacGrid:
    '''Open tank filled below the top layer, random face velocities.'''
    grid = MacGrid((nCells, nCells, nCells), (1.0, 1.0, 1.0))
    grid.addSolidWalls()

    cells = np.argwhere(~grid.solidMask)
    grid.markFluidCells(cells[cells[:, 2] < nCells - 1])

    rng = np.random.default_rng(seed)
    for axis in range(3):
        grid.velocityField(axis)[...] = rng.normal(size=grid.faceShape(axis))
    applyBoundaryConditions(grid)
    return grid


######################################################################
# -- Assembly -- #
######################################################################

def testCellFlatIndexOrdering():
    flat = cellFlatIndex((2, 3, 4))
    assert flat[1, 0, 0] == 1
    assert flat[0, 1, 0] == 2
    assert flat[0, 0, 1] == 6
    assert flat[1, 2, 3] == 1 + 2 * 2 + 3 * 6


def testMatrixSymmetricWithGridDiagonal():
    grid = _walledGridWithFluid()
    matrix = assembleMatrix(grid)

    assert matrix.shape == (216, 216)
    assert abs(matrix - matrix.T).max() == 0.0
    assert np.array_equal(matrix.diagonal(), grid.diagonal.ravel(order='F'))


def testMatrixOffDiagonalCouplesFluidPairsOnly():
    grid = MacGrid((3, 3, 3), (1.0, 1.0, 1.0))
    grid.setFluid(1, 1, 1)
    grid.setFluid(2, 1, 1)
    matrix = assembleMatrix(grid).toarray()

    a = grid.cellLinearIndex(1, 1, 1)
    b = grid.cellLinearIndex(2, 1, 1)
    c = grid.cellLinearIndex(1, 2, 1)

    assert matrix[a, b] == -1.0 and matrix[b, a] == -1.0
    # (1, 2, 1) is air
    assert matrix[a, c] == 0.0
    assert np.count_nonzero(matrix - np.diag(np.diag(matrix))) == 2


def testRhsZeroOutsideFluid():
    grid = _walledGridWithFluid(seed=2)
    rhs = assembleRhs(grid, 1000.0, 0.01)
    fluidFlat = grid.fluidMask.ravel(order='F')

    assert np.all(rhs[~fluidFlat] == 0.0)
    assert np.any(rhs[fluidFlat] != 0.0)


def testRhsMatchesNegativeDivergence():
    grid = MacGrid((3, 3, 3), (3.0, 3.0, 3.0))
    grid.setFluid(1, 1, 1)
    grid.setU(2, 1, 1, 1.0)

    rhs = assembleRhs(grid, 1000.0, 0.5)
    assert rhs[grid.cellLinearIndex(1, 1, 1)] == pytest.approx(-2000.0)


def testRhsNonPositiveTimeStepRaises():
    grid = MacGrid((3, 3, 3), (1.0, 1.0, 1.0))
    with pytest.raises(ValueError):
        assembleRhs(grid, 1000.0, 0.0)


######################################################################
# -- Linear Solve -- #
######################################################################

def testZeroRhsReturnsImmediately():
    matrix = sp.identity(4, format='csr') * 2.0
    result = solvePressure(matrix, np.zeros(4))

    assert result.converged
    assert result.iterations == 0
    assert np.all(result.pressure == 0.0)


def testZeroDiagonalRowsRegularized():
    matrix = sp.diags([0.0, 2.0]).tocsr()
    result = solvePressure(matrix, np.array([5.0, 4.0]), preconditioner='jacobi')

    assert result.converged
    assert np.allclose(result.pressure, [0.0, 2.0])


def testJacobiPreconditioner():
    grid = _walledGridWithFluid(nCells=5, seed=3)
    result = solvePressure(
        assembleMatrix(grid),
        assembleRhs(grid, 1000.0, 0.01),
        maxIterations=500,
        tolerance=1e-10,
        preconditioner='jacobi',
    )

    assert result.preconditioner == 'jacobi'
    assert result.converged
    assert result.residual < 1e-8


def testUnknownPreconditionerRaises():
    matrix = sp.identity(3, format='csr')
    with pytest.raises(ValueError):
        solvePressure(matrix, np.ones(3), preconditioner='multigrid')


def testNonConvergenceIsReportedNotRaised():
    grid = _walledGridWithFluid(seed=5)
    result = solvePressure(
        assembleMatrix(grid),
        assembleRhs(grid, 1000.0, 0.01),
        maxIterations=1,
        tolerance=1e-14,
        preconditioner='none',
    )

    assert not result.converged
    assert result.iterations == 1
    assert result.residual > 1e-14


######################################################################
# -- Projection -- #
######################################################################

def testProjectionIsDivergenceFree():
    grid = _walledGridWithFluid(seed=7)
    assert np.abs(grid.divergence()[grid.fluidMask]).max() > 1e-2

    solver = PressureSolver(1000.0, maxIterations=500, tolerance=1e-10)
    result = solver.project(grid, 0.01)

    assert result.converged
    assert np.abs(grid.divergence()[grid.fluidMask]).max() < 1e-6


def testProjectionKeepsSolidFacesZero():
    grid = _walledGridWithFluid(seed=8)
    PressureSolver(1000.0, maxIterations=500, tolerance=1e-10).project(grid, 0.01)

    assert np.all(grid.u[0] == 0.0) and np.all(grid.u[1] == 0.0)
    assert np.all(grid.v[:, -1] == 0.0) and np.all(grid.v[:, -2] == 0.0)
    assert np.all(grid.w[:, :, 1] == 0.0)


def testSingleFluidCellProjection():
    grid = MacGrid((3, 3, 3), (3.0, 3.0, 3.0))
    grid.setFluid(1, 1, 1)
    grid.setU(2, 1, 1, 1.0)

    result = PressureSolver(1000.0, tolerance=1e-12).project(grid, 0.01)

    assert result.converged
    assert grid.getPressure(1, 1, 1) == pytest.approx(-1000.0 / 0.06)
    assert grid.getU(2, 1, 1) == pytest.approx(5.0 / 6.0)
    assert grid.getU(1, 1, 1) == pytest.approx(1.0 / 6.0)
    assert grid.getV(1, 2, 1) == pytest.approx(-1.0 / 6.0)
    assert grid.getV(1, 1, 1) == pytest.approx(1.0 / 6.0)
    assert grid.getW(1, 1, 2) == pytest.approx(-1.0 / 6.0)
    assert grid.getW(1, 1, 1) == pytest.approx(1.0 / 6.0)
    assert grid.divergence()[1, 1, 1] == pytest.approx(0.0, abs=1e-12)


def testNonPositiveDensityRaises():
    with pytest.raises(ValueError):
        PressureSolver(0.0)
