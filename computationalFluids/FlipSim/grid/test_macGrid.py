# -- MAC Grid Tests -- #

'''
Tests for the staggered MAC grid: storage layout, bounds checking,
coordinate mapping, interpolation and the pressure diagonal.

Sean Bowman [02/05/2026]
'''

from __future__ import annotations

import numpy as np
import pytest

from computationalFluids.FlipSim.grid.macGrid import CellType, MacGrid


def testFaceShapes():
    grid = MacGrid((4, 3, 2), (4.0, 3.0, 2.0))

    assert grid.u.shape == (5, 3, 2)
    assert grid.v.shape == (4, 4, 2)
    assert grid.w.shape == (4, 3, 3)
    assert grid.pressure.shape == (4, 3, 2)
    assert grid.nCellsTotal == 24
    assert np.allclose(grid.cellSize, [1.0, 1.0, 1.0])
    assert grid.dimensions == 3


def testSingleLayerGridIsTwoDimensional():
    grid = MacGrid((8, 8, 1), (1.0, 1.0, 0.125))
    assert grid.dimensions == 2
    assert grid.w.shape == (8, 8, 2)


def testInvalidConstructionRaises():
    with pytest.raises(ValueError):
        MacGrid((0, 4, 4), (1.0, 1.0, 1.0))
    with pytest.raises(ValueError):
        MacGrid((4, 4, 4), (1.0, -1.0, 1.0))


def testAccessorsRoundTrip():
    grid = MacGrid((4, 3, 2), (4.0, 3.0, 2.0))

    grid.setU(4, 2, 1, 1.5)
    grid.setV(3, 3, 0, -2.0)
    grid.setW(0, 0, 2, 0.25)
    grid.setPressure(3, 2, 1, 7.0)
    grid.setFaceWeight(1, 2, 3, 1, 0.5)

    assert grid.getU(4, 2, 1) == 1.5
    assert grid.getV(3, 3, 0) == -2.0
    assert grid.getW(0, 0, 2) == 0.25
    assert grid.getPressure(3, 2, 1) == 7.0
    assert grid.getFaceWeight(1, 2, 3, 1) == 0.5
    assert grid.u[4, 2, 1] == 1.5


@pytest.mark.parametrize('call', [
    lambda g: g.getU(5, 0, 0),
    lambda g: g.getV(0, 4, 0),
    lambda g: g.getW(0, 0, 3),
    lambda g: g.setU(-1, 0, 0, 1.0),
    lambda g: g.getPressure(4, 0, 0),
    lambda g: g.setPressure(0, 3, 0, 1.0),
    lambda g: g.getFaceWeight(0, 5, 0, 0),
    lambda g: g.isSolid(0, 0, 2),
    lambda g: g.setSolid(0, -1, 0),
])
def testOutOfRangeIndexRaises(call):
    grid = MacGrid((4, 3, 2), (4.0, 3.0, 2.0))
    with pytest.raises(IndexError):
        call(grid)


def testIndexFromCoord():
    grid = MacGrid((4, 4, 4), (1.0, 1.0, 1.0))

    assert grid.indexFromCoord(0.3, 0.6, 0.99) == (1, 2, 3)
    assert grid.indexFromCoord(0.0, 0.0, 0.0) == (0, 0, 0)
    # The upper domain boundary belongs to the last cell
    assert grid.indexFromCoord(1.0, 1.0, 1.0) == (3, 3, 3)


@pytest.mark.parametrize('point', [
    (1.01, 0.5, 0.5),
    (0.5, -0.1, 0.5),
    (0.5, 0.5, np.nan),
    (np.inf, 0.5, 0.5),
])
def testIndexFromCoordOutsideDomainRaises(point):
    grid = MacGrid((4, 4, 4), (1.0, 1.0, 1.0))
    with pytest.raises(ValueError):
        grid.indexFromCoord(*point)


def testPressureVectorOrdering():
    grid = MacGrid((2, 3, 4), (2.0, 3.0, 4.0))
    grid.setPressureFromVector(np.arange(24, dtype=float))

    for i in range(2):
        for j in range(3):
            for k in range(4):
                flat = i + j * 2 + k * 2 * 3
                assert grid.cellLinearIndex(i, j, k) == flat
                assert grid.getPressure(i, j, k) == float(flat)


def testPressureVectorWrongLengthRaises():
    grid = MacGrid((2, 3, 4), (2.0, 3.0, 4.0))
    with pytest.raises(ValueError):
        grid.setPressureFromVector(np.zeros(23))


def testStoreStarVelocitiesCopies():
    grid = MacGrid((3, 3, 3), (1.0, 1.0, 1.0))
    grid.u.fill(2.0)
    grid.storeStarVelocities()
    grid.u.fill(5.0)

    assert np.all(grid.uStar == 2.0)
    assert np.all(grid.u == 5.0)


def testInterpolateUniformField():
    grid = MacGrid((5, 4, 3), (1.0, 0.8, 0.6))
    grid.u.fill(2.0)
    grid.v.fill(-1.0)
    grid.w.fill(0.5)

    rng = np.random.default_rng(3)
    positions = rng.uniform(0.0, 1.0, size=(50, 3)) * grid.domainSize
    velocity = grid.interpolateVelocity(positions)

    assert np.allclose(velocity, [2.0, -1.0, 0.5])


def testInterpolateLinearFieldAlongFaceAxis():
    grid = MacGrid((6, 6, 6), (1.5, 1.5, 1.5))
    dx = grid.cellSize[0]
    # u equal to its own face x coordinate
    grid.u[...] = (np.arange(7) * dx)[:, None, None]

    rng = np.random.default_rng(7)
    positions = rng.uniform(0.0, 1.5, size=(40, 3))
    assert np.allclose(grid.interpolate(0, positions), positions[:, 0])


def testInterpolateUsesStarField():
    grid = MacGrid((3, 3, 3), (1.0, 1.0, 1.0))
    grid.v.fill(1.0)
    grid.storeStarVelocities()
    grid.v.fill(4.0)

    point = np.array([[0.5, 0.5, 0.5]])
    assert np.allclose(grid.interpolate(1, point, useStar=True), 1.0)
    assert np.allclose(grid.interpolate(1, point), 4.0)


def testDiagonalCountsNonSolidNeighbors():
    grid = MacGrid((3, 3, 3), (1.0, 1.0, 1.0))
    diagonal = grid.diagonal

    assert diagonal[0, 0, 0] == 3.0
    assert diagonal[1, 1, 1] == 6.0
    assert diagonal[1, 1, 0] == 5.0


def testDiagonalRecomputedAfterSetSolid():
    grid = MacGrid((3, 3, 3), (1.0, 1.0, 1.0))
    assert grid.diagonal[1, 1, 1] == 6.0

    grid.setSolid(1, 1, 0)
    assert grid.diagonal[1, 1, 1] == 5.0
    assert grid.diagonal[0, 1, 0] == 3.0


def testTwoDimensionalDiagonalIgnoresSingleLayerAxis():
    grid = MacGrid((4, 4, 1), (1.0, 1.0, 0.25))
    assert grid.diagonal[1, 1, 0] == 4.0
    assert grid.diagonal[0, 0, 0] == 2.0


def testCellClassification():
    grid = MacGrid((3, 3, 3), (1.0, 1.0, 1.0))
    grid.setSolid(0, 0, 0)
    grid.setFluid(1, 1, 1)

    assert grid.isSolid(0, 0, 0)
    assert grid.isFluid(1, 1, 1)
    assert grid.isAir(2, 2, 2)
    assert grid.nFluidCells == 1

    with pytest.raises(ValueError):
        grid.setFluid(0, 0, 0)

    grid.resetFluid()
    assert grid.isAir(1, 1, 1)
    assert grid.isSolid(0, 0, 0)


def testMarkFluidCellsSkipsSolids():
    grid = MacGrid((3, 3, 3), (1.0, 1.0, 1.0))
    grid.setSolid(2, 2, 2)
    grid.markFluidCells(np.array([[0, 0, 0], [2, 2, 2], [0, 0, 0]]))

    assert grid.isFluid(0, 0, 0)
    assert grid.isSolid(2, 2, 2)
    assert grid.nFluidCells == 1


def testCellTypesIsReadOnly():
    grid = MacGrid((2, 2, 2), (1.0, 1.0, 1.0))
    with pytest.raises(ValueError):
        grid.cellTypes[0, 0, 0] = CellType.SOLID


def testAddSolidWallsOpenTop2D():
    grid = MacGrid((4, 4, 1), (1.0, 1.0, 0.25))
    grid.addSolidWalls()

    assert grid.isSolid(0, 2, 0)
    assert grid.isSolid(3, 2, 0)
    assert grid.isSolid(1, 0, 0)
    assert not grid.isSolid(1, 3, 0)
    assert not grid.isSolid(1, 1, 0)


def testAddSolidBoxByCellCenters():
    grid = MacGrid((4, 4, 4), (1.0, 1.0, 1.0))
    count = grid.addSolidBox(np.array([0.0, 0.0, 0.0]), np.array([1.0, 1.0, 0.25]))

    assert count == 16
    assert np.all(grid.solidMask[:, :, 0])
    assert not np.any(grid.solidMask[:, :, 1:])


def testDivergence():
    grid = MacGrid((3, 3, 3), (1.0, 1.0, 1.0))
    grid.u.fill(1.0)
    assert np.allclose(grid.divergence(), 0.0)

    grid.u[...] = np.arange(4, dtype=float)[:, None, None]
    assert np.allclose(grid.divergence(), 1.0)


def testCellCenters():
    grid = MacGrid((2, 2, 1), (1.0, 1.0, 0.5))
    grid.setSolid(1, 0, 0)
    assert np.allclose(grid.solidCellCenters(), [[0.75, 0.25, 0.25]])
