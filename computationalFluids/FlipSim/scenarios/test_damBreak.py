# -- Scenario Tests -- #

'''
Tests for the dam-break and drop scenario setup.

Sean Bowman [02/05/2026]
'''

from __future__ import annotations

import numpy as np
import pytest

from computationalFluids.FlipSim.scenarios.damBreak import (
    DamBreakConfig,
    DropConfig,
    cellFractions,
    createDamBreak,
    createDrop,
)
from computationalFluids.FlipSim.grid.macGrid import MacGrid


def _particleCells(grid, particles) -> np.ndarray:
    return grid.indicesFromPositions(particles.positions)


def testCellFractions():
    grid = MacGrid((4, 2, 1), (1.0, 0.5, 0.25))
    fx, fy, fz = cellFractions(grid)

    assert fx.shape == (4, 1, 1) and fy.shape == (1, 2, 1) and fz.shape == (1, 1, 1)
    assert np.allclose(fx.ravel(), [0.125, 0.375, 0.625, 0.875])
    assert np.allclose(fy.ravel(), [0.25, 0.75])


def testSmall2DDamBreak():
    config, grid, particles = createDamBreak(DamBreakConfig.small2D())

    assert config.dimensions == 2
    assert config.verticalAxis == 1
    # 12 x 18 water cells inside the walls, 4 particles each
    assert particles.nParticles == 12 * 18 * 4
    assert np.all(particles.velocities == 0.0)

    cells = _particleCells(grid, particles)
    assert not np.any(grid.solidMask[cells[:, 0], cells[:, 1], cells[:, 2]])
    assert cells[:, 0].max() == 12
    assert cells[:, 1].max() == 18
    assert np.allclose(particles.positions[:, 2], 0.5 / 32.0)


def testSmall2DTankIsOpenAtTop():
    _, grid, _ = createDamBreak(DamBreakConfig.small2D())

    assert grid.isSolid(0, 10, 0) and grid.isSolid(31, 10, 0)
    assert grid.isSolid(10, 0, 0)
    assert not grid.isSolid(10, 31, 0)


def testSmall3DDamBreak():
    config, grid, particles = createDamBreak(DamBreakConfig.small3D())

    assert config.dimensions == 3
    assert config.verticalAxis == 2
    # x: 5 cells, depth y: 7 cells, height z: 9 cells
    assert particles.nParticles == 5 * 7 * 9 * 8

    cells = _particleCells(grid, particles)
    assert cells[:, 1].max() == 7
    assert cells[:, 2].max() == 9
    assert not np.any(grid.solidMask[cells[:, 0], cells[:, 1], cells[:, 2]])


def testDamBreakSeedIsReproducible():
    _, _, first = createDamBreak(DamBreakConfig.small2D())
    _, _, second = createDamBreak(DamBreakConfig.small2D())
    assert np.array_equal(first.positions, second.positions)


def testDropFillsPoolAndBlock():
    config, grid, particles = createDrop(DropConfig.small2D())
    cells = _particleCells(grid, particles)

    pool = cells[:, 1] <= 5
    # 30 x 5 pool cells and a 9 x 9 block, 4 particles each
    assert np.count_nonzero(pool) == 30 * 5 * 4
    assert np.count_nonzero(~pool) == 9 * 9 * 4
    assert cells[~pool, 0].min() == 13 and cells[~pool, 0].max() == 21
    assert cells[~pool, 1].min() == 13 and cells[~pool, 1].max() == 21


def testScenarioConfigIsValidated():
    with pytest.raises(ValueError):
        DamBreakConfig(alpha=2.0).flipConfig()
    with pytest.raises(ValueError):
        DropConfig(nCells=(8, 8, 8), domainSize=(1.0, 1.0, 1.0), dimensions=2).flipConfig()
