# -- Particle Store Tests -- #

'''
Tests for ParticleSystem construction, seeding and diagnostics.

Sean Bowman [02/05/2026]
'''

from __future__ import annotations

import numpy as np
import pytest

from computationalFluids.FlipSim.flip.particles import ParticleSystem
from computationalFluids.FlipSim.grid.macGrid import MacGrid


def testFromPositionsDefaultsToRest():
    particles = ParticleSystem.fromPositions(np.array([[0.1, 0.2, 0.3], [0.4, 0.5, 0.6]]))

    assert particles.nParticles == 2
    assert np.all(particles.velocities == 0.0)
    assert np.array_equal(particles.previousPositions, particles.positions)
    assert particles.previousPositions is not particles.positions


def testShapeMismatchRaises():
    with pytest.raises(ValueError):
        ParticleSystem(
            positions=np.zeros((3, 3)),
            previousPositions=np.zeros((3, 3)),
            velocities=np.zeros((2, 3)),
        )
    with pytest.raises(ValueError):
        ParticleSystem.fromPositions(np.zeros((4, 2)))


def testKineticEnergyAndSpeeds():
    particles = ParticleSystem.fromPositions(
        np.zeros((2, 3)),
        velocities=np.array([[3.0, 4.0, 0.0], [0.0, -1.0, 2.0]]),
    )

    assert particles.kineticEnergy(2.0) == pytest.approx(0.5 * 2.0 * (25.0 + 5.0))
    assert particles.maxSpeed() == pytest.approx(5.0)
    assert np.allclose(particles.maxComponentSpeeds(), [3.0, 4.0, 2.0])


def testEmptySystemDiagnostics():
    particles = ParticleSystem.fromPositions(np.zeros((0, 3)))
    assert particles.nParticles == 0
    assert particles.maxSpeed() == 0.0
    assert np.all(particles.maxComponentSpeeds() == 0.0)


def testCopyIsIndependent():
    particles = ParticleSystem.fromPositions(np.ones((1, 3)))
    clone = particles.copy()
    clone.positions[0, 0] = 5.0
    assert particles.positions[0, 0] == 1.0


def testFillCells3D():
    grid = MacGrid((4, 4, 4), (1.0, 1.0, 1.0))
    mask = np.zeros(grid.nCells, dtype=bool)
    mask[1, 2, 3] = True

    particles = ParticleSystem.fillCells(grid, mask, particlesPerCell=8, seed=1)

    assert particles.nParticles == 8
    cells = grid.indicesFromPositions(particles.positions)
    assert np.all(cells == [1, 2, 3])


def testFillCellsIsReproducible():
    grid = MacGrid((4, 4, 4), (1.0, 1.0, 1.0))
    mask = np.ones(grid.nCells, dtype=bool)

    first = ParticleSystem.fillCells(grid, mask, seed=42)
    second = ParticleSystem.fillCells(grid, mask, seed=42)
    assert np.array_equal(first.positions, second.positions)


def testFillCellsSkipsSolids():
    grid = MacGrid((4, 4, 1), (1.0, 1.0, 0.25))
    grid.addSolidWalls()
    mask = np.ones(grid.nCells, dtype=bool)

    particles = ParticleSystem.fillCells(grid, mask, particlesPerCell=4, seed=0)

    nOpen = int(np.count_nonzero(~grid.solidMask))
    assert particles.nParticles == 4 * nOpen
    cells = grid.indicesFromPositions(particles.positions)
    assert not np.any(grid.solidMask[cells[:, 0], cells[:, 1], cells[:, 2]])


def testFillCells2DKeepsMidPlane():
    grid = MacGrid((4, 4, 1), (1.0, 1.0, 0.25))
    mask = np.zeros(grid.nCells, dtype=bool)
    mask[2, 1, 0] = True

    particles = ParticleSystem.fillCells(grid, mask, particlesPerCell=4, seed=0)

    assert particles.nParticles == 4
    assert np.allclose(particles.positions[:, 2], 0.125)
