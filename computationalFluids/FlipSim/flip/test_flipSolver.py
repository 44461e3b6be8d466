# -- FLIP Solver Tests -- #

'''
End-to-end tests of the FLIP frame step.

Sean Bowman [02/05/2026]
'''

from __future__ import annotations

import dataclasses

import numpy as np
import pytest

from computationalFluids.FlipSim.flip.flipSolver import FlipSolver
from computationalFluids.FlipSim.flip.particles import ParticleSystem
from computationalFluids.FlipSim.grid.macGrid import MacGrid
from computationalFluids.FlipSim.scenarios.damBreak import DamBreakConfig, createDamBreak


def _fallingParticleSolver() -> FlipSolver:
    '''One particle falling in a 4^3 box with a solid floor layer.'''
    grid = MacGrid((4, 4, 4), (1.0, 1.0, 1.0))
    grid.addSolidBox(np.array([0.0, 0.0, 0.0]), np.array([1.0, 1.0, 0.25]))
    particles = ParticleSystem.fromPositions(
        np.array([[0.375, 0.375, 0.625]]),
        np.array([[0.0, 0.0, -1.0]]),
    )
    return FlipSolver(particles, grid)


def _assertParticlesValid(solver: FlipSolver) -> None:
    grid = solver.grid
    positions = solver.particles.positions
    assert np.all(np.isfinite(positions))
    assert np.all(positions >= 0.0)
    assert np.all(positions <= grid.domainSize)

    cells = grid.indicesFromPositions(positions)
    assert not np.any(grid.solidMask[cells[:, 0], cells[:, 1], cells[:, 2]])


def testSingleParticleFrame():
    solver = _fallingParticleSolver()
    solver.advance(0.01, 0)

    state = solver.lastState
    assert state.nFluidCells == 1
    assert state.nSubsteps == 1
    assert state.pressureIterations == 0
    assert state.pressureConverged
    assert state.time == pytest.approx(0.01)

    grid = solver.grid
    assert grid.isFluid(1, 1, 2)
    assert grid.getW(1, 1, 2) == pytest.approx(-1.0981)
    assert grid.getW(1, 1, 1) == 0.0

    # The column of w faces through the particle is uniform, so the
    # projection leaves it alone and gravity is the only change
    assert np.allclose(solver.particles.velocities, [[0.0, 0.0, -1.0981]])
    assert np.allclose(solver.particles.positions, [[0.375, 0.375, 0.625 - 0.010981]])
    assert solver.grid.indexFromCoord(*solver.particles.positions[0]) == (1, 1, 2)


def testParticleMassFromOccupiedCells():
    solver = _fallingParticleSolver()
    assert solver.particleMass == pytest.approx(1000.0 / 64.0)


def testCurrentStateBeforeFirstStep():
    solver = _fallingParticleSolver()
    assert solver.lastState is None
    assert solver.lastPressureSolve is None

    state = solver.currentState
    assert state.time == 0.0
    assert state.kineticEnergy == pytest.approx(0.5 * 1000.0 / 64.0)


def testStepAdvancesFrameCounter():
    solver = _fallingParticleSolver()
    first = solver.step()
    second = solver.step()

    assert solver.stepCount == 2
    assert first.step == 0 and second.step == 1
    assert solver.time == pytest.approx(2.0 * solver.frameDt)
    assert solver.lastPressureSolve is not None


def testNonPositiveFrameDurationRaises():
    solver = _fallingParticleSolver()
    with pytest.raises(ValueError):
        solver.advance(0.0, 0)


def testAlphaOutOfRangeRaises():
    grid = MacGrid((4, 4, 4), (1.0, 1.0, 1.0))
    particles = ParticleSystem.fromPositions(np.array([[0.5, 0.5, 0.5]]))
    with pytest.raises(ValueError):
        FlipSolver(particles, grid, alpha=1.5)


def testNonCubicCellsRaise():
    grid = MacGrid((4, 4, 4), (1.0, 2.0, 1.0))
    particles = ParticleSystem.fromPositions(np.array([[0.5, 0.5, 0.5]]))
    with pytest.raises(ValueError):
        FlipSolver(particles, grid)


@pytest.mark.parametrize('integrator', ['rk2', 'leapfrog'])
def testDamBreakKeepsParticlesAndStaysDivergenceFree(integrator):
    damConfig = DamBreakConfig(nCells=(16, 16, 1), domainSize=(1.0, 1.0, 1.0 / 16.0),
                               integrator=integrator, endTime=0.2)
    config, grid, particles = createDamBreak(damConfig)
    config = dataclasses.replace(config, maxPressureIterations=500)

    solver = FlipSolver.fromConfig(config, particles, grid)
    nParticles = particles.nParticles

    for _ in range(5):
        state = solver.step()
        assert solver.particles.nParticles == nParticles
        _assertParticlesValid(solver)
        assert state.pressureConverged
        assert state.maxDivergence < 1e-2

    # 2D runs never move particles off their z plane
    assert np.allclose(solver.particles.velocities[:, 2], 0.0)
    assert solver.particles.maxSpeed() > 0.0
