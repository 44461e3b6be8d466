# -- Transfer Kernel Tests -- #

'''
Tests for the radial transfer kernels and the kernel factory.

Sean Bowman [02/05/2026]
'''

from __future__ import annotations

import math

import numpy as np
import pytest

from computationalFluids.FlipSim.flip.kernels import Poly6Kernel, WendlandC2Kernel, createKernel


kernels = [Poly6Kernel(), WendlandC2Kernel()]


@pytest.mark.parametrize('kernel', kernels)
def testNonNegativeWithCompactSupport(kernel):
    h = 0.25
    distances = np.linspace(0.0, 2.0 * h, 201)
    weights = kernel.evaluateBatch(distances, h)

    assert np.all(weights >= 0.0)
    assert np.all(weights[distances > h] == 0.0)
    assert np.all(weights[distances < h] > 0.0)


@pytest.mark.parametrize('kernel', kernels)
def testMonotoneDecreasing(kernel):
    h = 0.5
    weights = kernel.evaluateBatch(np.linspace(0.0, h, 101), h)
    assert np.all(np.diff(weights) <= 1e-12)


@pytest.mark.parametrize('kernel', kernels)
def testScalarMatchesBatch(kernel):
    h = 0.2
    distances = np.array([0.0, 0.05, 0.13, 0.2, 0.3])
    batch = kernel.evaluateBatch(distances, h)
    scalar = [kernel.evaluate(float(r), h) for r in distances]
    assert np.allclose(batch, scalar)


def testPoly6PeakValue():
    h = 0.5
    expected = 315.0 / (64.0 * math.pi * h ** 3)
    assert Poly6Kernel().evaluate(0.0, h) == pytest.approx(expected)


def testCreateKernel():
    assert isinstance(createKernel('poly6'), Poly6Kernel)
    assert isinstance(createKernel('wendlandC2'), WendlandC2Kernel)


def testCreateKernelUnknownRaises():
    with pytest.raises(ValueError):
        createKernel('cubicSpline')
