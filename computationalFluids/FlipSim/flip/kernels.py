# -- FLIP Transfer Kernels -- #

'''
Radial weighting kernels for the particle-to-grid transfer.

Each particle spreads its velocity onto every grid face within the
kernel radius h, weighted by W(r, h). The face value is later
divided by the accumulated weight, so only the shape of W matters,
not its normalization; the constants are kept so the kernels
integrate to one in 3D.

Key properties of a valid transfer kernel:
- Compact support: W = 0 for r > h
- Positivity: W >= 0 within support
- Monotonically decreasing in r

References:
-----------
Muller et al. (2003) -- Particle-based fluid simulation for
    interactive applications
Wendland (1995) -- Piecewise polynomial, positive definite and
    compactly supported radial functions of minimal degree

Sean Bowman [02/05/2026]
'''

from __future__ import annotations

import math
from typing import Protocol

import numpy as np


######################################################################
# -- Kernel Protocol -- #
######################################################################

class TransferKernel(Protocol):
    '''Protocol for particle-to-grid weighting kernels.'''

    def evaluate(self, r: float, h: float) -> float:
        '''
        Evaluate kernel W(r, h).

        Parameters:
        -----------
        r : float
            Distance between particle and face [m]
        h : float
            Kernel radius [m]

        Returns:
        --------
        float : Kernel weight
        '''
        ...

    def evaluateBatch(self, distances: np.ndarray, h: float) -> np.ndarray:
        '''Evaluate W(r, h) for an array of distances.'''
        ...


######################################################################
# -- Poly6 Kernel -- #
######################################################################

class Poly6Kernel:
    '''
    Poly6 smoothing kernel.

    W(r) = 315 / (64 * pi * h^9) * (h^2 - r^2)^3    for 0 <= r <= h
           0                                        for r > h

    Smooth, cheap (no square root needed inside), and the
    default transfer kernel.
    '''

    def _normalization(self, h: float) -> float:
        return 315.0 / (64.0 * math.pi * h ** 9)

    def evaluate(self, r: float, h: float) -> float:
        '''
        Evaluate poly6 kernel W(r, h).

        Parameters:
        -----------
        r : float
            Distance [m]
        h : float
            Kernel radius [m]

        Returns:
        --------
        float : Kernel weight
        '''
        if r > h:
            return 0.0
        diff = h * h - r * r
        return self._normalization(h) * diff * diff * diff

    def evaluateBatch(self, distances: np.ndarray, h: float) -> np.ndarray:
        '''
        Evaluate poly6 kernel W(r, h) for an array of distances.

        Fully vectorized using NumPy.

        Parameters:
        -----------
        distances : np.ndarray
            Array of distances [m], shape (n,)
        h : float
            Kernel radius [m]

        Returns:
        --------
        np.ndarray : Kernel weights, shape (n,)
        '''
        diff = np.maximum(h * h - distances * distances, 0.0)
        return self._normalization(h) * diff ** 3


######################################################################
# -- Wendland C2 Kernel -- #
######################################################################

class WendlandC2Kernel:
    '''
    Wendland C2 kernel with support radius h.

    W(q) = sigma * (1 - q)^4 * (4*q + 1)    for q = r/h <= 1

    Normalization (3D): sigma = 21 / (2 * pi * h^3)

    Flatter near the origin than poly6 for the same radius, so
    faces at mid-range receive relatively more weight.
    '''

    def _normalization(self, h: float) -> float:
        return 21.0 / (2.0 * math.pi * h ** 3)

    def evaluate(self, r: float, h: float) -> float:
        '''
        Evaluate Wendland C2 kernel W(r, h).

        Parameters:
        -----------
        r : float
            Distance [m]
        h : float
            Kernel radius [m]

        Returns:
        --------
        float : Kernel weight
        '''
        q = r / h
        if q > 1.0:
            return 0.0
        oneMinusQ = 1.0 - q
        return self._normalization(h) * oneMinusQ ** 4 * (4.0 * q + 1.0)

    def evaluateBatch(self, distances: np.ndarray, h: float) -> np.ndarray:
        '''
        Evaluate Wendland C2 kernel W(r, h) for an array of distances.

        Parameters:
        -----------
        distances : np.ndarray
            Array of distances [m], shape (n,)
        h : float
            Kernel radius [m]

        Returns:
        --------
        np.ndarray : Kernel weights, shape (n,)
        '''
        q = distances / h
        oneMinusQ = np.maximum(1.0 - q, 0.0)
        return self._normalization(h) * oneMinusQ ** 4 * (4.0 * q + 1.0)


######################################################################
# -- Kernel Factory -- #
######################################################################

def createKernel(kernelType: str) -> TransferKernel:
    '''
    Create a kernel instance by type name.

    Parameters:
    -----------
    kernelType : str
        Kernel type: 'poly6' or 'wendlandC2'

    Returns:
    --------
    TransferKernel : Kernel instance

    Raises:
    -------
    ValueError : If kernel type is unknown
    '''
    if kernelType == 'poly6':
        return Poly6Kernel()
    elif kernelType == 'wendlandC2':
        return WendlandC2Kernel()
    else:
        raise ValueError(f'Unknown kernel type: {kernelType}')
