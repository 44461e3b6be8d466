# -- Physical and Numerical Constants for FLIP Simulation -- #

'''
Physical and numerical constants for the FLIP water simulation.
All values in SI units unless otherwise noted.

References:
-----------
Zhu & Bridson (2005) -- Animating sand as a fluid
Bridson (2015) -- Fluid Simulation for Computer Graphics, 2nd ed.

Sean Bowman [02/05/2026]
'''

#--------------------------------------------------------------------#
# -- Fluid Properties -- #
#--------------------------------------------------------------------#

# Reference fluid density (freshwater at 20C) [kg/m^3]
referenceDensity: float = 1000.0

# Gravitational acceleration magnitude [m/s^2]
gravity: float = 9.81

#--------------------------------------------------------------------#
# -- FLIP / PIC Transfer -- #
#--------------------------------------------------------------------#

# FLIP/PIC blend factor: 0 = pure FLIP, 1 = pure PIC
# Small values keep FLIP's low dissipation with a little PIC damping
defaultAlpha: float = 0.05

# Transfer kernel radius as a multiple of the x cell size
# h = kernelRadiusFactor * dx
kernelRadiusFactor: float = 2.0

# Layers of velocity extrapolation from particle-covered faces
defaultExtrapolationLayers: int = 1

# Particles per batch in the particle-to-grid scatter
# Bounds the (nParticles x stencil) temporaries
transferBatchSize: int = 4096

#--------------------------------------------------------------------#
# -- Pressure Projection -- #
#--------------------------------------------------------------------#

# Conjugate gradient iteration budget per pressure solve
maxPressureIterations: int = 100

# Relative residual tolerance for the pressure solve
pressureTolerance: float = 1.0e-6

#--------------------------------------------------------------------#
# -- Advection -- #
#--------------------------------------------------------------------#

# Particles are kept this fraction of a cell inside the domain walls
domainInsetFraction: float = 0.25

# Solid pull-back distance from the crossed face, in cells
solidPullbackFraction: float = 0.25

# Default frame time step (30 fps) [s]
defaultFrameDt: float = 1.0 / 30.0
