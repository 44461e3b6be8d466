# -- Grid Package -- #

'''
Staggered MAC grid storage, cell classification and interpolation.

Sean Bowman [02/05/2026]
'''

from computationalFluids.FlipSim.grid.macGrid import CellType, GridShape, MacGrid, axisSlice
