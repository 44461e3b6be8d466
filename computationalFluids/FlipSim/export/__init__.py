# -- Export Package -- #

'''
JSON frame export for FLIP simulations.

Sean Bowman [02/05/2026]
'''

from computationalFluids.FlipSim.export.frameExporter import FrameExporter
