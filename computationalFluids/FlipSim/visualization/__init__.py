# -- Visualization Subpackage -- #

'''
Plotly figures for FLIP solver diagnostics and particle snapshots.
'''

from computationalFluids.FlipSim.visualization.diagnosticsPlots import (
    plotStepDiagnostics,
    plotParticleSnapshot,
)
