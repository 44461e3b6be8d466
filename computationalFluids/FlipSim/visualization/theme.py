# -- Visualization Theme -- #

'''
Dark-mode theme shared by the FlipSim Plotly figures.

Sean Bowman [02/05/2026]
'''

# Plotly template
TEMPLATE = 'plotly_dark'

# Primary colors, readable on dark backgrounds
BLUE = '#42A5F5'
RED = '#EF5350'
GREEN = '#66BB6A'
ORANGE = '#FFA726'
PURPLE = '#AB47BC'

# Neutrals
WHITE = '#E0E0E0'
SOLID_CELL = '#5D4037'
REFERENCE_LINE = '#888888'

# Particle speed colorscale
SPEED_COLORSCALE = 'Blues'

# Ordered palette for the diagnostics panels
PALETTE = [BLUE, ORANGE, PURPLE, GREEN, RED]
