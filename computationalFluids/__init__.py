# -- Computational Fluids Package -- #

'''
Grid-based fluid simulation for computational engineering.

Sean Bowman [02/05/2026]
'''
