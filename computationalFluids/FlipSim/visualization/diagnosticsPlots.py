# -- Solver Diagnostics Plots -- #

'''
Plotly figures for inspecting a FLIP run.

plotStepDiagnostics lays out the per-frame solver history (CFL
substeps, pressure iterations, residual divergence and kinetic
energy); plotParticleSnapshot draws particles colored by speed over
the solid cells of the grid.

Sean Bowman [02/05/2026]
'''

from __future__ import annotations

import numpy as np
import plotly.graph_objects as go
from plotly.subplots import make_subplots

from computationalFluids.FlipSim.flip.protocols import StepState
from computationalFluids.FlipSim.flip.particles import ParticleSystem
from computationalFluids.FlipSim.grid.macGrid import MacGrid
from computationalFluids.FlipSim.visualization import theme


def plotStepDiagnostics(history: list[StepState], title: str = 'FlipSim Solver Diagnostics') -> go.Figure:
    '''
    Create a 4-panel diagnostics figure.

    Layout:
        Row 1: CFL Substeps        |  Pressure Iterations
        Row 2: Max Divergence      |  Kinetic Energy

    Frames whose pressure solve did not converge are marked in red
    on the iterations panel.

    Parameters:
    -----------
    history : list[StepState]
        Frame diagnostics in time order
    title : str
        Figure title

    Returns:
    --------
    go.Figure : Plotly figure with 4 subplots
    '''
    times = np.array([s.time for s in history])
    substeps = np.array([s.nSubsteps for s in history])
    iterations = np.array([s.pressureIterations for s in history])
    divergence = np.array([s.maxDivergence for s in history])
    energy = np.array([s.kineticEnergy for s in history])
    converged = np.array([s.pressureConverged for s in history], dtype=bool)

    fig = make_subplots(
        rows=2, cols=2,
        subplot_titles=(
            'CFL Substeps', 'Pressure Iterations',
            'Max Divergence', 'Kinetic Energy',
        ),
        vertical_spacing=0.12,
        horizontal_spacing=0.08,
    )

    ######################################################################
    # Row 1, Col 1: Substeps
    ######################################################################
    fig.add_trace(go.Scatter(x=times, y=substeps, mode='lines+markers',
                             line=dict(color=theme.PALETTE[0], width=2), showlegend=False),
                  row=1, col=1)
    fig.update_xaxes(title_text='Time (s)', row=1, col=1)
    fig.update_yaxes(title_text='Substeps', row=1, col=1)

    ######################################################################
    # Row 1, Col 2: Pressure Iterations
    ######################################################################
    fig.add_trace(go.Scatter(x=times, y=iterations, mode='lines',
                             line=dict(color=theme.PALETTE[1], width=2), showlegend=False),
                  row=1, col=2)
    if np.any(~converged):
        fig.add_trace(go.Scatter(x=times[~converged], y=iterations[~converged], mode='markers',
                                 name='Not converged', marker=dict(color=theme.RED, size=8),
                                 showlegend=False),
                      row=1, col=2)
    fig.update_xaxes(title_text='Time (s)', row=1, col=2)
    fig.update_yaxes(title_text='CG iterations', row=1, col=2)

    ######################################################################
    # Row 2, Col 1: Divergence
    ######################################################################
    fig.add_trace(go.Scatter(x=times, y=divergence, mode='lines',
                             line=dict(color=theme.PALETTE[2], width=2), showlegend=False),
                  row=2, col=1)
    fig.update_xaxes(title_text='Time (s)', row=2, col=1)
    fig.update_yaxes(title_text='max |div u| (1/s)', type='log', row=2, col=1)

    ######################################################################
    # Row 2, Col 2: Kinetic Energy
    ######################################################################
    fig.add_trace(go.Scatter(x=times, y=energy, mode='lines', fill='tozeroy',
                             line=dict(color=theme.PALETTE[3], width=2), showlegend=False),
                  row=2, col=2)
    fig.update_xaxes(title_text='Time (s)', row=2, col=2)
    fig.update_yaxes(title_text='KE (J)', row=2, col=2)

    fig.update_layout(
        title=f'{title} -- {len(history)} frames',
        template=theme.TEMPLATE,
        height=800,
        showlegend=False,
    )

    return fig


def plotParticleSnapshot(
    particles: ParticleSystem,
    grid: MacGrid,
    title: str = 'FlipSim Particles',
) -> go.Figure:
    '''
    Scatter plot of particle positions colored by speed.

    2D grids are drawn in the x-y plane with solid cells as squares;
    3D grids use a Scatter3d with solid cell centers.

    Parameters:
    -----------
    particles : ParticleSystem
        Particles to draw
    grid : MacGrid
        Grid providing the solid layout and domain extent
    title : str
        Figure title

    Returns:
    --------
    go.Figure : Plotly figure
    '''
    positions = particles.positions
    speeds = np.linalg.norm(particles.velocities, axis=1)
    solids = grid.solidCellCenters()
    marker = dict(color=speeds, colorscale=theme.SPEED_COLORSCALE, size=3,
                  colorbar=dict(title='|v| (m/s)'))

    fig = go.Figure()

    if grid.dimensions == 2:
        fig.add_trace(go.Scatter(x=solids[:, 0], y=solids[:, 1], mode='markers',
                                 marker=dict(color=theme.SOLID_CELL, symbol='square', size=6),
                                 name='Solid'))
        fig.add_trace(go.Scatter(x=positions[:, 0], y=positions[:, 1], mode='markers',
                                 marker=marker, name='Particles'))
        fig.update_xaxes(title_text='x (m)', range=[0.0, grid.domainSize[0]])
        fig.update_yaxes(title_text='y (m)', range=[0.0, grid.domainSize[1]],
                         scaleanchor='x', scaleratio=1)
    else:
        fig.add_trace(go.Scatter3d(x=solids[:, 0], y=solids[:, 1], z=solids[:, 2], mode='markers',
                                   marker=dict(color=theme.SOLID_CELL, size=2, opacity=0.15),
                                   name='Solid'))
        fig.add_trace(go.Scatter3d(x=positions[:, 0], y=positions[:, 1], z=positions[:, 2],
                                   mode='markers', marker=marker, name='Particles'))
        fig.update_layout(scene=dict(aspectmode='data'))

    fig.update_layout(
        title=f'{title} -- {particles.nParticles} particles',
        template=theme.TEMPLATE,
        height=700,
    )

    return fig
