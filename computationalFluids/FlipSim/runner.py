# -- FLIP Simulation Runner -- #

'''
Command-line entry point for running FLIP water simulations.

Builds a scenario, runs the FLIP solver frame by frame, displays
progress, and optionally exports frame data and diagnostics plots.

Usage:
    python -m computationalFluids.FlipSim.runner                          # Small 2D dam break
    python -m computationalFluids.FlipSim.runner --preset small3D         # Small 3D dam break
    python -m computationalFluids.FlipSim.runner --scenario drop
    python -m computationalFluids.FlipSim.runner --config computationalFluids/FlipSim/configs/damBreak2D.json
    python -m computationalFluids.FlipSim.runner --no-export --plot

Sean Bowman [02/05/2026]
'''

from __future__ import annotations

import argparse
import json
import os
import time as timeModule

from computationalFluids.FlipSim.flip.protocols import FlipConfig, FlipStepper, StepState
from computationalFluids.FlipSim.flip.flipSolver import FlipSolver
from computationalFluids.FlipSim.flip.particles import ParticleSystem
from computationalFluids.FlipSim.grid.macGrid import MacGrid
from computationalFluids.FlipSim.scenarios.damBreak import (
    DamBreakConfig,
    DropConfig,
    createDamBreak,
    createDrop,
)
from computationalFluids.FlipSim.export.frameExporter import FrameExporter
from computationalFluids.FlipSim.visualization.diagnosticsPlots import (
    plotStepDiagnostics,
    plotParticleSnapshot,
)


#--------------------------------------------------------------------#
# -- CLI Argument Parser -- #
#--------------------------------------------------------------------#

def buildParser() -> argparse.ArgumentParser:
    '''Build the CLI argument parser.'''
    parser = argparse.ArgumentParser(
        description='FlipSim -- FLIP/PIC water simulation',
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        '--config', type=str, default=None,
        help='Path to JSON configuration file',
    )
    parser.add_argument(
        '--scenario', type=str, default='damBreak',
        choices=['damBreak', 'drop'],
        help='Simulation scenario type (default: damBreak)',
    )
    parser.add_argument(
        '--preset', type=str, default='small2D',
        choices=['small2D', 'small3D'],
        help='Scenario preset (default: small2D)',
    )
    parser.add_argument(
        '--end-time', type=float, default=None,
        help='Override the simulation end time [s]',
    )
    parser.add_argument(
        '--no-export', action='store_true',
        help='Skip frame data export',
    )
    parser.add_argument(
        '--output-dir', type=str, default='computationalFluids/FlipSim/output',
        help='Output directory for exported frames and plots',
    )
    parser.add_argument(
        '--plot', action='store_true',
        help='Write diagnostics and particle plots as HTML',
    )

    return parser


#--------------------------------------------------------------------#
# -- Scenario Loading -- #
#--------------------------------------------------------------------#

def damBreakFromJson(configPath: str) -> tuple[FlipConfig, DamBreakConfig]:
    '''
    Load a dam-break run from a JSON file.

    Grid, fluid, FLIP and solver settings come from the FlipConfig
    sections; the optional 'scenario' section sets the water column.

    Returns:
    --------
    tuple[FlipConfig, DamBreakConfig] : Solver configuration and scenario layout
    '''
    flipConfig = FlipConfig.fromJson(configPath)

    with open(configPath, 'r') as f:
        data = json.load(f)
    scenarioSection = data.get('scenario', {})

    damConfig = DamBreakConfig(
        nCells=flipConfig.nCells,
        domainSize=flipConfig.domainSize,
        columnWidth=scenarioSection.get('columnWidth', 0.4),
        columnHeight=scenarioSection.get('columnHeight', 0.6),
        columnDepth=scenarioSection.get('columnDepth', 1.0),
        particlesPerCell=scenarioSection.get('particlesPerCell', 8 if flipConfig.dimensions == 3 else 4),
        seed=scenarioSection.get('seed', 0),
        alpha=flipConfig.alpha,
        integrator=flipConfig.integrator,
        frameDt=flipConfig.frameDt,
        endTime=flipConfig.endTime,
        dimensions=flipConfig.dimensions,
    )

    return (flipConfig, damConfig)


#--------------------------------------------------------------------#
# -- Runner Class -- #
#--------------------------------------------------------------------#

class FlipSimRunner:
    '''
    Runs a FLIP simulation and stores results.

    Handles the full pipeline: scenario setup, simulation loop
    with progress reporting, optional frame export and plots.
    '''

    def __init__(self) -> None:
        self._history: list[StepState] = []
        self._exporter: FrameExporter = FrameExporter()

    @property
    def history(self) -> list[StepState]:
        '''Diagnostics of every simulated frame.'''
        return self._history

    def _recordFrame(self, stepper: FlipStepper, dimensions: int) -> StepState:
        '''Store the stepper's last frame in the history and exporter.'''
        state = stepper.lastState
        self._history.append(state)
        self._exporter.addFrame(state, stepper.particles, dimensions)
        return state

    def runFromConfig(
        self,
        configPath: str,
        doExport: bool = True,
        exportDir: str = 'computationalFluids/FlipSim/output',
        doPlot: bool = False,
        endTime: float | None = None,
    ) -> dict:
        '''
        Run a dam break from a JSON configuration file.

        Parameters:
        -----------
        configPath : str
            Path to the JSON configuration file
        doExport : bool
            Whether to export frame data
        exportDir : str
            Output directory for frame export and plots
        doPlot : bool
            Whether to write HTML plots
        endTime : float | None
            Overrides the configured end time [s]

        Returns:
        --------
        dict : Simulation results summary
        '''
        flipConfig, damConfig = damBreakFromJson(configPath)
        if endTime is not None:
            flipConfig.endTime = endTime

        _, grid, particles = createDamBreak(damConfig)
        return self.run(flipConfig, grid, particles, 'damBreak', doExport, exportDir, doPlot)

    def runDamBreak(
        self,
        damConfig: DamBreakConfig,
        doExport: bool = True,
        exportDir: str = 'computationalFluids/FlipSim/output',
        doPlot: bool = False,
    ) -> dict:
        '''Run a dam-break simulation; see run().'''
        flipConfig, grid, particles = createDamBreak(damConfig)
        return self.run(flipConfig, grid, particles, 'damBreak', doExport, exportDir, doPlot)

    def runDrop(
        self,
        dropConfig: DropConfig,
        doExport: bool = True,
        exportDir: str = 'computationalFluids/FlipSim/output',
        doPlot: bool = False,
    ) -> dict:
        '''Run a drop simulation; see run().'''
        flipConfig, grid, particles = createDrop(dropConfig)
        return self.run(flipConfig, grid, particles, 'drop', doExport, exportDir, doPlot)

    def run(
        self,
        flipConfig: FlipConfig,
        grid: MacGrid,
        particles: ParticleSystem,
        scenarioName: str = 'damBreak',
        doExport: bool = True,
        exportDir: str = 'computationalFluids/FlipSim/output',
        doPlot: bool = False,
    ) -> dict:
        '''
        Run a FLIP simulation to the configured end time.

        Parameters:
        -----------
        flipConfig : FlipConfig
            Simulation configuration
        grid : MacGrid
            Grid with solids set up
        particles : ParticleSystem
            Initial particles
        scenarioName : str
            Scenario name for banners and file names
        doExport : bool
            Whether to export frame data
        exportDir : str
            Output directory for frame export and plots
        doPlot : bool
            Whether to write HTML plots

        Returns:
        --------
        dict : Simulation results summary
        '''
        print()
        print('=' * 62)
        print(f'  FLIPSIM -- FLIP {scenarioName.upper()} SIMULATION')
        print('=' * 62)
        print()

        #--------------------------------------------------------------------#
        # Scenario Setup
        #--------------------------------------------------------------------#
        print('-' * 62)
        print('  SCENARIO SETUP')
        print('-' * 62)

        nx, ny, nz = flipConfig.nCells
        print(f'  Grid Cells:        {nx:4d} x {ny:4d} x {nz:4d}')
        print(f'  Cell Size:         {flipConfig.cellSize[0]:8.4f} m')
        print(f'  Dimensions:        {flipConfig.dimensions:8d}D')
        print(f'  Solid Cells:       {int(grid.solidMask.sum()):8d}')
        print(f'  Particles:         {particles.nParticles:8d}')
        print(f'  Frame dt:          {flipConfig.frameDt:8.4f} s')
        print(f'  End Time:          {flipConfig.endTime:8.2f} s')
        print()

        #--------------------------------------------------------------------#
        # Initialize Solver
        #--------------------------------------------------------------------#
        print('-' * 62)
        print('  INITIALIZING SOLVER')
        print('-' * 62)

        solver = FlipSolver.fromConfig(flipConfig, particles, grid)

        print(f'  Alpha (PIC share): {flipConfig.alpha:8.3f}')
        print(f'  Kernel:            {flipConfig.kernelType:>8s}')
        print(f'  Kernel Radius:     {flipConfig.kernelRadius:8.4f} m')
        print(f'  Integrator:        {flipConfig.integrator:>8s}')
        print(f'  Preconditioner:    {flipConfig.preconditioner:>8s}')
        print(f'  Particle Mass:     {solver.particleMass:10.3e} kg')
        print()

        # Record initial frame
        self._exporter.addFrame(solver.currentState, particles, flipConfig.dimensions)

        #--------------------------------------------------------------------#
        # Simulation Loop
        #--------------------------------------------------------------------#
        print('-' * 62)
        print('  RUNNING SIMULATION')
        print('-' * 62)
        print()
        print(f'  {"Time":>8}  {"Frame":>6}  {"Sub":>4}  {"CG":>5}  {"MaxVel":>8}  {"MaxDiv":>10}  {"KE":>10}')
        print(f'  {"(s)":>8}  {"":>6}  {"":>4}  {"":>5}  {"(m/s)":>8}  {"(1/s)":>10}  {"(J)":>10}')
        print('  ' + '-' * 58)

        wallClockStart = timeModule.time()
        nFrames = flipConfig.nFrames
        printEvery = max(1, nFrames // 20)
        nUnconverged = 0

        for frame in range(nFrames):
            solver.step()
            state = self._recordFrame(solver, flipConfig.dimensions)

            if not state.pressureConverged:
                nUnconverged += 1

            if frame % printEvery == 0 or frame == nFrames - 1:
                flag = '' if state.pressureConverged else ' *'
                print(
                    f'  {state.time:8.4f}  {state.step:6d}  {state.nSubsteps:4d}  '
                    f'{state.pressureIterations:5d}  {state.maxVelocity:8.4f}  '
                    f'{state.maxDivergence:10.2e}  {state.kineticEnergy:10.4f}{flag}'
                )

        wallClockSeconds = timeModule.time() - wallClockStart
        finalState = solver.currentState

        print()
        print(f'  Simulation complete.')
        print(f'  Total frames:      {solver.stepCount:8d}')
        print(f'  Wall-clock time:   {wallClockSeconds:8.1f} s')
        print(f'  Frames recorded:   {self._exporter.nFrames:8d}')
        if nUnconverged:
            print(f'  Unconverged (*):   {nUnconverged:8d}')
        print()

        #--------------------------------------------------------------------#
        # Export
        #--------------------------------------------------------------------#
        exportPath = None
        if doExport:
            print('-' * 62)
            print('  EXPORTING FRAME DATA')
            print('-' * 62)

            exportPath = self._exporter.export(
                config=flipConfig,
                outputDir=exportDir,
                scenarioName=scenarioName,
            )
            print(f'  Exported to: {exportPath}')
            print()

        plotPaths = []
        if doPlot:
            print('-' * 62)
            print('  WRITING PLOTS')
            print('-' * 62)

            os.makedirs(exportDir, exist_ok=True)
            figures = {
                'diagnostics': plotStepDiagnostics(self._history),
                'particles': plotParticleSnapshot(particles, grid),
            }
            for name, fig in figures.items():
                path = os.path.join(exportDir, f'flipSim_{scenarioName}_{name}.html')
                fig.write_html(path)
                plotPaths.append(path)
                print(f'  Wrote: {path}')
            print()

        #--------------------------------------------------------------------#
        # Summary
        #--------------------------------------------------------------------#
        print('=' * 62)
        print('  SIMULATION SUMMARY')
        print('=' * 62)
        print(f'  Final KE:          {finalState.kineticEnergy:10.6f} J')
        print(f'  Max Velocity:      {finalState.maxVelocity:8.4f} m/s')
        print(f'  Max Divergence:    {finalState.maxDivergence:10.2e} 1/s')
        print(f'  Fluid Cells:       {finalState.nFluidCells:8d}')
        print(f'  Particles:         {particles.nParticles:8d}')
        print('=' * 62)
        print()

        return {
            'finalState': finalState,
            'wallClockSeconds': wallClockSeconds,
            'nFrames': self._exporter.nFrames,
            'nUnconverged': nUnconverged,
            'exportPath': exportPath,
            'plotPaths': plotPaths,
        }


#--------------------------------------------------------------------#
# -- CLI Entry Point -- #
#--------------------------------------------------------------------#

def main() -> None:
    '''CLI entry point.'''
    parser = buildParser()
    args = parser.parse_args()

    runner = FlipSimRunner()
    options = dict(doExport=not args.no_export, exportDir=args.output_dir, doPlot=args.plot)

    if args.config:
        runner.runFromConfig(args.config, endTime=args.end_time, **options)
    elif args.scenario == 'drop':
        dropPresets = {
            'small2D': DropConfig.small2D,
            'small3D': DropConfig.small3D,
        }
        dropConfig = dropPresets[args.preset]()
        if args.end_time is not None:
            dropConfig.endTime = args.end_time
        runner.runDrop(dropConfig, **options)
    else:
        damPresets = {
            'small2D': DamBreakConfig.small2D,
            'small3D': DamBreakConfig.small3D,
        }
        damConfig = damPresets[args.preset]()
        if args.end_time is not None:
            damConfig.endTime = args.end_time
        runner.runDamBreak(damConfig, **options)


if __name__ == '__main__':
    main()
