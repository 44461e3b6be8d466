# -- Simulation Frame Exporter -- #

'''
Exports FLIP simulation frames as JSON for visualization.

Collects particle snapshots during simulation and writes them to
a JSON file alongside the per-frame solver diagnostics (substeps,
pressure iterations, divergence, kinetic energy).

Sean Bowman [02/05/2026]
'''

from __future__ import annotations

import json
import os
from datetime import datetime

import numpy as np

from computationalFluids.FlipSim.flip.protocols import FlipConfig, StepState
from computationalFluids.FlipSim.flip.particles import ParticleSystem


class FrameExporter:
    '''
    Collects and exports simulation frame data as JSON.

    Usage:
        exporter = FrameExporter()
        # During simulation loop:
        exporter.addFrame(state, particles)
        # After simulation:
        exporter.export(config, outputDir='output')

    Output JSON format:
    {
        "meta": { "type": "flipSim", "dimensions": 2, "created": "...", ... },
        "config": { "grid": {...}, "fluid": {...}, "flip": {...}, ... },
        "frames": [
            {
                "time": 0.0,
                "positions": [[x0, y0], [x1, y1], ...],
                "velocityMagnitudes": [v0, v1, ...]
            },
            ...
        ],
        "diagnostics": {
            "times": [...],
            "substeps": [...],
            "pressureIterations": [...],
            "maxDivergence": [...],
            "kineticEnergy": [...]
        }
    }

    2D runs store (x, y) positions only.
    '''

    def __init__(self) -> None:
        self._frames: list[dict] = []
        self._dimensions: int = 3
        self._diagnostics: dict[str, list] = {
            'times': [],
            'substeps': [],
            'pressureIterations': [],
            'maxDivergence': [],
            'kineticEnergy': [],
        }

    @property
    def nFrames(self) -> int:
        '''Number of collected frames.'''
        return len(self._frames)

    @property
    def diagnostics(self) -> dict[str, list]:
        '''Per-frame diagnostics history.'''
        return self._diagnostics

    def addFrame(self, state: StepState, particles: ParticleSystem, dimensions: int = 3) -> None:
        '''
        Record a simulation frame.

        Parameters:
        -----------
        state : StepState
            Diagnostics of the frame
        particles : ParticleSystem
            Current particle system
        dimensions : int
            2 drops the z coordinate from the stored positions
        '''
        self._dimensions = dimensions
        positions = particles.positions[:, :dimensions]

        # Velocity magnitudes for color mapping
        velMagnitudes = np.linalg.norm(particles.velocities, axis=1)

        frame = {
            'time': round(state.time, 6),
            'positions': np.round(positions, 6).tolist(),
            'velocityMagnitudes': np.round(velMagnitudes, 6).tolist(),
        }
        self._frames.append(frame)

        self._diagnostics['times'].append(round(state.time, 6))
        self._diagnostics['substeps'].append(state.nSubsteps)
        self._diagnostics['pressureIterations'].append(state.pressureIterations)
        self._diagnostics['maxDivergence'].append(state.maxDivergence)
        self._diagnostics['kineticEnergy'].append(round(state.kineticEnergy, 6))

    def export(
        self,
        config: FlipConfig,
        outputDir: str = 'output',
        scenarioName: str = 'damBreak',
    ) -> str:
        '''
        Write all collected frames to a JSON file.

        Parameters:
        -----------
        config : FlipConfig
            Simulation configuration for metadata
        outputDir : str
            Output directory path
        scenarioName : str
            Scenario name for the filename

        Returns:
        --------
        str : Path to the exported JSON file
        '''
        os.makedirs(outputDir, exist_ok=True)

        timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')
        filename = f'flipSim_{scenarioName}_{timestamp}.json'
        filepath = os.path.join(outputDir, filename)

        output = {
            'meta': {
                'type': 'flipSim',
                'dimensions': config.dimensions,
                'nFrames': len(self._frames),
                'nParticles': len(self._frames[0]['positions']) if self._frames else 0,
                'cellSize': config.cellSize.tolist(),
                'created': datetime.now().isoformat(),
            },
            'config': config.toDict(),
            'frames': self._frames,
            'diagnostics': self._diagnostics,
        }

        with open(filepath, 'w') as f:
            json.dump(output, f, indent=None, separators=(',', ':'))

        return filepath
