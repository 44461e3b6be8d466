# -- Runner Tests -- #

'''
Tests for the CLI parser, JSON scenario loading and a short run.

Sean Bowman [02/05/2026]
'''

from __future__ import annotations

import os

from computationalFluids.FlipSim.runner import FlipSimRunner, buildParser, damBreakFromJson
from computationalFluids.FlipSim.scenarios.damBreak import DamBreakConfig, DropConfig


configPath = os.path.join(os.path.dirname(__file__), 'configs', 'damBreak2D.json')


def testParserDefaults():
    args = buildParser().parse_args([])
    assert args.config is None
    assert args.scenario == 'damBreak'
    assert args.preset == 'small2D'
    assert args.end_time is None
    assert not args.no_export and not args.plot


def testParserOptions():
    args = buildParser().parse_args(['--scenario', 'drop', '--preset', 'small3D', '--end-time', '0.5', '--no-export'])
    assert args.scenario == 'drop'
    assert args.preset == 'small3D'
    assert args.end_time == 0.5
    assert args.no_export


def testDamBreakFromJson():
    flipConfig, damConfig = damBreakFromJson(configPath)

    assert flipConfig.nCells == (48, 32, 1)
    assert flipConfig.maxPressureIterations == 200
    assert damConfig.nCells == (48, 32, 1)
    assert damConfig.columnWidth == 0.3
    assert damConfig.columnHeight == 0.7
    assert damConfig.dimensions == 2


def testShortDamBreakRun(tmp_path):
    damConfig = DamBreakConfig(nCells=(12, 12, 1), domainSize=(1.0, 1.0, 1.0 / 12.0),
                               frameDt=0.02, endTime=0.04)
    runner = FlipSimRunner()
    result = runner.runDamBreak(damConfig, exportDir=str(tmp_path), doPlot=True)

    # initial frame plus two steps
    assert result['nFrames'] == 3
    assert len(runner.history) == 2
    assert os.path.isfile(result['exportPath'])
    assert len(result['plotPaths']) == 2
    assert all(os.path.isfile(path) for path in result['plotPaths'])


def testShortDropRunWithoutExport(tmp_path):
    dropConfig = DropConfig(nCells=(12, 12, 1), domainSize=(1.0, 1.0, 1.0 / 12.0),
                            frameDt=0.02, endTime=0.02)
    result = FlipSimRunner().runDrop(dropConfig, doExport=False, exportDir=str(tmp_path))

    assert result['exportPath'] is None
    assert result['plotPaths'] == []
    assert result['finalState'].time > 0.0
