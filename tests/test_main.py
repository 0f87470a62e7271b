"""
Tests for the command line entry point.
"""

from evacuation_ca.main import main

CONFIG = """
layout:
  map: |
    #######
    #.....#
    _.....#
    #.....#
    #######
simulation:
  seed: 3
  num_simulations: 2
  pedestrian_count: 5
"""


def write_config(tmp_path, text=CONFIG):
    path = tmp_path / 'room.yaml'
    path.write_text(text)
    return path


def test_main_runs_and_writes_timesteps(tmp_path):
    config = write_config(tmp_path)
    out_dir = tmp_path / 'out'
    code = main(['--config', str(config), '--out-dir', str(out_dir),
                 '--no-snapshot', '--quiet'])
    assert code == 0
    lines = (out_dir / 'timesteps.csv').read_text().splitlines()
    assert len(lines) == 2
    assert len(lines[1].split(',')[2].split()) == 2
    assert (out_dir / 'simulation_log.csv').exists()


def test_main_prints_visualization(tmp_path, capsys):
    config = write_config(tmp_path)
    code = main(['--config', str(config), '--out-dir', str(tmp_path / 'out'),
                 '--no-snapshot', '--no-csv', '--simulations', '1',
                 '--pedestrians', '2', '--output-format', 'visualization'])
    assert code == 0
    out = capsys.readouterr().out
    assert 'timestep 0' in out
    assert '_' in out
    assert 'EVACUATION CA SIMULATION REPORT' in out


def test_main_missing_config(tmp_path):
    assert main(['--config', str(tmp_path / 'missing.yaml')]) == 1


def test_main_invalid_config(tmp_path):
    config = write_config(tmp_path, "simulation:\n  num_simulations: 0\n")
    assert main(['--config', str(config), '--out-dir', str(tmp_path / 'out')]) == 1


def test_main_describes_each_set_before_running(tmp_path, capsys):
    config = write_config(tmp_path)
    code = main(['--config', str(config), '--out-dir', str(tmp_path / 'out'),
                 '--no-snapshot', '--no-csv', '--simulations', '1'])
    assert code == 0
    out = capsys.readouterr().out
    assert 'Simulation set 0: 1 exit(s)' in out
    assert 'Exit 0 (width 1): (0, 2)' in out
