import gzip

import pytest

from parsat.cli.portfolio import build_parser, config_from_args, main
from parsat.tests import SCENARIO_CNF

pytest.importorskip("pysat.solvers")


def test_config_from_arguments():
    args = build_parser().parse_args(
        ["in.cnf", "out.txt", "-w", "8", "--seed-vars", "3,4,5", "--cpu-lim", "10"]
    )
    cfg = config_from_args(args)
    assert cfg.num_workers == 8
    assert cfg.seed_variables == [3, 4, 5]
    assert cfg.result_path == "out.txt"
    assert cfg.effective_receive_timeout == 70


def test_mpi_defaults_to_world_size():
    args = build_parser().parse_args(["in.cnf", "--launcher", "mpi"])
    assert config_from_args(args).num_workers is None


def test_gzipped_scenario_end_to_end(tmp_path, capsys):
    path = tmp_path / "scenario.cnf.gz"
    path.write_bytes(gzip.compress(SCENARIO_CNF.encode()))
    out = tmp_path / "out.txt"
    code = main([str(path), str(out), "-w", "4", "--seed-vars", "1,2", "--verb", "0"])
    assert code == 10
    assert out.read_text() == "SAT\n1 2 0\n"


def test_configuration_error_exit_code(tmp_path, capsys):
    path = tmp_path / "scenario.cnf"
    path.write_text(SCENARIO_CNF)
    code = main([str(path), "-w", "3", "--seed-vars", "1", "--verb", "0"])
    assert code == 1
    assert "Configuration error" in capsys.readouterr().err


def test_missing_input(tmp_path, capsys):
    assert main([str(tmp_path / "nope.cnf")]) == 1
