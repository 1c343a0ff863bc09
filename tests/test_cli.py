import json

import numpy as np
import pytest

from densesvd.cli import main
from densesvd.config import ExecutionContext, load_config
from densesvd.exceptions import UsageError
from densesvd.models import SOLVERS
from densesvd.pipelines import MessagePassingProfile
from densesvd.serialization import read_results


@pytest.fixture
def paths(tmp_path):
    return tmp_path / "out.dat", tmp_path / "run.log"


def _args(csv_path, output, log_path, *extra):
    return [str(csv_path), "2", "2", "1", "--output", str(output), "--log-file", str(log_path), *extra]


def test_success(example_csv, paths):
    output, log_path = paths

    assert main(_args(example_csv, output, log_path, "--solver", "lapack")) == 0

    assert output.exists()
    assert log_path.read_text().splitlines()[-1] == "svds call completed successfully!"


def test_wrong_argument_count_exits_with_usage_error(example_csv):
    with pytest.raises(SystemExit) as exc_info:
        main([str(example_csv), "2", "2"])

    assert exc_info.value.code == 2


@pytest.mark.parametrize("rows, cols, k", [("two", "2", "1"), ("2", "0", "1"), ("2", "2", "1.5")])
def test_bad_numbers_are_usage_errors(example_csv, paths, rows, cols, k):
    output, log_path = paths

    assert main([str(example_csv), rows, cols, k, "--output", str(output)]) == 2
    assert not output.exists()


def test_missing_input(tmp_path, paths):
    output, log_path = paths

    assert main(_args(tmp_path / "nope.csv", output, log_path)) == 1

    assert not output.exists()
    assert len(log_path.read_text().splitlines()) == 1


def test_rank_too_large(example_csv, paths):
    output, log_path = paths
    argv = _args(example_csv, output, log_path, "--solver", "lapack")
    argv[3] = "3"

    assert main(argv) == 1
    assert not output.exists()


def test_default_paths(example_csv, tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)

    assert main([str(example_csv), "2", "2", "1", "--solver", "lapack"]) == 0

    assert (tmp_path / "svd_mpi_results.dat").exists()
    assert (tmp_path / "svd_shared.log").exists()


def test_config_file_is_overridden_by_flags(example_csv, tmp_path, paths):
    output, log_path = paths
    config_path = tmp_path / "config.json"
    config_path.write_text(json.dumps({
        "solver": "lapack",
        "output_path": str(tmp_path / "from_config.dat"),
        "log_path": str(log_path),
        "n_threads": 1,
    }))

    assert main([str(example_csv), "2", "2", "1", "--config", str(config_path)]) == 0
    assert (tmp_path / "from_config.dat").exists()

    assert main([str(example_csv), "2", "2", "2", "--config", str(config_path), "--output", str(output)]) == 0
    with read_results(output) as factors:
        assert factors.s.shape == (2, 2)


def test_bad_config(example_csv, tmp_path):
    config_path = tmp_path / "config.json"
    config_path.write_text(json.dumps({"colour": "blue"}))

    assert main([str(example_csv), "2", "2", "1", "--config", str(config_path)]) == 2

    with pytest.raises(UsageError):
        load_config(tmp_path / "absent.json")


def test_context_from_args():
    context = ExecutionContext.from_args("r.csv", "10", "4", "3", n_threads="2", solver=None)

    assert (context.rows, context.cols, context.k, context.n_threads) == (10, 4, 3, 2)
    assert context.solver == "lobpcg"
    with pytest.raises(Exception):
        context.rows = 5

    with pytest.raises(UsageError):
        ExecutionContext.from_args("r.csv", "10", "4", "3", colour="blue")
    with pytest.raises(UsageError):
        ExecutionContext.from_args("r.csv", "10", "4", "3", n_threads=0)


def test_non_leader_rank_touches_no_file(example_csv, tmp_path, paths, fake_comm, monkeypatch):
    output, log_path = paths
    monkeypatch.setattr(MessagePassingProfile, "world", lambda self: fake_comm(2, 4))
    # a config that does not exist would be a usage error on the leader
    argv = _args(example_csv, output, log_path, "--config", str(tmp_path / "missing.json"))

    assert main(argv, profile="mpi") == 0

    assert not output.exists()
    assert not log_path.exists()


def test_unwritable_factors_exit_with_one(example_csv, paths, monkeypatch):
    output, log_path = paths

    def backend(data, k):
        rows, cols = data.shape
        return np.ones((rows, k)), np.ones((k, k, 2)), np.ones((cols, k)), 0

    monkeypatch.setitem(SOLVERS, "three_d", backend)

    assert main(_args(example_csv, output, log_path, "--solver", "three_d")) == 1
    assert not output.exists()
    assert log_path.read_text().splitlines()[-1].startswith("Error: ")
