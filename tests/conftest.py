import numpy as np
import pytest

from densesvd.config import ExecutionContext


class FakeComm:
    """Stands in for an mpi4py communicator"""

    def __init__(self, rank, size):
        self.rank = rank
        self.size = size

    def Get_rank(self):
        return self.rank

    def Get_size(self):
        return self.size


class RecordingBackend:
    """Factorization backend that records its calls and returns fixed factors"""

    def __init__(self, status=0):
        self.status = status
        self.calls = []

    def __call__(self, data, k):
        self.calls.append((data, k))
        rows, cols = data.shape
        if self.status:
            return np.ones((rows, k)), None, None, self.status
        return np.ones((rows, k)), np.eye(k), np.ones((cols, k)), 0


EXAMPLE_CSV = "header\n0,0,5.0\n0,1,3.0\n1,0,4.0\n"


@pytest.fixture
def write_csv(tmp_path):
    def _write(text, name="ratings.csv"):
        csv_path = tmp_path / name
        csv_path.write_text(text)
        return csv_path

    return _write


@pytest.fixture
def example_csv(write_csv):
    return write_csv(EXAMPLE_CSV)


@pytest.fixture
def make_context(tmp_path):
    def _context(csv_path, rows, cols, k, **options):
        options.setdefault("output_path", tmp_path / "results.dat")
        options.setdefault("log_path", tmp_path / "run.log")
        options.setdefault("solver", "lapack")
        return ExecutionContext.from_args(csv_path, rows, cols, k, **options)

    return _context


@pytest.fixture
def recording_backend():
    return RecordingBackend()


@pytest.fixture
def fake_comm():
    return FakeComm
