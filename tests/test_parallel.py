import os
import sys
import threading

import numpy as np
import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from runtime.parallel import chunk_ranges, parallel_for


def test_chunk_ranges_cover_count():
    assert chunk_ranges(10, 4) == [(0, 4), (4, 8), (8, 10)]
    assert chunk_ranges(0, 4) == []
    with pytest.raises(ValueError):
        chunk_ranges(10, 0)


@pytest.mark.parametrize("workers", [1, 2, 8])
def test_parallel_for_writes_every_slot_once(workers):
    out = np.zeros(103, dtype=np.int64)

    def body(start, stop):
        out[start:stop] += np.arange(start, stop)

    parallel_for(103, body, workers=workers, chunk_size=10)
    assert out.tolist() == list(range(103))


def test_parallel_for_uses_worker_threads():
    names = set()
    lock = threading.Lock()

    def body(start, stop):
        with lock:
            names.add(threading.current_thread().name)

    parallel_for(40, body, workers=4, chunk_size=5)
    assert all(name.startswith("normal_solver") for name in names)


def test_parallel_for_reraises_after_all_chunks_finish():
    done = []

    def body(start, stop):
        if start == 0:
            raise RuntimeError("boom")
        done.append(start)

    with pytest.raises(RuntimeError, match="boom"):
        parallel_for(30, body, workers=3, chunk_size=10)
    assert sorted(done) == [10, 20]
