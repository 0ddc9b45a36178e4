#!/usr/bin/env python3
"""Run the solver benchmarks and track per-frame times across runs.

Every calculate method plus the tangent-only path is timed on the deforming
sphere from ``benchmark_solvers``. Times are compared against the fastest
previous run stored in ``results.json`` (keyed by benchmark and worker
count); a slowdown above 5% is flagged.
"""

import argparse
import json
import os
import sys
from datetime import datetime
from pathlib import Path

sys.path.append(os.path.dirname(__file__))

import benchmark_solvers

RESULTS_FILE = Path(__file__).parent / "results.json"
REGRESSION_PCT = 5.0


def _benchmarks(frames, workers):
    def method(name):
        return lambda: benchmark_solvers.benchmark_method(
            name, frames=frames, workers=workers
        )

    return {
        "smoothing": method("smoothing"),
        "cached_parallel": method("cached_parallel"),
        "cached_lite": method("cached_lite"),
        "tangents_only": lambda: benchmark_solvers.benchmark_tangents_only(
            frames=frames, workers=workers
        ),
    }


def load_history():
    if not RESULTS_FILE.exists():
        return {}
    try:
        with open(RESULTS_FILE, "r") as f:
            return json.load(f)
    except json.JSONDecodeError:
        return {}


def save_history(history):
    with open(RESULTS_FILE, "w") as f:
        json.dump(history, f, indent=2, sort_keys=True)


def compare(frame_time, best_record):
    """Return ``(label, is_regression)`` for one timing against its best."""
    if not best_record:
        return "new", False
    pct = (frame_time - best_record["time"]) / best_record["time"] * 100
    if pct > REGRESSION_PCT:
        return f"{pct:+.1f}% (SLOW)", True
    if pct < -REGRESSION_PCT:
        return f"{pct:+.1f}% (FAST)", False
    return f"{pct:+.1f}%", False


def main(argv=None):
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--frames", type=int, default=benchmark_solvers.FRAMES)
    parser.add_argument("--workers", type=int, default=benchmark_solvers.WORKERS)
    parser.add_argument(
        "--no-save", action="store_true", help="do not update results.json"
    )
    args = parser.parse_args(argv)

    history = load_history()
    timestamp = datetime.now().isoformat()
    regressions = []

    print(f"Solver benchmarks on {sys.platform}, workers={args.workers}")
    print(f"{'Benchmark':<18} {'ms/frame':>10} {'best':>10}  change")
    for name, func in _benchmarks(args.frames, args.workers).items():
        key = f"{name}@{args.workers}"
        frame_time = func()
        best = history.get(key)
        label, slow = compare(frame_time, best)
        best_ms = best["time"] * 1e3 if best else float("nan")
        print(f"{name:<18} {frame_time * 1e3:>10.3f} {best_ms:>10.3f}  {label}")
        if slow:
            regressions.append(name)
        if best is None or frame_time < best["time"]:
            history[key] = {"time": frame_time, "timestamp": timestamp}

    if regressions:
        print(f"WARNING: slower than best for {', '.join(regressions)}")
    if not args.no_save:
        save_history(history)
        print(f"Results saved to {RESULTS_FILE}")
    return 1 if regressions else 0


if __name__ == "__main__":
    sys.exit(main())
