"""Runtime recomputation of mesh vertex normals and tangents.

The implementation lives in the top-level packages `geometry/`, `runtime/`,
`parameters/` and `core/`. This package re-exports the public entry points::

    from normal_solver import RuntimeNormalSolver, solve_smoothing
"""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version

from core.exceptions import (
    CacheFormatError,
    CacheTopologyMismatchError,
    ConfigurationError,
    InputShapeError,
    MissingCacheError,
    NormalSolverError,
)
from geometry.adjacency import AdjacencyTable, build_adjacency
from geometry.cache_io import load_cache, save_cache
from geometry.cache_store import CacheStore, build_cache
from geometry.position_groups import DuplicateGroups, group_positions
from parameters.solver_parameters import SolverParameters
from runtime.cached_solver import solve_cached, solve_tangents
from runtime.normal_solver import RuntimeNormalSolver, select_method
from runtime.output_sinks import MeshBufferSink, OutputSink, PackedBufferSink
from runtime.results import DegenerateGeometryReport, SolveResult
from runtime.seam_average import solve_seam_averaged
from runtime.smoothing_solver import solve_smoothing

try:
    __version__ = version("normal-solver")
except PackageNotFoundError:  # pragma: no cover
    __version__ = "0.0.0"

__all__ = [
    "AdjacencyTable",
    "CacheFormatError",
    "CacheStore",
    "CacheTopologyMismatchError",
    "ConfigurationError",
    "DegenerateGeometryReport",
    "DuplicateGroups",
    "InputShapeError",
    "MeshBufferSink",
    "MissingCacheError",
    "NormalSolverError",
    "OutputSink",
    "PackedBufferSink",
    "RuntimeNormalSolver",
    "SolveResult",
    "SolverParameters",
    "build_adjacency",
    "build_cache",
    "group_positions",
    "load_cache",
    "save_cache",
    "select_method",
    "solve_cached",
    "solve_seam_averaged",
    "solve_smoothing",
    "solve_tangents",
]
