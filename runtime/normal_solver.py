"""Runtime front end tying the solvers to a mesh's lifecycle.

Typical use::

    solver = RuntimeNormalSolver(method="cached_parallel", sink=sink)
    solver.initialize(positions, triangles, uvs, normals, tangents)
    solver.build_cache()
    for frame_positions in frames:
        solver.recalculate(frame_positions)
    solver.release()

The solver holds no global state; every piece of state (topology, UVs,
fallback attributes, cache) lives on the instance.
"""

from __future__ import annotations

import logging

import numpy as np

from core.exceptions import (
    CacheTopologyMismatchError,
    ConfigurationError,
    MissingCacheError,
)
from geometry.cache_io import load_cache, save_cache
from geometry.cache_store import CacheStore, build_cache
from geometry.mesh_arrays import as_positions, as_uvs, as_vertex_vectors, mesh_arrays
from parameters.solver_parameters import resolve_parameters
from runtime.cached_solver import solve_cached, solve_tangents
from runtime.output_sinks import OutputSink
from runtime.results import SolveResult
from runtime.seam_average import solve_seam_averaged
from runtime.smoothing_solver import solve_smoothing

logger = logging.getLogger("normal_solver")

CACHED_METHODS = ("cached_parallel", "cached_lite")


def select_method(cache: CacheStore | None, vertex_count: int, triangles=None) -> str:
    """Return ``"cached_parallel"`` if ``cache`` fits the mesh, else ``"smoothing"``."""
    if cache is None:
        return "smoothing"
    try:
        cache.validate(vertex_count, triangles)
    except CacheTopologyMismatchError:
        return "smoothing"
    return "cached_parallel"


class RuntimeNormalSolver:
    """Recalculate normals/tangents of one deforming mesh, frame after frame."""

    def __init__(
        self,
        params=None,
        *,
        method: str | None = None,
        sink: OutputSink | None = None,
        cache: CacheStore | None = None,
    ):
        self.params = resolve_parameters(params, calculate_method=method)
        self.sink = sink
        self.cache = cache
        self.last_result: SolveResult | None = None
        self._positions = None
        self._triangles = None
        self._uvs = None
        self._normals = None
        self._tangents = None
        self._current_normals = None

    @property
    def method(self) -> str:
        return self.params.calculate_method

    @property
    def initialized(self) -> bool:
        return self._triangles is not None

    @property
    def vertex_count(self) -> int:
        return 0 if self._positions is None else int(self._positions.shape[0])

    def initialize(self, positions, triangles, uvs=None, normals=None, tangents=None):
        """Capture the mesh's rest state and topology.

        ``normals``/``tangents`` are the mesh's existing attributes. They stay
        fixed as the fallbacks used where the computation degenerates; solved
        frames never replace them.
        """
        mesh = mesh_arrays(positions, triangles, uvs)
        n_verts = mesh.vertex_count
        self._positions = mesh.positions.copy()
        self._triangles = mesh.triangles
        self._uvs = mesh.uvs
        self._normals = as_vertex_vectors(
            normals, vertex_count=n_verts, width=3, name="normals"
        )
        self._tangents = as_vertex_vectors(
            tangents, vertex_count=n_verts, width=4, name="tangents"
        )
        self._current_normals = None

        if self.cache is not None:
            self.cache.validate(
                n_verts, self._triangles, verify_indices=self.params.verify_cache_indices
            )
        elif self.method in CACHED_METHODS and self.params.auto_build_cache:
            self.build_cache()

        logger.info(
            "Initialized %s normal solver: %d vertices, %d triangles.",
            self.method,
            n_verts,
            mesh.triangle_count,
        )
        if self.params.recalculate_on_initialize:
            self.recalculate(self._positions)
        return self

    def _require_initialized(self) -> None:
        if not self.initialized:
            raise ConfigurationError(
                "RuntimeNormalSolver.initialize() must be called before solving."
            )

    def build_cache(self, positions=None, triangles=None) -> CacheStore:
        """Build (or rebuild) the adjacency cache for the current topology."""
        if triangles is None:
            self._require_initialized()
            triangles = self._triangles
        if positions is None:
            self._require_initialized()
            positions = self._positions
        self.cache = build_cache(
            positions,
            triangles,
            epsilon=self.params.weld_epsilon,
            relative=self.params.weld_epsilon_mode == "relative",
        )
        return self.cache

    def release_cache(self) -> None:
        self.cache = None

    def release(self) -> None:
        """Drop the cache and every captured buffer."""
        self.release_cache()
        self.last_result = None
        self._positions = None
        self._triangles = None
        self._uvs = None
        self._normals = None
        self._tangents = None
        self._current_normals = None

    def save_cache(self, path, *, compact: bool = False):
        if self.cache is None:
            raise MissingCacheError(self.method, "No adjacency cache to save.")
        return save_cache(self.cache, path, compact=compact)

    def load_cache(self, path) -> CacheStore:
        cache = load_cache(path)
        if self.initialized:
            cache.validate(
                self.vertex_count,
                self._triangles,
                verify_indices=self.params.verify_cache_indices,
            )
        self.cache = cache
        return cache

    def _require_cache(self) -> CacheStore:
        if self.cache is None:
            if not self.params.auto_build_cache:
                raise MissingCacheError(self.method)
            logger.info("No adjacency cache assigned; building one on demand.")
            self.build_cache()
        return self.cache

    def recalculate(self, positions, *, uvs=None) -> SolveResult:
        """Solve for the given position snapshot and forward it to the sink.

        ``uvs`` overrides the UVs captured at initialization for this call.
        """
        self._require_initialized()
        pos = as_positions(positions, vertex_count=self.vertex_count)
        uv = self._uvs if uvs is None else as_uvs(uvs, vertex_count=self.vertex_count)
        method = self.method

        if method == "smoothing":
            result = solve_smoothing(
                pos,
                self._triangles,
                uv,
                fallback_normals=self._normals,
                fallback_tangents=self._tangents,
                params=self.params,
            )
        elif method == "cached_parallel":
            result = solve_cached(
                pos,
                self._require_cache(),
                uv,
                triangles=self._triangles,
                compute_tangents=self.params.recalculate_tangents,
                fallback_normals=self._normals,
                fallback_tangents=self._tangents,
                params=self.params,
            )
        elif method == "cached_lite":
            cache = self._require_cache()
            cache.validate(
                self.vertex_count,
                self._triangles,
                verify_indices=self.params.verify_cache_indices,
            )
            result = solve_seam_averaged(
                pos,
                self._triangles,
                cache.groups,
                uv,
                compute_tangents=self.params.recalculate_tangents,
                fallback_normals=self._normals,
                fallback_tangents=self._tangents,
                params=self.params,
            )
        else:
            raise ConfigurationError(f"Unknown calculate_method {method!r}")

        self._current_normals = result.normals
        self.last_result = result
        if self.sink is not None:
            self.sink.write(result.normals, result.tangents)
        return result

    def recalculate_tangents_only(self, positions, normals=None, *, uvs=None) -> np.ndarray:
        """Refresh tangents against current normals, leaving normals as they are.

        ``normals`` defaults to the most recent solved (or initial) normals.
        """
        self._require_initialized()
        current = normals
        if current is None:
            current = (
                self._normals if self._current_normals is None else self._current_normals
            )
        if current is None:
            raise ConfigurationError(
                "No current normals: pass normals or run recalculate() first."
            )
        uv = self._uvs if uvs is None else uvs
        tangents = solve_tangents(
            positions,
            current,
            self._require_cache(),
            uv,
            triangles=self._triangles,
            fallback_tangents=self._tangents,
            params=self.params,
        )
        if self.sink is not None:
            self.sink.write(np.asarray(current, dtype=float), tangents)
        return tangents
