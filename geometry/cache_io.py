# cache_io.py
"""Reading and writing ``CacheStore`` files.

Supported formats are chosen by suffix: ``.json``, ``.yaml``/``.yml`` and
``.npz`` (numpy archive, the compact choice for large meshes).
"""

import json
import logging
from pathlib import Path

import numpy as np
import yaml

from core.exceptions import CacheFormatError
from geometry.cache_store import CacheStore

logger = logging.getLogger("normal_solver")


def _suffix(path) -> str:
    return Path(path).suffix.lower()


def save_cache(cache: CacheStore, path, *, compact: bool = False) -> Path:
    """Write ``cache`` to ``path`` and return the path."""
    path = Path(path)
    suffix = _suffix(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    if suffix == ".npz":
        np.savez_compressed(
            path,
            format_version=np.int64(cache.to_dict()["format_version"]),
            group_of_vertex=cache.group_of_vertex,
            adjacency_ranges=cache.adjacency_ranges,
            adjacency_flat=cache.adjacency_flat,
            triangles=cache.triangles,
            source_vertex_count=np.int64(cache.source_vertex_count),
            source_triangle_count=np.int64(cache.source_triangle_count),
        )
    elif suffix in (".yaml", ".yml"):
        with open(path, "w") as f:
            yaml.safe_dump(cache.to_dict(), f, default_flow_style=compact)
    elif suffix == ".json":
        with open(path, "w") as f:
            if compact:
                json.dump(cache.to_dict(), f, separators=(",", ":"))
            else:
                json.dump(cache.to_dict(), f, indent=2)
    else:
        logger.error(f"Unsupported cache file format for: {path}")
        raise CacheFormatError(f"Unsupported cache file format for: {path}")

    logger.debug("Saved adjacency cache to %s", path)
    return path


def load_cache(path) -> CacheStore:
    """Read a cache written by ``save_cache``."""
    path = Path(path)
    suffix = _suffix(path)

    if suffix == ".npz":
        with np.load(path, allow_pickle=False) as archive:
            data = {key: archive[key] for key in archive.files}
    elif suffix in (".yaml", ".yml"):
        with open(path, "r") as f:
            try:
                data = yaml.safe_load(f)
            except yaml.YAMLError as exc:
                raise CacheFormatError(f"Invalid YAML in {path}: {exc}") from exc
    elif suffix == ".json":
        with open(path, "r") as f:
            try:
                data = json.load(f)
            except json.JSONDecodeError as exc:
                raise CacheFormatError(f"Invalid JSON in {path}: {exc}") from exc
    else:
        logger.error(f"Unsupported cache file format for: {path}")
        raise CacheFormatError(f"Unsupported cache file format for: {path}")

    cache = CacheStore.from_dict(data)
    logger.debug(
        "Loaded adjacency cache from %s (%d groups).", path, cache.group_count
    )
    return cache
