# solver_parameters.py

import json
import logging
import math

import yaml

from core.exceptions import ConfigurationError

logger = logging.getLogger("normal_solver")

CALCULATE_METHODS = ("smoothing", "cached_parallel", "cached_lite")
WELD_EPSILON_MODES = ("absolute", "relative")


class SolverParameters:
    def __init__(self, initial_params=None):
        """
        all parameters are defined with underscore, _, instead of spaces
        """
        self._params = {
            # Faces whose normals differ from a vertex's primary face by more
            # than this angle (degrees) do not contribute to its normal.
            #   180 – smooth everywhere, 0 – flat shading.
            "smoothing_angle": 120.0,
            # Slack on the cosine comparison so coplanar faces still merge
            # at a zero smoothing angle.
            "smoothing_cosine_tolerance": 1e-6,
            # Quantization step used to find vertices sharing a position.
            "weld_epsilon": 1e-5,
            # How weld_epsilon is interpreted:
            #   "absolute" – object-space distance.
            #   "relative" – fraction of the bounding-box diagonal.
            "weld_epsilon_mode": "absolute",
            # Let the smoothing method gather faces across UV seams.
            "weld_positions": False,
            "degenerate_area_epsilon": 1e-12,
            "uv_determinant_epsilon": 1e-12,
            "normal_length_epsilon": 1e-12,
            # Which solver the runtime front end dispatches to:
            #   "smoothing"       – from-scratch smoothing-angle solver.
            #   "cached_parallel" – precomputed adjacency reduction.
            #   "cached_lite"     – per-vertex normals averaged over seams.
            "calculate_method": "smoothing",
            "recalculate_tangents": True,
            "recalculate_on_initialize": False,
            # Build the adjacency cache on demand instead of failing when a
            # cached method runs without one.
            "auto_build_cache": False,
            # Compare the live index buffer against the cached one, not just
            # the counts.
            "verify_cache_indices": True,
            "workers": 1,
            "chunk_size": 4096,
        }
        if initial_params:
            self.update(initial_params)

    @classmethod
    def from_file(cls, filename):
        """Load parameters from a YAML or JSON file.

        The file may either hold the parameter mapping directly or nest it
        under a ``solver_parameters`` key.
        """
        filename_str = str(filename)
        with open(filename_str, "r") as f:
            if filename_str.endswith((".yaml", ".yml")):
                data = yaml.safe_load(f)
            elif filename_str.endswith(".json"):
                data = json.load(f)
            else:
                logger.error(f"Unsupported file format for: {filename_str}")
                raise ConfigurationError(
                    f"Unsupported file format for: {filename_str}"
                )
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigurationError(
                f"Parameter file {filename_str} must contain a mapping."
            )
        data = data.get("solver_parameters", data)
        params = cls(data)
        params.validate()
        return params

    def __getattr__(self, name):
        params = self.__dict__.get("_params")
        if params is not None and name in params:
            return params[name]
        raise AttributeError(
            f"{type(self).__name__!s} object has no attribute {name!r}"
        )

    def __setattr__(self, name, value):
        if name == "_params":
            object.__setattr__(self, name, value)
            return
        params = self.__dict__.get("_params")
        if params is not None and name in params:
            params[name] = value
            return
        object.__setattr__(self, name, value)

    def get(self, key, default=None):
        """Retrieve a parameter value, or return a default if not found."""
        return self._params.get(key, default)

    def set(self, key, value):
        """Set or update a parameter."""
        self._params[key] = value

    def update(self, params):
        """Update multiple parameters at once."""
        self._params.update(params)

    def copy(self):
        return SolverParameters(dict(self._params))

    def validate(self):
        """Raise ``ConfigurationError`` when a known parameter is out of range."""
        angle = self._coerce_float("smoothing_angle")
        if not 0.0 <= angle <= 180.0:
            raise ConfigurationError(
                f"smoothing_angle must be within [0, 180] degrees; got {angle}"
            )
        for key in (
            "weld_epsilon",
            "degenerate_area_epsilon",
            "uv_determinant_epsilon",
            "normal_length_epsilon",
        ):
            value = self._coerce_float(key)
            if not value > 0.0:
                raise ConfigurationError(f"{key} must be positive; got {value}")
        if self._coerce_float("smoothing_cosine_tolerance") < 0.0:
            raise ConfigurationError("smoothing_cosine_tolerance must be >= 0")
        if self._params["weld_epsilon_mode"] not in WELD_EPSILON_MODES:
            raise ConfigurationError(
                f"weld_epsilon_mode must be one of {WELD_EPSILON_MODES}; "
                f"got {self._params['weld_epsilon_mode']!r}"
            )
        if self._params["calculate_method"] not in CALCULATE_METHODS:
            raise ConfigurationError(
                f"calculate_method must be one of {CALCULATE_METHODS}; "
                f"got {self._params['calculate_method']!r}"
            )
        for key in ("workers", "chunk_size"):
            value = self._params[key]
            if isinstance(value, bool) or not isinstance(value, int) or value < 1:
                raise ConfigurationError(f"{key} must be a positive integer; got {value!r}")
        return self

    def _coerce_float(self, key):
        """Coerce numeric parameters that may parse as strings in YAML."""
        value = self._params.get(key)
        if isinstance(value, str):
            try:
                value = float(value.strip())
            except ValueError:
                raise ConfigurationError(
                    f"{key} should be numeric; got {value!r}"
                ) from None
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ConfigurationError(f"{key} should be numeric; got {value!r}")
        value = float(value)
        if not math.isfinite(value):
            raise ConfigurationError(f"{key} must be finite; got {value}")
        self._params[key] = value
        return value

    def __contains__(self, key):
        """Check if a parameter exists."""
        return key in self._params

    def __repr__(self):
        """String representation for debugging."""
        return f"SolverParameters({self._params})"

    def to_dict(self):
        """Convert the parameters to a dictionary for serialization."""
        return dict(self._params)


def resolve_parameters(params=None, **overrides):
    """Return a validated copy of ``params`` with non-None overrides applied."""
    resolved = params.copy() if params is not None else SolverParameters()
    resolved.update({key: value for key, value in overrides.items() if value is not None})
    return resolved.validate()
