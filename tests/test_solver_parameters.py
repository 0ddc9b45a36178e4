import json
import os
import sys

import pytest
import yaml

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from core.exceptions import ConfigurationError
from parameters.solver_parameters import SolverParameters, resolve_parameters


def test_solver_parameters_attribute_and_dict_access_are_consistent():
    params = SolverParameters()

    params.set("smoothing_angle", 45.0)
    assert params.get("smoothing_angle") == 45.0
    assert params.smoothing_angle == 45.0

    params.smoothing_angle = 30.0
    assert params.smoothing_angle == 30.0
    assert params.get("smoothing_angle") == 30.0
    assert "smoothing_angle" in params


def test_defaults_validate():
    params = SolverParameters().validate()
    assert params.smoothing_angle == 120.0
    assert params.calculate_method == "smoothing"
    assert params.workers == 1


def test_unknown_attribute_raises_attribute_error():
    with pytest.raises(AttributeError):
        SolverParameters().not_a_parameter


def test_copy_is_independent():
    params = SolverParameters({"workers": 2})
    clone = params.copy()
    clone.workers = 8
    assert params.workers == 2


@pytest.mark.parametrize(
    "overrides",
    [
        {"smoothing_angle": -1.0},
        {"smoothing_angle": 181.0},
        {"weld_epsilon": 0.0},
        {"weld_epsilon_mode": "fuzzy"},
        {"calculate_method": "gpu"},
        {"workers": 0},
        {"chunk_size": 2.5},
        {"smoothing_angle": "steep"},
        {"smoothing_cosine_tolerance": -1e-3},
    ],
)
def test_validate_rejects_bad_values(overrides):
    with pytest.raises(ConfigurationError):
        SolverParameters(overrides).validate()


def test_string_numbers_are_coerced():
    params = SolverParameters({"weld_epsilon": "1e-4"}).validate()
    assert params.weld_epsilon == 1e-4


def test_resolve_parameters_ignores_none_and_copies():
    base = SolverParameters({"smoothing_angle": 60.0})
    resolved = resolve_parameters(base, smoothing_angle=None, weld_positions=True)
    assert resolved.smoothing_angle == 60.0
    assert resolved.weld_positions is True
    assert base.weld_positions is False


def test_from_yaml_file_with_nested_section(tmp_path):
    path = tmp_path / "solver.yaml"
    path.write_text(
        yaml.safe_dump(
            {"solver_parameters": {"smoothing_angle": 75, "calculate_method": "cached_lite"}}
        )
    )
    params = SolverParameters.from_file(path)
    assert params.smoothing_angle == 75.0
    assert params.calculate_method == "cached_lite"


def test_from_json_file(tmp_path):
    path = tmp_path / "solver.json"
    path.write_text(json.dumps({"workers": 4, "chunk_size": 256}))
    params = SolverParameters.from_file(path)
    assert params.workers == 4
    assert params.chunk_size == 256


def test_from_file_rejects_unknown_format(tmp_path):
    path = tmp_path / "solver.ini"
    path.write_text("[solver]\n")
    with pytest.raises(ConfigurationError):
        SolverParameters.from_file(path)


def test_from_file_rejects_invalid_values(tmp_path):
    path = tmp_path / "solver.yaml"
    path.write_text("smoothing_angle: 270\n")
    with pytest.raises(ConfigurationError):
        SolverParameters.from_file(path)
