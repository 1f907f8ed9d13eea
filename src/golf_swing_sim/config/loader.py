from __future__ import annotations

import warnings
from copy import deepcopy
from pathlib import Path
from typing import Any, Dict

import yaml
from pydantic import ValidationError

from .models import SimulationConfig, format_validation_error


class ConfigError(ValueError):
    pass


# (section, key in YAML) -> flat engine parameter
FIELD_MAP: Dict[tuple, str] = {
    ("pendulum", "length_m"): "length",
    ("pendulum", "mass_kg"): "mass",
    ("pendulum", "gravity_m_s2"): "gravity",
    ("pendulum", "torque_Nm"): "torque",
    ("initial_state", "angle_rad"): "theta0",
    ("initial_state", "angular_velocity_rad_s"): "omega0",
    ("integration", "t_start_s"): "t_start",
    ("integration", "t_end_s"): "t_end",
    ("integration", "dt_s"): "dt",
    ("integration", "rtol"): "rtol",
    ("integration", "atol"): "atol",
    ("integration", "method"): "method",
    ("integration", "max_steps"): "max_steps",
    ("ball", "mass_kg"): "ball_mass",
}

_FLAT_TO_SECTION = {flat: key for key, flat in FIELD_MAP.items()}


def load_simulation_config(path: Path) -> Dict[str, Any]:
    raw = _load_raw_config(path)
    return normalize_config_dict(raw, filename=path.name)


def _load_raw_config(path: Path) -> Dict[str, Any]:
    if not path.is_file():
        raise ConfigError(f"Config file not found: {path}")
    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() in {".yaml", ".yml", ".json"}:
        # JSON is a subset of YAML 1.2
        data = yaml.safe_load(text)
    else:
        raise ConfigError(f"Unsupported config extension '{path.suffix}'.")
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"{path.name}: configuration must be a mapping")
    return data


def normalize_config_dict(config: Dict[str, Any], *, filename: str) -> Dict[str, Any]:
    """Migrate and validate a config mapping; returns only the keys that were set."""
    raw = migrate_config_dict(config)
    try:
        cfg = SimulationConfig.model_validate(raw)
    except ValidationError as exc:
        raise ConfigError(format_validation_error(exc, filename=filename)) from exc
    return cfg.model_dump(exclude_none=True)


def migrate_config_dict(config: Dict[str, Any]) -> Dict[str, Any]:
    """Move flat engine keys (``torque: 200``) into their YAML sections."""
    data = deepcopy(config)
    flat_keys = [k for k in data if k in _FLAT_TO_SECTION]
    if not flat_keys:
        return data
    warnings.warn(
        "Config uses flat engine keys "
        f"({', '.join(sorted(flat_keys))}); auto-migrating into sections.",
        DeprecationWarning,
        stacklevel=2,
    )
    for flat in flat_keys:
        section, key = _FLAT_TO_SECTION[flat]
        value = data.pop(flat)
        block = data.setdefault(section, {})
        if not isinstance(block, dict):
            raise ConfigError(f"Section '{section}' must be a mapping")
        block.setdefault(key, value)
    return data


def config_to_params(config: Dict[str, Any]) -> Dict[str, Any]:
    """Flatten a normalized config into engine overrides for ``run_simulation``."""
    params: Dict[str, Any] = {}
    for (section, key), flat in FIELD_MAP.items():
        block = config.get(section) or {}
        if key in block and block[key] is not None:
            params[flat] = block[key]
    if config.get("case_name"):
        params["case_name"] = config["case_name"]
    return params
