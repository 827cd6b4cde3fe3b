# config.py
"""
Parameter and initial-state files.

Two parameter formats are read:

- Java-style properties (``.params`` / ``.properties``): ``key=value`` or
  ``key: value`` lines, ``#`` or ``!`` comments.
- YAML (``.yaml`` / ``.yml``): a flat mapping, or a mapping with a
  ``parameters`` block.

Both must define ``kdelay`` and ``p1``..``p48``; dials and infusions are
optional. Any problem raises ConfigError straight away.
"""

from __future__ import annotations

import configparser
import logging
import math
import re
from pathlib import Path
from typing import Dict, Mapping, Sequence

import numpy as np
import yaml

from .errors import ConfigError, ConfigFailure, ParameterError
from .parameters import ParameterSet
from .state_vector import N_STATES

logger = logging.getLogger(__name__)

_SECTION = "thyrosim"
_YAML_SUFFIXES = (".yaml", ".yml")


def _require_file(path: Path) -> None:
    if not path.is_file():
        raise ConfigError(ConfigFailure.FILE_NOT_FOUND, f"no such file: {path}")


def _to_float(key: str, raw) -> float:
    try:
        value = float(raw)
    except (TypeError, ValueError):
        raise ConfigError(
            ConfigFailure.INVALID_VALUE, f"{key}: cannot parse {raw!r} as a number"
        ) from None
    if not math.isfinite(value):
        raise ConfigError(ConfigFailure.INVALID_VALUE, f"{key}: value must be finite, got {raw!r}")
    return value


def read_properties(path: str | Path) -> Dict[str, str]:
    """Read a properties file into a {key: raw string} dict."""
    path = Path(path)
    _require_file(path)
    parser = configparser.ConfigParser(
        delimiters=("=", ":"),
        comment_prefixes=("#", "!"),
        interpolation=None,
    )
    # configparser lower-cases keys by default; parameter names are case-sensitive
    parser.optionxform = str
    text = path.read_text(encoding="utf-8")
    try:
        parser.read_string(f"[{_SECTION}]\n{text}", source=str(path))
    except configparser.Error as exc:
        raise ConfigError(ConfigFailure.INVALID_VALUE, f"{path}: {exc}") from exc
    return dict(parser.items(_SECTION))


def read_yaml(path: str | Path) -> Dict[str, object]:
    path = Path(path)
    _require_file(path)
    with path.open("r", encoding="utf-8") as fh:
        try:
            data = yaml.safe_load(fh)
        except yaml.YAMLError as exc:
            raise ConfigError(ConfigFailure.INVALID_VALUE, f"{path}: {exc}") from exc
    if isinstance(data, dict) and isinstance(data.get("parameters"), dict):
        data = data["parameters"]
    if not isinstance(data, dict):
        raise ConfigError(ConfigFailure.INVALID_VALUE, f"{path}: expected a mapping of parameters")
    return {str(k): v for k, v in data.items()}


def parameters_from_mapping(raw: Mapping[str, object]) -> ParameterSet:
    values = {key: _to_float(key, value) for key, value in raw.items()}
    try:
        return ParameterSet.from_mapping(values)
    except ParameterError as exc:
        raise ConfigError(ConfigFailure.INVALID_VALUE, str(exc)) from exc


def load_parameters(path: str | Path) -> ParameterSet:
    """
    Load a ParameterSet from a properties or YAML file.

    Raises:
        ConfigError: FILE_NOT_FOUND, MISSING_KEY or INVALID_VALUE.
    """
    path = Path(path)
    if path.suffix.lower() in _YAML_SUFFIXES:
        raw = read_yaml(path)
    else:
        raw = read_properties(path)
    params = parameters_from_mapping(raw)
    logger.info("loaded parameters from %s", path)
    return params


def parameters_from_args(values: Sequence[str | float]) -> ParameterSet:
    """Positional layout used by the command-line tool: kdelay, p1, ..., p48."""
    if len(values) != 49:
        raise ConfigError(
            ConfigFailure.MISSING_KEY,
            f"expected 49 positional values (kdelay, p1..p48), got {len(values)}",
        )
    floats = [_to_float(f"arg[{i}]", v) for i, v in enumerate(values)]
    try:
        return ParameterSet.from_sequence(floats)
    except ParameterError as exc:
        raise ConfigError(ConfigFailure.INVALID_VALUE, str(exc)) from exc


def load_initial_state(path: str | Path) -> np.ndarray:
    """Read 19 numbers separated by whitespace and/or commas."""
    path = Path(path)
    _require_file(path)
    tokens = [tok for tok in re.split(r"[\s,]+", path.read_text(encoding="utf-8")) if tok]
    if len(tokens) != N_STATES:
        raise ConfigError(
            ConfigFailure.INVALID_VALUE,
            f"{path}: expected {N_STATES} initial values, got {len(tokens)}",
        )
    return np.array([_to_float(f"q[{i}]", tok) for i, tok in enumerate(tokens)], dtype=float)
