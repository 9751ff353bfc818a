"""Loads the settings used when converting rows of feature tokens.

This module defines the `Config` dataclass, the single typed container for
everything the row readers and the conversion script need to know: which
feature mode to parse in, how tokens are separated on a line, what to do with
a malformed row, and whether probe features are reused between rows. The
`load_config` function reads these settings from a `config.yaml` file; keys
may sit at the root of the file or under a ``features:`` section.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Literal, Optional
import yaml

from .types import FeatureMode, check_mode

ErrorPolicy = Literal["fail", "skip"]

@dataclass
class Config:
    """
    A typed configuration object for parsing and converting feature rows.

    Attributes:
        mode: ``"indexed"`` for integer feature ids, ``"named"`` for string
              ids with optional fields. Writer and reader of a binary file
              must agree on it; the file does not record it.
        token_separator: The separator between tokens on one line of a text
                         rows file. None splits on any run of whitespace.
        on_error: ``"fail"`` aborts on the first malformed row, ``"skip"``
                  prints a warning and drops the row.
        reuse_probes: Reuse one set of feature objects across rows while
                      streaming, instead of allocating a fresh set per row.
        show_progress: Show `tqdm` progress bars for file conversions.
        paths: Default input/output paths, keyed by role.
    """
    mode: FeatureMode = "indexed"
    token_separator: Optional[str] = None
    on_error: ErrorPolicy = "fail"
    reuse_probes: bool = True
    show_progress: bool = True
    paths: dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        check_mode(self.mode)
        if self.on_error not in ("fail", "skip"):
            raise ValueError(f"on_error must be 'fail' or 'skip', got '{self.on_error}'.")
        if self.token_separator == "":
            raise ValueError("token_separator must be a non-empty string or null.")

def load_config(path: str = "config.yaml") -> Config:
    """
    Loads and validates a configuration file into a Config object.

    Args:
        path: The path to the `config.yaml` file.

    Returns:
        A fully populated and validated `Config` object.

    Raises:
        FileNotFoundError: If the specified file cannot be found.
        ValueError: If the YAML cannot be parsed or holds invalid settings.
        TypeError: If the root of the YAML file is not a dictionary.
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            y = yaml.safe_load(f)
    except FileNotFoundError:
        raise FileNotFoundError(f"Configuration file not found at: {path}")
    except yaml.YAMLError as e:
        raise ValueError(f"Error parsing YAML file at {path}: {e}")

    if y is None:
        y = {}
    if not isinstance(y, dict):
        raise TypeError(f"Configuration file {path} must be a dictionary.")

    section = y.get("features", y)
    if not isinstance(section, dict):
        raise TypeError(f"The 'features' section in {path} must be a dictionary.")

    separator = section.get("token_separator")
    return Config(
        mode=str(section.get("mode", "indexed")),
        token_separator=None if separator is None else str(separator),
        on_error=str(section.get("on_error", "fail")),
        reuse_probes=bool(section.get("reuse_probes", True)),
        show_progress=bool(section.get("show_progress", True)),
        paths={str(k): str(v) for k, v in (y.get("paths") or {}).items()},
    )
