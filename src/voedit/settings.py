from __future__ import annotations

import json
import os
import re
from os import PathLike
from pathlib import Path
from typing import Any, Dict, Final, Optional, Union

import json5  # type: ignore
import yaml
from pydantic import BaseModel, Field, field_validator

# Default number of tokenize/match/apply passes per batch.
DEFAULT_MAX_PASSES: Final[int] = 3

# Longest preview of an unapplied edit block included in warnings.
DEFAULT_PREVIEW_MAX_CHARS: Final[int] = 4000

MAX_PASSES_ENV: Final[str] = "VOEDIT_MAX_PASSES"

# Variable replacement pattern.
# Supports:
#   - ${NAME}
#   - ${env:NAME}
# Ignores '$${NAME}' so it can be used to escape a literal '${NAME}'.
VAR_PATTERN = re.compile(
    r"(?<!\$)\$\{([A-Za-z_][A-Za-z0-9_]*(?::[A-Za-z_][A-Za-z0-9_]*)?)\}"
)


class EngineSettings(BaseModel):
    max_passes: int = Field(default=DEFAULT_MAX_PASSES, ge=1)
    # Joins insertion blocks to each other and to the existing document.
    insert_separator: str = "\n"
    preview_max_chars: int = Field(default=DEFAULT_PREVIEW_MAX_CHARS, ge=1)

    @classmethod
    def from_env(cls, **overrides: Any) -> "EngineSettings":
        data: Dict[str, Any] = {}
        raw = os.getenv(MAX_PASSES_ENV)
        if raw is not None and raw.strip():
            data["max_passes"] = raw.strip()
        data.update(overrides)
        return cls.model_validate(data)


class ToolSpec(BaseModel):
    """
    Per-invocation tool configuration.
    - name: registered tool name
    - enabled: whether the tool should be offered at all
    - config: free-form tool-specific options (e.g. {"max_passes": 5})
    """

    name: str
    enabled: bool = True
    config: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("config", mode="before")
    @classmethod
    def _none_config(cls, v: Any) -> Any:
        return {} if v is None else v


def _lookup_var(name: str, variables: Dict[str, Any]) -> tuple[bool, Any]:
    if name.startswith("env:"):
        val = os.getenv(name[4:])
        return (val is not None), val
    if name in variables:
        return True, variables[name]
    return False, None


def _interpolate_string(s: str, variables: Dict[str, Any]) -> Any:
    # A string that is exactly one placeholder takes the variable's value as-is,
    # so "${env:PASSES}" can still validate as an int.
    m = VAR_PATTERN.fullmatch(s)
    if m:
        found, val = _lookup_var(m.group(1), variables)
        return val if found else s

    def repl(match: re.Match[str]) -> str:
        found, val = _lookup_var(match.group(1), variables)
        return str(val) if found else match.group(0)

    return VAR_PATTERN.sub(repl, s).replace("$${", "${")


def _interpolate(value: Any, variables: Dict[str, Any]) -> Any:
    if isinstance(value, str):
        return _interpolate_string(value, variables)
    if isinstance(value, list):
        return [_interpolate(v, variables) for v in value]
    if isinstance(value, dict):
        return {k: _interpolate(v, variables) for k, v in value.items()}
    return value


def _read_document(path: Path) -> Dict[str, Any]:
    text = path.read_text(encoding="utf-8")
    suffix = path.suffix.lower()
    if suffix in (".yaml", ".yml"):
        doc = yaml.safe_load(text)
    elif suffix == ".json":
        doc = json.loads(text)
    elif suffix == ".json5":
        doc = json5.loads(text)
    else:
        raise ValueError(f"Unsupported settings file type: {path.name}")
    if doc is None:
        return {}
    if not isinstance(doc, dict):
        raise ValueError(f"Settings file must contain a mapping: {path}")
    return doc


def load_settings(
    path: Union[str, PathLike[str]],
    variables: Optional[Dict[str, Any]] = None,
) -> EngineSettings:
    """
    Load EngineSettings from a YAML, JSON or JSON5 file.

    Settings may live at the top level or under an 'edit' key. A 'variables'
    mapping in the file is merged with the given variables (given ones win) and
    used to interpolate ${NAME} and ${env:NAME} placeholders.
    """
    doc = _read_document(Path(path))
    vars_map: Dict[str, Any] = dict(doc.pop("variables", None) or {})
    vars_map.update(variables or {})
    section = doc.get("edit", doc)
    if not isinstance(section, dict):
        raise ValueError("'edit' settings section must be a mapping")
    return EngineSettings.model_validate(_interpolate(section, vars_map))
