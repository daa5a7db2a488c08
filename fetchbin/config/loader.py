# Copyright 2025 Roger Cibrian
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Configuration loading and merging for fetchbin.

The effective configuration is built from four layers, each deep-merged
over the previous one:

1. **Built-in defaults** (DEFAULT_CONFIG)
   - version: latest, caching enabled, token from ${GITHUB_TOKEN}

2. **Tool file** (YAML, e.g. .fetchbin.yaml)
   - Describes the tool: name, repo, binary, asset naming
   - Optional; only loaded if a path is given or the default file exists

3. **Action inputs** (INPUT_* environment variables)
   - What a workflow passes through the action's `with:` block
   - Empty values are ignored so unset inputs don't clobber the file

4. **Overrides** (CLI flags)

Merge Behavior:
    The loader performs deep merging with "last wins" semantics:

    - **Dicts**: Recursively merged (keys from overlay override base)
    - **Lists**: Completely replaced (NOT appended/extended)
    - **Scalars**: Overwritten (strings, numbers, booleans)

Ambient state (the environment) is passed in explicitly, so tests can load
configuration without touching os.environ.

Example:
    Basic usage:
        ```python
        from pathlib import Path
        from fetchbin.config import ToolSpec, load_effective_config

        cfg = load_effective_config(Path(".fetchbin.yaml"))
        tool = ToolSpec.from_config(cfg)
        print(tool.repo, cfg["version"], cfg["cache"]["enabled"])
        ```

    Tool file:
        ```yaml
        tool:
          name: ripgrep
          repo: BurntSushi/ripgrep
          binary: rg
        version: latest
        cache:
          enabled: true
        ```
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
import os
from pathlib import Path
import string
import tempfile
from typing import Any

import yaml

from fetchbin.exceptions import ConfigError
from fetchbin.logging import Logger, get_global_logger

DEFAULT_CONFIG_FILE = ".fetchbin.yaml"

DEFAULT_CONFIG: dict[str, Any] = {
    "tool": {
        "name": None,
        "repo": None,
        "binary": None,
        "asset_template": None,
        "os_aliases": {},
        "arch_aliases": {},
    },
    "version": "latest",
    "token": "${GITHUB_TOKEN}",
    "release": {
        "asset_url": None,
        "asset_name": None,
    },
    "cache": {
        "enabled": True,
        "dir": None,
        "prefix": "fetchbin",
    },
    "install": {
        "dir": None,
    },
    "download": {
        "timeout": None,
    },
    "api": {
        "base_url": "https://api.github.com",
        "timeout": None,
    },
}

# Action input name -> (section, key); section None means top level
_ACTION_INPUTS: dict[str, tuple[str | None, str]] = {
    "INPUT_VERSION": (None, "version"),
    "INPUT_TOKEN": (None, "token"),
    "INPUT_CACHE": ("cache", "enabled"),
    "INPUT_CACHE_DIR": ("cache", "dir"),
    "INPUT_INSTALL_DIR": ("install", "dir"),
    "INPUT_TOOL": ("tool", "name"),
    "INPUT_REPO": ("tool", "repo"),
    "INPUT_BINARY": ("tool", "binary"),
    "INPUT_ASSET_URL": ("release", "asset_url"),
    "INPUT_ASSET_NAME": ("release", "asset_name"),
}

TEMPLATE_FIELDS = frozenset({"name", "version", "tag", "os", "arch", "ext"})

_TRUE = {"true", "yes", "y", "1", "on"}
_FALSE = {"false", "no", "n", "0", "off"}


@dataclass(frozen=True)
class ToolSpec:
    """Definition of the tool being installed.

    Attributes:
        name: Canonical tool identifier (cache keys, install paths).
        repo: Release repository, "owner/name".
        binary: Canonical executable base name (without ".exe").
        asset_template: Optional exact asset-name template.
        os_aliases: Extra os spellings, keyed by canonical os token.
        arch_aliases: Extra arch spellings, keyed by canonical arch token.
    """

    name: str
    repo: str
    binary: str = ""
    asset_template: str | None = None
    os_aliases: dict[str, list[str]] = field(default_factory=dict)
    arch_aliases: dict[str, list[str]] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.binary:
            object.__setattr__(self, "binary", self.name)
        if self.asset_template is not None:
            _check_template(self.asset_template)

    @classmethod
    def from_config(cls, cfg: Mapping[str, Any]) -> ToolSpec:
        """Build a ToolSpec from an effective configuration.

        Raises:
            ConfigError: If tool.name or tool.repo is missing or invalid.

        """
        tool = cfg.get("tool") or {}
        name = tool.get("name")
        repo = tool.get("repo")

        if not repo:
            raise ConfigError("Configuration requires 'tool.repo' (owner/name)")
        if not isinstance(repo, str) or repo.count("/") != 1 or not all(
            repo.split("/")
        ):
            raise ConfigError(
                f"Invalid repo format: {repo!r}. Expected 'owner/repository'"
            )
        if not name:
            name = repo.split("/")[1]
        if not isinstance(name, str):
            raise ConfigError("tool.name must be a string")

        binary = tool.get("binary") or name
        if not isinstance(binary, str) or "/" in binary or "\\" in binary:
            raise ConfigError(f"tool.binary must be a plain file name: {binary!r}")

        template = tool.get("asset_template")
        if template is not None and not isinstance(template, str):
            raise ConfigError("tool.asset_template must be a string")

        return cls(
            name=name,
            repo=repo,
            binary=binary,
            asset_template=template or None,
            os_aliases=_alias_map(tool.get("os_aliases"), "tool.os_aliases"),
            arch_aliases=_alias_map(tool.get("arch_aliases"), "tool.arch_aliases"),
        )


# -------------------------------
# YAML helpers
# -------------------------------


def _load_yaml_file(p: Path) -> dict[str, Any]:
    """Load a YAML mapping from a file.

    Raises:
        ConfigError: If the file is missing, invalid YAML, or not a mapping.
    """
    if not p.exists():
        raise ConfigError(f"Config file not found: {p}")
    try:
        with p.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as err:
        raise ConfigError(f"Error parsing YAML: {p}: {err}") from err
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Top-level YAML must be a mapping (dict): {p}")
    return data


# -------------------------------
# Merge logic
# -------------------------------


def _deep_merge_dicts(base: dict[str, Any], overlay: dict[str, Any]) -> dict[str, Any]:
    """Deep-merge two dicts with "overlay wins".

    Rules:
      - dict + dict -> deep merge
      - list + list -> overlay REPLACES base (not concatenated)
      - everything else -> overlay overwrites base

    This function does not mutate inputs; returns a new dict.
    """
    result: dict[str, Any] = dict(base)
    for k, v in overlay.items():
        if k in result and isinstance(result[k], dict) and isinstance(v, dict):
            result[k] = _deep_merge_dicts(result[k], v)
        else:
            result[k] = v
    return result


# -------------------------------
# Value helpers
# -------------------------------


def parse_bool(value: Any, field_name: str) -> bool:
    """Parse a boolean input ("true", "no", 1, ...).

    Raises:
        ConfigError: If the value is not a recognizable boolean.
    """
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise ConfigError(f"{field_name} must be a boolean, got {value!r}")


def _parse_timeout(value: Any, field_name: str) -> float | None:
    if value is None or value == "":
        return None
    try:
        timeout = float(value)
    except (TypeError, ValueError) as err:
        raise ConfigError(f"{field_name} must be a number of seconds") from err
    if timeout <= 0:
        raise ConfigError(f"{field_name} must be positive, got {value!r}")
    return timeout


def _expand_env(value: Any, environ: Mapping[str, str]) -> Any:
    """Expand a whole-value ${VAR} reference; other values pass through."""
    if isinstance(value, str) and value.startswith("${") and value.endswith("}"):
        return environ.get(value[2:-1]) or None
    return value


def _check_template(template: str) -> None:
    """Reject asset templates that would fail to render."""
    hint = f"Use only these placeholders: {', '.join(sorted(TEMPLATE_FIELDS))}"
    try:
        parsed = list(string.Formatter().parse(template))
    except ValueError as err:
        raise ConfigError(
            f"Invalid tool.asset_template {template!r}: {err}", hint=hint
        ) from err

    fields = [f for _, f, _, _ in parsed if f is not None]
    unknown = [f or "{}" for f in fields if f not in TEMPLATE_FIELDS]
    if unknown:
        raise ConfigError(
            f"Unknown placeholder(s) in tool.asset_template {template!r}: "
            f"{', '.join(unknown)}",
            hint=hint,
        )

    # Format specs are only checked by rendering
    try:
        template.format(**{f: "x" for f in TEMPLATE_FIELDS})
    except (ValueError, IndexError, KeyError) as err:
        raise ConfigError(
            f"Invalid tool.asset_template {template!r}: {err}", hint=hint
        ) from err


def _alias_map(raw: Any, field_name: str) -> dict[str, list[str]]:
    if not raw:
        return {}
    if not isinstance(raw, dict):
        raise ConfigError(f"{field_name} must be a mapping")
    aliases: dict[str, list[str]] = {}
    for key, value in raw.items():
        spellings = [value] if isinstance(value, str) else value
        if not isinstance(spellings, list) or not all(
            isinstance(s, str) for s in spellings
        ):
            raise ConfigError(f"{field_name}.{key} must be a string or list of strings")
        aliases[str(key).lower()] = spellings
    return aliases


def _inputs_from_env(environ: Mapping[str, str]) -> dict[str, Any]:
    """Collect non-empty INPUT_* action inputs into a config overlay."""
    overlay: dict[str, Any] = {}
    for var, (section, key) in _ACTION_INPUTS.items():
        raw = environ.get(var, "").strip()
        if not raw:
            continue
        if section is None:
            overlay[key] = raw
        else:
            overlay.setdefault(section, {})[key] = raw
    return overlay


# -------------------------------
# Directory defaults
# -------------------------------


def resolve_cache_dir(cfg: Mapping[str, Any], environ: Mapping[str, str]) -> Path:
    """Cache root: cache.dir, else $RUNNER_TOOL_CACHE/fetchbin, else ~/.cache."""
    configured = (cfg.get("cache") or {}).get("dir")
    if configured:
        return Path(configured).expanduser().resolve()
    tool_cache = environ.get("RUNNER_TOOL_CACHE")
    if tool_cache:
        return Path(tool_cache) / "fetchbin"
    return Path.home() / ".cache" / "fetchbin"


def resolve_install_dir(cfg: Mapping[str, Any], environ: Mapping[str, str]) -> Path:
    """Install root: install.dir, else $RUNNER_TEMP/fetchbin, else tempdir."""
    configured = (cfg.get("install") or {}).get("dir")
    if configured:
        return Path(configured).expanduser().resolve()
    runner_temp = environ.get("RUNNER_TEMP")
    if runner_temp:
        return Path(runner_temp) / "fetchbin"
    return Path(tempfile.gettempdir()) / "fetchbin"


# -------------------------------
# Public API
# -------------------------------


def load_effective_config(
    config_path: Path | None = None,
    *,
    environ: Mapping[str, str] | None = None,
    overrides: dict[str, Any] | None = None,
    logger: Logger | None = None,
) -> dict[str, Any]:
    """Load and merge the effective configuration.

    Steps:
      1) Start from DEFAULT_CONFIG.
      2) Merge the tool file (config_path, or .fetchbin.yaml if present).
      3) Merge non-empty INPUT_* action inputs from ``environ``.
      4) Merge ``overrides`` (CLI flags; None values are dropped).
      5) Expand ${VAR} in the token, normalize booleans and timeouts.
      6) Validate the tool definition.

    Args:
        config_path: Tool YAML file. Missing explicit paths are an error; the
            implicit default file is optional.
        environ: Environment mapping (defaults to os.environ).
        overrides: Nested dict of highest-priority values.
        logger: Optional logger; defaults to the global logger.

    Returns:
        The merged configuration dict.

    Raises:
        ConfigError: On YAML errors or invalid values.

    """
    logger = logger or get_global_logger()
    environ = os.environ if environ is None else environ

    merged = _deep_merge_dicts({}, DEFAULT_CONFIG)
    layers = 1

    if config_path is None and Path(DEFAULT_CONFIG_FILE).exists():
        config_path = Path(DEFAULT_CONFIG_FILE)

    if config_path is not None:
        config_path = Path(config_path)
        logger.verbose("CONFIG", f"Loading: {config_path}")
        merged = _deep_merge_dicts(merged, _load_yaml_file(config_path))
        layers += 1

    action_inputs = _inputs_from_env(environ)
    if action_inputs:
        logger.verbose(
            "CONFIG", f"Action inputs: {', '.join(_flatten_keys(action_inputs))}"
        )
        merged = _deep_merge_dicts(merged, action_inputs)
        layers += 1

    if overrides:
        merged = _deep_merge_dicts(merged, _drop_none(overrides))
        layers += 1

    logger.verbose("CONFIG", f"Deep merged {layers} layer(s)")

    merged["token"] = _expand_env(merged.get("token"), environ)
    merged["version"] = str(merged.get("version") or "latest").strip()

    cache = merged.setdefault("cache", {})
    cache["enabled"] = parse_bool(cache.get("enabled", True), "cache.enabled")

    download = merged.setdefault("download", {})
    download["timeout"] = _parse_timeout(download.get("timeout"), "download.timeout")
    api = merged.setdefault("api", {})
    api["timeout"] = _parse_timeout(api.get("timeout"), "api.timeout")

    # Fail early on a bad tool definition
    ToolSpec.from_config(merged)

    dumped = yaml.safe_dump(_redacted(merged), default_flow_style=True, sort_keys=True)
    logger.debug("CONFIG", f"Effective config: {dumped.strip()}")
    return merged


def _drop_none(data: dict[str, Any]) -> dict[str, Any]:
    result: dict[str, Any] = {}
    for k, v in data.items():
        if isinstance(v, dict):
            nested = _drop_none(v)
            if nested:
                result[k] = nested
        elif v is not None:
            result[k] = v
    return result


def _flatten_keys(data: dict[str, Any], prefix: str = "") -> list[str]:
    keys = []
    for k, v in data.items():
        if isinstance(v, dict):
            keys.extend(_flatten_keys(v, f"{prefix}{k}."))
        else:
            keys.append(f"{prefix}{k}")
    return keys


def _redacted(cfg: dict[str, Any]) -> dict[str, Any]:
    shown = dict(cfg)
    if shown.get("token"):
        shown["token"] = "***"
    return shown
