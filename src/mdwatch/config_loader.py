"""Load PreviewConfig from mdwatch.yaml if present.

Merges file config with CLI kwargs. CLI overrides file.
"""

from __future__ import annotations

from pathlib import Path

from mdwatch._errors import ConfigError
from mdwatch.config import PreviewConfig

# Keys a config file may set.  Mode flags and the document path come from
# the command line only.
_FILE_KEYS = frozenset({
    "open_browser", "browser", "quiescence_ms", "hosts", "worker_mode",
    "shutdown_timeout", "heartbeat_interval", "tempfile", "syntax_theme",
    "verbose",
})


def load_config(cwd: Path, **overrides: object) -> PreviewConfig:
    """Load PreviewConfig, optionally merging mdwatch.yaml from *cwd*.

    Looks for mdwatch.yaml, mdwatch.yml, or mdwatch.toml in cwd. If found,
    loads and merges with overrides. Overrides take precedence.
    """
    file_config = _read_mdwatch_config(cwd)
    merged = {**file_config, **overrides}
    if "tempfile" in merged and not isinstance(merged["tempfile"], Path):
        merged["tempfile"] = Path(str(merged["tempfile"]))
    if "path" in merged and merged["path"] is not None and not isinstance(merged["path"], Path):
        merged["path"] = Path(str(merged["path"]))
    if "hosts" in merged and isinstance(merged["hosts"], str):
        merged["hosts"] = (merged["hosts"],)
    try:
        return PreviewConfig(**merged)  # type: ignore[arg-type]
    except TypeError as exc:
        raise ConfigError(str(exc)) from exc


def _read_mdwatch_config(cwd: Path) -> dict[str, object]:
    """Read mdwatch config from yaml/toml if present. Returns empty dict otherwise."""
    for name in ("mdwatch.yaml", "mdwatch.yml"):
        path = cwd / name
        if path.is_file():
            return _parse_yaml(path)
    toml_path = cwd / "mdwatch.toml"
    if toml_path.is_file():
        return _parse_toml(toml_path)
    return {}


def _parse_yaml(path: Path) -> dict[str, object]:
    """Parse YAML config."""
    import yaml

    try:
        data = yaml.safe_load(path.read_text()) or {}
    except (OSError, yaml.YAMLError) as exc:
        msg = f"{path.name}: {exc}"
        raise ConfigError(msg) from exc
    if not isinstance(data, dict):
        msg = f"{path.name}: expected a mapping at the top level"
        raise ConfigError(msg)
    return _flatten_mdwatch_section(data)


def _parse_toml(path: Path) -> dict[str, object]:
    """Parse TOML config."""
    import tomllib

    try:
        data = tomllib.loads(path.read_text())
    except (OSError, tomllib.TOMLDecodeError) as exc:
        msg = f"{path.name}: {exc}"
        raise ConfigError(msg) from exc
    return _flatten_mdwatch_section(data)


def _flatten_mdwatch_section(data: dict[str, object]) -> dict[str, object]:
    """Extract mdwatch.* keys and known top-level keys into one dict."""
    result: dict[str, object] = {}
    section = data.get("mdwatch")
    if isinstance(section, dict):
        for k, v in section.items():
            if k in _FILE_KEYS:
                result[k] = v
    for k, v in data.items():
        if k != "mdwatch" and k in _FILE_KEYS:
            result[k] = v
    if isinstance(result.get("hosts"), list):
        result["hosts"] = tuple(result["hosts"])  # type: ignore[arg-type]
    return result
