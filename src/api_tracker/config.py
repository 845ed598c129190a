"""Run configuration loading for API Tracker.

The profile document describes *what* to track; this module describes *how*
a particular run behaves. Configuration sources are merged in priority order:
    1. Defaults (defined in TrackerConfig)
    2. Global config (~/.api-tracker.toml)
    3. Project config (./api-tracker.toml)
    4. Explicit config file
    5. Environment variables (API_TRACKER_* prefix)
    6. CLI overrides (passed as kwargs)

Example:
    >>> config = load_config(rebuild=True, target_version="2.0")
    >>> config.rebuild
    True
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Literal, Optional, get_type_hints

from .exceptions import InvalidConfigError

Verbosity = Literal["quiet", "normal", "verbose"]

# Values accepted for --target; "archivesreport" rebuilds the per-pair
# summaries without re-running any comparison.
TARGET_ELEMENTS = ("apidump", "apireport", "archivesreport", "pkgdiff", "packagediff")


@dataclass(frozen=True)
class TrackerConfig:
    """Configuration for one build run.

    Attributes:
        Build selection:
            rebuild: Recompute every selected entry even if cached
            disable_cache: Recompute filtered symbol counts (after a filter change)
            target_version: Restrict the run to one version and its predecessor
            target_element: Restrict the run to one kind of artifact

        External tools:
            analyzer_command: Compatibility analyzer executable
            analyzer_min_version: Oldest analyzer release accepted
            analyzer_timeout: Seconds before an analyzer run is abandoned (None = wait)
            pkgdiff_command: Package differ executable

        Storage:
            output_root: Directory holding db/, api_dump/, compat_report/, ...
            key_length: Hex characters kept from the archive key hash
            symbol_cache_enabled: Memoize filtered symbol counts on disk
            symbol_cache_dir: Directory of the symbol count memo

        Output control:
            verbosity: Logging verbosity level
    """

    rebuild: bool = False
    disable_cache: bool = False
    target_version: Optional[str] = None
    target_element: Optional[str] = None

    analyzer_command: str = "japi-compliance-checker"
    analyzer_min_version: str = "1.8"
    analyzer_timeout: Optional[float] = None
    pkgdiff_command: str = "pkgdiff"

    output_root: str = "."
    key_length: int = 5
    symbol_cache_enabled: bool = True
    symbol_cache_dir: str = ".api-tracker-cache"

    verbosity: Verbosity = "normal"

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        if self.target_element is not None and self.target_element not in TARGET_ELEMENTS:
            raise InvalidConfigError(
                "target_element",
                self.target_element,
                f"should be one of: {', '.join(TARGET_ELEMENTS)}",
            )
        if not 1 <= self.key_length <= 32:
            raise InvalidConfigError("key_length", self.key_length, "must be between 1 and 32")
        if self.analyzer_timeout is not None and self.analyzer_timeout <= 0:
            raise InvalidConfigError("analyzer_timeout", self.analyzer_timeout, "must be positive")
        if not self.analyzer_command:
            raise InvalidConfigError("analyzer_command", self.analyzer_command, "must not be empty")
        if self.verbosity not in ("quiet", "normal", "verbose"):
            raise InvalidConfigError("verbosity", self.verbosity, "must be quiet, normal or verbose")

    @property
    def summaries_only(self) -> bool:
        """Only re-aggregate stored comparisons, don't run the analyzer on pairs."""
        return self.target_element == "archivesreport"

    def wants(self, element: str) -> bool:
        """Whether this run builds the given artifact kind."""
        if self.target_element is None:
            return True
        if self.target_element == "archivesreport":
            return element == "apireport"
        if self.target_element == "packagediff":
            return element == "pkgdiff"
        return self.target_element == element

    def skips_version(self, version: str) -> bool:
        """Whether ``--version`` excludes this version from the run."""
        return self.target_version is not None and version != self.target_version


def load_config(config_file: Optional[Path] = None, **overrides) -> TrackerConfig:
    """Load configuration with auto-discovery and merging.

    Args:
        config_file: Optional explicit config file path
        **overrides: Direct overrides (typically from CLI flags); ``None``
            values are ignored so unset CLI options don't mask file settings

    Returns:
        Validated TrackerConfig instance

    Raises:
        InvalidConfigError: If a config file is invalid or missing
    """
    merged: dict = {}

    global_config = Path.home() / ".api-tracker.toml"
    if global_config.exists():
        merged.update(_load_toml_file(global_config))

    project_config = Path.cwd() / "api-tracker.toml"
    if project_config.exists():
        merged.update(_load_toml_file(project_config))

    if config_file is not None:
        if not config_file.exists():
            raise InvalidConfigError("config_file", config_file, "file not found")
        merged.update(_load_toml_file(config_file))

    merged.update(_load_env_vars())

    if "debug" in overrides:
        if overrides["debug"]:
            overrides["verbosity"] = "verbose"
        del overrides["debug"]
    if "quiet" in overrides:
        if overrides["quiet"]:
            overrides["verbosity"] = "quiet"
        del overrides["quiet"]

    merged.update({k: v for k, v in overrides.items() if v is not None})

    try:
        return TrackerConfig(**merged)
    except TypeError as e:
        raise InvalidConfigError("config", merged, str(e))


def _load_env_vars() -> dict[str, Any]:
    """Load configuration from API_TRACKER_* environment variables.

    Every scalar field of TrackerConfig can be set this way, e.g.
    ``API_TRACKER_ANALYZER_COMMAND`` or ``API_TRACKER_ANALYZER_TIMEOUT``.
    """
    type_hints = get_type_hints(TrackerConfig)

    result: dict[str, Any] = {}

    for field_name in TrackerConfig.__dataclass_fields__:
        env_key = f"API_TRACKER_{field_name.upper()}"
        env_value = os.environ.get(env_key)

        if env_value is None:
            continue

        type_hint = type_hints.get(field_name)
        if type_hint is None:
            continue

        try:
            parsed = _parse_env_value(env_value, type_hint)
            if parsed is not None:
                result[field_name] = parsed
        except ValueError as e:
            raise InvalidConfigError(env_key, env_value, str(e))

    return result


def _parse_env_value(value: str, type_hint: Any) -> Any:
    """Parse environment variable string to the correct type."""
    origin = getattr(type_hint, "__origin__", None)

    # Optional[X] is Union[X, None]
    args = getattr(type_hint, "__args__", ())
    if type(None) in args:
        non_none_types = [t for t in args if t is not type(None)]
        if non_none_types:
            type_hint = non_none_types[0]
            origin = getattr(type_hint, "__origin__", None)

    if type_hint is bool:
        lower = value.lower()
        if lower in ("true", "1", "yes", "on"):
            return True
        elif lower in ("false", "0", "no", "off"):
            return False
        else:
            raise ValueError(f"expected true/false, got '{value}'")

    if type_hint is int:
        return int(value)

    if type_hint is float:
        return float(value)

    if type_hint is str or origin is Literal:
        return value

    return None


def _load_toml_file(path: Path) -> dict:
    """Load TOML file and return parsed dict."""
    try:
        # Python 3.11+ has tomllib in stdlib
        import tomllib
    except ModuleNotFoundError:
        # tomli for Python 3.9-3.10
        import tomli as tomllib  # type: ignore

    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        raise InvalidConfigError("config_file", path, str(e))
