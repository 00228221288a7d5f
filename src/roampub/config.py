"""RoamPubConfig: project-local settings for publishing a Roam export.

Default layout (all relative to the project root):

    roampub.toml          # project config
    graph.edn             # Roam "Export All" EDN snapshot
    output/               # rendered posts (must exist before publishing)

roampub.toml example:

    [roampub]
    input = "graph.edn"
    publish_tag = "publish"
    output_dir = "output"
    strict = false          # raise on duplicate block uids instead of warning

    [render]
    indent = "  "
    max_depth = 256

    [logging]
    level = "INFO"
"""

from __future__ import annotations

import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from roampub.render import depth_ceiling

_CONFIG_FILENAME = "roampub.toml"
_DEFAULT_INPUT = "graph.edn"
_DEFAULT_TAG = "publish"
_DEFAULT_OUTPUT_DIR = "output"


@dataclass
class RenderConfig:
    indent: str = "  "
    max_depth: int = 256


@dataclass
class LoggingConfig:
    level: str = "INFO"


@dataclass
class RoamPubConfig:
    """Resolved configuration for a publishing project."""

    root: Path                      # directory that contains roampub.toml
    input: Path = field(default_factory=Path)
    publish_tag: str = _DEFAULT_TAG
    output_dir: Path = field(default_factory=Path)
    strict: bool = False
    render: RenderConfig = field(default_factory=RenderConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @property
    def config_path(self) -> Path:
        return self.root / _CONFIG_FILENAME


def load_config(root: Path | str | None = None) -> RoamPubConfig:
    """Load roampub.toml from root (or search upward from cwd if root is None)."""
    root_path = _find_root(Path(root) if root else Path.cwd())
    config_path = root_path / _CONFIG_FILENAME

    raw: dict[str, Any] = {}
    if config_path.exists():
        with config_path.open("rb") as f:
            raw = tomllib.load(f)

    main = raw.get("roampub", {})
    render_section = raw.get("render", {})
    log_section = raw.get("logging", {})

    max_depth = int(render_section.get("max_depth", 256))
    if not 1 <= max_depth <= depth_ceiling():
        msg = f"render.max_depth must be between 1 and {depth_ceiling()}, got {max_depth}"
        raise ValueError(msg)

    return RoamPubConfig(
        root=root_path,
        input=root_path / main.get("input", _DEFAULT_INPUT),
        publish_tag=str(main.get("publish_tag", _DEFAULT_TAG)),
        output_dir=root_path / main.get("output_dir", _DEFAULT_OUTPUT_DIR),
        strict=bool(main.get("strict", False)),
        render=RenderConfig(
            indent=str(render_section.get("indent", "  ")),
            max_depth=max_depth,
        ),
        logging=LoggingConfig(
            level=str(log_section.get("level", "INFO")).upper(),
        ),
    )


def _find_root(start: Path) -> Path:
    """Walk upward from start looking for roampub.toml."""
    for directory in (start, *start.parents):
        if (directory / _CONFIG_FILENAME).exists():
            return directory
    return start


def init_config(root: Path, tag: str | None = None) -> Path:
    """Write a default roampub.toml at root. Raises if already exists."""
    config_path = root / _CONFIG_FILENAME
    if config_path.exists():
        msg = f"roampub.toml already exists at {config_path}"
        raise FileExistsError(msg)

    content = f"""\
[roampub]
input = "{_DEFAULT_INPUT}"
publish_tag = "{tag or _DEFAULT_TAG}"
output_dir = "{_DEFAULT_OUTPUT_DIR}"
# strict = false   # raise on duplicate block uids instead of warning

# [render]
# indent = "  "
# max_depth = 256

# [logging]
# level = "INFO"
"""
    config_path.write_text(content)
    return config_path
