"""Configuration loading, writing, and project initialization.

Reads TOML config files using stdlib ``tomllib`` and writes them using
``tomli_w``.  Depends only on ``models.py``.
"""

from __future__ import annotations

import sys
from pathlib import Path

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

import tomli_w

from finmon.models import AppConfig

CONFIG_FILENAME = "config.toml"


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(root: Path) -> AppConfig:
    """Load ``config.toml`` from *root* and return an :class:`AppConfig`.

    Missing sections or keys fall back to the :class:`AppConfig` defaults.

    Args:
        root: Project root directory containing ``config.toml``.

    Returns:
        A fully-populated :class:`AppConfig` instance.

    Raises:
        FileNotFoundError: If ``config.toml`` does not exist.
    """
    data = _read_toml(root / CONFIG_FILENAME)
    defaults = AppConfig()

    storage = data.get("storage", {})
    prediction = data.get("prediction", {})
    context = data.get("context", {})
    agent = data.get("agent", {})

    return AppConfig(
        rules_file=storage.get("rules_file", defaults.rules_file),
        min_description_length=int(
            prediction.get("min_description_length", defaults.min_description_length)
        ),
        context_max_rules=int(context.get("max_rules", defaults.context_max_rules)),
        agent_url=agent.get("url", defaults.agent_url),
        agent_timeout=float(agent.get("timeout", defaults.agent_timeout)),
    )


def save_config(root: Path, config: AppConfig) -> Path:
    """Write *config* to ``config.toml`` in *root*, replacing any existing file.

    Returns:
        Path to the written file.
    """
    data = {
        "storage": {"rules_file": config.rules_file},
        "prediction": {"min_description_length": config.min_description_length},
        "context": {"max_rules": config.context_max_rules},
        "agent": {"url": config.agent_url, "timeout": config.agent_timeout},
    }
    path = root / CONFIG_FILENAME
    header = (
        "# FinMon learning engine configuration\n"
        "# context.max_rules = 0 sends every learned rule to the agent.\n\n"
    )
    path.write_text(header + tomli_w.dumps(data), encoding="utf-8")
    return path


def rules_path(root: Path, config: AppConfig) -> Path:
    """Resolve the learning-rules record location against *root*."""
    path = Path(config.rules_file).expanduser()
    if not path.is_absolute():
        path = root / path
    return path


def initialize(target_dir: Path, config: AppConfig | None = None) -> bool:
    """Create ``config.toml`` and the rules directory in *target_dir*.

    Idempotent: an existing ``config.toml`` is **not** overwritten.

    Args:
        target_dir: The directory in which to create the project files.
        config: Settings to write.  Defaults to :class:`AppConfig` defaults.

    Returns:
        ``True`` if a new ``config.toml`` was written.
    """
    target_dir = Path(target_dir)
    target_dir.mkdir(parents=True, exist_ok=True)

    written = False
    if not (target_dir / CONFIG_FILENAME).exists():
        save_config(target_dir, config or AppConfig())
        written = True

    effective = load_config(target_dir)
    rules_path(target_dir, effective).parent.mkdir(parents=True, exist_ok=True)
    return written


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _read_toml(path: Path) -> dict:
    """Read and parse a TOML file."""
    with open(path, "rb") as f:
        return tomllib.load(f)
