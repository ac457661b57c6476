"""3-layer configuration system for Riscura.

Loads and merges configuration from:
1. Default settings (built-in)
2. Project config (.riscura/config.yaml)
3. CLI parameters (override)
"""

from __future__ import annotations

import copy
from pathlib import Path
from typing import Optional

import yaml
from rich.console import Console

console = Console()

PROVIDER_SECTIONS = ("anthropic", "openai", "ollama")

DEFAULT_CONFIG: dict = {
    "project": {
        "name": "",
        "organization": "",
    },
    "catalog": {
        "include_builtin": True,
        "path": "",
    },
    "risks": {
        "path": "",
    },
    "scoring": {
        "weights": {
            "category_match": 30,
            "severity_alignment": 25,
            "mitigation_multiplier": 2,
            "confidence_multiplier": 20,
            "keyword_bonus": 5,
        },
        "keywords": [
            "access",
            "data",
            "security",
            "authentication",
            "encryption",
            "monitoring",
        ],
    },
    "suggestions": {
        "limit": 5,
        "timeout_seconds": 30,
        "ai_rationale": False,
    },
    "mapping": {
        "unique_pairs": True,
        "default_ai_confidence": 0.85,
    },
    "ai": {
        "provider": "anthropic",
        "temperature": 0.2,
        "timeout_seconds": 60,
        "retry_attempts": 3,
        "retry_delay_seconds": 5,
        "anthropic": {
            "model": "claude-sonnet-4-5-20250929",
            "api_key_env": "ANTHROPIC_API_KEY",
            "max_tokens": 2000,
        },
        "openai": {
            "model": "gpt-4o-mini",
            "api_key_env": "OPENAI_API_KEY",
            "max_tokens": 2000,
        },
        "ollama": {
            "endpoint": "http://localhost:11434",
            "model": "llama3.1:8b",
            "max_tokens": 2000,
        },
    },
}


def deep_merge(base: dict, override: dict) -> dict:
    """Deep merge two dicts. Arrays are replaced, not merged."""
    result = dict(base)
    for key, value in override.items():
        base_value = result.get(key)
        if isinstance(base_value, dict) and isinstance(value, dict):
            result[key] = deep_merge(base_value, value)
        else:
            result[key] = value
    return result


def project_dir(project_path: Path) -> Path:
    return project_path / ".riscura"


def load_project_config(project_path: Path) -> dict:
    """Load project configuration from .riscura/config.yaml."""
    config_path = project_dir(project_path) / "config.yaml"
    if not config_path.exists():
        return {}
    try:
        content = config_path.read_text(encoding="utf-8-sig")  # utf-8-sig strips BOM
        data = yaml.safe_load(content) or {}
    except (OSError, yaml.YAMLError) as e:
        console.print(f"  [yellow]WARN[/yellow] Ignoring unreadable {config_path}: {e}")
        return {}
    if not isinstance(data, dict):
        console.print(f"  [yellow]WARN[/yellow] Ignoring {config_path}: expected a mapping")
        return {}
    return data


def get_effective_config(
    project_path: Path,
    cli_overrides: Optional[dict] = None,
) -> dict:
    """Get the fully resolved configuration for a project."""
    config = copy.deepcopy(DEFAULT_CONFIG)

    project_config = load_project_config(project_path)
    if project_config:
        config = deep_merge(config, project_config)

    if cli_overrides:
        config = deep_merge(config, cli_overrides)

    config["_project_path"] = str(project_path)
    return config
