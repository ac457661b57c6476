"""Control catalog and risk register loading.

Controls come from the bundled library plus project files; risks come from
project files. Both are YAML (JSON parses as YAML).
"""

from __future__ import annotations

from importlib import resources
from pathlib import Path
from typing import Iterable, Optional, TypeVar

import yaml
from pydantic import BaseModel, ValidationError
from rich.console import Console

from ..models.control import Control, ControlCategory
from ..models.risk import Risk

console = Console()

ModelT = TypeVar("ModelT", bound=BaseModel)

PROJECT_DIR = ".riscura"


def _entries(content: object, key: str) -> list:
    """Pull the record list out of a parsed document."""
    if isinstance(content, list):
        return content
    if isinstance(content, dict):
        return content.get(key) or []
    return []


def _parse(entries: Iterable, model: type[ModelT], source: str) -> list[ModelT]:
    records: list[ModelT] = []
    for index, entry in enumerate(entries):
        try:
            records.append(model.model_validate(entry))
        except ValidationError as e:
            ident = entry.get("id", f"#{index}") if isinstance(entry, dict) else f"#{index}"
            console.print(
                f"  [yellow]WARN[/yellow] Skipping invalid {model.__name__.lower()} "
                f"{ident} in {source} ({e.error_count()} errors)"
            )
    return records


def _read_yaml(path: Path) -> object:
    try:
        return yaml.safe_load(path.read_text(encoding="utf-8-sig"))
    except (OSError, yaml.YAMLError) as e:
        console.print(f"  [yellow]WARN[/yellow] Could not read {path}: {e}")
        return None


def parse_controls(entries: Iterable, source: str = "catalog") -> list[Control]:
    return _parse(entries, Control, source)


def parse_risks(entries: Iterable, source: str = "risk register") -> list[Risk]:
    return _parse(entries, Risk, source)


def load_controls_file(path: Path) -> list[Control]:
    if not path.exists():
        return []
    return parse_controls(_entries(_read_yaml(path), "controls"), str(path))


def load_risks_file(path: Path) -> list[Risk]:
    if not path.exists():
        return []
    return parse_risks(_entries(_read_yaml(path), "risks"), str(path))


def load_builtin_catalog() -> list[Control]:
    """Load the control library bundled with the package."""
    try:
        data_file = resources.files("riscura.data") / "controls.yaml"
        content = yaml.safe_load(data_file.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError, ModuleNotFoundError) as e:
        console.print(f"  [yellow]WARN[/yellow] Built-in control library unavailable: {e}")
        return []
    return parse_controls(_entries(content, "controls"), "built-in library")


def merge_by_id(*sources: Iterable[ModelT]) -> list[ModelT]:
    """Concatenate record lists; a later record replaces an earlier one with the same id."""
    merged: dict[str, ModelT] = {}
    for source in sources:
        for record in source:
            merged[record.id] = record
    return list(merged.values())


def _configured_path(value: Optional[str], project_path: Path) -> Optional[Path]:
    if not value:
        return None
    path = Path(value)
    return path if path.is_absolute() else project_path / path


def get_catalog(config: dict, project_path: Path) -> list[Control]:
    """Resolve the effective control catalog for a project."""
    catalog_config = config.get("catalog") or {}
    sources: list[list[Control]] = []

    if catalog_config.get("include_builtin", True):
        sources.append(load_builtin_catalog())

    sources.append(load_controls_file(project_path / PROJECT_DIR / "controls.yaml"))

    extra = _configured_path(catalog_config.get("path"), project_path)
    if extra:
        sources.append(load_controls_file(extra))

    return merge_by_id(*sources)


def get_risks(config: dict, project_path: Path) -> list[Risk]:
    """Resolve the risk register for a project."""
    sources = [load_risks_file(project_path / PROJECT_DIR / "risks.yaml")]
    extra = _configured_path((config.get("risks") or {}).get("path"), project_path)
    if extra:
        sources.append(load_risks_file(extra))
    return merge_by_id(*sources)


def find_by_id(records: Iterable[ModelT], record_id: str) -> Optional[ModelT]:
    return next((r for r in records if r.id == record_id), None)


def filter_risks(
    risks: Iterable[Risk],
    search: str = "",
    severity: Optional[str] = None,
    category: Optional[str] = None,
) -> list[Risk]:
    """Filter risks by free-text search, severity and category.

    A severity or category of None or "all" disables that filter.
    """
    needle = (search or "").lower()
    result: list[Risk] = []
    for risk in risks:
        if needle and needle not in risk.title.lower() and needle not in risk.description.lower():
            continue
        if severity and severity != "all" and risk.severity.value != severity:
            continue
        if category and category != "all" and risk.category != category:
            continue
        result.append(risk)
    return result


def risk_categories(risks: Iterable[Risk]) -> list[str]:
    """Distinct risk categories in first-seen order."""
    return list(dict.fromkeys(r.category for r in risks if r.category))


def control_categories(controls: Iterable[Control]) -> list[ControlCategory]:
    categories: dict[str, ControlCategory] = {}
    for control in controls:
        categories.setdefault(control.category.name, control.category)
    return list(categories.values())
