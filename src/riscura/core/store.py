"""Mapping persistence.

The ledger keeps mappings in memory and writes every change through a
MappingStore. The YAML store keeps one file per project:
.riscura/mappings.yaml
"""

from __future__ import annotations

from pathlib import Path
from typing import Protocol, runtime_checkable

import yaml
from pydantic import ValidationError
from rich.console import Console

from ..models.mapping import RiskControlMapping

console = Console()


class MappingStoreError(RuntimeError):
    """A mapping store could not persist or read its data."""


@runtime_checkable
class MappingStore(Protocol):
    def load(self) -> list[RiskControlMapping]: ...

    def save(self, mappings: list[RiskControlMapping]) -> None: ...


class YamlMappingStore:
    """Stores mappings as a YAML list under a `mappings:` key."""

    def __init__(self, path: Path):
        self.path = path

    @classmethod
    def for_project(cls, project_path: Path) -> YamlMappingStore:
        return cls(project_path / ".riscura" / "mappings.yaml")

    def load(self) -> list[RiskControlMapping]:
        if not self.path.exists():
            return []
        try:
            content = self.path.read_text(encoding="utf-8-sig")
            data = yaml.safe_load(content) or {}
        except (OSError, yaml.YAMLError) as e:
            raise MappingStoreError(f"Cannot read {self.path}: {e}") from e

        entries = data.get("mappings") if isinstance(data, dict) else data
        mappings: list[RiskControlMapping] = []
        for entry in entries or []:
            try:
                mappings.append(RiskControlMapping.model_validate(entry))
            except ValidationError:
                ident = entry.get("id", "?") if isinstance(entry, dict) else "?"
                console.print(f"  [yellow]WARN[/yellow] Skipping invalid stored mapping {ident}")
        return mappings

    def save(self, mappings: list[RiskControlMapping]) -> None:
        payload = {"mappings": [m.model_dump(mode="json") for m in mappings]}
        content = yaml.dump(
            payload,
            default_flow_style=False,
            sort_keys=False,
            allow_unicode=True,
            width=120,
        )
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(content, encoding="utf-8")
        except OSError as e:
            raise MappingStoreError(f"Cannot write {self.path}: {e}") from e
