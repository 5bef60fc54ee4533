"""Project persistence: CRUD over project records holding a template and its layout."""

from __future__ import annotations

import json
import uuid
from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import structlog

from .types import ERTemplate, Point
from .template import (
    positions_from_dict,
    positions_to_dict,
    template_from_dict,
    template_to_dict,
)

log = structlog.get_logger()

DEFAULT_PROJECT_TYPE = "er-diagram"


class ProjectNotFoundError(KeyError):
    """Raised when a project id is not in the store."""


class ProjectStoreError(Exception):
    """Raised when the backing file cannot be read or written."""


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(slots=True)
class ProjectRecord:
    id: str
    name: str
    template: ERTemplate
    description: str | None = None
    type: str = DEFAULT_PROJECT_TYPE
    positions: dict[str, Point] = field(default_factory=dict)
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "type": self.type,
            "template": template_to_dict(self.template),
            "positions": positions_to_dict(self.positions),
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ProjectRecord:
        return cls(
            id=data["id"],
            name=data["name"],
            description=data.get("description"),
            type=data.get("type") or DEFAULT_PROJECT_TYPE,
            template=template_from_dict(data.get("template") or {}),
            positions=positions_from_dict(data.get("positions")),
            created_at=datetime.fromisoformat(data["createdAt"]),
            updated_at=datetime.fromisoformat(data["updatedAt"]),
        )


def _detached(record: ProjectRecord) -> ProjectRecord:
    """Copy handed to callers; mutating it never reaches the store."""
    return replace(record, positions=dict(record.positions))


class ProjectStore(ABC):
    """CRUD contract for project records."""

    @abstractmethod
    def create(
        self,
        name: str,
        template: ERTemplate,
        description: str | None = None,
        type: str = DEFAULT_PROJECT_TYPE,
        positions: Mapping[str, Point] | None = None,
    ) -> ProjectRecord: ...

    @abstractmethod
    def get(self, project_id: str) -> ProjectRecord: ...

    @abstractmethod
    def list(self) -> list[ProjectRecord]: ...

    @abstractmethod
    def update(
        self,
        project_id: str,
        *,
        name: str | None = None,
        description: str | None = None,
        type: str | None = None,
        template: ERTemplate | None = None,
        positions: Mapping[str, Point] | None = None,
    ) -> ProjectRecord: ...

    @abstractmethod
    def delete(self, project_id: str) -> None: ...

    def load_positions(self, project_id: str) -> dict[str, Point]:
        """Persisted positions of a project; unknown projects have none."""
        try:
            return dict(self.get(project_id).positions)
        except ProjectNotFoundError:
            log.warning("positions_load_failed", project_id=project_id)
            return {}

    def save_positions(self, project_id: str, positions: Mapping[str, Point]) -> ProjectRecord:
        return self.update(project_id, positions=positions)


class InMemoryProjectStore(ProjectStore):
    def __init__(self, clock: Callable[[], datetime] = _utcnow) -> None:
        self._clock = clock
        self._records: dict[str, ProjectRecord] = {}

    def _persist(self, records: dict[str, ProjectRecord]) -> None:
        """Hook called with the new record set before it replaces the current one."""

    def _commit(self, records: dict[str, ProjectRecord]) -> None:
        self._persist(records)
        self._records = records

    def create(
        self,
        name: str,
        template: ERTemplate,
        description: str | None = None,
        type: str = DEFAULT_PROJECT_TYPE,
        positions: Mapping[str, Point] | None = None,
    ) -> ProjectRecord:
        now = self._clock()
        record = ProjectRecord(
            id=uuid.uuid4().hex,
            name=name,
            description=description,
            type=type,
            template=template,
            positions=dict(positions or {}),
            created_at=now,
            updated_at=now,
        )
        self._commit({**self._records, record.id: record})
        log.info("project_created", project_id=record.id, name=name)
        return _detached(record)

    def get(self, project_id: str) -> ProjectRecord:
        record = self._records.get(project_id)
        if record is None:
            raise ProjectNotFoundError(project_id)
        return _detached(record)

    def list(self) -> list[ProjectRecord]:
        records = sorted(self._records.values(), key=lambda r: r.updated_at, reverse=True)
        return [_detached(r) for r in records]

    def update(
        self,
        project_id: str,
        *,
        name: str | None = None,
        description: str | None = None,
        type: str | None = None,
        template: ERTemplate | None = None,
        positions: Mapping[str, Point] | None = None,
    ) -> ProjectRecord:
        record = self._records.get(project_id)
        if record is None:
            raise ProjectNotFoundError(project_id)

        changes: dict[str, Any] = {"updated_at": self._clock()}
        if name is not None:
            changes["name"] = name
        if description is not None:
            changes["description"] = description
        if type is not None:
            changes["type"] = type
        if template is not None:
            changes["template"] = template
        if positions is not None:
            changes["positions"] = dict(positions)

        record = replace(record, **changes)
        self._commit({**self._records, project_id: record})
        log.info("project_updated", project_id=project_id, fields=sorted(changes))
        return _detached(record)

    def delete(self, project_id: str) -> None:
        if project_id not in self._records:
            raise ProjectNotFoundError(project_id)
        self._commit({pid: r for pid, r in self._records.items() if pid != project_id})
        log.info("project_deleted", project_id=project_id)


class JsonFileProjectStore(InMemoryProjectStore):
    """Project store persisted to a single JSON file.

    Every mutation is written to disk before it becomes visible in memory,
    so a failed write leaves both unchanged.
    """

    def __init__(self, path: Path, clock: Callable[[], datetime] = _utcnow) -> None:
        super().__init__(clock)
        self.path = Path(path)
        if self.path.exists():
            self._records = self._load()
            log.debug("projects_loaded", path=str(self.path), count=len(self._records))

    def _load(self) -> dict[str, ProjectRecord]:
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            raise ProjectStoreError(f"Cannot read project store {self.path}: {e}") from e

        if not isinstance(data, dict) or not isinstance(data.get("projects", []), list):
            raise ProjectStoreError(f"Project store {self.path} is not a projects document")

        records: dict[str, ProjectRecord] = {}
        for item in data.get("projects", []):
            try:
                record = ProjectRecord.from_dict(item)
            except (KeyError, TypeError, ValueError, AttributeError) as e:
                raise ProjectStoreError(f"Project store {self.path} holds a malformed project: {e!r}") from e
            records[record.id] = record
        return records

    def _persist(self, records: dict[str, ProjectRecord]) -> None:
        payload = {"projects": [r.to_dict() for r in records.values()]}
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
            tmp.replace(self.path)
        except OSError as e:
            log.error("projects_write_failed", path=str(self.path), error=str(e))
            raise ProjectStoreError(f"Cannot write project store {self.path}: {e}") from e
