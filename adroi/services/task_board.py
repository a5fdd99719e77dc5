"""Optimistic controller for the task kanban.

Each mutation changes the in-memory board first and only then asks the remote
store to persist it. A successful write replaces the local card with the row the
store returned; any failure throws the local state away and reloads the whole
board (tasks, projects, goals and clients) so the view ends up matching the store.
"""
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from typing import Protocol

from sqlalchemy.orm import Session

from adroi.core.logging import get_logger
from adroi.errors import AdRoiError, NotFoundError, ValidationError
from adroi.models import Client
from adroi.services import tasks as task_service
from adroi.services.gateway import scoped

log = get_logger("task_board")

CATEGORIES = task_service.CATEGORIES


@dataclass
class TaskCard:
    id: int
    title: str
    category: str
    completed: bool = False
    priority: str = "medium"
    version: int = 1
    duration_minutes: int = 30
    due_date: str | None = None
    client_id: int | None = None
    client_company: str | None = None
    project_id: int | None = None

    @classmethod
    def from_dict(cls, row: dict) -> "TaskCard":
        fields = cls.__dataclass_fields__
        return cls(**{k: v for k, v in row.items() if k in fields})

    def to_dict(self) -> dict:
        return {name: getattr(self, name) for name in self.__dataclass_fields__}


@dataclass
class ProjectCard:
    id: int
    title: str
    status: str
    progress: int
    client_id: int | None = None
    deadline: str | None = None


@dataclass
class BoardSnapshot:
    tasks: list[TaskCard] = field(default_factory=list)
    projects: list[ProjectCard] = field(default_factory=list)
    goals: list[dict] = field(default_factory=list)
    clients: list[dict] = field(default_factory=list)


class TaskRemote(Protocol):
    def update_category(self, task_id: int, category: str, version: int | None) -> dict: ...

    def set_completed(self, task_id: int, completed: bool, version: int | None) -> dict: ...

    def delete(self, task_id: int, version: int | None) -> None: ...


@dataclass
class MutationResult:
    ok: bool
    task: TaskCard | None = None
    error: str | None = None
    kind: str | None = None
    refetched: bool = False


def project_progress(project: ProjectCard, tasks: list[TaskCard]) -> int:
    owned = [t for t in tasks if t.project_id == project.id]
    if not owned:
        return project.progress
    done = sum(1 for t in owned if t.completed)
    return round(100 * done / len(owned))


class TaskBoard:
    def __init__(self, remote: TaskRemote, loader: Callable[[], BoardSnapshot]):
        self.remote = remote
        self.loader = loader
        self.snapshot = BoardSnapshot()
        self._generation = 0

    # loading

    def begin_refresh(self) -> int:
        self._generation += 1
        return self._generation

    def complete_refresh(self, token: int, snapshot: BoardSnapshot) -> bool:
        if token != self._generation:
            log.debug("ignoring superseded board load %s (current %s)", token, self._generation)
            return False
        self.snapshot = snapshot
        return True

    def refresh(self) -> bool:
        token = self.begin_refresh()
        return self.complete_refresh(token, self.loader())

    # queries

    def find(self, task_id: int) -> TaskCard | None:
        for card in self.snapshot.tasks:
            if card.id == task_id:
                return card
        return None

    def columns(self) -> dict[str, list[TaskCard]]:
        grouped: dict[str, list[TaskCard]] = {c: [] for c in CATEGORIES}
        for card in self.snapshot.tasks:
            grouped.setdefault(card.category, []).append(card)
        return grouped

    def progress_for(self, project: ProjectCard) -> int:
        return project_progress(project, self.snapshot.tasks)

    # mutations

    def _require(self, task_id: int) -> TaskCard:
        card = self.find(task_id)
        if card is None:
            raise NotFoundError(f"Task {task_id} is not on the board", toast="task-not-found")
        return card

    def _replace(self, task_id: int, card: TaskCard) -> None:
        self.snapshot.tasks = [card if t.id == task_id else t for t in self.snapshot.tasks]

    def _recover(self, action: str, task_id: int, exc: AdRoiError) -> MutationResult:
        log.warning("%s failed for task %s, reloading board: %s", action, task_id, exc.message)
        self.refresh()
        return MutationResult(ok=False, task=self.find(task_id), error=exc.message, kind=exc.kind, refetched=True)

    def move_task(self, task_id: int, category: str, version: int | None = None) -> MutationResult:
        if category not in CATEGORIES:
            raise ValidationError(f"Unknown category {category}", toast="invalid-category")
        card = self._require(task_id)
        version = card.version if version is None else version
        # any in-flight load predates this change
        self._generation += 1
        self._replace(task_id, replace(card, category=category))
        try:
            row = self.remote.update_category(task_id, category, version)
        except AdRoiError as exc:
            return self._recover("move", task_id, exc)
        saved = TaskCard.from_dict(row)
        self._replace(task_id, saved)
        return MutationResult(ok=True, task=saved)

    def toggle_task(self, task_id: int, completed: bool, version: int | None = None) -> MutationResult:
        card = self._require(task_id)
        version = card.version if version is None else version
        self._generation += 1
        self._replace(task_id, replace(card, completed=completed))
        try:
            row = self.remote.set_completed(task_id, completed, version)
        except AdRoiError as exc:
            return self._recover("toggle", task_id, exc)
        saved = TaskCard.from_dict(row)
        self._replace(task_id, saved)
        return MutationResult(ok=True, task=saved)

    def delete_task(self, task_id: int, confirm: Callable[[TaskCard], bool], version: int | None = None) -> MutationResult:
        card = self._require(task_id)
        version = card.version if version is None else version
        if not confirm(card):
            return MutationResult(ok=False, task=card, error="Deletion cancelled", kind="cancelled")
        self._generation += 1
        self.snapshot.tasks = [t for t in self.snapshot.tasks if t.id != task_id]
        try:
            self.remote.delete(task_id, version)
        except AdRoiError as exc:
            return self._recover("delete", task_id, exc)
        return MutationResult(ok=True)


class DatabaseTaskRemote:
    """TaskRemote backed by the tenant-scoped task service."""

    def __init__(self, db: Session, organization_id: int):
        self.db = db
        self.organization_id = organization_id

    def update_category(self, task_id: int, category: str, version: int | None) -> dict:
        task = task_service.update_category(self.db, self.organization_id, task_id, category, expected_version=version)
        return task_service.task_to_dict(task)

    def set_completed(self, task_id: int, completed: bool, version: int | None) -> dict:
        task = task_service.set_completed(self.db, self.organization_id, task_id, completed, expected_version=version)
        return task_service.task_to_dict(task)

    def delete(self, task_id: int, version: int | None) -> None:
        task_service.delete_task(self.db, self.organization_id, task_id, expected_version=version)


def load_snapshot(db: Session, organization_id: int) -> BoardSnapshot:
    tasks = [TaskCard.from_dict(task_service.task_to_dict(t)) for t in task_service.list_tasks(db, organization_id)]
    projects = [
        ProjectCard(
            id=p.id,
            title=p.title,
            status=p.status,
            progress=p.progress,
            client_id=p.client_id,
            deadline=p.deadline.isoformat() if p.deadline else None,
        )
        for p in task_service.list_projects(db, organization_id)
    ]
    goals = [{"id": g.id, "title": g.title, "status": g.status} for g in task_service.list_goals(db, organization_id)]
    clients = [
        {"id": c.id, "name": c.name, "company": c.company}
        for c in scoped(db, Client, organization_id).order_by(Client.name.asc()).all()
    ]
    return BoardSnapshot(tasks=tasks, projects=projects, goals=goals, clients=clients)


def board_for(db: Session, organization_id: int) -> TaskBoard:
    board = TaskBoard(DatabaseTaskRemote(db, organization_id), lambda: load_snapshot(db, organization_id))
    board.refresh()
    return board
