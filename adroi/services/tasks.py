from datetime import date

from sqlalchemy.orm import Session

from adroi.errors import ConflictError, ValidationError
from adroi.models import Client, Goal, Project, Task
from adroi.services.gateway import commit, get_scoped, scoped

CATEGORIES = ("do_now", "schedule", "delegate", "delete")
PRIORITIES = ("low", "medium", "high")
PROJECT_STATUSES = ("active", "paused", "completed")
GOAL_STATUSES = ("on_track", "at_risk", "completed")


def task_to_dict(task: Task) -> dict:
    return {
        "id": task.id,
        "title": task.title,
        "category": task.category,
        "completed": task.completed,
        "priority": task.priority,
        "duration_minutes": task.duration_minutes,
        "due_date": task.due_date.isoformat() if task.due_date else None,
        "client_id": task.client_id,
        "client_company": (task.client.company or task.client.name) if task.client else None,
        "project_id": task.project_id,
        "version": task.version,
    }


def list_tasks(db: Session, organization_id: int) -> list[Task]:
    return scoped(db, Task, organization_id).order_by(Task.created_at.desc(), Task.id.desc()).all()


def _check_version(task: Task, expected_version: int | None) -> None:
    if expected_version is not None and task.version != expected_version:
        raise ConflictError(
            f"Task {task.id} changed elsewhere (version {task.version}, expected {expected_version})",
            toast="task-conflict",
        )


def _check_links(db: Session, organization_id: int, client_id: int | None, project_id: int | None) -> None:
    if client_id:
        get_scoped(db, Client, organization_id, client_id)
    if project_id:
        get_scoped(db, Project, organization_id, project_id)


def create_task(
    db: Session,
    organization_id: int,
    *,
    title: str,
    category: str = "do_now",
    priority: str = "medium",
    duration_minutes: int = 30,
    due_date: date | None = None,
    client_id: int | None = None,
    project_id: int | None = None,
) -> Task:
    title = (title or "").strip()
    if not title:
        raise ValidationError("Task title is required", toast="task-title-required")
    if category not in CATEGORIES:
        raise ValidationError(f"Unknown category {category}", toast="invalid-category")
    if priority not in PRIORITIES:
        raise ValidationError(f"Unknown priority {priority}", toast="invalid-priority")
    _check_links(db, organization_id, client_id, project_id)

    task = Task(
        organization_id=organization_id,
        title=title,
        category=category,
        priority=priority,
        duration_minutes=max(0, duration_minutes or 30),
        due_date=due_date,
        client_id=client_id or None,
        project_id=project_id or None,
        completed=False,
        version=1,
    )
    db.add(task)
    commit(db, "create task")
    db.refresh(task)
    return task


def update_task(
    db: Session,
    organization_id: int,
    task_id: int,
    *,
    expected_version: int | None = None,
    **changes,
) -> Task:
    task = get_scoped(db, Task, organization_id, task_id)
    _check_version(task, expected_version)

    if "title" in changes and not (changes["title"] or "").strip():
        raise ValidationError("Task title is required", toast="task-title-required")
    if "category" in changes and changes["category"] not in CATEGORIES:
        raise ValidationError(f"Unknown category {changes['category']}", toast="invalid-category")
    if "priority" in changes and changes["priority"] not in PRIORITIES:
        raise ValidationError(f"Unknown priority {changes['priority']}", toast="invalid-priority")
    _check_links(db, organization_id, changes.get("client_id"), changes.get("project_id"))

    allowed = {"title", "category", "completed", "priority", "duration_minutes", "due_date", "client_id", "project_id"}
    for key, value in changes.items():
        if key not in allowed:
            raise ValidationError(f"Unknown task field {key}", toast="invalid-task")
        setattr(task, key, value.strip() if isinstance(value, str) and key == "title" else value)
    task.version = (task.version or 0) + 1
    commit(db, "update task")
    db.refresh(task)
    return task


def update_category(db: Session, organization_id: int, task_id: int, category: str, expected_version: int | None = None) -> Task:
    return update_task(db, organization_id, task_id, expected_version=expected_version, category=category)


def set_completed(db: Session, organization_id: int, task_id: int, completed: bool, expected_version: int | None = None) -> Task:
    return update_task(db, organization_id, task_id, expected_version=expected_version, completed=completed)


def delete_task(db: Session, organization_id: int, task_id: int, expected_version: int | None = None) -> None:
    task = get_scoped(db, Task, organization_id, task_id)
    _check_version(task, expected_version)
    db.delete(task)
    commit(db, "delete task")


def list_projects(db: Session, organization_id: int) -> list[Project]:
    return scoped(db, Project, organization_id).order_by(Project.deadline.asc(), Project.id.asc()).all()


def create_project(
    db: Session,
    organization_id: int,
    *,
    title: str,
    client_id: int | None = None,
    status: str = "active",
    progress: int = 0,
    deadline: date | None = None,
) -> Project:
    title = (title or "").strip()
    if not title:
        raise ValidationError("Project title is required", toast="project-title-required")
    if status not in PROJECT_STATUSES:
        raise ValidationError(f"Unknown project status {status}", toast="invalid-project")
    _check_links(db, organization_id, client_id, None)
    project = Project(
        organization_id=organization_id,
        client_id=client_id or None,
        title=title,
        status=status,
        progress=max(0, min(100, progress)),
        deadline=deadline,
    )
    db.add(project)
    commit(db, "create project")
    db.refresh(project)
    return project


def update_project(db: Session, organization_id: int, project_id: int, *, status: str | None = None, progress: int | None = None, deadline: date | None = None) -> Project:
    project = get_scoped(db, Project, organization_id, project_id)
    if status is not None:
        if status not in PROJECT_STATUSES:
            raise ValidationError(f"Unknown project status {status}", toast="invalid-project")
        project.status = status
    if progress is not None:
        project.progress = max(0, min(100, progress))
    if deadline is not None:
        project.deadline = deadline
    commit(db, "update project")
    return project


def list_goals(db: Session, organization_id: int) -> list[Goal]:
    return scoped(db, Goal, organization_id).order_by(Goal.created_at.asc(), Goal.id.asc()).all()


def create_goal(db: Session, organization_id: int, *, title: str, status: str = "on_track") -> Goal:
    title = (title or "").strip()
    if not title:
        raise ValidationError("Goal title is required", toast="goal-title-required")
    if status not in GOAL_STATUSES:
        raise ValidationError(f"Unknown goal status {status}", toast="invalid-goal")
    goal = Goal(organization_id=organization_id, title=title, status=status)
    db.add(goal)
    commit(db, "create goal")
    db.refresh(goal)
    return goal
