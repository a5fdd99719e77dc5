from dataclasses import asdict

from fastapi import APIRouter, Depends, Form, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from adroi.core.db import get_db
from adroi.core.templates import templates
from adroi.routes.helpers import confirmed, parse_date, parse_int, redirect
from adroi.services import tasks as task_service
from adroi.services.authz import AppContext, require_context
from adroi.services.task_board import BoardSnapshot, MutationResult, board_for, project_progress

router = APIRouter(tags=["tasks"])

COLUMN_TITLES = {
    "do_now": "Do now",
    "schedule": "Schedule",
    "delegate": "Delegate",
    "delete": "Eliminate",
}


def _snapshot_json(snapshot: BoardSnapshot) -> dict:
    return {
        "tasks": [t.to_dict() for t in snapshot.tasks],
        "projects": [{**asdict(p), "display_progress": project_progress(p, snapshot.tasks)} for p in snapshot.projects],
        "goals": snapshot.goals,
        "clients": snapshot.clients,
    }


def _result_json(result: MutationResult, snapshot: BoardSnapshot) -> JSONResponse:
    body = {
        "ok": result.ok,
        "task": result.task.to_dict() if result.task else None,
        "error": result.error,
        "kind": result.kind,
        "refetched": result.refetched,
    }
    if result.refetched:
        body["board"] = _snapshot_json(snapshot)
    status_code = 200
    if result.kind == "conflict":
        status_code = 409
    elif not result.ok and result.kind != "cancelled":
        status_code = 502 if result.kind == "gateway" else 400
    return JSONResponse(body, status_code=status_code)


@router.get("/tasks")
def tasks_page(request: Request, ctx: AppContext = Depends(require_context), db: Session = Depends(get_db)):
    board = board_for(db, ctx.organization_id)
    projects = [{"project": p, "progress": board.progress_for(p)} for p in board.snapshot.projects]
    return templates.TemplateResponse(
        request,
        "tasks.html",
        {
            "ctx": ctx,
            "columns": board.columns(),
            "column_titles": COLUMN_TITLES,
            "projects": projects,
            "goals": board.snapshot.goals,
            "clients": board.snapshot.clients,
        },
    )


@router.post("/tasks")
def create_task(
    title: str = Form(...),
    category: str = Form("do_now"),
    priority: str = Form("medium"),
    duration_minutes: str = Form("30"),
    due_date: str = Form(""),
    client_id: str = Form(""),
    project_id: str = Form(""),
    ctx: AppContext = Depends(require_context),
    db: Session = Depends(get_db),
):
    task_service.create_task(
        db,
        ctx.organization_id,
        title=title,
        category=category,
        priority=priority,
        duration_minutes=parse_int(duration_minutes, "Duration") or 30,
        due_date=parse_date(due_date, "Due date"),
        client_id=parse_int(client_id, "Client"),
        project_id=parse_int(project_id, "Project"),
    )
    return redirect("/tasks", "task-created")


@router.post("/projects")
def create_project(
    title: str = Form(...),
    client_id: str = Form(""),
    status: str = Form("active"),
    progress: str = Form("0"),
    deadline: str = Form(""),
    ctx: AppContext = Depends(require_context),
    db: Session = Depends(get_db),
):
    task_service.create_project(
        db,
        ctx.organization_id,
        title=title,
        client_id=parse_int(client_id, "Client"),
        status=status,
        progress=parse_int(progress, "Progress") or 0,
        deadline=parse_date(deadline, "Deadline"),
    )
    return redirect("/tasks", "project-created")


@router.post("/projects/{project_id}")
def update_project(
    project_id: int,
    status: str = Form(""),
    progress: str = Form(""),
    deadline: str = Form(""),
    ctx: AppContext = Depends(require_context),
    db: Session = Depends(get_db),
):
    task_service.update_project(
        db,
        ctx.organization_id,
        project_id,
        status=status or None,
        progress=parse_int(progress, "Progress"),
        deadline=parse_date(deadline, "Deadline"),
    )
    return redirect("/tasks", "project-updated")


@router.post("/goals")
def create_goal(
    title: str = Form(...),
    status: str = Form("on_track"),
    ctx: AppContext = Depends(require_context),
    db: Session = Depends(get_db),
):
    task_service.create_goal(db, ctx.organization_id, title=title, status=status)
    return redirect("/tasks", "goal-created")


@router.get("/api/tasks/board")
def board_snapshot(ctx: AppContext = Depends(require_context), db: Session = Depends(get_db)):
    return _snapshot_json(board_for(db, ctx.organization_id).snapshot)


@router.post("/api/tasks/{task_id}/move")
def move_task(
    task_id: int,
    category: str = Form(...),
    version: str = Form(""),
    ctx: AppContext = Depends(require_context),
    db: Session = Depends(get_db),
):
    board = board_for(db, ctx.organization_id)
    result = board.move_task(task_id, category, version=parse_int(version, "Version"))
    return _result_json(result, board.snapshot)


@router.post("/api/tasks/{task_id}/toggle")
def toggle_task(
    task_id: int,
    completed: str = Form(...),
    version: str = Form(""),
    ctx: AppContext = Depends(require_context),
    db: Session = Depends(get_db),
):
    board = board_for(db, ctx.organization_id)
    result = board.toggle_task(task_id, completed in {"true", "1", "on"}, version=parse_int(version, "Version"))
    return _result_json(result, board.snapshot)


@router.post("/api/tasks/{task_id}/delete")
def delete_task(
    task_id: int,
    confirm: str = Form(""),
    version: str = Form(""),
    ctx: AppContext = Depends(require_context),
    db: Session = Depends(get_db),
):
    board = board_for(db, ctx.organization_id)
    result = board.delete_task(task_id, lambda card: confirmed(confirm), version=parse_int(version, "Version"))
    return _result_json(result, board.snapshot)
