from dataclasses import replace

from adroi.errors import ConflictError, GatewayError
from adroi.services.task_board import BoardSnapshot, ProjectCard, TaskBoard, TaskCard, project_progress


class FakeRemote:
    def __init__(self, server: dict[int, TaskCard]):
        self.server = server
        self.fail_with = None
        self.calls = []
        self.board = None
        self.seen_category = None

    def _persist(self, task_id, version, **changes):
        if self.fail_with:
            raise self.fail_with
        stored = self.server[task_id]
        if version is not None and version != stored.version:
            raise ConflictError("Task was changed elsewhere", toast="task-conflict")
        self.server[task_id] = replace(stored, version=stored.version + 1, **changes)
        return self.server[task_id].to_dict()

    def update_category(self, task_id, category, version):
        self.calls.append(("move", task_id))
        self.seen_category = self.board.find(task_id).category
        return self._persist(task_id, version, category=category)

    def set_completed(self, task_id, completed, version):
        self.calls.append(("toggle", task_id))
        return self._persist(task_id, version, completed=completed)

    def delete(self, task_id, version):
        self.calls.append(("delete", task_id))
        if self.fail_with:
            raise self.fail_with
        del self.server[task_id]


def _board(*cards):
    server = {c.id: c for c in cards}
    remote = FakeRemote(server)
    board = TaskBoard(remote, lambda: BoardSnapshot(tasks=list(server.values())))
    remote.board = board
    board.refresh()
    return board, remote


def test_move_is_applied_before_the_remote_call_and_reconciled_after():
    board, remote = _board(TaskCard(id=1, title="Brief", category="do_now"))

    result = board.move_task(1, "schedule")

    assert remote.seen_category == "schedule"
    assert result.ok
    assert board.find(1).category == "schedule"
    assert board.find(1).version == 2
    assert not result.refetched


def test_failed_move_refetches_and_shows_server_value():
    board, remote = _board(TaskCard(id=1, title="Brief", category="do_now"))
    remote.fail_with = GatewayError("store offline", toast="save-failed")

    result = board.move_task(1, "delegate")

    assert remote.seen_category == "delegate"
    assert not result.ok
    assert result.refetched
    assert result.kind == "gateway"
    assert board.find(1).category == "do_now"


def test_stale_version_conflicts_and_board_shows_newer_server_row():
    board, remote = _board(TaskCard(id=1, title="Brief", category="do_now"))
    remote.server[1] = replace(remote.server[1], category="schedule", version=2)

    result = board.toggle_task(1, True, version=1)

    assert result.kind == "conflict"
    assert result.refetched
    card = board.find(1)
    assert card.category == "schedule"
    assert card.completed is False
    assert card.version == 2


def test_superseded_load_is_ignored():
    board, _ = _board(TaskCard(id=1, title="Brief", category="do_now"))
    stale = board.begin_refresh()
    fresh = board.begin_refresh()

    assert board.complete_refresh(fresh, BoardSnapshot(tasks=[TaskCard(id=1, title="Fresh", category="schedule")]))
    assert not board.complete_refresh(stale, BoardSnapshot(tasks=[TaskCard(id=1, title="Stale", category="delete")]))
    assert board.find(1).title == "Fresh"


def test_load_started_before_a_mutation_cannot_overwrite_it():
    board, _ = _board(TaskCard(id=1, title="Brief", category="do_now"))
    token = board.begin_refresh()

    board.move_task(1, "schedule")

    assert not board.complete_refresh(token, BoardSnapshot(tasks=[TaskCard(id=1, title="Brief", category="do_now")]))
    assert board.find(1).category == "schedule"


def test_cancelled_delete_never_reaches_the_remote():
    board, remote = _board(TaskCard(id=1, title="Brief", category="do_now"))

    result = board.delete_task(1, lambda card: False)

    assert result.kind == "cancelled"
    assert remote.calls == []
    assert board.find(1) is not None


def test_confirmed_delete_removes_the_card():
    board, remote = _board(TaskCard(id=1, title="Brief", category="do_now"), TaskCard(id=2, title="Report", category="schedule"))

    result = board.delete_task(2, lambda card: card.title == "Report")

    assert result.ok
    assert remote.calls == [("delete", 2)]
    assert [c.id for c in board.snapshot.tasks] == [1]


def test_project_progress_prefers_task_completion():
    project = ProjectCard(id=7, title="Launch", status="active", progress=90)
    empty = ProjectCard(id=8, title="Idle", status="active", progress=35)
    tasks = [
        TaskCard(id=1, title="a", category="do_now", project_id=7, completed=True),
        TaskCard(id=2, title="b", category="do_now", project_id=7),
        TaskCard(id=3, title="c", category="do_now", project_id=7),
    ]

    assert project_progress(project, tasks) == 33
    assert project_progress(empty, tasks) == 35


def test_toggle_is_applied_before_the_remote_call():
    board, remote = _board(TaskCard(id=1, title="Brief", category="do_now"))
    seen = []
    original = remote.set_completed

    def set_completed(task_id, completed, version):
        seen.append(board.find(task_id).completed)
        return original(task_id, completed, version)

    remote.set_completed = set_completed

    result = board.toggle_task(1, True)

    assert seen == [True]
    assert result.ok
    assert board.find(1).completed is True
    assert board.find(1).version == 2


def test_failed_delete_refetches_and_restores_the_card():
    board, remote = _board(TaskCard(id=1, title="Brief", category="do_now"))
    remote.fail_with = GatewayError("store offline", toast="save-failed")

    result = board.delete_task(1, lambda card: True)

    assert remote.calls == [("delete", 1)]
    assert not result.ok
    assert result.refetched
    assert result.kind == "gateway"
    assert board.find(1).title == "Brief"
