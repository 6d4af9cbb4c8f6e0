from datetime import date

import pytest

import main
from core.errors import PersistenceError
from services.dashboard import AppServices


USER = "user-1"
TODAY = date(2024, 1, 3)


class UnconfiguredClient:
    configured = False

    def generate(self, prompt):
        raise AssertionError("AI must not be called when unconfigured")


@pytest.fixture()
def app(settings, session_factory, clock):
    return AppServices.build(
        settings,
        session_factory=session_factory,
        clock=clock,
        ai_client=UnconfiguredClient(),
        calendar_factory=lambda token: None,
    )


def run(app, *argv):
    args = main.build_parser().parse_args(["--user", USER, *argv])
    return args.func(app, args)


def test_edit_changes_title_category_and_day(app, capsys):
    task = app.tasks.create(USER, title="draft", category="Other", day=TODAY)

    assert run(app, "edit", str(task.id), "--title", " Write deck ", "--category", "Sales", "--day", "2024-01-05") == 0

    stored = app.tasks.get(USER, task.id)
    assert (stored.title, stored.category, stored.day) == ("Write deck", "Sales", date(2024, 1, 5))
    assert "Write deck" in capsys.readouterr().out


def test_edit_only_category_keeps_other_fields(app):
    task = app.tasks.create(USER, title="Gym", category="Other", day=TODAY, completed=True)

    run(app, "edit", str(task.id), "--category", "Health")

    stored = app.tasks.get(USER, task.id)
    assert (stored.title, stored.category, stored.day, stored.completed) == ("Gym", "Health", TODAY, True)


@pytest.mark.parametrize(
    "extra",
    [[], ["--title", "  "], ["--category", ""], ["--day", "tomorrow"], ["--day", "2024-01-05junk"]],
)
def test_edit_rejects_empty_or_invalid_changes(app, extra):
    task = app.tasks.create(USER, title="keep", day=TODAY)

    with pytest.raises(ValueError):
        run(app, "edit", str(task.id), *extra)
    assert app.tasks.get(USER, task.id).title == "keep"


def test_edit_refreshes_daily_progress(app):
    task = app.tasks.create(USER, title="done", day=TODAY, completed=True)
    app.tasks.create(USER, title="open", day=TODAY)
    app.progress.update_daily(USER)

    run(app, "edit", str(task.id), "--day", "2024-01-04")

    assert app.records.get_daily(USER, TODAY).progress_percent == 0


def test_delete_removes_task(app, capsys):
    task = app.tasks.create(USER, title="obsolete", day=TODAY)

    assert run(app, "delete", str(task.id)) == 0

    assert app.tasks.get(USER, task.id) is None
    assert f"#{task.id}" in capsys.readouterr().out


def test_tasks_of_other_users_cannot_be_changed(app):
    theirs = app.tasks.create("someone-else", title="theirs", day=TODAY)

    with pytest.raises(PersistenceError):
        run(app, "edit", str(theirs.id), "--title", "mine")
    with pytest.raises(PersistenceError):
        run(app, "delete", str(theirs.id))
    assert app.tasks.get("someone-else", theirs.id).title == "theirs"


def test_goal_add_list_edit_delete(app, capsys):
    run(app, "goal", "add", "Ship v1", "--description", "public beta")
    (goal,) = app.records.list_goals(USER)

    run(app, "goal", "edit", str(goal.id), "--title", "Ship v2", "--inactive")
    edited = app.records.get_goal(USER, goal.id)
    assert (edited.title, edited.description, edited.is_active) == ("Ship v2", "public beta", False)

    run(app, "goal", "list")
    out = capsys.readouterr().out
    assert "Ship v2 (inactive)" in out

    run(app, "goal", "edit", str(goal.id), "--active")
    assert app.records.get_goal(USER, goal.id).is_active is True

    run(app, "goal", "delete", str(goal.id))
    assert app.records.list_goals(USER) == []


def test_goal_edit_and_delete_errors(app):
    goal = app.records.create_goal(USER, "Keep")

    with pytest.raises(ValueError):
        run(app, "goal", "edit", str(goal.id))
    with pytest.raises(ValueError):
        run(app, "goal", "edit", str(goal.id), "--title", "   ")
    with pytest.raises(PersistenceError):
        run(app, "goal", "delete", "999")
    assert app.records.get_goal(USER, goal.id).title == "Keep"


def test_goal_flags_are_mutually_exclusive(app):
    with pytest.raises(SystemExit):
        main.build_parser().parse_args(["--user", USER, "goal", "edit", "1", "--active", "--inactive"])


def test_invalid_configuration_exits_with_error(monkeypatch, capsys):
    monkeypatch.setenv("MISSION_CONTROL_TZ", "Nowhere/Special")

    assert main.main(["--user", USER, "dashboard"]) == 2
    assert "MISSION_CONTROL_TZ" in capsys.readouterr().err
