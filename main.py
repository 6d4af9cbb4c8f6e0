# mission_control/main.py
from __future__ import annotations

import argparse
import logging
import os
import sys
from typing import Optional, Sequence

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from core.errors import MissionControlError
from core.settings import APP_NAME, ensure_data_dirs, load_settings
from services.dashboard import AppServices
from services.google_auth import GoogleAuth
from utils.datetime_utils import parse_civil_date


def _print_tasks(title: str, tasks) -> None:
    print(f"{title} ({len(tasks)})")
    for task in tasks:
        mark = "x" if task.completed else " "
        print(f"  [{mark}] #{task.id} {task.day.isoformat()} {task.title}  <{task.category}>")


def cmd_dashboard(app: AppServices, args) -> int:
    snap = app.dashboard.load(args.user)
    print(f"Rolled over: {snap.rollover.rolled} (failed {snap.rollover.failed})")
    print(f"Auto-completed calendar tasks: {snap.auto_completed}")
    if snap.sync is not None:
        state = "ran" if snap.sync.ran else "skipped (already synced today)"
        print(f"Calendar auto-sync {state}: {snap.sync.total_created} new, {snap.sync.total_failed} failed")
    if snap.sync_error:
        print(f"Calendar auto-sync failed, sync manually: {snap.sync_error}")
    if snap.daily is not None:
        print(f"Today's progress: {snap.daily.progress_percent}%")
    if snap.backlog:
        _print_tasks("Backlog", snap.backlog)
    _print_tasks("Today", snap.today_tasks)
    return 0


def cmd_sync(app: AppServices, args) -> int:
    accounts = app.accounts.list(args.user)
    if not accounts:
        print("Connect at least one calendar account first.")
        return 1
    result = app.calendar_sync.sync_all_accounts(args.user, accounts)
    app.calendar_sync.synced_event_count(args.user)
    if result.total_created == 0 and result.total_failed == 0:
        print("All calendar events are already synced.")
    elif result.total_failed:
        print(f"Synced {result.total_created} new tasks, but {result.total_failed} failed.")
    else:
        print(f"Created {result.total_created} new tasks from your calendar events.")
    return 0


def cmd_note(app: AppServices, args) -> int:
    created = app.notes.add_note(args.user, " ".join(args.text))
    _print_tasks("Added", created)
    app.progress.update_daily(args.user)
    return 0


def cmd_toggle(app: AppServices, args) -> int:
    task = app.tasks.toggle(args.user, args.task_id)
    app.progress.update_daily(args.user)
    _print_tasks("Updated", [task])
    return 0


def _task_changes(args) -> dict:
    changes = {}
    if args.title is not None:
        title = args.title.strip()
        if not title:
            raise ValueError("Task title must not be empty")
        changes["title"] = title
    if args.category is not None:
        category = args.category.strip()
        if not category:
            raise ValueError("Task category must not be empty")
        changes["category"] = category
    if args.day is not None:
        day = parse_civil_date(args.day) if len(args.day.strip()) == 10 else None
        if day is None:
            raise ValueError(f"Not a YYYY-MM-DD date: {args.day!r}")
        changes["day"] = day
    if not changes:
        raise ValueError("Nothing to change; pass --title, --category or --day")
    return changes


def cmd_edit(app: AppServices, args) -> int:
    task = app.tasks.update(args.user, args.task_id, **_task_changes(args))
    app.progress.update_daily(args.user)
    _print_tasks("Updated", [task])
    return 0


def cmd_delete(app: AppServices, args) -> int:
    app.tasks.delete(args.user, args.task_id)
    app.progress.update_daily(args.user)
    print(f"Deleted task #{args.task_id}.")
    return 0


def cmd_connect(app: AppServices, args) -> int:
    account = GoogleAuth(app.settings.client_secret_path, app.settings.calendar.scopes).connect_account()
    app.accounts.add(args.user, account)
    print(f"Google Calendar connected: {account.email}")
    return 0


def cmd_disconnect(app: AppServices, args) -> int:
    app.accounts.remove(args.user, args.email)
    print(f"Calendar account {args.email} has been disconnected.")
    return 0


def cmd_categories(app: AppServices, args) -> int:
    if args.add:
        app.categories.add_custom(args.user, args.add)
    if args.regenerate:
        names = app.notes.refresh_categories(args.user, force=True)
    else:
        names = app.categories.available(args.user).as_list()
    print(", ".join(names))
    return 0


def _print_goal(goal) -> None:
    state = "" if goal.is_active else " (inactive)"
    print(f"Goal #{goal.id}: {goal.title}{state}")
    if goal.description:
        print(f"  {goal.description}")


def cmd_goal_add(app: AppServices, args) -> int:
    _print_goal(app.records.create_goal(args.user, args.title, args.description or ""))
    return 0


def cmd_goal_list(app: AppServices, args) -> int:
    goals = app.records.list_goals(args.user)
    if not goals:
        print("No goals yet.")
    for goal in goals:
        _print_goal(goal)
    return 0


def cmd_goal_edit(app: AppServices, args) -> int:
    changes = {}
    if args.title is not None:
        changes["title"] = args.title
    if args.description is not None:
        changes["description"] = args.description.strip()
    if args.active is not None:
        changes["is_active"] = args.active
    if not changes:
        raise ValueError("Nothing to change; pass --title, --description, --active or --inactive")
    _print_goal(app.records.update_goal(args.user, args.goal_id, **changes))
    return 0


def cmd_goal_delete(app: AppServices, args) -> int:
    app.records.delete_goal(args.user, args.goal_id)
    print(f"Deleted goal #{args.goal_id}.")
    return 0


def cmd_weekly(app: AppServices, args) -> int:
    entry = app.progress.weekly_breakdown(args.user)
    print(f"Week of {entry.week_start.isoformat()}: {entry.overall_progress}%")
    for category, data in entry.category_progress.items():
        print(f"  {category}: {data['achieved']}/{data['target']} ({data['percent']}%)")
    if args.goal is not None:
        analysis = app.progress.analyze_week(args.user, args.goal, app.analyst)
        print(f"\n{analysis.goal_title}: {analysis.analysis}")
    return 0


def cmd_reset(app: AppServices, args) -> int:
    if not args.yes:
        print("Refusing to delete data without --yes.")
        return 1
    removed = app.reset_user_data(args.user)
    print(f"Deleted {removed} records.")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="mission-control", description=f"{APP_NAME} task tracker")
    parser.add_argument("--user", required=True, help="stable user id from the auth provider")
    parser.add_argument("-v", "--verbose", action="store_true")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("dashboard", help="rollover, auto-complete and auto-sync, then list tasks").set_defaults(func=cmd_dashboard)
    sub.add_parser("sync", help="sync today's events from every connected calendar").set_defaults(func=cmd_sync)

    note = sub.add_parser("note", help="add tasks from a free-text note")
    note.add_argument("text", nargs="+")
    note.set_defaults(func=cmd_note)

    toggle = sub.add_parser("toggle", help="flip a task's completion")
    toggle.add_argument("task_id", type=int)
    toggle.set_defaults(func=cmd_toggle)

    edit = sub.add_parser("edit", help="change a task's title, category or day")
    edit.add_argument("task_id", type=int)
    edit.add_argument("--title")
    edit.add_argument("--category")
    edit.add_argument("--day", help="YYYY-MM-DD")
    edit.set_defaults(func=cmd_edit)

    delete = sub.add_parser("delete", help="delete a task")
    delete.add_argument("task_id", type=int)
    delete.set_defaults(func=cmd_delete)

    sub.add_parser("connect", help="connect a Google Calendar account").set_defaults(func=cmd_connect)

    disconnect = sub.add_parser("disconnect", help="disconnect a calendar account")
    disconnect.add_argument("email")
    disconnect.set_defaults(func=cmd_disconnect)

    categories = sub.add_parser("categories", help="list or extend categories")
    categories.add_argument("--add")
    categories.add_argument("--regenerate", action="store_true")
    categories.set_defaults(func=cmd_categories)

    goal = sub.add_parser("goal", help="manage goals")
    goal_sub = goal.add_subparsers(dest="goal_command", required=True)

    goal_add = goal_sub.add_parser("add", help="create a goal")
    goal_add.add_argument("title")
    goal_add.add_argument("--description")
    goal_add.set_defaults(func=cmd_goal_add)

    goal_sub.add_parser("list", help="list goals").set_defaults(func=cmd_goal_list)

    goal_edit = goal_sub.add_parser("edit", help="change a goal")
    goal_edit.add_argument("goal_id", type=int)
    goal_edit.add_argument("--title")
    goal_edit.add_argument("--description")
    active = goal_edit.add_mutually_exclusive_group()
    active.add_argument("--active", dest="active", action="store_const", const=True)
    active.add_argument("--inactive", dest="active", action="store_const", const=False)
    goal_edit.set_defaults(func=cmd_goal_edit)

    goal_delete = goal_sub.add_parser("delete", help="delete a goal")
    goal_delete.add_argument("goal_id", type=int)
    goal_delete.set_defaults(func=cmd_goal_delete)

    weekly = sub.add_parser("weekly", help="weekly category progress and optional AI review")
    weekly.add_argument("--goal", type=int)
    weekly.set_defaults(func=cmd_weekly)

    reset = sub.add_parser("reset", help="delete all data for the user")
    reset.add_argument("--yes", action="store_true")
    reset.set_defaults(func=cmd_reset)
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.INFO if args.verbose else logging.WARNING)
    try:
        settings = load_settings()
        ensure_data_dirs()
        app = AppServices.build(settings)
        return args.func(app, args)
    except (MissionControlError, ValueError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
