"""Ad-hoc database migrations for Mission Control."""

from __future__ import annotations

from sqlalchemy import text


def _column_exists(conn, table: str, column: str) -> bool:
    result = conn.execute(text(f"PRAGMA table_info('{table}')"))
    return any(row[1] == column for row in result)


def ensure_task_columns(conn) -> None:
    columns = {
        "tags": "JSON",
        "is_from_calendar": "BOOLEAN NOT NULL DEFAULT 0",
        "calendar_event_id": "TEXT",
        "event_end_time": "TEXT",
    }
    for name, ddl_type in columns.items():
        if not _column_exists(conn, "task", name):
            conn.execute(text(f"ALTER TABLE task ADD COLUMN {name} {ddl_type}"))

    conn.execute(text("UPDATE task SET tags = '[]' WHERE tags IS NULL"))


def ensure_calendar_event_unique(conn) -> None:
    # databases created before the constraint existed may already hold duplicates
    conn.execute(
        text(
            """
            DELETE FROM task
            WHERE calendar_event_id IS NOT NULL
              AND id NOT IN (
                SELECT MIN(id) FROM task
                WHERE calendar_event_id IS NOT NULL
                GROUP BY user_id, calendar_event_id
              )
            """
        )
    )
    conn.execute(
        text(
            """
            CREATE UNIQUE INDEX IF NOT EXISTS ux_task_user_event_idx
            ON task (user_id, calendar_event_id)
            """
        )
    )


def run_all(engine) -> None:
    with engine.begin() as conn:
        ensure_task_columns(conn)
        ensure_calendar_event_unique(conn)


__all__ = ["run_all"]
