"""
One SQL session against a private in-memory SQLite database.

Run as a standalone script (``python -I sql_session.py query.sql``) by
``SqlBackend``; it only depends on the standard library so it can be copied
into a workspace and executed in isolation mode.
"""

from __future__ import annotations

import re
import sqlite3
import sys
from collections.abc import Iterator

MAX_ROWS = 200
SHOW_TIP = (
    "Tip: Use SQLite syntax, or supported aliases: SHOW TABLES, SHOW DATABASES, "
    "SHOW COLUMNS FROM <table>, DESCRIBE <table>."
)

_SHOW_COLUMNS = re.compile(r"^SHOW\s+COLUMNS\s+(?:FROM|IN)\s+([A-Za-z_][A-Za-z0-9_]*)$", re.IGNORECASE)
_DESCRIBE = re.compile(r"^DESCRIBE\s+([A-Za-z_][A-Za-z0-9_]*)$", re.IGNORECASE)
_LEADING_COMMENTS = re.compile(r"^(?:\s+|--[^\n]*(?:\n|$)|/\*.*?\*/)*", re.DOTALL)
_KEYWORD = re.compile(r"[A-Za-z_]+")


def split_statements(sql: str) -> Iterator[str]:
    """
    Yield complete statements, without the trailing ``;``.

    Completeness is decided by ``sqlite3.complete_statement`` so separators
    inside string literals, identifiers and comments do not split.
    """
    buffer = ""
    for ch in sql:
        buffer += ch
        if ch != ";" or not sqlite3.complete_statement(buffer):
            continue
        stmt = buffer.strip()
        buffer = ""
        if stmt.endswith(";"):
            stmt = stmt[:-1].strip()
        if stmt:
            yield stmt
    if buffer.strip():
        yield buffer.strip()


def translate_introspection(stmt: str) -> str | None:
    """Engine-native query for a MySQL-style introspection statement, if it is one."""
    upper = " ".join(stmt.upper().split())
    if upper == "SHOW TABLES":
        return (
            "SELECT name AS table_name FROM sqlite_master "
            "WHERE type='table' AND name NOT LIKE 'sqlite_%' ORDER BY name"
        )
    if upper == "SHOW DATABASES":
        return "SELECT 'main' AS database_name"
    match = _SHOW_COLUMNS.match(stmt) or _DESCRIBE.match(stmt)
    if match:
        return f"PRAGMA table_info({match.group(1)})"
    return None


def strip_leading_comments(stmt: str) -> str:
    return _LEADING_COMMENTS.sub("", stmt, count=1)


def leading_keyword(stmt: str) -> str:
    """First word of ``stmt`` after any leading comments, upper-cased."""
    match = _KEYWORD.match(strip_leading_comments(stmt))
    return match.group(0).upper() if match else ""


def _deny_attach(action: int, *_: object) -> int:
    if action in (sqlite3.SQLITE_ATTACH, sqlite3.SQLITE_DETACH):
        return sqlite3.SQLITE_DENY
    return sqlite3.SQLITE_OK


class SqlSession:
    """Executes statements sequentially on one connection and collects output lines."""

    def __init__(self) -> None:
        self.conn = sqlite3.connect(":memory:")
        self.conn.set_authorizer(_deny_attach)
        self.cursor = self.conn.cursor()
        self.output: list[str] = []

    def execute(self, stmt: str) -> None:
        translated = translate_introspection(strip_leading_comments(stmt))
        if translated is not None:
            self._print_query(translated)
            return

        self.cursor.execute(stmt)
        # Anything with result columns prints rows, VALUES and RETURNING included.
        returns_rows = self.cursor.description is not None
        if returns_rows:
            self._print_rows()
        self.conn.commit()
        if not returns_rows:
            keyword = leading_keyword(stmt) or "STATEMENT"
            self.output.append(f"OK: {keyword} (changes: {self.conn.total_changes})")

    def run_script(self, sql: str) -> None:
        for stmt in split_statements(sql):
            self.execute(stmt)

    def close(self) -> None:
        self.conn.close()

    def _print_query(self, query: str) -> None:
        self.cursor.execute(query)
        self._print_rows()

    def _print_rows(self) -> None:
        rows = self.cursor.fetchall()
        columns = [d[0] for d in self.cursor.description] if self.cursor.description else []
        if columns:
            header = " | ".join(columns)
            self.output.append(header)
            self.output.append("-" * max(3, len(header)))
        for row in rows[:MAX_ROWS]:
            self.output.append(" | ".join("" if v is None else str(v) for v in row))
        if len(rows) > MAX_ROWS:
            self.output.append(f"... ({len(rows) - MAX_ROWS} more rows)")


def main(argv: list[str]) -> int:
    with open(argv[1], "r", encoding="utf-8") as handle:
        sql = handle.read()

    session = SqlSession()
    try:
        session.run_script(sql)
    except sqlite3.Error as err:
        if session.output:
            print("\n".join(session.output))
        message = str(err)
        print("SQLite Error: " + message, file=sys.stderr)
        if 'near "show"' in message.lower():
            print(SHOW_TIP, file=sys.stderr)
        return 1
    finally:
        session.close()

    print("\n".join(session.output))
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv))
