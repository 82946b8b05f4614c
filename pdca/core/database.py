"""
Database utilities and connection management

SQLite storage for goals and tasks. Each call opens a short-lived connection, so a
single Database instance can be shared across request handlers.

Usage:
    db = Database()                # data/database/pdca.db
    db = Database(tmp_path / "x.db", create=True)
    db.init_schema()
"""

import sqlite3
from pathlib import Path
from typing import List, Dict, Any, Optional, Tuple
from contextlib import contextmanager


GOALS_SCHEMA = [
    """
    CREATE TABLE IF NOT EXISTS goals (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        user_id TEXT NOT NULL DEFAULT 'local',
        title TEXT NOT NULL,
        description TEXT,
        level TEXT NOT NULL DEFAULT 'MONTHLY'
            CHECK(level IN ('VISION', 'YEARLY', 'QUARTERLY', 'MONTHLY', 'WEEKLY')),
        status TEXT NOT NULL DEFAULT 'ACTIVE'
            CHECK(status IN ('ACTIVE', 'COMPLETED', 'CANCELLED', 'ARCHIVED')),
        start_date TEXT,
        end_date TEXT,
        parent_id INTEGER,
        tags TEXT,
        metrics TEXT,
        resources TEXT,
        priority INTEGER NOT NULL DEFAULT 5 CHECK(priority BETWEEN 1 AND 10),
        weight REAL NOT NULL DEFAULT 1.0 CHECK(weight BETWEEN 0 AND 1),
        progress REAL NOT NULL DEFAULT 0 CHECK(progress BETWEEN 0 AND 1),
        created_at TEXT DEFAULT (strftime('%Y-%m-%d %H:%M:%f', 'now', 'utc')),
        updated_at TEXT DEFAULT (strftime('%Y-%m-%d %H:%M:%f', 'now', 'utc')),
        FOREIGN KEY (parent_id) REFERENCES goals(id) ON DELETE SET NULL
    );
    """,
    "CREATE INDEX IF NOT EXISTS idx_goals_user ON goals(user_id);",
    "CREATE INDEX IF NOT EXISTS idx_goals_status ON goals(status);",
    """
    CREATE TRIGGER IF NOT EXISTS goals_updated_at AFTER UPDATE ON goals
    BEGIN
        UPDATE goals SET updated_at = strftime('%Y-%m-%d %H:%M:%f', 'now', 'utc')
        WHERE id = NEW.id;
    END;
    """,
]

TASKS_SCHEMA = [
    """
    CREATE TABLE IF NOT EXISTS tasks (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        user_id TEXT NOT NULL DEFAULT 'local',
        title TEXT NOT NULL,
        description TEXT,
        status TEXT NOT NULL DEFAULT 'TODO'
            CHECK(status IN ('TODO', 'IN_PROGRESS', 'COMPLETED', 'CANCELLED')),
        priority TEXT NOT NULL DEFAULT 'MEDIUM'
            CHECK(priority IN ('LOW', 'MEDIUM', 'HIGH', 'URGENT')),
        due_date TEXT,
        goal_id INTEGER,
        parent_id INTEGER,
        tags TEXT,
        completed_at TEXT,
        created_at TEXT DEFAULT (strftime('%Y-%m-%d %H:%M:%f', 'now', 'utc')),
        updated_at TEXT DEFAULT (strftime('%Y-%m-%d %H:%M:%f', 'now', 'utc')),
        FOREIGN KEY (goal_id) REFERENCES goals(id) ON DELETE SET NULL,
        FOREIGN KEY (parent_id) REFERENCES tasks(id) ON DELETE SET NULL
    );
    """,
    "CREATE INDEX IF NOT EXISTS idx_tasks_user ON tasks(user_id);",
    "CREATE INDEX IF NOT EXISTS idx_tasks_goal ON tasks(goal_id);",
    """
    CREATE TRIGGER IF NOT EXISTS tasks_updated_at AFTER UPDATE ON tasks
    BEGIN
        UPDATE tasks SET updated_at = strftime('%Y-%m-%d %H:%M:%f', 'now', 'utc')
        WHERE id = NEW.id;
    END;
    """,
]


class Database:
    """SQLite database wrapper"""

    def __init__(self, db_path: Optional[Path] = None, create: bool = False):
        """
        Args:
            db_path: Path to the SQLite file (defaults to data/database/pdca.db)
            create: Create the file (and parent directories) if missing
        """
        if db_path is None:
            db_path = Path(__file__).parent.parent.parent / "data" / "database" / "pdca.db"

        self.db_path = Path(db_path)

        if not self.db_path.exists():
            if not create:
                raise FileNotFoundError(
                    f"Database not found at {self.db_path}. "
                    "Run 'python scripts/init_db.py' to create it."
                )
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            sqlite3.connect(self.db_path).close()

    @contextmanager
    def get_connection(self):
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON;")
        try:
            yield conn
        finally:
            conn.close()

    def execute(self, query: str, params: Tuple = ()) -> List[Dict[str, Any]]:
        with self.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(query, params)
            rows = cursor.fetchall()
            return [dict(row) for row in rows]

    def execute_one(self, query: str, params: Tuple = ()) -> Optional[Dict[str, Any]]:
        with self.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(query, params)
            row = cursor.fetchone()
            return dict(row) if row else None

    def execute_write(self, query: str, params: Tuple = ()) -> int:
        """Run INSERT/UPDATE/DELETE. Returns the new row id for inserts, else rows affected."""
        with self.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(query, params)
            conn.commit()
            if query.lstrip().upper().startswith("INSERT"):
                return cursor.lastrowid
            return cursor.rowcount

    def init_schema(self) -> None:
        """Create the goals and tasks tables, indexes and triggers if they don't exist."""
        with self.transaction() as conn:
            for statement in GOALS_SCHEMA + TASKS_SCHEMA:
                conn.execute(statement)

    def table_exists(self, table_name: str) -> bool:
        query = "SELECT name FROM sqlite_master WHERE type='table' AND name=?;"
        result = self.execute_one(query, (table_name,))
        return result is not None

    def get_table_names(self) -> List[str]:
        query = "SELECT name FROM sqlite_master WHERE type='table' ORDER BY name;"
        rows = self.execute(query)
        return [row['name'] for row in rows]

    def count(self, table_name: str, where_clause: str = "", params: Tuple = ()) -> int:
        query = f"SELECT COUNT(*) as count FROM {table_name}"
        if where_clause:
            query += f" WHERE {where_clause}"
        result = self.execute_one(query, params)
        return result['count'] if result else 0

    def row_to_dict(self, row: Any) -> Optional[Dict[str, Any]]:
        """Convert row to dictionary"""
        if row is None:
            return None
        if isinstance(row, dict):
            return row
        return dict(row)

    def rows_to_dicts(self, rows: List[Any]) -> List[Dict[str, Any]]:
        """Convert list of rows to list of dictionaries"""
        return [self.row_to_dict(row) for row in rows if row is not None]

    @contextmanager
    def transaction(self):
        with self.get_connection() as conn:
            try:
                yield conn
                conn.commit()
            except Exception:
                conn.rollback()
                raise
