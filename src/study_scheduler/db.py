"""Database initialization and connection management for the SQLite backend."""
import sqlite3
from pathlib import Path

SCHEMA = """
CREATE TABLE IF NOT EXISTS materials (
    id TEXT PRIMARY KEY,
    type TEXT NOT NULL CHECK (type IN ('book', 'video', 'custom')),
    title TEXT NOT NULL,
    description TEXT,
    color TEXT,
    total_pages INTEGER,
    current_page INTEGER,
    start_page INTEGER,
    end_page INTEGER,
    pages_per_day INTEGER,
    sections TEXT,
    total_duration INTEGER,
    current_progress INTEGER,
    sections_per_day INTEGER,
    tasks TEXT,
    start_date TEXT,
    end_date TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS completed_tasks (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    material_id TEXT NOT NULL,
    task_date TEXT NOT NULL,
    UNIQUE(material_id, task_date)
);

CREATE TABLE IF NOT EXISTS user_settings (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    key TEXT NOT NULL UNIQUE,
    value TEXT
);
"""

MATERIAL_COLUMNS = (
    "id", "type", "title", "description", "color",
    "total_pages", "current_page", "start_page", "end_page", "pages_per_day",
    "sections", "total_duration", "current_progress", "sections_per_day",
    "tasks", "start_date", "end_date", "created_at", "updated_at",
)


def get_connection(db_path: str) -> sqlite3.Connection:
    """Open ``db_path`` with rows addressable by column name."""
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    return conn


def init_db(db_path: str) -> None:
    """Create the scheduler tables if missing. Safe to call on every start."""
    Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    conn = get_connection(db_path)
    conn.executescript(SCHEMA)
    conn.commit()
    conn.close()
