"""SQLite schema for planner collections (code-first)."""

import logging

from src.core import db_client


logger = logging.getLogger(__name__)

_TIMESTAMP_DEFAULT = "(strftime('%Y-%m-%dT%H:%M:%fZ', 'now'))"
_LEVELS = "('low', 'medium', 'high', 'critical')"

TABLE_SCHEMAS: dict[str, str] = {
    "tasks": f"""CREATE TABLE IF NOT EXISTS tasks (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        created TEXT NOT NULL DEFAULT {_TIMESTAMP_DEFAULT},
        updated TEXT NOT NULL DEFAULT {_TIMESTAMP_DEFAULT},
        owner_id TEXT NOT NULL,
        title TEXT NOT NULL,
        description TEXT NOT NULL DEFAULT '',
        urgency TEXT NOT NULL DEFAULT 'medium' CHECK (urgency IN {_LEVELS}),
        importance TEXT NOT NULL DEFAULT 'medium' CHECK (importance IN {_LEVELS}),
        status TEXT NOT NULL DEFAULT 'not_started'
            CHECK (status IN ('not_started', 'in_progress', 'completed')),
        category TEXT NOT NULL DEFAULT 'personal',
        tags TEXT NOT NULL DEFAULT '[]',
        deadline TEXT,
        estimated_time INTEGER,
        actual_time INTEGER,
        subtasks TEXT NOT NULL DEFAULT '[]',
        dependencies TEXT NOT NULL DEFAULT '[]',
        recurring TEXT NOT NULL DEFAULT '{{}}',
        link_type TEXT NOT NULL DEFAULT 'none'
            CHECK (link_type IN ('none', 'project', 'goal', 'business')),
        link_target_id TEXT NOT NULL DEFAULT '',
        link_milestone_index INTEGER,
        started_at TEXT,
        completed_at TEXT,
        is_archived INTEGER NOT NULL DEFAULT 0
    )""",
    "goals": f"""CREATE TABLE IF NOT EXISTS goals (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        created TEXT NOT NULL DEFAULT {_TIMESTAMP_DEFAULT},
        updated TEXT NOT NULL DEFAULT {_TIMESTAMP_DEFAULT},
        owner_id TEXT NOT NULL,
        title TEXT NOT NULL,
        description TEXT NOT NULL DEFAULT '',
        category TEXT NOT NULL DEFAULT 'personal',
        priority TEXT NOT NULL DEFAULT 'medium' CHECK (priority IN {_LEVELS}),
        target_date TEXT,
        status TEXT NOT NULL DEFAULT 'not_started'
            CHECK (status IN ('not_started', 'in_progress', 'at_risk', 'overdue', 'achieved')),
        current_value REAL,
        target_value REAL,
        milestones TEXT NOT NULL DEFAULT '[]',
        progress_entries TEXT NOT NULL DEFAULT '[]',
        started_at TEXT,
        achieved_at TEXT
    )""",
    "projects": f"""CREATE TABLE IF NOT EXISTS projects (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        created TEXT NOT NULL DEFAULT {_TIMESTAMP_DEFAULT},
        updated TEXT NOT NULL DEFAULT {_TIMESTAMP_DEFAULT},
        owner_id TEXT NOT NULL,
        title TEXT NOT NULL,
        description TEXT NOT NULL DEFAULT '',
        status TEXT NOT NULL DEFAULT 'not_started'
            CHECK (status IN ('not_started', 'active', 'completed')),
        priority TEXT NOT NULL DEFAULT 'medium' CHECK (priority IN {_LEVELS}),
        completion_percentage REAL NOT NULL DEFAULT 0
            CHECK (completion_percentage >= 0 AND completion_percentage <= 100),
        milestones TEXT NOT NULL DEFAULT '[]',
        start_date TEXT,
        target_completion_date TEXT,
        actual_completion_date TEXT,
        goal_id TEXT NOT NULL DEFAULT '',
        archived INTEGER NOT NULL DEFAULT 0
    )""",
    "linked_projects": f"""CREATE TABLE IF NOT EXISTS linked_projects (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        created TEXT NOT NULL DEFAULT {_TIMESTAMP_DEFAULT},
        updated TEXT NOT NULL DEFAULT {_TIMESTAMP_DEFAULT},
        owner_id TEXT NOT NULL,
        business_id TEXT NOT NULL,
        project_id TEXT NOT NULL,
        role TEXT NOT NULL DEFAULT 'related'
            CHECK (role IN ('primary', 'supporting', 'related', 'dependency')),
        priority TEXT NOT NULL DEFAULT 'medium' CHECK (priority IN {_LEVELS}),
        business_phase TEXT NOT NULL DEFAULT 'development'
            CHECK (business_phase IN ('research', 'development', 'launch', 'growth', 'maintenance')),
        dependencies TEXT NOT NULL DEFAULT '[]',
        roadmap_position TEXT NOT NULL DEFAULT '{{}}',
        UNIQUE (business_id, project_id)
    )""",
}

INDEXES: list[str] = [
    "CREATE INDEX IF NOT EXISTS idx_tasks_owner ON tasks (owner_id, is_archived)",
    "CREATE INDEX IF NOT EXISTS idx_tasks_link ON tasks (link_type, link_target_id)",
    "CREATE INDEX IF NOT EXISTS idx_goals_owner ON goals (owner_id)",
    "CREATE INDEX IF NOT EXISTS idx_projects_owner ON projects (owner_id)",
    "CREATE INDEX IF NOT EXISTS idx_projects_goal ON projects (goal_id)",
    "CREATE INDEX IF NOT EXISTS idx_linked_projects_business ON linked_projects (business_id)",
]


async def init_db(*, db_path: str | None = None) -> None:
    """Create all planner tables and indexes if they do not exist yet."""
    conn = await db_client.get_connection(db_path=db_path)
    for table, ddl in TABLE_SCHEMAS.items():
        await conn.execute(ddl)
        logger.debug("Ensured table", extra={"table": table})
    for index_sql in INDEXES:
        await conn.execute(index_sql)
    await conn.commit()
    logger.info("Database schema initialized", extra={"tables": list(TABLE_SCHEMAS)})
