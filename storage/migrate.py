"""SQLite schema migrations."""
from __future__ import annotations

import os
import sqlite3
from typing import Iterable

SCHEMA: Iterable[str] = [
    """
CREATE TABLE IF NOT EXISTS users (
  user_id TEXT PRIMARY KEY,
  plan TEXT NOT NULL DEFAULT 'free',
  language TEXT NOT NULL DEFAULT 'en',
  created_at TEXT NOT NULL
);
""",
    """
CREATE TABLE IF NOT EXISTS usage_counters (
  user_id TEXT NOT NULL,
  feature TEXT NOT NULL,
  count INTEGER NOT NULL DEFAULT 0,
  PRIMARY KEY (user_id, feature)
);
""",
    """
CREATE TABLE IF NOT EXISTS interview_sessions (
  session_id TEXT PRIMARY KEY,
  user_id TEXT NOT NULL,
  type TEXT NOT NULL,
  difficulty TEXT NOT NULL,
  domain TEXT NOT NULL,
  technology TEXT NOT NULL,
  num_questions INTEGER NOT NULL,
  mode TEXT NOT NULL,
  time_limit INTEGER,
  language TEXT NOT NULL,
  status TEXT NOT NULL,
  current_question_index INTEGER NOT NULL DEFAULT 0,
  question_ids TEXT NOT NULL,
  answer_ids TEXT NOT NULL,
  started_at TEXT NOT NULL,
  completed_at TEXT,
  overall_score REAL,
  feedback TEXT,
  feedback_status TEXT NOT NULL DEFAULT 'none',
  feedback_error TEXT,
  context_id TEXT,
  updated_at TEXT NOT NULL
);
""",
    """
CREATE INDEX IF NOT EXISTS idx_sessions_user ON interview_sessions (user_id, started_at);
""",
    """
CREATE TABLE IF NOT EXISTS interview_questions (
  question_id TEXT PRIMARY KEY,
  session_id TEXT NOT NULL,
  position INTEGER NOT NULL,
  category TEXT NOT NULL,
  difficulty TEXT NOT NULL,
  question TEXT NOT NULL,
  expected_key_points TEXT NOT NULL,
  hints TEXT NOT NULL,
  tags TEXT NOT NULL,
  times_asked INTEGER NOT NULL DEFAULT 0,
  average_score REAL
);
""",
    """
CREATE TABLE IF NOT EXISTS interview_answers (
  answer_id TEXT PRIMARY KEY,
  session_id TEXT NOT NULL,
  question_id TEXT NOT NULL,
  user_id TEXT NOT NULL,
  answer_type TEXT NOT NULL,
  content TEXT NOT NULL,
  audio_url TEXT,
  duration INTEGER,
  submitted_at TEXT NOT NULL,
  analyzed INTEGER NOT NULL DEFAULT 0,
  score REAL,
  feedback TEXT,
  analysis_error TEXT,
  ai_model TEXT
);
""",
    """
CREATE INDEX IF NOT EXISTS idx_answers_question ON interview_answers (question_id);
""",
    """
CREATE TABLE IF NOT EXISTS analysis_records (
  record_id TEXT PRIMARY KEY,
  user_id TEXT NOT NULL,
  file_name TEXT NOT NULL,
  mime_type TEXT NOT NULL,
  file_size INTEGER NOT NULL,
  parsed_text TEXT NOT NULL,
  job_description TEXT,
  language TEXT NOT NULL,
  status TEXT NOT NULL,
  analysis TEXT,
  error TEXT,
  created_at TEXT NOT NULL,
  updated_at TEXT NOT NULL,
  analyzed_at TEXT
);
""",
    """
CREATE TABLE IF NOT EXISTS conversation_contexts (
  context_id TEXT PRIMARY KEY,
  user_id TEXT NOT NULL,
  kind TEXT NOT NULL,
  topics TEXT NOT NULL,
  context TEXT NOT NULL,
  archived INTEGER NOT NULL DEFAULT 0,
  tokens_used INTEGER NOT NULL DEFAULT 0,
  created_at TEXT NOT NULL,
  updated_at TEXT NOT NULL
);
""",
    """
CREATE TABLE IF NOT EXISTS context_messages (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  context_id TEXT NOT NULL,
  role TEXT NOT NULL,
  content TEXT NOT NULL,
  type TEXT NOT NULL,
  timestamp TEXT NOT NULL
);
""",
    """
CREATE INDEX IF NOT EXISTS idx_context_messages ON context_messages (context_id, id);
""",
    """
CREATE TABLE IF NOT EXISTS jobs (
  job_id TEXT PRIMARY KEY,
  queue TEXT NOT NULL,
  job_type TEXT NOT NULL,
  payload TEXT NOT NULL,
  status TEXT NOT NULL,
  attempts INTEGER NOT NULL DEFAULT 0,
  last_error TEXT,
  created_at TEXT NOT NULL,
  updated_at TEXT NOT NULL,
  dispatched_at TEXT
);
""",
    """
CREATE INDEX IF NOT EXISTS idx_jobs_status ON jobs (status, updated_at);
""",
]


def migrate(db_path: str = "data/interview_prep.db") -> None:
    """Apply schema migrations to the SQLite database."""

    directory = os.path.dirname(db_path) or "."
    os.makedirs(directory, exist_ok=True)
    conn = sqlite3.connect(db_path)
    try:
        cur = conn.cursor()
        for stmt in SCHEMA:
            cur.execute(stmt)
        conn.commit()
    finally:
        conn.close()


if __name__ == "__main__":
    migrate()
