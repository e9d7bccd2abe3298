import json
import os
import sys
import tempfile
from pathlib import Path

import pytest

os.environ.setdefault("ENABLE_FILE_LOGS", "0")

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from storage.migrate import migrate
from config.settings import settings
from config.registry import (
    ANSWER_FEEDBACK_KEY,
    ANSWER_GEN_KEY,
    DOCUMENT_ANALYSIS_KEY,
    QUESTION_GEN_KEY,
    SESSION_FEEDBACK_KEY,
    bind_model,
)
from jobs.queue import JobQueue
from jobs.runner import execute_job


QUESTION_REPLY = json.dumps(
    {
        "questions": [
            {
                "question": f"How would you design API number {i} for high traffic?",
                "category": "technical",
                "difficulty": "mid",
                "expectedKeyPoints": ["caching", "rate limiting", "pagination"],
                "hints": ["Think about load"],
                "tags": ["api"],
            }
            for i in range(20)
        ]
    }
)

ANSWER_FEEDBACK_REPLY = json.dumps(
    {
        "score": 7.5,
        "strengths": ["Clear structure", "Good example", "Mentions trade-offs"],
        "improvements": ["Add metrics", "Discuss failure modes", "Be more concise"],
        "keyPointsCovered": ["caching", "pagination"],
        "keyPointsMissed": ["rate limiting"],
        "suggestions": ["Quantify impact", "Mention monitoring", "Name a concrete tool"],
        "exampleAnswer": "I would put a cache in front of the read path...",
    }
)

SESSION_FEEDBACK_REPLY = json.dumps(
    {
        "overallScore": 72,
        "ratings": {
            "technicalAccuracy": 7,
            "communication": 8,
            "structuredThinking": 7,
            "confidence": 6,
            "problemSolving": 7,
        },
        "strengths": ["Solid fundamentals"],
        "weaknesses": ["Light on metrics"],
        "topConcerns": ["Scalability depth"],
        "improvementTrends": ["Answers improved over time"],
        "bestCategory": "technical",
        "weakestCategory": "behavioral",
        "recommendations": ["Practice system design", "Prepare STAR stories"],
        "nextSteps": ["Take a senior-level mock interview"],
    }
)

DOCUMENT_REPLY = json.dumps(
    {
        "atsScore": 81,
        "overallRating": 8,
        "strengths": ["Quantified achievements"],
        "weaknesses": ["Long summary"],
        "missingKeywords": ["kubernetes"],
        "suggestions": ["Shorten the summary"],
        "sectionScores": {
            "personalInfo": 90,
            "summary": 60,
            "experience": 85,
            "education": 80,
            "skills": 75,
            "formatting": 88,
        },
    }
)

ANSWER_REPLY = json.dumps(
    {
        "answer": "In my last role I led a migration to a new database...",
        "keyPoints": ["Context", "Action", "Result"],
        "starMethod": {"situation": "s", "task": "t", "action": "a", "result": "r"},
        "confidence": 0.8,
        "suggestedFollowups": ["What would you change?", "How did you measure success?"],
    }
)


class RecordingDispatcher:
    """Stands in for the broker: records dispatched jobs, optionally fails."""

    def __init__(self):
        self.jobs = []
        self.fail = False

    def __call__(self, job):
        if self.fail:
            raise ConnectionError("broker unavailable")
        self.jobs.append(job)

    def run_all(self):
        outcomes = []
        while self.jobs:
            job = self.jobs.pop(0)
            outcomes.append(execute_job(job.job_id, job.payload, 1))
        return outcomes


@pytest.fixture(autouse=True)
def tmp_db(monkeypatch):
    td = tempfile.TemporaryDirectory()
    db_path = os.path.join(td.name, "test.db")
    monkeypatch.setattr(settings, "DB_PATH", db_path, raising=False)
    migrate(db_path)
    try:
        yield
    finally:
        td.cleanup()


@pytest.fixture
def fake_models():
    calls = {}

    def _bind(key, reply):
        calls[key] = []

        def _fake(**kwargs):
            calls[key].append(kwargs)
            return reply

        bind_model(key, _fake)

    _bind(QUESTION_GEN_KEY, QUESTION_REPLY)
    _bind(ANSWER_GEN_KEY, ANSWER_REPLY)
    _bind(ANSWER_FEEDBACK_KEY, ANSWER_FEEDBACK_REPLY)
    _bind(SESSION_FEEDBACK_KEY, SESSION_FEEDBACK_REPLY)
    _bind(DOCUMENT_ANALYSIS_KEY, DOCUMENT_REPLY)
    return calls


@pytest.fixture
def dispatcher():
    return RecordingDispatcher()


@pytest.fixture
def queue(dispatcher):
    return JobQueue(dispatcher)
