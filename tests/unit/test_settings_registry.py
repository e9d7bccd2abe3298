import pytest

from config.registry import QUESTION_GEN_KEY, bind_model, get_model
from config.routes import model_for_plan, route_for_plan
from config.settings import Settings


def test_settings_defaults():
    settings = Settings(_env_file=None)
    assert settings.DB_PATH.endswith(".db")
    assert settings.CONTEXT_WINDOW == 10
    assert settings.JOB_MAX_ATTEMPTS == 3
    assert settings.JOB_BACKOFF_MS == 2000
    assert settings.POLL_INTERVAL_S == 5.0
    assert settings.POLL_MAX_ATTEMPTS == 30
    assert settings.PLAN_LIMITS["free"] == {"mock_interviews": 3, "document_analyses": 1}
    assert settings.PLAN_LIMITS["elite"]["mock_interviews"] == -1


def test_eager_mode_is_opt_in(monkeypatch):
    monkeypatch.delenv("REDIS_URL", raising=False)
    monkeypatch.delenv("CELERY_BROKER_URL", raising=False)
    monkeypatch.delenv("CELERY_TASK_ALWAYS_EAGER", raising=False)
    settings = Settings(_env_file=None)
    assert settings.CELERY_TASK_ALWAYS_EAGER is False
    assert settings.broker_url.startswith("redis://")

    with_redis = Settings(_env_file=None, REDIS_URL="redis://cache:6379/2")
    assert with_redis.broker_url == "redis://cache:6379/2"

    monkeypatch.setenv("CELERY_TASK_ALWAYS_EAGER", "1")
    assert Settings(_env_file=None).CELERY_TASK_ALWAYS_EAGER is True


def test_registry_bind_and_retrieve():
    marker = object()
    bind_model(QUESTION_GEN_KEY, lambda **_: marker)
    model = get_model(QUESTION_GEN_KEY)
    assert model() is marker


def test_registry_unknown_key_raises():
    with pytest.raises(KeyError):
        get_model("models.unknown")


def test_paid_plans_route_to_advanced_model():
    cfg = Settings(_env_file=None, AI_SITE_URL="https://prep.example", AI_SITE_TITLE="Prep")
    assert model_for_plan("free", cfg) == cfg.AI_MODEL_STANDARD
    assert model_for_plan(None, cfg) == cfg.AI_MODEL_STANDARD
    assert model_for_plan("pro", cfg) == cfg.AI_MODEL_ADVANCED
    route = route_for_plan("elite", cfg)
    assert route.model == cfg.AI_MODEL_ADVANCED
    assert route.extra_headers == {"HTTP-Referer": "https://prep.example", "X-Title": "Prep"}
    assert route.url.endswith("/chat/completions")
