import json

import pytest

from giftbudget.config import DEFAULT_CATALOG, AppConfig, load_config
from giftbudget.ops import StructuredLogger
from giftbudget.service import GiftBudget


def test_load_config_reads_the_environment(monkeypatch, tmp_path) -> None:
    monkeypatch.setenv("GIFTBUDGET_ADMIN_PASSWORD", "s3cret")
    monkeypatch.setenv("GIFTBUDGET_SQLITE", str(tmp_path / "db.sqlite"))
    monkeypatch.setenv("GIFTBUDGET_LOG_PATH", str(tmp_path / "logs" / "events.jsonl"))

    config = load_config(weeks_per_term=10)

    assert config.admin_password == "s3cret"
    assert config.sqlite_file.endswith("db.sqlite")
    assert config.log_path == tmp_path / "logs" / "events.jsonl"
    assert config.weeks_per_term == 10
    assert config.catalog is DEFAULT_CATALOG


def test_config_rejects_impossible_terms() -> None:
    with pytest.raises(ValueError):
        AppConfig(weeks_per_term=0)
    with pytest.raises(ValueError):
        AppConfig(weeks_per_term=12, max_weeks_per_term=10)


def test_default_catalog_matches_the_classroom_sheet() -> None:
    assert [category.id for category in DEFAULT_CATALOG.categories] == ["immFamily", "extFamily", "friends", "others"]
    assert sum(1 for _ in DEFAULT_CATALOG.occasions()) == 11
    by_id = {category.id: category for category in DEFAULT_CATALOG.categories}
    assert by_id["immFamily"].fixed_frequency_for("Father's Day") == 1
    assert by_id["friends"].fixed_frequency_for("Birthdays") is None


def test_structured_logger_appends_json_lines(tmp_path) -> None:
    path = tmp_path / "logs" / "events.jsonl"
    logger = StructuredLogger(path=path, limit=2)

    logger.log("one", value=1)
    logger.warning("two")
    logger.log("three")

    lines = [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines()]
    assert [line["event"] for line in lines] == ["one", "two", "three"]
    assert lines[1]["level"] == "warning"
    assert [entry["event"] for entry in logger.tail()] == ["two", "three"]


def test_service_logs_to_the_configured_file(tmp_path) -> None:
    path = tmp_path / "events.jsonl"
    service = GiftBudget(config=AppConfig(log_path=path))

    service.create_code("CLASS2024", 3, "2024-01-01", "2024-12-31")

    assert json.loads(path.read_text(encoding="utf-8").splitlines()[-1])["event"] == "code_created"
