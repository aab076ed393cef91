import asyncio
import json

import pytest
from typer.testing import CliRunner

from adapters.json_store import seed_store
from cli.main import app
from conftest import COMMISSION_RECORDS, INVENTORY_RECORDS, TIMELINE_RECORDS, TOUR_RECORDS, FakeRepository

runner = CliRunner()


@pytest.fixture
def catalog_env(tmp_path, monkeypatch):
    path = seed_store(tmp_path / "catalog.json", INVENTORY_RECORDS + COMMISSION_RECORDS, TOUR_RECORDS)
    monkeypatch.setenv("FOLIO_BACKEND", "json")
    monkeypatch.setenv("FOLIO_JSON_STORE_PATH", str(path))
    monkeypatch.setenv("FOLIO_ADMIN_PASSWORD", "letmein")
    monkeypatch.setenv("FOLIO_LOG_LEVEL", "CRITICAL")
    return path


def test_items_filtered_by_tag(catalog_env):
    result = runner.invoke(app, ["items", "-c", "inventory", "-t", "Urban"])
    assert result.exit_code == 0, result.output
    assert "inv-2" in result.output
    assert "inv-1" not in result.output


def test_items_export(catalog_env, tmp_path):
    target = tmp_path / "out.json"
    result = runner.invoke(app, ["items", "-c", "inventory", "-t", "Landscape", "--export", str(target)])
    assert result.exit_code == 0, result.output
    payload = json.loads(target.read_text(encoding="utf-8"))
    assert payload["category"] == "inventory"
    assert [item["id"] for item in payload["items"]] == ["inv-1", "inv-2"]


def test_items_no_match(catalog_env):
    result = runner.invoke(app, ["items", "-c", "inventory", "-t", "Sculpture"])
    assert result.exit_code == 0
    assert "No items match the selected tags." in result.output


def test_items_broken_store(catalog_env):
    catalog_env.write_text("{broken", encoding="utf-8")
    result = runner.invoke(app, ["items", "-c", "inventory"])
    assert result.exit_code == 1
    assert "Failed to load portfolio items" in result.output


def test_tags(catalog_env):
    result = runner.invoke(app, ["tags", "-c", "commission"])
    assert result.exit_code == 0, result.output
    assert "Mural" in result.output
    assert "Urban" in result.output


def test_show_missing_item(catalog_env):
    result = runner.invoke(app, ["show", "nope"])
    assert result.exit_code == 1
    assert "not found" in result.output


def test_image_resolve_only(catalog_env):
    result = runner.invoke(app, ["image", "https://x.supabase.co/a.png", "--width", "300", "--resolve-only"])
    assert result.exit_code == 0, result.output
    assert "https://x.supabase.co/a.png?width=300&quality=75&format=webp" in result.output


def test_admin_add(catalog_env):
    result = runner.invoke(
        app,
        ["admin", "add", "--title", "Fresh Canvas", "--tag", "Urban", "--password", "letmein"],
    )
    assert result.exit_code == 0, result.output
    assert "Portfolio item added successfully" in result.output

    stored = json.loads(catalog_env.read_text(encoding="utf-8"))["portfolio"]
    created = [row for row in stored if row["title"] == "Fresh Canvas"]
    assert len(created) == 1
    assert created[0]["tags"] == ["Urban"]
    assert created[0]["category"] == "inventory"


def test_admin_wrong_password(catalog_env):
    result = runner.invoke(app, ["admin", "delete", "inv-1", "--yes", "--password", "guess"])
    assert result.exit_code == 1
    assert "Incorrect password" in result.output
    stored = json.loads(catalog_env.read_text(encoding="utf-8"))["portfolio"]
    assert "inv-1" in [row["id"] for row in stored]


def test_admin_locked_without_password(catalog_env, monkeypatch):
    monkeypatch.setenv("FOLIO_ADMIN_PASSWORD", "")
    result = runner.invoke(app, ["admin", "timeline-delete", "t-1", "--password", "letmein"])
    assert result.exit_code == 1
    assert "not configured" in result.output


def test_doctor_json_backend(catalog_env):
    result = runner.invoke(app, ["doctor", "run"])
    assert result.exit_code == 0, result.output
    assert "Catalog read" in result.output
    assert "FAIL" not in result.output


def test_doctor_reports_broken_store(catalog_env):
    catalog_env.write_text("[]", encoding="utf-8")
    result = runner.invoke(app, ["doctor", "run"])
    assert result.exit_code == 1


class StalledRepository(FakeRepository):
    """Answers nothing for single-item and timeline reads."""

    async def fetch_item(self, item_id):
        await asyncio.sleep(60)

    async def fetch_timeline(self, item_id):
        await asyncio.sleep(60)


@pytest.fixture
def stalled_env(catalog_env, monkeypatch):
    monkeypatch.setenv("FOLIO_HTTP_TIMEOUT_SECONDS", "0.05")
    repository = StalledRepository(INVENTORY_RECORDS + COMMISSION_RECORDS, TIMELINE_RECORDS)
    monkeypatch.setattr("cli.main.build_repository", lambda settings=None: repository)
    return repository


@pytest.mark.parametrize(
    ("args", "message"),
    [
        (["edit", "inv-1", "--title", "Renamed"], "Failed to update portfolio item"),
        (["delete", "inv-1", "--yes"], "Failed to load portfolio details"),
        (["suggest-tags", "inv-1"], "Failed to load tags"),
    ],
)
def test_admin_timeouts_are_reported(stalled_env, args, message):
    command = ["admin", *args]
    if args[0] != "suggest-tags":
        command += ["--password", "letmein"]
    result = runner.invoke(app, command)

    assert result.exit_code == 1
    assert message in result.output
    assert "TimeoutError" in result.output
    assert stalled_env.count("update_item") == 0
    assert stalled_env.count("delete_item") == 0


def test_tours_lists_published_only(catalog_env):
    result = runner.invoke(app, ["tours"])
    assert result.exit_code == 0, result.output
    assert "tour-3" in result.output
    assert "tour-1" in result.output
    assert "tour-2" not in result.output


def test_tours_empty(catalog_env):
    seed_store(catalog_env, INVENTORY_RECORDS)
    result = runner.invoke(app, ["tours"])
    assert result.exit_code == 0, result.output
    assert "No tours available at the moment." in result.output


def test_tours_broken_store(catalog_env):
    catalog_env.write_text("{broken", encoding="utf-8")
    result = runner.invoke(app, ["tours"])
    assert result.exit_code == 1
    assert "Failed to load tours. Please try again later." in result.output


def test_admin_tours_show_drafts(catalog_env):
    result = runner.invoke(app, ["admin", "tours", "--password", "letmein"])
    assert result.exit_code == 0, result.output
    assert "tour-2" in result.output
    assert "draft" in result.output


def test_admin_tour_lifecycle(catalog_env):
    result = runner.invoke(
        app,
        ["admin", "tour-add", "--title", "Night Walk", "--price", "30", "--password", "letmein"],
    )
    assert result.exit_code == 0, result.output
    assert "Tour added successfully" in result.output

    stored = json.loads(catalog_env.read_text(encoding="utf-8"))["tours"]
    created = next(row for row in stored if row["title"] == "Night Walk")
    assert created["publish"] is False
    assert created["price"] == "30"

    result = runner.invoke(
        app,
        ["admin", "tour-edit", created["id"], "--publish", "--password", "letmein"],
    )
    assert result.exit_code == 0, result.output
    assert "Tour updated successfully" in result.output
    stored = json.loads(catalog_env.read_text(encoding="utf-8"))["tours"]
    assert next(row for row in stored if row["id"] == created["id"])["publish"] is True

    result = runner.invoke(
        app,
        ["admin", "tour-delete", created["id"], "--yes", "--password", "letmein"],
    )
    assert result.exit_code == 0, result.output
    stored = json.loads(catalog_env.read_text(encoding="utf-8"))["tours"]
    assert created["id"] not in [row["id"] for row in stored]
