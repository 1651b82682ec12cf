import argparse
import sys

import pytest

from business_locator.etl import enhancer
from business_locator.jobs import enhance_locations
from business_locator.models import Business, Coordinates, GeocodingResult


class DummySettings:
    def __init__(self, delay=1.2):
        self.database_url = "postgres://"
        self.worker_port = 9000
        self.enhance_item_delay = delay


class DummyClient:
    def geocode_reference(self, deep_link):
        if "ll=" in deep_link:
            return GeocodingResult(Coordinates(32.0853, 34.7818), "Tel Aviv", "high")
        return None


@pytest.fixture
def job_env(monkeypatch):
    saved = []
    sleeps = []
    monkeypatch.setattr(enhance_locations, "get_settings", lambda: DummySettings())
    monkeypatch.setattr(enhance_locations, "init_pool", lambda: None)
    monkeypatch.setattr(enhance_locations, "get_geocoding_client", lambda: DummyClient())
    monkeypatch.setattr(
        enhance_locations, "save_location_record", lambda business_id, record: saved.append((business_id, record))
    )
    monkeypatch.setattr(enhancer.time, "sleep", lambda seconds: sleeps.append(seconds))
    return {"saved": saved, "sleeps": sleeps}


def test_run_enhance_job_saves_resolved_businesses(monkeypatch, job_env):
    businesses = [
        Business(id="1", name="Cafe", deep_link="https://waze.com/ul?ll=32.0853,34.7818"),
        Business(id="2", name="Plumber", service_areas=["חיפה"]),
        Business(id="3", name="Ghost"),
    ]
    seen = {}

    def fake_fetch(active_only=True):
        seen["active_only"] = active_only
        return businesses

    monkeypatch.setattr(enhance_locations, "fetch_businesses", fake_fetch)

    summary = enhance_locations.run_enhance_job(delay=0.5)

    assert seen["active_only"] is False
    assert summary.to_dict() == {"success": 2, "failed": 0, "skipped": 1, "total": 3}
    assert [business_id for business_id, _ in job_env["saved"]] == ["1", "2"]
    assert job_env["saved"][0][1].location_type == "specific"
    assert job_env["sleeps"] == [0.5, 0.5]


def test_run_enhance_job_uses_configured_delay(monkeypatch, job_env):
    monkeypatch.setattr(
        enhance_locations,
        "fetch_businesses",
        lambda active_only=True: [Business(id=str(i), name=str(i)) for i in range(2)],
    )

    enhance_locations.run_enhance_job()

    assert job_env["sleeps"] == [1.2]


def test_enhance_single_business(monkeypatch, job_env):
    monkeypatch.setattr(
        enhance_locations, "fetch_business", lambda business_id: Business(id=business_id, name="Plumber", service_areas=["ירושלים"])
    )

    record = enhance_locations.enhance_single_business("7")

    assert record.location_type == "service_areas"
    assert job_env["saved"][0][0] == "7"


def test_enhance_single_business_unresolved_is_not_saved(monkeypatch, job_env):
    monkeypatch.setattr(enhance_locations, "fetch_business", lambda business_id: Business(id=business_id, name="Ghost"))

    assert enhance_locations.enhance_single_business("8") is None
    assert job_env["saved"] == []


def test_enhance_single_business_missing(monkeypatch, job_env):
    monkeypatch.setattr(enhance_locations, "fetch_business", lambda business_id: None)

    with pytest.raises(LookupError):
        enhance_locations.enhance_single_business("404")


def test_build_parser_defaults(monkeypatch):
    monkeypatch.setattr(enhance_locations, "get_settings", lambda: DummySettings(delay=2.5))
    parser = enhance_locations.build_parser()
    args = parser.parse_args([])
    assert isinstance(parser, argparse.ArgumentParser)
    assert args.business_id is None
    assert args.delay == 2.5

    args = parser.parse_args(["--business-id", "abc", "--delay", "0"])
    assert args.business_id == "abc"
    assert args.delay == 0


def test_main_exit_codes(monkeypatch, job_env):
    monkeypatch.setattr(enhance_locations, "fetch_business", lambda business_id: None)
    monkeypatch.setattr(sys, "argv", ["enhance_locations", "--business-id", "missing"])
    with pytest.raises(SystemExit) as excinfo:
        enhance_locations.main()
    assert excinfo.value.code == 2

    monkeypatch.setattr(enhance_locations, "fetch_business", lambda business_id: Business(id=business_id, name="Ghost"))
    monkeypatch.setattr(sys, "argv", ["enhance_locations", "--business-id", "ghost"])
    with pytest.raises(SystemExit) as excinfo:
        enhance_locations.main()
    assert excinfo.value.code == 1


def test_main_batch_failures_exit_nonzero(monkeypatch, job_env):
    def broken_save(business_id, record):
        raise RuntimeError("db down")

    monkeypatch.setattr(enhance_locations, "save_location_record", broken_save)
    monkeypatch.setattr(
        enhance_locations,
        "fetch_businesses",
        lambda active_only=True: [Business(id="1", name="Plumber", service_areas=["חיפה"])],
    )
    monkeypatch.setattr(sys, "argv", ["enhance_locations"])

    with pytest.raises(SystemExit) as excinfo:
        enhance_locations.main()
    assert excinfo.value.code == 1
