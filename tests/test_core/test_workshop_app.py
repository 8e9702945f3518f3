"""Tests for the application controller: routing, ticker, messages."""

import pytest

from workshop_jobs.core.app import WorkshopApp
from workshop_jobs.core.router import VIEW_DETAIL, VIEW_LIST
from workshop_jobs.store.base import JOBS
from workshop_jobs.utils.formatters import format_duration

MISSING_ID = "00000000-0000-0000-0000-000000000000"


@pytest.fixture
def app(qapp, store, clock):
    workshop = WorkshopApp(store, clock=clock, require_odometer=True)
    workshop.ticker._timer.setInterval(10)
    workshop.startup()
    yield workshop
    workshop.ticker.stop()


@pytest.fixture
def messages(app):
    seen = []
    app.message.connect(seen.append)
    return seen


@pytest.fixture
def job_id(app):
    assert app.create_job("Service", customer="Anna", plate="zh 1")
    job_id = app.job_list()[0].job.id
    assert app.save_job_meta(job_id, odometer_km=120500)
    return job_id


class TestStartup:

    def test_startup_loads_data(self, store, clock, qapp):
        store.insert(JOBS, {"title": "Existing"})
        workshop = WorkshopApp(store, clock=clock)
        assert workshop.startup()
        assert workshop.job_list()[0].job.title == "Existing"

    def test_startup_failure_reports(self, store, clock, qapp):
        store.failures.add(("select", JOBS))
        workshop = WorkshopApp(store, clock=clock)
        seen = []
        workshop.message.connect(seen.append)
        assert not workshop.startup()
        assert seen[0].startswith("Could not load data")
        assert workshop.state.route.view == VIEW_LIST

    def test_deep_link_opens_detail(self, store, clock, qapp):
        row = store.insert(JOBS, {"title": "Linked"})
        workshop = WorkshopApp(store, clock=clock,
                               initial_path=f"/job/{row['id']}")
        workshop.startup()
        assert workshop.state.current_job_id == row["id"]
        assert workshop.ticker.is_active
        workshop.ticker.stop()


class TestRouting:

    def test_unknown_job_falls_back_to_list(self, app):
        route = app.navigate_to(f"/job/{MISSING_ID}")
        assert route.view == VIEW_LIST
        assert app.state.current_job_id is None

    def test_detail_and_back(self, app, job_id):
        assert app.navigate_to(f"/job/{job_id}").view == VIEW_DETAIL
        assert app.state.current_job_id == job_id
        assert app.navigate_to("/").view == VIEW_LIST
        route = app.back()
        assert route.view == VIEW_DETAIL
        assert route.job_id == job_id

    def test_ticker_follows_route(self, app, job_id):
        app.navigate_to(f"/job/{job_id}")
        assert app.ticker.is_active
        assert app.ticker.job_id == job_id
        app.navigate_to("/")
        assert not app.ticker.is_active

    def test_route_signal(self, app, job_id, qtbot):
        with qtbot.waitSignal(app.route_changed) as blocker:
            app.navigate_to(f"/job/{job_id}")
        assert blocker.args[0].job_id == job_id

    def test_job_url(self, app, job_id):
        assert app.job_url(job_id).endswith(f"/job/{job_id}")


class TestActions:

    def test_create_reports(self, app, messages):
        assert app.create_job("Brakes")
        assert messages == ["Job created"]

    def test_validation_message(self, app, messages):
        assert not app.create_job("")
        assert messages == ["Please enter a job title"]

    def test_store_error_message(self, app, store, messages, job_id):
        store.failures.add(("update", JOBS))
        assert not app.toggle_important(job_id)
        assert messages[-1].startswith("Error: ")

    def test_timer_scenario(self, app, messages, clock, job_id, qtbot):
        app.navigate_to(f"/job/{job_id}")
        assert app.start_timer("Max", "Inspection")
        assert app.state.running_entry is not None
        assert not app.start_timer("Lea")
        assert messages[-1] == "A timer is already running for this job"

        clock.advance(minutes=90)
        with qtbot.waitSignal(app.elapsed_changed, timeout=1000) as blocker:
            pass
        assert blocker.args == ["01:30"]

        assert app.stop_timer()
        assert messages[-1] == "Timer stopped"
        detail = app.current_detail()
        assert format_duration(detail.total_minutes) == "1h 30min"
        assert detail.running is None

    def test_stop_without_timer_is_silent(self, app, job_id, messages):
        app.navigate_to(f"/job/{job_id}")
        assert not app.stop_timer()
        assert messages == []

    def test_close_job(self, app, messages, job_id):
        app.navigate_to(f"/job/{job_id}")
        assert app.close_job()
        assert messages[-1] == "Job closed"
        assert app.current_detail().read_only

    def test_close_without_odometer(self, app, messages):
        app.create_job("No reading")
        job_id = app.job_list()[0].job.id
        assert not app.close_job(job_id)
        assert "Odometer" in messages[-1]

    def test_delete_returns_to_list(self, app, messages, job_id):
        app.navigate_to(f"/job/{job_id}")
        assert app.delete_job()
        assert messages[-1] == "Job deleted"
        assert app.router.path == "/"
        assert app.state.route.view == VIEW_LIST
        assert app.job_list() == []

    def test_save_signature(self, app, messages, job_id):
        app.navigate_to(f"/job/{job_id}")
        app.signature.press(10, 10, 600, 400)
        app.signature.move(300, 200, 600, 400)
        app.signature.release()
        assert app.save_signature("Anna")
        assert messages[-1] == "Signature saved"
        assert app.signature_of(job_id).signer_name == "Anna"

    def test_data_changed_on_reload(self, app, job_id, qtbot):
        with qtbot.waitSignal(app.data_changed):
            app.save_checklist(job_id, {"test_drive": True})

    def test_export_report(self, app, job_id, tmp_path):
        path = app.export_report(job_id, str(tmp_path / "job.pdf"))
        with open(path, "rb") as fh:
            assert fh.read(4) == b"%PDF"
