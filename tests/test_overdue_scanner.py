"""Tests for the overdue assignment scanner and the scan runner."""

import signal
from datetime import date
from unittest.mock import Mock, patch

from sqlmodel import Session, select

from app.events.emitter import EventEmitter
from app.models import ActivityFeedEntry, Notification, OrgEvent
from app.workers.base import WorkerStatus
from app.workers.overdue_scanner import OverdueScanner
from app.workers.runner import ScanRunner

TODAY = date(2026, 10, 16)


def _scanner(**kwargs) -> OverdueScanner:
    return OverdueScanner(emitter=EventEmitter(), **kwargs)


# ============================================================================
# Selection
# ============================================================================

class TestFetchPending:
    """Which assignments count as overdue."""

    def test_due_before_today_and_not_completed(self, db_session: Session, make_assignment):
        overdue = make_assignment(due_date=date(2026, 10, 15))
        make_assignment(due_date=TODAY)  # due today is not overdue
        make_assignment(due_date=date(2026, 10, 20))
        make_assignment(due_date=date(2026, 9, 1), status="completed")
        make_assignment(due_date=None)
        in_progress = make_assignment(due_date=date(2026, 10, 1), status="in_progress")

        scanner = _scanner()
        scanner._today = TODAY
        items = scanner.fetch_pending(db_session)

        assert {i.assignment_id for i in items} == {str(overdue.id), str(in_progress.id)}

    def test_resolves_staff(self, db_session: Session, make_assignment, make_staff):
        make_staff(id="staff-1", full_name="J. Rivera", auth_user_id="u42")
        make_assignment(staff_id="staff-1", due_date=date(2026, 10, 1))
        make_assignment(staff_id="ghost", due_date=date(2026, 10, 2))

        scanner = _scanner()
        scanner._today = TODAY
        items = {i.staff_id: i for i in scanner.fetch_pending(db_session)}

        assert items["staff-1"].staff_name == "J. Rivera"
        assert items["staff-1"].staff_user_id == "u42"
        assert items["ghost"].staff_name is None
        assert items["ghost"].staff_user_id is None


# ============================================================================
# Scan
# ============================================================================

class TestScan:
    """Tests for OverdueScanner.scan."""

    def test_emits_and_processes(self, db_session: Session, make_assignment, make_staff):
        make_staff(id="staff-1", full_name="J. Rivera", auth_user_id="u42")
        make_staff(auth_user_id="m1", is_manager=True)
        assignment = make_assignment(staff_id="staff-1", due_date=date(2026, 10, 1))

        result = _scanner().scan(db_session, today=TODAY)

        assert result.to_dict() == {
            "ok": True,
            "overdue_found": 1,
            "emitted": 1,
            "processed": 1,
            "deduplicated": 0,
        }
        event = db_session.exec(select(OrgEvent)).one()
        assert event.event_type == "assignment_overdue"
        assert event.entity_type == "assignment"
        assert event.entity_id == str(assignment.id)
        assert event.actor_user_id is None
        assert event.payload["staff_user_id"] == "u42"
        assert event.payload["due_date"] == "2026-10-01"
        assert event.payload["href"] == f"/dashboard/assignments/{assignment.id}"

        feed = db_session.exec(select(ActivityFeedEntry)).one()
        assert feed.message == "J. Rivera is overdue for a competency."
        recipients = sorted(n.user_id for n in db_session.exec(select(Notification)).all())
        assert recipients == ["m1", "u42"]

    def test_failure_is_isolated(self, db_session: Session, make_assignment):
        """A failing emit never stops the scan."""
        make_assignment(org_id="", due_date=date(2026, 9, 1))
        good = make_assignment(org_id="t1", due_date=date(2026, 10, 1))

        result = _scanner().scan(db_session, today=TODAY)

        assert result.overdue_found == 2
        assert result.emitted == 1
        assert result.processed == 1
        assert len(result.errors) == 1
        event = db_session.exec(select(OrgEvent)).one()
        assert event.entity_id == str(good.id)
        assert db_session.exec(select(ActivityFeedEntry)).one().event_id == event.id

    def test_no_overdue(self, db_session: Session, make_assignment):
        make_assignment(due_date=date(2026, 12, 1))

        result = _scanner().scan(db_session, today=TODAY)

        assert result.overdue_found == 0
        assert result.emitted == 0

    def test_repeats_without_dedup_window(self, db_session: Session, make_assignment):
        make_assignment(due_date=date(2026, 10, 1))
        scanner = _scanner(dedup_window_hours=0)

        scanner.scan(db_session, today=TODAY)
        second = scanner.scan(db_session, today=TODAY)

        assert second.emitted == 1
        assert len(db_session.exec(select(OrgEvent)).all()) == 2

    def test_dedup_window_skips_recent(self, db_session: Session, make_assignment):
        make_assignment(due_date=date(2026, 10, 1))
        scanner = _scanner(dedup_window_hours=24)

        scanner.scan(db_session, today=TODAY)
        second = scanner.scan(db_session, today=TODAY)

        assert second.overdue_found == 1
        assert second.emitted == 0
        assert second.deduplicated == 1
        assert len(db_session.exec(select(OrgEvent)).all()) == 1

    def test_processing_failure_still_counts_as_emitted(self, db_session: Session, make_assignment):
        make_assignment(due_date=date(2026, 10, 1))
        emitter = EventEmitter()
        emitter.processor = Mock()
        emitter.processor.process.side_effect = RuntimeError("down")

        result = OverdueScanner(emitter=emitter).scan(db_session, today=TODAY)

        assert result.emitted == 1
        assert result.processed == 0


# ============================================================================
# Runner
# ============================================================================

class TestScanRunner:
    """Tests for ScanRunner."""

    def test_run_once_reports_scan(self, db_session: Session, make_assignment):
        make_assignment(due_date=date(2000, 1, 1))
        runner = ScanRunner(scanner=_scanner())

        result = runner.run_once(session=db_session)

        assert result.error is None
        assert result.scan.emitted == 1
        assert result.to_dict()["scan"]["overdue_found"] == 1

    def test_run_once_captures_failure(self, db_session: Session):
        scanner = _scanner()
        with patch.object(scanner, "fetch_pending", side_effect=RuntimeError("db down")):
            result = ScanRunner(scanner=scanner).run_once(session=db_session)

        assert result.scan is None
        assert "db down" in result.error

    def test_run_loop_respects_max_iterations(self):
        runner = ScanRunner(scanner=Mock())
        with patch.object(runner, "run_once") as run_once, \
                patch.object(runner, "_setup_signal_handlers"), \
                patch("app.workers.runner.time.sleep"):
            runner.run_loop(interval_seconds=1, max_iterations=3)

        assert run_once.call_count == 3

    def test_signal_requests_shutdown(self):
        """SIGTERM during a scan stops the loop after that scan."""
        runner = ScanRunner(scanner=Mock())
        with patch("app.workers.runner.signal.signal") as register_signal, \
                patch("app.workers.runner.time.sleep") as sleep:
            def scan_then_terminate():
                handler = register_signal.call_args_list[-1].args[1]
                handler(signal.SIGTERM, None)

            with patch.object(runner, "run_once", side_effect=scan_then_terminate) as run_once:
                runner.run_loop(interval_seconds=1)

        assert run_once.call_count == 1
        sleep.assert_not_called()

    def test_request_shutdown_before_loop(self):
        runner = ScanRunner(scanner=Mock())
        runner.request_shutdown()
        with patch.object(runner, "run_once") as run_once, \
                patch.object(runner, "_setup_signal_handlers"):
            runner.run_loop(interval_seconds=1)

        run_once.assert_not_called()

    def test_worker_status(self, db_session: Session, make_assignment):
        make_assignment(org_id="", due_date=date(2026, 9, 1))
        make_assignment(due_date=date(2026, 10, 1))
        scanner = _scanner()
        scanner._today = TODAY

        result = scanner.run(db_session)

        assert result.status == WorkerStatus.PARTIAL
        assert result.failed_count == 1
