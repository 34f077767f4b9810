"""Tests for feed and baseline notification rendering."""

from app.events.feed import (
    build_baseline_notifications,
    build_feed_entry,
    event_needs_managers,
)
from app.models.org_event import OrgEvent


def _event(event_type: str, payload: dict | None = None) -> OrgEvent:
    return OrgEvent(org_id="t1", event_type=event_type, payload=payload or {})


# ============================================================================
# Feed entries
# ============================================================================

class TestBuildFeedEntry:
    """Tests for build_feed_entry."""

    def test_overdue_with_empty_payload_uses_fallbacks(self):
        """Never renders None/null into feed text."""
        draft = build_feed_entry(_event("assignment_overdue"))

        assert draft is not None
        assert draft.message == "A staff member is overdue for a competency."
        assert "None" not in draft.message
        assert draft.href is None

    def test_assignment_messages(self):
        payload = {"staff_name": "J. Rivera", "competency_title": "Fall Prevention"}

        assert (
            build_feed_entry(_event("assignment_created", payload)).message
            == "J. Rivera was assigned Fall Prevention."
        )
        assert (
            build_feed_entry(_event("assignment_completed", payload)).message
            == "J. Rivera completed Fall Prevention."
        )
        assert (
            build_feed_entry(_event("assignment_overdue", payload)).message
            == "J. Rivera is overdue for Fall Prevention."
        )

    def test_empty_string_uses_fallback(self):
        draft = build_feed_entry(_event("assignment_created", {"staff_name": ""}))
        assert draft.message == "A staff member was assigned a competency."

    def test_policy_and_deficiency(self):
        policy = build_feed_entry(_event("policy_published", {"policy_title": "Hand Hygiene"}))
        deficiency = build_feed_entry(_event("deficiency_created"))

        assert policy.message == "Hand Hygiene was published."
        assert deficiency.message == "A deficiency was added."

    def test_href_from_payload_or_id(self):
        explicit = build_feed_entry(
            _event("assignment_created", {"href": "/x/1", "assignment_id": "a1"})
        )
        derived = build_feed_entry(_event("policy_published", {"policy_id": "p1"}))

        assert explicit.href == "/x/1"
        assert derived.href == "/dashboard/policies/p1"

    def test_unknown_type_has_no_entry(self):
        assert build_feed_entry(_event("drill_completed")) is None


# ============================================================================
# Baseline notifications
# ============================================================================

class TestBaselineNotifications:
    """Tests for build_baseline_notifications."""

    def test_created_notifies_staff_user(self):
        drafts = build_baseline_notifications(
            _event("assignment_created", {"staff_user_id": "u42", "competency_title": "CPR"})
        )

        assert len(drafts) == 1
        assert drafts[0].user_id == "u42"
        assert drafts[0].title == "New assignment"
        assert drafts[0].body == "You were assigned: CPR"
        assert drafts[0].severity == "info"

    def test_created_without_competency(self):
        drafts = build_baseline_notifications(
            _event("assignment_created", {"staff_user_id": "u42"})
        )
        assert drafts[0].body == "You received a new assignment."

    def test_overdue_notifies_staff_and_managers(self):
        event = _event(
            "assignment_overdue",
            {
                "staff_user_id": "u42",
                "staff_name": "J. Rivera",
                "competency_title": "Fall Prevention",
            },
        )
        drafts = build_baseline_notifications(event, ["m1", "m2"])

        assert [d.user_id for d in drafts] == ["u42", "m1", "m2"]
        assert all(d.severity == "warning" for d in drafts)
        assert drafts[0].title == "Overdue assignment"
        assert drafts[0].body == "Overdue: Fall Prevention"
        assert drafts[1].title == "Staff overdue"
        assert drafts[1].body == "J. Rivera is overdue for Fall Prevention."

    def test_overdue_manager_fallback_body(self):
        drafts = build_baseline_notifications(
            _event("assignment_overdue", {"staff_user_id": "u42"}), ["m1"]
        )

        assert drafts[0].body == "You have an overdue assignment."
        assert drafts[1].body == "A staff member has an overdue assignment."

    def test_requires_staff_user_id(self):
        event = _event("assignment_overdue", {"staff_name": "J. Rivera"})

        assert build_baseline_notifications(event, ["m1"]) == []
        assert not event_needs_managers(event)

    def test_other_types_produce_none(self):
        event = _event("policy_published", {"staff_user_id": "u42"})
        assert build_baseline_notifications(event, ["m1"]) == []
