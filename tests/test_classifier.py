"""
Tests for the keyword classifier.
"""

import pytest

from request_desk.config import Category, Priority
from request_desk.requests.domain import apply_overrides, classify
from request_desk.requests.domain.classifier import (
    ASSIGNED_UNITS,
    categorize,
    prioritize,
    response_for,
)


# ---------------------------------------------------------------------------
# Category
# ---------------------------------------------------------------------------

class TestCategorize:
    @pytest.mark.parametrize(
        "title, description, expected",
        [
            ("Printer not working", "Paper jam on floor 3", Category.IT),
            ("Leaking roof", "Water is dripping in the meeting room", Category.FACILITIES),
            ("Broken chair", "The chair in my cubicle", Category.EQUIPMENT),
            ("Hazard near stairs", "Loose handrail", Category.SAFETY),
            ("Vacation request", "Need approval for annual leave", Category.HR),
            ("Lunch menu", "Please add vegan options", Category.OTHER),
        ],
    )
    def test_first_matching_rule(self, title, description, expected):
        assert classify(title, description).category == expected

    def test_earlier_rule_wins(self):
        # Mentions both a safety keyword and an IT keyword
        assert categorize("fire alarm in the computer lab") == Category.IT

    def test_substring_matching_is_unanchored(self):
        # "with" contains "it"
        assert categorize("window with a crack") == Category.IT

    def test_case_insensitive(self):
        assert classify("PRINTER", "").category == Category.IT


# ---------------------------------------------------------------------------
# Priority
# ---------------------------------------------------------------------------

class TestPrioritize:
    def test_critical_keyword(self):
        assert prioritize("printer not working") == Priority.CRITICAL

    def test_high_keyword(self):
        assert classify("Projector needed", "For the training session").priority == Priority.HIGH

    def test_low_keyword(self):
        assert classify("Minor typo on signage", "fix when possible").priority == Priority.LOW

    def test_critical_checked_before_low(self):
        assert prioritize("urgent but minor") == Priority.CRITICAL

    def test_down_matches_inside_download(self):
        assert prioritize("cannot download the file") == Priority.CRITICAL

    def test_default_is_medium(self):
        assert prioritize("please add vegan options") == Priority.MEDIUM


# ---------------------------------------------------------------------------
# Routing and response
# ---------------------------------------------------------------------------

class TestClassify:
    def test_empty_text_falls_back(self):
        result = classify("", "")
        assert result.category == Category.OTHER
        assert result.priority == Priority.MEDIUM
        assert result.assigned_unit == "General Support"

    def test_none_is_treated_as_empty(self):
        assert classify(None, None).category == Category.OTHER

    def test_unit_follows_category(self):
        result = classify("Printer not working", "")
        assert result.assigned_unit == "IT Division"

    def test_every_category_has_a_unit(self):
        assert set(ASSIGNED_UNITS) == set(Category)

    def test_response_interpolates_title(self):
        result = classify("Leaking roof", "in the meeting room")
        assert '"Leaking roof"' in result.generated_response
        assert "Facilities and Maintenance Division" in result.generated_response

    def test_response_for_other(self):
        text = response_for("Lunch menu", Category.OTHER)
        assert text.startswith('Your request regarding "Lunch menu" has been received.')

    def test_deterministic(self):
        assert classify("Broken chair", "desk too") == classify("Broken chair", "desk too")

    @pytest.mark.parametrize(
        "title, description, category, priority",
        [
            ("laptop broken", "my laptop won't turn on", Category.IT, Priority.CRITICAL),
            ("fire alarm and a slow computer", "...", Category.IT, Priority.CRITICAL),
        ],
    )
    def test_documented_examples(self, title, description, category, priority):
        result = classify(title, description)
        assert result.category == category
        assert result.priority == priority
        assert result.assigned_unit == "IT Division"

    def test_broken_alone_is_critical(self):
        assert prioritize("broken") == Priority.CRITICAL


# ---------------------------------------------------------------------------
# Overrides
# ---------------------------------------------------------------------------

class TestApplyOverrides:
    def setup_method(self):
        self.title = "Printer not working"
        self.auto = classify(self.title, "")

    def test_no_overrides_returns_classification(self):
        assert apply_overrides(self.auto) is self.auto

    def test_category_override_keeps_classifier_routing(self):
        result = apply_overrides(self.auto, category=Category.OTHER)
        assert result.category == Category.OTHER
        assert result.priority == Priority.CRITICAL
        assert result.assigned_unit == "IT Division"
        assert result.generated_response == self.auto.generated_response

    def test_priority_override_keeps_category(self):
        result = apply_overrides(self.auto, priority="Low")
        assert result.priority == Priority.LOW
        assert result.category == Category.IT
        assert result.assigned_unit == "IT Division"

    def test_override_accepts_strings(self):
        result = apply_overrides(self.auto, category="HR and Staff Matters")
        assert result.category == Category.HR
        assert "IT and Technical Support Division" in result.generated_response
