"""Tests for canonical-project deduplication."""

import itertools
import random

import pytest

from wipsync.projects.dedupe import (
    ExclusionRules,
    deduplicate_projects,
    filter_lines,
    select_customer,
)
from wipsync.projects.records import ProjectLine


def _line(customer="X", number="1", name="Foo", status="In Progress", hours=10.0,
          sales=100.0, cost=50.0, estimator="Pat Lee", **kw):
    return ProjectLine(customer=customer, project_number=number, project_name=name,
                       status=status, hours=hours, sales=sales, cost=cost,
                       estimator=estimator, **kw)


def _summary(projects):
    return [p.to_dict() for p in projects]


# ---------------------------------------------------------------------------
# Exclusions
# ---------------------------------------------------------------------------


class TestExclusionRules:
    def test_from_config(self):
        rules = ExclusionRules.from_config()
        assert "sop inc" in rules.customer_substrings
        assert "pmc shop time" in rules.project_names
        assert rules.require_estimator is True

    @pytest.mark.parametrize("kwargs", [
        {"archived": True},
        {"customer": "SOP Inc."},
        {"name": "PMC Operations"},
        {"name": "pmc test project"},
        {"name": "Alexander Drive Addition Latest"},
        {"name": "Office Sandbox 2"},
        {"name": "Raymond King Residence"},
        {"estimator": ""},
        {"estimator": "   "},
        {"estimator": "Todd Gilmore"},
        {"number": "701 Poplar Church Rd"},
    ])
    def test_excluded(self, kwargs):
        assert ExclusionRules.from_config().excludes(_line(**kwargs))

    def test_regular_line_kept(self):
        assert not ExclusionRules.from_config().excludes(_line())

    def test_name_equality_is_exact(self):
        assert not ExclusionRules.from_config().excludes(_line(name="PMC Operations Annex"))

    def test_custom_rules(self):
        rules = ExclusionRules(customer_substrings=("acme",), require_estimator=False)
        kept = filter_lines([_line(customer="Acme Co"), _line(estimator="")], rules)
        assert len(kept) == 1
        assert kept[0].estimator == ""


# ---------------------------------------------------------------------------
# Customer selection
# ---------------------------------------------------------------------------


class TestSelectCustomer:
    def test_priority_status_wins(self):
        groups = {
            "Y": [_line(customer="Y", status="Bid Submitted", date_created="2026-05-01")],
            "X": [_line(customer="X", status="In Progress", date_created="2024-01-01")],
        }
        assert select_customer(groups) == "X"

    def test_first_priority_customer_by_name(self):
        groups = {
            "Zed": [_line(customer="Zed", status="Accepted")],
            "Bravo": [_line(customer="Bravo", status="Complete")],
        }
        assert select_customer(groups) == "Bravo"

    def test_recency_when_no_priority(self):
        groups = {
            "Alpha": [_line(customer="Alpha", status="Estimating", date_created="2025-01-01")],
            "Beta": [_line(customer="Beta", status="Lost", date_created="2025-06-01"),
                     _line(customer="Beta", status="Lost", date_created=None)],
        }
        assert select_customer(groups) == "Beta"

    def test_recency_tie_is_alphabetical(self):
        groups = {
            "Mike": [_line(customer="Mike", status="Lost", date_created="2025-06-01")],
            "Kilo": [_line(customer="Kilo", status="Lost", date_created="2025-06-01")],
        }
        assert select_customer(groups) == "Kilo"

    def test_undated_groups_fall_back_to_name(self):
        groups = {
            "Mike": [_line(customer="Mike", status="Lost")],
            "Kilo": [_line(customer="Kilo", status="Lost", date_created="garbage")],
        }
        assert select_customer(groups) == "Kilo"

    def test_mixed_date_shapes(self):
        groups = {
            "Epoch": [_line(customer="Epoch", status="Lost", date_created=1767225600000)],  # 2026-01-01
            "Iso": [_line(customer="Iso", status="Lost", date_created="2025-12-31T23:00:00Z")],
            "Stamp": [_line(customer="Stamp", status="Lost",
                            date_created={"seconds": 1735689600, "nanoseconds": 0})],  # 2025-01-01
        }
        assert select_customer(groups) == "Epoch"


# ---------------------------------------------------------------------------
# Full deduplication
# ---------------------------------------------------------------------------


class TestDeduplicateProjects:
    def test_contested_identifier_picks_priority_customer(self):
        x = _line(customer="X", status="In Progress", hours=40)
        y = _line(customer="Y", status="Bid Submitted", hours=99)
        for order in ([x, y], [y, x]):
            result = deduplicate_projects(order)
            assert len(result) == 1
            assert result[0].customer == "X"
            assert result[0].hours == 40
            assert result[0].job_key == "X~1~Foo"

    def test_line_items_summed(self):
        lines = [
            _line(hours=10, sales=100, cost=60, cost_type="Labor"),
            _line(hours=5, sales=50, cost=20, cost_type="Material"),
            _line(hours=0, sales=25, cost=5, cost_type="Subcontract"),
        ]
        (project,) = deduplicate_projects(lines)
        assert project.hours == 15
        assert project.sales == 175
        assert project.cost == 85
        assert project.line_count == 3

    def test_identifier_falls_back_to_name(self):
        lines = [_line(customer="X", number="", name="Shop"),
                 _line(customer="Y", number="", name="Shop", status="Lost")]
        (project,) = deduplicate_projects(lines)
        assert project.customer == "X"

    def test_distinct_names_under_one_number(self):
        lines = [_line(name="Foo"), _line(name="Foo Phase 2")]
        result = deduplicate_projects(lines)
        assert [p.project_name for p in result] == ["Foo", "Foo Phase 2"]

    def test_status_filter(self):
        lines = [_line(number="1"), _line(number="2", status="Lost")]
        result = deduplicate_projects(lines, statuses=["Accepted", "In Progress"])
        assert [p.project_number for p in result] == ["1"]

    def test_excluded_lines_dropped(self):
        lines = [_line(), _line(number="2", estimator="todd gilmore")]
        assert len(deduplicate_projects(lines)) == 1

    def test_representative_display_fields(self):
        lines = [_line(scope_of_work="Piping"), _line(scope_of_work="Electrical")]
        (project,) = deduplicate_projects(lines)
        assert project.scope_of_work == "Electrical"

    def test_shuffled_input_is_stable(self):
        lines = [
            _line(customer="X", status="In Progress", hours=12.1, sales=1000.3),
            _line(customer="X", status="Accepted", hours=7.7, sales=55.5, cost_type="Material"),
            _line(customer="Y", status="Bid Submitted", hours=99),
            _line(customer="W", status="Complete", hours=3, date_created="2026-01-01"),
            _line(customer="P", number="2", name="Bar", status="Lost", date_created="2025-01-01"),
            _line(customer="Q", number="2", name="Bar", status="Lost", date_created="2025-03-01"),
            _line(customer="Q", number="2", name="Bar", status="Estimating", hours=0.1),
            _line(customer="R", number="3", name="Baz", status="Estimating"),
            _line(customer="S", number="3", name="Baz", status="Estimating"),
        ]
        expected = _summary(deduplicate_projects(lines))
        rng = random.Random(7)
        for _ in range(25):
            shuffled = lines[:]
            rng.shuffle(shuffled)
            assert _summary(deduplicate_projects(shuffled)) == expected

        by_number = {p["project_number"]: p for p in expected}
        assert by_number["1"]["customer"] == "W"
        assert by_number["2"]["customer"] == "Q"
        assert by_number["3"]["customer"] == "R"

    def test_every_permutation_of_small_set(self):
        lines = [_line(customer="X"), _line(customer="Y", status="Bid Submitted"),
                 _line(customer="X", hours=2.5)]
        results = {
            tuple(map(str, _summary(deduplicate_projects(list(p)))))
            for p in itertools.permutations(lines)
        }
        assert len(results) == 1
