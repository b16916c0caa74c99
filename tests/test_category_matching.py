"""Tests for fuzzy category matching."""

import pytest

from mappers.category_matching import (
    calculate_category_match_score,
    category_tokens,
    find_matching_category,
    normalize_category,
)


def test_normalize_category_expands_ampersand_and_abbreviations():
    assert normalize_category("Mgmt & Support Staff (Dept. A)") == "management and support staff department a"
    assert category_tokens("All Ops in SG") == {"all", "ops"}


def test_ampersand_spelling_does_not_matter():
    match = calculate_category_match_score("Management & Support Staff", "Management and Support Staff")
    assert match.is_match is True
    assert match.score == 1.0
    assert match.method == "jaccard"


def test_unrelated_categories_do_not_match():
    match = calculate_category_match_score("Sales Associates", "Head Office Staff")
    assert match.is_match is False
    assert match.score == 0.0


def test_abbreviated_template_label_matches():
    assert calculate_category_match_score("Mgmt Staff", "Management Staff").is_match is True


def test_prefix_containment_fallback():
    match = calculate_category_match_score("Executives and Managers in Singapore Head Office", "Executives and Managers")
    assert match.is_match is True
    assert match.method == "prefix"
    assert match.score == 0.5


def test_leading_words_fallback():
    match = calculate_category_match_score("Ops Crew A Night Shift", "Ops Crew A Day Team")
    assert match.is_match is True
    assert match.method == "leading_words"


@pytest.mark.parametrize("left,right", [("", "Staff"), ("Staff", ""), ("  ", "---")])
def test_empty_names_never_match(left, right):
    assert calculate_category_match_score(left, right).is_match is False


def test_find_matching_category_returns_first_match_in_order():
    candidates = [
        {"category": "Sales Associates", "plan": "Plan 3"},
        {"category": "Management Staff", "plan": "Plan 1"},
        {"category": "Mgmt Staff", "plan": "Plan 2"},
    ]
    found = find_matching_category("Management Staff", candidates, key=lambda item: item["category"])

    assert found is not None
    candidate, match = found
    assert candidate["plan"] == "Plan 1"
    assert match.is_match is True

    assert find_matching_category("Drivers", candidates, key=lambda item: item["category"]) is None
