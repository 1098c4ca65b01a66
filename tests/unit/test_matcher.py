"""Tests for the local filter/sort engine."""

import pytest

from src.core.schemas import (
    ExperienceLevel,
    SearchField,
    SearchQuery,
    SortColumn,
    SortOrder,
    Status,
    Vacancy,
)
from src.pipeline.matcher import build_matcher, filter_vacancies, sort_vacancies


def _vacancy(
    title: str = "Go Dev",
    company: str = "Acme",
    *,
    description: str = "",
    keywords: list[str] | None = None,
    status: Status = Status.NEW,
    experience_level: ExperienceLevel = ExperienceLevel.UNSPECIFIED,
) -> Vacancy:
    return Vacancy(
        title=title,
        company=company,
        description=description,
        keywords=keywords or [],
        status=status,
        experience_level=experience_level,
    )


def _titles(vacancies: list[Vacancy]) -> list[str]:
    return [v.title for v in vacancies]


@pytest.fixture()
def snapshot() -> list[Vacancy]:
    return [
        _vacancy("Go Dev", "Acme", description="Backend services", keywords=["golang", "backend"],
                 status=Status.APPLIED, experience_level=ExperienceLevel.THREE_TO_SIX),
        _vacancy("QA", "Acme", description="Manual testing", keywords=["qa"],
                 status=Status.NEW, experience_level=ExperienceLevel.NONE),
        _vacancy("Frontend Developer", "Web Innovators", description="React and Go tooling",
                 keywords=["javascript", "react"], status=Status.OFFER),
        _vacancy("Data Engineer", "Globex", keywords=["python", "spark"],
                 status=Status.REJECTED, experience_level=ExperienceLevel.ONE_TO_THREE),
    ]


# ---------------------------------------------------------------------------
# Empty queries
# ---------------------------------------------------------------------------


class TestEmptyQuery:
    @pytest.mark.parametrize(
        "selector",
        [
            SearchField.EVERYWHERE,
            SearchField.TITLE,
            SearchField.COMPANY,
            SearchField.DESCRIPTION,
            SearchField.KEYWORDS,
        ],
    )
    def test_returns_snapshot_unchanged(self, snapshot: list[Vacancy], selector: SearchField) -> None:
        result = filter_vacancies(snapshot, SearchQuery(selector=selector, text=""))
        assert result == snapshot

    def test_no_matcher_built(self) -> None:
        assert build_matcher(SearchQuery(selector=SearchField.TITLE)) is None

    def test_result_is_a_new_list(self, snapshot: list[Vacancy]) -> None:
        result = filter_vacancies(snapshot, SearchQuery())
        result.pop()
        assert len(snapshot) == 4


# ---------------------------------------------------------------------------
# Free-text selectors
# ---------------------------------------------------------------------------


class TestFreeText:
    def test_company_scenario(self) -> None:
        snap = [_vacancy("Go Dev", "Acme"), _vacancy("QA", "Acme")]
        result = filter_vacancies(snap, SearchQuery(selector=SearchField.COMPANY, text="acme"))
        assert _titles(result) == ["Go Dev", "QA"]

    def test_title_substring_case_insensitive(self, snapshot: list[Vacancy]) -> None:
        result = filter_vacancies(snapshot, SearchQuery(selector=SearchField.TITLE, text="DEV"))
        assert _titles(result) == ["Go Dev", "Frontend Developer"]

    def test_description(self, snapshot: list[Vacancy]) -> None:
        result = filter_vacancies(snapshot, SearchQuery(selector=SearchField.DESCRIPTION, text="testing"))
        assert _titles(result) == ["QA"]

    def test_keywords_substring_of_any(self, snapshot: list[Vacancy]) -> None:
        result = filter_vacancies(snapshot, SearchQuery(selector=SearchField.KEYWORDS, text="script"))
        assert _titles(result) == ["Frontend Developer"]

    def test_keywords_do_not_match_title(self, snapshot: list[Vacancy]) -> None:
        result = filter_vacancies(snapshot, SearchQuery(selector=SearchField.KEYWORDS, text="engineer"))
        assert result == []

    def test_title_does_not_search_description(self, snapshot: list[Vacancy]) -> None:
        result = filter_vacancies(snapshot, SearchQuery(selector=SearchField.TITLE, text="react"))
        assert result == []


class TestEverywhere:
    def test_matches_title_and_description(self, snapshot: list[Vacancy]) -> None:
        result = filter_vacancies(snapshot, SearchQuery(text="go"))
        # "Go Dev" by title + keyword, "Frontend Developer" by description
        assert _titles(result) == ["Go Dev", "Frontend Developer"]

    def test_matches_keyword(self, snapshot: list[Vacancy]) -> None:
        result = filter_vacancies(snapshot, SearchQuery(text="spark"))
        assert _titles(result) == ["Data Engineer"]

    def test_matches_status_label(self, snapshot: list[Vacancy]) -> None:
        result = filter_vacancies(snapshot, SearchQuery(text="rejec"))
        assert _titles(result) == ["Data Engineer"]

    def test_matches_experience_label(self, snapshot: list[Vacancy]) -> None:
        result = filter_vacancies(snapshot, SearchQuery(text="no experience"))
        assert _titles(result) == ["QA"]

    def test_matches_company(self, snapshot: list[Vacancy]) -> None:
        result = filter_vacancies(snapshot, SearchQuery(text="GLOBEX"))
        assert _titles(result) == ["Data Engineer"]


# ---------------------------------------------------------------------------
# Enumerated selectors
# ---------------------------------------------------------------------------


class TestEnumerated:
    def test_status_exact_subset(self, snapshot: list[Vacancy]) -> None:
        for status in Status:
            result = filter_vacancies(
                snapshot, SearchQuery(selector=SearchField.STATUS, text=status.value.upper()),
            )
            assert result == [v for v in snapshot if v.status is status]

    def test_first_status_still_filters(self, snapshot: list[Vacancy]) -> None:
        result = filter_vacancies(snapshot, SearchQuery(selector=SearchField.STATUS, text="New"))
        assert _titles(result) == ["QA"]

    def test_first_experience_still_filters(self, snapshot: list[Vacancy]) -> None:
        result = filter_vacancies(
            snapshot, SearchQuery(selector=SearchField.EXPERIENCE, text="Unspecified"),
        )
        assert _titles(result) == ["Frontend Developer"]

    def test_experience_is_not_substring(self) -> None:
        snap = [_vacancy(experience_level=ExperienceLevel.ONE_TO_THREE)]
        matcher = build_matcher(SearchQuery(selector=SearchField.EXPERIENCE, text="3-6 years"))
        assert matcher is not None
        assert not matcher(snap[0])


# ---------------------------------------------------------------------------
# Sorting
# ---------------------------------------------------------------------------


class TestSort:
    def test_title_ascending_case_insensitive(self) -> None:
        items = [_vacancy("beta"), _vacancy("Alpha"), _vacancy("Gamma")]
        sort_vacancies(items, SortColumn.TITLE, SortOrder.ASCENDING)
        assert _titles(items) == ["Alpha", "beta", "Gamma"]

    def test_company_descending(self) -> None:
        items = [_vacancy("1", "acme"), _vacancy("2", "Globex"), _vacancy("3", "Initech")]
        sort_vacancies(items, SortColumn.COMPANY, SortOrder.DESCENDING)
        assert _titles(items) == ["3", "2", "1"]

    def test_status_column(self) -> None:
        items = [
            _vacancy("1", status=Status.OFFER),
            _vacancy("2", status=Status.APPLIED),
            _vacancy("3", status=Status.INTERVIEW),
        ]
        sort_vacancies(items, SortColumn.STATUS)
        assert _titles(items) == ["2", "3", "1"]

    def test_idempotent(self, snapshot: list[Vacancy]) -> None:
        once = list(snapshot)
        sort_vacancies(once, SortColumn.COMPANY, SortOrder.DESCENDING)
        twice = list(once)
        sort_vacancies(twice, SortColumn.COMPANY, SortOrder.DESCENDING)
        assert twice == once

    def test_ties_keep_original_order_both_directions(self) -> None:
        items = [
            _vacancy("b1", "Beta"),
            _vacancy("a1", "alpha"),
            _vacancy("b2", "BETA"),
            _vacancy("a2", "Alpha"),
        ]
        asc = list(items)
        sort_vacancies(asc, SortColumn.COMPANY, SortOrder.ASCENDING)
        assert _titles(asc) == ["a1", "a2", "b1", "b2"]

        desc = list(items)
        sort_vacancies(desc, SortColumn.COMPANY, SortOrder.DESCENDING)
        # Not the reverse of asc: equal companies keep snapshot order.
        assert _titles(desc) == ["b1", "b2", "a1", "a2"]

    def test_filter_then_sort(self, snapshot: list[Vacancy]) -> None:
        result = filter_vacancies(
            snapshot, SearchQuery(text="e"), SortColumn.TITLE, SortOrder.DESCENDING,
        )
        assert _titles(result) == sorted(_titles(result), key=str.lower, reverse=True)

    def test_deterministic(self, snapshot: list[Vacancy]) -> None:
        query = SearchQuery(selector=SearchField.COMPANY, text="a")
        first = filter_vacancies(snapshot, query, SortColumn.STATUS)
        second = filter_vacancies(snapshot, query, SortColumn.STATUS)
        assert first == second
