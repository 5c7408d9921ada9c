"""Tests for the filter resolver."""

from datetime import date
from itertools import combinations

import pytest

from app.errors import ValidationError
from app.services.filters import (
    FilterState,
    QueryDescriptor,
    effective_code_filter,
    effective_neighborhood_filter,
    normalize_limit,
    parse_date,
    parse_int_list,
    resolve_filters,
)


class TestParsing:
    """Tests for boundary parameter parsing."""

    def test_parse_int_list(self):
        assert parse_int_list("110, 700,abc,,12") == [110, 700, 12]
        assert parse_int_list("") == []
        assert parse_int_list(None) == []

    def test_parse_int_list_uses_leading_integer(self):
        assert parse_int_list("11abc, 1.5,x7, -3") == [11, 1, -3]

    @pytest.mark.parametrize(
        ("value", "expected"),
        [(None, 1000), ("", 1000), ("abc", 1000), ("0", 1000), (-5, 1000), ("50", 50), (25, 25)],
    )
    def test_normalize_limit(self, value, expected):
        assert normalize_limit(value) == expected

    def test_parse_date(self):
        assert parse_date("2023-01-31") == date(2023, 1, 31)
        assert parse_date("  ") is None
        assert parse_date(None) is None

    def test_parse_date_malformed(self):
        with pytest.raises(ValidationError) as exc_info:
            parse_date("01/31/2023", "end_date")
        assert "end_date" in str(exc_info.value)


class TestEffectiveCodeFilter:
    """Tests for type selection -> code filter."""

    def test_no_types_is_unrestricted(self, code_catalog):
        assert effective_code_filter(set(), code_catalog) is None

    def test_union_of_codes_for_each_type(self, code_catalog):
        codes = effective_code_filter({"Theft", "Robbery"}, code_catalog)
        assert codes == frozenset({110, 120, 300})

    def test_unknown_type_matches_nothing(self, code_catalog):
        codes = effective_code_filter({"Jaywalking"}, code_catalog)
        assert codes == frozenset()


class TestEffectiveNeighborhoodFilter:
    """Tests for selection + viewport -> neighborhood filter."""

    def test_selection_narrowed_to_visible(self):
        assert effective_neighborhood_filter({11, 99}, {11, 14}) == frozenset({11})

    def test_no_selection_uses_visible(self):
        assert effective_neighborhood_filter(set(), {11, 14}) == frozenset({11, 14})

    def test_selection_outside_viewport_matches_nothing(self):
        assert effective_neighborhood_filter({99}, {11, 14}) == frozenset()

    def test_always_subset_of_visible(self):
        universe = [1, 2, 11, 14, 16, 99]
        for visible_size in range(len(universe) + 1):
            for visible in combinations(universe, visible_size):
                for selected_size in range(3):
                    for selected in combinations(universe, selected_size):
                        result = effective_neighborhood_filter(selected, visible)
                        assert result <= frozenset(visible)


class TestResolveFilters:
    """Tests for full filter state resolution."""

    def test_default_state(self, code_catalog):
        state = FilterState(visible_neighborhood_ids=frozenset({11, 14}))

        descriptor = resolve_filters(state, code_catalog)

        assert descriptor.codes is None
        assert descriptor.grids is None
        assert descriptor.neighborhoods == frozenset({11, 14})
        assert descriptor.limit == 1000
        assert not descriptor.matches_nothing

    def test_full_state(self, code_catalog):
        state = FilterState(
            selected_types={"Robbery"},
            selected_neighborhood_ids={11, 99},
            start_date=date(2023, 1, 1),
            end_date=date(2023, 1, 31),
            limit=50,
            visible_neighborhood_ids=frozenset({11, 14}),
        )

        descriptor = resolve_filters(state, code_catalog)

        assert descriptor == QueryDescriptor(
            codes=frozenset({300}),
            neighborhoods=frozenset({11}),
            start_date=date(2023, 1, 1),
            end_date=date(2023, 1, 31),
            limit=50,
        )

    def test_nothing_visible_matches_nothing(self, code_catalog):
        state = FilterState(visible_neighborhood_ids=frozenset())

        descriptor = resolve_filters(state, code_catalog)

        assert descriptor.neighborhoods == frozenset()
        assert descriptor.matches_nothing

    def test_descriptor_is_order_independent(self, code_catalog):
        first = resolve_filters(
            FilterState(selected_types={"Theft", "Robbery"}, visible_neighborhood_ids=frozenset({14, 11})),
            code_catalog,
        )
        second = resolve_filters(
            FilterState(selected_types={"Robbery", "Theft"}, visible_neighborhood_ids=frozenset({11, 14})),
            code_catalog,
        )
        assert first == second


class TestQueryDescriptorFromParams:
    """Tests for building descriptors from HTTP parameters."""

    def test_empty_lists_are_unrestricted(self):
        descriptor = QueryDescriptor.from_params(codes=[], grids=[], neighborhoods=[])

        assert descriptor.codes is None
        assert descriptor.grids is None
        assert descriptor.neighborhoods is None
        assert not descriptor.matches_nothing

    def test_duplicates_removed(self):
        descriptor = QueryDescriptor.from_params(codes=[110, 110, 700], limit="5")

        assert descriptor.codes == frozenset({110, 700})
        assert descriptor.limit == 5
