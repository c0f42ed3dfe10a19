"""Unit tests for discipline discovery."""

from __future__ import annotations

import pytest

from wbscalc.ingestion.disciplines import (
    DisciplineRegistry,
    discipline_columns,
    discover_disciplines,
    normalize_discipline,
)


def test_normalize_discipline():
    assert normalize_discipline("  piping ") == "PIPING"
    assert normalize_discipline("Hydro  -   Testing") == "HYDRO - TESTING"
    assert normalize_discipline(None) == ""


def test_discover_disciplines_uses_start_column_and_stride():
    header = ["CRAFT", None, "Piping", None, "steel", None, "Civil", None]

    assert discover_disciplines(header) == ["PIPING", "STEEL", "CIVIL"]


def test_discover_disciplines_skips_blanks_and_duplicates():
    header = ["CRAFT", None, "PIPING", None, None, None, "piping", None, "STEEL"]

    assert discover_disciplines(header) == ["PIPING", "STEEL"]


def test_discover_disciplines_empty_header():
    assert discover_disciplines([]) == []
    assert discover_disciplines(None) == []
    assert discover_disciplines(["CRAFT", None]) == []


def test_discover_disciplines_rejects_bad_stride():
    with pytest.raises(ValueError):
        discover_disciplines(["A", "B", "C"], stride=0)


def test_discipline_columns_keep_first_position():
    header = ["CRAFT", None, "PIPING", None, "STEEL", None, "PIPING", None]

    assert discipline_columns(header) == [("PIPING", 2), ("STEEL", 4)]


class TestDisciplineRegistry:
    def test_register_keeps_first_seen_order_and_source(self):
        registry = DisciplineRegistry()
        registry.register(["PIPING", "STEEL"], "DIRECTS")
        registry.register(["steel", "INSULATION"], "SUBS")

        assert registry.names == ["PIPING", "STEEL", "INSULATION"]
        assert registry.source_of("Steel") == "DIRECTS"
        assert registry.source_of("INSULATION") == "SUBS"
        assert "piping" in registry
        assert len(registry) == 3
