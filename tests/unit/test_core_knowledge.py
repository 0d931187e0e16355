"""Unit tests for the core knowledge rule table."""

from __future__ import annotations

import pytest

from lexbrief.config.core_knowledge import (
    CORE_KNOWLEDGE,
    SELECTION_RULES,
    SelectionRule,
    keywords_any,
    role_is,
    select_core_knowledge,
)
from lexbrief.models.knowledge import UserRole


def _keys(query: str, role) -> list[str]:  # noqa: ANN001
    return [entry.key for entry in select_core_knowledge(query, role)]


class TestEntries:
    def test_all_rule_keys_have_entries(self) -> None:
        assert {rule.key for rule in SELECTION_RULES} <= set(CORE_KNOWLEDGE)

    def test_foreign_ownership_content(self) -> None:
        entry = CORE_KNOWLEDGE["foreign-ownership"]
        assert "Foreign nationals cannot directly own land in Thailand" in entry.content


class TestKeywordRules:
    @pytest.mark.parametrize(
        ("query", "expected"),
        [
            ("Can I get foreign ownership of a villa?", ["foreign-ownership"]),
            ("OWNERSHIP structures", ["foreign-ownership"]),
            ("Tell me about the bespoke trust", ["trust-ownership-model"]),
            ("What stamp duty applies?", ["tax-obligations"]),
            (
                "foreign trust and tax",
                ["foreign-ownership", "trust-ownership-model", "tax-obligations"],
            ),
            ("What is a chanote?", []),
        ],
    )
    def test_buyer_queries(self, query: str, expected: list[str]) -> None:
        assert _keys(query, UserRole.BUYER) == expected

    def test_substring_match(self) -> None:
        assert _keys("taxation of leases", UserRole.BUYER) == ["tax-obligations"]


class TestRoleRules:
    def test_accountant_always_gets_tax(self) -> None:
        assert _keys("What is a chanote?", UserRole.ACCOUNTANT) == ["tax-obligations"]

    def test_accountant_tax_not_duplicated(self) -> None:
        assert _keys("property tax", "ACCOUNTANT") == ["tax-obligations"]

    def test_lawyer_fallback_when_nothing_matched(self) -> None:
        assert _keys("Explain the land office process", UserRole.LAWYER) == [
            "foreign-ownership",
            "trust-ownership-model",
        ]

    def test_lawyer_fallback_suppressed_by_keyword_match(self) -> None:
        assert _keys("transfer tax rates", UserRole.LAWYER) == ["tax-obligations"]

    def test_string_roles_parsed(self) -> None:
        assert _keys("hello", "lawyer") == ["foreign-ownership", "trust-ownership-model"]

    def test_unknown_role_applies_no_role_rules(self) -> None:
        assert _keys("hello", "ADMIN") == []
        assert _keys("hello", None) == []


class TestCustomRules:
    def test_custom_table_and_entries(self) -> None:
        entries = {"visa": CORE_KNOWLEDGE["foreign-ownership"].model_copy(update={"key": "visa"})}
        rules = (
            SelectionRule("visa", keywords_any("visa")),
            SelectionRule("visa", role_is(UserRole.BUYER), fallback=True),
        )

        assert [e.key for e in select_core_knowledge("visa rules", None, rules, entries)] == ["visa"]
        assert [e.key for e in select_core_knowledge("x", UserRole.BUYER, rules, entries)] == ["visa"]
        assert select_core_knowledge("x", UserRole.LAWYER, rules, entries) == []

    def test_unknown_keys_ignored(self) -> None:
        rules = (SelectionRule("missing", keywords_any("x")),)
        assert select_core_knowledge("x", None, rules) == []
