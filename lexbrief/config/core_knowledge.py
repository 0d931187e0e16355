"""Static core knowledge and the rules that select it for a query.

Core knowledge is a small set of curated entries that are always available,
even when no embedding provider is configured.  Entries are never ranked by
vectors; a declarative rule table decides which ones accompany a query.

Each :class:`SelectionRule` names an entry key and a predicate over the
lower-cased query and the caller's role.  Rules marked ``fallback`` only run
when no primary rule selected anything.  The selection keeps rule order and
drops duplicates, so an entry appears at most once in the composed context.

All functions here are pure (no I/O).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from lexbrief.models.knowledge import CoreKnowledgeEntry, UserRole

# ═════════════════════════════════════════════════════════════════════════
# 1. ENTRIES
# ═════════════════════════════════════════════════════════════════════════

CORE_KNOWLEDGE: dict[str, CoreKnowledgeEntry] = {
    "foreign-ownership": CoreKnowledgeEntry(
        key="foreign-ownership",
        title="Foreign Property Ownership in Thailand",
        content="""\
Foreign nationals face specific restrictions when owning property in Thailand:

LAND OWNERSHIP:
- Foreign nationals cannot directly own land in Thailand
- Maximum 49% foreign ownership in any land holding company
- Strict regulations on nominee arrangements

CONDOMINIUM OWNERSHIP:
- Foreigners can own up to 49% of units in a condominium project
- Must transfer funds from abroad with proper documentation
- Need Foreign Exchange Transaction Form (FETF)

COMPANY STRUCTURE:
- Some buyers use Thai limited companies to hold land
- Requires majority Thai ownership (51%)
- Must have legitimate business purpose
- Regular compliance requirements

LEGAL REQUIREMENTS:
- All funds must be transferred from abroad
- Proper visa and documentation required
- Due diligence on property title essential
- Use qualified Thai lawyer for transactions""",
        category="foreign-ownership",
        tags=["foreign-buyers", "land-ownership", "condominiums", "company-structure"],
    ),
    "trust-ownership-model": CoreKnowledgeEntry(
        key="trust-ownership-model",
        title="Bespoke Trust Property Ownership Model",
        content="""\
Our proprietary trust ownership model provides a secure structure for foreign property \
ownership in Thailand:

TRUST STRUCTURE BENEFITS:
- Legal compliance with Thai foreign ownership laws
- Enhanced asset protection and security
- Professional management and oversight
- Simplified succession planning

HOW IT WORKS:
- Property held in trust by qualified Thai entity
- Foreign beneficiary retains beneficial ownership
- Transparent governance and reporting
- Exit strategies and transfer mechanisms built-in

LEGAL FRAMEWORK:
- Structured to comply with Thai Civil and Commercial Code
- Regular legal reviews and compliance updates
- Professional trustees with local expertise
- Insurance and indemnity protections

ADVANTAGES OVER TRADITIONAL METHODS:
- More secure than nominee arrangements
- Better protection than company structures
- Professional management reduces risks
- Simplified compliance requirements

INVESTMENT PROTECTION:
- Multiple layers of legal protection
- Professional oversight and governance
- Regular audits and reporting
- Clear exit and transfer procedures""",
        category="trust-ownership",
        tags=["trust-structure", "foreign-ownership", "asset-protection", "bespoke-model"],
    ),
    "tax-obligations": CoreKnowledgeEntry(
        key="tax-obligations",
        title="Thai Property Tax Obligations",
        content="""\
Understanding tax implications is crucial for property owners in Thailand:

TRANSFER TAXES:
- Specific Business Tax (SBT): 3.3% for properties sold within 5 years
- Transfer Fee: 2% of appraised value
- Stamp Duty: 0.5% (alternative to SBT for properties held >5 years)
- Withholding Tax: Progressive rates for individuals

ONGOING TAXES:
- Annual Property Tax: 0.02% to 0.1% of appraised value
- Rental Income Tax: Progressive rates from 5% to 35%
- Corporate Tax: 20% for company-owned properties

TAX PLANNING STRATEGIES:
- Hold properties for more than 5 years to avoid SBT
- Use appropriate ownership structures for tax efficiency
- Claim allowable deductions for rental properties
- Utilize double taxation treaties where applicable

COMPLIANCE REQUIREMENTS:
- Annual tax filings required
- Proper documentation of all transactions
- Regular property valuations
- Professional tax advice recommended""",
        category="tax-obligations",
        tags=["property-tax", "transfer-tax", "rental-income", "tax-planning"],
    ),
}


# ═════════════════════════════════════════════════════════════════════════
# 2. SELECTION RULES
# ═════════════════════════════════════════════════════════════════════════

Predicate = Callable[[str, "UserRole | None"], bool]


@dataclass(frozen=True)
class SelectionRule:
    """Select entry ``key`` when ``applies(query_lower, role)`` holds."""

    key: str
    applies: Predicate
    fallback: bool = False
    description: str = ""


def keywords_any(*keywords: str) -> Predicate:
    """Predicate: the lower-cased query contains any of *keywords*."""
    lowered = tuple(k.lower() for k in keywords)
    return lambda query, _role: any(k in query for k in lowered)


def role_is(*roles: UserRole) -> Predicate:
    """Predicate: the caller has one of *roles*."""
    return lambda _query, role: role in roles


SELECTION_RULES: tuple[SelectionRule, ...] = (
    SelectionRule(
        "foreign-ownership",
        keywords_any("foreign", "ownership"),
        description="query mentions foreign or ownership",
    ),
    SelectionRule(
        "trust-ownership-model",
        keywords_any("trust", "bespoke"),
        description="query mentions trust or bespoke",
    ),
    SelectionRule(
        "tax-obligations",
        keywords_any("tax", "duty"),
        description="query mentions tax or duty",
    ),
    SelectionRule(
        "tax-obligations",
        role_is(UserRole.ACCOUNTANT),
        description="accountants always get tax obligations",
    ),
    # Lawyers get broad coverage when nothing more specific matched.
    SelectionRule(
        "foreign-ownership",
        role_is(UserRole.LAWYER),
        fallback=True,
        description="lawyer fallback",
    ),
    SelectionRule(
        "trust-ownership-model",
        role_is(UserRole.LAWYER),
        fallback=True,
        description="lawyer fallback",
    ),
)


def _collect(query_lower: str, role: UserRole | None, rules: tuple[SelectionRule, ...]) -> list[str]:
    keys: list[str] = []
    for rule in rules:
        if rule.key not in keys and rule.applies(query_lower, role):
            keys.append(rule.key)
    return keys


def select_core_knowledge(
    query: str,
    role: UserRole | str | None,
    rules: tuple[SelectionRule, ...] = SELECTION_RULES,
    entries: dict[str, CoreKnowledgeEntry] | None = None,
) -> list[CoreKnowledgeEntry]:
    """Return the core entries that accompany *query* for *role*, in rule order.

    Keyword matching is a case-insensitive substring test.  A string role is
    parsed leniently; an unknown role matches no role rule.
    """
    entries = CORE_KNOWLEDGE if entries is None else entries
    query_lower = (query or "").lower()
    parsed_role = UserRole.parse(role)

    primary = tuple(r for r in rules if not r.fallback)
    fallback = tuple(r for r in rules if r.fallback)

    keys = _collect(query_lower, parsed_role, primary)
    if not keys:
        keys = _collect(query_lower, parsed_role, fallback)
    return [entries[k] for k in keys if k in entries]
