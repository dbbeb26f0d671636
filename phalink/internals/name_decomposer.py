from __future__ import annotations

import logging
from typing import TYPE_CHECKING, NamedTuple

from phalink.internals.dialects import PhalinkDialect
from phalink.internals.misc import sql_string_literal

if TYPE_CHECKING:
    from phalink.internals.settings import PhalinkSettings

logger = logging.getLogger(__name__)


class SuffixTier(NamedTuple):
    width: int
    suffixes: tuple[str, ...]


# Checked in order, so a 4 character match wins over a 3 character one
# (' III' rather than ' II'). The leading space stops 'SMITHJR' from matching.
# Punctuation repair strips the dot first, so ' JR.' only matches names that
# reach the decomposer unrepaired.
NAME_SUFFIX_TIERS = [
    SuffixTier(4, (" III", " LLL", " 2ND", " 111", " JR.")),
    SuffixTier(3, (" JR", " SR", " II", " IV")),
]

MIDDLE_INITIAL_PATTERN = " [A-Z]$"


def _tier_condition(name: str, tier: SuffixTier) -> str:
    suffixes = ", ".join(sql_string_literal(s) for s in tier.suffixes)
    ending = f"right({name}, {tier.width})"
    return f"(length({name}) >= {tier.width} AND {ending} IN ({suffixes}))"


def suffix_expression(name: str) -> str:
    """The trailing suffix of `name` including its leading space, or ''."""
    whens = "\n".join(
        f"        WHEN {_tier_condition(name, tier)} "
        f"THEN right({name}, {tier.width})"
        for tier in NAME_SUFFIX_TIERS
    )
    return f"CASE\n{whens}\n        ELSE ''\n        END"


def strip_suffix_expression(name: str) -> str:
    whens = "\n".join(
        f"        WHEN {_tier_condition(name, tier)} "
        f"THEN left({name}, length({name}) - {tier.width})"
        for tier in NAME_SUFFIX_TIERS
    )
    return f"CASE\n{whens}\n        ELSE {name}\n        END"


def middle_initial_sql(
    settings: PhalinkSettings,
    sql_dialect: PhalinkDialect,
    input_table_name: str = "__phalink__df_names_repaired",
) -> dict[str, str]:
    """
    Move a trailing middle initial from the first name to the middle name.

    'JOHN A' with no middle name becomes 'JOHN' / 'A'. Where there is a middle
    name already the initial goes in front of it: 'JOHN A' / 'ROBERT' becomes
    'JOHN' / 'A ROBERT'.
    """
    first = f"coalesce(cast({settings.first_name.name} as varchar), '')"
    middle = f"coalesce(cast({settings.middle_name.name} as varchar), '')"
    has_initial = sql_dialect.regex_matches(first, MIDDLE_INITIAL_PATTERN)

    sql = f"""
    select *,
    CASE
        WHEN {has_initial} THEN left({first}, length({first}) - 2)
        ELSE {first}
        END as __phalink_first_name,
    CASE
        WHEN {has_initial} AND {middle} = '' THEN right({first}, 1)
        WHEN {has_initial} THEN right({first}, 1) || ' ' || {middle}
        ELSE {middle}
        END as middle_name_clean
    from {input_table_name}
    """
    return {"sql": sql, "output_table_name": "__phalink__df_middle_initial"}


def name_suffix_sql(
    settings: PhalinkSettings,
    sql_dialect: PhalinkDialect,
    input_table_name: str = "__phalink__df_middle_initial",
) -> dict[str, str]:
    """
    Split generational suffixes (JR, SR, III...) off the last and first names.

    The last name is checked first, then the first name. If both carry a suffix
    the first name's suffix is the one kept in `last_name_suffix`.
    """
    first = "__phalink_first_name"
    last = f"coalesce(cast({settings.last_name.name} as varchar), '')"

    last_suffix = suffix_expression(last)
    first_suffix = suffix_expression(first)
    chosen_suffix = f"""CASE
        WHEN {first_suffix} <> '' THEN {first_suffix}
        ELSE {last_suffix}
        END"""
    cleaned_suffix = sql_dialect.regex_replace(chosen_suffix, "[[:punct:][:space:]]")

    sql = f"""
    select * exclude ({first}),
    {strip_suffix_expression(first)} as first_name_clean,
    {strip_suffix_expression(last)} as last_name_clean,
    {cleaned_suffix} as last_name_suffix
    from {input_table_name}
    """
    return {"sql": sql, "output_table_name": "__phalink__df_name_parts"}


def decompose_names_sqls(
    settings: PhalinkSettings, sql_dialect: PhalinkDialect
) -> list[dict[str, str]]:
    logger.debug(
        "Name suffixes recognised: "
        + ", ".join(repr(s) for tier in NAME_SUFFIX_TIERS for s in tier.suffixes)
    )
    return [
        middle_initial_sql(settings, sql_dialect),
        name_suffix_sql(settings, sql_dialect),
    ]
