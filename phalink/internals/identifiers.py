from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable

from phalink.internals.column_expression import ColumnExpression
from phalink.internals.dialects import PhalinkDialect
from phalink.internals.input_column import InputColumn
from phalink.internals.misc import sql_string_literal

if TYPE_CHECKING:
    from phalink.internals.settings import PhalinkSettings

logger = logging.getLogger(__name__)

# 111111111, 222222222, ... 999999999
REPEATED_DIGIT_IDENTIFIERS = [int(str(digit) * 9) for digit in range(1, 10)]
DESCENDING_SEQUENCE_IDENTIFIER = 987654321


@dataclass(frozen=True)
class JunkRule:
    """A single reason for treating an identifier as unusable for linkage.

    `sql_condition` takes the sql expression for the identifier and returns a
    boolean sql expression.
    """

    description: str
    sql_condition: Callable[[str], str]


def _in_list(values) -> Callable[[str], str]:
    literals = ", ".join(str(v) for v in values)
    return lambda name: f"{name} IN ({literals})"


def _in_string_list(values) -> Callable[[str], str]:
    literals = ", ".join(sql_string_literal(str(v).upper()) for v in values)
    return lambda name: f"upper({name}) IN ({literals})"


def numeric_junk_rules(placeholders: list[int]) -> list[JunkRule]:
    rules = [
        JunkRule("missing", lambda name: f"{name} IS NULL"),
        JunkRule("zero", lambda name: f"{name} = 0"),
        JunkRule("repeated digit", _in_list(REPEATED_DIGIT_IDENTIFIERS)),
        JunkRule("sequential", _in_list([DESCENDING_SEQUENCE_IDENTIFIER])),
    ]
    if placeholders:
        rules.append(JunkRule("placeholder", _in_list(placeholders)))
    return rules


def alternate_junk_rules(placeholders: list[str]) -> list[JunkRule]:
    rules = [
        JunkRule("missing", lambda name: f"{name} IS NULL OR {name} = ''"),
        # every character equal to the first one
        JunkRule(
            "repeated character",
            lambda name: f"length(replace({name}, left({name}, 1), '')) = 0",
        ),
    ]
    if placeholders:
        rules.append(JunkRule("placeholder", _in_string_list(placeholders)))
    return rules


def junk_condition(name: str, rules: list[JunkRule]) -> str:
    """Boolean sql that is true when any rule matches. Never NULL."""
    conditions = "\n            OR ".join(
        f"({rule.sql_condition(name)})" for rule in rules
    )
    return f"coalesce(\n            {conditions},\n        false)"


def _dash_stripped(column: InputColumn, sql_dialect: PhalinkDialect) -> str:
    return (
        ColumnExpression(column, sql_dialect=sql_dialect)
        .cast_to_string()
        .trim_whitespace()
        .regex_replace("-")
        .name
    )


def identifier_expressions(
    column: InputColumn,
    output_prefix: str,
    sql_dialect: PhalinkDialect,
) -> dict[str, str]:
    """
    sql expressions splitting one raw identifier into its numeric and alternate
    forms.

    Dashes are removed first. A value containing any letter is kept as text in
    `{prefix}_alt`, leaving `{prefix}_clean` NULL. Otherwise `{prefix}_clean` is
    the value as a BIGINT (NULL if it will not parse) and `{prefix}_alt` is ''.
    """
    stripped = _dash_stripped(column, sql_dialect)
    has_letter = sql_dialect.regex_matches(stripped, r"\p{L}")

    # Identifiers read from floating point columns arrive as e.g. '123456789.0'
    as_double = sql_dialect.try_cast(stripped, "DOUBLE")
    via_double = sql_dialect.try_cast(as_double, "BIGINT")
    as_integer = f"coalesce({sql_dialect.try_cast(stripped, 'BIGINT')}, {via_double})"

    clean = f"CASE WHEN {has_letter} THEN NULL ELSE {as_integer} END"
    alt = f"CASE WHEN {has_letter} THEN {stripped} ELSE '' END"

    return {
        f"{output_prefix}_clean": clean,
        f"{output_prefix}_alt": alt,
    }


def classify_identifiers_sqls(
    settings: PhalinkSettings,
    sql_dialect: PhalinkDialect,
    input_table_name: str = "__phalink__df_normalised",
) -> list[dict[str, str]]:
    """
    Derive cleaned person and household identifiers, and flag junk values.

    Junk flags are computed from the cleaned values, so they depend on nothing
    but the row's own raw identifier.
    """
    identifier_columns = {
        "ssn": settings.ssn,
        "household_ssn": settings.household_ssn,
    }

    derived_columns = []
    for prefix, column in identifier_columns.items():
        for column_name, expression in identifier_expressions(
            column, prefix, sql_dialect
        ).items():
            derived_columns.append(f"{expression} as {column_name}")

    derived_columns_sql = ",\n    ".join(derived_columns)
    sql = f"""
    select *,
    {derived_columns_sql}
    from {input_table_name}
    """
    sqls = [{"sql": sql, "output_table_name": "__phalink__df_identifiers_split"}]

    numeric_rules = numeric_junk_rules(settings.junk_numeric_identifiers)
    alternate_rules = alternate_junk_rules(settings.junk_alternate_identifiers)
    logger.debug(
        "Numeric identifier junk rules: "
        + ", ".join(r.description for r in numeric_rules)
    )
    logger.debug(
        "Alternate identifier junk rules: "
        + ", ".join(r.description for r in alternate_rules)
    )

    junk_flags = []
    for prefix in identifier_columns:
        numeric_flag = junk_condition(f"{prefix}_clean", numeric_rules)
        alternate_flag = junk_condition(f"{prefix}_alt", alternate_rules)
        junk_flags.append(f"{numeric_flag} as {prefix}_is_junk")
        junk_flags.append(f"{alternate_flag} as {prefix}_alt_is_junk")

    junk_flags_sql = ",\n    ".join(junk_flags)
    sql = f"""
    select *,
    {junk_flags_sql}
    from __phalink__df_identifiers_split
    """
    sqls.append({"sql": sql, "output_table_name": "__phalink__df_identifiers"})

    return sqls
