from __future__ import annotations

import logging
from typing import TYPE_CHECKING, NamedTuple

from phalink.internals.column_expression import ColumnExpression
from phalink.internals.dialects import PhalinkDialect
from phalink.internals.misc import sql_string_literal

if TYPE_CHECKING:
    from phalink.internals.settings import PhalinkSettings

logger = logging.getLogger(__name__)

IDENTITY_KEY_COLUMNS = ["ssn_clean", "ssn_alt"]
USABLE_IDENTITY_FLAG = "__phalink_identity_is_usable"


class FrequencyAggregate(NamedTuple):
    output_column_name: str
    value_column: str
    non_empty_only: bool = False

    @property
    def table_name(self) -> str:
        return f"__phalink__df_{self.output_column_name}"


def frequency_aggregates(settings: PhalinkSettings) -> list[FrequencyAggregate]:
    return [
        FrequencyAggregate("dob_frequency", settings.dob.name),
        FrequencyAggregate("first_name_frequency", "first_name_clean"),
        FrequencyAggregate(
            "middle_name_frequency", "middle_name_clean", non_empty_only=True
        ),
        FrequencyAggregate("surname_frequency", "last_name_clean", non_empty_only=True),
        FrequencyAggregate(
            "last_name_suffix_frequency", "last_name_suffix", non_empty_only=True
        ),
        FrequencyAggregate("gender_frequency", "gender_clean"),
    ]


def gender_clean_expression(
    settings: PhalinkSettings, sql_dialect: PhalinkDialect
) -> str:
    normalised = (
        ColumnExpression(settings.gender, sql_dialect=sql_dialect)
        .cast_to_string()
        .trim_whitespace()
        .upper()
        .name
    )
    whens = "\n".join(
        f"        WHEN {sql_string_literal(spelling.upper())} THEN {code}"
        for spelling, code in settings.gender_recodes.items()
    )
    return f"CASE {normalised}\n{whens}\n        ELSE NULL\n        END"


def _null_safe_join_condition(left: str, right: str, columns: list[str]) -> str:
    return " AND ".join(
        f"{left}.{c} IS NOT DISTINCT FROM {right}.{c}" for c in columns
    )


def identity_base_sql(
    settings: PhalinkSettings,
    sql_dialect: PhalinkDialect,
    input_table_name: str = "__phalink__df_name_keys",
) -> dict[str, str]:
    sql = f"""
    select *,
    {gender_clean_expression(settings, sql_dialect)} as gender_clean,
    NOT (ssn_is_junk AND ssn_alt_is_junk) as {USABLE_IDENTITY_FLAG}
    from {input_table_name}
    """
    return {"sql": sql, "output_table_name": "__phalink__df_identity_base"}


def frequency_sql(aggregate: FrequencyAggregate) -> dict[str, str]:
    keys = ", ".join(IDENTITY_KEY_COLUMNS)
    non_empty_sql = (
        f"and {aggregate.value_column} <> ''" if aggregate.non_empty_only else ""
    )
    sql = f"""
    select {keys}, {aggregate.value_column} as __phalink_value,
    count(*) as {aggregate.output_column_name}
    from __phalink__df_identity_base
    where {USABLE_IDENTITY_FLAG} {non_empty_sql}
    group by {keys}, {aggregate.value_column}
    """
    return {"sql": sql, "output_table_name": aggregate.table_name}


def surname_most_recent_sql(settings: PhalinkSettings) -> dict[str, str]:
    """
    The last name on each identity's most recent row.

    Rows are ordered by activity date (missing dates count as oldest), with
    `person_period_id` breaking ties. By default the latest row is taken even
    when its last name is empty, giving ''. With `surname_most_recent_backfill`
    the latest non-empty last name is taken instead.
    """
    keys = ", ".join(IDENTITY_KEY_COLUMNS)
    non_empty_sql = (
        "and last_name_clean <> ''" if settings.surname_most_recent_backfill else ""
    )
    sql = f"""
    select {keys}, last_name_clean as surname_most_recent
    from (
        select {keys}, last_name_clean,
        row_number() over (
            partition by {keys}
            order by {settings.activity_date.name} desc nulls last,
            person_period_id desc
        ) as __phalink_recency_rank
        from __phalink__df_identity_base
        where {USABLE_IDENTITY_FLAG} {non_empty_sql}
    )
    where __phalink_recency_rank = 1
    """
    return {"sql": sql, "output_table_name": "__phalink__df_surname_most_recent"}


def broadcast_aggregates_sql(aggregates: list[FrequencyAggregate]) -> dict[str, str]:
    select_cols = []
    joins = []
    for i, aggregate in enumerate(aggregates):
        alias = f"agg_{i}"
        select_cols.append(f"{alias}.{aggregate.output_column_name}")
        key_condition = _null_safe_join_condition("b", alias, IDENTITY_KEY_COLUMNS)
        joins.append(
            f"""
    left join {aggregate.table_name} as {alias}
    on b.{USABLE_IDENTITY_FLAG}
    and {key_condition}
    and b.{aggregate.value_column} IS NOT DISTINCT FROM {alias}.__phalink_value"""
        )

    key_condition = _null_safe_join_condition("b", "smr", IDENTITY_KEY_COLUMNS)
    joins.append(
        f"""
    left join __phalink__df_surname_most_recent as smr
    on b.{USABLE_IDENTITY_FLAG}
    and {key_condition}"""
    )
    select_cols.append(
        f"CASE WHEN b.{USABLE_IDENTITY_FLAG} "
        "THEN coalesce(smr.surname_most_recent, '') END as surname_most_recent"
    )

    select_cols_sql = ",\n    ".join(select_cols)
    joins_sql = "".join(joins)
    sql = f"""
    select b.*,
    {select_cols_sql}
    from __phalink__df_identity_base as b{joins_sql}
    """
    return {"sql": sql, "output_table_name": "__phalink__df_identity_aggregates"}


def identity_aggregates_sqls(
    settings: PhalinkSettings,
    sql_dialect: PhalinkDialect,
    input_table_name: str = "__phalink__df_name_keys",
) -> list[dict[str, str]]:
    """
    Summarise each identity and attach the summaries to every one of its rows.

    An identity is the (`ssn_clean`, `ssn_alt`) pair, with NULLs matching NULLs.
    Identities whose numeric and alternate identifiers are both junk have
    nothing to summarise, so every aggregate is NULL on their rows.

    Adds `gender_clean` and the columns:
        dob_frequency, first_name_frequency, middle_name_frequency,
        surname_frequency, surname_most_recent, last_name_suffix_frequency,
        gender_frequency
    """
    aggregates = frequency_aggregates(settings)

    sqls = [identity_base_sql(settings, sql_dialect, input_table_name)]
    sqls.extend(frequency_sql(aggregate) for aggregate in aggregates)
    sqls.append(surname_most_recent_sql(settings))
    sqls.append(broadcast_aggregates_sql(aggregates))

    logger.debug(
        "Computing per-identity aggregates: "
        + ", ".join(a.output_column_name for a in aggregates)
    )
    return sqls
