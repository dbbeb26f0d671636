from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from phalink.internals.column_expression import ColumnExpression
from phalink.internals.dialects import PhalinkDialect
from phalink.internals.input_column import InputColumn
from phalink.internals.misc import dedupe_preserving_order, sql_string_literal
from phalink.internals.settings_validation.schema_validation import (
    resolve_role_columns,
)

if TYPE_CHECKING:
    from phalink.internals.settings import PhalinkSettings

logger = logging.getLogger(__name__)

DOB_PART_COLUMNS = {"dob_year": "year", "dob_month": "month", "dob_day": "day"}


def normalised_text_expression(column_name: str, sql_dialect: PhalinkDialect) -> str:
    """Trimmed, upper-cased text. NULL stays NULL."""
    return (
        ColumnExpression(column_name, sql_dialect=sql_dialect)
        .cast_to_string()
        .trim_whitespace()
        .upper()
        .name
    )


def blank_if_null_expression(expression: str) -> str:
    return f"""CASE
        WHEN {expression} IS NULL OR {expression} IN ('', 'NULL') THEN ''
        ELSE {expression}
        END"""


def value_recode_expression(expression: str, recodes: dict[str, str]) -> str:
    if not recodes:
        return expression
    whens = "\n".join(
        f"        WHEN {sql_string_literal(old)} THEN {sql_string_literal(new)}"
        for old, new in recodes.items()
    )
    return f"""CASE {expression}
{whens}
        ELSE {expression}
        END"""


def normalise_fields_sql(
    available_columns: list[str],
    settings: PhalinkSettings,
    sql_dialect: PhalinkDialect,
    input_table_name: str = "__phalink__df_combined",
) -> dict[str, str]:
    """
    Standardise the raw fields of the combined table in place.

    - text columns are trimmed of surrounding whitespace and upper-cased
    - date columns are parsed to DATE, with unparseable values becoming NULL
    - numeric columns are cast to DOUBLE, with failures becoming NULL
    - `blank_if_null_columns` have NULL and the literal 'NULL' set to ''
    - `value_recodes` are applied last

    The date of birth is also split into `dob_year`, `dob_month` and `dob_day`.

    Running the output back through this step gives the same table.
    """
    text_columns = resolve_role_columns(
        dedupe_preserving_order(
            settings.text_role_column_names
            + settings.blank_if_null_columns
            + list(settings.value_recodes.keys())
        ),
        available_columns,
        "text columns",
    )
    date_columns = resolve_role_columns(
        settings.date_columns, available_columns, "date_columns"
    )
    numeric_columns = resolve_role_columns(
        settings.numeric_columns, available_columns, "numeric_columns"
    )

    blank_if_null = {c.lower() for c in settings.blank_if_null_columns}
    recodes = {k.lower(): v for k, v in settings.value_recodes.items()}

    replacements = {}
    for column_name in text_columns:
        expression = normalised_text_expression(column_name, sql_dialect)
        if column_name.lower() in blank_if_null:
            expression = blank_if_null_expression(expression)
        expression = value_recode_expression(
            expression, recodes.get(column_name.lower(), {})
        )
        replacements[column_name] = expression

    for column_name in date_columns:
        replacements[column_name] = (
            ColumnExpression(column_name, sql_dialect=sql_dialect).try_parse_date().name
        )

    for column_name in numeric_columns:
        replacements[column_name] = (
            ColumnExpression(column_name, sql_dialect=sql_dialect)
            .try_cast("DOUBLE")
            .name
        )

    dob = settings.dob
    if dob.unquoted_name in replacements:
        parsed_dob = replacements[dob.unquoted_name]
    else:
        parsed_dob = (
            ColumnExpression(dob, sql_dialect=sql_dialect).try_parse_date().name
        )

    # Re-running over output that already carries the dob parts overwrites them
    existing = {c.lower() for c in available_columns}
    new_columns = []
    for column_name, date_part in DOB_PART_COLUMNS.items():
        expression = f"cast({date_part}({parsed_dob}) as integer)"
        if column_name in existing:
            replacements[column_name] = expression
        else:
            new_columns.append(f"{expression} as {column_name}")

    replace_sql = ",\n    ".join(
        f"{expression} as {InputColumn(column_name).name}"
        for column_name, expression in replacements.items()
    )
    select_sql = f"* replace (\n    {replace_sql}\n    )" if replace_sql else "*"
    new_columns_sql = "".join(f",\n    {c}" for c in new_columns)

    logger.debug(
        f"Normalising {len(text_columns)} text, {len(date_columns)} date and "
        f"{len(numeric_columns)} numeric columns"
    )

    sql = f"""
    select
    {select_sql}{new_columns_sql}
    from {input_table_name}
    """

    return {"sql": sql, "output_table_name": "__phalink__df_normalised"}
