from __future__ import annotations

import logging
from typing import NamedTuple

from phalink.internals.column_expression import ColumnExpression
from phalink.internals.dialects import PhalinkDialect
from phalink.internals.input_column import InputColumn

logger = logging.getLogger(__name__)


class PunctuationRepair(NamedTuple):
    pattern: str
    replacement: str


# Applied in order to every name column
NAME_PUNCTUATION_REPAIRS = [
    # runs of whitespace, and comma separators, become one space
    PunctuationRepair(r"(,?\s)+", " "),
    PunctuationRepair("`", "'"),
    PunctuationRepair("_", "-"),
    PunctuationRepair(r'[."\\]', ""),
]


def repaired_name_expression(column_name: str, sql_dialect: PhalinkDialect) -> str:
    expression = (
        ColumnExpression(column_name, sql_dialect=sql_dialect)
        .cast_to_string()
        .coalesce("")
    )
    for repair in NAME_PUNCTUATION_REPAIRS:
        expression = expression.regex_replace(repair.pattern, repair.replacement)
    repaired = expression.name
    return f"CASE WHEN {repaired} = 'NULL' THEN '' ELSE {repaired} END"


def repair_name_punctuation_sql(
    name_columns: list[str],
    sql_dialect: PhalinkDialect,
    input_table_name: str = "__phalink__df_identifiers",
) -> dict[str, str]:
    """
    Tidy the punctuation of the name columns in place, and replace missing
    names with ''.

    The columns are expected to have been trimmed and upper-cased already.
    """
    if not name_columns:
        sql = f"select * from {input_table_name}"
    else:
        replace_sql = ",\n    ".join(
            f"{repaired_name_expression(c, sql_dialect)} as {InputColumn(c).name}"
            for c in name_columns
        )
        sql = f"""
    select
    * replace (
    {replace_sql}
    )
    from {input_table_name}
    """
    logger.debug(f"Repairing punctuation in name columns: {name_columns}")
    return {"sql": sql, "output_table_name": "__phalink__df_names_repaired"}
