from __future__ import annotations

from phalink.internals.column_expression import ColumnExpression
from phalink.internals.dialects import PhalinkDialect

# Anything that isn't part of the spelling of a name
NON_NAME_CHARACTERS_PATTERN = r"[[:punct:][:digit:][:space:]`]"
PREFIX_KEY_LENGTH = 3


def trimmed_name_expression(name: str, sql_dialect: PhalinkDialect) -> ColumnExpression:
    return (
        ColumnExpression(name, sql_dialect=sql_dialect)
        .coalesce("")
        .regex_replace(NON_NAME_CHARACTERS_PATTERN)
    )


def name_key_expressions(
    name: str, output_prefix: str, sql_dialect: PhalinkDialect
) -> dict[str, str]:
    """
    Blocking keys for a single cleaned name column:
        `{prefix}_trim`: the name with only its letters kept
        `{prefix}_phonetic_key`: American Soundex of the trimmed name
        `{prefix}_prefix_key`: first three characters of the trimmed name

    An empty name gives '' for all three.
    """
    trimmed = trimmed_name_expression(name, sql_dialect)
    return {
        f"{output_prefix}_trim": trimmed.name,
        f"{output_prefix}_phonetic_key": trimmed.soundex().name,
        f"{output_prefix}_prefix_key": trimmed.substr(1, PREFIX_KEY_LENGTH).name,
    }


def generate_name_keys_sql(
    sql_dialect: PhalinkDialect,
    input_table_name: str = "__phalink__df_name_parts",
) -> dict[str, str]:
    key_columns = []
    for name, output_prefix in [
        ("last_name_clean", "last_name"),
        ("first_name_clean", "first_name"),
    ]:
        for column_name, expression in name_key_expressions(
            name, output_prefix, sql_dialect
        ).items():
            key_columns.append(f"{expression} as {column_name}")

    key_columns_sql = ",\n    ".join(key_columns)
    sql = f"""
    select *,
    {key_columns_sql}
    from {input_table_name}
    """
    return {"sql": sql, "output_table_name": "__phalink__df_name_keys"}
