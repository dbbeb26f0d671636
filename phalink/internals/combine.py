from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING, Dict

import pandas as pd
import pyarrow as pa

from phalink.internals.database_api import AcceptableInputTableType
from phalink.internals.misc import sql_string_literal
from phalink.internals.phalink_dataframe import PhalinkDataFrame

if TYPE_CHECKING:
    from phalink.internals.database_api import DatabaseAPISubClass
    from phalink.internals.settings import PhalinkSettings

logger = logging.getLogger(__name__)

SOURCE_ROW_NUMBER_COLUMN = "source_row_number"
PERSON_PERIOD_ID_COLUMN = "person_period_id"


def add_source_row_number(
    table: AcceptableInputTableType,
) -> AcceptableInputTableType:
    """Number the rows of an in-memory table by their position, starting at 0.

    Tables that are already in the database (passed by name) are left alone;
    they are numbered with duckdb's `rowid` when they are combined.
    """
    if isinstance(table, str):
        return table

    if isinstance(table, pa.Table):
        if SOURCE_ROW_NUMBER_COLUMN in table.column_names:
            table = table.drop_columns([SOURCE_ROW_NUMBER_COLUMN])
        row_numbers = pa.array(range(table.num_rows), type=pa.int64())
        return table.append_column(SOURCE_ROW_NUMBER_COLUMN, row_numbers)

    if isinstance(table, dict):
        table = pd.DataFrame(table)
    elif isinstance(table, list):
        table = pd.DataFrame.from_records(table)

    return table.assign(**{SOURCE_ROW_NUMBER_COLUMN: range(len(table))})


def input_table_name(agency: str, position: int) -> str:
    slug = re.sub(r"\W", "_", agency.lower())
    return f"__phalink__input_table_{position}_{slug}"


def register_input_tables(
    input_tables: Dict[str, AcceptableInputTableType],
    db_api: DatabaseAPISubClass,
) -> Dict[str, PhalinkDataFrame]:
    registered = {}
    for position, (agency, table) in enumerate(input_tables.items()):
        table_name = input_table_name(agency, position)
        logger.debug(f"Registering input table for {agency} as {table_name}")
        registered[agency] = db_api.register(
            add_source_row_number(table), table_name, overwrite=True
        )
    return registered


def combine_agency_tables_sqls(
    input_tables: Dict[str, PhalinkDataFrame], settings: PhalinkSettings
) -> list[dict[str, str]]:
    """
    Stack the agencies' tables into a single person-period table.

    Each row is tagged with the agency it came from. Tables are matched up by
    column name, so a column that only one agency supplies is null for the
    other agency's rows.

    `person_period_id` numbers the rows of the combined table from 1, in the
    order the agencies are configured and then by `source_row_number`, so it is
    the same on every run over the same inputs.
    """
    provenance = settings.provenance.name
    agency_order = {agency: i for i, agency in enumerate(settings.agencies)}

    sqls_to_union = []
    for agency, df_obj in input_tables.items():
        if SOURCE_ROW_NUMBER_COLUMN in df_obj.column_names:
            select_row_number = ""
        else:
            select_row_number = f", rowid as {SOURCE_ROW_NUMBER_COLUMN}"

        sql = f"""
        select
        {sql_string_literal(agency)} as {provenance},
        {agency_order[agency]} as __phalink_agency_order,
        *
        {select_row_number}
        from {df_obj.physical_name}
        """
        sqls_to_union.append(sql)

    sqls = [
        {
            "sql": " UNION ALL BY NAME ".join(sqls_to_union),
            "output_table_name": "__phalink__df_concat",
        }
    ]

    sql = f"""
    select
    row_number() over (
        order by __phalink_agency_order, {SOURCE_ROW_NUMBER_COLUMN}
    ) as {PERSON_PERIOD_ID_COLUMN},
    * exclude (__phalink_agency_order)
    from __phalink__df_concat
    """
    sqls.append({"sql": sql, "output_table_name": "__phalink__df_combined"})

    return sqls
