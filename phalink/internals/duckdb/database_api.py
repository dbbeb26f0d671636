from __future__ import annotations

import logging
import os
import tempfile
import uuid
from typing import Union

import duckdb
import pandas as pd
from duckdb.sqltypes import VARCHAR

from phalink.internals.database_api import AcceptableInputTableType, DatabaseAPI
from phalink.internals.dialects import DuckDBDialect
from phalink.internals.phonetics import soundex

from .dataframe import DuckDBDataFrame

logger = logging.getLogger(__name__)

IN_MEMORY_CONNECTIONS = (":memory:", ":temporary:")
DATABASE_FILE_SUFFIXES = (".duckdb", ".db")


def _connect(
    connection: Union[str, duckdb.DuckDBPyConnection],
) -> tuple[duckdb.DuckDBPyConnection, tempfile.TemporaryDirectory | None]:
    """Open `connection`, returning it with the temporary directory that holds
    it, if any."""
    if isinstance(connection, duckdb.DuckDBPyConnection):
        return connection, None
    if not isinstance(connection, str):
        raise TypeError(
            "connection must be a duckdb connection, ':memory:', ':temporary:' "
            "or the path to a duckdb database file."
        )

    if connection.lower() == ":temporary:":
        temp_dir = tempfile.TemporaryDirectory(dir="")
        path = os.path.join(temp_dir.name, f"{uuid.uuid4().hex[:7]}.duckdb")
        return duckdb.connect(database=path, read_only=False), temp_dir

    if connection.lower() not in IN_MEMORY_CONNECTIONS and not (
        connection.lower().endswith(DATABASE_FILE_SUFFIXES)
    ):
        logger.info(
            f"The duckdb database '{connection}' has an unusual file suffix. "
            "Consider naming it with '.duckdb' or '.db'."
        )
    return duckdb.connect(database=connection), None


class DuckDBAPI(DatabaseAPI[duckdb.DuckDBPyRelation]):
    """Run phalink against DuckDB.

    Args:
        connection: ':memory:' (the default), ':temporary:' for an on-disk
            database that is removed afterwards, the path to a database file,
            or an existing `duckdb.DuckDBPyConnection`.
        output_schema (str, optional): Schema to create phalink's tables in.
    """

    sql_dialect = DuckDBDialect()

    def __init__(
        self,
        connection: Union[str, duckdb.DuckDBPyConnection] = ":memory:",
        output_schema: str = None,
    ):
        super().__init__()
        # the temporary directory must live as long as the connection
        self._con, self._temp_dir = _connect(connection)
        self._register_udfs()

        if output_schema:
            self._execute_sql_against_backend(
                f"CREATE SCHEMA IF NOT EXISTS {output_schema}; "
                f"SET schema '{output_schema}';"
            )

    def _register_udfs(self) -> None:
        function_name = self.sql_dialect.soundex_function_name
        # a connection handed in by the user may have it registered already
        try:
            self._con.remove_function(function_name)
        except duckdb.Error:
            logger.debug(f"No existing {function_name} function to replace")
        self._con.create_function(function_name, soundex, [VARCHAR], VARCHAR)

    def delete_table_from_database(self, name: str) -> None:
        # registered dataframes are views, and DROP TABLE refuses those
        try:
            self._execute_sql_against_backend(f"DROP TABLE IF EXISTS {name}")
        except duckdb.CatalogException:
            self._execute_sql_against_backend(f"DROP VIEW IF EXISTS {name}")

    def _table_registration(
        self, input: AcceptableInputTableType, table_name: str
    ) -> None:
        if isinstance(input, dict):
            input = pd.DataFrame(input)
        elif isinstance(input, list):
            input = pd.DataFrame.from_records(input)
        self._con.register(table_name, input)

    def table_to_phalink_dataframe(
        self, templated_name: str, physical_name: str
    ) -> DuckDBDataFrame:
        return DuckDBDataFrame(templated_name, physical_name, self)

    def table_exists_in_database(self, table_name: str) -> bool:
        try:
            self._execute_sql_against_backend(f"PRAGMA table_info('{table_name}');")
        except duckdb.CatalogException:
            return False
        return True

    def _execute_sql_against_backend(self, final_sql: str) -> duckdb.DuckDBPyRelation:
        return self._con.sql(final_sql)
