from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from duckdb import DuckDBPyRelation
from pandas import DataFrame as pd_DataFrame

from phalink.internals.input_column import InputColumn
from phalink.internals.phalink_dataframe import PhalinkDataFrame

logger = logging.getLogger(__name__)
if TYPE_CHECKING:
    from .database_api import DuckDBAPI


class DuckDBDataFrame(PhalinkDataFrame):
    db_api: DuckDBAPI

    @property
    def columns(self) -> list[InputColumn]:
        # DESCRIBE covers registered dataframes as well as tables
        relation = self.db_api._execute_sql_against_backend(
            f"DESCRIBE SELECT * FROM {self.physical_name}"
        )
        return [
            InputColumn(row[0], sqlglot_dialect_str="duckdb")
            for row in relation.fetchall()
        ]

    def as_duckdbpyrelation(self, limit: int = None) -> DuckDBPyRelation:
        sql = f"select * from {self.physical_name}"
        if limit:
            sql += f" limit {int(limit)}"
        return self.db_api._execute_sql_against_backend(sql)

    def as_record_dict(self, limit=None):
        relation = self.as_duckdbpyrelation(limit)
        column_names = relation.columns
        return [dict(zip(column_names, row)) for row in relation.fetchall()]

    def as_pandas_dataframe(self, limit: int = None) -> pd_DataFrame:
        return self.as_duckdbpyrelation(limit).df()

    def _copy_to(self, filepath, overwrite, extension, copy_options) -> None:
        filepath = str(filepath)
        self._check_output_path(filepath, overwrite, extension)
        self.db_api._execute_sql_against_backend(
            f"COPY {self.physical_name} TO '{filepath}' ({copy_options})"
        )
        logger.info(f"Wrote {self.templated_name} to {filepath}")

    def to_parquet(self, filepath, overwrite=False):
        self._copy_to(filepath, overwrite, ".parquet", "FORMAT PARQUET")

    def to_csv(self, filepath, overwrite=False):
        self._copy_to(filepath, overwrite, ".csv", "HEADER, DELIMITER ','")
