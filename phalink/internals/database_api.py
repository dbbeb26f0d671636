from __future__ import annotations

import hashlib
import logging
import time
from abc import ABC, abstractmethod
from typing import (
    TYPE_CHECKING,
    Any,
    Dict,
    Generic,
    List,
    TypeVar,
    Union,
    final,
)

import pyarrow as pa
import sqlglot
from sqlglot.errors import SqlglotError

from phalink.internals.logging_messages import (
    execute_sql_logging_message_info,
    log_sql,
)
from phalink.internals.misc import ascii_uid, parse_duration
from phalink.internals.phalink_dataframe import PhalinkDataFrame
from phalink.internals.pipeline import CTEPipeline, PipelineStage

from .dialects import PhalinkDialect
from .exceptions import PhalinkException

logger = logging.getLogger(__name__)

BaseAcceptableInputTableType = Union[
    str,
    List[Dict[str, Any]],
    Dict[str, Any],
    pa.Table,
]

if TYPE_CHECKING:
    from pandas import DataFrame as PandasDataFrame

    AcceptableInputTableType = Union[BaseAcceptableInputTableType, PandasDataFrame]
else:
    AcceptableInputTableType = BaseAcceptableInputTableType

# whatever the backend hands back from running sql, e.g. duckdb.DuckDBPyRelation
TablishType = TypeVar("TablishType")


class DatabaseAPI(ABC, Generic[TablishType]):
    """Runs phalink's sql against a database backend.

    Subclasses supply the backend-specific pieces: executing sql, registering
    in-memory tables and wrapping backend tables as `PhalinkDataFrame`s.
    """

    sql_dialect: PhalinkDialect
    # run pipelines one stage at a time, each stage kept as its own table
    debug_mode: bool = False

    def __init__(self) -> None:
        # salts physical table names, so two apis sharing a connection don't clash
        self._cache_uid: str = ascii_uid(8)

    def _pretty_sql(self, sql: str) -> str:
        try:
            return sqlglot.parse_one(sql, read=self.sql_dialect.sqlglot_dialect).sql(
                pretty=True
            )
        except SqlglotError:
            return sql

    @final
    def _run_sql(self, sql: str, templated_name: str, physical_name: str) -> None:
        logger.debug(execute_sql_logging_message_info(templated_name, physical_name))
        logger.log(5, log_sql(sql))
        try:
            self._execute_sql_against_backend(sql)
        except Exception as e:
            raise PhalinkException(
                f"Error executing the following sql for table "
                f"`{templated_name}`({physical_name}):\n{self._pretty_sql(sql)}"
                f"\n\nError was: {e}"
            ) from e

    def _physical_name(self, sql: str, templated_name: str) -> str:
        digest = hashlib.sha256((sql + self._cache_uid).encode("utf-8")).hexdigest()
        return f"{templated_name}_{digest[:9]}"

    @final
    def _materialise(self, sql: str, templated_name: str) -> PhalinkDataFrame:
        """Create a table from `sql`, named after a hash of the sql."""
        physical_name = self._physical_name(sql, templated_name)
        self.delete_table_from_database(physical_name)
        self._run_sql(
            f"CREATE TABLE {physical_name} AS {sql}", templated_name, physical_name
        )
        if self.debug_mode:
            # later stages read this table by its stage name
            self._create_or_replace_temp_view(templated_name, physical_name)
        return self.table_to_phalink_dataframe(templated_name, physical_name)

    def _run_stage_by_stage(self, stages: List[PipelineStage]) -> PhalinkDataFrame:
        if not stages:
            raise PhalinkException("Cannot run a pipeline with no stages")
        for stage in stages:
            start_time = time.time()
            logger.info(f"--------Creating table: {stage.output_table_name}--------")
            phalink_dataframe = self._materialise(stage.sql, stage.output_table_name)
            logger.info(f"Step ran in: {parse_duration(time.time() - start_time)}")
        return phalink_dataframe

    def sql_pipeline_to_phalink_dataframe(
        self, pipeline: CTEPipeline
    ) -> PhalinkDataFrame:
        """
        Run every stage of `pipeline` and return its final table.

        Outside of debug mode the stages run as a single statement of common
        table expressions. In debug mode each stage becomes a table in its own
        right, so intermediate results can be inspected.
        """
        if self.debug_mode:
            stages = pipeline.all_stages()
            pipeline.spent = True
            return self._run_stage_by_stage(stages)

        sql = pipeline.generate_cte_pipeline_sql()
        return self._materialise(sql, pipeline.output_table_name)

    def register(
        self,
        table: AcceptableInputTableType,
        table_name: str,
        overwrite: bool = False,
    ) -> PhalinkDataFrame:
        """Make `table` available to sql under `table_name`.

        A string is taken to be the name of a table that already exists in the
        database, and is wrapped without being copied.
        """
        if isinstance(table, str):
            return self.table_to_phalink_dataframe(table_name, table)

        if self.table_exists_in_database(table_name):
            if not overwrite:
                raise ValueError(
                    f"Table '{table_name}' already exists in database. "
                    "Please remove or rename before retrying"
                )
            self.delete_table_from_database(table_name)

        self._table_registration(table, table_name)
        return self.table_to_phalink_dataframe(table_name, table_name)

    @abstractmethod
    def _execute_sql_against_backend(self, final_sql: str) -> TablishType:
        pass

    def delete_table_from_database(self, name: str) -> None:
        self._execute_sql_against_backend(f"DROP TABLE IF EXISTS {name}")

    @abstractmethod
    def _table_registration(
        self, input: AcceptableInputTableType, table_name: str
    ) -> None:
        """Register an in-memory table with the backend, replacing any existing
        table of the same name."""
        pass

    @abstractmethod
    def table_to_phalink_dataframe(
        self, templated_name: str, physical_name: str
    ) -> PhalinkDataFrame:
        pass

    @abstractmethod
    def table_exists_in_database(self, table_name: str) -> bool:
        pass

    def _create_or_replace_temp_view(self, name: str, physical: str) -> None:
        self._execute_sql_against_backend(
            f"CREATE OR REPLACE TEMP VIEW {name} AS SELECT * FROM {physical}"
        )


DatabaseAPISubClass = DatabaseAPI[Any]
