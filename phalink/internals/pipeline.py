from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Iterable, List, Optional

import sqlglot
from sqlglot.errors import ParseError
from sqlglot.expressions import Table

from .phalink_dataframe import PhalinkDataFrame

logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from phalink.internals.database_api import DatabaseAPISubClass


class PipelineStage:
    """A single named sql statement within a `CTEPipeline`."""

    def __init__(self, sql: str, output_table_name: str):
        self.sql = sql
        self.output_table_name = output_table_name

    @property
    def tables_read(self) -> list[str]:
        try:
            tree = sqlglot.parse_one(self.sql, read="duckdb")
        except ParseError:
            return []
        return sorted({t.name for t in tree.find_all(Table)})

    def describe(self) -> str:
        reads = ", ".join(self.tables_read) or "unparsed sql"
        return f"{self.output_table_name} reads [{reads}]"

    def __repr__(self) -> str:
        return f"PipelineStage({self.describe()})"


class CTEPipeline:
    """An ordered queue of sql statements, each of which can refer to the output
    of the statements before it by name.

    Executed as a single statement made of common table expressions, or, in debug
    mode, as one materialised table per statement. A pipeline can only be run
    once.
    """

    def __init__(self, input_dataframes: Optional[Iterable[PhalinkDataFrame]] = None):
        self.stages: List[PipelineStage] = []
        self.input_dataframes: List[PhalinkDataFrame] = list(input_dataframes or [])
        self.spent = False

    @property
    def stage_names(self) -> list[str]:
        return [stage.output_table_name for stage in self.all_stages()]

    def enqueue_sql(self, sql: str, output_table_name: str) -> None:
        if self.spent:
            raise ValueError("This pipeline has already been run")
        if output_table_name in self.stage_names:
            raise ValueError(
                f"The pipeline already has a stage named '{output_table_name}'"
            )
        self.stages.append(PipelineStage(sql, output_table_name))

    def enqueue_list_of_sqls(self, sql_list: Iterable[dict[str, str]]) -> None:
        for sql_dict in sql_list:
            self.enqueue_sql(sql_dict["sql"], sql_dict["output_table_name"])

    def break_lineage(self, db_api: DatabaseAPISubClass) -> CTEPipeline:
        """Run the stages queued so far, and start a new pipeline which reads
        the resulting table under its stage name."""
        df = db_api.sql_pipeline_to_phalink_dataframe(self)
        return CTEPipeline(input_dataframes=[df])

    def all_stages(self) -> List[PipelineStage]:
        # inputs materialised under a hashed name are aliased back to their
        # stage name so later sql can refer to them unchanged
        aliases = [
            PipelineStage(f"\nselect * from {df.physical_name}", df.templated_name)
            for df in self.input_dataframes
            if not df.physical_and_template_names_equal
        ]
        return aliases + self.stages

    @property
    def output_table_name(self) -> str:
        return self.all_stages()[-1].output_table_name

    def _log_stages(self, stages: List[PipelineStage]) -> None:
        if not logger.isEnabledFor(7):
            return
        logger.log(7, f"Pipeline producing {stages[-1].output_table_name}:")
        for i, stage in enumerate(stages, start=1):
            logger.log(7, f"    {i}. {stage.describe()}")

    def generate_cte_pipeline_sql(self) -> str:
        stages = self.all_stages()
        if not stages:
            raise ValueError("Cannot generate sql for an empty pipeline")
        self.spent = True
        self._log_stages(stages)

        *ctes, final_stage = stages
        if not ctes:
            return final_stage.sql

        with_sql = ", \n\n".join(
            f"{stage.output_table_name} as ({stage.sql})" for stage in ctes
        )
        return f"\nWITH\n\n{with_sql} \n{final_stage.sql}"
