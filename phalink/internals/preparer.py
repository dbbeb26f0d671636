from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Any, Dict

from phalink.internals.combine import (
    PERSON_PERIOD_ID_COLUMN,
    SOURCE_ROW_NUMBER_COLUMN,
    combine_agency_tables_sqls,
    register_input_tables,
)
from phalink.internals.database_api import (
    AcceptableInputTableType,
    DatabaseAPISubClass,
)
from phalink.internals.field_normalizer import normalise_fields_sql
from phalink.internals.identifiers import classify_identifiers_sqls
from phalink.internals.identity_aggregates import (
    USABLE_IDENTITY_FLAG,
    identity_aggregates_sqls,
)
from phalink.internals.misc import dedupe_preserving_order, parse_duration
from phalink.internals.name_cleaning import repair_name_punctuation_sql
from phalink.internals.name_decomposer import decompose_names_sqls
from phalink.internals.name_keys import generate_name_keys_sql
from phalink.internals.phalink_dataframe import PhalinkDataFrame
from phalink.internals.pipeline import CTEPipeline
from phalink.internals.settings import PhalinkSettings
from phalink.internals.settings_validation.schema_validation import (
    resolve_role_columns,
    validate_agencies,
    validate_input_table_columns,
)

logger = logging.getLogger(__name__)


class PersonPeriodPreparer:
    """Combines the agencies' tenancy tables into a single person-period table
    and derives the identity columns used to link people across time and agency.

    Examples:
        ```py
        from phalink import DuckDBAPI, PersonPeriodPreparer

        preparer = PersonPeriodPreparer(
            {"KCHA": kcha_df, "SHA": sha_df},
            settings={},
            db_api=DuckDBAPI(),
        )
        person_periods = preparer.prepare()
        person_periods.to_parquet("pha_combined.parquet")
        ```
    """

    def __init__(
        self,
        input_tables: Dict[str, AcceptableInputTableType],
        settings: PhalinkSettings | dict[str, Any] | Path | str | None,
        db_api: DatabaseAPISubClass,
        set_up_basic_logging: bool = True,
    ):
        """
        Register the input tables and check they can be prepared.

        Args:
            input_tables (dict): Mapping of agency name (e.g. 'KCHA') to that
                agency's table. Tables can be pandas dataframes, pyarrow tables,
                lists of records, or the name of a table already in the database.
            settings (PhalinkSettings | dict | Path | str | None): A
                `PhalinkSettings`, a dictionary of settings, or a path to a json
                file of settings. None uses the defaults.
            db_api (DatabaseAPI): The backend that will run the sql, e.g.
                `DuckDBAPI()`.
            set_up_basic_logging (bool, optional): If true, sets up basic logging
                so that phalink sends messages at INFO level to stdout. Defaults
                to True.

        Raises:
            InvalidPhalinkInput: If an agency is unknown or missing, or any input
                table lacks a required column. All problems are reported at once.
        """
        if set_up_basic_logging:
            logging.basicConfig(
                format="%(message)s",
            )
            phalink_logger = logging.getLogger("phalink")
            phalink_logger.setLevel(logging.INFO)

        if not isinstance(settings, PhalinkSettings):
            settings = PhalinkSettings.from_path_or_dict(settings)
        self._settings = settings
        self._db_api = db_api

        validate_agencies(input_tables.keys(), self._settings)
        self._input_tables_dict = register_input_tables(input_tables, self._db_api)
        validate_input_table_columns(
            {
                agency: df.column_names
                for agency, df in self._input_tables_dict.items()
            },
            self._settings,
        )

    @property
    def settings(self) -> PhalinkSettings:
        return self._settings

    @property
    def debug_mode(self) -> bool:
        return self._db_api.debug_mode

    @debug_mode.setter
    def debug_mode(self, value: bool) -> None:
        self._db_api.debug_mode = value

    def _combined_column_names(self) -> list[str]:
        columns = [
            PERSON_PERIOD_ID_COLUMN,
            self._settings.provenance_column_name,
            SOURCE_ROW_NUMBER_COLUMN,
        ]
        for df in self._input_tables_dict.values():
            columns.extend(df.column_names)
        return dedupe_preserving_order(columns)

    def _enqueue_row_level_stages(self, pipeline: CTEPipeline) -> CTEPipeline:
        settings = self._settings
        sql_dialect = self._db_api.sql_dialect
        combined_columns = self._combined_column_names()

        pipeline.enqueue_list_of_sqls(
            combine_agency_tables_sqls(self._input_tables_dict, settings)
        )
        pipeline.enqueue_list_of_sqls(
            [normalise_fields_sql(combined_columns, settings, sql_dialect)]
        )
        pipeline.enqueue_list_of_sqls(classify_identifiers_sqls(settings, sql_dialect))

        name_columns = resolve_role_columns(
            settings.name_role_column_names, combined_columns, "name_columns"
        )
        pipeline.enqueue_list_of_sqls(
            [repair_name_punctuation_sql(name_columns, sql_dialect)]
        )
        pipeline.enqueue_list_of_sqls(decompose_names_sqls(settings, sql_dialect))
        pipeline.enqueue_list_of_sqls([generate_name_keys_sql(sql_dialect)])
        return pipeline

    def _output_order_by(self) -> str:
        settings = self._settings
        return ", ".join(
            [
                "household_ssn_clean NULLS LAST",
                "household_ssn_alt NULLS LAST",
                "ssn_clean NULLS LAST",
                "ssn_alt NULLS LAST",
                f"{settings.activity_date.name} NULLS LAST",
                PERSON_PERIOD_ID_COLUMN,
            ]
        )

    def prepare(self) -> PhalinkDataFrame:
        """
        Run every stage and return the combined person-period table.

        The output has one row per input row, ordered by household identifier,
        person identifier, activity date and `person_period_id`, so repeated
        runs over the same inputs give identical tables.

        Returns:
            PhalinkDataFrame: The prepared table. Use `as_pandas_dataframe()`
                to retrieve it, or `to_parquet()` / `to_csv()` to save it.
        """
        start_time = time.time()
        settings = self._settings
        sql_dialect = self._db_api.sql_dialect

        logger.info("----- Preparing person-period rows -----")
        pipeline = CTEPipeline()
        pipeline = self._enqueue_row_level_stages(pipeline)

        # Aggregates read the row level table many times, so materialise it once
        pipeline = pipeline.break_lineage(self._db_api)
        logger.info("Row level cleaning complete, computing per-identity aggregates")

        pipeline.enqueue_list_of_sqls(identity_aggregates_sqls(settings, sql_dialect))

        sql = f"""
        select * exclude ({USABLE_IDENTITY_FLAG})
        from __phalink__df_identity_aggregates
        order by {self._output_order_by()}
        """
        pipeline.enqueue_sql(sql, "__phalink__person_periods")

        person_periods = self._db_api.sql_pipeline_to_phalink_dataframe(pipeline)

        run_time = parse_duration(time.time() - start_time)
        logger.info(f"Person-period table prepared in {run_time}")
        return person_periods
