from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Iterable, Mapping

from phalink.internals.exceptions import (
    ErrorLogger,
    InvalidPhalinkInput,
    MissingColumnsException,
)
from phalink.internals.logging_messages import (
    missing_columns_log_str,
    provenance_column_clash_log_str,
    unknown_agency_log_str,
)

if TYPE_CHECKING:
    from phalink.internals.settings import PhalinkSettings

logger = logging.getLogger(__name__)


def find_columns_not_in_input_table(
    input_table_columns: Iterable[str], columns_to_check: Iterable[str]
) -> list[str]:
    """Return the entries of `columns_to_check` absent from the input table,
    in the order they were requested. Comparison is case insensitive, as column
    names are in duckdb."""
    available = {c.lower() for c in input_table_columns}
    return [c for c in columns_to_check if c.lower() not in available]


def validate_agencies(agencies: Iterable[str], settings: PhalinkSettings) -> None:
    errors = ErrorLogger()
    supplied = list(agencies)

    for agency in supplied:
        if agency not in settings.agencies:
            errors.log_error(unknown_agency_log_str(agency, settings.agencies))

    not_supplied = [a for a in settings.agencies if a not in supplied]
    if not_supplied:
        errors.log_error(
            "No input table was supplied for agency(ies): "
            + ", ".join(f"'{a}'" for a in not_supplied)
        )

    errors.raise_and_log_all_errors(exception=InvalidPhalinkInput)


def validate_input_table_columns(
    input_table_columns: Mapping[str, list[str]], settings: PhalinkSettings
) -> None:
    """Check every agency's table against the required identity columns.

    All problems across all agencies are collected and raised together, so the
    caller sees the complete picture from a single run.
    """
    clash_errors = ErrorLogger()
    missing_errors = ErrorLogger()

    provenance = settings.provenance_column_name.lower()

    for agency, columns in input_table_columns.items():
        if provenance in {c.lower() for c in columns}:
            clash_errors.log_error(
                provenance_column_clash_log_str(agency, settings.provenance_column_name)
            )

        missing = find_columns_not_in_input_table(
            columns, settings.required_column_names
        )
        if missing:
            logger.debug(f"Agency {agency} is missing columns: {missing}")
            missing_errors.log_error(missing_columns_log_str(agency, missing))

    clash_errors.raise_and_log_all_errors(exception=InvalidPhalinkInput)
    missing_errors.raise_and_log_all_errors(exception=MissingColumnsException)


def resolve_role_columns(
    role_columns: Iterable[str], available_columns: Iterable[str], role_name: str
) -> list[str]:
    """Restrict a configured column role to the columns actually present.

    Returns the names as they appear in the table, so that quoting in later sql
    matches the physical column.
    """
    available = {c.lower(): c for c in available_columns}
    resolved = []
    for column_name in role_columns:
        actual = available.get(column_name.lower())
        if actual is None:
            logger.debug(
                f"Column `{column_name}` from `{role_name}` is not in the "
                "combined table and will be skipped"
            )
            continue
        resolved.append(actual)
    return resolved
