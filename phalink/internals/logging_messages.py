def execute_sql_logging_message_info(templated_name, physical_name):
    return (
        f"Executing sql to create "
        f"{templated_name} "
        f"as physical name {physical_name}"
    )


def log_sql(sql):
    return "\n------Start SQL---------\n" f"{sql}\n" "-------End SQL-----------\n"


# Error Messages
def _format_log_string(log_str: list[str]) -> str:
    log = "\n    ".join(log_str)
    return f"\n    {log}\n"


def missing_columns_log_str(agency: str, missing_columns: list[str]) -> str:
    cols = ", ".join(f"`{c}`" for c in missing_columns)
    return _format_log_string(
        [
            f"The input table for agency '{agency}' is missing the",
            f"following required column(s): {cols}.",
            "Either add the column(s) to the input table or point the",
            "corresponding `*_column_name` setting at the right column.",
        ]
    )


def unknown_agency_log_str(agency: str, valid_agencies: list[str]) -> str:
    valid = ", ".join(f"'{a}'" for a in valid_agencies)
    return _format_log_string(
        [
            f"'{agency}' is not a recognised agency.",
            f"Input tables must be keyed by one of: {valid}.",
        ]
    )


def provenance_column_clash_log_str(agency: str, column_name: str) -> str:
    return _format_log_string(
        [
            f"The input table for agency '{agency}' already contains a",
            f"column named `{column_name}`, which is reserved for the",
            "provenance tag. Rename it, or set `provenance_column_name`.",
        ]
    )
