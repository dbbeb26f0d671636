import pandas as pd
import pytest

from phalink import ColumnExpression
from phalink.internals.dialects import PhalinkDialect
from phalink.internals.exceptions import PhalinkException
from phalink.internals.pipeline import CTEPipeline

from .decorator import mark_with_dialects_excluding


def _select(db_api, table, expressions):
    selects = ", ".join(f"{e.name} as {alias}" for alias, e in expressions.items())
    pipeline = CTEPipeline()
    pipeline.enqueue_sql(
        f"select id, {selects} from {table.physical_name} order by id",
        "__phalink__expression_test",
    )
    return db_api.sql_pipeline_to_phalink_dataframe(pipeline).as_pandas_dataframe()


@mark_with_dialects_excluding()
def test_text_cleaning_chain(test_helpers, dialect):
    df = pd.DataFrame(
        [
            {"id": 1, "name": "  o'brien\t"},
            {"id": 2, "name": " NA "},
            {"id": 3, "name": None},
            {"id": 4, "name": "de la cruz"},
        ]
    )

    helper = test_helpers[dialect]
    db_api = helper.DatabaseAPI(**helper.db_api_args())
    table = db_api.register(helper.convert_frame(df), "names")

    sql_dialect = PhalinkDialect.from_string(dialect)
    cleaned = (
        ColumnExpression("name", sql_dialect=sql_dialect)
        .cast_to_string()
        .trim_whitespace()
        .upper()
        .nullif("NA")
    )
    res = _select(
        db_api,
        table,
        {
            "cleaned": cleaned,
            "squashed": cleaned.regex_replace(r"[[:punct:][:space:]]"),
            "prefix": cleaned.coalesce("").substr(1, 3),
        },
    )

    pd.testing.assert_series_equal(
        res["cleaned"],
        pd.Series(["O'BRIEN", None, None, "DE LA CRUZ"], name="cleaned"),
    )
    pd.testing.assert_series_equal(
        res["squashed"],
        pd.Series(["OBRIEN", None, None, "DELACRUZ"], name="squashed"),
    )
    pd.testing.assert_series_equal(
        res["prefix"], pd.Series(["O'B", "", "", "DE "], name="prefix")
    )


@mark_with_dialects_excluding()
def test_try_cast_and_parse_date(test_helpers, dialect):
    df = pd.DataFrame(
        [
            {"id": 1, "value": "12", "when": "2020-02-29"},
            {"id": 2, "value": "twelve", "when": "2020/03/01"},
            {"id": 3, "value": "12.5", "when": "29/02/2020"},
        ]
    )

    helper = test_helpers[dialect]
    db_api = helper.DatabaseAPI(**helper.db_api_args())
    table = db_api.register(helper.convert_frame(df), "values_table")

    sql_dialect = PhalinkDialect.from_string(dialect)
    res = _select(
        db_api,
        table,
        {
            "as_double": ColumnExpression("value", sql_dialect).try_cast("DOUBLE"),
            "parsed": ColumnExpression("when", sql_dialect).try_parse_date(),
            "day_first_year": ColumnExpression.from_sql(
                "year(try_strptime(\"when\", '%d/%m/%Y'))", sql_dialect
            ),
        },
    )
    records = res.to_dict(orient="records")

    assert records[0]["as_double"] == 12.0
    assert pd.isna(records[1]["as_double"])
    assert records[2]["as_double"] == 12.5

    assert str(records[0]["parsed"])[:10] == "2020-02-29"
    assert str(records[1]["parsed"])[:10] == "2020-03-01"
    assert pd.isna(records[2]["parsed"])
    assert records[2]["day_first_year"] == 2020


def test_column_names_are_quoted():
    sql_dialect = PhalinkDialect.from_string("duckdb")
    expression = ColumnExpression("unit apt", sql_dialect=sql_dialect).upper()
    assert expression.name == 'UPPER("unit apt")'
    assert expression.label == "transformed unit apt"
    assert ColumnExpression("unit apt").label == "unit apt"


def test_expressions_are_immutable():
    sql_dialect = PhalinkDialect.from_string("duckdb")
    base = ColumnExpression("lname", sql_dialect=sql_dialect)
    upper = base.upper()
    assert base.name == '"lname"'
    assert upper.name == 'UPPER("lname")'


def test_unknown_dialect():
    with pytest.raises(ValueError, match="Unknown sql dialect"):
        PhalinkDialect.from_string("sqlserver")


def test_pipeline_stage_names_are_unique():
    pipeline = CTEPipeline()
    pipeline.enqueue_sql("select 1 as a", "__phalink__stage")
    with pytest.raises(ValueError, match="already has a stage"):
        pipeline.enqueue_sql("select 2 as a", "__phalink__stage")


def test_pipeline_cannot_be_rerun(db_api):
    pipeline = CTEPipeline()
    pipeline.enqueue_sql("select 1 as a", "__phalink__first")
    pipeline.enqueue_sql("select a + 1 as b from __phalink__first", "__phalink__second")
    result = db_api.sql_pipeline_to_phalink_dataframe(pipeline)

    assert result.as_record_dict() == [{"b": 2}]
    assert result.templated_name == "__phalink__second"
    with pytest.raises(ValueError, match="already been run"):
        pipeline.enqueue_sql("select 3 as c", "__phalink__third")


def test_backend_errors_name_the_failing_table(db_api):
    pipeline = CTEPipeline()
    pipeline.enqueue_sql("select no_such_column from range(3)", "__phalink__broken")
    with pytest.raises(PhalinkException, match="__phalink__broken"):
        db_api.sql_pipeline_to_phalink_dataframe(pipeline)
