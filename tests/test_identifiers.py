import pandas as pd
import pytest

from phalink.internals.dialects import PhalinkDialect
from phalink.internals.identifiers import classify_identifiers_sqls
from phalink.internals.settings import PhalinkSettings

from .decorator import mark_with_dialects_excluding
from .helpers import records_by, run_stage_sqls

IDENTIFIER_COLUMNS = [
    "ssn_clean",
    "ssn_alt",
    "ssn_is_junk",
    "ssn_alt_is_junk",
]


def _classify(db_api, ssns, settings=None, hh_ssns=None):
    settings = settings or PhalinkSettings()
    if hh_ssns is None:
        hh_ssns = ssns
    df = pd.DataFrame(
        {
            "id": list(range(len(ssns))),
            "ssn": pd.Series(ssns, dtype=object),
            "hh_ssn": pd.Series(hh_ssns, dtype=object),
        }
    )
    sqls = classify_identifiers_sqls(
        settings, PhalinkDialect.from_string("duckdb"), input_table_name="input_rows"
    )
    records = run_stage_sqls(db_api, sqls, df)
    return [records_by(records, "id")[i] for i in range(len(ssns))]


@mark_with_dialects_excluding()
def test_numeric_and_alternate_split(test_helpers, dialect):
    helper = test_helpers[dialect]
    db_api = helper.DatabaseAPI(**helper.db_api_args())

    numeric, lettered, blank, accented = _classify(
        db_api, ["123-45-6789", "A12-34-567", "", "12345678\u00c9"]
    )

    assert numeric["ssn_clean"] == 123456789
    assert numeric["ssn_alt"] == ""
    assert numeric["ssn_is_junk"] is False

    assert lettered["ssn_clean"] is None
    assert lettered["ssn_alt"] == "A1234567"
    assert lettered["ssn_alt_is_junk"] is False

    assert blank["ssn_clean"] is None
    assert blank["ssn_alt"] == ""
    assert blank["ssn_is_junk"] is True
    assert blank["ssn_alt_is_junk"] is True

    # any alphabet counts as a letter, so the raw value is kept
    assert accented["ssn_clean"] is None
    assert accented["ssn_alt"] == "12345678\u00c9"
    assert accented["ssn_alt_is_junk"] is False


@mark_with_dialects_excluding()
def test_household_identifier_classified_independently(test_helpers, dialect):
    helper = test_helpers[dialect]
    db_api = helper.DatabaseAPI(**helper.db_api_args())

    (row,) = _classify(db_api, ["123456789"], hh_ssns=["HH-0001"])

    assert row["ssn_clean"] == 123456789
    assert row["household_ssn_clean"] is None
    assert row["household_ssn_alt"] == "HH0001"
    assert row["household_ssn_is_junk"] is True
    assert row["household_ssn_alt_is_junk"] is False


@mark_with_dialects_excluding()
@pytest.mark.parametrize(
    "ssn",
    [
        None,
        "0",
        "000000000",
        "000-00-0000",
        "111111111",
        "999-99-9999",
        "987654321",
        # configured placeholder
        "078-05-1120",
    ],
)
def test_junk_numeric_identifiers(test_helpers, dialect, ssn):
    helper = test_helpers[dialect]
    db_api = helper.DatabaseAPI(**helper.db_api_args())

    (row,) = _classify(db_api, [ssn])
    assert row["ssn_is_junk"] is True
    assert row["ssn_alt_is_junk"] is True


@mark_with_dialects_excluding()
@pytest.mark.parametrize("ssn", ["123456789", "123-45-6789", "532-11-8765"])
def test_usable_numeric_identifiers(test_helpers, dialect, ssn):
    helper = test_helpers[dialect]
    db_api = helper.DatabaseAPI(**helper.db_api_args())

    (row,) = _classify(db_api, [ssn])
    assert row["ssn_is_junk"] is False


@mark_with_dialects_excluding()
@pytest.mark.parametrize("ssn", ["XXXXXXXXX", "A", "UNKNOWN", "unknown", "NULL"])
def test_junk_alternate_identifiers(test_helpers, dialect, ssn):
    helper = test_helpers[dialect]
    db_api = helper.DatabaseAPI(**helper.db_api_args())

    (row,) = _classify(db_api, [ssn])
    assert row["ssn_clean"] is None
    assert row["ssn_alt_is_junk"] is True


@mark_with_dialects_excluding()
def test_configured_placeholders(test_helpers, dialect):
    helper = test_helpers[dialect]
    db_api = helper.DatabaseAPI(**helper.db_api_args())

    settings = PhalinkSettings(
        junk_numeric_identifiers=[123121234],
        junk_alternate_identifiers=["TEMP"],
    )
    numeric, alternate, default_placeholder = _classify(
        db_api, ["123-12-1234", "temp", "078-05-1120"], settings=settings
    )
    assert numeric["ssn_is_junk"] is True
    assert alternate["ssn_alt_is_junk"] is True
    # replacing the list drops the default placeholders
    assert default_placeholder["ssn_is_junk"] is False


@mark_with_dialects_excluding()
def test_classification_is_idempotent(test_helpers, dialect):
    helper = test_helpers[dialect]
    db_api = helper.DatabaseAPI(**helper.db_api_args())

    raw = ["123-45-6789", "000-00-0000", "A1234567", "987654321", None, "ZZZ"]
    first_pass = _classify(db_api, raw)

    # feed each cleaned value back in as a raw identifier
    reclassified_input = [
        r["ssn_alt"] if r["ssn_alt"] else r["ssn_clean"] for r in first_pass
    ]
    reclassified_input = [None if v is None else str(v) for v in reclassified_input]
    second_pass = _classify(db_api, reclassified_input)

    for first, second in zip(first_pass, second_pass):
        for column in IDENTIFIER_COLUMNS:
            assert first[column] == second[column]

    # and classification doesn't vary between runs
    assert _classify(db_api, raw) == first_pass
