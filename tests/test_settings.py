import json

import pandas as pd
import pytest

from phalink.internals.exceptions import (
    InvalidPhalinkInput,
    MissingColumnsException,
    PhalinkException,
)
from phalink.internals.preparer import PersonPeriodPreparer
from phalink.internals.settings import PhalinkSettings

from .decorator import mark_with_dialects_excluding
from .helpers import agency_frames, person_period_rows


def test_default_settings():
    settings = PhalinkSettings()
    assert settings.agencies == ["KCHA", "SHA"]
    assert settings.required_column_names == [
        "ssn",
        "hh_ssn",
        "fname",
        "mname",
        "lname",
        "dob",
        "gender",
        "act_date",
    ]
    assert settings.value_recodes["cost_pha"]["WAOO2"] == "WA002"
    assert settings.surname_most_recent_backfill is False


def test_settings_from_dict_and_path(tmp_path):
    settings_dict = {
        "agencies": ["KCHA", "SHA"],
        "ssn_column_name": "person_ssn",
        "surname_most_recent_backfill": True,
    }
    from_dict = PhalinkSettings.from_path_or_dict(settings_dict)
    assert from_dict.ssn_column_name == "person_ssn"
    assert from_dict.surname_most_recent_backfill is True

    path = tmp_path / "settings.json"
    path.write_text(json.dumps(settings_dict))
    assert PhalinkSettings.from_path_or_dict(path) == from_dict
    assert PhalinkSettings.from_path_or_dict(str(path)) == from_dict

    assert PhalinkSettings.from_path_or_dict(None) == PhalinkSettings()

    # a full settings dump can be saved and loaded back
    path.write_text(json.dumps(from_dict.as_dict()))
    assert PhalinkSettings.from_path_or_dict(path) == from_dict


def test_settings_from_bad_inputs(tmp_path):
    with pytest.raises(ValueError):
        PhalinkSettings.from_path_or_dict(tmp_path / "not_there.json")

    with pytest.raises(TypeError):
        PhalinkSettings.from_path_or_dict(42)

    with pytest.raises(TypeError):
        PhalinkSettings.from_path_or_dict({"not_a_setting": 1})


def test_invalid_setting_values_reported_together():
    with pytest.raises(InvalidPhalinkInput) as excinfo:
        PhalinkSettings(
            agencies=["KCHA", "KCHA"],
            gender_recodes={"F": "female"},
            junk_numeric_identifiers=["000000000"],
        )
    message = str(excinfo.value)
    assert "duplicates" in message
    assert "gender_recodes" in message
    assert "junk_numeric_identifiers" in message
    assert isinstance(excinfo.value, PhalinkException)


@mark_with_dialects_excluding()
def test_missing_columns_reported_for_every_agency(test_helpers, dialect):
    helper = test_helpers[dialect]

    kcha = pd.DataFrame([person_period_rows()]).drop(columns=["dob", "gender"])
    sha = pd.DataFrame([person_period_rows()]).drop(columns=["hh_ssn"])

    with pytest.raises(MissingColumnsException) as excinfo:
        PersonPeriodPreparer(
            {"KCHA": kcha, "SHA": sha},
            settings=None,
            **helper.extra_preparer_args(),
        )
    message = str(excinfo.value)
    assert "'KCHA'" in message and "`dob`" in message and "`gender`" in message
    assert "'SHA'" in message and "`hh_ssn`" in message


@mark_with_dialects_excluding()
def test_configured_column_names_are_required(test_helpers, dialect):
    helper = test_helpers[dialect]

    with pytest.raises(MissingColumnsException) as excinfo:
        PersonPeriodPreparer(
            agency_frames([person_period_rows()]),
            settings={"ssn_column_name": "ssn_number"},
            **helper.extra_preparer_args(),
        )
    assert "`ssn_number`" in str(excinfo.value)


@mark_with_dialects_excluding()
def test_renamed_name_columns_are_cleaned(test_helpers, dialect):
    helper = test_helpers[dialect]
    row = person_period_rows(fname="john a", lname="smith, jr")
    row["first"] = row.pop("fname")
    row["last"] = row.pop("lname")

    preparer = PersonPeriodPreparer(
        agency_frames([row]),
        settings={"first_name_column_name": "first", "last_name_column_name": "last"},
        **helper.extra_preparer_args(),
    )
    (record,) = preparer.prepare().as_record_dict()

    assert record["first"] == "JOHN A"
    assert record["last"] == "SMITH JR"
    assert record["first_name_clean"] == "JOHN"
    assert record["middle_name_clean"] == "A"
    assert record["last_name_clean"] == "SMITH"
    assert record["last_name_suffix"] == "JR"


@mark_with_dialects_excluding()
def test_unknown_and_missing_agencies(test_helpers, dialect):
    helper = test_helpers[dialect]
    frame = pd.DataFrame([person_period_rows()])

    with pytest.raises(InvalidPhalinkInput) as excinfo:
        PersonPeriodPreparer(
            {"KCHA": frame, "THA": frame},
            settings=None,
            **helper.extra_preparer_args(),
        )
    message = str(excinfo.value)
    assert "'THA' is not a recognised agency" in message
    assert "'SHA'" in message


@mark_with_dialects_excluding()
def test_provenance_column_clash(test_helpers, dialect):
    helper = test_helpers[dialect]
    frame = pd.DataFrame([person_period_rows(agency="KCHA")])

    with pytest.raises(InvalidPhalinkInput) as excinfo:
        PersonPeriodPreparer(
            {"KCHA": frame, "SHA": frame},
            settings=None,
            **helper.extra_preparer_args(),
        )
    assert "`agency`" in str(excinfo.value)

    # renaming the provenance column resolves it
    PersonPeriodPreparer(
        {"KCHA": frame, "SHA": frame},
        settings={"provenance_column_name": "source_agency"},
        **helper.extra_preparer_args(),
    )
