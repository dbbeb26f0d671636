from abc import ABC, abstractmethod
from collections import UserDict

import pandas as pd

from phalink.internals.duckdb.database_api import DuckDBAPI
from phalink.internals.pipeline import CTEPipeline
from phalink.internals.preparer import PersonPeriodPreparer


class TestHelper(ABC):
    @property
    def PersonPeriodPreparer(self) -> PersonPeriodPreparer:
        return PersonPeriodPreparer

    @property
    @abstractmethod
    def DatabaseAPI(self):
        pass

    def db_api_args(self):
        return {}

    def extra_preparer_args(self):
        # create fresh api each time
        return {"db_api": self.DatabaseAPI(**self.db_api_args())}

    @abstractmethod
    def convert_frame(self, df):
        pass

    def load_frame_from_csv(self, path):
        # keep identifiers such as '078-05-1120' exactly as written
        return pd.read_csv(path, dtype=str, keep_default_na=False, na_values=[""])


class DuckDBTestHelper(TestHelper):
    @property
    def DatabaseAPI(self):
        return DuckDBAPI

    def convert_frame(self, df):
        return df


class PhalinkTestException(Exception):
    pass


class LazyDict(UserDict):
    """
    Like a dict, but values passed are tuples of the form (func, args).
    Getting an item returns the result of the function, so a helper is only
    instantiated when a test asks for it.
    Setting/deleting entries is disallowed to catch errors.
    """

    def __init__(self, **kwargs):
        self.data = {}
        # set of keys we have accessed
        self.accessed = set()
        for key, val in kwargs.items():
            self.data[key] = val

    def __getitem__(self, key):
        func, args = self.data[key]
        self.accessed.add(key)
        return func(*args)

    def __setitem__(self, key, value):
        raise PhalinkTestException(
            "LazyDict does not support setting values. "
            "Did you mean to read value instead?"
        )

    def __delitem__(self, key):
        raise PhalinkTestException(
            "LazyDict does not support deleting items. "
            "Did you mean to read value instead?"
        )


def person_period_rows(**overrides):
    """A single raw tenancy row with every required column filled in."""
    row = {
        "ssn": "123-45-6789",
        "hh_ssn": "123-45-6789",
        "fname": "JOHN",
        "mname": "",
        "lname": "SMITH",
        "dob": "1980-01-31",
        "gender": "M",
        "act_date": "2015-06-01",
    }
    row.update(overrides)
    return row


def agency_frames(kcha_rows, sha_rows=None):
    """Input tables keyed by agency, with an empty SHA table by default."""
    kcha = pd.DataFrame(kcha_rows)
    if sha_rows:
        sha = pd.DataFrame(sha_rows)
    else:
        sha = pd.DataFrame(columns=kcha.columns).astype(str)
    return {"KCHA": kcha, "SHA": sha}


def run_stage_sqls(db_api, sqls, input_table, input_table_name="input_rows"):
    """Register `input_table` and run a list of stage sqls over it, returning
    the final table's records."""
    db_api.register(input_table, input_table_name, overwrite=True)
    pipeline = CTEPipeline()
    pipeline.enqueue_list_of_sqls(sqls)
    return db_api.sql_pipeline_to_phalink_dataframe(pipeline).as_record_dict()


def records_by(records, key):
    return {r[key]: r for r in records}
