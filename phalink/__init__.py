from sys import version_info
from warnings import warn

from phalink.internals.column_expression import ColumnExpression
from phalink.internals.duckdb.database_api import DuckDBAPI
from phalink.internals.exceptions import InvalidPhalinkInput, PhalinkException
from phalink.internals.preparer import PersonPeriodPreparer
from phalink.internals.settings import PhalinkSettings

_LOWEST_SUPPORTED_MINOR_VERSION = 10

if (installed_minor_version := version_info.minor) < _LOWEST_SUPPORTED_MINOR_VERSION:
    warn(
        (
            f"Python 3.{installed_minor_version} has reached end-of-life.  "
            "Future releases of phalink may no longer be compatible with "
            "this python version."
        ),
        category=DeprecationWarning,
        stacklevel=2,
    )

__version__ = "0.3.0"


__all__ = [
    "ColumnExpression",
    "DuckDBAPI",
    "InvalidPhalinkInput",
    "PersonPeriodPreparer",
    "PhalinkException",
    "PhalinkSettings",
]
