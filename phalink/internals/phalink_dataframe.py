from __future__ import annotations

import logging
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import TYPE_CHECKING, Any, Optional

from phalink.internals.input_column import InputColumn

logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from pandas import DataFrame as PandasDataFrame

    from phalink.internals.database_api import DatabaseAPI


class PhalinkDataFrame(ABC):
    """A table held by the backend, such as the prepared person-period table.

    Retrieve its rows with `as_pandas_dataframe()` or `as_record_dict()`, and
    save them with `to_parquet()` or `to_csv()`.

    `templated_name` is the pipeline stage that produced the table, and
    `physical_name` the name of the table in the database.
    """

    def __init__(
        self,
        templated_name: str,
        physical_name: str,
        db_api: DatabaseAPI[Any],
    ):
        self.templated_name = templated_name
        self.physical_name = physical_name
        self.db_api = db_api

    @property
    @abstractmethod
    def columns(self) -> list[InputColumn]:
        pass

    @property
    def column_names(self) -> list[str]:
        return [c.unquoted_name for c in self.columns]

    @property
    def physical_and_template_names_equal(self) -> bool:
        return self.templated_name == self.physical_name

    @abstractmethod
    def as_record_dict(self, limit: Optional[int] = None) -> list[dict[str, Any]]:
        """Return the rows as a list of dictionaries, one per row.

        Args:
            limit (int, optional): Return at most this many rows. Defaults to
                None, meaning all rows.
        """
        pass

    def as_pandas_dataframe(self, limit: Optional[int] = None) -> PandasDataFrame:
        """Return the rows as a pandas dataframe.

        Args:
            limit (int, optional): Return at most this many rows. Defaults to
                None, meaning all rows.
        """
        import pandas as pd

        return pd.DataFrame(self.as_record_dict(limit=limit))

    def _check_output_path(
        self, filepath: str, overwrite: bool, extension: str
    ) -> None:
        if not overwrite and Path(filepath).exists():
            raise FileExistsError(
                f"'{filepath}' already exists. Pass `overwrite=True` to replace "
                "it, or move the existing file first."
            )
        if not filepath.endswith(extension):
            raise SyntaxError(
                f"The filepath '{filepath}' is not a {extension} file. Please "
                f"make sure it ends with `{extension}`."
            )
        directory = os.path.dirname(filepath)
        if directory:
            os.makedirs(directory, exist_ok=True)

    def to_parquet(self, filepath: str | Path, overwrite: bool = False) -> None:
        """Save the table as a parquet file.

        Examples:
            ```py
            person_periods = preparer.prepare()
            person_periods.to_parquet("pha_combined.parquet", overwrite=True)
            ```

        Args:
            filepath (str): Where to write the file. Missing directories are
                created.
            overwrite (bool, optional): Replace the file if it already exists.
                Defaults to False, in which case an existing file raises
                `FileExistsError`.
        """
        raise NotImplementedError("`to_parquet` not implemented for this backend")

    def to_csv(self, filepath: str | Path, overwrite: bool = False) -> None:
        """Save the table as a csv file with a header row.

        Args:
            filepath (str): Where to write the file.
            overwrite (bool, optional): Replace the file if it already exists.
                Defaults to False.
        """
        raise NotImplementedError("`to_csv` not implemented for this backend")

    def __repr__(self):
        return (
            f"PhalinkDataFrame(templated_name='{self.templated_name}', "
            f"physical_name='{self.physical_name}')"
        )
