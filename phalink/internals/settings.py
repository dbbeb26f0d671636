from __future__ import annotations

import json
from copy import deepcopy
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Union

from phalink.internals.exceptions import ErrorLogger, InvalidPhalinkInput
from phalink.internals.input_column import InputColumn
from phalink.internals.misc import dedupe_preserving_order


@dataclass
class PhalinkSettings:
    """
    Configuration for preparing the combined person-period table.

    Column role lists (`name_columns`, `unit_columns` etc.) are explicit, rather
    than inferred from column names, because the two agencies' schemas differ.
    Columns named in a role but absent from the data are skipped. The identity
    columns (`*_column_name`) are required in every input table.
    """

    agencies: List[str] = field(default_factory=lambda: ["KCHA", "SHA"])
    provenance_column_name: str = "agency"

    ssn_column_name: str = "ssn"
    household_ssn_column_name: str = "hh_ssn"
    first_name_column_name: str = "fname"
    middle_name_column_name: str = "mname"
    last_name_column_name: str = "lname"
    dob_column_name: str = "dob"
    gender_column_name: str = "gender"
    activity_date_column_name: str = "act_date"

    name_columns: List[str] = field(
        default_factory=lambda: [
            "fname",
            "mname",
            "lname",
            "hh_fname",
            "hh_mname",
            "hh_lname",
        ]
    )
    unit_columns: List[str] = field(
        default_factory=lambda: [
            "unit_add",
            "unit_apt",
            "unit_apt2",
            "unit_city",
            "unit_state",
        ]
    )
    text_columns: List[str] = field(
        default_factory=lambda: [
            "relcode",
            "prog_type",
            "vouch_type",
            "property_name",
            "property_type",
            "portfolio",
            "cost_pha",
        ]
    )
    date_columns: List[str] = field(
        default_factory=lambda: [
            "act_date",
            "admit_date",
            "dob",
            "reexam_date",
            "hh_dob",
        ]
    )
    numeric_columns: List[str] = field(
        default_factory=lambda: ["bdrm_voucher", "unit_zip"]
    )
    blank_if_null_columns: List[str] = field(
        default_factory=lambda: ["relcode", "cost_pha"]
    )
    value_recodes: Dict[str, Dict[str, str]] = field(
        default_factory=lambda: {
            "cost_pha": {
                "WAOO2": "WA002",
                "WA02": "WA002",
                "W002": "WA002",
                "WA03": "WA003",
            }
        }
    )

    # SSNs printed on sample cards and widely misused
    junk_numeric_identifiers: List[int] = field(
        default_factory=lambda: [78051120, 219099999]
    )
    junk_alternate_identifiers: List[str] = field(
        default_factory=lambda: ["NULL", "UNKNOWN", "NONE", "NA", "N/A", "PENDING"]
    )
    gender_recodes: Dict[str, int] = field(
        default_factory=lambda: {"F": 1, "FEMALE": 1, "M": 2, "MALE": 2}
    )

    surname_most_recent_backfill: bool = False

    def __post_init__(self):
        self._validate()

    def _validate(self) -> None:
        errors = ErrorLogger()

        if not self.agencies:
            errors.log_error("`agencies` must contain at least one agency name.")
        if len(set(self.agencies)) != len(self.agencies):
            errors.log_error(f"`agencies` contains duplicates: {self.agencies}")

        for agency in self.agencies:
            if not isinstance(agency, str) or not agency:
                errors.log_error(f"Agency names must be non-empty strings: {agency!r}")

        for code in self.gender_recodes.values():
            if not isinstance(code, int) or isinstance(code, bool):
                errors.log_error(
                    f"`gender_recodes` values must be integer codes, found {code!r}"
                )

        for column_name, recodes in self.value_recodes.items():
            if not isinstance(recodes, dict):
                errors.log_error(
                    f"`value_recodes` for column '{column_name}' must be a "
                    "dictionary of old value to new value."
                )

        for identifier in self.junk_numeric_identifiers:
            if not isinstance(identifier, int) or isinstance(identifier, bool):
                errors.log_error(
                    "`junk_numeric_identifiers` must contain integers, "
                    f"found {identifier!r}"
                )

        errors.raise_and_log_all_errors(
            exception=InvalidPhalinkInput,
            additional_txt="Please correct your settings before retrying.",
        )

    @property
    def required_column_names(self) -> list[str]:
        return [
            self.ssn_column_name,
            self.household_ssn_column_name,
            self.first_name_column_name,
            self.middle_name_column_name,
            self.last_name_column_name,
            self.dob_column_name,
            self.gender_column_name,
            self.activity_date_column_name,
        ]

    @property
    def name_role_column_names(self) -> list[str]:
        return dedupe_preserving_order(
            [
                self.first_name_column_name,
                self.middle_name_column_name,
                self.last_name_column_name,
            ]
            + self.name_columns
        )

    @property
    def text_role_column_names(self) -> list[str]:
        return dedupe_preserving_order(
            self.name_role_column_names + self.unit_columns + self.text_columns
        )

    def input_column(self, column_name: str) -> InputColumn:
        return InputColumn(column_name, sqlglot_dialect_str="duckdb")

    @property
    def ssn(self) -> InputColumn:
        return self.input_column(self.ssn_column_name)

    @property
    def household_ssn(self) -> InputColumn:
        return self.input_column(self.household_ssn_column_name)

    @property
    def first_name(self) -> InputColumn:
        return self.input_column(self.first_name_column_name)

    @property
    def middle_name(self) -> InputColumn:
        return self.input_column(self.middle_name_column_name)

    @property
    def last_name(self) -> InputColumn:
        return self.input_column(self.last_name_column_name)

    @property
    def dob(self) -> InputColumn:
        return self.input_column(self.dob_column_name)

    @property
    def gender(self) -> InputColumn:
        return self.input_column(self.gender_column_name)

    @property
    def activity_date(self) -> InputColumn:
        return self.input_column(self.activity_date_column_name)

    @property
    def provenance(self) -> InputColumn:
        return self.input_column(self.provenance_column_name)

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_path_or_dict(
        cls, path_or_dict: Union[Path, str, dict[str, Any], None]
    ) -> PhalinkSettings:
        if path_or_dict is None:
            return cls()

        if isinstance(path_or_dict, (str, Path)):
            settings_path = Path(path_or_dict)
            if settings_path.is_file():
                settings_dict = json.loads(settings_path.read_text())
            else:
                raise ValueError(
                    f"Path {settings_path} does not point to a valid file."
                )
        elif isinstance(path_or_dict, dict):
            settings_dict = deepcopy(path_or_dict)
        else:
            raise TypeError(
                f"Argument {path_or_dict=} must be of type `pathlib.Path`, "
                f"`str`, or `dict`.  Found type {type(path_or_dict)}"
            )

        return cls(**settings_dict)
