from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Type

from phalink.internals.misc import sql_string_literal


class PhalinkDialect(ABC):
    """The sql spelling of each operation the cleaning stages need.

    Each subclass is a singleton, looked up by name with `from_string`.
    """

    _instances: Dict[Type[PhalinkDialect], PhalinkDialect] = {}
    _registry: Dict[str, Type[PhalinkDialect]] = {}
    # name used by from_string
    _dialect_name_for_factory: str

    def __init_subclass__(cls, **kwargs):
        super().__init_subclass__(**kwargs)
        name = getattr(cls, "_dialect_name_for_factory", None)
        if name is not None:
            if name in PhalinkDialect._registry:
                raise ValueError(f"A dialect named '{name}' is already registered")
            PhalinkDialect._registry[name] = cls

    def __new__(cls, *args, **kwargs):
        if cls not in cls._instances:
            cls._instances[cls] = super().__new__(cls)
        return cls._instances[cls]

    @classmethod
    def from_string(cls, dialect_name: str) -> PhalinkDialect:
        try:
            return cls._registry[dialect_name]()
        except KeyError:
            known = ", ".join(sorted(cls._registry))
            raise ValueError(
                f"Unknown sql dialect '{dialect_name}'. Known dialects: {known}"
            ) from None

    @property
    @abstractmethod
    def sql_dialect_str(self) -> str:
        pass

    @property
    def sqlglot_dialect(self) -> str:
        return self.sql_dialect_str

    def _unsupported(self, operation: str) -> NotImplementedError:
        return NotImplementedError(
            f"Backend '{self.sql_dialect_str}' does not support '{operation}'"
        )

    @property
    def default_date_formats(self) -> List[str]:
        raise self._unsupported("default_date_formats")

    @property
    def soundex_function_name(self) -> str:
        raise self._unsupported("soundex")

    def try_parse_date(
        self, name: str, date_formats: Optional[List[str]] = None
    ) -> str:
        raise self._unsupported("try_parse_date")

    def try_cast(self, name: str, type_name: str) -> str:
        raise self._unsupported("try_cast")

    def regex_replace(self, name: str, pattern: str, replacement: str = "") -> str:
        raise self._unsupported("regex_replace")

    def regex_matches(self, name: str, pattern: str) -> str:
        raise self._unsupported("regex_matches")


class DuckDBDialect(PhalinkDialect):
    _dialect_name_for_factory = "duckdb"

    @property
    def sql_dialect_str(self) -> str:
        return "duckdb"

    @property
    def default_date_formats(self) -> List[str]:
        return ["%Y-%m-%d", "%Y-%m-%d %H:%M:%S", "%Y/%m/%d", "%Y%m%d"]

    @property
    def soundex_function_name(self) -> str:
        # python udf registered by DuckDBAPI
        return "phalink_soundex"

    def try_parse_date(
        self, name: str, date_formats: Optional[List[str]] = None
    ) -> str:
        if date_formats is None:
            date_formats = self.default_date_formats
        # via varchar, so an already parsed date parses again
        attempts = ", ".join(
            f"try_strptime(cast({name} as varchar), {sql_string_literal(fmt)})"
            for fmt in date_formats
        )
        return f"cast(coalesce({attempts}) as date)"

    def try_cast(self, name: str, type_name: str) -> str:
        return f"try_cast({name} as {type_name})"

    def regex_replace(self, name: str, pattern: str, replacement: str = "") -> str:
        pattern = sql_string_literal(pattern)
        replacement = sql_string_literal(replacement)
        return f"regexp_replace({name}, {pattern}, {replacement}, 'g')"

    def regex_matches(self, name: str, pattern: str) -> str:
        return f"regexp_matches({name}, {sql_string_literal(pattern)})"
