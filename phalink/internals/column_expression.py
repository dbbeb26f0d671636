from __future__ import annotations

from copy import copy
from functools import partial
from typing import Protocol, Union

import sqlglot

from phalink.internals.dialects import PhalinkDialect
from phalink.internals.input_column import InputColumn
from phalink.internals.misc import sql_string_literal


class ColumnExpressionOperation(Protocol):
    def __call__(self, name: str, sql_dialect: PhalinkDialect) -> str: ...


class ColumnExpression:
    """
    Builds up a chain of transforms to apply to a column, rendered to sql once the
    dialect is known.

    For example:
        ```py
        col = (
            ColumnExpression("lname")
            .cast_to_string()
            .trim_whitespace()
            .upper()
        )
        col.name  # sql expression for the cleaned column
        ```

    The input can be a bare column name (which will be quoted for you) or an
    arbitrary sql expression e.g. `coalesce(fname, '')`.
    """

    def __init__(
        self,
        sql_expression: Union[str, InputColumn],
        sql_dialect: PhalinkDialect = None,
        is_column: bool = True,
    ):
        if isinstance(sql_expression, InputColumn):
            sql_expression = sql_expression.unquoted_name
        self.raw_sql_expression = sql_expression
        self.is_column = is_column
        self.operations: list[ColumnExpressionOperation] = []
        if sql_dialect is not None:
            self.sql_dialect: PhalinkDialect = sql_dialect

    @classmethod
    def from_sql(
        cls, sql_expression: str, sql_dialect: PhalinkDialect = None
    ) -> "ColumnExpression":
        return cls(sql_expression, sql_dialect=sql_dialect, is_column=False)

    def _clone(self) -> "ColumnExpression":
        clone = copy(self)
        clone.operations = [op for op in self.operations]
        return clone

    def _parse_input_string(self, sql_dialect: PhalinkDialect) -> str:
        if not self.is_column:
            return self.raw_sql_expression
        return InputColumn(
            self.raw_sql_expression, sqlglot_dialect_str=sql_dialect.sqlglot_dialect
        ).name

    def apply_operations(self, name: str, sql_dialect: PhalinkDialect) -> str:
        for op in self.operations:
            name = op(name=name, sql_dialect=sql_dialect)
        return name

    @staticmethod
    def _dialected(template: str, name: str, sql_dialect: PhalinkDialect) -> str:
        sql = sqlglot.parse_one(template).sql(dialect=sql_dialect.sqlglot_dialect)
        return sql.replace("___col___", name)

    def _with_operation(self, op: ColumnExpressionOperation) -> "ColumnExpression":
        clone = self._clone()
        clone.operations.append(op)
        return clone

    def upper(self) -> "ColumnExpression":
        """
        Applies an uppercase transform to the input expression.
        """
        return self._with_operation(partial(self._dialected, "upper(___col___)"))

    def cast_to_string(self) -> "ColumnExpression":
        """
        Applies a cast to string transform to the input expression.
        """
        return self._with_operation(
            partial(self._dialected, "cast(___col___ as varchar)")
        )

    def _regex_replace_dialected(
        self, name: str, pattern: str, replacement: str, sql_dialect: PhalinkDialect
    ) -> str:
        return sql_dialect.regex_replace(name, pattern, replacement)

    def regex_replace(self, pattern: str, replacement: str = "") -> "ColumnExpression":
        """Replaces every match of `pattern` with `replacement`.

        Args:
            pattern (str): The regex pattern to match.
            replacement (str): Text to substitute. Defaults to removing the match.
        """
        op = partial(
            self._regex_replace_dialected, pattern=pattern, replacement=replacement
        )
        return self._with_operation(op)

    def trim_whitespace(self) -> "ColumnExpression":
        """
        Strips leading and trailing whitespace of any kind (tabs, newlines,
        non-breaking spaces), not just the space character.
        """
        return self.regex_replace(r"^[\s\p{Z}]+|[\s\p{Z}]+$")

    def _nullif_dialected(
        self, name: str, null_value: str, sql_dialect: PhalinkDialect
    ) -> str:
        literal = sql_string_literal(null_value)
        return self._dialected(f"nullif(___col___, {literal})", name, sql_dialect)

    def nullif(self, null_value: str) -> "ColumnExpression":
        """
        Converts the given string literal to NULL.
        """
        op = partial(self._nullif_dialected, null_value=null_value)
        return self._with_operation(op)

    def _coalesce_dialected(
        self, name: str, default: str, sql_dialect: PhalinkDialect
    ) -> str:
        literal = sql_string_literal(default)
        return self._dialected(f"coalesce(___col___, {literal})", name, sql_dialect)

    def coalesce(self, default: str = "") -> "ColumnExpression":
        """
        Replaces NULL with the given string literal.
        """
        return self._with_operation(partial(self._coalesce_dialected, default=default))

    def _substr_dialected(
        self, name: str, start: int, length: int, sql_dialect: PhalinkDialect
    ) -> str:
        return self._dialected(
            f"substring(___col___, {start}, {length})", name, sql_dialect
        )

    def substr(self, start: int, length: int) -> "ColumnExpression":
        """
        Takes `length` characters starting from the (one-based) index `start`.
        """
        op = partial(self._substr_dialected, start=start, length=length)
        return self._with_operation(op)

    def _try_parse_date_dialected(
        self, name: str, sql_dialect: PhalinkDialect, date_formats: list[str] = None
    ) -> str:
        return sql_dialect.try_parse_date(name, date_formats=date_formats)

    def try_parse_date(self, date_formats: list[str] = None) -> "ColumnExpression":
        """Parses the input as a date, trying each format in turn.

        Args:
            date_formats (list[str], optional): strptime formats to try.
                Defaults to None, meaning the dialect-specific defaults are used.
        """
        op = partial(self._try_parse_date_dialected, date_formats=date_formats)
        return self._with_operation(op)

    def _try_cast_dialected(
        self, name: str, type_name: str, sql_dialect: PhalinkDialect
    ) -> str:
        return sql_dialect.try_cast(name, type_name)

    def try_cast(self, type_name: str) -> "ColumnExpression":
        """
        Casts to `type_name`, giving NULL rather than an error on failure.
        """
        op = partial(self._try_cast_dialected, type_name=type_name)
        return self._with_operation(op)

    def _soundex_dialected(self, name: str, sql_dialect: PhalinkDialect) -> str:
        return f"{sql_dialect.soundex_function_name}({name})"

    def soundex(self) -> "ColumnExpression":
        return self._with_operation(self._soundex_dialected)

    @property
    def name(self) -> str:
        sql_expression = self._parse_input_string(self.sql_dialect)
        return self.apply_operations(sql_expression, self.sql_dialect)

    @property
    def label(self) -> str:
        if len(self.operations) > 0:
            return "transformed " + self.raw_sql_expression
        else:
            return self.raw_sql_expression

    def __repr__(self):
        return f"ColumnExpression(sql_expression='{self.raw_sql_expression}')"
