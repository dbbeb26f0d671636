from __future__ import annotations

import sqlglot
import sqlglot.expressions as exp


class InputColumn:
    """
    Represents a column in the input data to phalink.

    Handles identifier quotes for the user, so the user can e.g. provide column names
    like "first name" or "group" (a sql keyword) without having to escape them.

    The input can be either the raw identifier, or an identifier with
    SQL-specific identifier quotes e.g. '"first name"'.
    """

    def __init__(self, raw_column_name: str, sqlglot_dialect_str: str = "duckdb"):
        self.raw_column_name = raw_column_name
        self.sqlglot_dialect = sqlglot_dialect_str
        self._unquoted_name = self._strip_identifier_quotes(raw_column_name)

    @staticmethod
    def _strip_identifier_quotes(name: str) -> str:
        if len(name) > 1 and name[0] == name[-1] and name[0] in ('"', "`"):
            return name[1:-1]
        return name

    @property
    def unquoted_name(self) -> str:
        return self._unquoted_name

    @property
    def name(self) -> str:
        """The column name, escaped for use in sql"""
        identifier = exp.to_identifier(self._unquoted_name, quoted=True)
        return identifier.sql(dialect=self.sqlglot_dialect)

    def table_name(self, table: str) -> str:
        tree = sqlglot.column(col=self._unquoted_name, table=table, quoted=True)
        return tree.sql(dialect=self.sqlglot_dialect)

    def __eq__(self, other):
        if isinstance(other, InputColumn):
            return self.unquoted_name == other.unquoted_name
        return NotImplemented

    def __hash__(self):
        return hash(self.unquoted_name)

    def __repr__(self):
        return f"InputColumn('{self.unquoted_name}')"
