"""SQL text generation for records.

Values are rendered inline as SQL literals. Text values are wrapped in single
quotes with embedded single quotes doubled; no other escaping is applied, and
where-clauses are passed through verbatim. Callers are responsible for the
content of predicates and identifiers.
"""

from typing import Optional

from ..exceptions import InvalidArgumentError
from ..record import Record
from ..type_mapping import RECORD_IDENTIFIER, FieldKind, FieldValue

SELECT_STATEMENT = "SELECT * FROM "


def quote_text(value: str) -> str:
    """Wrap a string in single quotes, doubling any embedded single quote."""
    return "'" + value.replace("'", "''") + "'"


def render_value(field: FieldValue) -> str:
    """Render a tagged value as a SQL literal."""
    if field.kind is FieldKind.TEXT:
        return quote_text(field.value)
    if field.kind is FieldKind.FLOAT64:
        if not field.is_finite():
            msg = f"Cannot render non-finite float: {field.value}"
            raise InvalidArgumentError(msg)
        return repr(field.value)
    return str(field.value)


def build_insert(record: Record) -> str:
    """
    Generate an INSERT statement for a record.

    Columns and values follow the record's field order:
        INSERT INTO table (column1, column2) VALUES ('abc', 12)

    Raises:
        InvalidArgumentError: If the record has no fields
    """
    if not record.fields:
        msg = f"Cannot insert into {record.table_name}: record has no fields"
        raise InvalidArgumentError(msg)

    columns = ", ".join(record.fields)
    values = ", ".join(render_value(field) for field in record.fields.values())
    return f"INSERT INTO {record.table_name} ({columns}) VALUES ({values})"


def build_update(diff: Record) -> str:
    """
    Generate an UPDATE statement from a diff record, matched by identity.

        UPDATE table SET column1='abc', column2=12 WHERE RecordId = 123

    Raises:
        InvalidArgumentError: If the diff has no fields
    """
    if not diff.fields:
        msg = f"Cannot update {diff.table_name}: empty SET clause"
        raise InvalidArgumentError(msg)

    assignments = ", ".join(f"{name}={render_value(field)}" for name, field in diff.fields.items())
    return f"UPDATE {diff.table_name} SET {assignments} WHERE {RECORD_IDENTIFIER} = {diff.record_id}"


def build_select(table_name: str, where: Optional[str] = None) -> str:
    """Generate SELECT * for a table, with the predicate appended verbatim if given."""
    if not table_name:
        msg = "table_name is None or empty"
        raise InvalidArgumentError(msg)
    if not where:
        return SELECT_STATEMENT + table_name
    return f"{SELECT_STATEMENT}{table_name} WHERE {where}"
