"""Schema-less, kind-tagged record container."""

from typing import Any, Iterator, Optional

from .exceptions import FieldNotFoundError, InvalidArgumentError, TypeMismatchError
from .type_mapping import FieldKind, FieldPrimitive, FieldValue


class Record:
    """
    In-memory representation of one table row.

    Fields are kept in insertion order so generated SQL lists columns
    deterministically. Each field holds a FieldValue, so a name always has
    exactly one kind and one value.
    """

    def __init__(self, table_name: str, is_new_to_database: bool = True):
        if not table_name:
            msg = "table_name is None or empty"
            raise InvalidArgumentError(msg)
        self._table_name = table_name
        self._fields: dict[str, FieldValue] = {}
        self.is_modified = True
        self.is_new_to_database = is_new_to_database
        self.record_id = 0

    @property
    def table_name(self) -> str:
        return self._table_name

    @property
    def fields(self) -> dict[str, FieldValue]:
        """The live field mapping. Callers add or replace entries, never remove."""
        return self._fields

    def kinds(self) -> dict[str, FieldKind]:
        return {name: field.kind for name, field in self._fields.items()}

    def values(self) -> dict[str, FieldPrimitive]:
        return {name: field.value for name, field in self._fields.items()}

    def set_field(self, name: str, value: Any, kind: Optional[FieldKind] = None) -> None:
        """
        Store a value under a field name, replacing any previous value and kind.

        Args:
            name: Field (column) name
            value: A str, int or float, or a ready FieldValue
            kind: Explicit kind; inferred from the value when omitted

        Raises:
            InvalidArgumentError: If the name is empty or the value does not fit the kind
        """
        if not name:
            msg = "field name is None or empty"
            raise InvalidArgumentError(msg)

        if isinstance(value, FieldValue):
            if kind is not None and kind is not value.kind:
                msg = f"{name}: FieldValue kind {value.kind.name} conflicts with {kind.name}"
                raise InvalidArgumentError(msg)
            field = value
        elif kind is None:
            field = FieldValue.infer(value)
        else:
            field = FieldValue(kind, value)

        self._fields[name] = field
        self.is_modified = True

    def get_raw_field(self, name: str) -> FieldValue:
        """Return the tagged value of a field."""
        try:
            return self._fields[name]
        except KeyError:
            raise FieldNotFoundError(name) from None

    def get_field(self, name: str, expected_kind: FieldKind) -> FieldPrimitive:
        """
        Return the value of a field, checking its kind.

        Raises:
            FieldNotFoundError: If the field is absent
            TypeMismatchError: If the stored kind is not expected_kind
        """
        field = self.get_raw_field(name)
        if field.kind is not expected_kind:
            raise TypeMismatchError(name, expected_kind, field.kind)
        return field.value

    def get_text(self, name: str) -> str:
        return self.get_field(name, FieldKind.TEXT)

    def get_int32(self, name: str) -> int:
        return self.get_field(name, FieldKind.INT32)

    def get_int64(self, name: str) -> int:
        return self.get_field(name, FieldKind.INT64)

    def get_float64(self, name: str) -> float:
        return self.get_field(name, FieldKind.FLOAT64)

    def has_field(self, name: str) -> bool:
        return name in self._fields

    def __contains__(self, name) -> bool:
        return name in self._fields

    def __iter__(self) -> Iterator[str]:
        return iter(self._fields)

    def __len__(self) -> int:
        return len(self._fields)

    def format_fields(self) -> list[str]:
        """Render each field as a '<name> <value>' line, in insertion order."""
        lines = []
        for name, field in self._fields.items():
            if field.kind is FieldKind.FLOAT64:
                lines.append(f"{name} {field.value!r}")
            else:
                lines.append(f"{name} {field.value}")
        return lines

    def print_record(self) -> None:
        for line in self.format_fields():
            print(line)

    def __repr__(self):
        state = "new" if self.is_new_to_database else f"{self.record_id}"
        return f"Record({self._table_name!r}, {state}, fields={self.values()!r})"
