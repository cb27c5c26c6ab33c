"""Field kinds, tagged values and database type mapping."""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Union

from .exceptions import InvalidArgumentError

# Primary key column used as the identity of every managed table
RECORD_IDENTIFIER = "RecordId"

INT32_MIN = -(2**31)
INT32_MAX = 2**31 - 1
INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1


class FieldKind(Enum):
    """The four value kinds a record field can hold."""

    TEXT = "text"
    INT32 = "int32"
    INT64 = "int64"
    FLOAT64 = "float64"


FieldPrimitive = Union[str, int, float]


def _is_integer(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _coerce_text(value: Any) -> str:
    if not isinstance(value, str):
        msg = f"TEXT value must be str, got {type(value).__name__}"
        raise InvalidArgumentError(msg)
    return value


def _coerce_int32(value: Any) -> int:
    if not _is_integer(value):
        msg = f"INT32 value must be int, got {type(value).__name__}"
        raise InvalidArgumentError(msg)
    if not INT32_MIN <= value <= INT32_MAX:
        msg = f"INT32 value out of range: {value}"
        raise InvalidArgumentError(msg)
    return value


def _coerce_int64(value: Any) -> int:
    if not _is_integer(value):
        msg = f"INT64 value must be int, got {type(value).__name__}"
        raise InvalidArgumentError(msg)
    if not INT64_MIN <= value <= INT64_MAX:
        msg = f"INT64 value out of range: {value}"
        raise InvalidArgumentError(msg)
    return value


def _coerce_float64(value: Any) -> float:
    if not (_is_integer(value) or isinstance(value, float)):
        msg = f"FLOAT64 value must be float, got {type(value).__name__}"
        raise InvalidArgumentError(msg)
    return float(value)


_COERCERS = {
    FieldKind.TEXT: _coerce_text,
    FieldKind.INT32: _coerce_int32,
    FieldKind.INT64: _coerce_int64,
    FieldKind.FLOAT64: _coerce_float64,
}

# Value used when a database column holds NULL
KIND_DEFAULTS = {
    FieldKind.TEXT: "",
    FieldKind.INT32: 0,
    FieldKind.INT64: 0,
    FieldKind.FLOAT64: 0.0,
}


@dataclass(frozen=True)
class FieldValue:
    """A value tagged with its field kind."""

    kind: FieldKind
    value: FieldPrimitive

    def __post_init__(self):
        if not isinstance(self.kind, FieldKind):
            msg = f"Unknown field kind: {self.kind!r}"
            raise InvalidArgumentError(msg)
        if self.value is None:
            msg = f"{self.kind.name} value must not be None"
            raise InvalidArgumentError(msg)
        object.__setattr__(self, "value", _COERCERS[self.kind](self.value))

    @classmethod
    def infer(cls, value: Any) -> "FieldValue":
        """
        Tag a plain Python value with the narrowest matching kind.

        str maps to TEXT, float to FLOAT64, and int to INT32 when it fits in
        32 bits, otherwise INT64.
        """
        if isinstance(value, str):
            return cls(FieldKind.TEXT, value)
        if isinstance(value, float):
            return cls(FieldKind.FLOAT64, value)
        if _is_integer(value):
            if INT32_MIN <= value <= INT32_MAX:
                return cls(FieldKind.INT32, value)
            return cls(FieldKind.INT64, value)
        msg = f"Cannot infer field kind for {type(value).__name__} value: {value!r}"
        raise InvalidArgumentError(msg)

    @classmethod
    def from_db(cls, kind: FieldKind, raw: Any) -> "FieldValue":
        """Build a value read from a database column, replacing NULL with the kind default."""
        if raw is None:
            return cls(kind, KIND_DEFAULTS[kind])
        if kind is FieldKind.TEXT:
            return cls(kind, str(raw))
        if kind is FieldKind.FLOAT64:
            return cls(kind, float(raw))
        return cls(kind, int(raw))

    def is_finite(self) -> bool:
        return self.kind is not FieldKind.FLOAT64 or math.isfinite(self.value)


@dataclass
class ColumnMetadata:
    """Name and declared database type of a single column."""

    name: str
    db_type: str

    def __eq__(self, other):
        """Compare columns ignoring case differences."""
        if not isinstance(other, ColumnMetadata):
            return False
        return self.name.lower() == other.name.lower() and self.db_type.upper() == other.db_type.upper()

    def __hash__(self):
        """Hash columns using case-normalized values to match __eq__."""
        return hash((self.name.lower(), self.db_type.upper()))


# Canonical column type to field kind mapping
COLUMN_KIND_MAP = {
    "VARCHAR": FieldKind.TEXT,
    "INT": FieldKind.INT32,
    "BIGINT": FieldKind.INT64,
    "DOUBLE": FieldKind.FLOAT64,
}

# Type alias mappings from vendor type names to canonical names
SQLITE_TYPE_ALIASES = {
    "VARCHAR": {"VARCHAR", "TEXT"},
    "INT": {"INT"},
    # SQLite stores every INTEGER as a 64-bit value
    "BIGINT": {"BIGINT", "INTEGER"},
    "DOUBLE": {"DOUBLE", "REAL"},
}

POSTGRESQL_TYPE_ALIASES = {
    "VARCHAR": {"VARCHAR", "CHARACTER VARYING", "TEXT"},
    "INT": {"INT", "INTEGER", "INT4"},
    "BIGINT": {"BIGINT", "INT8"},
    "DOUBLE": {"DOUBLE", "DOUBLE PRECISION", "FLOAT8"},
}

TYPE_ALIASES = {
    "sqlite": SQLITE_TYPE_ALIASES,
    "postgresql": POSTGRESQL_TYPE_ALIASES,
    "postgres": POSTGRESQL_TYPE_ALIASES,
}


def normalize_db_type(db_type: str, target_db: Optional[str] = None) -> str:
    """
    Normalize a vendor column type name to its canonical form.

    Handles variations like:
    - varchar(255) vs VARCHAR
    - INTEGER vs BIGINT on SQLite
    - DOUBLE PRECISION vs DOUBLE on PostgreSQL

    Args:
        db_type: The database type string
        target_db: Database type ('sqlite' or 'postgresql'), or None for no aliasing

    Returns:
        Normalized type string
    """
    db_type_clean = db_type.upper().strip()

    # Remove length specifications
    if "(" in db_type_clean:
        db_type_clean = db_type_clean.split("(")[0].strip()

    if target_db is None or target_db.lower() not in TYPE_ALIASES:
        return db_type_clean

    aliases = TYPE_ALIASES[target_db.lower()]

    for canonical_type, variants in aliases.items():
        if db_type_clean in variants:
            return canonical_type

    return db_type_clean


def map_db_type_to_kind(db_type: str, target_db: Optional[str] = None) -> Optional[FieldKind]:
    """
    Map a vendor column type to a field kind.

    Returns:
        The field kind, or None if the type is not supported
    """
    return COLUMN_KIND_MAP.get(normalize_db_type(db_type, target_db))
