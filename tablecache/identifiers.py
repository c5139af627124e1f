"""Table references and cache key canonicalization."""

from dataclasses import dataclass


@dataclass(frozen=True)
class TableRef:
    """A table name, optionally qualified by schema."""

    name: str
    schema: str | None = None

    def __str__(self) -> str:
        return f"{self.schema}.{self.name}" if self.schema else self.name


def parse_table_ref(value: "TableRef | tuple[str, str] | str") -> TableRef:
    """Build a TableRef from a TableRef, a (schema, name) tuple or a "schema.name" string."""
    if isinstance(value, TableRef):
        schema, name = value.schema, value.name
    elif isinstance(value, tuple):
        if len(value) != 2:
            raise ValueError(f"Expected (schema, name) tuple, got {value!r}")
        schema, name = value
    elif isinstance(value, str):
        schema, dot, name = value.partition(".")
        if not dot:
            schema, name = None, schema
    else:
        raise TypeError(f"Unsupported table reference: {value!r}")

    # Surrounding whitespace is not part of an identifier.
    name = name.strip() if name else ""
    if not name:
        raise ValueError(f"Table name must not be empty: {value!r}")
    if schema is not None:
        schema = schema.strip()
        if not schema:
            raise ValueError(f"Schema name must not be empty: {value!r}")
    return TableRef(name=name, schema=schema)


def quote_identifier(name: str) -> str:
    """Quote a single SQL identifier."""
    return '"' + name.replace('"', '""') + '"'


def quote_schema_table(value: "TableRef | tuple[str, str] | str") -> str:
    """Canonical, schema-qualified quoted name used as the cache key."""
    ref = parse_table_ref(value)
    if ref.schema:
        return f"{quote_identifier(ref.schema)}.{quote_identifier(ref.name)}"
    return quote_identifier(ref.name)
