"""Parse operator schema strings such as ``"colA:int,colB:string?"``."""

from dataclasses import dataclass


@dataclass(frozen=True)
class SchemaField:
    name: str
    type: str
    is_nullable: bool

    def render(self) -> str:
        return f"{self.name}:{self.type}{'?' if self.is_nullable else ''}"


def parse_schema(schema: str) -> list:
    """Split a raw schema string into ``SchemaField`` entries.

    Fields are comma-separated and split on the first ``:``. A trailing
    ``?`` on either the name or the type marks the field nullable. A field
    without a ``:`` keeps an empty type.
    """
    if not schema or not schema.strip():
        return []

    fields = []
    for raw in schema.split(","):
        raw = raw.strip()
        if not raw:
            continue
        name, _, type_ = raw.partition(":")
        name = name.strip()
        type_ = type_.strip()
        is_nullable = name.endswith("?") or type_.endswith("?")
        if name.endswith("?"):
            name = name[:-1]
        if type_.endswith("?"):
            type_ = type_[:-1]
        fields.append(SchemaField(name=name, type=type_, is_nullable=is_nullable))
    return fields


def format_fields(fields: list) -> str:
    """Render parsed fields back to ``name:type`` form."""
    if not fields:
        return "No Field"
    return ", ".join(f.render() for f in fields)
