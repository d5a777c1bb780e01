"""qt-scope Parsers.

Decodes SCOPE telemetry XML and builds the runtime and plan graphs.
"""

from .xml_tree import XmlNode, decode_document, read_document, to_int
from .schema_parser import SchemaField, parse_schema, format_fields
from .runtime_parser import (
    RuntimeDocument,
    RuntimeVertex,
    RuntimeOperator,
    build_runtime_document,
    load_runtime_document,
)
from .vertex_parser import (
    PlanDocument,
    PlanVertex,
    PlanOperator,
    PlanOperatorIO,
    MemoryEstimate,
    build_plan_document,
    load_plan_document,
)
from .documents import Document, load_document

__all__ = [
    "XmlNode",
    "decode_document",
    "read_document",
    "to_int",
    "SchemaField",
    "parse_schema",
    "format_fields",
    "RuntimeDocument",
    "RuntimeVertex",
    "RuntimeOperator",
    "build_runtime_document",
    "load_runtime_document",
    "PlanDocument",
    "PlanVertex",
    "PlanOperator",
    "PlanOperatorIO",
    "MemoryEstimate",
    "build_plan_document",
    "load_plan_document",
    "Document",
    "load_document",
]
