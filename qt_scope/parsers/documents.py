"""Document loading by type.

A telemetry document is either a ``PlanDocument`` or a ``RuntimeDocument``;
both carry a ``kind`` tag so callers can dispatch without isinstance chains.
"""

from pathlib import Path
from typing import Optional, Union

from ..config import Settings, get_settings
from .runtime_parser import RuntimeDocument, load_runtime_document
from .vertex_parser import PlanDocument, load_plan_document

PLAN = "plan"
RUNTIME = "runtime"

Document = Union[PlanDocument, RuntimeDocument]


def load_document(path: Union[str, Path], kind: str, settings: Optional[Settings] = None) -> Document:
    """Load a telemetry document of the given kind.

    Raises:
        MalformedDocument: If the file is not well-formed XML.
        ValueError: If ``kind`` is not ``"plan"`` or ``"runtime"``.
    """
    settings = settings or get_settings()
    if kind == PLAN:
        return load_plan_document(path, vertex_element=settings.plan_vertex_element)
    if kind == RUNTIME:
        return load_runtime_document(path, prefix=settings.runtime_vertex_prefix)
    raise ValueError(f"Unknown document kind: {kind}")
