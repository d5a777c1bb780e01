"""Build the runtime graph from a SCOPE runtime-statistics document.

The runtime document (``__ScopeRuntimeStatistics__.xml``) holds one element
per executed vertex. Depending on the engine version the vertex id is
either an ``id`` attribute on a generic element or the element's own tag
name (``<SV1_Extract ...>``). Attribute-based discovery is tried first and
name-based discovery is the fallback; the strategy used is recorded on the
resulting ``RuntimeDocument``.
"""

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Union

from .xml_tree import SELECT_BY_ID, SELECT_BY_NAME, XmlNode, read_document, to_int

logger = logging.getLogger(__name__)

DISCOVERY_ATTRIBUTE = "attribute"
DISCOVERY_ELEMENT_NAME = "element_name"
DISCOVERY_NONE = "none"

# Child elements read for every vertex; absence means zero-valued stats.
OPTIONAL_SECTIONS = (
    "Time",
    "InputStatistics",
    "OutputStatistics",
    "ExceptionCounts",
    "VertexExecutionJobObject",
)

# Attributes the analysis ranks on, keyed by the element that carries them
# (None is the vertex element itself). Absent values default to zero.
HEADLINE_ATTRIBUTES = {
    None: ("avgOverallMemoryPeakSize", "maxOverallMemoryPeakSize"),
    "Time": ("elapsedTime", "totalCpuTime"),
    "InputStatistics": ("totalBytes",),
    "OutputStatistics": ("totalBytes",),
}


# =============================================================================
# DATA CLASSES
# =============================================================================

@dataclass(frozen=True)
class MemoryStats:
    """Peak memory figures in bytes."""
    avg_execution_memory_peak_size: int = 0
    max_execution_memory_peak_size: int = 0
    avg_io_memory_peak_size: int = 0
    max_io_memory_peak_size: int = 0
    avg_overall_memory_peak_size: int = 0
    max_overall_memory_peak_size: int = 0
    avg_private_memory_peak_size: int = 0
    max_private_memory_peak_size: int = 0
    avg_working_set_peak_size: int = 0
    max_working_set_peak_size: int = 0


@dataclass(frozen=True)
class TimeStats:
    """Timing figures in the document's native unit."""
    elapsed_time: int = 0
    execute_elapsed_time: int = 0
    inclusive_time: int = 0
    total_cpu_time: int = 0
    execute_total_cpu_time: int = 0


@dataclass(frozen=True)
class DataStats:
    input_bytes: int = 0
    input_compressed_bytes: int = 0
    output_bytes: int = 0
    output_compressed_bytes: int = 0

    @property
    def total_bytes(self) -> int:
        return self.input_bytes + self.output_bytes


@dataclass(frozen=True)
class ExceptionStats:
    cpp_exception_count: int = 0
    csharp_exception_count: int = 0
    other_exception_count: int = 0

    @property
    def total(self) -> int:
        return self.cpp_exception_count + self.csharp_exception_count + self.other_exception_count


@dataclass(frozen=True)
class RuntimeOperator:
    """Row/time counters for one operator, keyed by its plan ``uid``."""
    id: str
    row_count: Optional[int] = None
    inclusive_time: Optional[int] = None
    exclusive_time: Optional[int] = None


@dataclass(frozen=True)
class RuntimeVertex:
    """One executed vertex with its statistics."""
    id: str
    kind: str
    memory: MemoryStats = field(default_factory=MemoryStats)
    time: TimeStats = field(default_factory=TimeStats)
    data: DataStats = field(default_factory=DataStats)
    exceptions: ExceptionStats = field(default_factory=ExceptionStats)
    avg_total_page_fault_count: int = 0
    max_total_page_fault_count: int = 0
    operators: list = field(default_factory=list)
    output_rows: int = 0
    output_operator_id: Optional[str] = None

    @property
    def avg_overall_memory_peak_size(self) -> int:
        return self.memory.avg_overall_memory_peak_size

    @property
    def elapsed_time(self) -> int:
        return self.time.elapsed_time

    @property
    def input_bytes(self) -> int:
        return self.data.input_bytes

    @property
    def output_bytes(self) -> int:
        return self.data.output_bytes


@dataclass(frozen=True)
class RuntimeDocument:
    """Parsed runtime-statistics document."""
    source: str
    vertices: list
    discovery: str = DISCOVERY_NONE
    missing_sections: dict = field(default_factory=dict)
    missing_attributes: dict = field(default_factory=dict)
    kind: str = "runtime"

    @property
    def defaulted_attribute_count(self) -> int:
        return sum(self.missing_attributes.values())


# =============================================================================
# BUILDER
# =============================================================================

def vertex_kind(vertex_id: str) -> str:
    """Derive the vertex kind from its id suffix (``SV1_Extract`` -> ``Extract``)."""
    if "_" not in vertex_id:
        return ""
    return vertex_id.split("_", 1)[1]


def _parse_memory(node: XmlNode) -> MemoryStats:
    return MemoryStats(
        avg_execution_memory_peak_size=node.int_attr("avgExecutionMemoryPeakSize"),
        max_execution_memory_peak_size=node.int_attr("maxExecutionMemoryPeakSize"),
        avg_io_memory_peak_size=node.int_attr("avgIOMemoryPeakSize"),
        max_io_memory_peak_size=node.int_attr("maxIOMemoryPeakSize"),
        avg_overall_memory_peak_size=node.int_attr("avgOverallMemoryPeakSize"),
        max_overall_memory_peak_size=node.int_attr("maxOverallMemoryPeakSize"),
        avg_private_memory_peak_size=node.int_attr("avgPrivateMemoryPeakSize"),
        max_private_memory_peak_size=node.int_attr("maxPrivateMemoryPeakSize"),
        avg_working_set_peak_size=node.int_attr("avgWorkingSetPeakSize"),
        max_working_set_peak_size=node.int_attr("maxWorkingSetPeakSize"),
    )


def _parse_time(node: XmlNode, time_node: Optional[XmlNode]) -> TimeStats:
    if time_node is None:
        # Older documents only carry inclusiveTime on the vertex itself
        return TimeStats(inclusive_time=node.int_attr("inclusiveTime"))
    return TimeStats(
        elapsed_time=time_node.int_attr("elapsedTime"),
        execute_elapsed_time=time_node.int_attr("executeElapsedTime"),
        inclusive_time=time_node.int_attr("inclusiveTime") or node.int_attr("inclusiveTime"),
        total_cpu_time=time_node.int_attr("totalCpuTime"),
        execute_total_cpu_time=time_node.int_attr("executeTotalCpuTime"),
    )


def _parse_data(input_node: Optional[XmlNode], output_node: Optional[XmlNode]) -> DataStats:
    input_node = input_node or XmlNode(tag="InputStatistics")
    output_node = output_node or XmlNode(tag="OutputStatistics")
    return DataStats(
        input_bytes=input_node.int_attr("totalBytes"),
        input_compressed_bytes=input_node.int_attr("totalCompressedBytes"),
        output_bytes=output_node.int_attr("totalBytes"),
        output_compressed_bytes=output_node.int_attr("totalCompressedBytes"),
    )


def _parse_exceptions(node: Optional[XmlNode]) -> ExceptionStats:
    if node is None:
        return ExceptionStats()
    return ExceptionStats(
        cpp_exception_count=node.int_attr("cppExceptionCount"),
        csharp_exception_count=node.int_attr("csharpExceptionCount"),
        other_exception_count=node.int_attr("otherExceptionCount"),
    )


def _optional_int(node: XmlNode, name: str) -> Optional[int]:
    value = node.get(name)
    return None if value is None else to_int(value)


def _parse_operators(node: XmlNode) -> list:
    return [
        RuntimeOperator(
            id=op.get("opId") or "",
            row_count=_optional_int(op, "rowCount"),
            inclusive_time=_optional_int(op, "inclusiveTime"),
            exclusive_time=_optional_int(op, "exclusiveTime"),
        )
        for op in node.with_attribute("opId")
    ]


def _count_missing_attributes(node: XmlNode, sections: dict, missing_attributes: dict) -> None:
    """Count headline attributes absent from the vertex and its present sections.

    Keys are ``attribute`` for the vertex element and ``Section@attribute``
    for child sections. Sections that are absent altogether are counted in
    ``missing_sections`` instead.
    """
    for section_name, names in HEADLINE_ATTRIBUTES.items():
        element = node if section_name is None else sections.get(section_name)
        if element is None:
            continue
        for name in names:
            if element.get(name) is not None:
                continue
            key = name if section_name is None else f"{section_name}@{name}"
            missing_attributes[key] = missing_attributes.get(key, 0) + 1


def build_vertex(
    node: XmlNode,
    vertex_id: str,
    missing: dict,
    missing_attributes: Optional[dict] = None,
) -> RuntimeVertex:
    """Build one ``RuntimeVertex``.

    Absent sections are counted into ``missing``; absent headline
    attributes into ``missing_attributes`` when given.
    """
    sections = {name: node.child(name) for name in OPTIONAL_SECTIONS}
    for name, section in sections.items():
        if section is None:
            missing[name] = missing.get(name, 0) + 1
    if missing_attributes is not None:
        _count_missing_attributes(node, sections, missing_attributes)

    job_object = sections["VertexExecutionJobObject"]
    output = node.child("Output")

    return RuntimeVertex(
        id=vertex_id,
        kind=vertex_kind(vertex_id),
        memory=_parse_memory(node),
        time=_parse_time(node, sections["Time"]),
        data=_parse_data(sections["InputStatistics"], sections["OutputStatistics"]),
        exceptions=_parse_exceptions(sections["ExceptionCounts"]),
        avg_total_page_fault_count=job_object.int_attr("avgTotalPageFaultCount") if job_object else 0,
        max_total_page_fault_count=job_object.int_attr("maxTotalPageFaultCount") if job_object else 0,
        operators=_parse_operators(node),
        output_rows=output.int_attr("rowCount") if output else 0,
        output_operator_id=output.get("opId") if output else None,
    )


def build_runtime_document(tree: XmlNode, source: str = "<memory>", prefix: str = "SV") -> RuntimeDocument:
    """Walk a decoded runtime-statistics tree into a ``RuntimeDocument``."""
    nodes = tree.select_prefixed(prefix, by=SELECT_BY_ID)
    discovery = DISCOVERY_ATTRIBUTE
    if not nodes:
        nodes = tree.select_prefixed(prefix, by=SELECT_BY_NAME)
        discovery = DISCOVERY_ELEMENT_NAME if nodes else DISCOVERY_NONE
    logger.debug("Runtime vertex discovery for %s: %s (%d nodes)", source, discovery, len(nodes))

    missing: dict = {}
    missing_attributes: dict = {}
    vertices = []
    for node in nodes:
        vertex_id = node.get("id", "") if discovery == DISCOVERY_ATTRIBUTE else node.tag
        vertices.append(build_vertex(node, vertex_id, missing, missing_attributes))

    for section, count in missing.items():
        logger.warning("%s: %d of %d vertices have no <%s>; treated as zero",
                       source, count, len(vertices), section)
    if missing_attributes:
        logger.warning("%s: %d headline attribute values missing (%s); treated as zero",
                       source, sum(missing_attributes.values()),
                       ", ".join(f"{name} x{count}" for name, count in sorted(missing_attributes.items())))
    if not vertices:
        logger.warning("%s: no runtime vertices with prefix '%s' found", source, prefix)

    return RuntimeDocument(
        source=source,
        vertices=vertices,
        discovery=discovery,
        missing_sections=missing,
        missing_attributes=missing_attributes,
    )


def load_runtime_document(path: Union[str, Path], prefix: str = "SV") -> RuntimeDocument:
    """Read, decode and build a runtime-statistics document from disk."""
    start_time = time.time()
    logger.info("Loading runtime statistics from %s", path)
    document = build_runtime_document(read_document(path), source=str(path), prefix=prefix)
    logger.info("Runtime statistics loaded: %d vertices in %.2fs",
                len(document.vertices), time.time() - start_time)
    return document
