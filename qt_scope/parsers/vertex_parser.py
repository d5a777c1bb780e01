"""Build the plan graph from a SCOPE vertex-definition document.

``ScopeVertexDef.xml`` lists every compiled vertex with its memory
estimates and the chain of operators it runs. Operator ``id`` values are
display names scoped to their vertex; ``uid`` is the globally unique key
that the runtime document's ``opId`` refers to.
"""

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Union

from .schema_parser import parse_schema
from .xml_tree import XmlNode, read_document, to_int

logger = logging.getLogger(__name__)

# Estimate attribute the memory-ratio score is computed from.
SCORED_ESTIMATE_ATTRIBUTE = "engineOperatorMemory"


@dataclass(frozen=True)
class MemoryEstimate:
    """Compiler memory estimate for a vertex, in bytes."""
    process_memory: int = 0
    managed_memory: int = 0
    engine_memory: int = 0
    engine_io_memory: int = 0
    engine_operator_memory: int = 0
    min_engine_operator_memory: int = 0
    adapter_memory: int = 0


@dataclass(frozen=True)
class PlanOperatorIO:
    """One input or output port of a plan operator."""
    id: str
    uid: str
    schema: str
    fields: list = field(default_factory=list)
    index: Optional[int] = None
    count: Optional[str] = None

    @property
    def field_names(self) -> list:
        return [f.name for f in self.fields]


@dataclass(frozen=True)
class PlanOperator:
    id: str
    uid: str
    class_name: str
    assembly_name: str
    source_file: Optional[str] = None
    source_line: Optional[int] = None
    args: Optional[str] = None
    inputs: list = field(default_factory=list)
    outputs: list = field(default_factory=list)


@dataclass(frozen=True)
class PlanVertex:
    id: str
    limit_memory: MemoryEstimate = field(default_factory=MemoryEstimate)
    optimal_memory: MemoryEstimate = field(default_factory=MemoryEstimate)
    operators: list = field(default_factory=list)


@dataclass(frozen=True)
class PlanDocument:
    """Parsed vertex-definition document."""
    source: str
    vertices: list
    missing_attributes: dict = field(default_factory=dict)
    kind: str = "plan"

    @property
    def operator_count(self) -> int:
        return sum(len(v.operators) for v in self.vertices)


def _parse_memory_estimate(node: Optional[XmlNode]) -> MemoryEstimate:
    if node is None:
        return MemoryEstimate()
    return MemoryEstimate(
        process_memory=node.int_attr("processMemory"),
        managed_memory=node.int_attr("managedMemory"),
        engine_memory=node.int_attr("engineMemory"),
        engine_io_memory=node.int_attr("engineIOMemory"),
        engine_operator_memory=node.int_attr("engineOperatorMemory"),
        min_engine_operator_memory=node.int_attr("minEngineOperatorMemory"),
        adapter_memory=node.int_attr("adapterMemory"),
    )


def _parse_io(node: XmlNode, index_attr: str, count_attr: str) -> PlanOperatorIO:
    schema = node.get("schema") or ""
    index = node.get(index_attr)
    return PlanOperatorIO(
        id=node.get("id") or "",
        uid=node.get("uid") or "",
        schema=schema,
        fields=parse_schema(schema),
        index=to_int(index) if index else None,
        count=node.get(count_attr) or None,
    )


def _parse_operator(node: XmlNode) -> PlanOperator:
    line = node.get("line")
    return PlanOperator(
        id=node.get("id") or "",
        uid=node.get("uid") or "",
        class_name=node.get("className") or "",
        assembly_name=node.get("assemblyName") or "",
        source_file=node.get("file") or None,
        source_line=to_int(line) if line else None,
        args=node.get("args") or None,
        inputs=[_parse_io(n, "inputIndex", "numberOfInputs") for n in node.children_named("input")],
        outputs=[_parse_io(n, "outputIndex", "numberOfOutputs") for n in node.children_named("output")],
    )


def build_plan_document(tree: XmlNode, source: str = "<memory>",
                        vertex_element: str = "ScopeVertex") -> PlanDocument:
    """Walk a decoded vertex-definition tree into a ``PlanDocument``."""
    vertex_nodes = tree.find_all(vertex_element)
    missing_estimates = 0
    missing_attributes: dict = {}

    vertices = []
    for node in vertex_nodes:
        limit_node = node.child("EstimatedLimitMemory")
        optimal_node = node.child("EstimatedOptimalMemory")
        if limit_node is None or optimal_node is None:
            missing_estimates += 1
        for estimate in (limit_node, optimal_node):
            if estimate is not None and estimate.get(SCORED_ESTIMATE_ATTRIBUTE) is None:
                key = f"{estimate.tag}@{SCORED_ESTIMATE_ATTRIBUTE}"
                missing_attributes[key] = missing_attributes.get(key, 0) + 1
        vertices.append(PlanVertex(
            id=node.get("id") or "",
            limit_memory=_parse_memory_estimate(limit_node),
            optimal_memory=_parse_memory_estimate(optimal_node),
            operators=[_parse_operator(op) for op in node.children_named("operator")],
        ))

    if missing_estimates:
        logger.warning("%s: %d vertices lack memory estimates; treated as zero", source, missing_estimates)
    if missing_attributes:
        logger.warning("%s: %d estimate attribute values missing (%s); treated as zero",
                       source, sum(missing_attributes.values()),
                       ", ".join(f"{name} x{count}" for name, count in sorted(missing_attributes.items())))
    if not vertices:
        logger.warning("%s: no <%s> elements found", source, vertex_element)

    return PlanDocument(source=source, vertices=vertices, missing_attributes=missing_attributes)


def load_plan_document(path: Union[str, Path], vertex_element: str = "ScopeVertex") -> PlanDocument:
    """Read, decode and build a vertex-definition document from disk."""
    start_time = time.time()
    logger.info("Loading vertex definitions from %s", path)
    document = build_plan_document(read_document(path), source=str(path), vertex_element=vertex_element)
    logger.info("Vertex definitions loaded: %d vertices, %d operators in %.2fs",
                len(document.vertices), document.operator_count, time.time() - start_time)
    return document
