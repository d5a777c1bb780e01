"""Pytest configuration and fixtures for qt-scope tests."""

import pytest
from pathlib import Path

from qt_scope.config import Settings
from qt_scope.parsers.runtime_parser import (
    DataStats,
    ExceptionStats,
    MemoryStats,
    RuntimeOperator,
    RuntimeVertex,
    TimeStats,
    load_runtime_document,
    vertex_kind,
)
from qt_scope.parsers.vertex_parser import load_plan_document


# =============================================================================
# PLAN DOCUMENT FIXTURES
# =============================================================================

PLAN_XML = """<?xml version="1.0" encoding="utf-8"?>
<ScopeVertices>
  <ScopeVertex id="SV1_Extract">
    <EstimatedLimitMemory processMemory="6442450944" managedMemory="1024" engineMemory="4294967296"
        engineIOMemory="1048576" engineOperatorMemory="2000" minEngineOperatorMemory="500" adapterMemory="0"/>
    <EstimatedOptimalMemory processMemory="3221225472" engineMemory="2147483648" engineOperatorMemory="1000"/>
    <operator id="Extract_0" uid="op_1" className="ScopeExtractor" assemblyName="Scope.Runtime"
        file="job.script" line="3" args="-schema key:string,value:long">
      <output id="Extract_0_out0" uid="op_1_out0" schema="key:string,value:long?" outputIndex="0" numberOfOutputs="1"/>
    </operator>
    <operator id="Filter_1" uid="op_2" className="ScopeFilter" assemblyName="Scope.Runtime" file="job.script" line="7">
      <input id="Extract_0_out0" uid="op_1_out0" schema="key:string,value:long?" inputIndex="0" numberOfInputs="1"/>
      <output id="Filter_1_out0" uid="op_2_out0" schema="key:string,value:long?" outputIndex="0" numberOfOutputs="1"/>
    </operator>
    <operator id="Process_2" uid="op_3" className="ScopeProcessor" assemblyName="Scope.Runtime"/>
    <operator id="Project_3" uid="op_4" className="ScopeProjector" assemblyName="Scope.Runtime"/>
    <operator id="Output_4" uid="op_5" className="ScopeOutputter" assemblyName="Scope.Runtime" file="job.script" line="12">
      <input id="Filter_1_out0" uid="op_2_out0" schema="key:string,value:long?" inputIndex="0" numberOfInputs="1"/>
    </operator>
  </ScopeVertex>
  <ScopeVertex id="SV3_Aggregate">
    <EstimatedLimitMemory processMemory="8589934592" engineMemory="4294967296" engineOperatorMemory="9000"/>
    <EstimatedOptimalMemory processMemory="4294967296" engineMemory="2147483648" engineOperatorMemory="3000"/>
    <operator id="HashAgg_0" uid="op_42" className="ScopeHashAggregate" assemblyName="Scope.Runtime"
        file="job.script" line="42" args="GROUP BY key">
      <input id="Filter_1_out0" uid="op_2_out0" schema="key:string,value:long?" inputIndex="0" numberOfInputs="1"/>
      <output id="HashAgg_0_out0" uid="op_42_out0" schema="key:string,total:long" outputIndex="0" numberOfOutputs="1"/>
    </operator>
    <operator id="Sort_1" uid="op_43" className="ScopeSort" assemblyName="Scope.Runtime" file="job.script" line="44"/>
    <operator id="Union_2" uid="op_44" className="ScopeUnion" assemblyName="Scope.Runtime">
      <input id="Sort_1_out0" uid="op_43_out0" schema="key:string" inputIndex="0" numberOfInputs="2"/>
      <input id="Extract_0_out0" uid="op_1_out0" schema="key:string" inputIndex="1" numberOfInputs="2"/>
    </operator>
  </ScopeVertex>
</ScopeVertices>
"""


# =============================================================================
# RUNTIME DOCUMENT FIXTURES
# =============================================================================

RUNTIME_XML = """<?xml version="1.0" encoding="utf-8"?>
<ScopeRuntimeStatistics>
  <Vertex id="SV1_Extract" avgOverallMemoryPeakSize="2097152" maxOverallMemoryPeakSize="4194304"
      avgPrivateMemoryPeakSize="1048576" avgWorkingSetPeakSize="1572864">
    <Time elapsedTime="1000" executeElapsedTime="900" inclusiveTime="1000" totalCpuTime="800" executeTotalCpuTime="700"/>
    <InputStatistics totalBytes="10000" totalCompressedBytes="5000"/>
    <OutputStatistics totalBytes="8000" totalCompressedBytes="4000"/>
    <ExceptionCounts cppExceptionCount="0" csharpExceptionCount="0" otherExceptionCount="0"/>
    <VertexExecutionJobObject avgTotalPageFaultCount="10" maxTotalPageFaultCount="20"/>
    <Operators>
      <Operator opId="op_1" rowCount="100" inclusiveTime="500" exclusiveTime="200"/>
      <Operator opId="op_2" rowCount="95" inclusiveTime="300" exclusiveTime="100"/>
    </Operators>
    <Output opId="op_5" rowCount="90"/>
  </Vertex>
  <Vertex id="SV2_Process" avgOverallMemoryPeakSize="1048576" maxOverallMemoryPeakSize="1048576">
    <Time elapsedTime="9000" totalCpuTime="8500"/>
    <InputStatistics totalBytes="100"/>
    <OutputStatistics totalBytes="100"/>
    <ExceptionCounts cppExceptionCount="0" csharpExceptionCount="0" otherExceptionCount="0"/>
    <VertexExecutionJobObject avgTotalPageFaultCount="1" maxTotalPageFaultCount="2"/>
    <Operator opId="op_99" rowCount="1" inclusiveTime="8000"/>
  </Vertex>
  <Vertex id="SV3_Aggregate" avgOverallMemoryPeakSize="4194304" maxOverallMemoryPeakSize="8388608">
    <Time elapsedTime="3000" totalCpuTime="2000"/>
    <InputStatistics totalBytes="50000"/>
    <OutputStatistics totalBytes="200000"/>
    <ExceptionCounts cppExceptionCount="1" csharpExceptionCount="2" otherExceptionCount="0"/>
    <VertexExecutionJobObject avgTotalPageFaultCount="5" maxTotalPageFaultCount="9"/>
    <Operator opId="op_42" rowCount="5000" inclusiveTime="2500" exclusiveTime="2000"/>
    <Operator opId="op_43" rowCount="5000" inclusiveTime="400"/>
  </Vertex>
  <Vertex id="SV4_Sort" avgOverallMemoryPeakSize="524288">
    <InputStatistics totalBytes="20000"/>
  </Vertex>
</ScopeRuntimeStatistics>
"""

RUNTIME_BY_NAME_XML = """<?xml version="1.0" encoding="utf-8"?>
<ScopeRuntimeStatistics>
  <SV1_Extract avgOverallMemoryPeakSize="1000">
    <Time elapsedTime="100" totalCpuTime="90"/>
    <InputStatistics totalBytes="4000"/>
    <OutputStatistics totalBytes="2000"/>
    <ExceptionCounts cppExceptionCount="0"/>
    <VertexExecutionJobObject avgTotalPageFaultCount="0"/>
    <Operator opId="op_1" rowCount="10"/>
  </SV1_Extract>
  <SV3_Aggregate avgOverallMemoryPeakSize="3000">
    <Time elapsedTime="400" totalCpuTime="350"/>
    <InputStatistics totalBytes="2000"/>
    <OutputStatistics totalBytes="500"/>
    <ExceptionCounts cppExceptionCount="0"/>
    <VertexExecutionJobObject avgTotalPageFaultCount="0"/>
    <Operator opId="op_42" rowCount="5"/>
  </SV3_Aggregate>
</ScopeRuntimeStatistics>
"""

MALFORMED_XML = """<?xml version="1.0" encoding="utf-8"?>
<ScopeRuntimeStatistics>
  <Vertex id="SV1_Extract">
    <Time elapsedTime="100"
"""


@pytest.fixture
def plan_xml() -> str:
    """Vertex definitions: SV1_Extract (5 operators) and SV3_Aggregate (3 operators)."""
    return PLAN_XML


@pytest.fixture
def runtime_xml() -> str:
    """Runtime statistics with id-attribute vertices SV1..SV4."""
    return RUNTIME_XML


@pytest.fixture
def runtime_by_name_xml() -> str:
    """Runtime statistics where the vertex id is the element name."""
    return RUNTIME_BY_NAME_XML


@pytest.fixture
def malformed_xml() -> str:
    return MALFORMED_XML


@pytest.fixture
def plan_file(tmp_path) -> Path:
    path = tmp_path / "ScopeVertexDef.xml"
    path.write_text(PLAN_XML, encoding="utf-8")
    return path


@pytest.fixture
def runtime_file(tmp_path) -> Path:
    path = tmp_path / "__ScopeRuntimeStatistics__.xml"
    path.write_text(RUNTIME_XML, encoding="utf-8")
    return path


@pytest.fixture
def runtime_by_name_file(tmp_path) -> Path:
    path = tmp_path / "runtime_by_name.xml"
    path.write_text(RUNTIME_BY_NAME_XML, encoding="utf-8")
    return path


@pytest.fixture
def malformed_file(tmp_path) -> Path:
    path = tmp_path / "malformed.xml"
    path.write_text(MALFORMED_XML, encoding="utf-8")
    return path


@pytest.fixture
def settings() -> Settings:
    """Settings with stock defaults."""
    return Settings()


@pytest.fixture
def plan_document(plan_file):
    return load_plan_document(plan_file)


@pytest.fixture
def runtime_document(runtime_file):
    return load_runtime_document(runtime_file)


# =============================================================================
# IN-MEMORY VERTEX FACTORY
# =============================================================================

@pytest.fixture
def make_vertex():
    """Build a ``RuntimeVertex`` from a few headline figures."""

    def _make(
        vertex_id: str,
        memory: int = 0,
        elapsed: int = 0,
        cpu: int = 0,
        input_bytes: int = 0,
        output_bytes: int = 0,
        exceptions: int = 0,
        operators: tuple = (),
    ) -> RuntimeVertex:
        return RuntimeVertex(
            id=vertex_id,
            kind=vertex_kind(vertex_id),
            memory=MemoryStats(avg_overall_memory_peak_size=memory),
            time=TimeStats(elapsed_time=elapsed, total_cpu_time=cpu),
            data=DataStats(input_bytes=input_bytes, output_bytes=output_bytes),
            exceptions=ExceptionStats(csharp_exception_count=exceptions),
            operators=[RuntimeOperator(id=op_id) for op_id in operators],
        )

    return _make
