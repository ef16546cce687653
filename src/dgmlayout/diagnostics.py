"""
Diagnostics collection for diagram layout.

Every generation call threads one Diagnostics collector through the tree
builder, the algorithm registry and the shape generator. Non-fatal problems
(unknown algorithms, dangling connections, missing style labels) are recorded
here and returned with the result instead of being written to a process-wide
log, so concurrent generations never interleave their warnings.

When stage recording is enabled (``ShapeGenerationConfig(debug=True)``) the
collector also keeps a snapshot of each pipeline stage:

    >>> result = generate_diagram_shapes(model, config=config)
    >>> print(result.diagnostics.summary())
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

WARNING = "warning"
INFO = "info"


@dataclass(frozen=True)
class Diagnostic:
    """
    A single non-fatal finding.

    Attributes:
        level: "warning" or "info".
        code: Short machine-readable code (e.g. "unknown-algorithm").
        message: Human-readable description.
        source: Component that recorded it (e.g. "algorithms").
    """

    level: str
    code: str
    message: str
    source: str = ""

    def __str__(self) -> str:
        prefix = f"[{self.level}] {self.code}"
        if self.source:
            prefix += f" ({self.source})"
        return f"{prefix}: {self.message}"


@dataclass
class PipelineStage:
    """
    Snapshot of state at a pipeline stage.

    Attributes:
        name: Stage name (e.g. "tree", "layout:root", "shapes").
        data: Relevant data at this stage.
    """

    name: str
    data: Dict[str, Any]

    def __str__(self) -> str:
        lines = [f"=== Stage: {self.name} ==="]
        for key, value in self.data.items():
            str_val = str(value)
            if len(str_val) > 100:
                str_val = str_val[:100] + "..."
            lines.append(f"  {key}: {str_val}")
        return "\n".join(lines)


@dataclass
class Diagnostics:
    """
    Collector for the findings of one generation call.

    Attributes:
        entries: Recorded diagnostics in arrival order.
        stages: Pipeline stage snapshots (only when record_stages is set).
        record_stages: Whether add_stage() keeps snapshots.
    """

    entries: List[Diagnostic] = field(default_factory=list)
    stages: List[PipelineStage] = field(default_factory=list)
    record_stages: bool = False

    def warn(self, code: str, message: str, source: str = "") -> None:
        self.entries.append(Diagnostic(WARNING, code, message, source))

    def info(self, code: str, message: str, source: str = "") -> None:
        self.entries.append(Diagnostic(INFO, code, message, source))

    def add_stage(self, name: str, **data: Any) -> None:
        """Record a pipeline stage snapshot if stage recording is enabled."""
        if self.record_stages:
            self.stages.append(PipelineStage(name=name, data=dict(data)))

    @property
    def warnings(self) -> List[Diagnostic]:
        return [d for d in self.entries if d.level == WARNING]

    @property
    def infos(self) -> List[Diagnostic]:
        return [d for d in self.entries if d.level == INFO]

    @property
    def has_warnings(self) -> bool:
        return any(d.level == WARNING for d in self.entries)

    def by_code(self, code: str) -> List[Diagnostic]:
        return [d for d in self.entries if d.code == code]

    def get_stage(self, name: str) -> Optional[PipelineStage]:
        """Return the first recorded stage with the given name, if any."""
        for stage in self.stages:
            if stage.name == name:
                return stage
        return None

    def summary(self) -> str:
        """
        Generate a human-readable summary.

        Returns:
            Multi-line string with counts, every entry and the stage names.
        """
        lines = [
            "=== Diagnostics Summary ===",
            f"Warnings: {len(self.warnings)}",
            f"Infos: {len(self.infos)}",
        ]
        for entry in self.entries:
            lines.append(f"  {entry}")
        if self.stages:
            lines.append("Stages:")
            for stage in self.stages:
                lines.append(f"  - {stage.name}")
        return "\n".join(lines)
