"""
Impact Risk Classification
==========================

Turns the size of an impact set into a risk level and a list of
recommendations for the agent about to change a file.

Thresholds (total of direct + transitive dependents):
- 0      none      safe to change
- 1-2    low
- 3-5    medium
- 6-10   high
- 11+    critical
"""

from dataclasses import dataclass, field
from enum import IntEnum

from codebakers.dependency_graph import AffectedNodes, GraphNode, NodeType


class ImpactRisk(IntEnum):
    """Risk levels from none to critical."""
    NONE = 0
    LOW = 1
    MEDIUM = 2
    HIGH = 3
    CRITICAL = 4

    @property
    def label(self) -> str:
        return self.name.lower()


RISK_ICONS = {
    ImpactRisk.NONE: "⚪",
    ImpactRisk.LOW: "\U0001F7E2",
    ImpactRisk.MEDIUM: "\U0001F7E1",
    ImpactRisk.HIGH: "\U0001F7E0",
    ImpactRisk.CRITICAL: "\U0001F534",
}


def classify_impact(total_affected: int) -> ImpactRisk:
    """Risk level for a number of affected nodes."""
    if total_affected <= 0:
        return ImpactRisk.NONE
    if total_affected <= 2:
        return ImpactRisk.LOW
    if total_affected <= 5:
        return ImpactRisk.MEDIUM
    if total_affected <= 10:
        return ImpactRisk.HIGH
    return ImpactRisk.CRITICAL


def recommendations(node: GraphNode, affected: AffectedNodes, risk: ImpactRisk) -> list[str]:
    """Advice for changing ``node`` given what depends on it."""
    if risk == ImpactRisk.NONE:
        return []

    advice: list[str] = []
    if node.type == NodeType.SCHEMA.value:
        advice.append("Consider running database migration after changes")
        advice.append("Check all API routes that use this schema")
    if any(n.type == NodeType.API.value for n in affected.direct):
        advice.append("API changes may require client updates")
    if risk >= ImpactRisk.HIGH:
        advice.append("Create a snapshot before making changes")
        advice.append("Run full test suite after changes")
    advice.append("Update affected files if interface changes")
    return advice


@dataclass
class ImpactAnalysis:
    """Complete impact report for one file."""
    node: GraphNode
    affected: AffectedNodes
    risk: ImpactRisk
    recommendations: list[str] = field(default_factory=list)

    @property
    def total_affected(self) -> int:
        return self.affected.total

    @property
    def is_safe(self) -> bool:
        return self.risk == ImpactRisk.NONE

    def to_dict(self) -> dict:
        return {
            "node": self.node.to_dict(),
            "direct": [n.to_dict() for n in self.affected.direct],
            "transitive": [n.to_dict() for n in self.affected.transitive],
            "total_affected": self.total_affected,
            "risk_level": self.risk.label,
            "recommendations": list(self.recommendations),
        }


def analyze_impact(node: GraphNode, affected: AffectedNodes) -> ImpactAnalysis:
    risk = classify_impact(affected.total)
    return ImpactAnalysis(
        node=node,
        affected=affected,
        risk=risk,
        recommendations=recommendations(node, affected, risk),
    )
