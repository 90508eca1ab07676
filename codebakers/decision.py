"""
Decision Log
============

Append-only audit trail of significant choices made during a build.

Each decision is attributed to an agent role and records the phase it was
made in, the reasoning, the alternatives considered, a confidence level and
an impact rating. Recorded decisions are never edited or removed.

Usage:
    from codebakers.decision import DecisionLog

    log = DecisionLog()
    decision = log.record(
        agent="architect",
        phase="architecture",
        decision="Use Postgres with Drizzle",
        reasoning="Relational data, typed queries",
        alternatives=["MongoDB", "Prisma"],
        confidence=85,
        impact="high",
    )
"""

import math
from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from enum import Enum
from typing import Iterator, Optional

from codebakers.errors import InvalidArgumentError
from codebakers.phases import AgentRole, Phase, parse_role


DEFAULT_CONFIDENCE = 80


class DecisionImpact(str, Enum):
    """How far-reaching a decision is."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


@dataclass(frozen=True)
class Decision:
    """
    An immutable decision record.

    Confidence is a percentage (0-100).
    """
    decision_id: str            # "D-{seq:03d}"
    timestamp: str              # ISO format
    agent: str                  # AgentRole value
    phase: str                  # Phase value at the time of the decision
    decision: str
    reasoning: str
    alternatives: tuple[str, ...] = field(default_factory=tuple)
    confidence: int = DEFAULT_CONFIDENCE
    impact: str = DecisionImpact.MEDIUM.value
    reversible: bool = True

    def to_dict(self) -> dict:
        data = asdict(self)
        data["alternatives"] = list(self.alternatives)
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "Decision":
        data = dict(data)
        data["alternatives"] = tuple(data.get("alternatives") or ())
        return cls(**data)

    def summary(self) -> str:
        """Return a brief summary string."""
        return f"[{self.decision_id}] {self.agent}@{self.phase} ({self.confidence}%): {self.decision[:60]}"

    @property
    def is_low_confidence(self) -> bool:
        return self.confidence < 50


def _parse_impact(value: Optional[str]) -> DecisionImpact:
    if value is None or value == "":
        return DecisionImpact.MEDIUM
    try:
        return DecisionImpact(value)
    except ValueError:
        valid = ", ".join(i.value for i in DecisionImpact)
        raise InvalidArgumentError(f"Unknown impact level: {value!r}", hint=f"Use one of: {valid}") from None


def _parse_confidence(value) -> int:
    if value is None:
        return DEFAULT_CONFIDENCE
    try:
        if isinstance(value, bool):
            raise TypeError(value)
        confidence = float(value)
    except (TypeError, ValueError):
        raise InvalidArgumentError("Confidence must be a number 0-100") from None
    if math.isnan(confidence):
        raise InvalidArgumentError("Confidence must be a number 0-100")
    return int(round(max(0.0, min(100.0, confidence))))


class DecisionLog:
    """Ordered, append-only sequence of decisions for one project."""

    def __init__(self, decisions: Optional[list[Decision]] = None):
        self._decisions: list[Decision] = list(decisions or [])

    def __len__(self) -> int:
        return len(self._decisions)

    def __iter__(self) -> Iterator[Decision]:
        return iter(list(self._decisions))

    def record(
        self,
        agent: AgentRole | str,
        phase: Phase | str,
        decision: str,
        reasoning: str,
        alternatives: Optional[list[str]] = None,
        confidence: Optional[float] = None,
        impact: Optional[str] = None,
        reversible: bool = True,
    ) -> Decision:
        """
        Validate and append a decision.

        Args:
            agent: Role making the decision (one of the eight AgentRole values)
            phase: Phase the project is in
            decision: What was decided
            reasoning: Why
            alternatives: Options that were considered and rejected
            confidence: 0-100, defaults to 80, clamped into range
            impact: low/medium/high/critical, defaults to medium
            reversible: Whether the decision can be undone later

        Returns:
            The stored Decision

        Raises:
            InvalidRoleError: agent is not a known role
            InvalidArgumentError: impact is not a known level, or confidence
                is not a number
        """
        role = parse_role(agent)
        impact_level = _parse_impact(impact)

        confidence = _parse_confidence(confidence)

        record = Decision(
            decision_id=f"D-{len(self._decisions) + 1:03d}",
            timestamp=datetime.now(timezone.utc).isoformat(),
            agent=role.value,
            phase=Phase(phase).value,
            decision=decision,
            reasoning=reasoning,
            alternatives=tuple(alternatives or ()),
            confidence=confidence,
            impact=impact_level.value,
            reversible=reversible,
        )
        self._decisions.append(record)
        return record

    def list_decisions(self) -> list[Decision]:
        """All decisions, oldest first."""
        return list(self._decisions)

    def recent(self, limit: int = 5) -> list[Decision]:
        """The most recent decisions, oldest first."""
        if limit <= 0:
            return []
        return self._decisions[-limit:]

    def stats(self) -> dict:
        """Counts by agent and impact plus the average confidence."""
        if not self._decisions:
            return {"total_decisions": 0, "by_agent": {}, "by_impact": {}, "avg_confidence": 0.0}

        by_agent: dict[str, int] = {}
        by_impact: dict[str, int] = {}
        for d in self._decisions:
            by_agent[d.agent] = by_agent.get(d.agent, 0) + 1
            by_impact[d.impact] = by_impact.get(d.impact, 0) + 1

        avg = sum(d.confidence for d in self._decisions) / len(self._decisions)
        return {
            "total_decisions": len(self._decisions),
            "by_agent": by_agent,
            "by_impact": by_impact,
            "avg_confidence": round(avg, 1),
        }

    def to_list(self) -> list[dict]:
        return [d.to_dict() for d in self._decisions]

    @classmethod
    def from_list(cls, data: Optional[list[dict]]) -> "DecisionLog":
        return cls([Decision.from_dict(d) for d in data or []])
