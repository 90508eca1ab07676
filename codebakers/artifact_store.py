"""
Artifact Store
==============

Named text documents produced during a build (PRD, tech spec, API docs).

A flat name -> content mapping: saving an existing name overwrites it and
no history is kept.
"""

from typing import Iterator, Optional

from codebakers.errors import InvalidArgumentError


class ArtifactStore:
    """Flat artifact mapping for one project."""

    def __init__(self, artifacts: Optional[dict[str, str]] = None):
        self._artifacts: dict[str, str] = dict(artifacts or {})

    def __contains__(self, name: str) -> bool:
        return name in self._artifacts

    def __len__(self) -> int:
        return len(self._artifacts)

    def __iter__(self) -> Iterator[str]:
        return iter(self.list())

    def save(self, name: str, content: str) -> None:
        """Insert or overwrite an artifact."""
        if not name or not name.strip():
            raise InvalidArgumentError("Artifact name is required.")
        if content is None:
            raise InvalidArgumentError(f"Content is required to save {name}.")
        if not isinstance(content, str):
            raise InvalidArgumentError(
                f"Content for {name} must be text, got {type(content).__name__}.",
                hint="Serialize structured content (e.g. JSON) to a string before saving.",
            )
        self._artifacts[name] = content

    def get(self, name: str) -> Optional[str]:
        """Return the artifact content, or None if it was never saved."""
        return self._artifacts.get(name)

    def list(self) -> list[str]:
        """Artifact names in the order they were first saved."""
        return list(self._artifacts)

    def to_dict(self) -> dict[str, str]:
        return dict(self._artifacts)

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "ArtifactStore":
        return cls(data or {})
