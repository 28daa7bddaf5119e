# In src/cargo_scorecard/dependency.py
from dataclasses import dataclass


@dataclass(frozen=True)
class DependencyRef:
    """One crate from the dependency graph as reported by cargo."""

    name: str
    version: str
