"""
Scene validation - Check the scene for integrity problems.

The store and controller maintain these invariants themselves; validation
exists so a host (or a test) can confirm it after the fact.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, TYPE_CHECKING

from .models import KIND_DEFAULTS, MIN_DIMENSION

if TYPE_CHECKING:
    from .scene import SceneStore


class IssueSeverity(str, Enum):
    """Severity levels for validation issues."""
    ERROR = "error"      # Invariant broken
    WARNING = "warning"  # Legal but probably unintended
    INFO = "info"        # Informational


@dataclass
class ValidationIssue:
    """A single validation issue found in a scene."""
    severity: IssueSeverity
    message: str
    node_id: str | None = None
    connector_id: str | None = None

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        result = {
            "type": self.severity.value,
            "message": self.message
        }
        if self.node_id:
            result["node_id"] = self.node_id
        if self.connector_id:
            result["connector_id"] = self.connector_id
        return result


def validate_scene(store: "SceneStore", selection: Iterable[str] = ()) -> list[ValidationIssue]:
    """
    Validate a scene and return a list of issues.

    Checks for:
    - Connectors referencing missing nodes - ERROR
    - Self-referencing connectors - ERROR
    - Connectors between nodes sharing a center - WARNING
    - More than one connector per unordered node pair - ERROR
    - Nodes smaller than their kind's minimum size - ERROR
    - Selected ids with no matching node - ERROR
    - Empty scene - INFO

    Args:
        store: The scene to validate
        selection: Currently selected node ids

    Returns:
        List of ValidationIssue objects
    """
    issues: list[ValidationIssue] = []

    nodes = store.nodes
    connectors = store.connectors
    node_ids = {n.id for n in nodes}

    if not nodes:
        issues.append(ValidationIssue(
            severity=IssueSeverity.INFO,
            message="Scene has no nodes"
        ))

    # Dangling references
    for connector in connectors:
        for end in (connector.start_node_id, connector.end_node_id):
            if end not in node_ids:
                issues.append(ValidationIssue(
                    severity=IssueSeverity.ERROR,
                    message=f"Connector references non-existent node: {end}",
                    connector_id=connector.id
                ))

    # Self-references
    for connector in connectors:
        if connector.start_node_id == connector.end_node_id:
            issues.append(ValidationIssue(
                severity=IssueSeverity.ERROR,
                message="Self-referencing connector (node points to itself)",
                connector_id=connector.id,
                node_id=connector.start_node_id
            ))

    # Stacked endpoints leave nothing to draw
    nodes_by_id = {n.id: n for n in nodes}
    for connector in connectors:
        start = nodes_by_id.get(connector.start_node_id)
        end = nodes_by_id.get(connector.end_node_id)
        if start is None or end is None or start is end:
            continue
        if start.center() == end.center():
            issues.append(ValidationIssue(
                severity=IssueSeverity.WARNING,
                message="Connector endpoints share a center and have no visible length",
                connector_id=connector.id
            ))

    # Duplicate pairs, in either direction
    seen_pairs: set[frozenset[str]] = set()
    for connector in connectors:
        pair = connector.pair()
        if pair in seen_pairs:
            issues.append(ValidationIssue(
                severity=IssueSeverity.ERROR,
                message=f"Duplicate connector between {connector.start_node_id} and {connector.end_node_id}",
                connector_id=connector.id
            ))
        else:
            seen_pairs.add(pair)

    # Degenerate sizes
    for node in nodes:
        if node.width < MIN_DIMENSION or node.height < KIND_DEFAULTS[node.kind].min_height:
            issues.append(ValidationIssue(
                severity=IssueSeverity.ERROR,
                message=f"Node is smaller than the minimum size ({node.width}x{node.height})",
                node_id=node.id
            ))

    # Stale selection
    for node_id in selection:
        if node_id not in node_ids:
            issues.append(ValidationIssue(
                severity=IssueSeverity.ERROR,
                message="Selection references a deleted node",
                node_id=node_id
            ))

    return issues


def validation_summary(issues: list[ValidationIssue]) -> dict:
    """
    Create a summary of validation issues.

    Args:
        issues: List of validation issues

    Returns:
        Dictionary with counts by severity
    """
    return {
        "total": len(issues),
        "errors": len([i for i in issues if i.severity == IssueSeverity.ERROR]),
        "warnings": len([i for i in issues if i.severity == IssueSeverity.WARNING]),
        "info": len([i for i in issues if i.severity == IssueSeverity.INFO]),
        "valid": len([i for i in issues if i.severity == IssueSeverity.ERROR]) == 0
    }
