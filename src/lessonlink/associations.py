"""Lookup tables linking display blocks, code lines and descriptions."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass


@dataclass(frozen=True)
class LineAssociation:
    """What one code line points at."""

    display_target_id: str | None = None
    description_id: str | None = None


class AssociationModel:
    """Pure mapping storage: block -> ordered line ids, line -> association.

    Unknown identities resolve to empty/absent results; nothing here raises.
    """

    def __init__(self) -> None:
        self._block_lines: dict[str, tuple[str, ...]] = {}
        self._line_associations: dict[str, LineAssociation] = {}

    def set_block_associations(self, block_id: str, line_ids: Iterable[str]) -> None:
        """Store the ordered line ids of a block, dropping repeats."""
        ordered: list[str] = []
        for line_id in line_ids:
            if line_id and line_id not in ordered:
                ordered.append(line_id)
        self._block_lines[block_id] = tuple(ordered)

    def set_line_association(self, line_id: str, association: LineAssociation | None) -> None:
        self._line_associations[line_id] = association or LineAssociation()

    def get_associated_lines(self, block_id: str) -> tuple[str, ...]:
        return self._block_lines.get(block_id, ())

    def get_line_association(self, line_id: str) -> LineAssociation | None:
        return self._line_associations.get(line_id)

    def has_block(self, block_id: str) -> bool:
        return block_id in self._block_lines

    def has_line(self, line_id: str) -> bool:
        return line_id in self._line_associations

    def consistency_issues(self) -> list[str]:
        """Describe places where block and line declarations disagree."""
        issues: list[str] = []
        for line_id, association in self._line_associations.items():
            target = association.display_target_id
            if target is None:
                continue
            if target not in self._block_lines:
                issues.append(f"Line '{line_id}' targets unknown block '{target}'.")
            elif line_id not in self._block_lines[target]:
                issues.append(f"Line '{line_id}' targets block '{target}' which does not list it.")
        for block_id, line_ids in self._block_lines.items():
            for line_id in line_ids:
                association = self._line_associations.get(line_id)
                if association is None:
                    issues.append(f"Block '{block_id}' lists unknown line '{line_id}'.")
                elif association.display_target_id != block_id:
                    issues.append(f"Block '{block_id}' lists line '{line_id}' which does not target it.")
        return issues

    def clear(self) -> None:
        self._block_lines.clear()
        self._line_associations.clear()
