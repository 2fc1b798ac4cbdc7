"""
Conversion result types.

``ConversionResult`` is the ledger a conversion job returns: how many items
went to the sink, per entity type, and what was skipped and why.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List


@dataclass
class SkippedItem:
    """
    Something the converter could not convert.

    Attributes:
        item_type: One of ``entity_type``, ``field`` or ``row``.
        name: Name of the skipped entity type, field or row identifier.
        reason: Human-readable reason.
        location: ``Type`` or ``Type.field`` the skip happened in.
    """
    item_type: str
    name: str
    reason: str
    location: str = ""

    def to_dict(self) -> Dict[str, str]:
        return {
            "type": self.item_type,
            "name": self.name,
            "reason": self.reason,
            "location": self.location,
        }


@dataclass
class ConversionResult:
    """
    Outcome of one conversion job.

    Attributes:
        items_emitted: Total items handed to the sink.
        items_by_type: Entity type name -> items emitted for it.
        entity_types_processed: Entity types whose rows were fully read.
        skipped_items: Entity types, fields and rows that were skipped.
        warnings: Non-fatal messages collected during the job.
        cancelled: True if the job stopped on a cancellation request.
        duration_seconds: Wall-clock time of the job.
    """
    items_emitted: int = 0
    items_by_type: Dict[str, int] = field(default_factory=dict)
    entity_types_processed: int = 0
    skipped_items: List[SkippedItem] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    cancelled: bool = False
    duration_seconds: float = 0.0

    @property
    def skipped_entity_types(self) -> List[str]:
        return [s.name for s in self.skipped_items if s.item_type == "entity_type"]

    @property
    def success(self) -> bool:
        """True when nothing was skipped and the job ran to completion."""
        return not self.cancelled and not self.skipped_items

    def record_item(self, entity_type: str) -> None:
        self.items_emitted += 1
        self.items_by_type[entity_type] = self.items_by_type.get(entity_type, 0) + 1

    def get_summary(self) -> str:
        """Generate human-readable summary."""
        lines = [
            "Conversion Summary:",
            f"  Entity types processed: {self.entity_types_processed}",
            f"  Items emitted: {self.items_emitted:,}",
            f"  Skipped: {len(self.skipped_items)}",
            f"  Warnings: {len(self.warnings)}",
        ]
        if self.cancelled:
            lines.append("  Status: cancelled")
        if self.duration_seconds > 0:
            rate = self.items_emitted / self.duration_seconds
            lines.append(f"  Duration: {self.duration_seconds:.2f}s ({rate:.0f} items/sec)")
        return "\n".join(lines)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "itemsEmitted": self.items_emitted,
            "itemsByType": dict(self.items_by_type),
            "entityTypesProcessed": self.entity_types_processed,
            "skippedItems": [s.to_dict() for s in self.skipped_items],
            "warnings": list(self.warnings),
            "cancelled": self.cancelled,
            "durationSeconds": self.duration_seconds,
        }
