"""
Item sinks.

The converter streams each item to an ``ItemSink`` as soon as it is built.
Persistence, batching and flushing belong to the sink; these two adapters
cover in-memory collection and plain callables.
"""

from typing import Callable, Dict, List, Protocol, runtime_checkable

from shared.models.items import Item


@runtime_checkable
class ItemSink(Protocol):
    """Protocol for consumers of converted items."""

    def emit(self, item: Item) -> None:
        """Accept one item. Called from one thread at a time."""
        ...


class CollectingSink:
    """Keep every emitted item in memory, in emission order."""

    def __init__(self) -> None:
        self.items: List[Item] = []

    def emit(self, item: Item) -> None:
        self.items.append(item)

    def __len__(self) -> int:
        return len(self.items)

    def by_class(self) -> Dict[str, List[Item]]:
        """Items grouped by class name, each group in emission order."""
        grouped: Dict[str, List[Item]] = {}
        for item in self.items:
            grouped.setdefault(item.class_name, []).append(item)
        return grouped


class CallbackSink:
    """Forward every item to a callable."""

    def __init__(self, callback: Callable[[Item], None]) -> None:
        self._callback = callback

    def emit(self, item: Item) -> None:
        self._callback(item)
