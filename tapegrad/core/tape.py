# tapegrad/core/tape.py
from __future__ import annotations
import logging
from typing import Iterator, List

from .errors import TapeClosedError
from .node import Node

logger = logging.getLogger(__name__)


class _EndOfTape:
    """Sentinel appended to a tape when it is closed."""
    __slots__ = ()
    args = ()

    def __repr__(self):
        return "EOT"


EOT = Node(value=_EndOfTape())


class Tape:
    """
    Append-only record of Nodes in creation order.

    A tape is created by exactly one forward pass and consumed by exactly one
    backward pass. Closing it appends the `EOT` marker; after that nothing can
    be recorded on it, so primitives called from gradient functions during the
    reverse sweep do not land on the tape being swept.
    """

    def __init__(self):
        self.nodes: List[Node] = []

    def __len__(self):
        return len(self.nodes)

    def __iter__(self) -> Iterator[Node]:
        return iter(self.nodes)

    def __getitem__(self, i):
        return self.nodes[i]

    def __repr__(self):
        state = "closed" if self.closed else "open"
        return f"Tape({len(self.nodes)} nodes, {state})"

    @property
    def closed(self) -> bool:
        return bool(self.nodes) and self.nodes[-1] is EOT

    def push_node(self, node: Node) -> int:
        """Append `node` and return its position on the tape."""
        if self.closed:
            raise TapeClosedError("cannot record on a closed tape")
        self.nodes.append(node)
        return len(self.nodes) - 1

    def close(self):
        if not self.closed:
            self.nodes.append(EOT)
            logger.debug("closed %r", self)

    def recorded(self) -> List[Node]:
        """Nodes in creation order, without the EOT marker."""
        return self.nodes[:-1] if self.closed else list(self.nodes)
