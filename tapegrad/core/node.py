# tapegrad/core/node.py
from dataclasses import dataclass, field
from typing import Any, List, Optional


@dataclass(eq=False)
class Node:
    """
    One vertex of the computation graph recorded on a single tape.

    Attributes
    ----------
    value    : Boxed
        The boxed value this node represents.
    parents  : List[Optional[Node]]
        One slot per positional argument of the producing primitive. A slot
        holds the argument's node *on the same tape*, or None when that
        argument was not boxed on this tape.
    outgrads : List[Any]
        Gradient contributions pushed by consumers during the reverse sweep;
        summed before this node's own gradient functions run.
    """
    value: Any
    parents: List[Optional["Node"]] = field(default_factory=list)
    outgrads: List[Any] = field(default_factory=list)

    @classmethod
    def for_value(cls, value) -> "Node":
        """Fresh node with one empty parent slot per argument of `value.args`."""
        return cls(value=value, parents=[None] * len(value.args))
