"""
Tape inspection helpers.
Summarise the structure of a recorded computation graph.
"""

from collections import Counter
from typing import Dict

import numpy as np

from .tape import Tape


def summarize_tape(tape: Tape, verbose: bool = False) -> Dict:
    """
    Collect statistics about the nodes recorded on `tape`.

    Args:
        tape: a Tape (open or closed)
        verbose: print a short report as well

    Returns:
        dict with keys 'nodes', 'edges', 'max_fan_in', 'avg_fan_in',
        'closed' and 'ops' (Counter of primitive names; the input node
        counts as 'input')
    """
    nodes = tape.recorded()
    fan_ins = [sum(p is not None for p in node.parents) for node in nodes]
    ops = Counter(getattr(node.value.func, "name", "input") for node in nodes)

    summary = {
        'nodes': len(nodes),
        'edges': sum(fan_ins),
        'max_fan_in': max(fan_ins) if fan_ins else 0,
        'avg_fan_in': float(np.mean(fan_ins)) if fan_ins else 0.0,
        'closed': tape.closed,
        'ops': ops,
    }

    if verbose:
        print("\n" + "=" * 50)
        print("TAPE SUMMARY")
        print("=" * 50)
        print(f"Total nodes:   {summary['nodes']:,}")
        print(f"Total edges:   {summary['edges']:,}")
        print(f"Max fan-in:    {summary['max_fan_in']}")
        print(f"Avg fan-in:    {summary['avg_fan_in']:.2f}")
        print(f"Closed:        {summary['closed']}")
        print()
        print("Operation breakdown:")
        for op, count in ops.most_common(10):
            pct = 100.0 * count / len(nodes)
            print(f"  {op:12s}: {count:6,} ({pct:5.1f}%)")
        print("=" * 50 + "\n")

    return summary
