"""
Computation-graph utilities.
Statistics and printable summaries of a recorded tape.
"""

import sys
import numpy as np
from typing import Dict, TextIO
from collections import Counter


def get_graph_stats(tape) -> Dict:
    """
    Collect statistics of a tape's computation graph (no printing).

    Returns:
        dict with node/edge counts, fan-in/fan-out extremes and averages,
        and the per-operation breakdown.
    """
    if not tape.nodes:
        return {
            'nodes': 0,
            'edges': 0,
            'max_fan_in': 0,
            'avg_fan_in': 0.0,
            'max_fan_out': 0,
            'avg_fan_out': 0.0,
            'operations': {}
        }

    n_nodes = len(tape.nodes)
    n_edges = sum(len(node.parents) for node in tape.nodes)

    # Fan-in
    fan_ins = [len(node.parents) for node in tape.nodes]
    max_fan_in = max(fan_ins)
    avg_fan_in = float(np.mean(fan_ins))

    # Fan-out: how many later nodes consume each node's output
    node_index = {id(node.out): i for i, node in enumerate(tape.nodes)}
    fan_outs = [0] * n_nodes
    for node in tape.nodes:
        for parent, _ in node.parents:
            idx = node_index.get(id(parent))
            if idx is not None:
                fan_outs[idx] += 1

    max_fan_out = max(fan_outs)
    avg_fan_out = float(np.mean(fan_outs))

    op_counter = Counter(node.op_tag for node in tape.nodes)

    return {
        'nodes': n_nodes,
        'edges': n_edges,
        'max_fan_in': max_fan_in,
        'avg_fan_in': avg_fan_in,
        'max_fan_out': max_fan_out,
        'avg_fan_out': avg_fan_out,
        'operations': dict(op_counter)
    }


def print_graph_summary(tape, stream: TextIO = None, detailed: bool = False) -> Dict:
    """
    Write a summary of the tape's computation graph to `stream`.

    Args:
        tape: Tape object
        stream: output sink (defaults to sys.stdout)
        detailed: also list the nodes (only for graphs of at most 100 nodes)

    Returns:
        The statistics dictionary from get_graph_stats().
    """
    stream = stream if stream is not None else sys.stdout
    stats = get_graph_stats(tape)
    if stats['nodes'] == 0:
        stream.write("Empty computation graph\n")
        return stats

    stream.write("=" * 70 + "\n")
    stream.write("COMPUTATION GRAPH SUMMARY\n")
    stream.write("=" * 70 + "\n")
    stream.write(f"Total nodes:        {stats['nodes']:,}\n")
    stream.write(f"Total edges:        {stats['edges']:,}\n")
    stream.write(f"Max fan-in:         {stats['max_fan_in']}\n")
    stream.write(f"Avg fan-in:         {stats['avg_fan_in']:.2f}\n")
    stream.write(f"Max fan-out:        {stats['max_fan_out']}\n")
    stream.write(f"Avg fan-out:        {stats['avg_fan_out']:.2f}\n")
    stream.write("Operation breakdown:\n")
    for op_type, count in Counter(stats['operations']).most_common(10):
        pct = 100.0 * count / stats['nodes']
        stream.write(f"  {op_type:12s}: {count:6,} ({pct:5.1f}%)\n")

    if detailed and stats['nodes'] <= 100:
        node_index = {id(node.out): i for i, node in enumerate(tape.nodes)}
        stream.write("Nodes:\n")
        for i, node in enumerate(tape.nodes):
            parent_info = ", ".join(
                f"Node{node_index[id(p)]}" if id(p) in node_index else (p.name or "const")
                for p, _ in node.parents
            )
            stream.write(f"Node {i:3d}: {node.op_tag:12s} ({float(node.out.val):12.6g}) <- [{parent_info}]\n")

    stream.write("=" * 70 + "\n")
    return stats
