# fingerprint.py: structural merge keys for cells
#
# Two cells with the same forward key compute the same function of the same
# (canonical) inputs, so their outputs are equal. Two cells with the same
# backward key drive an output bit already known to be equal; they are
# treated as the same cell and their differing inputs become new $equiv cells.

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, List, Tuple

from .netlist import Cell, SigBit
from .sigmap import SigMap

Connection = Tuple[str, int, SigBit]    # (port, bit index, canonical bit)


@dataclass(frozen=True)
class MergeKey:
    type: str
    parameters: Tuple[Tuple[str, Any], ...]
    port_sizes: Tuple[Tuple[str, int], ...]
    connections: Tuple[Connection, ...]

    def describe(self) -> str:
        conns = ", ".join(f"{p}[{i}]={b}" for p, i, b in self.connections)
        return f"{self.type}({conns})"


def cell_keys(cell: Cell, equiv_bits: SigMap) -> Tuple[MergeKey, List[MergeKey]]:
    """Return (forward key, backward keys) for one cell.

    The forward key lists every input bit, ordered by (port, index). There is
    one backward key per output bit, each holding just that bit. Inout ports
    contribute to both.
    """
    parameters = tuple(sorted(cell.parameters.items(), key=lambda item: item[0]))
    port_sizes = tuple(sorted((port, len(signal)) for port, signal in cell.connections.items()))

    fwd_connections: List[Connection] = []
    bwd_keys: List[MergeKey] = []

    for port, signal in cell.connections.items():
        bits = equiv_bits(signal)
        if cell.input(port):
            fwd_connections.extend((port, i, bit) for i, bit in enumerate(bits))
        if cell.output(port):
            for i, bit in enumerate(bits):
                bwd_keys.append(MergeKey(cell.type, parameters, port_sizes, ((port, i, bit),)))

    fwd_connections.sort(key=lambda conn: conn[:2])
    fwd_key = MergeKey(cell.type, parameters, port_sizes, tuple(fwd_connections))
    return fwd_key, bwd_keys
