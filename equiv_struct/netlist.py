# netlist.py: minimal in-memory circuit graph the sweep operates on
#
# Everything is referenced by name: a module is an arena of cells and wires
# keyed by string, and a bit is (wire name, offset). Nothing holds a pointer
# back into the graph, so removing a cell never leaves a dangling object.

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Mapping, NamedTuple, Optional, Set, Tuple, Union
import itertools

from .errors import NetlistError

INPUT = "input"
OUTPUT = "output"
INOUT = "inout"
DIRECTIONS = (INPUT, OUTPUT, INOUT)

EQUIV = "$equiv"


def is_internal_type(cell_type: str) -> bool:
    return cell_type.startswith("$")


# -------------------------------------------------------------------
# Bits & signals
class SigBit(NamedTuple):
    wire: Optional[str]    # None for constant bits
    offset: int = 0
    data: str = ""         # "0", "1", "x" or "z" when constant

    @classmethod
    def const(cls, value: str) -> "SigBit":
        if value not in ("0", "1", "x", "z"):
            raise NetlistError(f"bad constant bit: {value!r}")
        return cls(None, 0, value)

    @property
    def is_const(self) -> bool:
        return self.wire is None

    def __str__(self) -> str:
        if self.wire is None:
            return f"1'{self.data}"
        return f"{self.wire}[{self.offset}]"


SigSpec = Tuple[SigBit, ...]


@dataclass(eq=False)
class Wire:
    name: str
    width: int = 1

    @property
    def bits(self) -> SigSpec:
        return tuple(SigBit(self.name, i) for i in range(self.width))

    def __getitem__(self, index: int) -> SigBit:
        if not 0 <= index < self.width:
            raise IndexError(f"bit {index} out of range for wire {self.name} of width {self.width}")
        return SigBit(self.name, index)


SigLike = Union[SigBit, Wire, Iterable[Any]]


def sig(*parts: SigLike) -> SigSpec:
    """Flatten wires, bits and nested sequences of them into one signal (LSB first)."""
    bits: List[SigBit] = []
    for part in parts:
        if isinstance(part, SigBit):
            bits.append(part)
        elif isinstance(part, Wire):
            bits.extend(part.bits)
        elif isinstance(part, str):
            raise NetlistError(f"expected a wire or bit, got string {part!r}")
        else:
            bits.extend(sig(*part))
    return tuple(bits)


def sig_str(signal: SigSpec) -> str:
    if len(signal) == 1:
        return str(signal[0])
    return "{" + " ".join(str(b) for b in reversed(signal)) + "}"


# -------------------------------------------------------------------
# Cells
@dataclass(eq=False)
class Cell:
    name: str
    type: str
    connections: Dict[str, SigSpec] = field(default_factory=dict)
    directions: Dict[str, str] = field(default_factory=dict)
    parameters: Dict[str, Any] = field(default_factory=dict)
    attributes: Dict[str, Set[str]] = field(default_factory=dict)

    def input(self, port: str) -> bool:
        return self.directions.get(port) in (INPUT, INOUT)

    def output(self, port: str) -> bool:
        return self.directions.get(port) in (OUTPUT, INOUT)

    def has_port(self, port: str) -> bool:
        return port in self.connections

    def get_port(self, port: str) -> SigSpec:
        return self.connections[port]

    def set_port(self, port: str, signal: SigLike) -> None:
        if port not in self.directions:
            raise NetlistError(f"cell {self.name} has no port {port}")
        self.connections[port] = sig(signal)

    def get_strpool_attribute(self, name: str) -> Set[str]:
        return set(self.attributes.get(name, ()))

    def add_strpool_attribute(self, name: str, values: Iterable[str]) -> None:
        self.attributes.setdefault(name, set()).update(values)


# -------------------------------------------------------------------
# Modules & designs
class Module:
    def __init__(self, name: str, design: Optional["Design"] = None):
        self.name = name
        self.design = design
        self.wires: Dict[str, Wire] = {}
        self.cells: Dict[str, Cell] = {}
        self.connections: List[Tuple[SigSpec, SigSpec]] = []
        self._auto_ids = itertools.count(1)

    def __repr__(self) -> str:
        return f"Module({self.name!r}, cells={len(self.cells)}, wires={len(self.wires)})"

    def new_id(self, prefix: str = "auto$equiv_struct") -> str:
        while True:
            name = f"${prefix}${next(self._auto_ids)}"
            if name not in self.wires and name not in self.cells:
                return name

    def add_wire(self, name: str, width: int = 1) -> Wire:
        if name in self.wires:
            raise NetlistError(f"duplicate wire {name} in module {self.name}")
        if width < 1:
            raise NetlistError(f"wire {name} needs a positive width, got {width}")
        wire = Wire(name, width)
        self.wires[name] = wire
        return wire

    def add_cell(
        self,
        name: str,
        cell_type: str,
        connections: Optional[Mapping[str, SigLike]] = None,
        directions: Optional[Mapping[str, str]] = None,
        parameters: Optional[Mapping[str, Any]] = None,
    ) -> Cell:
        if name in self.cells:
            raise NetlistError(f"duplicate cell {name} in module {self.name}")
        directions = dict(directions or {})
        for port, direction in directions.items():
            if direction not in DIRECTIONS:
                raise NetlistError(f"port {port} of cell {name} has unknown direction {direction!r}")
        cell = Cell(name, cell_type, directions=directions, parameters=dict(parameters or {}))
        for port, signal in (connections or {}).items():
            if port not in directions:
                raise NetlistError(f"port {port} of cell {name} has no direction")
            cell.connections[port] = sig(signal)
        self.cells[name] = cell
        return cell

    def add_equiv(self, name: str, a: SigLike, b: SigLike, y: SigLike) -> Cell:
        ports = {"A": sig(a), "B": sig(b), "Y": sig(y)}
        for port, signal in ports.items():
            if len(signal) != 1:
                raise NetlistError(f"{EQUIV} port {port} of {name} must be a single bit")
        return self.add_cell(name, EQUIV, ports, {"A": INPUT, "B": INPUT, "Y": OUTPUT})

    def connect(self, lhs: SigLike, rhs: SigLike) -> None:
        """Declare two equal-width signals to be the same net."""
        lhs, rhs = sig(lhs), sig(rhs)
        if len(lhs) != len(rhs):
            raise NetlistError(f"cannot connect {sig_str(lhs)} to {sig_str(rhs)}: width mismatch")
        self.connections.append((lhs, rhs))

    def cell(self, name: str) -> Optional[Cell]:
        return self.cells.get(name)

    def remove(self, cell: Cell) -> None:
        if self.cells.get(cell.name) is not cell:
            raise NetlistError(f"cell {cell.name} is not part of module {self.name}")
        del self.cells[cell.name]

    def selected_cells(self, selection: Optional[Callable[[Cell], bool]] = None) -> List[Cell]:
        return [c for c in self.cells.values() if selection is None or selection(c)]


class Design:
    def __init__(self):
        self.modules: Dict[str, Module] = {}

    def add_module(self, name: str) -> Module:
        if name in self.modules:
            raise NetlistError(f"duplicate module {name}")
        module = Module(name, self)
        self.modules[name] = module
        return module

    def module(self, name: str) -> Optional[Module]:
        return self.modules.get(name)

    def selected_modules(self, selection: Optional[Callable[[Module], bool]] = None) -> List[Module]:
        return [m for m in self.modules.values() if selection is None or selection(m)]
