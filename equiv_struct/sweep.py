# sweep.py: structural equivalence sweep with fixpoint driver
#
# One Sweep purges redundant $equiv cells, buckets the remaining cells by
# merge key and folds every bucket with two or more live members. Any change
# invalidates the buckets, so the Runner simply starts a fresh Sweep until one
# reports zero actions.

from __future__ import annotations
from typing import Callable, Dict, Iterable, List, Optional, Set, Tuple
import logging

from .errors import InvariantViolation, SweepLimitExceeded
from .fingerprint import MergeKey, cell_keys
from .netlist import EQUIV, Cell, Design, Module, SigBit, is_internal_type
from .options import SweepOptions
from .sigmap import SigMap

logger = logging.getLogger(__name__)

MERGED_ATTR = "equiv_merged"
GOLD_SUFFIX = "_gold"

CellFilter = Callable[[Cell], bool]
ModuleFilter = Callable[[Module], bool]


# -------------------------------------------------------------------
# Bucket index
class BucketIndex:
    """Merge key -> cell names, plus the keys that gained a second member."""

    def __init__(self):
        self.buckets: Dict[MergeKey, Set[str]] = {}
        # dicts used as insertion-ordered sets
        self.fwd_queue: Dict[MergeKey, None] = {}
        self.bwd_queue: Dict[MergeKey, None] = {}

    def _insert(self, key: MergeKey, name: str, queue: Dict[MergeKey, None]) -> None:
        members = self.buckets.setdefault(key, set())
        if members and name not in members:
            queue[key] = None
        members.add(name)

    def add_forward(self, key: MergeKey, name: str) -> None:
        self._insert(key, name, self.fwd_queue)

    def add_backward(self, key: MergeKey, name: str) -> None:
        self._insert(key, name, self.bwd_queue)

    def members(self, key: MergeKey) -> List[str]:
        return sorted(self.buckets.get(key, ()))


# -------------------------------------------------------------------
# Merging
def select_survivor(cells: Iterable[Cell]) -> Cell:
    cells = list(cells)
    golds = [c for c in cells if c.name.endswith(GOLD_SUFFIX)]
    return min(golds or cells, key=lambda c: c.name)


def merge_cell_pair(module: Module, sigmap: SigMap, gold: Cell, gate: Cell) -> List[Cell]:
    """Fold gate into gold and return the $equiv cells created for differing inputs."""
    # input name per differing (gold bit, gate bit) pair; the module is
    # untouched until every port has been checked
    differing: Dict[Tuple[SigBit, SigBit], str] = {}

    for port, signal in gold.connections.items():
        if not gate.has_port(port):
            raise InvariantViolation(f"cell {gate.name} lacks port {port} of {gold.name}")
        bits_a = sigmap(signal)
        bits_b = sigmap(gate.get_port(port))
        if len(bits_a) != len(bits_b):
            raise InvariantViolation(
                f"port {port} is {len(bits_a)} bits on {gold.name} but {len(bits_b)} bits on {gate.name}")
        if gold.output(port):
            continue
        for i, (bit_a, bit_b) in enumerate(zip(bits_a, bits_b)):
            if bit_a != bit_b and (bit_a, bit_b) not in differing:
                differing[(bit_a, bit_b)] = port if len(bits_a) == 1 else f"{port}[{i}]"

    merged_map = SigMap()
    new_equivs: List[Cell] = []

    for (bit_a, bit_b), input_name in differing.items():
        bit_y = module.add_wire(module.new_id())[0]
        logger.debug("New %s for input %s: A: %s, B: %s, Y: %s", EQUIV, input_name, bit_a, bit_b, bit_y)
        new_equivs.append(module.add_equiv(module.new_id(), bit_a, bit_b, bit_y))
        merged_map.add(bit_a, bit_y)
        merged_map.add(bit_b, bit_y)

    inport_names = [p for p in gold.connections if not gold.output(p)]
    outport_names = [p for p in gold.connections if gold.output(p)]

    for port in inport_names:
        gold.set_port(port, merged_map(sigmap(gold.get_port(port))))

    # readers of gate's outputs now see gold's outputs through the alias
    for port in outport_names:
        module.connect(gate.get_port(port), gold.get_port(port))

    merged = gate.get_strpool_attribute(MERGED_ATTR)
    merged.add(gate.name)
    gold.add_strpool_attribute(MERGED_ATTR, merged)
    module.remove(gate)
    return new_equivs


# -------------------------------------------------------------------
# Sweep
class Sweep:
    def __init__(self, module: Module, options: Optional[SweepOptions] = None,
                 selection: Optional[CellFilter] = None):
        self.module = module
        self.options = options or SweepOptions()
        self.selection = selection
        self.sigmap = SigMap(module)
        self.equiv_bits = SigMap(module)
        self.buckets = BucketIndex()
        self.merge_count = 0
        self.new_equivs: List[Cell] = []

    def eligible(self, cell: Cell) -> bool:
        if cell.type == EQUIV:
            return False
        if self.options.include_internal or not is_internal_type(cell.type):
            return True
        # instances of design modules count even under `$` names ($paramod...)
        design = self.module.design
        return design is not None and design.module(cell.type) is not None

    def run(self) -> int:
        """Run one sweep and return the number of actions (purges + merges)."""
        logger.debug("Starting new iteration on module %s.", self.module.name)
        cells = self.module.selected_cells(self.selection)

        equivs = [c for c in cells if c.type == EQUIV]
        endpoints = self.build_equiv_map(equivs)

        self.purge_redundant(equivs, endpoints)
        if self.merge_count > 0:
            return self.merge_count

        self.index(sorted(c.name for c in cells if self.eligible(c)))

        phases = [("Fwd", self.buckets.fwd_queue)]
        if not self.options.forward_only:
            phases.append(("Bwd", self.buckets.bwd_queue))

        for label, queue in phases:
            for key in queue:
                self.merge_bucket(label, key)
            if self.merge_count > 0:
                return self.merge_count

        logger.info("Nothing to merge in module %s.", self.module.name)
        return 0

    def build_equiv_map(self, equivs: List[Cell]) -> Set[SigBit]:
        endpoints: Set[SigBit] = set()
        for cell in equivs:
            sig_a = self.sigmap(cell.get_port("A")[0])
            sig_b = self.sigmap(cell.get_port("B")[0])
            self.equiv_bits.add(sig_b, sig_a)
            endpoints.add(sig_a)
            endpoints.add(sig_b)
        return endpoints

    def purge_redundant(self, equivs: List[Cell], endpoints: Set[SigBit]) -> None:
        # A == B already and Y feeds another assertion: the cell proves nothing.
        for cell in equivs:
            sig_a = self.sigmap(cell.get_port("A")[0])
            sig_b = self.sigmap(cell.get_port("B")[0])
            sig_y = self.sigmap(cell.get_port("Y")[0])
            if sig_a == sig_b and sig_y in endpoints:
                logger.info("Purging redundant %s cell %s.", EQUIV, cell.name)
                self.module.remove(cell)
                self.merge_count += 1

    def index(self, names: List[str]) -> None:
        for name in names:
            fwd_key, bwd_keys = cell_keys(self.module.cells[name], self.equiv_bits)
            for key in bwd_keys:
                self.buckets.add_backward(key, name)
            self.buckets.add_forward(fwd_key, name)

    def merge_bucket(self, label: str, key: MergeKey) -> None:
        cells = [c for c in map(self.module.cell, self.buckets.members(key)) if c is not None]
        if len(cells) < 2:
            return
        logger.debug("%s bucket %s: %s", label, key.describe(), ", ".join(c.name for c in cells))
        gold = select_survivor(cells)
        for gate in cells:
            if gate is gold:
                continue
            logger.info("%s merging cells %s and %s.", label, gold.name, gate.name)
            self.new_equivs.extend(merge_cell_pair(self.module, self.sigmap, gold, gate))
            self.merge_count += 1


# -------------------------------------------------------------------
# Runner
class Runner:
    def __init__(self, module: Module, options: Optional[SweepOptions] = None,
                 selection: Optional[CellFilter] = None):
        self.module = module
        self.options = options or SweepOptions()
        self.selection = selection
        self.iterations = 0

    def run(self) -> int:
        """Sweep until nothing changes; return the total number of actions."""
        total = 0
        limit = self.options.max_iterations
        while True:
            count = Sweep(self.module, self.options, self.selection).run()
            self.iterations += 1
            if count == 0:
                return total
            total += count
            if limit is not None and self.iterations >= limit:
                raise SweepLimitExceeded(self.module.name, self.iterations)


def equiv_struct(design: Design, options: Optional[SweepOptions] = None,
                 modules: Optional[ModuleFilter] = None,
                 cells: Optional[CellFilter] = None) -> Dict[str, int]:
    """Run the sweep to fixpoint on every selected module of the design."""
    options = options or SweepOptions()
    results: Dict[str, int] = {}
    for module in design.selected_modules(modules):
        logger.info("Running equiv_struct on module %s.", module.name)
        runner = Runner(module, options, cells)
        results[module.name] = runner.run()
        logger.info("Module %s: %d actions in %d sweeps.", module.name, results[module.name], runner.iterations)
    return results
