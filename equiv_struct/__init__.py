from .errors import (
    EquivStructError,
    InvariantViolation,
    NetlistError,
    SweepLimitExceeded,
)
from .fingerprint import MergeKey, cell_keys
from .netlist import (
    EQUIV,
    INOUT,
    INPUT,
    OUTPUT,
    Cell,
    Design,
    Module,
    SigBit,
    Wire,
    sig,
)
from .options import SweepOptions
from .sigmap import SigMap, UnionFind
from .sweep import (
    MERGED_ATTR,
    BucketIndex,
    Runner,
    Sweep,
    equiv_struct,
    merge_cell_pair,
    select_survivor,
)

__all__ = [
    "EquivStructError",
    "InvariantViolation",
    "NetlistError",
    "SweepLimitExceeded",
    "MergeKey",
    "cell_keys",
    "EQUIV",
    "INOUT",
    "INPUT",
    "OUTPUT",
    "Cell",
    "Design",
    "Module",
    "SigBit",
    "Wire",
    "sig",
    "SweepOptions",
    "SigMap",
    "UnionFind",
    "MERGED_ATTR",
    "BucketIndex",
    "Runner",
    "Sweep",
    "equiv_struct",
    "merge_cell_pair",
    "select_survivor",
]
