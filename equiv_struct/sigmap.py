# sigmap.py: union-find over signal bits
#
# A SigMap answers "which bit stands for this one?". It is seeded from a
# module's connect() aliases and can be extended with extra equalities
# (known equivalences, the rewrite rules of a single merge).

from __future__ import annotations
from typing import Dict, Hashable, Optional, Union

from .errors import NetlistError
from .netlist import Module, SigBit, SigLike, SigSpec, sig, sig_str


# -------------------------------------------------------------------
# Union-Find
class UnionFind:
    def __init__(self):
        self.parent: Dict[Hashable, Hashable] = {}

    def find(self, x: Hashable) -> Hashable:
        root = x
        while self.parent.get(root, root) != root:
            root = self.parent[root]
        # path compression
        while x != root:
            parent = self.parent[x]
            self.parent[x] = root
            x = parent
        return root

    def union(self, a: Hashable, b: Hashable) -> Hashable:
        """Merge the classes of a and b; b's representative leads."""
        ra, rb = self.find(a), self.find(b)
        if ra != rb:
            self.parent[ra] = rb
        return rb

    def promote(self, x: Hashable) -> None:
        root = self.find(x)
        if root != x:
            self.parent[root] = x
            self.parent[x] = x


# -------------------------------------------------------------------
# SigMap
class SigMap:
    def __init__(self, module: Optional[Module] = None):
        self.uf = UnionFind()
        if module is not None:
            for lhs, rhs in module.connections:
                self.add(lhs, rhs)

    def add(self, from_sig: SigLike, to_sig: SigLike) -> None:
        """Record from_sig == to_sig bit by bit.

        The representative of to_sig's class leads the merged class, except
        that a constant bit always leads its class.
        """
        from_bits, to_bits = sig(from_sig), sig(to_sig)
        if len(from_bits) != len(to_bits):
            raise NetlistError(f"cannot alias {sig_str(from_bits)} to {sig_str(to_bits)}: width mismatch")
        for a, b in zip(from_bits, to_bits):
            if a == b:
                continue
            self.uf.union(a, b)
            if a.is_const:
                self.uf.promote(a)
            if b.is_const:
                self.uf.promote(b)

    def __call__(self, value: Union[SigBit, SigLike]) -> Union[SigBit, SigSpec]:
        if isinstance(value, SigBit):
            return self.uf.find(value)
        return tuple(self.uf.find(b) for b in sig(value))

    def same(self, a: SigBit, b: SigBit) -> bool:
        return self.uf.find(a) == self.uf.find(b)
