# errors.py: exceptions raised by the netlist model and the sweep


class EquivStructError(Exception):
    """Base class for everything raised by this package."""


class NetlistError(EquivStructError):
    """The in-memory netlist was used inconsistently (duplicate names, bad widths...)."""


class InvariantViolation(EquivStructError):
    """Two cells sharing a merge key disagree on their ports.

    Keys include every port name and width, so this only fires when key
    construction is broken. Merging anyway could relate unrelated bits.
    """


class SweepLimitExceeded(EquivStructError):
    def __init__(self, module: str, iterations: int):
        super().__init__(f"module {module} still changing after {iterations} sweeps")
        self.module = module
        self.iterations = iterations
