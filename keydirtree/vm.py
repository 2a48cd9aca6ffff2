"""A register machine that runs placeholder operations, and its subcircuit layout."""

from __future__ import annotations

from dataclasses import dataclass, field

REGISTER_NUM = 16
"""Number of registers of the machine."""


@dataclass(frozen=True)
class VirtualMachineParameters:
    """Settings of a machine run."""

    use_merkle_memory: bool
    log_num_subcircuit: int
    """The run is split into ``2 ** log_num_subcircuit`` subcircuits."""
    dummy_constraint_num: int
    operations_per_chunk: int
    """Operations per subcircuit; expected to be a power of two."""

    def __post_init__(self) -> None:
        for name in ("log_num_subcircuit", "dummy_constraint_num", "operations_per_chunk"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must not be negative")

    @property
    def num_subcircuits(self) -> int:
        return 1 << self.log_num_subcircuit


class VirtualMachine:
    """A machine with ``REGISTER_NUM`` registers, all starting at zero."""

    def __init__(self, params: VirtualMachineParameters) -> None:
        self.params = VirtualMachineParameters(
            use_merkle_memory=params.use_merkle_memory,
            log_num_subcircuit=params.log_num_subcircuit,
            dummy_constraint_num=params.dummy_constraint_num,
            operations_per_chunk=params.operations_per_chunk,
        )
        self.data: list[int] = [0] * REGISTER_NUM
        self.steps = 0

    def execute_dummy_operation(self) -> None:
        """Perform one placeholder operation; registers are left unchanged."""
        self.steps += 1

    def run(self) -> None:
        """Execute every operation of every subcircuit."""
        total = self.params.num_subcircuits * self.params.operations_per_chunk
        for _ in range(total):
            self.execute_dummy_operation()


@dataclass(frozen=True)
class DummyCircuit:
    """One placeholder operation inside a subcircuit."""


@dataclass
class Circuit:
    """The operations proved together in one subcircuit."""

    subcircuits: list[DummyCircuit] = field(default_factory=list)


def vm_to_subcircuits(vm: VirtualMachine) -> list[Circuit]:
    """Lay out a machine run as one circuit per subcircuit slot."""
    return [
        Circuit([DummyCircuit() for _ in range(vm.params.operations_per_chunk)])
        for _ in range(vm.params.num_subcircuits)
    ]