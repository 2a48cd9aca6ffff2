import pytest

from keydirtree.vm import (
    REGISTER_NUM,
    Circuit,
    DummyCircuit,
    VirtualMachine,
    VirtualMachineParameters,
    vm_to_subcircuits,
)


@pytest.fixture
def params():
    return VirtualMachineParameters(
        use_merkle_memory=False,
        log_num_subcircuit=5,
        dummy_constraint_num=30,
        operations_per_chunk=2,
    )


def test_virtual_machine(params):
    vm = VirtualMachine(params)
    vm.run()
    assert vm.steps == 64
    assert vm.data == [0] * REGISTER_NUM


def test_registers_start_at_zero(params):
    vm = VirtualMachine(params)
    assert len(vm.data) == 16
    assert all(value == 0 for value in vm.data)


def test_params_copied(params):
    vm = VirtualMachine(params)
    assert vm.params == params
    assert vm.params.num_subcircuits == 32


def test_single_operation(params):
    vm = VirtualMachine(params)
    vm.execute_dummy_operation()
    assert vm.steps == 1


def test_vm_to_subcircuits(params):
    circuits = vm_to_subcircuits(VirtualMachine(params))
    assert len(circuits) == 32
    assert all(c == Circuit([DummyCircuit(), DummyCircuit()]) for c in circuits)


def test_vm_to_subcircuits_small():
    vm = VirtualMachine(VirtualMachineParameters(False, 0, 0, 4))
    circuits = vm_to_subcircuits(vm)
    assert len(circuits) == 1
    assert len(circuits[0].subcircuits) == 4


def test_negative_parameter_rejected():
    with pytest.raises(ValueError):
        VirtualMachineParameters(False, -1, 30, 2)