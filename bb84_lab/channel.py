"""Quantum channel model.

Only the classical outcome statistics of BB84 are modelled: a receiver
measuring in the sender's basis recovers the sender's bit, any other basis
yields a uniformly random bit. The circuit backend reaches the same
statistics by running one-qubit circuits on an Aer simulator.
"""

from __future__ import annotations

from typing import Dict, List, Optional, Sequence, Type

from numpy.random import Generator, default_rng
from qiskit import QuantumCircuit
from qiskit_aer import AerSimulator

from .bases import Basis
from .noise import NoiseChannel

_SEED_BOUND = 2**31 - 1


def measure(sender_bit: int, sender_basis: Basis, receiver_basis: Basis, rng: Optional[Generator] = None) -> int:
    if sender_basis == receiver_basis:
        return sender_bit
    rng = rng if rng is not None else default_rng()
    return int(rng.integers(0, 2))


class ClassicalBackend:
    name = "classical"

    def measure(self, bit: int, preparation_basis: Basis, measurement_basis: Basis, rng: Generator) -> int:
        return measure(bit, preparation_basis, measurement_basis, rng)


class CircuitBackend:
    name = "circuit"

    def __init__(self) -> None:
        self._simulator = AerSimulator(method="density_matrix")

    def measure(self, bit: int, preparation_basis: Basis, measurement_basis: Basis, rng: Generator) -> int:
        circuit = build_measurement_circuit(bit, preparation_basis, measurement_basis)
        seed = int(rng.integers(0, _SEED_BOUND))
        result = self._simulator.run(circuit, shots=1, seed_simulator=seed).result()
        counts = result.get_counts()
        return int(max(counts, key=counts.get))


BACKENDS: Dict[str, Type] = {
    ClassicalBackend.name: ClassicalBackend,
    CircuitBackend.name: CircuitBackend,
}


def build_backend(name: str):
    try:
        return BACKENDS[name]()
    except KeyError:
        raise ValueError(f"Unsupported measurement backend '{name}'") from None


def build_measurement_circuit(bit: int, preparation_basis: Basis, measurement_basis: Basis) -> QuantumCircuit:
    circuit = QuantumCircuit(1, 1)
    if bit == 1:
        circuit.x(0)
    if preparation_basis == Basis.DIAGONAL:
        circuit.h(0)

    circuit.id(0)

    if measurement_basis == Basis.DIAGONAL:
        circuit.h(0)
    circuit.measure(0, 0)
    return circuit


class QuantumChannel:
    def __init__(
        self,
        backend=None,
        noise: Optional[NoiseChannel] = None,
        rng: Optional[Generator] = None,
    ):
        self.backend = backend if backend is not None else ClassicalBackend()
        self.noise = noise if noise is not None else NoiseChannel()
        self._rng = rng if rng is not None else default_rng()

    def send(
        self,
        bits: Sequence[int],
        sender_bases: Sequence[Basis],
        receiver_bases: Sequence[Basis],
        noisy: bool = False,
    ) -> List[int]:
        """Measure every prepared qubit in the receiver's basis, flipping results if ``noisy``."""
        if not len(bits) == len(sender_bases) == len(receiver_bases):
            raise ValueError("bits and bases must be index-aligned")

        results: List[int] = []
        for bit, sender_basis, receiver_basis in zip(bits, sender_bases, receiver_bases):
            result = self.backend.measure(bit, sender_basis, receiver_basis, self._rng)
            if noisy:
                result = self.noise.apply(result, self._rng)
            results.append(result)
        return results

