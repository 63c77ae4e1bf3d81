from __future__ import annotations

import logging
import dataclasses
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from numpy.random import Generator, default_rng

from .bases import Basis, Party, default_bases, randomize, toggle
from .channel import BACKENDS, QuantumChannel, build_backend
from .encoding import encode
from .errors import IndexOutOfRange, InvalidTransition
from .noise import NoiseChannel
from .sifting import ErrorEstimate, Verdict, estimate_errors, matching_indices, sift

logger = logging.getLogger(__name__)


class Stage(Enum):
    EMPTY = 0
    ENCODED = 1
    BASES_CHOSEN = 2
    TRANSMITTED = 3
    EVE_INTERCEPTED = 4
    EVE_FORWARDED = 5
    BOB_MEASURED = 6
    BASES_COMPARED = 7
    KEY_SIFTED = 8
    ERROR_ESTIMATED = 9


CONFIGURABLE_STAGES = (Stage.EMPTY, Stage.ENCODED, Stage.BASES_CHOSEN)
PRE_TRANSMISSION_STAGES = (Stage.ENCODED, Stage.BASES_CHOSEN)

# Alice commits on transmission, Eve on interception, Bob on measurement.
EDITABLE_STAGES: Dict[Party, Tuple[Stage, ...]] = {
    Party.ALICE: PRE_TRANSMISSION_STAGES,
    Party.EVE: PRE_TRANSMISSION_STAGES + (Stage.TRANSMITTED,),
    Party.BOB: PRE_TRANSMISSION_STAGES + (Stage.TRANSMITTED, Stage.EVE_INTERCEPTED, Stage.EVE_FORWARDED),
}


@dataclass
class SessionConfig:
    seed: Optional[int] = None
    eavesdropper_enabled: bool = False
    noise_enabled: bool = False
    noise: NoiseChannel = field(default_factory=NoiseChannel)
    backend: str = "classical"

    def __post_init__(self) -> None:
        if self.backend not in BACKENDS:
            raise ValueError(f"Unsupported measurement backend '{self.backend}'")


@dataclass
class SessionState:
    """Everything derived from one message, index-aligned to ``bits``."""

    message: str = ""
    bits: List[int] = field(default_factory=list)
    bases: Dict[Party, List[Basis]] = field(default_factory=lambda: {party: [] for party in Party})
    measurements: Dict[Party, List[int]] = field(default_factory=lambda: {Party.EVE: [], Party.BOB: []})
    stage: Stage = Stage.EMPTY
    matching_indices: List[int] = field(default_factory=list)
    alice_sifted: List[int] = field(default_factory=list)
    bob_sifted: List[int] = field(default_factory=list)
    estimate: Optional[ErrorEstimate] = None

    @classmethod
    def for_message(cls, message: str) -> "SessionState":
        bits = encode(message)
        return cls(
            message=message,
            bits=bits,
            bases={party: default_bases(len(bits)) for party in Party},
            stage=Stage.ENCODED if bits else Stage.EMPTY,
        )

    def qber(self) -> float:
        if not self.alice_sifted:
            return 0.0
        mismatches = sum(1 for a, b in zip(self.alice_sifted, self.bob_sifted) if a != b)
        return mismatches / len(self.alice_sifted)

    def to_dataframe(self) -> "pandas.DataFrame":
        import pandas as pd

        matching = set(self.matching_indices)
        sampled = set()
        if self.estimate is not None:
            sampled = {self.matching_indices[i] for i in self.estimate.sample_indices}
        eve_bits = self.measurements[Party.EVE]
        bob_bits = self.measurements[Party.BOB]

        rows: List[Dict[str, Any]] = []
        for idx, bit in enumerate(self.bits):
            rows.append(
                {
                    "Pos": idx,
                    "Bit_Alice": bit,
                    "Base_A": self.bases[Party.ALICE][idx].value,
                    "Base_E": self.bases[Party.EVE][idx].value if eve_bits else "-",
                    "Bit_Eve": eve_bits[idx] if eve_bits else "-",
                    "Base_B": self.bases[Party.BOB][idx].value,
                    "Bit_Bob": bob_bits[idx] if bob_bits else "-",
                    "Match": idx in matching,
                    "Sifted": "Yes" if idx in matching and self.stage.value >= Stage.KEY_SIFTED.value else "No",
                    "Sampled": idx in sampled,
                }
            )
        return pd.DataFrame(rows)


class BB84Session:
    """Stage-by-stage BB84 run over a single message.

    Every operation checks the current :class:`Stage` and raises
    :class:`InvalidTransition` when called out of order. Changing the
    message throws away the whole state, manual basis edits included.
    """

    def __init__(self, config: Optional[SessionConfig] = None):
        # switches are per session; the caller's config is never mutated
        self.config = dataclasses.replace(config) if config is not None else SessionConfig()
        self._rng: Generator = default_rng(self.config.seed)
        self._channel = QuantumChannel(build_backend(self.config.backend), self.config.noise, self._rng)
        self.state = SessionState()
        self.alice_bases_visible = True

    # -- message and configuration -------------------------------------

    def set_message(self, text: str) -> SessionState:
        self.state = SessionState.for_message(text)
        self.alice_bases_visible = True
        self._regate_noise()
        logger.info("Session reset: %d characters, %d bits", len(text), len(self.state.bits))
        return self.state

    def set_eavesdropper(self, enabled: bool) -> None:
        self._require("set_eavesdropper", *CONFIGURABLE_STAGES)
        self.config.eavesdropper_enabled = enabled

    def set_noise(self, enabled: bool) -> bool:
        """Switch channel noise; enabling it is refused on messages that are too short."""
        self._require("set_noise", *CONFIGURABLE_STAGES)
        if enabled and not self.config.noise.allows(len(self.state.bits)):
            logger.warning(
                "Noise needs at least %d bits, message has %d; ignoring",
                self.config.noise.min_bits,
                len(self.state.bits),
            )
            return False
        self.config.noise_enabled = enabled
        return True

    def toggle_alice_visibility(self) -> bool:
        self.alice_bases_visible = not self.alice_bases_visible
        return self.alice_bases_visible

    # -- basis choice ----------------------------------------------------

    def set_basis(self, party: Party, index: int, basis: Basis) -> None:
        current = self._editable_bases("set_basis", party)
        if not 0 <= index < len(current):
            raise IndexOutOfRange(index, len(current))
        updated = list(current)
        updated[index] = Basis(basis)
        self._store_bases(party, updated)

    def toggle_basis(self, party: Party, index: int) -> None:
        self._store_bases(party, toggle(self._editable_bases("toggle_basis", party), index))

    def randomize_bases(self, party: Party) -> None:
        self._editable_bases("randomize_bases", party)
        self._store_bases(party, randomize(len(self.state.bits), self._rng))

    # -- transmission ----------------------------------------------------

    def transmit(self) -> None:
        self._require("transmit", *PRE_TRANSMISSION_STAGES)
        self.alice_bases_visible = False
        self._advance(Stage.TRANSMITTED)

    def intercept_and_measure(self) -> List[int]:
        if not self.config.eavesdropper_enabled:
            raise InvalidTransition("intercept_and_measure", self.state.stage)
        self._require("intercept_and_measure", Stage.TRANSMITTED)
        state = self.state
        state.measurements[Party.EVE] = self._channel.send(state.bits, state.bases[Party.ALICE], state.bases[Party.EVE])
        self._advance(Stage.EVE_INTERCEPTED)
        return list(state.measurements[Party.EVE])

    def forward_to_bob(self) -> None:
        if not self.config.eavesdropper_enabled:
            raise InvalidTransition("forward_to_bob", self.state.stage)
        self._require("forward_to_bob", Stage.EVE_INTERCEPTED)
        self._advance(Stage.EVE_FORWARDED)

    def measure_bob(self) -> List[int]:
        state = self.state
        if self.config.eavesdropper_enabled:
            self._require("measure_bob", Stage.EVE_FORWARDED)
            # Eve re-prepares her measured bits in her own bases
            source_bits, source_bases = state.measurements[Party.EVE], state.bases[Party.EVE]
        else:
            self._require("measure_bob", Stage.TRANSMITTED)
            source_bits, source_bases = state.bits, state.bases[Party.ALICE]

        state.measurements[Party.BOB] = self._channel.send(
            source_bits, source_bases, state.bases[Party.BOB], noisy=self.config.noise_enabled
        )
        self._advance(Stage.BOB_MEASURED)
        return list(state.measurements[Party.BOB])

    # -- post-processing -------------------------------------------------

    def compare_bases(self) -> List[int]:
        self._require("compare_bases", Stage.BOB_MEASURED)
        state = self.state
        state.matching_indices = matching_indices(state.bases[Party.ALICE], state.bases[Party.BOB])
        self._advance(Stage.BASES_COMPARED)
        return list(state.matching_indices)

    def sift_key(self) -> Tuple[List[int], List[int]]:
        self._require("sift_key", Stage.BASES_COMPARED)
        state = self.state
        state.alice_sifted = sift(state.bits, state.matching_indices)
        state.bob_sifted = sift(state.measurements[Party.BOB], state.matching_indices)
        self._advance(Stage.KEY_SIFTED)
        return self.sifted_keys

    def estimate_errors(self) -> ErrorEstimate:
        """Compare a fresh random sample of the sifted keys; may be re-run for a new sample."""
        self._require("estimate_errors", Stage.KEY_SIFTED, Stage.ERROR_ESTIMATED)
        state = self.state
        state.estimate = estimate_errors(state.alice_sifted, state.bob_sifted, self._rng)
        if state.stage is not Stage.ERROR_ESTIMATED:
            self._advance(Stage.ERROR_ESTIMATED)
        logger.info(
            "Sampled %d of %d sifted bits: %d errors (%.2f%%) -> %s",
            state.estimate.sample_size,
            len(state.alice_sifted),
            state.estimate.error_count,
            state.estimate.error_rate,
            state.estimate.verdict.name if state.estimate.verdict else "degenerate",
        )
        return state.estimate

    def run_all(self) -> ErrorEstimate:
        """Walk every remaining stage up to and including error estimation."""
        steps = {
            Stage.ENCODED: self.transmit,
            Stage.BASES_CHOSEN: self.transmit,
            Stage.TRANSMITTED: (
                self.intercept_and_measure if self.config.eavesdropper_enabled else self.measure_bob
            ),
            Stage.EVE_INTERCEPTED: self.forward_to_bob,
            Stage.EVE_FORWARDED: self.measure_bob,
            Stage.BOB_MEASURED: self.compare_bases,
            Stage.BASES_COMPARED: self.sift_key,
            Stage.KEY_SIFTED: self.estimate_errors,
        }
        while self.state.stage is not Stage.ERROR_ESTIMATED:
            step = steps.get(self.state.stage)
            if step is None:
                raise InvalidTransition("run_all", self.state.stage, steps)
            step()
        return self.state.estimate

    # -- read accessors --------------------------------------------------

    @property
    def stage(self) -> Stage:
        return self.state.stage

    @property
    def bits(self) -> List[int]:
        return list(self.state.bits)

    def bases(self, party: Party) -> List[Basis]:
        return list(self.state.bases[party])

    def measurements(self, party: Party) -> List[int]:
        if party is Party.ALICE:
            raise ValueError("Alice prepares qubits, she does not measure them")
        return list(self.state.measurements[party])

    @property
    def matching_indices(self) -> List[int]:
        return list(self.state.matching_indices)

    @property
    def sifted_keys(self) -> Tuple[List[int], List[int]]:
        return list(self.state.alice_sifted), list(self.state.bob_sifted)

    @property
    def sample_indices(self) -> List[int]:
        if self.state.estimate is None:
            return []
        return list(self.state.estimate.sample_indices)

    @property
    def error_estimate(self) -> Optional[ErrorEstimate]:
        return self.state.estimate

    @property
    def verdict(self) -> Optional[Verdict]:
        return self.state.estimate.verdict if self.state.estimate else None

    # -- internals -------------------------------------------------------

    def _require(self, operation: str, *allowed: Stage) -> None:
        if self.state.stage not in allowed:
            raise InvalidTransition(operation, self.state.stage, allowed)

    def _advance(self, stage: Stage) -> None:
        logger.debug("Stage %s -> %s", self.state.stage.name, stage.name)
        self.state.stage = stage

    def _editable_bases(self, operation: str, party: Party) -> List[Basis]:
        self._require(operation, *EDITABLE_STAGES[Party(party)])
        return self.state.bases[Party(party)]

    def _store_bases(self, party: Party, bases: List[Basis]) -> None:
        self.state.bases[Party(party)] = bases
        if self.state.stage is Stage.ENCODED:
            self._advance(Stage.BASES_CHOSEN)

    def _regate_noise(self) -> None:
        if self.config.noise_enabled and not self.config.noise.allows(len(self.state.bits)):
            logger.warning("Message too short for channel noise; disabling it")
            self.config.noise_enabled = False
