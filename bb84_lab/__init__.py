"""Core building blocks for the BB84 quantum key distribution teaching simulator."""

from .bases import Basis, Party, default_bases, randomize, toggle
from .channel import CircuitBackend, ClassicalBackend, QuantumChannel, measure
from .encoding import decode, encode
from .errors import BB84Error, DegenerateSample, IndexOutOfRange, InvalidTransition
from .noise import NoiseChannel
from .protocol import BB84Session, SessionConfig, SessionState, Stage
from .sifting import ErrorEstimate, Verdict, estimate_errors, matching_indices, sample_size, sift

__all__ = [
	"Basis",
	"Party",
	"default_bases",
	"randomize",
	"toggle",
	"CircuitBackend",
	"ClassicalBackend",
	"QuantumChannel",
	"measure",
	"decode",
	"encode",
	"BB84Error",
	"DegenerateSample",
	"IndexOutOfRange",
	"InvalidTransition",
	"NoiseChannel",
	"BB84Session",
	"SessionConfig",
	"SessionState",
	"Stage",
	"ErrorEstimate",
	"Verdict",
	"estimate_errors",
	"matching_indices",
	"sample_size",
	"sift",
]
