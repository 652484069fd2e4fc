from dataclasses import dataclass, fields, replace
from typing import Any, Mapping

from .errors import InvalidConfigurationError

# Defaults (Temporal Memory)
CONNECTED_PERM = 0.5  # Permanence threshold for a distal synapse to be considered connected
INITIAL_PERMANENCE = 0.21  # Initial permanence for new distal synapses
PERMANENCE_INC = 0.1  # Amount by which synapses to active cells are incremented
PERMANENCE_DEC = 0.05  # Amount by which synapses to inactive cells are decremented
ACTIVATION_THRESHOLD = 13  # Active connected synapses required for a segment to be active
MIN_THRESHOLD = 10  # Active connected synapses required for a segment to be extended
NEW_SYNAPSE_COUNT = 20  # Synapses wired onto a new segment


@dataclass(frozen=True)
class TemporalMemoryParameters:

    ncol: int = 2048
    """
    * Number of columns in the region. Supplied by whoever built the columns
    * (typically the spatial pooler's column count).
    """
    depth: int = 32
    """
    * Number of cells per column.
    """
    init_segment_count: int = 0
    """
    * Randomly wired segments given to every cell at construction time.
    """
    new_synapse_count: int = NEW_SYNAPSE_COUNT
    """
    * Target number of synapses on a grown segment. Extending a segment tops
    * it up toward this count.
    """
    activation_threshold: int = ACTIVATION_THRESHOLD
    """
    * Connected synapses to active cells needed for a segment to make its
    * cell predictive.
    """
    min_threshold: int = MIN_THRESHOLD
    """
    * Connected synapses to previously active cells needed for a segment to
    * be chosen as the best match of a bursting column.
    """
    initial_perm: float = INITIAL_PERMANENCE
    """
    * Permanence given to every newly created synapse.
    """
    connected_perm: float = CONNECTED_PERM
    """
    * A synapse is connected iff its permanence >= connected_perm.
    """
    permanence_inc: float = PERMANENCE_INC
    """
    * Reinforcement applied to synapses whose target was active.
    """
    permanence_dec: float = PERMANENCE_DEC
    """
    * Decay applied to synapses whose target was not active.
    """

    def __post_init__(self) -> None:
        if self.ncol <= 0:
            raise InvalidConfigurationError(f"ncol must be positive, got {self.ncol}.")
        if self.depth <= 0:
            raise InvalidConfigurationError(f"depth must be positive, got {self.depth}.")
        for name in ("init_segment_count", "new_synapse_count"):
            if getattr(self, name) < 0:
                raise InvalidConfigurationError(f"{name} must be non-negative, got {getattr(self, name)}.")
        for name in ("activation_threshold", "min_threshold"):
            if getattr(self, name) < 1:
                raise InvalidConfigurationError(f"{name} must be positive, got {getattr(self, name)}.")
        if self.min_threshold > self.activation_threshold:
            raise InvalidConfigurationError(
                f"min_threshold ({self.min_threshold}) exceeds activation_threshold ({self.activation_threshold})."
            )
        for name in ("initial_perm", "connected_perm", "permanence_inc", "permanence_dec"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise InvalidConfigurationError(f"{name} must lie in [0, 1], got {value}.")

    @property
    def num_cells(self) -> int:
        return self.ncol * self.depth

    def merge(self, **overrides: Any) -> 'TemporalMemoryParameters':
        """Return a copy with ``overrides`` applied on top (caller keys win)."""
        return replace(self, **_normalize_keys(overrides))

    @classmethod
    def from_dict(cls, options: Mapping[str, Any]) -> 'TemporalMemoryParameters':
        """Build parameters from a mapping; hyphenated keys are accepted."""
        return cls(**_normalize_keys(options))


def _normalize_keys(options: Mapping[str, Any]) -> dict[str, Any]:
    known = {f.name for f in fields(TemporalMemoryParameters)}
    normalized: dict[str, Any] = {}
    for key, value in options.items():
        name = key.replace("-", "_")
        if name not in known:
            raise InvalidConfigurationError(f"Unknown temporal memory option: '{key}'")
        normalized[name] = value
    return normalized
