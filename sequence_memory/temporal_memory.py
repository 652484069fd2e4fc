from __future__ import annotations

from statistics import fmean, pstdev
from typing import (
    AbstractSet,
    Iterable,
    List,
    Optional,
    Sequence,
    Set,
    Tuple,
    Union,
)

import numpy as np

from .activation import active_cells_by_column, predicted_columns, region_predictive_cells
from .building_blocks import Cell, CellId, Region, create_region
from .learning import learn as apply_learning
from .parameters import TemporalMemoryParameters

ActiveColumnInput = Union[Set[int], Sequence[int], np.ndarray]

debug = False


def sequence_memory_step(
    region: Region,
    active_columns: Iterable[int],
    rng: np.random.Generator,
    learn: bool = True,
) -> Region:
    """Advance ``region`` by one timestep and return the new region.

    The region passed in is not modified; callers install the returned value.
    With ``learn=False`` only activations are computed.
    """
    active_columns = list(active_columns)
    prev_active_cells = region.active_cells
    activations = active_cells_by_column(region, active_columns, prev_active_cells)

    new_active_cells: Set[CellId] = set()
    bursting_columns: Set[int] = set()
    for col_idx, activation in activations.items():
        new_active_cells |= activation.cells
        if activation.bursting:
            bursting_columns.add(col_idx)

    if learn:
        region = apply_learning(region, activations.keys(), new_active_cells, prev_active_cells, bursting_columns, rng)

    if debug:
        print(
            f"Step computed: {len(new_active_cells)} cells active, "
            f"{len(bursting_columns)}/{len(activations)} columns bursting."
        )
    return Region(region.params, region.columns, new_active_cells, bursting_columns)


# ===== Temporal Memory Layer =====

class TemporalMemoryLayer:
    """Stateful wrapper holding a region and its random generator.

    Learns temporal sequences through distal dendrites on cells; every call to
    ``compute`` installs the region returned by ``sequence_memory_step``.
    """

    def __init__(
        self,
        params: Optional[TemporalMemoryParameters] = None,
        seed: Optional[int] = None,
        name: str = "TemporalMemory",
        **overrides,
    ) -> None:
        self.name = name
        self.rng = np.random.default_rng(seed)
        self._region = create_region(params, self.rng, **overrides)
        self.active_columns: Set[int] = set()

    @property
    def region(self) -> Region:
        return self._region

    @property
    def params(self) -> TemporalMemoryParameters:
        return self._region.params

    @property
    def num_columns(self) -> int:
        return len(self._region.columns)

    @property
    def cells_per_column(self) -> int:
        return self._region.depth

    @property
    def active_cells(self) -> Set[CellId]:
        return set(self._region.active_cells)

    @property
    def bursting_columns(self) -> Set[int]:
        return set(self._region.bursting_columns)

    @property
    def predictive_cells(self) -> Set[CellId]:
        """Cells predicted for the next step from the current active cells."""
        return region_predictive_cells(self._region)

    def compute(self, active_columns: Optional[ActiveColumnInput] = None, learn: bool = True) -> None:
        """Compute temporal memory activations (and learn) for one step."""
        if active_columns is not None:
            self.set_active_columns(active_columns)
        self._region = sequence_memory_step(self._region, self.active_columns, self.rng, learn=learn)

    def set_active_columns(self, active_columns: ActiveColumnInput) -> None:
        """Set which columns are active (typically from spatial pooler).
        Accepts either a set of indices, an explicit index sequence, or a binary mask.
        """
        if isinstance(active_columns, (set, frozenset)):
            self.active_columns = {self._region.validate_column_index(idx) for idx in active_columns}
            return

        if isinstance(active_columns, np.ndarray):
            vector = np.asarray(active_columns).ravel()
            if vector.size == self.num_columns and np.all(np.logical_or(vector == 0, vector == 1)):
                self.active_columns = set(map(int, np.flatnonzero(vector)))
                return
            self.active_columns = {self._region.validate_column_index(val) for val in vector.tolist()}
            return

        if isinstance(active_columns, Sequence):
            if isinstance(active_columns, (str, bytes)):
                raise TypeError("Active column sequence must not be a string/bytes.")

            if len(active_columns) == self.num_columns and all(value in (0, 1, False, True) for value in active_columns):
                self.active_columns = {idx for idx, value in enumerate(active_columns) if value}
                return

            self.active_columns = {self._region.validate_column_index(value) for value in active_columns}
            return

        raise TypeError("Unsupported type for active_columns; provide indices or a binary mask.")

    def reset(self) -> None:
        """Clear transient state; learned segments remain."""
        self.active_columns = set()
        self._region = Region(self._region.params, self._region.columns)

    def get_cells(self) -> List[Cell]:
        return self._region.get_cells()

    def get_predicted_columns(self) -> List[int]:
        """Return ids of columns predicted to become active on the next step."""
        return predicted_columns(self._region)

    def cells_to_binary(self, cells: AbstractSet[CellId]) -> np.ndarray:
        """Return binary vector over all cells (flattened columns).

        Ordering = for col index i, its cells occupy slice [i*depth : (i+1)*depth)."""
        depth = self.cells_per_column
        vec = np.zeros(self.num_columns * depth, dtype=int)
        for column_id, idx in cells:
            vec[column_id * depth + idx] = 1
        return vec

    def active_cells_vector(self) -> np.ndarray:
        return self.cells_to_binary(self._region.active_cells)

    def print_stats(self) -> None:
        """Print statistics (with stddev) of the segments and synapses in the layer."""
        def describe(values: List[float]) -> Tuple[int, float, float, float, float]:
            if not values:
                return 0, 0.0, 0.0, 0.0, 0.0
            count = len(values)
            mean_val = fmean(values)
            std_val = pstdev(values) if count > 1 else 0.0
            return count, mean_val, std_val, min(values), max(values)

        def format_metric(
            label: str,
            stats: Tuple[int, float, float, float, float],
            value_precision: str = ".2f",
            extrema_precision: str = ".0f",
        ) -> str:
            _, mean_val, std_val, min_val, max_val = stats
            mean_str = format(mean_val, value_precision)
            std_str = format(std_val, value_precision)
            min_str = format(min_val, extrema_precision)
            max_str = format(max_val, extrema_precision)
            return f"| {label:<22}| {mean_str:>8} ± {std_str:<8}| {min_str:>8} | {max_str:>8} |"

        cells = self.get_cells()
        all_segments = [segment for cell in cells for segment in cell.segments]
        permanences = [perm for segment in all_segments for perm in segment.synapses.values()]
        segment_stats = describe([len(cell.segments) for cell in cells])
        synapse_stats = describe([len(segment) for segment in all_segments])
        perm_stats = describe(permanences)
        connected = sum(1 for perm in permanences if perm >= self.params.connected_perm)
        connected_ratio = (connected / len(permanences)) if permanences else 0.0

        print(f"Statistics for {self.name}:")
        print(f"| {'Metric':<22}| {'Mean ± Std':^19}| {'Min':>8} | {'Max':>8} |")
        print(format_metric("Segments per cell", segment_stats))
        print(format_metric("Synapses per segment", synapse_stats))
        print(format_metric("Permanence", perm_stats, extrema_precision=".2f"))
        print(f"Total segments: {len(all_segments)}, total synapses: {len(permanences)}, "
              f"connected: {connected} ({connected_ratio:.1%})")
        print(f"Active cells: {len(self._region.active_cells)}, "
              f"bursting columns: {len(self._region.bursting_columns)}")
