from __future__ import annotations

from typing import (
    Dict,
    Iterable,
    List,
    Optional,
    Set,
    Tuple,
)

import numpy as np

from .errors import ColumnIndexError
from .parameters import TemporalMemoryParameters

CellId = Tuple[int, int]  # (column id, index within column)


# ===== Basic Building Blocks =====

class Segment:
    """Distal segment: a mapping of target cell id -> permanence."""

    def __init__(self, synapses: Optional[Dict[CellId, float]] = None) -> None:
        self.synapses: Dict[CellId, float] = dict(synapses) if synapses is not None else {}

    def __len__(self) -> int:
        return len(self.synapses)

    def __repr__(self) -> str:
        return f"Segment(synapses={len(self.synapses)})"

    def connected_synapses(self, connected_perm: float) -> Dict[CellId, float]:
        """Return synapses at or above the connected permanence."""
        return {target: perm for target, perm in self.synapses.items() if perm >= connected_perm}


class Cell:
    """Single cell within a column.

    Holds an append-only list of distal segments used for temporal learning.
    """

    def __init__(self, cell_id: CellId, segments: Optional[List[Segment]] = None) -> None:
        self.id: CellId = cell_id
        self.segments: List[Segment] = segments if segments is not None else []

    @property
    def column_id(self) -> int:
        return self.id[0]

    def __repr__(self) -> str:
        return f"Cell(id={self.id}, segments={len(self.segments)})"


class Column:
    """Column owning a fixed-length list of cells, addressed by position."""

    def __init__(self, column_id: int, cells: Optional[List[Cell]] = None) -> None:
        self.id: int = column_id
        self.cells: List[Cell] = cells if cells is not None else []

    @property
    def cell_ids(self) -> List[CellId]:
        return [cell.id for cell in self.cells]

    def __repr__(self) -> str:
        return f"Column(id={self.id}, cells={len(self.cells)})"


class Region:
    """A region's structure plus the state derived from the previous step.

    ``active_cells`` and ``bursting_columns`` are replaced wholesale on every
    step; ``columns`` only ever grows segments.
    """

    def __init__(
        self,
        params: TemporalMemoryParameters,
        columns: Optional[List[Column]] = None,
        active_cells: Optional[Set[CellId]] = None,
        bursting_columns: Optional[Set[int]] = None,
    ) -> None:
        self.params: TemporalMemoryParameters = params
        self.columns: List[Column] = columns if columns is not None else []
        self.active_cells: Set[CellId] = set(active_cells) if active_cells is not None else set()
        self.bursting_columns: Set[int] = set(bursting_columns) if bursting_columns is not None else set()

    @property
    def depth(self) -> int:
        return self.params.depth

    def __repr__(self) -> str:
        return (
            f"Region(columns={len(self.columns)}, depth={self.depth}, "
            f"active_cells={len(self.active_cells)}, bursting_columns={len(self.bursting_columns)})"
        )

    def validate_column_index(self, idx: int) -> int:
        value = int(idx)
        if value < 0 or value >= len(self.columns):
            raise ColumnIndexError(value, len(self.columns))
        return value

    def column(self, idx: int) -> Column:
        return self.columns[self.validate_column_index(idx)]

    def cell(self, cell_id: CellId) -> Cell:
        column_id, idx = cell_id
        column = self.column(column_id)
        if idx < 0 or idx >= len(column.cells):
            raise IndexError(f"Cell index {idx} out of bounds for depth {len(column.cells)}.")
        return column.cells[idx]

    def get_cells(self) -> List[Cell]:
        """Return all cells in the region, column by column."""
        cells: List[Cell] = []
        for column in self.columns:
            cells.extend(column.cells)
        return cells


# ===== Construction =====

def sample_region_cells(
    column_id: int,
    n: int,
    params: TemporalMemoryParameters,
    rng: np.random.Generator,
    exclude: Iterable[CellId] = (),
) -> List[CellId]:
    """Draw up to ``n`` distinct cell ids uniformly from the region.

    Cells of ``column_id`` and cells in ``exclude`` are never returned. The
    draw is made without replacement over the eligible flat index range, so
    it cannot loop; a short result means the region ran out of eligible cells.
    """
    depth = params.depth
    excluded = {cell_id for cell_id in exclude if cell_id[0] != column_id}
    eligible = params.num_cells - depth
    count = min(n + len(excluded), eligible)
    if n <= 0 or count <= 0:
        return []

    chosen: List[CellId] = []
    for flat in rng.choice(eligible, size=count, replace=False):
        flat = int(flat)
        # Skip over the host column's slice of the flattened index space
        if flat >= column_id * depth:
            flat += depth
        cell_id = divmod(flat, depth)
        if cell_id in excluded:
            continue
        chosen.append(cell_id)
        if len(chosen) == n:
            break
    return chosen


def random_segment(column_id: int, params: TemporalMemoryParameters, rng: np.random.Generator) -> Segment:
    """Return a segment wired to ``new_synapse_count`` random cells outside ``column_id``."""
    targets = sample_region_cells(column_id, params.new_synapse_count, params, rng)
    return Segment({target: params.initial_perm for target in targets})


def init_cell(idx: int, column_id: int, params: TemporalMemoryParameters, rng: np.random.Generator) -> Cell:
    segments = [random_segment(column_id, params, rng) for _ in range(params.init_segment_count)]
    return Cell((column_id, idx), segments)


def build_region(region: Region, rng: np.random.Generator, **overrides) -> Region:
    """Return a region whose every column holds ``depth`` freshly built cells.

    ``overrides`` are merged over ``region.params`` (caller keys win) and the
    merged parameters are validated before anything is built.
    """
    params = region.params.merge(**overrides) if overrides else region.params
    columns = [
        Column(column_id, [init_cell(idx, column_id, params, rng) for idx in range(params.depth)])
        for column_id in range(params.ncol)
    ]
    return Region(params, columns)


def create_region(
    params: Optional[TemporalMemoryParameters] = None,
    rng: Optional[np.random.Generator] = None,
    **overrides,
) -> Region:
    """Build a fresh region with empty active/bursting state."""
    if params is None:
        params = TemporalMemoryParameters()
    if rng is None:
        rng = np.random.default_rng()
    return build_region(Region(params), rng, **overrides)
