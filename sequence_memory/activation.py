"""Read-only activation rules: segment votes, predictive cells and bursting.

Nothing in this module mutates a region; every function reads a snapshot of
active cells (the context) and returns fresh values.
"""
from __future__ import annotations

from typing import (
    AbstractSet,
    Dict,
    Iterable,
    List,
    NamedTuple,
    Set,
)

from .building_blocks import Cell, CellId, Column, Region, Segment
from .parameters import TemporalMemoryParameters


class ColumnActivation(NamedTuple):
    """Cells activated in one column and whether the column burst."""

    cells: Set[CellId]
    bursting: bool


def segment_activation(segment: Segment, active_cells: AbstractSet[CellId], pcon: float) -> int:
    """Count synapses targeting an active cell with permanence >= ``pcon``."""
    return sum(1 for target, perm in segment.synapses.items() if perm >= pcon and target in active_cells)


def cell_predictive(cell: Cell, active_cells: AbstractSet[CellId], params: TemporalMemoryParameters) -> bool:
    for segment in cell.segments:
        if segment_activation(segment, active_cells, params.connected_perm) >= params.activation_threshold:
            return True
    return False


def column_predictive_cells(
    column: Column,
    active_cells: AbstractSet[CellId],
    params: TemporalMemoryParameters,
) -> Set[CellId]:
    return {cell.id for cell in column.cells if cell_predictive(cell, active_cells, params)}


def active_cells_by_column(
    region: Region,
    active_columns: Iterable[int],
    prev_active_cells: AbstractSet[CellId],
) -> Dict[int, ColumnActivation]:
    """Resolve the active cells of every active column.

    A column with predictive cells (given ``prev_active_cells``) activates only
    those cells. A column without any bursts: all of its cells become active.
    Raises ColumnIndexError for ids outside the region.
    """
    result: Dict[int, ColumnActivation] = {}
    for col_idx in sorted({region.validate_column_index(idx) for idx in active_columns}):
        column = region.columns[col_idx]
        predicted = column_predictive_cells(column, prev_active_cells, region.params)
        if predicted:
            result[col_idx] = ColumnActivation(predicted, False)
        else:
            result[col_idx] = ColumnActivation(set(column.cell_ids), True)
    return result


def region_predictive_cells(region: Region, active_cells: AbstractSet[CellId] | None = None) -> Set[CellId]:
    """Return every cell predicted for the next step.

    Uses the region's current ``active_cells`` unless a context is supplied.
    """
    context = region.active_cells if active_cells is None else active_cells
    predictive: Set[CellId] = set()
    for column in region.columns:
        predictive |= column_predictive_cells(column, context, region.params)
    return predictive


def predicted_columns(region: Region, active_cells: AbstractSet[CellId] | None = None) -> List[int]:
    """Return sorted ids of columns holding at least one predictive cell."""
    return sorted({column_id for column_id, _ in region_predictive_cells(region, active_cells)})
