"""Segment selection, permanence adaptation and growth.

Learning only ever touches the cells of the column it is given. ``learn``
copies each active column before handing it to the per-column rules, so the
region passed in is left untouched and inactive columns are shared as-is.
"""
from __future__ import annotations

import copy
from typing import (
    AbstractSet,
    Iterable,
    Optional,
    Tuple,
)

import numpy as np

from .activation import segment_activation
from .building_blocks import Cell, CellId, Column, Region, Segment, sample_region_cells
from .parameters import TemporalMemoryParameters


# --------------------- Selection ---------------------

def most_active_segment(
    cell: Cell,
    active_cells: AbstractSet[CellId],
    params: TemporalMemoryParameters,
) -> Tuple[Optional[int], int]:
    """Return (segment index, activation) of the cell's most active segment.

    Ties go to the lowest index. A cell without segments yields (None, 0).
    """
    best_index: Optional[int] = None
    best_activation = -1
    for idx, segment in enumerate(cell.segments):
        activation = segment_activation(segment, active_cells, params.connected_perm)
        if activation > best_activation:
            best_index = idx
            best_activation = activation
    if best_index is None:
        return None, 0
    return best_index, best_activation


def best_matching_segment_and_cell(
    column: Column,
    active_cells: AbstractSet[CellId],
    params: TemporalMemoryParameters,
) -> Tuple[Cell, Optional[int]]:
    """Select the cell (and segment) a bursting column should learn on.

    Returns the cell holding the column's most active segment when that
    activation reaches ``min_threshold``. Otherwise returns the cell with the
    fewest segments and ``None``, meaning a new segment should be grown.
    Ties go to the first cell in column order.
    """
    best_cell: Optional[Cell] = None
    best_segment: Optional[int] = None
    best_activation = -1
    for cell in column.cells:
        seg_idx, activation = most_active_segment(cell, active_cells, params)
        if seg_idx is not None and activation > best_activation:
            best_cell = cell
            best_segment = seg_idx
            best_activation = activation

    if best_cell is not None and best_activation >= params.min_threshold:
        return best_cell, best_segment

    return min(column.cells, key=lambda c: len(c.segments)), None


# --------------------- Adaptation ---------------------

def segment_reinforce(segment: Segment, active_cells: AbstractSet[CellId], params: TemporalMemoryParameters) -> None:
    """Strengthen synapses to active cells, weaken the rest; clamp to [0, 1]."""
    for target, perm in segment.synapses.items():
        if target in active_cells:
            segment.synapses[target] = min(1.0, perm + params.permanence_inc)
        else:
            segment.synapses[target] = max(0.0, perm - params.permanence_dec)


def grow_new_synapses(
    segment: Segment,
    column_id: int,
    active_cells: AbstractSet[CellId],
    n: int,
    params: TemporalMemoryParameters,
    rng: np.random.Generator,
) -> int:
    """Add up to ``n`` synapses to randomly chosen active cells.

    Cells of ``column_id`` and cells the segment already targets are skipped.
    Returns the number of synapses added.
    """
    # Sorted: set iteration order must not reach the random draw
    candidates = sorted(
        cell_id for cell_id in active_cells
        if cell_id[0] != column_id and cell_id not in segment.synapses
    )
    num_to_add = min(n, len(candidates))
    if num_to_add <= 0:
        return 0
    for idx in rng.choice(len(candidates), size=num_to_add, replace=False):
        segment.synapses[candidates[int(idx)]] = params.initial_perm
    return num_to_add


def grow_new_segment(
    cell: Cell,
    active_cells: AbstractSet[CellId],
    params: TemporalMemoryParameters,
    rng: np.random.Generator,
) -> Segment:
    """Append a segment wired with ``new_synapse_count`` synapses.

    Active cells outside the host column are used first. If the context is
    too small (e.g. empty on the first step) the rest is wired to random
    region cells, as construction does.
    """
    segment = Segment()
    added = grow_new_synapses(segment, cell.column_id, active_cells, params.new_synapse_count, params, rng)
    for target in sample_region_cells(
        cell.column_id, params.new_synapse_count - added, params, rng, exclude=segment.synapses
    ):
        segment.synapses[target] = params.initial_perm
    cell.segments.append(segment)
    return segment


def segment_extend(
    segment: Segment,
    cell: Cell,
    active_cells: AbstractSet[CellId],
    params: TemporalMemoryParameters,
    rng: np.random.Generator,
) -> None:
    """Reinforce the segment, then top it up toward ``new_synapse_count``.

    The top-up is sized by the connected active synapses the segment had
    before this reinforcement.
    """
    missing = params.new_synapse_count - segment_activation(segment, active_cells, params.connected_perm)
    segment_reinforce(segment, active_cells, params)
    grow_new_synapses(segment, cell.column_id, active_cells, missing, params, rng)


# --------------------- Per-column learning ---------------------

def bursting_column_learn(
    column: Column,
    prev_active_cells: AbstractSet[CellId],
    params: TemporalMemoryParameters,
    rng: np.random.Generator,
) -> Cell:
    """Learn a new predictive pathway for a column nobody predicted.

    Returns the cell that learned.
    """
    cell, seg_idx = best_matching_segment_and_cell(column, prev_active_cells, params)
    if seg_idx is None:
        grow_new_segment(cell, prev_active_cells, params, rng)
    else:
        segment_extend(cell.segments[seg_idx], cell, prev_active_cells, params, rng)
    return cell


def predicted_column_learn(
    column: Column,
    active_cells: AbstractSet[CellId],
    prev_active_cells: AbstractSet[CellId],
    params: TemporalMemoryParameters,
    rng: np.random.Generator,
) -> Optional[Cell]:
    """Credit the segment that correctly predicted one of the column's cells.

    One of the column's active cells is picked uniformly at random; its most
    active segment against ``prev_active_cells`` is reinforced.
    """
    candidates = [cell for cell in column.cells if cell.id in active_cells]
    if not candidates:
        return None
    cell = candidates[int(rng.integers(len(candidates)))]
    seg_idx, _ = most_active_segment(cell, prev_active_cells, params)
    if seg_idx is not None:
        segment_reinforce(cell.segments[seg_idx], prev_active_cells, params)
    return cell


def learn(
    region: Region,
    active_columns: Iterable[int],
    active_cells: AbstractSet[CellId],
    prev_active_cells: AbstractSet[CellId],
    bursting_columns: AbstractSet[int],
    rng: np.random.Generator,
) -> Region:
    """Apply one step of learning and return the updated region.

    Columns are visited in ascending id order. Only active columns are
    replaced (by modified copies); every other column object is reused.
    """
    columns = list(region.columns)
    for col_idx in sorted({region.validate_column_index(idx) for idx in active_columns}):
        column = copy.deepcopy(region.columns[col_idx])
        if col_idx in bursting_columns:
            bursting_column_learn(column, prev_active_cells, region.params, rng)
        else:
            predicted_column_learn(column, active_cells, prev_active_cells, region.params, rng)
        columns[col_idx] = column
    return Region(region.params, columns, region.active_cells, region.bursting_columns)
