"""HTM sequence memory: cell activation, bursting and distal segment learning."""

from .activation import (
    ColumnActivation,
    active_cells_by_column,
    cell_predictive,
    column_predictive_cells,
    predicted_columns,
    region_predictive_cells,
    segment_activation,
)
from .building_blocks import (
    Cell,
    CellId,
    Column,
    Region,
    Segment,
    build_region,
    create_region,
    init_cell,
    random_segment,
    sample_region_cells,
)
from .errors import ColumnIndexError, InvalidConfigurationError
from .learning import (
    best_matching_segment_and_cell,
    bursting_column_learn,
    grow_new_segment,
    grow_new_synapses,
    learn,
    most_active_segment,
    predicted_column_learn,
    segment_extend,
    segment_reinforce,
)
from .parameters import TemporalMemoryParameters
from .temporal_memory import TemporalMemoryLayer, sequence_memory_step
