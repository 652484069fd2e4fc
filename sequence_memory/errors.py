"""Error kinds raised by the sequence memory core."""


class InvalidConfigurationError(ValueError):
    """Raised when temporal memory parameters are inconsistent or out of range."""


class ColumnIndexError(IndexError):
    """Raised when an active column id falls outside the region's column range."""

    def __init__(self, column_id: int, num_columns: int) -> None:
        super().__init__(f"Column index {column_id} out of bounds for {num_columns} columns.")
        self.column_id = column_id
        self.num_columns = num_columns
