from dataclasses import dataclass

from .errors import ArgumentError
from .schema_utils import SchemaClass


@dataclass
class TreeParams(SchemaClass):
    # Smallest number of elements a distribution may be reduced to
    floor_size: int = 1

    def __post_init__(self):
        super().__post_init__()
        if (
            isinstance(self.floor_size, bool)
            or not isinstance(self.floor_size, int)
            or self.floor_size < 1
        ):
            raise ArgumentError(
                f"floor_size must be an integer of at least 1, got {self.floor_size!r}"
            )
