"""Exception types raised while resolving a training architecture."""

from typing import List, Optional


class TrainingArchitectureError(Exception):
    """Base class for every error raised by this package."""


class CyclicHierarchyError(TrainingArchitectureError):
    """Raised when the links of a training loop back on themselves.

    Attributes:
        training_id: The training whose links contain the cycle
                     (``None`` when the traversal is not training-scoped).
        cycle: The LU ids walked, ending with the repeated id.
    """

    def __init__(self, training_id: Optional[int], cycle: List[int]) -> None:
        self.training_id = training_id
        self.cycle = list(cycle)
        chain = " → ".join(str(n) for n in self.cycle)
        super().__init__(f"training={training_id}: cyclic links {chain}")


class TrainingNotFoundError(TrainingArchitectureError):
    """Raised when a training id has no row in the store."""

    def __init__(self, training_id: int) -> None:
        self.training_id = training_id
        super().__init__(f"training={training_id} not found")


class ConfigError(TrainingArchitectureError):
    """Raised when a block configuration file cannot be loaded."""
