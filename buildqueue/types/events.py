"""
Change feed event type definitions.
"""

from pydantic import BaseModel, ConfigDict, Field

from buildqueue.constants import ChangeKind


class ChangeEvent(BaseModel):
    """
    One upstream registry notification.
    Produced by the change feed and consumed immediately by the ingester.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    version: str
    # Kinds outside ChangeKind are kept as plain strings
    kind: ChangeKind | str = Field(union_mode="left_to_right")

    @property
    def is_admissible(self) -> bool:
        """Yanked releases never enter the build queue."""
        return self.kind != ChangeKind.YANKED

    def __str__(self) -> str:
        return f"{self.name}-{self.version}"
