from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Optional, Union


@dataclass(frozen=True)
class CurrentUser:
    """The authenticated user attached to a request (any backend)."""

    id: Union[int, str]
    provider: str  # local|github|pocketbase
    username: Optional[str] = None
    email: Optional[str] = None
    name: Optional[str] = None
    picture: Optional[str] = None

    def to_dict(self) -> dict:
        return asdict(self)
