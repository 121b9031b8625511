from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional


@dataclass(frozen=True)
class MenuItem:
    key: str
    label: str


@dataclass(frozen=True)
class MenuScreen:
    screen_id: str
    title: str
    items: List[MenuItem] = field(default_factory=list)
    prompt: Optional[str] = None

    @property
    def keys(self) -> List[str]:
        return [item.key for item in self.items]
