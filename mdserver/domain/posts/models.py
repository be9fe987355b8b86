from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Tuple


@dataclass(slots=True)
class Post:
    """Документ, который хранится в store и отдаётся как страница."""

    title: str
    body: str
    url: str
    collection: str = ""
    is_index: bool = False

    @property
    def key(self) -> Tuple[str, str]:
        """Ключ upsert'а: (collection, url)."""
        return (self.collection, self.url)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "body": self.body,
            "url": self.url,
            "collection": self.collection,
            "isIndex": self.is_index,
        }
