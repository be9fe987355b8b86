from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List, Optional

from .models import Post


class PostRepository(ABC):
    """Persistence boundary for posts.

    Every failure other than "not found" is raised as StoreError.
    """

    @abstractmethod
    def upsert(self, post: Post) -> None:
        """Update the post matching (collection, url) or insert a new one."""

    @abstractmethod
    def delete_one(self, collection: str, url: str) -> bool:
        """Delete a single post. Returns False when nothing matched."""

    @abstractmethod
    def delete_many(self, collection: str) -> int:
        pass

    @abstractmethod
    def list_collections(self) -> List[str]:
        pass

    @abstractmethod
    def list_by_collection(self, collection: str) -> List[Post]:
        """Posts of a collection ordered by title."""

    @abstractmethod
    def find_index(self, collection: str) -> Optional[Post]:
        pass

    @abstractmethod
    def find_by_url(self, url: str, collection: Optional[str] = None) -> Optional[Post]:
        """Без collection url неоднозначен: берётся документ с наименьшим именем коллекции."""
        pass

    @abstractmethod
    def rename_collection(self, old_name: str, new_name: str) -> int:
        pass
