"""In-memory хранилище документов (DATABASE_URL не задан, тесты)."""
import threading
from dataclasses import replace
from typing import Dict, List, Optional, Tuple

from mdserver.domain.posts import Post, PostRepository


class InMemoryPostRepository(PostRepository):
    """Документы в словаре по ключу (collection, url)"""

    def __init__(self):
        self._lock = threading.Lock()
        self._posts: Dict[Tuple[str, str], Post] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._posts)

    def upsert(self, post: Post) -> None:
        with self._lock:
            self._posts[post.key] = replace(post)

    def delete_one(self, collection: str, url: str) -> bool:
        with self._lock:
            return self._posts.pop((collection, url), None) is not None

    def delete_many(self, collection: str) -> int:
        with self._lock:
            keys = [key for key in self._posts if key[0] == collection]
            for key in keys:
                del self._posts[key]
            return len(keys)

    def rename_collection(self, old_name: str, new_name: str) -> int:
        with self._lock:
            moved = [post for key, post in self._posts.items() if key[0] == old_name]
            for post in moved:
                del self._posts[post.key]
                post.collection = new_name
                self._posts[post.key] = post
            return len(moved)

    def list_collections(self) -> List[str]:
        with self._lock:
            return sorted({post.collection for post in self._posts.values() if post.collection})

    def list_by_collection(self, collection: str) -> List[Post]:
        with self._lock:
            posts = [replace(post) for post in self._posts.values() if post.collection == collection]
        return sorted(posts, key=lambda p: p.title)

    def find_index(self, collection: str) -> Optional[Post]:
        with self._lock:
            for post in self._posts.values():
                if post.collection == collection and post.is_index:
                    return replace(post)
        return None

    def find_by_url(self, url: str, collection: Optional[str] = None) -> Optional[Post]:
        with self._lock:
            if collection is not None:
                post = self._posts.get((collection, url))
                return replace(post) if post else None
            matches = [post for post in self._posts.values() if post.url == url]
            if not matches:
                return None
            return replace(min(matches, key=lambda p: p.collection))
