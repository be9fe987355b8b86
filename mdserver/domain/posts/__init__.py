"""
Документы (Post) и контракт хранилища.

=== МОДЕЛИ ===
- Post: title, body, url, collection, is_index
- PostRepository: upsert / delete_one / delete_many / list_collections /
  list_by_collection / find_index / find_by_url / rename_collection

Коллекция не хранится отдельно: это множество значений поля Post.collection.
"""

from .models import Post
from .repository import PostRepository

__all__ = ["Post", "PostRepository"]
