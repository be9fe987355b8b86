"""
Тесты in-memory хранилища
"""
from mdserver.domain.posts import Post
from mdserver.infrastructure.database import InMemoryPostRepository


class TestInMemoryPostRepository:

    def test_upsert_replaces_by_collection_and_url(self):
        repository = InMemoryPostRepository()
        repository.upsert(Post(title="One", body="v1", url="one", collection="content/A"))
        repository.upsert(Post(title="One", body="v2", url="one", collection="content/A"))

        assert [p.body for p in repository.list_by_collection("content/A")] == ["v2"]
        assert len(repository) == 1

    def test_find_by_url_shared_between_collections(self):
        """Один url в двух коллекциях: без коллекции выбирается наименьшая по имени"""
        repository = InMemoryPostRepository()
        repository.upsert(Post(title="B", body="", url="notes", collection="content/B"))
        repository.upsert(Post(title="A", body="", url="notes", collection="content/A"))

        assert repository.find_by_url("notes").collection == "content/A"
        assert repository.find_by_url("notes", "content/B").title == "B"
        assert repository.find_by_url("notes", "content/C") is None

    def test_returned_posts_are_copies(self):
        repository = InMemoryPostRepository()
        repository.upsert(Post(title="One", body="", url="one", collection="content/A"))

        post = repository.find_by_url("one")
        post.title = "Changed"

        assert repository.find_by_url("one").title == "One"
