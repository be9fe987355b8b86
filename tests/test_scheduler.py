"""
Тесты планировщика синхронизации: полный цикл scan -> diff -> reconcile -> notify
"""
import os
import shutil
import threading
import time

from mdserver.application.notifications import NotificationBus, RELOAD_MESSAGE
from mdserver.domain.posts import Post
from mdserver.domain.sync import FailedEntryPolicy, SyncState
from mdserver.infrastructure.database import InMemoryPostRepository


def all_posts(repository):
    posts = []
    for name in repository.list_collections():
        posts.extend(post.as_dict() for post in repository.list_by_collection(name))
    return sorted(posts, key=lambda p: (p["collection"], p["url"]))


def fresh_import(content_dir, collection_prefix="content/"):
    """Хранилище после импорта текущего дерева с нуля"""
    from mdserver.application.sync import PathMapper, Reconciler, SyncScheduler, TreeScanner

    fresh = InMemoryPostRepository()
    mapper = PathMapper(collection_prefix=collection_prefix)
    SyncScheduler(
        TreeScanner(str(content_dir)), Reconciler(fresh, mapper), NotificationBus(), mapper
    ).run_cycle()
    return fresh


def wait_until(predicate, timeout=5.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return False


class TestExampleScenario:
    """A/index.md + A/notes.md: создание, удаление файла, удаление папки"""

    def test_full_lifecycle(self, content_dir, write_file, repository, make_scheduler):
        write_file("A/index.md", "# Welcome")
        notes = write_file("A/notes.md", "# Notes")
        scheduler = make_scheduler(collection_prefix="")

        result = scheduler.run_cycle()

        assert result.success
        assert result.cycle == 1
        assert all_posts(repository.inner) == [
            {"title": "Welcome", "body": "# Welcome", "url": "A-index", "collection": "A", "isIndex": True},
            {"title": "Notes", "body": "# Notes", "url": "notes", "collection": "A", "isIndex": False},
        ]

        # Удаление одного файла
        repository.reset_calls()
        os.remove(notes)
        result = scheduler.run_cycle()

        assert result.success
        assert repository.calls["delete_one"] == [("A", "notes")]
        assert repository.count("upsert") == 0
        assert repository.count("delete_many") == 0
        assert repository.inner.find_index("A").title == "Welcome"

        # Удаление всей папки
        repository.reset_calls()
        shutil.rmtree(content_dir / "A")
        result = scheduler.run_cycle()

        assert result.success
        assert repository.calls["delete_many"] == [("A",)]
        assert repository.count("delete_one") == 0
        assert all_posts(repository.inner) == []


class TestSyncProperties:

    def test_idempotent_cycle_makes_no_store_calls(self, write_file, repository, make_scheduler):
        write_file("A/index.md", "# Welcome")
        write_file("top.md", "# Top")
        scheduler = make_scheduler()
        scheduler.run_cycle()

        repository.reset_calls()
        result = scheduler.run_cycle()

        assert result.success
        assert result.changes == 0
        assert repository.total_calls == 0

    def test_converges_to_fresh_import(self, content_dir, write_file, repository, make_scheduler):
        scheduler = make_scheduler(collection_prefix="content/")
        write_file("A/index.md", "# A")
        write_file("A/one.md", "# One")
        write_file("B/two.md", "# Two")
        scheduler.run_cycle()

        write_file("A/one.md", "# One v2")
        os.remove(content_dir / "B" / "two.md")
        write_file("B/sub/three.md", "# Three")
        write_file("C/README.md", "# C")
        scheduler.run_cycle()

        shutil.rmtree(content_dir / "A")
        write_file("root.md", "# Root file")
        scheduler.run_cycle()

        assert all_posts(repository.inner) == all_posts(fresh_import(content_dir))

    def test_shared_index_key_survives_delete(self, content_dir, write_file, repository, make_scheduler):
        """A/index.md и A/sub/README.md дают один ключ: удаление одного перезагружает другой"""
        write_file("A/index.md", "# Home")
        readme = write_file("A/sub/README.md", "# Sub home")
        scheduler = make_scheduler(collection_prefix="content/")
        scheduler.run_cycle()

        repository.reset_calls()
        os.remove(readme)
        result = scheduler.run_cycle()

        assert result.success
        assert repository.count("delete_one") == 0
        assert repository.inner.find_index("content/A").title == "Home"
        assert all_posts(repository.inner) == all_posts(fresh_import(content_dir))

        repository.reset_calls()
        assert scheduler.run_cycle().changes == 0
        assert repository.total_calls == 0

    def test_shared_slug_survives_delete(self, content_dir, write_file, repository, make_scheduler):
        """A/sub/x.md и A/sub-x.md дают url sub-x"""
        nested = write_file("A/sub/x.md", "# Nested")
        write_file("A/sub-x.md", "# Flat")
        scheduler = make_scheduler(collection_prefix="content/")
        scheduler.run_cycle()

        os.remove(nested)
        scheduler.run_cycle()

        assert repository.inner.find_by_url("sub-x", "content/A").title == "Flat"
        assert all_posts(repository.inner) == all_posts(fresh_import(content_dir))

    def test_directory_named_like_root_collection(self, content_dir, write_file, repository, make_scheduler):
        """Папка root и корневые файлы делят content/root: удаление папки оставляет корневые файлы"""
        write_file("top.md", "# Top")
        write_file("root/x.md", "# X")
        scheduler = make_scheduler(collection_prefix="content/")
        scheduler.run_cycle()
        assert len(repository.inner.list_by_collection("content/root")) == 2

        shutil.rmtree(content_dir / "root")
        result = scheduler.run_cycle()

        assert result.success
        assert [p.url for p in repository.inner.list_by_collection("content/root")] == ["top"]
        assert all_posts(repository.inner) == all_posts(fresh_import(content_dir))

    def test_collection_delete_precedence(self, content_dir, write_file, repository, make_scheduler):
        """Папка и её файл исчезли вместе: ровно один delete_many и ни одного delete_one"""
        write_file("A/index.md", "# A")
        write_file("A/notes.md", "# Notes")
        write_file("B/keep.md", "# Keep")
        scheduler = make_scheduler()
        scheduler.run_cycle()

        repository.reset_calls()
        os.remove(content_dir / "A" / "notes.md")
        shutil.rmtree(content_dir / "A")
        scheduler.run_cycle()

        assert repository.calls["delete_many"] == [("A",)]
        assert repository.count("delete_one") == 0
        assert [p["collection"] for p in all_posts(repository.inner)] == ["B"]

    def test_index_rename_changes_url(self, content_dir, write_file, repository, make_scheduler):
        write_file("B/page.md", "# Page")
        scheduler = make_scheduler()
        scheduler.run_cycle()
        assert repository.inner.find_by_url("page", "B") is not None

        os.rename(content_dir / "B" / "page.md", content_dir / "B" / "index.md")
        scheduler.run_cycle()

        assert repository.inner.find_by_url("page", "B") is None
        assert repository.inner.find_index("B").url == "B-index"

        os.rename(content_dir / "B" / "index.md", content_dir / "B" / "page.md")
        scheduler.run_cycle()

        assert repository.inner.find_index("B") is None
        assert repository.inner.find_by_url("page", "B").is_index is False

    def test_scan_error_keeps_state(self, tmp_path, content_dir, write_file, repository, make_scheduler):
        write_file("A/index.md", "# A")
        scheduler = make_scheduler()
        scheduler.run_cycle()
        tracked = scheduler.tracked_files

        moved = tmp_path / "moved"
        os.rename(content_dir, moved)
        repository.reset_calls()
        result = scheduler.run_cycle()

        assert result.success is False
        assert "does not exist" in result.error
        assert repository.total_calls == 0
        assert scheduler.tracked_files == tracked
        assert scheduler.state is SyncState.IDLE

        os.rename(moved, content_dir)
        result = scheduler.run_cycle()
        assert result.success
        assert result.changes == 0

    def test_unreadable_file_is_neither_deleted_nor_reimported(
        self, write_file, repository, make_scheduler, monkeypatch
    ):
        from mdserver.application.sync import scanner as scanner_module

        locked = write_file("A/locked.md", "# Locked")
        scheduler = make_scheduler()
        scheduler.run_cycle()

        original = scanner_module.fingerprint_file

        def flaky(path):
            if path == locked:
                raise PermissionError(13, "Permission denied", path)
            return original(path)

        monkeypatch.setattr(scanner_module, "fingerprint_file", flaky)
        repository.reset_calls()
        result = scheduler.run_cycle()

        assert result.success
        assert repository.total_calls == 0
        assert repository.inner.find_by_url("locked", "A") is not None


class TestNotifications:

    def test_reload_only_when_something_changed(self, write_file, make_scheduler):
        bus = NotificationBus()
        subscription = bus.subscribe()
        write_file("A/index.md", "# A")
        scheduler = make_scheduler(bus=bus)

        scheduler.run_cycle()
        assert subscription.get_nowait() == RELOAD_MESSAGE

        scheduler.run_cycle()
        assert subscription.get_nowait() is None

    def test_states_during_cycle(self, write_file, make_scheduler):
        write_file("A/index.md", "# A")
        seen = []
        holder = {}

        def transformer(body, base_dir):
            seen.append(holder["scheduler"].state)
            return body

        scheduler = make_scheduler(transformer=transformer)
        holder["scheduler"] = scheduler
        scheduler.run_cycle()

        assert seen == [SyncState.RECONCILING]
        assert scheduler.state is SyncState.IDLE


class TestTriggers:

    def test_run_now_without_thread_runs_inline(self, write_file, make_scheduler):
        write_file("A/index.md", "# A")
        scheduler = make_scheduler()

        result = scheduler.run_now(timeout=5)

        assert result.cycle == 1
        assert result.success
        assert result.touched == 1

    def test_background_thread_runs_first_cycle_immediately(self, write_file, repository, make_scheduler):
        write_file("A/index.md", "# A")
        scheduler = make_scheduler(interval=60.0)
        scheduler.start()

        assert wait_until(lambda: scheduler.last_result is not None)
        assert repository.inner.find_index("A") is not None

        scheduler.stop(timeout=5)
        assert not scheduler.is_running

    def test_triggers_during_cycle_coalesce(self, write_file, make_scheduler):
        write_file("A/doc.md", "# Doc")
        entered = threading.Event()
        release = threading.Event()

        def slow(body, base_dir):
            entered.set()
            release.wait(timeout=5)
            return body

        scheduler = make_scheduler(transformer=slow, interval=60.0)
        scheduler.start()
        assert entered.wait(timeout=5)

        tickets = {scheduler.trigger() for _ in range(5)}
        results = []
        waiter = threading.Thread(target=lambda: results.append(scheduler.run_now(timeout=5)))
        waiter.start()
        time.sleep(0.05)
        release.set()
        waiter.join(timeout=5)

        assert tickets == {2}
        assert results[0] is not None
        assert results[0].cycle == 2

        time.sleep(0.2)
        assert scheduler.last_result.cycle == 2


class TestFailedEntryPolicy:

    def test_forget_does_not_retry(self, write_file, repository, make_scheduler):
        write_file("A/bad.md", "# Bad")
        repository.failures["upsert"] = lambda post: True
        scheduler = make_scheduler(failed_entry_policy=FailedEntryPolicy.FORGET)

        assert scheduler.run_cycle().success is False
        assert scheduler.run_cycle().success is True
        assert repository.count("upsert") == 1

    def test_retry_until_success(self, write_file, repository, make_scheduler):
        write_file("A/bad.md", "# Bad")
        attempts = []
        repository.failures["upsert"] = lambda post: attempts.append(post.url) or len(attempts) < 2
        scheduler = make_scheduler(failed_entry_policy=FailedEntryPolicy.RETRY, retry_max_attempts=5)

        assert scheduler.run_cycle().success is False
        assert scheduler.run_cycle().success is True
        assert repository.inner.find_by_url("bad", "A") is not None

        repository.reset_calls()
        scheduler.run_cycle()
        assert repository.total_calls == 0

    def test_retry_gives_up_after_limit(self, write_file, repository, make_scheduler):
        write_file("A/bad.md", "# Bad")
        repository.failures["upsert"] = lambda post: True
        scheduler = make_scheduler(failed_entry_policy=FailedEntryPolicy.RETRY, retry_max_attempts=3)

        for _ in range(5):
            scheduler.run_cycle()

        assert repository.count("upsert") == 3

    def test_retry_failed_collection_delete(self, content_dir, write_file, repository, make_scheduler):
        write_file("A/index.md", "# A")
        scheduler = make_scheduler(failed_entry_policy=FailedEntryPolicy.RETRY)
        scheduler.run_cycle()

        shutil.rmtree(content_dir / "A")
        repository.failures["delete_many"] = lambda collection: repository.count("delete_many") < 2
        assert scheduler.run_cycle().success is False
        assert scheduler.run_cycle().success is True
        assert all_posts(repository.inner) == []


class TestCollectionLifecycle:

    def test_prune_orphans_on_start(self, content_dir, write_file, repository, make_scheduler):
        write_file("A/index.md", "# A")
        write_file("top.md", "# Top")
        repository.inner.upsert(Post(title="Old", body="", url="old", collection="content/Old"))
        repository.inner.upsert(Post(title="Up", body="", url="up", collection="uploaded/X"))
        # документ из папки root/, удалённой пока сервис был остановлен
        repository.inner.upsert(Post(title="Gone", body="", url="x", collection="content/root"))

        scheduler = make_scheduler(collection_prefix="content/", prune_orphans_on_start=True)
        scheduler.run_cycle()

        collections = repository.inner.list_collections()
        assert "content/Old" not in collections
        assert "uploaded/X" in collections
        assert "content/A" in collections
        assert [p.url for p in repository.inner.list_by_collection("content/root")] == ["top"]

    def test_forget_collection_reimports(self, write_file, repository, make_scheduler):
        write_file("A/index.md", "# A")
        write_file("A/notes.md", "# Notes")
        write_file("B/other.md", "# Other")
        scheduler = make_scheduler()
        scheduler.run_cycle()

        repository.inner.delete_many("A")
        scheduler.forget_collection("A")
        repository.reset_calls()
        scheduler.run_cycle()

        assert repository.count("upsert") == 2
        assert len(repository.inner.list_by_collection("A")) == 2
