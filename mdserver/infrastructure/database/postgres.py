from __future__ import annotations

from contextlib import contextmanager
from typing import List, Optional

import psycopg2
import psycopg2.extras

from mdserver.domain.posts import Post, PostRepository
from mdserver.domain.sync import StoreError
from mdserver.logging_config import get_logger

logger = get_logger("mdserver.infrastructure.postgres")

_COLUMNS = "title, body, url, collection, is_index"


class PostgresPostRepository(PostRepository):
    """PostgreSQL хранилище документов.

    Каждый вызов ограничен таймаутом: connect_timeout на подключение и
    statement_timeout на запросы.
    """

    def __init__(
        self,
        database_url: str,
        *,
        table_name: str = "posts",
        timeout: float = 5.0,
    ):
        if not database_url:
            raise ValueError("database_url is required")
        self.connection_string = database_url
        self.table_name = table_name
        self.timeout = timeout

        try:
            self._ensure_tables()
        except StoreError as e:
            logger.error(f"❌ Cannot initialize posts table '{self.table_name}': {e}")
            logger.error("   Ensure PostgreSQL is running and DATABASE_URL is correct")
            raise

    @contextmanager
    def get_connection(self):
        """Context manager для работы с БД. Ошибки psycopg2 -> StoreError."""
        try:
            conn = psycopg2.connect(
                self.connection_string,
                connect_timeout=max(1, int(self.timeout)),
                options=f"-c statement_timeout={int(self.timeout * 1000)}",
            )
        except psycopg2.Error as exc:
            raise StoreError(f"connection failed: {exc}") from exc

        try:
            yield conn
            conn.commit()
        except psycopg2.Error as exc:
            conn.rollback()
            logger.error(f"Database error: {exc}")
            raise StoreError(str(exc)) from exc
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    # --- Schema helpers ---------------------------------------------------------
    def _ensure_tables(self) -> None:
        """Создаёт таблицу и индексы если не существуют."""
        with self.get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    f"""
                    CREATE TABLE IF NOT EXISTS {self.table_name} (
                        id SERIAL PRIMARY KEY,
                        title TEXT NOT NULL,
                        body TEXT NOT NULL DEFAULT '',
                        url TEXT NOT NULL,
                        collection TEXT NOT NULL DEFAULT '',
                        is_index BOOLEAN NOT NULL DEFAULT FALSE,
                        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                        UNIQUE (collection, url)
                    )
                    """
                )
                cur.execute(
                    f"CREATE INDEX IF NOT EXISTS idx_{self.table_name}_collection "
                    f"ON {self.table_name}(collection)"
                )
                cur.execute(f"CREATE INDEX IF NOT EXISTS idx_{self.table_name}_url ON {self.table_name}(url)")

    @staticmethod
    def _row_to_post(row) -> Post:
        return Post(
            title=row["title"],
            body=row["body"],
            url=row["url"],
            collection=row["collection"],
            is_index=bool(row["is_index"]),
        )

    def _fetch_posts(self, query: str, params: tuple) -> List[Post]:
        with self.get_connection() as conn:
            with conn.cursor(cursor_factory=psycopg2.extras.RealDictCursor) as cur:
                cur.execute(query, params)
                return [self._row_to_post(row) for row in cur.fetchall()]

    # --- Mutations --------------------------------------------------------------
    def upsert(self, post: Post) -> None:
        with self.get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    f"""
                    INSERT INTO {self.table_name} ({_COLUMNS}, updated_at)
                    VALUES (%s, %s, %s, %s, %s, NOW())
                    ON CONFLICT (collection, url) DO UPDATE SET
                        title = EXCLUDED.title,
                        body = EXCLUDED.body,
                        is_index = EXCLUDED.is_index,
                        updated_at = NOW()
                    """,
                    (post.title, post.body, post.url, post.collection, post.is_index),
                )

    def delete_one(self, collection: str, url: str) -> bool:
        with self.get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    f"DELETE FROM {self.table_name} WHERE collection = %s AND url = %s",
                    (collection, url),
                )
                return cur.rowcount > 0

    def delete_many(self, collection: str) -> int:
        with self.get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(f"DELETE FROM {self.table_name} WHERE collection = %s", (collection,))
                return cur.rowcount

    def rename_collection(self, old_name: str, new_name: str) -> int:
        with self.get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    f"UPDATE {self.table_name} SET collection = %s, updated_at = NOW() WHERE collection = %s",
                    (new_name, old_name),
                )
                return cur.rowcount

    # --- Queries ----------------------------------------------------------------
    def list_collections(self) -> List[str]:
        with self.get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    f"SELECT DISTINCT collection FROM {self.table_name} "
                    f"WHERE collection <> '' ORDER BY collection"
                )
                return [row[0] for row in cur.fetchall()]

    def list_by_collection(self, collection: str) -> List[Post]:
        return self._fetch_posts(
            f"SELECT {_COLUMNS} FROM {self.table_name} WHERE collection = %s ORDER BY title",
            (collection,),
        )

    def find_index(self, collection: str) -> Optional[Post]:
        posts = self._fetch_posts(
            f"SELECT {_COLUMNS} FROM {self.table_name} "
            f"WHERE collection = %s AND is_index ORDER BY updated_at DESC LIMIT 1",
            (collection,),
        )
        return posts[0] if posts else None

    def find_by_url(self, url: str, collection: Optional[str] = None) -> Optional[Post]:
        if collection is None:
            posts = self._fetch_posts(
                f"SELECT {_COLUMNS} FROM {self.table_name} WHERE url = %s ORDER BY collection LIMIT 1",
                (url,),
            )
        else:
            posts = self._fetch_posts(
                f"SELECT {_COLUMNS} FROM {self.table_name} WHERE url = %s AND collection = %s LIMIT 1",
                (url, collection),
            )
        return posts[0] if posts else None
