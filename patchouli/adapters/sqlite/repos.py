import json
import logging
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime
from typing import Any
from uuid import UUID

from patchouli.domain.entities import Attachment, Post, PostStatus, RoleType, User
from patchouli.domain.errors import StoreTimeoutError, StoreUnavailableError
from patchouli.domain.query import SearchQuery

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 5.0

# Post fields an update may write, mapped to their column.
_UPDATABLE_COLUMNS = {
    "title": "title",
    "body": "body",
    "category": "category",
    "tags": "tags_json",
    "attachments": "attachments_json",
    "search_clues": "search_clues",
    "updated_at": "updated_at",
}

_SEARCH_COLUMNS = ("title", "body", "search_clues", "tags_json")
# One term matches when any searchable column contains it.
_TERM_MATCH = (
    "(" + " OR ".join(f"fold(p.{col}) LIKE ? ESCAPE '\\'" for col in _SEARCH_COLUMNS) + ")"
)

# Posts are always read with the author's profile joined in.
_POST_SELECT = (
    "SELECT p.*, pr.name AS author_name, pr.avatar AS author_avatar "
    "FROM knowledge_posts p LEFT JOIN profiles pr ON pr.id = p.author_id"
)


# Helper to convert sqlite rows to dicts
def dict_factory(cursor: sqlite3.Cursor, row: Any) -> dict[str, Any]:
    d = {}
    for idx, col in enumerate(cursor.description):
        d[col[0]] = row[idx]
    return d


def _like_pattern(fragment: str) -> str:
    escaped = fragment.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def _fold(value: str | None) -> str | None:
    # SQLite's own LIKE only folds ASCII letters.
    return value.lower() if value is not None else None


class _SQLiteStore:
    def __init__(self, db_path: str, timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS):
        self.db_path = db_path
        self.timeout_seconds = timeout_seconds

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path, timeout=self.timeout_seconds)
        conn.row_factory = dict_factory
        conn.create_function("fold", 1, _fold, deterministic=True)
        conn.execute("PRAGMA foreign_keys = ON;")
        return conn

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        """
        One connection, one transaction. sqlite errors are translated into
        store errors; a busy/locked database counts as a timeout.
        """
        try:
            conn = self._get_conn()
        except sqlite3.Error as e:
            raise StoreUnavailableError(f"Cannot open database: {e}") from e
        try:
            yield conn
            conn.commit()
        except sqlite3.OperationalError as e:
            conn.rollback()
            message = str(e).lower()
            if "locked" in message or "busy" in message:
                raise StoreTimeoutError(f"Database busy: {e}") from e
            raise StoreUnavailableError(f"Database error: {e}") from e
        except sqlite3.Error as e:
            conn.rollback()
            raise StoreUnavailableError(f"Database error: {e}") from e
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()


class SQLitePostStore(_SQLiteStore):
    """Post Store backed by the knowledge_posts table."""

    def _row_to_post(self, row: dict[str, Any]) -> Post:
        return Post(
            id=UUID(row["id"]),
            title=row["title"],
            body=row["body"],
            category=row["category"],
            tags=json.loads(row["tags_json"] or "[]"),
            attachments=[Attachment(**a) for a in json.loads(row["attachments_json"] or "[]")],
            search_clues=row["search_clues"],
            status=row["status"],
            author_id=UUID(row["author_id"]),
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
            author_name=row.get("author_name") or "Unknown",
            author_avatar=row.get("author_avatar") or "",
        )

    def _fetch(self, conn: sqlite3.Connection, post_id: UUID) -> Post | None:
        row = conn.execute(_POST_SELECT + " WHERE p.id = ?", (str(post_id),)).fetchone()
        return self._row_to_post(row) if row else None

    def insert_post(self, post: Post) -> Post:
        with self._transaction() as conn:
            conn.execute(
                """
                INSERT INTO knowledge_posts (
                    id, author_id, title, body, category, tags_json,
                    attachments_json, search_clues, status, created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
                (
                    str(post.id),
                    str(post.author_id),
                    post.title,
                    post.body,
                    post.category,
                    json.dumps(post.tags),
                    json.dumps([a.model_dump() for a in post.attachments]),
                    post.search_clues,
                    post.status,
                    post.created_at.isoformat(),
                    post.updated_at.isoformat(),
                ),
            )
            return self._fetch(conn, post.id) or post

    def get_post(self, post_id: UUID) -> Post | None:
        with self._transaction() as conn:
            return self._fetch(conn, post_id)

    def update_post(
        self,
        post_id: UUID,
        fields: dict[str, Any],
        expected_status: PostStatus | None = None,
    ) -> Post | None:
        assignments: list[str] = []
        params: list[Any] = []
        for key, value in fields.items():
            column = _UPDATABLE_COLUMNS.get(key)
            if column is None:
                raise ValueError(f"Field {key!r} cannot be updated")
            if key == "tags":
                value = json.dumps(list(value))
            elif key == "attachments":
                value = json.dumps(
                    [a.model_dump() if isinstance(a, Attachment) else dict(a) for a in value]
                )
            elif isinstance(value, datetime):
                value = value.isoformat()
            assignments.append(f"{column} = ?")
            params.append(value)

        if not assignments:
            return self.get_post(post_id)

        sql = f"UPDATE knowledge_posts SET {', '.join(assignments)} WHERE id = ?"
        params.append(str(post_id))
        if expected_status is not None:
            sql += " AND status = ?"
            params.append(expected_status)

        with self._transaction() as conn:
            cursor = conn.execute(sql, params)
            if cursor.rowcount != 1:
                return None
            return self._fetch(conn, post_id)

    def set_status(
        self,
        post_id: UUID,
        new_status: PostStatus,
        expected_status: PostStatus,
        updated_at: datetime,
    ) -> Post | None:
        with self._transaction() as conn:
            cursor = conn.execute(
                "UPDATE knowledge_posts SET status = ?, updated_at = ? "
                "WHERE id = ? AND status = ?",
                (new_status, updated_at.isoformat(), str(post_id), expected_status),
            )
            if cursor.rowcount != 1:
                logger.info(
                    "Status swap %s -> %s on %s did not apply", expected_status, new_status, post_id
                )
                return None
            return self._fetch(conn, post_id)

    def delete_post(self, post_id: UUID) -> bool:
        with self._transaction() as conn:
            cursor = conn.execute("DELETE FROM knowledge_posts WHERE id = ?", (str(post_id),))
            return cursor.rowcount == 1

    def list_posts(
        self,
        *,
        status: PostStatus | None = None,
        author_id: UUID | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[Post]:
        clauses: list[str] = []
        params: list[Any] = []
        if status is not None:
            clauses.append("p.status = ?")
            params.append(status)
        if author_id is not None:
            clauses.append("p.author_id = ?")
            params.append(str(author_id))

        sql = _POST_SELECT
        if clauses:
            sql += " WHERE " + " AND ".join(clauses)
        sql += " ORDER BY p.created_at DESC LIMIT ? OFFSET ?"
        params.extend([limit, offset])

        with self._transaction() as conn:
            rows = conn.execute(sql, params).fetchall()
        return [self._row_to_post(r) for r in rows]

    def search_posts(
        self, query: SearchQuery, *, status: PostStatus, limit: int = 50
    ) -> list[Post]:
        """
        Every clause must match; within a clause any term may match. A term
        matches when it occurs in any searchable column, ignoring case
        (including non-ASCII letters).
        """
        where: list[str] = ["p.status = ?"]
        params: list[Any] = [status]
        for clause in query.clauses:
            alternatives: list[str] = []
            for term in clause:
                pattern = _like_pattern(term.lower())
                alternatives.append(_TERM_MATCH)
                params.extend([pattern] * len(_SEARCH_COLUMNS))
            where.append("(" + " OR ".join(alternatives) + ")")

        sql = (
            _POST_SELECT
            + " WHERE "
            + " AND ".join(where)
            + " ORDER BY p.created_at DESC LIMIT ?"
        )
        params.append(limit)

        with self._transaction() as conn:
            rows = conn.execute(sql, params).fetchall()
        return [self._row_to_post(r) for r in rows]

    def find_by_title(self, fragment: str, *, status: PostStatus, limit: int = 50) -> list[Post]:
        with self._transaction() as conn:
            rows = conn.execute(
                _POST_SELECT
                + " WHERE p.status = ? AND fold(p.title) LIKE ? ESCAPE '\\'"
                " ORDER BY p.created_at DESC LIMIT ?",
                (status, _like_pattern(fragment.lower()), limit),
            ).fetchall()
        return [self._row_to_post(r) for r in rows]


class SQLiteUserStore(_SQLiteStore):
    """Profiles mirrored from the identity provider."""

    def _row_to_user(self, row: dict[str, Any]) -> User:
        return User(
            id=UUID(row["id"]),
            name=row["name"],
            avatar=row["avatar"],
            role=row["role"],
            is_banned=bool(row["is_banned"]),
            created_at=datetime.fromisoformat(row["created_at"]),
        )

    def _fetch(self, conn: sqlite3.Connection, user_id: UUID) -> User | None:
        row = conn.execute("SELECT * FROM profiles WHERE id = ?", (str(user_id),)).fetchone()
        return self._row_to_user(row) if row else None

    def get_user(self, user_id: UUID) -> User | None:
        with self._transaction() as conn:
            return self._fetch(conn, user_id)

    def set_user_banned(self, user_id: UUID, banned: bool) -> User | None:
        with self._transaction() as conn:
            cursor = conn.execute(
                "UPDATE profiles SET is_banned = ? WHERE id = ?", (int(banned), str(user_id))
            )
            if cursor.rowcount != 1:
                return None
            return self._fetch(conn, user_id)

    def list_users(self, *, limit: int = 100, offset: int = 0) -> list[User]:
        with self._transaction() as conn:
            rows = conn.execute(
                "SELECT * FROM profiles ORDER BY created_at DESC, name LIMIT ? OFFSET ?",
                (limit, offset),
            ).fetchall()
        return [self._row_to_user(r) for r in rows]

    def set_role(self, user_id: UUID, role: RoleType) -> User | None:
        with self._transaction() as conn:
            cursor = conn.execute(
                "UPDATE profiles SET role = ? WHERE id = ?", (role, str(user_id))
            )
            if cursor.rowcount != 1:
                return None
            return self._fetch(conn, user_id)

    def save_user(self, user: User) -> User:
        """Upsert display attributes; role and ban flag are kept on conflict."""
        with self._transaction() as conn:
            conn.execute(
                """
                INSERT INTO profiles (id, name, avatar, role, is_banned, created_at)
                VALUES (?, ?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    name=excluded.name,
                    avatar=excluded.avatar
            """,
                (
                    str(user.id),
                    user.name,
                    user.avatar,
                    user.role,
                    int(user.is_banned),
                    user.created_at.isoformat(),
                ),
            )
            return self._fetch(conn, user.id) or user
