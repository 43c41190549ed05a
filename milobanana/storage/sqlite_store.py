"""SQLite-backed record store for users, generation config and the prompt catalog."""

from __future__ import annotations

import json
from contextlib import asynccontextmanager
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, AsyncIterator

import aiosqlite
from loguru import logger

from milobanana.config.schema import GenerationConfig
from milobanana.utils.exceptions import NotFoundError
from milobanana.utils.helpers import ensure_dir, now_ms

# Stored in users.password for accounts that can only log in through WeChat.
WECHAT_PASSWORD_PLACEHOLDER = "wechat_auth"

PROMPT_FIELDS = (
    "prompt",
    "category",
    "title",
    "description",
    "cover_image",
    "image_required",
    "variable_required",
)

_USER_COLUMNS_ADDED_LATER = [
    ("wechat_openid", "TEXT"),
    ("wechat_unionid", "TEXT"),
    ("avatar_url", "TEXT"),
    ("nickname", "TEXT"),
]


@dataclass
class UserRecord:
    id: int
    username: str
    password: str
    points: int
    wechat_openid: str | None = None
    wechat_unionid: str | None = None
    avatar_url: str | None = None
    nickname: str | None = None
    created_at: str | None = None

    def public_dict(self) -> dict[str, Any]:
        """All fields except the password digest."""
        data = asdict(self)
        data.pop("password", None)
        return data


@dataclass
class PromptRecord:
    id: int
    prompt: str
    category: str
    title: str
    description: str | None
    cover_image: str | None
    image_required: int
    variable_required: bool
    created_at: str | None
    updated_at: str | None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class GenerationSettings:
    """Provider endpoint settings editable through config.update."""
    base_url: str
    api_key: str
    model: str

    def to_dict(self) -> dict[str, str]:
        return {"baseUrl": self.base_url, "apiKey": self.api_key, "model": self.model}


_SETTINGS_KEYS = {"base_url": "baseUrl", "api_key": "apiKey", "model": "model"}


def _user_from_row(row: aiosqlite.Row) -> UserRecord:
    return UserRecord(
        id=row["id"],
        username=row["username"],
        password=row["password"],
        points=int(row["points"] or 0),
        wechat_openid=row["wechat_openid"],
        wechat_unionid=row["wechat_unionid"],
        avatar_url=row["avatar_url"],
        nickname=row["nickname"],
        created_at=row["created_at"],
    )


def _prompt_from_row(row: aiosqlite.Row) -> PromptRecord:
    return PromptRecord(
        id=row["id"],
        prompt=row["prompt"],
        category=row["category"],
        title=row["title"],
        description=row["description"],
        cover_image=row["cover_image"],
        image_required=int(row["image_required"] or 0),
        variable_required=bool(row["variable_required"]),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def normalize_image_required(value: Any) -> int:
    if isinstance(value, bool):
        return 1 if value else 0
    if isinstance(value, int):
        return value
    return 1 if value else 0


class SqliteRecordStore:
    """Async SQLite store. Every operation opens its own short-lived connection."""

    def __init__(
        self,
        db_path: Path,
        *,
        default_points: int = 100,
        default_generation: GenerationConfig | None = None,
        prompt_seed_path: Path | None = None,
    ):
        self.db_path = db_path
        self.default_points = default_points
        self.default_generation = default_generation or GenerationConfig()
        self.prompt_seed_path = prompt_seed_path

    @asynccontextmanager
    async def _connect(self) -> AsyncIterator[aiosqlite.Connection]:
        async with aiosqlite.connect(str(self.db_path), timeout=30.0) as conn:
            conn.row_factory = aiosqlite.Row
            await conn.execute("PRAGMA foreign_keys=ON;")
            yield conn
            await conn.commit()

    async def initialize(self) -> None:
        """Create tables, add late columns, seed generation config and prompt catalog."""
        ensure_dir(self.db_path.parent)
        async with self._connect() as conn:
            await conn.execute("PRAGMA journal_mode=WAL;")
            await conn.executescript(
                f"""
                CREATE TABLE IF NOT EXISTS users (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    username TEXT UNIQUE NOT NULL,
                    password TEXT NOT NULL,
                    points INTEGER NOT NULL DEFAULT {int(self.default_points)},
                    wechat_openid TEXT UNIQUE,
                    wechat_unionid TEXT,
                    avatar_url TEXT,
                    nickname TEXT,
                    created_at DATETIME DEFAULT CURRENT_TIMESTAMP
                );

                CREATE TABLE IF NOT EXISTS config (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at DATETIME DEFAULT CURRENT_TIMESTAMP
                );

                CREATE TABLE IF NOT EXISTS prompt_store (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    prompt TEXT NOT NULL,
                    category TEXT NOT NULL,
                    title TEXT NOT NULL,
                    description TEXT,
                    cover_image TEXT,
                    image_required INTEGER DEFAULT 0,
                    variable_required INTEGER DEFAULT 0,
                    created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
                    updated_at DATETIME DEFAULT CURRENT_TIMESTAMP
                );
                """
            )
            await self._migrate_user_columns(conn)
            await self._seed_generation_settings(conn)
        await self._import_initial_prompts()

    async def _migrate_user_columns(self, conn: aiosqlite.Connection) -> None:
        """Add columns introduced after the first deployments."""
        async with conn.execute("PRAGMA table_info(users)") as cur:
            existing = {str(row["name"]) for row in await cur.fetchall()}
        for name, type_def in _USER_COLUMNS_ADDED_LATER:
            if name not in existing:
                await conn.execute(f"ALTER TABLE users ADD COLUMN {name} {type_def}")
        # ALTER TABLE cannot add a UNIQUE column; enforce it with an index instead.
        await conn.execute(
            "CREATE UNIQUE INDEX IF NOT EXISTS idx_users_wechat_openid ON users(wechat_openid)"
        )

    async def _seed_generation_settings(self, conn: aiosqlite.Connection) -> None:
        async with conn.execute("SELECT COUNT(*) AS count FROM config") as cur:
            row = await cur.fetchone()
        if row["count"]:
            return
        defaults = self.default_generation
        await conn.executemany(
            "INSERT INTO config (key, value) VALUES (?, ?)",
            [("baseUrl", defaults.base_url), ("apiKey", defaults.api_key), ("model", defaults.model)],
        )

    async def _import_initial_prompts(self) -> None:
        if not self.prompt_seed_path or not self.prompt_seed_path.exists():
            return
        async with self._connect() as conn:
            async with conn.execute("SELECT COUNT(*) AS count FROM prompt_store") as cur:
                row = await cur.fetchone()
        if row["count"]:
            return
        try:
            with open(self.prompt_seed_path, encoding="utf-8") as f:
                items = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error("Failed to import initial prompts from {}: {}", self.prompt_seed_path, e)
            return
        if not isinstance(items, list):
            logger.error("Prompt seed file {} must contain a list", self.prompt_seed_path)
            return
        prompts = []
        for item in items:
            if not isinstance(item, dict):
                continue
            prompts.append({
                "prompt": item.get("prompt") or "",
                "category": item.get("category") or "",
                # Older catalogs spell the key "tittle".
                "title": item.get("tittle") or item.get("title") or "",
                "description": item.get("description") or "",
                "cover_image": item.get("cover_image") or "",
                "image_required": normalize_image_required(item.get("image_required")),
                "variable_required": bool(item.get("variable_required")),
            })
        await self.import_prompts(prompts)
        logger.info("Imported {} initial prompts from {}", len(prompts), self.prompt_seed_path)

    # ------------------------------------------------------------------ users

    async def create_user(self, username: str, password_digest: str, nickname: str | None = None) -> int:
        async with self._connect() as conn:
            cur = await conn.execute(
                "INSERT INTO users (username, password, nickname, points) VALUES (?, ?, ?, ?)",
                (username, password_digest, nickname, self.default_points),
            )
            return int(cur.lastrowid)

    async def create_wechat_user(
        self,
        openid: str,
        unionid: str | None = None,
        avatar_url: str | None = None,
        nickname: str | None = None,
    ) -> int:
        username = f"wechat_{openid[:12]}_{now_ms()}"
        async with self._connect() as conn:
            cur = await conn.execute(
                """
                INSERT INTO users (username, password, wechat_openid, wechat_unionid, avatar_url, nickname, points)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    username,
                    WECHAT_PASSWORD_PLACEHOLDER,
                    openid,
                    unionid or None,
                    avatar_url or None,
                    nickname or None,
                    self.default_points,
                ),
            )
            return int(cur.lastrowid)

    async def _fetch_user(self, where: str, value: Any) -> UserRecord | None:
        async with self._connect() as conn:
            async with conn.execute(f"SELECT * FROM users WHERE {where} = ?", (value,)) as cur:
                row = await cur.fetchone()
        return _user_from_row(row) if row else None

    async def get_user_by_id(self, user_id: int) -> UserRecord | None:
        return await self._fetch_user("id", user_id)

    async def get_user_by_username(self, username: str) -> UserRecord | None:
        return await self._fetch_user("username", username)

    async def get_user_by_wechat_openid(self, openid: str) -> UserRecord | None:
        return await self._fetch_user("wechat_openid", openid)

    async def list_users(self) -> list[dict[str, Any]]:
        async with self._connect() as conn:
            async with conn.execute(
                "SELECT id, username, points, created_at FROM users ORDER BY created_at DESC, id DESC"
            ) as cur:
                rows = await cur.fetchall()
        return [dict(row) for row in rows]

    async def update_points(self, user_id: int, points: int) -> None:
        async with self._connect() as conn:
            await conn.execute("UPDATE users SET points = ? WHERE id = ?", (max(0, int(points)), user_id))

    async def add_points(self, user_id: int, delta: int) -> int:
        return await self._shift_points(user_id, "points + ?", delta)

    async def subtract_points(self, user_id: int, delta: int) -> int:
        """Decrement the balance, floored at zero. Returns the new balance."""
        return await self._shift_points(user_id, "MAX(0, points - ?)", delta)

    async def _shift_points(self, user_id: int, expression: str, delta: int) -> int:
        # One UPDATE holds the write lock until commit, so concurrent shifts never interleave.
        async with self._connect() as conn:
            cur = await conn.execute(f"UPDATE users SET points = {expression} WHERE id = ?", (int(delta), user_id))
            if cur.rowcount == 0:
                raise NotFoundError("User", user_id)
            async with conn.execute("SELECT points FROM users WHERE id = ?", (user_id,)) as sel:
                row = await sel.fetchone()
        return int(row["points"])

    # ------------------------------------------------------- generation config

    async def get_generation_settings(self) -> GenerationSettings:
        async with self._connect() as conn:
            async with conn.execute("SELECT key, value FROM config") as cur:
                rows = await cur.fetchall()
        values = {row["key"]: row["value"] for row in rows}
        defaults = self.default_generation
        return GenerationSettings(
            base_url=values.get("baseUrl") or defaults.base_url,
            api_key=values.get("apiKey") or "",
            model=values.get("model") or defaults.model,
        )

    async def update_generation_settings(
        self,
        *,
        base_url: str | None = None,
        api_key: str | None = None,
        model: str | None = None,
    ) -> None:
        updates = {"base_url": base_url, "api_key": api_key, "model": model}
        rows = [(_SETTINGS_KEYS[name], value) for name, value in updates.items() if value]
        if not rows:
            return
        async with self._connect() as conn:
            await conn.executemany(
                "INSERT OR REPLACE INTO config (key, value, updated_at) VALUES (?, ?, CURRENT_TIMESTAMP)",
                rows,
            )

    # ---------------------------------------------------------- prompt store

    async def list_prompts(self) -> list[PromptRecord]:
        async with self._connect() as conn:
            async with conn.execute("SELECT * FROM prompt_store ORDER BY created_at DESC, id DESC") as cur:
                rows = await cur.fetchall()
        return [_prompt_from_row(row) for row in rows]

    async def get_prompt(self, prompt_id: int) -> PromptRecord | None:
        async with self._connect() as conn:
            async with conn.execute("SELECT * FROM prompt_store WHERE id = ?", (prompt_id,)) as cur:
                row = await cur.fetchone()
        return _prompt_from_row(row) if row else None

    async def create_prompt(self, fields: dict[str, Any]) -> int:
        async with self._connect() as conn:
            return await self._insert_prompt(conn, fields)

    async def _insert_prompt(self, conn: aiosqlite.Connection, fields: dict[str, Any]) -> int:
        cur = await conn.execute(
            """
            INSERT INTO prompt_store
                (prompt, category, title, description, cover_image, image_required, variable_required)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (
                fields["prompt"],
                fields["category"],
                fields["title"],
                fields.get("description") or None,
                fields.get("cover_image") or None,
                normalize_image_required(fields.get("image_required")),
                1 if fields.get("variable_required") else 0,
            ),
        )
        return int(cur.lastrowid)

    async def update_prompt(self, prompt_id: int, fields: dict[str, Any]) -> None:
        assignments: list[str] = []
        values: list[Any] = []
        for key in PROMPT_FIELDS:
            if key not in fields or fields[key] is None:
                continue
            value = fields[key]
            if key == "variable_required":
                value = 1 if value else 0
            elif key == "image_required":
                value = normalize_image_required(value)
            assignments.append(f"{key} = ?")
            values.append(value)
        if not assignments:
            return
        assignments.append("updated_at = CURRENT_TIMESTAMP")
        values.append(prompt_id)
        async with self._connect() as conn:
            await conn.execute(f"UPDATE prompt_store SET {', '.join(assignments)} WHERE id = ?", values)

    async def delete_prompt(self, prompt_id: int) -> None:
        async with self._connect() as conn:
            await conn.execute("DELETE FROM prompt_store WHERE id = ?", (prompt_id,))

    async def import_prompts(self, prompts: list[dict[str, Any]]) -> None:
        async with self._connect() as conn:
            for fields in prompts:
                await self._insert_prompt(conn, fields)
