"""aiosqlite database setup: profiles and verification attempt history."""
import time

import aiosqlite
from lovebug.config import settings

_db: aiosqlite.Connection | None = None


async def get_db() -> aiosqlite.Connection:
    global _db
    if _db is None:
        _db = await aiosqlite.connect(settings.database_url)
        _db.row_factory = aiosqlite.Row
        await _create_tables(_db)
    return _db


async def close_db() -> None:
    global _db
    if _db is not None:
        await _db.close()
        _db = None


async def _create_tables(db: aiosqlite.Connection) -> None:
    await db.execute("""
        CREATE TABLE IF NOT EXISTS profiles (
            id TEXT PRIMARY KEY,
            is_robot_verified INTEGER NOT NULL DEFAULT 0,
            created_at REAL NOT NULL
        )
    """)
    await db.execute("""
        CREATE TABLE IF NOT EXISTS verification_attempts (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            user_id TEXT NOT NULL REFERENCES profiles(id),
            session_id TEXT NOT NULL,
            variant TEXT NOT NULL,
            step_index INTEGER NOT NULL,
            condition TEXT NOT NULL,
            timestamp REAL NOT NULL
        )
    """)
    await db.execute("""
        CREATE INDEX IF NOT EXISTS idx_attempts_user_id
        ON verification_attempts(user_id)
    """)
    await db.commit()


async def create_profile(user_id: str) -> None:
    """Insert an unverified profile; existing rows are left untouched."""
    db = await get_db()
    await db.execute(
        "INSERT OR IGNORE INTO profiles (id, is_robot_verified, created_at) VALUES (?, 0, ?)",
        (user_id, time.time()),
    )
    await db.commit()


async def set_robot_verified(user_id: str) -> bool:
    db = await get_db()
    cursor = await db.execute(
        "UPDATE profiles SET is_robot_verified = 1 WHERE id = ?",
        (user_id,),
    )
    await db.commit()
    return cursor.rowcount > 0


async def fetch_robot_verified(user_id: str) -> bool | None:
    """None when the profile does not exist."""
    db = await get_db()
    cursor = await db.execute(
        "SELECT is_robot_verified FROM profiles WHERE id = ?",
        (user_id,),
    )
    row = await cursor.fetchone()
    if row is None:
        return None
    return bool(row["is_robot_verified"])


async def insert_attempt(
    user_id: str,
    session_id: str,
    variant: str,
    step_index: int,
    condition: str,
    timestamp: float,
) -> int:
    db = await get_db()
    cursor = await db.execute(
        """INSERT INTO verification_attempts
           (user_id, session_id, variant, step_index, condition, timestamp)
           VALUES (?, ?, ?, ?, ?, ?)""",
        (user_id, session_id, variant, step_index, condition, timestamp),
    )
    await db.commit()
    return cursor.lastrowid


async def fetch_user_attempts(user_id: str) -> list[dict]:
    db = await get_db()
    cursor = await db.execute(
        "SELECT * FROM verification_attempts WHERE user_id = ? ORDER BY timestamp ASC",
        (user_id,),
    )
    rows = await cursor.fetchall()
    return [dict(r) for r in rows]
