"""Lightweight SQLite DB helper for users, articles and their analysis results."""
import logging
import os
import sqlite3
from typing import Dict, Iterable, Optional, Tuple

from . import auth, config
from .errors import InvalidCredentialInput, UserExistsError

logger = logging.getLogger(__name__)

# Used to spend the same hashing cost on unknown usernames.
_dummy_credentials: Optional[Tuple[bytes, bytes]] = None


def _conn():
    path = config.db_path()
    parent = os.path.dirname(path)
    if parent:
        os.makedirs(parent, exist_ok=True)
    return sqlite3.connect(path)


def init_db() -> None:
    """Create tables if they don't exist."""
    with _conn() as c:
        cur = c.cursor()
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS user (
                first_name TEXT,
                last_name TEXT,
                username TEXT PRIMARY KEY,
                hash TEXT NOT NULL,
                salt TEXT NOT NULL,
                digest TEXT NOT NULL DEFAULT 'sha1'
            )
            """
        )
        # databases created before the digest column existed hold sha1 hashes
        columns = [r[1] for r in cur.execute("PRAGMA table_info(user)").fetchall()]
        if "digest" not in columns:
            cur.execute("ALTER TABLE user ADD COLUMN digest TEXT NOT NULL DEFAULT 'sha1'")
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS article (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT,
                user TEXT,
                FOREIGN KEY(user) REFERENCES user(username)
            )
            """
        )
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS read_level (
                article INTEGER,
                read_level REAL,
                FOREIGN KEY(article) REFERENCES article(id)
            )
            """
        )
        # label 0 = negative, 1 = positive
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS sentiment (
                label INTEGER,
                article INTEGER,
                prob REAL,
                FOREIGN KEY(article) REFERENCES article(id)
            )
            """
        )
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS topic (
                article INTEGER,
                topic TEXT,
                FOREIGN KEY(article) REFERENCES article(id)
            )
            """
        )
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS mood (
                article INTEGER,
                mood TEXT,
                prob REAL,
                FOREIGN KEY(article) REFERENCES article(id)
            )
            """
        )
        c.commit()


# User functions

def add_user(username: str, password: str, first_name: str, last_name: str) -> int:
    if not username:
        raise InvalidCredentialInput("username must be non-empty")
    hasher = auth.default_hasher()
    salt = hasher.generate_salt()
    pwd_hash = hasher.hash_password(password, salt)
    with _conn() as c:
        cur = c.cursor()
        try:
            cur.execute(
                "INSERT INTO user (first_name, last_name, username, hash, salt, digest) VALUES (?, ?, ?, ?, ?, ?)",
                (first_name, last_name, username, auth.encode(pwd_hash), auth.encode(salt), hasher.digest),
            )
        except sqlite3.IntegrityError as e:
            raise UserExistsError(f"user {username!r} already exists") from e
        c.commit()
        logger.info("Created user %s", username)
        return cur.lastrowid


def get_user(username: str) -> Optional[dict]:
    with _conn() as c:
        cur = c.cursor()
        cur.execute("SELECT username, first_name, last_name FROM user WHERE username = ?", (username,))
        row = cur.fetchone()
        if not row:
            return None
        return {"username": row[0], "first_name": row[1], "last_name": row[2]}


def _credential_record(username: str) -> Optional[Tuple[bytes, bytes, str]]:
    with _conn() as c:
        cur = c.cursor()
        cur.execute("SELECT salt, hash, digest FROM user WHERE username = ?", (username,))
        row = cur.fetchone()
        if not row:
            return None
        return auth.decode(row[0]), auth.decode(row[1]), row[2]


def get_credentials(username: str) -> Optional[Tuple[bytes, bytes]]:
    """Return (salt, hash) as raw bytes, or None for an unknown user."""
    record = _credential_record(username)
    return record[:2] if record else None


def get_digest(username: str) -> Optional[str]:
    record = _credential_record(username)
    return record[2] if record else None


def _dummy() -> Tuple[bytes, bytes]:
    global _dummy_credentials
    if _dummy_credentials is None:
        salt = auth.generate_salt()
        _dummy_credentials = (salt, auth.hash_password(auth.encode(auth.generate_salt()), salt))
    return _dummy_credentials


def check_password(username: str, password: str) -> bool:
    record = _credential_record(username)
    if record is None:
        salt, expected = _dummy()
        auth.verify_password(password, salt, expected)
        return False
    salt, expected, digest = record
    # verify with the digest the hash was made with, not the current default
    return auth.hasher_for(digest).verify_password(password, salt, expected)


# Article functions

def add_article(name: str, username: str) -> int:
    with _conn() as c:
        cur = c.cursor()
        cur.execute("INSERT INTO article (name, user) VALUES (?, ?)", (name, username))
        c.commit()
        return cur.lastrowid


def list_articles(username: str) -> list:
    with _conn() as c:
        cur = c.cursor()
        cur.execute(
            "SELECT article.id, article.name, read_level.read_level FROM article "
            "LEFT JOIN read_level ON read_level.article = article.id "
            "WHERE article.user = ? ORDER BY article.id",
            (username,),
        )
        rows = cur.fetchall()
        return [dict(id=r[0], name=r[1], read_level=r[2]) for r in rows]


def add_read_level(article_id: int, read_level: float) -> None:
    with _conn() as c:
        cur = c.cursor()
        cur.execute("INSERT INTO read_level (article, read_level) VALUES (?, ?)", (article_id, float(read_level)))
        c.commit()


def add_sentiment(article_id: int, pos_prob: float, neg_prob: float) -> None:
    with _conn() as c:
        cur = c.cursor()
        cur.executemany(
            "INSERT INTO sentiment (label, article, prob) VALUES (?, ?, ?)",
            [(0, article_id, float(neg_prob)), (1, article_id, float(pos_prob))],
        )
        c.commit()


def get_sentiment(article_id: int) -> Dict[str, float]:
    with _conn() as c:
        cur = c.cursor()
        cur.execute("SELECT label, prob FROM sentiment WHERE article = ?", (article_id,))
        labels = {0: "negative", 1: "positive"}
        return {labels[r[0]]: r[1] for r in cur.fetchall() if r[0] in labels}


def add_topic(article_id: int, topic: str) -> None:
    add_topics(article_id, [topic])


def add_topics(article_id: int, topics: Iterable[str]) -> None:
    with _conn() as c:
        cur = c.cursor()
        cur.executemany("INSERT INTO topic (article, topic) VALUES (?, ?)", [(article_id, t) for t in topics])
        c.commit()


def get_topics(article_id: int) -> list:
    with _conn() as c:
        cur = c.cursor()
        cur.execute("SELECT topic FROM topic WHERE article = ? ORDER BY topic", (article_id,))
        return [r[0] for r in cur.fetchall()]


def add_mood(article_id: int, mood: str, prob: float) -> None:
    add_moods(article_id, {mood: prob})


def add_moods(article_id: int, moods: Dict[str, float]) -> None:
    with _conn() as c:
        cur = c.cursor()
        cur.executemany(
            "INSERT INTO mood (article, mood, prob) VALUES (?, ?, ?)",
            [(article_id, m, float(p)) for m, p in moods.items()],
        )
        c.commit()


def get_moods(article_id: int) -> Dict[str, float]:
    with _conn() as c:
        cur = c.cursor()
        cur.execute("SELECT mood, prob FROM mood WHERE article = ?", (article_id,))
        return {r[0]: r[1] for r in cur.fetchall()}


def avg_read_level(username: str) -> float:
    """Average reading level (scaled by 100) across a user's articles; 0.0 if none."""
    with _conn() as c:
        cur = c.cursor()
        cur.execute(
            "SELECT SUM(read_level) * 100 / COUNT(*) FROM read_level, article "
            "WHERE article.id = read_level.article AND article.user = ?",
            (username,),
        )
        row = cur.fetchone()
        return float(row[0]) if row and row[0] is not None else 0.0
