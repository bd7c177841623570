"""Collaborator interfaces consumed by the orchestration core, plus a SQLite reference store.

The core only depends on the four Protocols below. SQLiteAdvisorStore implements all
of them (and the conversation-writing helpers the HTTP layer needs) on a single
SQLite file. Uses synchronous sqlite3 behind async methods; a lock serialises access
so one store can be shared by the server's worker threads.
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Protocol, Sequence

from sharkmind.models import (
    CREDITS_PER_MESSAGE,
    METERED_PLANS,
    ConversationStats,
    ConversationTurn,
    CreditAccount,
    KnowledgeSnippet,
    Mode,
    Plan,
    Role,
    UsageRecord,
)

logger = logging.getLogger("sharkmind.storage")

_DEFAULT_DB_PATH = ".sharkmind/sharkmind.db"
CONVERSATION_LIST_LIMIT = 20


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


# ============================================================
# Protocols
# ============================================================

class ConversationStore(Protocol):
    async def get_recent_turns(self, conversation_id: int, limit: int) -> Sequence[ConversationTurn]:
        """Last ``limit`` turns of a conversation, oldest first."""


class KnowledgeStore(Protocol):
    async def query(self, like_pattern: str, limit: int | None = None) -> Sequence[KnowledgeSnippet]:
        """Snippets whose title, content or tags match ``like_pattern``, best first."""


class AccountStore(Protocol):
    async def get_account(self, user_id: int) -> CreditAccount | None: ...

    async def decrement_credit(self, user_id: int) -> None: ...


class AuditSink(Protocol):
    async def record(self, entry: UsageRecord) -> None: ...


# ============================================================
# Seed data
# ============================================================

SEED_KNOWLEDGE: list[dict[str, str]] = [
    {
        "category": "Futuros",
        "subcategory": "WINFUT",
        "title": "Mini Índice Bovespa Futuro",
        "content": "O WINFUT é o contrato futuro do mini índice Bovespa, cada ponto vale R$ 0,20. "
                   "É o ativo mais líquido para day trade no Brasil.",
        "tags": "winfut,ibovespa,day trade,futuros",
        "source": "B3",
    },
    {
        "category": "Futuros",
        "subcategory": "INDFUT",
        "title": "Índice Bovespa Futuro",
        "content": "O INDFUT é o contrato futuro do índice Bovespa, cada ponto vale R$ 1,00. "
                   "Indicado para operações com maior capital.",
        "tags": "indfut,ibovespa,futuros",
        "source": "B3",
    },
    {
        "category": "Futuros",
        "subcategory": "DOLFUT",
        "title": "Dólar Futuro",
        "content": "O DOLFUT é o contrato futuro do dólar americano, cada ponto vale R$ 50,00. "
                   "Muito usado para hedge cambial.",
        "tags": "dolfut,dolar,cambio,hedge",
        "source": "B3",
    },
    {
        "category": "Estratégias",
        "subcategory": "Scalping",
        "title": "Estratégia de Scalping",
        "content": "Scalping é uma estratégia de trading que busca lucros pequenos em operações "
                   "muito rápidas, geralmente durando segundos ou minutos.",
        "tags": "scalping,day trade,estrategia",
        "source": "SharkMind AI",
    },
    {
        "category": "Indicadores",
        "subcategory": "MACD",
        "title": "Moving Average Convergence Divergence",
        "content": "O MACD é um indicador de momentum que mostra a relação entre duas médias "
                   "móveis do preço de um ativo.",
        "tags": "macd,indicador,analise tecnica",
        "source": "Análise Técnica",
    },
]

_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS users (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        email TEXT UNIQUE NOT NULL,
        name TEXT NOT NULL DEFAULT '',
        plan TEXT NOT NULL DEFAULT 'free',
        credits INTEGER NOT NULL DEFAULT 5,
        created_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS conversations (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        user_id INTEGER NOT NULL REFERENCES users (id),
        title TEXT NOT NULL,
        mode TEXT NOT NULL DEFAULT 'consulta',
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS messages (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        conversation_id INTEGER NOT NULL REFERENCES conversations (id),
        role TEXT NOT NULL CHECK (role IN ('user', 'assistant')),
        content TEXT NOT NULL,
        tokens_used INTEGER NOT NULL DEFAULT 0,
        model_used TEXT,
        created_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS financial_knowledge (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        category TEXT NOT NULL,
        subcategory TEXT,
        title TEXT NOT NULL,
        content TEXT NOT NULL,
        tags TEXT,
        source TEXT,
        relevance_score REAL NOT NULL DEFAULT 1.0
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS usage_logs (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        user_id INTEGER NOT NULL,
        provider_id TEXT NOT NULL,
        model_name TEXT NOT NULL DEFAULT '',
        tokens_used INTEGER NOT NULL DEFAULT 0,
        estimated_cost REAL NOT NULL DEFAULT 0.0,
        created_at TEXT NOT NULL
    )
    """,
)


# ============================================================
# SQLite reference store
# ============================================================

class SQLiteAdvisorStore:
    """Users, conversations, knowledge and usage logs in one SQLite file.

    Usage:
        store = SQLiteAdvisorStore(".sharkmind/sharkmind.db")
        store.seed_knowledge()
        user_id = store.create_user("ana@example.com", plan=Plan.FREE, credits=5)
        account = await store.get_account(user_id)
    """

    def __init__(self, path: str | Path = _DEFAULT_DB_PATH):
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.RLock()
        self._conn = sqlite3.connect(str(self.path), check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA foreign_keys = ON")
        with self._lock:
            for statement in _SCHEMA:
                self._conn.execute(statement)
            self._conn.commit()

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    def _execute(self, sql: str, params: tuple[Any, ...] = ()) -> sqlite3.Cursor:
        with self._lock:
            cursor = self._conn.execute(sql, params)
            self._conn.commit()
            return cursor

    def _fetchall(self, sql: str, params: tuple[Any, ...] = ()) -> list[sqlite3.Row]:
        with self._lock:
            return self._conn.execute(sql, params).fetchall()

    def _fetchone(self, sql: str, params: tuple[Any, ...] = ()) -> sqlite3.Row | None:
        with self._lock:
            return self._conn.execute(sql, params).fetchone()

    # ─── Knowledge ───────────────────────────────────────────────────────

    def seed_knowledge(self, entries: list[dict[str, str]] | None = None) -> int:
        """Insert seed entries whose title is not stored yet. Returns the number inserted."""
        inserted = 0
        for item in entries if entries is not None else SEED_KNOWLEDGE:
            if self._fetchone("SELECT id FROM financial_knowledge WHERE title = ?", (item["title"],)):
                continue
            self.add_knowledge(**item)
            inserted += 1
        if inserted:
            logger.info(f"Seeded {inserted} knowledge entries into {self.path}")
        return inserted

    def add_knowledge(
        self,
        title: str,
        content: str,
        category: str = "",
        subcategory: str = "",
        tags: str = "",
        source: str = "",
        relevance_score: float = 1.0,
    ) -> int:
        cursor = self._execute(
            "INSERT INTO financial_knowledge "
            "(category, subcategory, title, content, tags, source, relevance_score) "
            "VALUES (?, ?, ?, ?, ?, ?, ?)",
            (category, subcategory, title, content, tags, source, relevance_score),
        )
        return int(cursor.lastrowid)

    async def query(self, like_pattern: str, limit: int | None = None) -> list[KnowledgeSnippet]:
        sql = (
            "SELECT title, content, category, subcategory, relevance_score "
            "FROM financial_knowledge "
            "WHERE (title LIKE ? OR content LIKE ? OR tags LIKE ?) "
            "ORDER BY relevance_score DESC, id ASC"
        )
        params: tuple[Any, ...] = (like_pattern, like_pattern, like_pattern)
        if limit is not None:
            sql += " LIMIT ?"
            params += (limit,)
        return [
            KnowledgeSnippet(
                title=row["title"],
                content=row["content"],
                category=row["category"] or "",
                subcategory=row["subcategory"] or "",
                relevance_score=row["relevance_score"],
            )
            for row in self._fetchall(sql, params)
        ]

    # ─── Accounts ────────────────────────────────────────────────────────

    def create_user(self, email: str, name: str = "", plan: Plan | str = Plan.FREE, credits: int = 5) -> int:
        cursor = self._execute(
            "INSERT INTO users (email, name, plan, credits, created_at) VALUES (?, ?, ?, ?, ?)",
            (email, name, Plan(plan).value, credits, _now()),
        )
        return int(cursor.lastrowid)

    async def get_account(self, user_id: int) -> CreditAccount | None:
        row = self._fetchone("SELECT id, plan, credits FROM users WHERE id = ?", (user_id,))
        if row is None:
            return None
        return CreditAccount(user_id=row["id"], plan=Plan(row["plan"]), credits=row["credits"])

    async def decrement_credit(self, user_id: int) -> None:
        self._execute("UPDATE users SET credits = credits - 1 WHERE id = ? AND credits > 0", (user_id,))

    # ─── Audit ───────────────────────────────────────────────────────────

    async def record(self, entry: UsageRecord) -> None:
        self._execute(
            "INSERT INTO usage_logs (user_id, provider_id, model_name, tokens_used, estimated_cost, created_at) "
            "VALUES (?, ?, ?, ?, ?, ?)",
            (
                entry.user_id,
                entry.provider_id,
                entry.model_name,
                entry.tokens_used,
                entry.estimated_cost,
                entry.timestamp.isoformat(),
            ),
        )

    def list_usage(self, user_id: int, limit: int = 50) -> list[UsageRecord]:
        rows = self._fetchall(
            "SELECT * FROM usage_logs WHERE user_id = ? ORDER BY id DESC LIMIT ?",
            (user_id, limit),
        )
        return [
            UsageRecord(
                user_id=row["user_id"],
                provider_id=row["provider_id"],
                model_name=row["model_name"],
                tokens_used=row["tokens_used"],
                estimated_cost=row["estimated_cost"],
                timestamp=datetime.fromisoformat(row["created_at"]),
            )
            for row in rows
        ]

    # ─── Conversations ───────────────────────────────────────────────────

    def create_conversation(self, user_id: int, title: str, mode: Mode | str = Mode.CONSULTA) -> int:
        now = _now()
        cursor = self._execute(
            "INSERT INTO conversations (user_id, title, mode, created_at, updated_at) VALUES (?, ?, ?, ?, ?)",
            (user_id, title, Mode(mode).value, now, now),
        )
        return int(cursor.lastrowid)

    def get_conversation(self, conversation_id: int, user_id: int) -> dict[str, Any] | None:
        row = self._fetchone(
            "SELECT id, user_id, title, mode, created_at, updated_at "
            "FROM conversations WHERE id = ? AND user_id = ?",
            (conversation_id, user_id),
        )
        return dict(row) if row else None

    def list_conversations(self, user_id: int, limit: int = CONVERSATION_LIST_LIMIT) -> list[dict[str, Any]]:
        """Most recently active conversations first, each with its ``message_count``."""
        rows = self._fetchall(
            "SELECT c.id, c.title, c.mode, c.created_at, c.updated_at, "
            "(SELECT COUNT(*) FROM messages m WHERE m.conversation_id = c.id) AS message_count "
            "FROM conversations c WHERE c.user_id = ? "
            "ORDER BY c.updated_at DESC, c.id DESC LIMIT ?",
            (user_id, limit),
        )
        return [dict(row) for row in rows]

    def delete_conversation(self, conversation_id: int, user_id: int) -> bool:
        """Delete a conversation and its messages. False when ``user_id`` does not own it."""
        with self._lock:
            owned = self._conn.execute(
                "SELECT id FROM conversations WHERE id = ? AND user_id = ?", (conversation_id, user_id)
            ).fetchone()
            if owned is None:
                return False
            self._conn.execute("DELETE FROM messages WHERE conversation_id = ?", (conversation_id,))
            self._conn.execute("DELETE FROM conversations WHERE id = ?", (conversation_id,))
            self._conn.commit()
        logger.debug(f"Deleted conversation {conversation_id} of user {user_id}")
        return True

    def conversation_stats(self, user_id: int) -> ConversationStats:
        """Totals for one user: conversations, questions asked, credits spent, most used mode."""
        totals = self._fetchone(
            "SELECT COUNT(DISTINCT c.id) AS conversations, COUNT(m.id) AS messages "
            "FROM conversations c "
            "LEFT JOIN messages m ON m.conversation_id = c.id AND m.role = 'user' "
            "WHERE c.user_id = ?",
            (user_id,),
        )
        favorite = self._fetchone(
            "SELECT mode, COUNT(*) AS n FROM conversations WHERE user_id = ? "
            "GROUP BY mode ORDER BY n DESC, MAX(updated_at) DESC LIMIT 1",
            (user_id,),
        )
        credits_used = 0
        user = self._fetchone("SELECT plan FROM users WHERE id = ?", (user_id,))
        if user and Plan(user["plan"]) in METERED_PLANS:
            charged = self._fetchone("SELECT COUNT(*) AS n FROM usage_logs WHERE user_id = ?", (user_id,))
            credits_used = charged["n"] * CREDITS_PER_MESSAGE
        return ConversationStats(
            total_messages=totals["messages"] if totals else 0,
            total_conversations=totals["conversations"] if totals else 0,
            credits_used=credits_used,
            favorite_mode=Mode(favorite["mode"]) if favorite else Mode.CONSULTA,
        )

    def append_turn(
        self,
        conversation_id: int,
        role: Role | str,
        content: str,
        tokens_used: int = 0,
        model_used: str | None = None,
    ) -> int:
        now = _now()
        with self._lock:
            cursor = self._conn.execute(
                "INSERT INTO messages (conversation_id, role, content, tokens_used, model_used, created_at) "
                "VALUES (?, ?, ?, ?, ?, ?)",
                (conversation_id, Role(role).value, content, tokens_used, model_used, now),
            )
            self._conn.execute("UPDATE conversations SET updated_at = ? WHERE id = ?", (now, conversation_id))
            self._conn.commit()
        return int(cursor.lastrowid)

    def list_messages(self, conversation_id: int) -> list[dict[str, Any]]:
        rows = self._fetchall(
            "SELECT id, role, content, tokens_used, model_used, created_at "
            "FROM messages WHERE conversation_id = ? ORDER BY id ASC",
            (conversation_id,),
        )
        return [dict(row) for row in rows]

    async def get_recent_turns(self, conversation_id: int, limit: int) -> list[ConversationTurn]:
        rows = self._fetchall(
            "SELECT role, content FROM messages WHERE conversation_id = ? ORDER BY id DESC LIMIT ?",
            (conversation_id, limit),
        )
        return [ConversationTurn(role=Role(row["role"]), content=row["content"]) for row in reversed(rows)]
