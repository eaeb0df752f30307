"""Session tokens and the in-process table registry."""

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Callable
from uuid import uuid4

from itsdangerous import URLSafeTimedSerializer, BadSignature, SignatureExpired

from config import AppConfig, config
from core.game import BlackjackTable
from core.rules import RuleSet
from core.sources import build_card_source

logger = logging.getLogger(__name__)


class SessionSigner:
    """Sign and verify session IDs using itsdangerous."""

    def __init__(self, secret_key: str | None = None) -> None:
        """Initialize the signer with a secret key."""
        self._secret_key = secret_key or config.security.secret_key
        self._serializer = URLSafeTimedSerializer(self._secret_key)

    def sign(self, session_id: str) -> str:
        """Create a signed token from a session ID."""
        return self._serializer.dumps(session_id)

    def unsign(self, token: str, max_age: int | None = None) -> str | None:
        """
        Verify and extract session_id from a signed token.

        Args:
            token: The signed token to verify
            max_age: Maximum age in seconds (defaults to session_ttl)

        Returns:
            The session ID if valid, None otherwise
        """
        max_age = max_age or config.session_ttl
        try:
            return self._serializer.loads(token, max_age=max_age)
        except (BadSignature, SignatureExpired):
            return None


def build_table(app_config: AppConfig = config) -> BlackjackTable:
    """Create a table wired to the configured card source and rules."""
    source_config = app_config.card_source
    options = {}
    if source_config.kind == "remote":
        options = {"base_url": source_config.base_url, "timeout": source_config.timeout}

    return BlackjackTable(
        source=build_card_source(
            source_config.kind, num_decks=app_config.game.num_decks, **options
        ),
        rules=RuleSet.from_config(app_config.game),
        initial_balance=app_config.game.initial_balance,
        default_bet=app_config.game.default_bet,
    )


class TableRegistry:
    """
    Live tables keyed by session ID, kept in process memory.

    Tables expire after the session TTL of inactivity. Nothing is persisted.
    """

    def __init__(
        self,
        factory: Callable[[], BlackjackTable] = build_table,
        signer: SessionSigner | None = None,
        ttl: int | None = None,
    ) -> None:
        self._factory = factory
        self._signer = signer or SessionSigner()
        self._ttl = ttl or config.session_ttl
        self._tables: dict[str, tuple[BlackjackTable, datetime]] = {}
        self._lock = asyncio.Lock()

    def _expiry(self) -> datetime:
        return datetime.now() + timedelta(seconds=self._ttl)

    async def create(self) -> str:
        """Open a new table and return its signed session token."""
        await self.cleanup_expired()
        session_id = str(uuid4())
        async with self._lock:
            self._tables[session_id] = (self._factory(), self._expiry())
        return self._signer.sign(session_id)

    async def get(self, token: str) -> BlackjackTable | None:
        """Look up the table for a signed token, refreshing its expiry."""
        session_id = self._signer.unsign(token, max_age=self._ttl)
        if session_id is None:
            return None

        async with self._lock:
            entry = self._tables.get(session_id)
            if entry is None:
                return None

            table, expiry = entry
            if expiry < datetime.now():
                del self._tables[session_id]
                table.close()
                return None

            self._tables[session_id] = (table, self._expiry())
            return table

    async def replace(self, token: str) -> BlackjackTable | None:
        """Swap in a fresh table for an existing session."""
        session_id = self._signer.unsign(token, max_age=self._ttl)
        if session_id is None:
            return None

        async with self._lock:
            old = self._tables.get(session_id)
            if old is None:
                return None
            old[0].close()
            table = self._factory()
            self._tables[session_id] = (table, self._expiry())
            return table

    async def delete(self, token: str) -> None:
        """Close a table."""
        session_id = self._signer.unsign(token, max_age=self._ttl)
        if session_id is not None:
            async with self._lock:
                entry = self._tables.pop(session_id, None)
            if entry is not None:
                entry[0].close()

    async def cleanup_expired(self) -> int:
        """Remove expired tables."""
        now = datetime.now()
        async with self._lock:
            expired = [
                sid for sid, (_, expiry) in self._tables.items() if expiry < now
            ]
            for sid in expired:
                table, _ = self._tables.pop(sid)
                table.close()
        if expired:
            logger.info("Closed %d expired tables", len(expired))
        return len(expired)

    def __len__(self) -> int:
        return len(self._tables)


# Global registry instance
_registry: TableRegistry | None = None


def get_table_registry() -> TableRegistry:
    """Get or create the table registry."""
    global _registry
    if _registry is None:
        _registry = TableRegistry()
    return _registry
