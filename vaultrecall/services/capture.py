"""
Auto-capture: decide whether conversational text is worth remembering,
then store it as a captured memory.

Classification is table-driven. Exclusions run first and short-circuit;
any single trigger then accepts. Categories are detected independently, by
priority (preference > project > personal > other).
"""

import re
import threading
import time
from datetime import datetime, timezone
from pathlib import Path

from vaultrecall.config import CaptureConfig
from vaultrecall.core.embeddings.base import Embedder
from vaultrecall.core.vector_store.base import VectorStore
from vaultrecall.models.capture import (
    CapturedPage,
    CaptureCategory,
    CaptureOutcome,
    CaptureReason,
    CaptureRecord,
)
from vaultrecall.utils.exceptions import SecurityError
from vaultrecall.utils.id_generator import generate_capture_id
from vaultrecall.utils.logger import get_logger

logger = get_logger(__name__)

MIN_CAPTURE_CHARS = 15
MAX_CAPTURE_CHARS = 500
MAX_EMOJI = 3
INJECTION_MARKER = "<relevant-memories>"
INBOX_DIR = "00 Inbox"

_I = re.IGNORECASE

# Trigger families, English and Portuguese
MEMORY_TRIGGERS: dict[str, list[re.Pattern]] = {
    "explicit_request": [
        re.compile(
            r"\b(remember|remind\s+me|don['’]?t\s+forget|please\s+remember|note\s+this"
            r"|save\s+this|log\s+this|track\s+this|remember\s+that)\b",
            _I,
        ),
        re.compile(
            r"\b(lembra|lembre|guarda|salva|anota|memoriza|memorizar|memoria"
            r"|não\s+esquece|nao\s+esquece|não\s+esquecer|nao\s+esquecer"
            r"|por\s+favor\s+lembra|por\s+favor\s+lembre)\b",
            _I,
        ),
    ],
    "preference": [
        re.compile(r"\b(i like|i love|i hate|i prefer|i want|i need|prefer)\b", _I),
        re.compile(r"\b(prefiro|gosto|não gosto|odeio|adoro|quero|não quero)\b", _I),
    ],
    "decision": [
        re.compile(r"\b(decided|will use|going to use|chose|picked)\b", _I),
        re.compile(r"\b(decidimos|decidiu|vamos usar|escolhi|optei)\b", _I),
    ],
    "identifier": [
        re.compile(r"\+\d{10,}"),
        re.compile(r"[\w.-]+@[\w.-]+\.\w{2,}"),
        re.compile(r"\b(my name is|i am called|call me)\b", _I),
        re.compile(r"\b(meu nome é|me chamo|sou o|sou a)\b", _I),
    ],
    "possessive_fact": [
        re.compile(r"\b(my|our)\s+\w+\s+(is|are|lives|works)", _I),
        re.compile(r"\b(meu|minha|meus|minhas)\s+\w+\s+(é|são|fica|mora)", _I),
    ],
    "emphasis": [
        re.compile(r"\b(always|never|important|crucial|essential)\b", _I),
        re.compile(r"\b(sempre|nunca|importante|crucial|essencial)\b", _I),
    ],
    "location": [
        re.compile(r"\b(i live in|i work at|my timezone)\b", _I),
        re.compile(r"\b(moro em|trabalho em|fuso horário|timezone)\b", _I),
    ],
}

# Exclusion families, checked before any trigger
MEMORY_EXCLUSIONS: dict[str, list[re.Pattern]] = {
    "markup": [re.compile(r"<[^>]+>")],
    "code_block": [re.compile(r"```[\s\S]*?```")],
    "list_item": [re.compile(r"^\s*[-*]\s+", re.MULTILINE)],
    "confirmation": [
        re.compile(r"\b(done|got it|noted|understood|saved)\b.*!?\s*$", _I),
        re.compile(r"\b(pronto|feito|ok|certo|entendi|anotado)\b.*!?\s*$", _I),
    ],
    "question": [re.compile(r"\?\s*$")],
}

_EMOJI_RE = re.compile(r"[\U0001F300-\U0001F9FF]")

# Category rules in priority order; first match wins
CATEGORY_RULES: list[tuple[CaptureCategory, re.Pattern]] = [
    (
        CaptureCategory.PREFERENCE,
        re.compile(r"prefer|prefiro|gosto|like|love|hate|want|quero|odeio|adoro", _I),
    ),
    (
        CaptureCategory.PROJECT,
        re.compile(
            r"decidimos|decided|will use|vamos usar|escolhi|chose|projeto|project"
            r"|feature|roadmap|meta|objetivo",
            _I,
        ),
    ),
    (
        CaptureCategory.PERSONAL,
        re.compile(
            r"\+\d{10,}|@[\w.-]+\.\w+|nome é|name is|chamo|called|moro|sou|trabalho", _I
        ),
    ),
]


def exclusion_reason(text: str) -> str | None:
    """Name of the first exclusion rule that rejects text, or None."""
    if len(text) < MIN_CAPTURE_CHARS:
        return "too_short"
    if len(text) > MAX_CAPTURE_CHARS:
        return "too_long"
    if INJECTION_MARKER in text:
        return "injected_memories"
    for family, patterns in MEMORY_EXCLUSIONS.items():
        if any(pattern.search(text) for pattern in patterns):
            return family
    if len(_EMOJI_RE.findall(text)) > MAX_EMOJI:
        return "emoji"
    return None


def matched_trigger(text: str) -> str | None:
    """Name of the first trigger family matching text, or None."""
    for family, patterns in MEMORY_TRIGGERS.items():
        if any(pattern.search(text) for pattern in patterns):
            return family
    return None


def should_capture(text: str) -> bool:
    """True if text is worth capturing as a durable memory."""
    if not text or exclusion_reason(text) is not None:
        return False
    return matched_trigger(text) is not None


def detect_category(text: str) -> CaptureCategory:
    """Category of text by priority; independent of should_capture()."""
    for category, pattern in CATEGORY_RULES:
        if pattern.search(text):
            return category
    return CaptureCategory.OTHER


class RateLimiter:
    """
    Sliding-window capture limit per conversation key.

    Timestamps are seconds on a monotonic clock unless the caller passes its
    own. The window state is volatile and guarded by a lock, so concurrent
    callers never lose a recorded attempt.
    """

    def __init__(self, window_seconds: float = 300.0, max_per_window: int = 3):
        self.window_seconds = window_seconds
        self.max_per_window = max_per_window
        self._windows: dict[str, list[float]] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._windows)

    def _recent(self, timestamps: list[float], now: float) -> list[float]:
        return [ts for ts in timestamps if now - ts <= self.window_seconds]

    def allow(self, key: str, now: float | None = None) -> bool:
        """
        Check and record a capture attempt.

        Returns:
            True (attempt recorded) if the key is under its limit, else False
        """
        now = time.monotonic() if now is None else now
        with self._lock:
            recent = self._recent(self._windows.get(key, []), now)
            if len(recent) >= self.max_per_window:
                self._windows[key] = recent
                return False
            recent.append(now)
            self._windows[key] = recent
            return True

    def prune(self, now: float | None = None) -> int:
        """
        Drop expired timestamps and forget keys with none left.

        Returns:
            Number of keys removed
        """
        now = time.monotonic() if now is None else now
        removed = 0
        with self._lock:
            for key in list(self._windows):
                recent = self._recent(self._windows[key], now)
                if recent:
                    self._windows[key] = recent
                else:
                    del self._windows[key]
                    removed += 1
        if removed:
            logger.debug(f"Pruned {removed} stale conversation keys from capture window")
        return removed


class CaptureService:
    """
    Capture path: classify, rate limit, embed, deduplicate, store.

    Collaborator failures are reported through CaptureOutcome and never
    raised.
    """

    def __init__(
        self,
        embedder: Embedder,
        vector_store: VectorStore,
        config: CaptureConfig | None = None,
        rate_limiter: RateLimiter | None = None,
    ):
        self.embedder = embedder
        self.vector_store = vector_store
        self.config = config or CaptureConfig()
        self.rate_limiter = rate_limiter or RateLimiter(
            window_seconds=self.config.window_seconds,
            max_per_window=self.config.max_per_window,
        )

    async def capture(
        self, text: str, conversation_key: str = "default", now: float | None = None
    ) -> CaptureOutcome:
        """
        Capture text if it qualifies.

        Args:
            text: Conversational text
            conversation_key: Rate limit bucket
            now: Rate limiter clock value (default: monotonic time)

        Returns:
            CaptureOutcome with the stored record, or the reason nothing was stored
        """
        if not should_capture(text):
            return CaptureOutcome(reason=CaptureReason.NOT_CAPTURABLE)

        if not self.rate_limiter.allow(conversation_key, now):
            logger.debug(f"Capture rate limit reached for {conversation_key}")
            return CaptureOutcome(reason=CaptureReason.RATE_LIMITED)

        try:
            vector = await self.embedder.embed(text)
        except Exception as e:
            logger.warning(f"Auto-capture embedding failed: {e}")
            return CaptureOutcome(reason=CaptureReason.EMBEDDING_FAILED, warning=str(e))

        duplicate = await self.vector_store.find_nearest_captured(
            vector, self.config.duplicate_threshold
        )
        warning = None
        if duplicate.error:
            warning = f"Duplicate check failed: {duplicate.error}"
            logger.warning(f"{warning} (capturing anyway)")
        if duplicate.exists:
            logger.debug(f"Skipping duplicate capture ({duplicate.score:.2f}): {text[:50]}")
            return CaptureOutcome(reason=CaptureReason.DUPLICATE, warning=warning)

        record = CaptureRecord(
            id=generate_capture_id(),
            text=text,
            category=detect_category(text),
            conversation_key=conversation_key,
        )
        try:
            await self.vector_store.upsert_captured(record, vector)
        except Exception as e:
            logger.warning(f"Auto-capture store failed: {e}")
            return CaptureOutcome(reason=CaptureReason.STORE_FAILED, warning=str(e))

        logger.debug(f"Captured [{record.category.value}]: {text[:50]}")
        return CaptureOutcome(captured=True, record=record, warning=warning)

    async def capture_messages(
        self, texts: list[str], conversation_key: str = "default"
    ) -> list[CaptureRecord]:
        """Capture up to max_per_message qualifying texts from a batch."""
        records = []
        for text in texts:
            if len(records) >= self.config.max_per_message:
                break
            outcome = await self.capture(text, conversation_key)
            if outcome.record is not None:
                records.append(outcome.record)
        return records

    async def list_captured(
        self,
        category: CaptureCategory | None = None,
        limit: int = 20,
        cursor: str | None = None,
    ) -> CapturedPage:
        return await self.vector_store.list_captured(category, limit, cursor)

    async def delete_captured(self, capture_id: str) -> None:
        await self.vector_store.delete_captured(capture_id)

    async def export_captured(
        self,
        vault_path: Path,
        category: CaptureCategory | None = None,
        limit: int = 100,
        title: str | None = None,
        now: datetime | None = None,
    ) -> tuple[str, int]:
        """
        Write captured memories to a markdown note in the vault inbox.

        Returns:
            Tuple of (vault-relative path, number of exported memories)

        Raises:
            SecurityError: If the title would place the note outside the inbox
            VectorStoreError: If captures could not be listed
        """
        title = (title or "").strip()
        if "/" in title or "\\" in title or title.startswith("."):
            raise SecurityError(f"Export title must be a plain file name: {title}")

        page = await self.vector_store.list_captured(category, limit)
        now = now or datetime.now(timezone.utc)

        iso_now = now.isoformat(timespec="milliseconds").replace("+00:00", "Z")
        stamp = iso_now.replace(":", "-").replace(".", "-")
        filename = f"{title or 'captured-memories'}-{stamp}.md"

        inbox = Path(vault_path) / INBOX_DIR
        inbox.mkdir(parents=True, exist_ok=True)

        lines = [
            f"# {title or 'Captured memories'}",
            "",
            f"- Exported: {iso_now}",
            f"- Count: {len(page.items)}",
            "",
        ]
        for item in page.items:
            captured = item.captured_at.isoformat(timespec="milliseconds").replace("+00:00", "Z")
            lines.append(f"- **{item.category.value}** ({captured}) {item.text}")

        (inbox / filename).write_text("\n".join(lines) + "\n", encoding="utf-8")
        logger.info(f"Exported {len(page.items)} captured memories to {INBOX_DIR}/{filename}")
        return f"vault/{INBOX_DIR}/{filename}", len(page.items)
