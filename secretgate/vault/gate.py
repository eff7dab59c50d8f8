"""
PassphraseGate — Resolves the encryption passphrase for an identity.

Lookup order for ``resolve()``: store → shared in-flight prompt → new prompt.
Concurrent callers for the same identity await one prompt task; only its
outcome is cached.

Security Note:
    Passphrases are held in plaintext by the injected store for the session.
    Never log them. Only log identities and outcomes.
"""
import asyncio
import logging
from typing import Awaitable, Callable, Optional

from ..store import KeyValueStore
from .config import DEFAULT_STORAGE_PREFIX
from .exceptions import InvalidInput, PassphraseRequired

logger = logging.getLogger("secretgate.vault")

PassphrasePrompt = Callable[[str], Awaitable[Optional[str]]]


def _retrieve_outcome(task: asyncio.Task) -> None:
    # marks the failure as retrieved when every waiter was cancelled
    if not task.cancelled():
        task.exception()


class PassphraseGate:
    """Owns the cached passphrase of every identity.

    No other component reads or writes the store handed to the gate.
    """

    def __init__(
        self,
        store: KeyValueStore,
        prompt: PassphrasePrompt,
        storage_prefix: str = DEFAULT_STORAGE_PREFIX,
    ):
        self._store = store
        self._prompt = prompt
        self._prefix = storage_prefix
        self._pending: dict[str, asyncio.Task] = {}
        # bumped by clear(); prompts started under an older value never cache
        self._generations: dict[str, int] = {}

    def _storage_key(self, identity: str) -> str:
        return f"{self._prefix}{identity}"

    def _validate_identity(self, identity: str) -> None:
        if not identity:
            raise InvalidInput("Identity cannot be empty")

    def cached(self, identity: str) -> bool:
        """Return True if a passphrase is held for ``identity``."""
        return bool(self._store.get(self._storage_key(identity)))

    async def resolve(self, identity: str) -> str:
        """Return the passphrase for ``identity``, prompting if needed.

        A cached passphrase is returned without suspending.

        Raises:
            InvalidInput: If identity is empty.
            PassphraseRequired: If the prompt was cancelled, failed or
                returned nothing.
        """
        self._validate_identity(identity)
        passphrase = self._store.get(self._storage_key(identity))
        if passphrase:
            return passphrase
        task = self._pending.get(identity)
        if task is None:
            task = asyncio.ensure_future(self._prompt_for(identity))
            task.add_done_callback(_retrieve_outcome)
            self._pending[identity] = task
        else:
            logger.debug("Joining pending passphrase prompt: identity=%s", identity)
        # one waiter being cancelled must not cancel the prompt for the others
        return await asyncio.shield(task)

    async def _prompt_for(self, identity: str) -> str:
        generation = self._generations.get(identity, 0)
        try:
            logger.debug("Prompting for passphrase: identity=%s", identity)
            try:
                passphrase = await self._prompt(identity)
            except asyncio.CancelledError:
                raise PassphraseRequired(
                    "Encryption password prompt was cancelled"
                ) from None
            except Exception as err:
                logger.warning(
                    "Passphrase prompt failed: identity=%s error=%s",
                    identity, type(err).__name__,
                )
                raise PassphraseRequired(
                    "Encryption password is required"
                ) from err
            if not passphrase:
                raise PassphraseRequired("Encryption password is required")
            if self._generations.get(identity, 0) != generation:
                logger.info(
                    "Discarding passphrase answered after clear: identity=%s",
                    identity,
                )
                raise PassphraseRequired(
                    "Encryption password was cleared while prompting"
                )
            self._store.set(self._storage_key(identity), passphrase)
            return passphrase
        finally:
            if self._pending.get(identity) is asyncio.current_task():
                del self._pending[identity]

    def set(self, identity: str, passphrase: str) -> None:
        """Cache a passphrase obtained through another flow.

        Raises:
            InvalidInput: If identity or passphrase is empty.
        """
        self._validate_identity(identity)
        if not passphrase:
            raise InvalidInput("Encryption passphrase cannot be empty")
        self._store.set(self._storage_key(identity), passphrase)
        logger.info("Passphrase set: identity=%s", identity)

    def clear(self, identity: str) -> None:
        """Forget the cached passphrase. Safe to call repeatedly.

        A prompt already in flight is detached: its answer is never cached
        and its waiters get ``PassphraseRequired``. The next ``resolve``
        starts a new prompt.
        """
        self._generations[identity] = self._generations.get(identity, 0) + 1
        self._pending.pop(identity, None)
        self._store.remove(self._storage_key(identity))
        logger.info("Passphrase cleared: identity=%s", identity)
