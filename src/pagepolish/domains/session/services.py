"""Session Domain Services.

- GenerativeService: the port the coordinator calls for patches and answers
- CredentialVault: the process-wide credential, format-checked on save
"""

import logging
from typing import Optional, Protocol

from pagepolish.storage.kv_store import KeyValueStore
from pagepolish.domains.context.value_objects import ContextSnapshot
from pagepolish.domains.patching.value_objects import Patch
from pagepolish.domains.shared.errors import CredentialMissingError, InvalidCredentialError, StorageError
from .value_objects import RelevanceAnalysis

logger = logging.getLogger(__name__)

CREDENTIAL_KEY = "polish_credential"

# provider -> (required key prefix, minimum length)
CREDENTIAL_FORMATS = {
    "anthropic": ("sk-ant-", 21),
    "openai": ("sk-", 21),
    "ollama": ("", 1),
}


class GenerativeService(Protocol):
    async def request_patch(
        self, instruction: str, context: ContextSnapshot, credential: Optional[str] = None
    ) -> Patch: ...

    async def identify_relevant_parts(
        self, question: str, summary: str, credential: Optional[str] = None
    ) -> RelevanceAnalysis: ...

    async def answer_question(
        self, question: str, relevant_dom: str, credential: Optional[str] = None
    ) -> str: ...


def validate_credential(provider: str, credential: Optional[str]) -> str:
    """Check a credential's format only; no network call is made.

    Returns the stripped credential.

    Raises:
        CredentialMissingError: if the credential is empty.
        InvalidCredentialError: if it does not match the provider's format.
    """
    value = (credential or "").strip()
    if not value:
        raise CredentialMissingError("Please enter an API key")
    prefix, min_length = CREDENTIAL_FORMATS.get(provider.lower(), ("", 1))
    if not value.startswith(prefix) or len(value) < min_length:
        hint = f" (expected a key starting with '{prefix}')" if prefix else ""
        raise InvalidCredentialError(f"Invalid API key format{hint}")
    return value


class CredentialVault:
    """Stores the credential shared by every session of the process."""

    def __init__(self, store: KeyValueStore, provider: str = "anthropic"):
        self.store = store
        self.provider = provider

    async def load(self) -> Optional[str]:
        try:
            value = await self.store.get(CREDENTIAL_KEY)
        except StorageError as e:
            logger.warning("Credential could not be read: %s", e)
            return None
        return value if isinstance(value, str) and value else None

    async def save(self, credential: str) -> str:
        value = validate_credential(self.provider, credential)
        await self.store.set(CREDENTIAL_KEY, value)
        logger.info("Credential saved for provider %s", self.provider)
        return value

    async def clear(self) -> None:
        await self.store.remove(CREDENTIAL_KEY)
