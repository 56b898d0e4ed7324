"""Dependency container for the editing engine.

Shared services (store, version store, history log, credential vault,
generative service) are created lazily and reused by every session.
Sessions are keyed by session id.

Usage:
    from pagepolish.container import get_container

    container = get_container()
    session = await container.open_session("tab-1", url, html)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional

from pagepolish.config.settings import EngineSettings
from pagepolish.dom.document import LiveDocument
from pagepolish.dom.layout import FlowLayoutProvider
from pagepolish.domains.history.services import HistoryLog
from pagepolish.domains.session.aggregates import SessionCoordinator
from pagepolish.domains.session.services import CredentialVault, GenerativeService
from pagepolish.domains.shared.events import EventCollector
from pagepolish.domains.versioning.services import VersionStore
from pagepolish.lib.agent import PatchAgent
from pagepolish.lib.providers import ProviderConfig
from pagepolish.storage.kv_store import InMemoryKeyValueStore, JsonFileKeyValueStore, KeyValueStore

logger = logging.getLogger(__name__)

# Singleton container instance
_container: Optional["ServiceContainer"] = None


@dataclass
class ServiceContainer:
    """Simple dependency container for engine services.

    Attributes:
        settings: Engine limits, budgets and storage location.
        provider_config: Generative provider settings.
    """

    settings: EngineSettings = field(default_factory=EngineSettings)
    provider_config: ProviderConfig = field(default_factory=ProviderConfig)

    _store: Optional[KeyValueStore] = field(default=None, repr=False)
    _version_store: Optional[VersionStore] = field(default=None, repr=False)
    _history_log: Optional[HistoryLog] = field(default=None, repr=False)
    _credential_vault: Optional[CredentialVault] = field(default=None, repr=False)
    _generative_service: Optional[GenerativeService] = field(default=None, repr=False)
    _events: EventCollector = field(default_factory=EventCollector, repr=False)
    _sessions: Dict[str, SessionCoordinator] = field(default_factory=dict, repr=False)

    @property
    def store(self) -> KeyValueStore:
        if self._store is None:
            if self.settings.in_memory_store:
                self._store = InMemoryKeyValueStore()
            else:
                self._store = JsonFileKeyValueStore(self.settings.resolved_store_dir)
        return self._store

    @property
    def events(self) -> EventCollector:
        return self._events

    @property
    def version_store(self) -> VersionStore:
        if self._version_store is None:
            self._version_store = VersionStore(self.store, event_publisher=self._events)
        return self._version_store

    @property
    def history_log(self) -> HistoryLog:
        if self._history_log is None:
            self._history_log = HistoryLog(self.store, max_records=self.settings.history_cap)
        return self._history_log

    @property
    def credential_vault(self) -> CredentialVault:
        if self._credential_vault is None:
            self._credential_vault = CredentialVault(
                self.store, provider=self.provider_config.provider
            )
        return self._credential_vault

    @property
    def generative_service(self) -> GenerativeService:
        if self._generative_service is None:
            self._generative_service = PatchAgent(self.agent_config())
        return self._generative_service

    def agent_config(self) -> ProviderConfig:
        """Provider config with the per-call timeout fitted inside the submit budget.

        A chat turn makes two sequential calls, so each gets at most half.
        """
        per_call = self.settings.submit_timeout / 2
        if self.provider_config.request_timeout <= per_call:
            return self.provider_config
        logger.info(
            "Capping generative request timeout from %.1fs to %.1fs",
            self.provider_config.request_timeout, per_call,
        )
        return replace(self.provider_config, request_timeout=per_call)

    def set_generative_service(self, service: GenerativeService) -> None:
        self._generative_service = service

    def use_store(self, store: KeyValueStore) -> None:
        """Replace the store; dependent services are rebuilt lazily."""
        self._store = store
        self._version_store = None
        self._history_log = None
        self._credential_vault = None

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    async def open_session(
        self,
        session_id: str,
        url: str,
        html: str,
        stylesheets: Optional[Dict[str, str]] = None,
    ) -> SessionCoordinator:
        """Attach a document and activate a session for it.

        An existing session with the same id is replaced.
        """
        sheets = dict(stylesheets or {})
        document = LiveDocument(
            html,
            url,
            layout=FlowLayoutProvider(),
            stylesheet_loader=sheets.get,
        )
        if session_id in self._sessions:
            self.close_session(session_id)
        session = SessionCoordinator(
            session_id,
            document,
            service=self.generative_service,
            version_store=self.version_store,
            history=self.history_log,
            credentials=self.credential_vault,
            limits=self.settings.snapshot_limits,
            event_publisher=self._events,
        )
        self._sessions[session_id] = session
        await session.activate()
        return session

    def get_session(self, session_id: str) -> SessionCoordinator:
        try:
            return self._sessions[session_id]
        except KeyError:
            raise KeyError(f"No document attached for session '{session_id}'") from None

    def has_session(self, session_id: str) -> bool:
        return session_id in self._sessions

    def list_sessions(self) -> List[str]:
        return list(self._sessions)

    def close_session(self, session_id: str) -> None:
        session = self._sessions.pop(session_id, None)
        if session is not None:
            session.resolver.exit_selection_mode()
            logger.debug("Closed session %s", session_id)


def get_container() -> ServiceContainer:
    """Get the global service container, creating it on first use."""
    global _container
    if _container is None:
        from pagepolish.config.settings import load_engine_settings

        _container = ServiceContainer(
            settings=load_engine_settings(),
            provider_config=ProviderConfig.from_env(),
        )
    return _container


def set_container(container: Optional[ServiceContainer]) -> None:
    """Install (or with None, reset) the global container."""
    global _container
    _container = container
