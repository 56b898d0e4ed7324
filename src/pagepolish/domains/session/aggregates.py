"""Session Domain Aggregates.

The SessionCoordinator is the state machine of one editing session. It owns
every piece of mutable session state (mode, target, single-flight flag,
pending input, current project, notices) and is the only component that
calls the generative service, writes the history log, or triggers version
store operations.

States::

    Idle -> AwaitingCredential -> Ready <-> Selecting -> Targeted
         -> Requesting -> (Success | Failed) -> Ready | Targeted
"""

import asyncio
import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional

from bs4 import Tag

from pagepolish.dom.document import LiveDocument, PointerEvent
from pagepolish.domains.context.services import ContextSnapshotter
from pagepolish.domains.context.value_objects import SnapshotLimits
from pagepolish.domains.history.entities import ChatRecord, ChatRole
from pagepolish.domains.history.services import HistoryLog
from pagepolish.domains.patching.events import PatchApplied
from pagepolish.domains.patching.services import PatchApplier
from pagepolish.domains.shared.errors import (
    BaselineImmutableError,
    CredentialMissingError,
    InvalidInstructionError,
    PolishError,
    SessionBusyError,
    StorageError,
    TransportTimeoutError,
    UnsafeTargetError,
)
from pagepolish.domains.shared.events import EventPublisherProtocol
from pagepolish.domains.shared.kernel import BASELINE_ID, InteractionMode, OriginKey
from pagepolish.domains.targeting.aggregates import TargetResolver
from pagepolish.domains.targeting.entities import Target
from pagepolish.domains.versioning.entities import Project, baseline_summary
from pagepolish.domains.versioning.services import VersionStore, capture
from .events import InstructionCompleted, SessionStateChanged, SubmissionRejected
from .services import CredentialVault, GenerativeService
from .value_objects import Notice, SessionState, SubmissionResult

logger = logging.getLogger(__name__)

MIN_INSTRUCTION_LENGTH = 3


class SessionCoordinator:
    """Aggregate root for one editing session on one live document.

    Examples:
        >>> session = SessionCoordinator("s1", document, service=agent,
        ...     version_store=versions, history=history, credentials=vault)
        >>> await session.activate()
        >>> session.enter_selection_mode()
        >>> session.handle_pointer(PointerEvent.CLICK, node)
        >>> result = await session.submit("make this button red")
    """

    def __init__(
        self,
        session_id: str,
        document: LiveDocument,
        *,
        service: GenerativeService,
        version_store: VersionStore,
        history: HistoryLog,
        credentials: CredentialVault,
        limits: Optional[SnapshotLimits] = None,
        event_publisher: Optional[EventPublisherProtocol] = None,
    ):
        self.session_id = session_id
        self.document = document
        self.origin = OriginKey.from_url(document.url)
        self.service = service
        self.version_store = version_store
        self.history = history
        self.credentials = credentials
        self.event_publisher = event_publisher

        self.resolver = TargetResolver(document)
        self.snapshotter = ContextSnapshotter(document, limits)
        self.applier = PatchApplier(document)

        self.mode = InteractionMode.EDIT
        self.current_project_id = BASELINE_ID
        self.pending_input = ""
        self.notices: List[Notice] = []

        self._phase = SessionState.IDLE
        self._credential: Optional[str] = None
        self._requesting = False
        self._switching = False
        self._outcome: Optional[SessionState] = None

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def state(self) -> SessionState:
        if self._phase is not SessionState.READY:
            return self._phase
        if self._outcome is not None:
            return self._outcome
        if self._requesting:
            return SessionState.REQUESTING
        if self.resolver.is_selecting:
            return SessionState.SELECTING
        if self.resolver.has_target:
            return SessionState.TARGETED
        return SessionState.READY

    @property
    def target(self) -> Optional[Target]:
        return self.resolver.target

    @property
    def is_requesting(self) -> bool:
        return self._requesting

    @contextmanager
    def _tracking(self) -> Iterator[None]:
        """Publish a state-change event if the wrapped block changes state."""
        before = self.state
        try:
            yield
        finally:
            for event in self.resolver.clear_events():
                self._publish(event)
            after = self.state
            if after is not before:
                logger.debug("Session %s: %s -> %s", self.session_id, before.value, after.value)
                self._publish(SessionStateChanged(self.session_id, before.value, after.value))

    def _ensure_ready(self) -> None:
        if self._phase is not SessionState.READY:
            raise CredentialMissingError("An API key is required before editing")

    def _ensure_idle(self) -> None:
        if self._requesting:
            raise SessionBusyError("A request is in progress")
        if self._switching:
            raise SessionBusyError("A project switch is in progress")

    # ------------------------------------------------------------------
    # Activation and credential
    # ------------------------------------------------------------------

    async def activate(self) -> SessionState:
        """Capture the baseline if needed and load the stored credential."""
        with self._tracking():
            try:
                await self.version_store.ensure_baseline(self.origin, self.document)
            except StorageError as e:
                logger.warning("Baseline could not be stored for %s: %s", self.origin, e)
                self._notify(e, level="warning")
            self._credential = await self.credentials.load()
            self._phase = (
                SessionState.READY if self._credential else SessionState.AWAITING_CREDENTIAL
            )
        logger.info("Session %s activated on %s (%s)", self.session_id, self.origin, self.state.value)
        return self.state

    async def save_credential(self, credential: str) -> SessionState:
        """Validate the credential's format, store it, and become Ready.

        Raises:
            CredentialMissingError / InvalidCredentialError: on a bad key.
            StorageError: if the key cannot be stored.
        """
        with self._tracking():
            try:
                self._credential = await self.credentials.save(credential)
            except PolishError as e:
                self._notify(e)
                raise
            if self._phase is not SessionState.IDLE:
                self._phase = SessionState.READY
        return self.state

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    def enter_selection_mode(self) -> None:
        with self._tracking():
            self._ensure_ready()
            self._ensure_idle()
            self.resolver.enter_selection_mode()

    def exit_selection_mode(self) -> None:
        with self._tracking():
            self.resolver.exit_selection_mode()

    def toggle_selection_mode(self) -> bool:
        """Flip selection mode; returns whether it is now active."""
        if self.resolver.is_selecting:
            self.exit_selection_mode()
        else:
            self.enter_selection_mode()
        return self.resolver.is_selecting

    def handle_pointer(self, event: PointerEvent, node: Optional[Tag]) -> Optional[Target]:
        """Route a pointer event to the resolver while it owns the listeners.

        Raises:
            UnsafeTargetError: on a click over a protected node.
            AddressResolutionError: if the clicked node cannot be addressed.
        """
        with self._tracking():
            try:
                self.document.dispatch_pointer(event, node)
            except UnsafeTargetError as e:
                self._notify(e, level="warning")
                raise
        return self.resolver.target if event is PointerEvent.CLICK else None

    def deselect(self) -> Optional[Target]:
        with self._tracking():
            self._ensure_idle()
            return self.resolver.clear_target()

    def set_mode(self, mode: InteractionMode) -> InteractionMode:
        with self._tracking():
            self._ensure_idle()
            self.mode = InteractionMode(mode)
            if self.mode is InteractionMode.CHAT:
                self.resolver.exit_selection_mode()
        return self.mode

    def selection_status(self) -> Dict[str, Any]:
        return {
            "isSelectionMode": self.resolver.is_selecting,
            "state": self.state.value,
            "mode": self.mode.value,
        }

    def target_info(self) -> Dict[str, Any]:
        target = self.resolver.target
        if target is None:
            return {"hasSelection": False, "selector": None, "tagName": None}
        return {
            "hasSelection": True,
            "selector": str(target.address),
            "tagName": target.tag.upper(),
        }

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    async def submit(self, instruction: str) -> SubmissionResult:
        """Submit an instruction in the current mode.

        Never raises for domain errors: failures are reported in the result,
        added as a notice, and the session returns to Ready or Targeted with
        the target and pending input preserved.
        """
        text = (instruction or "").strip()
        mode = self.mode

        # Single-flight: checked and set before the first suspension point.
        if self._requesting or self._switching:
            return self._reject(SessionBusyError("A request is already in progress"), mode)
        if self._phase is not SessionState.READY:
            return self._reject(CredentialMissingError("Please add your API key first"), mode)
        if len(text) < MIN_INSTRUCTION_LENGTH:
            return self._reject(InvalidInstructionError("Please enter a request"), mode)

        if mode is InteractionMode.EDIT and self.resolver.target is None:
            self.pending_input = text
            with self._tracking():
                self.resolver.enter_selection_mode()
            return SubmissionResult(
                success=False,
                mode=mode,
                state=self.state,
                message="Selection mode enabled - click an element on the page to select it.",
                error_code="target_required",
            )

        self.pending_input = text
        with self._tracking():
            self.resolver.exit_selection_mode()
            self._requesting = True
        try:
            if mode is InteractionMode.EDIT:
                return await self._submit_edit(text)
            return await self._submit_chat(text)
        except asyncio.CancelledError:
            # Cancelled by the caller's deadline while waiting on the service.
            if self._outcome is not SessionState.SUCCESS:
                target = self.resolver.target
                await self._failed(
                    TransportTimeoutError("The generative service did not answer in time"),
                    mode,
                    str(target.address) if target else None,
                )
            raise
        finally:
            with self._tracking():
                self._requesting = False
                self._outcome = None

    async def _submit_edit(self, text: str) -> SubmissionResult:
        target = self.resolver.target
        target_ref = {"tagName": target.tag, "selector": str(target.address)}
        await self._log(ChatRecord(
            role=ChatRole.OPERATOR, text=text, mode=InteractionMode.EDIT, target_ref=target_ref,
        ))
        try:
            snapshot = self.snapshotter.snapshot(target)
            patch = await self.service.request_patch(text, snapshot, self._credential)
            applied = self.applier.apply(target, patch)
        except PolishError as e:
            return await self._failed(e, InteractionMode.EDIT, str(target.address))

        with self._tracking():
            self._outcome = SessionState.SUCCESS
        self._publish(PatchApplied(
            address=str(target.address),
            declarations_applied=len(applied.applied_declarations),
            declarations_skipped=len(applied.skipped_declarations),
            content_replaced=applied.content_replaced,
        ))
        message = patch.rationale or "Modifications applied"
        await self._log(ChatRecord(
            role=ChatRole.SYSTEM,
            text=message,
            mode=InteractionMode.EDIT,
            target_ref=target_ref,
            patch=patch.to_dict(),
        ))
        self._publish(InstructionCompleted(
            self.session_id, InteractionMode.EDIT.value, True, address=str(target.address),
        ))
        with self._tracking():
            self.resolver.clear_target()
        self.pending_input = ""
        return SubmissionResult(
            success=True,
            mode=InteractionMode.EDIT,
            state=SessionState.READY,
            message=message,
            patch=patch.to_dict(),
            applied=applied.to_dict(),
        )

    async def _submit_chat(self, text: str) -> SubmissionResult:
        target = self.resolver.target
        target_ref = (
            {"tagName": target.tag, "selector": str(target.address)} if target else None
        )
        await self._log(ChatRecord(
            role=ChatRole.OPERATOR, text=text, mode=InteractionMode.CHAT, target_ref=target_ref,
        ))
        try:
            summary = self.snapshotter.summarize_document()
            analysis = await self.service.identify_relevant_parts(text, summary, self._credential)
            relevant = self.snapshotter.gather_relevant(
                analysis.relevant_selectors, include_rules=analysis.needs_css
            )
            context = relevant.render()
            if target is not None:
                context = (
                    f"<!-- selected element: {target.address} -->\n"
                    f"{self.snapshotter.markup_excerpt(target.node)}\n\n{context}"
                )
            answer = await self.service.answer_question(text, context, self._credential)
        except PolishError as e:
            return await self._failed(e, InteractionMode.CHAT, None)

        with self._tracking():
            self._outcome = SessionState.SUCCESS
        await self._log(ChatRecord(role=ChatRole.SYSTEM, text=answer, mode=InteractionMode.CHAT))
        self._publish(InstructionCompleted(self.session_id, InteractionMode.CHAT.value, True))
        self.pending_input = ""
        return SubmissionResult(
            success=True,
            mode=InteractionMode.CHAT,
            state=SessionState.READY if target is None else SessionState.TARGETED,
            message=answer,
            answer=answer,
        )

    async def _failed(
        self, error: PolishError, mode: InteractionMode, address: Optional[str]
    ) -> SubmissionResult:
        logger.warning("Instruction failed (%s): %s", error.code, error.message)
        with self._tracking():
            self._outcome = SessionState.FAILED
        notice = self._notify(error)
        await self._log(ChatRecord(role=ChatRole.SYSTEM, text=f"Error: {error.message}", mode=mode))
        self._publish(InstructionCompleted(
            self.session_id, mode.value, False, error_code=error.code, address=address,
        ))
        return SubmissionResult(
            success=False,
            mode=mode,
            state=SessionState.TARGETED if self.resolver.has_target else SessionState.READY,
            message=error.message,
            error_code=error.code,
            notice=notice,
        )

    def _reject(self, error: PolishError, mode: InteractionMode) -> SubmissionResult:
        self._publish(SubmissionRejected(self.session_id, error.code))
        notice = self._notify(error, level="warning")
        return SubmissionResult(
            success=False,
            mode=mode,
            state=self.state,
            message=error.message,
            error_code=error.code,
            notice=notice,
        )

    async def _log(self, record: ChatRecord) -> None:
        try:
            await self.history.append(self.origin, record)
        except StorageError as e:
            logger.warning("Chat record %s was not stored: %s", record.id, e)

    # ------------------------------------------------------------------
    # Projects
    # ------------------------------------------------------------------

    async def list_projects(self) -> List[Dict[str, Any]]:
        baseline = await self.version_store.get_baseline(self.origin)
        entries = [baseline_summary(baseline, current=self.current_project_id == BASELINE_ID)]
        for project in await self.version_store.list_projects(self.origin):
            entries.append(project.to_summary(current=project.id == self.current_project_id))
        return entries

    async def new_project(self, name: Optional[str] = None) -> Project:
        """Create an unsaved project and switch to it (it shows the baseline)."""
        self._ensure_idle()
        project = await self.version_store.create_project(self.origin, name)
        await self.switch_to(project.id)
        return project

    async def save_project(self, as_new: bool = False, name: Optional[str] = None) -> Project:
        """Persist the live document into the current project.

        On the baseline, ``as_new`` creates a new project from the current
        document instead; a plain save there raises BaselineImmutableError.
        """
        self._ensure_idle()
        if as_new or self.current_project_id == BASELINE_ID:
            if not as_new:
                error = BaselineImmutableError(
                    "The live website cannot be overwritten; save as a new project"
                )
                self._notify(error, level="warning")
                raise error
            project = await self.version_store.create_project(
                self.origin, name, capture(self.document),
                source_project_id=self.current_project_id,
            )
            self.current_project_id = project.id
            return project
        return await self.version_store.save(self.origin, self.current_project_id, self.document)

    async def switch_to(self, project_id: str) -> Optional[Project]:
        self._ensure_idle()
        with self._tracking():
            self._switching = True
            try:
                self.resolver.exit_selection_mode()
                self.resolver.clear_target()
                project = await self.version_store.switch_to(self.origin, project_id, self.document)
                self.current_project_id = project_id
            finally:
                self._switching = False
        logger.info("Session %s switched to %s", self.session_id, project_id)
        return project

    async def discard(self) -> str:
        """Revert unsaved edits; returns "project" or "baseline"."""
        self._ensure_idle()
        with self._tracking():
            self._switching = True
            try:
                self.resolver.exit_selection_mode()
                self.resolver.clear_target()
                source = await self.version_store.discard(
                    self.origin, self.current_project_id, self.document
                )
            finally:
                self._switching = False
        return source

    async def rename_project(self, project_id: str, name: str) -> Project:
        self._ensure_idle()
        return await self.version_store.rename_project(self.origin, project_id, name)

    async def duplicate_project(self, project_id: str) -> Project:
        self._ensure_idle()
        return await self.version_store.duplicate_project(self.origin, project_id)

    async def delete_project(self, project_id: str) -> None:
        self._ensure_idle()
        await self.version_store.delete_project(self.origin, project_id)
        if project_id == self.current_project_id:
            await self.switch_to(BASELINE_ID)

    # ------------------------------------------------------------------
    # History and notices
    # ------------------------------------------------------------------

    async def load_history(self) -> List[ChatRecord]:
        return await self.history.load(self.origin)

    async def clear_history(self) -> None:
        await self.history.clear(self.origin)

    def dismiss_notice(self, notice_id: str) -> bool:
        remaining = [n for n in self.notices if n.id != notice_id]
        dismissed = len(remaining) != len(self.notices)
        self.notices = remaining
        return dismissed

    def _notify(self, error: PolishError, level: str = "error") -> Notice:
        notice = Notice(message=error.message, level=level, code=error.code)
        self.notices.append(notice)
        return notice

    def _publish(self, event: object) -> None:
        if self.event_publisher:
            self.event_publisher.publish(event)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "session_id": self.session_id,
            "origin": str(self.origin),
            "state": self.state.value,
            "mode": self.mode.value,
            "current_project_id": self.current_project_id,
            "pending_input": self.pending_input,
            "target": self.target_info(),
            "notices": [n.to_dict() for n in self.notices],
        }
