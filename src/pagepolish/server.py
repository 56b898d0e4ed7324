"""MCP server exposing the editing engine's message contract.

Every tool addresses one session (one attached document) by ``session_id``
and is bounded by the operation's timeout budget. Tools never raise: failures
come back as ``{"success": False, "error": ..., "error_code": ...}``.
"""

import argparse
import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

from fastmcp import FastMCP

from pagepolish.config.settings import load_engine_settings
from pagepolish.container import ServiceContainer, get_container, set_container
from pagepolish.dom.document import PointerEvent
from pagepolish.domains.session.aggregates import SessionCoordinator
from pagepolish.domains.session.value_objects import OPERATION_BUDGETS, SUBMIT_BUDGET_SECONDS
from pagepolish.domains.shared.errors import PolishError, TransportTimeoutError
from pagepolish.domains.shared.kernel import BASELINE_ID, InteractionMode
from pagepolish.lib.providers import ProviderConfig

logger = logging.getLogger(__name__)

DEFAULT_SESSION_ID = "default"

SERVER_INSTRUCTIONS = """\
Polish edits a live web page through natural-language instructions.

Workflow:
1. attach_document(url, html) once per page; save_credential(key) if the
   session reports awaiting_credential.
2. Edit mode: set_selection_mode(True), then pointer_event("click", address)
   on the element to change, then submit_instruction("make it red").
3. Chat mode: set_mode("chat") and submit questions about the page; no
   target is needed.
4. manage_projects keeps named versions per site; the baseline
   ("_live_website_") is the page as first seen and cannot be overwritten.
"""

mcp = FastMCP("Polish Editing Engine", instructions=SERVER_INSTRUCTIONS)

SessionOperation = Callable[[SessionCoordinator], Union[Any, Awaitable[Any]]]


def _budget_seconds(container: ServiceContainer, operation: str) -> float:
    budget = OPERATION_BUDGETS.get(operation)
    if budget is not None and budget.seconds >= SUBMIT_BUDGET_SECONDS:
        return container.settings.submit_timeout
    return container.settings.fast_timeout


def _error_response(error: PolishError) -> Dict[str, Any]:
    return {"success": False, **error.to_dict()}


async def _run_operation(
    operation: str, session_id: str, call: SessionOperation
) -> Dict[str, Any]:
    """Run ``call`` on the session within the operation's budget."""
    container = get_container()
    try:
        session = container.get_session(session_id)
    except KeyError as e:
        return {"success": False, "error": str(e.args[0]), "error_code": "no_document"}

    async def _invoke() -> Any:
        value = call(session)
        if inspect.isawaitable(value):
            value = await value
        return value

    seconds = _budget_seconds(container, operation)
    try:
        result = await asyncio.wait_for(_invoke(), timeout=seconds)
    except asyncio.TimeoutError:
        logger.warning("%s timed out after %.1fs (session %s)", operation, seconds, session_id)
        return _error_response(
            TransportTimeoutError(f"{operation} did not respond within {seconds:g}s")
        )
    except PolishError as e:
        return _error_response(e)
    except ValueError as e:
        return {"success": False, "error": str(e), "error_code": "invalid_argument"}

    if isinstance(result, dict):
        return {"success": True, **result} if "success" not in result else result
    return {"success": True, "result": result}


@mcp.tool
async def attach_document(
    url: str,
    html: str,
    session_id: str = DEFAULT_SESSION_ID,
    stylesheets: Dict[str, str] | None = None,
) -> Dict[str, Any]:
    """Attach a page to a session and activate it.

    The first document seen for an origin becomes its baseline.

    Args:
        url: Page URL; its origin keys all persisted state.
        html: Full page markup.
        session_id: Session to create or replace.
        stylesheets: Optional mapping of linked stylesheet href to CSS text.

    Returns:
        Dict[str, Any]: session state (state, mode, current_project_id, notices).
    """
    container = get_container()
    try:
        session = await container.open_session(session_id, url, html, stylesheets)
    except PolishError as e:
        return _error_response(e)
    except ValueError as e:
        return {"success": False, "error": str(e), "error_code": "invalid_argument"}
    return {"success": True, **session.to_dict()}


@mcp.tool
async def save_credential(credential: str, session_id: str = DEFAULT_SESSION_ID) -> Dict[str, Any]:
    """Validate and store the generative service API key."""

    async def _save(session: SessionCoordinator) -> Dict[str, Any]:
        state = await session.save_credential(credential)
        return {"state": state.value}

    return await _run_operation("save_credential", session_id, _save)


@mcp.tool
async def toggle_selection_mode(session_id: str = DEFAULT_SESSION_ID) -> Dict[str, Any]:
    """Flip element selection mode on or off."""
    return await _run_operation(
        "toggle_selection_mode",
        session_id,
        lambda s: {"isSelectionMode": s.toggle_selection_mode(), "state": s.state.value},
    )


@mcp.tool
async def set_selection_mode(enabled: bool, session_id: str = DEFAULT_SESSION_ID) -> Dict[str, Any]:
    """Enter (``enabled=True``) or exit selection mode; idempotent."""

    def _set(session: SessionCoordinator) -> Dict[str, Any]:
        if enabled:
            session.enter_selection_mode()
        else:
            session.exit_selection_mode()
        return session.selection_status()

    return await _run_operation("set_selection_mode", session_id, _set)


@mcp.tool
async def get_selection_status(session_id: str = DEFAULT_SESSION_ID) -> Dict[str, Any]:
    """Report ``{isSelectionMode, state, mode}``."""
    return await _run_operation(
        "get_selection_status", session_id, lambda s: s.selection_status()
    )


@mcp.tool
async def get_target_info(session_id: str = DEFAULT_SESSION_ID) -> Dict[str, Any]:
    """Report ``{hasSelection, selector, tagName}`` for the current target."""
    return await _run_operation("get_target_info", session_id, lambda s: s.target_info())


@mcp.tool
async def pointer_event(
    event: str,
    address: str | None = None,
    session_id: str = DEFAULT_SESSION_ID,
) -> Dict[str, Any]:
    """Deliver a pointer event to the element at ``address``.

    Args:
        event: "mouseover", "mouseout" or "click".
        address: Selector of the element under the pointer.
        session_id: Session id.

    Returns:
        Dict[str, Any]: selection status plus target info after the event.
    """

    def _dispatch(session: SessionCoordinator) -> Dict[str, Any]:
        pointer = PointerEvent(event)
        node = session.document.resolve_one(address) if address else None
        session.handle_pointer(pointer, node)
        return {**session.selection_status(), **session.target_info()}

    return await _run_operation("pointer_event", session_id, _dispatch)


@mcp.tool
async def submit_instruction(instruction: str, session_id: str = DEFAULT_SESSION_ID) -> Dict[str, Any]:
    """Submit an edit instruction or a chat question in the current mode.

    Returns:
        Dict[str, Any]: success, mode, state, message and, on edits, the
        patch and what was applied; on failure an error_code and notice.
    """

    async def _submit(session: SessionCoordinator) -> Dict[str, Any]:
        result = await session.submit(instruction)
        return result.to_dict()

    return await _run_operation("submit_instruction", session_id, _submit)


@mcp.tool
async def set_mode(mode: str, session_id: str = DEFAULT_SESSION_ID) -> Dict[str, Any]:
    """Switch between "edit" and "chat" interaction modes."""
    return await _run_operation(
        "set_mode",
        session_id,
        lambda s: {"mode": s.set_mode(InteractionMode(mode)).value, "state": s.state.value},
    )


@mcp.tool
async def deselect_target(session_id: str = DEFAULT_SESSION_ID) -> Dict[str, Any]:
    """Clear the current target and its highlight."""

    def _deselect(session: SessionCoordinator) -> Dict[str, Any]:
        previous = session.deselect()
        return {"cleared": previous is not None, "state": session.state.value}

    return await _run_operation("deselect_target", session_id, _deselect)


@mcp.tool
async def manage_projects(
    action: str,
    project_id: str | None = None,
    name: str | None = None,
    session_id: str = DEFAULT_SESSION_ID,
) -> Dict[str, Any]:
    """Manage saved versions of the current site.

    Args:
        action: One of list, new, save, save_as, switch, discard, rename,
            duplicate, delete.
        project_id: Project to act on (switch, rename, duplicate, delete).
        name: Name for new, save_as and rename.
        session_id: Session id.

    Returns:
        Dict[str, Any]: the affected project (if any), the current project id
        and the project list.
    """
    action_norm = (action or "").strip().lower()

    async def _manage(session: SessionCoordinator) -> Dict[str, Any]:
        result: Dict[str, Any] = {"action": action_norm}
        if action_norm == "list":
            pass
        elif action_norm == "new":
            result["project"] = (await session.new_project(name)).to_dict()
        elif action_norm == "save":
            result["project"] = (await session.save_project()).to_dict()
        elif action_norm == "save_as":
            result["project"] = (await session.save_project(as_new=True, name=name)).to_dict()
        elif action_norm == "switch":
            project = await session.switch_to(project_id or BASELINE_ID)
            result["project"] = project.to_dict() if project else None
        elif action_norm == "discard":
            result["restored_from"] = await session.discard()
        elif action_norm == "rename":
            _require_project_id(project_id, action_norm)
            result["project"] = (await session.rename_project(project_id, name or "")).to_dict()
        elif action_norm == "duplicate":
            _require_project_id(project_id, action_norm)
            result["project"] = (await session.duplicate_project(project_id)).to_dict()
        elif action_norm == "delete":
            _require_project_id(project_id, action_norm)
            await session.delete_project(project_id)
        else:
            raise ValueError(f"Unsupported project action '{action}'")
        result["current_project_id"] = session.current_project_id
        result["projects"] = await session.list_projects()
        return result

    return await _run_operation("manage_projects", session_id, _manage)


def _require_project_id(project_id: Optional[str], action: str) -> None:
    if not project_id:
        raise ValueError(f"project_id is required for '{action}'")


@mcp.tool
async def get_history(limit: int | None = None, session_id: str = DEFAULT_SESSION_ID) -> Dict[str, Any]:
    """Return the site's chat log, oldest first (optionally only the last ``limit``)."""

    async def _history(session: SessionCoordinator) -> Dict[str, Any]:
        records = await session.load_history()
        if limit is not None and limit >= 0:
            records = records[-limit:] if limit else []
        return {"count": len(records), "records": [r.to_dict() for r in records]}

    return await _run_operation("get_history", session_id, _history)


@mcp.tool
async def clear_history(session_id: str = DEFAULT_SESSION_ID) -> Dict[str, Any]:
    """Delete the chat log of the session's site."""

    async def _clear(session: SessionCoordinator) -> Dict[str, Any]:
        await session.clear_history()
        return {"origin": str(session.origin)}

    return await _run_operation("clear_history", session_id, _clear)


@mcp.tool
async def get_document(
    include_control_surface: bool = False, session_id: str = DEFAULT_SESSION_ID
) -> Dict[str, Any]:
    """Serialize the live document, without the editor's own elements by default."""
    return await _run_operation(
        "get_document",
        session_id,
        lambda s: {
            "url": s.document.url,
            "html": s.document.serialize(strip_control=not include_control_surface),
            "session": s.to_dict(),
        },
    )


@mcp.tool
async def dismiss_notice(notice_id: str, session_id: str = DEFAULT_SESSION_ID) -> Dict[str, Any]:
    """Remove one notice from the session."""
    return await _run_operation(
        "dismiss_notice",
        session_id,
        lambda s: {"dismissed": s.dismiss_notice(notice_id), "notices": [n.to_dict() for n in s.notices]},
    )


def _build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Polish editing engine MCP server.")
    parser.add_argument(
        "--transport",
        dest="transport",
        choices=["stdio", "http", "sse"],
        help="Transport to use for the MCP server (default: stdio).",
    )
    parser.add_argument(
        "--host",
        dest="host",
        help="Host/interface for HTTP transport (default 127.0.0.1).",
    )
    parser.add_argument(
        "--port",
        dest="port",
        type=int,
        help="Port for HTTP transport (default 8000).",
    )
    parser.add_argument(
        "--path",
        dest="path",
        help="Path for HTTP/streamable endpoints (default '/').",
    )
    parser.add_argument(
        "--log-level",
        dest="log_level",
        help="Log level for the MCP server (e.g., INFO, DEBUG).",
    )
    parser.add_argument(
        "--store-dir",
        dest="store_dir",
        help="Directory for persisted projects, history and credential.",
    )
    parser.add_argument(
        "--in-memory",
        dest="in_memory",
        action="store_true",
        help="Keep all state in memory (nothing is written to disk).",
    )
    parser.add_argument(
        "--provider-config",
        dest="provider_config",
        help="YAML file with provider settings (overrides POLISH_* variables).",
    )
    return parser


def main(argv: List[str] | None = None) -> None:
    """Start the Polish MCP server."""

    parser = _build_arg_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(level=(args.log_level or "INFO").upper())

    settings = load_engine_settings().with_overrides(
        store_dir=args.store_dir,
        in_memory_store=True if args.in_memory else None,
    )
    if args.provider_config:
        provider_config = ProviderConfig.from_yaml(args.provider_config)
    else:
        provider_config = ProviderConfig.from_env()
    set_container(ServiceContainer(settings=settings, provider_config=provider_config))
    logger.info(
        "Starting Polish editing engine (provider=%s, store=%s)",
        provider_config.provider,
        "memory" if settings.in_memory_store else settings.resolved_store_dir,
    )

    try:
        run_kwargs: Dict[str, Any] = {}

        transport = args.transport or "stdio"
        run_kwargs["transport"] = transport

        if args.log_level:
            run_kwargs["log_level"] = args.log_level

        # Only pass host/port/path when using HTTP/SSE transports
        if transport != "stdio":
            if args.host:
                run_kwargs["host"] = args.host
            if args.port:
                run_kwargs["port"] = args.port
            if args.path:
                run_kwargs["path"] = args.path

        mcp.run(**run_kwargs)
    except KeyboardInterrupt:
        logger.info("Polish server stopped")


if __name__ == "__main__":
    main()
