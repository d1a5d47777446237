"""
Configurator session service.

Owns open configurator sessions: loads the catalog and drinks, applies
selection actions, buffers saved orders and commits everything to the cart
on confirm.

Lifecycle:
    open -> loading -> ready | load_failed (manual retry) -> closed
"""

import asyncio
import time
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Optional
from uuid import uuid4

import structlog

from config import settings
from exceptions import (
    AppError,
    CartLineNotFoundError,
    CatalogNotLoadedError,
    SavedOrderNotFoundError,
    SessionClosedError,
    SessionNotFoundError,
)
from models.cart import CartLineItem
from models.catalog import CatalogModel, Drink
from models.configurator import ConfirmResponse, SessionResponse, ValidationResult
from models.selection import SelectionState
from models.session import SavedOrder, SavedOrderBuffer, SessionContext, SessionStatus
from services.cart_compiler_service import build_customizations, build_drink_entries, compile_selection
from services.cart_service import CartService, get_cart_service
from services.catalog_service import CatalogService, get_catalog_service
from services.edit_reconciler_service import reconcile
from services.free_drink_service import eligible_drinks, required_free_drinks
from services.item_kind_service import resolve_item_kind
from services.selection_service import apply_action, bootstrap_selection, clear_all
from services.validation_service import validate

logger = structlog.get_logger(__name__)


@dataclass
class ConfiguratorSession:
    """One open configurator (a popup, in UI terms)."""

    session_id: str
    item_id: str
    restaurant_id: Optional[str] = None
    edit_line: Optional[CartLineItem] = None
    preselected_variant_name: Optional[str] = None
    status: SessionStatus = SessionStatus.LOADING
    load_error: Optional[str] = None
    ctx: Optional[SessionContext] = None
    state: SelectionState = field(default_factory=SelectionState)
    buffer: SavedOrderBuffer = field(default_factory=SavedOrderBuffer)
    tasks: list[asyncio.Task] = field(default_factory=list)
    last_active: float = field(default_factory=time.monotonic)

    @property
    def is_edit(self) -> bool:
        return self.edit_line is not None


class ConfiguratorService:
    """
    Configurator business logic.

    Sessions are independent; a session's state is touched only through
    this service, one call at a time.

    Closed sessions leave the registry. Only their ids are remembered (up
    to closed_retention, oldest forgotten first) so late calls get a
    "closed" answer instead of "not found". Sessions idle longer than
    idle_ttl_seconds are closed whenever a new session opens.
    """

    def __init__(
        self,
        catalog_service: Optional[CatalogService] = None,
        cart_service: Optional[CartService] = None,
        idle_ttl_seconds: Optional[int] = None,
        closed_retention: Optional[int] = None,
    ):
        self._catalog_service = catalog_service
        self.cart = cart_service or get_cart_service()
        self._sessions: dict[str, ConfiguratorSession] = {}
        self._closed: OrderedDict[str, str] = OrderedDict()
        self._idle_ttl = idle_ttl_seconds if idle_ttl_seconds is not None else settings.session_idle_ttl_seconds
        self._closed_retention = (
            closed_retention if closed_retention is not None else settings.closed_session_retention
        )

    @property
    def catalog(self) -> CatalogService:
        if self._catalog_service is None:
            self._catalog_service = get_catalog_service()
        return self._catalog_service

    # ===================
    # LOADING
    # ===================

    async def open(
        self,
        item_id: str,
        restaurant_id: Optional[str] = None,
        existing_line: Optional[CartLineItem] = None,
        preselected_variant_name: Optional[str] = None,
    ) -> ConfiguratorSession:
        """
        Open a session, optionally editing an existing cart line.

        A failed catalog fetch does not raise: the session is returned in
        load_failed status and can be retried.

        Args:
            item_id: Menu item UUID
            restaurant_id: Restaurant UUID (drinks); taken from the catalog when omitted
            existing_line: Cart line to edit
            preselected_variant_name: Variant to select first (fresh sessions only)

        Returns:
            ConfiguratorSession
        """
        self.sweep_idle()
        session = ConfiguratorSession(
            session_id=uuid4().hex,
            item_id=item_id,
            restaurant_id=restaurant_id,
            edit_line=existing_line,
            preselected_variant_name=preselected_variant_name,
        )
        self._sessions[session.session_id] = session
        logger.info(
            "configurator_session_opened",
            session_id=session.session_id,
            item_id=item_id,
            is_edit=session.is_edit,
        )
        await self._load(session)
        return session

    async def retry_load(self, session_id: str) -> ConfiguratorSession:
        """Manually retry a failed catalog load."""
        session = self.get_session(session_id)
        if session.status == SessionStatus.LOAD_FAILED:
            logger.info("catalog_load_retry", session_id=session_id, item_id=session.item_id)
            await self._load(session)
        return session

    async def _load(self, session: ConfiguratorSession) -> None:
        session.status = SessionStatus.LOADING
        session.load_error = None

        catalog_task = asyncio.create_task(self.catalog.fetch_enhanced_item(session.item_id))
        drinks_task = None
        if session.restaurant_id:
            drinks_task = asyncio.create_task(self.catalog.fetch_drinks(session.restaurant_id))
        session.tasks = [t for t in (catalog_task, drinks_task) if t is not None]

        try:
            results = await asyncio.gather(*session.tasks, return_exceptions=True)
        finally:
            session.tasks = []

        if session.status == SessionStatus.CLOSED:
            return

        catalog_result = results[0]
        if isinstance(catalog_result, asyncio.CancelledError):
            raise catalog_result
        if isinstance(catalog_result, BaseException):
            self._fail_load(session, catalog_result)
            return

        catalog: CatalogModel = catalog_result
        if drinks_task is not None:
            drinks = self._drinks_or_empty(session, results[1])
        else:
            session.restaurant_id = catalog.restaurant_id
            drinks = await self._fetch_drinks_after_catalog(session)
            if session.status == SessionStatus.CLOSED:
                return

        self._ready(session, catalog, drinks)

    async def _fetch_drinks_after_catalog(self, session: ConfiguratorSession) -> tuple[Drink, ...]:
        if not session.restaurant_id:
            return ()
        task = asyncio.create_task(self.catalog.fetch_drinks(session.restaurant_id))
        session.tasks = [task]
        try:
            result = (await asyncio.gather(task, return_exceptions=True))[0]
        finally:
            session.tasks = []
        if session.status == SessionStatus.CLOSED:
            return ()
        return self._drinks_or_empty(session, result)

    def _drinks_or_empty(self, session: ConfiguratorSession, result) -> tuple[Drink, ...]:
        if isinstance(result, asyncio.CancelledError):
            raise result
        if isinstance(result, BaseException):
            logger.warning(
                "drinks_fetch_failed",
                session_id=session.session_id,
                restaurant_id=session.restaurant_id,
                error=str(result),
            )
            return ()
        return tuple(result)

    def _fail_load(self, session: ConfiguratorSession, error: BaseException) -> None:
        session.status = SessionStatus.LOAD_FAILED
        session.load_error = error.message if isinstance(error, AppError) else "Could not load menu item"
        logger.warning(
            "catalog_load_failed",
            session_id=session.session_id,
            item_id=session.item_id,
            error=str(error),
        )

    def _ready(self, session: ConfiguratorSession, catalog: CatalogModel, drinks: tuple[Drink, ...]) -> None:
        ctx = SessionContext(
            session_id=session.session_id,
            catalog=catalog,
            kind=resolve_item_kind(catalog),
            drinks=drinks,
            is_edit=session.is_edit,
        )
        session.ctx = ctx
        if session.edit_line is not None:
            session.state = reconcile(session.edit_line, ctx)
        else:
            session.state = bootstrap_selection(ctx, session.preselected_variant_name)
        session.status = SessionStatus.READY

        logger.info(
            "configurator_session_ready",
            session_id=session.session_id,
            item_id=catalog.item_id,
            item_kind=ctx.kind.value,
            drinks=len(drinks),
        )

    # ===================
    # SESSION ACCESS
    # ===================

    def get_session(self, session_id: str) -> ConfiguratorSession:
        """
        Get an open session and mark it active.

        Raises:
            SessionClosedError: If the session was closed recently
            SessionNotFoundError: If the id is unknown (or closed long ago)
        """
        session = self._sessions.get(session_id)
        if session is None:
            if session_id in self._closed:
                raise SessionClosedError(session_id)
            raise SessionNotFoundError(session_id)
        session.last_active = time.monotonic()
        return session

    def _require_ready(self, session_id: str) -> ConfiguratorSession:
        session = self.get_session(session_id)
        if session.status != SessionStatus.READY or session.ctx is None:
            raise CatalogNotLoadedError(session_id, session.status.value)
        return session

    @property
    def open_session_count(self) -> int:
        return len(self._sessions)

    def sweep_idle(self) -> int:
        """
        Close sessions untouched for longer than the idle TTL.

        Returns:
            Number of sessions closed
        """
        cutoff = time.monotonic() - self._idle_ttl
        expired = [sid for sid, s in self._sessions.items() if s.last_active < cutoff]
        for session_id in expired:
            logger.info("configurator_session_expired", session_id=session_id)
            self.close(session_id)
        return len(expired)

    def snapshot(self, session_id: str) -> SessionResponse:
        """Presentation view of a session."""
        if session_id in self._closed:
            return SessionResponse(
                session_id=session_id,
                item_id=self._closed[session_id],
                status=SessionStatus.CLOSED,
            )
        session = self.get_session(session_id)
        response = SessionResponse(
            session_id=session.session_id,
            item_id=session.item_id,
            status=session.status,
            is_edit=session.is_edit,
            load_error=session.load_error,
            saved_orders=session.buffer.lines(),
        )
        ctx = session.ctx
        if ctx is None or session.status != SessionStatus.READY:
            return response

        state = session.state
        response.item_kind = ctx.kind
        response.selection = build_customizations(
            state,
            ctx,
            list(state.selected_variants),
            build_drink_entries(state, ctx),
            state.quantity,
        )
        response.required_free_drinks = required_free_drinks(state, ctx.catalog, ctx.kind)
        response.eligible_free_drinks = [d.id for d in eligible_drinks(state, ctx)]
        return response

    # ===================
    # SELECTION
    # ===================

    def dispatch(self, session_id: str, action) -> SelectionState:
        """
        Apply one selection action.

        Raises:
            CatalogNotLoadedError: If the catalog is not loaded
            InvalidActionError: If the action does not fit the catalog
        """
        session = self._require_ready(session_id)
        session.state = apply_action(session.state, action, session.ctx)
        return session.state

    def validate(self, session_id: str, check_free_drinks: bool = True) -> ValidationResult:
        session = self._require_ready(session_id)
        ctx = session.ctx
        return validate(
            session.state,
            ctx.catalog,
            ctx.kind,
            check_free_drinks=check_free_drinks,
            saved_count=len(session.buffer),
        )

    def save_and_add_another(self, session_id: str) -> ValidationResult:
        """
        Park the current selection in the buffer and start a fresh one.

        The current selection must stand on its own, so saved orders do not
        satisfy the variant check here.
        """
        session = self._require_ready(session_id)
        ctx = session.ctx
        result = validate(session.state, ctx.catalog, ctx.kind, check_free_drinks=True, saved_count=0)
        if not result.ok:
            logger.info("save_rejected", session_id=session_id, reason=result.reason.value)
            return result

        lines = compile_selection(session.state, ctx)
        session.buffer.append(lines, session.state)
        session.state = clear_all()
        logger.info("order_saved", session_id=session_id, saved_count=len(session.buffer))
        return result

    def remove_saved_order(self, session_id: str, index: int) -> SavedOrder:
        session = self._require_ready(session_id)
        try:
            order = session.buffer.remove(index)
        except IndexError:
            raise SavedOrderNotFoundError(session_id, index)
        logger.info("saved_order_removed", session_id=session_id, index=index)
        return order

    def preview(self, session_id: str) -> list[CartLineItem]:
        """
        Lines confirm would commit right now, without committing them.

        The current selection is included only when it is valid on its own.
        """
        session = self._require_ready(session_id)
        ctx = session.ctx
        lines = session.buffer.lines()
        if validate(session.state, ctx.catalog, ctx.kind).ok:
            lines.extend(compile_selection(session.state, ctx))
        return lines

    # ===================
    # COMMIT / CLOSE
    # ===================

    def confirm(self, session_id: str) -> ConfirmResponse:
        """
        Commit buffered and current lines to the cart and close the session.

        A validation failure is returned, never raised, and leaves both the
        cart and the session untouched.
        """
        session = self._require_ready(session_id)
        ctx = session.ctx
        result = validate(
            session.state,
            ctx.catalog,
            ctx.kind,
            check_free_drinks=True,
            saved_count=len(session.buffer),
        )
        if not result.ok:
            logger.info("confirm_rejected", session_id=session_id, reason=result.reason.value)
            return ConfirmResponse(ok=False, validation=result)

        lines = session.buffer.lines()
        if not session.state.is_empty:
            lines.extend(compile_selection(session.state, ctx))

        if session.edit_line is not None:
            try:
                self.cart.remove(session.edit_line.line_id)
            except CartLineNotFoundError:
                logger.warning(
                    "edited_line_missing",
                    session_id=session_id,
                    line_id=session.edit_line.line_id,
                )

        for line in lines:
            self.cart.append(line)

        logger.info(
            "configurator_confirmed",
            session_id=session_id,
            item_id=session.item_id,
            lines=len(lines),
            is_edit=session.is_edit,
        )
        self.close(session_id)
        return ConfirmResponse(ok=True, lines=lines)

    def close(self, session_id: str) -> None:
        """
        Close a session: cancel in-flight fetches, discard selection and buffer,
        and drop it from the registry. Closing twice is a no-op.
        """
        if session_id in self._closed:
            return
        session = self.get_session(session_id)
        for task in session.tasks:
            if not task.done():
                task.cancel()
        session.tasks = []
        session.status = SessionStatus.CLOSED
        session.state = clear_all()
        session.buffer.clear()
        session.ctx = None

        del self._sessions[session_id]
        self._closed[session_id] = session.item_id
        while len(self._closed) > self._closed_retention:
            self._closed.popitem(last=False)
        logger.info("configurator_session_closed", session_id=session_id, open_sessions=len(self._sessions))


# Singleton instance
_configurator_service: Optional[ConfiguratorService] = None


def get_configurator_service() -> ConfiguratorService:
    """Get or create the configurator service singleton."""
    global _configurator_service
    if _configurator_service is None:
        _configurator_service = ConfiguratorService()
    return _configurator_service
