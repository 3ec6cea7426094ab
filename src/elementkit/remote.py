"""Acquisition of pre-rendered markup from the authoritative render service.

Each instance id owns an independent slot holding its state machine::

    idle -> checking-auth -> loading -> ready | error
    idle -> checking-auth -> error ("authentication required")

Activating an id again starts a new generation; responses that belong to an
older generation, or to a released slot, are dropped.
"""

from __future__ import annotations

import itertools
import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Callable, NoReturn, Optional, Protocol
from urllib.parse import quote, urlparse

import requests
from markupsafe import Markup

from .consts import (
    DOCUMENT_TITLE,
    MSG_AUTH_REQUIRED,
    MSG_REQUEST_TIMEOUT,
    RENDER_ENDPOINT,
    RENDER_MAX_WORKERS,
    TEMPLATE_DOCUMENT,
    TIMEOUT_RENDER_REQUEST,
)
from .enums import RemoteState
from .errors import (
    AcquisitionError,
    AcquisitionTimeout,
    AuthenticationRequired,
    ConfigException,
    UnknownInstanceError,
)
from .templating import render_template
from .utils import sanitize

logger = logging.getLogger(__name__)

CredentialProvider = Callable[[], Optional[str]]


class RenderService(Protocol):
    def fetch(self, instance_id: Any, token: str, timeout: float) -> str: ...


def _handle_request_exception(exception: requests.RequestException, operation: str) -> NoReturn:
    """Translate a requests failure into the acquisition error taxonomy.

    Raises:
        AcquisitionTimeout: For connect/read timeouts
        AuthenticationRequired: For HTTP 401
        AcquisitionError: For every other failure
    """
    if isinstance(exception, requests.Timeout):
        logger.warning(f"Timed out trying to {operation}")
        raise AcquisitionTimeout(MSG_REQUEST_TIMEOUT) from exception

    status_code = getattr(exception.response, "status_code", "N/A")
    if status_code == 401:
        logger.warning(f"Render service rejected credentials while trying to {operation}")
        raise AuthenticationRequired("Unauthorized") from exception

    logger.error(f"Failed to {operation}: status_code={status_code}")
    raise AcquisitionError(f"Failed to {operation} (status: {status_code})") from exception


class HttpRenderService:
    """Client for the server-side element renderer."""

    def __init__(self, base_url: str, timeout: float = TIMEOUT_RENDER_REQUEST):
        """Initialize render service client.

        Args:
            base_url: Scheme and host of the API, e.g. ``https://forms.example.com``
            timeout: Default request timeout in seconds

        Raises:
            ConfigException: If the URL has no scheme or host
        """
        parsed_url = urlparse(str(base_url))
        if not parsed_url.scheme or not parsed_url.netloc:
            raise ConfigException("Invalid render service URL: missing scheme or netloc")

        self.base_url = str(base_url).rstrip("/")
        self.timeout = timeout

        logger.debug(f"HttpRenderService initialized: base_url={self.base_url}, timeout={self.timeout}")

    def endpoint(self, instance_id: Any) -> str:
        return self.base_url + RENDER_ENDPOINT.format(instance_id=quote(str(instance_id), safe=""))

    def fetch(self, instance_id: Any, token: str, timeout: Optional[float] = None) -> str:
        """Fetch pre-rendered markup for one element instance.

        Args:
            instance_id: Id of the stored element
            token: Bearer token for the service
            timeout: Request timeout in seconds, the client default when omitted

        Returns:
            Markup fragment as returned by the service

        Raises:
            AuthenticationRequired: If no token is given or the service answers 401
            AcquisitionTimeout: If the request times out
            AcquisitionError: For any other failure
        """
        if not token:
            raise AuthenticationRequired("No authentication token available")

        url = self.endpoint(instance_id)
        logger.debug(f"Fetching rendered element {instance_id} with token {sanitize(token)}")

        try:
            response = requests.get(
                url,
                headers={
                    "Authorization": f"Bearer {token}",
                    "Accept": "text/html, application/json",
                },
                timeout=timeout or self.timeout,
            )
            response.raise_for_status()
        except requests.RequestException as e:
            _handle_request_exception(e, f"render element {instance_id}")

        content_type = response.headers.get("content-type", "")
        if "application/json" not in content_type:
            return response.text

        try:
            data = response.json()
        except ValueError as e:
            raise AcquisitionError(f"Invalid JSON from render service for element {instance_id}") from e

        if isinstance(data, str):
            return data
        if isinstance(data, dict):
            for key in ("html", "Html"):
                if isinstance(data.get(key), str):
                    return data[key]
        logger.warning(f"Unexpected JSON response format from render service: {type(data).__name__}")
        return response.text


@dataclass(frozen=True)
class RemoteRenderState:
    """Snapshot of one instance's acquisition state."""

    instance_id: Any
    state: RemoteState
    generation: int = 0
    html: str = ""
    error: str = ""
    auth_required: bool = False

    @property
    def settled(self) -> bool:
        return self.state in (RemoteState.READY, RemoteState.ERROR)


class _Slot:
    def __init__(self, instance_id: Any):
        self.instance_id = instance_id
        self.changed = threading.Condition(threading.Lock())
        self.generation = 0
        self.state = RemoteState.IDLE
        self.html = ""
        self.error = ""
        self.auth_required = False
        self.released = False
        self.holders = 0
        self.future: Optional[Future] = None
        self.timer: Optional[threading.Timer] = None

    def snapshot(self) -> RemoteRenderState:
        return RemoteRenderState(
            instance_id=self.instance_id,
            state=self.state,
            generation=self.generation,
            html=self.html,
            error=self.error,
            auth_required=self.auth_required,
        )

    def transition(
        self, state: RemoteState, html: str = "", error: str = "", auth_required: bool = False
    ) -> None:
        logger.debug(f"Element {self.instance_id} [gen {self.generation}]: {self.state.value} -> {state.value}")
        self.state = state
        self.html = html
        self.error = error
        self.auth_required = auth_required
        self.changed.notify_all()

    def abandon(self) -> None:
        if self.timer is not None:
            self.timer.cancel()
            self.timer = None
        if self.future is not None:
            self.future.cancel()
            self.future = None


class RemoteRenderCoordinator:
    """Runs the remote acquisition state machine for any number of instance ids.

    Each id has its own lock; the only shared lock guards the id-to-slot map
    and is never held across a request. Requests run on a thread pool and
    every request is bounded by ``timeout``.

    Lock order is slot, then map.
    """

    def __init__(
        self,
        service: RenderService,
        credentials: Optional[CredentialProvider] = None,
        timeout: float = TIMEOUT_RENDER_REQUEST,
        max_workers: int = RENDER_MAX_WORKERS,
        executor: Optional[ThreadPoolExecutor] = None,
    ):
        self._service = service
        self._credentials = credentials
        self._timeout = timeout
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="elementkit-render"
        )
        self._slots: dict[Any, _Slot] = {}
        self._slots_lock = threading.Lock()
        self._generations = itertools.count(1)

    def __enter__(self) -> "RemoteRenderCoordinator":
        return self

    def __exit__(self, *exc_info) -> None:
        self.shutdown()

    def _slot(self, instance_id: Any) -> _Slot:
        with self._slots_lock:
            slot = self._slots.get(instance_id)
        if slot is None:
            raise UnknownInstanceError(f"Element {instance_id} was never activated")
        return slot

    def _credential(self) -> Optional[str]:
        if self._credentials is None:
            return None
        try:
            return self._credentials()
        except Exception as e:
            logger.warning(f"Credential query failed: {e}")
            return None

    def activate(self, instance_id: Any) -> RemoteRenderState:
        """Start (or restart) acquisition for ``instance_id``.

        Any request still running for the id is superseded. Never raises for
        remote failures; they show up as the error state.

        Returns:
            Snapshot taken right after the request was issued (or refused)
        """
        while True:
            with self._slots_lock:
                slot = self._slots.setdefault(instance_id, _Slot(instance_id))

            with slot.changed:
                with self._slots_lock:
                    current = self._slots.get(instance_id) is slot
                if not current:
                    # released between lookup and lock; start over on a fresh slot
                    continue
                slot.abandon()
                slot.generation = next(self._generations)
                generation = slot.generation
                slot.transition(RemoteState.IDLE)
                slot.transition(RemoteState.CHECKING_AUTH)
                break

        token = self._credential()

        with slot.changed:
            if slot.generation != generation:
                return slot.snapshot()
            if not token:
                logger.info(f"Element {instance_id}: {MSG_AUTH_REQUIRED}")
                slot.transition(RemoteState.ERROR, error=MSG_AUTH_REQUIRED, auth_required=True)
                return slot.snapshot()
            slot.transition(RemoteState.LOADING)

        future = self._executor.submit(self._service.fetch, instance_id, token, self._timeout)
        timer = threading.Timer(self._timeout, self._expire, args=(slot, generation))
        timer.daemon = True

        with slot.changed:
            if slot.generation == generation and slot.state == RemoteState.LOADING:
                slot.future = future
                slot.timer = timer
                timer.start()
            snapshot = slot.snapshot()

        future.add_done_callback(lambda f: self._settle(slot, generation, f))
        return snapshot

    def _settle(self, slot: _Slot, generation: int, future: Future) -> None:
        if future.cancelled():
            return

        html, error, auth_required = "", "", False
        try:
            html = future.result()
        except AuthenticationRequired as e:
            error, auth_required = str(e) or MSG_AUTH_REQUIRED, True
        except AcquisitionError as e:
            error = str(e)
        except Exception as e:
            logger.exception(f"Render service failed for element {slot.instance_id}")
            error = str(e) or type(e).__name__

        with slot.changed:
            if slot.released or slot.generation != generation or slot.state != RemoteState.LOADING:
                logger.debug(f"Discarding stale response for element {slot.instance_id} [gen {generation}]")
                return
            if slot.timer is not None:
                slot.timer.cancel()
            slot.timer = None
            slot.future = None
            if error:
                slot.transition(RemoteState.ERROR, error=error, auth_required=auth_required)
            else:
                slot.transition(RemoteState.READY, html=html or "")

    def _expire(self, slot: _Slot, generation: int) -> None:
        with slot.changed:
            if slot.released or slot.generation != generation or slot.state != RemoteState.LOADING:
                return
            logger.warning(f"Render request for element {slot.instance_id} exceeded {self._timeout}s")
            slot.timer = None
            if slot.future is not None:
                slot.future.cancel()
            slot.future = None
            slot.transition(RemoteState.ERROR, error=MSG_REQUEST_TIMEOUT)

    def state(self, instance_id: Any) -> RemoteRenderState:
        """Current snapshot for an activated id.

        Raises:
            UnknownInstanceError: If the id was never activated or has been released
        """
        slot = self._slot(instance_id)
        with slot.changed:
            return slot.snapshot()

    def wait(self, instance_id: Any, timeout: Optional[float] = None) -> RemoteRenderState:
        """Block until the current generation settles or ``timeout`` elapses."""
        slot = self._slot(instance_id)
        with slot.changed:
            slot.changed.wait_for(
                lambda: slot.released or slot.state in (RemoteState.READY, RemoteState.ERROR),
                timeout=timeout,
            )
            return slot.snapshot()

    def fetch(self, instance_id: Any) -> RemoteRenderState:
        """Activate and wait for the outcome."""
        self.activate(instance_id)
        return self.wait(instance_id)

    def hold(self, instance_id: Any) -> None:
        """Register one more consumer of ``instance_id``.

        A held slot survives ``release`` calls until every holder has
        released it.
        """
        with self._slots_lock:
            slot = self._slots.setdefault(instance_id, _Slot(instance_id))
            slot.holders += 1

    def release(self, instance_id: Any) -> None:
        """Drop interest in an id; a response still in flight becomes a no-op.

        When other holders remain, only this holder's claim is dropped and the
        slot keeps running.
        """
        with self._slots_lock:
            slot = self._slots.get(instance_id)
            if slot is None:
                return
            if slot.holders > 1:
                slot.holders -= 1
                return
            del self._slots[instance_id]
        self._discard(slot)

    def _discard(self, slot: _Slot) -> None:
        with slot.changed:
            slot.abandon()
            slot.released = True
            slot.transition(RemoteState.IDLE)
        logger.debug(f"Released element {slot.instance_id}")

    def document(self, instance_id: Any, stylesheet_url: Optional[str] = None) -> Optional[str]:
        """Standalone HTML document for a ready instance, None otherwise."""
        current = self.state(instance_id)
        if current.state != RemoteState.READY:
            return None
        return document_shell(current.html, stylesheet_url)

    def active_ids(self) -> list[Any]:
        with self._slots_lock:
            return list(self._slots)

    def shutdown(self) -> None:
        with self._slots_lock:
            slots = list(self._slots.values())
            self._slots.clear()
        for slot in slots:
            self._discard(slot)
        if self._owns_executor:
            self._executor.shutdown(wait=False, cancel_futures=True)


class RemoteView:
    """Tracks the single instance id a consumer is currently showing.

    Showing another id releases this view's hold on the previous one, so a
    late response for it can never reach this view. Other views showing the
    same id keep it.
    """

    def __init__(self, coordinator: RemoteRenderCoordinator):
        self._coordinator = coordinator
        self.instance_id: Any = None

    def show(self, instance_id: Any) -> RemoteRenderState:
        if self.instance_id != instance_id:
            self._coordinator.hold(instance_id)
            if self.instance_id is not None:
                self._coordinator.release(self.instance_id)
        self.instance_id = instance_id
        return self._coordinator.activate(instance_id)

    @property
    def state(self) -> RemoteRenderState:
        if self.instance_id is None:
            return RemoteRenderState(instance_id=None, state=RemoteState.IDLE)
        return self._coordinator.state(self.instance_id)

    def close(self) -> None:
        if self.instance_id is not None:
            self._coordinator.release(self.instance_id)
        self.instance_id = None


def document_shell(html: str, stylesheet_url: Optional[str] = None) -> str:
    """Wrap server markup in a minimal standalone HTML document."""
    return str(
        render_template(
            TEMPLATE_DOCUMENT,
            title=DOCUMENT_TITLE,
            stylesheet_url=stylesheet_url,
            body=Markup(html),
        )
    )
