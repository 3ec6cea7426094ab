"""Choice between local fragment generation and remote acquisition.

The caller always names the mode; nothing here falls back from one
strategy to the other.
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional

from .consts import CSS_ERROR, TEMPLATE_STATUS
from .enums import RemoteState, RenderMode
from .errors import ConfigException, UnknownInstanceError
from .remote import RemoteRenderCoordinator, RemoteRenderState, document_shell
from .renderer import ElementRenderer, OptionsLike
from .schema import ElementInstance
from .templating import render_template

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Presentation:
    mode: RenderMode
    html: str
    state: Optional[RemoteState] = None
    error: str = ""
    auth_required: bool = False


def status_fragment(remote: RemoteRenderState, error_class: str = CSS_ERROR) -> str:
    """Markup shown while a remote render is pending or after it failed."""
    if remote.state == RemoteState.ERROR:
        status = "auth" if remote.auth_required else "error"
    else:
        status = "loading"
    return str(render_template(TEMPLATE_STATUS, status=status, reason=remote.error, css_class=error_class))


class RenderModeCoordinator:
    def __init__(
        self,
        renderer: Optional[ElementRenderer] = None,
        remote: Optional[RemoteRenderCoordinator] = None,
        stylesheet_url: Optional[str] = None,
    ):
        self.renderer = renderer or ElementRenderer()
        self.remote = remote
        self.stylesheet_url = stylesheet_url

    def render_local(
        self, instance: ElementInstance, value: Any = None, options: OptionsLike = None
    ) -> str:
        return str(self.renderer.render_instance(instance, value, options))

    def _remote_state(self, instance: ElementInstance, refresh: bool) -> RemoteRenderState:
        if self.remote is None:
            raise ConfigException("Remote rendering requested but no render service is configured")

        if refresh:
            return self.remote.activate(instance.id)
        try:
            return self.remote.state(instance.id)
        except UnknownInstanceError:
            return self.remote.activate(instance.id)

    def present(
        self,
        instance: ElementInstance,
        mode: RenderMode,
        value: Any = None,
        options: OptionsLike = None,
        refresh: bool = False,
    ) -> Presentation:
        """Produce what should be shown for ``instance`` under ``mode``.

        Local mode returns the rendered fragment. Remote mode activates the
        instance on first use (or when ``refresh`` is set) and returns the
        document shell when ready, otherwise a loading or error notice.
        """
        mode = RenderMode(mode)
        if mode == RenderMode.LOCAL:
            return Presentation(mode=mode, html=self.render_local(instance, value, options))

        remote = self._remote_state(instance, refresh)
        if remote.state == RemoteState.READY:
            html = document_shell(remote.html, self.stylesheet_url)
        else:
            html = status_fragment(remote)

        return Presentation(
            mode=mode,
            html=html,
            state=remote.state,
            error=remote.error,
            auth_required=remote.auth_required,
        )

    def release(self, instance: ElementInstance) -> None:
        if self.remote is not None:
            self.remote.release(instance.id)
