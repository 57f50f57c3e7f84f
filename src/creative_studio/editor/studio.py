"""The editor session: one template, one background, an ordered stack of text layers.

All editing methods are synchronous and run on the UI loop. Background
generation and export are coroutines so editing stays live while they run.
"""

from __future__ import annotations

import logging
from typing import Any

from creative_studio.assembly.render import Composition
from creative_studio.background import BackgroundClient
from creative_studio.catalog import Template, TemplateCatalog, catalog as default_catalog
from creative_studio.config import settings
from creative_studio.editor.drag import DragController, PointerEvents
from creative_studio.editor.events import Subscription
from creative_studio.editor.geometry import GeometryEngine, SurfaceObserver
from creative_studio.editor.layers import LayerStore, TextLayer
from creative_studio.editor.selection import SelectionModel
from creative_studio.errors import CreativeStudioError, ExportFailure
from creative_studio.export import ExportCoordinator, ExportResult

logger = logging.getLogger(__name__)

EXPORT_ANCHORS = ("design", "viewport")


class CreativeStudio:
    def __init__(
        self,
        template_id: str | None = None,
        catalog: TemplateCatalog | None = None,
        background_client: BackgroundClient | None = None,
        exporter: ExportCoordinator | None = None,
        pointer_events: PointerEvents | None = None,
        reset_background_on_template_change: bool | None = None,
        export_anchor: str | None = None,
    ) -> None:
        self.catalog = catalog or default_catalog
        self.layers = LayerStore()
        self.selection = SelectionModel(self.layers)
        self.geometry = GeometryEngine(self.catalog.lookup(template_id))
        self.drag = DragController(self.layers, self.geometry, self.selection)
        self.pointer_events = pointer_events or PointerEvents()
        self.drag.attach(self.pointer_events)

        self.background_client = background_client or BackgroundClient()
        self.exporter = exporter or ExportCoordinator()
        if reset_background_on_template_change is None:
            reset_background_on_template_change = settings.reset_background_on_template_change
        self.reset_background_on_template_change = reset_background_on_template_change
        self.export_anchor = export_anchor or settings.export_anchor
        if self.export_anchor not in EXPORT_ANCHORS:
            raise ValueError(f"export_anchor must be one of {EXPORT_ANCHORS}")

        self.background: str | None = None
        self.error: str | None = None
        self.is_generating = False
        self.is_exporting = False
        self._generation_token = 0
        self._surface: Subscription | None = None

    # -- template / frame

    @property
    def template(self) -> Template:
        return self.geometry.template

    def select_template(self, template_id: str) -> Template:
        """Switch format. Layers and selection are always reset."""
        template = self.catalog.lookup(template_id)
        self.layers.clear()
        self.selection.clear()
        self.geometry.set_template(template)
        # Any in-flight generation targeted the previous format.
        self._generation_token += 1
        self.is_generating = False
        if self.reset_background_on_template_change:
            self.background = None
        return template

    def observe_surface(self, observer: SurfaceObserver) -> Subscription:
        if self._surface is not None:
            self._surface.close()
        self._surface = self.geometry.bind(observer)
        return self._surface

    # -- layers

    @property
    def selected_layer(self) -> TextLayer | None:
        return self.selection.active_layer

    def add_text(self, **defaults: Any) -> str:
        layer_id = self.layers.add(defaults or None)
        self.selection.select(layer_id)
        return layer_id

    def update_layer(self, layer_id: str, field: str, value: Any) -> bool:
        return self.layers.update(layer_id, field, value)

    def update_selected(self, field: str, value: Any) -> bool:
        active = self.selection.active_id
        if active is None:
            return False
        return self.layers.update(active, field, value)

    def remove_layer(self, layer_id: str) -> bool:
        removed = self.layers.remove(layer_id)
        self.selection.forget(layer_id)
        return removed

    def bring_forward(self, layer_id: str) -> bool:
        return self.layers.bring_forward(layer_id)

    def send_backward(self, layer_id: str) -> bool:
        return self.layers.send_backward(layer_id)

    def select_layer(self, layer_id: str) -> bool:
        return self.selection.select(layer_id)

    # -- pointer input

    def pointer_down_on_layer(self, layer_id: str, client_x: float, client_y: float) -> bool:
        return self.drag.pointer_down_on_layer(layer_id, client_x, client_y)

    def pointer_down_on_canvas(self) -> None:
        self.drag.pointer_down_on_canvas()

    # -- background

    async def generate_background(self, prompt: str) -> str | None:
        """Request a new background. Returns the installed data URL, or None.

        A response that arrives after the template changed (or after a newer
        request started) is discarded, errors included.
        """
        self._generation_token += 1
        token = self._generation_token
        template = self.template
        self.is_generating = True
        self.error = None
        try:
            image = await self.background_client.generate(prompt, template.design_width, template.design_height)
        except CreativeStudioError as exc:
            if token == self._generation_token:
                self.error = exc.message
            else:
                logger.debug("Dropping stale generation error: %s", exc.message)
            return None
        finally:
            if token == self._generation_token:
                self.is_generating = False

        if token != self._generation_token:
            logger.debug("Dropping stale background for %s", template.id)
            return None
        self.background = image
        return image

    # -- export

    @property
    def can_export(self) -> bool:
        return bool(self.background) or len(self.layers) > 0

    def composition(self, anchor: str | None = None) -> Composition:
        anchor = anchor or self.export_anchor
        if anchor == "viewport":
            frame = self.geometry.frame
            width, height = frame.rendered_width, frame.rendered_height
        elif anchor == "design":
            width, height = self.template.size
        else:
            raise ValueError(f"unknown export anchor: {anchor!r}")
        return Composition(
            template=self.template,
            frame_width=width,
            frame_height=height,
            layers=self.layers.layers,
            background=self.background,
        )

    async def export(self) -> ExportResult | None:
        self.is_exporting = True
        self.error = None
        try:
            return await self.exporter.export(self.composition())
        except ExportFailure as exc:
            self.error = exc.message
            return None
        finally:
            self.is_exporting = False

    def close(self) -> None:
        self.drag.close()
        if self._surface is not None:
            self._surface.close()
            self._surface = None
