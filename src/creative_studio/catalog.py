from __future__ import annotations

from dataclasses import asdict, dataclass
from types import MappingProxyType
from typing import Any


@dataclass(frozen=True)
class Template:
    id: str
    label: str
    design_width: int
    design_height: int
    description: str

    @property
    def size(self) -> tuple[int, int]:
        return (self.design_width, self.design_height)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


TEMPLATES: tuple[Template, ...] = (
    Template(
        id="facebook-feed",
        label="Facebook Feed (1200×628)",
        design_width=1200,
        design_height=628,
        description="Landscape format for ads in the Facebook feed.",
    ),
    Template(
        id="facebook-story",
        label="Facebook / Instagram Story (1080×1920)",
        design_width=1080,
        design_height=1920,
        description="Vertical format for Stories and Reels.",
    ),
    Template(
        id="google-display-square",
        label="Google Display Square (1200×1200)",
        design_width=1200,
        design_height=1200,
        description="Square format popular on Google Display and Discovery.",
    ),
    Template(
        id="google-display-banner",
        label="Google Display Banner (1600×628)",
        design_width=1600,
        design_height=628,
        description="Panoramic banner for display campaigns.",
    ),
)

FONT_OPTIONS: tuple[str, ...] = (
    "Inter",
    "Poppins",
    "Montserrat",
    "Playfair Display",
    "Roboto",
    "Oswald",
)

# Style bundle applied to every new text layer.
DEFAULT_TEXT_STYLE: MappingProxyType = MappingProxyType(
    {
        "text": "New creative text",
        "width": 0.6,
        "font_size": 64.0,
        "color": "#ffffff",
        "font_family": "Poppins",
        "font_weight": "semibold",
        "font_style": "normal",
        "text_align": "center",
        "uppercase": False,
        "background_color": "#000000",
        "background_opacity": 0.0,
        "padding": 24.0,
        "letter_spacing": 0.0,
        "line_height": 1.1,
        "shadow": 0.4,
    }
)


class TemplateCatalog:
    """Read-only registry of ad formats. The first template is the default."""

    def __init__(self, templates: tuple[Template, ...] = TEMPLATES) -> None:
        if not templates:
            raise ValueError("catalog needs at least one template")
        self._templates = templates
        self._by_id = {t.id: t for t in templates}

    @property
    def default(self) -> Template:
        return self._templates[0]

    def all(self) -> tuple[Template, ...]:
        return self._templates

    def get(self, template_id: str | None) -> Template | None:
        return self._by_id.get(template_id or "")

    def lookup(self, template_id: str | None) -> Template:
        return self.get(template_id) or self.default

    def __iter__(self):
        return iter(self._templates)

    def __len__(self) -> int:
        return len(self._templates)


catalog = TemplateCatalog()
