"""Rendering items as lines of text for the ``list`` command."""

from string import Formatter
from typing import Optional

from ..api.models import DISPLAY_FIELDS, Item
from ..errors import FormatError

DEFAULT_ITEM_TEMPLATE = "[{item_id:>9}] {title} <{url}>"

# Rendered once to catch bad format specs and conversions before any request
_SAMPLE_ITEM = Item(
    item_id=229279689,
    title="Example",
    url="https://example.com/",
    tags=frozenset({"example"}),
    domain="example.com",
)

_RENDER_ERRORS = (ValueError, IndexError, KeyError, AttributeError, TypeError)


def fields_help() -> str:
    """Comma-separated list of template fields for the help text."""
    return ", ".join("{" + name + "}" for name in DISPLAY_FIELDS)


def _render(template: str, item: Item) -> str:
    try:
        return template.format(**item.display_fields())
    except _RENDER_ERRORS as e:
        raise FormatError(f"Cannot render format '{template}': {e}") from e


def validate_template(template: str) -> None:
    """Check that ``template`` only references known item fields and renders.

    Raises:
        FormatError: If the template is malformed, names an unknown field or
            fails to render a sample item.
    """
    try:
        parsed = list(Formatter().parse(template))
    except ValueError as e:
        raise FormatError(f"Malformed format '{template}': {e}") from e

    for _, field_name, _, _ in parsed:
        if field_name is None:
            continue
        base = field_name.split(".", 1)[0].split("[", 1)[0]
        if base not in DISPLAY_FIELDS:
            raise FormatError(
                f"Unknown field '{{{field_name}}}' in format; available: {fields_help()}"
            )

    _render(template, _SAMPLE_ITEM)


class ItemFormatter:
    """Formats items with a ``str.format`` template."""

    def __init__(self, template: Optional[str] = None):
        """Initialize the formatter.

        Args:
            template: Format string over the item's display fields

        Raises:
            FormatError: If the template references unknown fields or cannot render.
        """
        self.template = template or DEFAULT_ITEM_TEMPLATE
        validate_template(self.template)

    def format(self, item: Item) -> str:
        """Render one item.

        Raises:
            FormatError: If the template does not fit this item, e.g. an index
                past the end of its title.
        """
        return _render(self.template, item)
