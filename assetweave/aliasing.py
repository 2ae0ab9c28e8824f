"""
Alias shims - load-time redirect fragments for aliased assets.

When an alias id appears in the assembly order, the configured renderer
turns its record into a fragment that tells the module loader to resolve
each removed module to its replacement. The loader-side API is up to the
runtime; the default template calls ``<registry>.alias([...])``.
"""

from typing import Any, Dict, Optional, Protocol

from jinja2 import Environment, StrictUndefined

from .manifest import AliasRecord

DEFAULT_TEMPLATE = (
    "/* alias {{ asset_id }} */\n"
    "{{ registry }}.alias({{ modules | tojson }});"
)


class AliasRenderer(Protocol):
    """Produces the fragment for an aliased asset, or ``None`` for no content."""

    def __call__(self, asset_id: str, record: AliasRecord) -> Optional[str]:
        ...


class JinjaAliasRenderer:
    """
    Render alias fragments from a Jinja2 template.

    Template variables: ``asset_id``, ``modules`` (list of ``{"from", "to"}``)
    and ``registry``.
    """

    def __init__(
        self,
        template: str = DEFAULT_TEMPLATE,
        *,
        registry: str = "__weave__",
        globals: Optional[Dict[str, Any]] = None,
    ):
        self.env = Environment(
            autoescape=False,
            undefined=StrictUndefined,
            keep_trailing_newline=False,
        )
        if globals:
            self.env.globals.update(globals)
        self.template = self.env.from_string(template)
        self.registry = registry

    def __call__(self, asset_id: str, record: AliasRecord) -> Optional[str]:
        if not record.modules:
            return None
        return self.template.render(
            asset_id=asset_id,
            modules=[module.to_dict() for module in record.modules],
            registry=self.registry,
        )
