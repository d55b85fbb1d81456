"""Proto generator for compiled services.

Renders a Jinja2 template to produce proto3 text from a CompiledService.
Messages and enums are laid out in Python and handed to the template as
ready-made blocks; the template owns the file structure around them.

Supports custom templates via the template_dir parameter:
    generator = ProtoGenerator(service, template_dir="./my_templates")

Template lookup order:
1. User's template directory (if provided)
2. Package default templates
"""

import logging
from pathlib import Path
from typing import Optional

from jinja2 import ChoiceLoader, Environment, FileSystemLoader, PackageLoader, select_autoescape

from .hooks import HookRunner
from .ir import CompiledService, ProtoEnum, ProtoField, ProtoMessage
from .naming import pascal_case, snake_case, upper_case

logger = logging.getLogger(__name__)

DEFAULT_FILENAME = "service.proto"
TEMPLATE_NAME = "service.proto.j2"
INDENT = "  "


def proto_comment(text: str | None, indent: str = "") -> str:
    """Turn a description into `//` comment lines (without a trailing newline)."""
    if not text:
        return ""
    lines = text.strip().splitlines()
    return "\n".join(f"{indent}// {line.rstrip()}".rstrip() for line in lines)


def _comment_lines(text: str | None, indent: str) -> list[str]:
    comment = proto_comment(text, indent)
    return comment.split("\n") if comment else []


class ProtoGenerator:
    """Generates proto3 text from a compiled service.

    Available templates to override:
        - service.proto.j2: file header, imports, options and service block

    Example:
        generator = ProtoGenerator(result.service, hooks=runner)
        text = generator.render()
    """

    def __init__(
        self,
        service: CompiledService,
        template_dir: Optional[str] = None,
        hooks: Optional[HookRunner] = None,
    ):
        """Initialize the generator.

        Args:
            service: The compiled service to render
            template_dir: Optional directory with custom Jinja2 templates.
                          Templates here override the built-in templates.
            hooks: Optional pre/post render hooks
        """
        self.service = service
        self.template_dir = template_dir
        self.hooks = hooks or HookRunner()

        # Build template loader - custom templates take precedence
        loaders = []
        if template_dir:
            template_path = Path(template_dir)
            if template_path.is_dir():
                loaders.append(FileSystemLoader(str(template_path)))
        loaders.append(PackageLoader("gql_protogen", "templates"))

        self.env = Environment(
            loader=ChoiceLoader(loaders),
            autoescape=select_autoescape(),
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=True,
        )
        # Register custom filters
        self.env.filters["snake_case"] = snake_case
        self.env.filters["pascal_case"] = pascal_case
        self.env.filters["upper_case"] = upper_case
        self.env.filters["proto_comment"] = proto_comment

    def render(self, filename: str = DEFAULT_FILENAME) -> str:
        """Render the service to proto3 text."""
        service = self.hooks.run_pre_hooks(self.service)
        blocks = [self._render_message(m) for m in service.messages]
        blocks += [self._render_enum(e) for e in service.enums]

        template = self.env.get_template(TEMPLATE_NAME)
        content = template.render(service=service, blocks=["\n".join(b) for b in blocks])
        logger.debug("Rendered %s with %d blocks", filename, len(blocks))
        return self.hooks.run_post_hooks(filename, content)

    def _render_message(self, message: ProtoMessage, depth: int = 0) -> list[str]:
        """Render a message and its nested messages, nested ones first."""
        pad = INDENT * depth
        lines = _comment_lines(message.comment, pad)
        lines.append(f"{pad}message {message.name} {{")
        for nested in message.nested:
            lines.extend(self._render_message(nested, depth + 1))
        for field in message.fields:
            lines.extend(self._render_field(field, pad + INDENT))
        for oneof in message.oneofs:
            lines.append(f"{pad}{INDENT}oneof {oneof.name} {{")
            for field in oneof.fields:
                lines.extend(self._render_field(field, pad + INDENT * 2))
            lines.append(f"{pad}{INDENT}}}")
        lines.append(f"{pad}}}")
        return lines

    @staticmethod
    def _render_field(field: ProtoField, pad: str) -> list[str]:
        lines = _comment_lines(field.comment, pad)
        label = "repeated " if field.repeated else ""
        lines.append(f"{pad}{label}{field.type_name} {field.name} = {field.number};")
        return lines

    @staticmethod
    def _render_enum(enum: ProtoEnum) -> list[str]:
        lines = _comment_lines(enum.comment, "")
        lines.append(f"enum {enum.name} {{")
        for value in enum.values:
            lines.extend(_comment_lines(value.comment, INDENT))
            lines.append(f"{INDENT}{value.name} = {value.number};")
        lines.append("}")
        return lines
