"""Compile the assistant's markdown reply into something the chat widget renders.

Uses the CommonMark preset with raw HTML disabled. Tables are not part of
that preset, so table markup the model emits despite its instructions comes
through as plain paragraph text; it is not rewritten here.
"""

from markdown_it import MarkdownIt
from markdown_it.tree import SyntaxTreeNode

from storefront.models.request import RenderableDocument, RenderNode

_md = MarkdownIt("commonmark", {"html": False})


def _convert(node: SyntaxTreeNode) -> list[RenderNode]:
    children = [converted for child in node.children for converted in _convert(child)]

    # "inline" is a parser container with no meaning for the widget
    if node.type == "inline":
        return children
    # the parser leaves empty text tokens around inline markup
    if node.type == "text" and not node.content:
        return []

    return [
        RenderNode(
            type=node.type,
            tag=node.tag or None,
            content=node.content or None,
            attrs={key: value for key, value in node.attrs.items()},
            children=children,
        )
    ]


def format_response(raw_text: str) -> RenderableDocument:
    """Compile ``raw_text`` into HTML plus a JSON-friendly node tree."""
    tokens = _md.parse(raw_text or "")
    html = _md.renderer.render(tokens, _md.options, {})
    root = SyntaxTreeNode(tokens)
    nodes = [converted for child in root.children for converted in _convert(child)]
    return RenderableDocument(html=html, nodes=nodes)
