"""
Fragment Serializer.

Turns a live DOM subtree into a self-contained HTML string that renders the
same outside its page: every node carries its computed style inline, escaping
positioning is neutralized, the root is pinned to its captured size, image
urls are absolute, and matching same-origin stylesheet rules trail the markup.

The browser only hands back a style-annotated tree (scripts.SNAPSHOT_TREE);
the HTML is emitted here.
"""

import html as html_lib
import re
from dataclasses import dataclass

from loguru import logger

from component_extractor import scripts
from component_extractor.images import absolute_url
from component_extractor.styles import CAPTURED_PROPERTIES


VOID_TAGS = {
    "area", "base", "br", "col", "embed", "hr", "img", "input", "link",
    "meta", "source", "track", "wbr",
}
RAW_TEXT_TAGS = {"script", "style", "noscript", "template"}
ESCAPING_POSITIONS = {"fixed", "absolute"}
OFFSET_PROPERTIES = ("top", "right", "bottom", "left")
MAX_MATCHING_RULES = 200

_ATTR_NAME = re.compile(r"^[^\s\"'>/=]+$")


@dataclass
class Fragment:
    html: str
    skipped_nodes: int = 0


# ============================================================
# Style composition
# ============================================================

def fragment_styles(styles: dict, is_root: bool = False,
                    width: float | None = None, height: float | None = None) -> dict:
    """Computed styles adjusted so the node stays put when re-embedded."""
    out = dict(styles)

    if out.get("position") in ESCAPING_POSITIONS:
        out["position"] = "relative"
        for prop in OFFSET_PROPERTIES:
            out[prop] = "0px"

    if is_root:
        # Bounding box is border-box, so size must be measured the same way
        out["box-sizing"] = "border-box"
        if width is not None:
            out["width"] = f"{round(width)}px"
        if height is not None:
            out["height"] = f"{round(height)}px"
        out["flex-grow"] = "0"
        out["flex-shrink"] = "0"

    return out


def merge_style_attr(existing: str, styles: dict) -> str:
    """Existing inline declarations first, computed ones appended after."""
    declarations = "; ".join(f"{prop}: {value}" for prop, value in styles.items())
    existing = (existing or "").strip().rstrip(";").strip()
    if existing and declarations:
        return f"{existing}; {declarations}"
    return existing or declarations


def parse_style_attr(style: str) -> dict:
    """Declarations of an inline style attribute; later ones win."""
    out = {}
    for decl in (style or "").split(";"):
        if ":" not in decl:
            continue
        prop, _, value = decl.partition(":")
        prop = prop.strip().lower()
        if prop:
            out[prop] = value.strip()
    return out


# ============================================================
# Emission
# ============================================================

def _format_attrs(attrs: dict) -> str:
    parts = []
    for name, value in attrs.items():
        if not _ATTR_NAME.match(name):
            continue
        parts.append(f' {name}="{html_lib.escape(str(value), quote=True)}"')
    return "".join(parts)


def _emit(node: dict, out: list, ctx: dict, is_root: bool = False):
    if "text" in node:
        out.append(html_lib.escape(node["text"] or "", quote=False))
        return
    if "comment" in node:
        out.append(f"<!--{node['comment']}-->")
        return
    if "error" in node:
        ctx["skipped"] += 1
        logger.debug(f"[serializer] Skipping node: {node['error']}")
        return

    try:
        tag = node["tag"]
        attrs = dict(node.get("attrs") or {})
        styles = node.get("styles") or {}

        if tag in RAW_TEXT_TAGS:
            out.append(f"<{tag}{_format_attrs(attrs)}>{node.get('raw') or ''}</{tag}>")
            return

        adjusted = fragment_styles(
            styles,
            is_root=is_root,
            width=ctx["width"] if is_root else None,
            height=ctx["height"] if is_root else None,
        )
        style_attr = merge_style_attr(attrs.pop("style", ""), adjusted)
        if style_attr:
            attrs["style"] = style_attr

        if tag == "img":
            src = attrs.get("src")
            if src:
                attrs["src"] = absolute_url(src, ctx["base_url"])
            natural = node.get("natural") or {}
            if natural.get("width"):
                attrs["data-natural-width"] = natural["width"]
            if natural.get("height"):
                attrs["data-natural-height"] = natural["height"]

        opening = f"<{tag}{_format_attrs(attrs)}>"
    except (KeyError, TypeError, AttributeError) as e:
        ctx["skipped"] += 1
        logger.debug(f"[serializer] Malformed node skipped: {e}")
        return

    out.append(opening)
    if tag in VOID_TAGS:
        return
    if "raw" in node:
        out.append(node["raw"] or "")
    else:
        for child in node.get("children") or []:
            _emit(child, out, ctx)
    out.append(f"</{tag}>")


def serialize_tree(tree: dict | None, width: float | None = None, height: float | None = None,
                   base_url: str = "", rules: list[str] | None = None) -> Fragment:
    """Emit fragment HTML for a snapshot tree."""
    if not tree:
        return Fragment(html="")

    ctx = {"width": width, "height": height, "base_url": base_url, "skipped": 0}
    out = []
    _emit(tree, out, ctx, is_root=True)

    if rules:
        out.append('<style data-source="extracted">' + "\n".join(rules) + "</style>")
    return Fragment(html="".join(out), skipped_nodes=ctx["skipped"])


async def serialize(session, handle, rect: dict, base_url: str = "",
                    max_nodes: int = 600, collect_rules: bool = True) -> Fragment:
    """Snapshot the subtree behind `handle` and emit it as a fragment."""
    tree = await session.evaluate(
        scripts.SNAPSHOT_TREE, handle, {"props": CAPTURED_PROPERTIES, "maxNodes": max_nodes},
    )

    rules = []
    if collect_rules:
        try:
            rules = await session.evaluate(scripts.MATCHING_RULES, handle, MAX_MATCHING_RULES) or []
        except Exception as e:
            logger.debug(f"[serializer] Stylesheet rule collection failed: {e}")

    return serialize_tree(tree, width=rect.get("width"), height=rect.get("height"),
                          base_url=base_url, rules=rules)


# ============================================================
# Clean transform (reuse-oriented copy)
# ============================================================

_SCRIPT_BLOCK = re.compile(r"<script\b[^>]*>.*?</script\s*>", re.IGNORECASE | re.DOTALL)
_STYLE_BLOCK = re.compile(r"<style\b[^>]*>.*?</style\s*>", re.IGNORECASE | re.DOTALL)
_COMMENT = re.compile(r"<!--.*?-->", re.DOTALL)
_OPEN_TAG = re.compile(r"<([a-zA-Z][^\s/>]*)([^<>]*?)(/?)>")
_ATTRIBUTE = re.compile(r"""([^\s"'>/=]+)(?:\s*=\s*("[^"]*"|'[^']*'|[^\s"'>]+))?""")
_EVENT_ATTR = re.compile(r"on[a-z]+", re.IGNORECASE)
_TRACKING_ATTR = re.compile(
    r"data-[\w.:-]+|ping|jsaction|jslog|analytics[\w-]*|track[\w-]*|ga-[\w-]+|gtm-[\w-]+",
    re.IGNORECASE,
)

MAX_CLASS_LENGTH = 100
MAX_CLASS_TOKENS = 10


def _truncate_classes(value: str) -> str:
    quote = value[0] if value[:1] in ("'", '"') else ""
    inner = value[1:-1] if quote else value
    if len(inner) <= MAX_CLASS_LENGTH:
        return value
    kept = " ".join(inner.split()[:MAX_CLASS_TOKENS])
    return f'"{kept}"'


def _clean_tag(match: re.Match) -> str:
    name, body, self_closing = match.groups()
    kept = []
    for attr in _ATTRIBUTE.finditer(body):
        attr_name, value = attr.group(1), attr.group(2)
        if _EVENT_ATTR.fullmatch(attr_name) or _TRACKING_ATTR.fullmatch(attr_name):
            continue
        if value is None:
            kept.append(f" {attr_name}")
            continue
        if attr_name.lower() == "class":
            value = _truncate_classes(value)
        kept.append(f" {attr_name}={value}")
    return f"<{name}{''.join(kept)}{self_closing}>"


def clean_html(html: str) -> str:
    """
    Strip scripts, style blocks, comments, event handlers, data-* and
    tracking attributes, and cap oversized class lists.
    """
    if not html:
        return ""
    html = _SCRIPT_BLOCK.sub("", html)
    html = _STYLE_BLOCK.sub("", html)
    html = _COMMENT.sub("", html)
    return _OPEN_TAG.sub(_clean_tag, html)
