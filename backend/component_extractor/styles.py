"""Style Capturer: computed CSS values for one DOM node."""

from loguru import logger

from component_extractor import scripts


# Typography
TYPOGRAPHY_PROPERTIES = [
    "color", "font-family", "font-size", "font-weight", "font-style",
    "line-height", "letter-spacing", "text-align", "text-decoration",
    "text-transform", "white-space",
]

# Box model
BOX_PROPERTIES = [
    "display", "box-sizing", "width", "height", "min-width", "min-height",
    "max-width", "max-height",
    "margin-top", "margin-right", "margin-bottom", "margin-left",
    "padding-top", "padding-right", "padding-bottom", "padding-left",
    "overflow",
]

# Border / shadow
BORDER_PROPERTIES = [
    "border-top", "border-right", "border-bottom", "border-left",
    "border-radius", "box-shadow", "outline",
]

# Flex / grid layout
LAYOUT_PROPERTIES = [
    "flex-direction", "flex-wrap", "justify-content", "align-items",
    "align-content", "gap", "flex-grow", "flex-shrink", "flex-basis",
    "grid-template-columns", "grid-template-rows", "grid-auto-flow",
]

# Position
POSITION_PROPERTIES = ["position", "top", "right", "bottom", "left", "z-index"]

# Visual effects
VISUAL_PROPERTIES = [
    "background-color", "background-image", "background-size",
    "background-position", "background-repeat", "opacity", "transform",
    "filter", "visibility", "cursor",
]

CAPTURED_PROPERTIES = (
    TYPOGRAPHY_PROPERTIES
    + BOX_PROPERTIES
    + BORDER_PROPERTIES
    + LAYOUT_PROPERTIES
    + POSITION_PROPERTIES
    + VISUAL_PROPERTIES
)


async def capture_styles(session, handle) -> dict[str, str]:
    """
    Read every property in CAPTURED_PROPERTIES as computed by the browser.
    Properties the engine can't report are simply absent.
    """
    try:
        raw = await session.evaluate(scripts.CAPTURE_STYLES, handle, CAPTURED_PROPERTIES)
    except Exception as e:
        logger.debug(f"[styles] Style capture failed: {e}")
        return {}
    return {prop: str(value) for prop, value in (raw or {}).items() if value not in (None, "")}
