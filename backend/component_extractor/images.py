"""Background/Image Inspector."""

import re
from dataclasses import dataclass
from urllib.parse import urljoin

from component_extractor import scripts
from component_extractor.models import ImageInfo


_URL_TOKEN = re.compile(r"""url\(\s*(['"]?)(.*?)\1\s*\)""", re.IGNORECASE)


@dataclass
class BackgroundInfo:
    present: bool
    url: str | None = None


def parse_background(value: str | None, base_url: str = "") -> BackgroundInfo:
    """
    Interpret a computed background-image value.
    A gradient (or any non-url image) still counts as present, with no url.
    """
    if not value or value.strip() == "none":
        return BackgroundInfo(present=False)
    match = _URL_TOKEN.search(value)
    if not match or not match.group(2):
        return BackgroundInfo(present=True)
    return BackgroundInfo(present=True, url=absolute_url(match.group(2), base_url))


def background_urls(value: str, base_url: str = "") -> list[str]:
    """Every url(...) in a (possibly layered) background-image value."""
    return [absolute_url(m.group(2), base_url) for m in _URL_TOKEN.finditer(value or "") if m.group(2)]


def absolute_url(src: str, base_url: str) -> str:
    src = src.strip()
    if not src or src.startswith("data:") or not base_url:
        return src
    return urljoin(base_url, src)


def build_image_inventory(raw: dict, base_url: str = "") -> list[ImageInfo]:
    """Merge foreground <img> data and background-image urls into one list."""
    images = []
    for img in raw.get("foreground", []):
        src = absolute_url(img.get("src") or "", base_url)
        if not src:
            continue
        images.append(ImageInfo(
            src=src,
            alt=img.get("alt") or "",
            width=int(img.get("width") or 0),
            height=int(img.get("height") or 0),
            kind="img",
        ))
    for bg in raw.get("backgrounds", []):
        for url in background_urls(bg.get("value", ""), base_url):
            images.append(ImageInfo(
                src=url,
                width=int(bg.get("width") or 0),
                height=int(bg.get("height") or 0),
                kind="background",
            ))
    return images


async def has_background(session, handle, base_url: str = "") -> BackgroundInfo:
    value = await session.evaluate(scripts.CAPTURE_STYLES, handle, ["background-image"])
    return parse_background((value or {}).get("background-image"), base_url)


async def collect_images(session, handle, base_url: str = "") -> list[ImageInfo]:
    raw = await session.evaluate(scripts.COLLECT_IMAGES, handle)
    return build_image_inventory(raw or {}, base_url)
