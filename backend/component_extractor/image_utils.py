"""Component screenshot compression for inline data URIs."""
from PIL import Image
import io
import base64


def optimize_screenshot(screenshot_bytes: bytes, max_width: int = 800, quality: int = 70) -> bytes:
    """
    Resize and compress an element screenshot.
    Element captures come back as PNG; a wide hero at 1920px PNG is easily
    1-2MB, the same capture as an 800px JPEG is tens of KB.
    """
    img = Image.open(io.BytesIO(screenshot_bytes))

    # Resize if wider than max_width
    w, h = img.size
    if w > max_width:
        ratio = max_width / w
        img = img.resize((max_width, max(1, int(h * ratio))), Image.LANCZOS)

    # Convert RGBA to RGB (JPEG doesn't support alpha)
    if img.mode == 'RGBA':
        bg = Image.new('RGB', img.size, (255, 255, 255))
        bg.paste(img, mask=img.split()[3])
        img = bg
    elif img.mode != 'RGB':
        img = img.convert('RGB')

    buf = io.BytesIO()
    img.save(buf, format='JPEG', quality=quality, optimize=True)
    return buf.getvalue()


def screenshot_to_data_uri(screenshot_bytes: bytes, compress: bool = True,
                           max_width: int = 800, quality: int = 70) -> str:
    """Encode screenshot bytes as a data URI for inline display."""
    if compress:
        optimized = optimize_screenshot(screenshot_bytes, max_width=max_width, quality=quality)
        return "data:image/jpeg;base64," + base64.b64encode(optimized).decode()
    return "data:image/png;base64," + base64.b64encode(screenshot_bytes).decode()
