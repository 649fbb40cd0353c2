# compositor.py
"""Paints a DrawPlan into a Pillow image."""
import math
from typing import Dict, Optional, Tuple

from PIL import Image, ImageChops, ImageDraw, ImageOps

from flipbook.config import PERSPECTIVE, THEMES
from flipbook.page_cache import EntryState
from flipbook.presentation import Curl, DrawPlan, Hinge, Layer, PageImage, Shade

TRANSPARENT = (0, 0, 0, 0)


def _hex_to_rgb(value: str) -> Tuple[int, int, int]:
    value = value.lstrip("#")
    return tuple(int(value[i:i + 2], 16) for i in (0, 2, 4))


def perspective_coeffs(angle: float, hinge_x: float, center_y: float,
                       perspective: float = PERSPECTIVE) -> Tuple[float, ...]:
    """
    Inverse mapping (output -> source pixel) for a rotation about the vertical
    line x = hinge_x, followed by a perspective divide w = 1 + perspective * z.
    """
    c, s = math.cos(angle), math.sin(angle)
    g0 = -(perspective * s) / c
    a0 = 1 - g0 * hinge_x
    return (
        (hinge_x * g0 + 1 / c) / a0, 0.0, (hinge_x * a0 - hinge_x / c) / a0,
        (g0 * center_y) / a0, 1 / a0, center_y * (a0 - 1) / a0,
        g0 / a0, 0.0,
    )


class Compositor:
    """
    Renders draw plans for the canvas. Scaled page bitmaps are reused between
    frames; overlays are drawn fresh every time.
    """
    def __init__(self, theme: Optional[Dict[str, str]] = None):
        self.theme = theme or THEMES["dark"]
        self._scaled: Dict[Tuple[int, int, int], Tuple[object, Image.Image]] = {}
        self._frame_keys = set()

    def clear(self):
        self._scaled.clear()

    def compose(self, plan: DrawPlan) -> Image.Image:
        width, height = max(1, int(plan.viewport[0])), max(1, int(plan.viewport[1]))
        frame = Image.new("RGBA", (width, height), _hex_to_rgb(self.theme["canvas_bg"]) + (255,))
        self._frame_keys = set()
        for layer in plan.layers:
            frame = Image.alpha_composite(frame, self._draw_layer(layer, (width, height)))
        # keep only what this frame drew
        for key in [k for k in self._scaled if k not in self._frame_keys]:
            del self._scaled[key]
        return frame.convert("RGB")

    def _draw_layer(self, layer: Layer, size: Tuple[int, int]) -> Image.Image:
        canvas = Image.new("RGBA", size, TRANSPARENT)
        self._paint_page(canvas, layer.image)
        if layer.shade and layer.shade.opacity > 0:
            canvas = self._apply_shade(canvas, layer.shade)
        if layer.curl and layer.curl.opacity > 0 and layer.curl.width >= 1:
            canvas = self._apply_curl(canvas, layer.curl)
        if not layer.angle:
            return canvas
        if layer.hinge is Hinge.RIGHT:
            # mirror so the hinge sits at x = 0, which keeps the mapping finite
            mirrored = self._rotate(ImageOps.mirror(canvas), -layer.angle, 0.0)
            return ImageOps.mirror(mirrored)
        hinge_x = 0.0 if layer.hinge is Hinge.LEFT else size[0] / 2
        return self._rotate(canvas, layer.angle, hinge_x)

    @staticmethod
    def _rotate(canvas: Image.Image, angle: float, hinge_x: float) -> Image.Image:
        coeffs = perspective_coeffs(angle, hinge_x, canvas.size[1] / 2)
        return canvas.transform(canvas.size, Image.Transform.PERSPECTIVE, coeffs,
                                resample=Image.Resampling.BILINEAR, fillcolor=TRANSPARENT)

    def _paint_page(self, canvas: Image.Image, image: PageImage):
        r = image.rect
        box = (int(round(r.x)), int(round(r.y)))
        w, h = max(1, int(round(r.width))), max(1, int(round(r.height)))
        if image.is_placeholder:
            self._paint_placeholder(canvas, image, box, (w, h))
            return
        canvas.paste(self._scaled_page(image, (w, h)), box)

    def _scaled_page(self, image: PageImage, size: Tuple[int, int]) -> Image.Image:
        key = (image.page_index, size[0], size[1])
        self._frame_keys.add(key)
        cached = self._scaled.get(key)
        if cached is not None and cached[0] is image.page:
            return cached[1]
        scaled = image.page.to_image().resize(size, Image.Resampling.LANCZOS).convert("RGBA")
        self._scaled[key] = (image.page, scaled)
        return scaled

    def _paint_placeholder(self, canvas: Image.Image, image: PageImage,
                           box: Tuple[int, int], size: Tuple[int, int]):
        draw = ImageDraw.Draw(canvas)
        x0, y0 = box
        draw.rectangle((x0, y0, x0 + size[0] - 1, y0 + size[1] - 1),
                       fill=_hex_to_rgb(self.theme["placeholder_bg"]) + (255,))
        if image.status is EntryState.FAILED:
            text, color = f"Render failed (page {image.page_index + 1})", self.theme["error_fg"]
        else:
            text, color = "Loading...", self.theme["placeholder_fg"]
        left, top, right, bottom = draw.textbbox((0, 0), text)
        draw.text((x0 + (size[0] - (right - left)) / 2, y0 + (size[1] - (bottom - top)) / 2),
                  text, fill=_hex_to_rgb(color) + (255,))

    def _apply_shade(self, canvas: Image.Image, shade: Shade) -> Image.Image:
        width, height = canvas.size
        extent = max(1.0, width * shade.extent)
        peak = 255 * shade.opacity
        row = [int(peak * max(0.0, 1 - x / extent)) for x in range(width)]
        if shade.side is Hinge.RIGHT:
            row.reverse()
        mask = Image.new("L", (width, 1))
        mask.putdata(row)
        mask = mask.resize((width, height))
        return self._darken(canvas, mask)

    def _apply_curl(self, canvas: Image.Image, curl: Curl) -> Image.Image:
        width, height = canvas.size
        band_w = min(width, int(round(curl.width)))
        peak = curl.opacity
        # linear_gradient runs black at the top to white at the bottom
        band = Image.linear_gradient("L").resize((band_w, height))
        band = band.point(lambda v: int((255 - v) * peak))
        mask = Image.new("L", (width, height), 0)
        mask.paste(band, (width - band_w, 0) if curl.side is Hinge.RIGHT else (0, 0))
        return self._darken(canvas, mask)

    @staticmethod
    def _darken(canvas: Image.Image, mask: Image.Image) -> Image.Image:
        # only shade where the page itself is drawn
        mask = ImageChops.multiply(mask, canvas.getchannel("A"))
        overlay = Image.new("RGBA", canvas.size, (0, 0, 0, 255))
        overlay.putalpha(mask)
        return Image.alpha_composite(canvas, overlay)
