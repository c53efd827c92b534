# renderers/wheel_renderer.py
from __future__ import annotations

import logging
import math
from io import BytesIO
from typing import Optional, Sequence

from PIL import Image, ImageDraw, ImageFont

from domain.models import Choice, ImageRef
from services.spin_geometry import angle_schedule, segment_arc


log = logging.getLogger(__name__)

PALETTE = [
    (231, 76, 60), (41, 128, 185), (247, 202, 24), (34, 34, 34),
    (245, 245, 220), (230, 126, 34), (52, 152, 219), (192, 57, 43),
]

BACKGROUND = (245, 245, 220, 255)


def _text_color(rgb: tuple[int, int, int]) -> tuple[int, int, int]:
    r, g, b = rgb
    return (34, 34, 34) if (0.299 * r + 0.587 * g + 0.114 * b) > 150 else (255, 255, 255)


class WheelRenderer:
    """
    Pillow renderer for the wheel.

    Segment i is drawn over [i*a, (i+1)*a) + rotation in Pillow's angle space
    (clockwise from 3 o'clock); the pointer is fixed at 3 o'clock.
    Choice images are decoded here and nowhere else.
    """

    def __init__(self, *, size: int = 512, fps: int = 20, hold_frames: int = 8) -> None:
        self.size = int(size)
        self.fps = int(fps)
        self.hold_frames = int(hold_frames)

        try:
            self.font = ImageFont.truetype("DejaVuSans-Bold.ttf", max(12, self.size // 26))
        except OSError:
            self.font = ImageFont.load_default()

    # -------------------------
    # Public
    # -------------------------

    def render_frame(
        self,
        segments: Sequence[Choice],
        angle: float,
        *,
        highlight: Optional[int] = None,
    ) -> bytes:
        img = self._draw(segments, angle, highlight=highlight, thumbs=self._thumbnails(segments))
        buf = BytesIO()
        img.save(buf, format="PNG", optimize=False)
        return buf.getvalue()

    def render_spin(
        self,
        segments: Sequence[Choice],
        start_angle: float,
        end_angle: float,
        *,
        duration_s: float = 2.0,
        power: float = 2.0,
    ) -> bytes:
        """Animated GIF easing from start_angle to end_angle, holding on the last frame."""
        frame_count = max(2, int(self.fps * duration_s))
        thumbs = self._thumbnails(segments)

        frames: list[Image.Image] = []
        for angle in angle_schedule(start_angle, end_angle, frame_count, power):
            frames.append(self._draw(segments, angle, highlight=None, thumbs=thumbs).convert("P", palette=Image.ADAPTIVE))

        frame_ms = max(20, int(1000 / max(1, self.fps)))
        durations = [frame_ms] * (len(frames) - 1) + [frame_ms * self.hold_frames]

        buf = BytesIO()
        frames[0].save(
            buf,
            format="GIF",
            save_all=True,
            append_images=frames[1:],
            duration=durations,
            # no loop extension: plays once and rests on the result
            disposal=2,
        )
        return buf.getvalue()

    # -------------------------
    # Drawing
    # -------------------------

    def _thumbnails(self, segments: Sequence[Choice]) -> list[Optional[Image.Image]]:
        target = max(16, int(self.size * 0.1))
        return [self._decode(c.image, target) if c.image is not None else None for c in segments]

    def _decode(self, ref: ImageRef, target: int) -> Optional[Image.Image]:
        try:
            with Image.open(BytesIO(ref.data)) as raw:
                thumb = raw.convert("RGBA")
        except (OSError, ValueError):
            log.debug("Skipping undecodable %s image", ref.mime)
            return None
        thumb.thumbnail((target, target))

        mask = Image.new("L", thumb.size, 0)
        ImageDraw.Draw(mask).ellipse([0, 0, thumb.size[0] - 1, thumb.size[1] - 1], fill=255)
        thumb.putalpha(mask)
        return thumb

    def _draw(
        self,
        segments: Sequence[Choice],
        angle: float,
        *,
        highlight: Optional[int],
        thumbs: Sequence[Optional[Image.Image]],
    ) -> Image.Image:
        size = self.size
        cx = cy = size // 2
        radius = size // 2 - 24

        img = Image.new("RGBA", (size, size), BACKGROUND)
        draw = ImageDraw.Draw(img)
        box = [cx - radius, cy - radius, cx + radius, cy + radius]

        if not segments:
            draw.ellipse(box, fill=(238, 238, 238), outline=(34, 34, 34), width=3)
        else:
            for i, c in enumerate(segments):
                arc_start, arc_end = segment_arc(i, len(segments))
                start = arc_start + angle
                end = arc_end + angle
                color = PALETTE[i % len(PALETTE)]
                outline_w = 6 if highlight == i else 2
                outline = (255, 215, 0) if highlight == i else (255, 255, 255)
                if len(segments) == 1:
                    draw.ellipse(box, fill=color, outline=outline, width=outline_w)
                else:
                    draw.pieslice(box, start, end, fill=color, outline=outline, width=outline_w)

                mid = math.radians((start + end) / 2)
                lx = cx + math.cos(mid) * radius * 0.62
                ly = cy + math.sin(mid) * radius * 0.62

                thumb = thumbs[i] if i < len(thumbs) else None
                if thumb is not None:
                    img.alpha_composite(thumb, (int(lx - thumb.size[0] / 2), int(ly - thumb.size[1] / 2)))
                    lx = cx + math.cos(mid) * radius * 0.85
                    ly = cy + math.sin(mid) * radius * 0.85

                # empty choices stay on the wheel, shown in parentheses
                text = c.label if c.quantity > 0 else f"({c.label})"
                fill = _text_color(color)
                bbox = draw.textbbox((0, 0), text, font=self.font, stroke_width=1)
                tw, th = bbox[2] - bbox[0], bbox[3] - bbox[1]
                draw.text(
                    (lx - tw / 2, ly - th / 2),
                    text,
                    font=self.font,
                    fill=fill,
                    stroke_width=1,
                    stroke_fill=(0, 0, 0) if fill[0] > 128 else (255, 255, 255),
                )

        # hub
        draw.ellipse([cx - 18, cy - 18, cx + 18, cy + 18], fill=(250, 250, 250), outline=(34, 34, 34), width=3)

        # pointer at 3 o'clock, apex pointing into the wheel
        tip_x = cx + radius - 10
        draw.polygon(
            [(tip_x, cy), (size - 4, cy - 16), (size - 4, cy + 16)],
            fill=(34, 34, 34),
            outline=(255, 255, 255),
        )
        return img
