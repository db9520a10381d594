"""
AutoFounder PPT Builder
=======================
The only module that knows the .pptx format. Each deck slide becomes one pptx slide:
heading, bullet block, optional picture. Only a slide of kind "cover" gets the centred
title layout; any other slide, first or not, gets the content layout. Backgrounds
come from the deck's theme assets when they exist on disk, otherwise a solid fill that contrasts with the slide's tone.
Exports are written to a temp file and renamed into place, so a failed export never
leaves a partial .pptx behind.
"""

import asyncio
import io
import logging
import os
import re
import tempfile
from pathlib import Path
from typing import Callable, Dict, List, Optional

from pptx import Presentation  # type: ignore[reportMissingImports]
from pptx.dml.color import RGBColor  # type: ignore[reportMissingImports]
from pptx.enum.shapes import MSO_SHAPE  # type: ignore[reportMissingImports]
from pptx.enum.text import MSO_ANCHOR, PP_ALIGN  # type: ignore[reportMissingImports]
from pptx.util import Inches, Pt  # type: ignore[reportMissingImports]

from autofounder.errors import ExportError, ImageFetchError
from autofounder.images import fetch_image_bytes
from autofounder.models import Deck, Slide

logger = logging.getLogger(__name__)

FONT_TITLE = "Calibri"
FONT_BODY = "Arial"
TITLE_PT = 48
SUBTITLE_PT = 28
HEADING_PT = 36
BODY_PT = 20
WATERMARK_PT = 36

SLIDE_FORMATS: Dict[str, Dict[str, float]] = {
    "w16x9": {"width": 10.0, "height": 5.625},
    "w4x3": {"width": 10.0, "height": 7.5},
}
DEFAULT_FORMAT = "w16x9"

# Solid fills per theme when no background asset is available: one for light text, one for dark.
THEME_COLORS: Dict[str, Dict[str, str]] = {
    "investor": {"for_light": "#1c2340", "for_dark": "#f5f0e8", "accent": "#b89850"},
    "minimal": {"for_light": "#1a1a1a", "for_dark": "#f5f5f5", "accent": "#3d5a6c"},
    "bold": {"for_light": "#2a0f3d", "for_dark": "#fff4e6", "accent": "#e4572e"},
    "clinical": {"for_light": "#0d3b4f", "for_dark": "#f2f8fb", "accent": "#2a9d8f"},
    "eco": {"for_light": "#1e2a1e", "for_dark": "#eef4ea", "accent": "#6b8e6b"},
    "infra": {"for_light": "#0a0f1e", "for_dark": "#e8ecf4", "accent": "#00a3c4"},
}
DEFAULT_COLORS = THEME_COLORS["minimal"]

WHITE = RGBColor(0xFF, 0xFF, 0xFF)
BLACK = RGBColor(0x00, 0x00, 0x00)
WATERMARK_GREY = RGBColor(0xBB, 0xBB, 0xBB)


def _hex_to_rgb_color(hex_str: str) -> RGBColor:
    hex_str = hex_str.lstrip("#")
    return RGBColor(int(hex_str[0:2], 16), int(hex_str[2:4], 16), int(hex_str[4:6], 16))


def export_filename(deck: Deck) -> str:
    readable = re.sub(r"[^A-Za-z0-9]", "_", deck.slug or deck.title or "") or "deck"
    return f"{readable}_{deck.id}.pptx"


def resolve_slide_format(deck: Deck, slide_format: Optional[str] = None) -> str:
    fmt = slide_format or deck.meta.get("slideFormat") or DEFAULT_FORMAT
    if fmt not in SLIDE_FORMATS:
        logger.warning("Unknown slide format %r, using %s", fmt, DEFAULT_FORMAT)
        return DEFAULT_FORMAT
    return fmt


def _asset_path(assets_dir: Optional[Path], asset: Optional[str]) -> Optional[Path]:
    if not assets_dir or not asset:
        return None
    path = Path(assets_dir) / asset.lstrip("/")
    return path if path.is_file() else None


def _fill_background(slide, color: RGBColor) -> None:
    slide.background.fill.solid()
    slide.background.fill.fore_color.rgb = color


def _add_accent_bar(slide, accent: RGBColor, width: float, height: float) -> None:
    bar = slide.shapes.add_shape(MSO_SHAPE.RECTANGLE, Inches(0), Inches(height - 0.06), Inches(width), Inches(0.06))
    bar.fill.solid()
    bar.fill.fore_color.rgb = accent
    bar.line.fill.background()


def _add_watermark(slide, text: str, width: float, height: float, cols: int = 3, rows: int = 3) -> None:
    """Tiled, rotated, light grey text. Added before content so content draws on top."""
    cell_w, cell_h = width / cols, height / rows
    for r in range(rows):
        for c in range(cols):
            box = slide.shapes.add_textbox(
                Inches(c * cell_w + cell_w * 0.1), Inches(r * cell_h + cell_h * 0.15),
                Inches(cell_w * 0.8), Inches(cell_h * 0.7),
            )
            box.rotation = -30
            p = box.text_frame.paragraphs[0]
            p.text = text
            p.alignment = PP_ALIGN.CENTER
            p.font.size = Pt(WATERMARK_PT)
            p.font.bold = True
            p.font.color.rgb = WATERMARK_GREY


def _add_picture_fitted(slide, data: bytes, left: float, top: float, box_w: float, box_h: float) -> None:
    pic = slide.shapes.add_picture(io.BytesIO(data), Inches(left), Inches(top), width=Inches(box_w))
    max_h = Inches(box_h)
    if pic.height > max_h:
        ratio = max_h / pic.height
        pic.height = max_h
        pic.width = int(pic.width * ratio)


def _add_cover(slide, deck_slide: Slide, text_color: RGBColor, width: float, height: float) -> None:
    title_box = slide.shapes.add_textbox(Inches(0.5), Inches(height * 0.3), Inches(width - 1.0), Inches(1.4))
    tf = title_box.text_frame
    tf.word_wrap = True
    tf.vertical_anchor = MSO_ANCHOR.MIDDLE
    p = tf.paragraphs[0]
    p.text = deck_slide.heading[:80]
    p.alignment = PP_ALIGN.CENTER
    p.font.name = FONT_TITLE
    p.font.size, p.font.bold = Pt(TITLE_PT), True
    p.font.color.rgb = text_color

    if not deck_slide.bullets:
        return
    sub_box = slide.shapes.add_textbox(Inches(1.0), Inches(height * 0.3 + 1.5), Inches(width - 2.0), Inches(height * 0.35))
    sub_box.text_frame.word_wrap = True
    for i, line in enumerate(deck_slide.bullets):
        p_sub = sub_box.text_frame.paragraphs[0] if i == 0 else sub_box.text_frame.add_paragraph()
        p_sub.text = line[:160]
        p_sub.alignment = PP_ALIGN.CENTER
        p_sub.font.name = FONT_BODY
        p_sub.font.size = Pt(SUBTITLE_PT if i == 0 else BODY_PT)
        p_sub.font.color.rgb = text_color


def _add_content(slide, deck_slide: Slide, text_color: RGBColor, text_width: float, height: float) -> None:
    heading_box = slide.shapes.add_textbox(Inches(0.75), Inches(0.4), Inches(text_width), Inches(0.9))
    heading_box.text_frame.word_wrap = True
    p = heading_box.text_frame.paragraphs[0]
    p.text = deck_slide.heading[:80]
    p.font.name = FONT_TITLE
    p.font.size, p.font.bold = Pt(HEADING_PT), True
    p.font.color.rgb = text_color

    if not deck_slide.bullets:
        return
    body = slide.shapes.add_textbox(Inches(0.75), Inches(1.5), Inches(text_width), Inches(height - 2.1))
    tf = body.text_frame
    tf.word_wrap = True
    for i, bullet in enumerate(deck_slide.bullets):
        para = tf.paragraphs[0] if i == 0 else tf.add_paragraph()
        para.text = f"• {bullet}"
        para.font.name = FONT_BODY
        para.font.size = Pt(BODY_PT)
        para.font.color.rgb = text_color
        para.space_after = Pt(8)


def _speaker_notes(deck: Deck) -> List[str]:
    script = deck.meta.get("script")
    if not isinstance(script, list):
        return []
    return [str(entry.get("notes", "")) if isinstance(entry, dict) else str(entry) for entry in script]


def build_pptx(
    deck: Deck,
    output_path: Path,
    slide_format: Optional[str] = None,
    images: Optional[Dict[int, bytes]] = None,
    assets_dir: Optional[Path] = None,
    watermark: Optional[str] = None,
) -> Path:
    """Render the deck into output_path (synchronous; run in a thread from async code)."""
    images = images or {}
    fmt = SLIDE_FORMATS[resolve_slide_format(deck, slide_format)]
    width, height = fmt["width"], fmt["height"]

    prs = Presentation()
    prs.slide_width = Inches(width)
    prs.slide_height = Inches(height)
    blank = prs.slide_layouts[min(6, len(prs.slide_layouts) - 1)]

    assets = deck.theme_assets
    colors = THEME_COLORS.get(str(deck.meta.get("theme") or ""), DEFAULT_COLORS)
    accent = _hex_to_rgb_color(colors["accent"])
    notes = _speaker_notes(deck)

    for idx, deck_slide in enumerate(deck.slides):
        slide = prs.slides.add_slide(blank)
        tone = deck.tone_for(deck_slide)
        text_color = WHITE if tone == "light" else BLACK
        _fill_background(slide, _hex_to_rgb_color(colors["for_light"] if tone == "light" else colors["for_dark"]))

        picture = images.get(idx)
        is_cover = deck_slide.kind == "cover"
        # A slide picture replaces the themed background image for that slide
        if picture is None and assets is not None:
            bg = _asset_path(assets_dir, assets.cover_bg if is_cover else assets.content_bg)
            if bg is not None:
                slide.shapes.add_picture(str(bg), 0, 0, width=prs.slide_width, height=prs.slide_height)

        if watermark:
            _add_watermark(slide, watermark, width, height)

        if is_cover:
            _add_cover(slide, deck_slide, text_color, width, height)
        else:
            text_width = 4.5 if picture is not None else width - 1.5
            _add_content(slide, deck_slide, text_color, text_width, height)
        if picture is not None:
            _add_picture_fitted(slide, picture, width - 4.0, height * 0.25, 3.5, height * 0.55)

        _add_accent_bar(slide, accent, width, height)
        if idx < len(notes) and notes[idx]:
            slide.notes_slide.notes_text_frame.text = notes[idx]

    output_path = Path(output_path)
    prs.save(str(output_path))
    return output_path


async def export_deck(
    deck: Deck,
    output_dir: Path,
    slide_format: Optional[str] = None,
    assets_dir: Optional[Path] = None,
    watermark: Optional[str] = None,
    fetch_image: Callable[[str], bytes] = fetch_image_bytes,
) -> Path:
    """Fetch slide images, render, then atomically move the file into output_dir."""
    images: Dict[int, bytes] = {}
    for idx, slide in enumerate(deck.slides):
        if not slide.image_url:
            continue
        try:
            images[idx] = await asyncio.to_thread(fetch_image, slide.image_url)
        except ImageFetchError:
            raise
        except Exception as e:
            raise ImageFetchError(f"Could not fetch image for slide {idx + 1}: {e}") from e

    output_dir = Path(output_dir)
    try:
        output_dir.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=str(output_dir), prefix=".export-", suffix=".pptx.part")
        os.close(fd)
    except OSError as e:
        raise ExportError(f"Cannot write to {output_dir}: {e}") from e

    tmp_path = Path(tmp_name)
    final_path = output_dir / export_filename(deck)
    try:
        await asyncio.to_thread(
            build_pptx, deck, tmp_path,
            slide_format=slide_format, images=images, assets_dir=assets_dir, watermark=watermark,
        )
        os.replace(tmp_path, final_path)
    except Exception as e:
        tmp_path.unlink(missing_ok=True)
        logger.warning("Export of deck %s failed: %s", deck.id, e)
        raise ExportError(f"Export failed: {e}") from e

    logger.info("Exported deck %s to %s", deck.id, final_path)
    return final_path
