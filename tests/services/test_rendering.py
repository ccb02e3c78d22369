"""합성 렌더링 / Export / 미리보기 테스트"""

from io import BytesIO
from pathlib import Path
from unittest.mock import patch

import numpy as np
import pytest
from PIL import Image

from src.schemas.editor import FontWeight, TextLayer
from src.services.geometry import font_size_to_pixels, percent_to_pixels
from src.services.rendering import (
    RenderingError,
    _get_font,
    build_preview,
    export_png,
    font_file_candidates,
    render_composite,
)
from tests.conftest import decode_png, make_test_image


def _layer(**overrides: object) -> TextLayer:
    data: dict[str, object] = {
        "id": "layer_00000000",
        "text": "HHHH",
        "x": 10.0,
        "y": 10.0,
        "font_size": 200,
        "color": "#ff0000",
    }
    data.update(overrides)
    return TextLayer.model_validate(data)


def _white_png(width: int = 400, height: int = 200) -> bytes:
    return make_test_image(width, height, fmt="PNG").getvalue()


def _count_color(raster: np.ndarray, color: tuple[int, int, int]) -> int:
    return int(np.all(raster == color, axis=-1).sum())


class TestRenderComposite:
    def test_no_layers_keeps_image(self) -> None:
        result = render_composite(_white_png(), [])

        assert result.size == (400, 200)
        assert result.getpixel((10, 10)) == (255, 255, 255, 255)

    def test_layer_color_appears_near_anchor(self) -> None:
        layer = _layer()
        result = np.array(render_composite(_white_png(), [layer]).convert("RGB"))

        # 앵커 (40, 20) 부터 글자 높이(40px) 범위 안에 레이어 색이 칠해짐
        anchor_x, anchor_y = 40, 20
        crop = result[anchor_y : anchor_y + 40, anchor_x : anchor_x + 160]
        assert _count_color(crop, (255, 0, 0)) > 0

    def test_nothing_drawn_above_or_left_of_anchor(self) -> None:
        result = np.array(render_composite(_white_png(), [_layer()]).convert("RGB"))

        assert _count_color(result[:15, :], (255, 255, 255)) == 15 * 400
        assert _count_color(result[:, :35], (255, 255, 255)) == 200 * 35

    def test_later_layers_draw_on_top(self) -> None:
        layers = [_layer(id="layer_a", color="#ff0000"), _layer(id="layer_b", color="#0000ff")]

        result = np.array(render_composite(_white_png(), layers).convert("RGB"))

        assert _count_color(result, (0, 0, 255)) > 0
        assert _count_color(result, (255, 0, 0)) == 0

    def test_opacity_does_not_leak_to_next_layer(self) -> None:
        layers = [
            _layer(id="layer_a", color="#ff0000", opacity=0.2, x=0, y=0),
            _layer(id="layer_b", color="#0000ff", opacity=1.0, x=0, y=50),
        ]

        result = np.array(render_composite(_white_png(), layers).convert("RGB"))

        top, bottom = result[:100], result[100:]
        assert _count_color(top, (255, 0, 0)) == 0
        assert _count_color(bottom, (0, 0, 255)) > 0

    def test_translucent_layer_blends_with_base(self) -> None:
        layer = _layer(color="#ff0000", opacity=0.2)

        result = np.array(render_composite(_white_png(), [layer]).convert("RGB"))

        # 흰 배경 + 빨강 20% → (255, 204, 204)
        assert _count_color(result, (255, 204, 204)) > 0

    def test_zero_opacity_and_empty_text_skipped(self) -> None:
        layers = [_layer(id="layer_a", opacity=0.0), _layer(id="layer_b", text="")]

        result = np.array(render_composite(_white_png(), layers).convert("RGB"))

        assert _count_color(result, (255, 255, 255)) == 400 * 200

    def test_zero_font_size_skipped(self) -> None:
        result = np.array(render_composite(_white_png(), [_layer(font_size=0)]).convert("RGB"))

        assert _count_color(result, (255, 255, 255)) == 400 * 200

    def test_font_pixel_size_matches_preview(self) -> None:
        layer = _layer(font_size=47)

        with patch("src.services.rendering._get_font", wraps=_get_font) as mock_get_font:
            render_composite(_white_png(400, 200), [layer])

        expected = build_preview([layer], 400, 200)[0].font_size_px
        assert mock_get_font.call_args.args[2] == expected == font_size_to_pixels(47, 200)

    def test_font_size_scales_with_image_height(self) -> None:
        small = np.array(render_composite(_white_png(400, 200), [_layer()]).convert("RGB"))
        large = np.array(render_composite(_white_png(800, 400), [_layer()]).convert("RGB"))

        # 같은 레이어라도 높이가 2배면 글자 면적도 커짐
        assert _count_color(large, (255, 0, 0)) > _count_color(small, (255, 0, 0))

    def test_invalid_image_raises(self) -> None:
        with pytest.raises(RenderingError, match="이미지 디코딩 실패"):
            render_composite(b"not an image", [_layer()])


class TestExportPng:
    def test_returns_png_with_natural_size(self) -> None:
        content = export_png(_white_png(321, 123), [_layer()])

        assert content.startswith(b"\x89PNG")
        with Image.open(BytesIO(content)) as img:
            assert img.size == (321, 123)

    def test_lossless_base_pixels(self) -> None:
        base = np.zeros((50, 60, 3), dtype=np.uint8)
        base[:, :, 0] = np.arange(60, dtype=np.uint8)
        buf = BytesIO()
        Image.fromarray(base).save(buf, format="PNG")

        exported = decode_png(export_png(buf.getvalue(), []))

        assert np.array_equal(exported, base)


class TestBuildPreview:
    def test_uses_same_formulas_as_export(self) -> None:
        layer = _layer(x=25.0, y=40.0, font_size=48)

        preview = build_preview([layer], display_width=800, display_height=600)

        assert preview[0].id == layer.id
        assert preview[0].left_px == percent_to_pixels(25.0, 800) == 200
        assert preview[0].top_px == percent_to_pixels(40.0, 600) == 240
        assert preview[0].font_size_px == font_size_to_pixels(48, 600)
        assert preview[0].font_size_px == pytest.approx(28.8)

    def test_preview_scales_with_display_size(self) -> None:
        layer = _layer(font_size=100)

        half = build_preview([layer], 500, 500)[0]
        full = build_preview([layer], 1000, 1000)[0]

        assert full.font_size_px == 2 * half.font_size_px
        assert full.left_px == 2 * half.left_px

    def test_preserves_layer_order(self) -> None:
        layers = [_layer(id="layer_a"), _layer(id="layer_b")]

        assert [p.id for p in build_preview(layers, 100, 100)] == ["layer_a", "layer_b"]


class TestFontFileCandidates:
    def test_weight_specific_first(self) -> None:
        candidates = font_file_candidates(Path("fonts"), "Noto Sans TC", FontWeight.BOLD)

        assert candidates[0] == Path("fonts/NotoSansTC-Bold.ttf")

    def test_falls_back_to_regular(self) -> None:
        candidates = font_file_candidates(Path("fonts"), "Inter", FontWeight.BLACK)

        assert Path("fonts/Inter-Regular.ttf") in candidates
        assert candidates.index(Path("fonts/Inter-Black.ttf")) < candidates.index(
            Path("fonts/Inter-Regular.ttf")
        )
