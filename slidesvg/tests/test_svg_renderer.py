"""Tests for the SVG renderer."""

import asyncio
import base64

import httpx
import pytest

from slidesvg.errors import MalformedOutputError
from slidesvg.renderer import fill_renderer, svg_renderer
from slidesvg.renderer.markup import parse_markup
from slidesvg.renderer.svg_renderer import (
    SVG_MIME_TYPE,
    RendererOptions,
    SVGRenderer,
    doc_to_svg,
    render_to_svg_string,
)
from slidesvg.renderer.viewbox import ViewBox
from slidesvg.tests.conftest import SVG, XLINK_HREF, AsyncFakeMeasurer, FakeMeasurer


def render(doc, measurer=None, handler=None, **options) -> str:
    async def run():
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler)) if handler else None
        renderer = SVGRenderer(
            doc,
            RendererOptions(**options),
            measurer=measurer or FakeMeasurer(),
            http_client=client,
        )
        return await renderer.to_string()

    return asyncio.run(run())


def render_root(doc, **kwargs):
    return parse_markup(render(doc, **kwargs))


def single(element: dict) -> dict:
    return {"children": [element]}


def uses(root) -> list:
    return list(root.iter(f"{SVG}use"))


def defs_ids(root) -> list:
    defs = root.find(f"{SVG}defs")
    return [node.get("id") for node in defs]


# =============================================================================
# BASIC SHAPES
# =============================================================================

class TestColorRectangle:
    """A 100x50 element filled red, without outline, effect or text."""

    @pytest.fixture
    def root(self):
        return render_root(single({"style": {"width": 100, "height": 50}, "fill": "#ff0000"}))

    def test_view_box(self, root):
        assert root.tag == f"{SVG}svg"
        assert root.get("viewBox") == "0 0 100 50"
        assert root.get("width") == "100"
        assert root.get("height") == "50"
        assert root.get("fill") == "none"

    def test_one_painted_shape(self, root):
        painted = [use for use in uses(root) if use.get("fill") == "#ff0000"]
        assert len(painted) == 1
        assert painted[0].get(XLINK_HREF) == "#el0_shape_0"
        assert painted[0].get("stroke") == "none"

    def test_default_contour_is_rect(self, root):
        rect = root.find(f"{SVG}defs/{SVG}rect")
        assert rect.get("id") == "el0_shape_0"
        assert (rect.get("width"), rect.get("height")) == ("100", "50")

    def test_defs_come_last(self, root):
        assert root[-1].tag == f"{SVG}defs"

    def test_xlink_namespace_declared(self):
        markup = render(single({"style": {"width": 10, "height": 10}}))
        assert 'xmlns:xlink="http://www.w3.org/1999/xlink"' in markup


class TestOutline:

    def test_arrow_head_marker(self):
        root = render_root(single({
            "style": {"width": 100, "height": 50},
            "outline": {"color": "#000000", "width": 2, "headEnd": {"type": "arrow", "width": "md", "height": "md"}},
        }))
        markers = list(root.iter(f"{SVG}marker"))
        assert len(markers) == 1
        assert (markers[0].get("markerWidth"), markers[0].get("markerHeight")) == ("4", "4")

        use = uses(root)[0]
        assert use.get("marker-start") == f"url(#{markers[0].get('id')})"
        assert use.get("marker-end") is None
        assert use.get("stroke") == "#000000"
        assert use.get("stroke-width") == "2"

    def test_zero_width_outline_uses_one(self):
        root = render_root(single({"style": {"width": 10, "height": 10}, "outline": {"color": "#000", "width": 0}}))
        assert uses(root)[0].get("stroke-width") == "1"

    def test_markers_skipped_on_unstroked_paths(self):
        root = render_root(single({
            "style": {"width": 100, "height": 50},
            "shape": {"paths": [{"data": "M0 0L100 50"}, {"data": "M0 50L100 0", "stroke": "none"}]},
            "outline": {"color": "#000", "tailEnd": {"type": "triangle"}},
        }))
        first, second = uses(root)
        assert first.get("marker-end") == "url(#el0_tailEnd)"
        assert second.get("marker-end") is None

    def test_identical_line_ends_share_marker(self):
        element = {
            "style": {"width": 100, "height": 50},
            "outline": {"color": "#000", "headEnd": {"type": "oval"}, "tailEnd": {"type": "oval"}},
        }
        root = render_root(single(element))
        assert len(list(root.iter(f"{SVG}marker"))) == 1
        use = uses(root)[0]
        assert use.get("marker-start") == use.get("marker-end") == "url(#el0_headEnd)"


class TestShapePaths:

    def test_one_reference_per_contour(self):
        root = render_root(single({
            "style": {"width": 100, "height": 100},
            "shape": {"paths": [
                {"data": "M0 0H100V100Z", "fillRule": "evenodd"},
                {"data": "M10 10H90V90Z"},
            ]},
            "fill": "#00ff00",
        }))
        assert [use.get(XLINK_HREF) for use in uses(root)] == ["#el0_shape_0", "#el0_shape_1"]
        paths = root.findall(f"{SVG}defs/{SVG}path")
        assert paths[0].get("fill-rule") == "evenodd"
        assert paths[1].get("d") == "M10 10H90V90Z"

    def test_foreground_reuses_contours(self):
        root = render_root(single({
            "style": {"width": 100, "height": 100},
            "shape": {"paths": [{"data": "M0 0H100V100Z"}]},
            "fill": "#00ff00",
            "foreground": "#0000ff",
        }))
        shape, foreground = uses(root)
        assert foreground.get(XLINK_HREF) == shape.get(XLINK_HREF)
        assert foreground.get("fill") == "#0000ff"
        assert foreground.get("stroke") == "none"

    def test_background_is_rect_under_shape(self):
        root = render_root(single({"style": {"width": 80, "height": 40}, "background": "#eeeeee"}))
        assert root[0].tag == f"{SVG}rect"
        assert root[0].get("fill") == "#eeeeee"
        assert root[1].tag == f"{SVG}use"


# =============================================================================
# EFFECTS
# =============================================================================

class TestEffects:

    def test_outer_shadow_filter(self):
        root = render_root(single({
            "style": {"width": 100, "height": 50},
            "fill": "#ff0000",
            "effect": {"outerShadow": {"color": "#000000", "blurRadius": 12}},
        }))
        shadow_filter = root.find(f"{SVG}defs/{SVG}filter")
        assert shadow_filter.get("id") == "el0_outerShadow"
        blur, transfer = shadow_filter
        assert blur.get("in") == "SourceAlpha"
        assert blur.get("stdDeviation") == "2"
        assert transfer.find(f"{SVG}feFuncA").get("slope") == "1"

    def test_shadow_renders_underneath(self):
        root = render_root(single({
            "style": {"width": 100, "height": 50},
            "fill": "#ff0000",
            "effect": {"outerShadow": {"offsetX": 3, "offsetY": 4, "blurRadius": 6}},
        }))
        shadow_group, shape = root[0], root[1]
        assert shadow_group.get("filter") == "url(#el0_outerShadow)"
        assert shadow_group.get("transform") == "matrix(1,0,0,1,3,4)"
        assert shadow_group[0].get(XLINK_HREF) == shape.get(XLINK_HREF)
        assert shape.tag == f"{SVG}use"

    def test_soft_edge(self):
        root = render_root(single({
            "style": {"width": 100, "height": 50},
            "fill": "#ff0000",
            "effect": {"softEdge": {"radius": 6}},
        }))
        use = uses(root)[0]
        assert use.get("filter") == "url(#el0_soft_edge)"
        assert use.get("transform") == "matrix(0.8,0,0,0.8,10,5)"
        assert root.find(f"{SVG}defs/{SVG}filter/{SVG}feGaussianBlur").get("stdDeviation") == "2"


# =============================================================================
# TRANSFORMS AND NESTING
# =============================================================================

class TestTransforms:

    @pytest.fixture
    def root(self, sample_document):
        return render_root(sample_document)

    def test_document_view_box(self, root):
        assert root.get("viewBox") == "0 0 960 1080"

    def test_children_translated(self, root):
        groups = root.findall(f"{SVG}g")
        assert [g.get("transform") for g in groups] == ["translate(100, 50)", "translate(400, 50)"]

    def test_rotation_about_center(self, root):
        rotated = root.findall(f"{SVG}g")[1][0]
        assert rotated.get("transform") == "rotate(45 100 50) scale(1, 1)"
        assert rotated[0].get("filter") == "url(#el0-1_outerShadow)"
        assert rotated[1].tag == f"{SVG}use"

    def test_document_order(self, root):
        hrefs = [use.get(XLINK_HREF) for use in root.iter(f"{SVG}use")]
        assert hrefs == [
            "#el0_shape_0",
            "#el0-0_shape_0",
            "#el0-1_shape_0",
            "#el0-1_shape_0",
            "#el1_shape_0",
        ]

    def test_single_shared_defs(self, root):
        assert len(list(root.iter(f"{SVG}defs"))) == 1
        assert "el0-0_fill_grad" in defs_ids(root)

    def test_scale(self):
        root = render_root(single({"style": {"width": 10, "height": 10, "scaleX": 2}}))
        assert root[0].get("transform") == "scale(2, 1)"

    def test_visibility(self):
        root = render_root(single({"style": {"width": 10, "height": 10, "visibility": "hidden"}}))
        outer = root[0]
        assert outer.get("visibility") == "hidden"
        assert outer.get("transform") is None
        assert outer[0].get("visibility") == "hidden"

    def test_id_prefix(self, sample_document):
        root = render_root(sample_document, id_prefix="slide")
        assert all(node_id.startswith("slide") for node_id in defs_ids(root))


class TestDeduplication:

    GRADIENT = {"linearGradient": {"angle": 0, "stops": [{"offset": 0, "color": "#000"}, {"offset": 1, "color": "#fff"}]}}

    def test_equal_gradients_share_definition(self):
        root = render_root({"children": [
            {"style": {"width": 10, "height": 10}, "fill": self.GRADIENT},
            {"style": {"width": 20, "height": 20}, "fill": self.GRADIENT},
        ]})
        assert len(list(root.iter(f"{SVG}linearGradient"))) == 1
        assert [use.get("fill") for use in uses(root)] == ["url(#el0_fill_grad)"] * 2

    def test_ids_unique(self, sample_document):
        root = render_root(sample_document)
        ids = [node.get("id") for node in root.iter() if node.get("id")]
        assert len(ids) == len(set(ids))


# =============================================================================
# IMAGES
# =============================================================================

class TestImages:

    def test_failed_image_isolated(self, png_bytes):
        def handler(request):
            if request.url.path == "/missing.png":
                return httpx.Response(404)
            return httpx.Response(200, content=png_bytes, headers={"content-type": "image/png"})

        root = render_root({"children": [
            {"style": {"width": 10, "height": 10}, "fill": {"image": "https://img.test/missing.png"}},
            {"style": {"width": 10, "height": 10}, "fill": {"image": "https://img.test/ok.png"}},
        ]}, handler=handler)
        assert [use.get("fill") for use in uses(root)] == ["none", "url(#el1_fill_img)"]
        assert len(list(root.iter(f"{SVG}pattern"))) == 1

    def test_each_source_fetched_once(self, png_bytes):
        requests = []

        def handler(request):
            requests.append(str(request.url))
            return httpx.Response(200, content=png_bytes, headers={"content-type": "image/png"})

        render({"children": [
            {"style": {"width": 10, "height": 10}, "background": {"image": "https://img.test/a.png"}},
            {"style": {"width": 30, "height": 10}, "fill": {"image": "https://img.test/a.png"}},
        ]}, handler=handler)
        assert requests == ["https://img.test/a.png"]

    def test_output_independent_of_fetch_timing(self, png_bytes):
        names = ["a", "b", "c"]
        doc = {"children": [
            {
                "style": {"width": 10, "height": 10},
                "fill": {"image": f"https://img.test/{name}.png"},
                "outline": {"color": "#000", "tailEnd": {"type": "arrow"}},
            }
            for name in names
        ]}

        def make_handler(delays):
            async def handler(request):
                await asyncio.sleep(delays[request.url.path.strip("/")[0]])
                return httpx.Response(200, content=png_bytes, headers={"content-type": "image/png"})
            return handler

        forward = render(doc, handler=make_handler({"a": 0.0, "b": 0.02, "c": 0.04}))
        backward = render(doc, handler=make_handler({"a": 0.04, "b": 0.02, "c": 0.0}))
        assert forward == backward

        root = parse_markup(forward)
        patterns = [p.get("id") for p in root.iter(f"{SVG}pattern")]
        assert patterns == ["el0_fill_img", "el1_fill_img", "el2_fill_img"]

    def test_reproducible_without_embedding(self, sample_document):
        sample_document["children"][1]["fill"] = {"image": "https://img.test/photo.png"}
        first = render(sample_document, embed_image=False)
        second = render(sample_document, embed_image=False)
        assert first == second
        assert "https://img.test/photo.png" in first

    @pytest.mark.parametrize("style", [{"height": 10}, {"width": 10}, {}])
    def test_cropped_image_on_empty_geometry(self, style):
        root = render_root({"children": [
            {"style": style, "fill": {"image": "https://img.test/a.png", "cropRect": {"left": 0.1}}},
            {"style": {"width": 10, "height": 10}, "fill": "#ff0000"},
        ]}, embed_image=False)
        assert uses(root)[-1].get("fill") == "#ff0000"
        for pattern in root.iter(f"{SVG}pattern"):
            assert all(g.get("transform") is None for g in pattern.iter(f"{SVG}g"))

    def test_fully_cropped_image_renders_uncropped(self):
        root = render_root(single({
            "style": {"width": 10, "height": 10},
            "fill": {"image": "https://img.test/a.png", "cropRect": {"left": 0.5, "right": 0.5}},
        }), embed_image=False)
        assert uses(root)[0].get("fill") == "url(#el0_fill_img)"
        pattern = root.find(f".//{SVG}pattern")
        assert all(g.get("transform") is None for g in pattern.iter(f"{SVG}g"))

    def test_pattern_build_failure_isolated(self, monkeypatch):
        build = fill_renderer.build_image_pattern

        def failing_build(pattern_id, fill, href, *args, **kwargs):
            if href.endswith("bad.png"):
                raise ZeroDivisionError("float division by zero")
            return build(pattern_id, fill, href, *args, **kwargs)

        monkeypatch.setattr(fill_renderer, "build_image_pattern", failing_build)
        root = render_root({"children": [
            {"style": {"width": 10, "height": 10}, "fill": {"image": "https://img.test/bad.png"}},
            {"style": {"width": 10, "height": 10}, "fill": {"image": "https://img.test/ok.png"}},
            {"style": {"width": 10, "height": 10}, "fill": "#ff0000"},
        ]}, embed_image=False)
        assert [use.get("fill") for use in uses(root)] == ["none", "url(#el1_fill_img)", "#ff0000"]


# =============================================================================
# TEXT
# =============================================================================

class TestText:

    ELEMENT = {
        "style": {"width": 100, "height": 50},
        "fill": "#ffffff",
        "text": {"fontSize": 10, "color": "#333333", "content": "Hi"},
    }

    def test_text_runs(self):
        root = render_root(single(self.ELEMENT))
        text = root.find(f"{SVG}text")
        assert text.get("fill") == "#333333"
        assert text.get("font-size") == "10"
        assert text.get("dominant-baseline") == "alphabetic"
        tspans = text.findall(f"{SVG}tspan")
        assert [t.text for t in tspans] == ["H", "i"]
        assert float(tspans[1].get("x")) - float(tspans[0].get("x")) == pytest.approx(10)

    def test_text_after_shapes(self):
        root = render_root(single(self.ELEMENT))
        assert [child.tag for child in root] == [f"{SVG}use", f"{SVG}text", f"{SVG}defs"]

    def test_measurer_receives_padding(self, measurer):
        render(single(self.ELEMENT), measurer=measurer)
        request = measurer.requests[0]
        assert request.width == 100
        assert request.padding_left == pytest.approx(0.25 * 72 / 2.54)
        assert request.padding_top == pytest.approx(0.13 * 72 / 2.54)

    def test_glyph_outlines(self):
        root = render_root(single(self.ELEMENT), measurer=FakeMeasurer(glyphs=True))
        assert root.find(f"{SVG}text") is None
        path = root.find(f"{SVG}path")
        assert path.get("fill") == "#333333"
        assert path.get("d").count("h5v5z") == 2

    def test_text_runs_when_embedding_disabled(self):
        root = render_root(single(self.ELEMENT), measurer=FakeMeasurer(glyphs=True), embed_text=False)
        assert root.find(f"{SVG}text") is not None

    def test_async_measurer(self):
        assert render(single(self.ELEMENT), measurer=AsyncFakeMeasurer()) == render(single(self.ELEMENT))

    def test_gradient_text(self):
        element = {
            "style": {"width": 100, "height": 50},
            "text": {"content": [{"fragments": [{"content": "G", "fill": TestDeduplication.GRADIENT}]}]},
        }
        root = render_root(single(element))
        assert root.find(f"{SVG}text").get("fill") == "url(#el0_text_0_0_grad)"

    def test_rotated_text(self):
        element = {**self.ELEMENT, "style": {"width": 100, "height": 50, "rotate": 30}}
        root = render_root(single(element))
        text_group = root[1]
        assert text_group.get("transform") == "rotate(30 50 25)"
        assert text_group[0].tag == f"{SVG}text"

    def test_empty_paragraph_skipped(self):
        element = {**self.ELEMENT, "text": {"content": ["", "x"]}}
        root = render_root(single(element))
        assert len(root.findall(f"{SVG}text")) == 1

    def test_measurement_failure_drops_only_text(self):
        doc = {"children": [self.ELEMENT, {"style": {"width": 10, "height": 10}, "fill": "#000"}]}
        root = render_root(doc, measurer=FakeMeasurer(fail=True))
        assert root.find(f"{SVG}text") is None
        assert len(uses(root)) == 2


# =============================================================================
# OUTPUTS
# =============================================================================

class TestStandaloneElement:

    ELEMENT = {
        "style": {"left": 30, "top": 40, "width": 100, "height": 50},
        "fill": "#ff0000",
        "outline": {"color": "#000", "width": 2},
    }

    def test_view_box_and_origin(self):
        seen = []
        markup = asyncio.run(SVGRenderer(measurer=FakeMeasurer()).element_to_string(self.ELEMENT, seen.append))
        root = parse_markup(markup)
        assert seen == [ViewBox(-1, -1, 102, 52)]
        assert root.get("viewBox") == "-1 -1 102 52"
        assert root.get("width") == "103"
        assert root.findall(f"{SVG}g") == []

    def test_owns_defs(self):
        markup = asyncio.run(SVGRenderer(measurer=FakeMeasurer()).element_to_string(self.ELEMENT))
        root = parse_markup(markup)
        assert root[0].tag == f"{SVG}defs"
        assert root[1].tag == f"{SVG}use"


class TestOutputs:

    DOC = single({"style": {"width": 100, "height": 50}, "fill": "#ff0000"})

    def test_to_element(self):
        root = asyncio.run(doc_to_svg(self.DOC))
        assert root.tag == f"{SVG}svg"

    def test_blob(self):
        blob = asyncio.run(SVGRenderer(self.DOC).to_blob())
        assert blob.mime_type == SVG_MIME_TYPE
        assert blob.data.startswith(b"<svg")
        assert blob.size == len(blob.data)

    def test_data_uri(self):
        renderer = SVGRenderer(self.DOC)
        uri = asyncio.run(renderer.to_data_uri())
        prefix = "data:image/svg+xml;base64,"
        assert uri.startswith(prefix)
        assert base64.b64decode(uri[len(prefix):]).decode("utf-8") == asyncio.run(renderer.to_string())

    def test_sync_helper(self):
        assert render_to_svg_string(self.DOC, embed_image=False) == render(self.DOC, embed_image=False)

    def test_empty_document(self):
        root = render_root({})
        assert root.get("viewBox") == "0 0 0 0"
        assert len(root) == 1

    def test_malformed_output(self, monkeypatch):
        monkeypatch.setattr(svg_renderer, "serialize_markup", lambda node: "<svg><g></svg>")
        with pytest.raises(MalformedOutputError) as exc_info:
            asyncio.run(SVGRenderer(self.DOC).to_element())
        assert exc_info.value.markup == "<svg><g></svg>"
