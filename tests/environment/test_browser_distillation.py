"""
Distillation against a real Chromium page.

These tests run the in-page collection, marking and frame-position scripts
in a live DOM. Pages are built with ``page.set_content`` and nested
``srcdoc`` iframes. The module is skipped when Chromium is not installed
(``playwright install chromium``).
"""

import html

import pytest
import pytest_asyncio
from playwright.async_api import async_playwright

from pagedistill.environment.actions import ElementActions
from pagedistill.environment.config import DistillConfig, SnapshotMode
from pagedistill.environment.distiller import (
    CANDIDATE_SELECTORS,
    COLLECT_CANDIDATES_JS,
    MARK_ELEMENTS_JS,
    distill,
)
from pagedistill.environment.resolver import ElementResolver
from pagedistill.environment.snapshot import SnapshotOrchestrator
from pagedistill.exceptions import ElementNotFoundError

FLAT = "margin:0;padding:0;"
IFRAME_STYLE = "position:absolute;border:0;margin:0;padding:0;"

FRAME_B = (
    f'<html><body style="{FLAT}">'
    '<button style="position:absolute;left:5px;top:5px;width:60px;height:24px;'
    'box-sizing:border-box;margin:0" onclick="window.clicked = true">Go</button>'
    "</body></html>"
)

FRAME_A = (
    f'<html><body style="{FLAT}">'
    f'<iframe style="{IFRAME_STYLE}left:50px;top:100px;width:200px;height:100px" '
    f'srcdoc="{html.escape(FRAME_B)}"></iframe>'
    "</body></html>"
)

NESTED_PAGE = (
    f'<html><body style="{FLAT}">'
    f'<iframe style="{IFRAME_STYLE}left:10px;top:20px;width:400px;height:300px" '
    f'srcdoc="{html.escape(FRAME_A)}"></iframe>'
    "</body></html>"
)


@pytest_asyncio.fixture
async def page():
    """A fresh Chromium page; skips the test when no browser is installed."""
    async with async_playwright() as playwright:
        try:
            browser = await playwright.chromium.launch(headless=True)
        except Exception as e:
            pytest.skip(f"Chromium is not available: {e}")
        try:
            yield await browser.new_page(viewport={"width": 1280, "height": 800})
        finally:
            await browser.close()


async def load(page, content: str, frame_count: int = 1) -> None:
    await page.set_content(content)
    for _ in range(50):
        if len(page.frames) >= frame_count:
            break
        await page.wait_for_timeout(20)
    assert len(page.frames) == frame_count
    for frame in page.frames:
        await frame.wait_for_load_state()


# =============================================================================
# Geometry Across Nested Frames
# =============================================================================

class TestNestedFrames:
    """Frame offsets measured by the in-page position script."""

    @pytest.mark.asyncio
    async def test_button_in_nested_frame_reports_absolute_bounds(self, page):
        await load(page, NESTED_PAGE, frame_count=3)

        result = await distill(page)

        assert [element.text for element in result.elements] == ["Go"]
        button = result.elements[0]
        assert button.distill_id == 1
        assert button.frame_index == 2
        assert button.bounds.x == pytest.approx(65)
        assert button.bounds.y == pytest.approx(125)
        assert button.offset_exact is True
        assert result.frames_processed == 3

    @pytest.mark.asyncio
    async def test_iframe_border_is_included_in_offset(self, page):
        inner = f'<html><body style="{FLAT}"><a href="#x" style="position:absolute;left:0;top:0">Top</a></body></html>'
        content = (
            f'<html><body style="{FLAT}">'
            f'<iframe style="position:absolute;left:10px;top:20px;width:300px;height:200px;'
            f'border:7px solid black;padding:0;margin:0" srcdoc="{html.escape(inner)}"></iframe>'
            "</body></html>"
        )
        await load(page, content, frame_count=2)

        result = await distill(page)

        link = result.elements[0]
        assert (link.bounds.x, link.bounds.y) == (pytest.approx(17), pytest.approx(27))


# =============================================================================
# Collection, Filtering and Labels
# =============================================================================

class TestCollection:
    """The collection script and the filter over a real DOM."""

    @pytest.mark.asyncio
    async def test_hidden_and_visible_button(self, page):
        await load(
            page,
            '<button style="display:none">Hidden</button>'
            "<button>Visible</button>",
        )

        result = await distill(page)

        assert result.total_elements == 2
        assert result.visible_elements == 1
        assert result.elements[0].text == "Visible"

    @pytest.mark.asyncio
    async def test_label_sources_and_fragments(self, page):
        await load(
            page,
            "<button>  Sign\n   in </button>"
            '<input type="search" name="q" placeholder="Search the site">'
            '<div role="tab" aria-label="Settings" style="width:80px;height:20px"></div>'
            '<a href="/help" title="Help center" style="display:inline-block;width:20px;height:20px"></a>'
            '<input type="submit" value="Send">',
        )

        result = await distill(page)

        assert result.distilled_html.split("\n") == [
            '<button id="1">Sign in</button>',
            '<input id="2" type="search" name="q">Search the site</input>',
            '<div id="3" role="tab">Settings</div>',
            '<a id="4">Help center</a>',
            '<input id="5" type="submit">Send</input>',
        ]

    @pytest.mark.asyncio
    async def test_non_candidates_are_ignored(self, page):
        await load(page, "<p>Just text</p><span>more</span><h2>Title</h2>")

        result = await distill(page)

        assert [element.tag_name for element in result.elements] == ["h2"]
        assert result.total_elements == 1

    @pytest.mark.asyncio
    async def test_label_truncated(self, page):
        await load(page, "<button>abcdefghijklmnopqrstuvwxyz</button>")

        result = await distill(page, DistillConfig(max_text_length=5))

        assert result.elements[0].text == "abcde"


# =============================================================================
# Markers
# =============================================================================

class TestMarkers:
    """The marking script in a live DOM."""

    @pytest.mark.asyncio
    async def test_markers_and_pass_token_written(self, page):
        await load(page, "<button>A</button><button>B</button>")

        result = await distill(page)

        marked = await page.eval_on_selector_all(
            "[data-distill-id]",
            "els => els.map(el => [el.getAttribute('data-distill-id'), el.getAttribute('data-distill-pass')])",
        )
        assert marked == [["1", result.pass_id], ["2", result.pass_id]]

    @pytest.mark.asyncio
    async def test_second_pass_clears_old_markers(self, page):
        await load(page, "<button>A</button><button>B</button>")
        first = await distill(page)

        await page.eval_on_selector("button", "el => el.style.display = 'none'")
        second = await distill(page)

        stale = await page.locator(f'[data-distill-pass="{first.pass_id}"]').count()
        assert stale == 0
        assert await page.get_attribute("button >> nth=0", "data-distill-id") is None
        assert await page.get_attribute("button >> nth=1", "data-distill-id") == "1"
        assert await page.get_attribute("button >> nth=1", "data-distill-pass") == second.pass_id

    @pytest.mark.asyncio
    async def test_mark_refuses_changed_candidate_list(self, page):
        await load(page, "<button>A</button>")
        collected = await page.evaluate(COLLECT_CANDIDATES_JS, {"selectors": CANDIDATE_SELECTORS})
        await page.evaluate("() => document.body.appendChild(document.createElement('button'))")

        outcome = await page.evaluate(
            MARK_ELEMENTS_JS,
            {
                "selectors": CANDIDATE_SELECTORS,
                "markerAttribute": "data-distill-id",
                "passAttribute": "data-distill-pass",
                "passId": "abc",
                "expectedCount": len(collected["candidates"]),
                "assignments": [[0, 1, "button"]],
            },
        )

        assert outcome == {"ok": False, "found": 2, "marked": 0}
        assert await page.locator("[data-distill-id]").count() == 0

    @pytest.mark.asyncio
    async def test_mark_refuses_changed_tag(self, page):
        await load(page, "<button>A</button>")

        outcome = await page.evaluate(
            MARK_ELEMENTS_JS,
            {
                "selectors": CANDIDATE_SELECTORS,
                "markerAttribute": "data-distill-id",
                "passAttribute": "data-distill-pass",
                "passId": "abc",
                "expectedCount": 1,
                "assignments": [[0, 1, "a"]],
            },
        )

        assert outcome["ok"] is False


# =============================================================================
# Resolution and Actions
# =============================================================================

class TestResolution:
    """Identifier resolution against live frames."""

    @pytest.mark.asyncio
    async def test_resolve_then_navigate(self, page):
        await load(page, '<a href="#top">Home</a>')
        result = await distill(page)
        resolver = ElementResolver(result)

        locator = await resolver.resolve(1)
        assert await locator.inner_text() == "Home"

        await page.goto("data:text/html,<a href='#next'>Next</a>")

        with pytest.raises(ElementNotFoundError):
            await resolver.resolve(1)

    @pytest.mark.asyncio
    async def test_resolve_in_detached_frame(self, page):
        await load(page, NESTED_PAGE, frame_count=3)
        resolver = ElementResolver(await distill(page))

        await page.set_content("<p>gone</p>")

        with pytest.raises(ElementNotFoundError):
            await resolver.resolve(1)

    @pytest.mark.asyncio
    async def test_click_by_mcp_id_in_nested_frame(self, page):
        await load(page, NESTED_PAGE, frame_count=3)
        snapshots = SnapshotOrchestrator(mode=SnapshotMode.OPTIMIZED)
        await snapshots.capture(page)

        await ElementActions(page, snapshots).click(mcp_id=1)

        assert await snapshots.resolver.frame_for(1).evaluate("() => window.clicked === true") is True
