"""
Tests for the pagedistill.environment.resolver module.

This module tests:
- Resolving identifiers to the marked element in the owning frame
- Failing fast after navigation, removal or a newer pass
"""

import pytest

from pagedistill.environment.config import DistillConfig
from pagedistill.environment.distiller import distill
from pagedistill.environment.resolver import ElementResolver
from pagedistill.exceptions import ElementNotFoundError
from tests.environment.fakes import FakeElement, FakeFrame, FakePage, nested_page


# =============================================================================
# Resolution Tests
# =============================================================================

class TestResolve:
    """Tests for resolving live identifiers."""

    @pytest.mark.asyncio
    async def test_resolves_element_in_main_frame(self):
        page = nested_page()
        result = await distill(page)

        locator = await ElementResolver(result).resolve(1)

        assert locator.frame is page.frames[0]
        assert locator.element.text == "Home"

    @pytest.mark.asyncio
    async def test_resolves_element_in_nested_frame(self):
        page = nested_page()
        result = await distill(page)

        locator = await ElementResolver(result).resolve(3)

        assert locator.frame is page.frames[2]
        assert locator.element.tag == "button"

    @pytest.mark.asyncio
    async def test_selector_carries_pass_token(self):
        result = await distill(nested_page())
        resolver = ElementResolver(result)

        selector = resolver.selector_for(2)

        assert selector == f'[data-distill-id="2"][data-distill-pass="{result.pass_id}"]'

    @pytest.mark.asyncio
    async def test_custom_attributes(self):
        config = DistillConfig(marker_attribute="data-mcp-id", pass_attribute="data-mcp-pass")
        page = nested_page()
        result = await distill(page, config)

        locator = await ElementResolver(result, config).resolve(2)

        assert locator.element.text == "Section A"


# =============================================================================
# Stale Identifier Tests
# =============================================================================

class TestStaleIdentifiers:
    """Tests for identifiers that no longer point at their element."""

    @pytest.mark.asyncio
    async def test_navigation_invalidates_ids(self):
        page = nested_page()
        result = await distill(page)
        resolver = ElementResolver(result)

        page.navigate("https://example.org/next", [FakeElement("a", text="Other", href="/o")])

        with pytest.raises(ElementNotFoundError) as exc_info:
            await resolver.resolve(1)

        assert exc_info.value.distill_id == 1
        assert exc_info.value.pass_id == result.pass_id
        assert exc_info.value.error_code == "ELEMENT_NOT_FOUND_ERROR"

    @pytest.mark.asyncio
    async def test_new_element_with_same_number_is_not_targeted(self):
        main = FakeFrame(elements=[FakeElement("button", text="Old")])
        page = FakePage([main])
        result = await distill(page)

        impostor = FakeElement("button", text="New")
        impostor.attributes["data-distill-id"] = "1"
        page.navigate("https://example.org/next", [impostor])

        with pytest.raises(ElementNotFoundError):
            await ElementResolver(result).resolve(1)

    @pytest.mark.asyncio
    async def test_detached_frame_fails(self):
        page = nested_page()
        result = await distill(page)

        page.navigate("https://example.org/next")

        with pytest.raises(ElementNotFoundError) as exc_info:
            await ElementResolver(result).resolve(3)

        assert "detached" in exc_info.value.reason

    @pytest.mark.asyncio
    async def test_removed_element_fails(self):
        page = nested_page()
        result = await distill(page)

        page.frames[1].elements.clear()

        with pytest.raises(ElementNotFoundError):
            await ElementResolver(result).resolve(2)

    @pytest.mark.asyncio
    async def test_superseded_pass_fails(self):
        page = nested_page()
        first = await distill(page)
        second = await distill(page)

        with pytest.raises(ElementNotFoundError):
            await ElementResolver(first).resolve(1)

        locator = await ElementResolver(second).resolve(1)
        assert locator.element.text == "Home"

    @pytest.mark.asyncio
    async def test_unknown_identifier(self):
        result = await distill(nested_page())

        with pytest.raises(ElementNotFoundError) as exc_info:
            await ElementResolver(result).resolve(99)

        assert "not issued" in exc_info.value.reason

    @pytest.mark.asyncio
    async def test_lookup_error_maps_to_not_found(self):
        page = nested_page()
        result = await distill(page)

        async def broken_count():
            raise RuntimeError("Target closed")

        original_locator = page.frames[0].locator

        def locator(selector):
            loc = original_locator(selector)
            loc.count = broken_count
            return loc

        page.frames[0].locator = locator

        with pytest.raises(ElementNotFoundError) as exc_info:
            await ElementResolver(result).resolve(1)

        assert "Target closed" in exc_info.value.reason
