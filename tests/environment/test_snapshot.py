"""
Tests for the pagedistill.environment.snapshot module.

This module tests:
- Mode selection
- Packaging of optimized snapshots
- Fallback to the full-structure snapshot when distillation fails
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from pagedistill.environment.config import SnapshotMode
from pagedistill.environment.resolver import ElementResolver
from pagedistill.environment.snapshot import AriaSnapshotProvider, SnapshotOrchestrator
from tests.environment.fakes import FakePage, nested_page

ARIA_TEXT = '- link "Home"\n- heading "Section A" [level=1]'


@pytest.fixture
def structure_provider():
    provider = MagicMock()
    provider.capture = AsyncMock(return_value=ARIA_TEXT)
    return provider


# =============================================================================
# Mode Selection Tests
# =============================================================================

class TestModeSelection:
    """Tests for choosing the capture mode."""

    def test_mode_from_environment(self, monkeypatch):
        monkeypatch.setenv("PAGEDISTILL_SNAPSHOT_MODE", "optimized")

        assert SnapshotOrchestrator().mode == SnapshotMode.OPTIMIZED

    def test_explicit_mode_wins(self, monkeypatch):
        monkeypatch.setenv("PAGEDISTILL_SNAPSHOT_MODE", "optimized")

        assert SnapshotOrchestrator(mode=SnapshotMode.ARIA).mode == SnapshotMode.ARIA

    def test_default_provider_is_aria(self):
        orchestrator = SnapshotOrchestrator(mode=SnapshotMode.ARIA)

        assert isinstance(orchestrator.structure_provider, AriaSnapshotProvider)


# =============================================================================
# Optimized Capture Tests
# =============================================================================

class TestOptimizedCapture:
    """Tests for optimized-mode captures."""

    @pytest.mark.asyncio
    async def test_blocks_and_metadata(self, structure_provider):
        page = nested_page()
        orchestrator = SnapshotOrchestrator(mode=SnapshotMode.OPTIMIZED, structure_provider=structure_provider)

        response = await orchestrator.capture(page)

        titles = [block.title for block in response.content]
        assert titles == ["Page state", "Interactive elements"]
        assert "- Page URL: https://example.org/" in response.content[0].text
        assert '<button id="3">Go</button>' in response.content[1].text
        assert response.metadata["mode"] == "optimized"
        assert response.metadata["visible_elements"] == 3
        assert response.metadata["fallback_used"] is False
        structure_provider.capture.assert_not_called()

    @pytest.mark.asyncio
    async def test_resolver_tracks_latest_pass(self, structure_provider):
        page = nested_page()
        orchestrator = SnapshotOrchestrator(mode=SnapshotMode.OPTIMIZED, structure_provider=structure_provider)

        first = await orchestrator.capture(page)
        second = await orchestrator.capture(page)

        assert isinstance(orchestrator.resolver, ElementResolver)
        assert orchestrator.resolver.pass_id == second.metadata["pass_id"]
        assert first.metadata["pass_id"] != second.metadata["pass_id"]

    @pytest.mark.asyncio
    async def test_warnings_block(self, structure_provider):
        page = nested_page()
        page.frames[2].error = RuntimeError("crashed")
        orchestrator = SnapshotOrchestrator(mode=SnapshotMode.OPTIMIZED, structure_provider=structure_provider)

        response = await orchestrator.capture(page)

        assert response.content[-1].title == "Warnings"
        assert "frame_unavailable" in response.content[-1].text
        assert response.metadata["frames_skipped"] == 1
        assert response.metadata["warnings"][0]["frame_index"] == 2

    @pytest.mark.asyncio
    async def test_falls_back_when_no_frame_processed(self, structure_provider):
        page = nested_page()
        orchestrator = SnapshotOrchestrator(mode=SnapshotMode.OPTIMIZED, structure_provider=structure_provider)
        await orchestrator.capture(page)
        for frame in page.frames:
            frame.error = RuntimeError("renderer crashed")

        response = await orchestrator.capture(page)

        assert response.metadata["mode"] == "aria"
        assert response.metadata["fallback_used"] is True
        assert "No frame could be processed" in response.metadata["fallback_reason"]
        assert response.content[1].text == ARIA_TEXT
        assert orchestrator.resolver is None
        assert orchestrator.last_result is None

    @pytest.mark.asyncio
    async def test_closed_page_takes_fallback_path(self, structure_provider):
        page = nested_page()
        for frame in page.frames:
            frame.error = RuntimeError("Target page, context or browser has been closed")
        page.title = AsyncMock(side_effect=RuntimeError("Target page, context or browser has been closed"))
        orchestrator = SnapshotOrchestrator(mode=SnapshotMode.OPTIMIZED, structure_provider=structure_provider)

        response = await orchestrator.capture(page)

        assert response.metadata["fallback_used"] is True
        assert "- Page Title: (unavailable)" in response.content[0].text

    @pytest.mark.asyncio
    async def test_title_read_after_distillation(self, structure_provider):
        page = nested_page()
        order = []
        original_evaluate = page.frames[0].evaluate

        async def tracking_evaluate(script, arg=None):
            order.append("evaluate")
            return await original_evaluate(script, arg)

        async def tracking_title():
            order.append("title")
            return "Example"

        page.frames[0].evaluate = tracking_evaluate
        page.title = tracking_title
        orchestrator = SnapshotOrchestrator(mode=SnapshotMode.OPTIMIZED, structure_provider=structure_provider)

        await orchestrator.capture(page)

        assert order[-1] == "title"
        assert order.count("title") == 1


# =============================================================================
# Full-Structure Capture Tests
# =============================================================================

class TestStructureCapture:
    """Tests for aria-mode captures."""

    @pytest.mark.asyncio
    async def test_aria_mode_skips_distillation(self, structure_provider):
        page = nested_page()
        orchestrator = SnapshotOrchestrator(mode=SnapshotMode.ARIA, structure_provider=structure_provider)

        response = await orchestrator.capture(page)

        structure_provider.capture.assert_awaited_once_with(page)
        assert response.metadata == {"mode": "aria", "fallback_used": False}
        assert "### Page snapshot" in response.to_text()
        assert orchestrator.resolver is None
        assert page.frames[0].evaluations == []

    @pytest.mark.asyncio
    async def test_aria_provider_uses_root_locator(self):
        page = MagicMock()
        page.locator.return_value.aria_snapshot = AsyncMock(return_value=ARIA_TEXT)

        snapshot = await AriaSnapshotProvider(root_selector="main").capture(page)

        page.locator.assert_called_once_with("main")
        assert snapshot == ARIA_TEXT

    def test_aria_provider_locate(self):
        page = FakePage([nested_page().main_frame])

        locator = AriaSnapshotProvider().locate(page, "text=Home")

        assert locator.selector == "text=Home"
