"""
Snapshot orchestration.

Chooses between the distilled (optimized) snapshot and the full-structure
(ARIA) snapshot, falls back to the latter when distillation fails outright,
and packages either one as a ToolResponse for the calling client.
"""

import logging
from typing import Optional, Protocol

from playwright.async_api import Locator, Page

from pagedistill.environment.config import DistillConfig, SnapshotMode
from pagedistill.environment.data_models import DistillationResult
from pagedistill.environment.distiller import Distiller
from pagedistill.environment.resolver import ElementResolver
from pagedistill.environment.tool_response import ToolResponse, ToolResponseContent
from pagedistill.exceptions import NoFramesProcessedError

logger = logging.getLogger(__name__)


class StructureSnapshotProvider(Protocol):
    """Full-structure capture used as the alternative to distillation."""

    async def capture(self, page: Page) -> str:
        ...

    def locate(self, page: Page, ref: str) -> Locator:
        ...


class AriaSnapshotProvider:
    """
    Full-structure capture backed by Playwright's ARIA snapshot.

    References are Playwright selectors, e.g. ``role=button[name="Sign in"]``.
    """

    def __init__(self, root_selector: str = "body"):
        self.root_selector = root_selector

    async def capture(self, page: Page) -> str:
        return await page.locator(self.root_selector).aria_snapshot()

    def locate(self, page: Page, ref: str) -> Locator:
        return page.locator(ref)


class SnapshotOrchestrator:
    """
    Captures page snapshots in the configured mode.

    In optimized mode the resolver of the latest successful distillation is
    kept, so action tools always address elements of the newest pass.
    """

    def __init__(
        self,
        mode: Optional[SnapshotMode] = None,
        config: Optional[DistillConfig] = None,
        structure_provider: Optional[StructureSnapshotProvider] = None,
    ):
        self.mode = mode or SnapshotMode.from_env()
        self.config = config or DistillConfig()
        self.distiller = Distiller(self.config)
        self.structure_provider = structure_provider or AriaSnapshotProvider()
        self.last_result: Optional[DistillationResult] = None
        self._resolver: Optional[ElementResolver] = None

    @property
    def resolver(self) -> Optional[ElementResolver]:
        return self._resolver

    async def distill(self, page: Page) -> DistillationResult:
        """Run a distillation pass and make its identifiers the current ones."""
        result = await self.distiller.distill(page)
        self.last_result = result
        self._resolver = ElementResolver(result, self.config)
        return result

    async def capture(self, page: Page) -> ToolResponse:
        """
        Capture a snapshot of ``page`` for the client.

        The page header is read after distillation, so a page that is gone
        takes the fallback path instead of failing on its title.

        Returns:
            ToolResponse with a page header block and the snapshot body
        """
        if self.mode == SnapshotMode.OPTIMIZED:
            try:
                result = await self.distill(page)
            except NoFramesProcessedError as e:
                logger.warning(f"Distillation failed, falling back to full-structure snapshot: {e}")
                self._resolver = None
                self.last_result = None
                header = await self._page_header(page)
                return await self._capture_structure(page, header, fallback_reason=e.developer_message)
            return self._package_distillation(result, await self._page_header(page))

        return await self._capture_structure(page, await self._page_header(page))

    async def _page_header(self, page: Page) -> ToolResponseContent:
        try:
            title = await page.title()
        except Exception as e:
            logger.warning(f"Could not read page title: {e}")
            title = "(unavailable)"
        return ToolResponseContent(title="Page state", text=f"- Page URL: {page.url}\n- Page Title: {title}")

    def _package_distillation(self, result: DistillationResult, header: ToolResponseContent) -> ToolResponse:
        blocks = [header, ToolResponseContent(title="Interactive elements", text=result.distilled_html)]
        if result.warnings:
            blocks.append(
                ToolResponseContent(title="Warnings", text="\n".join(f"- {w}" for w in result.warnings))
            )
        return ToolResponse(
            content=blocks,
            metadata={
                "mode": SnapshotMode.OPTIMIZED.value,
                "pass_id": result.pass_id,
                "total_elements": result.total_elements,
                "visible_elements": result.visible_elements,
                "frames_processed": result.frames_processed,
                "frames_skipped": result.frames_skipped,
                "warnings": [w.to_dict() for w in result.warnings],
                "fallback_used": False,
            },
        )

    async def _capture_structure(
        self,
        page: Page,
        header: ToolResponseContent,
        fallback_reason: Optional[str] = None,
    ) -> ToolResponse:
        snapshot = await self.structure_provider.capture(page)
        metadata = {"mode": SnapshotMode.ARIA.value, "fallback_used": fallback_reason is not None}
        if fallback_reason:
            metadata["fallback_reason"] = fallback_reason
        return ToolResponse(
            content=[header, ToolResponseContent(title="Page snapshot", text=snapshot)],
            metadata=metadata,
        )
