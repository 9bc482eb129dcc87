"""
Element actions addressed by snapshot identifiers.

Every action targets an element either by ``mcp_id`` (identifier from an
optimized snapshot) or by ``ref`` (reference from a full-structure
snapshot). Exactly one scheme is accepted per target; the addressing is
validated before the page is touched. Native interaction is delegated to
Playwright locators.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

from playwright.async_api import Locator, Page

from pagedistill.environment.snapshot import SnapshotOrchestrator
from pagedistill.environment.tool_response import ToolResponse
from pagedistill.exceptions import AmbiguousAddressingError, ElementNotFoundError

logger = logging.getLogger(__name__)


class ElementActions:
    """
    Click, hover, select, type and drag against snapshot elements.

    Each performed action is appended to ``history`` together with the
    equivalent Playwright code.
    """

    def __init__(self, page: Page, snapshots: SnapshotOrchestrator):
        self.page = page
        self.snapshots = snapshots
        self.history: List[Dict[str, Any]] = []

    @staticmethod
    def validate_addressing(action: str, mcp_id: Optional[int], ref: Optional[str]) -> None:
        """Raise AmbiguousAddressingError unless exactly one scheme is supplied."""
        ref = ref or None
        if (mcp_id is None) == (ref is None):
            raise AmbiguousAddressingError(action, mcp_id=mcp_id, ref=ref)

    async def _target(self, action: str, mcp_id: Optional[int], ref: Optional[str]) -> Tuple[Locator, str]:
        """Resolve the target; returns the locator and its code expression."""
        self.validate_addressing(action, mcp_id, ref)

        if mcp_id is not None:
            resolver = self.snapshots.resolver
            if resolver is None:
                raise ElementNotFoundError(mcp_id, reason="no optimized snapshot has been captured yet")
            locator = await resolver.resolve(mcp_id)
            frame_index = resolver.descriptor(mcp_id).frame_index
            scope = "page" if frame_index == 0 else f"page.frames[{frame_index}]"
            return locator, f"{scope}.locator('{resolver.selector_for(mcp_id)}')"

        return self.snapshots.structure_provider.locate(self.page, ref), f"page.locator({ref!r})"

    def _record(self, action: str, mcp_id: Optional[int], ref: Optional[str], code: str, **details) -> None:
        entry = {"action": action, "target": {"mcp_id": mcp_id, "ref": ref or None}, "code": code}
        entry.update(details)
        self.history.append(entry)
        logger.debug(f"{action}: {code}")

    async def click(
        self,
        mcp_id: Optional[int] = None,
        ref: Optional[str] = None,
        double_click: bool = False,
        button: str = "left",
        timeout: Optional[int] = None,
    ) -> ToolResponse:
        """
        Click an element.

        Parameters:
            mcp_id (Optional[int]): Element ID from an optimized snapshot.
            ref (Optional[str]): Element reference from a full-structure snapshot.
            double_click (bool): Double click instead of a single click.
            button (str): Mouse button: left, right or middle.
            timeout (Optional[int]): Optional timeout in milliseconds.

        Raises:
            AmbiguousAddressingError: If both or neither of mcp_id and ref are provided.
            ElementNotFoundError: If mcp_id no longer resolves.
        """
        if button not in ("left", "right", "middle"):
            raise ValueError(f"Unsupported mouse button: {button}")
        action = "dblclick" if double_click else "click"
        locator, target = await self._target("click", mcp_id, ref)
        button_arg = "" if button == "left" else f"button='{button}'"
        code = f"await {target}.{action}({button_arg})"

        if double_click:
            await locator.dblclick(button=button, timeout=timeout)
        else:
            await locator.click(button=button, timeout=timeout)

        self._record(action, mcp_id, ref, code, button=button)
        return ToolResponse(content=f"Performed {action} on element {mcp_id if mcp_id is not None else ref}",
                            metadata={"code": code})

    async def hover(
        self,
        mcp_id: Optional[int] = None,
        ref: Optional[str] = None,
        timeout: Optional[int] = None,
    ) -> ToolResponse:
        """Hover over an element addressed by mcp_id or ref."""
        locator, target = await self._target("hover", mcp_id, ref)
        code = f"await {target}.hover()"
        await locator.hover(timeout=timeout)
        self._record("hover", mcp_id, ref, code)
        return ToolResponse(content=f"Hovered element {mcp_id if mcp_id is not None else ref}",
                            metadata={"code": code})

    async def select_option(
        self,
        values: List[str],
        mcp_id: Optional[int] = None,
        ref: Optional[str] = None,
        timeout: Optional[int] = None,
    ) -> ToolResponse:
        """Select one or more options in a dropdown addressed by mcp_id or ref."""
        locator, target = await self._target("select_option", mcp_id, ref)
        code = f"await {target}.select_option({values!r})"
        await locator.select_option(values, timeout=timeout)
        self._record("select_option", mcp_id, ref, code, values=list(values))
        return ToolResponse(content=f"Selected {values} in element {mcp_id if mcp_id is not None else ref}",
                            metadata={"code": code})

    async def type_text(
        self,
        text: str,
        mcp_id: Optional[int] = None,
        ref: Optional[str] = None,
        submit: bool = False,
        timeout: Optional[int] = None,
    ) -> ToolResponse:
        """Fill an editable element with ``text``, optionally pressing Enter afterwards."""
        locator, target = await self._target("type", mcp_id, ref)
        code = f"await {target}.fill({text!r})"
        await locator.fill(text, timeout=timeout)
        if submit:
            await locator.press("Enter", timeout=timeout)
            code += f"\nawait {target}.press('Enter')"
        self._record("type", mcp_id, ref, code, submit=submit)
        return ToolResponse(content=f"Typed into element {mcp_id if mcp_id is not None else ref}",
                            metadata={"code": code})

    async def drag(
        self,
        start_mcp_id: Optional[int] = None,
        end_mcp_id: Optional[int] = None,
        start_ref: Optional[str] = None,
        end_ref: Optional[str] = None,
        timeout: Optional[int] = None,
    ) -> ToolResponse:
        """
        Drag one element onto another.

        Both endpoints must use the same scheme: two mcp_ids or two refs.
        """
        by_id = start_mcp_id is not None and end_mcp_id is not None and not start_ref and not end_ref
        by_ref = bool(start_ref) and bool(end_ref) and start_mcp_id is None and end_mcp_id is None
        if not (by_id or by_ref):
            raise AmbiguousAddressingError(
                "drag",
                mcp_id=start_mcp_id if start_mcp_id is not None else end_mcp_id,
                ref=start_ref or end_ref,
                context={
                    "start_mcp_id": start_mcp_id,
                    "end_mcp_id": end_mcp_id,
                    "start_ref": start_ref,
                    "end_ref": end_ref,
                },
            )

        start, start_target = await self._target("drag", start_mcp_id, start_ref)
        end, end_target = await self._target("drag", end_mcp_id, end_ref)
        code = f"await {start_target}.drag_to({end_target})"
        await start.drag_to(end, timeout=timeout)
        self._record("drag", start_mcp_id, start_ref, code, end={"mcp_id": end_mcp_id, "ref": end_ref})
        return ToolResponse(content="Drag completed", metadata={"code": code})
