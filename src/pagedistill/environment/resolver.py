"""
Identifier resolution for distilled elements.

An identifier is only valid against the pass that issued it. The resolver
searches the frame that owned the element at issuance time for an element
carrying both the identifier and that pass's token. Any mismatch, such as a
navigation, a removed element or a newer pass, fails with
ElementNotFoundError instead of targeting whatever element now carries the
same number.
"""

import logging
from typing import Optional

from playwright.async_api import Frame, Locator

from pagedistill.environment.config import DistillConfig
from pagedistill.environment.data_models import DistillationResult, ElementDescriptor
from pagedistill.exceptions import ElementNotFoundError

logger = logging.getLogger(__name__)


class ElementResolver:
    """
    Resolves identifiers of one DistillationResult back to live elements.

    Usage:
        resolver = ElementResolver(result)
        locator = await resolver.resolve(5)
        await locator.click()
    """

    def __init__(self, result: DistillationResult, config: Optional[DistillConfig] = None):
        self.result = result
        self.config = config or DistillConfig()

    @property
    def pass_id(self) -> str:
        return self.result.pass_id

    def selector_for(self, distill_id: int) -> str:
        """Attribute selector matching the element tagged with ``distill_id`` in this pass."""
        return (
            f'[{self.config.marker_attribute}="{int(distill_id)}"]'
            f'[{self.config.pass_attribute}="{self.result.pass_id}"]'
        )

    def descriptor(self, distill_id: int) -> ElementDescriptor:
        element = self.result.get(distill_id)
        if element is None:
            raise ElementNotFoundError(
                distill_id, reason="identifier was not issued by this snapshot", pass_id=self.pass_id
            )
        return element

    def frame_for(self, distill_id: int) -> Frame:
        element = self.descriptor(distill_id)
        frame = self.result.frame_handles.get(element.frame_index)
        if frame is None:
            raise ElementNotFoundError(distill_id, reason="owning frame is unknown", pass_id=self.pass_id)
        if frame.is_detached():
            raise ElementNotFoundError(distill_id, reason="owning frame has detached", pass_id=self.pass_id)
        return frame

    async def resolve(self, distill_id: int) -> Locator:
        """
        Locate the live element for ``distill_id``.

        Args:
            distill_id: Identifier from this resolver's distillation result

        Returns:
            Playwright Locator scoped to the owning frame

        Raises:
            ElementNotFoundError: If the element can no longer be found
        """
        frame = self.frame_for(distill_id)
        locator = frame.locator(self.selector_for(distill_id))
        try:
            count = await locator.count()
        except Exception as e:
            raise ElementNotFoundError(
                distill_id, reason=f"lookup failed: {e}", pass_id=self.pass_id
            ) from e

        if count == 0:
            logger.info(f"Element {distill_id} of pass {self.pass_id} is gone from {frame.url}")
            raise ElementNotFoundError(
                distill_id,
                reason="no element carries this identifier anymore (page changed or snapshot superseded)",
                pass_id=self.pass_id,
            )
        if count > 1:
            logger.warning(f"Identifier {distill_id} matches {count} elements in {frame.url}, using the first")
        return locator.first
