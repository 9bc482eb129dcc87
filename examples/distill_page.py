"""Distill a Page

Opens a URL in Chromium and prints a snapshot of it. The snapshot mode comes
from PAGEDISTILL_SNAPSHOT_MODE:

    aria       full ARIA structure (default)
    optimized  distilled rendering with numeric element ids, plus counts

Options can be tuned through PAGEDISTILL_* variables, e.g.
PAGEDISTILL_VIEWPORT_BUFFER=500 or PAGEDISTILL_INCLUDE_HIDDEN=true.

Requirements:
    pip install -e .
    playwright install chromium

Usage:
    PAGEDISTILL_SNAPSHOT_MODE=optimized python examples/distill_page.py https://example.org
"""

import argparse
import asyncio
import logging

from playwright.async_api import async_playwright

from pagedistill import DistillConfig, SnapshotOrchestrator, init_logging


async def main(url: str, headless: bool):
    init_logging(logging.INFO)
    snapshots = SnapshotOrchestrator(config=DistillConfig.from_env())

    async with async_playwright() as playwright:
        browser = await playwright.chromium.launch(headless=headless)
        try:
            page = await browser.new_page(viewport={"width": 1280, "height": 800})
            await page.goto(url, wait_until="domcontentloaded")

            response = await snapshots.capture(page)
            print(response.to_text())

            metadata = response.metadata or {}
            print(f"\nMode: {metadata.get('mode')}")
            if metadata.get("fallback_used"):
                print(f"Fell back to the ARIA snapshot: {metadata.get('fallback_reason')}")
            if "visible_elements" in metadata:
                print(
                    f"Elements: {metadata['visible_elements']} kept of {metadata['total_elements']} "
                    f"({metadata['frames_processed']} frame(s), {metadata['frames_skipped']} skipped)"
                )
        finally:
            await browser.close()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Print a distilled or ARIA snapshot of a page.")
    parser.add_argument("url", help="Page to open")
    parser.add_argument("--headed", action="store_true", help="Show the browser window")
    args = parser.parse_args()

    asyncio.run(main(args.url, headless=not args.headed))
