"""Prerelease page scraping.

The prerelease index is an HTML page without a structured API. Parsing is
best effort and kept in this module so page format drift only breaks the
prerelease part of the catalog.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

import structlog
from bs4 import BeautifulSoup

logger = structlog.get_logger()

_PARENT_PATH = re.compile(r"path=(/.*/.*/)")


@dataclass(frozen=True)
class PrereleaseRecord:
    """A disk image link found on the prerelease page."""

    name: str
    url: str
    release_notes_path: str | None = None

    @property
    def remote_path(self) -> str:
        """Vendor relative path, taken from the last query value of the link."""
        return self.url.split("=")[-1]


class PrereleaseCatalogAdapter:
    """Turns the prerelease page into PrereleaseRecord entries."""

    def __init__(self, product_name: str = "Xcode"):
        self.product_name = product_name
        self._name_prefix = re.compile(rf".*{re.escape(product_name)} ")

    def parse(self, html: str) -> list[PrereleaseRecord]:
        """Parse prerelease records from page HTML.

        Args:
            html: Page body

        Returns:
            One record per disk image link, in page order
        """
        soup = BeautifulSoup(html, "html.parser")
        anchors = soup.find_all("a", href=True)
        pdf_links = [str(a["href"]) for a in anchors if str(a["href"]).endswith(".pdf")]

        records: list[PrereleaseRecord] = []
        for anchor in anchors:
            href = str(anchor["href"])
            if not href.endswith(".dmg"):
                continue

            name = self._name_prefix.sub("", anchor.get_text().strip())
            if not name:
                logger.debug("prerelease_link_unnamed", href=href)
                continue

            records.append(
                PrereleaseRecord(
                    name=name,
                    url=href,
                    release_notes_path=self._release_notes_for(href, pdf_links),
                )
            )

        logger.debug("prerelease_page_parsed", links=len(records))
        return records

    def _release_notes_for(self, href: str, pdf_links: list[str]) -> str | None:
        """Find a PDF link that shares the parent path of a disk image link."""
        match = _PARENT_PATH.search(href)
        if not match:
            return None

        parent = match.group(1)
        for pdf in pdf_links:
            index = pdf.find(parent)
            if index >= 0:
                return pdf[index:]
        return None
