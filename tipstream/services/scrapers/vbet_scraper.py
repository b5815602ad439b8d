"""
TIPSTREAM - Vbet Scraper
Extracts upcoming football fixtures and 1X2 odds from vbet prematch
competition pages.

Page structure (one fixture per ``.multi-column-content`` element):
- Teams: ``.multi-column-teams .multi-column-single-team p`` (home first)
- Kick-off time: ``.multi-column-time-icon time``
- Section date heading: ``.c-title-bc`` (DD.MM.YYYY, DD.MM or a relative word)
- Odds: first ``li`` holding three ``.market-odd-bc`` cells, ordered 1 / X / 2
"""

import logging
from datetime import date
from typing import Callable, List, Optional

from bs4 import BeautifulSoup, Tag
from pydantic import ValidationError

from tipstream.core.config import Settings, settings as default_settings
from tipstream.models.schemas import MatchWithOdds, Odds
from tipstream.services.scrapers.base_scraper import (
    BaseBrowserScraper,
    ScraperConfig,
    extract_text,
    extract_time,
    parse_decimal_odds,
    resolve_match_date,
)

logger = logging.getLogger(__name__)

MATCH_ITEM_SELECTORS = (".multi-column-content", "ul.multi-column-content")
TEAM_SELECTOR = ".multi-column-teams .multi-column-single-team p"
TIME_SELECTOR = ".multi-column-time-icon time"
DATE_HEADING_CLASS = "c-title-bc"
ODD_CELL_SELECTOR = ".market-odd-bc"


class VbetScraper(BaseBrowserScraper):
    """Scraper for vbet competition pages."""

    ready_selector = ".multi-column-content"
    probe_selectors = {
        "multi_column_ul": "ul.multi-column-content",
        "competition": ".competition-bc",
        "any_multi_column": "[class*='multi-column']",
    }

    def __init__(
        self,
        config: Optional[ScraperConfig] = None,
        driver_factory=None,
        today_provider: Callable[[], date] = date.today,
    ):
        super().__init__(config or ScraperConfig(scraper_name="vbet"), driver_factory=driver_factory)
        self.today_provider = today_provider

    @classmethod
    def from_settings(cls, settings: Settings = default_settings, **kwargs) -> "VbetScraper":
        return cls(ScraperConfig.from_settings(settings, "vbet"), **kwargs)

    def parse_page(self, html: str, label: str) -> List[MatchWithOdds]:
        soup = BeautifulSoup(html, "html.parser")

        items: List[Tag] = []
        for selector in MATCH_ITEM_SELECTORS:
            items = soup.select(selector)
            if items:
                break

        if not items:
            logger.warning(f"[{self.name}] No match items in page for {label}")
            return []

        today = self.today_provider()
        matches: List[MatchWithOdds] = []
        for index, item in enumerate(items):
            try:
                match = self._parse_item(item, soup, label, today)
            except ValidationError as e:
                logger.debug(f"[{self.name}] Match {index} rejected: {e}")
                continue
            if match is None:
                logger.debug(f"[{self.name}] Match {index} skipped: incomplete element")
                continue
            matches.append(match)

        return matches

    def _parse_item(self, item: Tag, soup: BeautifulSoup, label: str, today: date) -> Optional[MatchWithOdds]:
        teams = [el.get_text(strip=True) for el in item.select(TEAM_SELECTOR)]
        if len(teams) < 2 or not teams[0] or not teams[1]:
            return None

        odds = self._extract_odds(item)
        if odds is None:
            return None

        time_text = extract_text(item, TIME_SELECTOR)
        date_token = self._find_date_token(item, soup) or time_text

        return MatchWithOdds(
            home_team=teams[0],
            away_team=teams[1],
            date=resolve_match_date(date_token, today),
            time=extract_time(time_text) or (time_text or None),
            league=label,
            odds=odds,
        )

    @staticmethod
    def _find_date_token(item: Tag, soup: BeautifulSoup) -> str:
        """Nearest section heading before the item, else the first on the page."""
        heading = item.find_previous(class_=DATE_HEADING_CLASS)
        if heading is None:
            heading = soup.find(class_=DATE_HEADING_CLASS)
        return heading.get_text(strip=True) if heading else ""

    @staticmethod
    def _extract_odds(item: Tag) -> Optional[Odds]:
        values: List[Optional[float]] = []
        for li in item.select("li"):
            cells = li.select(ODD_CELL_SELECTOR)
            if len(cells) >= 3:
                values = [parse_decimal_odds(cell.get_text(strip=True)) for cell in cells[:3]]
                break

        if len(values) < 3 or not all(values):
            cells = item.select(ODD_CELL_SELECTOR)
            if len(cells) >= 3:
                values = [parse_decimal_odds(cell.get_text(strip=True)) for cell in cells[:3]]

        if len(values) < 3 or not all(values):
            return None
        return Odds(home=values[0], draw=values[1], away=values[2])
