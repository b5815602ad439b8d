"""
Base Browser Scraper Module
===========================
Base class for scrapers that need a real browser, including:
- Stealth-configured headless Chrome (automation fingerprints suppressed)
- DOMContentLoaded navigation with bounded waits
- Debug snapshots when the page structure is not recognized
- Typed scrape outcomes instead of raised exceptions
- Parsing helpers for odds and day.month dates
"""

import asyncio
import logging
import os
import re
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from bs4 import BeautifulSoup
from selenium import webdriver
from selenium.common.exceptions import TimeoutException, WebDriverException
from selenium.webdriver.chrome.options import Options
from selenium.webdriver.chrome.service import Service
from selenium.webdriver.common.by import By
from selenium.webdriver.remote.webdriver import WebDriver
from selenium.webdriver.support import expected_conditions as EC
from selenium.webdriver.support.ui import WebDriverWait

from tipstream.core.config import Settings, settings as default_settings
from tipstream.models.schemas import MatchWithOdds

logger = logging.getLogger(__name__)


class ScrapeStatus(str, Enum):
    """Outcome of scraping one page."""
    OK = "ok"
    EMPTY = "empty"
    DEGRADED = "degraded"


@dataclass
class ScraperConfig:
    """Configuration for a browser scraper."""
    scraper_name: str = "browser_scraper"

    # Browser
    headless: bool = True
    user_agent: str = default_settings.SCRAPER_USER_AGENT
    accept_language: str = default_settings.SCRAPER_ACCEPT_LANGUAGE
    window_size: str = "1920,1080"
    chromedriver_path: Optional[str] = None

    # Timeouts and polling
    page_load_timeout: int = 60
    wait_timeout: float = 10.0
    poll_attempts: int = 5
    poll_interval: float = 1.0
    settle_delay: float = 1.0

    # Debugging
    debug_dir: Optional[str] = "debug"

    @classmethod
    def from_settings(cls, settings: Settings, scraper_name: str) -> "ScraperConfig":
        return cls(
            scraper_name=scraper_name,
            headless=settings.SCRAPER_HEADLESS,
            user_agent=settings.SCRAPER_USER_AGENT,
            accept_language=settings.SCRAPER_ACCEPT_LANGUAGE,
            chromedriver_path=settings.CHROMEDRIVER_PATH,
            page_load_timeout=settings.SCRAPER_PAGE_LOAD_TIMEOUT,
            wait_timeout=settings.SCRAPER_WAIT_TIMEOUT,
            poll_attempts=settings.SCRAPER_POLL_ATTEMPTS,
            poll_interval=settings.SCRAPER_POLL_INTERVAL,
            settle_delay=settings.SCRAPER_SETTLE_DELAY,
            debug_dir=settings.SCRAPER_DEBUG_DIR or None,
        )

    @property
    def languages(self) -> List[str]:
        """Navigator languages derived from the Accept-Language header."""
        return [part.split(";")[0].strip() for part in self.accept_language.split(",") if part.strip()]


@dataclass
class ScrapeResult:
    """Container for one page's scrape outcome."""
    url: str
    label: str
    status: ScrapeStatus
    matches: List[MatchWithOdds] = field(default_factory=list)
    scraped_at: datetime = field(default_factory=datetime.utcnow)
    error_message: Optional[str] = None
    debug_snapshot: Optional[str] = None
    response_time_ms: Optional[float] = None

    @property
    def degraded(self) -> bool:
        return self.status == ScrapeStatus.DEGRADED

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "url": self.url,
            "label": self.label,
            "status": self.status.value,
            "match_count": len(self.matches),
            "scraped_at": self.scraped_at.isoformat(),
            "error_message": self.error_message,
            "debug_snapshot": self.debug_snapshot,
            "response_time_ms": self.response_time_ms,
        }


# =============================================================================
# STEALTH BROWSER SETUP
# =============================================================================

STEALTH_SCRIPT = """
Object.defineProperty(navigator, 'webdriver', { get: () => false });
Object.defineProperty(navigator, 'plugins', { get: () => [1, 2, 3, 4, 5] });
Object.defineProperty(navigator, 'languages', { get: () => %(languages)s });
window.chrome = { runtime: {} };
"""


def build_chrome_options(config: ScraperConfig) -> Options:
    """Chrome options that hide the usual automation switches."""
    chrome_options = Options()
    if config.headless:
        chrome_options.add_argument("--headless=new")
    chrome_options.add_argument("--no-sandbox")
    chrome_options.add_argument("--disable-setuid-sandbox")
    chrome_options.add_argument("--disable-dev-shm-usage")
    chrome_options.add_argument("--disable-blink-features=AutomationControlled")
    chrome_options.add_argument(f"--window-size={config.window_size}")
    chrome_options.add_argument(f"--user-agent={config.user_agent}")
    chrome_options.add_argument(f"--lang={config.languages[0] if config.languages else 'en-US'}")

    chrome_options.add_experimental_option("excludeSwitches", ["enable-automation"])
    chrome_options.add_experimental_option("useAutomationExtension", False)

    # DOMContentLoaded is enough; heavy pages may never reach network idle
    chrome_options.page_load_strategy = "eager"
    return chrome_options


def build_extra_headers(config: ScraperConfig) -> Dict[str, str]:
    return {
        "Accept-Language": config.accept_language,
        "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,image/webp,*/*;q=0.8",
        "Upgrade-Insecure-Requests": "1",
    }


def create_stealth_driver(config: ScraperConfig) -> WebDriver:
    """
    Create a headless Chrome session with automation fingerprints removed.

    Raises WebDriverException if Chrome cannot be started.
    """
    chrome_options = build_chrome_options(config)

    if config.chromedriver_path and os.path.exists(config.chromedriver_path):
        driver = webdriver.Chrome(service=Service(executable_path=config.chromedriver_path), options=chrome_options)
    else:
        # Selenium Manager resolves a matching driver
        driver = webdriver.Chrome(options=chrome_options)

    try:
        driver.set_page_load_timeout(config.page_load_timeout)
        driver.execute_cdp_cmd("Page.addScriptToEvaluateOnNewDocument", {
            "source": STEALTH_SCRIPT % {"languages": repr(config.languages)}
        })
        driver.execute_cdp_cmd("Network.enable", {})
        driver.execute_cdp_cmd("Network.setExtraHTTPHeaders", {"headers": build_extra_headers(config)})
        driver.execute_cdp_cmd("Network.setUserAgentOverride", {
            "userAgent": config.user_agent,
            "acceptLanguage": config.accept_language,
        })
    except WebDriverException:
        driver.quit()
        raise

    return driver


def close_driver(driver: WebDriver, scraper_name: str = "browser") -> None:
    """Quit a WebDriver session, logging instead of raising."""
    try:
        driver.quit()
    except Exception as e:
        logger.warning(f"[{scraper_name}] Error closing WebDriver: {e}")


# =============================================================================
# BASE SCRAPER
# =============================================================================

class BaseBrowserScraper(ABC):
    """
    Base class for browser-driven scrapers.

    A subclass names the CSS selector that proves the match list has
    rendered (``ready_selector``) and implements ``parse_page()``.
    ``scrape_url()`` never raises: unrecognized pages, driver crashes and
    timeouts all come back as a DEGRADED result so a batch can continue
    with its other sources.
    """

    ready_selector: str = ""
    # Extra selectors counted in the debug probe when the page is not recognized
    probe_selectors: Dict[str, str] = {}

    def __init__(
        self,
        config: ScraperConfig,
        driver_factory: Optional[Callable[[ScraperConfig], WebDriver]] = None,
    ):
        self.config = config
        self.driver_factory = driver_factory or create_stealth_driver
        self.stats = {
            "total_requests": 0,
            "successful_requests": 0,
            "degraded_requests": 0,
            "total_matches": 0,
        }

    @property
    def name(self) -> str:
        return self.config.scraper_name

    async def scrape_url(self, url: str, label: str) -> ScrapeResult:
        """Scrape one page in a worker thread; Selenium calls are blocking."""
        loop = asyncio.get_running_loop()
        self.stats["total_requests"] += 1
        try:
            result = await loop.run_in_executor(None, self._scrape_blocking, url, label)
        except Exception as e:
            logger.error(f"[{self.name}] Unexpected error scraping {url}: {e}", exc_info=True)
            result = ScrapeResult(url=url, label=label, status=ScrapeStatus.DEGRADED, error_message=str(e))

        if result.degraded:
            self.stats["degraded_requests"] += 1
        else:
            self.stats["successful_requests"] += 1
            self.stats["total_matches"] += len(result.matches)
        return result

    def _scrape_blocking(self, url: str, label: str) -> ScrapeResult:
        driver: Optional[WebDriver] = None
        start_time = time.monotonic()
        try:
            logger.info(f"[{self.name}] Launching browser for {url}")
            driver = self.driver_factory(self.config)

            logger.info(f"[{self.name}] Navigating to page...")
            driver.get(url)

            if not self._wait_for_content(driver):
                snapshot = self._save_debug_snapshot(driver)
                logger.warning(f"[{self.name}] Match items not found, debug info: {self._debug_probe(driver)}")
                return ScrapeResult(
                    url=url,
                    label=label,
                    status=ScrapeStatus.DEGRADED,
                    error_message="Match list not found on page",
                    debug_snapshot=snapshot,
                    response_time_ms=(time.monotonic() - start_time) * 1000,
                )

            if self.config.settle_delay > 0:
                time.sleep(self.config.settle_delay)

            matches = self.parse_page(driver.page_source, label)
            logger.info(f"[{self.name}] Found {len(matches)} matches with odds on {url}")

            return ScrapeResult(
                url=url,
                label=label,
                status=ScrapeStatus.OK if matches else ScrapeStatus.EMPTY,
                matches=matches,
                response_time_ms=(time.monotonic() - start_time) * 1000,
            )

        except Exception as e:
            logger.error(f"[{self.name}] Error scraping URL {url}: {e}", exc_info=True)
            return ScrapeResult(
                url=url,
                label=label,
                status=ScrapeStatus.DEGRADED,
                error_message=str(e),
                response_time_ms=(time.monotonic() - start_time) * 1000,
            )
        finally:
            if driver is not None:
                close_driver(driver, self.name)

    def _wait_for_content(self, driver: WebDriver) -> bool:
        """Wait for the match list, then fall back to a bounded manual poll."""
        try:
            WebDriverWait(driver, self.config.wait_timeout).until(
                EC.presence_of_element_located((By.CSS_SELECTOR, self.ready_selector))
            )
            count = len(driver.find_elements(By.CSS_SELECTOR, self.ready_selector))
            logger.info(f"[{self.name}] Found {count} match items")
            return True
        except TimeoutException:
            logger.warning(f"[{self.name}] Wait for match list timed out, polling manually...")

        for attempt in range(self.config.poll_attempts):
            count = len(driver.find_elements(By.CSS_SELECTOR, self.ready_selector))
            if count > 0:
                logger.info(f"[{self.name}] Found {count} match items after {attempt} polls")
                return True
            time.sleep(self.config.poll_interval)

        return False

    def _save_debug_snapshot(self, driver: WebDriver) -> Optional[str]:
        """Persist the page source so selector drift can be inspected later."""
        if not self.config.debug_dir:
            return None
        try:
            os.makedirs(self.config.debug_dir, exist_ok=True)
            path = os.path.join(
                self.config.debug_dir,
                f"debug-{self.name}-{int(time.time() * 1000)}.html",
            )
            with open(path, "w", encoding="utf-8") as fh:
                fh.write(driver.page_source)
            logger.info(f"[{self.name}] HTML saved to: {path}")
            return path
        except (OSError, WebDriverException) as e:
            logger.warning(f"[{self.name}] Could not save debug snapshot: {e}")
            return None

    def _debug_probe(self, driver: WebDriver) -> Dict[str, Any]:
        info: Dict[str, Any] = {}
        try:
            selectors = {"ready": self.ready_selector, **self.probe_selectors}
            for key, selector in selectors.items():
                info[key] = len(driver.find_elements(By.CSS_SELECTOR, selector))
            info["body_text"] = driver.execute_script(
                "return document.body ? document.body.innerText.substring(0, 500) : '';"
            )
            info["url"] = driver.current_url
        except WebDriverException as e:
            info["error"] = str(e)
        return info

    @abstractmethod
    def parse_page(self, html: str, label: str) -> List[MatchWithOdds]:
        """
        Parse rendered HTML into complete match records.

        Args:
            html: Page source after the match list rendered
            label: Human-readable league label for the source

        Returns:
            Matches with all three odds; incomplete elements are skipped
        """

    def get_stats(self) -> Dict[str, Any]:
        """Get scraper statistics."""
        return {**self.stats, "scraper_name": self.name}


# =============================================================================
# PARSING HELPERS
# =============================================================================

DATE_PATTERN = re.compile(r"(\d{1,2})\.(\d{1,2})(?:\.(\d{2,4}))?")
TIME_PATTERN = re.compile(r"\b(\d{1,2}:\d{2})\b")

# Checked in order: "послезавтра" contains "завтра"
RELATIVE_DAY_WORDS = (
    ("послезавтра", 2),
    ("сегодня", 0),
    ("завтра", 1),
    ("today", 0),
    ("tomorrow", 1),
)


def extract_text(soup: BeautifulSoup, selector: str, default: str = "") -> str:
    """Extract text from element using CSS selector."""
    element = soup.select_one(selector)
    return element.get_text(strip=True) if element else default


def extract_texts(soup: BeautifulSoup, selector: str) -> List[str]:
    """Extract text from all matching elements."""
    return [el.get_text(strip=True) for el in soup.select(selector)]


def parse_decimal_odds(text: str) -> Optional[float]:
    """Parse a decimal odd like '1.55' or '1,55'; None for locked/blank cells."""
    if not text:
        return None
    match = re.search(r"\d+(?:\.\d+)?", text.replace(",", "."))
    if not match:
        return None
    value = float(match.group())
    return value if value > 0 else None


def extract_time(text: str) -> Optional[str]:
    match = TIME_PATTERN.search(text or "")
    return match.group(1) if match else None


def infer_year(day: int, month: int, today: date) -> int:
    """Year of the next occurrence of day.month on or after today."""
    if month < today.month or (month == today.month and day < today.day):
        return today.year + 1
    return today.year


def resolve_match_date(token: Optional[str], today: date) -> date:
    """
    Resolve a date token from a bookmaker page to a calendar date.

    Handles 'DD.MM.YYYY', year-less 'DD.MM' (year inferred from proximity
    to today) and the relative words today/tomorrow. Anything else, or an
    impossible date, resolves to today.
    """
    if not token:
        return today

    lowered = token.lower()
    for word, offset in RELATIVE_DAY_WORDS:
        if word in lowered:
            return today + timedelta(days=offset)

    match = DATE_PATTERN.search(token)
    if not match:
        return today

    day, month = int(match.group(1)), int(match.group(2))
    if match.group(3):
        year = int(match.group(3))
        if year < 100:
            year += 2000
    else:
        year = infer_year(day, month, today)

    try:
        return date(year, month, day)
    except ValueError:
        logger.debug(f"Unparseable date token: {token!r}")
        return today
