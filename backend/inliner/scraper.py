"""
Fetch-normalize-inline pipeline.

Fetches a page, absolutizes every resource reference, then fetches all linked
stylesheets concurrently and splices them in as <style> blocks. Stylesheet
fetches are raced against one global deadline; whatever has not finished by
then is cancelled and left as it was.

Stylesheet tasks only return StylesheetResult values. The coordinating
coroutine in inline_page is the only code that mutates the parsed tree.
"""

import asyncio
import logging
import time
from typing import Callable
from urllib.parse import urljoin

import httpx
from bs4 import Tag

from inliner.config import Settings, get_settings
from inliner.css import rewrite_css_urls
from inliner.document import (
    degrade_stylesheet,
    find_stylesheet_links,
    inline_stylesheet,
    page_title,
    parse_html,
    rewrite_document,
    serialize,
)
from inliner.models import (
    InlineResult,
    MainFetchError,
    Stage,
    StylesheetOutcome,
    StylesheetResult,
)
from inliner.urls import normalize

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Fetching
# ---------------------------------------------------------------------------

async def fetch_main_page(client: httpx.AsyncClient, url: str, settings: Settings) -> httpx.Response:
    """GET the page itself. Any failure is fatal for the whole pipeline."""
    timeout = settings.main_fetch_timeout
    try:
        response = await asyncio.wait_for(client.get(url, timeout=timeout), timeout=timeout)
        response.raise_for_status()
    except (asyncio.TimeoutError, httpx.TimeoutException):
        raise MainFetchError(url, f"Timed out after {timeout:g}s fetching {url}") from None
    except httpx.HTTPStatusError as e:
        raise MainFetchError(url, f"{url} returned HTTP {e.response.status_code}") from e
    except (httpx.HTTPError, httpx.InvalidURL) as e:
        raise MainFetchError(url, f"Failed to fetch {url}: {e}") from e
    return response


async def fetch_stylesheet(
    client: httpx.AsyncClient,
    url: str,
    settings: Settings,
    semaphore: asyncio.Semaphore,
) -> StylesheetResult:
    """Fetch one stylesheet and rewrite its url() references against its own URL."""
    timeout = settings.stylesheet_fetch_timeout
    async with semaphore:
        try:
            response = await asyncio.wait_for(client.get(url, timeout=timeout), timeout=timeout)
            response.raise_for_status()
        except (asyncio.TimeoutError, httpx.TimeoutException):
            return StylesheetResult(url, StylesheetOutcome.TIMED_OUT, error=f"timed out after {timeout:g}s")
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            return StylesheetResult(url, StylesheetOutcome.FAILED, error=str(e) or type(e).__name__)

    return StylesheetResult(url, StylesheetOutcome.SUCCEEDED, css=rewrite_css_urls(response.text, url))


async def fetch_stylesheets(
    client: httpx.AsyncClient,
    urls: list[str],
    settings: Settings,
) -> dict[str, StylesheetResult]:
    """
    Fetch every URL concurrently, bounded by settings.stylesheet_deadline.

    Tasks still running at the deadline are cancelled and awaited, so their
    connections are released, and reported as ABANDONED.
    """
    if not urls:
        return {}

    semaphore = asyncio.Semaphore(settings.max_concurrent_stylesheets)
    tasks = {
        asyncio.create_task(fetch_stylesheet(client, url, settings, semaphore)): url
        for url in urls
    }
    done, pending = await asyncio.wait(list(tasks), timeout=settings.stylesheet_deadline)

    results: dict[str, StylesheetResult] = {}
    for task in done:
        url = tasks[task]
        error = task.exception()
        if error is not None:
            results[url] = StylesheetResult(url, StylesheetOutcome.FAILED, error=repr(error))
        else:
            results[url] = task.result()

    if pending:
        logger.warning(
            "Stylesheet deadline of %gs reached, abandoning %d of %d fetches",
            settings.stylesheet_deadline,
            len(pending),
            len(tasks),
        )
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)
        for task in pending:
            url = tasks[task]
            results[url] = StylesheetResult(url, StylesheetOutcome.ABANDONED)

    return results


def stylesheet_url(href: str, base: str) -> str:
    """Absolute URL to fetch for a <link href>; protocol-relative hrefs take the page scheme."""
    if href.strip().startswith("//"):
        return urljoin(base, href.strip())
    return normalize(href, base)


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------

async def inline_page(
    url: str,
    settings: Settings | None = None,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
    on_stage: Callable[[Stage], None] | None = None,
) -> InlineResult:
    """
    Turn ``url`` into one self-contained HTML document.

    Raises MainFetchError if the page itself cannot be fetched. Stylesheet
    failures never raise: failed sheets stay as <link> elements with an
    absolute href, abandoned ones are left untouched.
    """
    settings = settings or get_settings()
    url = url.strip()
    started = time.perf_counter()

    def enter(stage: Stage) -> None:
        logger.debug("[%s] %s", url, stage.value)
        if on_stage:
            on_stage(stage)

    enter(Stage.IDLE)
    async with httpx.AsyncClient(
        headers=settings.request_headers,
        follow_redirects=True,
        transport=transport,
    ) as client:
        enter(Stage.FETCHING_MAIN)
        logger.info("Fetching %s", url)
        try:
            response = await fetch_main_page(client, url, settings)
        except MainFetchError as e:
            enter(Stage.MAIN_FAILED)
            logger.error("Main fetch failed: %s", e)
            raise

        # The requested URL is the base even after redirects
        base = url
        final_url = str(response.url)
        if response.history:
            logger.info("%s redirected to %s", url, final_url)

        enter(Stage.TRANSFORMING)
        soup = parse_html(response.text)
        rewrite_document(soup, base)

        links_by_url: dict[str, list[Tag]] = {}
        for link in find_stylesheet_links(soup):
            links_by_url.setdefault(stylesheet_url(link["href"], base), []).append(link)

        enter(Stage.FETCHING_STYLESHEETS)
        results = await fetch_stylesheets(client, list(links_by_url), settings)

    enter(Stage.ASSEMBLING)
    result = InlineResult(html="", url=url, base_url=base, title=page_title(soup), final_url=final_url)
    for sheet_url, sheet in results.items():
        links = links_by_url[sheet_url]
        if sheet.ok:
            for link in links:
                inline_stylesheet(soup, link, sheet_url, sheet.css)
            result.stylesheets_inlined += 1
            logger.debug("Inlined stylesheet %s", sheet_url)
        elif sheet.outcome is StylesheetOutcome.ABANDONED:
            result.stylesheets_abandoned += 1
        else:
            for link in links:
                degrade_stylesheet(link, sheet_url)
            result.stylesheets_failed += 1
            logger.warning("Failed to load css %s (%s): %s", sheet_url, sheet.outcome.value, sheet.error)

    result.html = serialize(soup)
    result.elapsed = time.perf_counter() - started
    enter(Stage.DONE)
    logger.info(
        "Inlined %s in %.2fs: %d stylesheet(s) inlined, %d degraded, %d abandoned",
        url,
        result.elapsed,
        result.stylesheets_inlined,
        result.stylesheets_failed,
        result.stylesheets_abandoned,
    )
    return result
