#!/usr/bin/env python3
import asyncio
import json
import os
import sys
from dataclasses import dataclass
from urllib.parse import urljoin
from playwright.async_api import async_playwright, TimeoutError as PlaywrightTimeoutError

from arcteryx_outlet.cookie_utils import COOKIE_FILE, COOKIE_ENV_VAR, load_cookies, apply_cookies, save_cookies
from arcteryx_outlet.models.models import ProductRecord
from arcteryx_outlet.slug_utils import slugify

# --- Configuration ---
TARGET_URL = "https://arcteryx.com/ca/en/c/outlet"
SITE_ORIGIN = "https://arcteryx.com"
DEBUG_SCREENSHOT_PATH = "page_debug.png"
OUTPUT_FILE = "products.json"

USER_AGENT = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/118.0 Safari/537.36"
ACCEPT_LANGUAGE = "zh-CN,zh;q=0.9,en;q=0.8"
VIEWPORT = {"width": 1366, "height": 900}

# Slow connections: every wait is generous
DEFAULT_TIMEOUT_MS = 120000
SETTLE_DELAY_MS = 5000
SCROLL_DELAY_MS = 4000
FINAL_SETTLE_DELAY_MS = 3000
MAX_STABLE_ROUNDS = 3
MAX_SCROLL_TIMES = 80

BLOCKED_RESOURCE_TYPES = ("image", "media", "font")

PRODUCT_TILE_SELECTOR = "a.qa--product-tile__link"
PRODUCT_NAME_SELECTOR = ".sc-c100b712-307"
PRODUCT_PRICE_SELECTOR = ".qa--product-tile__price"
PRODUCT_ORIGINAL_PRICE_SELECTOR = ".qa--product-tile__original-price"
# --- END: Configuration ---


# --- START: Browser session ---

async def apply_stealth_techniques(page_or_context):
    """Apply stealth techniques to the page or context via add_init_script."""
    script = """
    Object.defineProperty(navigator, 'webdriver', {
        get: () => undefined,
        configurable: true
    });
    Object.defineProperty(navigator, 'plugins', {
        get: () => [
            {description: "Portable Document Format", filename: "internal-pdf-viewer", length: 1, name: "Chrome PDF Plugin"},
            {description: "Portable Document Format", filename: "mhjfbmdgcfjbbpaeojofohoefgiehjai", length: 1, name: "Chrome PDF Viewer"},
            {description: "Native Client", filename: "internal-nacl-plugin", length: 2, name: "Native Client"}
        ]
    });
    Object.defineProperty(navigator, 'languages', {
        get: () => ['zh-CN', 'zh', 'en'],
        configurable: true
    });
    window.chrome = window.chrome || {app: {isInstalled: false}, runtime: {}};
    const originalQuery = window.navigator.permissions.query;
    window.navigator.permissions.query = (parameters) => (
        parameters.name === 'notifications' ?
            Promise.resolve({ state: Notification.permission }) :
            originalQuery(parameters)
    );
    """
    await page_or_context.add_init_script(script)
    print("Stealth techniques applied via add_init_script.")


async def block_heavy_resources(route):
    """Aborts image/media/font requests, everything else goes through untouched."""
    if route.request.resource_type in BLOCKED_RESOURCE_TYPES:
        await route.abort()
    else:
        await route.continue_()


async def create_browser_session(playwright, headless_mode=False):
    """Launches Chromium and returns (browser, context, page) ready for scraping."""
    print(f"Attempting to launch browser (headless: {headless_mode})")
    browser = await playwright.chromium.launch(
        headless=headless_mode,
        args=[
            "--no-sandbox",
            "--disable-setuid-sandbox",
            "--disable-dev-shm-usage",
            "--disable-gpu",
            "--disable-blink-features=AutomationControlled",
        ],
    )

    context = await browser.new_context(
        viewport=VIEWPORT,
        user_agent=USER_AGENT,
        extra_http_headers={"Accept-Language": ACCEPT_LANGUAGE},
    )
    await apply_stealth_techniques(context)

    page = await context.new_page()
    page.set_default_timeout(DEFAULT_TIMEOUT_MS)
    page.set_default_navigation_timeout(DEFAULT_TIMEOUT_MS)

    # Images, media and fonts are skipped to keep bandwidth down
    await page.route("**/*", block_heavy_resources)

    return browser, context, page

# --- END: Browser session ---


async def open_listing(page, url, settle_delay_ms=SETTLE_DELAY_MS, screenshot_path=DEBUG_SCREENSHOT_PATH):
    print(f"Navigating to {url} ...")
    await page.goto(url, wait_until="networkidle", timeout=DEFAULT_TIMEOUT_MS)
    # First screen gets extra time on slow links
    await page.wait_for_timeout(settle_delay_ms)
    await page.screenshot(path=screenshot_path, full_page=True)
    print(f"  Screenshot saved to {screenshot_path}")


@dataclass
class ScrollResult:
    scroll_times: int
    stable_rounds: int
    count: int


async def scroll_until_stable(page, selector=PRODUCT_TILE_SELECTOR, scroll_delay_ms=SCROLL_DELAY_MS,
                              max_stable_rounds=MAX_STABLE_ROUNDS, max_scroll_times=MAX_SCROLL_TIMES):
    """
    Scrolls the listing until lazy loading stops adding tiles.

    Each round scrolls 80% of the viewport, waits `scroll_delay_ms` and counts the
    elements matching `selector`. Stops once the count has stayed the same for
    `max_stable_rounds` rounds in a row, or after more than `max_scroll_times` scrolls.
    There is no end-of-list detection: a stalled page looks the same as a finished one.
    """
    scroll_times = 0
    stable_rounds = 0
    last_count = 0

    while True:
        await page.evaluate("window.scrollBy(0, window.innerHeight * 0.8)")
        await page.wait_for_timeout(scroll_delay_ms)
        scroll_times += 1

        count = await page.locator(selector).count()
        print(f"  Scroll {scroll_times}: {count} products on page")

        if count == last_count:
            stable_rounds += 1
        else:
            stable_rounds = 0
            last_count = count

        if stable_rounds >= max_stable_rounds or scroll_times > max_scroll_times:
            break

    if stable_rounds >= max_stable_rounds:
        print(f"Product count stable for {stable_rounds} rounds after {scroll_times} scrolls.")
    else:
        print(f"Reached scroll limit of {max_scroll_times} with product count still changing.")
    return ScrollResult(scroll_times=scroll_times, stable_rounds=stable_rounds, count=last_count)


def absolute_product_url(href, origin=SITE_ORIGIN):
    return urljoin(origin + "/", href)


async def _element_text(el):
    if not el:
        return None
    text = await el.inner_text()
    return text.strip() if text else None


async def extract_products(page, origin=SITE_ORIGIN):
    """Reads every product tile; tiles missing a name, price or link are skipped."""
    products = []
    tile_elements = await page.query_selector_all(PRODUCT_TILE_SELECTOR)
    print(f"Extracting product information from {len(tile_elements)} tiles...")

    for tile_el in tile_elements:
        name = await _element_text(await tile_el.query_selector(PRODUCT_NAME_SELECTOR))
        # Original price is only read when the tile has no sale price element at all
        price_el = await tile_el.query_selector(PRODUCT_PRICE_SELECTOR)
        if not price_el:
            price_el = await tile_el.query_selector(PRODUCT_ORIGINAL_PRICE_SELECTOR)
        price = await _element_text(price_el)
        href = await tile_el.get_attribute("href")
        href = href.strip() if href else None

        if name and price and href:
            products.append(ProductRecord(name=name, price=price, link=absolute_product_url(href, origin)))

    return products


async def fetch_all_products(url, cookie_file=COOKIE_FILE, cookie_env_var=COOKIE_ENV_VAR,
                             screenshot_path=DEBUG_SCREENSHOT_PATH, headless_mode=False,
                             settle_delay_ms=SETTLE_DELAY_MS, scroll_delay_ms=SCROLL_DELAY_MS,
                             final_settle_delay_ms=FINAL_SETTLE_DELAY_MS,
                             max_stable_rounds=MAX_STABLE_ROUNDS, max_scroll_times=MAX_SCROLL_TIMES):
    """
    Scrapes every product tile from an infinite-scroll outlet listing.

    Returns a list of ProductRecord with slugs filled in. Errors are printed and
    not raised: on failure the list holds whatever was collected, usually nothing.
    """
    products = []
    browser = None

    async with async_playwright() as p:
        try:
            browser, context, page = await create_browser_session(p, headless_mode=headless_mode)

            cookies, source = load_cookies(cookie_file, cookie_env_var)
            await apply_cookies(context, cookies, source)

            await open_listing(page, url, settle_delay_ms=settle_delay_ms, screenshot_path=screenshot_path)

            await scroll_until_stable(
                page,
                scroll_delay_ms=scroll_delay_ms,
                max_stable_rounds=max_stable_rounds,
                max_scroll_times=max_scroll_times,
            )
            # Let the last screen finish loading
            await page.wait_for_timeout(final_settle_delay_ms)

            products = await extract_products(page)
            print(f"Scraped {len(products)} products.")

            await save_cookies(context, cookie_file)

        except PlaywrightTimeoutError as pte:
            print(f"A Playwright timeout occurred during the scraping process: {pte}")
        except Exception as e:
            print(f"A critical error occurred during the scraping process: {e}")

        finally:
            if browser and browser.is_connected():
                print("Closing browser...")
                await browser.close()

    for product in products:
        product.slug = slugify(product.name)
    return products


def write_products(products, output_path=OUTPUT_FILE):
    with open(output_path, "w", encoding="utf-8") as f:
        json.dump([product.to_dict() for product in products], f, indent=2, ensure_ascii=False)
    print(f"Saved {len(products)} products to {output_path}")


async def main(argv=None):
    argv = sys.argv[1:] if argv is None else argv
    target_url = argv[0] if argv else TARGET_URL
    headless_mode = os.environ.get("ARCTERYX_HEADLESS", "").lower() in ("1", "true", "yes")

    print(f"Starting outlet scraper for {target_url}")
    products = await fetch_all_products(target_url, headless_mode=headless_mode)
    write_products(products)

    if not products:
        print("No products were scraped in this session.")
        return products

    print("\n--- First 3 products ---")
    for product in products[:3]:
        print(f"  Name: {product.name}")
        print(f"  Price: {product.price}")
        print(f"  URL: {product.link}")
        print(f"  Slug: {product.slug}")
        print("---------------------")
    return products


def run():
    asyncio.run(main())


if __name__ == "__main__":
    run()
