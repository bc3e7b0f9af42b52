"""In-memory stand-ins for the Playwright objects the scraper touches."""
import pytest

import scraper


class FakeNode:
    def __init__(self, text):
        self._text = text

    async def inner_text(self):
        return self._text


class FakeTile:
    def __init__(self, name=None, price=None, href=None, original_price=None):
        self._nodes = {
            scraper.PRODUCT_NAME_SELECTOR: name,
            scraper.PRODUCT_PRICE_SELECTOR: price,
            scraper.PRODUCT_ORIGINAL_PRICE_SELECTOR: original_price,
        }
        self._href = href

    async def query_selector(self, selector):
        text = self._nodes.get(selector)
        return FakeNode(text) if text is not None else None

    async def get_attribute(self, name):
        return self._href if name == "href" else None


class FakePage:
    """
    `counts`, when given, is what the tile locator counts after each scroll; the
    last value repeats once the list runs out. Otherwise it counts `tiles`.
    Extraction always sees `tiles`.
    """

    def __init__(self, tiles=None, counts=None, fail_on_goto=None):
        self.tiles = list(tiles or [])
        self.counts = list(counts) if counts is not None else None
        self.fail_on_goto = fail_on_goto
        self.scrolls = 0
        self.waits = []
        self.visited = []
        self.screenshots = []
        self.routes = []
        self.default_timeout = None
        self.default_navigation_timeout = None

    def set_default_timeout(self, timeout):
        self.default_timeout = timeout

    def set_default_navigation_timeout(self, timeout):
        self.default_navigation_timeout = timeout

    async def route(self, pattern, handler):
        self.routes.append((pattern, handler))

    async def goto(self, url, wait_until=None, timeout=None):
        if self.fail_on_goto:
            raise self.fail_on_goto
        self.visited.append((url, wait_until, timeout))

    async def wait_for_timeout(self, timeout):
        self.waits.append(timeout)

    async def screenshot(self, path=None, full_page=False):
        self.screenshots.append((path, full_page))

    async def evaluate(self, expression):
        if "scrollBy" in expression:
            self.scrolls += 1

    def visible_count(self):
        if self.counts is None or self.scrolls == 0:
            return len(self.tiles)
        index = min(self.scrolls, len(self.counts)) - 1
        return self.counts[index]

    def locator(self, selector):
        return FakeLocator(self)

    async def query_selector_all(self, selector):
        return list(self.tiles)


class FakeLocator:
    def __init__(self, page):
        self.page = page

    async def count(self):
        return self.page.visible_count()


class FakeContext:
    def __init__(self, page, cookies=None, cookie_error=None):
        self.page = page
        self.cookie_error = cookie_error
        self.added_cookies = []
        self.init_scripts = []
        self.current_cookies = list(cookies or [])

    async def add_init_script(self, script):
        self.init_scripts.append(script)

    async def new_page(self):
        return self.page

    async def add_cookies(self, cookies):
        if self.cookie_error:
            raise self.cookie_error
        self.added_cookies.extend(cookies)

    async def cookies(self):
        return self.current_cookies


class FakeBrowser:
    def __init__(self, context):
        self.context = context
        self.closed = False
        self.context_options = None

    async def new_context(self, **options):
        self.context_options = options
        return self.context

    def is_connected(self):
        return not self.closed

    async def close(self):
        self.closed = True


class FakeChromium:
    def __init__(self, browser, launch_error=None):
        self.browser = browser
        self.launch_error = launch_error
        self.launch_options = None

    async def launch(self, **options):
        if self.launch_error:
            raise self.launch_error
        self.launch_options = options
        return self.browser


class FakePlaywright:
    def __init__(self, chromium):
        self.chromium = chromium

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False


class FakeRequest:
    def __init__(self, resource_type):
        self.resource_type = resource_type


class FakeRoute:
    def __init__(self, resource_type):
        self.request = FakeRequest(resource_type)
        self.outcome = None

    async def abort(self):
        self.outcome = "abort"

    async def continue_(self):
        self.outcome = "continue"


@pytest.fixture
def fake_browser(monkeypatch):
    """Patches async_playwright in scraper; returns a builder for the fake stack."""

    def build(page, session_cookies=None, launch_error=None, cookie_error=None):
        context = FakeContext(page, cookies=session_cookies, cookie_error=cookie_error)
        browser = FakeBrowser(context)
        chromium = FakeChromium(browser, launch_error=launch_error)
        monkeypatch.setattr(scraper, "async_playwright", lambda: FakePlaywright(chromium))
        return chromium, browser, context

    return build
