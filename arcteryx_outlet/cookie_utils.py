#!/usr/bin/env python3
import json
import os
from playwright.async_api import Error as PlaywrightError

# --- Configuration ---
COOKIE_FILE = "cookies.json"
COOKIE_ENV_VAR = "ARCTERYX_COOKIE"  # e.g. export ARCTERYX_COOKIE="a=1; b=2"
COOKIE_DOMAIN = ".arcteryx.com"

VALID_SAME_SITE = ("Strict", "Lax", "None")
# Attributes accepted by BrowserContext.add_cookies; anything else (Puppeteer's size, session, priority...) is dropped
SETTABLE_COOKIE_FIELDS = (
    "name", "value", "url", "domain", "path", "expires", "httpOnly", "secure", "sameSite", "partitionKey",
)


def _is_number(value):
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def sanitize_cookie(cookie):
    """Returns a copy of one stored cookie that the browser cookie API will accept."""
    fixed = {key: value for key, value in cookie.items() if key in SETTABLE_COOKIE_FIELDS}

    if fixed.get("sameSite") not in VALID_SAME_SITE:
        fixed.pop("sameSite", None)

    if "expires" in fixed and not _is_number(fixed["expires"]):
        del fixed["expires"]

    # Playwright wants either a url or a domain/path pair
    if fixed.get("domain") and not fixed.get("url") and not fixed.get("path"):
        fixed["path"] = "/"

    return fixed


def parse_cookie_header(raw, domain=COOKIE_DOMAIN):
    """Parses "name=value; name2=value2" into cookie dicts bound to `domain`."""
    cookies = []
    for pair in raw.split(";"):
        pair = pair.strip()
        if not pair:
            continue
        name, _, value = pair.partition("=")
        cookies.append({"name": name.strip(), "value": value, "domain": domain, "path": "/"})
    return cookies


def load_cookies(cookie_file=COOKIE_FILE, env_var=COOKIE_ENV_VAR):
    """
    Reads the saved cookie set, falling back to the cookie header in `env_var`.
    Returns (cookies, source) where source is "file", "env" or None.
    A cookie file that cannot be read or parsed is reported and treated as no cookies.
    """
    if os.path.exists(cookie_file):
        try:
            with open(cookie_file, "r", encoding="utf-8") as f:
                stored = json.load(f)
            if not isinstance(stored, list):
                raise ValueError(f"expected a JSON array of cookies, got {type(stored).__name__}")
            return [sanitize_cookie(c) for c in stored], "file"
        except (OSError, ValueError, TypeError, AttributeError) as e:
            # json.JSONDecodeError is a ValueError
            print(f"Error reading cookies from {cookie_file}: {e}. Will proceed without cookies.")
            return [], None

    raw_header = os.environ.get(env_var)
    if raw_header:
        return parse_cookie_header(raw_header), "env"

    return [], None


async def apply_cookies(context, cookies, source=None):
    if not cookies:
        print("No stored cookies found. Continuing with a fresh session.")
        return 0
    if source == "env":
        await context.add_cookies(cookies)
        print(f"Injected {len(cookies)} cookies from ${COOKIE_ENV_VAR}")
    else:
        # A rejected cookie file is treated like an unreadable one
        try:
            await context.add_cookies(cookies)
        except PlaywrightError as e:
            print(f"Error applying cookies from cookie file: {e}. Will proceed without cookies.")
            return 0
        print(f"Injected {len(cookies)} cookies from cookie file")
    return len(cookies)


async def save_cookies(context, cookie_file=COOKIE_FILE):
    """Overwrites `cookie_file` with the context's current cookies. Returns how many were written."""
    cookies = await context.cookies()
    with open(cookie_file, "w", encoding="utf-8") as f:
        json.dump(cookies, f, indent=2, ensure_ascii=False)
    print(f"Saved {len(cookies)} cookies to {cookie_file}")
    return len(cookies)
