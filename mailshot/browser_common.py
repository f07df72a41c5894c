from typing import List

LAUNCH_ARGS: List[str] = [
    "--disable-gpu",
    "--disable-dev-shm-usage",
    "--no-sandbox",
]


def create_browser(p, headless: bool, cdp_url: str, timeout_ms: int):
    # Closing a browser attached over CDP only drops the contexts we created.
    if cdp_url:
        return p.chromium.connect_over_cdp(cdp_url, timeout=timeout_ms)
    return p.chromium.launch(headless=headless, args=LAUNCH_ARGS, timeout=timeout_ms)


def new_page(browser, width: int, height: int, timeout_ms: int):
    context = browser.new_context(viewport={"width": width, "height": height})
    context.set_default_timeout(timeout_ms)
    return context, context.new_page()
