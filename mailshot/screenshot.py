import logging
from pathlib import Path

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import sync_playwright

from .browser_common import create_browser, new_page
from .utils import screenshot_path

logger = logging.getLogger(__name__)

HTML_TEMPLATE = """<!DOCTYPE html>
<html>
<head>
    <meta charset="UTF-8">
    <style>
        body {{
            margin: 20px;
            font-family: -apple-system, BlinkMacSystemFont, "Segoe UI", Roboto, "Helvetica Neue", Arial, sans-serif;
            font-size: 14px;
            line-height: 1.5;
        }}
        img {{
            max-width: 100%;
            height: auto;
        }}
    </style>
</head>
<body>
{body}
</body>
</html>"""


class RenderError(RuntimeError):
    pass


def wrap_html(html_content: str) -> str:
    return HTML_TEMPLATE.format(body=html_content)


class ScreenshotGenerator:
    """Renders email HTML to image files with headless Chromium.

    The output directory is created on construction. The browser starts on
    the first render and stays up until close(), so a run that renders
    nothing never launches one.
    """

    def __init__(
        self,
        output_dir: Path,
        width: int,
        height: int,
        timeout_sec: float = 30,
        settle_ms: int = 500,
        image_format: str = "png",
        quality: int = 90,
        headless: bool = True,
        cdp_url: str = "",
    ) -> None:
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self.width = width
        self.height = height
        self.timeout_ms = int(timeout_sec * 1000)
        self.settle_ms = settle_ms
        self.image_format = image_format.lower()
        if self.image_format not in {"png", "jpeg"}:
            raise ValueError(f"Unsupported screenshot format: {image_format}")
        self.quality = quality
        self.headless = headless
        self.cdp_url = cdp_url
        self._playwright = None
        self._browser = None

    def __enter__(self) -> "ScreenshotGenerator":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def extension(self) -> str:
        return "jpg" if self.image_format == "jpeg" else "png"

    def _ensure_browser(self):
        if self._browser is not None:
            return self._browser
        self._playwright = sync_playwright().start()
        try:
            self._browser = create_browser(self._playwright, self.headless, self.cdp_url, self.timeout_ms)
        except Exception:
            self._playwright.stop()
            self._playwright = None
            raise
        logger.debug("Browser started (cdp=%s)", bool(self.cdp_url))
        return self._browser

    def close(self) -> None:
        if self._browser is not None:
            try:
                self._browser.close()
            except PlaywrightError:
                logger.warning("Browser did not close cleanly", exc_info=True)
            self._browser = None
        if self._playwright is not None:
            self._playwright.stop()
            self._playwright = None
            logger.debug("Browser stopped")

    def capture(self, html_content: str) -> bytes:
        try:
            browser = self._ensure_browser()
            context, page = new_page(browser, self.width, self.height, self.timeout_ms)
            try:
                page.set_content(wrap_html(html_content), wait_until="load", timeout=self.timeout_ms)
                page.wait_for_timeout(self.settle_ms)
                if self.image_format == "jpeg":
                    return page.screenshot(
                        full_page=True, type="jpeg", quality=self.quality, timeout=self.timeout_ms
                    )
                return page.screenshot(full_page=True, type="png", timeout=self.timeout_ms)
            finally:
                context.close()
        except PlaywrightError as exc:
            raise RenderError(f"failed to generate screenshot: {exc}") from exc

    def generate_screenshot(self, received_at: str, email_id: str, html_content: str) -> Path:
        try:
            output_path = screenshot_path(self.output_dir, received_at, email_id, self.extension)
        except ValueError as exc:
            raise RenderError(f"failed to parse timestamp '{received_at}': {exc}") from exc

        image = self.capture(html_content)
        output_path.write_bytes(image)
        logger.debug("Wrote %d bytes to %s", len(image), output_path)
        return output_path
