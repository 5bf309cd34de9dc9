"""
Build the service agreement HTML from a render request and print it to PDF.
Pricing comes from engine.pricing, per-category blocks from reporting.sections.
Renders to PDF via Playwright (headless Chromium).
"""
from __future__ import annotations

import html
import logging
import os
import re
import tempfile
from pathlib import Path
from typing import Any, Mapping

from engine.pricing import compute_pricing
from models import AgreementRequest, PricingBreakdown
from services.normalizer import parse_date_au, safe_join

from .format_utils import format_currency_aud
from .sections import cover_page_site_names_html, incentives_html, services_html, signature_html

logger = logging.getLogger(__name__)

# Template path relative to this file
TEMPLATE_DIR = Path(__file__).resolve().parent / "templates"
AGREEMENT_TEMPLATE_PATH = TEMPLATE_DIR / "service-agreement.html"
_AGREEMENT_HTML = AGREEMENT_TEMPLATE_PATH.read_text(encoding="utf-8")

CHROMIUM_EXECUTABLE_PATH = os.environ.get("CHROMIUM_EXECUTABLE_PATH", "").strip()
PDF_PAGE_MARGIN_MM = os.environ.get("PDF_PAGE_MARGIN_MM", "").strip()
PDF_RENDER_TIMEOUT_MS = int(os.environ.get("PDF_RENDER_TIMEOUT_MS", "30000"))

_TOKEN_RE = re.compile(r"__([A-Z][A-Z_]*[A-Z])__")
_BASE_TAG_RE = re.compile(r"<base\s+href=", re.IGNORECASE)
_HEAD_OPEN_RE = re.compile(r"<head[^>]*>", re.IGNORECASE)

# Resolves once every image has loaded (or failed) and web fonts are ready.
_WAIT_FOR_ASSETS_JS = """
async () => {
  const pending = Array.from(document.images)
    .filter((img) => !img.complete)
    .map((img) => new Promise((resolve) => { img.onload = img.onerror = resolve; }));
  if (document.fonts && document.fonts.ready) pending.push(document.fonts.ready);
  await Promise.all(pending);
}
"""


class PdfRenderError(RuntimeError):
    """Chromium could not be launched or the page could not be printed."""


def _escape(s: Any) -> str:
    return html.escape("" if s is None else str(s), quote=True)


def _phone_line(request: AgreementRequest) -> str:
    mobile = (request.account_mobile or "").strip()
    phone = (request.account_phone or "").strip()
    return safe_join(
        [f"Mobile: {mobile}" if mobile else None, f"Phone: {phone}" if phone else None],
        " | ",
    )


def _business_address(request: AgreementRequest) -> str:
    return safe_join(
        [
            request.business_street_address,
            request.business_city,
            request.business_postcode,
            request.business_state,
            "Australia",
        ],
        ", ",
    )


def template_values(
    request: AgreementRequest,
    breakdown: PricingBreakdown,
    today: str = "",
) -> dict[str, str]:
    """Token -> replacement. Plain text values are escaped; section tokens carry markup."""
    agreement = request.service_agreement
    sites = agreement.sites
    contract_total = format_currency_aud(breakdown.contract_total) if breakdown.grand_total else ""
    return {
        "COMPANY_NAME": _escape(request.company_name),
        "ABN": _escape(request.abn),
        "ADDRESS": _escape(_business_address(request)),
        "ACCOUNTS_EMAILS": _escape(request.account_email),
        "ACCOUNT_PHONE": _escape(_phone_line(request)),
        "START_DATE": parse_date_au(agreement.start_date),
        "END_DATE": parse_date_au(agreement.end_date),
        "EXPIRY_DATE": parse_date_au(agreement.expire_at),
        "CONTRACT_TOTAL": contract_total,
        "SERVICE_CONTENT": services_html(sites, request.frequencies, request.odour_control_units),
        "INCENTIVES_HTML": incentives_html(breakdown),
        "SITE_NAMES": cover_page_site_names_html(sites),
        "NAME": _escape(request.sign_full_name),
        "SIGN_TITLE": _escape(request.sign_title),
        "SIGNATURE": signature_html(request.signature_data_url),
        "DATE": _escape(today),
        "SALESPERSON": _escape(request.salesperson_name),
    }


def replace_tokens(template: str, values: Mapping[str, str]) -> str:
    """Single pass over __TOKEN__ placeholders; tokens with no value become ""."""
    return _TOKEN_RE.sub(lambda m: values.get(m.group(1)) or "", template)


def price_request(request: AgreementRequest) -> PricingBreakdown:
    return compute_pricing(
        request.sites,
        request.frequencies,
        request.odour_control_units,
        incentives_enabled=request.incentives_enabled,
    )


def fill_template(template: str, request: AgreementRequest, today: str = "") -> str:
    """Replace every placeholder in template with values derived from request."""
    breakdown = price_request(request)
    return replace_tokens(str(template or ""), template_values(request, breakdown, today=today))


def build_agreement_html(
    request: AgreementRequest,
    today: str = "",
    template: str | None = None,
) -> str:
    """
    Produce the full agreement HTML. today is the DD/MM/YYYY signing date shown on
    the acceptance page; callers pass services.normalizer.today_au().
    """
    return fill_template(template if template is not None else _AGREEMENT_HTML, request, today=today)


def inject_base_href(html_content: str, base_url: str) -> str:
    """Add <base href> right after <head> so relative assets resolve; keeps an existing one."""
    if _BASE_TAG_RE.search(html_content):
        return html_content
    return _HEAD_OPEN_RE.sub(lambda m: f'{m.group(0)}<base href="{_escape(base_url)}">', html_content, count=1)


def _launch_kwargs() -> dict[str, Any]:
    args = ["--allow-file-access-from-files", "--enable-local-file-accesses"]
    if os.environ.get("AWS_EXECUTION_ENV"):
        args += ["--no-sandbox", "--single-process"]
    kwargs: dict[str, Any] = {"args": args}
    if CHROMIUM_EXECUTABLE_PATH:
        kwargs["executable_path"] = CHROMIUM_EXECUTABLE_PATH
    return kwargs


def _pdf_kwargs(page_margin_mm: int | float | None, pdf_options: Mapping[str, Any] | None) -> dict[str, Any]:
    opts: dict[str, Any] = {"print_background": True, "prefer_css_page_size": True}
    if page_margin_mm is None and PDF_PAGE_MARGIN_MM:
        try:
            page_margin_mm = float(PDF_PAGE_MARGIN_MM)
        except ValueError:
            logger.warning("Ignoring invalid PDF_PAGE_MARGIN_MM=%r", PDF_PAGE_MARGIN_MM)
    if page_margin_mm is not None:
        margin_in = f"{page_margin_mm / 25.4:.2f}in"
        opts["margin"] = {"top": margin_in, "bottom": margin_in, "left": margin_in, "right": margin_in}
    opts.update(pdf_options or {})
    return opts


def _sync_playwright():
    try:
        from playwright.sync_api import sync_playwright
    except ImportError as e:
        raise PdfRenderError("Playwright is required for PDF. Install: pip install playwright && playwright install chromium") from e
    return sync_playwright


def check_pdf_runtime() -> None:
    """Launch Chromium with the same settings html_to_pdf uses and print a blank page."""
    sync_playwright = _sync_playwright()
    try:
        with sync_playwright() as p:
            browser = p.chromium.launch(**_launch_kwargs())
            try:
                page = browser.new_page()
                page.set_content("<html><body>ok</body></html>")
                page.pdf(**_pdf_kwargs(None, None))
            finally:
                browser.close()
    except Exception as e:
        raise PdfRenderError(f"Chromium unavailable: {e!s}") from e


def html_to_pdf(
    html_content: str,
    base_url: str | None = None,
    page_margin_mm: int | float | None = None,
    pdf_options: Mapping[str, Any] | None = None,
) -> bytes:
    """
    Render HTML to PDF using Playwright. The page is loaded from a temp file so
    file:// assets are reachable, and printing waits for images and fonts.
    Raises PdfRenderError on any failure.
    """
    sync_playwright = _sync_playwright()
    if base_url:
        html_content = inject_base_href(html_content, base_url)

    with tempfile.TemporaryDirectory(prefix="agreement-") as tmp_dir:
        html_path = Path(tmp_dir) / "render.html"
        html_path.write_text(html_content, encoding="utf-8")
        try:
            with sync_playwright() as p:
                browser = p.chromium.launch(**_launch_kwargs())
                try:
                    page = browser.new_page()
                    page.on("requestfailed", lambda r: logger.warning("Request failed: %s %s", r.url, r.failure))
                    page.on("console", lambda msg: logger.debug("Page console [%s] %s", msg.type, msg.text))
                    page.goto(html_path.as_uri(), wait_until="networkidle", timeout=PDF_RENDER_TIMEOUT_MS)
                    page.evaluate(_WAIT_FOR_ASSETS_JS)
                    page.emulate_media(media="print")
                    pdf_bytes = page.pdf(**_pdf_kwargs(page_margin_mm, pdf_options))
                finally:
                    browser.close()
        except Exception as e:
            raise PdfRenderError(f"PDF rendering failed: {e!s}") from e
    logger.info("Rendered agreement PDF (%d bytes)", len(pdf_bytes))
    return pdf_bytes


def build_agreement_pdf(
    request: AgreementRequest,
    today: str = "",
    page_margin_mm: int | float | None = None,
) -> bytes:
    """Fill the template, then print it. Relative assets resolve from the template folder."""
    html_str = build_agreement_html(request, today=today)
    return html_to_pdf(html_str, base_url=TEMPLATE_DIR.as_uri() + "/", page_margin_mm=page_margin_mm)
