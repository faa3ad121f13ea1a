"""Captive landing page (insecure surface).

The hotspot controller intercepts the visitor's first plain-HTTP request and
sends it here. The page cannot do anything useful over HTTP, so its only job
is to move the visitor to the HTTPS purchase entry point on the same host.
"""

import html as html_mod
import logging

from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse, RedirectResponse

from app.core.config import get_settings
from app.services.redirect_gateway import secure_entry_url

logger = logging.getLogger(__name__)

router = APIRouter()
settings = get_settings()

LANDING_CSP = "default-src 'none'; style-src 'unsafe-inline'; frame-ancestors 'none'"


def render_landing_page(continue_url: str, portal_name: str, organization: str) -> str:
    """Landing page with a single continue link (no script needed)."""
    continue_href = html_mod.escape(continue_url, quote=True)
    name = html_mod.escape(portal_name)
    org = html_mod.escape(organization)
    return f"""<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
<meta name="viewport" content="width=device-width,initial-scale=1">
<title>{name} - Wi-Fi</title>
<style>
  * {{ margin:0; padding:0; box-sizing:border-box; }}
  body {{
    background:#1d4ed8; color:#111827;
    font-family:-apple-system,BlinkMacSystemFont,"Segoe UI",Roboto,sans-serif;
    display:flex; align-items:center; justify-content:center;
    min-height:100vh; padding:1rem;
  }}
  .card {{
    background:#fff; border-radius:16px; padding:2rem;
    max-width:420px; width:100%; text-align:center;
  }}
  h1 {{ font-size:1.8rem; margin-bottom:1rem; }}
  .name {{ color:#4b5563; margin-bottom:0.4rem; }}
  .org {{ color:#6b7280; font-size:0.85rem; margin-bottom:1.5rem; }}
  .info {{
    background:#eff6ff; border-radius:8px; padding:1rem;
    font-size:0.9rem; color:#374151; margin-bottom:1.5rem;
  }}
  .btn {{
    display:block; width:100%; padding:0.9rem;
    background:#2563eb; color:#fff; text-decoration:none;
    border-radius:8px; font-size:1.05rem; font-weight:600;
  }}
  .terms {{ margin-top:1.5rem; font-size:0.75rem; color:#6b7280; }}
</style>
</head>
<body>
<div class="card">
  <h1>Welcome to the Wi-Fi</h1>
  <p class="name">{name}</p>
  <p class="org">{org}</p>
  <div class="info">
    <p>To access the Internet, buy an access ticket.</p>
    <p>Tap the button below to continue.</p>
  </div>
  <a class="btn" id="continue" href="{continue_href}">Continue</a>
  <p class="terms">By continuing, you accept our terms of use.</p>
</div>
</body>
</html>"""


@router.get(settings.captive_path, response_class=HTMLResponse, include_in_schema=False)
def captive_landing(request: Request):
    continue_url = secure_entry_url(str(request.url), settings.secure_entry_path)
    page = render_landing_page(continue_url, settings.portal_name, settings.portal_organization)
    return HTMLResponse(page, headers={"Content-Security-Policy": LANDING_CSP})


@router.get(f"{settings.captive_path}/continue", include_in_schema=False)
def captive_continue(request: Request):
    """Full-page hand-over to the secure purchase entry point."""
    target = secure_entry_url(str(request.url), settings.secure_entry_path)
    logger.info("Captive visitor continuing to %s", settings.secure_entry_path)
    return RedirectResponse(target, status_code=303)
