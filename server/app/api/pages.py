"""Secure surface pages: general catalog and ticket purchase.

Both pages are static shells; the script in each talks to the public JSON API
(``app.api.portal``) and renders whatever state it answers with. API paths are
resolved from the route names so the pages follow the router's mount point.
"""

import html as html_mod
import json

from fastapi import APIRouter, Query, Request
from fastapi.responses import HTMLResponse

from app.core.config import get_settings
from app.services.credentials import CopyTarget

router = APIRouter()
settings = get_settings()

PAGE_CSP = (
    "default-src 'none'; script-src 'unsafe-inline'; style-src 'unsafe-inline'; "
    "connect-src 'self'; frame-ancestors 'none'"
)

NETWORK_ERROR_MESSAGE = "Network error. Please check your connection and try again."


def script_json(value) -> str:
    """JSON for embedding in an inline <script> (no tag or entity breakout)."""
    return (
        json.dumps(value)
        .replace("<", "\\u003c")
        .replace(">", "\\u003e")
        .replace("&", "\\u0026")
    )


def _render_page(title: str, body: str, script: str) -> str:
    name = html_mod.escape(settings.portal_name)
    org = html_mod.escape(settings.portal_organization)
    return f"""<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
<meta name="viewport" content="width=device-width,initial-scale=1">
<title>{html_mod.escape(title)} - {name}</title>
<style>
  * {{ margin:0; padding:0; box-sizing:border-box; }}
  body {{
    background:#f3f4f6; color:#111827;
    font-family:-apple-system,BlinkMacSystemFont,"Segoe UI",Roboto,sans-serif;
    padding:1rem;
  }}
  .wrap {{ max-width:560px; margin:0 auto; }}
  header {{ text-align:center; margin:1rem 0 1.5rem; }}
  header h1 {{ font-size:1.5rem; }}
  header p {{ color:#6b7280; font-size:0.85rem; }}
  .card {{ background:#fff; border-radius:12px; padding:1.25rem; margin-bottom:1rem; }}
  .muted {{ color:#6b7280; font-size:0.85rem; }}
  .price {{ font-weight:700; color:#1d4ed8; }}
  ul.list {{ list-style:none; }}
  ul.list li {{
    border:2px solid #e5e7eb; border-radius:8px; padding:0.75rem;
    margin-bottom:0.5rem; cursor:pointer;
  }}
  ul.list li.selected {{ border-color:#2563eb; background:#eff6ff; }}
  input {{
    width:100%; padding:0.75rem; font-size:1rem; margin:0.5rem 0 1rem;
    border:1px solid #d1d5db; border-radius:8px;
  }}
  .btn {{
    display:block; width:100%; padding:0.85rem; border:0; text-align:center;
    background:#2563eb; color:#fff; text-decoration:none; cursor:pointer;
    border-radius:8px; font-size:1rem; font-weight:600; margin-top:0.5rem;
  }}
  .btn:disabled {{ background:#9ca3af; cursor:default; }}
  .btn.secondary {{ background:#e5e7eb; color:#111827; }}
  .field {{ display:flex; justify-content:space-between; align-items:center; margin:0.4rem 0; }}
  .field code {{ font-size:1.1rem; }}
  .field button {{ padding:0.3rem 0.6rem; border:0; border-radius:6px; cursor:pointer; }}
  .hidden {{ display:none; }}
  #toasts {{ position:fixed; top:1rem; left:50%; transform:translateX(-50%); width:90%; max-width:480px; }}
  .toast {{ padding:0.75rem 1rem; border-radius:8px; margin-bottom:0.5rem; color:#fff; }}
  .toast.success {{ background:#16a34a; }}
  .toast.error {{ background:#dc2626; }}
</style>
</head>
<body>
<div id="toasts"></div>
<div class="wrap">
<header>
  <h1>{name}</h1>
  <p>{org}</p>
</header>
{body}
</div>
<script>
function el(tag, cls, text) {{
  var node = document.createElement(tag);
  if (cls) node.className = cls;
  if (text !== undefined && text !== null) node.textContent = text;
  return node;
}}

function showNotices(notices) {{
  var box = document.getElementById("toasts");
  (notices || []).forEach(function(n) {{
    var toast = el("div", "toast " + n.level, n.message);
    box.appendChild(toast);
    setTimeout(function() {{ box.removeChild(toast); }}, 4000);
  }});
}}

function request(method, url, body, done) {{
  var xhr = new XMLHttpRequest();
  xhr.open(method, url);
  xhr.setRequestHeader("Content-Type", "application/json");
  xhr.onload = function() {{
    var resp = null;
    try {{ resp = JSON.parse(xhr.responseText); }} catch (e) {{}}
    if (resp && resp.notices) {{
      showNotices(resp.notices);
    }} else if (resp && typeof resp.detail === "string") {{
      showNotices([{{level: "error", message: resp.detail}}]);
    }}
    done(resp, xhr.status);
  }};
  xhr.onerror = function() {{
    showNotices([{{level: "error", message: {script_json(NETWORK_ERROR_MESSAGE)}}}]);
    done(null, 0);
  }};
  xhr.send(body ? JSON.stringify(body) : null);
}}
{script}
</script>
</body>
</html>"""


CATALOG_BODY = """<div class="card">
  <h2>Choose your Internet access</h2>
  <p class="muted" id="loading">Loading offers...</p>
  <p class="muted hidden" id="empty">No tickets are available right now.</p>
</div>
<div id="offers"></div>"""


def render_catalog_page(types_url: str) -> str:
    script = f"""
var TYPES_URL = {script_json(types_url)};

function renderOffers(results) {{
  var box = document.getElementById("offers");
  box.innerHTML = "";
  document.getElementById("empty").classList.toggle("hidden", results.length > 0);
  results.forEach(function(t) {{
    var card = el("div", "card");
    card.appendChild(el("h3", null, t.name));
    if (t.description) card.appendChild(el("p", "muted", t.description));
    card.appendChild(el("p", "price", t.price_display));
    card.appendChild(el("p", "muted", "Duration: " + t.time_limit + " \\u00b7 Data: " + t.data_limit));
    card.appendChild(el("p", "muted", t.available_count + " left"));
    var link = el("a", "btn", "Buy this ticket");
    link.setAttribute("href", t.purchase_path);
    card.appendChild(link);
    box.appendChild(card);
  }});
}}

request("GET", TYPES_URL, null, function(resp) {{
  document.getElementById("loading").classList.add("hidden");
  renderOffers(resp && resp.results ? resp.results : []);
}});
"""
    return _render_page("Tickets", CATALOG_BODY, script)


PURCHASE_BODY = """<p class="muted" id="loading">Loading tickets...</p>
<div id="form" class="hidden">
  <div class="card hidden" id="typeInfo"></div>
  <div class="card">
    <h2>Select a ticket</h2>
    <p class="muted hidden" id="empty">No tickets are available right now.</p>
    <ul class="list" id="tickets"></ul>
  </div>
  <div class="card">
    <label for="phone">Mobile money number</label>
    <input id="phone" type="tel" autocomplete="tel" placeholder="+243900000000 or 0900000000">
    <button class="btn" id="buyBtn" disabled>Buy ticket</button>
  </div>
</div>
<div id="result" class="hidden">
  <div class="card">
    <h2>Your Wi-Fi credentials</h2>
    <p class="muted">Write them down: they are shown only once.</p>
    <div id="fields"></div>
    <button class="btn" data-copy="credentials">Copy username and password</button>
    <button class="btn secondary" id="restartBtn">Buy another ticket</button>
  </div>
</div>"""


def render_purchase_page(endpoints: dict, type_id: str | None) -> str:
    script = f"""
var API = {script_json(endpoints)};
var TYPE_ID = {script_json(type_id)};
var current = null;
var busy = false;
var phone = document.getElementById("phone");
var buyBtn = document.getElementById("buyBtn");

function updateBuyBtn() {{
  buyBtn.disabled = busy || !current || !current.selected_ticket_id || !phone.value.trim();
  buyBtn.textContent = busy ? "Processing..." : "Buy ticket";
}}

function renderType(t) {{
  var box = document.getElementById("typeInfo");
  box.innerHTML = "";
  box.classList.toggle("hidden", !t);
  if (!t) return;
  box.appendChild(el("h2", null, t.name));
  if (t.description) box.appendChild(el("p", "muted", t.description));
  box.appendChild(el("p", "price", t.price_display));
}}

function renderTickets(tickets, selectedId) {{
  var list = document.getElementById("tickets");
  list.innerHTML = "";
  document.getElementById("empty").classList.toggle("hidden", tickets.length > 0);
  tickets.forEach(function(t) {{
    var item = el("li", t.id === selectedId ? "selected" : "");
    item.setAttribute("data-id", t.id);
    item.appendChild(el("strong", null, t.profile + " "));
    item.appendChild(el("span", "price", t.price_display));
    item.appendChild(el("div", "muted", "Duration: " + t.time_limit + " \\u00b7 Data: " + t.data_limit));
    list.appendChild(item);
  }});
}}

function renderCredentials(fields) {{
  var box = document.getElementById("fields");
  box.innerHTML = "";
  fields.forEach(function(f) {{
    if (!f.value) return;
    var row = el("div", "field");
    var text = el("div");
    text.appendChild(el("div", "muted", f.label));
    text.appendChild(el("code", null, f.value));
    row.appendChild(text);
    if (f.copyable) {{
      var btn = el("button", null, "Copy");
      btn.setAttribute("data-copy", f.name);
      row.appendChild(btn);
    }}
    box.appendChild(row);
  }});
}}

function render(s) {{
  if (!s || !s.state) return;
  current = s;
  if (s.redirect_to) {{
    setTimeout(function() {{ window.location.replace(s.redirect_to); }}, 1500);
    return;
  }}
  var done = s.state === "succeeded";
  document.getElementById("form").classList.toggle("hidden", done);
  document.getElementById("result").classList.toggle("hidden", !done);
  renderType(s.ticket_type);
  renderTickets(s.tickets, s.selected_ticket_id);
  if (done) renderCredentials(s.credentials || []);
  if (document.activeElement !== phone) phone.value = s.phone_number;
  updateBuyBtn();
}}

function call(method, url, body, then) {{
  request(method, url, body, function(resp, status) {{
    render(resp);
    if (then) then(resp, status);
  }});
}}

document.getElementById("tickets").addEventListener("click", function(e) {{
  var item = e.target.closest("li[data-id]");
  if (!item || busy) return;
  call("POST", API.select, {{ticket_id: item.getAttribute("data-id")}});
}});

phone.addEventListener("input", updateBuyBtn);
phone.addEventListener("change", function() {{
  if (!busy) call("PUT", API.phone, {{phone_number: phone.value}});
}});

buyBtn.addEventListener("click", function() {{
  if (busy) return;
  busy = true;
  updateBuyBtn();
  call("POST", API.purchase, {{phone_number: phone.value}}, function() {{
    busy = false;
    updateBuyBtn();
  }});
}});

document.getElementById("result").addEventListener("click", function(e) {{
  var target = e.target.getAttribute("data-copy");
  if (!target) return;
  call("POST", API.copy[target], null, function(resp) {{
    if (resp && resp.clipboard && navigator.clipboard) {{
      navigator.clipboard.writeText(resp.clipboard).catch(function() {{}});
    }}
  }});
}});

document.getElementById("restartBtn").addEventListener("click", function() {{
  call("POST", API.restart, null);
}});

var startUrl = API.start + (TYPE_ID ? "?type=" + encodeURIComponent(TYPE_ID) : "");
call("GET", startUrl, null, function() {{
  document.getElementById("loading").classList.add("hidden");
}});
"""
    return _render_page("Buy a ticket", PURCHASE_BODY, script)


def purchase_endpoints(request: Request) -> dict:
    """Paths of the purchase API as mounted on this app."""
    app = request.app
    return {
        "start": app.url_path_for("start_purchase"),
        "select": app.url_path_for("select_ticket"),
        "phone": app.url_path_for("set_phone_number"),
        "purchase": app.url_path_for("purchase_ticket"),
        "restart": app.url_path_for("restart_purchase"),
        "copy": {
            target.value: app.url_path_for("copy_to_clipboard", target=target.value)
            for target in CopyTarget
        },
    }


@router.get(settings.catalog_entry_path, response_class=HTMLResponse, include_in_schema=False)
def catalog_page(request: Request):
    page = render_catalog_page(request.app.url_path_for("list_ticket_types"))
    return HTMLResponse(page, headers={"Content-Security-Policy": PAGE_CSP})


@router.get(settings.secure_entry_path, response_class=HTMLResponse, include_in_schema=False)
def purchase_page(
    request: Request,
    type_id: str | None = Query(default=None, alias="type", max_length=100),
):
    """Purchase entry point; ``?type=`` is handed to the API on load."""
    page = render_purchase_page(purchase_endpoints(request), type_id or None)
    return HTMLResponse(page, headers={"Content-Security-Policy": PAGE_CSP})
