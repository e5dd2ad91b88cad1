"""
Server-rendered HTML for the listings and partnership pages.

Pages are plain f-string templates. Every interpolated value goes through
_e() unless it is already-rendered HTML (listing bodies). Forms marked
data-json are submitted as JSON to the /api/v1 endpoints by the small
script in the layout.
"""

from __future__ import annotations

from html import escape
from typing import Optional, Sequence

from app.core.auth import CSRF_COOKIE, CSRF_HEADER
from classifieds_shared.schemas.common import METAL_LEVELS, SponsorshipLevel
from classifieds_shared.schemas.listings import CategoryRead, ListingRead
from classifieds_shared.schemas.organizations import OrgListItem
from classifieds_shared.schemas.sponsorships import (
    OrgPurchaseOption,
    PurchaseState,
    PurchaseView,
)


def _e(value: object) -> str:
    return escape("" if value is None else str(value), quote=True)


_FORM_SCRIPT = """
document.addEventListener("submit", async (event) => {
  const form = event.target;
  if (!form.matches("form[data-json]")) return;
  event.preventDefault();
  const body = {};
  for (const [key, value] of new FormData(form)) {
    if (value !== "") body[key] = value;
  }
  form.querySelectorAll("input[type=checkbox]").forEach((box) => { body[box.name] = box.checked; });
  const csrf = document.cookie.split("; ").find((c) => c.startsWith("%(csrf_cookie)s="));
  const response = await fetch(form.dataset.action, {
    method: form.dataset.method || "POST",
    headers: {"Content-Type": "application/json", "%(csrf_header)s": csrf ? csrf.split("=")[1] : ""},
    body: JSON.stringify(body),
  });
  const status = form.querySelector(".form-status");
  if (response.ok) {
    window.location = form.dataset.redirect || window.location.href;
  } else if (status) {
    const payload = await response.json().catch(() => ({}));
    status.textContent = (payload.error && payload.error.message) || payload.detail || "Something went wrong";
  }
});
""" % {"csrf_cookie": CSRF_COOKIE, "csrf_header": CSRF_HEADER}


def layout(title: str, body: str, *, signed_in: bool) -> str:
    account = (
        '<a href="/listings/new">Create a listing</a>'
        if signed_in
        else '<a href="/login">Sign in</a>'
    )
    return f"""<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="utf-8">
  <meta name="viewport" content="width=device-width, initial-scale=1">
  <title>{_e(title)} · Classifieds Hub</title>
</head>
<body>
  <header class="site-header"><a href="/listings">Listings</a> {account}</header>
  <main>
{body}
  </main>
  <script>{_FORM_SCRIPT}</script>
</body>
</html>"""


# ---------------------------------------------------------------------------
# Listings
# ---------------------------------------------------------------------------


def _filters(categories: Sequence[CategoryRead], active: Optional[str]) -> str:
    links = ['<a href="/listings"{}>all</a>'.format(' class="active"' if not active else "")]
    for category in categories:
        css = ' class="active"' if category.slug == active else ""
        links.append(f'<a href="/listings/{_e(category.slug)}"{css}>{_e(category.name)}</a>')
    return '<nav class="classified-filters">\n      ' + "\n      ".join(links) + "\n    </nav>"


def _listing_card(listing: ListingRead) -> str:
    tags = " ".join(f'<a href="/listings?tag={_e(t)}" class="tag">#{_e(t)}</a>' for t in listing.tags)
    location = f'<span class="location">{_e(listing.location)}</span>' if listing.location else ""
    return f"""    <article class="single-classified-listing" id="listing-{listing.id}">
      <h3>{_e(listing.title)}</h3>
      <div class="body">{listing.processed_html}</div>
      <footer>{tags} {location}</footer>
    </article>"""


def listings_index(
    listings: Sequence[ListingRead],
    categories: Sequence[CategoryRead],
    *,
    active_category: Optional[str],
    signed_in: bool,
) -> str:
    cards = "\n".join(_listing_card(listing) for listing in listings) or '    <p class="empty">No listings yet.</p>'
    body = f"""    <h1>Listings</h1>
    {_filters(categories, active_category)}
    <section class="classifieds-columns">
{cards}
    </section>"""
    return layout("Listings", body, signed_in=signed_in)


def _category_options(categories: Sequence[CategoryRead], selected=None) -> str:
    return "\n".join(
        f'<option value="{c.id}"{" selected" if c.id == selected else ""}>'
        f"{_e(c.name)} ({c.cost} credit{'s' if c.cost != 1 else ''})</option>"
        for c in categories
    )


def _org_options(orgs: Sequence[OrgListItem]) -> str:
    options = ['<option value="">Post as myself</option>']
    options += [f'<option value="{o.id}">{_e(o.name)}</option>' for o in orgs]
    return "\n".join(options)


def new_listing_form(
    categories: Sequence[CategoryRead],
    orgs: Sequence[OrgListItem],
    *,
    available_credits: int,
) -> str:
    body = f"""    <h1>Create a listing</h1>
    <p>You have {available_credits} credit{'s' if available_credits != 1 else ''} available.</p>
    <form data-json data-action="/api/v1/listings" data-method="POST" data-redirect="/listings">
      <label>Title <input name="title" maxlength="128" required></label>
      <label>Category <select name="category_id">{_category_options(categories)}</select></label>
      <label>Body <textarea name="body_markdown" maxlength="400" required></textarea></label>
      <label>Tags <input name="tag_list" placeholder="ruby, rails, go"></label>
      <label>Location <input name="location" maxlength="32"></label>
      <label>Post under <select name="organization_id">{_org_options(orgs)}</select></label>
      <label><input type="checkbox" name="contact_via_connect"> Allow contact via connect</label>
      <button type="submit">Publish listing</button>
      <p class="form-status"></p>
    </form>"""
    return layout("Create a listing", body, signed_in=True)


def edit_listing_form(
    listing: ListingRead,
    *,
    bump_cost: int,
    edit_window_hours: int,
) -> str:
    action = f"/api/v1/listings/{listing.id}"
    if listing.editable:
        fields = f"""      <label>Title <input name="title" value="{_e(listing.title)}" maxlength="128"></label>
      <label>Body <textarea name="body_markdown" maxlength="400">{_e(listing.body_markdown)}</textarea></label>
      <label>Tags <input name="tag_list" value="{_e(listing.cached_tag_list)}"></label>"""
    else:
        fields = f"""      <p class="edit-window-closed">The title, body and tags can no longer be edited.
        Bump the listing to edit them again for {edit_window_hours} hours.</p>"""
    publish_action = "unpublish" if listing.published else "publish"
    body = f"""    <h1>Edit listing</h1>
    <p class="bump-notice">You can bump your listing to the top of the feed for {bump_cost}
      credit{'s' if bump_cost != 1 else ''}. Bumping also lets you edit the title, body and tags
      for {edit_window_hours} hours.</p>
    <form data-json data-action="{action}" data-method="PUT">
{fields}
      <label>Location <input name="location" value="{_e(listing.location)}" maxlength="32"></label>
      <button type="submit">Save</button>
      <p class="form-status"></p>
    </form>
    <form data-json data-action="{action}" data-method="PUT">
      <input type="hidden" name="action" value="bump">
      <button type="submit">Bump listing</button>
      <p class="form-status"></p>
    </form>
    <form data-json data-action="{action}" data-method="PUT">
      <input type="hidden" name="action" value="{publish_action}">
      <button type="submit">{publish_action.capitalize()} listing</button>
      <p class="form-status"></p>
    </form>"""
    return layout("Edit listing", body, signed_in=True)


# ---------------------------------------------------------------------------
# Partnerships
# ---------------------------------------------------------------------------


def _subscribe_form(view: PurchaseView, option: OrgPurchaseOption) -> str:
    tag_field = ""
    if view.level == SponsorshipLevel.TAG:
        choices = "\n".join(
            f'<option value="{_e(t)}">#{_e(t)}</option>' for t in option.available_tags
        )
        tag_field = f'<label>Tag <select name="tag_name">{choices}</select></label>'
    return f"""      <form data-json data-action="/api/v1/partnerships" data-method="POST">
        <input type="hidden" name="organization_id" value="{option.organization_id}">
        <input type="hidden" name="level" value="{_e(view.level.value)}">
        {tag_field}
        <label>Instructions <textarea name="instructions" maxlength="2000"></textarea></label>
        <button type="submit">Subscribe for {view.credits_needed} credits</button>
        <p class="form-status"></p>
      </form>"""


def _org_section(view: PurchaseView, option: OrgPurchaseOption) -> str:
    parts = [f'    <section class="partnership-org" id="org-{_e(option.slug)}">',
             f"      <h2>{_e(option.name)}</h2>"]

    current = option.current_sponsorship
    if current is not None:
        expires = current.expires_at.date().isoformat() if current.expires_at else "n/a"
        parts.append(
            f'      <p class="current-sponsorship">Current subscription: {_e(current.level.value)} '
            f"({_e(current.status.value)}), expires {expires}</p>"
        )
    if view.level == SponsorshipLevel.TAG and option.sponsored_tags:
        sponsored = ", ".join(f"#{_e(t)}" for t in option.sponsored_tags)
        parts.append(f'      <p class="sponsored-tags">Already sponsoring: {sponsored}</p>')

    if option.blocked:
        parts.append(
            '      <p class="contact-support">Your organization already has a different '
            "sponsorship level. Please contact support to change levels.</p>"
        )
    elif option.state == PurchaseState.INSUFFICIENT_CREDITS:
        parts.append(
            f'      <p class="purchase-credits">This level needs {option.credits_needed} credits; '
            f"{_e(option.name)} has {option.available_credits}. "
            "Purchase more credits to subscribe.</p>"
        )
    elif view.level == SponsorshipLevel.TAG and not option.available_tags:
        parts.append('      <p class="no-tags">Every sponsorable tag is currently taken.</p>')
    else:
        parts.append(_subscribe_form(view, option))

    parts.append("    </section>")
    return "\n".join(parts)


def partnership_page(view: PurchaseView) -> str:
    level = view.level.value
    heading = f"{level.capitalize()} sponsorship"
    if view.level in METAL_LEVELS:
        heading += " (metal tier)"
    if view.state == PurchaseState.NO_ORGANIZATIONS:
        sections = """    <section class="create-organization">
      <p>Sponsorships are purchased by organizations you administer. Create one to get started.</p>
      <form data-json data-action="/api/v1/orgs" data-method="POST">
        <label>Name <input name="name" maxlength="100" required></label>
        <label>Slug <input name="slug" maxlength="50" required></label>
        <button type="submit">Create organization</button>
        <p class="form-status"></p>
      </form>
    </section>"""
    else:
        sections = "\n".join(_org_section(view, option) for option in view.organizations)
    body = f"""    <h1>{_e(heading)}</h1>
    <p>Costs {view.credits_needed} credits per {level} sponsorship period.</p>
{sections}"""
    return layout(heading, body, signed_in=True)


def login_form() -> str:
    body = """    <h1>Sign in</h1>
    <form data-json data-action="/auth/login" data-method="POST" data-redirect="/listings">
      <label>Email <input name="email" type="email" required></label>
      <label>Password <input name="password" type="password" required></label>
      <button type="submit">Sign in</button>
      <p class="form-status"></p>
    </form>"""
    return layout("Sign in", body, signed_in=False)
