# fetchers.py
# -------------------------------------------------------------------
# Enrichment fetchers: given a URL, resolve one fact about the page
# (title, description, favicon, feed, social profiles, GitHub repo
# description, leaderboard entry). None of them raise; on failure they
# print one line and return "" / {} / False.
# -------------------------------------------------------------------

import os
import re
import json
import sqlite3
import datetime as dt
import functools
import urllib.parse
from typing import Callable, Dict, List, Optional

import requests
from bs4 import BeautifulSoup

import details_cache
import failure_cache
from failure_cache import FailureCache
from url_utils import (
    hostname_of,
    is_http_url,
    origin_of,
    parse_github_url,
    slugify_host,
    strip_www,
)

UA = {"User-Agent": "Mozilla/5.0 (BundleDbTools/0.2)"}
TIMEOUT = 20

TITLE_MAX_LEN = 200
TITLE_CACHE_SECONDS = 24 * 60 * 60
LEADERBOARD_CACHE_SECONDS = 7 * 24 * 60 * 60
LEADERBOARD_BASE = "https://www.11ty.dev/speedlify/"

GITHUB_API = "https://api.github.com/repos/{owner}/{repo}"
FAVICON_WEB_PATH = "/img/favicons/"
FAVICON_DIR = "favicons"

SOCIAL_KEYS = ("mastodon", "bluesky", "youtube", "github", "linkedin")


# ----------------------------- HTTP helpers ----------------------------- #
def _get_html(url, timeout=TIMEOUT):
    r = requests.get(url, headers=UA, timeout=timeout)
    r.raise_for_status()
    return r.text


def _get_json(url, headers=None, timeout=TIMEOUT):
    r = requests.get(url, headers={**UA, **(headers or {})}, timeout=timeout)
    r.raise_for_status()
    return r.json()


def _head(url, timeout=TIMEOUT):
    return requests.head(url, headers=UA, timeout=timeout, allow_redirects=True)


def _soup(html):
    return BeautifulSoup(html, "html.parser")


def _meta(soup, *names):
    for n in names:
        tag = soup.find("meta", attrs={"property": n}) or soup.find(
            "meta", attrs={"name": n}
        )
        if tag and tag.get("content") and str(tag["content"]).strip():
            return str(tag["content"]).strip()
    return ""


def _clean_text(text):
    return re.sub(r"\s+", " ", text or "").strip()


# a broken success cache reads as a miss and is never fatal
def _cache_get(key, max_age, db):
    try:
        return details_cache.get(key, max_age, db)
    except (sqlite3.Error, OSError) as e:
        print(f"[cache] read {key} failed: {e}")
        return None


def _cache_put(key, value, db):
    try:
        details_cache.put(key, value, db)
    except (sqlite3.Error, OSError) as e:
        print(f"[cache] write {key} failed: {e}")


# ----------------------------- Title ------------------------------------ #
_UNESCAPED_AMP = re.compile(r"&(?!(?:[a-z\d]+|#\d+|#x[a-f\d]+);)", re.I)
_CONTROL = re.compile(r"[\u0000-\u001F\u007F-\u009F]")


def _char_class(*ranges):
    return re.compile(
        "[" + "".join(re.escape(chr(a)) + "-" + re.escape(chr(b)) for a, b in ranges) + "]"
    )


# zero-width, directional marks/isolates, BOM, soft hyphen, word joiner, annotations
_INVISIBLE = _char_class(
    (0x200B, 0x200F),
    (0x202A, 0x202E),
    (0x2066, 0x2069),
    (0xFEFF, 0xFEFF),
    (0x00AD, 0x00AD),
    (0x2060, 0x2060),
    (0xFFF9, 0xFFFB),
)
_UNICODE_SPACES = _char_class(
    (0x00A0, 0x00A0),
    (0x2000, 0x200A),
    (0x2028, 0x2029),
    (0x202F, 0x202F),
    (0x205F, 0x205F),
    (0x3000, 0x3000),
)


def sanitize_title(text: str) -> str:
    text = re.sub(r"[<>]", "", text or "")
    text = _UNESCAPED_AMP.sub("&amp;", text)
    text = text.replace('"', "&quot;").replace("'", "&#39;")
    text = re.sub(r"\s+", " ", text)
    text = _CONTROL.sub("", text)
    text = _INVISIBLE.sub("", text)
    text = _UNICODE_SPACES.sub(" ", text)
    # removals above can leave double spaces behind
    text = re.sub(r" {2,}", " ", text).strip()
    return text[:TITLE_MAX_LEN]


def get_title(
    link: str,
    failures: Optional[FailureCache] = None,
    details_db: Optional[str] = None,
) -> str:
    """<title> text of a page, sanitized; "" when missing or on failure."""
    if failures is None:
        failures = failure_cache.for_name("title")
    if failures.is_blocked(link):
        return ""

    cache_key = f"title-{link}"
    cached = _cache_get(cache_key, TITLE_CACHE_SECONDS, details_db)
    if cached:
        return cached

    try:
        soup = _soup(_get_html(link))
        raw = soup.title.get_text() if soup.title else ""
    except Exception as e:
        print(f"[fetch] title failed for {link}: {e}")
        failures.record_failure(link)
        return ""

    title = sanitize_title(raw)
    if not title:
        return ""

    failures.clear(link)
    _cache_put(cache_key, title, details_db)
    return title


# ----------------------------- Description ------------------------------ #
def _jsonld_description(soup) -> str:
    for script in soup.find_all("script", attrs={"type": "application/ld+json"}):
        try:
            data = json.loads(script.string or script.get_text() or "")
        except ValueError:
            continue
        stack = data if isinstance(data, list) else [data]
        while stack:
            node = stack.pop(0)
            if not isinstance(node, dict):
                continue
            desc = node.get("description")
            if isinstance(desc, str) and desc.strip():
                return desc
            graph = node.get("@graph")
            if isinstance(graph, list):
                stack.extend(graph)
    return ""


def extract_description(html: str) -> str:
    soup = _soup(html)
    desc = (
        _meta(soup, "description")
        or _meta(soup, "og:description")
        or _meta(soup, "twitter:description")
        or _meta(soup, "DC.description", "dc.description", "dcterms.description")
        or _jsonld_description(soup)
    )
    return _clean_text(desc)


def get_description(link: str, failures: Optional[FailureCache] = None) -> str:
    if failures is None:
        failures = failure_cache.for_name("description")
    if failures.is_blocked(link):
        return ""
    try:
        html = _get_html(link)
    except Exception as e:
        print(f"[fetch] description failed for {link}: {e}")
        failures.record_failure(link)
        return ""
    failures.clear(link)
    return extract_description(html)


# ----------------------------- Favicon ---------------------------------- #
def _icon_size(tag) -> int:
    sizes = (tag.get("sizes") or "").lower()
    if sizes == "any":
        return 10_000
    best = 0
    for m in re.finditer(r"(\d+)x(\d+)", sizes):
        best = max(best, int(m.group(1)))
    return best


def pick_icon(html: str, base_url: str) -> str:
    soup = _soup(html)
    icons = []
    for tag in soup.find_all("link", href=True):
        rels = [r.lower() for r in (tag.get("rel") or [])]
        if "icon" in rels or "apple-touch-icon" in rels:
            icons.append((rels, tag))
    if not icons:
        return ""

    def absolute(tag):
        return urllib.parse.urljoin(base_url, tag["href"].strip())

    for rels, tag in icons:
        if "apple-touch-icon" in rels:
            return absolute(tag)
    for rels, tag in icons:
        if "svg" in (tag.get("type") or "") or tag["href"].lower().endswith(".svg"):
            return absolute(tag)
    sized = sorted(icons, key=lambda x: _icon_size(x[1]), reverse=True)
    return absolute(sized[0][1])


def _icon_ext(icon_url: str, content_type: str) -> str:
    ext = os.path.splitext(urllib.parse.urlparse(icon_url).path)[1].lower()
    if ext in (".ico", ".png", ".svg", ".jpg", ".jpeg", ".gif", ".webp"):
        return ext
    ct = (content_type or "").lower()
    for needle, guess in (("svg", ".svg"), ("png", ".png"), ("jpeg", ".jpg"), ("icon", ".ico")):
        if needle in ct:
            return guess
    return ".ico"


def get_favicon(link: str, kind: str = "site", favicon_dir: Optional[str] = None) -> str:
    """
    Download the page's icon into favicon_dir and return its public path.
    kind="post" reads the site root, since a post page rarely differs.
    """
    favicon_dir = favicon_dir or FAVICON_DIR
    page = origin_of(link) if kind == "post" else link
    host = strip_www(hostname_of(link))
    if not page or not host:
        print(f"[fetch] favicon: not a usable URL: {link}")
        return ""

    try:
        try:
            icon_url = pick_icon(_get_html(page), page)
        except requests.RequestException as e:
            print(f"[fetch] favicon page failed for {page}: {e}")
            icon_url = ""
        if not icon_url:
            icon_url = origin_of(link) + "/favicon.ico"

        r = requests.get(icon_url, headers=UA, timeout=TIMEOUT)
        r.raise_for_status()
        if not r.content:
            return ""
        filename = slugify_host(host) + _icon_ext(icon_url, r.headers.get("Content-Type", ""))
        os.makedirs(favicon_dir, exist_ok=True)
        with open(os.path.join(favicon_dir, filename), "wb") as f:
            f.write(r.content)
        return FAVICON_WEB_PATH + filename
    except Exception as e:
        print(f"[fetch] favicon failed for {link}: {e}")
        return ""


# ----------------------------- RSS -------------------------------------- #
FEED_TYPES = ("application/rss+xml", "application/atom+xml", "application/feed+json")
FEED_PATHS = ("/feed.xml", "/rss.xml", "/atom.xml", "/feed/", "/index.xml")


def find_feed_link(html: str, base_url: str) -> str:
    soup = _soup(html)
    for tag in soup.find_all("link", href=True):
        rels = [r.lower() for r in (tag.get("rel") or [])]
        if "alternate" in rels and (tag.get("type") or "").lower() in FEED_TYPES:
            return urllib.parse.urljoin(base_url, tag["href"].strip())
    return ""


def get_rss_link(link: str) -> str:
    if not is_http_url(link):
        print(f"[fetch] rss: not a usable URL: {link}")
        return ""
    try:
        found = find_feed_link(_get_html(link), link)
        if found:
            return found
        origin = origin_of(link)
        for path in FEED_PATHS:
            try:
                r = _head(origin + path, timeout=10)
            except requests.RequestException:
                continue
            ct = (r.headers.get("Content-Type") or "").lower()
            if r.ok and any(k in ct for k in ("xml", "rss", "atom", "json")):
                return origin + path
        return ""
    except Exception as e:
        print(f"[fetch] rss failed for {link}: {e}")
        return ""


# ----------------------------- Social links ----------------------------- #
MASTODON_HOSTS = {
    "mastodon.social",
    "mastodon.online",
    "fosstodon.org",
    "hachyderm.io",
    "indieweb.social",
    "front-end.social",
    "mas.to",
    "mstdn.social",
    "toot.cafe",
    "social.lol",
    "infosec.exchange",
    "techhub.social",
    "masto.ai",
}
NOT_MASTODON = {"medium.com", "youtube.com", "threads.net", "tiktok.com", "x.com"}
GITHUB_RESERVED = {
    "about", "features", "pricing", "sponsors", "orgs", "topics", "marketplace",
    "settings", "login", "join", "explore", "collections", "events", "site",
}


def classify_social(href: str, rel_me: bool = False) -> Optional[str]:
    """Platform name for a profile URL, or None."""
    if not is_http_url(href):
        return None
    host = strip_www(hostname_of(href))
    parts = [p for p in urllib.parse.urlparse(href).path.split("/") if p]

    if host == "bsky.app" and len(parts) >= 2 and parts[0] == "profile":
        return "bluesky"
    if host in ("youtube.com", "m.youtube.com") and parts and (
        parts[0].startswith("@") or (parts[0] in ("channel", "c", "user") and len(parts) >= 2)
    ):
        return "youtube"
    if host == "github.com" and len(parts) == 1 and parts[0].lower() not in GITHUB_RESERVED:
        return "github"
    if host.endswith("linkedin.com") and len(parts) >= 2 and parts[0] in ("in", "company"):
        return "linkedin"
    if (
        parts
        and parts[0].startswith("@")
        and host not in NOT_MASTODON
        and (host in MASTODON_HOSTS or "mastodon" in host or rel_me)
    ):
        return "mastodon"
    return None


def extract_social_links(html: str, base_url: str) -> Dict[str, str]:
    soup = _soup(html)
    found: Dict[str, str] = {}
    candidates = []
    for tag in soup.find_all(["a", "link"], href=True):
        rels = [r.lower() for r in (tag.get("rel") or [])]
        if tag.name == "link" and "me" not in rels:
            continue
        candidates.append((urllib.parse.urljoin(base_url, tag["href"].strip()), "me" in rels))
    for href, rel_me in candidates:
        platform = classify_social(href, rel_me)
        if platform and platform not in found:
            found[platform] = href
    if not found:
        return {}
    return {k: found.get(k, "") for k in SOCIAL_KEYS}


def get_social_links(link: str) -> Dict[str, str]:
    if not is_http_url(link):
        print(f"[fetch] social: not a usable URL: {link}")
        return {}
    try:
        return extract_social_links(_get_html(link), link)
    except Exception as e:
        print(f"[fetch] social links failed for {link}: {e}")
        return {}


# ----------------------------- GitHub ----------------------------------- #
def _github_headers(token: Optional[str] = None) -> Dict[str, str]:
    headers = {
        "Accept": "application/vnd.github+json",
        "X-GitHub-Api-Version": "2022-11-28",
    }
    token = token or os.getenv("GITHUB_TOKEN")
    if token:
        headers["Authorization"] = f"Bearer {token}"
    return headers


def get_github_description(
    github_url: str,
    failures: Optional[FailureCache] = None,
    token: Optional[str] = None,
) -> str:
    """
    Repository description for https://github.com/<owner>/<repo>.
    A repo without a description gives "" and is not a failure.
    """
    if failures is None:
        failures = failure_cache.for_name("github-description")
    if failures.is_blocked(github_url):
        return ""

    parsed = parse_github_url(github_url)
    if not parsed:
        print(f"[github] invalid GitHub URL format: {github_url}")
        failures.record_failure(github_url)
        return ""

    owner, repo = parsed
    try:
        j = _get_json(GITHUB_API.format(owner=owner, repo=repo), _github_headers(token))
    except Exception as e:
        print(f"[github] description failed for {github_url}: {e}")
        failures.record_failure(github_url)
        return ""

    failures.clear(github_url)
    return (j or {}).get("description") or ""


# ----------------------------- Leaderboard ------------------------------ #
def _log_leaderboard_error(domain: str, err: Exception, log_dir: Optional[str]):
    log_dir = log_dir or failure_cache.LOG_DIR
    stamp = dt.datetime.utcnow().replace(microsecond=0).isoformat() + "Z"
    try:
        os.makedirs(log_dir, exist_ok=True)
        with open(os.path.join(log_dir, "leaderboard-fetch-errors.txt"), "a", encoding="utf-8") as f:
            f.write(f"[{stamp}] {domain}: {err}\n")
    except OSError as e:
        print(f"[leaderboard] could not write error log: {e}")


def leaderboard_candidates(link: str) -> List[str]:
    host = hostname_of(link)
    if not host:
        return []
    hosts = [host]
    if strip_www(host) != host:
        hosts.append(strip_www(host))
    out = []
    for h in hosts:
        base = LEADERBOARD_BASE + slugify_host(h)
        out += [base, base + "/"]
    return out


def has_leaderboard_link(link: str, details_db: Optional[str] = None, log_dir: Optional[str] = None):
    """Leaderboard page URL for the link's site, or False."""
    candidates = leaderboard_candidates(link) if is_http_url(link) else []
    if not candidates:
        print(f"[leaderboard] not a usable URL: {link}")
        return False

    domain = slugify_host(strip_www(hostname_of(link)))
    cache_key = f"leaderboardlink-v2-{domain}"
    cached = _cache_get(cache_key, LEADERBOARD_CACHE_SECONDS, details_db)
    if cached is not None:
        return cached or False

    had_error = False
    for url in candidates:
        try:
            ok = _head(url, timeout=10).ok
        except requests.RequestException as e:
            had_error = True
            print(f"[leaderboard] error checking {url}: {e}")
            _log_leaderboard_error(domain, e, log_dir)
            continue
        if ok:
            _cache_put(cache_key, url, details_db)
            return url

    if not had_error:
        _cache_put(cache_key, "", details_db)
    return False


# ----------------------------- Registry --------------------------------- #
def bound_fetchers(cfg) -> Dict[str, Callable]:
    """Fetchers by short name, wired to the caches and dirs of one config."""
    return {
        "title": functools.partial(
            get_title,
            failures=failure_cache.for_name("title", cfg.log_dir),
            details_db=cfg.cache_db,
        ),
        "description": functools.partial(
            get_description, failures=failure_cache.for_name("description", cfg.log_dir)
        ),
        "favicon": functools.partial(get_favicon, favicon_dir=cfg.favicon_dir),
        "rss": get_rss_link,
        "social": get_social_links,
        "github": functools.partial(
            get_github_description,
            failures=failure_cache.for_name("github-description", cfg.log_dir),
        ),
        "leaderboard": functools.partial(
            has_leaderboard_link, details_db=cfg.cache_db, log_dir=cfg.log_dir
        ),
    }
