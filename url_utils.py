# url_utils.py
# URL / domain helpers shared by the fetchers and the scripts.

import re
import urllib.parse
from typing import Optional, Tuple


def is_http_url(url) -> bool:
    if not isinstance(url, str) or not url.strip():
        return False
    u = urllib.parse.urlparse(url.strip())
    return u.scheme in ("http", "https") and bool(u.netloc)


def hostname_of(url: str) -> str:
    """Lower-cased hostname, or "" when the URL has none."""
    try:
        return (urllib.parse.urlparse(url.strip()).hostname or "").lower()
    except (AttributeError, ValueError):
        return ""


def strip_www(host: str) -> str:
    return host[4:] if host.startswith("www.") else host


def slugify_host(host: str) -> str:
    # example.com/blog -> example-com-blog
    return re.sub(r"[./]", "-", host)


def origin_of(url: str) -> str:
    u = urllib.parse.urlparse(url.strip())
    if not u.scheme or not u.netloc:
        return ""
    return f"{u.scheme}://{u.netloc}"


def normalize_url(url: str) -> str:
    """
    Comparison form of a URL: https, no www., no trailing slash, sorted query,
    no fragment. Returns the input unchanged when it cannot be parsed.
    """
    try:
        u = urllib.parse.urlparse(url.strip())
    except (AttributeError, ValueError):
        return url
    if not u.netloc:
        return url

    host = strip_www((u.hostname or "").lower())
    if u.port:
        host = f"{host}:{u.port}"
    path = u.path
    if len(path) > 1 and path.endswith("/"):
        path = path[:-1]
    if path == "/":
        path = ""
    query = ""
    if u.query:
        pairs = sorted(urllib.parse.parse_qsl(u.query, keep_blank_values=True))
        query = "?" + urllib.parse.urlencode(pairs)
    return f"https://{host}{path}{query}"


def same_link(a: str, b: str) -> bool:
    return normalize_url(a or "") == normalize_url(b or "")


def parse_github_url(url: str) -> Optional[Tuple[str, str]]:
    """
    https://github.com/<owner>/<repo>[/...] -> (owner, repo); anything else -> None
    """
    if not is_http_url(url):
        return None
    u = urllib.parse.urlparse(url.strip())
    if u.scheme != "https" or strip_www((u.hostname or "").lower()) != "github.com":
        return None
    parts = [p for p in u.path.split("/") if p]
    if len(parts) < 2:
        return None
    owner, repo = parts[0], parts[1]
    if repo.endswith(".git"):
        repo = repo[:-4]
    if not owner or not repo:
        return None
    return owner, repo
