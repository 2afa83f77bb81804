"""
Bucket addressing: ``/bucket/<name>?token=<token>``.
"""
import re
from typing import NamedTuple
from urllib.parse import quote, urlencode, urlsplit, parse_qs, unquote

BUCKET_PATH_RE = re.compile(r"^/bucket/([^/]+)$")


class Route(NamedTuple):
    path: str
    bucket: str = ""
    token: str = ""

    @property
    def is_home(self) -> bool:
        return self.path == "/"

    @property
    def is_bucket_view(self) -> bool:
        return self.path == "/bucket"


def bucket_path(name: str, token: str = "") -> str:
    url = f"/bucket/{quote(name, safe='')}"
    if token:
        url += "?" + urlencode({"token": token})
    return url


def parse_route(url: str) -> Route:
    """Anything that is not a bucket URL routes home."""
    parts = urlsplit(url)
    match = BUCKET_PATH_RE.match(parts.path)
    if not match:
        return Route(path="/")
    token = parse_qs(parts.query).get("token", [""])[0]
    return Route(path="/bucket", bucket=unquote(match.group(1)), token=token)
