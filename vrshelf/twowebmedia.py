"""Scene scraper for the 2WebMedia studio sites."""

from __future__ import annotations

import logging
import re
import unicodedata
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Iterable, Iterator, Optional
from urllib.parse import urljoin, urlparse

import requests
from bs4 import BeautifulSoup

log = logging.getLogger(__name__)

STUDIO = "2WebMedia"
ALLOWED_DOMAINS = ("wankitnowvr.com", "zexyvr.com")
USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/73.0.3683.103 Safari/537.36"
)

_RE_DATE_DURATION = re.compile(r"Released\son\s(.*)\n+\s+Duration\s+:\s+(\d+):\d+")
_RE_CAST_TAGS = re.compile(r"(?:zexyvr|wankitnowvr)\.com/(models|videos)/+")
_RE_TAG_CATEGORY = re.compile(r"(.*)\s+\((.*)\)")
_RE_FILENAME = re.compile(r"videos/([a-z\d\-]+?)(?:(?:-|_)preview)?(_\d{4}.*\.mp4)")
_RE_SLUG = re.compile(r"[^a-z0-9]+")

_RESOLUTIONS = ("_1920", "_2160", "_2880", "_3840", "_5760")
_FILENAME_SUFFIX = "_180x180_3dh_180_sbs.mp4"


@dataclass
class ScrapedScene:
    """Metadata of one scene as read from its page."""

    scene_type: str = "VR"
    studio: str = STUDIO
    site: str = ""
    homepage_url: str = ""
    site_id: str = ""
    scene_id: str = ""
    title: str = ""
    synopsis: str = ""
    released: str = ""
    duration: int = 0
    covers: list[str] = field(default_factory=list)
    gallery: list[str] = field(default_factory=list)
    cast: list[str] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)
    filenames: list[str] = field(default_factory=list)


def _slugify(text: str) -> str:
    ascii_text = unicodedata.normalize("NFKD", text).encode("ascii", "ignore").decode("ascii")
    return _RE_SLUG.sub("-", ascii_text.lower()).strip("-")


def _sized(url: str) -> str:
    return url.split("?", 1)[0] + "?h=900"


def _allowed(url: str) -> bool:
    return (urlparse(url).hostname or "") in ALLOWED_DOMAINS


def _parse_date(text: str) -> str:
    for fmt in ("%b %d, %Y", "%B %d, %Y"):
        try:
            return datetime.strptime(text.strip(), fmt).strftime("%Y-%m-%d")
        except ValueError:
            continue
    return ""


def normalize_tag(name: str, category: str) -> str:
    """Turn a ``name (category)`` tag into a single lower-case tag."""
    lower = name.lower()
    kind = category.lower()
    if kind == "breasts":
        name = "big tits" if lower == "large" else name + " tits"
    elif kind == "eyes":
        if "eyes" not in lower:
            name = name + " eyes"
    elif kind == "lingerie":
        name = "lingerie"
    elif kind == "nationality":
        if lower == "english":
            name = "british"
    if not name:
        return ""
    return name.lower().strip()


def guess_filenames(url_path: str) -> list[str]:
    """Likely release filenames derived from a scene's URL path."""
    parts = url_path.split("/")
    if len(parts) < 3:
        return []
    base = parts[2].replace("+", "_")
    return [base + res + _FILENAME_SUFFIX for res in _RESOLUTIONS]


def _child_href(element) -> str:
    link = element.select_one("div.view > a")
    return link.get("href", "") if link is not None else ""


def _apply_date_duration(scene: ScrapedScene, text: str) -> None:
    match = _RE_DATE_DURATION.search(text)
    if match is None:
        return
    if match.group(1):
        released = _parse_date(match.group(1))
        if released:
            scene.released = released
    if match.group(2):
        scene.duration = int(match.group(2))


def _apply_link(scene: ScrapedScene, href: str, text: str) -> None:
    match = _RE_CAST_TAGS.search(href)
    if match is None:
        return
    if match.group(1) == "models":
        scene.cast.append(text.strip())
        return
    tag_match = _RE_TAG_CATEGORY.search(text)
    if tag_match is None:
        return
    tag = normalize_tag(tag_match.group(1), tag_match.group(2))
    if tag:
        scene.tags.append(tag)


def parse_scene_page(html: str, url: str, site_id: str) -> ScrapedScene:
    """Extract a scene's metadata from its page."""
    soup = BeautifulSoup(html, "html.parser")
    scene = ScrapedScene(site=site_id)
    scene.homepage_url = url.split("?", 1)[0]
    scene.site_id = scene.homepage_url.split("/")[-1]
    scene.scene_id = f"{_slugify(site_id)}-{scene.site_id}"

    scene.covers = [_sized(el.get("cover-image", "")) for el in soup.select("deo-video")]
    if not scene.covers:
        scene.covers = [
            _sized(el.get("src", ""))
            for el in soup.select("div.container.pt-5 > div > div > img")
        ]

    scene.gallery = [_sized(_child_href(el)) for el in soup.select("div.gallery > div")[1:]]

    for el in soup.select("div.container.pt-5 h2"):
        scene.title = el.get_text().strip()
    for el in soup.select("div.container.pt-5 h2 + p"):
        scene.synopsis = el.get_text().strip()
    for el in soup.select("div.container.pt-5 p.text-muted"):
        _apply_date_duration(scene, el.get_text())
    for el in soup.select("div.container.pt-5 p.text-muted > a"):
        _apply_link(scene, el.get("href", ""), el.get_text())

    for el in soup.select("deo-video source"):
        match = _RE_FILENAME.search(el.get("src", ""))
        if match:
            scene.filenames.append(match.group(1) + match.group(2))
    if not scene.filenames:
        scene.filenames = guess_filenames(urlparse(url).path)

    return scene


def scene_links(html: str, base_url: str) -> list[str]:
    """Absolute URLs of the scenes listed on an index page."""
    soup = BeautifulSoup(html, "html.parser")
    return [urljoin(base_url, a.get("href", "")) for a in soup.select("div.container div.card > a")]


def pagination_links(html: str, base_url: str) -> list[str]:
    """Absolute URLs of the other index pages linked from a page."""
    soup = BeautifulSoup(html, "html.parser")
    return [urljoin(base_url, a.get("href", "")) for a in soup.select("ul.pagination a.page-link")]


def _default_fetch(url: str) -> str:
    resp = requests.get(url, headers={"User-Agent": USER_AGENT}, timeout=30)
    resp.raise_for_status()
    return resp.text


def scrape_site(url: str, site_id: str, known_scenes: Iterable[str] = (),
                fetch: Optional[Callable[[str], str]] = None) -> Iterator[ScrapedScene]:
    """Crawl a site's index pages and yield every scene not already known."""
    fetch = fetch or _default_fetch
    known = set(known_scenes)
    visited_pages: set[str] = set()
    visited_scenes: set[str] = set()

    def load(page: str) -> Optional[str]:
        try:
            return fetch(page)
        except OSError as exc:
            log.warning("Failed to fetch %s: %s", page, exc)
            return None

    def crawl(page: str) -> Iterator[ScrapedScene]:
        html = load(page)
        if html is None:
            return
        for link in pagination_links(html, page):
            if _allowed(link) and link not in visited_pages:
                visited_pages.add(link)
                yield from crawl(link)
        for link in scene_links(html, page):
            if link in known or link in visited_scenes or not _allowed(link):
                continue
            visited_scenes.add(link)
            scene_html = load(link)
            if scene_html is not None:
                yield parse_scene_page(scene_html, link, site_id)

    if _allowed(url):
        visited_pages.add(url)
        yield from crawl(url)