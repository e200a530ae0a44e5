"""Service functions for crawling sitemaps and linking content.

These functions sit between the views and the pure linking engine. They
fetch and parse sitemap XML into stored pages, query the store for link
candidates, normalise candidate URLs against the site root, clean up
existing links in incoming content, and run the engine.
"""

from __future__ import annotations

import gzip
import logging
import urllib.error
import urllib.request
import uuid
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Iterable, List, Tuple
from urllib.parse import urlparse
from xml.etree import ElementTree

from bs4 import BeautifulSoup  # type: ignore
from django.conf import settings
from django.db import DatabaseError

from .engine import index as engine
from .engine.config import EngineConfig, load_config
from .engine.types import LinkCandidate
from .models import Page, Site

logger = logging.getLogger(__name__)

USER_AGENT = 'WP-Optimizer-Pro/1.0 Sitemap Crawler'
DEFAULT_CANDIDATE_LIMIT = 500


class CandidateStoreError(Exception):
    """Raised when link candidates cannot be read from the store."""

    code = 'DB_ERROR'
    status = 500


@dataclass
class SitemapImport:
    """Outcome of crawling a sitemap into the page store."""

    site: Site | None
    total_found: int = 0
    imported: int = 0
    errors: List[str] = field(default_factory=list)


def engine_config() -> EngineConfig:
    """Load the engine configuration named in settings, if any."""

    return load_config(getattr(settings, 'WPLINKER_ENGINE_CONFIG', None))


def normalize_site_url(site_url: str) -> str:
    """Return ``site_url`` with a scheme and without trailing slashes."""

    base = (site_url or '').strip()
    if base and not base.startswith(('http://', 'https://')):
        base = f'https://{base}'
    return base.rstrip('/')


def normalize_candidate_url(url: str, site_url: str | None) -> str:
    """Make a stored page URL absolute against the site root.

    Absolute URLs are returned untouched. Relative ones are prefixed with
    the normalised ``site_url``; without a site URL they are left as-is.
    """

    if not url or url.startswith(('http://', 'https://')):
        return url or ''
    base = normalize_site_url(site_url or '')
    if not base:
        return url
    path = url if url.startswith('/') else f'/{url}'
    return f'{base}{path}'


def fetch_sitemap_text(url: str, timeout: int | None = None) -> str | None:
    """Fetch a sitemap and return its decoded text.

    Gzipped sitemaps (by extension or content type) are decompressed.
    Network and HTTP errors are logged and yield ``None``.
    """

    if timeout is None:
        timeout = getattr(settings, 'WPLINKER_SITEMAP_TIMEOUT', 15)
    request = urllib.request.Request(
        url,
        headers={
            'Accept': 'application/xml, text/xml, */*',
            'User-Agent': USER_AGENT,
        },
    )
    try:
        with urllib.request.urlopen(request, timeout=timeout) as resp:
            data = resp.read()
            content_type = resp.headers.get('Content-Type', '')
            if url.lower().endswith('.gz') or 'application/x-gzip' in content_type:
                try:
                    data = gzip.decompress(data)
                except OSError:
                    logger.warning('Sitemap %s looked gzipped but was not', url)
            try:
                return data.decode('utf-8')
            except UnicodeDecodeError:
                encoding = resp.headers.get_content_charset() or 'utf-8'
                return data.decode(encoding, errors='replace')
    except (urllib.error.URLError, OSError, ValueError) as exc:
        logger.warning('Failed to fetch sitemap %s: %s', url, exc)
        return None


def parse_sitemap(xml_text: str, fetch_nested: bool = True) -> List[str]:
    """Parse a sitemap document and return the page URLs it lists.

    ``<sitemapindex>`` documents have each child sitemap fetched and
    parsed one level deep unless ``fetch_nested`` is ``False``. Locations
    ending in ``.xml`` inside a ``<urlset>`` are treated as sitemaps, not
    pages, and skipped.
    """
    urls: List[str] = []
    try:
        root = ElementTree.fromstring(xml_text)
    except ElementTree.ParseError:
        logger.warning('Sitemap is not valid XML')
        return urls
    loc_elems = root.findall('.//{*}loc')
    if root.tag.lower().endswith('sitemapindex'):
        if not fetch_nested:
            return urls
        for loc in loc_elems:
            loc_url = (loc.text or '').strip()
            if not loc_url:
                continue
            nested = fetch_sitemap_text(loc_url)
            if nested:
                urls.extend(parse_sitemap(nested, fetch_nested=False))
    else:
        for loc in loc_elems:
            u = (loc.text or '').strip()
            if u and not u.lower().endswith('.xml'):
                urls.append(u)
    return urls


def slug_from_url(url: str) -> str:
    """Return the final non-empty path segment of ``url``."""

    path = urlparse(url).path.rstrip('/')
    return path.split('/')[-1] if path else ''


def title_from_slug(slug: str) -> str:
    """Derive a readable placeholder title from a hyphenated slug."""

    return ' '.join(word.capitalize() for word in slug.replace('_', '-').split('-') if word)


def import_sitemap(
    site_url: str,
    sitemap_path: str = '/sitemap.xml',
    max_pages: int | None = None,
) -> SitemapImport:
    """Crawl a site's sitemap and store every same-host page as pending."""

    base_url = normalize_site_url(site_url)
    if sitemap_path.startswith(('http://', 'https://')):
        sitemap_url = sitemap_path
    else:
        sitemap_url = f"{base_url}/{sitemap_path.lstrip('/')}"

    xml_text = fetch_sitemap_text(sitemap_url)
    if not xml_text:
        return SitemapImport(site=None, errors=[f'Unable to fetch sitemap: {sitemap_url}'])

    urls = parse_sitemap(xml_text)
    logger.info('Found %d URLs in sitemap %s', len(urls), sitemap_url)

    hostname = site_hostname(base_url)
    site, _ = Site.objects.get_or_create(base_url=base_url, defaults={'hostname': hostname})
    result = SitemapImport(site=site, total_found=len(urls))

    for u in urls:
        if max_pages is not None and result.imported >= max_pages:
            break
        host = urlparse(u).hostname
        if host and host != hostname:
            result.errors.append(f'Skipped off-site URL: {u}')
            continue
        slug = slug_from_url(u)
        if not slug:
            continue
        Page.objects.get_or_create(
            site=site,
            url=u,
            defaults={'slug': slug, 'title': title_from_slug(slug)},
        )
        result.imported += 1

    return result


def fetch_link_candidates(
    page_id: str,
    limit: int | None = None,
    site_url: str | None = None,
) -> List[LinkCandidate]:
    """Return completed pages other than ``page_id``, capped at ``limit``.

    With ``site_url`` only pages of the site on that hostname are returned,
    so an unknown site yields no candidates.

    Raises
    ------
    CandidateStoreError
        When the database query fails.
    """

    if limit is None:
        limit = getattr(settings, 'WPLINKER_CANDIDATE_LIMIT', DEFAULT_CANDIDATE_LIMIT)

    current = _as_uuid(page_id)
    hostname = site_hostname(site_url) if site_url else None
    try:
        queryset = Page.objects.filter(status=Page.Status.COMPLETED)
        if hostname:
            queryset = queryset.filter(site__hostname=hostname)
        if current is not None:
            queryset = queryset.exclude(pk=current)
        pages = list(queryset.order_by('created_at')[:limit])
    except DatabaseError as exc:
        raise CandidateStoreError('Failed to fetch link candidates') from exc
    return [page.as_candidate() for page in pages]


def site_hostname(site_url: str) -> str:
    """Lower-cased hostname of a site URL or bare domain."""

    base = normalize_site_url(site_url)
    return (urlparse(base).hostname or base).lower()


def _as_uuid(value: Any) -> uuid.UUID | None:
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError):
        return None


def valid_link_targets(candidates: Iterable[LinkCandidate]) -> set[str]:
    """URLs and slugs that existing links in the content may point at."""

    targets: set[str] = set()
    for candidate in candidates:
        if candidate.url:
            targets.add(candidate.url)
        if candidate.slug:
            targets.add(candidate.slug)
    return targets


def remove_invalid_links(html: str, valid_targets: set[str]) -> Tuple[str, int]:
    """Unwrap absolute links whose URL and slug are both unknown.

    Relative and fragment links are always kept. The original markup is
    returned untouched when nothing had to be removed.
    """

    if not html:
        return html, 0

    soup = BeautifulSoup(html, 'html.parser')
    removed = 0
    for anchor in soup.find_all('a', href=True):
        href = anchor['href'].strip()
        if href.startswith(('/', '#')):
            continue
        if not href.startswith(('http://', 'https://')):
            continue
        if href in valid_targets or slug_from_url(href) in valid_targets:
            continue
        anchor.unwrap()
        removed += 1

    if not removed:
        return html, 0
    logger.warning('Removed invalid internal links: count=%d', removed)
    return str(soup), removed


def run_internal_linking(
    content: str,
    page_id: str,
    target_keyword: str,
    max_links: int = 5,
    site_url: str | None = None,
    *,
    validate_links: bool = False,
    dry_run: bool = False,
) -> Dict[str, Any]:
    """Run the linking engine for one document and build the API payload."""

    logger.info(
        'Processing internal linking request: page=%s keyword=%r max_links=%d',
        page_id,
        target_keyword,
        max_links,
    )
    config = engine_config()

    candidates = [
        _with_absolute_url(candidate, site_url)
        for candidate in fetch_link_candidates(page_id, site_url=site_url)
    ]
    logger.info('Fetched link candidates: count=%d', len(candidates))

    if validate_links:
        content, _ = remove_invalid_links(content, valid_link_targets(candidates))

    result = engine.link_content(content, candidates, target_keyword, max_links, config)
    payload: Dict[str, Any] = {
        'success': True,
        'links': [link.to_dict() for link in result.links],
        'content': result.content,
        'stats': result.stats(),
    }
    if dry_run:
        payload['content'] = content
        payload['diagnostics'] = engine.dry_run(content, candidates, target_keyword, max_links, config)
    return payload


def _with_absolute_url(candidate: LinkCandidate, site_url: str | None) -> LinkCandidate:
    url = normalize_candidate_url(candidate.url, site_url)
    if url == candidate.url:
        return candidate
    return replace(candidate, url=url)
