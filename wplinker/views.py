"""Django views for the wplinker app.

Both endpoints speak JSON: one runs the internal linking engine over a
document, the other crawls a sitemap into the page store. Payloads are
validated with the app's forms and the work is delegated to the services.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict

from django.http import HttpRequest, JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_POST

from .forms import InternalLinkRequestForm, SitemapCrawlForm
from .services import CandidateStoreError, import_sitemap, run_internal_linking

logger = logging.getLogger(__name__)


def _error(message: str, code: str, status: int, details: Any = None) -> JsonResponse:
    payload: Dict[str, Any] = {'success': False, 'error': message, 'code': code}
    if details is not None:
        payload['details'] = details
    return JsonResponse(payload, status=status)


def _load_json(request: HttpRequest) -> Dict[str, Any] | None:
    try:
        data = json.loads(request.body or b'{}')
    except (json.JSONDecodeError, UnicodeDecodeError):
        return None
    return data if isinstance(data, dict) else None


@csrf_exempt
@require_POST
def internal_links(request: HttpRequest) -> JsonResponse:
    """Score, select and insert internal links into the posted content."""

    data = _load_json(request)
    if data is None:
        return _error('Request body must be a JSON object.', 'INVALID_JSON', 400)

    form = InternalLinkRequestForm(data)
    if not form.is_valid():
        missing = [name for name, errors in form.errors.get_json_data().items()
                   if any(error['code'] == 'required' for error in errors)]
        message = (
            f"Missing required fields: {', '.join(missing)}" if missing else 'Invalid request payload.'
        )
        return _error(message, 'VALIDATION_ERROR', 400, form.errors.get_json_data())

    cleaned = form.cleaned_data
    try:
        payload = run_internal_linking(
            cleaned['content'],
            cleaned['pageId'],
            cleaned['targetKeyword'],
            cleaned['maxLinks'],
            cleaned['siteUrl'] or None,
            validate_links=cleaned['validateLinks'],
            dry_run=cleaned['dryRun'],
        )
    except CandidateStoreError as exc:
        logger.error('Internal linking error: %s', exc)
        return _error(str(exc), exc.code, exc.status)

    return JsonResponse(payload)


@csrf_exempt
@require_POST
def crawl_sitemap(request: HttpRequest) -> JsonResponse:
    """Fetch a site's sitemap and store the pages it lists."""

    data = _load_json(request)
    if data is None:
        return _error('Request body must be a JSON object.', 'INVALID_JSON', 400)

    form = SitemapCrawlForm(data)
    if not form.is_valid():
        return _error('Invalid request payload.', 'VALIDATION_ERROR', 400, form.errors.get_json_data())

    result = import_sitemap(
        form.cleaned_data['siteUrl'],
        form.cleaned_data['sitemapPath'],
        form.cleaned_data['maxPages'],
    )
    if result.site is None or not result.total_found:
        message = result.errors[0] if result.errors else 'No URLs were found in the sitemap.'
        return JsonResponse({
            'success': False,
            'message': message,
            'totalFound': result.total_found,
            'imported': 0,
            'errors': result.errors,
        })

    return JsonResponse({
        'success': True,
        'message': f'Imported {result.imported} pages for {result.site.base_url}.',
        'totalFound': result.total_found,
        'imported': result.imported,
        'errors': result.errors,
    })
