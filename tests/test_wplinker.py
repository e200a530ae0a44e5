from __future__ import annotations

import json
import textwrap
from unittest.mock import patch

from django.db import DatabaseError
from django.test import Client, TestCase
from django.urls import reverse

from wplinker.forms import InternalLinkRequestForm
from wplinker.models import Page, Site
from wplinker.services import (
    CandidateStoreError,
    fetch_link_candidates,
    import_sitemap,
    normalize_candidate_url,
    parse_sitemap,
    remove_invalid_links,
    run_internal_linking,
    title_from_slug,
)

ARTICLE = (
    '<p>This react hooks tutorial covers state management.</p>'
    '<p>Hooks make state easy.</p>'
    '<p>Wrap up.</p>'
)


class InternalLinkRequestFormTests(TestCase):
    def form(self, **overrides):
        data = {
            'content': ARTICLE,
            'pageId': 'page-1',
            'targetKeyword': 'react hooks',
        }
        data.update(overrides)
        return InternalLinkRequestForm(data)

    def test_max_links_defaults_to_five(self) -> None:
        form = self.form()
        self.assertTrue(form.is_valid(), form.errors)
        self.assertEqual(form.cleaned_data['maxLinks'], 5)
        self.assertFalse(form.cleaned_data['validateLinks'])

    def test_required_fields(self) -> None:
        form = InternalLinkRequestForm({'content': ARTICLE})
        self.assertFalse(form.is_valid())
        self.assertIn('pageId', form.errors)
        self.assertIn('targetKeyword', form.errors)

    def test_site_url_accepts_bare_hostname(self) -> None:
        form = self.form(siteUrl='example.com')
        self.assertTrue(form.is_valid(), form.errors)
        self.assertEqual(form.cleaned_data['siteUrl'], 'example.com')

    def test_site_url_rejects_garbage(self) -> None:
        form = self.form(siteUrl='not a url')
        self.assertFalse(form.is_valid())
        self.assertIn('siteUrl', form.errors)


class SitemapServiceTests(TestCase):
    def test_parse_sitemap_skips_nested_sitemap_locations(self) -> None:
        xml = textwrap.dedent(
            """
            <urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">
                <url><loc>https://example.com/one/</loc></url>
                <url><loc>https://example.com/post-sitemap.xml</loc></url>
                <url><loc>https://example.com/two/</loc></url>
            </urlset>
            """
        ).strip()

        urls = parse_sitemap(xml, fetch_nested=False)
        self.assertEqual(urls, ['https://example.com/one/', 'https://example.com/two/'])

    def test_parse_sitemap_invalid_xml(self) -> None:
        self.assertEqual(parse_sitemap('<urlset><url>', fetch_nested=False), [])

    @patch('wplinker.services.fetch_sitemap_text')
    def test_parse_sitemap_fetches_nested_indexes(self, mock_fetch) -> None:
        parent = textwrap.dedent(
            """
            <sitemapindex xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">
                <sitemap><loc>https://example.com/post-sitemap.xml</loc></sitemap>
            </sitemapindex>
            """
        ).strip()
        child = textwrap.dedent(
            """
            <urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">
                <url><loc>https://example.com/child/</loc></url>
            </urlset>
            """
        ).strip()
        mock_fetch.return_value = child

        urls = parse_sitemap(parent, fetch_nested=True)
        self.assertEqual(urls, ['https://example.com/child/'])
        mock_fetch.assert_called_once_with('https://example.com/post-sitemap.xml')

    @patch('wplinker.services.fetch_sitemap_text')
    def test_import_sitemap_stores_same_host_pages(self, mock_fetch) -> None:
        mock_fetch.return_value = textwrap.dedent(
            """
            <urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">
                <url><loc>https://example.com/react-hooks-guide/</loc></url>
                <url><loc>https://example.com/css-grid-basics/</loc></url>
                <url><loc>https://other.org/elsewhere/</loc></url>
            </urlset>
            """
        ).strip()

        result = import_sitemap('example.com/')

        mock_fetch.assert_called_once_with('https://example.com/sitemap.xml')
        self.assertEqual(result.total_found, 3)
        self.assertEqual(result.imported, 2)
        self.assertEqual(len(result.errors), 1)
        page = Page.objects.get(slug='react-hooks-guide')
        self.assertEqual(page.title, 'React Hooks Guide')
        self.assertEqual(page.status, Page.Status.PENDING)
        self.assertEqual(page.site.hostname, 'example.com')

    @patch('wplinker.services.fetch_sitemap_text', return_value=None)
    def test_import_sitemap_reports_fetch_failure(self, mock_fetch) -> None:
        result = import_sitemap('https://example.com', '/missing.xml')
        self.assertIsNone(result.site)
        self.assertIn('https://example.com/missing.xml', result.errors[0])
        self.assertEqual(Site.objects.count(), 0)

    def test_title_from_slug(self) -> None:
        self.assertEqual(title_from_slug('react-hooks_guide'), 'React Hooks Guide')


class CandidateStoreTests(TestCase):
    def setUp(self) -> None:
        self.site = Site.objects.create(base_url='https://example.com', hostname='example.com')
        self.current = Page.objects.create(
            site=self.site,
            url='https://example.com/current/',
            slug='current',
            title='Current Post',
            status=Page.Status.COMPLETED,
        )
        self.other = Page.objects.create(
            site=self.site,
            url='https://example.com/react-hooks-guide/',
            slug='react-hooks-guide',
            title='React Hooks Guide',
            tags=['react', 'hooks'],
            status=Page.Status.COMPLETED,
        )
        Page.objects.create(
            site=self.site,
            url='https://example.com/draft/',
            slug='draft',
            title='Draft',
            status=Page.Status.PENDING,
        )

    def test_excludes_current_and_unfinished_pages(self) -> None:
        candidates = fetch_link_candidates(str(self.current.pk))
        self.assertEqual([candidate.url for candidate in candidates], [self.other.url])
        self.assertEqual(candidates[0].tags, ['react', 'hooks'])
        self.assertEqual(candidates[0].id, str(self.other.pk))

    def test_non_uuid_page_id_excludes_nothing(self) -> None:
        candidates = fetch_link_candidates('wp-42')
        self.assertEqual(len(candidates), 2)

    def test_limit_caps_pool(self) -> None:
        self.assertEqual(len(fetch_link_candidates('wp-42', limit=1)), 1)

    def test_database_failure_is_wrapped(self) -> None:
        with patch('wplinker.services.Page.objects.filter', side_effect=DatabaseError('boom')):
            with self.assertRaises(CandidateStoreError) as ctx:
                fetch_link_candidates('wp-42')
        self.assertEqual(ctx.exception.code, 'DB_ERROR')

    def test_relative_candidate_urls_become_absolute(self) -> None:
        self.other.url = '/react-hooks-guide/'
        self.other.save()

        payload = run_internal_linking(
            ARTICLE,
            str(self.current.pk),
            'react hooks',
            site_url='example.com/',
        )

        self.assertEqual(payload['links'][0]['url'], 'https://example.com/react-hooks-guide/')

    def test_site_url_scopes_pool_to_that_site(self) -> None:
        other_site = Site.objects.create(base_url='https://other.org', hostname='other.org')
        foreign = Page.objects.create(
            site=other_site,
            url='/react-hooks-guide/',
            slug='react-hooks-guide',
            title='React Hooks Guide',
            status=Page.Status.COMPLETED,
        )

        scoped = fetch_link_candidates('wp-42', site_url='https://Example.com/')
        self.assertEqual({c.url for c in scoped}, {self.current.url, self.other.url})
        self.assertEqual(len(fetch_link_candidates('wp-42')), 3)
        self.assertEqual(
            [c.id for c in fetch_link_candidates('wp-42', site_url='other.org')],
            [str(foreign.pk)],
        )
        self.assertEqual(fetch_link_candidates('wp-42', site_url='unknown.net'), [])

    def test_foreign_site_pages_are_never_linked(self) -> None:
        other_site = Site.objects.create(base_url='https://other.org', hostname='other.org')
        Page.objects.create(
            site=other_site,
            url='/react-hooks-tutorial/',
            slug='react-hooks-tutorial',
            title='React Hooks Tutorial',
            status=Page.Status.COMPLETED,
        )

        payload = run_internal_linking(
            ARTICLE,
            str(self.current.pk),
            'react hooks',
            site_url='https://example.com',
        )

        self.assertEqual(
            [link['url'] for link in payload['links']],
            ['https://example.com/react-hooks-guide/'],
        )
        self.assertEqual(payload['stats']['candidatesAnalyzed'], 1)


class LinkValidationTests(TestCase):
    def test_remove_invalid_links_unwraps_unknown_targets(self) -> None:
        html = (
            '<p>Read <a href="https://example.com/known/">known</a>, '
            '<a href="https://made-up.example/guess/">guessed</a> and '
            '<a href="/relative/">relative</a>.</p>'
        )

        cleaned, removed = remove_invalid_links(html, {'https://example.com/known/'})

        self.assertEqual(removed, 1)
        self.assertIn('href="https://example.com/known/"', cleaned)
        self.assertIn('href="/relative/"', cleaned)
        self.assertNotIn('made-up.example', cleaned)
        self.assertIn('guessed', cleaned)

    def test_remove_invalid_links_accepts_known_slugs(self) -> None:
        html = '<p><a href="https://staging.example.com/react-hooks-guide/">guide</a></p>'
        cleaned, removed = remove_invalid_links(html, {'react-hooks-guide'})
        self.assertEqual(removed, 0)
        self.assertEqual(cleaned, html)

    def test_normalize_candidate_url(self) -> None:
        self.assertEqual(
            normalize_candidate_url('blog/post/', 'example.com'),
            'https://example.com/blog/post/',
        )
        self.assertEqual(
            normalize_candidate_url('https://cdn.example.com/x/', 'example.com'),
            'https://cdn.example.com/x/',
        )
        self.assertEqual(normalize_candidate_url('/x/', None), '/x/')


class InternalLinksViewTests(TestCase):
    def setUp(self) -> None:
        self.client = Client()
        self.url = reverse('wplinker:internal_links')
        self.site = Site.objects.create(base_url='https://example.com', hostname='example.com')
        self.current = Page.objects.create(
            site=self.site,
            url='https://example.com/current/',
            slug='current',
            title='Current Post',
            status=Page.Status.COMPLETED,
        )

    def post(self, payload):
        return self.client.post(self.url, data=json.dumps(payload), content_type='application/json')

    def add_candidates(self) -> None:
        Page.objects.create(
            site=self.site,
            url='https://example.com/react-hooks-guide/',
            slug='react-hooks-guide',
            title='React Hooks Guide - Example Blog',
            tags=['react', 'hooks'],
            status=Page.Status.COMPLETED,
        )
        Page.objects.create(
            site=self.site,
            url='https://example.com/css-grid-layout-basics/',
            slug='css-grid-layout-basics',
            title='CSS Grid Layout Basics',
            status=Page.Status.COMPLETED,
        )

    def test_links_are_scored_and_inserted(self) -> None:
        self.add_candidates()

        response = self.post({
            'content': ARTICLE,
            'pageId': str(self.current.pk),
            'targetKeyword': 'react hooks',
            'maxLinks': 5,
            'siteUrl': 'https://example.com',
        })

        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertTrue(body['success'])
        self.assertEqual(len(body['links']), 1)
        link = body['links'][0]
        self.assertEqual(link['url'], 'https://example.com/react-hooks-guide/')
        self.assertEqual(link['anchor'], 'React Hooks Guide')
        self.assertIn(link['position'], {'early', 'middle', 'late'})
        self.assertGreater(link['score'], 0.001)
        self.assertEqual(body['stats']['candidatesAnalyzed'], 2)
        self.assertEqual(body['stats']['linksInserted'], 1)
        self.assertAlmostEqual(body['stats']['avgRelevanceScore'], link['score'])
        self.assertIn('class="wp-opt-internal"', body['content'])
        self.assertNotIn('current/', body['content'])

    def test_empty_pool_returns_original_content(self) -> None:
        response = self.post({
            'content': ARTICLE,
            'pageId': str(self.current.pk),
            'targetKeyword': 'react hooks',
        })

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {
            'success': True,
            'links': [],
            'content': ARTICLE,
            'stats': {'candidatesAnalyzed': 0, 'linksInserted': 0, 'avgRelevanceScore': 0.0},
        })

    def test_dry_run_keeps_content_and_adds_diagnostics(self) -> None:
        self.add_candidates()

        response = self.post({
            'content': ARTICLE,
            'pageId': str(self.current.pk),
            'targetKeyword': 'react hooks',
            'dryRun': True,
        })

        body = response.json()
        self.assertEqual(body['content'], ARTICLE)
        self.assertEqual(body['diagnostics']['candidates_analyzed'], 2)
        self.assertEqual(body['diagnostics']['relevant_candidates'], 1)

    def test_missing_fields_are_rejected(self) -> None:
        response = self.post({'content': ARTICLE})

        self.assertEqual(response.status_code, 400)
        body = response.json()
        self.assertFalse(body['success'])
        self.assertEqual(body['code'], 'VALIDATION_ERROR')
        self.assertIn('pageId', body['error'])
        self.assertIn('targetKeyword', body['details'])

    def test_invalid_json_is_rejected(self) -> None:
        response = self.client.post(self.url, data='{not json', content_type='application/json')
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['code'], 'INVALID_JSON')

    def test_get_not_allowed(self) -> None:
        self.assertEqual(self.client.get(self.url).status_code, 405)

    @patch('wplinker.services.fetch_link_candidates')
    def test_store_failure_returns_server_error(self, mock_fetch) -> None:
        mock_fetch.side_effect = CandidateStoreError('Failed to fetch link candidates')

        response = self.post({
            'content': ARTICLE,
            'pageId': 'wp-1',
            'targetKeyword': 'react hooks',
        })

        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json(), {
            'success': False,
            'error': 'Failed to fetch link candidates',
            'code': 'DB_ERROR',
        })


class CrawlSitemapViewTests(TestCase):
    def setUp(self) -> None:
        self.client = Client()
        self.url = reverse('wplinker:crawl_sitemap')

    @patch('wplinker.services.fetch_sitemap_text')
    def test_crawl_imports_pages(self, mock_fetch) -> None:
        mock_fetch.return_value = textwrap.dedent(
            """
            <urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">
                <url><loc>https://example.com/alpha/</loc></url>
                <url><loc>https://example.com/beta/</loc></url>
            </urlset>
            """
        ).strip()

        response = self.client.post(
            self.url,
            data=json.dumps({'siteUrl': 'https://example.com', 'maxPages': 1}),
            content_type='application/json',
        )

        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertTrue(body['success'])
        self.assertEqual(body['totalFound'], 2)
        self.assertEqual(body['imported'], 1)
        self.assertEqual(Page.objects.count(), 1)

    @patch('wplinker.services.fetch_sitemap_text', return_value=None)
    def test_crawl_reports_unreachable_sitemap(self, mock_fetch) -> None:
        response = self.client.post(
            self.url,
            data=json.dumps({'siteUrl': 'https://example.com'}),
            content_type='application/json',
        )

        body = response.json()
        self.assertFalse(body['success'])
        self.assertEqual(body['imported'], 0)
        self.assertTrue(body['errors'])

    def test_crawl_requires_site_url(self) -> None:
        response = self.client.post(self.url, data='{}', content_type='application/json')
        self.assertEqual(response.status_code, 400)
