"""Forms for the wplinker app.

The JSON endpoints validate their payloads with plain Django forms so the
rules for required fields, ranges and URLs live in one place.
"""

from __future__ import annotations

from django import forms


class InternalLinkRequestForm(forms.Form):
    """Payload of the internal linking endpoint."""

    content = forms.CharField(strip=False)
    pageId = forms.CharField(max_length=64)
    targetKeyword = forms.CharField(max_length=200)
    maxLinks = forms.IntegerField(required=False, min_value=0, max_value=25)
    siteUrl = forms.CharField(required=False, max_length=500)
    validateLinks = forms.BooleanField(required=False)
    dryRun = forms.BooleanField(required=False)

    def clean_maxLinks(self) -> int:
        value = self.cleaned_data.get('maxLinks')
        return 5 if value is None else value

    def clean_siteUrl(self) -> str:
        """Accept bare hostnames as well as full URLs."""

        value = (self.cleaned_data.get('siteUrl') or '').strip()
        if not value:
            return ''
        candidate = value if value.startswith(('http://', 'https://')) else f'https://{value}'
        url_field = forms.URLField()
        try:
            url_field.clean(candidate)
        except forms.ValidationError as exc:
            raise forms.ValidationError(f'Invalid site URL: {exc.messages[0]}') from exc
        return value


class SitemapCrawlForm(forms.Form):
    """Payload of the sitemap crawl endpoint."""

    siteUrl = forms.URLField(max_length=500)
    sitemapPath = forms.CharField(required=False, max_length=500)
    maxPages = forms.IntegerField(required=False, min_value=1, max_value=5000)

    def clean_sitemapPath(self) -> str:
        return (self.cleaned_data.get('sitemapPath') or '').strip() or '/sitemap.xml'
