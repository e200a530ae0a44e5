"""Database models for the wplinker app.

The app stores WordPress sites and the pages discovered in their sitemaps.
Pages that finished optimisation (status ``completed``) form the pool of
internal link candidates offered to the linking engine.
"""

from __future__ import annotations

import uuid

from django.db import models

from .engine.types import LinkCandidate


class Site(models.Model):
    """Represents a WordPress site whose sitemap has been crawled."""

    base_url = models.URLField(unique=True)
    hostname = models.CharField(max_length=255, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:  # pragma: no cover - convenience display
        return self.base_url


class Page(models.Model):
    """A post or page of a site, eligible to be linked to once completed."""

    class Status(models.TextChoices):
        PENDING = 'pending', 'Pending'
        OPTIMIZING = 'optimizing', 'Optimizing'
        COMPLETED = 'completed', 'Completed'
        FAILED = 'failed', 'Failed'

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    site = models.ForeignKey(Site, on_delete=models.CASCADE, related_name='pages')
    url = models.URLField(max_length=500)
    slug = models.CharField(max_length=255, db_index=True)
    title = models.CharField(max_length=300, blank=True)
    categories = models.JSONField(default=list, blank=True)
    tags = models.JSONField(default=list, blank=True)
    post_type = models.CharField(max_length=50, default='post')
    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.PENDING,
        db_index=True,
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        unique_together = ('site', 'url')
        ordering = ['created_at']

    def __str__(self) -> str:  # pragma: no cover - convenience display
        return self.url

    def as_candidate(self) -> LinkCandidate:
        """Return the engine's immutable view of this page."""

        return LinkCandidate.from_dict({
            'id': self.pk,
            'url': self.url,
            'slug': self.slug,
            'title': self.title,
            'categories': self.categories,
            'tags': self.tags,
            'post_type': self.post_type,
        })
