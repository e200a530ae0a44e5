from django.contrib import admin

from .models import Page, Site


@admin.register(Site)
class SiteAdmin(admin.ModelAdmin):
    list_display = ('base_url', 'hostname', 'created_at')
    search_fields = ('base_url', 'hostname')


@admin.register(Page)
class PageAdmin(admin.ModelAdmin):
    list_display = ('url', 'site', 'title', 'post_type', 'status', 'updated_at')
    list_filter = ('site', 'status', 'post_type')
    search_fields = ('url', 'slug', 'title')
