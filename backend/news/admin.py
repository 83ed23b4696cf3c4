from django.contrib import admin

from .models import NewsItem, NewsTransition


class NewsTransitionInline(admin.TabularInline):
    model = NewsTransition
    extra = 0
    can_delete = False
    readonly_fields = ("action", "from_status", "to_status", "from_user",
                       "to_user", "comments", "created_at")

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(NewsItem)
class NewsItemAdmin(admin.ModelAdmin):
    list_display = ("title", "type", "status", "author", "published_at", "created_at")
    list_filter = ("status", "type")
    search_fields = ("title", "subtitle", "slug")
    readonly_fields = ("slug", "status", "approved_by_director",
                       "approved_by_president", "published_at", "version")
    inlines = [NewsTransitionInline]


@admin.register(NewsTransition)
class NewsTransitionAdmin(admin.ModelAdmin):
    list_display = ("news", "action", "from_status", "to_status",
                    "from_user", "to_user", "created_at")
    list_filter = ("action", "to_status")

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
