from django.contrib import admin

from .models import CaseFile, CaseFileDocument, CaseFileTransition, CaseNumberSequence


class CaseFileDocumentInline(admin.TabularInline):
    model = CaseFileDocument
    extra = 0


class CaseFileTransitionInline(admin.TabularInline):
    model = CaseFileTransition
    extra = 0
    can_delete = False
    readonly_fields = ("action", "from_level", "to_level", "from_user",
                       "to_user", "comments", "created_at")

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(CaseFile)
class CaseFileAdmin(admin.ModelAdmin):
    list_display = ("case_number", "title", "status", "current_level",
                    "department", "assigned_to", "created_at")
    list_filter = ("status", "current_level", "department")
    search_fields = ("case_number", "title", "description")
    readonly_fields = ("case_number", "status", "current_level",
                       "assigned_to", "version")
    inlines = [CaseFileDocumentInline, CaseFileTransitionInline]


@admin.register(CaseFileTransition)
class CaseFileTransitionAdmin(admin.ModelAdmin):
    list_display = ("case_file", "action", "from_level", "to_level",
                    "from_user", "to_user", "created_at")
    list_filter = ("action", "to_level")

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(CaseNumberSequence)
class CaseNumberSequenceAdmin(admin.ModelAdmin):
    list_display = ("year", "last_value")
