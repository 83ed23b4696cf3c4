from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin

from .models import Department, User


@admin.register(Department)
class DepartmentAdmin(admin.ModelAdmin):
    list_display = ("name", "code", "department_type", "parent", "is_active")
    list_filter = ("department_type", "is_active")
    search_fields = ("name", "code")


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    list_display = ("username", "email", "national_id", "phone_number",
                    "first_name", "last_name", "is_active", "role", "department")
    search_fields = ("username", "email", "national_id", "phone_number")
    list_filter = ("is_active", "is_staff", "role", "department")
    fieldsets = BaseUserAdmin.fieldsets + (
        ("Directory", {"fields": ("national_id", "phone_number", "role", "department")}),
    )
    add_fieldsets = BaseUserAdmin.add_fieldsets + (
        ("Directory", {"fields": ("email", "national_id", "phone_number",
                                  "first_name", "last_name", "role", "department")}),
    )
