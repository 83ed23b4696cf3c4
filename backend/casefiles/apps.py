from django.apps import AppConfig


class CaseFilesConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "casefiles"
    verbose_name = "Case Files"
