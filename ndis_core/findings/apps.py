from django.apps import AppConfig


class FindingsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "ndis_core.findings"

    def ready(self) -> None:
        # registers the audit.response.non_conforming handler
        from ndis_core.findings import subscribers  # noqa: F401
