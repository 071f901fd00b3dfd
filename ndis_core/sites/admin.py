from django.contrib import admin

from ndis_core.sites.models import (
    Participant,
    ParticipantSiteAssignment,
    StaffParticipantAssignment,
    StaffSiteAssignment,
    WorkSite,
)


@admin.register(WorkSite)
class WorkSiteAdmin(admin.ModelAdmin):
    list_display = ("name", "site_type", "suburb", "state", "status", "tenant_id")
    list_filter = ("status", "site_type")
    search_fields = ("name", "suburb", "postcode")


@admin.register(Participant)
class ParticipantAdmin(admin.ModelAdmin):
    list_display = ("last_name", "first_name", "ndis_number", "primary_site", "status", "tenant_id")
    list_filter = ("status",)
    search_fields = ("first_name", "last_name", "display_name", "ndis_number")


@admin.register(StaffSiteAssignment)
class StaffSiteAssignmentAdmin(admin.ModelAdmin):
    list_display = ("user", "site", "tenant_id", "created_at")


@admin.register(StaffParticipantAssignment)
class StaffParticipantAssignmentAdmin(admin.ModelAdmin):
    list_display = ("user", "participant", "tenant_id", "created_at")


@admin.register(ParticipantSiteAssignment)
class ParticipantSiteAssignmentAdmin(admin.ModelAdmin):
    list_display = ("participant", "site", "start_date", "end_date", "is_primary", "tenant_id")
    list_filter = ("is_primary",)
