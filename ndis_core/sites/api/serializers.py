from rest_framework import serializers

from ndis_core.sites.models import (
    Participant,
    ParticipantSiteAssignment,
    RecordStatus,
    StaffParticipantAssignment,
    StaffSiteAssignment,
    WorkSite,
)


class WorkSiteSerializer(serializers.ModelSerializer):
    class Meta:
        model = WorkSite
        fields = [
            "id",
            "tenant_id",
            "name",
            "address_line1",
            "suburb",
            "state",
            "postcode",
            "site_type",
            "status",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class WorkSiteCreateSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255)
    address_line1 = serializers.CharField(max_length=255, required=False, allow_blank=True)
    suburb = serializers.CharField(max_length=128, required=False, allow_blank=True)
    state = serializers.CharField(max_length=16, required=False, allow_blank=True)
    postcode = serializers.CharField(max_length=16, required=False, allow_blank=True)
    site_type = serializers.CharField(max_length=64, required=False, allow_blank=True)


class WorkSiteUpdateSerializer(WorkSiteCreateSerializer):
    name = serializers.CharField(max_length=255, required=False)
    status = serializers.ChoiceField(choices=RecordStatus.choices, required=False)


class ParticipantSerializer(serializers.ModelSerializer):
    primary_site_id = serializers.UUIDField(read_only=True, allow_null=True)
    full_name = serializers.CharField(read_only=True)

    class Meta:
        model = Participant
        fields = [
            "id",
            "tenant_id",
            "first_name",
            "last_name",
            "display_name",
            "full_name",
            "ndis_number",
            "date_of_birth",
            "primary_site_id",
            "status",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class ParticipantCreateSerializer(serializers.Serializer):
    first_name = serializers.CharField(max_length=128)
    last_name = serializers.CharField(max_length=128)
    display_name = serializers.CharField(max_length=255, required=False, allow_blank=True)
    ndis_number = serializers.CharField(max_length=32, required=False, allow_blank=True)
    date_of_birth = serializers.DateField(required=False, allow_null=True)
    primary_site_id = serializers.UUIDField(required=False, allow_null=True)


class ParticipantUpdateSerializer(ParticipantCreateSerializer):
    first_name = serializers.CharField(max_length=128, required=False)
    last_name = serializers.CharField(max_length=128, required=False)
    status = serializers.ChoiceField(choices=RecordStatus.choices, required=False)


class StaffSiteAssignmentSerializer(serializers.ModelSerializer):
    user_id = serializers.IntegerField(read_only=True)
    site_id = serializers.UUIDField(read_only=True)
    site_name = serializers.CharField(source="site.name", read_only=True)

    class Meta:
        model = StaffSiteAssignment
        fields = ["id", "user_id", "site_id", "site_name", "created_at"]
        read_only_fields = fields


class StaffSiteAssignmentCreateSerializer(serializers.Serializer):
    user_id = serializers.IntegerField()
    site_id = serializers.UUIDField()


class StaffParticipantAssignmentSerializer(serializers.ModelSerializer):
    user_id = serializers.IntegerField(read_only=True)
    participant_id = serializers.UUIDField(read_only=True)
    participant_name = serializers.CharField(source="participant.full_name", read_only=True)

    class Meta:
        model = StaffParticipantAssignment
        fields = ["id", "user_id", "participant_id", "participant_name", "created_at"]
        read_only_fields = fields


class StaffParticipantAssignmentCreateSerializer(serializers.Serializer):
    user_id = serializers.IntegerField()
    participant_id = serializers.UUIDField()


class ParticipantSiteAssignmentSerializer(serializers.ModelSerializer):
    participant_id = serializers.UUIDField(read_only=True)
    participant_name = serializers.CharField(source="participant.full_name", read_only=True)
    site_id = serializers.UUIDField(read_only=True)
    site_name = serializers.CharField(source="site.name", read_only=True)

    class Meta:
        model = ParticipantSiteAssignment
        fields = [
            "id",
            "participant_id",
            "participant_name",
            "site_id",
            "site_name",
            "start_date",
            "end_date",
            "is_primary",
            "created_at",
        ]
        read_only_fields = fields


class ParticipantSiteAssignmentCreateSerializer(serializers.Serializer):
    participant_id = serializers.UUIDField()
    site_id = serializers.UUIDField()
    start_date = serializers.DateField()
    end_date = serializers.DateField(required=False, allow_null=True)
    is_primary = serializers.BooleanField(required=False, default=False)
