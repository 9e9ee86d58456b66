from rest_framework import serializers

# Shape checks only. Title rules (trim, non-empty) live in the service.

class TaskCreateSerializer(serializers.Serializer):
    title = serializers.CharField(required=False, allow_blank=True, allow_null=True, trim_whitespace=False)
    priority = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    dueDate = serializers.CharField(required=False, allow_blank=True, allow_null=True)

class TaskUpdateSerializer(serializers.Serializer):
    title = serializers.CharField(required=False, allow_blank=True, allow_null=True, trim_whitespace=False)
    priority = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    dueDate = serializers.CharField(required=False, allow_blank=True, allow_null=True)

class TaskFilterSerializer(serializers.Serializer):
    status = serializers.CharField(required=False, default="all")
    search = serializers.CharField(required=False, allow_blank=True, default="")
