from drf_spectacular.utils import extend_schema
from rest_framework import serializers
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from permissions.roles import effective_capabilities_for

# ---------------------------
# SERIALIZER
# ---------------------------


class MeSerializer(serializers.Serializer):
    id = serializers.UUIDField()
    email = serializers.EmailField()
    first_name = serializers.CharField()
    last_name = serializers.CharField()
    role = serializers.CharField()
    capabilities = serializers.ListField(child=serializers.CharField())


# ---------------------------
# VIEW
# ---------------------------


class MeView(APIView):
    permission_classes = [IsAuthenticated]
    serializer_class = MeSerializer

    @extend_schema(
        responses={200: MeSerializer},
        description="Current user profile plus the order/refund capabilities it holds",
    )
    def get(self, request):
        user = request.user
        out = MeSerializer(
            {
                "id": user.id,
                "email": user.email,
                "first_name": user.first_name,
                "last_name": user.last_name,
                "role": user.role,
                "capabilities": sorted(effective_capabilities_for(user)),
            }
        )
        return Response(out.data)
