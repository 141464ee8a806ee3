from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated

from ..permissions import IsPassenger
from ..services import info_services


class PassengerProfileView(APIView):
    """
    GET  -> Retrieve authenticated passenger profile
    POST -> Partially update passenger profile
    """
    permission_classes = [IsAuthenticated, IsPassenger]

    def get(self, request):
        data = info_services.get_passenger_profile(request.user)
        return Response(data)

    def post(self, request):
        data = info_services.update_passenger_profile(request.user, request.data)
        return Response(data)


class PassengerRideHistoryView(APIView):
    """
    GET: Retrieve passenger trip history (completed rides)
    """
    permission_classes = [IsAuthenticated, IsPassenger]

    def get(self, request):
        limit = request.query_params.get("limit", "20")
        limit = int(limit) if limit.isdigit() else 20
        history = info_services.get_passenger_ride_history(request.user, limit=limit)
        return Response({"count": len(history), "rides": history})
