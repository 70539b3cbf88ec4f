# app/matches/views.py
from rest_framework.views import APIView

from app.common.responses import fail, ok
from app.matches.services import LIKE, PASS, find_match, record_interest
from app.signaling.rooms import clean_identifier, clean_room


class AcceptMatchView(APIView):
    """
    POST /api/accept-match
    body: { "myId": "...", "targetId": "...", "room": "..."?, "action": "like"|"pass"? }
    res:  { success, isMutual, data: { matchId } }
    """

    def post(self, request):
        my_id = clean_identifier(request.data.get("myId"))
        target_id = clean_identifier(request.data.get("targetId"))
        if not my_id or not target_id:
            return fail("VALIDATION_ERROR", "myId and targetId are required")
        if my_id == target_id:
            return fail("VALIDATION_ERROR", "cannot match yourself")

        action = request.data.get("action") or LIKE
        if action not in (LIKE, PASS):
            return fail("VALIDATION_ERROR", "action must be like or pass")

        room = request.data.get("room")
        if room is not None:
            room = clean_room(room)
            if room is None:
                return fail("VALIDATION_ERROR", "invalid room")

        # TransientDependencyError -> 503 via the exception handler
        result = record_interest(my_id, target_id, action=action, room=room)

        return ok(
            {"matchId": result.match.id if result.match else None},
            isMutual=result.is_mutual,
        )


class MatchStatusView(APIView):
    """
    GET /api/match-status?myId=...&targetId=...
    res: { success, data: { matched, matchId } }
    """

    def get(self, request):
        my_id = clean_identifier(request.query_params.get("myId"))
        target_id = clean_identifier(request.query_params.get("targetId"))
        if not my_id or not target_id:
            return fail("VALIDATION_ERROR", "myId and targetId are required")

        match = find_match(my_id, target_id)
        return ok({"matched": match is not None, "matchId": match.id if match else None})
