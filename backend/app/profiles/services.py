# app/profiles/services.py
from app.profiles.models import ANONYMOUS_NAME, Profile


def profile_cards(user_ids) -> dict:
    """
    user_id -> {"id", "name", "avatar"}; unknown users get an anonymous card.
    """
    user_ids = [str(u) for u in user_ids]
    found = {p.user_id: p for p in Profile.objects.filter(user_id__in=user_ids)}

    cards = {}
    for uid in user_ids:
        p = found.get(uid)
        cards[uid] = {
            "id": uid,
            "name": p.display_name if p else ANONYMOUS_NAME,
            "avatar": p.avatar if p else "",
        }
    return cards
