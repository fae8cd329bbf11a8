"""
Service Auth minimal: le checkout ne gère ni inscription ni connexion,
il identifie seulement le tuteur à partir du jeton Supabase.
"""
from typing import Any, Dict

from catering.auth.repository import get_user_from_access_token as _repo_get_user_from_token

def get_user_from_token(access_token: str) -> Dict[str, Any]:
    """Normalise user issu de supabase.auth.get_user(access_token):
    - Retourne {id, email, metadata, token}
    """
    raw = _repo_get_user_from_token(access_token)
    return {
        "id": raw.get("id"),
        "email": raw.get("email"),
        "metadata": raw.get("user_metadata") or {},
        "token": access_token,
    }
