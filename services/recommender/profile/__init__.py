"""
Profile package — incremental visitor profile inference.

Public API:
    ProfileEngine   — signal log + inference catalog + confidence
    Profile         — inferred attributes (scalar first-writer-wins, set union)
    SessionContext  — per-session owner serialising all mutations
    generate_query  — synthetic natural-language query from a profile
"""

from services.recommender.profile.engine import ProfileEngine, confidence_level
from services.recommender.profile.query_generator import generate_query
from services.recommender.profile.session import ProfileStore, SessionContext, SessionRegistry
from services.recommender.profile.types import Profile

__all__ = [
    "Profile",
    "ProfileEngine",
    "ProfileStore",
    "SessionContext",
    "SessionRegistry",
    "confidence_level",
    "generate_query",
]
