from bracket_engine.models.category import Category, TournamentCategory
from bracket_engine.models.match import Match, MatchStatus, PhaseType, SlotRole
from bracket_engine.models.match_set import MatchSet
from bracket_engine.models.registration import Registration, RegistrationStatus
from bracket_engine.models.team import Team
from bracket_engine.models.tournament import Tournament, TournamentFormat, TournamentStatus
from bracket_engine.models.zone import Zone, ZoneTeam

__all__ = [
    "Tournament",
    "TournamentFormat",
    "TournamentStatus",
    "Category",
    "TournamentCategory",
    "Registration",
    "RegistrationStatus",
    "Team",
    "Match",
    "MatchStatus",
    "PhaseType",
    "SlotRole",
    "MatchSet",
    "Zone",
    "ZoneTeam",
]
