# Force SQLModel table registration at test discovery time
# This ensures all models are registered before any test database creation
from bracket_engine.models.category import Category, TournamentCategory  # noqa: F401
from bracket_engine.models.match import Match  # noqa: F401
from bracket_engine.models.match_set import MatchSet  # noqa: F401
from bracket_engine.models.registration import Registration  # noqa: F401
from bracket_engine.models.team import Team  # noqa: F401
from bracket_engine.models.tournament import Tournament  # noqa: F401
from bracket_engine.models.zone import Zone, ZoneTeam  # noqa: F401
