from datetime import datetime, timedelta
from typing import Callable, List, Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from bracket_engine.database import get_session, import_models
from bracket_engine.main import app
from bracket_engine.models.category import Category, TournamentCategory
from bracket_engine.models.registration import Registration, RegistrationStatus
from bracket_engine.models.team import Team
from bracket_engine.models.tournament import Tournament, TournamentStatus

TEST_DATABASE_URL = "sqlite:///:memory:"

# ============================================================================
# Test Database Setup with StaticPool
# ============================================================================
# 1. sqlite:///:memory: with StaticPool so ALL sessions share the same DB
# 2. check_same_thread=False required for TestClient/threaded access
# 3. Tables are dropped and recreated for every test
# 4. App dependency overridden to use test_engine (see client_fixture)
test_engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


def override_get_session():
    """Override session to use test engine"""
    with Session(test_engine) as session:
        yield session


@pytest.fixture(name="session", scope="function")
def session_fixture():
    """Provide a test database session on a fresh schema"""
    import_models()
    SQLModel.metadata.drop_all(test_engine)
    SQLModel.metadata.create_all(test_engine)

    with Session(test_engine) as session:
        yield session


@pytest.fixture(name="client")
def client_fixture(session: Session):
    """Provide a test client with overridden database session

    Override is set BEFORE TestClient() so the app never touches its own engine.
    """
    app.dependency_overrides[get_session] = override_get_session

    with TestClient(app) as client:
        yield client

    app.dependency_overrides.clear()


# ============================================================================
# Data builders
# ============================================================================


def add_team(
    session: Session,
    tournament: Tournament,
    category: Category,
    index: int,
    seed: Optional[int] = None,
    points: Optional[int] = None,
    status: RegistrationStatus = RegistrationStatus.CONFIRMED,
    created_at: Optional[datetime] = None,
) -> Team:
    """Team of two registered players; created_at defaults to registration order by index."""
    regs = []
    for player in (1, 2):
        reg = Registration(
            tournament_id=tournament.id,
            category_id=category.id,
            player_name=f"Player {index}.{player}",
            ranking_points=points,
            status=status.value,
        )
        session.add(reg)
        regs.append(reg)
    session.flush()
    team = Team(
        tournament_id=tournament.id,
        category_id=category.id,
        name=f"Team {index}",
        seed=seed,
        registration1_id=regs[0].id,
        registration2_id=regs[1].id,
        created_at=created_at or datetime(2026, 1, 1) + timedelta(minutes=index),
    )
    session.add(team)
    session.commit()
    session.refresh(team)
    return team


@pytest.fixture
def make_tournament(session: Session) -> Callable:
    """
    Build a tournament with one category and n confirmed teams.

    Returns (tournament, category, teams) with teams in registration order.
    """
    counter = {"n": 0}

    def _make(
        format: str,
        team_count: int,
        status: str = TournamentStatus.PUBLISHED.value,
        seeded: bool = False,
        min_participants: int = 2,
    ):
        counter["n"] += 1
        tournament = Tournament(
            name=f"Open {counter['n']}",
            format=format,
            status=status,
            min_participants=min_participants,
        )
        category = Category(name=f"Men A {counter['n']}")
        session.add(tournament)
        session.add(category)
        session.commit()
        session.refresh(tournament)
        session.refresh(category)
        session.add(TournamentCategory(tournament_id=tournament.id, category_id=category.id))
        session.commit()

        teams: List[Team] = [
            add_team(session, tournament, category, i, seed=i if seeded else None)
            for i in range(1, team_count + 1)
        ]
        return tournament, category, teams

    return _make


@pytest.fixture
def new_team(session: Session) -> Callable:
    """add_team bound to the test session"""

    def _new_team(tournament: Tournament, category: Category, index: int, **kwargs) -> Team:
        return add_team(session, tournament, category, index, **kwargs)

    return _new_team
