"""Initial bracket schema: tournaments, categories, registrations, teams, zones, matches, sets

Revision ID: 001_initial_bracket
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision = "001_initial_bracket"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "tournament",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("format", sa.String(), nullable=False),
        sa.Column("status", sa.String(), nullable=False),
        sa.Column("min_participants", sa.Integer(), nullable=False, server_default="2"),
        sa.Column("start_date", sa.Date(), nullable=True),
        sa.Column("end_date", sa.Date(), nullable=True),
        sa.Column("notes", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "category",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_category_name", "category", ["name"], unique=True)

    op.create_table(
        "tournamentcategory",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("tournament_id", sa.Integer(), nullable=False),
        sa.Column("category_id", sa.Integer(), nullable=False),
        sa.Column("max_teams", sa.Integer(), nullable=True),
        sa.ForeignKeyConstraint(["tournament_id"], ["tournament.id"]),
        sa.ForeignKeyConstraint(["category_id"], ["category.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("tournament_id", "category_id", name="uq_tournament_category"),
    )
    op.create_index("ix_tournamentcategory_tournament_id", "tournamentcategory", ["tournament_id"])
    op.create_index("ix_tournamentcategory_category_id", "tournamentcategory", ["category_id"])

    op.create_table(
        "registration",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("tournament_id", sa.Integer(), nullable=False),
        sa.Column("category_id", sa.Integer(), nullable=False),
        sa.Column("player_name", sa.String(), nullable=False),
        sa.Column("ranking_points", sa.Integer(), nullable=True),
        sa.Column("status", sa.String(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["tournament_id"], ["tournament.id"]),
        sa.ForeignKeyConstraint(["category_id"], ["category.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_registration_tournament_id", "registration", ["tournament_id"])
    op.create_index("ix_registration_category_id", "registration", ["category_id"])

    op.create_table(
        "team",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("tournament_id", sa.Integer(), nullable=False),
        sa.Column("category_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(), nullable=True),
        sa.Column("seed", sa.Integer(), nullable=True),
        sa.Column("registration1_id", sa.Integer(), nullable=False),
        sa.Column("registration2_id", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["tournament_id"], ["tournament.id"]),
        sa.ForeignKeyConstraint(["category_id"], ["category.id"]),
        sa.ForeignKeyConstraint(["registration1_id"], ["registration.id"]),
        sa.ForeignKeyConstraint(["registration2_id"], ["registration.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("tournament_id", "category_id", "seed", name="uq_category_seed"),
    )
    op.create_index("ix_team_tournament_id", "team", ["tournament_id"])
    op.create_index("ix_team_category_id", "team", ["category_id"])

    op.create_table(
        "zone",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("tournament_id", sa.Integer(), nullable=False),
        sa.Column("category_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("phase_type", sa.String(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["tournament_id"], ["tournament.id"]),
        sa.ForeignKeyConstraint(["category_id"], ["category.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_zone_tournament_id", "zone", ["tournament_id"])
    op.create_index("ix_zone_category_id", "zone", ["category_id"])

    op.create_table(
        "zoneteam",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("zone_id", sa.Integer(), nullable=False),
        sa.Column("team_id", sa.Integer(), nullable=False),
        sa.Column("position", sa.Integer(), nullable=True),
        sa.ForeignKeyConstraint(["zone_id"], ["zone.id"]),
        sa.ForeignKeyConstraint(["team_id"], ["team.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("zone_id", "team_id", name="uq_zone_team"),
    )
    op.create_index("ix_zoneteam_zone_id", "zoneteam", ["zone_id"])
    op.create_index("ix_zoneteam_team_id", "zoneteam", ["team_id"])

    op.create_table(
        "match",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("tournament_id", sa.Integer(), nullable=False),
        sa.Column("category_id", sa.Integer(), nullable=False),
        sa.Column("zone_id", sa.Integer(), nullable=True),
        sa.Column("round_number", sa.Integer(), nullable=False),
        sa.Column("match_number", sa.Integer(), nullable=False),
        sa.Column("phase_type", sa.String(), nullable=False),
        sa.Column("bracket", sa.String(), nullable=False),
        sa.Column("team1_id", sa.Integer(), nullable=True),
        sa.Column("team2_id", sa.Integer(), nullable=True),
        sa.Column("team1_from_match_id", sa.Integer(), nullable=True),
        sa.Column("team2_from_match_id", sa.Integer(), nullable=True),
        sa.Column("team1_from_role", sa.String(), nullable=True),
        sa.Column("team2_from_role", sa.String(), nullable=True),
        sa.Column("status", sa.String(), nullable=False),
        sa.Column("winner_team_id", sa.Integer(), nullable=True),
        sa.Column("team1_sets_won", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("team2_sets_won", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_bye", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("notes", sa.String(), nullable=True),
        sa.Column("duration_minutes", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("completed_at", sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(["tournament_id"], ["tournament.id"]),
        sa.ForeignKeyConstraint(["category_id"], ["category.id"]),
        sa.ForeignKeyConstraint(["zone_id"], ["zone.id"]),
        sa.ForeignKeyConstraint(["team1_id"], ["team.id"]),
        sa.ForeignKeyConstraint(["team2_id"], ["team.id"]),
        sa.ForeignKeyConstraint(["winner_team_id"], ["team.id"]),
        sa.ForeignKeyConstraint(["team1_from_match_id"], ["match.id"]),
        sa.ForeignKeyConstraint(["team2_from_match_id"], ["match.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "tournament_id", "category_id", "round_number", "match_number", name="uq_match_round_number"
        ),
    )
    op.create_index("ix_match_tournament_id", "match", ["tournament_id"])
    op.create_index("ix_match_category_id", "match", ["category_id"])
    op.create_index("ix_match_zone_id", "match", ["zone_id"])

    op.create_table(
        "matchset",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("match_id", sa.Integer(), nullable=False),
        sa.Column("set_number", sa.Integer(), nullable=False),
        sa.Column("team1_games", sa.Integer(), nullable=False),
        sa.Column("team2_games", sa.Integer(), nullable=False),
        sa.Column("team1_tiebreak", sa.Integer(), nullable=True),
        sa.Column("team2_tiebreak", sa.Integer(), nullable=True),
        sa.ForeignKeyConstraint(["match_id"], ["match.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("match_id", "set_number", name="uq_match_set_number"),
    )
    op.create_index("ix_matchset_match_id", "matchset", ["match_id"])


def downgrade() -> None:
    op.drop_table("matchset")
    op.drop_table("match")
    op.drop_table("zoneteam")
    op.drop_table("zone")
    op.drop_table("team")
    op.drop_table("registration")
    op.drop_table("tournamentcategory")
    op.drop_table("category")
    op.drop_table("tournament")
