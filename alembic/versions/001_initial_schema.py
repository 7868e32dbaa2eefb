"""initial schema

Revision ID: 001
Revises:
Create Date: 2026-10-16

"""

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "001"
down_revision = None
branch_labels = None
depends_on = None

BATTLE_STATES = ("requested", "active", "rejected", "completed", "tied", "forfeited")
BATTLE_SIDES = ("player_one", "player_two")


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("username", sa.String(length=100), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_users_id"), "users", ["id"], unique=False)
    op.create_index(op.f("ix_users_username"), "users", ["username"], unique=True)

    op.create_table(
        "cards",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("hp", sa.Integer(), nullable=False),
        sa.Column("attack_damage", sa.Integer(), nullable=False),
        sa.Column(
            "rarity",
            sa.Enum("common", "uncommon", "rare", "legendary", name="cardrarity"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("hp > 0", name="ck_cards_hp_positive"),
        sa.CheckConstraint("attack_damage >= 0", name="ck_cards_attack_damage_non_negative"),
    )
    op.create_index(op.f("ix_cards_id"), "cards", ["id"], unique=False)

    op.create_table(
        "deck_cards",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("card_id", sa.Integer(), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["card_id"], ["cards.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", "position", name="uq_deck_cards_user_position"),
    )
    op.create_index(op.f("ix_deck_cards_id"), "deck_cards", ["id"], unique=False)
    op.create_index(op.f("ix_deck_cards_user_id"), "deck_cards", ["user_id"], unique=False)

    op.create_table(
        "battles",
        sa.Column("id", sa.Integer(), nullable=False, autoincrement=True),
        sa.Column("state", sa.Enum(*BATTLE_STATES, name="battlestate"), nullable=False),
        sa.Column("player_one_id", sa.Integer(), nullable=False),
        sa.Column("player_two_id", sa.Integer(), nullable=False),
        sa.Column("winner_id", sa.Integer(), nullable=True),
        sa.Column("low_player_id", sa.Integer(), nullable=False),
        sa.Column("high_player_id", sa.Integer(), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.ForeignKeyConstraint(["player_one_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["player_two_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["winner_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_battles_id"), "battles", ["id"], unique=False)
    op.create_index(op.f("ix_battles_state"), "battles", ["state"], unique=False)
    op.create_index(op.f("ix_battles_player_one_id"), "battles", ["player_one_id"], unique=False)
    op.create_index(op.f("ix_battles_player_two_id"), "battles", ["player_two_id"], unique=False)
    op.create_index(
        "uq_battles_open_pair",
        "battles",
        ["low_player_id", "high_player_id"],
        unique=True,
        sqlite_where=sa.text("state IN ('requested', 'active')"),
        postgresql_where=sa.text("state IN ('requested', 'active')"),
    )

    op.create_table(
        "battle_cards",
        sa.Column("id", sa.Integer(), nullable=False, autoincrement=True),
        sa.Column("battle_id", sa.Integer(), nullable=False),
        sa.Column("card_id", sa.Integer(), nullable=False),
        sa.Column("side", sa.Enum(*BATTLE_SIDES, name="battleside"), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("current_hp", sa.Integer(), nullable=False),
        sa.Column("is_dead", sa.Boolean(), nullable=False),
        sa.ForeignKeyConstraint(["battle_id"], ["battles.id"]),
        sa.ForeignKeyConstraint(["card_id"], ["cards.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_battle_cards_id"), "battle_cards", ["id"], unique=False)
    op.create_index(op.f("ix_battle_cards_battle_id"), "battle_cards", ["battle_id"], unique=False)

    op.create_table(
        "played_cards",
        sa.Column("id", sa.Integer(), nullable=False, autoincrement=True),
        sa.Column("battle_card_id", sa.Integer(), nullable=False),
        sa.Column("round_start_hp", sa.Integer(), nullable=False),
        sa.Column("round_end_hp", sa.Integer(), nullable=True),
        sa.ForeignKeyConstraint(["battle_card_id"], ["battle_cards.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_played_cards_id"), "played_cards", ["id"], unique=False)
    op.create_index(
        op.f("ix_played_cards_battle_card_id"), "played_cards", ["battle_card_id"], unique=False
    )

    op.create_table(
        "battle_rounds",
        sa.Column("id", sa.Integer(), nullable=False, autoincrement=True),
        sa.Column("battle_id", sa.Integer(), nullable=False),
        sa.Column("number", sa.Integer(), nullable=False),
        sa.Column("player_one_card_id", sa.Integer(), nullable=True),
        sa.Column("player_two_card_id", sa.Integer(), nullable=True),
        sa.Column("player_one_viewed", sa.Boolean(), nullable=False),
        sa.Column("player_two_viewed", sa.Boolean(), nullable=False),
        sa.ForeignKeyConstraint(["battle_id"], ["battles.id"]),
        sa.ForeignKeyConstraint(["player_one_card_id"], ["played_cards.id"]),
        sa.ForeignKeyConstraint(["player_two_card_id"], ["played_cards.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_battle_rounds_id"), "battle_rounds", ["id"], unique=False)
    op.create_index(
        op.f("ix_battle_rounds_battle_id"), "battle_rounds", ["battle_id"], unique=False
    )


def downgrade() -> None:
    op.drop_index(op.f("ix_battle_rounds_battle_id"), table_name="battle_rounds")
    op.drop_index(op.f("ix_battle_rounds_id"), table_name="battle_rounds")
    op.drop_table("battle_rounds")

    op.drop_index(op.f("ix_played_cards_battle_card_id"), table_name="played_cards")
    op.drop_index(op.f("ix_played_cards_id"), table_name="played_cards")
    op.drop_table("played_cards")

    op.drop_index(op.f("ix_battle_cards_battle_id"), table_name="battle_cards")
    op.drop_index(op.f("ix_battle_cards_id"), table_name="battle_cards")
    op.drop_table("battle_cards")

    op.drop_index("uq_battles_open_pair", table_name="battles")
    op.drop_index(op.f("ix_battles_player_two_id"), table_name="battles")
    op.drop_index(op.f("ix_battles_player_one_id"), table_name="battles")
    op.drop_index(op.f("ix_battles_state"), table_name="battles")
    op.drop_index(op.f("ix_battles_id"), table_name="battles")
    op.drop_table("battles")

    op.drop_index(op.f("ix_deck_cards_user_id"), table_name="deck_cards")
    op.drop_index(op.f("ix_deck_cards_id"), table_name="deck_cards")
    op.drop_table("deck_cards")

    op.drop_index(op.f("ix_cards_id"), table_name="cards")
    op.drop_table("cards")

    op.drop_index(op.f("ix_users_username"), table_name="users")
    op.drop_index(op.f("ix_users_id"), table_name="users")
    op.drop_table("users")

    op.execute("DROP TYPE IF EXISTS battlestate")
    op.execute("DROP TYPE IF EXISTS battleside")
    op.execute("DROP TYPE IF EXISTS cardrarity")
