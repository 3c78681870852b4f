"""initial booking schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19 10:00:00

"""
from alembic import op
import sqlalchemy as sa

revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("email", sa.String(length=100), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_users_id", "users", ["id"])
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "movies",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("title", sa.String(length=150), nullable=False),
        sa.Column("language", sa.String(length=50), nullable=True),
        sa.Column("runtime", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_movies_id", "movies", ["id"])

    op.create_table(
        "theaters",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=150), nullable=False),
        sa.Column("location", sa.String(length=150), nullable=False),
    )
    op.create_index("ix_theaters_id", "theaters", ["id"])
    op.create_index("ix_theaters_name", "theaters", ["name"], unique=True)

    op.create_table(
        "showtimes",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("movie_id", sa.Integer(), sa.ForeignKey("movies.id"), nullable=False),
        sa.Column("theater_id", sa.Integer(), sa.ForeignKey("theaters.id"), nullable=False),
        sa.Column("start_time", sa.DateTime(), nullable=False),
        sa.Column("screen", sa.String(length=50), nullable=False),
        sa.Column("capacity", sa.Integer(), nullable=False),
        sa.Column("price_per_seat", sa.Integer(), nullable=False),
        sa.Column("blocked_seats", sa.JSON(), nullable=False),
        sa.UniqueConstraint("movie_id", "theater_id", "start_time", name="uq_showtime_slot"),
    )
    op.create_index("ix_showtimes_id", "showtimes", ["id"])

    op.create_table(
        "bookings",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("movie_id", sa.Integer(), sa.ForeignKey("movies.id"), nullable=False),
        sa.Column("theater_name", sa.String(length=150), nullable=False),
        sa.Column("theater_location", sa.String(length=150), nullable=False),
        sa.Column("showtime_id", sa.Integer(), sa.ForeignKey("showtimes.id"), nullable=False),
        sa.Column("showtime_start", sa.DateTime(), nullable=False),
        sa.Column("seats", sa.JSON(), nullable=False),
        sa.Column("amount", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("payment_status", sa.String(length=20), nullable=False),
        sa.Column("order_id", sa.String(length=100), nullable=True),
        sa.Column("payment_id", sa.String(length=100), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_bookings_id", "bookings", ["id"])
    op.create_index("ix_bookings_user_id", "bookings", ["user_id"])
    op.create_index("ix_bookings_order_id", "bookings", ["order_id"])

    op.create_table(
        "seat_claims",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("booking_id", sa.Integer(), sa.ForeignKey("bookings.id"), nullable=False),
        sa.Column("movie_id", sa.Integer(), nullable=False),
        sa.Column("theater_name", sa.String(length=150), nullable=False),
        sa.Column("showtime_start", sa.DateTime(), nullable=False),
        sa.Column("seat_label", sa.String(length=10), nullable=False),
        sa.UniqueConstraint(
            "movie_id", "theater_name", "showtime_start", "seat_label",
            name="uq_seat_claim_triple_seat",
        ),
    )
    op.create_index("ix_seat_claims_id", "seat_claims", ["id"])
    op.create_index("ix_seat_claims_booking_id", "seat_claims", ["booking_id"])

    op.create_table(
        "payment_orders",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("order_id", sa.String(length=100), nullable=False),
        sa.Column("amount", sa.Integer(), nullable=False),
        sa.Column("currency", sa.String(length=10), nullable=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("payment_id", sa.String(length=100), nullable=True),
        sa.Column("booking_id", sa.Integer(), sa.ForeignKey("bookings.id"), nullable=True),
        sa.Column("meta", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_payment_orders_id", "payment_orders", ["id"])
    op.create_index("ix_payment_orders_order_id", "payment_orders", ["order_id"], unique=True)
    op.create_index("ix_payment_orders_payment_id", "payment_orders", ["payment_id"])


def downgrade():
    op.drop_table("payment_orders")
    op.drop_table("seat_claims")
    op.drop_table("bookings")
    op.drop_table("showtimes")
    op.drop_table("theaters")
    op.drop_table("movies")
    op.drop_table("users")
