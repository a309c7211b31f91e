"""Initial schema: users, performers, enquiries, bookings, payments, messaging and reviews.

Revision ID: 001
Revises: None
Create Date: 2026-10-16
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    # Users table
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("hashed_password", sa.String(255), nullable=False),
        sa.Column("first_name", sa.String(50), nullable=False),
        sa.Column("last_name", sa.String(50), nullable=False),
        sa.Column("phone", sa.String(30), nullable=True),
        sa.Column("user_type", sa.String(20), nullable=False, server_default=sa.text("'CLIENT'")),
        sa.Column("status", sa.String(20), nullable=False, server_default=sa.text("'ACTIVE'")),
        sa.Column("profile_image_url", sa.String(500), nullable=True),
        sa.Column("email_verified", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("last_login", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("user_type IN ('CLIENT', 'PERFORMER', 'ADMIN')", name="check_user_type"),
        sa.CheckConstraint("status IN ('ACTIVE', 'INACTIVE', 'SUSPENDED')", name="check_user_status"),
    )
    op.create_index("ix_users_id", "users", ["id"])
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    # Categories table
    op.create_table(
        "categories",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("slug", sa.String(100), nullable=False),
        sa.Column("description", sa.String(500), nullable=True),
        sa.Column("icon_url", sa.String(500), nullable=True),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        *_timestamps(),
    )
    op.create_index("ix_categories_id", "categories", ["id"])
    op.create_index("ix_categories_slug", "categories", ["slug"], unique=True)

    # Performers table
    op.create_table(
        "performers",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("business_name", sa.String(100), nullable=True),
        sa.Column("bio", sa.String(2000), nullable=True),
        sa.Column("location", sa.String(100), nullable=False),
        sa.Column("postcode", sa.String(10), nullable=True),
        sa.Column("latitude", sa.Float(), nullable=True),
        sa.Column("longitude", sa.Float(), nullable=True),
        sa.Column("travel_distance", sa.Integer(), nullable=True),
        sa.Column("base_price", sa.Numeric(10, 2), nullable=False),
        sa.Column("price_per_hour", sa.Numeric(10, 2), nullable=True),
        sa.Column("minimum_booking_hours", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("setup_time_minutes", sa.Integer(), nullable=False, server_default=sa.text("30")),
        sa.Column("website_url", sa.String(500), nullable=True),
        sa.Column("facebook_url", sa.String(500), nullable=True),
        sa.Column("instagram_url", sa.String(500), nullable=True),
        sa.Column("youtube_url", sa.String(500), nullable=True),
        sa.Column("is_verified", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("is_featured", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("average_rating", sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.Column("total_reviews", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("total_bookings", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("response_rate", sa.Float(), nullable=True),
        sa.Column("response_time_hours", sa.Float(), nullable=True),
        sa.Column("stripe_account_id", sa.String(255), nullable=True),
        sa.Column("stripe_onboarding_complete", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("payout_enabled", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        *_timestamps(),
        sa.CheckConstraint("base_price >= 0", name="check_performer_base_price_non_negative"),
    )
    op.create_index("ix_performers_id", "performers", ["id"])
    op.create_index("ix_performers_user_id", "performers", ["user_id"], unique=True)
    # Search sorts by rating and price; both are hit on every listing page.
    op.create_index("ix_performers_rating", "performers", ["average_rating"])
    op.create_index("ix_performers_price", "performers", ["base_price"])

    # Performer <-> category link table
    op.create_table(
        "performer_categories",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("performer_id", sa.Integer(), sa.ForeignKey("performers.id", ondelete="CASCADE"), nullable=False),
        sa.Column("category_id", sa.Integer(), sa.ForeignKey("categories.id"), nullable=False),
        sa.Column("is_primary", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.UniqueConstraint("performer_id", "category_id", name="uq_performer_category"),
    )
    op.create_index("ix_performer_categories_performer_id", "performer_categories", ["performer_id"])
    op.create_index("ix_performer_categories_category_id", "performer_categories", ["category_id"])

    # Enquiries table
    op.create_table(
        "enquiries",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("client_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("performer_id", sa.Integer(), sa.ForeignKey("performers.id"), nullable=False),
        sa.Column("event_type", sa.String(100), nullable=False),
        sa.Column("event_date", sa.Date(), nullable=False),
        sa.Column("event_time", sa.String(10), nullable=True),
        sa.Column("event_duration", sa.Integer(), nullable=False),
        sa.Column("event_location", sa.String(255), nullable=False),
        sa.Column("guest_count", sa.Integer(), nullable=True),
        sa.Column("budget_min", sa.Numeric(10, 2), nullable=True),
        sa.Column("budget_max", sa.Numeric(10, 2), nullable=True),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("special_requests", sa.Text(), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default=sa.text("'PENDING'")),
        sa.Column("performer_response", sa.Text(), nullable=True),
        sa.Column("quoted_price", sa.Numeric(10, 2), nullable=True),
        sa.Column("response_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            "status IN ('PENDING', 'RESPONDED', 'ACCEPTED', 'DECLINED', 'EXPIRED')",
            name="check_enquiry_status",
        ),
        sa.CheckConstraint("event_duration BETWEEN 1 AND 24", name="check_enquiry_duration"),
    )
    op.create_index("ix_enquiries_id", "enquiries", ["id"])
    op.create_index("ix_enquiries_client_id", "enquiries", ["client_id"])
    op.create_index("ix_enquiries_performer_id", "enquiries", ["performer_id"])
    op.create_index("ix_enquiries_status", "enquiries", ["status"])
    # Covers the expiry sweep: WHERE status = 'PENDING' AND expires_at < now()
    op.create_index("ix_enquiries_expires_at", "enquiries", ["status", "expires_at"])

    # Bookings table
    op.create_table(
        "bookings",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("enquiry_id", sa.Integer(), sa.ForeignKey("enquiries.id"), nullable=False),
        sa.Column("client_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("performer_id", sa.Integer(), sa.ForeignKey("performers.id"), nullable=False),
        sa.Column("event_type", sa.String(100), nullable=False),
        sa.Column("event_date", sa.Date(), nullable=False),
        sa.Column("event_time", sa.String(10), nullable=True),
        sa.Column("event_duration", sa.Integer(), nullable=False),
        sa.Column("event_location", sa.String(255), nullable=False),
        sa.Column("guest_count", sa.Integer(), nullable=True),
        sa.Column("special_requests", sa.Text(), nullable=True),
        sa.Column("confirmed_price", sa.Numeric(10, 2), nullable=False),
        sa.Column("deposit_amount", sa.Numeric(10, 2), nullable=False),
        sa.Column("platform_fee", sa.Numeric(10, 2), nullable=False),
        sa.Column("performer_amount", sa.Numeric(10, 2), nullable=False),
        sa.Column("deposit_paid", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("status", sa.String(20), nullable=False, server_default=sa.text("'CONFIRMED'")),
        sa.Column("payment_status", sa.String(20), nullable=False, server_default=sa.text("'pending'")),
        sa.Column("stripe_payment_intent_id", sa.String(255), nullable=True),
        sa.Column("cancellation_reason", sa.Text(), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancelled_by", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("refund_status", sa.String(20), nullable=False, server_default=sa.text("'NONE'")),
        sa.Column("refund_reason", sa.Text(), nullable=True),
        sa.Column("payout_status", sa.String(20), nullable=False, server_default=sa.text("'pending'")),
        sa.Column("payout_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("stripe_transfer_id", sa.String(255), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("enquiry_id", name="uq_booking_enquiry"),
        sa.CheckConstraint("confirmed_price > 0", name="check_booking_price_positive"),
        sa.CheckConstraint(
            "status IN ('CONFIRMED', 'COMPLETED', 'CANCELLED', 'DISPUTED')",
            name="check_booking_status",
        ),
        sa.CheckConstraint(
            "refund_status IN ('NONE', 'PENDING', 'REFUNDED', 'FAILED')",
            name="check_booking_refund_status",
        ),
    )
    op.create_index("ix_bookings_id", "bookings", ["id"])
    op.create_index("ix_bookings_client_id", "bookings", ["client_id"])
    op.create_index("ix_bookings_performer_id", "bookings", ["performer_id"])
    op.create_index("ix_bookings_status", "bookings", ["status"])
    op.create_index("ix_bookings_refund_status", "bookings", ["refund_status"])
    op.create_index("ix_bookings_payout_status", "bookings", ["payout_status"])
    op.create_index("ix_bookings_stripe_payment_intent_id", "bookings", ["stripe_payment_intent_id"])

    # Transactions table
    op.create_table(
        "transactions",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("booking_id", sa.Integer(), sa.ForeignKey("bookings.id"), nullable=False),
        sa.Column("type", sa.String(20), nullable=False),
        sa.Column("amount", sa.Numeric(10, 2), nullable=False),
        sa.Column("currency", sa.String(3), nullable=False, server_default=sa.text("'gbp'")),
        sa.Column("status", sa.String(20), nullable=False, server_default=sa.text("'PENDING'")),
        sa.Column("stripe_payment_intent_id", sa.String(255), nullable=True),
        sa.Column("stripe_refund_id", sa.String(255), nullable=True),
        sa.Column("stripe_transfer_id", sa.String(255), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("type IN ('DEPOSIT', 'BALANCE', 'REFUND', 'PAYOUT')", name="check_transaction_type"),
        sa.CheckConstraint(
            "status IN ('PENDING', 'SUCCEEDED', 'FAILED', 'CANCELLED')",
            name="check_transaction_status",
        ),
        sa.CheckConstraint("amount >= 0", name="check_transaction_amount_non_negative"),
    )
    op.create_index("ix_transactions_id", "transactions", ["id"])
    op.create_index("ix_transactions_booking_id", "transactions", ["booking_id"])
    # Webhooks look transactions up by processor id
    op.create_index("ix_transactions_stripe_payment_intent_id", "transactions", ["stripe_payment_intent_id"])
    op.create_index("ix_transactions_stripe_refund_id", "transactions", ["stripe_refund_id"])

    # Message threads and messages
    op.create_table(
        "message_threads",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("enquiry_id", sa.Integer(), sa.ForeignKey("enquiries.id"), nullable=False),
        sa.Column("booking_id", sa.Integer(), sa.ForeignKey("bookings.id"), nullable=True),
        sa.Column("client_user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("performer_user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("is_archived", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        *_timestamps(),
        sa.UniqueConstraint("enquiry_id", name="uq_thread_enquiry"),
    )
    op.create_index("ix_message_threads_id", "message_threads", ["id"])
    op.create_index("ix_message_threads_client_user_id", "message_threads", ["client_user_id"])
    op.create_index("ix_message_threads_performer_user_id", "message_threads", ["performer_user_id"])

    op.create_table(
        "messages",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("thread_id", sa.Integer(), sa.ForeignKey("message_threads.id", ondelete="CASCADE"), nullable=False),
        sa.Column("sender_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("file_url", sa.String(500), nullable=True),
        sa.Column("is_read", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("sent_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_messages_id", "messages", ["id"])
    op.create_index("ix_messages_thread_id", "messages", ["thread_id"])

    # Reviews and testimonials
    op.create_table(
        "reviews",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("booking_id", sa.Integer(), sa.ForeignKey("bookings.id"), nullable=False),
        sa.Column("client_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("performer_id", sa.Integer(), sa.ForeignKey("performers.id"), nullable=False),
        sa.Column("rating_overall", sa.Integer(), nullable=False),
        sa.Column("rating_quality", sa.Integer(), nullable=False),
        sa.Column("rating_communication", sa.Integer(), nullable=False),
        sa.Column("written_review", sa.Text(), nullable=False),
        sa.Column("event_type", sa.String(20), nullable=False),
        sa.Column("photos", sa.JSON(), nullable=False),
        sa.Column("is_verified", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        *_timestamps(),
        sa.UniqueConstraint("booking_id", name="uq_review_booking"),
        sa.CheckConstraint("rating_overall BETWEEN 1 AND 5", name="check_review_rating_overall"),
        sa.CheckConstraint("rating_quality BETWEEN 1 AND 5", name="check_review_rating_quality"),
        sa.CheckConstraint("rating_communication BETWEEN 1 AND 5", name="check_review_rating_communication"),
    )
    op.create_index("ix_reviews_id", "reviews", ["id"])
    op.create_index("ix_reviews_client_id", "reviews", ["client_id"])
    op.create_index("ix_reviews_performer_id", "reviews", ["performer_id"])

    op.create_table(
        "testimonials",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("performer_id", sa.Integer(), sa.ForeignKey("performers.id"), nullable=False),
        sa.Column("author_name", sa.String(100), nullable=False),
        sa.Column("quote", sa.Text(), nullable=False),
        sa.Column("event_type", sa.String(20), nullable=False),
        sa.Column("is_featured", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("submitted_by", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_testimonials_id", "testimonials", ["id"])
    op.create_index("ix_testimonials_performer_id", "testimonials", ["performer_id"])

    # Stripe webhook deliveries
    op.create_table(
        "webhook_events",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("stripe_event_id", sa.String(255), nullable=False),
        sa.Column("event_type", sa.String(100), nullable=False),
        sa.Column("booking_id", sa.Integer(), sa.ForeignKey("bookings.id"), nullable=True),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("error", sa.Text(), nullable=True),
        sa.Column("payload", sa.JSON(), nullable=True),
        sa.Column("processed_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_webhook_events_id", "webhook_events", ["id"])
    op.create_index("ix_webhook_events_stripe_event_id", "webhook_events", ["stripe_event_id"], unique=True)
    op.create_index("ix_webhook_events_booking_id", "webhook_events", ["booking_id"])


def downgrade() -> None:
    op.drop_table("webhook_events")
    op.drop_table("testimonials")
    op.drop_table("reviews")
    op.drop_table("messages")
    op.drop_table("message_threads")
    op.drop_table("transactions")
    op.drop_table("bookings")
    op.drop_table("enquiries")
    op.drop_table("performer_categories")
    op.drop_table("performers")
    op.drop_table("categories")
    op.drop_table("users")
