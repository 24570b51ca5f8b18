"""
Relational schema.

The DDL is kept portable between PostgreSQL and SQLite:
- ids are UUID strings generated by the application
- list columns (tags, images, upvoters, interests) hold JSON-encoded TEXT
- booleans use TRUE/FALSE literals
"""

import logging

from sqlalchemy import text

from opportunity_hub.db.postgres import get_db_session

logger = logging.getLogger(__name__)


TABLES = [
    """
    CREATE TABLE IF NOT EXISTS users (
        id VARCHAR(36) PRIMARY KEY,
        name TEXT NOT NULL,
        email VARCHAR(255) NOT NULL UNIQUE,
        password_hash TEXT NOT NULL,
        image TEXT,
        role VARCHAR(16) NOT NULL DEFAULT 'user',
        is_active BOOLEAN NOT NULL DEFAULT TRUE,
        college_institute TEXT,
        contact_number TEXT,
        current_position TEXT,
        field_interests TEXT NOT NULL DEFAULT '[]',
        opportunity_interests TEXT NOT NULL DEFAULT '[]',
        skills TEXT,
        calendar_reminder_week BOOLEAN NOT NULL DEFAULT TRUE,
        calendar_reminder_day BOOLEAN NOT NULL DEFAULT TRUE,
        calendar_reminder_hour BOOLEAN NOT NULL DEFAULT TRUE,
        created_at TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP,
        deleted_at TIMESTAMPTZ
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS tags (
        id VARCHAR(36) PRIMARY KEY,
        name TEXT NOT NULL UNIQUE,
        created_at TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS internships (
        id VARCHAR(36) PRIMARY KEY,
        type VARCHAR(16),
        timing VARCHAR(16),
        title TEXT NOT NULL,
        description TEXT,
        link TEXT,
        poster TEXT,
        tags TEXT NOT NULL DEFAULT '[]',
        location TEXT,
        deadline DATE,
        stipend INTEGER,
        duration TEXT,
        experience TEXT,
        hiring_organization TEXT NOT NULL,
        hiring_manager TEXT,
        is_flagged BOOLEAN NOT NULL DEFAULT FALSE,
        is_verified BOOLEAN NOT NULL DEFAULT FALSE,
        is_active BOOLEAN NOT NULL DEFAULT TRUE,
        view_count INTEGER NOT NULL DEFAULT 0,
        application_count INTEGER NOT NULL DEFAULT 0,
        user_id VARCHAR(36) NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        created_at TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP,
        deleted_at TIMESTAMPTZ
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS opportunities (
        id VARCHAR(36) PRIMARY KEY,
        type VARCHAR(32) NOT NULL DEFAULT 'hackathon',
        title TEXT NOT NULL,
        description TEXT NOT NULL,
        location TEXT,
        organiser_info TEXT,
        start_date DATE,
        end_date DATE,
        publish_at TIMESTAMPTZ,
        images TEXT NOT NULL DEFAULT '[]',
        tags TEXT NOT NULL DEFAULT '[]',
        upvoter_ids TEXT NOT NULL DEFAULT '[]',
        upvote_count INTEGER NOT NULL DEFAULT 0,
        is_flagged BOOLEAN NOT NULL DEFAULT FALSE,
        is_verified BOOLEAN NOT NULL DEFAULT FALSE,
        is_active BOOLEAN NOT NULL DEFAULT TRUE,
        user_id VARCHAR(36) NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        created_at TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP,
        deleted_at TIMESTAMPTZ
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS comments (
        id VARCHAR(36) PRIMARY KEY,
        content TEXT NOT NULL,
        user_id VARCHAR(36) NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        opportunity_id VARCHAR(36) NOT NULL REFERENCES opportunities(id) ON DELETE CASCADE,
        created_at TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS bookmarks (
        id VARCHAR(36) PRIMARY KEY,
        user_id VARCHAR(36) NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        opportunity_id VARCHAR(36) NOT NULL REFERENCES opportunities(id) ON DELETE CASCADE,
        created_at TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP,
        UNIQUE (user_id, opportunity_id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS tracker_items (
        id VARCHAR(36) PRIMARY KEY,
        user_id VARCHAR(36) NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        opp_id TEXT NOT NULL,
        kind VARCHAR(16) NOT NULL DEFAULT 'internship',
        status VARCHAR(32) NOT NULL,
        notes TEXT,
        added_at TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP,
        applied_at TIMESTAMPTZ,
        result TEXT,
        is_manual BOOLEAN NOT NULL DEFAULT FALSE,
        manual_data TEXT,
        created_at TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP,
        UNIQUE (user_id, opp_id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS tracker_events (
        id VARCHAR(36) PRIMARY KEY,
        user_id VARCHAR(36) NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        title TEXT NOT NULL,
        date TIMESTAMPTZ NOT NULL,
        type TEXT NOT NULL,
        description TEXT,
        created_at TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS user_onboarding_profiles (
        id VARCHAR(36) PRIMARY KEY,
        user_id VARCHAR(36) NOT NULL UNIQUE REFERENCES users(id) ON DELETE CASCADE,
        persona VARCHAR(16) NOT NULL,
        location_type VARCHAR(16),
        location_value TEXT,
        education_level TEXT,
        field_of_study TEXT,
        field_other TEXT,
        opportunity_interests TEXT NOT NULL DEFAULT '[]',
        domain_preferences TEXT NOT NULL DEFAULT '[]',
        struggles TEXT NOT NULL DEFAULT '[]',
        created_at TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS toolkits (
        id VARCHAR(36) PRIMARY KEY,
        title TEXT NOT NULL,
        description TEXT NOT NULL,
        price INTEGER NOT NULL,
        original_price INTEGER,
        cover_image_url TEXT,
        video_url TEXT,
        content_url TEXT,
        category TEXT,
        highlights TEXT NOT NULL DEFAULT '[]',
        total_duration TEXT,
        show_sale_badge BOOLEAN NOT NULL DEFAULT FALSE,
        is_active BOOLEAN NOT NULL DEFAULT TRUE,
        user_id VARCHAR(36) NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        created_at TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS toolkit_content_items (
        id VARCHAR(36) PRIMARY KEY,
        toolkit_id VARCHAR(36) NOT NULL REFERENCES toolkits(id) ON DELETE CASCADE,
        title TEXT NOT NULL,
        type VARCHAR(16) NOT NULL,
        content TEXT,
        video_url TEXT,
        order_index INTEGER NOT NULL DEFAULT 0,
        created_at TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS coupons (
        id VARCHAR(36) PRIMARY KEY,
        code VARCHAR(50) NOT NULL UNIQUE,
        discount_amount INTEGER NOT NULL,
        max_uses INTEGER,
        max_uses_per_user INTEGER NOT NULL DEFAULT 1,
        current_uses INTEGER NOT NULL DEFAULT 0,
        is_active BOOLEAN NOT NULL DEFAULT TRUE,
        expires_at TIMESTAMPTZ,
        created_at TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS user_toolkits (
        id VARCHAR(36) PRIMARY KEY,
        user_id VARCHAR(36) NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        toolkit_id VARCHAR(36) NOT NULL REFERENCES toolkits(id) ON DELETE CASCADE,
        razorpay_order_id TEXT,
        payment_id TEXT,
        payment_status VARCHAR(16),
        amount_paid INTEGER,
        coupon_id VARCHAR(36) REFERENCES coupons(id) ON DELETE SET NULL,
        purchase_date TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP,
        created_at TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS user_toolkit_progress (
        id VARCHAR(36) PRIMARY KEY,
        user_id VARCHAR(36) NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        toolkit_id VARCHAR(36) NOT NULL REFERENCES toolkits(id) ON DELETE CASCADE,
        content_item_id VARCHAR(36) NOT NULL REFERENCES toolkit_content_items(id) ON DELETE CASCADE,
        completed_at TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP,
        UNIQUE (user_id, content_item_id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS ungatekeep_posts (
        id VARCHAR(36) PRIMARY KEY,
        title TEXT NOT NULL,
        content TEXT NOT NULL,
        images TEXT NOT NULL DEFAULT '[]',
        link_url TEXT,
        link_title TEXT,
        link_image TEXT,
        tag VARCHAR(32),
        is_pinned BOOLEAN NOT NULL DEFAULT FALSE,
        is_published BOOLEAN NOT NULL DEFAULT FALSE,
        published_at TIMESTAMPTZ,
        user_id VARCHAR(36) NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        created_at TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS tasks (
        id VARCHAR(36) PRIMARY KEY,
        title TEXT NOT NULL,
        description TEXT,
        completed BOOLEAN NOT NULL DEFAULT FALSE,
        opportunity_link TEXT,
        user_id VARCHAR(36) NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        created_at TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS feedback (
        id VARCHAR(36) PRIMARY KEY,
        mood INTEGER NOT NULL,
        meaning TEXT NOT NULL,
        message TEXT,
        path TEXT,
        user_agent TEXT,
        user_id VARCHAR(36),
        created_at TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS waitlist (
        id VARCHAR(36) PRIMARY KEY,
        email VARCHAR(255) NOT NULL UNIQUE,
        feedback TEXT,
        created_at TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS onboarding_survey_responses (
        id VARCHAR(36) PRIMARY KEY,
        user_id VARCHAR(36) NOT NULL UNIQUE REFERENCES users(id) ON DELETE CASCADE,
        source VARCHAR(32) NOT NULL,
        source_other VARCHAR(120),
        created_at TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS banners (
        id VARCHAR(36) PRIMARY KEY,
        title TEXT NOT NULL,
        subtitle TEXT,
        background TEXT,
        image_url TEXT,
        link TEXT,
        priority INTEGER NOT NULL DEFAULT 0,
        is_active BOOLEAN NOT NULL DEFAULT TRUE,
        created_at TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP
    )
    """,
]

INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_internships_created_at ON internships (created_at)",
    "CREATE INDEX IF NOT EXISTS idx_internships_is_active ON internships (is_active)",
    "CREATE INDEX IF NOT EXISTS idx_internships_user_id ON internships (user_id)",
    "CREATE INDEX IF NOT EXISTS idx_opportunities_created_at ON opportunities (created_at)",
    "CREATE INDEX IF NOT EXISTS idx_comments_opportunity_id ON comments (opportunity_id)",
    "CREATE INDEX IF NOT EXISTS idx_tracker_events_user_id ON tracker_events (user_id)",
    "CREATE INDEX IF NOT EXISTS idx_toolkit_content_items_order ON toolkit_content_items (toolkit_id, order_index)",
]

# Children first, so a wipe never trips a foreign key
TABLE_NAMES = [
    "user_toolkit_progress", "user_toolkits", "coupons", "toolkit_content_items",
    "toolkits", "tracker_events", "tracker_items", "user_onboarding_profiles",
    "onboarding_survey_responses", "banners",
    "bookmarks", "comments", "opportunities", "internships", "tags",
    "ungatekeep_posts", "tasks", "feedback", "waitlist", "users",
]


def init_schema() -> None:
    """Create every table and index if missing. Safe to call on each startup."""
    with get_db_session() as db:
        for ddl in TABLES:
            db.execute(text(ddl))
        for ddl in INDEXES:
            db.execute(text(ddl))
    logger.info("Relational schema ready (%d tables)", len(TABLES))


def truncate_all() -> None:
    """Delete every row. Used by tests and local resets."""
    with get_db_session() as db:
        for table in TABLE_NAMES:
            db.execute(text(f"DELETE FROM {table}"))
