"""
Seed data generator — creates realistic creator-analytics data for local dev.

Generates:
  - ~20 users (tenants), each with ~40 videos
  - 90 days of daily_metrics per user
  - ~500 public creator profiles

Tables are created if missing, then truncated and refilled.
Run:  python -m pipelines.seed.seed_data
"""
from __future__ import annotations

import json
import random
from datetime import date, datetime, timedelta

from faker import Faker
from sqlalchemy import text

from src.core.config import get_settings
from src.db.connection import create_db_engine

fake = Faker()
Faker.seed(42)
random.seed(42)

# ── Tunables ─────────────────────────────────────────────
NUM_USERS = 20
VIDEOS_PER_USER = 40
METRIC_DAYS = 90
NUM_CREATORS = 500

DATE_END = date(2025, 12, 31)

_DDL = [
    "CREATE EXTENSION IF NOT EXISTS pgcrypto",
    """
    CREATE TABLE IF NOT EXISTS users (
        id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        tiktok_id VARCHAR(100) UNIQUE NOT NULL,
        username VARCHAR(255) NOT NULL,
        display_name VARCHAR(255),
        follower_count INTEGER,
        created_at TIMESTAMP DEFAULT NOW()
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS videos (
        id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        user_id UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        tiktok_video_id VARCHAR(100) UNIQUE NOT NULL,
        description TEXT,
        view_count INTEGER DEFAULT 0,
        like_count INTEGER DEFAULT 0,
        comment_count INTEGER DEFAULT 0,
        share_count INTEGER DEFAULT 0,
        engagement_rate NUMERIC(5, 2),
        video_created_at TIMESTAMP,
        source JSONB,
        created_at TIMESTAMP DEFAULT NOW()
    )
    """,
    "CREATE INDEX IF NOT EXISTS videos_user_idx ON videos (user_id)",
    """
    CREATE TABLE IF NOT EXISTS daily_metrics (
        id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        user_id UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        date DATE NOT NULL,
        total_views INTEGER DEFAULT 0,
        total_likes INTEGER DEFAULT 0,
        total_comments INTEGER DEFAULT 0,
        total_shares INTEGER DEFAULT 0,
        follower_count INTEGER,
        avg_engagement_rate NUMERIC(5, 2),
        created_at TIMESTAMP DEFAULT NOW()
    )
    """,
    "CREATE INDEX IF NOT EXISTS metrics_user_date_idx ON daily_metrics (user_id, date)",
    """
    CREATE TABLE IF NOT EXISTS creators (
        id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        tiktok_id VARCHAR(100) UNIQUE NOT NULL,
        username VARCHAR(255) NOT NULL,
        follower_count INTEGER,
        following_count INTEGER,
        total_likes BIGINT,
        video_count INTEGER,
        bio TEXT,
        profile_data JSONB,
        last_scraped_at TIMESTAMP,
        created_at TIMESTAMP DEFAULT NOW()
    )
    """,
]


def _engagement(views: int, likes: int, comments: int, shares: int) -> float:
    if views == 0:
        return 0.0
    return round(min(99.99, (likes + comments + shares) / views * 100), 2)


# ── Generators ───────────────────────────────────────────

def gen_users() -> list[dict]:
    rows = []
    for _ in range(NUM_USERS):
        rows.append({
            "id": fake.uuid4(),
            "tiktok_id": str(fake.unique.random_number(digits=12)),
            "username": fake.unique.user_name(),
            "display_name": fake.name(),
            "follower_count": random.randint(1_000, 2_000_000),
        })
    return rows


def gen_videos(users: list[dict]) -> list[dict]:
    rows = []
    for user in users:
        for _ in range(VIDEOS_PER_USER):
            views = random.randint(500, 5_000_000)
            likes = int(views * random.uniform(0.01, 0.15))
            comments = int(likes * random.uniform(0.01, 0.1))
            shares = int(likes * random.uniform(0.005, 0.05))
            rows.append({
                "user_id": user["id"],
                "tiktok_video_id": str(fake.unique.random_number(digits=19)),
                "description": fake.sentence(nb_words=12),
                "view_count": views,
                "like_count": likes,
                "comment_count": comments,
                "share_count": shares,
                "engagement_rate": _engagement(views, likes, comments, shares),
                "video_created_at": datetime.combine(
                    DATE_END - timedelta(days=random.randint(0, 365)), datetime.min.time()
                ),
            })
    return rows


def gen_daily_metrics(users: list[dict]) -> list[dict]:
    rows = []
    for user in users:
        followers = user["follower_count"]
        for offset in range(METRIC_DAYS, 0, -1):
            views = random.randint(1_000, 500_000)
            likes = int(views * random.uniform(0.02, 0.12))
            comments = int(likes * random.uniform(0.01, 0.08))
            shares = int(likes * random.uniform(0.005, 0.04))
            followers += random.randint(-200, 1_500)
            rows.append({
                "user_id": user["id"],
                "date": DATE_END - timedelta(days=offset),
                "total_views": views,
                "total_likes": likes,
                "total_comments": comments,
                "total_shares": shares,
                "follower_count": max(0, followers),
                "avg_engagement_rate": _engagement(views, likes, comments, shares),
            })
    return rows


def gen_creators() -> list[dict]:
    rows = []
    for _ in range(NUM_CREATORS):
        rows.append({
            "tiktok_id": str(fake.unique.random_number(digits=12)),
            "username": fake.unique.user_name(),
            "follower_count": random.randint(100, 50_000_000),
            "following_count": random.randint(0, 5_000),
            "total_likes": random.randint(0, 2_000_000_000),
            "video_count": random.randint(1, 3_000),
            "bio": fake.sentence(nb_words=15),
            "profile_data": json.dumps({"verified": random.random() < 0.1}),
            "last_scraped_at": datetime.combine(DATE_END, datetime.min.time()),
        })
    return rows


# ── Bulk insert helper ───────────────────────────────────

def _bulk_insert(engine, table: str, rows: list[dict], batch_size: int = 2000):
    """Insert rows into *table* in batches using executemany-style VALUES."""
    if not rows:
        return
    cols = list(rows[0].keys())
    col_list = ", ".join(cols)
    param_list = ", ".join(f":{c}" for c in cols)
    sql = text(f"INSERT INTO {table} ({col_list}) VALUES ({param_list}) ON CONFLICT DO NOTHING")
    with engine.begin() as conn:
        for i in range(0, len(rows), batch_size):
            conn.execute(sql, rows[i : i + batch_size])
    print(f"  ✓ {table}: {len(rows):,} rows")


# ── Main ─────────────────────────────────────────────────

def main():
    print("═══ Seed Data Generator ═══")
    engine = create_db_engine(get_settings())

    print("Creating tables …")
    with engine.begin() as conn:
        for ddl in _DDL:
            conn.execute(text(ddl))

    # Truncate existing data for idempotency
    print("Truncating tables …")
    with engine.begin() as conn:
        conn.execute(text("TRUNCATE TABLE daily_metrics, videos, creators, users CASCADE"))

    print("Generating data …")
    users = gen_users()
    videos = gen_videos(users)
    metrics = gen_daily_metrics(users)
    creators = gen_creators()

    print("Inserting …")
    _bulk_insert(engine, "users", users)
    _bulk_insert(engine, "videos", videos)
    _bulk_insert(engine, "daily_metrics", metrics)
    _bulk_insert(engine, "creators", creators)

    print(f"\nDone — seeded {len(users):,} users, {len(videos):,} videos, "
          f"{len(metrics):,} daily rows, {len(creators):,} creators.")
    print(f"Example tenant id: {users[0]['id']}")


if __name__ == "__main__":
    main()
