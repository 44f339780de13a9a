"""Database schema for CompileStrength.

Timestamps are stored as ISO-8601 UTC strings with microsecond precision,
so lexicographic comparison in SQL matches chronological order.
"""

SCHEMA = """
-- =============================================================================
-- Billing
-- =============================================================================

CREATE TABLE IF NOT EXISTS plans (
    id TEXT PRIMARY KEY,
    product_id TEXT NOT NULL,
    product_name TEXT,
    variant_id TEXT NOT NULL UNIQUE,
    name TEXT NOT NULL,
    description TEXT,
    price TEXT NOT NULL,
    interval TEXT,
    interval_count INTEGER,
    is_usage_based INTEGER DEFAULT 0,
    trial_interval TEXT,
    trial_interval_count INTEGER,
    sort INTEGER
);

CREATE TABLE IF NOT EXISTS subscriptions (
    id TEXT PRIMARY KEY,
    provider_id TEXT UNIQUE,
    order_id TEXT,
    name TEXT,
    email TEXT,
    status TEXT NOT NULL,
    status_formatted TEXT,
    renews_at TEXT,
    ends_at TEXT,
    trial_ends_at TEXT,
    price TEXT,
    is_usage_based INTEGER DEFAULT 0,
    is_paused INTEGER DEFAULT 0,
    subscription_item_id TEXT,
    user_id TEXT NOT NULL,
    plan_id TEXT REFERENCES plans(id),
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS webhook_events (
    id TEXT PRIMARY KEY,
    event_name TEXT NOT NULL,
    processed INTEGER DEFAULT 0,
    body TEXT NOT NULL,
    processing_error TEXT,
    created_at TEXT NOT NULL
);

-- =============================================================================
-- Usage accounting (one row per subscription per 7-day period)
-- =============================================================================

CREATE TABLE IF NOT EXISTS usage_periods (
    id TEXT PRIMARY KEY,
    subscription_id TEXT NOT NULL REFERENCES subscriptions(id),
    user_id TEXT NOT NULL,
    period_start TEXT NOT NULL,
    period_end TEXT NOT NULL,
    compiles_used INTEGER NOT NULL DEFAULT 0,
    compiles_limit INTEGER NOT NULL,
    routine_edits_used INTEGER NOT NULL DEFAULT 0,
    routine_edits_limit INTEGER NOT NULL,
    ai_messages_used INTEGER NOT NULL DEFAULT 0,
    ai_messages_limit INTEGER NOT NULL,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

-- =============================================================================
-- Programs (persisted routines)
-- =============================================================================

CREATE TABLE IF NOT EXISTS workout_programs (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    name TEXT NOT NULL,
    description TEXT,
    goal_type TEXT,
    experience_level TEXT,
    frequency INTEGER,
    duration_weeks INTEGER,
    is_active INTEGER DEFAULT 1,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS workout_days (
    id TEXT PRIMARY KEY,
    program_id TEXT NOT NULL REFERENCES workout_programs(id) ON DELETE CASCADE,
    day_number INTEGER NOT NULL,
    name TEXT NOT NULL,
    type TEXT NOT NULL,
    description TEXT,
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS exercises (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL UNIQUE,
    description TEXT,
    muscle_group TEXT,
    equipment_type TEXT,
    difficulty TEXT,
    video_url TEXT,
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS program_exercises (
    id TEXT PRIMARY KEY,
    workout_day_id TEXT NOT NULL REFERENCES workout_days(id) ON DELETE CASCADE,
    exercise_id TEXT NOT NULL REFERENCES exercises(id),
    sets INTEGER NOT NULL,
    reps TEXT NOT NULL,
    rest_seconds INTEGER DEFAULT 90,
    notes TEXT,
    "order" INTEGER NOT NULL
);

-- =============================================================================
-- Workout logging
-- =============================================================================

CREATE TABLE IF NOT EXISTS workout_sessions (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    workout_day_id TEXT,
    start_time TEXT NOT NULL,
    end_time TEXT,
    notes TEXT,
    completed_at TEXT
);

CREATE TABLE IF NOT EXISTS workout_sets (
    id TEXT PRIMARY KEY,
    session_id TEXT NOT NULL REFERENCES workout_sessions(id) ON DELETE CASCADE,
    exercise_id TEXT NOT NULL,
    set_number INTEGER NOT NULL,
    reps INTEGER NOT NULL,
    weight REAL NOT NULL,
    rpe INTEGER,
    completed_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_subscriptions_user ON subscriptions(user_id, status);
CREATE INDEX IF NOT EXISTS idx_usage_periods_subscription
    ON usage_periods(subscription_id, period_start DESC);
CREATE INDEX IF NOT EXISTS idx_workout_programs_user ON workout_programs(user_id, name);
CREATE INDEX IF NOT EXISTS idx_workout_days_program ON workout_days(program_id, day_number);
CREATE INDEX IF NOT EXISTS idx_program_exercises_day ON program_exercises(workout_day_id, "order");
CREATE INDEX IF NOT EXISTS idx_workout_sessions_user ON workout_sessions(user_id, completed_at);
CREATE INDEX IF NOT EXISTS idx_workout_sets_session ON workout_sets(session_id);
"""
