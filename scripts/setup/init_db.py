# scripts/setup/init_db.py
"""
Initialize database — creates all tables, optionally seeds a day of rules.
Run once before first launch, or after adding new models.
Usage: python scripts/setup/init_db.py [--seed-rules 2026-01-20]
"""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", ".."))

import argparse
from datetime import date

from sqlalchemy import inspect, text
from sqlalchemy.exc import SQLAlchemyError

from app.config import settings
from app.context import AppContext
from app.schemas.rules import DailyRuleIn
from app.services.rule_service import RuleStore

SAMPLE_RULES = {
    "global_goal_minutes": 240,
    "zones": [
        {"zone_id": "hall-a", "name": "Hall A — Plenary", "start_time": "09:00", "end_time": "18:00",
         "breaks": [{"label": "Lunch", "start_time": "12:00", "end_time": "13:00"}]},
        {"zone_id": "hall-b", "name": "Hall B — Workshops", "start_time": "10:00", "end_time": "17:00",
         "goal_minutes": 120,
         "breaks": [{"label": "Coffee", "start_time": "15:00", "end_time": "15:20"}]},
    ],
}


def main():
    parser = argparse.ArgumentParser(description="Create attendance tables")
    parser.add_argument("--seed-rules", type=date.fromisoformat, default=None,
                        help="Write a sample two-zone rule set for this date (YYYY-MM-DD)")
    args = parser.parse_args()

    print("🗄️  Attendance DB Initialization")
    print("=" * 40)
    print(f"📡 Database: {settings.DATABASE_URL}")

    context = AppContext.from_settings(settings)

    # Test connection
    try:
        with context.engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        print("✅ Database connection OK")
    except SQLAlchemyError as e:
        print(f"❌ Cannot connect to database: {e}")
        print("\nMake sure PostgreSQL is running:")
        print("  docker-compose up -d db")
        print("  # or: sudo systemctl start postgresql")
        sys.exit(1)

    # Create all tables
    print("\n📋 Creating tables...")
    context.init_schema()
    print("✅ All tables created")

    tables = sorted(inspect(context.engine).get_table_names())
    print(f"\n📊 Tables in database ({len(tables)} total):")
    for t in tables:
        print(f"   ✓ {t}")

    if args.seed_rules:
        db = context.session_factory()
        try:
            rule = RuleStore(db).replace_daily_rule(args.seed_rules, DailyRuleIn.model_validate(SAMPLE_RULES))
            print(f"\n🗓️  Seeded rules for {rule.rule_date}: {', '.join(z.zone_id for z in rule.zones)}")
        finally:
            db.close()

    context.close()
    print("\n🎉 Database ready! You can now start the backend:")
    print("   uvicorn app.main:app --host 0.0.0.0 --port 8080 --reload")


if __name__ == "__main__":
    main()
