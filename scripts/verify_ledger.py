"""
Ledger reconciliation check.

Connects to the configured database (DATABASE_URL / .env) and verifies that
every person's score equals the sum of its ledger entries and lies within
[0, max_score]. Exits 1 when an inconsistency is found.

Usage:
    python scripts/verify_ledger.py
"""

import asyncio
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from backend.app.core.config import settings
from backend.app.db.session import AsyncSessionLocal, engine
from backend.app.domain.scoring.score_engine import ScoreEngine


async def check_ledger() -> int:
    print(f"Checking ledger at: {settings.database_url.split('@')[-1]}")

    async with AsyncSessionLocal() as db:
        discrepancies = await ScoreEngine(db).reconcile()

    await engine.dispose()

    if not discrepancies:
        print("✅ Ledger consistent")
        return 0

    print(f"❌ {len(discrepancies)} inconsistent person(s):")
    for item in discrepancies:
        print(
            f"  - #{item.person_id} {item.name}: score={item.score} "
            f"ledger={item.ledger_total} max={item.max_score}"
        )
    return 1


if __name__ == "__main__":
    sys.exit(asyncio.run(check_ledger()))
