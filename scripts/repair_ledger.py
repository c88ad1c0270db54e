"""
Standalone script to repair accounting drift.

Removes pending accounting entries whose amount is zero or negative, for the
given teachers or for every teacher the directory can resolve.

Usage:
    python scripts/repair_ledger.py                      # all teachers, test database
    python scripts/repair_ledger.py --teacher-id <uuid>  # one teacher (repeatable)
    python scripts/repair_ledger.py --dry-run            # only report counts
    python scripts/repair_ledger.py --prod               # production database
"""
import argparse
import asyncio
import os
import sys
from pathlib import Path
from uuid import UUID

from dotenv import load_dotenv

# --- Path Setup ---
PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

load_dotenv(PROJECT_ROOT / '.env')

from src.tutor_ledger_backend.database import engine as db_engine
from src.tutor_ledger_backend.database.db_enums import AccountingStatus
from src.tutor_ledger_backend.services.entry_store import AccountingEntryStore
from src.tutor_ledger_backend.services.fee_settings_store import FeeSettingsStore
from src.tutor_ledger_backend.services.teacher_directory import TeacherDirectoryService
from src.tutor_ledger_backend.services.accounting_service import AccountingChargeService


async def repair(teacher_ids: list[UUID], dry_run: bool, database_url: str | None) -> int:
    """Returns the number of entries removed (or that would be removed)."""
    db_engine.create_db_engine_and_session_factory(database_url)
    session = db_engine.AsyncSessionLocal()
    total = 0
    try:
        entry_store = AccountingEntryStore(db=session)
        fee_store = FeeSettingsStore(db=session)
        directory = TeacherDirectoryService(db=session, entry_store=entry_store, fee_store=fee_store)
        charge_service = AccountingChargeService(entry_store=entry_store, fee_store=fee_store, directory=directory)

        if not teacher_ids:
            teacher_ids = await directory.resolve_teacher_ids()
        print(f"Checking {len(teacher_ids)} teacher(s)...")

        for teacher_id in teacher_ids:
            if dry_run:
                pending = await entry_store.list_entries(teacher_id, status=AccountingStatus.PENDING)
                count = sum(1 for entry in pending if entry.amount <= 0)
            else:
                count = (await charge_service.cleanup_zero_pending_for_teacher(teacher_id)).deleted
            if count:
                print(f"  {teacher_id}: {count} non-positive pending entr{'y' if count == 1 else 'ies'}")
            total += count

        if dry_run:
            await session.rollback()
        else:
            await session.commit()
    except Exception:
        await session.rollback()
        raise
    finally:
        await session.close()
        await db_engine.dispose_db_engine()

    verb = "would be removed" if dry_run else "removed"
    print(f"Done. {total} entr{'y' if total == 1 else 'ies'} {verb}.")
    return total


def main():
    parser = argparse.ArgumentParser(description="Remove zero/negative pending accounting entries.")
    parser.add_argument("--teacher-id", action="append", type=UUID, default=[], help="Teacher to repair (repeatable). Defaults to all teachers.")
    parser.add_argument("--dry-run", action="store_true", help="Only report what would be removed.")
    parser.add_argument("--prod", action="store_true", help="Run against the PRODUCTION database.")
    args = parser.parse_args()

    if args.prod:
        database_url = os.getenv("DATABASE_URL_PROD")
        print("⚠️  WARNING: You are about to modify the PRODUCTION database. ⚠️")
        if not args.dry_run:
            confirmation = input("Are you sure you want to proceed? (y/n): ").strip().lower()
            if confirmation != 'y':
                print("Operation aborted.")
                return
    else:
        database_url = os.getenv("DATABASE_URL_TEST")

    if not database_url:
        print("Error: database URL not set in the environment.")
        sys.exit(1)

    asyncio.run(repair(args.teacher_id, args.dry_run, database_url))


if __name__ == "__main__":
    main()
