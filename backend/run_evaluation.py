"""
Manual risk evaluation of all active accounts.
Run with: python run_evaluation.py
"""

import asyncio
import os
import sys

# Set working directory
backend_dir = os.path.dirname(os.path.abspath(__file__))
os.chdir(backend_dir)
sys.path.insert(0, backend_dir)

from dotenv import load_dotenv
load_dotenv(os.path.join(backend_dir, ".env"))


async def run_evaluation():
    """Evaluate every active account once and print the violations."""
    from riskmonitor.core.logging import setup_logging
    from riskmonitor.db.database import init_db, close_db
    from riskmonitor.services.cache import init_redis, close_redis
    from riskmonitor.services.evaluation import PeriodicEvaluator, summarize

    setup_logging()
    await init_db()
    await init_redis()

    print("\n" + "=" * 60)
    print("TRADE RISK MONITOR - MANUAL EVALUATION")
    print("=" * 60)

    try:
        results = await PeriodicEvaluator().run_once()
    finally:
        await close_redis()
        await close_db()

    summary = summarize(results)
    print(f"\nAccounts with violations: {summary['total_accounts']}")
    print(f"Violations found: {summary['violations_found']}")

    if not results:
        print("\nNo violations found.")
    else:
        print("")
        print(f"{'Account':<10} {'Login':<12} {'Rule':<28} {'Severity':<9} {'Action':<9}")
        print("-" * 72)
        for r in results:
            action = "executed" if r.action_executed else "pending"
            severity = r.severity.value if r.severity else "-"
            print(f"{r.account_id:<10} {r.account_login:<12} {(r.rule_name or '')[:27]:<28} {severity:<9} {action:<9}")

    print("\n" + "=" * 60)
    print("EVALUATION COMPLETE")
    print("=" * 60 + "\n")


if __name__ == "__main__":
    asyncio.run(run_evaluation())
