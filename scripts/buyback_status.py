#!/usr/bin/env python3
"""
Print the buyback queue: pending total, SOL equivalent and the latest batches.
Run from the project root: python -m scripts.buyback_status
or: PYTHONPATH=. python scripts/buyback_status.py
"""
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from genr8.db.session import SessionLocal
from genr8.models.buyback import BuybackBatch, BuybackContribution
from genr8.services.buyback.config import get_min_native
from genr8.services.buyback.queue import BuybackQueue
from genr8.services.pricing import PriceService


def main():
    db = SessionLocal()
    try:
        queue = BuybackQueue(db)
        pending = queue.pending()
        total_usd = queue.pending_total()
        sol_price = PriceService().get_sol_price()
        total_native = float(total_usd) / sol_price
        print(f"Pending contributions: {len(pending)}")
        print(f"Pending total: ${total_usd} = {total_native:.6f} SOL at ${sol_price:.2f}/SOL")
        if total_native < get_min_native():
            print(f"Below the {get_min_native()} SOL minimum; the next run will skip the swap.")

        claimed = db.query(BuybackContribution).filter(BuybackContribution.status == "claimed").all()
        if claimed:
            print(f"\nClaimed but unsettled: {len(claimed)}")
            for c in claimed:
                print(f"  {c.claim_id} {c.claimed_at:%Y-%m-%d %H:%M} ${c.amount_usd} {c.payment_signature}")

        batches = db.query(BuybackBatch).order_by(BuybackBatch.created_at.desc()).limit(10).all()
        if not batches:
            print("\nNo batches yet.")
            return
        print("\nLatest batches:")
        for b in batches:
            print(f"  {b.created_at:%Y-%m-%d %H:%M} {b.status:<7} ${b.amount_usd} {b.amount_native:.6f} SOL  {b.signature or b.error}")
    finally:
        db.close()


if __name__ == "__main__":
    main()
