"""Tests for BuybackQueue and the fee arithmetic."""
from decimal import Decimal
from unittest.mock import patch

import pytest


class TestFee:
    def test_contribution_is_ten_percent(self):
        from genr8.services.buyback.config import contribution_amount

        assert contribution_amount(Decimal("0.21")) == Decimal("0.021000")
        assert contribution_amount(Decimal("0.042")) == Decimal("0.004200")

    def test_contribution_rounds_half_up_to_micro_dollars(self):
        from genr8.services.buyback.config import contribution_amount

        assert contribution_amount(Decimal("0.0000055")) == Decimal("0.000001")

    def test_fee_rate_must_be_a_fraction(self):
        from pydantic import ValidationError

        from genr8.core.config import Settings

        with pytest.raises(ValidationError):
            Settings(buyback_fee_rate=1.5)


class TestQueue:
    def test_enqueue_once_per_signature(self, db):
        from genr8.models import BuybackContribution
        from genr8.services.buyback.queue import BuybackQueue

        queue = BuybackQueue(db)
        first = queue.enqueue("sig-1", "gen_1", Decimal("0.0066"), "ideogram-v3")
        again = queue.enqueue("sig-1", "gen_1", Decimal("0.0066"), "ideogram-v3")
        db.commit()

        assert first.id == again.id
        assert db.query(BuybackContribution).count() == 1
        assert first.status == "pending"

    def test_pending_total(self, db):
        from genr8.services.buyback.queue import BuybackQueue

        queue = BuybackQueue(db)
        queue.enqueue("a", None, Decimal("0.021"), "sora-2")
        queue.enqueue("b", None, Decimal("0.036"), "veo-3.1")
        db.commit()

        assert queue.pending_total() == Decimal("0.057")
        assert len(queue.pending()) == 2

    def test_claimed_rows_are_invisible_to_a_second_claim(self, db, session_factory):
        from genr8.services.buyback.queue import BuybackQueue

        queue = BuybackQueue(db)
        queue.enqueue("a", None, Decimal("0.5"), "sora-2")
        db.commit()

        claim_id, rows = queue.claim_pending()
        db.commit()
        other = session_factory()
        try:
            _, second = BuybackQueue(other).claim_pending()
        finally:
            other.close()

        assert [r.payment_signature for r in rows] == ["a"]
        assert second == []
        assert all(r.claim_id == claim_id and r.status == "claimed" for r in rows)

    def test_release_returns_rows_to_pending(self, db):
        from genr8.services.buyback.queue import BuybackQueue

        queue = BuybackQueue(db)
        queue.enqueue("a", None, Decimal("0.5"), "sora-2")
        db.commit()
        claim_id, _ = queue.claim_pending()

        assert queue.release(claim_id, error="rpc down") == 1
        row = queue.get_by_signature("a")
        assert row.status == "pending"
        assert row.claim_id is None
        assert row.error == "rpc down"

    def test_write_failure_is_reported(self, db):
        from sqlalchemy.exc import OperationalError

        from genr8.services.buyback.queue import BuybackQueue
        from genr8.services.errors import QueueWriteFailure

        queue = BuybackQueue(db)
        with patch.object(db, "flush", side_effect=OperationalError("INSERT", {}, Exception("locked"))):
            with pytest.raises(QueueWriteFailure):
                queue.enqueue("a", None, Decimal("0.5"), "sora-2")
